"""dynjobs CLI"""

import argparse
import asyncio
import sys

from pydantic import ValidationError

from dynjobs import __version__
from dynamic.envelope import format_display_name
from dynamic.model.envelope import DynamicJobEnvelope


def describe_envelope(envelope: DynamicJobEnvelope) -> str:
    """envelope 요약 문자열"""
    descriptor = envelope.descriptor
    lines = [
        f"name:      {format_display_name(envelope)}",
        f"target:    {descriptor.target}",
        f"signature: {descriptor.signature}",
        f"queue:     {envelope.queue}",
    ]
    for i, policy in enumerate(envelope.policies):
        lines.append(f"policy[{i}]: {policy.model_dump_json()}")
    for i, argument in enumerate(descriptor.encoded_arguments):
        lines.append(f"arg[{i}]:    {argument.kind.value} {argument.value!r}")
    return "\n".join(lines)


def describe(path: str) -> int:
    """envelope 파일 내용 출력 ("-"이면 stdin)"""
    if path == "-":
        payload = sys.stdin.read()
    else:
        try:
            with open(path, encoding="utf-8") as f:
                payload = f.read()
        except OSError as e:
            print(f"Error: cannot read '{path}': {e}")
            return 1

    try:
        envelope = DynamicJobEnvelope.from_json(payload)
    except ValidationError as e:
        print(f"Error: corrupted envelope ({e.error_count()} errors)")
        return 1

    print(describe_envelope(envelope))
    return 0


def run(modules: list[str]) -> int:
    """dispatcher/worker/queue_dispatcher 실행"""
    from main import main as run_main, parse_modules

    selected = parse_modules(modules)
    if selected is None:
        print(f"Error: unknown modules {modules}")
        return 1

    print(f"Starting dynjobs: {', '.join(selected)}")
    try:
        asyncio.run(run_main(selected))
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="dynjobs",
        description="dynjobs - 메서드 호출 기반 Dynamic Job 스케줄링"
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # run command
    run_parser = subparsers.add_parser("run", help="Run dispatcher/worker/queue_dispatcher")
    run_parser.add_argument("modules", nargs="*", help="Modules to run (default: dispatcher worker)")

    # describe command
    describe_parser = subparsers.add_parser("describe", help="Print a serialized job envelope")
    describe_parser.add_argument("file", help="Envelope JSON file ('-' for stdin)")

    # version
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")

    args = parser.parse_args(argv)

    if args.command == "run":
        return run(args.modules)
    if args.command == "describe":
        return describe(args.file)
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
