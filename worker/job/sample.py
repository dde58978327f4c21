"""샘플 잡 - 테스트용"""

import asyncio
import logging
from datetime import datetime

from pydantic import BaseModel

from dynamic import CancellationToken, display_name, timeout
from worker.job import registry

logger = logging.getLogger(__name__)


class Report(BaseModel):
    """리포트 요청"""
    title: str
    recipients: list[str] = []
    generated_at: datetime | None = None


@registry.register
class SampleJob:
    """테스트용 샘플 잡"""

    calls: list[tuple[str, tuple]] = []
    instances = 0

    def __init__(self):
        SampleJob.instances += 1

    def echo(self, message: str) -> str:
        SampleJob.calls.append(("echo", (message,)))
        logger.info(f"SampleJob.echo executed: message={message}")
        return message

    @display_name("Greeting for {0.domain}")
    def greet(self, email: str) -> str:
        """표시 이름 템플릿이 인자와 맞지 않는 메서드"""
        SampleJob.calls.append(("greet", (email,)))
        return f"hello {email}"

    def fail(self, reason: str) -> None:
        SampleJob.calls.append(("fail", (reason,)))
        raise RuntimeError(reason)

    async def sleep(self, seconds: float) -> float:
        await asyncio.sleep(seconds)
        SampleJob.calls.append(("sleep", (seconds,)))
        return seconds

    @timeout(0.05)
    async def slow(self, seconds: float) -> float:
        """타임아웃 정책이 선언된 메서드"""
        await asyncio.sleep(seconds)
        return seconds

    def wait_cancel(self, seconds: float, token: CancellationToken) -> bool:
        """취소될 때까지 대기 (동기, 스레드에서 실행)"""
        cancelled = token.wait(seconds)
        token.throw_if_cancellation_requested()
        return cancelled

    def build_report(self, report: Report, priority: int = 0) -> str:
        SampleJob.calls.append(("build_report", (report, priority)))
        return f"{report.title}:{len(report.recipients)}:{priority}"

    @staticmethod
    def add(a: int, b: int) -> int:
        return a + b

    @classmethod
    def reset(cls) -> None:
        cls.calls.clear()
        cls.instances = 0
