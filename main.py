"""
dynjobs 통합 진입점

Dispatcher, Worker, QueueDispatcher를 한 프로세스에서 실행합니다.
잡 스토어와 반복 스케줄러는 메모리 구현을 공유합니다.

사용법:
    python main.py                     # dispatcher + worker (+ queue.yaml에서 켠 경우 queue_dispatcher)
    python main.py dispatcher          # Dispatcher만
    python main.py worker              # Worker만
    python main.py queue_dispatcher    # QueueDispatcher만
    python main.py dispatcher worker   # 복수 선택
"""

import sys
import os

# Windows 인코딩 설정 (cp949 -> UTF-8)
if sys.platform == "win32":
    os.environ["PYTHONUTF8"] = "1"

import asyncio
import signal
import logging
from pathlib import Path

from common.config import LoggingConfig, load_config, recurring_jobs
from common.logging import setup_logging
from dynamic import DynamicRecurringJobOptions, MethodCall, RecurringJobRegistrar
from storage.memory import MemoryJobStore, MemoryRecurringScheduler

logger = logging.getLogger(__name__)

VALID_MODULES = ("dispatcher", "worker", "queue_dispatcher")


def register_recurring_jobs(config: dict, scheduler: MemoryRecurringScheduler) -> list[str]:
    """recurring.yaml에 선언된 반복 잡 등록"""
    registrar = RecurringJobRegistrar(scheduler)
    registered = []
    for item in recurring_jobs(config):
        job = MethodCall.from_path(item.job, *item.args, **item.kwargs)
        options = DynamicRecurringJobOptions(time_zone=item.time_zone)
        registrar.add_or_update(item.id, job, item.cron, options, queue=item.queue)
        registered.append(item.id)
    return registered


async def run_dispatcher(config: dict, stop_event: asyncio.Event, scheduler, store):
    """Dispatcher 실행"""
    from dispatcher.main import Dispatcher
    from dispatcher.model.dispatcher import DispatcherConfig

    dispatcher_config = DispatcherConfig(**config.get("dispatcher", {}))
    dispatcher = Dispatcher(dispatcher_config, scheduler, store)

    async def wait_stop():
        await stop_event.wait()
        await dispatcher.stop()

    asyncio.create_task(wait_stop())
    await dispatcher.start()


async def run_worker(config: dict, stop_event: asyncio.Event, store):
    """Worker 실행"""
    from worker.main import WorkerPool, WorkerConfig, create_executor

    worker_config = WorkerConfig(**config.get("worker", {}))
    worker_pool = WorkerPool(worker_config, store, create_executor(worker_config))

    async def wait_stop():
        await stop_event.wait()
        await worker_pool.stop()

    asyncio.create_task(wait_stop())
    await worker_pool.start()


async def run_queue_dispatcher(config: dict, stop_event: asyncio.Event, store):
    """QueueDispatcher 실행"""
    from dispatcher.queue.main import QueueDispatcher
    from dispatcher.queue.model.queue import QueueDispatcherConfig

    queue_config = QueueDispatcherConfig(**config.get("queue_dispatcher", {}))
    queue_dispatcher = QueueDispatcher(queue_config, store)

    async def wait_stop():
        await stop_event.wait()
        await queue_dispatcher.stop()

    asyncio.create_task(wait_stop())
    await queue_dispatcher.start()


async def main(modules: list[str], config_path: Path | None = None):
    """메인 함수"""
    config = load_config(config_path)

    # 로깅 설정
    logging_config = LoggingConfig(**config.get("logging", {}))
    setup_logging(logging_config.level, logging_config.json_format, logging_config.log_file)

    # 공유 스토어 / 스케줄러
    store = MemoryJobStore()
    scheduler = MemoryRecurringScheduler()

    if "dispatcher" in modules:
        registered = register_recurring_jobs(config, scheduler)
        logger.info(f"Registered {len(registered)} recurring jobs: {registered}")

    # 종료 이벤트
    stop_event = asyncio.Event()

    # 시그널 핸들러
    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        stop_event.set()

    # Windows는 add_signal_handler를 지원하지 않음
    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler)

    # 태스크 생성
    tasks = []
    if "dispatcher" in modules:
        tasks.append(asyncio.create_task(run_dispatcher(config, stop_event, scheduler, store)))
        logger.info("Dispatcher started")
    if "worker" in modules:
        tasks.append(asyncio.create_task(run_worker(config, stop_event, store)))
        logger.info("Worker started")
    if "queue_dispatcher" in modules:
        tasks.append(asyncio.create_task(run_queue_dispatcher(config, stop_event, store)))
        logger.info("QueueDispatcher started")

    try:
        await asyncio.gather(*tasks)
    except asyncio.CancelledError:
        logger.info("Tasks cancelled")
    finally:
        logger.info("All modules stopped")


def default_modules(config: dict) -> list[str]:
    """인자가 없을 때 실행할 모듈"""
    modules = ["dispatcher", "worker"]
    if config.get("queue_dispatcher", {}).get("enabled"):
        modules.append("queue_dispatcher")
    return modules


def parse_modules(args: list[str]) -> list[str] | None:
    """명령행 인자에서 실행할 모듈 추출 (잘못된 인자만 있으면 None)"""
    if not args:
        return default_modules(load_config())
    modules = [m for m in args if m in VALID_MODULES]
    return modules or None


if __name__ == "__main__":
    modules = parse_modules(sys.argv[1:])
    if modules is None:
        print(f"Usage: python main.py [{'] ['.join(VALID_MODULES)}]")
        sys.exit(1)

    print(f"Starting dynjobs: {', '.join(modules)}")
    try:
        asyncio.run(main(modules))
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
