"""
WorkerPool: Dynamic Job 실행 워커풀 모듈

잡 스토어에서 설정된 큐의 PENDING 잡을 가져와 DeferredExecutor로 실행합니다.

실행 방법:
    python main.py worker
"""

import asyncio
import logging
from dataclasses import dataclass, field

from dynamic.cancellation import CancellationToken
from dynamic.exception import JobCancelledError
from dynamic.model.envelope import DEFAULT_QUEUE
from storage.memory import MemoryJobStore
from worker.executor import DeferredExecutor
from worker.model.executor import ExecutionOutcome, FetchedJob

logger = logging.getLogger(__name__)


@dataclass
class WorkerConfig:
    """워커풀 설정"""
    queues: list[str] = field(default_factory=lambda: [DEFAULT_QUEUE])  # 처리할 큐 이름
    pool_size: int = 5
    poll_interval_seconds: float = 5
    claim_batch_size: int = 10
    shutdown_timeout_seconds: float = 30
    resolver: str = "import"  # import: 모듈 import로 조회, registry: worker.job.registry에 등록된 타입만


class WorkerPool:
    """
    잡 실행 워커풀

    PENDING 상태의 잡을 폴링하여 워커에 할당하고 실행합니다.
    잡마다 CancellationToken을 하나씩 발급하며, 종료 타임아웃 시 토큰을 먼저 취소합니다.
    """

    def __init__(self, config: WorkerConfig, store: MemoryJobStore, executor: DeferredExecutor | None = None):
        self._config = config
        self._store = store
        self._executor = executor or DeferredExecutor()
        self._running = False
        self._stop_event: asyncio.Event | None = None
        self._running_tasks: set[asyncio.Task] = set()
        self._tokens: dict[str, CancellationToken] = {}
        self._semaphore: asyncio.Semaphore | None = None

    async def start(self) -> None:
        """워커풀 메인 루프 시작"""
        if self._running:
            logger.warning("WorkerPool is already running")
            return

        self._running = True
        self._stop_event = asyncio.Event()
        self._semaphore = asyncio.Semaphore(self._config.pool_size)

        logger.info(
            f"WorkerPool started (queues={self._config.queues}, pool_size={self._config.pool_size}, "
            f"poll_interval={self._config.poll_interval_seconds}s)"
        )

        try:
            await self._main_loop()
        except asyncio.CancelledError:
            logger.info("WorkerPool cancelled")
        except Exception as e:
            logger.error(f"WorkerPool error: {e}", exc_info=True)
            raise
        finally:
            await self._wait_running_tasks()
            self._running = False
            logger.info("WorkerPool stopped")

    async def stop(self) -> None:
        """WorkerPool graceful shutdown"""
        if not self._running:
            return

        logger.info("Stopping WorkerPool...")
        self._running = False
        if self._stop_event:
            self._stop_event.set()

    async def _main_loop(self) -> None:
        """메인 폴링 루프"""
        while self._running:
            try:
                await self._poll_and_assign()
            except Exception as e:
                logger.error(f"Error in poll_and_assign: {e}", exc_info=True)

            # 다음 폴링까지 대기 (stop 시 즉시 종료)
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=self._config.poll_interval_seconds
                )
                break  # stop_event가 set되면 루프 종료
            except asyncio.TimeoutError:
                pass  # 타임아웃이면 계속 폴링

    async def _poll_and_assign(self) -> None:
        """PENDING 잡 조회 후 워커에 할당"""
        # 가용 워커 수만큼만 가져오기
        available_workers = self._config.pool_size - len(self._running_tasks)
        if available_workers <= 0:
            logger.debug("No available workers, skipping poll")
            return

        batch_size = min(available_workers, self._config.claim_batch_size)
        jobs = self._store.claim(self._config.queues, batch_size)

        if not jobs:
            logger.debug("No pending jobs found")
            return

        logger.debug(f"Claimed {len(jobs)} pending jobs")

        for job in jobs:
            # 세마포어로 동시 실행 수 제한
            await self._semaphore.acquire()
            task = asyncio.create_task(self._execute_job(job))
            self._running_tasks.add(task)
            task.add_done_callback(self._on_task_done)

    async def _execute_job(self, job: FetchedJob) -> None:
        """잡 실행 (워커 태스크)"""
        token = CancellationToken()
        self._tokens[job.job_id] = token
        logger.info(f"Job execution started: id={job.job_id}, queue={job.queue}")
        try:
            outcome = await self._executor.execute_payload(job.payload, token)
            self._store.complete(job.job_id, outcome)
        except JobCancelledError:
            logger.warning(f"Job execution cancelled, requeueing: id={job.job_id}")
            self._store.requeue(job.job_id)
        except asyncio.CancelledError:
            logger.warning(f"Job task cancelled, requeueing: id={job.job_id}")
            self._store.requeue(job.job_id)
            raise
        except Exception as e:
            logger.error(f"Unexpected error executing job {job.job_id}: {e}", exc_info=True)
            self._fail_job(job.job_id, e)
        finally:
            self._tokens.pop(job.job_id, None)
            self._semaphore.release()

    def _fail_job(self, job_id: str, error: Exception) -> None:
        """실행 중 예외가 난 잡을 FAILED로 기록 (RUNNING에 남지 않도록)"""
        try:
            self._store.complete(job_id, ExecutionOutcome(succeeded=False, error=error))
        except Exception as e:
            logger.error(f"Cannot mark job {job_id} as failed: {e}", exc_info=True)

    def _on_task_done(self, task: asyncio.Task) -> None:
        """태스크 완료 콜백"""
        self._running_tasks.discard(task)
        if not task.cancelled() and task.exception():
            logger.error(f"Task exception: {task.exception()}")

    async def _wait_running_tasks(self) -> None:
        """실행 중인 태스크 완료 대기 (graceful shutdown)"""
        if not self._running_tasks:
            return

        logger.info(f"Waiting for {len(self._running_tasks)} running tasks...")

        tasks = list(self._running_tasks)
        try:
            await asyncio.wait_for(
                asyncio.shield(asyncio.gather(*tasks, return_exceptions=True)),
                timeout=self._config.shutdown_timeout_seconds
            )
            logger.info("All tasks completed")
        except asyncio.TimeoutError:
            logger.warning(
                f"Shutdown timeout ({self._config.shutdown_timeout_seconds}s), "
                f"{len(self._running_tasks)} tasks still running"
            )
            # 토큰 취소 후 강제 취소
            for token in list(self._tokens.values()):
                token.cancel()
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    @property
    def is_running(self) -> bool:
        """실행 중 여부"""
        return self._running

    @property
    def running_task_count(self) -> int:
        """실행 중인 태스크 수"""
        return len(self._running_tasks)


def _load_jobs() -> None:
    """잡 모듈 로드 (데코레이터 등록을 위해, 하위 폴더 재귀 탐색)"""
    import importlib
    import pkgutil
    from worker import job as job_pkg

    def load_recursive(package, prefix: str):
        for _, module_name, is_pkg in pkgutil.iter_modules(package.__path__):
            full_name = f"{prefix}.{module_name}"
            module = importlib.import_module(full_name)
            logger.debug(f"Loaded job module: {full_name}")
            if is_pkg:
                load_recursive(module, full_name)

    load_recursive(job_pkg, "worker.job")


def create_executor(config: WorkerConfig) -> DeferredExecutor:
    """설정에 맞는 resolver로 DeferredExecutor 생성"""
    if config.resolver == "registry":
        from worker.job import registry
        _load_jobs()
        return DeferredExecutor(resolver=registry)
    if config.resolver != "import":
        raise ValueError(f"Unknown resolver: {config.resolver}")
    _load_jobs()
    return DeferredExecutor()
