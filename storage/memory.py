"""
메모리 기반 잡 스토어 / 반복 스케줄러

단일 프로세스 실행 및 테스트용 구현입니다.
모든 상태는 threading.Lock으로 보호되며, upsert 이후의 조회는 항상 교체된 값을 봅니다.

잡 상태 전이:
    PENDING -> RUNNING -> SUCCESS | FAILED
    RUNNING -> PENDING (requeue, 취소된 경우)
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable

from croniter import croniter

from dispatcher.exception import CronParseError
from dynamic.interfaces import BaseJobStore, BaseScheduleStore
from dynamic.model.envelope import DynamicJobEnvelope
from dynamic.model.recurring import RecurringJobOptions, RecurringScheduleEntry
from storage.exception import InvalidJobStateError, JobNotFoundError
from worker.model.executor import ExecutionOutcome, FetchedJob

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    """잡 실행 상태"""
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


@dataclass
class StoredJob:
    """스토어에 저장된 잡"""
    job_id: str
    queue: str
    payload: str
    state: JobState = JobState.PENDING
    attempts: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: datetime | None = None
    finished_at: datetime | None = None
    result: Any = None
    error_message: str | None = None


class MemoryJobStore(BaseJobStore):
    """메모리 잡 스토어 (큐별 FIFO)"""

    def __init__(self):
        self._jobs: dict[str, StoredJob] = {}
        self._lock = threading.Lock()

    def enqueue(self, envelope: DynamicJobEnvelope) -> str:
        job_id = uuid.uuid4().hex
        job = StoredJob(job_id=job_id, queue=envelope.queue, payload=envelope.to_json())
        with self._lock:
            self._jobs[job_id] = job
        logger.debug(f"Job stored: id={job_id}, queue={job.queue}")
        return job_id

    def claim(self, queues: Iterable[str], limit: int) -> list[FetchedJob]:
        """
        PENDING 잡을 RUNNING으로 전환하며 가져오기 (등록 순서)

        Args:
            queues: 가져올 큐 이름 목록
            limit: 최대 개수
        """
        queues = set(queues)
        claimed = []
        with self._lock:
            for job in self._jobs.values():
                if len(claimed) >= limit:
                    break
                if job.state is not JobState.PENDING or job.queue not in queues:
                    continue
                job.state = JobState.RUNNING
                job.attempts += 1
                job.started_at = datetime.now(timezone.utc)
                claimed.append(FetchedJob(job_id=job.job_id, queue=job.queue, payload=job.payload))
        return claimed

    def complete(self, job_id: str, outcome: ExecutionOutcome) -> None:
        """실행 결과 반영 (RUNNING -> SUCCESS | FAILED)"""
        with self._lock:
            job = self._get_running(job_id)
            job.finished_at = datetime.now(timezone.utc)
            if outcome.succeeded:
                job.state = JobState.SUCCESS
                job.result = outcome.result
            else:
                job.state = JobState.FAILED
                job.error_message = str(outcome.error) if outcome.error else None
        logger.debug(f"Job completed: id={job_id}, state={job.state.value}")

    def requeue(self, job_id: str) -> None:
        """RUNNING 잡을 다시 PENDING으로 (워커 종료 등으로 취소된 경우)"""
        with self._lock:
            job = self._get_running(job_id)
            job.state = JobState.PENDING
            job.started_at = None
        logger.debug(f"Job requeued: id={job_id}")

    def get(self, job_id: str) -> StoredJob:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            return job

    def jobs(self, state: JobState | None = None) -> list[StoredJob]:
        """저장된 잡 목록 (state 지정 시 필터)"""
        with self._lock:
            return [job for job in self._jobs.values() if state is None or job.state is state]

    def _get_running(self, job_id: str) -> StoredJob:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        if job.state is not JobState.RUNNING:
            raise InvalidJobStateError(job_id, job.state.value, JobState.RUNNING.value)
        return job


class MemoryRecurringScheduler(BaseScheduleStore):
    """
    메모리 반복 스케줄러

    크론 표현식 검증은 croniter를 사용하며, 실행 시점 판단은 Dispatcher가 담당합니다.
    """

    def __init__(self):
        self._entries: dict[str, RecurringScheduleEntry] = {}
        self._triggered: dict[str, datetime] = {}  # id -> 마지막으로 등록한 예정 시각
        self._lock = threading.Lock()

    def upsert(
        self,
        recurring_job_id: str,
        cron_expression: str,
        envelope: DynamicJobEnvelope,
        options: RecurringJobOptions,
    ) -> None:
        """
        Raises:
            CronParseError: 크론 표현식이 올바르지 않은 경우
        """
        if not croniter.is_valid(cron_expression):
            raise CronParseError(cron_expression)

        entry = RecurringScheduleEntry(
            id=recurring_job_id,
            cron_expression=cron_expression,
            envelope=envelope,
            options=options,
        )
        with self._lock:
            replaced = recurring_job_id in self._entries
            self._entries[recurring_job_id] = entry

        logger.debug(
            f"Recurring entry {'replaced' if replaced else 'created'}: "
            f"id={recurring_job_id}, cron={cron_expression}"
        )

    def remove(self, recurring_job_id: str) -> None:
        with self._lock:
            removed = self._entries.pop(recurring_job_id, None)
            self._triggered.pop(recurring_job_id, None)
        if removed is not None:
            logger.debug(f"Recurring entry removed: id={recurring_job_id}")

    def get(self, recurring_job_id: str) -> RecurringScheduleEntry | None:
        with self._lock:
            return self._entries.get(recurring_job_id)

    def entries(self) -> list[RecurringScheduleEntry]:
        with self._lock:
            return list(self._entries.values())

    def try_trigger(self, recurring_job_id: str, scheduled_time: datetime) -> bool:
        """
        예정 시각 단위 중복 방지

        Returns:
            True: 이 예정 시각으로 처음 트리거됨
            False: 이미 트리거되었거나 항목이 삭제됨
        """
        with self._lock:
            if recurring_job_id not in self._entries:
                return False
            last = self._triggered.get(recurring_job_id)
            if last is not None and last >= scheduled_time:
                return False
            self._triggered[recurring_job_id] = scheduled_time
            return True
