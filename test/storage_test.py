"""
MemoryJobStore / MemoryRecurringScheduler 테스트

테스트 항목:
1. enqueue -> claim -> complete 상태 전이
2. 큐별 claim, 등록 순서, limit
3. requeue
4. 반복 스케줄 upsert/remove, 예정 시각 단위 중복 방지

실행: python -m pytest test/storage_test.py -v
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# 프로젝트 루트 경로 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from dispatcher.exception import CronParseError
from dynamic.envelope import create_dynamic_job
from dynamic.invocation import MethodCall
from dynamic.model.recurring import RecurringJobOptions
from storage.exception import InvalidJobStateError, JobNotFoundError
from storage.memory import JobState, MemoryJobStore, MemoryRecurringScheduler
from worker.job.newsletter import NewsletterJob
from worker.job.sample import SampleJob
from worker.model.executor import ExecutionOutcome


@pytest.fixture
def store():
    return MemoryJobStore()


@pytest.fixture
def digest_envelope():
    return create_dynamic_job(MethodCall.of(NewsletterJob.send_digest))


class TestMemoryJobStore:
    """잡 스토어"""

    def test_claim_by_queue(self, store, digest_envelope):
        newsletter_id = store.enqueue(digest_envelope)
        default_id = store.enqueue(create_dynamic_job(MethodCall.of(SampleJob.echo, "hi")))

        claimed = store.claim(["newsletter"], limit=10)

        assert [job.job_id for job in claimed] == [newsletter_id]
        assert store.get(newsletter_id).state is JobState.RUNNING
        assert store.get(newsletter_id).attempts == 1
        assert store.get(default_id).state is JobState.PENDING

    def test_claim_order_and_limit(self, store, digest_envelope):
        ids = [store.enqueue(digest_envelope) for _ in range(3)]

        assert [job.job_id for job in store.claim(["newsletter"], limit=2)] == ids[:2]
        assert [job.job_id for job in store.claim(["newsletter"], limit=2)] == ids[2:]
        assert store.claim(["newsletter"], limit=2) == []

    def test_complete(self, store, digest_envelope):
        success_id = store.enqueue(digest_envelope)
        failed_id = store.enqueue(digest_envelope)
        store.claim(["newsletter"], limit=2)

        store.complete(success_id, ExecutionOutcome(succeeded=True, result=1))
        store.complete(failed_id, ExecutionOutcome(succeeded=False, error=RuntimeError("boom")))

        assert store.get(success_id).state is JobState.SUCCESS
        assert store.get(success_id).result == 1
        assert store.get(failed_id).state is JobState.FAILED
        assert store.get(failed_id).error_message == "boom"
        assert len(store.jobs(JobState.SUCCESS)) == 1

    def test_complete_requires_running(self, store, digest_envelope):
        job_id = store.enqueue(digest_envelope)
        with pytest.raises(InvalidJobStateError):
            store.complete(job_id, ExecutionOutcome(succeeded=True))

    def test_requeue(self, store, digest_envelope):
        job_id = store.enqueue(digest_envelope)
        store.claim(["newsletter"], limit=1)
        store.requeue(job_id)

        assert store.get(job_id).state is JobState.PENDING
        assert store.claim(["newsletter"], limit=1)[0].job_id == job_id
        assert store.get(job_id).attempts == 2

    def test_unknown_job(self, store):
        with pytest.raises(JobNotFoundError):
            store.get("missing")


class TestMemoryRecurringScheduler:
    """반복 스케줄러"""

    def test_upsert_and_remove(self, digest_envelope):
        scheduler = MemoryRecurringScheduler()
        scheduler.upsert("daily-digest", "0 6 * * *", digest_envelope, RecurringJobOptions())
        scheduler.upsert("daily-digest", "0 7 * * *", digest_envelope, RecurringJobOptions())

        assert len(scheduler.entries()) == 1
        assert scheduler.get("daily-digest").cron_expression == "0 7 * * *"

        scheduler.remove("daily-digest")
        assert scheduler.get("daily-digest") is None
        scheduler.remove("daily-digest")  # 없는 ID 삭제는 무시

    def test_invalid_cron(self, digest_envelope):
        with pytest.raises(CronParseError):
            MemoryRecurringScheduler().upsert("bad", "61 * * * *", digest_envelope, RecurringJobOptions())

    def test_try_trigger_once_per_scheduled_time(self, digest_envelope):
        scheduler = MemoryRecurringScheduler()
        scheduler.upsert("daily-digest", "0 6 * * *", digest_envelope, RecurringJobOptions())
        scheduled = datetime(2024, 1, 15, 6, 0, tzinfo=timezone.utc)

        assert scheduler.try_trigger("daily-digest", scheduled) is True
        assert scheduler.try_trigger("daily-digest", scheduled) is False
        assert scheduler.try_trigger("daily-digest", scheduled + timedelta(days=1)) is True
        assert scheduler.try_trigger("missing", scheduled) is False
