"""
RecurringJobRegistrar 테스트

테스트 항목:
1. daily-digest 등록: cron "0 6 * * *", newsletter 큐, descriptor 확인
2. 같은 ID로 "0 7 * * *" 재등록 시 교체 (항목은 1개)
3. queue 오버로드와 DynamicRecurringJobOptions.policies
4. 같은 입력으로 두 번 upsert해도 결과 동일 (idempotent)
5. 잘못된 입력 거부, 잘못된 크론은 스케줄러가 거부

실행: python -m pytest test/recurring_test.py -v
"""

import sys
from pathlib import Path

import pytest

# 프로젝트 루트 경로 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from dispatcher.exception import CronParseError
from dynamic.envelope import create_dynamic_job
from dynamic.exception import EncodingError, InvalidArgumentError
from dynamic.interfaces import BaseRecurringScheduler
from dynamic.invocation import MethodCall
from dynamic.model.policy import QueuePolicy, TimeoutPolicy
from dynamic.model.recurring import DynamicRecurringJobOptions, RecurringJobOptions
from dynamic.recurring import RecurringJobRegistrar, add_or_update_dynamic
from storage.memory import MemoryRecurringScheduler
from worker.job.newsletter import NewsletterJob
from worker.job.sample import SampleJob


class RecordingScheduler(BaseRecurringScheduler):
    """upsert 호출 기록용 스케줄러"""

    def __init__(self):
        self.calls = []

    def upsert(self, recurring_job_id, cron_expression, envelope, options):
        self.calls.append((recurring_job_id, cron_expression, envelope, options))

    def remove(self, recurring_job_id):
        pass


@pytest.fixture
def scheduler():
    return MemoryRecurringScheduler()


class TestDailyDigest:
    """daily-digest 시나리오"""

    def test_register_daily_digest(self, scheduler):
        add_or_update_dynamic(scheduler, "daily-digest", MethodCall.of(NewsletterJob.send_digest), "0 6 * * *")

        entry = scheduler.get("daily-digest")
        assert entry.cron_expression == "0 6 * * *"
        assert entry.envelope.descriptor.target_type_name == "worker.job.newsletter:NewsletterJob"
        assert entry.envelope.descriptor.method_name == "send_digest"
        assert entry.envelope.descriptor.parameter_type_signature == ()
        assert entry.envelope.queue == "newsletter"
        assert entry.envelope.display_name_hint == "Daily digest"

    def test_reregister_replaces(self, scheduler):
        """같은 ID로 다시 등록하면 교체"""
        registrar = RecurringJobRegistrar(scheduler)
        registrar.add_or_update("daily-digest", MethodCall.of(NewsletterJob.send_digest), "0 6 * * *")
        registrar.add_or_update("daily-digest", MethodCall.of(NewsletterJob.send_digest), "0 7 * * *")

        entries = scheduler.entries()
        assert len(entries) == 1
        assert entries[0].cron_expression == "0 7 * * *"

    def test_upsert_idempotent(self, scheduler):
        """같은 입력이면 두 번 등록해도 같은 상태"""
        registrar = RecurringJobRegistrar(scheduler)
        registrar.add_or_update("daily-digest", MethodCall.of(NewsletterJob.send_digest), "0 6 * * *")
        first = scheduler.entries()
        registrar.add_or_update("daily-digest", MethodCall.of(NewsletterJob.send_digest), "0 6 * * *")
        assert scheduler.entries() == first


class TestRegistrarOptions:
    """옵션 / 큐 오버로드"""

    def test_queue_overload_first(self):
        manager = RecordingScheduler()
        envelope = add_or_update_dynamic(
            manager, "digest-eu", MethodCall.of(NewsletterJob.send_digest), "0 6 * * *", queue="newsletter_eu"
        )

        assert envelope.policies[0] == QueuePolicy(queue="newsletter_eu")
        assert envelope.queue == "newsletter_eu"
        assert manager.calls[0][3] == RecurringJobOptions()

    def test_dynamic_options_policies(self):
        manager = RecordingScheduler()
        options = DynamicRecurringJobOptions(time_zone="Asia/Seoul", policies=(TimeoutPolicy(seconds=60),))
        RecurringJobRegistrar(manager).add_or_update(
            "digest", MethodCall.of(NewsletterJob.send_digest), "0 6 * * *", options
        )

        _, cron, envelope, passed_options = manager.calls[0]
        assert envelope.policies == (TimeoutPolicy(seconds=60), QueuePolicy(queue="newsletter"))
        assert passed_options.time_zone == "Asia/Seoul"

    def test_prebuilt_envelope(self):
        manager = RecordingScheduler()
        envelope = create_dynamic_job(MethodCall.of(SampleJob.echo, "hi"))
        RecurringJobRegistrar(manager).upsert("echo", envelope, "*/5 * * * *")
        assert manager.calls[0][2] is envelope

    def test_prebuilt_envelope_with_queue_rejected(self):
        envelope = create_dynamic_job(MethodCall.of(SampleJob.echo, "hi"))
        with pytest.raises(InvalidArgumentError):
            RecurringJobRegistrar(RecordingScheduler()).add_or_update("echo", envelope, "* * * * *", queue="q")

    def test_invalid_time_zone(self):
        with pytest.raises(ValueError):
            RecurringJobOptions(time_zone="Mars/Olympus")


class TestRegistrarValidation:
    """입력 검증"""

    @pytest.mark.parametrize("recurring_job_id,cron", [("", "0 6 * * *"), ("daily-digest", "")])
    def test_missing_inputs(self, recurring_job_id, cron):
        manager = RecordingScheduler()
        with pytest.raises(InvalidArgumentError):
            RecurringJobRegistrar(manager).add_or_update(
                recurring_job_id, MethodCall.of(NewsletterJob.send_digest), cron
            )
        assert manager.calls == []

    def test_missing_job(self):
        with pytest.raises(InvalidArgumentError):
            RecurringJobRegistrar(RecordingScheduler()).add_or_update("x", None, "0 6 * * *")

    def test_missing_manager(self):
        with pytest.raises(InvalidArgumentError):
            RecurringJobRegistrar(None)

    def test_encoding_error_registers_nothing(self):
        manager = RecordingScheduler()
        with pytest.raises(EncodingError):
            RecurringJobRegistrar(manager).add_or_update(
                "send", MethodCall.of(NewsletterJob.send, "a@b.com", "3"), "0 6 * * *"
            )
        assert manager.calls == []

    def test_invalid_cron_rejected_by_scheduler(self, scheduler):
        with pytest.raises(CronParseError):
            add_or_update_dynamic(scheduler, "bad", MethodCall.of(NewsletterJob.send_digest), "not a cron")
        assert scheduler.entries() == []
