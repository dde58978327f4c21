"""
Envelope 빌더 / DynamicJobClient 테스트

테스트 항목:
1. create_dynamic_job: descriptor + 집계된 정책 + 표시 이름 힌트
2. 큐 선택 (첫 번째 큐 정책, 없으면 default)
3. JSON 직렬화 왕복 및 손상된 payload 거부
4. 표시 이름 렌더링
5. 즉시 등록 (enqueue_dynamic, queue 오버로드)

실행: python -m pytest test/envelope_test.py -v
"""

import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

# 프로젝트 루트 경로 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from dynamic.client import DynamicJobClient, enqueue_dynamic
from dynamic.envelope import build_envelope, create_dynamic_job, format_display_name
from dynamic.exception import EncodingError, InvalidArgumentError
from dynamic.invocation import MethodCall, build_descriptor
from dynamic.model.envelope import DEFAULT_QUEUE, DynamicJobEnvelope, InvocationDescriptor
from dynamic.model.policy import QueuePolicy, TimeoutPolicy
from storage.memory import JobState, MemoryJobStore
from worker.job.newsletter import NewsletterJob
from worker.job.sample import SampleJob


class TestCreateDynamicJob:
    """create_dynamic_job"""

    def test_envelope_contents(self):
        envelope = create_dynamic_job(MethodCall.of(NewsletterJob.send_digest))

        assert envelope.descriptor.target == "worker.job.newsletter:NewsletterJob.send_digest"
        assert envelope.policies == (QueuePolicy(queue="newsletter"),)
        assert envelope.display_name_hint == "Daily digest"
        assert envelope.queue == "newsletter"

    def test_caller_policies_first(self):
        envelope = create_dynamic_job(
            MethodCall.of(NewsletterJob.send, "a@b.com", 3),
            [QueuePolicy(queue="urgent"), TimeoutPolicy(seconds=10)],
        )
        assert envelope.policies[0] == QueuePolicy(queue="urgent")
        assert envelope.queue == "urgent"

    def test_default_queue(self):
        envelope = create_dynamic_job(MethodCall.of(SampleJob.echo, "hi"))
        assert envelope.policies == ()
        assert envelope.queue == DEFAULT_QUEUE

    def test_encoding_error_creates_nothing(self):
        with pytest.raises(EncodingError):
            create_dynamic_job(MethodCall.of(NewsletterJob.send, "a@b.com", "3"))


class TestEnvelopeSerialization:
    """envelope JSON 직렬화"""

    def test_json_round_trip(self):
        envelope = create_dynamic_job(
            MethodCall.of(NewsletterJob.send, "a@b.com", 3),
            [TimeoutPolicy(seconds=2.5)],
        )
        restored = DynamicJobEnvelope.from_json(envelope.to_json())

        assert restored == envelope
        assert isinstance(restored.policies[0], TimeoutPolicy)
        assert isinstance(restored.policies[1], QueuePolicy)

    def test_corrupted_payload_rejected(self):
        with pytest.raises(ValidationError):
            DynamicJobEnvelope.from_json('{"descriptor": {"method_name": "send"}}')

    def test_descriptor_length_mismatch_rejected(self):
        descriptor = build_descriptor(MethodCall.of(NewsletterJob.send, "a@b.com", 3))
        data = descriptor.model_dump()
        data["parameter_type_signature"] = ("str",)
        with pytest.raises(ValidationError):
            InvocationDescriptor(**data)

    def test_unknown_policy_kind_rejected(self):
        envelope = build_envelope(build_descriptor(MethodCall.of(SampleJob.echo, "hi")))
        payload = envelope.to_json().replace('"policies":[]', '"policies":[{"kind":"retry"}]')
        with pytest.raises(ValidationError):
            DynamicJobEnvelope.from_json(payload)


class TestDisplayName:
    """표시 이름 렌더링"""

    def test_default_display_name(self):
        envelope = create_dynamic_job(MethodCall.of(SampleJob.echo, "hi"))
        assert format_display_name(envelope) == "SampleJob.echo"

    def test_template_with_arguments(self):
        envelope = create_dynamic_job(MethodCall.of(NewsletterJob.send, "a@b.com", 3))
        assert format_display_name(envelope, ["a@b.com", 3]) == "Send newsletter to a@b.com"

    def test_template_without_arguments_falls_back(self):
        envelope = create_dynamic_job(MethodCall.of(NewsletterJob.send, "a@b.com", 3))
        assert format_display_name(envelope) == "Send newsletter to {0}"

    def test_template_mismatch_falls_back(self):
        """템플릿이 인자와 맞지 않으면 원래 템플릿 사용"""
        envelope = create_dynamic_job(MethodCall.of(SampleJob.greet, "a@b.com"))
        assert format_display_name(envelope, ["a@b.com"]) == "Greeting for {0.domain}"


class TestDynamicJobClient:
    """즉시 등록"""

    def test_enqueue_stores_envelope(self):
        store = MemoryJobStore()
        job_id = enqueue_dynamic(store, MethodCall.of(NewsletterJob.send, "a@b.com", 3))

        stored = store.get(job_id)
        assert stored.state is JobState.PENDING
        assert stored.queue == "newsletter"
        assert DynamicJobEnvelope.from_json(stored.payload).descriptor.method_name == "send"

    def test_queue_overload(self):
        store = MemoryJobStore()
        job_id = DynamicJobClient(store).enqueue(MethodCall.of(SampleJob.echo, "hi"), queue="critical")
        assert store.get(job_id).queue == "critical"

    def test_prebuilt_envelope(self):
        store = MemoryJobStore()
        envelope = create_dynamic_job(MethodCall.of(SampleJob.echo, "hi"))
        job_id = DynamicJobClient(store).enqueue(envelope)
        assert store.get(job_id).payload == envelope.to_json()

    @pytest.mark.parametrize("overrides", [
        {"queue": "urgent"},
        {"policies": [QueuePolicy(queue="critical")]},
        {"policies": [QueuePolicy(queue="critical")], "queue": "urgent"},
    ])
    def test_prebuilt_envelope_rejects_overrides(self, overrides):
        """미리 만든 envelope에 정책/큐를 덧붙이면 무시하지 않고 거부"""
        store = MemoryJobStore()
        envelope = create_dynamic_job(MethodCall.of(SampleJob.echo, "hi"))

        with pytest.raises(InvalidArgumentError):
            DynamicJobClient(store).enqueue(envelope, **overrides)
        assert store.jobs() == []

    def test_missing_store_rejected(self):
        with pytest.raises(InvalidArgumentError):
            DynamicJobClient(None)
