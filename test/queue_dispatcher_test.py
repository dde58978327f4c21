"""
QueueDispatcher 테스트

테스트 항목:
1. 큐에서 받은 envelope을 잡 스토어에 등록하고 complete
2. 손상된 envelope은 등록하지 않고 abandon
3. 연결 실패 시 QueueConnectionError

실행: python -m pytest test/queue_dispatcher_test.py -v
"""

import sys
from pathlib import Path
from typing import AsyncIterator

import pytest

# 프로젝트 루트 경로 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from dispatcher.queue.adapter.base import BaseQueueAdapter
from dispatcher.queue.exception import MessageParseError, QueueConnectionError
from dispatcher.queue.main import QueueDispatcher
from dispatcher.queue.model.queue import QueueDispatcherConfig, QueueMessage
from dynamic.envelope import create_dynamic_job
from dynamic.invocation import MethodCall
from dynamic.model.envelope import DynamicJobEnvelope
from storage.memory import JobState, MemoryJobStore
from worker.job.newsletter import NewsletterJob


class FakeQueueAdapter(BaseQueueAdapter):
    """미리 넣어둔 메시지를 순서대로 내보내는 어댑터"""

    def __init__(self, messages: list[QueueMessage], fail_connect: bool = False):
        self.messages = messages
        self.fail_connect = fail_connect
        self.connected = False
        self.completed: list[QueueMessage] = []
        self.abandoned: list[QueueMessage] = []

    async def connect(self) -> None:
        if self.fail_connect:
            raise OSError("broker unavailable")
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False

    async def receive(self) -> AsyncIterator[QueueMessage]:
        for message in self.messages:
            yield message

    async def complete(self, message: QueueMessage) -> None:
        self.completed.append(message)

    async def abandon(self, message: QueueMessage) -> None:
        self.abandoned.append(message)


def _envelope_message() -> QueueMessage:
    envelope = create_dynamic_job(MethodCall.of(NewsletterJob.send, "a@b.com", 3))
    return QueueMessage(payload=envelope.to_json())


class TestQueueDispatcher:
    """QueueDispatcher"""

    @pytest.mark.asyncio
    async def test_enqueue_and_complete(self):
        store = MemoryJobStore()
        valid = _envelope_message()
        corrupted = QueueMessage(payload='{"descriptor": {"type": 1}}')
        adapter = FakeQueueAdapter([valid, corrupted])

        dispatcher = QueueDispatcher(QueueDispatcherConfig(enabled=True), store, adapter)
        await dispatcher.start()

        assert adapter.completed == [valid]
        assert adapter.abandoned == [corrupted]
        assert adapter.connected is False
        assert dispatcher.is_running is False

        jobs = store.jobs(JobState.PENDING)
        assert len(jobs) == 1
        assert jobs[0].queue == "newsletter"
        assert DynamicJobEnvelope.from_json(jobs[0].payload) == DynamicJobEnvelope.from_json(valid.payload)

    def test_process_message_corrupted(self):
        store = MemoryJobStore()
        dispatcher = QueueDispatcher(QueueDispatcherConfig(), store, FakeQueueAdapter([]))

        with pytest.raises(MessageParseError) as exc_info:
            dispatcher.process_message(QueueMessage(payload="not json"))

        assert exc_info.value.raw_data == "not json"
        assert store.jobs() == []

    def test_process_message_returns_job_id(self):
        store = MemoryJobStore()
        dispatcher = QueueDispatcher(QueueDispatcherConfig(), store, FakeQueueAdapter([]))

        job_id = dispatcher.process_message(_envelope_message())
        assert store.get(job_id).state is JobState.PENDING

    @pytest.mark.asyncio
    async def test_connection_error(self):
        adapter = FakeQueueAdapter([], fail_connect=True)
        dispatcher = QueueDispatcher(QueueDispatcherConfig(), MemoryJobStore(), adapter)

        with pytest.raises(QueueConnectionError):
            await dispatcher.start()
        assert dispatcher.is_running is False


class TestKafkaValueDecoding:
    """Kafka 메시지 값 디코딩"""

    def test_decode_value(self):
        from dispatcher.queue.adapter.kafka import decode_value

        payload = _envelope_message().payload
        assert decode_value(payload.encode("utf-8")) == payload
        assert decode_value(None) == ""

    def test_undecodable_bytes_are_abandoned(self):
        """UTF-8이 아닌 값은 파싱 단계에서 거부됨"""
        from dispatcher.queue.adapter.kafka import decode_value

        dispatcher = QueueDispatcher(QueueDispatcherConfig(), MemoryJobStore(), FakeQueueAdapter([]))
        with pytest.raises(MessageParseError):
            dispatcher.process_message(QueueMessage(payload=decode_value(b"\xff\xfe{")))
