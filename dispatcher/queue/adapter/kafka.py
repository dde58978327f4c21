"""Kafka Queue Adapter"""
import logging
from typing import AsyncIterator

from dispatcher.queue.adapter.base import BaseQueueAdapter
from dispatcher.queue.model.queue import QueueDispatcherConfig, QueueMessage

logger = logging.getLogger(__name__)


def decode_value(value: bytes | None) -> str:
    """
    Kafka 메시지 값 -> envelope JSON 문자열

    UTF-8로 읽을 수 없는 바이트는 치환 문자로 바꿉니다.
    이런 payload는 envelope 파싱 단계에서 거부되어 abandon 됩니다.
    """
    if value is None:
        return ""
    return value.decode("utf-8", errors="replace")


class KafkaAdapter(BaseQueueAdapter):
    """
    Kafka 큐 어댑터

    메시지 값은 DynamicJobEnvelope.to_json()으로 만든 UTF-8 JSON이며,
    메시지 키가 있으면 QueueMessage.key로 전달합니다 (로그 추적용).
    오프셋은 메시지 단위로 커밋합니다.
    """

    def __init__(self, config: QueueDispatcherConfig):
        self._config = config
        self._consumer = None

    async def connect(self) -> None:
        """Kafka consumer 연결"""
        try:
            from aiokafka import AIOKafkaConsumer
        except ImportError:
            raise ImportError(
                "aiokafka is required for the queue dispatcher. "
                "Install it with: pip install dynjobs[kafka]"
            )

        self._consumer = AIOKafkaConsumer(
            self._config.kafka_topic,
            bootstrap_servers=self._config.kafka_bootstrap_servers,
            group_id=self._config.kafka_group_id,
            auto_offset_reset=self._config.kafka_auto_offset_reset,
            enable_auto_commit=False,
            max_poll_records=self._config.kafka_max_poll_records,
        )
        await self._consumer.start()
        logger.info(
            f"Kafka consumer connected: topic={self._config.kafka_topic}, "
            f"group_id={self._config.kafka_group_id}"
        )

    async def disconnect(self) -> None:
        if self._consumer:
            consumer, self._consumer = self._consumer, None
            await consumer.stop()
            logger.info("Kafka consumer disconnected")

    async def receive(self) -> AsyncIterator[QueueMessage]:
        if not self._consumer:
            raise RuntimeError("Kafka consumer not connected")

        async for record in self._consumer:
            key = record.key.decode("utf-8", errors="replace") if record.key else None
            logger.debug(
                f"Received envelope: key={key}, partition={record.partition}, offset={record.offset}"
            )
            yield QueueMessage(payload=decode_value(record.value), key=key, raw_message=record)

    async def complete(self, message: QueueMessage) -> None:
        """메시지 처리 완료 (해당 오프셋 커밋)"""
        await self._commit(message)

    async def abandon(self, message: QueueMessage) -> None:
        """
        메시지 처리 실패

        손상된 envelope은 재시도해도 성공하지 않으므로 경고만 남기고 커밋합니다.
        """
        record = message.raw_message
        logger.warning(
            f"Envelope abandoned: key={message.key}, "
            f"offset={record.offset if record is not None else 'N/A'}"
        )
        await self._commit(message)

    async def _commit(self, message: QueueMessage) -> None:
        record = message.raw_message
        if not self._consumer or record is None:
            return

        from aiokafka import TopicPartition

        partition = TopicPartition(record.topic, record.partition)
        await self._consumer.commit({partition: record.offset + 1})
        logger.debug(f"Offset committed: partition={record.partition}, offset={record.offset + 1}")
