"""Queue Dispatcher 관련 모델"""
from dataclasses import dataclass
from typing import Any


@dataclass
class QueueDispatcherConfig:
    """QueueDispatcher 설정"""
    enabled: bool = False

    # Kafka 설정
    kafka_bootstrap_servers: str = "localhost:9092"
    kafka_group_id: str = "dynjobs-queue-dispatcher"
    kafka_topic: str = "dynjobs-envelopes"
    kafka_auto_offset_reset: str = "earliest"
    kafka_max_poll_records: int = 10


@dataclass
class QueueMessage:
    """큐에서 수신한 메시지"""
    payload: str  # 직렬화된 Dynamic Job envelope (JSON)
    key: str | None = None  # 메시지 키 (Kafka)

    # 원본 메시지 (ack/nack용)
    raw_message: Any = None
