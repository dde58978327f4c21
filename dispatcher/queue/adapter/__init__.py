"""
QueueDispatcher 어댑터

BaseQueueAdapter를 구현하면 Kafka 이외의 큐에서도 envelope을 받을 수 있습니다.
"""
from dispatcher.queue.adapter.base import BaseQueueAdapter
from dispatcher.queue.adapter.kafka import KafkaAdapter, decode_value

__all__ = ["BaseQueueAdapter", "KafkaAdapter", "decode_value"]
