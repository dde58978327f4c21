"""Queue Dispatcher 모델"""
from dispatcher.queue.model.queue import QueueDispatcherConfig, QueueMessage

__all__ = ["QueueDispatcherConfig", "QueueMessage"]
