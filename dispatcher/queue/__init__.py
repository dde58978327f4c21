"""큐 기반 Dispatcher (외부 서비스가 보낸 envelope 등록)"""
from dispatcher.queue.exception import MessageParseError, QueueConnectionError, QueueDispatcherError
from dispatcher.queue.main import QueueDispatcher
from dispatcher.queue.model.queue import QueueDispatcherConfig, QueueMessage

__all__ = [
    "QueueDispatcher",
    "QueueDispatcherConfig",
    "QueueMessage",
    "QueueDispatcherError",
    "QueueConnectionError",
    "MessageParseError",
]
