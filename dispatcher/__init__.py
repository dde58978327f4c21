"""Dispatcher 모듈 - 크론/큐 기반 Dynamic Job 등록"""

# Cron Dispatcher
from dispatcher.main import Dispatcher
from dispatcher.model.dispatcher import DispatcherConfig
from dispatcher.exception import (
    CronParseError,
    CronIntervalTooShortError,
    EnqueueError,
)

# Queue Dispatcher
from dispatcher.queue.main import QueueDispatcher
from dispatcher.queue.model.queue import QueueDispatcherConfig, QueueMessage

__all__ = [
    # Cron
    "Dispatcher",
    "DispatcherConfig",
    "CronParseError",
    "CronIntervalTooShortError",
    "EnqueueError",
    # Queue
    "QueueDispatcher",
    "QueueDispatcherConfig",
    "QueueMessage",
]
