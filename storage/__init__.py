"""Storage 모듈 - 잡 스토어 및 반복 스케줄러 (메모리 구현)"""
from storage.exception import InvalidJobStateError, JobNotFoundError, StorageError
from storage.memory import JobState, MemoryJobStore, MemoryRecurringScheduler, StoredJob

__all__ = [
    "JobState",
    "StoredJob",
    "MemoryJobStore",
    "MemoryRecurringScheduler",
    "StorageError",
    "JobNotFoundError",
    "InvalidJobStateError",
]
