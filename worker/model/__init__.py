"""Worker 모델"""
from worker.model.executor import ExecutionContext, ExecutionOutcome, FetchedJob

__all__ = ["ExecutionContext", "ExecutionOutcome", "FetchedJob"]
