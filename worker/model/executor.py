"""
Worker 모델 - Executor 관련 구조체
"""

from dataclasses import dataclass, field
from typing import Any

from dynamic.cancellation import CancellationToken
from dynamic.model.envelope import DynamicJobEnvelope
from dynamic.reflection import MethodInfo


@dataclass
class FetchedJob:
    """잡 스토어에서 가져온 실행 대상"""
    job_id: str
    queue: str
    payload: str  # 직렬화된 envelope (스토어에 저장된 그대로)


@dataclass
class ExecutionContext:
    """실행 시도 1회의 컨텍스트 (다른 실행과 공유하지 않음)"""
    envelope: DynamicJobEnvelope
    method: MethodInfo
    arguments: list[Any]
    display_name: str
    token: CancellationToken | None = None
    items: dict[str, Any] = field(default_factory=dict)  # 정책 간 값 전달용


@dataclass
class ExecutionOutcome:
    """실행 결과 (스토어에 전달, 이 계층에서는 저장하지 않음)"""
    succeeded: bool
    result: Any = None
    error: BaseException | None = None
