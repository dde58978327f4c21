"""
외부 협력 컴포넌트 인터페이스

잡 스토어, 반복 스케줄러, 타입 resolver, 정책 마커 resolver는
이 인터페이스를 통해서만 사용됩니다.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Sequence

from dynamic.model.envelope import DynamicJobEnvelope
from dynamic.model.policy import Policy
from dynamic.model.recurring import RecurringJobOptions, RecurringScheduleEntry
from dynamic.reflection import MethodInfo


class BaseJobStore(ABC):
    """잡 스토어/큐 (envelope 영속화 및 워커 전달 담당)"""

    @abstractmethod
    def enqueue(self, envelope: DynamicJobEnvelope) -> str:
        """
        envelope 등록

        Returns:
            잡 ID
        """
        ...


class BaseRecurringScheduler(ABC):
    """반복 스케줄러 (크론 해석 및 실행 시점 결정 담당)"""

    @abstractmethod
    def upsert(
        self,
        recurring_job_id: str,
        cron_expression: str,
        envelope: DynamicJobEnvelope,
        options: RecurringJobOptions,
    ) -> None:
        """같은 ID가 있으면 전체 교체, 없으면 생성"""
        ...

    @abstractmethod
    def remove(self, recurring_job_id: str) -> None:
        """반복 잡 삭제"""
        ...


class BaseTypeResolver(ABC):
    """실행 시점 타입/메서드 resolver"""

    @abstractmethod
    def resolve(
        self,
        type_name: str,
        method_name: str,
        parameter_type_signature: Sequence[str],
    ) -> MethodInfo:
        """
        Raises:
            TargetResolutionError: 현재 프로세스에서 타입/메서드를 찾을 수 없음
        """
        ...


class BaseMarkerResolver(ABC):
    """타입/메서드에 선언된 정책 마커 조회 (선언 순서 유지)"""

    @abstractmethod
    def type_policies(self, target_type: Any) -> Sequence[Policy]:
        ...

    @abstractmethod
    def method_policies(self, target_type: Any, method_name: str) -> Sequence[Policy]:
        ...

    @abstractmethod
    def display_name(self, target_type: Any, method_name: str) -> str | None:
        ...


class BaseScheduleStore(BaseRecurringScheduler):
    """Dispatcher가 읽는 반복 스케줄 저장소"""

    @abstractmethod
    def entries(self) -> list[RecurringScheduleEntry]:
        """등록된 반복 스케줄 목록"""
        ...

    @abstractmethod
    def try_trigger(self, recurring_job_id: str, scheduled_time: datetime) -> bool:
        """
        예정 시각 단위로 한 번만 True 반환 (같은 시각 중복 등록 방지)
        """
        ...
