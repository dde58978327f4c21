"""
실행 정책 모델

정책은 잡 등록 시 집계되어 envelope에 순서대로 저장되고,
워커에서 호출을 감싸는 형태로 적용됩니다.
"""

import asyncio
import re
from typing import Annotated, Any, Awaitable, Callable, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

QUEUE_NAME_PATTERN = re.compile(r"^[a-z0-9_-]+$")


class Policy(BaseModel):
    """실행 정책 기본 클래스"""
    model_config = ConfigDict(frozen=True)

    kind: str

    def elect_queue(self) -> str | None:
        """큐 선택 (큐 라우팅 정책만 값을 반환)"""
        return None

    async def around(self, context: Any, proceed: Callable[[], Awaitable[Any]]) -> Any:
        """실행을 감싸는 훅 (기본: 그대로 진행)"""
        return await proceed()


class QueuePolicy(Policy):
    """큐 라우팅 정책"""
    kind: Literal["queue"] = "queue"
    queue: str

    @field_validator("queue")
    @classmethod
    def _validate_queue(cls, value: str) -> str:
        if not QUEUE_NAME_PATTERN.match(value):
            raise ValueError(
                f"Queue name '{value}' must consist of lowercase letters, digits, underscores and dashes"
            )
        return value

    def elect_queue(self) -> str | None:
        return self.queue


class TimeoutPolicy(Policy):
    """실행 타임아웃 정책"""
    kind: Literal["timeout"] = "timeout"
    seconds: float = Field(gt=0)

    async def around(self, context: Any, proceed: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await asyncio.wait_for(proceed(), timeout=self.seconds)
        except asyncio.TimeoutError:
            # 스레드에서 실행 중인 동기 메서드에 협조적 취소 전달
            if context is not None and context.token is not None:
                context.token.cancel()
            raise


AnyPolicy = Annotated[Union[QueuePolicy, TimeoutPolicy], Field(discriminator="kind")]
