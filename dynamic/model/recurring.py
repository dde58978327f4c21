"""
반복(크론) 스케줄 관련 모델 정의
"""

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dynamic.model.envelope import DynamicJobEnvelope
from dynamic.model.policy import AnyPolicy


class RecurringJobOptions(BaseModel):
    """반복 잡 스케줄 옵션"""
    model_config = ConfigDict(frozen=True)

    time_zone: str = Field(default="UTC", description="크론 표현식을 해석할 타임존 (IANA)")

    @field_validator("time_zone")
    @classmethod
    def _validate_time_zone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {value}") from e
        return value


class DynamicRecurringJobOptions(RecurringJobOptions):
    """Dynamic Job용 옵션 (호출자 지정 정책 포함)"""
    policies: tuple[AnyPolicy, ...] = ()


class RecurringScheduleEntry(BaseModel):
    """id로 식별되는 크론 표현식 + envelope 바인딩"""
    model_config = ConfigDict(frozen=True)

    id: str
    cron_expression: str
    envelope: DynamicJobEnvelope
    options: DynamicRecurringJobOptions | RecurringJobOptions = RecurringJobOptions()
