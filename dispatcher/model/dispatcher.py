"""
Dispatcher 설정 모델 정의
"""

from pydantic import BaseModel, Field


class DispatcherConfig(BaseModel):
    """Dispatcher 설정"""
    poll_interval_seconds: int = Field(default=60, ge=10, le=600)
    max_sleep_seconds: int = Field(default=300, ge=60, le=600)
    min_cron_interval_seconds: int = Field(default=60, ge=60, le=3600)
