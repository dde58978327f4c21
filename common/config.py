"""
YAML 설정 로드

config/ 디렉토리의 설정 파일을 읽어 하나의 dict로 합칩니다.
파일이 없으면 건너뜁니다.

    dispatcher.yaml  -> {"dispatcher": {...}}
    worker.yaml      -> {"worker": {...}}
    queue.yaml       -> {"queue_dispatcher": {...}}
    recurring.yaml   -> {"recurring": [...]}
    logging.yaml     -> {"logging": {...}}
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

CONFIG_FILES = ("dispatcher.yaml", "worker.yaml", "queue.yaml", "recurring.yaml", "logging.yaml")
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config"


class LoggingConfig(BaseModel):
    """로깅 설정"""
    level: str = "INFO"
    json_format: bool = True
    log_file: str | None = None


class RecurringJobConfig(BaseModel):
    """recurring.yaml에 선언된 반복 잡"""
    id: str
    job: str = Field(description="module:Class.method 형태의 대상 경로")
    cron: str
    args: list[Any] = Field(default_factory=list)
    kwargs: dict[str, Any] = Field(default_factory=dict)
    queue: str | None = None
    time_zone: str = "UTC"


def load_config(config_path: Path | str | None = None) -> dict[str, Any]:
    """
    설정 파일 로드

    Args:
        config_path: 설정 디렉토리 (미지정 시 프로젝트 루트의 config/)

    Returns:
        파일별 최상위 키를 합친 dict
    """
    config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    config: dict[str, Any] = {}

    for file_name in CONFIG_FILES:
        path = config_path / file_name
        if not path.exists():
            logger.debug(f"Config file not found, skipping: {path}")
            continue

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")
        config.update(data)

    return config


def recurring_jobs(config: dict[str, Any]) -> list[RecurringJobConfig]:
    """설정에서 반복 잡 목록 추출"""
    return [RecurringJobConfig(**item) for item in config.get("recurring") or []]
