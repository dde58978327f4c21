"""
실행 시점 타입/메서드 resolver

ImportTypeResolver: 타입 이름으로 모듈을 import하여 조회
JobTypeRegistry: 등록된 잡 타입만 허용 (envelope이 임의 모듈을 import하지 못하도록 제한)

사용 예시:
    registry = JobTypeRegistry()

    @registry.register
    class NewsletterJob:
        ...
"""

import logging
from typing import Any, Sequence

from dynamic.exception import TargetResolutionError
from dynamic.interfaces import BaseTypeResolver
from dynamic.reflection import MethodInfo, get_method, load_type, type_name_of

__all__ = ['ImportTypeResolver', 'JobTypeRegistry']

logger = logging.getLogger(__name__)


def _find_method(owner: Any, type_name: str, method_name: str) -> MethodInfo:
    try:
        return get_method(owner, method_name)
    except (AttributeError, TypeError) as e:
        raise TargetResolutionError(type_name, method_name, str(e))


class ImportTypeResolver(BaseTypeResolver):
    """모듈 import 기반 resolver"""

    def resolve(
        self,
        type_name: str,
        method_name: str,
        parameter_type_signature: Sequence[str] = (),
    ) -> MethodInfo:
        try:
            owner = load_type(type_name)
        except (ImportError, AttributeError, TypeError, ValueError) as e:
            raise TargetResolutionError(type_name, method_name, str(e))
        return _find_method(owner, type_name, method_name)


class JobTypeRegistry(BaseTypeResolver):
    """잡 타입 레지스트리 resolver"""

    def __init__(self):
        self._types: dict[str, Any] = {}

    def register(self, target_type: Any) -> Any:
        """잡 타입 등록 (클래스 데코레이터로도 사용 가능)"""
        self._types[type_name_of(target_type)] = target_type
        return target_type

    def registered(self) -> dict[str, Any]:
        """등록된 타입 목록 (테스트용)"""
        return self._types.copy()

    def resolve(
        self,
        type_name: str,
        method_name: str,
        parameter_type_signature: Sequence[str] = (),
    ) -> MethodInfo:
        owner = self._types.get(type_name)
        if owner is None:
            raise TargetResolutionError(type_name, method_name, "type is not registered")
        return _find_method(owner, type_name, method_name)
