"""
정책 마커 및 정책 집계 모듈

타입/메서드에 데코레이터로 선언한 정책(큐 라우팅, 타임아웃, 표시 이름)을
조회하고, 호출자가 지정한 정책과 합쳐 순서가 고정된 목록을 만듭니다.

집계 순서: 호출자 지정 -> 타입 레벨 -> 메서드 레벨 (중복 제거하지 않음)

사용 예시:
    @queue("newsletter")
    class NewsletterJob:

        @display_name("Daily digest")
        @timeout(600)
        def send_digest(self) -> None:
            ...
"""

import inspect
import logging
from types import ModuleType
from typing import Any, Iterable, Sequence

from pydantic import ValidationError

from dynamic.exception import InvalidArgumentError, PolicyResolutionError
from dynamic.interfaces import BaseMarkerResolver
from dynamic.model.policy import Policy, QueuePolicy, TimeoutPolicy
from dynamic.reflection import type_name_of

__all__ = [
    'with_policy', 'queue', 'queue_policy', 'timeout', 'display_name',
    'DeclaredMarkerResolver', 'PolicyRegistry', 'PolicyAggregator', 'declared_policies',
]

logger = logging.getLogger(__name__)

POLICIES_ATTR = "__job_policies__"
DISPLAY_NAME_ATTR = "__job_display_name__"


def _unwrap(obj: Any) -> Any:
    if isinstance(obj, (staticmethod, classmethod)):
        return obj.__func__
    return obj


def _own_attr(obj: Any, name: str, default: Any = None) -> Any:
    """상속 없이 객체 자신에 선언된 속성만 조회"""
    return vars(obj).get(name, default) if hasattr(obj, "__dict__") else default


# ============================================================
# Markers
# ============================================================

def with_policy(value: Policy):
    """임의의 정책을 타입/메서드에 선언하는 데코레이터"""
    if not isinstance(value, Policy):
        raise InvalidArgumentError("policy", f"Expected Policy, got {type(value).__name__}")

    def decorator(obj):
        target = _unwrap(obj)
        declared = tuple(_own_attr(target, POLICIES_ATTR, ()))
        # 데코레이터는 아래에서 위로 적용되므로 앞에 추가해야 선언 순서가 유지됨
        setattr(target, POLICIES_ATTR, (value,) + declared)
        return obj
    return decorator


def queue_policy(name: str) -> QueuePolicy:
    """큐 라우팅 정책 생성 (잘못된 큐 이름은 InvalidArgumentError)"""
    try:
        return QueuePolicy(queue=name)
    except ValidationError as e:
        raise InvalidArgumentError("queue", f"Invalid queue name {name!r}: {e.errors()[0]['msg']}")


def queue(name: str):
    """큐 라우팅 정책 데코레이터"""
    return with_policy(queue_policy(name))


def timeout(seconds: float):
    """실행 타임아웃 정책 데코레이터"""
    try:
        value = TimeoutPolicy(seconds=seconds)
    except ValidationError as e:
        raise InvalidArgumentError("seconds", f"Invalid timeout {seconds!r}: {e.errors()[0]['msg']}")
    return with_policy(value)


def display_name(template: str):
    """잡 표시 이름 데코레이터 ("{0}" 형식으로 인자 참조 가능)"""
    if not template:
        raise InvalidArgumentError("template", "Display name must not be empty")

    def decorator(obj):
        setattr(_unwrap(obj), DISPLAY_NAME_ATTR, template)
        return obj
    return decorator


# ============================================================
# Marker resolvers
# ============================================================

def _checked(values: Iterable[Any], where: str) -> list[Policy]:
    policies = []
    for value in values:
        if not isinstance(value, Policy):
            raise TypeError(f"{where} declares a non-policy marker: {value!r}")
        policies.append(value)
    return policies


def _hierarchy(target_type: Any) -> tuple:
    """상속 계층 (하위 타입 먼저, 모듈은 자기 자신만)"""
    if isinstance(target_type, ModuleType):
        return (target_type,)
    return inspect.getmro(target_type)


class DeclaredMarkerResolver(BaseMarkerResolver):
    """데코레이터로 선언된 마커를 읽는 resolver (읽기 전용, 동시 호출 안전)"""

    def type_policies(self, target_type: Any) -> list[Policy]:
        if isinstance(target_type, ModuleType):
            return []
        policies = []
        for klass in _hierarchy(target_type):
            policies.extend(_checked(_own_attr(klass, POLICIES_ATTR, ()), klass.__qualname__))
        return policies

    def method_policies(self, target_type: Any, method_name: str) -> list[Policy]:
        policies = []
        for owner in _hierarchy(target_type):
            member = _own_attr(owner, method_name)
            if member is None:
                continue
            member = _unwrap(member)
            policies.extend(_checked(_own_attr(member, POLICIES_ATTR, ()), f"{type_name_of(owner)}.{method_name}"))
        return policies

    def display_name(self, target_type: Any, method_name: str) -> str | None:
        for owner in _hierarchy(target_type):
            member = _own_attr(owner, method_name)
            if member is None:
                continue
            template = _own_attr(_unwrap(member), DISPLAY_NAME_ATTR)
            if template is not None:
                return template
        return None


class PolicyRegistry(BaseMarkerResolver):
    """
    명시적으로 등록한 정책을 돌려주는 resolver

    데코레이터를 붙일 수 없는 타입(외부 라이브러리 등)에 정책을 연결할 때 사용합니다.
    타입 이름 기준으로 저장하며, 조회 시 상속 계층을 따라갑니다.
    """

    def __init__(self):
        self._type_policies: dict[str, list[Policy]] = {}
        self._method_policies: dict[tuple[str, str], list[Policy]] = {}
        self._display_names: dict[tuple[str, str], str] = {}

    def register(
        self,
        target_type: Any,
        *policies: Policy,
        method: str | None = None,
        display_name: str | None = None,
    ) -> None:
        """타입 또는 메서드에 정책 등록 (등록 순서 유지)"""
        if target_type is None:
            raise InvalidArgumentError("target_type", "Target type must not be None")
        checked = _checked(policies, "register()")
        key = type_name_of(target_type)

        if method is None:
            self._type_policies.setdefault(key, []).extend(checked)
            return

        self._method_policies.setdefault((key, method), []).extend(checked)
        if display_name:
            self._display_names[(key, method)] = display_name

    def type_policies(self, target_type: Any) -> list[Policy]:
        if isinstance(target_type, ModuleType):
            return []
        policies = []
        for klass in _hierarchy(target_type):
            policies.extend(self._type_policies.get(type_name_of(klass), ()))
        return policies

    def method_policies(self, target_type: Any, method_name: str) -> list[Policy]:
        policies = []
        for owner in _hierarchy(target_type):
            policies.extend(self._method_policies.get((type_name_of(owner), method_name), ()))
        return policies

    def display_name(self, target_type: Any, method_name: str) -> str | None:
        for owner in _hierarchy(target_type):
            template = self._display_names.get((type_name_of(owner), method_name))
            if template is not None:
                return template
        return None


# ============================================================
# Aggregator
# ============================================================

class PolicyAggregator:
    """호출자 지정 정책 + 타입 레벨 + 메서드 레벨 정책 집계"""

    def __init__(self, resolver: BaseMarkerResolver | None = None):
        self._resolver = resolver or DeclaredMarkerResolver()

    def aggregate(
        self,
        target_type: Any,
        method_name: str,
        caller_policies: Sequence[Policy] | None = None,
    ) -> list[Policy]:
        """
        정책 집계

        Raises:
            InvalidArgumentError: 호출자 정책이 Policy가 아닌 경우
            PolicyResolutionError: 마커 조회 실패
        """
        caller = list(caller_policies or ())
        for value in caller:
            if not isinstance(value, Policy):
                raise InvalidArgumentError("policies", f"Expected Policy, got {type(value).__name__}")

        target = f"{type_name_of(target_type)}.{method_name}"
        try:
            type_level = list(self._resolver.type_policies(target_type))
            method_level = list(self._resolver.method_policies(target_type, method_name))
        except PolicyResolutionError:
            raise
        except Exception as e:
            raise PolicyResolutionError(target, str(e)) from e

        policies = caller + type_level + method_level
        logger.debug(
            f"Aggregated policies: target={target}, caller={len(caller)}, "
            f"type={len(type_level)}, method={len(method_level)}"
        )
        return policies

    def display_name(self, target_type: Any, method_name: str) -> str | None:
        """원본 메서드의 표시 이름 마커"""
        try:
            return self._resolver.display_name(target_type, method_name)
        except Exception as e:
            raise PolicyResolutionError(f"{type_name_of(target_type)}.{method_name}", str(e)) from e


def declared_policies(target_type: Any, method_name: str) -> list[Policy]:
    """타입/메서드에 선언된 정책 (타입 레벨 -> 메서드 레벨)"""
    return PolicyAggregator(DeclaredMarkerResolver()).aggregate(target_type, method_name)
