"""
타입/메서드 리플렉션 헬퍼

등록 시점(MethodCall)과 실행 시점(resolver) 모두 같은 규칙으로
타입 이름을 만들고 메서드를 찾도록 공통 로직을 모아둡니다.

타입 이름 규칙:
    클래스: "package.module:Outer.Inner"
    모듈 레벨 함수: "package.module"
"""

import importlib
import inspect
import typing
from dataclasses import dataclass
from types import ModuleType
from typing import Any, Callable

# 메서드 바인딩 종류
INSTANCE = "instance"
STATIC = "static"
CLASS = "class"
FUNCTION = "function"


@dataclass(frozen=True)
class MethodInfo:
    """소유 타입에서 찾은 메서드 정보"""
    owner: Any
    name: str
    function: Callable
    binding: str

    @property
    def parameters(self) -> list[inspect.Parameter]:
        """self/cls를 제외한 파라미터 목록"""
        params = list(inspect.signature(self.function).parameters.values())
        if self.binding in (INSTANCE, CLASS):
            params = params[1:]
        return params

    def parameter_types(self) -> list[Any]:
        """파라미터 정적 타입 (어노테이션 없으면 Any)"""
        hints = typing.get_type_hints(self.function)
        return [hints.get(p.name, Any) for p in self.parameters]


def type_name_of(owner: Any) -> str:
    """소유 타입(클래스 또는 모듈)의 이름"""
    if isinstance(owner, ModuleType):
        return owner.__name__
    return f"{owner.__module__}:{owner.__qualname__}"


def load_type(type_name: str) -> Any:
    """
    타입 이름으로 클래스/모듈 로드

    Raises:
        ImportError, AttributeError, TypeError: 찾을 수 없는 경우
    """
    module_name, _, qualname = type_name.partition(":")
    owner = importlib.import_module(module_name)
    if qualname:
        for part in qualname.split("."):
            owner = getattr(owner, part)
        if not inspect.isclass(owner):
            raise TypeError(f"{type_name} is not a class")
    return owner


def get_method(owner: Any, name: str) -> MethodInfo:
    """
    소유 타입에서 메서드 조회 (상속 포함, 디스크립터 호출 없이)

    Raises:
        AttributeError: 메서드가 없는 경우
        TypeError: 호출 가능한 메서드가 아닌 경우
    """
    if isinstance(owner, ModuleType):
        attr = getattr(owner, name)
        if not inspect.isfunction(attr):
            raise TypeError(f"{owner.__name__}.{name} is not a function")
        return MethodInfo(owner, name, attr, FUNCTION)

    if not inspect.isclass(owner):
        raise TypeError(f"{owner!r} is not a class or module")

    attr = inspect.getattr_static(owner, name)
    if isinstance(attr, staticmethod):
        return MethodInfo(owner, name, attr.__func__, STATIC)
    if isinstance(attr, classmethod):
        return MethodInfo(owner, name, attr.__func__, CLASS)
    if inspect.isfunction(attr):
        return MethodInfo(owner, name, attr, INSTANCE)
    raise TypeError(f"{owner.__qualname__}.{name} is not a method")


def type_name(tp: Any) -> str:
    """파라미터 타입 시그니처에 기록할 타입 이름"""
    if tp is Any:
        return "Any"
    if tp is type(None):
        return "None"
    if typing.get_origin(tp) is None and isinstance(tp, type):
        if tp.__module__ == "builtins":
            return tp.__qualname__
        return f"{tp.__module__}:{tp.__qualname__}"
    return repr(tp).replace("typing.", "")
