"""
Invocation descriptor 빌더 모듈

정적 타입 호출 지점에서 메서드 호출을 캡처(MethodCall)하고,
나중에 다시 찾아 호출할 수 있는 최소한의 기술(InvocationDescriptor)로 변환합니다.

사용 예시:
    call = MethodCall.of(NewsletterJob.send, "a@b.com", 3)
    descriptor = build_descriptor(call)
"""

import inspect
import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Callable

from dynamic.cancellation import CancellationToken
from dynamic.codec import ArgumentCodec
from dynamic.exception import InvalidArgumentError
from dynamic.model.envelope import InvocationDescriptor
from dynamic.reflection import MethodInfo, get_method, load_type, type_name, type_name_of

logger = logging.getLogger(__name__)

_UNSUPPORTED_PARAMETER_KINDS = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


@dataclass(frozen=True)
class MethodCall:
    """캡처된 메서드 호출 (대상 타입 + 메서드 이름 + 인자)"""
    target_type: Any
    method_name: str
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)

    @classmethod
    def of(cls, func: Callable, *args, **kwargs) -> "MethodCall":
        """
        호출 가능한 객체로부터 캡처

        클래스에 정의된 함수, bound method, staticmethod/classmethod,
        모듈 레벨 함수를 지원합니다. lambda와 지역 함수는 재조회가 불가능하므로 거부합니다.
        """
        if func is None:
            raise InvalidArgumentError("func", "Job method must not be None")

        if inspect.ismethod(func):
            owner = func.__self__ if inspect.isclass(func.__self__) else type(func.__self__)
            return cls.on(owner, func.__name__, *args, **kwargs)

        if not inspect.isfunction(func):
            raise InvalidArgumentError("func", f"Job target must be a function or method, got {type(func).__name__}")

        qualname = func.__qualname__
        if "<locals>" in qualname or func.__name__ == "<lambda>":
            raise InvalidArgumentError(
                "func", f"Job method '{qualname}' cannot be resolved later (lambda or local function)"
            )

        module = sys.modules.get(func.__module__)
        if module is None:
            raise InvalidArgumentError("func", f"Module '{func.__module__}' is not loaded")

        owner = module
        *owner_path, method_name = qualname.split(".")
        try:
            for part in owner_path:
                owner = getattr(owner, part)
        except AttributeError:
            raise InvalidArgumentError("func", f"Cannot find owner type of '{qualname}'")

        return cls.on(owner, method_name, *args, **kwargs)

    @classmethod
    def on(cls, target_type: Any, method_name: str, *args, **kwargs) -> "MethodCall":
        """대상 타입을 명시하여 캡처 (상속받은 메서드를 하위 타입으로 등록할 때 사용)"""
        if target_type is None:
            raise InvalidArgumentError("target_type", "Job target type must not be None")
        if not method_name:
            raise InvalidArgumentError("method_name", "Job method name must not be empty")

        call = cls(target_type=target_type, method_name=method_name, args=tuple(args), kwargs=dict(kwargs))
        # 메서드 존재 및 인자 바인딩 검증
        call.bound_values()
        return call

    @classmethod
    def from_path(cls, path: str, *args, **kwargs) -> "MethodCall":
        """
        "package.module:Class.method" 또는 "package.module:function" 경로로 캡처
        """
        if not path or ":" not in path:
            raise InvalidArgumentError("path", f"Job path must look like 'package.module:Class.method', got {path!r}")

        module_name, _, qualname = path.partition(":")
        owner_name, _, method_name = qualname.rpartition(".")
        type_path = f"{module_name}:{owner_name}" if owner_name else module_name
        try:
            owner = load_type(type_path)
        except (ImportError, AttributeError, TypeError) as e:
            raise InvalidArgumentError("path", f"Cannot load job type '{type_path}': {e}")
        return cls.on(owner, method_name, *args, **kwargs)

    @property
    def method(self) -> MethodInfo:
        try:
            return get_method(self.target_type, self.method_name)
        except (AttributeError, TypeError) as e:
            raise InvalidArgumentError("method_name", f"Cannot find job method '{self.method_name}': {e}")

    def bound_values(self) -> list[Any]:
        """
        파라미터 순서대로 정렬된 인자 값 (기본값 적용)

        Raises:
            InvalidArgumentError: 인자 개수/이름 불일치, 가변 인자 시그니처
        """
        method = self.method
        parameters = method.parameters

        for parameter in parameters:
            if parameter.kind in _UNSUPPORTED_PARAMETER_KINDS:
                raise InvalidArgumentError(
                    parameter.name,
                    f"Job method '{self.method_name}' must not declare *args or **kwargs"
                )

        signature = inspect.Signature(parameters)
        try:
            bound = signature.bind_partial(*self.args, **self.kwargs)
        except TypeError as e:
            raise InvalidArgumentError("args", f"Arguments do not match '{self.method_name}{signature}': {e}")
        bound.apply_defaults()

        try:
            types = method.parameter_types()
        except NameError as e:
            raise InvalidArgumentError("method_name", f"Cannot resolve parameter types of '{self.method_name}': {e}")

        values = []
        for parameter, tp in zip(parameters, types):
            if parameter.name in bound.arguments:
                values.append(bound.arguments[parameter.name])
            elif tp is CancellationToken:
                values.append(None)
            else:
                raise InvalidArgumentError(
                    parameter.name,
                    f"Missing argument '{parameter.name}' for '{self.method_name}{signature}'"
                )
        return values


class InvocationDescriptorBuilder:
    """MethodCall -> InvocationDescriptor 변환기"""

    def __init__(self, codec: ArgumentCodec | None = None):
        self._codec = codec or ArgumentCodec()

    def build(self, call: MethodCall) -> InvocationDescriptor:
        """
        descriptor 생성

        Raises:
            InvalidArgumentError: 필수 입력 누락, 인자 개수 불일치
            EncodingError: 코덱이 인자를 거부한 경우
        """
        if call is None:
            raise InvalidArgumentError("call", "Method call must not be None")

        method = call.method
        values = call.bound_values()
        types = method.parameter_types()
        if len(values) != len(types):
            raise InvalidArgumentError(
                "args", f"Expected {len(types)} arguments for '{call.method_name}', got {len(values)}"
            )

        encoded = tuple(self._codec.encode(value, tp) for value, tp in zip(values, types))
        descriptor = InvocationDescriptor(
            target_type_name=type_name_of(call.target_type),
            method_name=call.method_name,
            parameter_type_signature=tuple(type_name(tp) for tp in types),
            encoded_arguments=encoded,
        )
        logger.debug(f"Built invocation descriptor: target={descriptor.target}, signature={descriptor.signature}")
        return descriptor


def build_descriptor(call: MethodCall, codec: ArgumentCodec | None = None) -> InvocationDescriptor:
    """InvocationDescriptorBuilder 단축 함수"""
    return InvocationDescriptorBuilder(codec).build(call)
