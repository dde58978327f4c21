"""
인자 코덱 모듈

인자 값과 정적 타입을 타입 태그가 붙은 문자열(EncodedArgument)로 변환합니다.

- 인코딩 종류는 런타임 값이 아니라 정적 타입으로 결정
- 종류별 인코더/디코더 테이블로 모든 ArgumentKind를 처리
- 컨테이너, Optional, pydantic 모델, dataclass 등은 pydantic TypeAdapter로 JSON 처리
- 암묵적 형변환 없음 (True는 int가 아니고, "3"도 int가 아님)
"""

import base64
import collections.abc
import io
import typing
import uuid
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from functools import lru_cache
from typing import Any, Callable

from pydantic import TypeAdapter, ValidationError
from pydantic.errors import PydanticSchemaGenerationError, PydanticUserError
from pydantic_core import PydanticSerializationError

from dynamic.cancellation import CancellationToken
from dynamic.exception import ArgumentDecodingError, EncodingError, UnsupportedTypeError
from dynamic.model.envelope import ArgumentKind, EncodedArgument
from dynamic.reflection import type_name

__all__ = ['ArgumentCodec', 'argument_kind']

# 검사 순서가 중요함 (bool은 int의 하위 타입, datetime은 date의 하위 타입)
_SCALAR_KINDS: tuple[tuple[type, ArgumentKind], ...] = (
    (bool, ArgumentKind.BOOL),
    (int, ArgumentKind.INT),
    (float, ArgumentKind.FLOAT),
    (str, ArgumentKind.STR),
    (bytes, ArgumentKind.BYTES),
    (Decimal, ArgumentKind.DECIMAL),
    (uuid.UUID, ArgumentKind.UUID),
    (datetime, ArgumentKind.DATETIME),
    (date, ArgumentKind.DATE),
)

def _is_unsupported(tp: Any) -> bool:
    origin = typing.get_origin(tp)
    if tp is collections.abc.Callable or origin is collections.abc.Callable:
        return True
    return isinstance(tp, type) and issubclass(tp, io.IOBase)


def argument_kind(tp: Any) -> ArgumentKind:
    """정적 타입에 대응하는 인코딩 종류"""
    if tp is CancellationToken:
        return ArgumentKind.CANCELLATION
    if tp is None or tp is type(None):
        return ArgumentKind.NONE
    if typing.get_origin(tp) is None and isinstance(tp, type):
        if issubclass(tp, Enum):
            return ArgumentKind.ENUM
        for scalar_type, kind in _SCALAR_KINDS:
            if tp is scalar_type:
                return kind
    if _is_unsupported(tp):
        raise UnsupportedTypeError(type_name(tp))
    _json_adapter(tp)
    return ArgumentKind.JSON


@lru_cache(maxsize=256)
def _cached_adapter(tp: Any) -> TypeAdapter:
    return TypeAdapter(tp)


def _json_adapter(tp: Any) -> TypeAdapter:
    try:
        hash(tp)
    except TypeError:
        # unhashable 타입 인자는 캐시하지 않음
        build = TypeAdapter
    else:
        build = _cached_adapter

    try:
        return build(tp)
    except (PydanticSchemaGenerationError, PydanticUserError):
        raise UnsupportedTypeError(type_name(tp))


# ============================================================
# Encoders
# ============================================================

def _expect(value: Any, tp: type, exact: bool = False) -> None:
    matches = type(value) is tp if exact else isinstance(value, tp)
    if not matches:
        raise EncodingError(
            type_name(tp),
            f"Expected value of type {type_name(tp)}, got {type(value).__name__}"
        )


def _encode_none(value: Any, tp: Any) -> str | None:
    if value is not None:
        raise EncodingError("None", f"Expected None, got {type(value).__name__}")
    return None


def _encode_bool(value: Any, tp: Any) -> str:
    _expect(value, bool, exact=True)
    return "true" if value else "false"


def _encode_int(value: Any, tp: Any) -> str:
    if isinstance(value, bool):
        raise EncodingError("int", "Expected value of type int, got bool")
    _expect(value, int)
    return str(int(value))


def _encode_float(value: Any, tp: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise EncodingError("float", f"Expected value of type float, got {type(value).__name__}")
    return repr(float(value))


def _encode_str(value: Any, tp: Any) -> str:
    _expect(value, str)
    return str(value)


def _encode_bytes(value: Any, tp: Any) -> str:
    _expect(value, bytes)
    return base64.b64encode(value).decode("ascii")


def _encode_decimal(value: Any, tp: Any) -> str:
    _expect(value, Decimal)
    return str(value)


def _encode_uuid(value: Any, tp: Any) -> str:
    _expect(value, uuid.UUID)
    return str(value)


def _encode_datetime(value: Any, tp: Any) -> str:
    _expect(value, datetime)
    return value.isoformat()


def _encode_date(value: Any, tp: Any) -> str:
    if isinstance(value, datetime):
        raise EncodingError("date", "Expected value of type date, got datetime")
    _expect(value, date)
    return value.isoformat()


def _encode_enum(value: Any, tp: Any) -> str:
    _expect(value, tp)
    return value.name


def _encode_json(value: Any, tp: Any) -> str:
    adapter = _json_adapter(tp)
    try:
        validated = adapter.validate_python(value, strict=True)
        return adapter.dump_json(validated).decode("utf-8")
    except ValidationError as e:
        raise EncodingError(type_name(tp), f"Value does not match {type_name(tp)}: {e.errors()[0]['msg']}")
    except PydanticSerializationError as e:
        raise EncodingError(type_name(tp), f"Value of type {type_name(tp)} is not serializable: {e}")


def _encode_cancellation(value: Any, tp: Any) -> None:
    # 실행 시점에 워커의 토큰으로 대체됨
    return None


# ============================================================
# Decoders
# ============================================================

def _decode_none(value: str | None, tp: Any) -> None:
    if value is not None:
        raise ValueError("None argument carries a value")
    return None


def _decode_bool(value: str | None, tp: Any) -> bool:
    if value == "true":
        return True
    if value == "false":
        return False
    raise ValueError(f"invalid bool literal: {value!r}")


def _decode_int(value: str | None, tp: Any) -> int:
    return int(value)


def _decode_float(value: str | None, tp: Any) -> float:
    return float(value)


def _decode_str(value: str | None, tp: Any) -> str:
    if value is None:
        raise ValueError("missing str value")
    return value


def _decode_bytes(value: str | None, tp: Any) -> bytes:
    return base64.b64decode(value.encode("ascii"), validate=True)


def _decode_decimal(value: str | None, tp: Any) -> Decimal:
    return Decimal(value)


def _decode_uuid(value: str | None, tp: Any) -> uuid.UUID:
    return uuid.UUID(value)


def _decode_datetime(value: str | None, tp: Any) -> datetime:
    return datetime.fromisoformat(value)


def _decode_date(value: str | None, tp: Any) -> date:
    return date.fromisoformat(value)


def _decode_enum(value: str | None, tp: Any) -> Enum:
    return tp[value]


def _decode_json(value: str | None, tp: Any) -> Any:
    return _json_adapter(tp).validate_json(value)


def _decode_cancellation(value: str | None, tp: Any) -> None:
    return None


_ENCODERS: dict[ArgumentKind, Callable[[Any, Any], str | None]] = {
    ArgumentKind.NONE: _encode_none,
    ArgumentKind.BOOL: _encode_bool,
    ArgumentKind.INT: _encode_int,
    ArgumentKind.FLOAT: _encode_float,
    ArgumentKind.STR: _encode_str,
    ArgumentKind.BYTES: _encode_bytes,
    ArgumentKind.DECIMAL: _encode_decimal,
    ArgumentKind.UUID: _encode_uuid,
    ArgumentKind.DATETIME: _encode_datetime,
    ArgumentKind.DATE: _encode_date,
    ArgumentKind.ENUM: _encode_enum,
    ArgumentKind.JSON: _encode_json,
    ArgumentKind.CANCELLATION: _encode_cancellation,
}

_DECODERS: dict[ArgumentKind, Callable[[str | None, Any], Any]] = {
    ArgumentKind.NONE: _decode_none,
    ArgumentKind.BOOL: _decode_bool,
    ArgumentKind.INT: _decode_int,
    ArgumentKind.FLOAT: _decode_float,
    ArgumentKind.STR: _decode_str,
    ArgumentKind.BYTES: _decode_bytes,
    ArgumentKind.DECIMAL: _decode_decimal,
    ArgumentKind.UUID: _decode_uuid,
    ArgumentKind.DATETIME: _decode_datetime,
    ArgumentKind.DATE: _decode_date,
    ArgumentKind.ENUM: _decode_enum,
    ArgumentKind.JSON: _decode_json,
    ArgumentKind.CANCELLATION: _decode_cancellation,
}


class ArgumentCodec:
    """인자 코덱 (부작용 없음, 스레드 안전)"""

    def encode(self, value: Any, static_type: Any) -> EncodedArgument:
        """
        값 인코딩

        Raises:
            UnsupportedTypeError: 인코딩할 수 없는 타입
            EncodingError: 값이 정적 타입과 맞지 않음
        """
        kind = argument_kind(static_type)
        return EncodedArgument(kind=kind, value=_ENCODERS[kind](value, static_type))

    def decode(self, encoded: EncodedArgument, target_type: Any) -> Any:
        """
        값 디코딩

        Raises:
            ArgumentDecodingError: 종류 불일치 또는 파싱 실패
        """
        try:
            kind = argument_kind(target_type)
        except EncodingError as e:
            raise ArgumentDecodingError(type_name(target_type), e.message)

        if encoded.kind != kind:
            raise ArgumentDecodingError(
                type_name(target_type),
                f"Encoded argument kind '{encoded.kind.value}' does not match "
                f"parameter type {type_name(target_type)} (expected '{kind.value}')"
            )

        try:
            return _DECODERS[kind](encoded.value, target_type)
        except (ValueError, TypeError, KeyError, AttributeError, InvalidOperation, ValidationError) as e:
            raise ArgumentDecodingError(type_name(target_type), f"Failed to decode {type_name(target_type)}: {e}")
