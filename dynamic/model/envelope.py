"""
Invocation descriptor 및 Dynamic Job envelope 모델

envelope은 잡 스토어/큐 경계를 넘나드는 단일 직렬화 단위입니다.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator

from dynamic.model.policy import AnyPolicy

DEFAULT_QUEUE = "default"


class ArgumentKind(str, Enum):
    """인자 인코딩 종류 (tagged union 태그)"""
    NONE = "none"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STR = "str"
    BYTES = "bytes"
    DECIMAL = "decimal"
    UUID = "uuid"
    DATETIME = "datetime"
    DATE = "date"
    ENUM = "enum"
    JSON = "json"
    CANCELLATION = "cancellation"


class EncodedArgument(BaseModel):
    """타입 태그가 붙은 인코딩된 인자"""
    model_config = ConfigDict(frozen=True)

    kind: ArgumentKind
    value: str | None = None


class InvocationDescriptor(BaseModel):
    """타입 정보가 지워진, 재해석 가능한 메서드 호출 기술"""
    model_config = ConfigDict(frozen=True)

    target_type_name: str
    method_name: str
    parameter_type_signature: tuple[str, ...] = ()
    encoded_arguments: tuple[EncodedArgument, ...] = ()

    @model_validator(mode="after")
    def _check_lengths(self) -> "InvocationDescriptor":
        if not self.target_type_name:
            raise ValueError("target_type_name must not be empty")
        if not self.method_name:
            raise ValueError("method_name must not be empty")
        if len(self.parameter_type_signature) != len(self.encoded_arguments):
            raise ValueError(
                f"parameter_type_signature has {len(self.parameter_type_signature)} entries "
                f"but encoded_arguments has {len(self.encoded_arguments)}"
            )
        return self

    @property
    def signature(self) -> str:
        """파라미터 타입 시그니처 (압축 문자열)"""
        return f"({', '.join(self.parameter_type_signature)})"

    @property
    def target(self) -> str:
        return f"{self.target_type_name}.{self.method_name}"


class DynamicJobEnvelope(BaseModel):
    """descriptor + 집계된 정책 + 표시 이름 힌트"""
    model_config = ConfigDict(frozen=True)

    descriptor: InvocationDescriptor
    policies: tuple[AnyPolicy, ...] = ()
    display_name_hint: str | None = None

    @property
    def queue(self) -> str:
        """첫 번째 큐 정책이 선택한 큐 (없으면 default)"""
        for policy in self.policies:
            elected = policy.elect_queue()
            if elected:
                return elected
        return DEFAULT_QUEUE

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, payload: str | bytes) -> "DynamicJobEnvelope":
        return cls.model_validate_json(payload)
