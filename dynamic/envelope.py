"""
Envelope 빌더 모듈

InvocationDescriptor + 집계된 정책 + 표시 이름 힌트를 하나의
DynamicJobEnvelope로 묶습니다. 잡 스토어에는 이 envelope만 전달됩니다.
"""

import logging
from typing import Any, Sequence

from dynamic.codec import ArgumentCodec
from dynamic.invocation import InvocationDescriptorBuilder, MethodCall
from dynamic.model.envelope import DynamicJobEnvelope, InvocationDescriptor
from dynamic.model.policy import Policy
from dynamic.policy import PolicyAggregator

logger = logging.getLogger(__name__)


def build_envelope(
    descriptor: InvocationDescriptor,
    policies: Sequence[Policy] = (),
    display_name_hint: str | None = None,
) -> DynamicJobEnvelope:
    """descriptor와 정책 목록을 envelope으로 조합"""
    return DynamicJobEnvelope(
        descriptor=descriptor,
        policies=tuple(policies),
        display_name_hint=display_name_hint,
    )


def create_dynamic_job(
    call: MethodCall,
    policies: Sequence[Policy] | None = None,
    aggregator: PolicyAggregator | None = None,
    codec: ArgumentCodec | None = None,
) -> DynamicJobEnvelope:
    """
    캡처된 호출을 Dynamic Job envelope으로 변환

    표시 이름 힌트는 원본 메서드 선언에서 읽습니다. 래핑 이후에는 호출 지점이
    범용 디스패처가 되므로 원본의 이름 정보를 잃게 됩니다.

    Args:
        call: 캡처된 메서드 호출
        policies: 호출자가 지정한 정책 (타입/메서드 정책보다 앞에 위치)
        aggregator: 정책 집계기 (미지정 시 데코레이터 마커 사용)
        codec: 인자 코덱

    Raises:
        InvalidArgumentError, EncodingError, PolicyResolutionError
    """
    aggregator = aggregator or PolicyAggregator()

    descriptor = InvocationDescriptorBuilder(codec).build(call)
    display_name_hint = aggregator.display_name(call.target_type, call.method_name)
    aggregated = aggregator.aggregate(call.target_type, call.method_name, policies)

    envelope = build_envelope(descriptor, aggregated, display_name_hint)
    logger.debug(
        f"Created dynamic job: target={descriptor.target}, queue={envelope.queue}, "
        f"policies={len(envelope.policies)}"
    )
    return envelope


def format_display_name(envelope: DynamicJobEnvelope, arguments: Sequence[Any] = ()) -> str:
    """
    잡 표시 이름

    힌트가 있으면 "{0}" 형식으로 인자를 채우고, 없으면 "Type.method"를 사용합니다.
    """
    descriptor = envelope.descriptor
    default = f"{descriptor.target_type_name.rpartition(':')[2]}.{descriptor.method_name}"
    if not envelope.display_name_hint:
        return default
    try:
        return envelope.display_name_hint.format(*arguments)
    except (IndexError, KeyError, ValueError, AttributeError, TypeError) as e:
        logger.debug(f"Cannot format display name '{envelope.display_name_hint}': {e}")
        return envelope.display_name_hint
