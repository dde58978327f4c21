"""Dynamic Job 모듈 - 메서드 호출 캡처, 정책 집계, envelope 생성, 반복 등록"""

from dynamic.cancellation import CancellationToken
from dynamic.client import DynamicJobClient, enqueue_dynamic
from dynamic.codec import ArgumentCodec
from dynamic.envelope import build_envelope, create_dynamic_job, format_display_name
from dynamic.exception import (
    ArgumentDecodingError,
    DynamicJobError,
    EncodingError,
    InvalidArgumentError,
    InvocationFailedError,
    JobCancelledError,
    PolicyResolutionError,
    TargetResolutionError,
    UnsupportedTypeError,
)
from dynamic.invocation import InvocationDescriptorBuilder, MethodCall, build_descriptor
from dynamic.model import (
    DynamicJobEnvelope,
    DynamicRecurringJobOptions,
    InvocationDescriptor,
    Policy,
    QueuePolicy,
    RecurringJobOptions,
    RecurringScheduleEntry,
    TimeoutPolicy,
)
from dynamic.policy import (
    DeclaredMarkerResolver,
    PolicyAggregator,
    PolicyRegistry,
    declared_policies,
    display_name,
    queue,
    timeout,
    with_policy,
)
from dynamic.recurring import RecurringJobRegistrar, add_or_update_dynamic
from dynamic.resolver import ImportTypeResolver, JobTypeRegistry

__all__ = [
    # Capture
    "MethodCall",
    "InvocationDescriptorBuilder",
    "build_descriptor",
    "ArgumentCodec",
    "CancellationToken",
    # Policies
    "with_policy",
    "queue",
    "timeout",
    "display_name",
    "DeclaredMarkerResolver",
    "PolicyRegistry",
    "PolicyAggregator",
    "declared_policies",
    # Envelope
    "build_envelope",
    "create_dynamic_job",
    "format_display_name",
    # Registration
    "RecurringJobRegistrar",
    "add_or_update_dynamic",
    "DynamicJobClient",
    "enqueue_dynamic",
    # Resolution
    "ImportTypeResolver",
    "JobTypeRegistry",
    # Models
    "DynamicJobEnvelope",
    "DynamicRecurringJobOptions",
    "InvocationDescriptor",
    "Policy",
    "QueuePolicy",
    "RecurringJobOptions",
    "RecurringScheduleEntry",
    "TimeoutPolicy",
    # Errors
    "DynamicJobError",
    "InvalidArgumentError",
    "EncodingError",
    "UnsupportedTypeError",
    "ArgumentDecodingError",
    "PolicyResolutionError",
    "TargetResolutionError",
    "InvocationFailedError",
    "JobCancelledError",
]
