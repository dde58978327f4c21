"""Dynamic Job 모델"""
from dynamic.model.envelope import (
    DEFAULT_QUEUE,
    ArgumentKind,
    DynamicJobEnvelope,
    EncodedArgument,
    InvocationDescriptor,
)
from dynamic.model.policy import AnyPolicy, Policy, QueuePolicy, TimeoutPolicy
from dynamic.model.recurring import (
    DynamicRecurringJobOptions,
    RecurringJobOptions,
    RecurringScheduleEntry,
)

__all__ = [
    "DEFAULT_QUEUE",
    "ArgumentKind",
    "DynamicJobEnvelope",
    "EncodedArgument",
    "InvocationDescriptor",
    "AnyPolicy",
    "Policy",
    "QueuePolicy",
    "TimeoutPolicy",
    "DynamicRecurringJobOptions",
    "RecurringJobOptions",
    "RecurringScheduleEntry",
]
