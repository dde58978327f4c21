"""
Deferred Executor 모듈

워커에서 전달받은 Dynamic Job envelope으로 대상 메서드를 다시 찾아 실행합니다.

상태 전이:
    Received -> Resolving -> Decoding -> PolicyWrapping -> Invoking -> Succeeded | Failed

- Resolving 실패: TargetResolutionError (이 계층에서 재시도하지 않음)
- Decoding 실패: ArgumentDecodingError
- Invoking 실패: InvocationFailedError (원본 예외 보존)
- 취소(asyncio.CancelledError, JobCancelledError)는 실패로 바꾸지 않고 그대로 전파
"""

import asyncio
import functools
import inspect
import logging
from typing import Any, Callable, Sequence

from pydantic import ValidationError

from dynamic.cancellation import CancellationToken
from dynamic.codec import ArgumentCodec
from dynamic.envelope import format_display_name
from dynamic.exception import (
    ArgumentDecodingError,
    InvocationFailedError,
    JobCancelledError,
    TargetResolutionError,
)
from dynamic.interfaces import BaseTypeResolver
from dynamic.model.envelope import ArgumentKind, DynamicJobEnvelope, InvocationDescriptor
from dynamic.model.policy import Policy
from dynamic.reflection import INSTANCE, MethodInfo, type_name
from dynamic.resolver import ImportTypeResolver
from worker.model.executor import ExecutionContext, ExecutionOutcome

logger = logging.getLogger(__name__)


def _default_activator(job_type: type) -> Any:
    """인스턴스 메서드용 기본 activator (인자 없는 생성자)"""
    return job_type()


def _split_arguments(parameters: Sequence[inspect.Parameter], values: Sequence[Any]) -> tuple[list, dict]:
    args, kwargs = [], {}
    for parameter, value in zip(parameters, values):
        if parameter.kind is inspect.Parameter.KEYWORD_ONLY:
            kwargs[parameter.name] = value
        else:
            args.append(value)
    return args, kwargs


class DeferredExecutor:
    """Dynamic Job 실행기"""

    def __init__(
        self,
        resolver: BaseTypeResolver | None = None,
        codec: ArgumentCodec | None = None,
        activator: Callable[[type], Any] | None = None,
    ):
        """
        Args:
            resolver: 타입/메서드 resolver (미지정 시 ImportTypeResolver)
            codec: 인자 코덱
            activator: 인스턴스 메서드 실행 시 잡 객체 생성 함수
        """
        self._resolver = resolver or ImportTypeResolver()
        self._codec = codec or ArgumentCodec()
        self._activator = activator or _default_activator

    @staticmethod
    def load_envelope(payload: str | bytes) -> DynamicJobEnvelope:
        """
        스토어에서 받은 payload 파싱

        Raises:
            TargetResolutionError: envelope이 손상된 경우
        """
        try:
            return DynamicJobEnvelope.from_json(payload)
        except ValidationError as e:
            raise TargetResolutionError("<envelope>", reason=f"corrupted envelope ({e.error_count()} errors)")

    async def execute_payload(self, payload: str | bytes, token: CancellationToken | None = None) -> ExecutionOutcome:
        """payload 파싱 후 실행"""
        try:
            envelope = self.load_envelope(payload)
        except TargetResolutionError as e:
            logger.error(f"Cannot load job envelope: {e}")
            return ExecutionOutcome(succeeded=False, error=e)
        return await self.execute(envelope, token)

    async def execute(self, envelope: DynamicJobEnvelope, token: CancellationToken | None = None) -> ExecutionOutcome:
        """
        잡 실행

        Returns:
            ExecutionOutcome: 실행 결과
            (분류되지 않은 예외도 실패 결과로 반환)

        Raises:
            JobCancelledError, asyncio.CancelledError: 취소된 경우
        """
        target = envelope.descriptor.target
        try:
            result = await self.perform(envelope, token)
        except JobCancelledError:
            logger.warning(f"Job execution cancelled: target={target}")
            raise
        except TargetResolutionError as e:
            logger.error(f"Job target resolution failed: {e}")
            return ExecutionOutcome(succeeded=False, error=e)
        except ArgumentDecodingError as e:
            logger.error(f"Job argument decoding failed: target={target}, error={e}")
            return ExecutionOutcome(succeeded=False, error=e)
        except InvocationFailedError as e:
            logger.error(f"Job execution failed: target={target}, error={e.original!r}")
            return ExecutionOutcome(succeeded=False, error=e)
        except Exception as e:
            logger.error(f"Job execution error: target={target}, error={e!r}", exc_info=True)
            return ExecutionOutcome(succeeded=False, error=e)

        logger.info(f"Job execution completed: target={target}")
        return ExecutionOutcome(succeeded=True, result=result)

    async def perform(self, envelope: DynamicJobEnvelope, token: CancellationToken | None = None) -> Any:
        """
        상태 전이를 따라 실행하고 결과를 반환 (실패 시 예외 발생)
        """
        descriptor = envelope.descriptor

        # 1. Resolving
        method = self._resolver.resolve(
            descriptor.target_type_name,
            descriptor.method_name,
            descriptor.parameter_type_signature,
        )

        # 2. Decoding
        arguments = self._decode_arguments(descriptor, method, token)

        # 3. PolicyWrapping
        context = ExecutionContext(
            envelope=envelope,
            method=method,
            arguments=arguments,
            display_name=format_display_name(envelope, arguments),
            token=token,
        )
        pipeline = self._wrap(envelope.policies, context)

        # 4. Invoking
        logger.info(f"Invoking job: name={context.display_name}, target={descriptor.target}")
        try:
            return await pipeline()
        except (JobCancelledError, InvocationFailedError):
            raise
        except Exception as e:
            raise InvocationFailedError(descriptor.target, e) from e

    def _decode_arguments(
        self,
        descriptor: InvocationDescriptor,
        method: MethodInfo,
        token: CancellationToken | None,
    ) -> list[Any]:
        """인코딩된 인자를 현재 메서드의 파라미터 타입으로 디코딩"""
        try:
            types = method.parameter_types()
        except (NameError, TypeError) as e:
            raise ArgumentDecodingError(descriptor.signature, f"Cannot resolve parameter types of {descriptor.target}: {e}")

        current = tuple(type_name(tp) for tp in types)
        if current != descriptor.parameter_type_signature:
            raise ArgumentDecodingError(
                descriptor.signature,
                f"Parameter types of {descriptor.target} changed: "
                f"envelope has {descriptor.signature}, method has ({', '.join(current)})"
            )

        arguments = []
        for encoded, tp in zip(descriptor.encoded_arguments, types):
            value = self._codec.decode(encoded, tp)
            if encoded.kind is ArgumentKind.CANCELLATION:
                value = token if token is not None else CancellationToken()
            arguments.append(value)
        return arguments

    def _wrap(self, policies: Sequence[Policy], context: ExecutionContext) -> Callable:
        """정책을 저장된 순서대로 바깥 -> 안쪽으로 감싸기"""
        pipeline = functools.partial(self._invoke, context)
        for policy in reversed(policies):
            pipeline = functools.partial(policy.around, context, pipeline)
        return pipeline

    async def _invoke(self, context: ExecutionContext) -> Any:
        """대상 메서드 호출 (코루틴은 await, 일반 함수는 스레드에서 실행)"""
        if context.token is not None:
            context.token.throw_if_cancellation_requested()

        method = context.method
        if method.binding == INSTANCE:
            func = getattr(self._activator(method.owner), method.name)
        else:
            func = getattr(method.owner, method.name)

        args, kwargs = _split_arguments(method.parameters, context.arguments)
        if inspect.iscoroutinefunction(method.function):
            return await func(*args, **kwargs)

        result = await asyncio.to_thread(func, *args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result
