"""
반복 잡 등록 모듈

메서드 호출(또는 미리 만든 envelope)을 크론 표현식과 함께 외부 반복 스케줄러에
등록합니다. 같은 ID로 다시 등록하면 기존 항목을 교체합니다 (upsert).

사용 예시:
    registrar = RecurringJobRegistrar(scheduler)
    registrar.add_or_update(
        "daily-digest",
        MethodCall.of(NewsletterJob.send_digest),
        "0 6 * * *",
    )
"""

import logging
from typing import Any

from dynamic.codec import ArgumentCodec
from dynamic.envelope import create_dynamic_job
from dynamic.exception import InvalidArgumentError
from dynamic.interfaces import BaseRecurringScheduler
from dynamic.invocation import MethodCall
from dynamic.model.envelope import DynamicJobEnvelope
from dynamic.model.recurring import DynamicRecurringJobOptions, RecurringJobOptions
from dynamic.policy import PolicyAggregator, queue_policy

logger = logging.getLogger(__name__)


class RecurringJobRegistrar:
    """반복 스케줄 등록기"""

    def __init__(
        self,
        manager: BaseRecurringScheduler,
        aggregator: PolicyAggregator | None = None,
        codec: ArgumentCodec | None = None,
    ):
        if manager is None:
            raise InvalidArgumentError("manager", "Recurring scheduler must not be None")
        self._manager = manager
        self._aggregator = aggregator or PolicyAggregator()
        self._codec = codec

    def upsert(
        self,
        recurring_job_id: str,
        envelope: DynamicJobEnvelope,
        cron_expression: str,
        options: RecurringJobOptions | None = None,
    ) -> None:
        """
        미리 만든 envelope 등록 (같은 ID면 교체)

        Raises:
            InvalidArgumentError: id/envelope/cron 누락
        """
        if not recurring_job_id:
            raise InvalidArgumentError("recurring_job_id", "Recurring job id must not be empty")
        if envelope is None:
            raise InvalidArgumentError("envelope", "Envelope must not be None")
        if not cron_expression:
            raise InvalidArgumentError("cron_expression", "Cron expression must not be empty")

        options = options or RecurringJobOptions()
        self._manager.upsert(recurring_job_id, cron_expression, envelope, options)
        logger.info(
            f"Recurring job registered: id={recurring_job_id}, cron={cron_expression}, "
            f"target={envelope.descriptor.target}, queue={envelope.queue}"
        )

    def add_or_update(
        self,
        recurring_job_id: str,
        job: MethodCall | DynamicJobEnvelope,
        cron_expression: str,
        options: RecurringJobOptions | None = None,
        queue: str | None = None,
    ) -> DynamicJobEnvelope:
        """
        메서드 호출을 Dynamic Job으로 변환하여 등록

        Args:
            recurring_job_id: 호출자가 정하는 고정 ID
            job: 캡처된 메서드 호출 또는 envelope
            cron_expression: 크론 표현식 (해석은 스케줄러 담당)
            options: 스케줄 옵션 (DynamicRecurringJobOptions.policies는 호출자 정책)
            queue: 지정 시 가장 앞의 큐 라우팅 정책으로 추가

        Returns:
            등록된 envelope

        Raises:
            InvalidArgumentError, EncodingError, PolicyResolutionError
        """
        if not recurring_job_id:
            raise InvalidArgumentError("recurring_job_id", "Recurring job id must not be empty")
        if job is None:
            raise InvalidArgumentError("job", "Job must not be None")
        if not cron_expression:
            raise InvalidArgumentError("cron_expression", "Cron expression must not be empty")
        if queue is not None and not queue:
            raise InvalidArgumentError("queue", "Queue must not be empty")

        if isinstance(job, DynamicJobEnvelope):
            if queue is not None:
                raise InvalidArgumentError("queue", "Queue cannot be combined with a pre-built envelope")
            envelope = job
        else:
            caller_policies = list(options.policies) if isinstance(options, DynamicRecurringJobOptions) else []
            if queue is not None:
                caller_policies.insert(0, queue_policy(queue))
            envelope = create_dynamic_job(job, caller_policies, self._aggregator, self._codec)

        self.upsert(recurring_job_id, envelope, cron_expression, options)
        return envelope


def add_or_update_dynamic(
    manager: BaseRecurringScheduler,
    recurring_job_id: str,
    job: MethodCall | DynamicJobEnvelope,
    cron_expression: str,
    options: RecurringJobOptions | None = None,
    queue: str | None = None,
    **kwargs: Any,
) -> DynamicJobEnvelope:
    """RecurringJobRegistrar 단축 함수 (kwargs는 RecurringJobRegistrar 생성 인자)"""
    registrar = RecurringJobRegistrar(manager, **kwargs)
    return registrar.add_or_update(recurring_job_id, job, cron_expression, options, queue=queue)
