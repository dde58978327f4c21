"""
즉시 실행 잡 등록 모듈

메서드 호출을 Dynamic Job envelope으로 변환해 잡 스토어에 바로 넣습니다.
"""

import logging
from typing import Sequence

from dynamic.codec import ArgumentCodec
from dynamic.envelope import create_dynamic_job
from dynamic.exception import InvalidArgumentError
from dynamic.interfaces import BaseJobStore
from dynamic.invocation import MethodCall
from dynamic.model.envelope import DynamicJobEnvelope
from dynamic.model.policy import Policy
from dynamic.policy import PolicyAggregator, queue_policy

logger = logging.getLogger(__name__)


class DynamicJobClient:
    """Dynamic Job 즉시 등록 클라이언트"""

    def __init__(
        self,
        store: BaseJobStore,
        aggregator: PolicyAggregator | None = None,
        codec: ArgumentCodec | None = None,
    ):
        if store is None:
            raise InvalidArgumentError("store", "Job store must not be None")
        self._store = store
        self._aggregator = aggregator or PolicyAggregator()
        self._codec = codec

    def enqueue(
        self,
        job: MethodCall | DynamicJobEnvelope,
        policies: Sequence[Policy] | None = None,
        queue: str | None = None,
    ) -> str:
        """
        잡 등록

        Returns:
            잡 스토어가 발급한 잡 ID

        Raises:
            InvalidArgumentError: 미리 만든 envelope에 policies/queue를 함께 지정한 경우
        """
        if job is None:
            raise InvalidArgumentError("job", "Job must not be None")

        if isinstance(job, DynamicJobEnvelope):
            if policies:
                raise InvalidArgumentError("policies", "Policies cannot be combined with a pre-built envelope")
            if queue is not None:
                raise InvalidArgumentError("queue", "Queue cannot be combined with a pre-built envelope")
            envelope = job
        else:
            caller_policies = list(policies or ())
            if queue is not None:
                caller_policies.insert(0, queue_policy(queue))
            envelope = create_dynamic_job(job, caller_policies, self._aggregator, self._codec)

        job_id = self._store.enqueue(envelope)
        logger.info(f"Dynamic job enqueued: id={job_id}, target={envelope.descriptor.target}, queue={envelope.queue}")
        return job_id


def enqueue_dynamic(
    store: BaseJobStore,
    job: MethodCall | DynamicJobEnvelope,
    policies: Sequence[Policy] | None = None,
    queue: str | None = None,
) -> str:
    """DynamicJobClient 단축 함수"""
    return DynamicJobClient(store).enqueue(job, policies, queue=queue)
