"""
QueueDispatcher: 큐 기반 Dynamic Job 등록 모듈

외부 큐(Kafka 등)에서 직렬화된 Dynamic Job envelope을 수신하여
잡 스토어에 등록합니다. 다른 서비스가 envelope을 만들어 토픽으로 보내는 경우에 사용합니다.

실행 방법:
    python main.py queue_dispatcher
"""

import asyncio
import logging

from pydantic import ValidationError

from dispatcher.queue.adapter.base import BaseQueueAdapter
from dispatcher.queue.adapter.kafka import KafkaAdapter
from dispatcher.queue.exception import MessageParseError, QueueConnectionError
from dispatcher.queue.model.queue import QueueDispatcherConfig, QueueMessage
from dynamic.interfaces import BaseJobStore
from dynamic.model.envelope import DynamicJobEnvelope

logger = logging.getLogger(__name__)


class QueueDispatcher:
    """
    큐 기반 Job Dispatcher

    손상된 envelope은 잡 스토어에 넣지 않고 abandon 처리합니다.
    """

    def __init__(
        self,
        config: QueueDispatcherConfig,
        store: BaseJobStore,
        adapter: BaseQueueAdapter | None = None,
    ):
        """
        Args:
            config: QueueDispatcher 설정
            store: envelope을 등록할 잡 스토어
            adapter: 큐 어댑터 (미지정 시 KafkaAdapter 사용)
        """
        self._config = config
        self._store = store
        self._adapter = adapter or KafkaAdapter(config)
        self._running = False
        self._stop_event: asyncio.Event | None = None

    async def start(self) -> None:
        """QueueDispatcher 메인 루프 시작"""
        if self._running:
            logger.warning("QueueDispatcher is already running")
            return

        self._running = True
        self._stop_event = asyncio.Event()

        # 큐 연결
        try:
            await self._adapter.connect()
        except Exception as e:
            self._running = False
            raise QueueConnectionError(f"Failed to connect to queue: {e}")

        logger.info("QueueDispatcher started")

        try:
            await self._main_loop()
        except asyncio.CancelledError:
            logger.info("QueueDispatcher cancelled")
        except Exception as e:
            logger.error(f"QueueDispatcher error: {e}", exc_info=True)
            raise
        finally:
            await self._adapter.disconnect()
            self._running = False
            logger.info("QueueDispatcher stopped")

    async def stop(self) -> None:
        """QueueDispatcher graceful shutdown"""
        if not self._running:
            return

        logger.info("Stopping QueueDispatcher...")
        self._running = False
        if self._stop_event:
            self._stop_event.set()
        # consumer 강제 종료 (async for 루프 탈출)
        await self._adapter.disconnect()

    async def _main_loop(self) -> None:
        """메인 루프: 큐 메시지 수신 및 envelope 등록"""
        async for message in self._adapter.receive():
            if not self._running:
                break

            try:
                self.process_message(message)
                await self._adapter.complete(message)
            except Exception as e:
                logger.error(f"Failed to process message: {e}", exc_info=True)
                await self._adapter.abandon(message)

    def process_message(self, message: QueueMessage) -> str:
        """
        메시지 처리

        Returns:
            잡 스토어가 발급한 잡 ID

        Raises:
            MessageParseError: envelope 파싱 실패
        """
        try:
            envelope = DynamicJobEnvelope.from_json(message.payload)
        except ValidationError as e:
            raise MessageParseError(f"Corrupted envelope ({e.error_count()} errors)", message.payload[:200])

        job_id = self._store.enqueue(envelope)
        logger.info(
            f"Enqueued envelope from queue: job_id={job_id}, key={message.key}, "
            f"target={envelope.descriptor.target}, queue={envelope.queue}"
        )
        return job_id

    @property
    def is_running(self) -> bool:
        """실행 중 여부"""
        return self._running
