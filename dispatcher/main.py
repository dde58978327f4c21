"""
Dispatcher: 크론 기반 Dynamic Job 등록 모듈

반복 스케줄 저장소를 주기적으로 폴링하여 실행 시점에 도달한 항목의
envelope을 잡 스토어에 등록합니다. 크론 표현식은 항목의 타임존으로 해석합니다.

실행 방법:
    python main.py dispatcher
"""

import asyncio
import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from croniter import croniter

from dispatcher.exception import (
    CronIntervalTooShortError,
    CronParseError,
    EnqueueError,
)
from dispatcher.model.dispatcher import DispatcherConfig
from dynamic.interfaces import BaseJobStore, BaseScheduleStore
from dynamic.model.recurring import RecurringScheduleEntry

logger = logging.getLogger(__name__)


class Dispatcher:
    """
    크론 기반 Job Dispatcher

    같은 예정 시각에 대해서는 한 번만 등록합니다 (BaseScheduleStore.try_trigger).
    """

    def __init__(self, config: DispatcherConfig, scheduler: BaseScheduleStore, store: BaseJobStore):
        """
        Args:
            config: Dispatcher 설정
            scheduler: 반복 스케줄 저장소
            store: envelope을 등록할 잡 스토어
        """
        self._config = config
        self._scheduler = scheduler
        self._store = store
        self._running = False
        self._stop_event: asyncio.Event | None = None

    async def start(self) -> None:
        """Dispatcher 메인 루프 시작"""
        if self._running:
            logger.warning("Dispatcher is already running")
            return

        self._running = True
        self._stop_event = asyncio.Event()

        logger.info(
            f"Dispatcher started (poll_interval={self._config.poll_interval_seconds}s, "
            f"max_sleep={self._config.max_sleep_seconds}s)"
        )

        try:
            await self._main_loop()
        except asyncio.CancelledError:
            logger.info("Dispatcher cancelled")
        except Exception as e:
            logger.error(f"Dispatcher error: {e}", exc_info=True)
            raise
        finally:
            self._running = False
            logger.info("Dispatcher stopped")

    async def stop(self) -> None:
        """Dispatcher graceful shutdown"""
        if not self._running:
            return

        logger.info("Stopping dispatcher...")
        self._running = False
        if self._stop_event:
            self._stop_event.set()

    async def _main_loop(self) -> None:
        """메인 루프: 스케줄 폴링 및 envelope 등록"""
        while self._running:
            try:
                entries = self._scheduler.entries()
                logger.debug(f"Polled {len(entries)} recurring entries")

                now = datetime.now(timezone.utc)
                for entry in entries:
                    self.process_entry(entry, now)

                sleep_seconds = self._calculate_next_sleep(entries)
                await self._sleep(sleep_seconds)

            except Exception as e:
                logger.error(f"Unexpected error in main loop: {e}", exc_info=True)
                await self._sleep(self._config.poll_interval_seconds)

    async def _sleep(self, seconds: float) -> None:
        """인터럽트 가능한 sleep"""
        if self._stop_event:
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=seconds
                )
            except asyncio.TimeoutError:
                pass

    def process_entry(self, entry: RecurringScheduleEntry, now: datetime) -> str | None:
        """
        개별 반복 스케줄 처리

        Returns:
            등록된 잡 ID (등록하지 않았으면 None)
        """
        try:
            self._validate_cron_interval(entry.cron_expression)

            should_run, scheduled_time = self._should_run(entry, now)
            if not (should_run and scheduled_time):
                return None

            if not self._scheduler.try_trigger(entry.id, scheduled_time):
                logger.debug(
                    f"Recurring job already enqueued: id={entry.id}, "
                    f"scheduled_time={scheduled_time.isoformat()}"
                )
                return None

            job_id = self._enqueue(entry, scheduled_time)
            logger.info(
                f"Enqueued recurring job: id={entry.id}, job_id={job_id}, "
                f"target={entry.envelope.descriptor.target}, scheduled_time={scheduled_time.isoformat()}"
            )
            return job_id

        except CronParseError as e:
            logger.error(f"Cron parse error for recurring job '{entry.id}': {e}")

        except CronIntervalTooShortError as e:
            logger.warning(f"Cron interval too short for recurring job '{entry.id}': {e}")

        except EnqueueError as e:
            logger.error(f"Enqueue error for recurring job '{entry.id}': {e}")

        except Exception as e:
            # 개별 항목 에러는 격리하여 다른 항목 처리에 영향을 주지 않음
            logger.error(f"Error processing recurring job '{entry.id}': {e}", exc_info=True)

        return None

    def _should_run(self, entry: RecurringScheduleEntry, now: datetime) -> tuple[bool, datetime | None]:
        """
        크론 실행 여부 판단 (항목 타임존 기준)

        Returns:
            (실행 여부, 예정 실행 시간)
        """
        try:
            local_now = now.astimezone(ZoneInfo(entry.options.time_zone))
            cron = croniter(entry.cron_expression, local_now)

            # 직전 실행 시점 계산
            prev_time = cron.get_prev(datetime)

            # 직전 실행 시점이 poll_interval 이내인지 확인
            diff_seconds = (local_now - prev_time).total_seconds()

            logger.debug(
                f"_should_run: id={entry.id}, now={local_now}, prev_time={prev_time}, "
                f"diff_seconds={diff_seconds}, poll_interval={self._config.poll_interval_seconds}"
            )

            if diff_seconds <= self._config.poll_interval_seconds:
                return True, prev_time

            return False, None

        except Exception as e:
            raise CronParseError(entry.cron_expression, str(e))

    def _validate_cron_interval(self, cron_expression: str) -> None:
        """
        크론 간격 검증 (초단위 크론 차단)

        Raises:
            CronIntervalTooShortError: 간격이 min_cron_interval_seconds 미만인 경우
        """
        try:
            now = datetime.now(timezone.utc)
            cron = croniter(cron_expression, now)

            # 다음 두 실행 시점의 간격 계산
            next1 = cron.get_next(datetime)
            next2 = cron.get_next(datetime)

            interval_seconds = (next2 - next1).total_seconds()

            if interval_seconds < self._config.min_cron_interval_seconds:
                raise CronIntervalTooShortError(
                    cron_expression,
                    interval_seconds,
                    self._config.min_cron_interval_seconds
                )

        except CronIntervalTooShortError:
            raise
        except Exception as e:
            raise CronParseError(cron_expression, str(e))

    def _enqueue(self, entry: RecurringScheduleEntry, scheduled_time: datetime) -> str:
        """envelope을 잡 스토어에 등록 (매 실행마다 같은 envelope)"""
        try:
            return self._store.enqueue(entry.envelope)
        except Exception as e:
            raise EnqueueError(entry.id, scheduled_time.isoformat(), str(e))

    def _calculate_next_sleep(self, entries: list[RecurringScheduleEntry]) -> float:
        """
        다음 실행까지의 대기 시간 계산

        모든 항목 중 가장 빨리 실행될 시간까지의 간격을 계산하되,
        max_sleep_seconds를 초과하지 않음
        """
        if not entries:
            return self._config.poll_interval_seconds

        now = datetime.now(timezone.utc)
        min_wait = float(self._config.max_sleep_seconds)

        for entry in entries:
            try:
                local_now = now.astimezone(ZoneInfo(entry.options.time_zone))
                next_time = croniter(entry.cron_expression, local_now).get_next(datetime)
                wait_seconds = (next_time - local_now).total_seconds()

                if wait_seconds > 0:
                    min_wait = min(min_wait, wait_seconds)

            except Exception as e:
                logger.debug(f"Error calculating next run for '{entry.id}': {e}")
                continue

        # poll_interval_seconds ~ max_sleep_seconds 범위로 제한
        sleep_time = max(
            self._config.poll_interval_seconds,
            min(min_wait, self._config.max_sleep_seconds)
        )

        logger.debug(f"Next sleep: {sleep_time:.1f}s")
        return sleep_time

    @property
    def is_running(self) -> bool:
        """실행 중 여부"""
        return self._running
