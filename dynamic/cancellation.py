"""
협조적 취소 토큰

잡 메서드 파라미터를 CancellationToken으로 선언하면, 등록 시점에는 자리표시자로
인코딩되고 실행 시점에 워커가 관리하는 실제 토큰이 주입됩니다.
동기 메서드는 스레드에서 실행되므로 threading.Event를 사용합니다.
"""

import threading

from dynamic.exception import JobCancelledError


class CancellationToken:
    """잡 실행 취소 토큰"""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """취소 요청"""
        self._event.set()

    @property
    def is_cancellation_requested(self) -> bool:
        return self._event.is_set()

    def throw_if_cancellation_requested(self) -> None:
        """취소가 요청되었으면 JobCancelledError 발생"""
        if self._event.is_set():
            raise JobCancelledError()

    def wait(self, timeout: float | None = None) -> bool:
        """취소 요청까지 대기 (동기 메서드용)"""
        return self._event.wait(timeout)
