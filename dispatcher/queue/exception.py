"""Queue Dispatcher 예외"""


class QueueDispatcherError(Exception):
    """QueueDispatcher 기본 예외"""
    pass


class QueueConnectionError(QueueDispatcherError):
    """큐 연결 실패"""
    pass


class MessageParseError(QueueDispatcherError):
    """메시지 파싱 실패 (손상된 envelope)"""
    def __init__(self, message: str, raw_data: str):
        super().__init__(f"{message}: {raw_data}")
        self.raw_data = raw_data
