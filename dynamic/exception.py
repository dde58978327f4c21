"""
Dynamic Job 관련 예외 클래스 정의
"""


class DynamicJobError(Exception):
    """Dynamic Job 기본 예외"""
    pass


class InvalidArgumentError(DynamicJobError):
    """필수 입력 누락 또는 잘못된 호출 정의"""
    def __init__(self, name: str, message: str = None):
        self.name = name
        self.message = message or f"Invalid argument: {name}"
        super().__init__(self.message)


class EncodingError(DynamicJobError):
    """인자 인코딩 실패 (값과 정적 타입 불일치)"""
    def __init__(self, type_name: str, message: str = None):
        self.type_name = type_name
        self.message = message or f"Failed to encode argument of type {type_name}"
        super().__init__(self.message)


class UnsupportedTypeError(EncodingError):
    """인코딩을 지원하지 않는 타입"""
    def __init__(self, type_name: str):
        super().__init__(type_name, f"Unsupported argument type: {type_name}")


class ArgumentDecodingError(DynamicJobError):
    """인코딩된 인자가 대상 메서드의 파라미터 타입과 맞지 않음"""
    def __init__(self, type_name: str, message: str = None):
        self.type_name = type_name
        self.message = message or f"Failed to decode argument as {type_name}"
        super().__init__(self.message)


class PolicyResolutionError(DynamicJobError):
    """정책 마커 조회 실패"""
    def __init__(self, target: str, reason: str):
        self.target = target
        self.reason = reason
        self.message = f"Failed to resolve policies for {target}: {reason}"
        super().__init__(self.message)


class TargetResolutionError(DynamicJobError):
    """실행 시점에 타입/메서드를 찾을 수 없음 (배포 코드 불일치, 손상된 envelope 포함)"""
    def __init__(self, type_name: str, method_name: str | None = None, reason: str = None):
        self.type_name = type_name
        self.method_name = method_name
        self.reason = reason
        target = f"{type_name}.{method_name}" if method_name else type_name
        self.message = f"Job target not found: {target}"
        if reason:
            self.message = f"{self.message} ({reason})"
        super().__init__(self.message)


class InvocationFailedError(DynamicJobError):
    """잡 메서드 실행 실패 (원본 예외 보존)"""
    def __init__(self, target: str, original: BaseException):
        self.target = target
        self.original = original
        self.message = f"Job invocation failed: {target}: {type(original).__name__}: {original}"
        super().__init__(self.message)


class JobCancelledError(DynamicJobError):
    """협조적 취소 요청으로 잡 실행 중단 (실패로 취급하지 않음)"""
    def __init__(self, message: str = None):
        self.message = message or "Job execution was cancelled"
        super().__init__(self.message)
