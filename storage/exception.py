"""
Storage 관련 예외 클래스 정의
"""


class StorageError(Exception):
    """Storage 기본 예외"""
    pass


class JobNotFoundError(StorageError):
    """잡을 찾을 수 없음"""
    def __init__(self, job_id: str):
        self.job_id = job_id
        self.message = f"Job not found: {job_id}"
        super().__init__(self.message)


class InvalidJobStateError(StorageError):
    """현재 상태에서 허용되지 않는 전이"""
    def __init__(self, job_id: str, state: str, expected: str):
        self.job_id = job_id
        self.state = state
        self.expected = expected
        self.message = f"Job {job_id} is {state}, expected {expected}"
        super().__init__(self.message)
