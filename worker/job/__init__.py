"""
잡 모듈 패키지

worker.resolver가 registry인 경우, 여기 등록된 타입만 실행됩니다.

    from worker.job import registry

    @registry.register
    class MyJob:
        ...
"""
from dynamic.resolver import JobTypeRegistry

registry = JobTypeRegistry()
