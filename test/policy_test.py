"""
정책 마커 / PolicyAggregator 테스트

테스트 항목:
1. 데코레이터 선언 순서 유지
2. 집계 순서: 호출자 -> 타입 -> 메서드, 중복 유지
3. 상속 계층 (하위 타입 먼저)
4. 같은 입력에 대해 같은 결과 (결정적)
5. PolicyRegistry (명시적 등록)
6. 잘못된 정책/마커 처리

실행: python -m pytest test/policy_test.py -v
"""

import sys
from pathlib import Path

import pytest

# 프로젝트 루트 경로 추가
sys.path.insert(0, str(Path(__file__).parent.parent))

from dynamic.exception import InvalidArgumentError, PolicyResolutionError
from dynamic.interfaces import BaseMarkerResolver
from dynamic.model.policy import QueuePolicy, TimeoutPolicy
from dynamic.policy import (
    DeclaredMarkerResolver,
    PolicyAggregator,
    PolicyRegistry,
    declared_policies,
    display_name,
    queue,
    queue_policy,
    timeout,
)
from worker.job.newsletter import NewsletterJob


@queue("reports")
@timeout(30)
class ReportJob:

    @timeout(5)
    @queue("reports")
    def build(self) -> None:
        pass

    @staticmethod
    @queue("static-q")
    def static_build() -> None:
        pass

    def plain(self) -> None:
        pass


@queue("derived")
class DerivedReportJob(ReportJob):

    @display_name("Derived build")
    def build(self) -> None:
        pass


class ExternalJob:
    def run(self) -> None:
        pass


class BrokenResolver(BaseMarkerResolver):
    def type_policies(self, target_type):
        raise RuntimeError("marker store unavailable")

    def method_policies(self, target_type, method_name):
        return []

    def display_name(self, target_type, method_name):
        return None


class TestMarkers:
    """데코레이터 마커"""

    def test_declaration_order_preserved(self):
        """위에서 아래로 선언한 순서대로 저장됨"""
        resolver = DeclaredMarkerResolver()
        assert resolver.type_policies(ReportJob) == [QueuePolicy(queue="reports"), TimeoutPolicy(seconds=30)]
        assert resolver.method_policies(ReportJob, "build") == [TimeoutPolicy(seconds=5), QueuePolicy(queue="reports")]

    def test_staticmethod_marker(self):
        resolver = DeclaredMarkerResolver()
        assert resolver.method_policies(ReportJob, "static_build") == [QueuePolicy(queue="static-q")]

    def test_display_name_marker(self):
        resolver = DeclaredMarkerResolver()
        assert resolver.display_name(NewsletterJob, "send_digest") == "Daily digest"
        assert resolver.display_name(ReportJob, "plain") is None

    def test_invalid_queue_name(self):
        with pytest.raises(InvalidArgumentError):
            queue("Not Valid")
        with pytest.raises(InvalidArgumentError):
            queue_policy("")

    def test_invalid_timeout(self):
        with pytest.raises(InvalidArgumentError):
            timeout(0)


class TestAggregation:
    """PolicyAggregator 집계"""

    def test_order_caller_type_method(self):
        caller = [QueuePolicy(queue="urgent")]
        policies = PolicyAggregator().aggregate(ReportJob, "build", caller)

        assert policies == [
            QueuePolicy(queue="urgent"),
            QueuePolicy(queue="reports"),
            TimeoutPolicy(seconds=30),
            TimeoutPolicy(seconds=5),
            QueuePolicy(queue="reports"),
        ]

    def test_duplicates_preserved(self):
        """같은 정책이 여러 레벨에 있어도 제거하지 않음"""
        policies = PolicyAggregator().aggregate(ReportJob, "build")
        assert policies.count(QueuePolicy(queue="reports")) == 2

    def test_inheritance_derived_first(self):
        policies = PolicyAggregator().aggregate(DerivedReportJob, "build")

        # 타입 레벨: Derived -> Base, 메서드 레벨: Derived.build(없음) -> ReportJob.build
        assert policies == [
            QueuePolicy(queue="derived"),
            QueuePolicy(queue="reports"),
            TimeoutPolicy(seconds=30),
            TimeoutPolicy(seconds=5),
            QueuePolicy(queue="reports"),
        ]
        assert PolicyAggregator().display_name(DerivedReportJob, "build") == "Derived build"

    def test_deterministic(self):
        """같은 입력이면 같은 결과"""
        aggregator = PolicyAggregator()
        first = aggregator.aggregate(ReportJob, "build", [TimeoutPolicy(seconds=1)])
        second = aggregator.aggregate(ReportJob, "build", [TimeoutPolicy(seconds=1)])
        assert first == second

    def test_no_policies(self):
        assert PolicyAggregator().aggregate(ExternalJob, "run") == []

    def test_caller_policy_type_checked(self):
        with pytest.raises(InvalidArgumentError):
            PolicyAggregator().aggregate(ReportJob, "build", ["reports"])

    def test_resolver_failure(self):
        """마커 조회 실패는 PolicyResolutionError"""
        with pytest.raises(PolicyResolutionError) as exc_info:
            PolicyAggregator(BrokenResolver()).aggregate(ReportJob, "build")
        assert "marker store unavailable" in exc_info.value.reason

    def test_declared_policies_helper(self):
        assert declared_policies(NewsletterJob, "send") == [QueuePolicy(queue="newsletter")]


class TestPolicyRegistry:
    """명시적 정책 등록"""

    def test_register_type_and_method(self):
        registry = PolicyRegistry()
        registry.register(ExternalJob, QueuePolicy(queue="external"))
        registry.register(ExternalJob, TimeoutPolicy(seconds=10), method="run", display_name="External run")

        aggregator = PolicyAggregator(registry)
        assert aggregator.aggregate(ExternalJob, "run") == [
            QueuePolicy(queue="external"),
            TimeoutPolicy(seconds=10),
        ]
        assert aggregator.display_name(ExternalJob, "run") == "External run"

    def test_register_rejects_non_policy(self):
        registry = PolicyRegistry()
        with pytest.raises(TypeError):
            registry.register(ExternalJob, "external")
