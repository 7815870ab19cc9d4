"""Tests for bulk operation data models."""

import pytest

from gkeyman.bulk.models import BatchResult, Failure, QuotaPlan, Stage, Success, WorkItem


class TestOutcomes:
    """Test cases for Success and Failure."""

    def test_success_defaults(self):
        outcome = Success()

        assert outcome.is_success
        assert outcome.payload is None
        assert outcome.count == 0

    def test_failure(self):
        outcome = Failure(Stage.ENABLEMENT, "service unavailable")

        assert not outcome.is_success
        assert outcome.stage.value == "enablement"
        assert outcome.succeeded is None

    def test_outcomes_are_immutable(self):
        with pytest.raises(AttributeError):
            Success().payload = "x"

    def test_stage_values(self):
        assert Stage.CREDENTIAL_ISSUANCE.value == "credential-issuance"
        assert Stage("deletion") is Stage.DELETION


class TestBatchResult:
    """Test cases for BatchResult."""

    @pytest.fixture
    def result(self):
        return BatchResult(
            total=4,
            outcomes={
                "d": Success(payload="k-d"),
                "b": Failure(Stage.CREATION, "quota"),
                "a": Success(),
                "c": Failure(Stage.DELETION, "locked", succeeded=1),
            },
            duration=8.0,
        )

    def test_counts_come_from_outcomes(self, result):
        assert result.success_count == 2
        assert result.failure_count == 2
        assert result.success_count + result.failure_count == result.total

    def test_success_rate(self, result):
        assert result.success_rate == 50.0
        assert BatchResult(total=0).success_rate == 0.0

    def test_degraded(self, result):
        assert result.degraded
        assert not BatchResult(total=1, outcomes={"a": Success()}).degraded

    def test_failures_sorted_by_key(self, result):
        assert [key for key, _ in result.failures()] == ["b", "c"]

    def test_payloads(self, result):
        assert result.payloads() == ["k-d"]

    def test_empty_result(self):
        result = BatchResult(total=0)
        assert (result.success_count, result.failure_count) == (0, 0)
        assert result.failures() == []


class TestWorkItemAndQuotaPlan:
    """Test cases for WorkItem and QuotaPlan."""

    def test_label(self):
        assert WorkItem("p", 3, 20).label == "[3/20]"

    def test_quota_plan_clamped(self):
        plan = QuotaPlan(requested=175, limit=12, resolved=12)
        assert plan.clamped
        assert plan.limit_known

    def test_quota_plan_unknown_limit(self):
        plan = QuotaPlan(requested=5, limit=None, resolved=5)
        assert not plan.clamped
        assert not plan.limit_known
