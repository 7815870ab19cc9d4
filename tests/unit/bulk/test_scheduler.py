"""Tests for the bounded-concurrency task scheduler."""

import threading
import time
from unittest.mock import Mock

import pytest

from gkeyman.bulk import (
    BackoffExecutor,
    CreateAndProvisionProcessor,
    ProgressReporter,
    ResultAggregator,
    TaskScheduler,
    WorkItemProcessor,
    build_work_items,
)
from gkeyman.bulk.models import Failure, Stage, Success, WorkItem


class ConcurrencyTracker(WorkItemProcessor):
    """Processor that records how many items run at the same time."""

    description = "track"

    def __init__(self, duration=0.02, fail_keys=(), aggregator=None):
        super().__init__(provider=Mock(), aggregator=aggregator or ResultAggregator())
        self.duration = duration
        self.fail_keys = set(fail_keys)
        self.active = 0
        self.max_active = 0
        self.processed = []
        self._lock = threading.Lock()

    def _process(self, item):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.processed.append(item.key)
        time.sleep(self.duration)
        with self._lock:
            self.active -= 1
        if item.key in self.fail_keys:
            return Failure(Stage.CREATION, "scripted failure")
        return Success(detail="ok")


class TestTaskScheduler:
    """Test cases for TaskScheduler."""

    def test_concurrency_limit_is_never_exceeded(self):
        processor = ConcurrencyTracker()
        items = build_work_items([f"p{i}" for i in range(30)])

        result = TaskScheduler(concurrency_limit=4).run(items, processor)

        assert processor.max_active <= 4
        assert result.total == 30
        assert result.success_count == 30
        assert sorted(processor.processed) == sorted(item.key for item in items)

    def test_limit_of_one_runs_sequentially(self):
        processor = ConcurrencyTracker(duration=0.001)
        items = build_work_items(["a", "b", "c", "d"])

        TaskScheduler(concurrency_limit=1).run(items, processor)

        assert processor.max_active == 1
        assert processor.processed == ["a", "b", "c", "d"]

    def test_empty_input_returns_empty_result(self, tmp_path):
        """No items means no outcomes and no output files."""
        pure_file, joined_file = tmp_path / "key.txt", tmp_path / "joined.txt"
        processor = ConcurrencyTracker(
            aggregator=ResultAggregator(pure_key_file=pure_file, joined_key_file=joined_file)
        )
        progress = Mock(spec=ProgressReporter)

        result = TaskScheduler(concurrency_limit=5, progress=progress).run([], processor)

        assert (result.total, result.success_count, result.failure_count) == (0, 0, 0)
        assert processor.processed == []
        progress.start.assert_not_called()
        assert not pure_file.exists()
        assert not joined_file.exists()

    def test_every_item_gets_exactly_one_outcome(self):
        processor = ConcurrencyTracker(fail_keys={"p2", "p5"})
        items = build_work_items([f"p{i}" for i in range(8)])

        result = TaskScheduler(concurrency_limit=3).run(items, processor)

        assert set(result.outcomes) == {item.key for item in items}
        assert result.success_count + result.failure_count == result.total == 8
        assert [key for key, _ in result.failures()] == ["p2", "p5"]
        assert result.degraded

    def test_permanent_failures_do_not_stop_the_batch(
        self, fake_provider, key_aggregator, key_files, sample_work_items, recorded_sleeps
    ):
        """Ten items with two authorization failures give 8 keys and 2 failures."""
        fake_provider.fail("create_resource", "gemini-key-test-003", "PERMISSION_DENIED: nope")
        fake_provider.fail("enable_capability", "gemini-key-test-007", "Permission denied")
        processor = CreateAndProvisionProcessor(
            fake_provider,
            key_aggregator,
            executor=BackoffExecutor(sleep=recorded_sleeps),
            propagation_delay=0,
        )

        result = TaskScheduler(concurrency_limit=3).run(sample_work_items, processor)

        assert result.success_count == 8
        assert result.failure_count == 2
        failures = dict(result.failures())
        assert failures["gemini-key-test-003"].stage is Stage.CREATION
        assert failures["gemini-key-test-007"].stage is Stage.ENABLEMENT
        pure_file, joined_file = key_files
        assert len(pure_file.read_text().splitlines()) == 8
        assert joined_file.read_text().count(",") == 7
        assert recorded_sleeps == []

    def test_unexpected_processor_error_becomes_internal_failure(self):
        processor = Mock(spec=WorkItemProcessor)
        processor.description = "broken"
        processor.process.side_effect = RuntimeError("disk full")
        items = build_work_items(["a", "b"])

        result = TaskScheduler(concurrency_limit=2).run(items, processor)

        assert result.failure_count == 2
        assert all(f.stage is Stage.INTERNAL for _, f in result.failures())
        assert "disk full" in result.outcomes["a"].reason

    def test_progress_is_reported_after_every_completion(self):
        processor = ConcurrencyTracker(duration=0.001, fail_keys={"p1"})
        progress = Mock(spec=ProgressReporter)
        items = build_work_items([f"p{i}" for i in range(5)])

        TaskScheduler(concurrency_limit=2, progress=progress).run(items, processor)

        progress.start.assert_called_once_with(5)
        assert progress.report.call_count == 5
        completed = [c.args[0] for c in progress.report.call_args_list]
        assert completed == [1, 2, 3, 4, 5]
        last = progress.report.call_args_list[-1]
        assert last.args == (5, 5)
        assert last.kwargs == {"succeeded": 4, "failed": 1}
        progress.finish.assert_called_once()

    def test_launch_delay_between_launches(self, recorded_sleeps):
        processor = ConcurrencyTracker(duration=0)
        items = build_work_items(["a", "b", "c"])

        TaskScheduler(concurrency_limit=3, launch_delay=0.5, sleep=recorded_sleeps).run(
            items, processor
        )

        assert recorded_sleeps == [0.5, 0.5]

    def test_result_timing(self):
        result = TaskScheduler(concurrency_limit=2).run(
            build_work_items(["a", "b"]), ConcurrencyTracker(duration=0.01)
        )

        assert result.start_time is not None
        assert result.end_time >= result.start_time
        assert result.duration >= 0

    def test_duplicate_keys_are_rejected(self):
        items = [WorkItem("a", 1, 2), WorkItem("a", 2, 2)]

        with pytest.raises(ValueError):
            TaskScheduler().run(items, ConcurrencyTracker())

    def test_invalid_concurrency_limit(self):
        with pytest.raises(ValueError):
            TaskScheduler(concurrency_limit=0)
