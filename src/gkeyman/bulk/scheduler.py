"""Bounded-concurrency scheduling of work items.

``TaskScheduler`` launches one worker task per work item and never keeps
more than ``concurrency_limit`` of them in flight. When the limit is reached
it waits for whichever task finishes first before launching the next one,
then drains the remaining tasks the same way. Completion order is never
assumed.

Classes:
    TaskScheduler: Runs a processor over a list of work items
"""

import logging
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, Optional, Sequence, Set

from .models import BatchResult, Failure, OperationOutcome, Stage, WorkItem
from .processors import WorkItemProcessor
from .progress import ProgressReporter

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY_LIMIT = 20


class TaskScheduler:
    """Runs work items through a processor with a hard cap on parallelism."""

    def __init__(
        self,
        concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT,
        progress: Optional[ProgressReporter] = None,
        launch_delay: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the scheduler.

        Args:
            concurrency_limit: Maximum number of items processed at the same time
            progress: Optional reporter updated after every completion
            launch_delay: Pause in seconds between two task launches
            sleep: Function used for the launch pause
        """
        if concurrency_limit < 1:
            raise ValueError(f"concurrency_limit must be at least 1, got {concurrency_limit}")
        self.concurrency_limit = concurrency_limit
        self.progress = progress
        self.launch_delay = launch_delay
        self._sleep = sleep

    def run(self, work_items: Sequence[WorkItem], processor: WorkItemProcessor) -> BatchResult:
        """Process every work item and return the aggregate result.

        A failed item is recorded as data and never stops the batch.

        Args:
            work_items: Items to process, launched in this order
            processor: Processor applied to each item

        Returns:
            BatchResult with exactly one outcome per item
        """
        total = len(work_items)
        if len({item.key for item in work_items}) != total:
            raise ValueError("work item keys must be unique")
        if total == 0:
            logger.info("No work items, nothing to %s", processor.description)
            return BatchResult(total=0)

        start_time = time.time()
        result = BatchResult(total=total, start_time=start_time)
        pending: Dict[Future, WorkItem] = {}
        in_flight: Set[Future] = set()

        logger.info(
            "Starting '%s' for %d items (at most %d in parallel)",
            processor.description,
            total,
            self.concurrency_limit,
        )
        if self.progress is not None:
            self.progress.start(total)

        try:
            with ThreadPoolExecutor(
                max_workers=self.concurrency_limit, thread_name_prefix="gkeyman-worker"
            ) as executor:
                for index, item in enumerate(work_items):
                    future = executor.submit(self._run_isolated, processor, item)
                    pending[future] = item
                    in_flight.add(future)

                    if len(in_flight) >= self.concurrency_limit:
                        in_flight = self._collect_first(in_flight, pending, result)

                    if self.launch_delay > 0 and index < total - 1:
                        self._sleep(self.launch_delay)

                logger.info(
                    "All %d tasks launched, waiting for %d remaining", total, len(in_flight)
                )
                while in_flight:
                    in_flight = self._collect_first(in_flight, pending, result)
        finally:
            if self.progress is not None:
                self.progress.finish()

        result.end_time = time.time()
        result.duration = result.end_time - start_time
        logger.info(
            "Finished '%s': %d succeeded, %d failed, %d total",
            processor.description,
            result.success_count,
            result.failure_count,
            result.total,
        )
        return result

    def _collect_first(
        self, in_flight: Set[Future], pending: Dict[Future, WorkItem], result: BatchResult
    ) -> Set[Future]:
        """Block until at least one in-flight task finishes and record it.

        Returns:
            The tasks still in flight
        """
        done, not_done = wait(in_flight, return_when=FIRST_COMPLETED)
        for future in done:
            item = pending.pop(future)
            try:
                outcome = future.result()
            except Exception as e:
                # _run_isolated already converts errors; this only guards the executor itself
                outcome = Failure(Stage.INTERNAL, f"worker error: {e}")
            self._record(item, outcome, result)
        return set(not_done)

    def _record(self, item: WorkItem, outcome: OperationOutcome, result: BatchResult) -> None:
        result.outcomes[item.key] = outcome
        if self.progress is not None:
            self.progress.report(
                len(result.outcomes),
                result.total,
                succeeded=result.success_count,
                failed=result.failure_count,
            )

    @staticmethod
    def _run_isolated(processor: WorkItemProcessor, item: WorkItem) -> OperationOutcome:
        """Run the processor so that any error becomes this item's Failure."""
        try:
            return processor.process(item)
        except Exception as e:
            logger.exception("%s isolated error processing %s", item.label, item.key)
            return Failure(Stage.INTERNAL, f"isolated processing error: {e}")
