"""Data models for bulk project operations.

Classes:
    Stage: Names the step of a multi-step operation that produced a failure
    WorkItem: One unit of batch work, identified by a project key
    Success: Terminal outcome of an item that finished cleanly
    Failure: Terminal outcome of an item that failed at a given stage
    BatchResult: Aggregate counts derived from the outcomes of a batch
    QuotaPlan: Batch size resolved against the provider's project quota
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union


class Stage(str, Enum):
    """Steps of a work item that can fail."""

    CREATION = "creation"
    ENABLEMENT = "enablement"
    CREDENTIAL_ISSUANCE = "credential-issuance"
    DELETION = "deletion"
    LISTING = "listing"
    RECORDING = "recording"
    INTERNAL = "internal"


@dataclass(frozen=True)
class WorkItem:
    """A single project to process.

    ``position`` and ``total`` are only used for log and display prefixes.
    """

    key: str
    position: int
    total: int

    @property
    def label(self) -> str:
        """Display prefix such as ``[3/20]``."""
        return f"[{self.position}/{self.total}]"


@dataclass(frozen=True)
class Success:
    """Successful terminal outcome.

    ``payload`` holds an issued credential string when the operation produces one.
    ``count`` is used by operations that act on several sub-resources.
    """

    payload: Optional[str] = None
    detail: str = ""
    count: int = 0

    @property
    def is_success(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """Failed terminal outcome.

    ``succeeded`` is set when part of the work was done before the failure,
    e.g. some credentials of a project were deleted and others were not.
    """

    stage: Stage
    reason: str
    succeeded: Optional[int] = None

    @property
    def is_success(self) -> bool:
        return False


OperationOutcome = Union[Success, Failure]


@dataclass
class BatchResult:
    """Results of one scheduled batch.

    Counts are computed from ``outcomes`` so they can never drift from the
    recorded per-item results.
    """

    total: int
    outcomes: Dict[str, OperationOutcome] = field(default_factory=dict)
    duration: float = 0.0
    start_time: Optional[float] = None
    end_time: Optional[float] = None

    @property
    def success_count(self) -> int:
        """Number of items with a Success outcome."""
        return sum(1 for outcome in self.outcomes.values() if outcome.is_success)

    @property
    def failure_count(self) -> int:
        """Number of items with a Failure outcome."""
        return sum(1 for outcome in self.outcomes.values() if not outcome.is_success)

    @property
    def success_rate(self) -> float:
        """Success rate as a percentage."""
        if self.total == 0:
            return 0.0
        return (self.success_count / self.total) * 100

    @property
    def degraded(self) -> bool:
        """True when the batch finished with at least one failed item."""
        return self.failure_count > 0

    def failures(self) -> List[Tuple[str, Failure]]:
        """Failed items sorted by key."""
        return sorted(
            (key, outcome)
            for key, outcome in self.outcomes.items()
            if isinstance(outcome, Failure)
        )

    def payloads(self) -> List[str]:
        """Payloads of successful items that produced one."""
        return [
            outcome.payload
            for outcome in self.outcomes.values()
            if isinstance(outcome, Success) and outcome.payload
        ]


@dataclass(frozen=True)
class QuotaPlan:
    """Outcome of the pre-flight quota check.

    ``limit`` is None when the provider could not report a quota.
    """

    requested: int
    limit: Optional[int]
    resolved: int

    @property
    def limit_known(self) -> bool:
        return self.limit is not None

    @property
    def clamped(self) -> bool:
        return self.resolved < self.requested
