"""Bulk project operations for gkeyman.

This package runs many independent project operations against Google Cloud
with bounded parallelism, retries and shared result files.
"""

from .aggregator import OutcomeLog, ResultAggregator, get_named_lock
from .backoff import BackoffExecutor, ErrorClass, RetryState, classify_error, is_quota_error
from .models import BatchResult, Failure, OperationOutcome, QuotaPlan, Stage, Success, WorkItem
from .processors import (
    CreateAndProvisionProcessor,
    ProvisionExistingProcessor,
    RevokeCredentialsProcessor,
    TeardownProcessor,
    WorkItemProcessor,
)
from .progress import ProgressReporter, render_progress
from .quota import QuotaPlanner, QuotaPolicy, QuotaPrompt
from .reporting import ReportGenerator
from .scheduler import TaskScheduler
from .workitems import (
    build_work_items,
    discover_work_items,
    generate_project_ids,
    generate_username,
    sanitize_project_id,
)

__all__ = [
    "BackoffExecutor",
    "BatchResult",
    "CreateAndProvisionProcessor",
    "ErrorClass",
    "Failure",
    "OperationOutcome",
    "OutcomeLog",
    "ProgressReporter",
    "ProvisionExistingProcessor",
    "QuotaPlan",
    "QuotaPlanner",
    "QuotaPolicy",
    "QuotaPrompt",
    "ReportGenerator",
    "ResultAggregator",
    "RetryState",
    "RevokeCredentialsProcessor",
    "Stage",
    "Success",
    "TaskScheduler",
    "TeardownProcessor",
    "WorkItem",
    "WorkItemProcessor",
    "build_work_items",
    "classify_error",
    "discover_work_items",
    "generate_project_ids",
    "generate_username",
    "get_named_lock",
    "is_quota_error",
    "render_progress",
    "sanitize_project_id",
]
