"""Concurrency-safe sinks for per-item results.

Worker threads hand every terminal outcome to a ``ResultAggregator``. Issued
keys are appended to shared key files and an optional results file maps each
project to its key or failure. Every outcome may also go to a timestamped run
log. Appends to the key files and the results file happen under one named
lock so they are always updated together.

Classes:
    ResultAggregator: Records outcomes into the key files and the run log
    OutcomeLog: Timestamped, append-only log with one line per item outcome

Functions:
    get_named_lock: Process-wide lock registry keyed by name
"""

import logging
import threading
from contextlib import ExitStack
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .models import Failure, OperationOutcome, WorkItem

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

DEFAULT_SEPARATOR = ","
RESULTS_HEADER = "Project_ID: API_Key (parallel run, order may be mixed)"

_registry_lock = threading.Lock()
_named_locks: Dict[str, threading.Lock] = {}


def get_named_lock(name: str) -> threading.Lock:
    """Return the lock registered under ``name``, creating it on first use."""
    with _registry_lock:
        lock = _named_locks.get(name)
        if lock is None:
            lock = threading.Lock()
            _named_locks[name] = lock
        return lock


class OutcomeLog:
    """Append-only, human-readable log of item outcomes.

    Lines look like ``[2024-05-01 12:00:00] [3/20] deleted: my-project``.
    """

    def __init__(self, path: PathLike, title: str):
        self.path = Path(path)
        self.title = title
        self._lock = get_named_lock(f"outcome-log:{self.path.resolve()}")

    def start(self) -> None:
        """Truncate the log and write its header."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            with open(self.path, "w", encoding="utf-8") as f:
                f.write(f"{self.title} ({datetime.now().strftime('%Y-%m-%d_%H:%M:%S')})\n")
                f.write("-" * 36 + "\n")

    def write(self, status: str, item_key: str, label: str = "", detail: str = "") -> None:
        """Append one timestamped line."""
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        prefix = f"[{timestamp}] {label} " if label else f"[{timestamp}] "
        line = f"{prefix}{status}: {item_key}"
        if detail:
            line += f" - {detail}"
        with self._lock:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")




class ResultAggregator:
    """Records item outcomes into shared output files from many threads."""

    def __init__(
        self,
        pure_key_file: Optional[PathLike] = None,
        joined_key_file: Optional[PathLike] = None,
        outcome_log: Optional[OutcomeLog] = None,
        separator: str = DEFAULT_SEPARATOR,
        success_status: str = "succeeded",
        failure_status: str = "failed",
        results_file: Optional[PathLike] = None,
    ):
        """
        Initialize the aggregator.

        Args:
            pure_key_file: File receiving one issued key per line
            joined_key_file: File receiving all keys on a single separated line
            outcome_log: Optional log receiving one line per outcome
            separator: Delimiter placed between keys in the joined file
            success_status: Word used for successful items in the outcome log
            failure_status: Word used for failed items in the outcome log
            results_file: File receiving one ``project: key`` line per item
        """
        if len(separator) != 1:
            raise ValueError("separator must be a single character")
        self.pure_key_file = Path(pure_key_file) if pure_key_file else None
        self.joined_key_file = Path(joined_key_file) if joined_key_file else None
        self.results_file = Path(results_file) if results_file else None
        self.outcome_log = outcome_log
        self.separator = separator
        self.success_status = success_status
        self.failure_status = failure_status

        lock_name = "key-files:" + ":".join(
            str(path.resolve()) if path else "-"
            for path in (self.pure_key_file, self.joined_key_file, self.results_file)
        )
        self._key_lock = get_named_lock(lock_name)

    def reset(self) -> None:
        """Truncate the key files, write the results header and start the outcome log."""
        with self._key_lock:
            for path in (self.pure_key_file, self.joined_key_file, self.results_file):
                if path is not None:
                    path.parent.mkdir(parents=True, exist_ok=True)
                    path.write_text("", encoding="utf-8")
            if self.results_file is not None:
                self.results_file.write_text(
                    RESULTS_HEADER + "\n" + "-" * 36 + "\n", encoding="utf-8"
                )
        if self.outcome_log is not None:
            self.outcome_log.start()

    def record(self, item: Union[WorkItem, str], outcome: OperationOutcome) -> None:
        """Record the terminal outcome of one item.

        Safe to call concurrently from any number of worker threads.

        Raises:
            OSError: An output file could not be written
        """
        self.write_artifacts(item, outcome)
        self.log_outcome(item, outcome)

    def write_artifacts(self, item: Union[WorkItem, str], outcome: OperationOutcome) -> None:
        """Write the key files and the results file for one outcome.

        Raises:
            OSError: An output file could not be opened or written; when a file
                cannot be opened nothing is written to any of them
        """
        key = item.key if isinstance(item, WorkItem) else item
        if outcome.is_success and outcome.payload:
            self.append_payload(outcome.payload, key)
        elif isinstance(outcome, Failure) and self.results_file is not None:
            with self._key_lock:
                self._append_all([(self.results_file, f"{key}: [{outcome.stage.value} failed]\n")])

    def log_outcome(self, item: Union[WorkItem, str], outcome: OperationOutcome) -> None:
        """Write one line for ``outcome`` to the outcome log, if there is one."""
        if self.outcome_log is None:
            return
        key = item.key if isinstance(item, WorkItem) else item
        label = item.label if isinstance(item, WorkItem) else ""
        if isinstance(outcome, Failure):
            detail = f"{outcome.stage.value}: {outcome.reason}"
            if outcome.succeeded is not None:
                detail += f" ({outcome.succeeded} succeeded)"
            self.outcome_log.write(self.failure_status, key, label, detail)
        else:
            self.outcome_log.write(self.success_status, key, label, outcome.detail)

    def append_payload(self, payload: str, item_key: Optional[str] = None) -> None:
        """Append one key to every key file as a single critical section."""
        if not payload:
            logger.error("Refusing to record an empty key")
            return
        with self._key_lock:
            records = []
            if self.results_file is not None and item_key:
                records.append((self.results_file, f"{item_key}: {payload}\n"))
            if self.pure_key_file is not None:
                records.append((self.pure_key_file, payload + "\n"))
            if self.joined_key_file is not None:
                needs_separator = (
                    self.joined_key_file.exists() and self.joined_key_file.stat().st_size > 0
                )
                records.append(
                    (self.joined_key_file, (self.separator if needs_separator else "") + payload)
                )
            self._append_all(records)

    @staticmethod
    def _append_all(records: List[Tuple[Path, str]]) -> None:
        # Caller holds the key lock. Every file is opened before the first write.
        with ExitStack() as stack:
            handles = [
                (stack.enter_context(open(path, "a", encoding="utf-8")), text)
                for path, text in records
            ]
            for handle, text in handles:
                handle.write(text)
