"""Work item processors for bulk project operations.

Each processor turns one project into exactly one terminal outcome by
running a short sequence of provider calls. Provider calls are wrapped in the
backoff executor; the first step that fails for good ends the item.

Classes:
    WorkItemProcessor: Base class handling isolation, logging and recording
    CreateAndProvisionProcessor: Create project, enable API, issue a key
    ProvisionExistingProcessor: Enable API, reuse an existing key or issue one
    TeardownProcessor: Delete a project with a single attempt
    RevokeCredentialsProcessor: Delete every API key of a project
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, TypeVar

from ..errors import BackoffError, ProviderError
from ..gcp_clients.provider import ResourceProvider, extract_field
from .aggregator import ResultAggregator
from .backoff import BackoffExecutor, ErrorClass, classify_error
from .models import Failure, OperationOutcome, Stage, Success, WorkItem

logger = logging.getLogger(__name__)

T = TypeVar("T")

KEY_FIELD = "keyString"
NAME_FIELD = "name"


class StepFailed(Exception):
    """Raised inside a processor to end an item with the given failure."""

    def __init__(self, failure: Failure):
        self.failure = failure
        super().__init__(failure.reason)


class WorkItemProcessor(ABC):
    """Base class for processors run by the task scheduler."""

    description = "process"

    def __init__(
        self,
        provider: ResourceProvider,
        aggregator: ResultAggregator,
        executor: Optional[BackoffExecutor] = None,
        max_attempts: int = 3,
    ):
        """Initialize the processor.

        Args:
            provider: Remote provider client
            aggregator: Sink for terminal outcomes
            executor: Backoff executor wrapping provider calls
            max_attempts: Attempts allowed per provider call
        """
        self.provider = provider
        self.aggregator = aggregator
        self.executor = executor or BackoffExecutor()
        self.max_attempts = max_attempts

    def process(self, item: WorkItem) -> OperationOutcome:
        """Process one item and record its outcome.

        Never raises for item-level problems; they become a Failure.
        """
        logger.info(">>> %s %s: %s", item.label, self.description, item.key)
        try:
            outcome = self._process(item)
        except StepFailed as e:
            outcome = e.failure
        except Exception as e:
            logger.exception("%s unexpected error while processing %s", item.label, item.key)
            outcome = Failure(Stage.INTERNAL, f"unexpected error: {e}")

        outcome = self._record(item, outcome)

        if isinstance(outcome, Failure):
            logger.error(
                "<<< %s %s failed (%s): %s",
                item.label,
                item.key,
                outcome.stage.value,
                outcome.reason,
            )
        else:
            logger.info("<<< %s %s done: %s", item.label, item.key, outcome.detail or "ok")
        return outcome

    def _record(self, item: WorkItem, outcome: OperationOutcome) -> OperationOutcome:
        """Hand the outcome to the aggregator.

        An outcome whose output files cannot be written becomes a recording Failure.
        """
        try:
            self.aggregator.write_artifacts(item, outcome)
        except OSError as e:
            logger.error("%s could not write the result of %s: %s", item.label, item.key, e)
            outcome = Failure(
                Stage.RECORDING, f"result could not be written to the output files: {e}"
            )
        try:
            self.aggregator.log_outcome(item, outcome)
        except OSError as e:
            logger.error("%s could not write the outcome log: %s", item.label, e)
        return outcome

    @abstractmethod
    def _process(self, item: WorkItem) -> OperationOutcome:
        """Run the provider calls for one item."""

    def _step(self, item: WorkItem, stage: Stage, operation: Callable[[], T], what: str) -> T:
        """Run one provider call through the backoff executor.

        Raises:
            StepFailed: The call failed permanently or ran out of attempts
        """
        logger.info("%s %s", item.label, what)
        try:
            return self.executor.execute(
                operation, self.max_attempts, description=f"{item.label} {what}"
            )
        except BackoffError as e:
            raise StepFailed(Failure(stage, str(e)))

    def _extract_key(self, item: WorkItem, response: Any, stage: Stage) -> str:
        try:
            return extract_field(response, KEY_FIELD)
        except ProviderError as e:
            raise StepFailed(Failure(stage, f"key created but could not be read: {e.message}"))


class CreateAndProvisionProcessor(WorkItemProcessor):
    """Creates a project, enables the API service and issues an API key."""

    description = "create project and key"

    def __init__(
        self,
        provider: ResourceProvider,
        aggregator: ResultAggregator,
        executor: Optional[BackoffExecutor] = None,
        max_attempts: int = 3,
        propagation_delay: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(provider, aggregator, executor, max_attempts)
        self.propagation_delay = propagation_delay
        self._sleep = sleep

    def _process(self, item: WorkItem) -> OperationOutcome:
        key = item.key
        self._step(
            item, Stage.CREATION, lambda: self.provider.create_resource(key), "1/3 creating project"
        )

        # New projects are not immediately visible to the services API
        if self.propagation_delay > 0:
            logger.info(
                "%s waiting %.0fs for project creation to propagate",
                item.label,
                self.propagation_delay,
            )
            self._sleep(self.propagation_delay)

        self._step(
            item,
            Stage.ENABLEMENT,
            lambda: self.provider.enable_capability(key),
            "2/3 enabling API service",
        )
        response = self._step(
            item,
            Stage.CREDENTIAL_ISSUANCE,
            lambda: self.provider.issue_credential(key),
            "3/3 creating API key",
        )
        api_key = self._extract_key(item, response, Stage.CREDENTIAL_ISSUANCE)
        return Success(payload=api_key, detail="new project key issued")


class ProvisionExistingProcessor(WorkItemProcessor):
    """Gets an API key for an existing project.

    The first existing key is reused when it can be read. Any error on the
    reuse path falls through to issuing a new key, including authorization
    errors; those are logged at warning level so they are not mistaken for
    an ordinary missing key.
    """

    description = "get project key"

    def _process(self, item: WorkItem) -> OperationOutcome:
        key = item.key
        self._step(
            item,
            Stage.ENABLEMENT,
            lambda: self.provider.enable_capability(key),
            "1/2 making sure the API service is enabled",
        )

        logger.info("%s 2/2 looking for an existing API key", item.label)
        existing = self._reuse_existing_key(item)
        if existing:
            return Success(payload=existing, detail="existing key reused")

        response = self._step(
            item,
            Stage.CREDENTIAL_ISSUANCE,
            lambda: self.provider.issue_credential(key),
            "creating a new API key",
        )
        api_key = self._extract_key(item, response, Stage.CREDENTIAL_ISSUANCE)
        return Success(payload=api_key, detail="new key issued")

    def _reuse_existing_key(self, item: WorkItem) -> Optional[str]:
        try:
            keys = self.provider.list_credentials(item.key)
            if not keys:
                logger.info("%s no existing API keys", item.label)
                return None
            name = extract_field(keys[0], NAME_FIELD)
            logger.info("%s found existing key %s", item.label, name)
            return extract_field(self.provider.fetch_credential_value(name), KEY_FIELD)
        except ProviderError as e:
            if classify_error(e.message) is ErrorClass.PERMANENT:
                logger.warning(
                    "%s permission error while reading existing keys, issuing a new one: %s",
                    item.label,
                    e.message,
                )
            else:
                logger.info("%s could not reuse an existing key: %s", item.label, e.message)
            return None


class TeardownProcessor(WorkItemProcessor):
    """Deletes a project. Deletion is attempted exactly once."""

    description = "delete project"

    def _process(self, item: WorkItem) -> OperationOutcome:
        try:
            self.provider.delete_resource(item.key)
        except ProviderError as e:
            return Failure(Stage.DELETION, e.message or "unknown error")
        return Success(detail="project deleted")


class RevokeCredentialsProcessor(WorkItemProcessor):
    """Deletes every API key of a project without deleting the project."""

    description = "delete project keys"

    def __init__(
        self,
        provider: ResourceProvider,
        aggregator: ResultAggregator,
        executor: Optional[BackoffExecutor] = None,
        max_attempts: int = 3,
        delete_interval: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(provider, aggregator, executor, max_attempts)
        self.delete_interval = delete_interval
        self._sleep = sleep

    def _process(self, item: WorkItem) -> OperationOutcome:
        key = item.key
        keys = self._step(
            item, Stage.LISTING, lambda: self.provider.list_credentials(key), "listing API keys"
        )
        names = [entry.get(NAME_FIELD) for entry in keys or [] if entry.get(NAME_FIELD)]
        if not names:
            return Success(count=0, detail="no API keys to delete")

        logger.info("%s found %d API keys", item.label, len(names))
        deleted = 0
        errors = []
        for name in names:
            try:
                self.executor.execute(
                    lambda: self.provider.delete_credential(name),
                    self.max_attempts,
                    description=f"{item.label} deleting key {name}",
                )
                deleted += 1
            except BackoffError as e:
                logger.warning("%s could not delete key %s: %s", item.label, name, e.message)
                errors.append(e.message)
            if self.delete_interval > 0:
                self._sleep(self.delete_interval)

        if errors:
            return Failure(
                Stage.DELETION,
                f"{len(errors)} of {len(names)} keys could not be deleted: {errors[0]}",
                succeeded=deleted,
            )
        return Success(count=deleted, detail=f"deleted {deleted} of {len(names)} keys")
