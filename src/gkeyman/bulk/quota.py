"""Pre-flight project quota check.

Classes:
    QuotaPolicy: What to do when the requested batch exceeds the quota
    QuotaPrompt: Interactive decisions used when the policy is ``ask``
    QuotaPlanner: Resolves the batch size against the provider's quota
"""

import logging
from enum import Enum
from typing import Optional

from ..errors import BackoffError, ConfigurationError, ProviderError, QuotaPlanningAborted
from ..gcp_clients.provider import ResourceProvider
from .backoff import BackoffExecutor
from .models import QuotaPlan

logger = logging.getLogger(__name__)

QUOTA_LOOKUP_ATTEMPTS = 2


class QuotaPolicy(str, Enum):
    """Resolution applied when the requested count exceeds the quota."""

    ASK = "ask"
    PROCEED = "proceed"
    CLAMP = "clamp"
    ABORT = "abort"


class QuotaPrompt:
    """Decisions the planner needs from an operator.

    The CLI supplies an implementation backed by terminal prompts. Unattended
    runs have no prompt and must configure an explicit policy instead.
    """

    def choose_resolution(self, requested: int, limit: int) -> QuotaPolicy:
        """Return PROCEED, CLAMP or ABORT for a request above the limit."""
        raise NotImplementedError

    def confirm_without_quota(self) -> bool:
        """Return True to continue when the quota could not be determined."""
        raise NotImplementedError


class QuotaPlanner:
    """Decides how many projects a batch may create."""

    def __init__(
        self,
        provider: ResourceProvider,
        policy: QuotaPolicy = QuotaPolicy.ASK,
        proceed_without_quota: Optional[bool] = None,
        prompt: Optional[QuotaPrompt] = None,
        executor: Optional[BackoffExecutor] = None,
    ):
        """
        Initialize the planner.

        Args:
            provider: Remote provider client
            policy: Resolution when the request exceeds the quota
            proceed_without_quota: Continue when the quota is unknown; None means ask
            prompt: Operator prompt used for ``ask`` decisions
            executor: Backoff executor for the quota lookup
        """
        self.provider = provider
        self.policy = QuotaPolicy(policy)
        self.proceed_without_quota = proceed_without_quota
        self.prompt = prompt
        self.executor = executor or BackoffExecutor()

    def plan(self, requested: int) -> QuotaPlan:
        """Resolve the batch size for ``requested`` new projects.

        Raises:
            QuotaPlanningAborted: The batch must not run
            ConfigurationError: A decision is needed but no prompt is available
        """
        if requested < 0:
            raise ValueError(f"requested must not be negative, got {requested}")

        logger.info("Checking project creation quota...")
        limit = self._lookup_limit()

        if limit is None:
            logger.warning("Could not determine the project quota; continuing may cause failures")
            if not self._continue_without_quota():
                raise QuotaPlanningAborted("cancelled: project quota unknown")
            return QuotaPlan(requested=requested, limit=None, resolved=requested)

        logger.info("Project creation quota is about %d", limit)
        if requested <= limit:
            logger.info("Requested %d projects is within the quota of %d", requested, limit)
            return QuotaPlan(requested=requested, limit=limit, resolved=requested)

        logger.warning("Requested %d projects exceeds the quota of %d", requested, limit)
        decision = self._resolve_excess(requested, limit)
        if decision is QuotaPolicy.PROCEED:
            logger.info("Proceeding with %d projects despite the quota", requested)
            return QuotaPlan(requested=requested, limit=limit, resolved=requested)
        if decision is QuotaPolicy.CLAMP:
            logger.info("Batch reduced to %d projects", limit)
            return QuotaPlan(requested=requested, limit=limit, resolved=limit)
        raise QuotaPlanningAborted(f"cancelled: {requested} projects requested, quota is {limit}")

    def _lookup_limit(self) -> Optional[int]:
        try:
            return self.executor.execute(
                self.provider.get_capacity_limit, QUOTA_LOOKUP_ATTEMPTS, description="quota lookup"
            )
        except (BackoffError, ProviderError) as e:
            logger.warning("Quota lookup failed: %s", e)
            return None

    def _continue_without_quota(self) -> bool:
        if self.proceed_without_quota is not None:
            return self.proceed_without_quota
        if self.prompt is None:
            raise ConfigurationError(
                "project quota is unknown and no decision is configured "
                "(set proceed_without_quota)"
            )
        return self.prompt.confirm_without_quota()

    def _resolve_excess(self, requested: int, limit: int) -> QuotaPolicy:
        if self.policy is not QuotaPolicy.ASK:
            return self.policy
        if self.prompt is None:
            raise ConfigurationError(
                "requested count exceeds the project quota and quota_policy is 'ask' "
                "without an interactive prompt; set quota_policy to proceed, clamp or abort"
            )
        decision = QuotaPolicy(self.prompt.choose_resolution(requested, limit))
        if decision is QuotaPolicy.ASK:
            raise ConfigurationError("quota prompt must return proceed, clamp or abort")
        return decision
