"""Building the list of work items for a batch."""

import logging
import random
import re
import string
import time
from collections import Counter
from typing import List, Optional, Sequence

from ..errors import PreconditionFailure, ProviderError
from ..gcp_clients.provider import ResourceProvider
from .models import WorkItem

logger = logging.getLogger(__name__)

MAX_PROJECT_ID_LENGTH = 30


def generate_username(now: Optional[float] = None, rng: Optional[random.Random] = None) -> str:
    """Random token used to make generated project ids unique per run."""
    rng = rng or random.Random()
    timestamp = str(int(now if now is not None else time.time()))
    chars = "".join(rng.choice(string.ascii_lowercase + string.digits) for _ in range(4))
    return f"momo{chars}{timestamp[-4:]}"


def sanitize_project_id(raw: str) -> str:
    """Coerce a string into a valid project id.

    Only lowercase letters, digits and hyphens are kept, the id is cut to 30
    characters without a trailing hyphen, and it always starts with a letter.
    """
    project_id = re.sub(r"[^a-z0-9-]", "", raw)[:MAX_PROJECT_ID_LENGTH].rstrip("-")
    if not re.match(r"^[a-z]", project_id):
        project_id = ("g" + project_id[1:])[:MAX_PROJECT_ID_LENGTH].rstrip("-")
    return project_id


def generate_project_ids(prefix: str, username: str, count: int) -> List[str]:
    """Project ids ``{prefix}-{username}-{NNN}`` for ``count`` new projects.

    A long stem is shortened so the numeric suffix always survives the
    30 character limit and every id stays distinct.
    """
    stem = sanitize_project_id(f"{prefix}-{username}")
    project_ids = []
    for i in range(1, count + 1):
        suffix = f"-{i:03d}"
        project_ids.append(stem[: MAX_PROJECT_ID_LENGTH - len(suffix)].rstrip("-") + suffix)
    return project_ids


def build_work_items(keys: Sequence[str]) -> List[WorkItem]:
    """Wrap keys into work items numbered from 1.

    Raises:
        ValueError: A key appears more than once
    """
    duplicates = sorted(key for key, seen in Counter(keys).items() if seen > 1)
    if duplicates:
        raise ValueError(f"duplicate work item keys: {', '.join(duplicates)}")
    total = len(keys)
    return [WorkItem(key=key, position=i, total=total) for i, key in enumerate(keys, start=1)]


def discover_work_items(
    provider: ResourceProvider, resource_filter: Optional[str] = None
) -> List[WorkItem]:
    """List existing projects and turn them into work items.

    Raises:
        PreconditionFailure: The project list could not be obtained
    """
    logger.info("Fetching project list...")
    try:
        keys = provider.list_resources(resource_filter)
    except ProviderError as e:
        raise PreconditionFailure(f"could not list projects: {e.message or 'gcloud failed'}")
    logger.info("Found %d projects", len(keys))
    return build_work_items(keys)
