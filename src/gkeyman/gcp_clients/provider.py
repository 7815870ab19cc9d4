"""Google Cloud provider access for gkeyman.

The bulk layer only talks to ``ResourceProvider``. ``GcloudProvider`` is the
production implementation and shells out to the ``gcloud`` CLI, which must
already be authenticated.
"""

import json
import logging
import re
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

from ..errors import MalformedResponseError, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "generativelanguage.googleapis.com"
DEFAULT_RESOURCE_FILTER = "projectId!~^sys-"
QUOTA_SERVICE = "cloudresourcemanager.googleapis.com"
QUOTA_METRIC = "cloudresourcemanager.googleapis.com/project_create_requests"


def parse_response(raw: Union[str, bytes, None]) -> Any:
    """Parse JSON output of a provider command.

    Raises:
        MalformedResponseError: The output is empty or not valid JSON
    """
    if raw is None or not str(raw).strip():
        raise MalformedResponseError("provider returned an empty response")
    try:
        return json.loads(raw)
    except ValueError as e:
        raise MalformedResponseError(f"provider returned malformed JSON: {e}")


def _find_field(node: Any, field: str) -> Any:
    if isinstance(node, dict):
        if node.get(field) not in (None, ""):
            return node[field]
        children = node.values()
    elif isinstance(node, list):
        children = node
    else:
        return None
    for child in children:
        value = _find_field(child, field)
        if value not in (None, ""):
            return value
    return None


def extract_field(response: Any, field: str) -> str:
    """Extract the first non-empty value of ``field`` from a structured response.

    Nested objects and lists are searched depth first, so both a bare key
    object and an operation wrapping it under ``response`` are accepted.

    Args:
        response: Parsed JSON object, or raw JSON text
        field: Field name, e.g. ``keyString`` or ``name``

    Returns:
        The field value as a string

    Raises:
        MalformedResponseError: The response cannot be parsed or lacks the field
    """
    if isinstance(response, (str, bytes)):
        response = parse_response(response)
    value = _find_field(response, field)
    if value in (None, ""):
        raise MalformedResponseError(f"field '{field}' not found in provider response")
    return str(value)


@dataclass(frozen=True)
class SessionInfo:
    """Active account and default project of the provider session."""

    account: Optional[str]
    project: Optional[str]


class ResourceProvider(ABC):
    """Operations the bulk layer needs from the remote provider.

    Every method raises ``ProviderError`` with the provider's error text when
    the call fails.
    """

    @abstractmethod
    def create_resource(self, key: str) -> None:
        """Create a project."""

    @abstractmethod
    def enable_capability(self, resource_key: str) -> None:
        """Enable the API service on a project. Enabling twice is harmless."""

    @abstractmethod
    def issue_credential(self, resource_key: str) -> Any:
        """Create an API key and return the provider's response (parsed or raw JSON)."""

    @abstractmethod
    def list_credentials(self, resource_key: str) -> List[Dict[str, Any]]:
        """List the API keys of a project, each with at least a ``name``."""

    @abstractmethod
    def fetch_credential_value(self, name: str) -> Any:
        """Fetch the key string of an existing API key (parsed or raw JSON)."""

    @abstractmethod
    def delete_credential(self, name: str) -> None:
        """Delete one API key."""

    @abstractmethod
    def delete_resource(self, key: str) -> None:
        """Delete a project."""

    @abstractmethod
    def list_resources(self, resource_filter: Optional[str] = None) -> List[str]:
        """List project ids matching a filter."""

    @abstractmethod
    def get_capacity_limit(self) -> Optional[int]:
        """Return the project creation quota, or None when it is unknown."""

    def describe_session(self) -> SessionInfo:
        """Return the active account and default project, when known."""
        return SessionInfo(account=None, project=None)


class GcloudProvider(ResourceProvider):
    """``ResourceProvider`` backed by the ``gcloud`` command line tool."""

    def __init__(
        self,
        gcloud_path: str = "gcloud",
        service_name: str = DEFAULT_SERVICE_NAME,
        key_display_name: str = "Gemini API Key for {project}",
    ):
        """
        Initialize the provider.

        Args:
            gcloud_path: Path or name of the gcloud executable
            service_name: API service enabled on every project
            key_display_name: Display name template for new API keys
        """
        self.gcloud_path = gcloud_path
        self.service_name = service_name
        self.key_display_name = key_display_name

    def _run(self, args: Sequence[str]) -> str:
        """Run a gcloud command and return its stdout.

        Raises:
            ProviderError: The command could not be started or exited non-zero
        """
        command = [self.gcloud_path, *args]
        logger.debug("Running: %s", " ".join(command))
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                encoding="utf-8",
                check=False,
            )
        except OSError as e:
            raise ProviderError(f"could not run {self.gcloud_path}: {e}")

        if completed.returncode != 0:
            message = (completed.stderr or "").strip()
            raise ProviderError(
                message or f"gcloud exited with status {completed.returncode}",
                returncode=completed.returncode,
            )
        return completed.stdout or ""

    def create_resource(self, key: str) -> None:
        self._run(["projects", "create", key, f"--name={key}", "--no-set-as-default", "--quiet"])

    def enable_capability(self, resource_key: str) -> None:
        self._run(["services", "enable", self.service_name, f"--project={resource_key}", "--quiet"])

    def issue_credential(self, resource_key: str) -> str:
        display_name = self.key_display_name.format(project=resource_key)
        output = self._run(
            [
                "services",
                "api-keys",
                "create",
                f"--project={resource_key}",
                f"--display-name={display_name}",
                "--format=json",
                "--quiet",
            ]
        )
        # Parsed by the caller so a malformed response is not retried as a new key
        return output

    def list_credentials(self, resource_key: str) -> List[Dict[str, Any]]:
        output = self._run(
            ["services", "api-keys", "list", f"--project={resource_key}", "--format=json"]
        )
        if not output.strip():
            return []
        keys = parse_response(output)
        if not isinstance(keys, list):
            raise MalformedResponseError("api-keys list did not return a JSON array")
        return keys

    def fetch_credential_value(self, name: str) -> str:
        return self._run(["services", "api-keys", "get-key-string", name, "--format=json"])

    def delete_credential(self, name: str) -> None:
        self._run(["services", "api-keys", "delete", name, "--quiet"])

    def delete_resource(self, key: str) -> None:
        self._run(["projects", "delete", key, "--quiet"])

    def list_resources(self, resource_filter: Optional[str] = DEFAULT_RESOURCE_FILTER) -> List[str]:
        args = ["projects", "list", "--format=value(projectId)", "--quiet"]
        if resource_filter:
            args.insert(3, f"--filter={resource_filter}")
        output = self._run(args)
        return [line.strip() for line in output.splitlines() if line.strip()]

    def current_project(self) -> Optional[str]:
        """Default project of the gcloud configuration, if one is set."""
        try:
            value = self._run(["config", "get-value", "project"]).strip()
        except ProviderError:
            return None
        if not value or value == "(unset)":
            return None
        return value

    def get_capacity_limit(self) -> Optional[int]:
        project = self.current_project()
        if not project:
            logger.warning("No default project configured, cannot look up project quota")
            return None

        queries = [
            (
                [
                    "services",
                    "quota",
                    "list",
                    f"--service={QUOTA_SERVICE}",
                    f"--consumer=projects/{project}",
                    f"--filter=metric={QUOTA_METRIC}",
                    "--format=json",
                ],
                r'"effectiveLimit"\s*:\s*"?(\d+)',
            ),
            (
                [
                    "alpha",
                    "services",
                    "quota",
                    "list",
                    f"--service={QUOTA_SERVICE}",
                    f"--consumer=projects/{project}",
                    f"--filter=metric({QUOTA_METRIC})",
                    "--format=json",
                ],
                r'"INT64"\s*:\s*"?(\d+)',
            ),
        ]
        for args, pattern in queries:
            try:
                output = self._run(args)
            except ProviderError as e:
                logger.info("Quota lookup failed (%s), trying next method", e.message)
                continue
            match = re.search(pattern, output)
            if match:
                return int(match.group(1))
            logger.warning("Quota lookup returned no usable limit value")
            return None
        return None

    def describe_session(self) -> SessionInfo:
        try:
            account = self._run(
                ["auth", "list", "--filter=status:ACTIVE", "--format=value(account)"]
            ).strip()
        except ProviderError:
            account = ""
        return SessionInfo(
            account=account.splitlines()[0] if account else None,
            project=self.current_project(),
        )
