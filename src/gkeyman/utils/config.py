"""Configuration utilities for gkeyman."""

import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from rich.console import Console

from ..errors import ConfigurationError
from .validators import (
    check_non_negative_float,
    check_positive_int,
    check_project_prefix,
    check_quota_policy,
)

console = Console()

CONFIG_DIR = Path(os.environ.get("GKEYMAN_CONFIG_DIR", Path.home() / ".gkeyman"))
CONFIG_FILE_YAML = CONFIG_DIR / "config.yaml"

# Default batch configuration
DEFAULT_BATCH_CONFIG = {
    "project_prefix": "gemini-key",
    "total_projects": 175,  # may be reduced by the quota check
    "max_parallel_jobs": 20,
    "max_retry_attempts": 3,
    "quota_policy": "ask",  # ask, proceed, clamp or abort
    "proceed_without_quota": None,  # None means ask
    "propagation_delay": 10.0,  # seconds to wait after creating a project
    "launch_delay": 0.1,  # seconds between task launches
    "rebuild_settle_delay": 15.0,  # seconds to wait between delete and create in rebuild
    "output_dir": ".",
    "pure_key_file": "key.txt",
    "gcloud_path": "gcloud",
    "service_name": "generativelanguage.googleapis.com",
    "resource_filter": "projectId!~^sys-",
}

# Default logging configuration
DEFAULT_LOGGING_CONFIG = {
    "level": "INFO",
    "enable_file_logging": False,
    "log_directory": "~/.gkeyman/logs",
    "log_filename": "gkeyman.log",
}


@dataclass(frozen=True)
class BatchSettings:
    """Validated settings snapshot used for one batch run."""

    project_prefix: str = DEFAULT_BATCH_CONFIG["project_prefix"]
    total_projects: int = DEFAULT_BATCH_CONFIG["total_projects"]
    max_parallel_jobs: int = DEFAULT_BATCH_CONFIG["max_parallel_jobs"]
    max_retry_attempts: int = DEFAULT_BATCH_CONFIG["max_retry_attempts"]
    quota_policy: str = DEFAULT_BATCH_CONFIG["quota_policy"]
    proceed_without_quota: Optional[bool] = None
    propagation_delay: float = DEFAULT_BATCH_CONFIG["propagation_delay"]
    launch_delay: float = DEFAULT_BATCH_CONFIG["launch_delay"]
    rebuild_settle_delay: float = DEFAULT_BATCH_CONFIG["rebuild_settle_delay"]
    output_dir: str = DEFAULT_BATCH_CONFIG["output_dir"]
    pure_key_file: str = DEFAULT_BATCH_CONFIG["pure_key_file"]
    gcloud_path: str = DEFAULT_BATCH_CONFIG["gcloud_path"]
    service_name: str = DEFAULT_BATCH_CONFIG["service_name"]
    resource_filter: str = DEFAULT_BATCH_CONFIG["resource_filter"]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BatchSettings":
        """Build settings from a config dictionary, validating every value.

        Raises:
            ConfigurationError: A value is invalid
        """
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        return cls(**values).validated()

    def validated(self) -> "BatchSettings":
        proceed = self.proceed_without_quota
        if proceed is not None and not isinstance(proceed, bool):
            proceed = parse_bool(proceed)
        return replace(
            self,
            project_prefix=check_project_prefix(self.project_prefix),
            total_projects=check_positive_int(self.total_projects, "total_projects"),
            max_parallel_jobs=check_positive_int(self.max_parallel_jobs, "max_parallel_jobs"),
            max_retry_attempts=check_positive_int(self.max_retry_attempts, "max_retry_attempts"),
            quota_policy=check_quota_policy(self.quota_policy),
            proceed_without_quota=proceed,
            propagation_delay=check_non_negative_float(self.propagation_delay, "propagation_delay"),
            launch_delay=check_non_negative_float(self.launch_delay, "launch_delay"),
            rebuild_settle_delay=check_non_negative_float(
                self.rebuild_settle_delay, "rebuild_settle_delay"
            ),
        )

    def with_overrides(self, **overrides: Any) -> "BatchSettings":
        """Return a copy with the non-None overrides applied and validated."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if not changes:
            return self
        return replace(self, **changes).validated()

    def output_path(self, filename: str) -> Path:
        return Path(self.output_dir).expanduser() / filename


def parse_bool(value: Any) -> Optional[bool]:
    """Parse a boolean config value; ``none``/``null``/empty means unset."""
    if value is None or isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("", "none", "null"):
        return None
    if text in ("1", "true", "yes", "y", "on"):
        return True
    if text in ("0", "false", "no", "n", "off"):
        return False
    raise ConfigurationError(f"expected a boolean value, got {value!r}")


class Config:
    """Manages gkeyman configuration stored as YAML."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize the configuration manager.

        Args:
            config_dir: Directory holding ``config.yaml`` (defaults to ~/.gkeyman)
        """
        self._config_dir = Path(config_dir) if config_dir else CONFIG_DIR
        self._config_file_yaml = self._config_dir / "config.yaml"
        self.config_data: Dict[str, Any] = {}
        self._config_loaded = False

    def _ensure_config_loaded(self):
        """Ensure configuration is loaded from file."""
        if not self._config_loaded:
            self._load_config()
            self._config_loaded = True

    def reload_config(self):
        """Force reload configuration from file."""
        self._config_loaded = False
        self._ensure_config_loaded()

    def _load_config(self):
        """Load the configuration from the YAML file, if present."""
        if not self._config_file_yaml.exists():
            self.config_data = {}
            return
        try:
            with open(self._config_file_yaml, "r", encoding="utf-8") as f:
                self.config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            console.print(
                f"[red]Error: Configuration file {self._config_file_yaml} "
                f"is not valid YAML: {e}[/red]"
            )
            self.config_data = {}
        except OSError as e:
            console.print(
                f"[red]Error reading configuration file {self._config_file_yaml}: {e}[/red]"
            )
            self.config_data = {}

    def save_config(self):
        """Save the configuration to the YAML file."""
        if not self._config_dir.exists():
            self._config_dir.mkdir(parents=True)
            console.print(f"Created configuration directory: {self._config_dir}")
        with open(self._config_file_yaml, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.config_data, f, default_flow_style=False, sort_keys=True)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value with dot notation support.

        Args:
            key: Configuration key (supports dot notation like "batch.max_parallel_jobs")
            default: Default value if key doesn't exist

        Returns:
            Configuration value
        """
        self._ensure_config_loaded()
        value: Any = self.config_data
        for part in key.split("."):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default
        return value

    def set(self, key: str, value: Any):
        """
        Set a configuration value and save it.

        Args:
            key: Configuration key (supports dot notation)
            value: Configuration value
        """
        self._ensure_config_loaded()
        parts = key.split(".")
        section = self.config_data
        for part in parts[:-1]:
            if not isinstance(section.get(part), dict):
                section[part] = {}
            section = section[part]
        section[parts[-1]] = value
        self.save_config()

    def delete(self, key: str):
        """Delete a top-level configuration section or value."""
        self._ensure_config_loaded()
        if key in self.config_data:
            del self.config_data[key]
            self.save_config()

    def get_all(self) -> Dict[str, Any]:
        self._ensure_config_loaded()
        return self.config_data.copy()

    def get_batch_config(self) -> Dict[str, Any]:
        """Batch configuration merged over the defaults."""
        batch_config = DEFAULT_BATCH_CONFIG.copy()
        user_config = self.get("batch", {})
        if isinstance(user_config, dict):
            batch_config.update(user_config)
        return batch_config

    def get_batch_settings(self) -> BatchSettings:
        """Validated snapshot of the batch configuration.

        Raises:
            ConfigurationError: A configured value is invalid
        """
        return BatchSettings.from_dict(self.get_batch_config())

    def set_batch_value(self, key: str, raw_value: Any) -> Any:
        """Validate and store one batch setting.

        Returns:
            The stored, converted value

        Raises:
            ConfigurationError: Unknown key or invalid value
        """
        if key not in DEFAULT_BATCH_CONFIG:
            raise ConfigurationError(
                f"unknown setting '{key}'; "
                f"valid settings: {', '.join(sorted(DEFAULT_BATCH_CONFIG))}"
            )
        if key == "proceed_without_quota":
            value: Any = parse_bool(raw_value)
        else:
            default = DEFAULT_BATCH_CONFIG[key]
            try:
                value = type(default)(raw_value) if isinstance(default, (int, float)) else raw_value
            except (TypeError, ValueError):
                raise ConfigurationError(
                    f"{key} must be a {type(default).__name__}, got {raw_value!r}"
                )

        candidate = self.get_batch_config()
        candidate[key] = value
        settings = BatchSettings.from_dict(candidate)
        value = asdict(settings)[key]

        self.set(f"batch.{key}", value)
        return value

    def reset_batch_config(self):
        """Remove user batch settings so the defaults apply again."""
        self.delete("batch")

    def get_logging_config(self) -> Dict[str, Any]:
        logging_config = DEFAULT_LOGGING_CONFIG.copy()
        user_config = self.get("logging", {})
        if isinstance(user_config, dict):
            logging_config.update(user_config)
        return logging_config

    def get_config_file_path(self) -> Path:
        return self._config_file_yaml
