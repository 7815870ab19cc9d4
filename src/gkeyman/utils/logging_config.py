"""Logging configuration for gkeyman."""

import json
import logging
import logging.handlers
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.logging import RichHandler


class LogLevel(str, Enum):
    """Log levels for configuration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log file formats."""

    DETAILED = "detailed"
    JSON = "json"


# API keys are secrets; they only belong in the key files
DEFAULT_SENSITIVE_PATTERNS = [
    r"AIza[0-9A-Za-z_\-]{35}",
    r'(?<="keyString": ")[^"]+',
]


@dataclass
class LoggingConfig:
    """Configuration for logging system."""

    level: LogLevel = LogLevel.INFO
    format_type: LogFormat = LogFormat.DETAILED
    enable_console_logging: bool = True
    enable_file_logging: bool = False
    log_directory: str = "~/.gkeyman/logs"
    log_filename: str = "gkeyman.log"
    max_file_size_mb: int = 10
    backup_count: int = 5
    sensitive_data_patterns: List[str] = field(
        default_factory=lambda: list(DEFAULT_SENSITIVE_PATTERNS)
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        """Build a config from the ``logging`` section of the config file."""
        return cls(
            level=LogLevel(str(data.get("level", "INFO")).upper()),
            format_type=LogFormat(data.get("format_type", LogFormat.DETAILED.value)),
            enable_console_logging=bool(data.get("enable_console_logging", True)),
            enable_file_logging=bool(data.get("enable_file_logging", False)),
            log_directory=str(data.get("log_directory", "~/.gkeyman/logs")),
            log_filename=str(data.get("log_filename", "gkeyman.log")),
            max_file_size_mb=int(data.get("max_file_size_mb", 10)),
            backup_count=int(data.get("backup_count", 5)),
        )


class SensitiveDataFilter(logging.Filter):
    """Filter to redact API keys from log messages."""

    def __init__(self, patterns: List[str]) -> None:
        """
        Initialize the filter with sensitive data patterns.

        Args:
            patterns: List of regex patterns to match sensitive data
        """
        super().__init__()
        self.patterns = patterns
        self.compiled_patterns = [re.compile(pattern) for pattern in patterns]

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact sensitive data in place; never drops a record."""
        if isinstance(record.msg, str):
            record.msg = self._redact_sensitive_data(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    k: self._redact_sensitive_data(v) if isinstance(v, str) else v
                    for k, v in record.args.items()
                }
            else:
                record.args = tuple(
                    self._redact_sensitive_data(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )

        return True

    def _redact_sensitive_data(self, text: str) -> str:
        for pattern in self.compiled_patterns:
            text = pattern.sub("[REDACTED]", text)
        return text


class StructuredFormatter(logging.Formatter):
    """Formatter writing one JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


class LoggingManager:
    """
    Central logging setup for the ``gkeyman`` logger hierarchy.

    Console output goes through Rich so log lines are printed above any live
    progress bar instead of breaking it.
    """

    def __init__(self, config: Optional[LoggingConfig] = None, console: Optional[Console] = None):
        self.config = config or LoggingConfig()
        self.console = console
        self._handlers_configured = False

    def setup_logging(self) -> None:
        """Set up handlers on the ``gkeyman`` logger."""
        root_logger = logging.getLogger("gkeyman")
        root_logger.setLevel(getattr(logging, self.config.level.value))
        root_logger.handlers.clear()
        root_logger.propagate = False

        if self.config.enable_console_logging:
            root_logger.addHandler(self._create_console_handler())

        if self.config.enable_file_logging:
            root_logger.addHandler(self._create_file_handler())

        self._handlers_configured = True

    def _create_console_handler(self) -> logging.Handler:
        handler = RichHandler(
            console=self.console,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
            log_time_format="[%Y-%m-%d %H:%M:%S]",
        )
        handler.setLevel(getattr(logging, self.config.level.value))
        handler.setFormatter(logging.Formatter("%(message)s"))
        if self.config.sensitive_data_patterns:
            handler.addFilter(SensitiveDataFilter(self.config.sensitive_data_patterns))
        return handler

    def _create_file_handler(self) -> logging.Handler:
        """Create rotating file handler."""
        log_dir = Path(self.config.log_directory).expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)

        handler = logging.handlers.RotatingFileHandler(
            filename=str(log_dir / self.config.log_filename),
            maxBytes=self.config.max_file_size_mb * 1024 * 1024,
            backupCount=self.config.backup_count,
            encoding="utf-8",
        )
        handler.setLevel(getattr(logging, self.config.level.value))

        formatter: logging.Formatter
        if self.config.format_type == LogFormat.JSON:
            formatter = StructuredFormatter()
        else:
            formatter = logging.Formatter(
                "[%(asctime)s] %(levelname)-8s - %(threadName)s - %(name)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        handler.setFormatter(formatter)

        if self.config.sensitive_data_patterns:
            handler.addFilter(SensitiveDataFilter(self.config.sensitive_data_patterns))
        return handler

    def get_logger(self, name: str) -> logging.Logger:
        if not self._handlers_configured:
            self.setup_logging()
        full_name = name if name.startswith("gkeyman") else f"gkeyman.{name}"
        return logging.getLogger(full_name)


# Global logging manager instance
_global_logging_manager: Optional[LoggingManager] = None


def get_logging_manager() -> LoggingManager:
    """Get the global logging manager instance."""
    global _global_logging_manager
    if _global_logging_manager is None:
        _global_logging_manager = LoggingManager()
    return _global_logging_manager


def setup_logging(
    config: Optional[LoggingConfig] = None, console: Optional[Console] = None
) -> None:
    """
    Set up logging for gkeyman.

    Args:
        config: Logging configuration
        console: Rich console used for console log output
    """
    global _global_logging_manager
    _global_logging_manager = LoggingManager(config, console)
    _global_logging_manager.setup_logging()


def get_logger(name: str) -> logging.Logger:
    return get_logging_manager().get_logger(name)
