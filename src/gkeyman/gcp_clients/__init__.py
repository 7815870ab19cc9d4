"""Google Cloud provider clients for gkeyman."""

from .provider import (
    DEFAULT_RESOURCE_FILTER,
    DEFAULT_SERVICE_NAME,
    GcloudProvider,
    ResourceProvider,
    SessionInfo,
    extract_field,
    parse_response,
)

__all__ = [
    "DEFAULT_RESOURCE_FILTER",
    "DEFAULT_SERVICE_NAME",
    "GcloudProvider",
    "ResourceProvider",
    "SessionInfo",
    "extract_field",
    "parse_response",
]
