"""Command modules for gkeyman."""

from . import config, keys, projects

__all__ = ["config", "keys", "projects"]
