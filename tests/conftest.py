"""Shared pytest configuration for the gkeyman tests."""

from fixtures import *  # noqa: F401,F403
