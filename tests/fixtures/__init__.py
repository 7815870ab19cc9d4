"""Test fixtures package for gkeyman.

This package provides fixtures for the different functional areas:

- gcp: FakeProvider, an in-memory stand-in for the gcloud provider
- bulk: executors, aggregators and work items for bulk operation tests
- cli: CliRunner, temporary configuration and a patched provider for command tests

Usage:
    from fixtures.gcp import FakeProvider
    from fixtures.bulk import key_aggregator
    from fixtures.cli import cli_provider
"""

from .bulk import fast_executor, key_aggregator, key_files, sample_work_items
from .cli import cli_config, cli_provider, output_dir, runner
from .gcp import FakeProvider, fake_provider, provider_factory, recorded_sleeps

__all__ = [
    # Provider fixtures
    "FakeProvider",
    "fake_provider",
    "provider_factory",
    "recorded_sleeps",
    # Bulk operation fixtures
    "fast_executor",
    "key_files",
    "key_aggregator",
    "sample_work_items",
    # Command fixtures
    "runner",
    "output_dir",
    "cli_config",
    "cli_provider",
]
