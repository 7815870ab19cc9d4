"""Fixtures for running gkeyman commands through typer's CliRunner."""

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from gkeyman.utils.config import Config

from .gcp import FakeProvider

RUN_ID = "momotest1234"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "out"


@pytest.fixture
def cli_config(tmp_path, output_dir):
    """Config in a temporary directory with every delay disabled."""
    config = Config(config_dir=tmp_path / "config")
    config.set(
        "batch",
        {
            "propagation_delay": 0,
            "launch_delay": 0,
            "rebuild_settle_delay": 0,
            "max_parallel_jobs": 4,
            "output_dir": str(output_dir),
        },
    )
    with patch("gkeyman.commands.helpers.config", config), patch(
        "gkeyman.cli.batch_config", config
    ), patch("gkeyman.commands.config.Config", return_value=config):
        yield config


@pytest.fixture
def cli_provider(cli_config):
    """FakeProvider with a quota of 100 handed to every command."""
    provider = FakeProvider(capacity_limit=100)
    with patch("gkeyman.commands.keys.create_provider", return_value=provider), patch(
        "gkeyman.commands.projects.create_provider", return_value=provider
    ), patch("gkeyman.cli.create_provider", return_value=provider), patch(
        "gkeyman.commands.keys.generate_username", return_value=RUN_ID
    ):
        yield provider
