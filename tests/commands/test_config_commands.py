"""Tests for the config show, set, reset and path commands."""

from gkeyman.cli import app


class TestConfigSet:
    """Test cases for 'gkeyman config set'."""

    def test_set_integer_value(self, runner, cli_config):
        result = runner.invoke(app, ["config", "set", "max_parallel_jobs=10"])

        assert result.exit_code == 0, result.output
        assert "Configuration 'max_parallel_jobs' set to '10'" in result.output
        cli_config.reload_config()
        assert cli_config.get("batch.max_parallel_jobs") == 10

    def test_set_with_section_prefix(self, runner, cli_config):
        result = runner.invoke(app, ["config", "set", "batch.quota_policy=clamp"])

        assert result.exit_code == 0, result.output
        assert cli_config.get("batch.quota_policy") == "clamp"

    def test_set_boolean_value(self, runner, cli_config):
        result = runner.invoke(app, ["config", "set", "proceed_without_quota=false"])

        assert result.exit_code == 0, result.output
        assert cli_config.get("batch.proceed_without_quota") is False

    def test_set_invalid_value(self, runner, cli_config):
        result = runner.invoke(app, ["config", "set", "max_parallel_jobs=0"])

        assert result.exit_code == 1
        assert "Error setting configuration" in result.output
        assert cli_config.get("batch.max_parallel_jobs") == 4

    def test_set_unknown_key(self, runner, cli_config):
        result = runner.invoke(app, ["config", "set", "colour=blue"])

        assert result.exit_code == 1
        assert "unknown setting" in result.output

    def test_set_without_equals(self, runner, cli_config):
        result = runner.invoke(app, ["config", "set", "max_parallel_jobs"])

        assert result.exit_code == 1
        assert "Invalid format" in result.output

    def test_set_without_key(self, runner, cli_config):
        result = runner.invoke(app, ["config", "set", "=5"])

        assert result.exit_code == 1
        assert "setting name is required" in result.output


class TestConfigShow:
    """Test cases for 'gkeyman config show'."""

    def test_show_table(self, runner, cli_config):
        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0, result.output
        assert "Batch Configuration" in result.output
        assert "quota_policy" in result.output
        assert "Configuration file:" in result.output

    def test_show_yaml(self, runner, cli_config):
        result = runner.invoke(app, ["config", "show", "--format", "yaml"])

        assert result.exit_code == 0, result.output
        assert "max_parallel_jobs: 4" in result.output
        assert "level: INFO" in result.output

    def test_show_unknown_format(self, runner, cli_config):
        result = runner.invoke(app, ["config", "show", "--format", "xml"])

        assert result.exit_code == 1
        assert "Unknown format" in result.output


class TestConfigReset:
    """Test cases for 'gkeyman config reset'."""

    def test_reset_forced(self, runner, cli_config):
        result = runner.invoke(app, ["config", "reset", "--force"])

        assert result.exit_code == 0, result.output
        assert cli_config.get("batch") is None
        assert cli_config.get_batch_settings().max_parallel_jobs == 20

    def test_reset_declined(self, runner, cli_config):
        result = runner.invoke(app, ["config", "reset"], input="n\n")

        assert result.exit_code == 0
        assert "Reset cancelled" in result.output
        assert cli_config.get("batch.max_parallel_jobs") == 4


class TestConfigPath:
    """Test cases for 'gkeyman config path'."""

    def test_path_reports_existing_file(self, runner, cli_config):
        result = runner.invoke(app, ["config", "path"])

        assert result.exit_code == 0
        assert "File exists: Yes" in result.output
