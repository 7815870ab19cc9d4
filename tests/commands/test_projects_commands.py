"""Tests for the projects delete and rebuild commands."""

from gkeyman.cli import app


class TestProjectsDelete:
    """Test cases for 'gkeyman projects delete'."""

    def test_delete_with_typed_confirmation(self, runner, cli_provider, output_dir):
        cli_provider.projects.update({"alpha": [], "beta": [], "gamma": []})

        result = runner.invoke(app, ["projects", "delete"], input="DELETE-ALL\n")

        assert result.exit_code == 0, result.output
        assert cli_provider.projects == {}
        logs = list(output_dir.glob("project_deletion_*.log"))
        assert len(logs) == 1
        content = logs[0].read_text()
        assert content.startswith("Project deletion log")
        assert "deleted: beta" in content
        assert "Delete projects completed successfully" in result.output

    def test_wrong_confirmation_cancels(self, runner, cli_provider):
        cli_provider.projects.update({"alpha": []})

        result = runner.invoke(app, ["projects", "delete"], input="yes\n")

        assert result.exit_code == 0
        assert "Operation cancelled" in result.output
        assert "alpha" in cli_provider.projects
        assert cli_provider.calls_for("delete_resource") == []

    def test_forced_delete_with_failure(self, runner, cli_provider, output_dir):
        cli_provider.projects.update({"alpha": [], "beta": []})
        cli_provider.fail("delete_resource", "beta", "FAILED_PRECONDITION: lien exists")

        result = runner.invoke(app, ["projects", "delete", "--force"])

        assert result.exit_code == 1
        assert "completed with some failures" in result.output
        assert cli_provider.calls_for("delete_resource").count("beta") == 1
        content = next(output_dir.glob("project_deletion_*.log")).read_text()
        assert "deleted: alpha" in content
        assert "delete failed: beta" in content

    def test_system_projects_are_skipped(self, runner, cli_provider):
        cli_provider.projects.update({"alpha": [], "sys-12345": []})

        result = runner.invoke(app, ["projects", "delete", "--force"])

        assert result.exit_code == 0, result.output
        assert list(cli_provider.projects) == ["sys-12345"]

    def test_nothing_to_delete(self, runner, cli_provider):
        result = runner.invoke(app, ["projects", "delete", "--force"])

        assert result.exit_code == 0
        assert "nothing to delete" in result.output


class TestProjectsRebuild:
    """Test cases for 'gkeyman projects rebuild'."""

    def test_rebuild_replaces_projects(self, runner, cli_provider, output_dir):
        cli_provider.projects.update({"old-one": [], "old-two": []})

        result = runner.invoke(app, ["projects", "rebuild", "--count", "2", "--force"])

        assert result.exit_code == 0, result.output
        assert sorted(cli_provider.projects) == [
            "gemini-key-momotest1234-001",
            "gemini-key-momotest1234-002",
        ]
        assert len((output_dir / "key.txt").read_text().splitlines()) == 2
        assert "Step 1" in result.output
        assert "Step 2" in result.output

    def test_rebuild_continues_after_failed_deletion(self, runner, cli_provider):
        cli_provider.projects.update({"stuck": []})
        cli_provider.fail("delete_resource", "stuck", "FAILED_PRECONDITION: lien exists")

        result = runner.invoke(app, ["projects", "rebuild", "--count", "1", "--force"])

        assert result.exit_code == 0, result.output
        assert "could not be deleted" in result.output
        assert "stuck" in cli_provider.projects
        assert len(cli_provider.projects) == 2

    def test_rebuild_without_existing_projects(self, runner, cli_provider):
        result = runner.invoke(app, ["projects", "rebuild", "--count", "1", "--force"])

        assert result.exit_code == 0, result.output
        assert "nothing to delete" in result.output
        assert len(cli_provider.projects) == 1

    def test_rebuild_cancelled_at_deletion(self, runner, cli_provider):
        cli_provider.projects.update({"alpha": []})

        result = runner.invoke(app, ["projects", "rebuild", "--count", "1"], input="no\n")

        assert result.exit_code == 0
        assert list(cli_provider.projects) == ["alpha"]
        assert cli_provider.calls_for("create_resource") == []
