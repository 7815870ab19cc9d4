"""End-to-end batch scenarios run against the in-memory provider."""

from io import StringIO

import pytest
from rich.console import Console

from gkeyman.bulk import (
    CreateAndProvisionProcessor,
    OutcomeLog,
    ProgressReporter,
    ProvisionExistingProcessor,
    QuotaPlanner,
    QuotaPolicy,
    ReportGenerator,
    ResultAggregator,
    RevokeCredentialsProcessor,
    Stage,
    TaskScheduler,
    TeardownProcessor,
    build_work_items,
    discover_work_items,
    generate_project_ids,
)

pytestmark = pytest.mark.integration


@pytest.fixture
def console():
    return Console(file=StringIO(), force_terminal=False, width=200)


@pytest.fixture
def scheduler(console):
    progress = ProgressReporter(console=console, description="Testing", live=False)
    return TaskScheduler(concurrency_limit=4, progress=progress)


class TestKeyLifecycle:
    """Create, extract, clean up and tear down a set of projects."""

    def test_full_lifecycle(self, fake_provider, fast_executor, scheduler, tmp_path, console):
        fake_provider.capacity_limit = 6
        plan = QuotaPlanner(fake_provider, policy=QuotaPolicy.CLAMP, executor=fast_executor).plan(
            10
        )
        assert plan.resolved == 6

        project_ids = generate_project_ids("gemini-key", "momolife0001", plan.resolved)
        created_keys = ResultAggregator(
            pure_key_file=tmp_path / "created.txt", joined_key_file=tmp_path / "created_joined.txt"
        )
        created_keys.reset()
        created = scheduler.run(
            build_work_items(project_ids),
            CreateAndProvisionProcessor(
                fake_provider,
                created_keys,
                executor=fast_executor,
                propagation_delay=0,
            ),
        )
        assert created.success_count == 6
        assert sorted((tmp_path / "created.txt").read_text().splitlines()) == sorted(
            created.payloads()
        )

        extracted_keys = ResultAggregator(pure_key_file=tmp_path / "extracted.txt")
        extracted_keys.reset()
        extracted = scheduler.run(
            discover_work_items(fake_provider),
            ProvisionExistingProcessor(fake_provider, extracted_keys, executor=fast_executor),
        )
        assert not extracted.degraded
        assert sorted(extracted.payloads()) == sorted(created.payloads())
        assert len(fake_provider.calls_for("issue_credential")) == 6

        cleanup_log = tmp_path / "cleanup.log"
        revoked = scheduler.run(
            discover_work_items(fake_provider),
            RevokeCredentialsProcessor(
                fake_provider,
                ResultAggregator(outcome_log=OutcomeLog(cleanup_log, "API key cleanup log")),
                executor=fast_executor,
                delete_interval=0,
            ),
        )
        assert sum(outcome.count for outcome in revoked.outcomes.values()) == 6
        assert fake_provider.issued_keys == []
        assert len(cleanup_log.read_text().splitlines()) == 6

        torn_down = scheduler.run(
            discover_work_items(fake_provider),
            TeardownProcessor(fake_provider, ResultAggregator(), executor=fast_executor),
        )
        assert torn_down.success_count == 6
        assert fake_provider.projects == {}

        ReportGenerator(console).generate_summary_report(torn_down, "Delete projects")
        assert "100.00%" in console.file.getvalue()


class TestDegradedBatches:
    """Batches where part of the work fails."""

    def test_mixed_failures_are_isolated(self, fake_provider, fast_executor, scheduler, key_files):
        project_ids = generate_project_ids("gemini-key", "momomix00001", 8)
        fake_provider.fail("create_resource", project_ids[1], "PERMISSION_DENIED: billing")
        fake_provider.fail("enable_capability", project_ids[4], "UNAVAILABLE: backend")
        fake_provider.fail("issue_credential", project_ids[6], "INTERNAL: flaky", times=1)
        aggregator = ResultAggregator(pure_key_file=key_files[0], joined_key_file=key_files[1])
        aggregator.reset()

        results = scheduler.run(
            build_work_items(project_ids),
            CreateAndProvisionProcessor(
                fake_provider, aggregator, executor=fast_executor, propagation_delay=0
            ),
        )

        assert results.total == 8
        assert results.success_count == 6
        assert results.degraded
        failed = dict(results.failures())
        assert failed[project_ids[1]].stage is Stage.CREATION
        assert failed[project_ids[4]].stage is Stage.ENABLEMENT
        assert len(fake_provider.calls_for("create_resource")) == 8
        assert key_files[0].read_text().count("\n") == 6
        assert key_files[1].read_text().count(",") == 5

    def test_rerun_after_partial_teardown(self, provider_factory, fast_executor, scheduler):
        provider = provider_factory(projects=["alpha", "beta", "gamma", "sys-hidden"])
        provider.fail("delete_resource", "beta", "FAILED_PRECONDITION: lien", times=1)
        processor = TeardownProcessor(provider, ResultAggregator(), executor=fast_executor)

        first = scheduler.run(discover_work_items(provider), processor)
        second = scheduler.run(discover_work_items(provider), processor)

        assert first.failure_count == 1
        assert list(second.outcomes) == ["beta"]
        assert not second.degraded
        assert list(provider.projects) == ["sys-hidden"]
