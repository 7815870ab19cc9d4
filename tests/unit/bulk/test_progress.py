"""Tests for progress rendering and the progress reporter."""

from io import StringIO

from rich.console import Console

from gkeyman.bulk.progress import BAR_WIDTH, ProgressReporter, render_progress


def make_console():
    return Console(file=StringIO(), force_terminal=False, width=200)


class TestRenderProgress:
    """Test cases for render_progress."""

    def test_half_way(self):
        rendered = render_progress(5, 10)

        assert rendered.endswith("] 50% (5/10)")
        assert rendered.count("#") == BAR_WIDTH // 2

    def test_complete(self):
        rendered = render_progress(10, 10)

        assert rendered == f"[{'#' * BAR_WIDTH}] 100% (10/10)"

    def test_nothing_done(self):
        assert render_progress(0, 7) == f"[{' ' * BAR_WIDTH}] 0% (0/7)"

    def test_completed_above_total_is_clamped(self):
        rendered = render_progress(150, 100)

        assert rendered.endswith("100% (100/100)")
        assert len(rendered) == len(render_progress(100, 100))

    def test_negative_completed_is_clamped(self):
        assert render_progress(-3, 10).endswith("0% (0/10)")

    def test_zero_total_is_invalid(self):
        assert render_progress(5, 0) == "[invalid total: 0]"

    def test_negative_total_is_invalid(self):
        assert render_progress(1, -4) == "[invalid total: -4]"

    def test_width_is_bounded(self):
        for completed in range(0, 101, 7):
            rendered = render_progress(completed, 100, width=20)
            assert rendered.index("]") == 21

    def test_percent_rounds_down(self):
        assert "33%" in render_progress(1, 3)


class TestProgressReporter:
    """Test cases for ProgressReporter."""

    def test_plain_mode_prints_lines(self):
        console = make_console()
        reporter = ProgressReporter(console=console, description="Deleting", live=False)

        reporter.start(4)
        rendered = reporter.report(2, 4, succeeded=1, failed=1)
        reporter.finish()

        output = console.file.getvalue()
        assert rendered.endswith("50% (2/4)")
        assert "Deleting" in output
        assert "(S:1 F:1 T:4)" in output
        assert reporter.last_rendered == rendered

    def test_invalid_total_is_reported(self):
        console = make_console()
        reporter = ProgressReporter(console=console, live=False)

        assert reporter.report(5, 0) == "[invalid total: 0]"
        assert "invalid total: 0" in console.file.getvalue()

    def test_live_mode_updates_task(self):
        reporter = ProgressReporter(console=make_console(), description="Creating")

        reporter.start(3)
        assert reporter.progress is not None
        reporter.report(2, 3, succeeded=2, failed=0)
        task = reporter.progress.tasks[0]
        assert task.completed == 2
        assert task.fields["succeeded"] == 2
        reporter.finish()

        assert reporter.progress is None

    def test_live_mode_clamps_completed(self):
        reporter = ProgressReporter(console=make_console())

        reporter.start(2)
        reporter.report(5, 2)
        assert reporter.progress.tasks[0].completed == 2
        reporter.finish()

    def test_context_manager_finishes(self):
        with ProgressReporter(console=make_console()) as reporter:
            reporter.start(1)
        assert reporter.progress is None

    def test_elapsed_time(self):
        reporter = ProgressReporter(console=make_console(), live=False)
        assert reporter.get_elapsed_time() == 0.0
        reporter.start(1)
        assert reporter.get_elapsed_time() >= 0.0
