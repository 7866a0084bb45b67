"""Tests for the tqdm progress reporter."""
import io

from depwatch.models import ProgressInfo
from depwatch.utils.progress import TqdmProgressReporter


def test_bar_tracks_completion_count():
    stream = io.StringIO()
    reporter = TqdmProgressReporter(file=stream, disable=False)

    for current in range(1, 4):
        reporter(ProgressInfo.for_step(current, 3, f"Checked pkg{current}"))

    assert reporter.bar.total == 3
    assert reporter.bar.n == 3
    assert reporter.last.percentage == 100.0
    reporter.close()


def test_bar_created_lazily_and_closed_by_context_manager():
    stream = io.StringIO()
    with TqdmProgressReporter(file=stream) as reporter:
        assert reporter.bar is None
        reporter(ProgressInfo.for_step(1, 2))
        bar = reporter.bar
    assert bar.n == 1
    assert "Checking dependencies" in stream.getvalue()


def test_close_without_events_is_safe():
    reporter = TqdmProgressReporter()
    reporter.close()
    assert reporter.last is None
