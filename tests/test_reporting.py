"""Tests for update report rendering."""
import json

import pytest

from depwatch.models import UpdateAvailable
from depwatch.reporting import ReportFormat, UpdateReporter


@pytest.fixture
def results():
    return [
        UpdateAvailable("react", "^17.0.2", "18.3.1", has_update=True, update_type="major"),
        UpdateAvailable("lodash", "~4.17.20", "4.17.21", has_update=True, update_type="patch"),
        UpdateAvailable("chalk", "4.1.2", "4.2.0", has_update=True, update_type="minor"),
        UpdateAvailable("left-pad", "1.3.0", "1.3.0"),
        UpdateAvailable("ghost", "1.0.0", "1.0.0", error="Failed to fetch version info for ghost"),
    ]


def test_summary_counts(results):
    summary = UpdateReporter().summarize(results)
    assert summary == {
        "major": 1, "minor": 1, "patch": 1,
        "total": 5, "updates": 3, "errors": 1,
    }


def test_plain_report(results):
    report = UpdateReporter(ReportFormat.PLAIN).render(results, title="my-app")
    lines = report.splitlines()

    assert lines[0] == "Dependency updates for my-app"
    assert "5 checked, 3 outdated (major: 1, minor: 1, patch: 1), 1 failed" in lines[1]
    assert "  react ^17.0.2 -> 18.3.1 (major) [breaking]" in lines
    assert "  lodash ~4.17.20 -> 4.17.21 (patch)" in lines
    assert ("  ghost 1.0.0: no update available, reason: "
            "Failed to fetch version info for ghost") in lines
    assert not any("left-pad" in line for line in lines)


def test_plain_report_all_up_to_date():
    report = UpdateReporter().render([UpdateAvailable("left-pad", "1.3.0", "1.3.0")])
    assert report.endswith("All dependencies are up to date.")


def test_markdown_report(results):
    report = UpdateReporter(ReportFormat.MARKDOWN).render(results, title="my-app")

    assert report.startswith("# Dependency Update Report")
    assert "**Project:** `my-app`" in report
    assert "| react | `^17.0.2` | `18.3.1` | major (breaking) |" in report
    assert "## Failed Lookups" in report
    assert "no update available, reason: Failed to fetch version info for ghost" in report


def test_json_report(results):
    document = json.loads(UpdateReporter("json").render(results))

    assert document["title"] is None
    assert document["summary"]["errors"] == 1
    assert [r["package_name"] for r in document["results"]] == [
        "chalk", "ghost", "left-pad", "lodash", "react",
    ]
    assert document["results"][1]["error"].startswith("Failed to fetch")


def test_unknown_format_rejected():
    with pytest.raises(ValueError):
        UpdateReporter("html")
