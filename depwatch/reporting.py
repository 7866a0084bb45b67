"""
Update reports.

Renders :class:`~depwatch.models.UpdateAvailable` results as plain text,
Markdown or JSON. Failed lookups are listed with their reason and never stop
the rest of the report from rendering.
"""

from enum import Enum
from typing import Dict, List, Optional

import orjson

from depwatch.models import UpdateAvailable, UpdateType

SEVERITIES = (UpdateType.MAJOR, UpdateType.MINOR, UpdateType.PATCH)


class ReportFormat(str, Enum):
    """Available report formats."""
    PLAIN = "plain"
    MARKDOWN = "markdown"
    JSON = "json"


def describe_failure(result: UpdateAvailable) -> str:
    return f"no update available, reason: {result.error}"


class UpdateReporter:
    """
    Formats the results of a batch version check.

    Args:
        format: Output format (default: plain text)

    Example:
        >>> reporter = UpdateReporter(ReportFormat.MARKDOWN)
        >>> print(reporter.render(results, title="my-app"))
    """

    def __init__(self, format: ReportFormat = ReportFormat.PLAIN):
        self.format = ReportFormat(format)

    def summarize(self, results: List[UpdateAvailable]) -> Dict[str, int]:
        """Count results per update type, plus totals for updates and errors."""
        summary = {severity.value: 0 for severity in SEVERITIES}
        summary.update(total=len(results), updates=0, errors=0)
        for result in results:
            if result.failed:
                summary["errors"] += 1
            elif result.has_update:
                summary["updates"] += 1
                summary[result.update_type.value] += 1
        return summary

    def render(self, results: List[UpdateAvailable], title: Optional[str] = None) -> str:
        """
        Render ``results`` in the configured format.

        Args:
            results: Results from a batch check, in any order
            title: Optional project name for the report header

        Returns:
            The formatted report
        """
        ordered = sorted(results, key=lambda r: r.package_name)
        if self.format is ReportFormat.JSON:
            return self._render_json(ordered, title)
        if self.format is ReportFormat.MARKDOWN:
            return self._render_markdown(ordered, title)
        return self._render_plain(ordered, title)

    def _render_json(self, results: List[UpdateAvailable], title: Optional[str]) -> str:
        document = {
            "title": title,
            "summary": self.summarize(results),
            "results": [result.to_dict() for result in results],
        }
        return orjson.dumps(document, option=orjson.OPT_INDENT_2).decode("utf-8")

    def _render_plain(self, results: List[UpdateAvailable], title: Optional[str]) -> str:
        summary = self.summarize(results)
        lines: List[str] = [f"Dependency updates for {title}" if title else "Dependency updates"]
        lines.append(
            f"{summary['total']} checked, {summary['updates']} outdated "
            f"(major: {summary['major']}, minor: {summary['minor']}, patch: {summary['patch']}), "
            f"{summary['errors']} failed"
        )
        for result in results:
            if result.failed:
                lines.append(f"  {result.package_name} {result.current_version}: {describe_failure(result)}")
            elif result.has_update:
                marker = " [breaking]" if result.breaking_changes else ""
                lines.append(
                    f"  {result.package_name} {result.current_version} -> "
                    f"{result.latest_version} ({result.update_type.value}){marker}"
                )
        if summary["updates"] == 0 and summary["errors"] == 0:
            lines.append("  All dependencies are up to date.")
        return "\n".join(lines)

    def _render_markdown(self, results: List[UpdateAvailable], title: Optional[str]) -> str:
        summary = self.summarize(results)
        lines: List[str] = ["# Dependency Update Report", ""]
        if title:
            lines.extend([f"**Project:** `{title}`", ""])

        lines.extend(["## Summary", ""])
        lines.append(f"- **Checked:** {summary['total']}")
        lines.append(f"- **Updates Available:** {summary['updates']}")
        for severity in SEVERITIES:
            lines.append(f"  - {severity.value.capitalize()}: {summary[severity.value]}")
        lines.append(f"- **Failed:** {summary['errors']}")
        lines.append("")

        outdated = [r for r in results if r.has_update]
        if outdated:
            lines.extend(["## Updates", "", "| Package | Current | Latest | Type |", "|---|---|---|---|"])
            for result in outdated:
                kind = result.update_type.value
                if result.breaking_changes:
                    kind += " (breaking)"
                lines.append(
                    f"| {result.package_name} | `{result.current_version}` | "
                    f"`{result.latest_version}` | {kind} |"
                )
            lines.append("")

        failed = [r for r in results if r.failed]
        if failed:
            lines.extend(["## Failed Lookups", ""])
            for result in failed:
                lines.append(f"- **{result.package_name}** `{result.current_version}`: {describe_failure(result)}")
            lines.append("")

        if not outdated and not failed:
            lines.extend(["All dependencies are up to date.", ""])
        return "\n".join(lines)
