#!/usr/bin/env python3
"""
Check a project's dependencies
==============================

Reads ``package.json`` from a project directory, checks every dependency
against the registry and prints a report.

    python examples/check_project.py path/to/project --format markdown
"""

import argparse
import asyncio
import sys
from pathlib import Path

import orjson

from depwatch import ConfigLoader, ReportFormat, TqdmProgressReporter, UpdateReporter, VersionChecker
from depwatch.utils.logging_config import configure_from_environment


def read_dependencies(project_dir: Path) -> dict:
    manifest = orjson.loads((project_dir / "package.json").read_bytes())
    declared = {}
    for section in ("dependencies", "devDependencies"):
        declared.update(manifest.get(section) or {})
    return declared


async def main(project_dir: Path, report_format: ReportFormat) -> int:
    config = ConfigLoader(str(project_dir)).load()
    declared = {
        name: version
        for name, version in read_dependencies(project_dir).items()
        if name not in config.ignore
    }

    checker = await VersionChecker.from_config(config)
    async with checker:
        with TqdmProgressReporter(file=sys.stderr) as progress:
            results = await checker.resolve_many(declared, on_progress=progress)
        print(checker.get_cache_stats(), file=sys.stderr)

    await checker.cache.persist()

    print(UpdateReporter(report_format).render(results, title=project_dir.name))
    groups = VersionChecker.group_by_severity(results)
    return 1 if groups["major"] else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("project", nargs="?", default=".", type=Path)
    parser.add_argument("--format", choices=[f.value for f in ReportFormat], default="plain")
    args = parser.parse_args()

    configure_from_environment()
    sys.exit(asyncio.run(main(args.project.resolve(), ReportFormat(args.format))))
