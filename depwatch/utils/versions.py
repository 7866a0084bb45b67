"""
Version string helpers.

Declared versions come straight from a manifest and may carry range operators
(``^1.2.3``, ``~1.2.0``, ``>=2.0.0``). Comparison follows semver precedence via
the ``semver`` package, so ``1.0.0-1`` and ``1.0.0-next.3`` both sort below
``1.0.0`` and build metadata is ignored.
"""
import re
from typing import Iterable, List, Optional

from semver import Version

from depwatch.models import UpdateType

_RANGE_PREFIX = re.compile(r"^\s*(?:\^|~>|~|>=|<=|>|<|==|=)*\s*v?\s*")


def parse_version(value: str) -> Optional[Version]:
    """Parse ``value`` or return None if it is not a version.

    A missing minor or patch component counts as zero, so ``"1"`` is ``1.0.0``.
    """
    try:
        return Version.parse(value, optional_minor_and_patch=True)
    except (ValueError, TypeError):
        return None


def clean_version(declared: str) -> Optional[str]:
    """
    Strip range operators from a declared version.

    Returns:
        The bare version string, or None when what remains does not parse
        (``"latest"``, ``"*"``, ``"1.x"``, git URLs and so on).
    """
    if not isinstance(declared, str):
        return None
    cleaned = _RANGE_PREFIX.sub("", declared, count=1).strip()
    if not cleaned or parse_version(cleaned) is None:
        return None
    return cleaned


def classify_update(current: str, latest: str) -> UpdateType:
    """
    Classify the gap from ``current`` to ``latest``.

    A change in the major component is ``major``; otherwise a change in the
    minor component (including a prerelease of the next minor) is ``minor``;
    any other newer version is ``patch``. No newer version is ``none``.
    """
    current_v = parse_version(current)
    latest_v = parse_version(latest)
    if current_v is None or latest_v is None or latest_v <= current_v:
        return UpdateType.NONE

    if latest_v.major != current_v.major:
        return UpdateType.MAJOR
    if latest_v.minor != current_v.minor:
        return UpdateType.MINOR
    return UpdateType.PATCH


def is_newer(current: str, latest: str) -> bool:
    """True iff ``latest`` has strictly higher precedence than ``current``."""
    current_v = parse_version(current)
    latest_v = parse_version(latest)
    return current_v is not None and latest_v is not None and latest_v > current_v


def sort_versions_desc(versions: Iterable[str]) -> List[str]:
    """Order by descending precedence, dropping strings that do not parse."""
    parsed = [(parse_version(v), v) for v in versions]
    valid = [pair for pair in parsed if pair[0] is not None]
    valid.sort(key=lambda pair: pair[0], reverse=True)
    return [v for _, v in valid]
