"""
Models
======

Value types shared by the cache store, the version checker and the reporting layer.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional

import attrs

logger = logging.getLogger(__name__)


class UpdateType(str, Enum):
    """Size of the gap between a declared version and the latest release."""
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    NONE = "none"


class EvictionStrategy(str, Enum):
    """Which entry a full cache gives up when a new key arrives."""
    LRU = "lru"  # oldest created_at; reads do not refresh it
    LFU = "lfu"
    FIFO = "fifo"

    @classmethod
    def parse(cls, value: Any) -> "EvictionStrategy":
        """Coerce ``value`` to a strategy, falling back to LRU for unknown names."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.warning("Unknown eviction strategy %r, falling back to %s", value, cls.LRU.value)
            return cls.LRU


_non_negative_int = attrs.validators.and_(
    attrs.validators.instance_of(int),
    attrs.validators.ge(0),
)


@attrs.define
class CacheEntry:
    """One cached value together with its bookkeeping."""

    key: str = attrs.field(validator=attrs.validators.instance_of(str))
    value: Any = attrs.field()
    created_at: int = attrs.field(validator=_non_negative_int)
    ttl_ms: int = attrs.field(validator=_non_negative_int)
    hit_count: int = attrs.field(default=0, validator=_non_negative_int)

    def is_expired(self, now_ms: int) -> bool:
        return now_ms - self.created_at > self.ttl_ms

    def to_dict(self) -> Dict[str, Any]:
        return attrs.asdict(self, recurse=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheEntry":
        return cls(
            key=data["key"],
            value=data.get("value"),
            created_at=int(data["created_at"]),
            ttl_ms=int(data["ttl_ms"]),
            hit_count=int(data.get("hit_count", 0)),
        )


@attrs.define(frozen=True)
class CacheStats:
    """Snapshot of cache counters. Instances are detached copies."""

    hits: int = 0
    misses: int = 0
    hit_rate: float = 0.0
    size: int = 0
    max_size: int = 0
    evictions: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return attrs.asdict(self)

    def __str__(self) -> str:
        return (
            f"CacheStats(hits={self.hits}, misses={self.misses}, "
            f"hit_rate={self.hit_rate:.1%}, size={self.size}/{self.max_size}, "
            f"evictions={self.evictions})"
        )


@attrs.define
class VersionInfo:
    """Published version data for one package."""

    current: str = attrs.field(validator=attrs.validators.instance_of(str))
    latest: str = attrs.field(validator=attrs.validators.instance_of(str))
    has_update: bool = attrs.field(default=False)
    wanted: Optional[str] = attrs.field(default=None)
    beta: Optional[str] = attrs.field(default=None)
    alpha: Optional[str] = attrs.field(default=None)

    def to_dict(self) -> Dict[str, Any]:
        return attrs.asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VersionInfo":
        return cls(**{f.name: data.get(f.name) for f in attrs.fields(cls) if f.name in data})


@attrs.define
class UpdateAvailable:
    """Outcome of resolving one declared dependency against the registry.

    When ``error`` is set the resolution failed, ``has_update`` is False and
    ``update_type`` is ``none``.
    """

    package_name: str = attrs.field(validator=attrs.validators.instance_of(str))
    current_version: str = attrs.field(validator=attrs.validators.instance_of(str))
    latest_version: str = attrs.field(validator=attrs.validators.instance_of(str))
    has_update: bool = attrs.field(default=False)
    update_type: UpdateType = attrs.field(default=UpdateType.NONE, converter=UpdateType)
    breaking_changes: bool = attrs.field(default=False)
    error: Optional[str] = attrs.field(default=None)

    def __attrs_post_init__(self):
        if self.error is not None:
            self.has_update = False
            self.update_type = UpdateType.NONE
            self.breaking_changes = False
        else:
            self.breaking_changes = self.update_type is UpdateType.MAJOR

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        data = attrs.asdict(self)
        data["update_type"] = self.update_type.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UpdateAvailable":
        return cls(**{f.name: data[f.name] for f in attrs.fields(cls) if f.name in data})


VersionQueryResult = UpdateAvailable


@attrs.define(frozen=True)
class ProgressInfo:
    """Progress event emitted once per completed batch item."""

    current: int = attrs.field(validator=_non_negative_int)
    total: int = attrs.field(validator=_non_negative_int)
    percentage: float = attrs.field(
        validator=attrs.validators.and_(
            attrs.validators.instance_of(float),
            attrs.validators.ge(0.0),
            attrs.validators.le(100.0),
        )
    )
    message: Optional[str] = attrs.field(default=None)

    @classmethod
    def for_step(cls, current: int, total: int, message: Optional[str] = None) -> "ProgressInfo":
        percentage = 100.0 if current >= total else (current / total) * 100.0
        return cls(current=current, total=total, percentage=percentage, message=message)

    def __str__(self) -> str:
        return f"ProgressInfo({self.current}/{self.total}, {self.percentage:.1f}%)"
