"""
In-memory cache store with TTL expiry, capacity eviction and JSON persistence.

Features:
- Per-entry TTL, checked lazily on access and eagerly after load
- One-at-a-time eviction (LRU / LFU / FIFO) when a new key arrives at capacity
- Hit/miss statistics
- Optional persistence of the full entry table to a JSON blob
"""

import asyncio
import logging
import os
import tempfile
import time
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, List, Optional

import orjson

from depwatch.cache_store.eviction_policies import StrategyEvictionPolicy
from depwatch.config import CacheConfig
from depwatch.exceptions import CacheLoadError, CachePersistError
from depwatch.models import CacheEntry, CacheStats

logger = logging.getLogger(__name__)

KEY_SEPARATOR = ":"


def _now_ms() -> int:
    return int(time.time() * 1000)


class CacheManager:
    """
    Key-value cache owned by a single instance; no global state.

    ``get``/``set``/``has``/``delete``/``clear`` are synchronous and never
    suspend, so they are atomic with respect to other coroutines on the same
    event loop. Only ``persist`` and ``load`` touch the filesystem.

    Args:
        config: Full cache configuration (defaults to ``CacheConfig()``)
        **overrides: Individual ``CacheConfig`` fields applied on top of ``config``

    Example:
        >>> cache = CacheManager(ttl_ms=60_000, max_size=100, strategy="lfu")
        >>> cache.set("version:react", {"latest": "18.3.1"})
        >>> cache.get("version:react")
        {'latest': '18.3.1'}
    """

    def __init__(self, config: Optional[CacheConfig] = None, **overrides: Any):
        if config is None:
            config = CacheConfig(**overrides)
        elif overrides:
            config = CacheConfig.model_validate({**config.model_dump(), **overrides})

        self.config = config
        self._cache: Dict[str, CacheEntry] = OrderedDict()
        self._eviction_policy = StrategyEvictionPolicy(config.strategy)
        self._hits = 0
        self._misses = 0

    @classmethod
    async def create(cls, config: Optional[CacheConfig] = None, **overrides: Any) -> "CacheManager":
        """Construct a cache and load its persisted contents, if any."""
        manager = cls(config, **overrides)
        await manager._safe_load()
        return manager

    async def __aenter__(self):
        await self._safe_load()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        try:
            await self.persist()
        except CachePersistError as e:
            logger.warning("Failed to persist cache on exit: %s", e)

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @property
    def persist_path(self) -> Optional[Path]:
        return Path(self.config.persist_path) if self.config.persist_path else None

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    # --- core operations -------------------------------------------------

    def get(self, key: str) -> Optional[Any]:
        """
        Get a cached value if it exists and is not expired.

        Expired entries are removed and counted as misses.

        Args:
            key: The key to look up

        Returns:
            The cached value, or None on a miss, expiry, or disabled cache
        """
        if not self.config.enabled:
            self._misses += 1
            return None

        entry = self._cache.get(key)
        if entry is None:
            self._misses += 1
            return None

        if entry.is_expired(_now_ms()):
            del self._cache[key]
            self._misses += 1
            return None

        entry.hit_count += 1
        self._hits += 1
        return entry.value

    def set(self, key: str, value: Any, ttl_ms: Optional[float] = None) -> None:
        """
        Store a value, evicting one entry first if a new key arrives at capacity.

        Overwriting an existing key never evicts. The stored entry always
        starts with a fresh ``created_at`` and a zero ``hit_count``.

        Args:
            key: The key to store under
            value: Any JSON-serializable value
            ttl_ms: Lifetime in milliseconds, truncated to a whole number
                (defaults to the configured TTL)
        """
        if not self.config.enabled:
            return

        if key not in self._cache and len(self._cache) >= self.config.max_size:
            self._eviction_policy.evict_one(self._cache)

        self._cache[key] = CacheEntry(
            key=key,
            value=value,
            created_at=_now_ms(),
            ttl_ms=int(ttl_ms) if ttl_ms and ttl_ms >= 1 else self.config.ttl_ms,
            hit_count=0,
        )

    def has(self, key: str) -> bool:
        """Check for a live entry without touching any counters."""
        if not self.config.enabled:
            return False

        entry = self._cache.get(key)
        if entry is None:
            return False

        if entry.is_expired(_now_ms()):
            del self._cache[key]
            return False
        return True

    def delete(self, key: str) -> bool:
        """
        Delete a key from the cache.

        Returns:
            bool: True if the key was found and deleted, False otherwise
        """
        return self._cache.pop(key, None) is not None

    def clear(self) -> None:
        """Remove every entry and reset hit/miss counters."""
        self._cache.clear()
        self._hits = 0
        self._misses = 0
        self._eviction_policy.reset()

    def purge_expired(self) -> int:
        """Remove all expired entries and return how many were dropped."""
        now = _now_ms()
        expired = [key for key, entry in self._cache.items() if entry.is_expired(now)]
        for key in expired:
            del self._cache[key]
        return len(expired)

    def get_stats(self) -> CacheStats:
        """Return a detached snapshot of the cache counters."""
        total = self._hits + self._misses
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            hit_rate=self._hits / total if total > 0 else 0.0,
            size=len(self._cache),
            max_size=self.config.max_size,
            evictions=self._eviction_policy.evicted_count,
        )

    @staticmethod
    def generate_key(*parts: str) -> str:
        """Join ``parts`` into a cache key, e.g. ``generate_key("update", "react", "^18.0.0")``."""
        return KEY_SEPARATOR.join(str(part) for part in parts)

    # --- persistence -----------------------------------------------------

    async def persist(self) -> None:
        """
        Write every entry, expired ones included, to the persist path.

        The blob is a JSON array of ``[key, entry]`` pairs. It is written to a
        temporary file and moved into place, so a failed write leaves both the
        previous blob and the in-memory table untouched.

        Raises:
            CachePersistError: If the entries cannot be serialized or written
        """
        path = self.persist_path
        if not self.config.enabled or path is None:
            return

        try:
            payload = orjson.dumps(
                [[key, entry.to_dict()] for key, entry in self._cache.items()],
                option=orjson.OPT_INDENT_2,
            )
            await asyncio.get_running_loop().run_in_executor(None, _write_atomic, path, payload)
        except (OSError, TypeError) as e:
            logger.warning("Failed to persist cache to %s: %s", path, e)
            raise CachePersistError(f"Failed to persist cache to {path}", original_exception=e) from e

        logger.debug("Persisted %d cache entries to %s", len(self._cache), path)

    async def load(self) -> int:
        """
        Replace the in-memory table with the persisted blob, then drop expired entries.

        A missing blob is not an error. A corrupt or unreadable blob leaves the
        cache empty.

        Returns:
            int: Number of live entries after loading

        Raises:
            CacheLoadError: If the blob exists but cannot be read or decoded
        """
        path = self.persist_path
        if not self.config.enabled or path is None or not path.exists():
            return 0

        try:
            raw = await asyncio.get_running_loop().run_in_executor(None, path.read_bytes)
            loaded = _decode_entries(orjson.loads(raw))
        except (OSError, ValueError, KeyError, TypeError) as e:
            self._cache.clear()
            logger.warning("Failed to load cache from %s, starting empty: %s", path, e)
            raise CacheLoadError(f"Failed to load cache from {path}", original_exception=e) from e

        self._cache = loaded
        expired = self.purge_expired()
        while len(self._cache) > self.config.max_size:
            self._eviction_policy.evict_one(self._cache)

        logger.debug(
            "Loaded %d cache entries from %s (%d expired)", len(self._cache), path, expired
        )
        return len(self._cache)

    async def _safe_load(self) -> None:
        try:
            await self.load()
        except CacheLoadError as e:
            logger.warning("Continuing with an empty cache: %s", e)


def _decode_entries(data: Any) -> Dict[str, CacheEntry]:
    if not isinstance(data, list):
        raise ValueError("Persisted cache must be a JSON array of [key, entry] pairs")

    entries: Dict[str, CacheEntry] = OrderedDict()
    for item in data:
        key, raw_entry = item
        entries[str(key)] = CacheEntry.from_dict(raw_entry)
    return entries


def _write_atomic(path: Path, payload: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise
