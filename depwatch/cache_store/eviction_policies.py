"""
Eviction policies for the cache store.
"""

import logging
from typing import Dict, Optional

from depwatch.cache_store.strategies import get_victim_selector
from depwatch.models import CacheEntry, EvictionStrategy

logger = logging.getLogger(__name__)


class StrategyEvictionPolicy:
    """Evicts one entry at a time using the configured strategy."""

    def __init__(self, strategy: EvictionStrategy = EvictionStrategy.LRU):
        """
        Initialize with an eviction strategy.

        Args:
            strategy: The eviction strategy to use
        """
        self.strategy = strategy
        self.evicted_count = 0

    @property
    def strategy(self) -> EvictionStrategy:
        """Get the current strategy."""
        return self._strategy

    @strategy.setter
    def strategy(self, value: EvictionStrategy):
        """Set the strategy."""
        self._strategy = EvictionStrategy.parse(value)
        self._select = get_victim_selector(self._strategy)

    def evict_one(self, cache: Dict[str, CacheEntry]) -> Optional[str]:
        """
        Remove exactly one entry from ``cache``.

        Args:
            cache: The entry table to evict from

        Returns:
            The evicted key, or None if the table was empty
        """
        key = self._select(cache)
        if key is None:
            return None

        del cache[key]
        self.evicted_count += 1
        logger.debug("Evicted %s (strategy=%s)", key, self._strategy.value)
        return key

    def reset(self) -> None:
        self.evicted_count = 0

    def get_stats(self) -> dict:
        """Get eviction policy statistics."""
        return {
            'strategy': self._strategy.value,
            'evicted_count': self.evicted_count,
        }
