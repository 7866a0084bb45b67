"""
Eviction strategies for the cache store.

Each strategy is a plain function that picks one victim key from the live
entry table, or ``None`` when the table is empty. The table is an insertion
ordered mapping of key to :class:`~depwatch.models.CacheEntry`.
"""

from typing import Callable, Dict, Mapping, Optional

from depwatch.models import CacheEntry, EvictionStrategy

VictimSelector = Callable[[Mapping[str, CacheEntry]], Optional[str]]


def select_lru_victim(entries: Mapping[str, CacheEntry]) -> Optional[str]:
    """
    Pick the entry with the oldest ``created_at``.

    Reads never refresh ``created_at``, so this evicts the oldest surviving
    insertion rather than the least recently read entry. Ties go to the
    first key in insertion order.

    Args:
        entries: The live entry table

    Returns:
        The key to evict, or None if there is nothing to evict
    """
    victim: Optional[str] = None
    oldest: Optional[int] = None
    for key, entry in entries.items():
        if oldest is None or entry.created_at < oldest:
            oldest = entry.created_at
            victim = key
    return victim


def select_lfu_victim(entries: Mapping[str, CacheEntry]) -> Optional[str]:
    """
    Pick the entry with the lowest ``hit_count``.

    Ties go to the first key in insertion order.
    """
    victim: Optional[str] = None
    fewest: Optional[int] = None
    for key, entry in entries.items():
        if fewest is None or entry.hit_count < fewest:
            fewest = entry.hit_count
            victim = key
    return victim


def select_fifo_victim(entries: Mapping[str, CacheEntry]) -> Optional[str]:
    """Pick the first key in insertion order."""
    return next(iter(entries), None)


STRATEGIES: Dict[EvictionStrategy, VictimSelector] = {
    EvictionStrategy.LRU: select_lru_victim,
    EvictionStrategy.LFU: select_lfu_victim,
    EvictionStrategy.FIFO: select_fifo_victim,
}


def get_victim_selector(strategy: EvictionStrategy) -> VictimSelector:
    """Return the selector for ``strategy``, defaulting to LRU."""
    return STRATEGIES.get(EvictionStrategy.parse(strategy), select_lru_victim)
