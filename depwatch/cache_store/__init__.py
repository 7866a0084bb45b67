"""
Cache store package for depwatch.

This package contains the cache manager, its eviction strategies and policies.
"""

from depwatch.models import CacheEntry, CacheStats, EvictionStrategy

# Strategies
from .strategies import (
    STRATEGIES,
    get_victim_selector,
    select_fifo_victim,
    select_lfu_victim,
    select_lru_victim,
)

# Eviction Policies
from .eviction_policies import StrategyEvictionPolicy

# Store
from .manager import CacheManager

__all__ = [
    "CacheEntry",
    "CacheStats",
    "EvictionStrategy",
    # Strategies
    "STRATEGIES",
    "get_victim_selector",
    "select_fifo_victim",
    "select_lfu_victim",
    "select_lru_victim",
    # Eviction Policies
    "StrategyEvictionPolicy",
    # Store
    "CacheManager",
]
