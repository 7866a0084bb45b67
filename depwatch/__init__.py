"""
depwatch - Dependency Version Checking
======================================

Cache-aware, retrying, bounded-concurrency version checks against a package
registry.
"""

__version__ = "0.1.0"

from .cache_store import CacheManager, EvictionStrategy
from .config import CacheConfig, CheckerConfig, ConfigLoader, DepsConfig, RegistryConfig
from .core import VersionChecker
from .registry import BaseRegistryClient, NpmRegistryClient
from .reporting import ReportFormat, UpdateReporter
from .utils.progress import TqdmProgressReporter

# Export models
from .models import (
    CacheEntry,
    CacheStats,
    ProgressInfo,
    UpdateAvailable,
    UpdateType,
    VersionInfo,
    VersionQueryResult,
)

__all__ = [
    "CacheManager",
    "EvictionStrategy",
    "CacheConfig",
    "CheckerConfig",
    "ConfigLoader",
    "DepsConfig",
    "RegistryConfig",
    "VersionChecker",
    "BaseRegistryClient",
    "NpmRegistryClient",
    "ReportFormat",
    "UpdateReporter",
    "TqdmProgressReporter",
    "CacheEntry",
    "CacheStats",
    "ProgressInfo",
    "UpdateAvailable",
    "UpdateType",
    "VersionInfo",
    "VersionQueryResult",
]
