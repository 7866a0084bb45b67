"""
Core version checking for depwatch.
"""

from .version_checker import ProgressCallback, VersionChecker

__all__ = ["ProgressCallback", "VersionChecker"]
