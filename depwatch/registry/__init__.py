"""
Registry clients for depwatch.
"""

from .base import BaseRegistryClient, split_spec
from .npm import NpmRegistryClient

__all__ = [
    "BaseRegistryClient",
    "NpmRegistryClient",
    "split_spec",
]
