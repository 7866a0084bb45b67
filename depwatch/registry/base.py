"""
Base registry module for depwatch.

This module contains the abstract client the version checker uses to reach a
package registry.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Tuple

DEFAULT_TAG = "latest"


def split_spec(spec: str) -> Tuple[str, str]:
    """
    Split ``"name@selector"`` into its name and selector.

    A leading ``@`` belongs to a scoped name (``@scope/pkg@next``). A spec
    without a selector resolves the ``latest`` dist-tag.
    """
    spec = spec.strip()
    at = spec.rfind("@")
    if at <= 0:
        return spec, DEFAULT_TAG
    name, selector = spec[:at], spec[at + 1:]
    return name, selector or DEFAULT_TAG


class BaseRegistryClient(ABC):
    """Abstract base class for package registry clients with async support."""

    @abstractmethod
    async def manifest(self, spec: str, full_metadata: bool = False) -> Dict[str, Any]:
        """
        Fetch the manifest of one published version.

        Args:
            spec: ``"name"`` or ``"name@<tag-or-version>"``
            full_metadata: Request the full document instead of the abbreviated one

        Returns:
            The version manifest; always contains ``name`` and ``version``
        """
        pass

    @abstractmethod
    async def packument(self, name: str) -> Dict[str, Any]:
        """
        Fetch the full package document.

        Args:
            name: Package name

        Returns:
            The packument; its ``versions`` mapping is keyed by version string
        """
        pass

    @abstractmethod
    def package_url(self, name: str) -> str:
        """URL identifying ``name`` on this registry, used in error reports."""
        pass

    async def close(self) -> None:
        """Release network resources. The default implementation holds none."""
        return None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
