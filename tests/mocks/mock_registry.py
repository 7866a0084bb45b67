"""
Mock registries for testing purposes.
"""
import asyncio
from collections import Counter
from typing import Any, Dict, Iterable, Optional

from depwatch.exceptions import PackageNotFoundError
from depwatch.registry.base import BaseRegistryClient, split_spec


class MockRegistry(BaseRegistryClient):
    """In-process registry serving a fixed set of packages.

    Args:
        packages: Mapping of package name to published versions; the last one
            is the ``latest`` dist-tag unless ``dist_tags`` says otherwise
        dist_tags: Optional per-package dist-tag overrides
        delay: Seconds every request takes
    """

    def __init__(
        self,
        packages: Optional[Dict[str, Iterable[str]]] = None,
        dist_tags: Optional[Dict[str, Dict[str, str]]] = None,
        delay: float = 0.0,
    ):
        self.packages = {name: list(versions) for name, versions in (packages or {}).items()}
        self.dist_tags = dist_tags or {}
        self.delay = delay
        self.calls: Counter = Counter()
        self.active = 0
        self.peak = 0
        self.closed = False

    def package_url(self, name: str) -> str:
        return f"https://registry.test/{name}"

    def publish(self, name: str, *versions: str) -> None:
        self.packages.setdefault(name, []).extend(versions)

    def _tags(self, name: str) -> Dict[str, str]:
        tags = {"latest": self.packages[name][-1]}
        tags.update(self.dist_tags.get(name, {}))
        return tags

    async def _request(self, name: str) -> None:
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.active -= 1
        if name not in self.packages:
            raise PackageNotFoundError(f"Package '{name}' not found", url=self.package_url(name), status_code=404)

    async def manifest(self, spec: str, full_metadata: bool = False) -> Dict[str, Any]:
        name, selector = split_spec(spec)
        self.calls[("manifest", name)] += 1
        await self._request(name)
        version = self._tags(name).get(selector, selector)
        if version not in self.packages[name]:
            raise PackageNotFoundError(f"No version matching '{selector}' for '{name}'")
        return {"name": name, "version": version}

    async def packument(self, name: str) -> Dict[str, Any]:
        self.calls[("packument", name)] += 1
        await self._request(name)
        return {
            "name": name,
            "dist-tags": self._tags(name),
            "versions": {version: {"version": version} for version in self.packages[name]},
        }

    async def close(self) -> None:
        self.closed = True


class MockFailingRegistry(MockRegistry):
    """Mock registry whose requests fail a configurable number of times.

    Args:
        failures: Mapping of package name to the number of requests that fail
            before it starts answering; ``-1`` fails forever
        error: Exception raised for a failing request
    """

    def __init__(self, packages=None, failures: Optional[Dict[str, int]] = None,
                 error: Optional[Exception] = None, **kwargs):
        super().__init__(packages, **kwargs)
        self.failures = dict(failures or {})
        self.error = error or ConnectionError("Mocked registry failure")

    async def _request(self, name: str) -> None:
        remaining = self.failures.get(name, 0)
        if remaining:
            if remaining > 0:
                self.failures[name] = remaining - 1
            raise self.error
        await super()._request(name)


class MockHangingRegistry(MockRegistry):
    """Mock registry that never answers for the given packages."""

    def __init__(self, packages=None, hanging: Iterable[str] = (), **kwargs):
        super().__init__(packages, **kwargs)
        self.hanging = set(hanging)
        self._never = asyncio.Event()

    async def _request(self, name: str) -> None:
        if name in self.hanging:
            await self._never.wait()
        await super()._request(name)


class MockMalformedRegistry(MockRegistry):
    """Mock registry whose manifests come back without a ``version`` field."""

    async def manifest(self, spec: str, full_metadata: bool = False) -> Dict[str, Any]:
        data = await super().manifest(spec, full_metadata)
        data.pop("version")
        return data
