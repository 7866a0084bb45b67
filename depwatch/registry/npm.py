"""
npm registry client built on aiohttp.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import aiohttp

from depwatch.config import DEFAULT_REGISTRY
from depwatch.exceptions import NetworkError, PackageNotFoundError, RegistryError
from depwatch.registry.base import BaseRegistryClient, split_spec

logger = logging.getLogger(__name__)

ABBREVIATED_ACCEPT = (
    "application/vnd.npm.install-v1+json; q=1.0, application/json; q=0.8, */*"
)
FULL_ACCEPT = "application/json"


class NpmRegistryClient(BaseRegistryClient):
    """
    Client for an npm-compatible registry.

    The ``aiohttp.ClientSession`` is opened on the first request and closed
    by :meth:`close` (or on leaving ``async with``).

    Args:
        registry_url: Base URL of the registry
        session: Externally owned session to use instead of opening one
        user_agent: ``User-Agent`` header sent with every request
    """

    def __init__(
        self,
        registry_url: str = DEFAULT_REGISTRY,
        session: Optional[aiohttp.ClientSession] = None,
        user_agent: str = "depwatch",
    ):
        self.registry_url = registry_url.rstrip("/")
        self.user_agent = user_agent
        self._session = session
        self._owns_session = session is None

    def package_url(self, name: str) -> str:
        return f"{self.registry_url}/{name}"

    def _request_url(self, name: str) -> str:
        if name.startswith("@"):
            return f"{self.registry_url}/@{quote(name[1:], safe='')}"
        return f"{self.registry_url}/{quote(name, safe='')}"

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers={"User-Agent": self.user_agent})
            self._owns_session = True
        return self._session

    async def _get_document(self, name: str, full_metadata: bool) -> Dict[str, Any]:
        url = self._request_url(name)
        headers = {"Accept": FULL_ACCEPT if full_metadata else ABBREVIATED_ACCEPT}
        session = self._get_session()

        logger.debug("GET %s", url)
        try:
            async with session.get(url, headers=headers) as response:
                if response.status == 404:
                    raise PackageNotFoundError(
                        f"Package '{name}' not found in registry",
                        url=self.package_url(name),
                        status_code=404,
                    )
                if response.status >= 400:
                    body = await response.text()
                    raise RegistryError(
                        f"Registry returned HTTP {response.status} for '{name}': {body[:200]}",
                        url=self.package_url(name),
                        status_code=response.status,
                    )
                return await response.json(content_type=None)
        except aiohttp.ClientError as e:
            raise NetworkError(
                f"Request for '{name}' failed",
                url=self.package_url(name),
                original_exception=e,
            ) from e

    async def packument(self, name: str) -> Dict[str, Any]:
        return await self._get_document(name, full_metadata=True)

    async def manifest(self, spec: str, full_metadata: bool = False) -> Dict[str, Any]:
        """
        Resolve ``spec`` to one version manifest.

        The selector after ``@`` is looked up as a dist-tag first and then as
        an exact version.

        Raises:
            PackageNotFoundError: If the package, tag or version does not exist
            RegistryError: For other HTTP error statuses
            NetworkError: If the request itself fails
        """
        name, selector = split_spec(spec)
        document = await self._get_document(name, full_metadata)

        dist_tags = document.get("dist-tags") or {}
        versions = document.get("versions") or {}
        version = dist_tags.get(selector, selector)

        manifest = versions.get(version)
        if manifest is None:
            raise PackageNotFoundError(
                f"No version matching '{selector}' for '{name}'",
                url=self.package_url(name),
            )

        manifest = dict(manifest)
        manifest.setdefault("name", name)
        manifest.setdefault("version", version)
        if full_metadata:
            manifest["dist-tags"] = dist_tags
            manifest["time"] = document.get("time") or {}
        return manifest

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None
