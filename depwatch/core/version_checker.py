"""
Cache-aware, retrying version resolution for declared dependencies.

Every registry lookup goes through :func:`~depwatch.utils.retry.fetch_with_retry`
and its result is cached in a :class:`~depwatch.cache_store.CacheManager` under
``version:<name>``, ``all-versions:<name>`` or ``update:<name>:<declared>``.
Batches run under a :class:`~depwatch.utils.concurrency.BoundedTaskPool`.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Type, TypeVar

from depwatch.cache_store import CacheManager
from depwatch.config import CheckerConfig, DepsConfig
from depwatch.exceptions import NetworkError
from depwatch.models import ProgressInfo, UpdateAvailable, UpdateType, VersionInfo
from depwatch.registry import BaseRegistryClient, NpmRegistryClient
from depwatch.utils.concurrency import BoundedTaskPool
from depwatch.utils.logging import MetricsLogger, PackageLoggerAdapter, with_correlation_id
from depwatch.utils.retry import fetch_with_retry
from depwatch.utils.versions import classify_update, clean_version, is_newer, sort_versions_desc

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressInfo], None]
M = TypeVar("M", VersionInfo, UpdateAvailable)

CACHE_TYPE = "versions"


class VersionChecker:
    """
    Resolves latest versions and update availability against a registry.

    Args:
        cache: Cache for registry answers (a fresh in-memory one by default)
        registry: Registry client (an :class:`NpmRegistryClient` by default)
        config: Concurrency, retry and timeout settings
        **overrides: Individual ``CheckerConfig`` fields applied on top of ``config``

    Example:
        >>> async with VersionChecker(concurrency=5) as checker:
        ...     results = await checker.resolve_many({"react": "^17.0.2"})
    """

    def __init__(
        self,
        cache: Optional[CacheManager] = None,
        registry: Optional[BaseRegistryClient] = None,
        config: Optional[CheckerConfig] = None,
        **overrides: Any,
    ):
        if config is None:
            config = CheckerConfig(**overrides)
        elif overrides:
            config = CheckerConfig.model_validate({**config.model_dump(), **overrides})

        self.config = config
        self.cache = cache if cache is not None else CacheManager()
        self._owns_registry = registry is None
        self.registry = registry if registry is not None else NpmRegistryClient()
        self.metrics = MetricsLogger(logger)
        self.log = PackageLoggerAdapter(logger)

    @classmethod
    async def from_config(cls, config: DepsConfig) -> "VersionChecker":
        """Build a checker, its loaded cache and registry client from merged configuration."""
        cache = await CacheManager.create(config.cache)
        checker = cls(cache=cache, registry=NpmRegistryClient(config.registry.url), config=config.checker)
        checker._owns_registry = True
        return checker

    async def close(self) -> None:
        if self._owns_registry:
            await self.registry.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _fetch(self, operation, description: str):
        return await fetch_with_retry(
            operation,
            retries=self.config.retries,
            timeout=self.config.timeout_seconds,
            base_delay=self.config.backoff_seconds,
            description=description,
        )

    def _cached(self, key: str, model: Type[M]) -> Optional[M]:
        data = self.cache.get(key)
        if data is None:
            self.metrics.log_cache_miss(CACHE_TYPE, key)
            return None
        try:
            value = model.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Discarding unreadable cache entry %s: %s", key, e)
            self.cache.delete(key)
            return None
        self.metrics.log_cache_hit(CACHE_TYPE, key)
        return value

    async def resolve_latest(self, package_name: str) -> VersionInfo:
        """
        Get the latest published version of a package.

        Args:
            package_name: Package to look up

        Returns:
            VersionInfo with ``current`` and ``latest`` both set to the latest version

        Raises:
            NetworkError: If the registry could not be reached after all retries
        """
        key = CacheManager.generate_key("version", package_name)
        cached = self._cached(key, VersionInfo)
        if cached is not None:
            return cached

        try:
            manifest = await self._fetch(
                lambda: self.registry.manifest(f"{package_name}@latest"),
                f"manifest {package_name}",
            )
            latest = manifest["version"]
        except Exception as e:
            raise NetworkError(
                f"Failed to fetch version info for {package_name}",
                url=self.registry.package_url(package_name),
                original_exception=e,
            ) from e

        info = VersionInfo(current=latest, latest=latest, has_update=False)
        self.cache.set(key, info.to_dict())
        return info

    async def resolve_all_versions(self, package_name: str) -> VersionInfo:
        """
        Get the latest version plus the newest beta and alpha releases.

        Raises:
            NetworkError: If the registry could not be reached after all retries
        """
        key = CacheManager.generate_key("all-versions", package_name)
        cached = self._cached(key, VersionInfo)
        if cached is not None:
            return cached

        try:
            manifest = await self._fetch(
                lambda: self.registry.manifest(package_name, full_metadata=True),
                f"manifest {package_name}",
            )
            packument = await self._fetch(
                lambda: self.registry.packument(package_name),
                f"packument {package_name}",
            )
            latest = manifest["version"]
            published = list((packument.get("versions") or {}).keys())
        except Exception as e:
            raise NetworkError(
                f"Failed to fetch all versions for {package_name}",
                url=self.registry.package_url(package_name),
                original_exception=e,
            ) from e

        betas = sort_versions_desc(v for v in published if "beta" in v)
        alphas = sort_versions_desc(v for v in published if "alpha" in v)

        info = VersionInfo(
            current=latest,
            latest=latest,
            has_update=False,
            beta=betas[0] if betas else None,
            alpha=alphas[0] if alphas else None,
        )
        self.cache.set(key, info.to_dict())
        return info

    async def resolve_update(self, package_name: str, declared_version: str) -> UpdateAvailable:
        """
        Compare a declared version or range with the latest published version.

        Never raises: failures come back as a result with ``error`` set.

        Args:
            package_name: Package to look up
            declared_version: Version as written in the manifest, e.g. ``"^1.2.3"``

        Returns:
            UpdateAvailable describing the gap to the latest version
        """
        key = CacheManager.generate_key("update", package_name, declared_version)
        cached = self._cached(key, UpdateAvailable)
        if cached is not None:
            return cached

        log = self.log.bind(package=package_name, declared=declared_version)
        try:
            latest = (await self.resolve_latest(package_name)).latest

            current = clean_version(declared_version)
            if current is None:
                log.debug("Declared version is not comparable, latest is %s", latest)
                return UpdateAvailable(
                    package_name=package_name,
                    current_version=declared_version,
                    latest_version=latest,
                    has_update=False,
                    update_type=UpdateType.NONE,
                )

            has_update = is_newer(current, latest)
            result = UpdateAvailable(
                package_name=package_name,
                current_version=declared_version,
                latest_version=latest,
                has_update=has_update,
                update_type=classify_update(current, latest) if has_update else UpdateType.NONE,
            )
            log.debug("Latest is %s, update type %s", latest, result.update_type.value)
        except Exception as e:
            log.warning("Update check for %s failed: %s", package_name, e)
            return UpdateAvailable(
                package_name=package_name,
                current_version=declared_version,
                latest_version=declared_version,
                error=str(e),
            )

        self.cache.set(key, result.to_dict())
        return result

    async def resolve_many(
        self,
        declared: Mapping[str, str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[UpdateAvailable]:
        """
        Check every declared dependency with bounded concurrency.

        ``on_progress`` is called once per finished item with the number of
        items finished so far; the last call reports 100%. Results come back
        in completion order.

        Args:
            declared: Mapping of package name to declared version
            on_progress: Optional progress callback

        Returns:
            One result per entry in ``declared``
        """
        entries = list(declared.items())
        total = len(entries)
        pool = BoundedTaskPool(self.config.concurrency)
        completed = 0

        async def _check(entry) -> UpdateAvailable:
            nonlocal completed
            name, version = entry
            result = await self.resolve_update(name, version)
            completed += 1
            if on_progress is not None:
                on_progress(ProgressInfo.for_step(completed, total, f"Checked {name}"))
            return result

        with with_correlation_id():
            start = time.perf_counter()
            self.metrics.log_operation_start(
                "resolve_many", total=total, concurrency=pool.limit
            )
            results = await pool.map(_check, entries)

            errors = sum(1 for result in results if result.failed)
            self.metrics.log_operation_end(
                "resolve_many",
                time.perf_counter() - start,
                success=errors == 0,
                total=total,
                updates=sum(1 for result in results if result.has_update),
                errors=errors,
            )
            if errors:
                self.metrics.log_error_rate("resolve_many", errors, total)
        return results

    async def check_outdated(self, declared: Mapping[str, str]) -> List[UpdateAvailable]:
        """Return only the dependencies that have a newer version available."""
        return [result for result in await self.resolve_many(declared) if result.has_update]

    @staticmethod
    def group_by_severity(results: List[UpdateAvailable]) -> Dict[str, List[UpdateAvailable]]:
        """Partition results into ``major``, ``minor`` and ``patch``; others are dropped."""
        groups: Dict[str, List[UpdateAvailable]] = {
            UpdateType.MAJOR.value: [],
            UpdateType.MINOR.value: [],
            UpdateType.PATCH.value: [],
        }
        for result in results:
            if result.failed or result.update_type is UpdateType.NONE:
                continue
            groups[result.update_type.value].append(result)
        return groups

    def clear_cache(self) -> None:
        self.cache.clear()

    def get_cache_stats(self):
        return self.cache.get_stats()
