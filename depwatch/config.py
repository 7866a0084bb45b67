"""
Configuration models and loader for depwatch.

Configuration is merged from built-in defaults, a ``.depsrc.json`` file, the
``"deps"`` section of ``package.json`` and ``DEPWATCH_*`` environment variables,
later sources overriding earlier ones.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import orjson
from pydantic import BaseModel, ConfigDict, Field, field_validator

from depwatch.models import EvictionStrategy
from depwatch.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 3_600_000
DEFAULT_MAX_SIZE = 1000
DEFAULT_CONCURRENCY = 10
DEFAULT_RETRIES = 3
DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_BACKOFF_MS = 1000
DEFAULT_REGISTRY = "https://registry.npmjs.org"


def _positive_int_or_default(value: Any, default: int, name: str) -> Any:
    try:
        number = int(value)
    except (TypeError, ValueError):
        logger.warning("Invalid %s %r, falling back to %s", name, value, default)
        return default
    if number <= 0:
        logger.warning("Non-positive %s %r, falling back to %s", name, value, default)
        return default
    return number


class CacheConfig(BaseModel):
    """Configuration for :class:`~depwatch.cache_store.manager.CacheManager`."""
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    ttl_ms: int = DEFAULT_TTL_MS
    max_size: int = DEFAULT_MAX_SIZE
    strategy: EvictionStrategy = EvictionStrategy.LRU
    persist_path: Optional[str] = None

    @field_validator("ttl_ms", mode="before")
    @classmethod
    def _check_ttl(cls, value: Any) -> Any:
        return _positive_int_or_default(value, DEFAULT_TTL_MS, "ttl_ms")

    @field_validator("max_size", mode="before")
    @classmethod
    def _check_max_size(cls, value: Any) -> Any:
        return _positive_int_or_default(value, DEFAULT_MAX_SIZE, "max_size")

    @field_validator("strategy", mode="before")
    @classmethod
    def _check_strategy(cls, value: Any) -> Any:
        return EvictionStrategy.parse(value)

    @field_validator("persist_path", mode="before")
    @classmethod
    def _check_persist_path(cls, value: Any) -> Any:
        if isinstance(value, Path):
            return str(value)
        return value or None


class CheckerConfig(BaseModel):
    """Concurrency and retry settings for the version checker."""
    model_config = ConfigDict(frozen=True)

    concurrency: int = DEFAULT_CONCURRENCY
    retries: int = DEFAULT_RETRIES
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    backoff_ms: int = DEFAULT_BACKOFF_MS

    @field_validator("concurrency", mode="before")
    @classmethod
    def _check_concurrency(cls, value: Any) -> Any:
        return _positive_int_or_default(value, DEFAULT_CONCURRENCY, "concurrency")

    @field_validator("retries", mode="before")
    @classmethod
    def _check_retries(cls, value: Any) -> Any:
        return _positive_int_or_default(value, DEFAULT_RETRIES, "retries")

    @field_validator("timeout_ms", mode="before")
    @classmethod
    def _check_timeout(cls, value: Any) -> Any:
        return _positive_int_or_default(value, DEFAULT_TIMEOUT_MS, "timeout_ms")

    @field_validator("backoff_ms", mode="before")
    @classmethod
    def _check_backoff(cls, value: Any) -> Any:
        try:
            number = int(value)
        except (TypeError, ValueError):
            number = -1
        if number < 0:
            logger.warning("Invalid backoff_ms %r, falling back to %s", value, DEFAULT_BACKOFF_MS)
            return DEFAULT_BACKOFF_MS
        return number

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def backoff_seconds(self) -> float:
        return self.backoff_ms / 1000.0


class RegistryConfig(BaseModel):
    """Where registry lookups go."""
    model_config = ConfigDict(frozen=True)

    url: str = DEFAULT_REGISTRY

    @field_validator("url", mode="before")
    @classmethod
    def _strip_slash(cls, value: Any) -> Any:
        if not value:
            return DEFAULT_REGISTRY
        return str(value).rstrip("/")


class DepsConfig(BaseModel):
    """Aggregate configuration as produced by :class:`ConfigLoader`."""
    model_config = ConfigDict(frozen=True)

    cache: CacheConfig = Field(default_factory=CacheConfig)
    checker: CheckerConfig = Field(default_factory=CheckerConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    ignore: List[str] = Field(default_factory=list)


# (environment variable, section, field)
_ENV_OVERRIDES = [
    ("DEPWATCH_CACHE_ENABLED", "cache", "enabled"),
    ("DEPWATCH_CACHE_TTL_MS", "cache", "ttl_ms"),
    ("DEPWATCH_CACHE_MAX_SIZE", "cache", "max_size"),
    ("DEPWATCH_CACHE_STRATEGY", "cache", "strategy"),
    ("DEPWATCH_CACHE_PATH", "cache", "persist_path"),
    ("DEPWATCH_CONCURRENCY", "checker", "concurrency"),
    ("DEPWATCH_RETRIES", "checker", "retries"),
    ("DEPWATCH_TIMEOUT_MS", "checker", "timeout_ms"),
    ("DEPWATCH_BACKOFF_MS", "checker", "backoff_ms"),
    ("DEPWATCH_REGISTRY", "registry", "url"),
]


def deep_merge(target: Dict[str, Any], source: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``target`` updated with ``source``, merging nested mappings."""
    result = dict(target)
    for key, value in source.items():
        if value is None:
            continue
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


class ConfigLoader:
    """
    Loads and merges depwatch configuration for a project directory.

    Args:
        project_dir: Directory holding ``.depsrc.json`` / ``package.json``
        environ: Environment mapping (defaults to ``os.environ``)
    """

    CONFIG_FILENAME = ".depsrc.json"
    PACKAGE_FILENAME = "package.json"
    PACKAGE_SECTION = "deps"

    def __init__(self, project_dir: Optional[str] = None, environ: Optional[Dict[str, str]] = None):
        self.project_dir = Path(project_dir or os.getcwd())
        self.environ = os.environ if environ is None else environ
        self._config: Optional[DepsConfig] = None

    def load(self) -> DepsConfig:
        """
        Load the merged configuration, caching it for subsequent calls.

        Returns:
            The merged configuration.

        Raises:
            ConfigurationError: If ``.depsrc.json`` exists but cannot be parsed.
        """
        if self._config is not None:
            return self._config

        merged: Dict[str, Any] = {}
        for source in (self._load_rc_file(), self._load_package_section(), self._load_environment()):
            if source:
                merged = deep_merge(merged, source)

        self._config = DepsConfig.model_validate(merged)
        logger.debug("Loaded configuration for %s: %s", self.project_dir, self._config)
        return self._config

    def reload(self) -> DepsConfig:
        self._config = None
        return self.load()

    def _load_rc_file(self) -> Optional[Dict[str, Any]]:
        path = self.project_dir / self.CONFIG_FILENAME
        if not path.exists():
            return None
        try:
            data = orjson.loads(path.read_bytes())
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Failed to parse {path}", original_exception=e) from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"{path} must contain a JSON object")
        return data

    def _load_package_section(self) -> Optional[Dict[str, Any]]:
        path = self.project_dir / self.PACKAGE_FILENAME
        if not path.exists():
            return None
        try:
            data = orjson.loads(path.read_bytes())
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable %s: %s", path, e)
            return None
        section = data.get(self.PACKAGE_SECTION) if isinstance(data, dict) else None
        return section if isinstance(section, dict) else None

    def _load_environment(self) -> Dict[str, Any]:
        overrides: Dict[str, Any] = {}
        for variable, section, field in _ENV_OVERRIDES:
            raw = self.environ.get(variable)
            if raw is None or raw == "":
                continue
            value: Any = raw
            if field == "enabled":
                value = raw.strip().lower() in ("1", "true", "yes", "on")
            overrides.setdefault(section, {})[field] = value
        return overrides
