"""depwatch utility modules."""

from .retry import backoff_delay, fetch_with_retry
from .timeout import TimeoutContext, with_timeout
from .concurrency import BoundedTaskPool
from .versions import classify_update, clean_version, sort_versions_desc
from .logging import (
    get_logger,
    PackageLoggerAdapter,
    MetricsLogger,
    initialize_logging,
    shutdown_logging,
    set_correlation_id,
    get_correlation_id,
    clear_correlation_id,
    with_correlation_id
)
from .logging_config import (
    LoggingPresets,
    configure_from_environment,
    get_logging_config
)

__all__ = [
    "backoff_delay",
    "fetch_with_retry",
    "TimeoutContext",
    "with_timeout",
    "BoundedTaskPool",
    "classify_update",
    "clean_version",
    "sort_versions_desc",
    # Logging functions
    "get_logger",
    "PackageLoggerAdapter",
    "MetricsLogger",
    "initialize_logging",
    "shutdown_logging",
    "set_correlation_id",
    "get_correlation_id",
    "clear_correlation_id",
    "with_correlation_id",
    # Logging configuration
    "LoggingPresets",
    "configure_from_environment",
    "get_logging_config"
]
