"""
Structured logging system for depwatch.

This module provides structured JSON logging, correlation IDs for tracing a
batch check across its concurrent lookups, and configurable log rotation.
Library modules only call ``logging.getLogger(__name__)``; handlers are
installed when an application calls :func:`initialize_logging`.
"""
import json
import logging
import logging.handlers
import sys
import threading
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

# Context variable for correlation ID
correlation_id: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

_RESERVED_RECORD_FIELDS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno',
    'pathname', 'filename', 'module', 'lineno',
    'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'taskName',
    'getMessage', 'exc_info', 'exc_text', 'stack_info',
    'extra_fields', 'correlation_id',
])


class StructuredFormatter(logging.Formatter):
    """
    Structured JSON formatter for logs.

    Every record becomes one JSON object with timestamp, level, logger and
    source location. The active correlation ID, the ``extra_fields`` dict
    set by :class:`PackageLoggerAdapter` and :class:`MetricsLogger`, and any
    scalar ``extra=`` attributes are merged in at the top level.
    """

    def __init__(self, include_correlation_id: bool = True):
        super().__init__()
        self.include_correlation_id = include_correlation_id

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()

        log_entry: Dict[str, Any] = {
            "timestamp": timestamp,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if self.include_correlation_id:
            current_correlation_id = correlation_id.get() or getattr(record, 'correlation_id', None)
            if current_correlation_id:
                log_entry["correlation_id"] = current_correlation_id

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info)
            }

        extra_fields = getattr(record, 'extra_fields', None)
        if isinstance(extra_fields, dict):
            log_entry.update(extra_fields)

        for key, value in record.__dict__.items():
            if key.startswith('_') or key in _RESERVED_RECORD_FIELDS:
                continue
            if isinstance(value, (str, int, float, bool, list, dict, type(None))):
                log_entry[key] = value

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class CorrelationIdFilter(logging.Filter):
    """Copies the active correlation ID onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        current_correlation_id = correlation_id.get()
        if current_correlation_id:
            record.correlation_id = current_correlation_id
        return True


class PackageLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that stamps bound fields onto every record.

    The fields end up in ``extra_fields``, so the JSON formatter emits them as
    top-level keys (``package``, ``declared`` and so on).

    Example:
        >>> log = PackageLoggerAdapter(logger).bind(package="react")
        >>> log.warning("lookup failed")
    """

    def __init__(self, logger: logging.Logger, fields: Optional[Dict[str, Any]] = None):
        super().__init__(logger, dict(fields or {}))

    def process(self, msg, kwargs):
        extra = kwargs.setdefault('extra', {})
        extra['extra_fields'] = {**self.extra, **extra.get('extra_fields', {})}
        return msg, kwargs

    def bind(self, **fields) -> "PackageLoggerAdapter":
        """Return a new adapter carrying these fields on top of the current ones."""
        return PackageLoggerAdapter(self.logger, {**self.extra, **fields})


class MetricsLogger:
    """
    Emits timing and cache events as structured records.

    Each event carries an ``event_type`` (``operation_start``,
    ``operation_end``, ``cache_hit``, ``cache_miss`` or ``error_rate``).
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _emit(self, level: int, message: str, event_type: str, **fields):
        self.logger.log(level, message, extra={'extra_fields': {'event_type': event_type, **fields}})

    def log_operation_start(self, operation: str, **kwargs):
        self._emit(logging.INFO, "Operation started", 'operation_start', operation=operation, **kwargs)

    def log_operation_end(self, operation: str, duration: float, success: bool = True, **kwargs):
        """
        Log the end of an operation.

        Args:
            operation: Name of the operation
            duration: Duration in seconds
            success: Whether every item of the operation succeeded
            **kwargs: Additional operation metadata
        """
        self._emit(
            logging.INFO, "Operation completed", 'operation_end',
            operation=operation, duration_seconds=duration, success=success, **kwargs
        )

    def log_cache_hit(self, cache_type: str, key: str, **kwargs):
        self._emit(logging.DEBUG, "Cache hit", 'cache_hit', cache_type=cache_type, cache_key=key, **kwargs)

    def log_cache_miss(self, cache_type: str, key: str, **kwargs):
        self._emit(logging.DEBUG, "Cache miss", 'cache_miss', cache_type=cache_type, cache_key=key, **kwargs)

    def log_error_rate(self, operation: str, error_count: int, total_count: int, **kwargs):
        """Log the share of failed items in a batch operation."""
        error_rate = error_count / total_count if total_count > 0 else 0
        self._emit(
            logging.WARNING, "Operation finished with errors", 'error_rate',
            operation=operation, error_count=error_count, total_count=total_count,
            error_rate=error_rate, **kwargs
        )


class ThreadSafeLogManager:
    """
    Installs and tears down depwatch's log handlers.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format ('json' or 'text'); anything else means 'text'
        log_file: Path to a rotating log file (optional)
        max_bytes: Maximum size of log file before rotation
        backup_count: Number of backup files to keep
        include_correlation_id: Whether to include correlation IDs
    """

    def __init__(self,
                 log_level: str = "INFO",
                 log_format: str = "json",
                 log_file: Optional[str] = None,
                 max_bytes: int = 10 * 1024 * 1024,  # 10MB
                 backup_count: int = 5,
                 include_correlation_id: bool = True):
        self.log_level = getattr(logging, log_level.upper())
        self.log_format = log_format if log_format in ("json", "text") else "text"
        self.log_file = log_file
        self.max_bytes = max_bytes
        self.backup_count = backup_count
        self.include_correlation_id = include_correlation_id

        self._lock = threading.RLock()
        self._initialized = False
        self._handlers = []
        self._loggers = {}
        self._previous_root_level = logging.getLogger().level

        self._safe_initialize()

        # Package loggers inherit this level
        self.get_logger("depwatch")

    def _safe_initialize(self):
        with self._lock:
            if not self._initialized:
                try:
                    self._configure_root_logger()
                except (OSError, ValueError) as e:
                    logging.basicConfig(level=self.log_level)
                    logging.error("Failed to initialize depwatch logging: %s", e)
                self._initialized = True

    def _install_handler(self, handler: logging.Handler, formatter: logging.Formatter):
        handler.setLevel(self.log_level)
        handler.setFormatter(formatter)
        if self.include_correlation_id:
            handler.addFilter(CorrelationIdFilter())
        logging.getLogger().addHandler(handler)
        self._handlers.append(handler)

    def _configure_root_logger(self):
        root_logger = logging.getLogger()
        root_logger.setLevel(self.log_level)

        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        if self.log_format == "json":
            formatter = StructuredFormatter(self.include_correlation_id)
        else:
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )

        self._install_handler(logging.StreamHandler(sys.stdout), formatter)

        if self.log_file:
            try:
                log_path = Path(self.log_file)
                log_path.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.handlers.RotatingFileHandler(
                    self.log_file,
                    maxBytes=self.max_bytes,
                    backupCount=self.backup_count
                )
            except OSError as e:
                logging.error("Failed to configure file logging: %s", e)
            else:
                self._install_handler(file_handler, formatter)

    def shutdown(self):
        """Detach and close the handlers this manager installed."""
        with self._lock:
            root_logger = logging.getLogger()
            for handler in self._handlers:
                root_logger.removeHandler(handler)
                handler.close()
            self._handlers = []
            for logger in self._loggers.values():
                logger.setLevel(logging.NOTSET)
            self._loggers = {}
            root_logger.setLevel(self._previous_root_level)

    def get_logger(self, name: str) -> logging.Logger:
        """Get a logger set to the manager's level."""
        with self._lock:
            if name not in self._loggers:
                logger = logging.getLogger(name)
                logger.setLevel(self.log_level)
                self._loggers[name] = logger
            return self._loggers[name]


_log_manager: Optional[ThreadSafeLogManager] = None
_log_manager_lock = threading.RLock()


def initialize_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[str] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    include_correlation_id: bool = True,
) -> ThreadSafeLogManager:
    """
    Initialize the global logging system.

    Calling it again returns the existing manager unchanged; call
    :func:`shutdown_logging` first to reconfigure.

    Returns:
        Configured log manager instance
    """
    global _log_manager

    with _log_manager_lock:
        if _log_manager is None:
            _log_manager = ThreadSafeLogManager(
                log_level=log_level,
                log_format=log_format,
                log_file=log_file,
                max_bytes=max_bytes,
                backup_count=backup_count,
                include_correlation_id=include_correlation_id,
            )

    return _log_manager


def shutdown_logging() -> None:
    """Tear down the global log manager so logging can be re-initialized."""
    global _log_manager

    with _log_manager_lock:
        if _log_manager is not None:
            _log_manager.shutdown()
            _log_manager = None


def get_logger(name: str) -> logging.Logger:
    with _log_manager_lock:
        if _log_manager is None:
            initialize_logging()
        return _log_manager.get_logger(name)


def set_correlation_id(correlation_id_value: Optional[str]):
    correlation_id.set(correlation_id_value)


def get_correlation_id() -> Optional[str]:
    return correlation_id.get()


def clear_correlation_id():
    correlation_id.set(None)


@contextmanager
def with_correlation_id(correlation_id_value: Optional[str] = None) -> Iterator[str]:
    """
    Run a block under a correlation ID, restoring the previous one on exit.

    Tasks created inside the block inherit the ID.

    Args:
        correlation_id_value: Correlation ID value (a random UUID if None)

    Yields:
        The active correlation ID
    """
    value = correlation_id_value or str(uuid.uuid4())
    token = correlation_id.set(value)
    try:
        yield value
    finally:
        correlation_id.reset(token)
