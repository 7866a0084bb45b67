import time
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Machine-readable error codes attached to every depwatch error."""
    UNKNOWN = "UNKNOWN"
    CONFIG_INVALID = "CONFIG_INVALID"
    CACHE_READ_FAILED = "CACHE_READ_FAILED"
    CACHE_PERSIST_FAILED = "CACHE_PERSIST_FAILED"
    NETWORK_REQUEST_FAILED = "NETWORK_REQUEST_FAILED"
    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    NETWORK_REGISTRY_UNAVAILABLE = "NETWORK_REGISTRY_UNAVAILABLE"
    DEPENDENCY_NOT_FOUND = "DEPENDENCY_NOT_FOUND"
    MAX_RETRIES_EXCEEDED = "MAX_RETRIES_EXCEEDED"
    VALIDATION_FAILED = "VALIDATION_FAILED"


class DepwatchError(Exception):
    """Base class for all depwatch exceptions."""

    code: ErrorCode = ErrorCode.UNKNOWN
    recoverable: bool = False

    def __init__(self, message: str, original_exception: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.original_exception = original_exception
        self.timestamp = time.time()

    def __str__(self) -> str:
        if self.original_exception:
            return f"{self.message} (Original: {str(self.original_exception)})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": type(self).__name__,
            "message": self.message,
            "code": self.code.value,
            "recoverable": self.recoverable,
            "timestamp": self.timestamp,
            "original": str(self.original_exception) if self.original_exception else None,
        }


class ConfigurationError(DepwatchError):
    """Raised when a configuration source cannot be read or parsed."""
    code = ErrorCode.CONFIG_INVALID


class CacheStoreError(DepwatchError):
    """Base class for cache store related errors."""
    recoverable = True


class CacheLoadError(CacheStoreError):
    """Raised when a persisted cache blob cannot be read back."""
    code = ErrorCode.CACHE_READ_FAILED


class CachePersistError(CacheStoreError):
    """Raised when the cache cannot be written to its persist path."""
    code = ErrorCode.CACHE_PERSIST_FAILED


class RegistryError(DepwatchError):
    """Raised when the package registry answers with an error."""
    code = ErrorCode.NETWORK_REGISTRY_UNAVAILABLE
    recoverable = True

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        original_exception: Optional[BaseException] = None,
    ):
        super().__init__(message, original_exception)
        self.url = url
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"url": self.url, "status_code": self.status_code})
        return data


class NetworkError(RegistryError):
    """Raised when a registry request fails or its retries are exhausted."""
    code = ErrorCode.NETWORK_REQUEST_FAILED


class PackageNotFoundError(RegistryError):
    """Raised when the registry does not know the requested package or tag."""
    code = ErrorCode.DEPENDENCY_NOT_FOUND


class OperationError(DepwatchError):
    """Raised when a general operation fails."""
    recoverable = True


class RetryError(DepwatchError):
    """Raised when the maximum number of attempts is exceeded."""
    code = ErrorCode.MAX_RETRIES_EXCEEDED
    recoverable = True


class ValidationError(DepwatchError, ValueError):
    """Raised when input validation fails."""
    code = ErrorCode.VALIDATION_FAILED
