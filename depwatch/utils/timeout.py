"""
Timeout utilities for depwatch operations.

This module bounds individual registry requests so a stalled connection
cannot hang a whole batch.
"""
import asyncio
from typing import Awaitable, Optional, TypeVar

from depwatch.exceptions import ErrorCode, OperationError

R = TypeVar("R")


class TimeoutError(OperationError):
    """Raised when an operation times out."""
    code = ErrorCode.NETWORK_TIMEOUT


class TimeoutContext:
    """
    Runs awaitables against a deadline.

    Args:
        seconds: Timeout duration in seconds
        timeout_error_message: Custom error message for timeout
    """

    def __init__(self, seconds: float, timeout_error_message: Optional[str] = None):
        self.seconds = seconds
        self.timeout_error_message = timeout_error_message

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def run_async(self, coro: Awaitable[R]) -> R:
        """
        Run an async operation with timeout.

        Args:
            coro: Coroutine to run

        Returns:
            Result of the coroutine

        Raises:
            TimeoutError: If the operation times out
        """
        try:
            return await asyncio.wait_for(coro, timeout=self.seconds)
        except asyncio.TimeoutError:
            message = self.timeout_error_message or f"Async operation timed out after {self.seconds}s"
            raise TimeoutError(message)


def with_timeout(seconds: float, timeout_error_message: Optional[str] = None) -> TimeoutContext:
    """
    Create a timeout context for use with ``async with`` statements.

    Args:
        seconds: Timeout duration in seconds
        timeout_error_message: Custom error message for timeout

    Returns:
        TimeoutContext instance
    """
    return TimeoutContext(seconds, timeout_error_message)
