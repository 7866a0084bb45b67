"""
Retry with per-attempt timeout and exponential backoff for registry lookups.

Attempt ``i`` (counting from 0) that fails is followed by a pause of
``base_delay * 2 ** i`` seconds, except after the final attempt.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from depwatch.exceptions import RetryError
from depwatch.utils.timeout import with_timeout

R = TypeVar("R")

logger = logging.getLogger(__name__)


def backoff_delay(attempt: int, base_delay: float = 1.0) -> float:
    """Delay in seconds to wait after failed attempt ``attempt`` (0-based)."""
    return base_delay * (2 ** attempt)


async def fetch_with_retry(
    operation: Callable[[], Awaitable[R]],
    retries: int = 3,
    timeout: float = 30.0,
    base_delay: float = 1.0,
    description: Optional[str] = None,
) -> R:
    """
    Run ``operation`` until it succeeds or ``retries`` attempts have failed.

    Each attempt races the operation against ``timeout`` seconds. A timeout or
    any exception counts as a failed attempt.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt.
        retries: Total number of attempts (values below 1 mean one attempt).
        timeout: Per-attempt timeout in seconds.
        base_delay: Delay after the first failed attempt; doubles each time.
        description: Label used in log messages.

    Returns:
        The operation's result.

    Raises:
        RetryError: When every attempt failed; wraps the last failure.
    """
    attempts = max(1, retries)
    label = description or getattr(operation, "__name__", "operation")
    last_exception: Optional[Exception] = None

    for attempt in range(attempts):
        try:
            return await with_timeout(
                timeout, f"{label} timed out after {timeout}s"
            ).run_async(operation())
        except Exception as e:
            last_exception = e
            if attempt == attempts - 1:
                break

            delay = backoff_delay(attempt, base_delay)
            logger.warning(
                "Attempt %s/%s for %s failed: %s. Retrying in %.2fs...",
                attempt + 1,
                attempts,
                label,
                str(e),
                delay,
            )
            await asyncio.sleep(delay)

    logger.error(
        "All %s attempts for %s failed. Last error: %s",
        attempts,
        label,
        str(last_exception),
    )
    raise RetryError(
        f"Request failed after {attempts} attempts", original_exception=last_exception
    ) from last_exception
