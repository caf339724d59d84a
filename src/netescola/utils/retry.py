"""Retry logic, exponential backoff and the tagged AI error type."""

import asyncio
import random
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from netescola.utils.rate_limiter import ConcurrencyGate

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AIErrorKind(Enum):
    """Closed set of failure kinds produced by the AI client."""
    RATE_LIMITED = "rate_limited"
    INVALID_RESPONSE = "invalid_response"
    NOT_CONFIGURED = "not_configured"
    UNKNOWN = "unknown"


class AIServiceError(Exception):
    """Raised by the AI client; ``kind`` drives the retry decision."""

    def __init__(self, kind: AIErrorKind, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.kind = kind
        self.cause = cause

    @property
    def is_retryable(self) -> bool:
        return self.kind is AIErrorKind.RATE_LIMITED

    def __str__(self) -> str:
        return f"[{self.kind.value}] {super().__str__()}"


def exponential_backoff(attempt: int, base_delay: float = 1.0, max_delay: float = 60.0) -> float:
    """Calculate exponential backoff delay with jitter."""
    delay = min(base_delay * (2 ** attempt), max_delay)
    # Jitter spreads out callers that failed together
    jitter = random.uniform(0, delay * 0.1)
    return delay + jitter


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    gate: ConcurrencyGate,
    max_retries: int = 2,
    base_delay: float = 2.0,
    max_delay: float = 60.0,
) -> T:
    """Run ``operation`` through ``gate``, retrying only rate-limited failures.

    The gate is acquired before every attempt and released after it, whatever
    the outcome. Non rate-limit errors propagate on the first occurrence; the
    last rate-limit error is re-raised once ``max_retries`` retries are spent.

    Args:
        operation: Zero-argument coroutine factory performing one attempt
        gate: Shared concurrency gate
        max_retries: Retries after the first attempt
        base_delay: Backoff base in seconds

    Returns:
        Whatever ``operation`` returns on its first successful attempt
    """
    for attempt in range(max_retries + 1):
        await gate.acquire()
        try:
            return await operation()
        except AIServiceError as e:
            if not e.is_retryable:
                raise
            if attempt == max_retries:
                logger.error(f"AI request still rate limited after {max_retries} retries: {e}")
                raise

            delay = exponential_backoff(attempt, base_delay, max_delay)
            logger.warning(
                f"Attempt {attempt + 1} rate limited: {e}. Retrying in {delay:.2f}s..."
            )
        finally:
            gate.release()

        await asyncio.sleep(delay)

    # max_retries < 0 leaves nothing to run
    raise AIServiceError(AIErrorKind.UNKNOWN, "retry loop ran no attempts")
