from __future__ import annotations

import random

import httpx
from pydantic import BaseModel, Field

from booqable.errors import ServerError


class RetryPolicy(BaseModel):
    """Retry policy for failed requests.

    Exponential backoff with jitter: attempt ``n`` waits
    ``base_delay_s * backoff ** (n - 1)`` seconds, randomized by ``±jitter``.

    Args:
        max_attempts: Maximum number of attempts (including the initial request)
        base_delay_s: Delay before the first retry
        backoff: Multiplier applied to the delay on every further retry
        jitter: Randomization as a fraction of the delay (0.5 = ±50%)
        retry_methods: HTTP methods eligible for retry (idempotent ones)

    Notes:
        - Server errors (5xx) and transport timeouts/network failures are retried
        - POST and PATCH are never retried
    """

    model_config = {"frozen": True}

    max_attempts: int = Field(default=3, ge=1)
    base_delay_s: float = Field(default=2.0, ge=0.0)
    backoff: float = Field(default=2.0, ge=1.0)
    jitter: float = Field(default=0.5, ge=0.0, le=1.0)
    retry_methods: tuple[str, ...] = ("GET", "HEAD", "OPTIONS", "DELETE", "PUT")

    @classmethod
    def disabled(cls) -> RetryPolicy:
        """Policy that never retries."""
        return cls(max_attempts=1)

    def allows_method(self, method: str) -> bool:
        """Check if the given HTTP method is eligible for retry.

        Args:
            method: HTTP method (case-insensitive)

        Returns:
            True if method can be retried
        """
        return method.upper() in self.retry_methods

    def should_retry(self, method: str, attempt: int, exc: BaseException) -> bool:
        """Decide whether a failed attempt is retried.

        Args:
            method: HTTP method of the request
            attempt: Attempt that just failed (1-indexed)
            exc: Error raised by that attempt

        Returns:
            True when another attempt should be made
        """
        if attempt >= self.max_attempts or not self.allows_method(method):
            return False
        return isinstance(exc, (ServerError, httpx.TimeoutException, httpx.NetworkError))

    def compute_delay(self, attempt: int) -> float:
        """Compute retry delay with exponential backoff and jitter.

        Args:
            attempt: Attempt number (1-indexed, 1 = first retry after initial failure)

        Returns:
            Delay in seconds before next retry
        """
        delay: float = self.base_delay_s * (self.backoff ** (attempt - 1))
        if self.jitter > 0:
            spread: float = delay * self.jitter
            delay = max(0.0, delay + random.uniform(-spread, spread))
        return delay
