"""Request/response log lines for the ``booqable.http`` logger.

Requests and responses are logged at DEBUG, retries at WARNING. URLs arrive already
redacted; header values listed in :data:`REDACT_HEADERS` are masked here.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping

from pydantic import BaseModel

logger = logging.getLogger("booqable.http")

REDACTED = "***REDACTED***"
REDACT_HEADERS = frozenset({"authorization", "proxy-authorization", "cookie", "set-cookie"})


def redact_headers(
    headers: Mapping[str, str], redact: frozenset[str] = REDACT_HEADERS
) -> dict[str, str]:
    """Copy of ``headers`` with credential-bearing values masked (names are case-insensitive)."""
    return {k: REDACTED if k.lower() in redact else v for k, v in headers.items()}


class RequestLogContext(BaseModel):
    """Fields shared by every log line of one attempt.

    Args:
        method: HTTP method
        url: Request URL with secret query parameters redacted
        attempt: Attempt number (1-indexed)
    """

    model_config = {"frozen": True}

    method: str
    url: str
    attempt: int

    def fields(self, **extra: object) -> dict[str, object]:
        return {"method": self.method, "url": self.url, "attempt": self.attempt, **extra}


def log_request(ctx: RequestLogContext, headers: Mapping[str, str]) -> float:
    """Log an outgoing request.

    Returns:
        ``time.perf_counter()`` at send time, for :func:`log_response`
    """
    logger.debug(
        "HTTP request %s %s",
        ctx.method,
        ctx.url,
        extra=ctx.fields(headers=redact_headers(headers)),
    )
    return time.perf_counter()


def log_response(ctx: RequestLogContext, status_code: int, started: float, body: str = "") -> None:
    """Log a response with its status, latency and a body snippet."""
    elapsed_ms = int((time.perf_counter() - started) * 1000)
    logger.debug(
        "HTTP response %s %s -> %s (%dms)",
        ctx.method,
        ctx.url,
        status_code,
        elapsed_ms,
        extra=ctx.fields(status_code=status_code, elapsed_ms=elapsed_ms, body=body),
    )


def log_retry(ctx: RequestLogContext, reason: str, delay_s: float) -> None:
    logger.warning(
        "Retrying %s %s after %s (attempt %d, waiting %.2fs)",
        ctx.method,
        ctx.url,
        reason,
        ctx.attempt,
        delay_s,
        extra=ctx.fields(reason=reason, delay_s=delay_s),
    )
