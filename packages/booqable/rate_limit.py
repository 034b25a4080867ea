"""Rate limit details parsed from response headers."""

from __future__ import annotations

from collections.abc import Mapping

import httpx
from pydantic import BaseModel

LIMIT_HEADER = "X-RateLimit-Limit"
REMAINING_HEADER = "X-RateLimit-Remaining"
PERIOD_HEADER = "X-RateLimit-Period"


class RateLimit(BaseModel):
    """Request quota reported by the API.

    Args:
        limit: Maximum number of requests in the current window
        remaining: Requests left in the current window
        resets_in: Window length in seconds
    """

    model_config = {"frozen": True}

    limit: int | None = None
    remaining: int | None = None
    resets_in: int | None = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> RateLimit:
        """Parse rate limit headers, defaulting every missing value to 1."""
        return cls(
            limit=_to_int(headers.get(LIMIT_HEADER)),
            remaining=_to_int(headers.get(REMAINING_HEADER)),
            resets_in=_to_int(headers.get(PERIOD_HEADER)),
        )

    @classmethod
    def from_response(cls, response: httpx.Response | None) -> RateLimit:
        """Build rate limit details from a response.

        Args:
            response: Response to inspect; None yields an empty RateLimit

        Returns:
            Parsed rate limit
        """
        if response is None:
            return cls()
        return cls.from_headers(response.headers)


def _to_int(value: str | None) -> int:
    if value is None:
        return 1
    try:
        return int(value)
    except ValueError:
        return 0
