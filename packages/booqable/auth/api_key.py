from __future__ import annotations

from collections.abc import Generator

import httpx
from pydantic import BaseModel, Field

AUTHORIZATION = "Authorization"


class ApiKeyAuth(httpx.Auth, BaseModel):
    """Static API key sent as a bearer token.

    Never overwrites an Authorization header that is already present.

    Args:
        api_key: API key value

    Example:
        >>> auth = ApiKeyAuth(api_key="secret")
    """

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    api_key: str = Field(repr=False)  # Don't leak secrets in repr

    def apply(self, request: httpx.Request) -> None:
        """Set the Authorization header unless the caller already set one."""
        request.headers.setdefault(AUTHORIZATION, f"Bearer {self.api_key}")

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        """Apply API key to request.

        Args:
            request: Request to authenticate

        Yields:
            Request with API key header
        """
        self.apply(request)
        yield request
