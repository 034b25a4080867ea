"""OAuth2 token endpoint client.

Handles the two grants the API supports: exchanging an authorization code after the
user returns from the consent screen, and refreshing an expired access token.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

import httpx
from pydantic import BaseModel, Field

from booqable.errors import Error, RequiredAuthParamMissing, classify

logger = logging.getLogger(__name__)

TOKEN_PATH = "/api/boomerang/oauth/token"
DEFAULT_SCOPE = "full_access"


class TokenHash(BaseModel):
    """Stored OAuth token.

    Args:
        access_token: Bearer token sent with API requests
        refresh_token: Token used to obtain a new access token
        expires_at: Expiry as a UNIX timestamp (None when unknown)
        token_type: Token type reported by the server (usually "Bearer")
        scope: Granted scope
    """

    model_config = {"frozen": True}

    access_token: str = Field(repr=False)
    refresh_token: str | None = Field(default=None, repr=False)
    expires_at: float | None = None
    token_type: str | None = None
    scope: str | None = None

    @classmethod
    def coerce(cls, value: TokenHash | Mapping[str, Any] | None) -> TokenHash | None:
        """Accept a TokenHash, a plain mapping or None."""
        if value is None or isinstance(value, TokenHash):
            return value
        return cls.model_validate(dict(value))

    @classmethod
    def from_token_response(cls, payload: Mapping[str, Any], now: float) -> TokenHash:
        """Build a token from the token endpoint's JSON body.

        ``expires_at`` is derived from ``expires_in`` when the server sends it.
        """
        expires_at = payload.get("expires_at")
        expires_in = payload.get("expires_in")
        if expires_at is None and expires_in is not None:
            expires_at = now + float(expires_in)
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expires_at=expires_at,
            token_type=payload.get("token_type"),
            scope=payload.get("scope"),
        )

    def expired(self, now: float | None = None) -> bool:
        """True when the token is past its expiry time."""
        if self.expires_at is None:
            return False
        return self.expires_at <= (time.time() if now is None else now)

    def to_hash(self) -> dict[str, Any]:
        """Plain dict suitable for persisting."""
        return self.model_dump(exclude_none=True)


class OAuthClient:
    """Client for the OAuth2 token endpoint.

    Args:
        api_endpoint: API endpoint; only its scheme and host are used
        client_id: OAuth client id
        client_secret: OAuth client secret
        redirect_uri: Redirect URI registered for the OAuth app
        transport: Optional custom transport (useful for testing)
        timeout: Request timeout
        clock: Time source, used to compute ``expires_at``
        secret_keys: Extra query parameter names to redact in error messages

    Example:
        >>> oauth = OAuthClient(
        ...     api_endpoint="https://demo.booqable.com/api/4",
        ...     client_id="id",
        ...     client_secret="secret",
        ...     redirect_uri="https://example.com/callback",
        ... )
        >>> token = oauth.get_token_from_code(code)  # doctest: +SKIP
    """

    def __init__(
        self,
        *,
        api_endpoint: str,
        client_id: str,
        client_secret: str,
        redirect_uri: str | None = None,
        transport: httpx.BaseTransport | None = None,
        timeout: httpx.Timeout | float | None = None,
        clock: Callable[[], float] = time.time,
        secret_keys: Iterable[str] = (),
    ) -> None:
        self.api_endpoint = api_endpoint
        self.client_id = client_id
        self._client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._transport = transport
        self._timeout = timeout if timeout is not None else httpx.Timeout(10.0, connect=5.0)
        self._clock = clock
        self._secret_keys = tuple(secret_keys)

    def __repr__(self) -> str:
        return f"OAuthClient(token_url={self.token_url!r}, client_id='*****')"

    @property
    def token_url(self) -> str:
        return str(httpx.URL(self.api_endpoint).copy_with(path=TOKEN_PATH, query=None))

    def get_token_from_code(self, code: str, scope: str = DEFAULT_SCOPE) -> TokenHash:
        """Exchange an authorization code for a token.

        Args:
            code: Authorization code from the OAuth callback
            scope: Scope to request

        Returns:
            The new token

        Raises:
            Error: If the code is invalid or expired (usually InvalidGrant)
        """
        return self._request_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri or "",
                "scope": scope,
            }
        )

    def refresh(self, token: TokenHash) -> TokenHash:
        """Obtain a new access token with the token's refresh token.

        Raises:
            RequiredAuthParamMissing: If the token has no refresh token
            Error: If the refresh is rejected (usually RefreshTokenRevoked)
        """
        if not token.refresh_token:
            raise RequiredAuthParamMissing("Cannot refresh OAuth token without a refresh_token.")
        refreshed = self._request_token(
            {"grant_type": "refresh_token", "refresh_token": token.refresh_token}
        )
        if refreshed.refresh_token is None:
            refreshed = refreshed.model_copy(update={"refresh_token": token.refresh_token})
        return refreshed

    def _request_token(self, form: dict[str, str]) -> TokenHash:
        data = {**form, "client_id": self.client_id, "client_secret": self._client_secret}
        with httpx.Client(transport=self._transport, timeout=self._timeout) as http:
            response = http.post(self.token_url, data=data, headers={"Accept": "application/json"})

        if not response.is_success:
            logger.debug("OAuth %s grant failed with %s", form["grant_type"], response.status_code)
            raise classify(response, secret_keys=self._secret_keys) or Error(
                response, secret_keys=self._secret_keys
            )

        logger.info("Obtained OAuth token via %s grant", form["grant_type"])
        return TokenHash.from_token_response(response.json(), self._clock())
