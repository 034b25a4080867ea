from __future__ import annotations

import logging
import time
from collections.abc import Callable, Generator
from typing import Any

import httpx

from booqable.auth.api_key import AUTHORIZATION
from booqable.errors import RequiredAuthParamMissing
from booqable.oauth_client import OAuthClient, TokenHash

logger = logging.getLogger(__name__)


class OAuthAuth(httpx.Auth):
    """OAuth2 bearer authentication with refresh before expiry.

    The stored token is read before every request. When it is expired, or its
    expiry is unknown, it is refreshed through the token endpoint and written back
    with ``write_token`` before the request is sent.

    Args:
        oauth_client: Token endpoint client
        read_token: Callable returning the stored token (TokenHash or mapping)
        write_token: Callable receiving the refreshed token as a plain dict
        clock: Time source

    Example:
        >>> store = {}
        >>> auth = OAuthAuth(
        ...     oauth_client,
        ...     read_token=lambda: store.get("token"),
        ...     write_token=lambda token: store.update(token=token),
        ... )
    """

    def __init__(
        self,
        oauth_client: OAuthClient,
        *,
        read_token: Callable[[], Any] | None,
        write_token: Callable[[dict[str, Any]], Any] | None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.oauth_client = oauth_client
        self._read_token = read_token
        self._write_token = write_token
        self._clock = clock

    def current_token(self) -> TokenHash:
        """Read the stored token, refreshing it when needed.

        Returns:
            A token that is not known to be expired

        Raises:
            RequiredAuthParamMissing: If no token is stored
            Error: If the refresh is rejected by the server
        """
        if self._read_token is None:
            raise RequiredAuthParamMissing("OAuth requires a read_token callable.")

        token = TokenHash.coerce(self._read_token())
        if token is None:
            raise RequiredAuthParamMissing(
                "No OAuth token stored. Call authenticate_with_code() first."
            )

        if token.expires_at is None or token.expired(self._clock()):
            logger.info("OAuth access token expired, refreshing")
            token = self.oauth_client.refresh(token)
            if self._write_token is not None:
                self._write_token(token.to_hash())
        return token

    def apply(self, request: httpx.Request) -> None:
        if AUTHORIZATION in request.headers:
            return
        request.headers[AUTHORIZATION] = f"Bearer {self.current_token().access_token}"

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        self.apply(request)
        yield request
