from __future__ import annotations

import logging
from collections.abc import Callable, Generator, Sequence
from typing import Protocol

import httpx

from booqable.auth.api_key import ApiKeyAuth
from booqable.auth.oauth import OAuthAuth
from booqable.auth.single_use import SingleUseTokenAuth
from booqable.config.models import ClientOptions
from booqable.oauth_client import OAuthClient

logger = logging.getLogger(__name__)


class HeaderAuth(Protocol):
    """An authenticator that sets the Authorization header when it is absent."""

    def apply(self, request: httpx.Request) -> None: ...


class AuthChain(httpx.Auth):
    """Run several authenticators in order; the first to set a header wins.

    Args:
        auths: Authenticators in precedence order
    """

    requires_request_body = True

    def __init__(self, auths: Sequence[HeaderAuth]) -> None:
        self.auths = tuple(auths)

    def __repr__(self) -> str:
        return f"AuthChain({', '.join(type(a).__name__ for a in self.auths)})"

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        for auth in self.auths:
            auth.apply(request)
        yield request


def build_auth_chain(
    options: ClientOptions,
    endpoint: str,
    *,
    oauth_client: OAuthClient | None = None,
    clock: Callable[[], float] | None = None,
) -> AuthChain | None:
    """Install the authenticators whose credentials are configured.

    Order is OAuth, then API key, then single use token. When more than one set of
    credentials is configured a warning is logged and the first one wins.

    Args:
        options: Resolved client options
        endpoint: API endpoint
        oauth_client: Token endpoint client, required for OAuth
        clock: Time source shared by the authenticators

    Returns:
        Auth chain, or None when no credentials are configured

    Raises:
        ConfigArgumentError: If single use token settings are incomplete
    """
    extra = {"clock": clock} if clock is not None else {}
    auths: list[HeaderAuth] = []

    if options.oauth_authenticated and oauth_client is not None:
        auths.append(
            OAuthAuth(
                oauth_client,
                read_token=options.read_token,
                write_token=options.write_token,
                **extra,
            )
        )
    if options.api_key_authenticated:
        auths.append(ApiKeyAuth(api_key=options.api_key))
    if options.single_use_token_authenticated:
        auths.append(
            SingleUseTokenAuth(
                token=options.single_use_token,
                algorithm=options.single_use_token_algorithm,
                private_key=options.single_use_token_private_key
                or options.single_use_token_secret,
                company_id=options.single_use_token_company_id,
                user_id=options.single_use_token_user_id,
                api_endpoint=endpoint,
                expiration_period=options.single_use_token_expiration_period,
                **extra,
            )
        )

    if not auths:
        return None
    if len(auths) > 1:
        logger.warning(
            "Multiple credential sets configured (%s); using %s",
            ", ".join(type(a).__name__ for a in auths),
            type(auths[0]).__name__,
        )
    return AuthChain(auths)
