from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
from pydantic import BaseModel, Field, field_validator

PRODUCTION_DOMAIN = "booqable.com"
MEDIA_TYPE = "application/vnd.api+json"
SUPPORTED_API_VERSIONS = ("4", "boomerang")
SINGLE_USE_TOKEN_ALGORITHMS = ("HS256", "RS256", "ES256")

TokenReader = Callable[[], Any]
TokenWriter = Callable[[Any], Any]

# Options whose values are masked in repr and redacted from URLs.
SECRET_OPTIONS: tuple[str, ...] = (
    "api_key",
    "client_id",
    "client_secret",
    "single_use_token",
    "single_use_token_private_key",
    "single_use_token_secret",
)


class ClientOptions(BaseModel):
    """Every option understood by :class:`booqable.client.Client`.

    All fields default to None, meaning "not set": an unset instance value falls back to
    the process-wide default (see :func:`booqable.config.defaults.default_options`).

    Args:
        api_domain: Platform domain; anything but booqable.com is served over http
        api_endpoint: Full endpoint URL, overrides company/domain/version
        api_key: API key for bearer authentication
        api_version: API version ("4" or "boomerang")
        auto_paginate: Fetch every page in :meth:`Client.paginate`
        client_id: OAuth client id
        client_secret: OAuth client secret
        company: Company subdomain (e.g. "demo" for demo.booqable.com)
        connection_options: Extra keyword arguments for ``httpx.Client``
        debug: Log requests and responses to stdout
        default_media_type: Accept / Content-Type header value
        no_retries: Disable retrying failed requests
        per_page: Page size used by :meth:`Client.paginate`
        proxy: Proxy URL
        read_token: Callable returning the stored OAuth token
        redirect_uri: OAuth redirect URI
        single_use_token: Key id of the single use token
        single_use_token_algorithm: HS256, RS256 or ES256
        single_use_token_company_id: Company UUID (``aud`` claim)
        single_use_token_expiration_period: Token lifetime in seconds
        single_use_token_private_key: PEM private key for RS256/ES256
        single_use_token_secret: Shared secret for HS256
        single_use_token_user_id: User UUID (``sub`` claim)
        ssl_verify_mode: 0 disables TLS verification
        user_agent: User-Agent header value
        write_token: Callable persisting a refreshed OAuth token
        secret_keys: Extra query parameter names to redact in error messages
        transport: Custom httpx transport (useful for testing)
        timeout: httpx timeout
    """

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    api_domain: str | None = None
    api_endpoint: str | None = None
    api_key: str | None = Field(default=None, repr=False)
    api_version: str | None = None
    auto_paginate: bool | None = None
    client_id: str | None = Field(default=None, repr=False)
    client_secret: str | None = Field(default=None, repr=False)
    company: str | None = None
    connection_options: dict[str, Any] | None = None
    debug: bool | None = None
    default_media_type: str | None = None
    no_retries: bool | None = None
    per_page: int | None = None
    proxy: str | None = None
    read_token: TokenReader | None = Field(default=None, repr=False)
    redirect_uri: str | None = None
    single_use_token: str | None = Field(default=None, repr=False)
    single_use_token_algorithm: str | None = None
    single_use_token_company_id: str | None = None
    single_use_token_expiration_period: int | None = None
    single_use_token_private_key: str | None = Field(default=None, repr=False)
    single_use_token_secret: str | None = Field(default=None, repr=False)
    single_use_token_user_id: str | None = None
    ssl_verify_mode: int | None = None
    user_agent: str | None = None
    write_token: TokenWriter | None = Field(default=None, repr=False)
    secret_keys: tuple[str, ...] | None = None
    transport: httpx.BaseTransport | None = Field(default=None, repr=False)
    timeout: httpx.Timeout | float | None = None

    @field_validator("api_version", mode="before")
    @classmethod
    def coerce_api_version(cls, v: Any) -> Any:
        """Accept integer versions (e.g. 4)."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("api_endpoint")
    @classmethod
    def validate_api_endpoint(cls, v: str | None) -> str | None:
        """Ensure an explicit endpoint is an http(s) URL."""
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError("api_endpoint must start with http:// or https://")
        return v

    def as_dict(self) -> dict[str, Any]:
        """Shallow mapping of option name to value."""
        return {name: getattr(self, name) for name in type(self).model_fields}

    def merged(self, defaults: ClientOptions) -> ClientOptions:
        """Fill every unset option from ``defaults``.

        Args:
            defaults: Process-wide options

        Returns:
            New options where None values were taken from ``defaults``
        """
        fallback = defaults.as_dict()
        values = {k: (fallback[k] if v is None else v) for k, v in self.as_dict().items()}
        return type(self)(**values)

    def update(self, **changes: Any) -> ClientOptions:
        """Return a copy with ``changes`` applied and validated."""
        unknown = set(changes) - set(type(self).model_fields)
        if unknown:
            raise TypeError(f"Unknown option(s): {', '.join(sorted(unknown))}")
        return type(self)(**{**self.as_dict(), **changes})

    @property
    def api_protocol(self) -> str:
        """``https`` for the production domain, ``http`` otherwise."""
        return "https" if self.api_domain == PRODUCTION_DOMAIN else "http"

    @property
    def secret_values(self) -> list[str]:
        """Values of the secret options that are set."""
        values = (getattr(self, name) for name in SECRET_OPTIONS)
        return [v for v in values if v]

    @property
    def oauth_authenticated(self) -> bool:
        return bool(self.client_id) and bool(self.client_secret)

    @property
    def api_key_authenticated(self) -> bool:
        return bool(self.api_key)

    @property
    def single_use_token_authenticated(self) -> bool:
        return bool(self.single_use_token)
