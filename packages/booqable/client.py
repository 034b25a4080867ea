from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

import httpx

from booqable.auth.chain import build_auth_chain
from booqable.config.defaults import DEFAULTS
from booqable.config.models import SECRET_OPTIONS, ClientOptions
from booqable.errors import RequiredAuthParamMissing
from booqable.http.client import ApiClient
from booqable.http.pagination import paginate
from booqable.http.utils import api_endpoint
from booqable.oauth_client import OAuthClient, TokenHash
from booqable.rate_limit import RateLimit
from booqable.resources import ResourceProxy, ResourceRegistry
from booqable.utils.logging import enable_debug_logging

logger = logging.getLogger(__name__)

_HIDDEN_IN_REPR = {"read_token", "write_token", "transport"}


class Client:
    """Booqable API client.

    Options not given here fall back to the process-wide defaults (environment
    variables and :func:`booqable.configure`).

    Args:
        options: Options model; keyword overrides are applied on top of it
        defaults: Process-wide options to fall back to (default: current defaults)
        sleep: Function used to wait between retries
        clock: Time source for token expiry and signing
        **overrides: Individual options (see ClientOptions)

    Example:
        >>> client = Client(company="demo", api_key="secret")
        >>> orders = client.resource("orders").list(include="customer")
        >>> client.rate_limit.remaining
    """

    def __init__(
        self,
        options: ClientOptions | None = None,
        *,
        defaults: ClientOptions | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
        **overrides: Any,
    ) -> None:
        given = options or ClientOptions()
        if overrides:
            given = given.update(**overrides)
        self._given = given
        self.options = given.merged(defaults if defaults is not None else DEFAULTS.options)
        self._sleep = sleep
        self._clock = clock
        self._api: ApiClient | None = None
        self._oauth_client: OAuthClient | None = None
        self.resources = ResourceRegistry(self)

        if self.options.debug:
            enable_debug_logging()

    def __repr__(self) -> str:
        parts = []
        for name, value in self.options.as_dict().items():
            if value is None or name in _HIDDEN_IN_REPR:
                continue
            shown = "'*****'" if name in SECRET_OPTIONS else repr(value)
            parts.append(f"{name}={shown}")
        return f"Client({', '.join(parts)})"

    def __enter__(self) -> Client:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._api is not None:
            self._api.close()
            self._api = None

    def same_options(self, options: ClientOptions) -> bool:
        """True when this client was built from ``options``."""
        return self._given == options

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    @property
    def api_endpoint(self) -> str:
        """Endpoint URL.

        Raises:
            UnsupportedAPIVersion: If the API version is not supported
            CompanyRequired: If no company is configured
        """
        return api_endpoint(self.options)

    @property
    def oauth_client(self) -> OAuthClient | None:
        """Token endpoint client, or None when OAuth is not configured."""
        if not self.options.oauth_authenticated:
            return None
        if self._oauth_client is None:
            self._oauth_client = OAuthClient(
                api_endpoint=self.api_endpoint,
                client_id=self.options.client_id,
                client_secret=self.options.client_secret,
                redirect_uri=self.options.redirect_uri,
                transport=self.options.transport,
                timeout=self.options.timeout,
                clock=self._clock,
                secret_keys=self.options.secret_keys or (),
            )
        return self._oauth_client

    @property
    def api(self) -> ApiClient:
        """Request pipeline, created on first use."""
        if self._api is None:
            endpoint = self.api_endpoint
            auth = build_auth_chain(
                self.options, endpoint, oauth_client=self.oauth_client, clock=self._clock
            )
            self._api = ApiClient(endpoint, self.options, auth=auth, sleep=self._sleep)
        return self._api

    @property
    def last_response(self) -> httpx.Response | None:
        """Response of the last successful request; None after an error."""
        return self._api.last_response if self._api is not None else None

    @property
    def rate_limit(self) -> RateLimit:
        """Rate limit details from the last response."""
        return RateLimit.from_response(self.last_response)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def authenticate_with_code(self, code: str) -> TokenHash:
        """Exchange an OAuth authorization code and store the token.

        Args:
            code: Authorization code from the OAuth callback

        Returns:
            The new token (also passed to ``write_token`` as a dict)

        Raises:
            RequiredAuthParamMissing: If OAuth credentials are not configured
            Error: If the code is rejected
        """
        oauth = self.oauth_client
        if oauth is None:
            raise RequiredAuthParamMissing("client_id and client_secret are required for OAuth.")
        token = oauth.get_token_from_code(code)
        if self.options.write_token is not None:
            self.options.write_token(token.to_hash())
        return token

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def request(self, method: str, path: str, data: Any = None, **kwargs: Any) -> Any:
        """Send a request; see :meth:`booqable.http.client.ApiClient.request`."""
        return self.api.request(method, path, data, **kwargs)

    def get(self, path: str, options: Mapping[str, Any] | None = None, **kwargs: Any) -> Any:
        return self.request("GET", path, options, **kwargs)

    def head(self, path: str, options: Mapping[str, Any] | None = None, **kwargs: Any) -> Any:
        return self.request("HEAD", path, options, **kwargs)

    def delete(self, path: str, options: Mapping[str, Any] | None = None, **kwargs: Any) -> Any:
        return self.request("DELETE", path, options, **kwargs)

    def post(self, path: str, data: Any = None, **kwargs: Any) -> Any:
        return self.request("POST", path, data, **kwargs)

    def put(self, path: str, data: Any = None, **kwargs: Any) -> Any:
        return self.request("PUT", path, data, **kwargs)

    def patch(self, path: str, data: Any = None, **kwargs: Any) -> Any:
        return self.request("PATCH", path, data, **kwargs)

    def paginate(self, path: str, options: Mapping[str, Any] | None = None) -> Any:
        """Fetch a collection using the configured page size and auto-pagination.

        Returns:
            The collection's ``data``; every page when ``auto_paginate`` is set
        """
        return paginate(
            self.api,
            path,
            options,
            per_page=self.options.per_page,
            auto_paginate=bool(self.options.auto_paginate),
        )

    def resource(self, name: str) -> ResourceProxy:
        """Proxy for a collection by name or alias (e.g. "orders", "transitions").

        Raises:
            KeyError: If the resource is not in the catalog
        """
        return self.resources[name]
