"""Python client for the Booqable rental platform API.

Exposes a small, explicit surface:
- configure / reset: process-wide default options
- client: shared Client built from the defaults
- resource: CRUD proxy for a collection (e.g. resource("orders").list())
- get / post / put / patch / delete / head / request / paginate: raw requests
- Client, ClientOptions, errors: for applications that manage their own clients

Example:
    >>> import booqable
    >>> booqable.configure(company="demo", api_key="secret")
    >>> for order in booqable.resource("orders").list(include="customer"):
    ...     print(order["number"], order["customer"]["name"])
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from booqable import errors
from booqable.client import Client
from booqable.config.defaults import DEFAULTS
from booqable.config.models import ClientOptions
from booqable.errors import ConfigArgumentError, Error
from booqable.json_api import JsonApiSerializer
from booqable.oauth_client import TokenHash
from booqable.rate_limit import RateLimit
from booqable.resources import ResourceProxy
from booqable.utils.logging import configure_logging
from booqable.version import __version__

logging.getLogger(__name__).addHandler(logging.NullHandler())

_client: Client | None = None


def configure(**options: Any) -> ClientOptions:
    """Set process-wide default options (see ClientOptions for names).

    Returns:
        The updated defaults
    """
    return DEFAULTS.configure(**options)


def reset() -> ClientOptions:
    """Restore defaults from the environment and drop the shared client."""
    global _client
    if _client is not None:
        _client.close()
        _client = None
    return DEFAULTS.reset()


def client() -> Client:
    """Shared client, rebuilt whenever the default options change."""
    global _client
    options = DEFAULTS.options
    if _client is None or not _client.same_options(options):
        if _client is not None:
            _client.close()
        _client = Client(options)
    return _client


def resource(name: str) -> ResourceProxy:
    return client().resource(name)


def request(method: str, path: str, data: Any = None, **kwargs: Any) -> Any:
    return client().request(method, path, data, **kwargs)


def get(path: str, options: Mapping[str, Any] | None = None, **kwargs: Any) -> Any:
    return client().get(path, options, **kwargs)


def head(path: str, options: Mapping[str, Any] | None = None, **kwargs: Any) -> Any:
    return client().head(path, options, **kwargs)


def delete(path: str, options: Mapping[str, Any] | None = None, **kwargs: Any) -> Any:
    return client().delete(path, options, **kwargs)


def post(path: str, data: Any = None, **kwargs: Any) -> Any:
    return client().post(path, data, **kwargs)


def put(path: str, data: Any = None, **kwargs: Any) -> Any:
    return client().put(path, data, **kwargs)


def patch(path: str, data: Any = None, **kwargs: Any) -> Any:
    return client().patch(path, data, **kwargs)


def paginate(path: str, options: Mapping[str, Any] | None = None) -> Any:
    return client().paginate(path, options)


def authenticate_with_code(code: str) -> TokenHash:
    return client().authenticate_with_code(code)


def last_response() -> httpx.Response | None:
    return client().last_response


def rate_limit() -> RateLimit:
    return client().rate_limit


__all__ = [
    "Client",
    "ClientOptions",
    "ConfigArgumentError",
    "Error",
    "JsonApiSerializer",
    "RateLimit",
    "ResourceProxy",
    "TokenHash",
    "__version__",
    "authenticate_with_code",
    "client",
    "configure",
    "configure_logging",
    "delete",
    "errors",
    "get",
    "head",
    "last_response",
    "paginate",
    "patch",
    "post",
    "put",
    "rate_limit",
    "request",
    "reset",
    "resource",
]
