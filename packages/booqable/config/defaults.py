"""Process-wide default options, seeded from ``BOOQABLE_*`` environment variables."""

from __future__ import annotations

import logging
import os
from typing import Any

from booqable.config.models import MEDIA_TYPE, PRODUCTION_DOMAIN, ClientOptions
from booqable.version import __version__

logger = logging.getLogger(__name__)

USER_AGENT = f"Booqable Python {__version__}"
DEFAULT_PER_PAGE = 25
DEFAULT_SINGLE_USE_TOKEN_EXPIRATION = 10 * 60

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(f"BOOQABLE_{name}")
    return default if value is None or value == "" else value


def _env_bool(name: str) -> bool | None:
    value = _env(name)
    if value is None:
        return None
    return value.strip().lower() in _TRUE_VALUES


def _env_int(name: str, default: int | None) -> int | None:
    value = _env(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring non-integer BOOQABLE_%s=%r", name, value)
        return default


def default_options() -> ClientOptions:
    """Read the default options from the environment.

    Returns:
        Options with every environment-backed value filled in
    """
    return ClientOptions(
        api_domain=_env("API_DOMAIN", PRODUCTION_DOMAIN),
        api_endpoint=_env("API_ENDPOINT"),
        api_key=_env("API_KEY"),
        api_version=_env("API_VERSION", "4"),
        auto_paginate=_env_bool("AUTO_PAGINATE"),
        client_id=_env("CLIENT_ID"),
        client_secret=_env("CLIENT_SECRET"),
        company=_env("COMPANY"),
        debug=_env_bool("DEBUG"),
        default_media_type=_env("DEFAULT_MEDIA_TYPE", MEDIA_TYPE),
        no_retries=_env_bool("NO_RETRIES"),
        per_page=_env_int("PER_PAGE", DEFAULT_PER_PAGE),
        proxy=_env("PROXY"),
        redirect_uri=_env("REDIRECT_URI"),
        single_use_token=_env("SINGLE_USE_TOKEN"),
        single_use_token_algorithm=_env("SINGLE_USE_TOKEN_ALGORITHM"),
        single_use_token_company_id=_env("SINGLE_USE_TOKEN_COMPANY_ID"),
        single_use_token_expiration_period=_env_int(
            "SINGLE_USE_TOKEN_EXPIRATION_PERIOD", DEFAULT_SINGLE_USE_TOKEN_EXPIRATION
        ),
        single_use_token_private_key=_env("SINGLE_USE_TOKEN_PRIVATE_KEY"),
        single_use_token_secret=_env("SINGLE_USE_TOKEN_SECRET"),
        single_use_token_user_id=_env("SINGLE_USE_TOKEN_USER_ID"),
        ssl_verify_mode=_env_int("SSL_VERIFY_MODE", 1),
        user_agent=_env("USER_AGENT", USER_AGENT),
    )


class Defaults:
    """Holder for the process-wide options.

    Values come from the environment when the holder is created or reset, and can be
    overridden in code with :meth:`configure`.

    Example:
        >>> defaults = Defaults()
        >>> defaults.configure(company="demo", api_key="secret")
        >>> defaults.options.company
        'demo'
    """

    def __init__(self) -> None:
        self._options = default_options()

    @property
    def options(self) -> ClientOptions:
        return self._options

    def configure(self, **options: Any) -> ClientOptions:
        """Override default options.

        Args:
            **options: Option names and values (see ClientOptions)

        Returns:
            The updated default options

        Raises:
            TypeError: If an option name is unknown
        """
        self._options = self._options.update(**options)
        return self._options

    def reset(self) -> ClientOptions:
        """Discard overrides and re-read the environment."""
        self._options = default_options()
        return self._options


DEFAULTS = Defaults()
