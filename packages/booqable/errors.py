"""Error taxonomy for Booqable API responses.

Classification is split in two steps:

- :func:`classify` inspects a response and returns the matching error (or ``None``)
  without raising, so the mapping can be tested on its own.
- :func:`raise_if_error` raises whatever :func:`classify` returns.

Configuration problems use a separate family rooted at :class:`ConfigArgumentError`
and are raised eagerly, before any request is sent.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Iterable
from typing import Any
from urllib.parse import parse_qs

import httpx
from pydantic import BaseModel

from booqable.rate_limit import RateLimit

# Query parameters never shown in error messages.
SECRET_PARAMS: tuple[str, ...] = (
    "client_secret",
    "client_id",
    "api_key",
    "single_use_token",
    "single_use_token_private_key",
    "single_use_token_secret",
    "refresh_token",
    "access_token",
)


def redact_url(url: str, extra_keys: Iterable[str] = ()) -> str:
    """Replace the value of sensitive query parameters with ``(redacted)``.

    Args:
        url: URL as sent on the wire
        extra_keys: Additional parameter names to treat as secret

    Returns:
        URL safe to show in logs and error messages

    Example:
        >>> redact_url("https://x.test/a?client_secret=abc123&page=1")
        'https://x.test/a?client_secret=(redacted)&page=1'
    """
    for key in (*SECRET_PARAMS, *extra_keys):
        if key in url:
            url = re.sub(rf"{re.escape(key)}=[^&\s]+", f"{key}=(redacted)", url)
    return url


class ErrorData(BaseModel):
    """Response details captured on an :class:`Error`.

    Args:
        method: HTTP method of the failed request
        url: Request URL (secrets redacted)
        status: HTTP status code
        headers: Response headers
        body: Raw response body text
        request_body: Raw request body text, used to refine OAuth grant errors
    """

    model_config = {"frozen": True}

    method: str | None = None
    url: str | None = None
    status: int | None = None
    headers: dict[str, str] | None = None
    body: str | None = None
    request_body: str | None = None


class Error(Exception):
    """Base class for errors returned by the Booqable API.

    Attributes:
        data: Captured response details (ErrorData)
        response_status: HTTP status code
        response_headers: Response headers
        response_body: Raw response body
        context: Rate limit details, set for rate limited errors only
    """

    def __init__(
        self,
        response: httpx.Response | None = None,
        *,
        message: str | None = None,
        secret_keys: Iterable[str] = (),
    ) -> None:
        self.response = response
        self.data = _error_data(response, secret_keys)
        self.method = self.data.method
        self.url = self.data.url
        self.response_status = self.data.status
        self.response_headers = self.data.headers
        self.response_body = self.data.body
        self.context: RateLimit | None = None
        self._payload: Any = _decode_payload(self.data)

        super().__init__(message or self._build_message() or self.__class__.__name__)

    @property
    def errors(self) -> list[Any]:
        """Validation details from the body's ``errors`` member, or an empty list."""
        if isinstance(self._payload, dict):
            return self._payload.get("errors") or []
        return []

    def _response_message(self) -> str | None:
        if isinstance(self._payload, dict):
            value = self._payload.get("message")
            return None if value is None else str(value)
        if isinstance(self._payload, str):
            return self._payload
        return None

    def _response_error(self) -> str | None:
        if isinstance(self._payload, dict) and self._payload.get("error"):
            return f"Error: {self._payload['error']}"
        return None

    def _response_error_summary(self) -> str | None:
        if not isinstance(self._payload, dict):
            return None
        errors = self._payload.get("errors")
        if not errors:
            return None

        summary = "\nError summary:\n"
        if isinstance(errors, str):
            return summary + errors
        if isinstance(errors, dict):
            return summary + "\n".join(f"  {k}: {v}" for k, v in errors.items())

        lines: list[str] = []
        for item in errors:
            if isinstance(item, dict):
                lines.extend(f"  {k}: {v}" for k, v in item.items())
            else:
                lines.append(f"  {item}")
        return summary + "\n".join(lines)

    def _build_message(self) -> str | None:
        if self.response is None:
            return None
        parts = [
            f"{(self.method or '').upper()} {self.url}: {self.response_status} - ",
            self._response_message(),
            self._response_error(),
            self._response_error_summary(),
        ]
        return "".join(p for p in parts if p)


def _error_data(response: httpx.Response | None, secret_keys: Iterable[str]) -> ErrorData:
    if response is None:
        return ErrorData()

    request = _request_of(response)
    return ErrorData(
        method=request.method if request is not None else None,
        url=redact_url(str(request.url), secret_keys) if request is not None else None,
        status=response.status_code,
        headers=dict(response.headers),
        body=_body_text(response),
        request_body=_request_body_text(request),
    )


def _request_of(response: httpx.Response) -> httpx.Request | None:
    try:
        return response.request
    except RuntimeError:
        return None


def _body_text(response: httpx.Response) -> str:
    try:
        return response.text
    except httpx.ResponseNotRead:
        return ""


def _request_body_text(request: httpx.Request | None) -> str | None:
    if request is None:
        return None
    try:
        content = request.content
    except httpx.RequestNotRead:
        return None
    return content.decode("utf-8", errors="replace") if content else None


def _decode_payload(data: ErrorData) -> Any:
    body = data.body
    if not body:
        return None
    content_type = (data.headers or {}).get("content-type", "")
    if "json" not in content_type:
        return body
    try:
        return json.loads(body)
    except ValueError:
        return body


# ============================================================================
# 4xx
# ============================================================================


class ClientError(Error):
    """Raised on HTTP 4xx responses without a more specific class."""


class BadRequest(ClientError):
    """HTTP 400."""


class ReadOnlyAttribute(ClientError):
    """HTTP 400 when a read-only attribute was written."""


class UnknownAttribute(ClientError):
    """HTTP 400 when an unknown attribute was sent."""


class FieldsInWrongFormat(ClientError):
    """HTTP 400 when ``fields`` is not an object."""


class ExtraFieldsInWrongFormat(ClientError):
    """HTTP 400 when ``extra_fields`` is not an object."""


class PageShouldBeAnObject(ClientError):
    """HTTP 400 when ``page`` is not an object."""


class FailedTypecasting(ClientError):
    """HTTP 400 when a value could not be cast."""


class InvalidFilter(ClientError):
    """HTTP 400 when a filter is not supported."""


class RequiredFilter(ClientError):
    """HTTP 400 when a mandatory filter is missing."""


class InvalidGrant(ClientError):
    """HTTP 400 ``invalid_grant`` from the OAuth token endpoint."""


class Unauthorized(ClientError):
    """HTTP 401."""


class TokenRevoked(ClientError):
    """HTTP 401 when the access token was revoked."""


class RefreshTokenRevoked(TokenRevoked):
    """HTTP 400 ``invalid_grant`` while refreshing a token."""


class PaymentRequired(ClientError):
    """HTTP 402."""


class FeatureNotEnabled(PaymentRequired):
    """HTTP 402 when the feature is not part of the plan."""


class TrialExpired(PaymentRequired):
    """HTTP 402 when the trial period is over."""


class Forbidden(ClientError):
    """HTTP 403."""


class TooManyRequests(Forbidden):
    """HTTP 429. ``context`` carries the parsed rate limit headers."""


class NotFound(ClientError):
    """HTTP 404."""


class CompanyNotFound(NotFound):
    """HTTP 404 when the company subdomain does not exist."""


class MethodNotAllowed(ClientError):
    """HTTP 405."""


class NotAcceptable(ClientError):
    """HTTP 406."""


class Conflict(ClientError):
    """HTTP 409."""


class Deprecated(ClientError):
    """HTTP 410."""


class UnsupportedMediaType(ClientError):
    """HTTP 415."""


class Locked(ClientError):
    """HTTP 423."""


class UnprocessableEntity(ClientError):
    """HTTP 422."""


class InvalidDateTimeFormat(UnprocessableEntity):
    """HTTP 422 when a value is not a datetime."""


class InvalidDateFormat(UnprocessableEntity):
    """HTTP 422 when a value is not a date."""


# ============================================================================
# 5xx
# ============================================================================


class ServerError(Error):
    """Raised on HTTP 5xx responses without a more specific class."""


class InternalServerError(ServerError):
    """HTTP 500."""


class NotImplemented(ServerError):  # noqa: A001
    """HTTP 501."""


class BadGateway(ServerError):
    """HTTP 502."""


class ServiceUnavailable(ServerError):
    """HTTP 503."""


class ReadOnlyMode(ServerError):
    """HTTP 503 while the platform is in read-only maintenance."""


RATE_LIMITED_ERRORS: tuple[type[Error], ...] = (TooManyRequests,)


# ============================================================================
# Configuration
# ============================================================================


class ConfigArgumentError(ValueError):
    """Base class for invalid or missing client configuration."""

    default_message = "Invalid configuration"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class CompanyRequired(ConfigArgumentError):
    default_message = (
        "Company is required. Please set `company` in the configuration. "
        "For demo.booqable.com use `company='demo'`"
    )


class SingleUseTokenCompanyIdRequired(ConfigArgumentError):
    default_message = (
        "Single use token company ID is required. "
        "Please set `single_use_token_company_id` in the configuration."
    )


class SingleUseTokenUserIdRequired(ConfigArgumentError):
    default_message = (
        "Single use token user ID is required. "
        "Please set `single_use_token_user_id` in the configuration."
    )


class SingleUseTokenAlgorithmRequired(ConfigArgumentError):
    default_message = (
        "Single use token algorithm is required. "
        "Please set `single_use_token_algorithm` in the configuration."
    )


class UnsupportedSingleUseTokenAlgorithm(ConfigArgumentError):
    default_message = "Single use token algorithm must be one of HS256, RS256 or ES256."


class PrivateKeyOrSecretRequired(ConfigArgumentError):
    default_message = (
        "Private key or secret is required. Please set `single_use_token_private_key` "
        "or `single_use_token_secret` in the configuration."
    )


class UnsupportedAPIVersion(ConfigArgumentError):
    default_message = "Unsupported API version. Supported versions are 4 and boomerang."


class RequiredAuthParamMissing(ConfigArgumentError):
    default_message = "A required authentication parameter is missing."


# ============================================================================
# Classification
# ============================================================================

_Refiner = Callable[[str, ErrorData], type[Error]]


def _match(
    patterns: Iterable[tuple[str, type[Error]]], body: str, fallback: type[Error]
) -> type[Error]:
    for pattern, kind in patterns:
        if re.search(pattern, body, re.IGNORECASE):
            return kind
    return fallback


_PATTERNS_400: tuple[tuple[str, type[Error]], ...] = (
    (r"unwrittable_attribute", ReadOnlyAttribute),
    (r"unknown_attribute", UnknownAttribute),
    (r"extra fields should be an object", ExtraFieldsInWrongFormat),
    (r"fields should be an object", FieldsInWrongFormat),
    (r"page should be an object", PageShouldBeAnObject),
    (r"failed typecasting", FailedTypecasting),
    (r"invalid filter", InvalidFilter),
    (r"required filter", RequiredFilter),
)


def _error_for_400(body: str, data: ErrorData) -> type[Error]:
    kind = _match(_PATTERNS_400, body, BadRequest)
    if kind is not BadRequest:
        return kind
    if re.search(r"invalid_grant", body, re.IGNORECASE):
        form = parse_qs(data.request_body or "")
        if form.get("grant_type") == ["refresh_token"]:
            return RefreshTokenRevoked
        return InvalidGrant
    return BadRequest


def _error_for_401(body: str, data: ErrorData) -> type[Error]:
    return _match(((r"token is invalid \(revoked\)", TokenRevoked),), body, Unauthorized)


def _error_for_402(body: str, data: ErrorData) -> type[Error]:
    return _match(
        ((r"feature_not_enabled", FeatureNotEnabled), (r"trial_expired", TrialExpired)),
        body,
        PaymentRequired,
    )


def _error_for_404(body: str, data: ErrorData) -> type[Error]:
    return _match(((r"company not found", CompanyNotFound),), body, NotFound)


def _error_for_422(body: str, data: ErrorData) -> type[Error]:
    return _match(
        ((r"is not a datetime", InvalidDateTimeFormat), (r"invalid date", InvalidDateFormat)),
        body,
        UnprocessableEntity,
    )


def _error_for_503(body: str, data: ErrorData) -> type[Error]:
    # Case sensitive.
    return ReadOnlyMode if "read-only" in body else ServiceUnavailable


_STATUS_MAP: dict[int, type[Error] | _Refiner] = {
    400: _error_for_400,
    401: _error_for_401,
    402: _error_for_402,
    403: Forbidden,
    404: _error_for_404,
    405: MethodNotAllowed,
    406: NotAcceptable,
    409: Conflict,
    410: Deprecated,
    415: UnsupportedMediaType,
    422: _error_for_422,
    423: Locked,
    429: TooManyRequests,
    500: InternalServerError,
    501: NotImplemented,
    502: BadGateway,
    503: _error_for_503,
}


def error_class_for(
    status: int, body: str = "", data: ErrorData | None = None
) -> type[Error] | None:
    """Map a status code and body text to an error class.

    Args:
        status: HTTP status code
        body: Raw response body
        data: Response details, used by refinements that look at the request

    Returns:
        Error class, or None for statuses that are not errors
    """
    entry = _STATUS_MAP.get(status)
    if entry is not None:
        if isinstance(entry, type):
            return entry
        return entry(body, data or ErrorData(status=status, body=body))
    if 400 <= status <= 499:
        return ClientError
    if 500 <= status <= 599:
        return ServerError
    return None


def classify(response: httpx.Response, *, secret_keys: Iterable[str] = ()) -> Error | None:
    """Build the error matching a response without raising it.

    Args:
        response: HTTP response to inspect
        secret_keys: Extra query parameter names to redact in the message

    Returns:
        Error instance, or None when the status is not an error
    """
    data = _error_data(response, secret_keys)
    kind = error_class_for(response.status_code, data.body or "", data)
    if kind is None:
        return None

    error = kind(response, secret_keys=secret_keys)
    if isinstance(error, RATE_LIMITED_ERRORS):
        error.context = RateLimit.from_response(response)
    return error


def raise_if_error(response: httpx.Response, *, secret_keys: Iterable[str] = ()) -> None:
    """Raise the classified error for a response, if any.

    Raises:
        Error: The most specific error class matching the response
    """
    error = classify(response, secret_keys=secret_keys)
    if error is not None:
        raise error
