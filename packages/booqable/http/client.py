"""Request pipeline built on HTTPX.

Provides:
- Path normalization and JSON:API request bodies
- Authentication through the configured auth chain
- Automatic retries with exponential backoff
- Error classification into the Booqable error taxonomy
- Request/response logging with redaction
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from typing import Any

import httpx

from booqable.config.models import MEDIA_TYPE, ClientOptions
from booqable.errors import Error, raise_if_error, redact_url
from booqable.http.logging_utils import RequestLogContext, log_request, log_response, log_retry
from booqable.http.retry import RetryPolicy
from booqable.http.utils import (
    CONVENIENCE_HEADERS,
    flatten_params,
    is_json_response,
    join_url,
    normalized_path,
    response_data,
    safe_snippet,
    split_options,
)
from booqable.json_api import JsonApiSerializer
from booqable.rate_limit import RateLimit

# Methods whose options are sent as query parameters instead of a body.
QUERY_METHODS = frozenset({"GET", "HEAD", "DELETE"})

LOG_BODY_LIMIT = 4096


def default_headers(options: ClientOptions) -> dict[str, str]:
    """Accept, Content-Type and User-Agent sent with every request."""
    media_type = options.default_media_type or MEDIA_TYPE
    headers = {"Accept": media_type, "Content-Type": media_type}
    if options.user_agent:
        headers["User-Agent"] = options.user_agent
    return headers


def _body_and_extras(data: Any) -> tuple[Any, dict[str, Any], dict[str, str]]:
    """Split a request body from the ``query``/``headers``/``accept`` keys riding on it."""
    if not isinstance(data, Mapping):
        return data, {}, {}
    body = dict(data)
    params = dict(body.pop("query", None) or {})
    headers = dict(body.pop("headers", None) or {})
    accept = body.pop("accept", None)
    if accept:
        headers[CONVENIENCE_HEADERS["accept"]] = accept
    return body, params, headers


class ApiClient:
    """Synchronous HTTP pipeline for the Booqable API.

    Args:
        endpoint: API endpoint (e.g. "https://demo.booqable.com/api/4")
        options: Resolved client options
        auth: Optional authentication handler (usually an AuthChain)
        retry_policy: Retry policy (defaults to 3 attempts on idempotent methods)
        serializer: JSON:API codec
        sleep: Function used to wait between retries

    Example:
        >>> api = ApiClient("https://demo.booqable.com/api/4", options, auth=auth)
        >>> body = api.request("GET", "/orders", {"include": "customer"})
        >>> body["data"][0]["customer"]["name"]
    """

    def __init__(
        self,
        endpoint: str,
        options: ClientOptions,
        *,
        auth: httpx.Auth | None = None,
        retry_policy: RetryPolicy | None = None,
        serializer: JsonApiSerializer | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.endpoint = endpoint
        self.options = options
        self.auth = auth
        self.retry_policy = retry_policy or (
            RetryPolicy.disabled() if options.no_retries else RetryPolicy()
        )
        self.serializer = serializer or JsonApiSerializer.any_json()
        self.last_response: httpx.Response | None = None
        self._secret_keys = tuple(options.secret_keys or ())
        self._sleep = sleep
        self._client = httpx.Client(**self._httpx_options())

    def _httpx_options(self) -> dict[str, Any]:
        extra = dict(self.options.connection_options or {})
        headers = {**default_headers(self.options), **(extra.pop("headers", None) or {})}
        verify = extra.pop("verify", self.options.ssl_verify_mode != 0)
        kwargs: dict[str, Any] = {
            "base_url": self.endpoint,
            "headers": headers,
            "auth": self.auth,
            "transport": self.options.transport,
            "verify": verify,
            "timeout": self.options.timeout
            if self.options.timeout is not None
            else httpx.Timeout(30.0, connect=10.0),
        }
        if self.options.proxy:
            kwargs["proxy"] = self.options.proxy
        kwargs.update(extra)
        return kwargs

    def close(self) -> None:
        """Close the underlying HTTP client and release resources."""
        self._client.close()

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def rate_limit(self) -> RateLimit:
        """Rate limit details of the last successful response."""
        return RateLimit.from_response(self.last_response)

    def request(
        self,
        method: str,
        path: str,
        data: Any = None,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        """Send a request and return the decoded body.

        For GET, HEAD and DELETE ``data`` holds request options: ``accept``,
        ``content_type`` and ``user_agent`` become headers, ``headers`` and ``query``
        are merged, every other key is a query parameter. For other methods ``data``
        is the JSON:API body.

        Args:
            method: HTTP method
            path: Path relative to the endpoint
            data: Options or body, see above
            headers: Extra headers
            params: Extra query parameters

        Returns:
            Decoded JSON:API document, raw text for non-JSON responses, or None

        Raises:
            Error: Classified error for 4xx/5xx responses
            httpx.TransportError: If the request could not be sent
        """
        method_u = method.upper()
        if method_u in QUERY_METHODS:
            query, extra_headers = split_options(data or {})
            body = None
        else:
            body, query, extra_headers = _body_and_extras(data)

        merged_headers = {**extra_headers, **(headers or {})}
        query.update(params or {})
        content = self._encode_body(body)
        url = join_url(self.endpoint, normalized_path(path))

        response = self._send(method_u, url, flatten_params(query), merged_headers, content)
        self.last_response = response
        return self._decode(response)

    def _encode_body(self, body: Any) -> bytes | None:
        if body is None:
            return None
        if isinstance(body, bytes):
            return body
        if isinstance(body, str):
            return body.encode("utf-8")
        return self.serializer.encode(body).encode("utf-8")

    def _send(
        self,
        method: str,
        url: str,
        params: list[tuple[str, str]],
        headers: dict[str, str],
        content: bytes | None,
    ) -> httpx.Response:
        attempts = 0

        while True:
            attempts += 1
            ctx = RequestLogContext(
                method=method, url=redact_url(url, self._secret_keys), attempt=attempts
            )
            start = log_request(ctx, {**self._client.headers, **headers})

            try:
                response = self._client.request(
                    method, url, params=params or None, headers=headers, content=content
                )
                log_response(
                    ctx, response.status_code, start, safe_snippet(response.content, LOG_BODY_LIMIT)
                )
                raise_if_error(response, secret_keys=self._secret_keys)
                return response

            except (Error, httpx.TransportError) as e:
                self.last_response = None
                if not self.retry_policy.should_retry(method, attempts, e):
                    raise
                delay = self.retry_policy.compute_delay(attempts)
                log_retry(ctx, type(e).__name__, delay)
                self._sleep(delay)

    def _decode(self, response: httpx.Response) -> Any:
        if not response.content:
            return None
        text = response_data(response)
        if is_json_response(response):
            return self.serializer.decode(text)
        return text
