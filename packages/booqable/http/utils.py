"""Utility functions for building requests and reading responses."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import quote, urljoin

import httpx

from booqable.config.models import SUPPORTED_API_VERSIONS, ClientOptions
from booqable.errors import CompanyRequired, UnsupportedAPIVersion

# Headers that may be passed as top-level request options.
CONVENIENCE_HEADERS: dict[str, str] = {
    "accept": "Accept",
    "content_type": "Content-Type",
    "user_agent": "User-Agent",
}

_PATH_SAFE = "/:@!$&'()*+,;=-._~%"


def join_url(base_url: str, path: str) -> str:
    """Join base URL with path in a predictable way.

    Ensures base URL ends with '/' and strips leading '/' from path.

    Args:
        base_url: Base URL (e.g. "https://demo.booqable.com/api/4")
        path: Request path (e.g. "/orders" or "orders")

    Returns:
        Joined URL (e.g. "https://demo.booqable.com/api/4/orders")
    """
    base = base_url if base_url.endswith("/") else base_url + "/"
    return urljoin(base, path.lstrip("/"))


def _remove_dot_segments(path: str) -> str:
    output: list[str] = []
    segments = path.split("/")
    for i, segment in enumerate(segments):
        if segment == ".":
            if i == len(segments) - 1:
                output.append("")
            continue
        if segment == "..":
            if output:
                output.pop()
            if i == len(segments) - 1:
                output.append("")
            continue
        output.append(segment)
    return "/".join(output).lstrip("/")


def normalized_path(path: Any) -> str:
    """Normalize a request path relative to the API endpoint.

    Strips one leading slash, percent-encodes unsafe characters and removes dot
    segments so a path can never climb above the endpoint.

    Example:
        >>> normalized_path("/orders/../customers/a b")
        'customers/a%20b'
    """
    text = str(path)
    if text.startswith("/"):
        text = text[1:]

    path_part, sep, query = text.partition("?")
    path_part = _remove_dot_segments(quote(path_part, safe=_PATH_SAFE))
    if sep:
        return f"{path_part}?{quote(query, safe=_PATH_SAFE + '?')}"
    return path_part


def api_endpoint(options: ClientOptions) -> str:
    """Build the API endpoint from company, domain and version.

    An explicit ``api_endpoint`` option wins over the computed one.

    Args:
        options: Resolved client options

    Returns:
        Endpoint such as ``https://demo.booqable.com/api/4``

    Raises:
        UnsupportedAPIVersion: If the API version is not 4 or boomerang
        CompanyRequired: If no company is configured
    """
    if options.api_endpoint:
        return options.api_endpoint
    if str(options.api_version) not in SUPPORTED_API_VERSIONS:
        raise UnsupportedAPIVersion()
    if not options.company:
        raise CompanyRequired()
    return f"{options.api_protocol}://{options.company}.{options.api_domain}/api/{options.api_version}"


def _format_param(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten_params(params: Mapping[str, Any], prefix: str | None = None) -> list[tuple[str, str]]:
    """Encode nested query parameters the way the API expects.

    Example:
        >>> flatten_params({"page": {"size": 25}, "include": "customer"})
        [('page[size]', '25'), ('include', 'customer')]
    """
    out: list[tuple[str, str]] = []
    for key, value in params.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, Mapping):
            out.extend(flatten_params(value, name))
        elif isinstance(value, (list, tuple)):
            out.extend((f"{name}[]", _format_param(v)) for v in value)
        else:
            out.append((name, _format_param(value)))
    return out


def split_options(options: Mapping[str, Any]) -> tuple[dict[str, Any], dict[str, str]]:
    """Separate query parameters from header options for GET/HEAD requests.

    ``accept``, ``content_type`` and ``user_agent`` move into the headers,
    ``headers`` and ``query`` sub-maps are merged, every other key becomes a query
    parameter.

    Args:
        options: Request options as passed by the caller

    Returns:
        Tuple of (query params, headers)
    """
    remaining = dict(options)
    headers: dict[str, str] = dict(remaining.pop("headers", None) or {})
    for key, header in CONVENIENCE_HEADERS.items():
        value = remaining.pop(key, None)
        if value:
            headers[header] = value

    query = remaining.pop("query", None)
    if isinstance(query, Mapping):
        remaining.update(query)
    return remaining, headers


def response_data(response: httpx.Response) -> str:
    """Decode response text honouring the charset declared in Content-Type."""
    content_type = response.headers.get("content-type", "")
    if "charset=" in content_type:
        charset = content_type.split("charset=", 1)[1].split(";")[0].strip().strip('"')
        try:
            return response.content.decode(charset)
        except (LookupError, UnicodeDecodeError):
            return response.text
    return response.text


def is_json_response(response: httpx.Response) -> bool:
    """Check if response content-type indicates JSON."""
    return "json" in response.headers.get("content-type", "")


def safe_snippet(content: bytes, limit: int) -> str:
    """Extract safe text snippet from response content for logging.

    Truncates content and decodes as UTF-8 with replacement for invalid bytes.

    Args:
        content: Response body bytes
        limit: Maximum number of bytes to include

    Returns:
        Truncated, decoded text snippet
    """
    if not content:
        return ""
    return content[:limit].decode("utf-8", errors="replace")
