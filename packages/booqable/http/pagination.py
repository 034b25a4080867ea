from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any

from booqable.http.client import ApiClient

logger = logging.getLogger(__name__)

AUTO_PAGINATE_PAGE_SIZE = 25


def total_count(body: Any) -> int:
    """Read ``meta.stats.total.count`` from a decoded document (0 when absent)."""
    try:
        return int(body["meta"]["stats"]["total"]["count"])
    except (KeyError, TypeError, ValueError):
        return 0


def _data_of(body: Any) -> Any:
    if isinstance(body, Mapping):
        return body.get("data")
    return None


def seed_page_options(
    options: Mapping[str, Any] | None, *, per_page: int | None, auto_paginate: bool
) -> dict[str, Any]:
    """Fill in ``page[size]``, ``page[number]`` and ``stats[total]`` where unset.

    Values already present in ``options`` are kept. Nothing is added unless a page
    size or auto-pagination is configured.

    Args:
        options: Request options as passed by the caller (not modified)
        per_page: Configured page size
        auto_paginate: Whether every page will be fetched

    Returns:
        New options dict
    """
    opts = copy.deepcopy(dict(options or {}))
    if not (per_page or auto_paginate):
        return opts

    page = dict(opts.get("page") or {})
    if page.get("size") is None:
        page["size"] = per_page or AUTO_PAGINATE_PAGE_SIZE
    if page.get("number") is None:
        page["number"] = 1
    opts["page"] = page
    if opts.get("stats") is None:
        # Without it the server does not report the total count.
        opts["stats"] = {"total": "count"}
    return opts


def paginate(
    api: ApiClient,
    path: str,
    options: Mapping[str, Any] | None = None,
    *,
    per_page: int | None = None,
    auto_paginate: bool = False,
) -> Any:
    """Fetch a collection, following pages when auto-pagination is on.

    Pages are requested one after another while the server reports more rows than
    were collected and the rate limit of the previous response has quota left. The
    loop stops quietly when the quota runs out, returning what was collected.

    Args:
        api: Request pipeline
        path: Collection path (e.g. "orders")
        options: Query options (filter, include, sort, page, ...)
        per_page: Page size
        auto_paginate: Fetch every page

    Returns:
        The ``data`` member of the response; with auto-pagination the data of all
        fetched pages in order
    """
    opts = seed_page_options(options, per_page=per_page, auto_paginate=auto_paginate)
    body = api.request("GET", path, opts)
    data = _data_of(body)

    if not auto_paginate or not isinstance(data, list):
        return data

    items = list(data)
    while total_count(body) > len(items):
        remaining = api.rate_limit.remaining or 0
        if remaining <= 0:
            logger.warning(
                "Rate limit reached while paginating %s; returning %d of %d items",
                path,
                len(items),
                total_count(body),
            )
            break

        opts["page"]["number"] = int(opts["page"]["number"]) + 1
        body = api.request("GET", path, copy.deepcopy(opts))
        page_data = _data_of(body)
        if not isinstance(page_data, list) or not page_data:
            break
        items.extend(page_data)

    return items
