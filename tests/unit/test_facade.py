"""Tests for the module-level API."""

from __future__ import annotations

import httpx
import pytest

import booqable
from booqable.errors import CompanyRequired

ORDERS = {"data": [{"id": "1", "type": "orders", "attributes": {"number": 1}}]}


@pytest.fixture
def configured(jsonapi) -> list[httpx.Request]:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return jsonapi(200, ORDERS, {"X-RateLimit-Remaining": "7"})

    booqable.configure(
        company="demo",
        api_domain="booqable.test",
        api_key="k3y",
        transport=httpx.MockTransport(handler),
    )
    return seen


def test_requests_use_configured_defaults(configured) -> None:
    assert booqable.get("orders") == {"data": [{"id": "1", "type": "orders", "number": 1}]}
    assert str(configured[0].url) == "http://demo.booqable.test/api/4/orders"
    assert configured[0].headers["Authorization"] == "Bearer k3y"
    assert booqable.last_response().status_code == 200
    assert booqable.rate_limit().remaining == 7


def test_resource_proxy(configured) -> None:
    orders = booqable.resource("orders").list()
    assert [o["id"] for o in orders] == ["1"]


def test_shared_client_is_reused_until_options_change(configured) -> None:
    first = booqable.client()
    assert booqable.client() is first

    booqable.configure(per_page=5)
    second = booqable.client()
    assert second is not first
    assert second.options.per_page == 5


def test_reset_restores_environment_defaults(configured, monkeypatch) -> None:
    monkeypatch.setenv("BOOQABLE_COMPANY", "from-env")
    booqable.reset()
    assert booqable.client().options.company == "from-env"
    assert booqable.client().options.api_key is None


def test_unconfigured_company_fails() -> None:
    with pytest.raises(CompanyRequired):
        booqable.get("orders")


def test_configure_rejects_unknown_options() -> None:
    with pytest.raises(TypeError):
        booqable.configure(colour="blue")
