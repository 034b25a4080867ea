"""Tests for the request pipeline."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from unittest.mock import patch

import httpx
import pytest

from booqable.errors import BadGateway, InternalServerError, NotFound, ServiceUnavailable

ORDERS = {"data": [{"id": "1", "type": "orders", "attributes": {"number": 1}}]}


class TestHeaders:
    def test_default_headers_and_bearer_token(self, make_client, jsonapi) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return jsonapi(200, ORDERS)

        client = make_client(handler)
        client.get("orders")

        request = seen[0]
        assert str(request.url) == "http://demo.booqable.test/api/4/orders"
        assert request.headers["Accept"] == "application/vnd.api+json"
        assert request.headers["Content-Type"] == "application/vnd.api+json"
        assert request.headers["User-Agent"].startswith("Booqable Python ")
        assert request.headers["Authorization"] == "Bearer test-api-key"

    def test_convenience_options_become_headers(self, make_client) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, text="ok", headers={"content-type": "text/plain"})

        client = make_client(handler)
        client.get("orders", {"accept": "text/plain", "headers": {"X-Trace": "abc"}})

        request = seen[0]
        assert request.headers["Accept"] == "text/plain"
        assert request.headers["X-Trace"] == "abc"
        assert "accept" not in request.url.params

    def test_caller_authorization_is_kept(self, make_client, jsonapi) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return jsonapi(200, ORDERS)

        client = make_client(handler)
        client.get("orders", headers={"Authorization": "Bearer mine"})
        assert seen[0].headers["Authorization"] == "Bearer mine"


class TestQueryAndBody:
    def test_get_options_are_query_parameters(self, make_client, jsonapi) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return jsonapi(200, ORDERS)

        client = make_client(handler)
        client.get("/orders", {"include": "customer", "page": {"size": 2}})

        params = seen[0].url.params
        assert params["include"] == "customer"
        assert params["page[size]"] == "2"

    def test_delete_options_are_query_parameters(self, make_client) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        client = make_client(handler)
        assert client.delete("orders/1", {"force": True}) is None
        assert seen[0].method == "DELETE"
        assert seen[0].url.params["force"] == "true"
        assert seen[0].content == b""

    def test_post_body_is_encoded(self, make_client, jsonapi) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return jsonapi(201, {"data": {"id": "9", "type": "orders"}})

        client = make_client(handler)
        body = {
            "data": {
                "type": "orders",
                "attributes": {"starts_at": datetime(2024, 1, 1, 9, 0, tzinfo=UTC)},
            },
            "query": {"include": "customer"},
        }
        result = client.post("orders", body)

        sent = json.loads(seen[0].content)
        assert sent == {
            "data": {"type": "orders", "attributes": {"starts_at": "2024-01-01T09:00:00Z"}}
        }
        assert seen[0].url.params["include"] == "customer"
        assert result == {"data": {"id": "9", "type": "orders"}}

    def test_paths_cannot_climb_above_endpoint(self, make_client, jsonapi) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return jsonapi(200, ORDERS)

        client = make_client(handler)
        client.get("../../orders")
        assert seen[0].url.path == "/api/4/orders"


class TestResponses:
    def test_json_api_is_decoded(self, make_client, jsonapi) -> None:
        client = make_client(lambda request: jsonapi(200, ORDERS))
        assert client.get("orders") == {"data": [{"id": "1", "type": "orders", "number": 1}]}

    def test_non_json_is_returned_as_text(self, make_client, jsonapi) -> None:
        client = make_client(
            lambda request: httpx.Response(
                200, text="<html></html>", headers={"content-type": "text/html"}
            )
        )
        assert client.get("orders") == "<html></html>"

    def test_empty_body_is_none(self, make_client) -> None:
        client = make_client(lambda request: httpx.Response(204))
        assert client.head("orders") is None

    def test_last_response_is_cleared_by_an_error(self, make_client, jsonapi) -> None:
        responses = [jsonapi(200, ORDERS), jsonapi(404, {"message": "gone"})]

        client = make_client(lambda request: responses.pop(0))
        client.get("orders")
        assert client.last_response is not None
        assert client.last_response.status_code == 200

        with pytest.raises(NotFound):
            client.get("orders/unknown")
        assert client.last_response is None


class TestRetries:
    def test_get_is_retried_on_server_errors(self, make_client, jsonapi, sleeps) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                return jsonapi(500, {"message": "oops"})
            return jsonapi(200, ORDERS)

        client = make_client(handler)
        assert client.get("orders")["data"][0]["id"] == "1"
        assert len(calls) == 3
        assert len(sleeps) == 2
        assert 1.0 <= sleeps[0] <= 3.0
        assert 2.0 <= sleeps[1] <= 6.0

    def test_backoff_doubles_between_attempts(self, make_client, jsonapi, sleeps) -> None:
        client = make_client(lambda request: jsonapi(503, {"message": "later"}))

        with patch("booqable.http.retry.random.uniform", return_value=0.0):
            with pytest.raises(ServiceUnavailable):
                client.get("orders")
        assert sleeps == [2.0, 4.0]

    def test_gives_up_after_three_attempts(self, make_client, jsonapi, sleeps) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return jsonapi(500, {"message": "oops"})

        client = make_client(handler)
        with pytest.raises(InternalServerError):
            client.get("orders")
        assert len(calls) == 3
        assert len(sleeps) == 2
        assert client.last_response is None

    def test_post_is_not_retried(self, make_client, jsonapi, sleeps) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return jsonapi(500, {"message": "oops"})

        client = make_client(handler)
        with pytest.raises(InternalServerError):
            client.post("orders", {"data": {"type": "orders"}})
        assert len(calls) == 1
        assert sleeps == []

    def test_no_retries_option(self, make_client, jsonapi, sleeps) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return jsonapi(502, {"message": "bad gateway"})

        client = make_client(handler, no_retries=True)
        with pytest.raises(BadGateway):
            client.get("orders")
        assert len(calls) == 1
        assert sleeps == []

    def test_timeouts_are_retried(self, make_client, jsonapi, sleeps) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ReadTimeout("slow", request=request)
            return jsonapi(200, ORDERS)

        client = make_client(handler)
        client.get("orders")
        assert len(calls) == 2
        assert len(sleeps) == 1

    def test_transport_errors_propagate(self, make_client) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = make_client(handler)
        with pytest.raises(httpx.ConnectError):
            client.post("orders", {"data": {"type": "orders"}})

    def test_retry_is_logged(self, make_client, jsonapi, caplog) -> None:
        responses = [jsonapi(503, {"message": "later"}), jsonapi(200, ORDERS)]
        client = make_client(lambda request: responses.pop(0))

        with caplog.at_level(logging.WARNING, logger="booqable.http"):
            client.get("orders")
        assert any("Retrying GET" in r.getMessage() for r in caplog.records)


def test_secret_query_parameters_are_redacted_in_errors(make_client, jsonapi) -> None:
    client = make_client(lambda request: jsonapi(404, {"message": "nope"}))
    with pytest.raises(NotFound) as exc_info:
        client.get("orders", {"api_key": "leaky", "page": {"size": 1}})
    message = str(exc_info.value)
    assert "leaky" not in message
    assert "api_key=(redacted)" in message
    assert message.endswith("404 - nope")
