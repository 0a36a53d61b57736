from __future__ import annotations

import httpx
import pytest

from logship_verify.errors import ConnectError, QueryError
from logship_verify.infrastructure.loki_client import LokiClient, parse_streams

BASE_URL = "http://loki.test:3100"
SELECTOR = '{source="loggingTest1"}'
LIMIT = 5
START_NS = 1_000


def _streams_body(*lines: str) -> dict:
    return {
        "status": "success",
        "data": {
            "resultType": "streams",
            "result": [
                {
                    "stream": {"source": "loggingTest1", "level": "TEST"},
                    "values": [[str(1_000 + i), line] for i, line in enumerate(lines)],
                }
            ],
        },
    }


def _client(handler) -> LokiClient:
    return LokiClient(BASE_URL, timeout=1.0, retries=1, transport=httpx.MockTransport(handler))


def test_query_sends_logql_params_and_parses_streams() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json=_streams_body("[TEST] 0", "[TEST] 1"))

    client = _client(handler)
    result = client.query(SELECTOR, LIMIT, START_NS)
    client.close()

    assert seen["path"] == "/loki/api/v1/query_range"
    assert seen["params"]["query"] == SELECTOR
    assert seen["params"]["limit"] == str(LIMIT)
    assert seen["params"]["start"] == str(START_NS)
    assert [e.message for e in result] == ["[TEST] 0", "[TEST] 1"]
    assert result[0].labels == {"source": "loggingTest1", "level": "TEST"}
    assert result[1].timestamp_ns == 1_001


def test_connect_probes_ready_endpoint() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/ready"
        return httpx.Response(200, text="ready")

    with _client(handler) as client:
        assert client.base_url == BASE_URL


def test_connect_not_ready_is_connect_error() -> None:
    client = _client(lambda request: httpx.Response(503, text="Ingester not ready"))

    with pytest.raises(ConnectError) as excinfo:
        client.connect()
    assert excinfo.value.context["status_code"] == 503


def test_connect_unreachable_is_connect_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ConnectError):
        _client(handler).connect()


def test_transport_errors_are_retried() -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] == 1:
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(200, json=_streams_body("0"))

    client = LokiClient(BASE_URL, retries=2, transport=httpx.MockTransport(handler))

    assert [e.message for e in client.query(SELECTOR, LIMIT, START_NS)] == ["0"]
    assert calls["n"] == 2


def test_http_error_status_is_query_error() -> None:
    client = _client(lambda request: httpx.Response(400, text="parse error"))

    with pytest.raises(QueryError) as excinfo:
        client.query(SELECTOR, LIMIT, START_NS)
    assert excinfo.value.context["status_code"] == 400
    assert excinfo.value.context["selector"] == SELECTOR


def test_invalid_json_is_query_error() -> None:
    client = _client(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(QueryError):
        client.query(SELECTOR, LIMIT, START_NS)


def test_unreachable_during_query_is_query_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(QueryError):
        _client(handler).query(SELECTOR, LIMIT, START_NS)


def test_parse_streams_flattens_multiple_streams() -> None:
    body = _streams_body("0")
    body["data"]["result"].append({"stream": {"source": "x"}, "values": [["5", "1"]]})

    assert [e.message for e in parse_streams(body)] == ["0", "1"]


def test_parse_streams_empty_result() -> None:
    body = {"status": "success", "data": {"resultType": "streams", "result": []}}
    assert parse_streams(body) == []


@pytest.mark.parametrize(
    "body",
    [
        {"status": "error", "error": "bad"},
        {"status": "success", "data": {"resultType": "matrix", "result": []}},
        {"status": "success", "data": {"resultType": "streams", "result": [{"values": [["x", "0"]]}]}},
        {"status": "success", "data": {"resultType": "streams", "result": 5}},
        [],
    ],
)
def test_parse_streams_rejects_malformed_bodies(body) -> None:
    with pytest.raises(QueryError):
        parse_streams(body)
