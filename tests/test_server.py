"""End-to-end tests for the SimpleJson HTTP endpoints."""

import asyncio
import json
import time

import pytest
from fastapi.testclient import TestClient

from signal_dashboard.config import DashboardConfig
from signal_dashboard.feeds.feed import FeedSupervisor
from signal_dashboard.server.app import create_app


@pytest.fixture
def client(cpu_registry):
    with TestClient(create_app(cpu_registry)) as client:
        yield client


def query_body(*targets):
    return {
        "range": {"from": "2024-01-01T00:00:00Z", "to": "2024-01-01T01:00:00Z"},
        "interval": "1s",
        "intervalMs": 1000,
        "targets": [{"target": name, "refId": "A", "type": fmt} for name, fmt in targets],
        "maxDataPoints": 1000,
    }


@pytest.mark.parametrize("method", ["GET", "POST"])
def test_root_connection_test(client, method):
    response = client.request(method, "/")
    assert response.status_code == 200
    assert response.content == b""


def test_search(client):
    response = client.post("/search", json={"target": ""})
    assert response.status_code == 200
    assert sorted(response.json()) == ["CPU1", "CPU2"]


def test_search_without_body(client):
    response = client.post("/search")
    assert response.status_code == 200
    assert response.json() == ["CPU1", "CPU2"]


def test_query_timeserie(client):
    response = client.post("/query", json={"targets": [{"target": "CPU1", "type": "timeserie"}]})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")

    body = response.json()
    assert len(body) == 1
    assert body[0]["target"] == "CPU1"
    values = [v for v, _ in body[0]["datapoints"]]
    timestamps = [ts for _, ts in body[0]["datapoints"]]
    assert values == [49, 2, 11]
    assert all(a < b for a, b in zip(timestamps, timestamps[1:]))


def test_query_table(client):
    response = client.post("/query", json=query_body(("CPU1", "table")))

    assert response.status_code == 200
    table = response.json()[0]
    assert table["type"] == "table"
    assert [c["text"] for c in table["columns"]] == ["Name", "Value", "Time"]
    assert [row[:2] for row in table["rows"]] == [["CPU1", 49], ["CPU1", 2], ["CPU1", 11]]


def test_query_unknown_target(client):
    response = client.post("/query", json=query_body(("CPU1", "timeserie"), ("CPU9", "timeserie")))

    assert response.status_code == 400
    body = response.json()
    assert set(body) == {"error"}
    assert "CPU9" in body["error"]
    assert "datapoints" not in response.text


def test_query_unsupported_format(client):
    response = client.post("/query", json=query_body(("CPU1", "heatmap")))

    assert response.status_code == 400
    assert response.json()["error"].startswith("unsupported format: ")


@pytest.mark.parametrize("content", [b"", b"{not json", b'{"range": {}}'])
def test_query_malformed_body(client, content):
    response = client.post("/query", content=content, headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json()["error"].startswith("cannot unmarshal request body: ")


def test_serialization_failure_is_contained(client, cpu_registry):
    cpu_registry.get("CPU2").add(float("inf"))

    response = client.post("/query", json=query_body(("CPU2", "timeserie")))
    assert response.status_code == 500
    assert response.json()["error"].startswith("cannot marshal response: ")

    response = client.post("/query", json=query_body(("CPU1", "timeserie")))
    assert response.status_code == 200


def test_expired_deadline(cpu_registry):
    config = DashboardConfig()
    config.server.request_timeout = 1e-9

    with TestClient(create_app(cpu_registry, config=config)) as client:
        response = client.post("/query", json=query_body(("CPU1", "timeserie")))

    assert response.status_code == 408
    assert response.json()["error"].startswith("query cancelled: ")


def test_cors_headers(client):
    response = client.post(
        "/search",
        json={"target": ""},
        headers={"Origin": "http://grafana.local:3000"},
    )
    assert response.headers["access-control-allow-origin"] == "*"


def test_lifespan_runs_feeds(cpu_registry):
    metric = cpu_registry.get("CPU2")
    supervisor = FeedSupervisor()
    supervisor.add(metric, lambda: 1.0, period=0.01)

    with TestClient(create_app(cpu_registry, supervisor=supervisor)):
        assert supervisor.is_running
        deadline = time.monotonic() + 5
        while len(metric) == 0 and time.monotonic() < deadline:
            time.sleep(0.01)

    assert not supervisor.is_running
    assert all(not feed.is_running for feed in supervisor.feeds)
    assert len(metric) >= 1


def call_asgi(app, body, messages):
    """Send one POST /query straight through ASGI; `messages` are what the client side delivers."""
    pending = list(messages)
    sent = []

    async def receive():
        if pending:
            return pending.pop(0)
        return {"type": "http.disconnect"}

    async def send(message):
        sent.append(message)

    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "POST",
        "scheme": "http",
        "path": "/query",
        "raw_path": b"/query",
        "root_path": "",
        "query_string": b"",
        "headers": [
            (b"host", b"testserver"),
            (b"content-type", b"application/json"),
            (b"content-length", str(len(body)).encode()),
        ],
        "client": ("127.0.0.1", 50000),
        "server": ("testserver", 80),
    }
    asyncio.run(app(scope, receive, send))

    start = next(m for m in sent if m["type"] == "http.response.start")
    content = b"".join(m.get("body", b"") for m in sent if m["type"] == "http.response.body")
    return start["status"], json.loads(content)


def test_client_gone_before_body_cancels_query(cpu_registry):
    body = json.dumps(query_body(("CPU1", "timeserie"))).encode()

    status, content = call_asgi(create_app(cpu_registry), body, [{"type": "http.disconnect"}])

    assert status == 408
    assert content == {"error": "query cancelled: client disconnected"}


def test_client_gone_after_body_cancels_query(cpu_registry):
    body = json.dumps(query_body(("CPU1", "timeserie"))).encode()
    messages = [{"type": "http.request", "body": body, "more_body": False}]

    status, content = call_asgi(create_app(cpu_registry), body, messages)

    assert status == 408
    assert content == {"error": "query cancelled: client disconnected"}


def test_lifespan_stops_feeds_when_server_fails(cpu_registry):
    supervisor = FeedSupervisor()
    supervisor.add(cpu_registry.get("CPU2"), lambda: 1.0, period=0.01)
    app = create_app(cpu_registry, supervisor=supervisor)

    async def serve():
        async with app.router.lifespan_context(app):
            assert supervisor.is_running
            raise RuntimeError("server crashed")

    with pytest.raises(RuntimeError):
        asyncio.run(serve())

    assert not supervisor.is_running
    assert all(not feed.is_running for feed in supervisor.feeds)
