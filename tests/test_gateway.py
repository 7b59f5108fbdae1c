"""Tests for the gateway: landing page, pass-through forwarding, upstream failures."""

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from postboard.gateway.main import create_app as create_gateway_app
from postboard.gateway.proxy import create_upstream_client
from postboard.settings import GatewaySettings


def _gateway_client(upstream: httpx.AsyncClient) -> AsyncClient:
    app = create_gateway_app(GatewaySettings())
    app.state.http_client = upstream
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://gateway")


@pytest.fixture
async def gateway(api_app):
    """Gateway whose upstream is the in-process API app."""
    async with AsyncClient(transport=ASGITransport(app=api_app), base_url="http://api") as upstream:
        async with _gateway_client(upstream) as client:
            yield client


class RecordingUpstream:
    """MockTransport handler that records requests and answers or fails on demand."""

    def __init__(self, response: httpx.Response | None = None, error: type[httpx.HTTPError] | None = None):
        self.requests: list[httpx.Request] = []
        self.response = response
        self.error = error

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error("upstream down", request=request)
        return self.response or httpx.Response(200, content=b"ok")


@pytest.fixture
def recording_upstream():
    return RecordingUpstream()


@pytest.fixture
async def mocked_gateway(recording_upstream: RecordingUpstream):
    transport = httpx.MockTransport(recording_upstream)
    async with AsyncClient(transport=transport, base_url="http://api") as upstream:
        async with _gateway_client(upstream) as client:
            yield client


@pytest.mark.asyncio
async def test_root_serves_static_shell_without_backend_call(mocked_gateway, recording_upstream):
    response = await mocked_gateway.get("/")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert '<main id="app">' in response.text
    assert recording_upstream.requests == []


@pytest.mark.asyncio
async def test_create_through_gateway_matches_direct_api(gateway: AsyncClient, client: AsyncClient):
    via_gateway = await gateway.post("/posts", json={"title": "A", "body": "B"})

    assert via_gateway.status_code == 201
    created = via_gateway.json()
    direct = await client.get("/posts")
    assert direct.json() == [created]


@pytest.mark.asyncio
async def test_list_through_gateway_is_byte_identical(gateway: AsyncClient, client: AsyncClient):
    await client.post("/posts", json={"title": "A", "body": "B"})
    await client.get("/posts")  # warm the cache so both reads below are HITs

    direct = await client.get("/posts")
    via_gateway = await gateway.get("/posts")

    assert via_gateway.status_code == direct.status_code
    assert via_gateway.content == direct.content
    assert via_gateway.headers["content-type"] == direct.headers["content-type"]
    assert via_gateway.headers["x-cache"] == direct.headers["x-cache"] == "HIT"


@pytest.mark.asyncio
async def test_api_error_bodies_pass_through_unchanged(gateway: AsyncClient, client: AsyncClient):
    payload = {"title": "", "body": "x"}

    direct = await client.post("/posts", json=payload)
    via_gateway = await gateway.post("/posts", json=payload)

    assert via_gateway.status_code == direct.status_code == 400
    assert via_gateway.content == direct.content


@pytest.mark.asyncio
async def test_health_through_gateway(gateway: AsyncClient, fake_redis):
    fake_redis.down = True

    response = await gateway.get("/health")

    assert response.status_code == 200
    assert response.json() == {"store": "ok", "cache": "degraded"}


@pytest.mark.asyncio
async def test_request_forwarded_verbatim(mocked_gateway, recording_upstream):
    await mocked_gateway.request(
        "PUT",
        "/posts/7?b=2&a=1&a=%20x",
        content=b"raw-bytes",
        headers={"X-Trace": "abc", "Content-Type": "text/plain"},
    )

    (sent,) = recording_upstream.requests
    assert sent.method == "PUT"
    assert sent.url.raw_path == b"/posts/7?b=2&a=1&a=%20x"
    assert sent.url.host == "api"
    assert sent.headers["x-trace"] == "abc"
    assert sent.headers["content-type"] == "text/plain"
    assert sent.content == b"raw-bytes"


@pytest.mark.asyncio
async def test_response_relayed_verbatim(mocked_gateway, recording_upstream):
    recording_upstream.response = httpx.Response(
        418,
        headers=[("X-Custom", "1"), ("Set-Cookie", "a=1"), ("Set-Cookie", "b=2"), ("Connection", "close")],
        content=b"\x00teapot",
    )

    response = await mocked_gateway.get("/anything")

    assert response.status_code == 418
    assert response.content == b"\x00teapot"
    assert response.headers["x-custom"] == "1"
    assert response.headers.get_list("set-cookie") == ["a=1", "b=2"]
    assert "connection" not in response.headers
    assert response.headers["content-length"] == "7"


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [httpx.ConnectError, httpx.ReadTimeout, httpx.RemoteProtocolError])
async def test_unreachable_api_returns_502_without_retry(mocked_gateway, recording_upstream, error):
    recording_upstream.error = error

    response = await mocked_gateway.get("/posts")

    assert response.status_code == 502
    assert response.headers["x-gateway-error"] == "upstream-unavailable"
    assert response.json()["error"]["code"] == "BAD_GATEWAY"
    assert len(recording_upstream.requests) == 1


@pytest.mark.asyncio
async def test_root_still_served_when_api_down(mocked_gateway, recording_upstream):
    recording_upstream.error = httpx.ConnectError

    response = await mocked_gateway.get("/")

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_upstream_client_sends_only_caller_headers(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("API_UPSTREAM_URL", "http://api-service:8080")
    client = create_upstream_client(GatewaySettings())
    try:
        assert str(client.base_url) == "http://api-service:8080"
        assert "user-agent" not in client.headers
        assert "accept-encoding" not in client.headers
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_trace_is_forwarded(mocked_gateway, recording_upstream):
    response = await mocked_gateway.request("TRACE", "/posts")

    assert response.status_code == 200
    assert [r.method for r in recording_upstream.requests] == ["TRACE"]


@pytest.mark.asyncio
async def test_upstream_date_and_server_headers_relayed_once(mocked_gateway, recording_upstream):
    recording_upstream.response = httpx.Response(
        200,
        headers=[("Date", "Mon, 19 Oct 2026 12:00:00 GMT"), ("Server", "uvicorn")],
        content=b"[]",
    )

    response = await mocked_gateway.get("/posts")

    assert response.headers.get_list("date") == ["Mon, 19 Oct 2026 12:00:00 GMT"]
    assert response.headers.get_list("server") == ["uvicorn"]


def test_run_disables_uvicorn_date_and_server_headers(monkeypatch: pytest.MonkeyPatch):
    import uvicorn

    from postboard.gateway import main as gateway_main

    captured: dict = {}

    def fake_run(app: str, **kwargs) -> None:
        captured["app"] = app
        captured.update(kwargs)

    monkeypatch.setattr(uvicorn, "run", fake_run)

    gateway_main.run()

    assert captured["app"] == "postboard.gateway.main:app"
    assert captured["server_header"] is False
    assert captured["date_header"] is False
