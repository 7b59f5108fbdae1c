"""Verbatim request forwarding to the API service.

The gateway never inspects, rewrites, retries or caches API traffic. Method,
path, raw query string, headers and body go upstream as received; status,
headers and the raw (still encoded) body come back the same way. Only
hop-by-hop headers are dropped in each direction.
"""

import logging

import httpx
from fastapi import Request, Response

from postboard.settings import GatewaySettings

logger = logging.getLogger("uvicorn.error")

# RFC 9110 section 7.6.1; these describe a single connection, not the message.
HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
    }
)

# The upstream host comes from the client's base_url; httpx recomputes the length.
_REQUEST_SKIP_HEADERS = HOP_BY_HOP_HEADERS | {"host", "content-length"}

_NO_BODY_STATUSES = frozenset({204, 304})


class UpstreamUnavailableError(RuntimeError):
    """The API service could not be reached or did not answer in time."""


def create_upstream_client(settings: GatewaySettings) -> httpx.AsyncClient:
    """Create the pooled client used for every forwarded request."""
    client = httpx.AsyncClient(
        base_url=settings.api_upstream_url,
        timeout=settings.upstream_timeout,
        limits=httpx.Limits(max_connections=settings.upstream_max_connections),
        follow_redirects=False,
    )
    # Forward only what the caller sent, not httpx's default Accept/User-Agent/etc.
    client.headers.clear()
    return client


def _upstream_target(request: Request) -> str:
    raw_path = request.scope.get("raw_path") or request.url.path.encode("utf-8")
    target = raw_path.split(b"?", 1)[0].decode("latin-1")
    query = request.scope.get("query_string", b"")
    if query:
        target = f"{target}?{query.decode('latin-1')}"
    return target


def _request_headers(request: Request) -> list[tuple[bytes, bytes]]:
    return [
        (key, value)
        for key, value in request.headers.raw
        if key.decode("latin-1").lower() not in _REQUEST_SKIP_HEADERS
    ]


def _response_headers(upstream: httpx.Response, body_length: int) -> list[tuple[bytes, bytes]]:
    headers = [
        (key.lower(), value)
        for key, value in upstream.headers.raw
        if key.decode("latin-1").lower() not in HOP_BY_HOP_HEADERS
    ]
    # A chunked upstream body has been fully buffered, so give it a length.
    has_length = any(key == b"content-length" for key, _ in headers)
    if not has_length and upstream.status_code not in _NO_BODY_STATUSES and upstream.status_code >= 200:
        headers.append((b"content-length", str(body_length).encode("latin-1")))
    return headers


async def forward(client: httpx.AsyncClient, request: Request) -> Response:
    """Forward request to the API service and relay its response unchanged.

    Raises:
        UpstreamUnavailableError: On connect errors, timeouts or protocol errors.
    """
    body = await request.body()
    upstream_request = client.build_request(
        request.method,
        _upstream_target(request),
        headers=_request_headers(request),
        content=body,
    )

    try:
        upstream = await client.send(upstream_request, stream=True)
        try:
            content = b"".join([chunk async for chunk in upstream.aiter_raw()])
        finally:
            await upstream.aclose()
    except httpx.HTTPError as exc:
        logger.warning(f"Upstream {request.method} {upstream_request.url} failed: {exc!r}")
        raise UpstreamUnavailableError(str(exc) or exc.__class__.__name__) from exc

    response = Response(content=content, status_code=upstream.status_code)
    response.raw_headers = _response_headers(upstream, len(content))
    return response
