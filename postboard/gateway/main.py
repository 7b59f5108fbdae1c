"""Gateway entry point.

GET /        - Static landing page, no backend call.
Anything else - Forwarded 1:1 to the API service (see proxy.forward).

Upstream failures become a 502 with a gateway-level error body, so callers
can tell them apart from errors produced by the API service itself.

Every standard method except CONNECT is forwarded. Non-standard (extension)
methods are answered with 405 by the gateway itself.

Serve this app with uvicorn's own Date and Server headers disabled
(`--no-server-header --no-date-header`, as run() does). The upstream's
headers are relayed as-is, and uvicorn would otherwise add a second copy.
"""

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
from functools import lru_cache
import logging
from pathlib import Path

from fastapi import FastAPI, Request, Response
from fastapi.responses import HTMLResponse, JSONResponse

from postboard.gateway.proxy import UpstreamUnavailableError, create_upstream_client, forward
from postboard.schemas import ErrorDetail, ErrorResponse
from postboard.settings import GatewaySettings, get_gateway_settings

logger = logging.getLogger("uvicorn.error")

STATIC_DIR = Path(__file__).parent / "static"

PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE"]


@lru_cache
def load_index_html() -> str:
    """Read the landing page once per process."""
    return (STATIC_DIR / "index.html").read_text(encoding="utf-8")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Own the upstream connection pool for the life of the process."""
    settings: GatewaySettings = app.state.settings
    app.state.http_client = create_upstream_client(settings)
    logger.info(f"Forwarding API traffic to {settings.api_upstream_url}")
    try:
        yield
    finally:
        await app.state.http_client.aclose()


def create_app(settings: GatewaySettings | None = None) -> FastAPI:
    """Create and configure the gateway application."""
    settings = settings or get_gateway_settings()

    # No docs routes: /docs and friends belong to the API service and are forwarded.
    app = FastAPI(
        title=settings.app_name,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings

    @app.exception_handler(UpstreamUnavailableError)
    async def upstream_unavailable_handler(request: Request, exc: UpstreamUnavailableError) -> JSONResponse:
        return JSONResponse(
            status_code=502,
            content=ErrorResponse(
                error=ErrorDetail(
                    code="BAD_GATEWAY",
                    message=str(exc) if settings.debug else "Upstream service unavailable",
                )
            ).model_dump(),
            headers={"X-Gateway-Error": "upstream-unavailable"},
        )

    @app.get("/", response_class=HTMLResponse, include_in_schema=False)
    async def index() -> HTMLResponse:
        """Static landing page."""
        return HTMLResponse(load_index_html())

    @app.api_route("/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
    async def proxy(request: Request) -> Response:
        """Forward everything except the landing page to the API service."""
        return await forward(request.app.state.http_client, request)

    return app


# Application instance
app = create_app()


def run() -> None:
    """Console entry point: serve the gateway with uvicorn."""
    import uvicorn

    settings = get_gateway_settings()
    uvicorn.run(
        "postboard.gateway.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        server_header=False,
        date_header=False,
    )


if __name__ == "__main__":
    run()
