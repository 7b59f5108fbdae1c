"""FastAPI application entry point.

Postboard API - posts with a Postgres source of truth and a Redis read cache.
"""

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from postboard.routes import api_router
from postboard.schemas import ErrorDetail, ErrorResponse
from postboard.settings import Settings, get_settings
from postboard.stores.postgres import PostStore, StoreUnavailableError
from postboard.stores.redis import PostCache

logger = logging.getLogger("uvicorn.error")


def _error(status_code: int, code: str, message: str, detail: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Owns the Postgres pool and the Redis client for the life of the process.
    Neither dependency being down prevents startup.
    """
    settings: Settings = app.state.settings

    store = PostStore.from_settings(settings)
    try:
        await store.create_schema()
        logger.info("Postgres connected, schema ready")
    except StoreUnavailableError:
        logger.exception("Postgres init failed, schema creation will be retried on first use")

    cache = PostCache.from_settings(settings)
    if await cache.ping():
        logger.info("Redis connected")
    else:
        logger.warning("Redis unavailable at startup, reads bypass the cache until it answers")

    app.state.store = store
    app.state.cache = cache
    try:
        yield
    finally:
        await cache.close()
        await store.close()
        logger.info("Connection pools closed")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Posts API with cache-aside reads",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Bad input is a 400 in this API, not FastAPI's default 422."""
        errors = [
            {"loc": [str(part) for part in err["loc"]], "msg": err["msg"], "type": err["type"]}
            for err in exc.errors()
        ]
        return _error(400, "VALIDATION_ERROR", "Request validation failed", {"errors": errors})

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailableError) -> JSONResponse:
        logger.warning(f"{request.method} {request.url.path}: {exc}")
        return _error(
            503,
            "STORE_UNAVAILABLE",
            str(exc) if settings.debug else "Database unavailable",
        )

    # Exception handler for structured error format
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler returning structured error format."""
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return _error(
            500,
            "INTERNAL_ERROR",
            str(exc) if settings.debug else "Internal server error",
        )

    app.include_router(api_router)

    return app


# Application instance
app = create_app()


def run() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "postboard.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
