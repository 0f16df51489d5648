"""FastAPI application entry point.

PriceCheck Compare API - one product identity and every offer known for it.
"""

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.routes import api_router
from app.schemas import ErrorDetail, ErrorResponse
from app.services.compare import ACCEPTED_FORMATS, DataStoreUnavailable, NotResolvable
from app.settings import get_settings
from app.stores.postgres import init_db, close_db, ping_db
from app.stores.redis import init_redis, close_redis

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Initialize database (skip in tests if no DB available)
    try:
        await init_db()
        await ping_db()
        logger.info("Postgres connected")
    except Exception:
        logger.exception("Postgres init failed")

    # Initialize Redis (optional: compare payload cache only)
    try:
        await init_redis()
    except Exception:
        logger.exception("Redis init failed")

    yield

    # Shutdown
    await close_redis()
    await close_db()


def _error(status_code: int, code: str, message: str, detail: dict | None = None) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail))
    return JSONResponse(status_code=status_code, content=body.model_dump())


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Product identity resolution and cross-store offer aggregation API",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(NotResolvable)
    async def not_resolvable_handler(request: Request, exc: NotResolvable) -> JSONResponse:
        return _error(
            404,
            "NOT_FOUND",
            f"No product found for {exc.key.canonical}",
            {
                "input": exc.key.canonical,
                "kind": exc.key.kind,
                "hint": f"Accepted formats: {', '.join(ACCEPTED_FORMATS)}",
            },
        )

    @app.exception_handler(DataStoreUnavailable)
    async def datastore_unavailable_handler(request: Request, exc: DataStoreUnavailable) -> JSONResponse:
        return _error(503, "DATASTORE_UNAVAILABLE", "Data store unavailable, try again shortly")

    # Exception handler for structured error format
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler returning structured error format."""
        logger.exception(f"[app] unhandled error on {request.url.path}")
        return _error(500, "INTERNAL_ERROR", str(exc) if settings.debug else "Internal server error")

    # Health check endpoint
    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, bool]:
        """Health check endpoint."""
        return {"ok": True}

    # Include API routes
    app.include_router(api_router)

    return app


# Application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
