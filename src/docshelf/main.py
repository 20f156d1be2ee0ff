"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (schema, upload dir, engine).
Middleware, CORS, error handlers, and routers all registered here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from docshelf import __version__
from docshelf.api import api_router
from docshelf.config import settings
from docshelf.errors import install_error_handlers

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: FastAPI lifespan replaces on_event("startup") / on_event("shutdown").
    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    logger.info(
        "docshelf.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from docshelf.db.engine import engine
    from docshelf.db.models import Base

    if settings.auto_create_schema:
        # Production deployments run `alembic upgrade head` instead.
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("docshelf.schema_ready")

    settings.uploads_dir.mkdir(parents=True, exist_ok=True)

    yield

    logger.info("docshelf.shutdown")
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="docshelf",
        description="Personal document shelf — upload, annotate, and download your documents",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → BodySizeLimit → Security → RequestId → handler

    from docshelf.middleware.body_limit import BodySizeLimitMiddleware
    from docshelf.middleware.request_id import RequestIdMiddleware
    from docshelf.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_error_handlers(app)

    # Mount API routes
    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: docshelf.main:app)
app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "docshelf.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
