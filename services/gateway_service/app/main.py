"""FastAPI application entrypoint for the Verum academy API.

This is the composition root: it owns the document store and the auth
provider for the life of the process and mounts every service router
in-process under ``/api/v1``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from libs.auth.provider import AuthProvider, build_auth_provider
from libs.common.config import get_settings
from libs.common.errors import add_exception_handlers
from libs.common.logging import get_logger
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from libs.db.store import DocumentStore, build_document_store
from services.communications_service.router import router as notifications_router
from services.events_service.router import router as matches_router
from services.media_service.router import admin_router as media_admin_router
from services.media_service.router import router as media_router
from services.members_service.routers import admin_router, auth_router, members_router

logger = get_logger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    store: DocumentStore = app.state.document_store
    create_schema = getattr(store, "create_schema", None)
    if create_schema is not None:
        await create_schema()
    logger.info(f"Started with {type(store).__name__}")
    yield
    await store.close()
    logger.info("Document store closed")


def create_app(
    store: Optional[DocumentStore] = None,
    auth_provider: Optional[AuthProvider] = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance."""
    settings = get_settings()
    app = FastAPI(
        title="Verum Academy API",
        version="0.1.0",
        description="Athlete profiles, media review, feeds and match calendar.",
        lifespan=lifespan,
    )

    app.state.document_store = store or build_document_store(settings)
    app.state.auth_provider = auth_provider or build_auth_provider(
        settings, app.state.document_store
    )

    # Add rate limiter state to app
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add observability (structured logging + request tracing)
    add_observability_middleware(app)

    # Domain errors become JSON responses with a stable error code
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Simple readiness endpoint."""
        return {"status": "ok"}

    for router in (
        auth_router,
        members_router,
        admin_router,
        media_router,
        media_admin_router,
        matches_router,
        notifications_router,
    ):
        app.include_router(router, prefix=API_PREFIX)

    return app


app = create_app()
