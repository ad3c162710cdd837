# src/agora/main.py
"""Main entry point for the Agora application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from agora.api.v1 import (
    communities_router,
    mentions_router,
    notifications_router,
    questions_router,
    votes_router,
)
from agora.core.logging import configure_logging
from agora.core.settings import settings
from agora.db.session import create_tables
from agora.services.backend import get_backend_client
from agora.services.errors import (
    BackendAuthorizationError,
    BackendConflictError,
    BackendError,
    BackendNotFoundError,
)
from agora.services.notification_feed import get_notification_feed

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Agora API",
    description="Q&A communities: membership, join requests, questions and notifications",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(communities_router, prefix="/api/v1")
app.include_router(notifications_router, prefix="/api/v1")
app.include_router(mentions_router, prefix="/api/v1")
app.include_router(questions_router, prefix="/api/v1")
app.include_router(votes_router, prefix="/api/v1")


@app.exception_handler(BackendError)
async def backend_error_handler(request: Request, exc: BackendError) -> JSONResponse:
    """Translate backend failures that escape an endpoint into HTTP errors."""
    if isinstance(exc, BackendAuthorizationError):
        code = 403
    elif isinstance(exc, BackendConflictError):
        code = 409
    elif isinstance(exc, BackendNotFoundError):
        code = 404
    else:
        code = 502
        logger.error("Backend failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=code, content={"detail": str(exc)})


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    if settings.backend_mode == "local":
        create_tables()
    logger.info("%s %s started (backend=%s)", settings.app_name, settings.app_version,
                settings.backend_mode)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    get_notification_feed().close()
    if settings.backend_mode == "rest":
        await get_backend_client().close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": "Agora API",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("agora.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
