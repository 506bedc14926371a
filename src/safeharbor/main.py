# src/safeharbor/main.py
"""Main entry point for the SafeHarbor moderation service."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from safeharbor.api.v1 import moderation_router
from safeharbor.core.settings import settings
from safeharbor.db import create_tables
from safeharbor.services.moderation import get_moderation_service, reset_moderation_service

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Risk scoring and escalation for user-generated content",
    version=settings.app_version,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

app.include_router(moderation_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    create_tables()
    enabled = [name for name, on in settings.enabled_providers.items() if on]
    logger.info("External providers enabled: %s", ", ".join(enabled) or "none")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await get_moderation_service().aclose()
    reset_moderation_service()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("safeharbor.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
