# src/pulse_scoring/main.py
"""Main entry point for the Pulse scoring API."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from pulse_scoring.api.v1 import (
    audit_router,
    presentations_router,
    scoring_router,
    votes_router,
)
from pulse_scoring.core.settings import settings

logging.basicConfig(level=settings.log_level.upper())

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Conference presentation scoring API",
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
app.include_router(votes_router, prefix="/api/v1")
app.include_router(presentations_router, prefix="/api/v1")
app.include_router(audit_router, prefix="/api/v1")
app.include_router(scoring_router, prefix="/api/v1")


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
        "description": "Conference presentation scoring API",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("pulse_scoring.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
