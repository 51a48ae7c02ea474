"""FastAPI application for the anonboard community board.

Provides REST API endpoints wrapping the anonboard package for:
- Posts, comments, and reposts under stable anonymous aliases
- Up/down votes, poll votes, and reports
- Moderator review, identity resolution, and account bans
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from anonboard import __version__
from anonboard.logging_setup import configure_logging
from web.backend.app.middleware.auth import get_board
from web.backend.app.routers import admin, auth, posts


@asynccontextmanager
async def lifespan(app: FastAPI):
    # A missing server secret must stop startup, not the first request.
    configure_logging("INFO")
    get_board()
    yield


app = FastAPI(
    title="anonboard API",
    description=(
        "REST API for a pseudonymous college community board. "
        "Provides endpoints for anonymous posting, voting, reporting, "
        "and moderator tools."
    ),
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# CORS middleware (allow all origins for development)
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Include routers
# ---------------------------------------------------------------------------
app.include_router(posts.router)
app.include_router(admin.router)
app.include_router(auth.router)


# ---------------------------------------------------------------------------
# Root and health-check endpoints
# ---------------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root():
    """Return basic API information."""
    return {
        "name": "anonboard API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


@app.get("/health", tags=["meta"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
