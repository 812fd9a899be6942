"""
FundWars Backend — FastAPI Application Entry Point

Serves the world simulation and Investment Committee engines over HTTP.

Architecture:
    - FastAPI application with auto-generated OpenAPI docs at /docs
    - CORS enabled for a browser game client
    - Routers mounted under /api
    - Logging configured on startup via lifespan event

Usage:
    python -m uvicorn fundwars.main:app --host 127.0.0.1 --port 8050
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import configure_logging, load_settings
from .routers import ic, world

logger = logging.getLogger("fundwars")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    - On startup: configure logging from settings
    - On shutdown: drop in-memory IC sessions
    """
    settings = load_settings()
    configure_logging(settings.log_level)
    logger.info(f"FundWars API starting (narrative provider: {settings.narrative_provider})")
    yield
    ic.registry.clear()


app = FastAPI(
    title="FundWars Game Engine",
    description=(
        "REST API for the FundWars private-equity game. "
        "Advances the world week by week (portfolio quarters, company events, "
        "warnings, NPC drama, rivals, markets) and runs Investment Committee meetings."
    ),
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",    # Game client dev server
        "http://127.0.0.1:3000",
        "http://localhost:5173",    # Vite alternate
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(world.router)   # /api/world
app.include_router(ic.router)      # /api/ic


@app.get("/")
def root():
    """API information endpoint."""
    return {
        "name": "FundWars API",
        "version": __version__,
        "status": "running",
        "docs": "/docs",
        "endpoints": {
            "tick": "/api/world/tick",
            "warnings": "/api/world/warnings",
            "quarter": "/api/world/simulate-quarter",
            "events": "/api/world/events/resolve",
            "ic_sessions": "/api/ic/sessions",
        },
    }


@app.get("/health")
def health_check():
    """Simple health check for monitoring."""
    return {"status": "healthy"}
