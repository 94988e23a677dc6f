"""DONEO Collab API: FastAPI entry point.

Registers middleware, the collaboration router, and lifecycle hooks.
The collaboration routes live under /api/collab/.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import ActingUserMiddleware
from collab.config import config as default_config
from collab.seed import build_service
from collab.service import CollaborationService
from core.observability.logging_setup import configure_logging
from patterns.domain_config import CollabConfig

logger = structlog.get_logger()

VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(
    config: Optional[CollabConfig] = None,
    service: Optional[CollaborationService] = None,
) -> FastAPI:
    """Build the API around a service (seeded from config when not given)."""
    config = config or default_config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application startup/shutdown hooks."""
        configure_logging(config.logging.level, json=config.logging.json)
        logger.info("api_started", version=VERSION, projects=len(app.state.service.projects))
        yield
        logger.info("api_shutting_down")

    app = FastAPI(
        title="DONEO Collab",
        description="Projects, tasks, subtasks and chat threads for small teams",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.service = service or build_service(config)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Acting-user middleware
    app.add_middleware(ActingUserMiddleware)

    from collab.router import router as collab_router

    app.include_router(collab_router, prefix="/api/collab", tags=["Collab"])

    @app.get("/health")
    def health():
        return {"status": "healthy", "version": VERSION}

    @app.get("/")
    def root():
        return {
            "name": "DONEO Collab",
            "version": VERSION,
            "docs": "/docs",
        }

    return app


app = create_app()
