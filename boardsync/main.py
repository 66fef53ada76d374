"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from boardsync.api.sync import router as sync_router
from boardsync.config import Settings, get_settings
from boardsync.db.session import create_db_engine, init_db
from boardsync.repositories.sync_status import IntegrationSyncRepository
from boardsync.services.integration_sync import IntegrationSyncService


def create_app(settings: Settings | None = None, engine: Engine | None = None) -> FastAPI:
    """Build the reporting API around one engine."""
    settings = settings or get_settings()
    engine = engine or create_db_engine(settings.DATABASE_URL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Create database tables on startup."""
        init_db(engine)
        yield

    app = FastAPI(
        title="Board Sync API",
        description="Sync status reporting for board cards mirrored to external task lists and calendars",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.sync_service = IntegrationSyncService(
        IntegrationSyncRepository(engine),
        default_max_retries=settings.SYNC_MAX_RETRIES,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(sync_router)

    @app.get("/health")
    def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app
