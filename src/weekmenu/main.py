"""FastAPI application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from weekmenu import __version__
from weekmenu.config import Settings, get_settings
from weekmenu.logging_config import configure_logging, get_logger
from weekmenu.plan.service import ShoppingListService
from weekmenu.providers import InMemoryHouseholdData
from weekmenu.routers import shares_router, shopping_list_router
from weekmenu.share import (
    HttpShareClient,
    InMemoryShareCollaborator,
    ShareCollaborator,
    UnavailableShareCollaborator,
)
from weekmenu.storage import InMemoryKeyValueStore

logger = get_logger(__name__)


def build_share_collaborator(settings: Settings) -> ShareCollaborator:
    """Pick the share backend for the configured operating mode."""
    if settings.is_local_only:
        return UnavailableShareCollaborator()
    if settings.share_api_url:
        return HttpShareClient(
            base_url=settings.share_api_url,
            api_token=settings.share_api_token,
            timeout=settings.share_timeout,
            max_retries=settings.share_max_retries,
        )
    return InMemoryShareCollaborator(
        base_url=settings.share_base_url,
        ttl=timedelta(hours=settings.share_ttl_hours),
    )


def build_default_service(settings: Settings) -> ShoppingListService:
    data = InMemoryHouseholdData()
    return ShoppingListService(
        catalog=data,
        meal_plan=data,
        store=InMemoryKeyValueStore(),
        share=build_share_collaborator(settings),
        settings=settings,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup and shutdown events."""
    settings: Settings = app.state.settings
    configure_logging(settings.log_level)
    logger.info(f"Starting Weekmenu API (storage_mode={settings.storage_mode})")

    yield

    logger.info("Shutting down Weekmenu API")
    collaborator = app.state.shopping_service.snapshots.collaborator
    if isinstance(collaborator, HttpShareClient):
        await collaborator.close()


def create_app(
    service: ShoppingListService | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Create the API application, optionally around a pre-built service."""
    settings = settings or (service.settings if service else get_settings())

    app = FastAPI(
        title="Weekmenu API",
        description="Weekly meal planning and shopping lists",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.shopping_service = service or build_default_service(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(shopping_list_router)
    app.include_router(shares_router)

    @app.get("/health")
    async def health_check() -> dict:
        """Basic health check endpoint."""
        return {"status": "ok", "service": "weekmenu-api"}

    @app.get("/")
    async def root() -> dict:
        """Root endpoint with API information."""
        return {
            "name": "Weekmenu API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()
