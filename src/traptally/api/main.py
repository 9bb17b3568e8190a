"""FastAPI application factory."""

from fastapi import FastAPI

from traptally import __version__
from traptally.api.exception_handlers import register_exception_handlers
from traptally.api.routers import api_router
from traptally.config import Settings
from traptally.infrastructure.lifecycle import lifespan


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create the application; settings default to the environment."""
    app = FastAPI(
        title="TrapTally",
        version=__version__,
        description="Curated Spotify playlist catalog: sync and curator authorization",
        lifespan=lifespan,
    )
    if settings is not None:
        app.state.settings = settings

    register_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
