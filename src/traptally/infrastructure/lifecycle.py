"""Application lifespan: wires settings, database, Spotify client and services."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from traptally.api.pending_auth import PendingAuthStore
from traptally.application.services import (
    AlbumBackfillService,
    CatalogSyncService,
    CredentialManager,
    FeatureCountAggregator,
    SpotifyAuthService,
)
from traptally.config import Settings, get_settings
from traptally.domain.exceptions import ConfigurationError
from traptally.infrastructure.integrations.spotify_client import SpotifyClient
from traptally.infrastructure.observability.logging import configure_logging
from traptally.infrastructure.persistence.database import Database

logger = logging.getLogger(__name__)


# Hey future me, this runs BEFORE the engine is created. SQLite needs a writable directory
# for the db file AND its -journal/-wal files, and a clear error here beats a cryptic
# "unable to open database file" on the first sync.
def _validate_sqlite_path(settings: Settings) -> None:
    """Ensure the SQLite database directory exists and is writable."""
    db_path = settings.get_sqlite_db_path()
    if db_path is None:
        return

    try:
        if str(db_path.parent) != ".":
            db_path.parent.mkdir(parents=True, exist_ok=True)
        test_file = db_path.parent / f".{db_path.stem}_write_test"
        test_file.write_bytes(b"test")
        test_file.unlink()
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to write files in database directory '{db_path.parent}': {exc}. "
            "Update DATABASE_URL or adjust directory permissions."
        ) from exc


def build_services(app: FastAPI, settings: Settings, database: Database) -> None:
    """Create the service graph and hang it on app.state."""
    spotify_client = SpotifyClient(settings.spotify)
    auth_service = SpotifyAuthService(spotify_client)
    credential_manager = CredentialManager(database.session_factory, auth_service)

    app.state.settings = settings
    app.state.db = database
    app.state.spotify_client = spotify_client
    app.state.auth_service = auth_service
    app.state.credential_manager = credential_manager
    app.state.sync_service = CatalogSyncService(
        database.session_factory,
        spotify_client,
        credential_manager,
        settings=settings.sync,
    )
    app.state.feature_count_aggregator = FeatureCountAggregator(database.session_factory)
    app.state.album_backfill_service = AlbumBackfillService(
        database.session_factory, spotify_client, credential_manager
    )
    # state -> PKCE verifier of pending curator logins, expiring after 10 minutes
    app.state.pending_auth = PendingAuthStore()


# Everything before `yield` runs at startup, everything after at shutdown. The finally
# makes sure the http client and engine get closed even if startup blew up halfway.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = getattr(app.state, "settings", None) or get_settings()

    configure_logging(
        log_level=settings.observability.level,
        json_format=settings.observability.json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting application: %s", settings.app_name)

    database: Database | None = None
    try:
        _validate_sqlite_path(settings)
        database = Database(settings)
        await database.create_tables()
        logger.info("Database initialized: %s", settings.database.url)

        build_services(app, settings, database)
        yield
    finally:
        spotify_client = getattr(app.state, "spotify_client", None)
        if spotify_client is not None:
            await spotify_client.close()
        if database is not None:
            await database.close()
        logger.info("Application shutdown complete")
