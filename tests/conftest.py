"""Shared fixtures: in-memory database, settings and a scriptable Spotify fake."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from spotify_fakes import FakeSpotifyClient

from traptally.application.services import CredentialManager, SpotifyAuthService
from traptally.config import DatabaseSettings, Settings, SpotifySettings, SyncSettings
from traptally.config.curated_playlists import CURATOR_ID
from traptally.infrastructure.persistence.database import Database
from traptally.infrastructure.persistence.repositories import CuratorTokenRepository


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at an in-memory SQLite database."""
    return Settings(
        spotify=SpotifySettings(
            client_id="test-client",
            client_secret="",
            redirect_uri="http://127.0.0.1:8080/api/auth/spotify/callback",
            max_retries=1,
        ),
        database=DatabaseSettings(url="sqlite+aiosqlite://"),
        sync=SyncSettings(enrich_artist_images=False),
    )


@pytest.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    db = Database(settings)
    await db.create_tables()
    yield db
    await db.close()


@pytest.fixture
def session_factory(database: Database) -> async_sessionmaker[AsyncSession]:
    return database.session_factory


@pytest.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as s:
        yield s


@pytest.fixture
def fake_spotify() -> FakeSpotifyClient:
    return FakeSpotifyClient()


@pytest.fixture
def credential_manager(
    session_factory: async_sessionmaker[AsyncSession], fake_spotify: FakeSpotifyClient
) -> CredentialManager:
    return CredentialManager(session_factory, SpotifyAuthService(fake_spotify))


@pytest.fixture
async def stored_credential(session_factory: async_sessionmaker[AsyncSession]) -> str:
    """Seed a valid curator credential; returns its access token."""
    async with session_factory() as s:
        await CuratorTokenRepository(s, CURATOR_ID).upsert_token(
            access_token="access-1",
            refresh_token="refresh-1",
            expires_at=datetime.now(UTC) + timedelta(hours=1),
            scope="playlist-read-private",
            token_type="Bearer",
        )
        await s.commit()
    return "access-1"
