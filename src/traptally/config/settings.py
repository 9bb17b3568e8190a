"""Application settings loaded from environment variables and .env files."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SpotifySettings(BaseSettings):
    """Spotify API credentials and client behaviour."""

    model_config = SettingsConfigDict(
        env_prefix="SPOTIFY_", env_file=".env", extra="ignore"
    )

    client_id: str = ""
    # Hey future me - client_secret is optional! PKCE works without it, but the
    # curator app is registered as a confidential client so we send Basic auth
    # on the token endpoint whenever a secret is configured.
    client_secret: str = ""
    redirect_uri: str = "http://127.0.0.1:8080/api/auth/spotify/callback"
    request_timeout: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=0)


class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_", env_file=".env", extra="ignore"
    )

    url: str = "sqlite+aiosqlite:///./traptally.db"
    echo: bool = False
    pool_pre_ping: bool = True
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 3600


class SyncSettings(BaseSettings):
    """Catalog sync engine tuning."""

    model_config = SettingsConfigDict(
        env_prefix="SYNC_", env_file=".env", extra="ignore"
    )

    # 1 = strictly sequential, one curated playlist after another
    max_concurrency: int = Field(default=1, ge=1, le=16)
    run_timeout_seconds: float = Field(default=1800.0, gt=0)
    prune_removed_tracks: bool = True
    enrich_artist_images: bool = True


class ObservabilitySettings(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_", env_file=".env", extra="ignore"
    )

    level: str = "INFO"
    json_format: bool = False


class Settings(BaseSettings):
    """Top-level settings object."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "traptally"
    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    def get_sqlite_db_path(self) -> Path | None:
        """Return the SQLite database file path, or None for other backends.

        In-memory databases also return None.
        """
        url = self.database.url
        if not url.startswith("sqlite"):
            return None
        _, _, path = url.partition(":///")
        if not path or path == ":memory:":
            return None
        return Path(path)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
