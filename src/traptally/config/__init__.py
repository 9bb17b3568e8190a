"""Configuration package."""

from traptally.config.settings import (
    DatabaseSettings,
    ObservabilitySettings,
    Settings,
    SpotifySettings,
    SyncSettings,
    get_settings,
)

__all__ = [
    "DatabaseSettings",
    "ObservabilitySettings",
    "Settings",
    "SpotifySettings",
    "SyncSettings",
    "get_settings",
]
