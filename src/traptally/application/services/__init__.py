"""Application services."""

from traptally.application.services.album_backfill_service import AlbumBackfillService
from traptally.application.services.artist_playlist_associator import (
    ArtistPlaylistAssociator,
)
from traptally.application.services.catalog_sync_service import CatalogSyncService
from traptally.application.services.catalog_upsert_service import CatalogUpsertService
from traptally.application.services.credential_manager import CredentialManager
from traptally.application.services.feature_count_aggregator import (
    FeatureCountAggregator,
)
from traptally.application.services.spotify_auth_service import SpotifyAuthService

__all__ = [
    "AlbumBackfillService",
    "ArtistPlaylistAssociator",
    "CatalogSyncService",
    "CatalogUpsertService",
    "CredentialManager",
    "FeatureCountAggregator",
    "SpotifyAuthService",
]
