"""Dependency injection for API endpoints.

Services are built once in the lifespan and live on app.state; these helpers
hand them to the routes, or answer 503 while the app isn't ready.
"""

from typing import Any, cast

from fastapi import HTTPException, Request

from traptally.api.pending_auth import PendingAuthStore
from traptally.application.services import (
    AlbumBackfillService,
    CatalogSyncService,
    CredentialManager,
    FeatureCountAggregator,
    SpotifyAuthService,
)


def _from_state(request: Request, name: str) -> Any:
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail=f"{name} not initialized")
    return service


def get_sync_service(request: Request) -> CatalogSyncService:
    return cast(CatalogSyncService, _from_state(request, "sync_service"))


def get_feature_count_aggregator(request: Request) -> FeatureCountAggregator:
    return cast(FeatureCountAggregator, _from_state(request, "feature_count_aggregator"))


def get_album_backfill_service(request: Request) -> AlbumBackfillService:
    return cast(AlbumBackfillService, _from_state(request, "album_backfill_service"))


def get_credential_manager(request: Request) -> CredentialManager:
    return cast(CredentialManager, _from_state(request, "credential_manager"))


def get_auth_service(request: Request) -> SpotifyAuthService:
    return cast(SpotifyAuthService, _from_state(request, "auth_service"))


def get_pending_auth(request: Request) -> PendingAuthStore:
    return cast(PendingAuthStore, _from_state(request, "pending_auth"))
