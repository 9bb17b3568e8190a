"""Sync endpoints: full catalog sync, feature counts, album backfill."""

import logging
from typing import Any

from fastapi import APIRouter, Depends

from traptally.api.dependencies import (
    get_album_backfill_service,
    get_feature_count_aggregator,
    get_sync_service,
)
from traptally.application.services import (
    AlbumBackfillService,
    CatalogSyncService,
    FeatureCountAggregator,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["sync"])

REAUTH_RESPONSE_MESSAGE = "Spotify re-authorization required. Please re-authenticate."


# Hey future me - this endpoint awaits the WHOLE run, no background job. A sync of the
# full curated list takes a few minutes; clients should use a generous timeout. It always
# answers 200 with the summary, a revoked credential is signalled by the body flag.
@router.post("/trigger")
async def trigger_sync(
    sync_service: CatalogSyncService = Depends(get_sync_service),
) -> dict[str, Any]:
    """Run a full catalog sync and return its summary."""
    summary = await sync_service.trigger_full_sync()
    details = (
        f"Skipped: {summary.playlists_skipped}. Failed: {summary.playlists_failed}. "
        f"Artist playlists associated: {summary.associations_made}."
    )

    if summary.reauthorization_required:
        return {
            "message": REAUTH_RESPONSE_MESSAGE,
            "reauthorization_required": True,
            "details": summary.message,
            "summary": summary.to_dict(),
        }
    return {
        "message": summary.message,
        "reauthorization_required": False,
        "details": details,
        "summary": summary.to_dict(),
    }


@router.post("/feature-counts")
async def recompute_feature_counts(
    aggregator: FeatureCountAggregator = Depends(get_feature_count_aggregator),
) -> dict[str, Any]:
    """Recompute feature counts for every artist."""
    updated = await aggregator.recompute_all_artist_feature_counts()
    return {
        "message": f"Feature counts recomputed for {updated} artists.",
        "artists_updated": updated,
    }


@router.post("/update-albums")
async def update_albums(
    backfill: AlbumBackfillService = Depends(get_album_backfill_service),
) -> dict[str, str]:
    """Backfill album information for songs that have none."""
    return {"message": await backfill.update_album_information()}
