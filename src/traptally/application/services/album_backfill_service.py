"""Backfills album information for songs synced without it."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from traptally.application.services.catalog_upsert_service import (
    SONG_PLACEHOLDER_IMAGE,
    first_image_url,
    spotify_url,
)
from traptally.application.services.credential_manager import CredentialManager
from traptally.domain.exceptions import (
    AuthenticationError,
    ExternalServiceError,
    ValidationError,
)
from traptally.domain.ports import ISpotifyClient
from traptally.infrastructure.persistence.database import transactional_session
from traptally.infrastructure.persistence.repositories import SongRepository

logger = logging.getLogger(__name__)

TRACK_BATCH_SIZE = 50


class AlbumBackfillService:
    """Looks up songs with no album via GET /tracks and writes album fields.

    A placeholder cover is swapped for the real album image when Spotify has
    one. A 401 triggers one refresh; a rejected refresh propagates as
    TokenRefreshException. Other batch failures are logged and the batch is
    skipped.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        spotify_client: ISpotifyClient,
        credential_manager: CredentialManager,
    ) -> None:
        self._session_factory = session_factory
        self._client = spotify_client
        self._credentials = credential_manager

    async def update_album_information(self) -> str:
        """Backfill album data and return a one-line summary."""
        async with self._session_factory() as session:
            songs = await SongRepository(session).list_without_album()
            pending = {s.spotify_track_id: (s.id, s.cover_image_url) for s in songs}

        total = len(pending)
        if not total:
            return "Album information updated for 0 of 0 songs."

        access_token = await self._credentials.get_valid_access_token()
        refreshed = False
        updated = 0
        track_ids = list(pending)

        for start in range(0, total, TRACK_BATCH_SIZE):
            batch = track_ids[start : start + TRACK_BATCH_SIZE]
            try:
                try:
                    tracks = await self._client.get_tracks(batch, access_token)
                except AuthenticationError:
                    if refreshed:
                        raise
                    access_token = await self._credentials.refresh(
                        stale_access_token=access_token
                    )
                    refreshed = True
                    tracks = await self._client.get_tracks(batch, access_token)
            except (ExternalServiceError, ValidationError) as e:
                logger.warning(
                    "Skipping album batch at offset %d: %s", start, e.message
                )
                continue

            async with transactional_session(self._session_factory) as session:
                repo = SongRepository(session)
                for track in tracks:
                    entry = pending.get(track.get("id", ""))
                    album = track.get("album") or {}
                    if entry is None or not album.get("id"):
                        continue
                    song_id, current_cover = entry
                    cover = None
                    if current_cover == SONG_PLACEHOLDER_IMAGE:
                        cover = first_image_url(album.get("images"), "") or None
                    if await repo.update_album_info(
                        song_id,
                        album_id=album["id"],
                        album_name=album.get("name"),
                        album_url=spotify_url(album) or None,
                        cover_image_url=cover,
                    ):
                        updated += 1

        message = f"Album information updated for {updated} of {total} songs."
        logger.info(message)
        return message
