"""Links "Best of <Artist>" playlists to artist rows by name."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from traptally.domain.entities import AssociationResult
from traptally.infrastructure.persistence.repositories import (
    ArtistRepository,
    PlaylistRepository,
)

logger = logging.getLogger(__name__)

BEST_OF_PREFIX = "Best of "


def extract_artist_name(playlist_name: str) -> str | None:
    """Candidate artist name from a playlist name, or None.

    The text after the first literal "Best of " (case-sensitive), trimmed.
    """
    parts = playlist_name.split(BEST_OF_PREFIX, 1)
    if len(parts) < 2:
        return None
    candidate = parts[1].strip()
    return candidate or None


# Hey future me - this is a HEURISTIC and it stays one. Artist names aren't unique, so
# when two artists share the name we take the first (ordered by name, id) and log it.
# Nothing here raises past a single playlist; an unmatched playlist just stays
# unassociated until the artist shows up in some track.
class ArtistPlaylistAssociator:
    """Fills playlists.associated_artist_id for Artist-type playlists."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def associate_artist_playlists(self) -> AssociationResult:
        """Associate every still-unassociated Artist playlist it can match."""
        result = AssociationResult()

        async with self._session_factory() as session:
            candidates = await PlaylistRepository(session).list_unassociated_artist_playlists()
            pending = [(p.id, p.name, p.spotify_playlist_id) for p in candidates]
        result.candidates = len(pending)

        for playlist_id, playlist_name, spotify_playlist_id in pending:
            try:
                if await self._associate_one(playlist_id, playlist_name, spotify_playlist_id):
                    result.associations_made += 1
            except Exception:
                logger.exception(
                    "Failed to associate playlist %s (%r)", spotify_playlist_id, playlist_name
                )

        logger.info(
            "Artist association pass: %d of %d playlists associated",
            result.associations_made,
            result.candidates,
        )
        return result

    async def _associate_one(
        self, playlist_id: str, playlist_name: str, spotify_playlist_id: str
    ) -> bool:
        artist_name = extract_artist_name(playlist_name)
        if artist_name is None:
            logger.warning(
                "Playlist %s (%r) has no artist name after %r, skipping",
                spotify_playlist_id,
                playlist_name,
                BEST_OF_PREFIX,
            )
            return False

        async with self._session_factory() as session:
            matches = await ArtistRepository(session).find_by_name_case_insensitive(
                artist_name
            )
            if not matches:
                logger.warning(
                    "No artist named %r for playlist %s", artist_name, spotify_playlist_id
                )
                return False
            if len(matches) > 1:
                logger.warning(
                    "%d artists named %r for playlist %s, using %s",
                    len(matches),
                    artist_name,
                    spotify_playlist_id,
                    matches[0].spotify_artist_id,
                )

            await PlaylistRepository(session).set_associated_artist(
                playlist_id, matches[0].id
            )
            await session.commit()

        logger.debug("Associated playlist %s with artist %r", spotify_playlist_id, artist_name)
        return True
