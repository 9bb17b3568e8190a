"""Recomputes per-artist feature counts from the catalog."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from traptally.domain.entities import PlaylistType
from traptally.infrastructure.persistence.repositories import ArtistRepository

logger = logging.getLogger(__name__)


class FeatureCountAggregator:
    """Full recompute of the three count columns on every artist.

    - monthly_feature_count: distinct songs of the artist in any Monthly playlist
    - yearly_feature_count: same for Yearly playlists
    - best_of_playlist_song_count: songs in the artist's own best-of playlist

    Three grouped queries, then one pass over all artists. Counts are always
    overwritten, so artists that dropped out of every playlist go back to 0.
    Cost grows with the whole catalog, not with what changed in a run.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def recompute_all_artist_feature_counts(self) -> int:
        """Recompute and store counts for every artist.

        Returns:
            Number of artists updated
        """
        async with self._session_factory() as session:
            repo = ArtistRepository(session)
            monthly = await repo.count_distinct_songs_by_playlist_type(PlaylistType.MONTHLY)
            yearly = await repo.count_distinct_songs_by_playlist_type(PlaylistType.YEARLY)
            best_of = await repo.count_best_of_songs()

            artists = await repo.list_all()
            for artist in artists:
                artist.monthly_feature_count = monthly.get(artist.id, 0)
                artist.yearly_feature_count = yearly.get(artist.id, 0)
                artist.best_of_playlist_song_count = best_of.get(artist.id, 0)

            await session.commit()

        logger.info("Recomputed feature counts for %d artists", len(artists))
        return len(artists)
