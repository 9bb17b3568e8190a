"""Maps Spotify playlist payloads onto catalog rows."""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from traptally.domain.entities import CuratedPlaylistConfig
from traptally.domain.exceptions import ValidationError
from traptally.infrastructure.persistence.repositories import (
    ArtistRepository,
    PlaylistRepository,
    SongRepository,
)

logger = logging.getLogger(__name__)

PLAYLIST_PLACEHOLDER_IMAGE = "https://placehold.co/300x300/060708/FFFFFF?text=No+Art"
SONG_PLACEHOLDER_IMAGE = "https://placehold.co/100x100/060708/FFFFFF?text=No+Art"

# Spotify's release_date_precision values that carry a month segment
_MONTH_PRECISIONS = frozenset({"day", "month"})


def parse_release_date(
    release_date: str | None, precision: str | None
) -> tuple[int | None, int | None]:
    """Split a Spotify release date into (year, month).

    "1994" -> (1994, None), "1994-07" with precision "month" -> (1994, 7),
    "1994-07-15" with precision "day" -> (1994, 7). Month is only taken for
    day/month precision; unparseable parts come back as None.
    """
    if not release_date:
        return None, None

    parts = release_date.split("-")
    try:
        year: int | None = int(parts[0])
    except ValueError:
        year = None

    month: int | None = None
    if precision in _MONTH_PRECISIONS and len(parts) > 1:
        try:
            month = int(parts[1])
        except ValueError:
            month = None
        if month is not None and not 1 <= month <= 12:
            month = None

    return year, month


def first_image_url(images: Any, fallback: str) -> str:
    """URL of the first image in a Spotify images list, else the fallback."""
    if isinstance(images, list):
        for image in images:
            if isinstance(image, dict) and image.get("url"):
                return str(image["url"])
    return fallback


def spotify_url(payload: dict[str, Any] | None) -> str:
    if not payload:
        return ""
    external_urls = payload.get("external_urls") or {}
    return str(external_urls.get("spotify") or "")


@dataclass
class PlaylistUpsertStats:
    """Counters from upserting one playlist payload."""

    playlist_id: str
    playlist_name: str
    tracks_processed: int = 0
    artist_links: int = 0
    tracks_pruned: int = 0


class CatalogUpsertService:
    """Writes one fetched playlist (with tracks and artists) into the catalog.

    Runs inside the caller's session; the caller owns commit/rollback, so a
    failure halfway leaves nothing behind for that playlist.
    """

    def __init__(self, prune_removed_tracks: bool = True) -> None:
        self.prune_removed_tracks = prune_removed_tracks

    @staticmethod
    def parse_release_date(
        release_date: str | None, precision: str | None
    ) -> tuple[int | None, int | None]:
        return parse_release_date(release_date, precision)

    async def upsert_playlist_payload(
        self,
        session: AsyncSession,
        config: CuratedPlaylistConfig,
        payload: dict[str, Any],
    ) -> PlaylistUpsertStats:
        """Upsert playlist, songs, artists and both link tables.

        Raises:
            ValidationError: Payload has no usable shape
        """
        items = (payload.get("tracks") or {}).get("items")
        if not isinstance(items, list):
            raise ValidationError(
                f"Playlist {config.spotify_playlist_id} payload has no tracks.items list"
            )

        playlists = PlaylistRepository(session)
        songs = SongRepository(session)
        artists = ArtistRepository(session)

        name = config.name_override or payload.get("name") or config.spotify_playlist_id
        playlist = await playlists.upsert_playlist(
            spotify_playlist_id=config.spotify_playlist_id,
            name=name,
            description=payload.get("description") or "",
            cover_image_url=first_image_url(
                payload.get("images"), PLAYLIST_PLACEHOLDER_IMAGE
            ),
            spotify_url=spotify_url(payload),
            type=config.type.value,
            associated_year=config.associated_year,
            associated_month=config.associated_month,
        )
        stats = PlaylistUpsertStats(playlist_id=playlist.id, playlist_name=name)

        kept_song_ids: set[str] = set()
        position = 0
        for item in items:
            track = item.get("track") if isinstance(item, dict) else None
            # local files and removed tracks come back without a usable id
            if not isinstance(track, dict) or not track.get("id") or track.get("is_local"):
                continue

            album = track.get("album") or {}
            release_year, release_month = parse_release_date(
                album.get("release_date"), album.get("release_date_precision")
            )

            artist_ids: list[str] = []
            for artist_payload in track.get("artists") or []:
                if not isinstance(artist_payload, dict) or not artist_payload.get("id"):
                    continue
                artist = await artists.upsert_artist(
                    spotify_artist_id=artist_payload["id"],
                    name=artist_payload.get("name") or "Unknown Artist",
                    spotify_url=spotify_url(artist_payload) or None,
                )
                artist_ids.append(artist.id)

            song = await songs.upsert_song(
                spotify_track_id=track["id"],
                title=track.get("name") or "",
                cover_image_url=first_image_url(
                    album.get("images"), SONG_PLACEHOLDER_IMAGE
                ),
                spotify_url=spotify_url(track),
                release_year=release_year,
                release_month=release_month,
                album_id=album.get("id"),
                album_name=album.get("name"),
                album_url=spotify_url(album) or None,
            )

            for artist_id in artist_ids:
                await songs.link_song_artist(song.id, artist_id)
                stats.artist_links += 1

            await playlists.link_playlist_song(playlist.id, song.id, position)
            kept_song_ids.add(song.id)
            position += 1
            stats.tracks_processed += 1

        if self.prune_removed_tracks:
            stats.tracks_pruned = await playlists.prune_songs(playlist.id, kept_song_ids)
            if stats.tracks_pruned:
                logger.info(
                    "Pruned %d removed tracks from playlist %s",
                    stats.tracks_pruned,
                    config.spotify_playlist_id,
                )

        return stats
