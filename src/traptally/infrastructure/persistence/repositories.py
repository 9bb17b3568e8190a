"""Repository implementations for the catalog tables."""

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from traptally.domain.entities import PlaylistType
from traptally.infrastructure.persistence.models import (
    ArtistModel,
    CuratorTokenModel,
    PlaylistModel,
    PlaylistSongModel,
    SongArtistModel,
    SongModel,
)


class CuratorTokenRepository:
    """Repository for the single curator OAuth credential.

    Key methods:
    - get_active_token(): the credential if it exists AND is valid
    - get_token_status(): the credential regardless of validity
    - upsert_token(): store tokens after the authorization callback
    - update_after_refresh(): write refreshed tokens in place
    - mark_invalid(): flag the credential after a failed refresh
    """

    def __init__(self, session: AsyncSession, curator_id: str) -> None:
        self.session = session
        self.curator_id = curator_id

    async def _get(self) -> CuratorTokenModel | None:
        stmt = select(CuratorTokenModel).where(
            CuratorTokenModel.curator_id == self.curator_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_active_token(self) -> CuratorTokenModel | None:
        """Return the credential, or None if missing or marked invalid."""
        model = await self._get()
        if model is None or not model.is_valid:
            return None
        return model

    async def get_token_status(self) -> CuratorTokenModel | None:
        """Return the credential even if invalid (for status display)."""
        return await self._get()

    # Listen up - the OAuth callback calls this! Creates the row on first authorization,
    # otherwise overwrites it. A fresh authorization always makes the credential valid.
    async def upsert_token(
        self,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
        scope: str | None = None,
        token_type: str | None = None,
    ) -> CuratorTokenModel:
        """Store or update the credential after a successful authorization."""
        model = await self._get()
        now = datetime.now(UTC)

        if model:
            model.access_token = access_token
            model.refresh_token = refresh_token
            model.expires_at = expires_at
            model.scope = scope
            model.token_type = token_type
            model.is_valid = True
            model.last_error = None
            model.last_error_at = None
            model.last_refreshed_at = now
        else:
            model = CuratorTokenModel(
                curator_id=self.curator_id,
                access_token=access_token,
                refresh_token=refresh_token,
                expires_at=expires_at,
                scope=scope,
                token_type=token_type,
                is_valid=True,
                created_at=now,
                updated_at=now,
                last_refreshed_at=now,
            )
            self.session.add(model)

        await self.session.flush()
        return model

    async def update_after_refresh(
        self,
        access_token: str,
        expires_at: datetime,
        refresh_token: str | None = None,
        scope: str | None = None,
        token_type: str | None = None,
    ) -> CuratorTokenModel | None:
        """Write refreshed tokens; the refresh token only changes if reissued.

        Returns:
            The updated model, or None if no credential exists
        """
        model = await self._get()
        if model is None:
            return None

        model.access_token = access_token
        model.expires_at = expires_at
        model.last_refreshed_at = datetime.now(UTC)
        model.is_valid = True
        model.last_error = None
        model.last_error_at = None
        if refresh_token:
            model.refresh_token = refresh_token
        if scope is not None:
            model.scope = scope
        if token_type is not None:
            model.token_type = token_type

        await self.session.flush()
        return model

    async def mark_invalid(self, error_message: str) -> bool:
        """Flag the credential invalid after a refresh failure.

        Returns:
            True if marked, False if no credential exists
        """
        model = await self._get()
        if model is None:
            return False

        model.is_valid = False
        model.last_error = error_message
        model.last_error_at = datetime.now(UTC)
        await self.session.flush()
        return True


# Hey future me - all upserts below follow the same shape: select by the Spotify id,
# update in place or add a new row, then flush() so the generated id is usable for the
# link rows right away. They never raise on "already exists".
class PlaylistRepository:
    """Repository for curated playlists and their track membership."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_spotify_id(self, spotify_playlist_id: str) -> PlaylistModel | None:
        stmt = select(PlaylistModel).where(
            PlaylistModel.spotify_playlist_id == spotify_playlist_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert_playlist(
        self,
        spotify_playlist_id: str,
        name: str,
        description: str,
        cover_image_url: str,
        spotify_url: str,
        type: str,
        associated_year: int | None = None,
        associated_month: int | None = None,
    ) -> PlaylistModel:
        """Insert or update a playlist keyed on its Spotify id.

        associated_artist_id is left alone; only the associator writes it.
        """
        model = await self.get_by_spotify_id(spotify_playlist_id)

        if model:
            model.name = name
            model.description = description
            model.cover_image_url = cover_image_url
            model.spotify_url = spotify_url
            model.type = type
            model.associated_year = associated_year
            model.associated_month = associated_month
        else:
            model = PlaylistModel(
                spotify_playlist_id=spotify_playlist_id,
                name=name,
                description=description,
                cover_image_url=cover_image_url,
                spotify_url=spotify_url,
                type=type,
                associated_year=associated_year,
                associated_month=associated_month,
            )
            self.session.add(model)

        await self.session.flush()
        return model

    async def link_playlist_song(
        self, playlist_id: str, song_id: str, order_in_playlist: int
    ) -> PlaylistSongModel:
        """Create the membership row, or overwrite its position."""
        link = await self.session.get(PlaylistSongModel, (playlist_id, song_id))
        if link:
            link.order_in_playlist = order_in_playlist
        else:
            link = PlaylistSongModel(
                playlist_id=playlist_id,
                song_id=song_id,
                order_in_playlist=order_in_playlist,
            )
            self.session.add(link)
        await self.session.flush()
        return link

    async def prune_songs(self, playlist_id: str, keep_song_ids: Iterable[str]) -> int:
        """Delete membership rows for songs no longer in the playlist.

        Songs themselves are kept.

        Returns:
            Number of membership rows deleted
        """
        keep = list(keep_song_ids)
        stmt = delete(PlaylistSongModel).where(PlaylistSongModel.playlist_id == playlist_id)
        if keep:
            stmt = stmt.where(PlaylistSongModel.song_id.not_in(keep))
        result = await self.session.execute(stmt)
        return result.rowcount or 0  # type: ignore[attr-defined]

    async def list_song_ids(self, playlist_id: str) -> list[str]:
        """Song ids of a playlist in playlist order."""
        stmt = (
            select(PlaylistSongModel.song_id)
            .where(PlaylistSongModel.playlist_id == playlist_id)
            .order_by(PlaylistSongModel.order_in_playlist)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_unassociated_artist_playlists(self) -> Sequence[PlaylistModel]:
        """Artist-type playlists that have no associated artist yet."""
        stmt = (
            select(PlaylistModel)
            .where(
                PlaylistModel.type == PlaylistType.ARTIST.value,
                PlaylistModel.associated_artist_id.is_(None),
            )
            .order_by(PlaylistModel.name, PlaylistModel.id)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def set_associated_artist(self, playlist_id: str, artist_id: str) -> None:
        playlist = await self.session.get(PlaylistModel, playlist_id)
        if playlist is None:
            return
        playlist.associated_artist_id = artist_id
        await self.session.flush()


class SongRepository:
    """Repository for songs and their artist credits."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_spotify_id(self, spotify_track_id: str) -> SongModel | None:
        stmt = select(SongModel).where(SongModel.spotify_track_id == spotify_track_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert_song(
        self,
        spotify_track_id: str,
        title: str,
        cover_image_url: str,
        spotify_url: str,
        release_year: int | None = None,
        release_month: int | None = None,
        album_id: str | None = None,
        album_name: str | None = None,
        album_url: str | None = None,
    ) -> SongModel:
        """Insert or update a song keyed on its Spotify track id.

        Album fields are only overwritten when the payload carries them, so a
        song filled by the album backfill keeps its album.
        """
        model = await self.get_by_spotify_id(spotify_track_id)

        if model:
            model.title = title
            model.cover_image_url = cover_image_url
            model.spotify_url = spotify_url
            model.release_year = release_year
            model.release_month = release_month
            if album_id:
                model.album_id = album_id
                model.album_name = album_name
                model.album_url = album_url
        else:
            model = SongModel(
                spotify_track_id=spotify_track_id,
                title=title,
                cover_image_url=cover_image_url,
                spotify_url=spotify_url,
                release_year=release_year,
                release_month=release_month,
                album_id=album_id,
                album_name=album_name,
                album_url=album_url,
            )
            self.session.add(model)

        await self.session.flush()
        return model

    async def link_song_artist(self, song_id: str, artist_id: str) -> bool:
        """Create the credit row if missing.

        Returns:
            True if a new row was created
        """
        existing = await self.session.get(SongArtistModel, (song_id, artist_id))
        if existing:
            return False
        self.session.add(SongArtistModel(song_id=song_id, artist_id=artist_id))
        await self.session.flush()
        return True

    async def list_without_album(self) -> Sequence[SongModel]:
        """Songs that have no album information yet."""
        stmt = (
            select(SongModel)
            .where(SongModel.album_id.is_(None))
            .order_by(SongModel.created_at, SongModel.id)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def update_album_info(
        self,
        song_id: str,
        album_id: str,
        album_name: str | None,
        album_url: str | None,
        cover_image_url: str | None = None,
    ) -> bool:
        """Write album fields for one song; cover only when given."""
        song = await self.session.get(SongModel, song_id)
        if song is None:
            return False
        song.album_id = album_id
        song.album_name = album_name
        song.album_url = album_url
        if cover_image_url:
            song.cover_image_url = cover_image_url
        await self.session.flush()
        return True


class ArtistRepository:
    """Repository for artists and their feature counts."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_spotify_id(self, spotify_artist_id: str) -> ArtistModel | None:
        stmt = select(ArtistModel).where(
            ArtistModel.spotify_artist_id == spotify_artist_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert_artist(
        self,
        spotify_artist_id: str,
        name: str,
        spotify_url: str | None = None,
        profile_image_url: str | None = None,
    ) -> ArtistModel:
        """Insert or update an artist keyed on its Spotify id.

        Feature-count columns are never touched here. Track payloads carry no
        artist images, so an existing profile image is only replaced by a
        non-empty one.
        """
        model = await self.get_by_spotify_id(spotify_artist_id)

        if model:
            model.name = name
            model.spotify_url = spotify_url
            if profile_image_url:
                model.profile_image_url = profile_image_url
        else:
            model = ArtistModel(
                spotify_artist_id=spotify_artist_id,
                name=name,
                spotify_url=spotify_url,
                profile_image_url=profile_image_url,
            )
            self.session.add(model)

        await self.session.flush()
        return model

    # Hey future me - SQLite's lower() only folds ASCII, so "ÉST GEE" would never find
    # "ÉST Gee" in SQL. Names are compared with casefold() here instead, and the rows come
    # back ordered by name then id so "first match" is stable when names collide.
    async def find_by_name_case_insensitive(self, name: str) -> Sequence[ArtistModel]:
        wanted = name.casefold()
        rows = await self.session.execute(select(ArtistModel.id, ArtistModel.name))
        ids = [artist_id for artist_id, artist_name in rows if artist_name.casefold() == wanted]
        if not ids:
            return []
        stmt = (
            select(ArtistModel)
            .where(ArtistModel.id.in_(ids))
            .order_by(ArtistModel.name, ArtistModel.id)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def list_missing_profile_image(self) -> Sequence[ArtistModel]:
        stmt = (
            select(ArtistModel)
            .where(
                ArtistModel.spotify_artist_id.is_not(None),
                ArtistModel.profile_image_url.is_(None),
            )
            .order_by(ArtistModel.id)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def set_profile_image(self, spotify_artist_id: str, image_url: str) -> bool:
        artist = await self.get_by_spotify_id(spotify_artist_id)
        if artist is None:
            return False
        artist.profile_image_url = image_url
        await self.session.flush()
        return True

    async def list_all(self) -> Sequence[ArtistModel]:
        result = await self.session.execute(select(ArtistModel).order_by(ArtistModel.id))
        return result.scalars().all()

    async def count_distinct_songs_by_playlist_type(
        self, playlist_type: PlaylistType
    ) -> dict[str, int]:
        """Distinct songs per artist across all playlists of one type.

        A song sitting in three Monthly playlists still counts once.
        """
        stmt = (
            select(
                SongArtistModel.artist_id,
                func.count(func.distinct(SongArtistModel.song_id)),
            )
            .join(
                PlaylistSongModel,
                PlaylistSongModel.song_id == SongArtistModel.song_id,
            )
            .join(PlaylistModel, PlaylistModel.id == PlaylistSongModel.playlist_id)
            .where(PlaylistModel.type == playlist_type.value)
            .group_by(SongArtistModel.artist_id)
        )
        result = await self.session.execute(stmt)
        return {artist_id: count for artist_id, count in result.all()}

    async def count_best_of_songs(self) -> dict[str, int]:
        """Song count of each artist's best-of playlist.

        When several Artist playlists point at the same artist, the earliest
        created one is used.
        """
        playlists_stmt = (
            select(PlaylistModel.id, PlaylistModel.associated_artist_id)
            .where(
                PlaylistModel.type == PlaylistType.ARTIST.value,
                PlaylistModel.associated_artist_id.is_not(None),
            )
            .order_by(PlaylistModel.created_at, PlaylistModel.id)
        )
        first_playlist: dict[str, str] = {}
        for playlist_id, artist_id in (await self.session.execute(playlists_stmt)).all():
            first_playlist.setdefault(artist_id, playlist_id)

        if not first_playlist:
            return {}

        counts_stmt = (
            select(PlaylistSongModel.playlist_id, func.count())
            .where(PlaylistSongModel.playlist_id.in_(list(first_playlist.values())))
            .group_by(PlaylistSongModel.playlist_id)
        )
        per_playlist = {
            playlist_id: count
            for playlist_id, count in (await self.session.execute(counts_stmt)).all()
        }
        return {
            artist_id: per_playlist.get(playlist_id, 0)
            for artist_id, playlist_id in first_playlist.items()
        }
