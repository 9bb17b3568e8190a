"""Tests for the catalog repositories and database session handling."""

from datetime import UTC, datetime, timedelta

import pytest

from traptally.config import DatabaseSettings, Settings
from traptally.config.curated_playlists import CURATOR_ID
from traptally.infrastructure.persistence.database import Database, transactional_session
from traptally.infrastructure.persistence.repositories import (
    ArtistRepository,
    CuratorTokenRepository,
    PlaylistRepository,
    SongRepository,
)


async def _song(session, track_id="tr-1", **overrides):
    fields = {
        "spotify_track_id": track_id,
        "title": "Pushin P",
        "cover_image_url": "https://i.scdn.co/image/a",
        "spotify_url": f"https://open.spotify.com/track/{track_id}",
    }
    fields.update(overrides)
    return await SongRepository(session).upsert_song(**fields)


class TestCuratorTokenRepository:
    async def test_upsert_then_refresh_keeps_refresh_token(self, session):
        repo = CuratorTokenRepository(session, CURATOR_ID)
        expires = datetime.now(UTC) + timedelta(hours=1)
        await repo.upsert_token("a1", "r1", expires)

        await repo.update_after_refresh("a2", expires)

        token = await repo.get_active_token()
        assert token.access_token == "a2"
        assert token.refresh_token == "r1"

    async def test_mark_invalid_hides_active_token(self, session):
        repo = CuratorTokenRepository(session, CURATOR_ID)
        await repo.upsert_token("a1", "r1", datetime.now(UTC))

        assert await repo.mark_invalid("invalid_grant") is True

        assert await repo.get_active_token() is None
        status = await repo.get_token_status()
        assert status.is_valid is False
        assert status.last_error == "invalid_grant"

    async def test_missing_credential(self, session):
        repo = CuratorTokenRepository(session, CURATOR_ID)
        assert await repo.mark_invalid("x") is False
        assert await repo.update_after_refresh("a", datetime.now(UTC)) is None

    async def test_expiry_helpers(self, session):
        repo = CuratorTokenRepository(session, CURATOR_ID)
        token = await repo.upsert_token("a1", "r1", datetime.now(UTC) + timedelta(minutes=5))

        assert token.is_expired() is False
        assert token.expires_soon(minutes=10) is True


class TestSongRepository:
    async def test_upsert_keeps_album_when_payload_has_none(self, session):
        await _song(session, album_id="alb-1", album_name="Album", album_url="u")

        song = await _song(session, title="Renamed", album_id=None)

        assert song.title == "Renamed"
        assert song.album_id == "alb-1"
        assert song.album_name == "Album"

    async def test_link_song_artist_once(self, session):
        song = await _song(session)
        artist = await ArtistRepository(session).upsert_artist("ar-1", "Gunna")
        repo = SongRepository(session)

        assert await repo.link_song_artist(song.id, artist.id) is True
        assert await repo.link_song_artist(song.id, artist.id) is False

    async def test_list_without_album(self, session):
        await _song(session, "tr-1", album_id="alb-1")
        await _song(session, "tr-2")

        missing = await SongRepository(session).list_without_album()

        assert [s.spotify_track_id for s in missing] == ["tr-2"]


class TestArtistRepository:
    async def test_upsert_never_clears_image_or_counts(self, session):
        repo = ArtistRepository(session)
        artist = await repo.upsert_artist("ar-1", "Gunna", profile_image_url="img")
        artist.monthly_feature_count = 4

        again = await repo.upsert_artist("ar-1", "Gunna Wunna")

        assert again.id == artist.id
        assert again.name == "Gunna Wunna"
        assert again.profile_image_url == "img"
        assert again.monthly_feature_count == 4

    async def test_find_by_name_case_insensitive(self, session):
        repo = ArtistRepository(session)
        await repo.upsert_artist("ar-1", "Lil Baby")

        assert [a.spotify_artist_id for a in await repo.find_by_name_case_insensitive("LIL BABY")] == [
            "ar-1"
        ]
        assert await repo.find_by_name_case_insensitive("Lil") == []

    async def test_find_by_name_folds_non_ascii(self, session):
        repo = ArtistRepository(session)
        await repo.upsert_artist("ar-2", "Ñengo Flow")
        await repo.upsert_artist("ar-1", "ÑENGO FLOW")

        found = await repo.find_by_name_case_insensitive("ñengo flow")

        assert [a.spotify_artist_id for a in found] == ["ar-1", "ar-2"]

    async def test_profile_image_helpers(self, session):
        repo = ArtistRepository(session)
        await repo.upsert_artist("ar-1", "Gunna")

        assert [a.spotify_artist_id for a in await repo.list_missing_profile_image()] == ["ar-1"]
        assert await repo.set_profile_image("ar-1", "img") is True
        assert await repo.set_profile_image("nope", "img") is False
        assert await repo.list_missing_profile_image() == []


class TestPlaylistRepository:
    async def test_upsert_does_not_touch_association(self, session):
        repo = PlaylistRepository(session)
        artist = await ArtistRepository(session).upsert_artist("ar-1", "Gunna")
        playlist = await repo.upsert_playlist("pl-1", "Best of Gunna", "", "", "", "Artist")
        await repo.set_associated_artist(playlist.id, artist.id)

        again = await repo.upsert_playlist("pl-1", "Best of Gunna", "new", "", "", "Artist")

        assert again.associated_artist_id == artist.id
        assert again.description == "new"


class TestTransactionalSession:
    async def test_rolls_back_on_error(self, session_factory):
        with pytest.raises(RuntimeError):
            async with transactional_session(session_factory) as session:
                await ArtistRepository(session).upsert_artist("ar-1", "Gunna")
                raise RuntimeError("boom")

        async with session_factory() as session:
            assert await ArtistRepository(session).get_by_spotify_id("ar-1") is None

    async def test_commits_on_success(self, session_factory):
        async with transactional_session(session_factory) as session:
            await ArtistRepository(session).upsert_artist("ar-1", "Gunna")

        async with session_factory() as session:
            assert await ArtistRepository(session).get_by_spotify_id("ar-1") is not None


class TestDatabase:
    def test_sqlite_file_path(self):
        settings = Settings(database=DatabaseSettings(url="sqlite+aiosqlite:///./data/tt.db"))
        assert str(settings.get_sqlite_db_path()) == "data/tt.db"

    def test_memory_database_has_no_path(self):
        settings = Settings(database=DatabaseSettings(url="sqlite+aiosqlite://"))
        assert settings.get_sqlite_db_path() is None

    async def test_session_scope(self, database: Database):
        async with database.session_scope() as session:
            await ArtistRepository(session).upsert_artist("ar-1", "Gunna")

        async with database.session_scope() as session:
            assert len(await ArtistRepository(session).list_all()) == 1
