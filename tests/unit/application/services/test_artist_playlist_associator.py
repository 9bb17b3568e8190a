"""Tests for linking "Best of <Artist>" playlists to artists."""

import pytest

from traptally.application.services.artist_playlist_associator import (
    ArtistPlaylistAssociator,
    extract_artist_name,
)
from traptally.infrastructure.persistence.repositories import (
    ArtistRepository,
    PlaylistRepository,
)


async def _add_playlist(session, spotify_id: str, name: str, type_: str = "Artist"):
    return await PlaylistRepository(session).upsert_playlist(
        spotify_playlist_id=spotify_id,
        name=name,
        description="",
        cover_image_url="",
        spotify_url="",
        type=type_,
    )


class TestExtractArtistName:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("Best of Gunna", "Gunna"),
            ("Best of   Lil Baby  ", "Lil Baby"),
            ("TrapTally: Best of Future", "Future"),
            ("Best of ", None),
            ("best of gunna", None),
            ("Gunna Essentials", None),
        ],
    )
    def test_extract(self, name, expected):
        assert extract_artist_name(name) == expected


class TestArtistPlaylistAssociator:
    async def test_matches_case_insensitively(self, session_factory):
        async with session_factory() as session:
            artist = await ArtistRepository(session).upsert_artist("ar-1", "Gunna")
            playlist = await _add_playlist(session, "pl-1", "Best of GUNNA")
            await session.commit()

        result = await ArtistPlaylistAssociator(session_factory).associate_artist_playlists()

        assert result.associations_made == 1
        assert result.candidates == 1
        async with session_factory() as session:
            stored = await PlaylistRepository(session).get_by_spotify_id("pl-1")
            assert stored.id == playlist.id
            assert stored.associated_artist_id == artist.id

    @pytest.mark.parametrize("playlist_name", ["Best of ÉST Gee", "Best of ést gee"])
    async def test_matches_non_ascii_names(self, session_factory, playlist_name):
        async with session_factory() as session:
            artist = await ArtistRepository(session).upsert_artist("ar-est", "ÉST Gee")
            await _add_playlist(session, "pl-est", playlist_name)
            await session.commit()

        result = await ArtistPlaylistAssociator(session_factory).associate_artist_playlists()

        assert result.associations_made == 1
        async with session_factory() as session:
            stored = await PlaylistRepository(session).get_by_spotify_id("pl-est")
            assert stored.associated_artist_id == artist.id

    async def test_unmatched_and_unparseable_playlists_stay_unassociated(
        self, session_factory
    ):
        async with session_factory() as session:
            await ArtistRepository(session).upsert_artist("ar-1", "Gunna")
            await _add_playlist(session, "pl-1", "Best of Nobody")
            await _add_playlist(session, "pl-2", "Gunna Mix")
            await session.commit()

        result = await ArtistPlaylistAssociator(session_factory).associate_artist_playlists()

        assert result.associations_made == 0
        assert result.candidates == 2
        async with session_factory() as session:
            repo = PlaylistRepository(session)
            assert (await repo.get_by_spotify_id("pl-1")).associated_artist_id is None
            assert (await repo.get_by_spotify_id("pl-2")).associated_artist_id is None

    async def test_ambiguous_name_takes_first_match_and_warns(self, session_factory, caplog):
        async with session_factory() as session:
            artists = ArtistRepository(session)
            first = await artists.upsert_artist("ar-1", "Future")
            second = await artists.upsert_artist("ar-2", "Future")
            await _add_playlist(session, "pl-1", "Best of Future")
            await session.commit()
        expected = min((first, second), key=lambda a: (a.name, a.id))

        result = await ArtistPlaylistAssociator(session_factory).associate_artist_playlists()

        assert result.associations_made == 1
        assert "2 artists named 'Future'" in caplog.text
        async with session_factory() as session:
            stored = await PlaylistRepository(session).get_by_spotify_id("pl-1")
            assert stored.associated_artist_id == expected.id

    async def test_only_artist_type_playlists_are_candidates(self, session_factory):
        async with session_factory() as session:
            await ArtistRepository(session).upsert_artist("ar-1", "2023")
            await _add_playlist(session, "pl-y", "Best of 2023", type_="Yearly")
            await session.commit()

        result = await ArtistPlaylistAssociator(session_factory).associate_artist_playlists()

        assert result.candidates == 0
        assert result.associations_made == 0

    async def test_associated_playlists_are_not_revisited(self, session_factory):
        async with session_factory() as session:
            await ArtistRepository(session).upsert_artist("ar-1", "Gunna")
            await _add_playlist(session, "pl-1", "Best of Gunna")
            await session.commit()

        associator = ArtistPlaylistAssociator(session_factory)
        await associator.associate_artist_playlists()
        second = await associator.associate_artist_playlists()

        assert second.candidates == 0
        assert second.associations_made == 0
