"""Tests for curated playlist config validation and the sync summary fold."""

import pytest

from traptally.domain.entities import (
    CuratedPlaylistConfig,
    EntryResult,
    EntryStatus,
    PlaylistType,
    SyncSummary,
)
from traptally.domain.exceptions import (
    ExternalServiceError,
    RateLimitExceededError,
    ReauthorizationRequired,
    TokenRefreshException,
    Transient,
    ValidationError,
)


class TestCuratedPlaylistConfig:
    """Config entries validate their year/month rules on construction."""

    def test_monthly_requires_year_and_month(self):
        with pytest.raises(ValidationError):
            CuratedPlaylistConfig("abc", PlaylistType.MONTHLY, associated_year=2024)

    def test_yearly_requires_year(self):
        with pytest.raises(ValidationError):
            CuratedPlaylistConfig("abc", PlaylistType.YEARLY)

    def test_month_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            CuratedPlaylistConfig(
                "abc", PlaylistType.MONTHLY, associated_year=2024, associated_month=13
            )

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            CuratedPlaylistConfig("", PlaylistType.ARTIST)

    def test_artist_needs_no_dates(self):
        config = CuratedPlaylistConfig(
            "abc", PlaylistType.ARTIST, name_override="Best of Gunna"
        )
        assert config.associated_year is None
        assert config.associated_month is None

    def test_playlist_type_values_are_stored_names(self):
        assert PlaylistType.MONTHLY.value == "Monthly"
        assert PlaylistType.YEARLY.value == "Yearly"
        assert PlaylistType.ARTIST.value == "Artist"


class TestSyncSummary:
    """The summary is a fold over entry results."""

    def test_add_counts_by_status(self):
        summary = SyncSummary()
        summary.add(
            EntryResult("a", status=EntryStatus.DONE, tracks_processed=10, artist_links=14)
        )
        summary.add(
            EntryResult("b", status=EntryStatus.DONE, tracks_processed=5, artist_links=5)
        )
        summary.add(EntryResult("c", status=EntryStatus.SKIPPED))
        summary.add(EntryResult("d", status=EntryStatus.FAILED, reason="boom"))

        assert summary.playlists_processed == 2
        assert summary.tracks_processed == 15
        assert summary.artist_links == 19
        assert summary.playlists_skipped == 1
        assert summary.playlists_failed == 1
        assert [e.spotify_playlist_id for e in summary.entries] == ["a", "b", "c", "d"]

    def test_pending_entries_are_not_counted(self):
        summary = SyncSummary()
        summary.add(EntryResult("never-started"))

        assert summary.playlists_processed == 0
        assert summary.playlists_failed == 0
        assert summary.playlists_skipped == 0
        assert len(summary.entries) == 1

    def test_to_dict_lists_failures(self):
        summary = SyncSummary(message="Sync completed.")
        summary.add(
            EntryResult(
                "x",
                status=EntryStatus.FAILED,
                reason="Spotify API error 503",
                error_type="ExternalServiceError",
            )
        )
        data = summary.to_dict()

        assert data["playlists_failed"] == 1
        assert data["failures"] == [
            {
                "spotify_playlist_id": "x",
                "reason": "Spotify API error 503",
                "error_type": "ExternalServiceError",
            }
        ]
        assert data["finished_at"] is None
        assert isinstance(data["started_at"], str)

    def test_entry_ok_only_for_done(self):
        assert EntryResult("a", status=EntryStatus.DONE).ok
        assert not EntryResult("a", status=EntryStatus.SKIPPED).ok


class TestExceptionAliases:
    """Failure-class aliases point at the real exception types."""

    def test_aliases(self):
        assert ReauthorizationRequired is TokenRefreshException
        assert Transient is ExternalServiceError

    def test_rate_limit_is_transient(self):
        error = RateLimitExceededError("slow down", retry_after=7)
        assert isinstance(error, ExternalServiceError)
        assert error.status_code == 429
        assert error.retry_after == 7

    def test_requires_reauth(self):
        assert TokenRefreshException(error_code="invalid_grant").requires_reauth
        assert not TokenRefreshException(error_code="server_error").requires_reauth
