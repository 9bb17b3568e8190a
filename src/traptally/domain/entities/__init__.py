"""Domain entities and value types for the catalog sync engine."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from traptally.domain.exceptions import ValidationError


# Hey future me - these string values are what lands in the playlists.type column!
# The browsing UI filters on them ("Monthly", "Yearly", "Artist"), so don't lowercase them.
class PlaylistType(str, Enum):
    """Local classification of a curated playlist."""

    MONTHLY = "Monthly"
    YEARLY = "Yearly"
    ARTIST = "Artist"


@dataclass(frozen=True)
class CuratedPlaylistConfig:
    """One entry of the hand-maintained curated playlist list.

    name_override replaces the Spotify playlist name when stored. For Artist
    playlists the stored name is what the associator parses later, so keep the
    "Best of <Artist>" form there.
    """

    spotify_playlist_id: str
    type: PlaylistType
    name_override: str | None = None
    associated_year: int | None = None
    associated_month: int | None = None

    def __post_init__(self) -> None:
        """Validate year/month rules per playlist type."""
        if not self.spotify_playlist_id:
            raise ValidationError("spotify_playlist_id cannot be empty")
        if self.type is PlaylistType.MONTHLY and (
            self.associated_year is None or self.associated_month is None
        ):
            raise ValidationError(
                f"Monthly playlist {self.spotify_playlist_id} needs year and month"
            )
        if self.type is PlaylistType.YEARLY and self.associated_year is None:
            raise ValidationError(
                f"Yearly playlist {self.spotify_playlist_id} needs a year"
            )
        if self.associated_month is not None and not 1 <= self.associated_month <= 12:
            raise ValidationError(
                f"Invalid month {self.associated_month} for {self.spotify_playlist_id}"
            )


class EntryStatus(str, Enum):
    """Lifecycle of one curated entry within a sync run."""

    PENDING = "pending"
    FETCHING = "fetching"
    UPSERTING = "upserting"
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"


# Listen up, EntryResult is the unit of the sync fold! Every curated entry produces
# exactly one of these, success or not. The driver never lets an exception out of
# an entry - it turns it into status=FAILED with a reason instead.
@dataclass
class EntryResult:
    """Outcome of processing one curated playlist entry."""

    spotify_playlist_id: str
    status: EntryStatus = EntryStatus.PENDING
    playlist_name: str | None = None
    tracks_processed: int = 0
    artist_links: int = 0
    tracks_pruned: int = 0
    reason: str | None = None
    error_type: str | None = None

    @property
    def ok(self) -> bool:
        """True when the entry was fully upserted."""
        return self.status is EntryStatus.DONE


@dataclass
class AssociationResult:
    """Outcome of one associator pass."""

    associations_made: int = 0
    candidates: int = 0


@dataclass
class SyncSummary:
    """Aggregated result of a full sync run."""

    playlists_processed: int = 0
    tracks_processed: int = 0
    artist_links: int = 0
    playlists_skipped: int = 0
    playlists_failed: int = 0
    associations_made: int = 0
    artists_recounted: int = 0
    reauthorization_required: bool = False
    message: str = ""
    entries: list[EntryResult] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None

    @property
    def failures(self) -> list[EntryResult]:
        """Entries that failed during this run."""
        return [e for e in self.entries if e.status is EntryStatus.FAILED]

    def add(self, result: EntryResult) -> None:
        """Fold one entry result into the totals."""
        self.entries.append(result)
        if result.status is EntryStatus.DONE:
            self.playlists_processed += 1
        elif result.status is EntryStatus.SKIPPED:
            self.playlists_skipped += 1
        elif result.status is EntryStatus.FAILED:
            self.playlists_failed += 1
        self.tracks_processed += result.tracks_processed
        self.artist_links += result.artist_links

    def to_dict(self) -> dict[str, object]:
        """Serialize for API responses."""
        return {
            "playlists_processed": self.playlists_processed,
            "tracks_processed": self.tracks_processed,
            "artist_links": self.artist_links,
            "playlists_skipped": self.playlists_skipped,
            "playlists_failed": self.playlists_failed,
            "associations_made": self.associations_made,
            "artists_recounted": self.artists_recounted,
            "reauthorization_required": self.reauthorization_required,
            "message": self.message,
            "failures": [
                {
                    "spotify_playlist_id": e.spotify_playlist_id,
                    "reason": e.reason,
                    "error_type": e.error_type,
                }
                for e in self.failures
            ],
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


__all__ = [
    "AssociationResult",
    "CuratedPlaylistConfig",
    "EntryResult",
    "EntryStatus",
    "PlaylistType",
    "SyncSummary",
]
