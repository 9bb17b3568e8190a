"""SQLAlchemy ORM models for the TrapTally catalog."""

import uuid
from datetime import UTC, datetime, timedelta

import sqlalchemy as sa
from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me - SQLite drops tzinfo! Datetimes come back naive, so attach UTC before
# comparing with utc_now() or you get "can't compare offset-naive and offset-aware".
def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )


# Listen up, artists are keyed on spotify_artist_id. name is NOT unique - two different
# artists can share a display name, and that's exactly the ambiguity the associator logs.
# The three count columns belong to the feature-count aggregator; upserts never touch them.
class ArtistModel(TimestampMixin, Base):
    """Credited artist."""

    __tablename__ = "artists"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    spotify_artist_id: Mapped[str | None] = mapped_column(
        String(64), unique=True, nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    spotify_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    profile_image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    monthly_feature_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    yearly_feature_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    best_of_playlist_song_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )

    song_links: Mapped[list["SongArtistModel"]] = relationship(
        back_populates="artist", cascade="all, delete-orphan"
    )


class SongModel(TimestampMixin, Base):
    """Track as it appears in curated playlists."""

    __tablename__ = "songs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    spotify_track_id: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False
    )
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    cover_image_url: Mapped[str] = mapped_column(String(512), nullable=False)
    spotify_url: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    release_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    release_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # Spotify album id, filled by the sync or by the album backfill
    album_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    album_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    album_url: Mapped[str | None] = mapped_column(String(512), nullable=True)

    artist_links: Mapped[list["SongArtistModel"]] = relationship(
        back_populates="song", cascade="all, delete-orphan"
    )
    playlist_links: Mapped[list["PlaylistSongModel"]] = relationship(
        back_populates="song", cascade="all, delete-orphan"
    )


# Hey future me - type holds "Monthly" / "Yearly" / "Artist" as plain strings (see
# PlaylistType). associated_artist_id is written by the associator ONLY, the playlist
# upsert never sets it, so re-syncing keeps an association once it's made.
class PlaylistModel(TimestampMixin, Base):
    """Curated playlist mirrored from Spotify."""

    __tablename__ = "playlists"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    spotify_playlist_id: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    cover_image_url: Mapped[str] = mapped_column(String(512), nullable=False)
    spotify_url: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    type: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    associated_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    associated_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    associated_artist_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("artists.id", ondelete="SET NULL"), nullable=True
    )

    associated_artist: Mapped[ArtistModel | None] = relationship()
    song_links: Mapped[list["PlaylistSongModel"]] = relationship(
        back_populates="playlist",
        cascade="all, delete-orphan",
        order_by="PlaylistSongModel.order_in_playlist",
    )

    __table_args__ = (
        Index("ix_playlists_type_year_month", "type", "associated_year", "associated_month"),
    )


class PlaylistSongModel(Base):
    """Membership of a song in a playlist, with its position."""

    __tablename__ = "playlist_songs"

    playlist_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("playlists.id", ondelete="CASCADE"), primary_key=True
    )
    song_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("songs.id", ondelete="CASCADE"), primary_key=True
    )
    order_in_playlist: Mapped[int] = mapped_column(Integer, nullable=False)

    playlist: Mapped[PlaylistModel] = relationship(back_populates="song_links")
    song: Mapped[SongModel] = relationship(back_populates="playlist_links")


class SongArtistModel(Base):
    """Credit of an artist on a song."""

    __tablename__ = "song_artists"

    song_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("songs.id", ondelete="CASCADE"), primary_key=True
    )
    artist_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("artists.id", ondelete="CASCADE"), primary_key=True
    )

    song: Mapped[SongModel] = relationship(back_populates="artist_links")
    artist: Mapped[ArtistModel] = relationship(back_populates="song_links")

    __table_args__ = (Index("ix_song_artists_artist", "artist_id"),)


# Hey future me - ONE row system-wide, keyed by the fixed curator id. It's created by the
# first authorization, updated in place on every refresh, and never deleted. A failed
# refresh flips is_valid to False and records last_error, the row stays for diagnosis.
class CuratorTokenModel(Base):
    """Stored OAuth credential of the curator account."""

    __tablename__ = "curator_tokens"

    curator_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False
    )
    scope: Mapped[str | None] = mapped_column(Text, nullable=True)
    token_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    is_valid: Mapped[bool] = mapped_column(default=True, nullable=False)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_error_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )
    last_refreshed_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    def is_expired(self) -> bool:
        """Check if the access token is past its expiry."""
        return utc_now() >= ensure_utc_aware(self.expires_at)

    def expires_soon(self, minutes: int = 10) -> bool:
        """Check if the access token expires within the given minutes."""
        threshold = utc_now() + timedelta(minutes=minutes)
        return ensure_utc_aware(self.expires_at) <= threshold
