"""Full catalog sync: curated playlists from Spotify into the local catalog.

Hey future me - this is the batch driver. One run looks like this:

1. Get the stored curator access token (no credential -> summary says
   "re-authorize", nothing else is fetched)
2. For every curated playlist, in config order:
   PENDING -> FETCHING -> UPSERTING -> DONE, or SKIPPED (404), or FAILED(reason)
3. Artist image enrichment, then the associator, then the aggregator. These
   run after ALL entries, also after a fatal stop, on whatever made it in.
4. Fold everything into a SyncSummary

Failure policy per entry:
- 404 -> SKIPPED, the playlist is gone upstream
- 401 -> refresh once. Refresh works -> entry FAILED for this run, next entries
  use the new token. Refresh rejected -> fatal, no further entries start
- 429 after retries / 5xx / network / odd payload -> FAILED, keep going

run_full_sync() never raises. Each entry writes in its own transaction, so a
failed entry leaves nothing half-written and earlier entries stay committed.
"""

import asyncio
import logging
from collections.abc import Sequence
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from traptally.application.services.artist_playlist_associator import (
    ArtistPlaylistAssociator,
)
from traptally.application.services.catalog_upsert_service import (
    CatalogUpsertService,
    first_image_url,
)
from traptally.application.services.credential_manager import CredentialManager
from traptally.application.services.feature_count_aggregator import (
    FeatureCountAggregator,
)
from traptally.config.curated_playlists import CURATED_PLAYLIST_CONFIGS
from traptally.config.settings import SyncSettings
from traptally.domain.entities import (
    CuratedPlaylistConfig,
    EntryResult,
    EntryStatus,
    SyncSummary,
)
from traptally.domain.exceptions import (
    AuthenticationError,
    EntityNotFoundException,
    ExternalServiceError,
    TokenRefreshException,
    ValidationError,
)
from traptally.domain.ports import ISpotifyClient
from traptally.infrastructure.observability.logging import (
    set_sync_playlist_id,
    set_sync_run_id,
)
from traptally.infrastructure.persistence.database import transactional_session
from traptally.infrastructure.persistence.repositories import ArtistRepository

logger = logging.getLogger(__name__)

REAUTH_MESSAGE = "Sync aborted: Spotify re-authorization required."
EMPTY_CONFIG_MESSAGE = "No curated playlist IDs configured. Sync aborted."
DEADLINE_REASON = "run deadline exceeded"
ARTIST_BATCH_SIZE = 50


def _summary_counts(summary: SyncSummary) -> str:
    return (
        f"Playlists processed: {summary.playlists_processed}. "
        f"Tracks iterated: {summary.tracks_processed}. "
        f"Artist link operations: {summary.artist_links}."
    )


class CatalogSyncService:
    """Reconciles the curated playlist list against the local catalog."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        spotify_client: ISpotifyClient,
        credential_manager: CredentialManager,
        settings: SyncSettings | None = None,
        curated_playlists: Sequence[CuratedPlaylistConfig] = CURATED_PLAYLIST_CONFIGS,
        upsert_service: CatalogUpsertService | None = None,
        associator: ArtistPlaylistAssociator | None = None,
        aggregator: FeatureCountAggregator | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._client = spotify_client
        self._credentials = credential_manager
        self._settings = settings or SyncSettings()
        self._curated_playlists = tuple(curated_playlists)
        self._upsert = upsert_service or CatalogUpsertService(
            prune_removed_tracks=self._settings.prune_removed_tracks
        )
        self._associator = associator or ArtistPlaylistAssociator(session_factory)
        self._aggregator = aggregator or FeatureCountAggregator(session_factory)

        # one run at a time; writes serialized even when fetches overlap
        self._run_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()

        # per-run state, reset in run_full_sync()
        self._access_token = ""
        self._abort = asyncio.Event()
        self._fatal: TokenRefreshException | None = None

    async def trigger_full_sync(self) -> SyncSummary:
        """Entry point for the HTTP trigger; same as run_full_sync()."""
        return await self.run_full_sync()

    async def run_full_sync(self) -> SyncSummary:
        """Run one full sync and return its summary. Never raises."""
        async with self._run_lock:
            sync_run_id = set_sync_run_id()
            summary = SyncSummary()
            logger.info(
                "Starting catalog sync of %d curated playlists (run %s)",
                len(self._curated_playlists),
                sync_run_id,
            )

            if not self._curated_playlists:
                summary.message = EMPTY_CONFIG_MESSAGE
                summary.finished_at = datetime.now(UTC)
                logger.warning(EMPTY_CONFIG_MESSAGE)
                return summary

            self._abort = asyncio.Event()
            self._fatal = None

            try:
                self._access_token = await self._credentials.get_valid_access_token()
            except AuthenticationError as e:
                logger.error("Cannot start sync: %s", e.message)
                summary.reauthorization_required = True
                summary.message = f"{REAUTH_MESSAGE} {e.message}"
            else:
                for result in await self._process_entries():
                    summary.add(result)

                # enrichment can still hit a rejected refresh token, so it runs before
                # the outcome message is decided
                if self._settings.enrich_artist_images and self._fatal is None:
                    try:
                        await self._enrich_artist_images()
                    except Exception:
                        logger.exception("Artist image enrichment failed")

                if self._fatal is not None:
                    summary.reauthorization_required = True
                    summary.message = f"{REAUTH_MESSAGE} {_summary_counts(summary)}"
                else:
                    summary.message = f"Sync completed. {_summary_counts(summary)}"

            await self._run_post_passes(summary)
            summary.finished_at = datetime.now(UTC)

            logger.info(
                "%s Skipped: %d. Failed: %d. Associations: %d.",
                summary.message,
                summary.playlists_skipped,
                summary.playlists_failed,
                summary.associations_made,
            )
            return summary

    async def _process_entries(self) -> list[EntryResult]:
        """Process all entries under the concurrency bound and run deadline.

        Results come back in config order regardless of completion order.
        """
        results = [
            EntryResult(spotify_playlist_id=c.spotify_playlist_id)
            for c in self._curated_playlists
        ]
        semaphore = asyncio.Semaphore(self._settings.max_concurrency)

        async def worker(index: int, config: CuratedPlaylistConfig) -> None:
            set_sync_playlist_id(config.spotify_playlist_id)
            async with semaphore:
                if self._abort.is_set():
                    return
                await self._sync_entry(config, results[index])

        try:
            async with asyncio.timeout(self._settings.run_timeout_seconds):
                async with asyncio.TaskGroup() as group:
                    for index, config in enumerate(self._curated_playlists):
                        group.create_task(worker(index, config))
        except TimeoutError:
            logger.error(
                "Sync run deadline of %.0fs exceeded", self._settings.run_timeout_seconds
            )
            for result in results:
                if result.status in (
                    EntryStatus.PENDING,
                    EntryStatus.FETCHING,
                    EntryStatus.UPSERTING,
                ):
                    result.status = EntryStatus.FAILED
                    result.reason = DEADLINE_REASON
                    result.error_type = ExternalServiceError.__name__
                    result.tracks_processed = 0
                    result.artist_links = 0

        if self._abort.is_set():
            not_started = sum(1 for r in results if r.status is EntryStatus.PENDING)
            if not_started:
                logger.warning(
                    "Re-authorization required, %d playlists were not processed",
                    not_started,
                )
        return results

    async def _sync_entry(self, config: CuratedPlaylistConfig, result: EntryResult) -> None:
        """Fetch and upsert one curated playlist; outcome goes into result."""
        playlist_id = config.spotify_playlist_id
        token = self._access_token
        result.status = EntryStatus.FETCHING

        try:
            try:
                payload = await self._client.get_playlist(playlist_id, token)
            except AuthenticationError:
                logger.warning(
                    "Access token rejected while fetching playlist %s, refreshing",
                    playlist_id,
                )
                self._access_token = await self._credentials.refresh(
                    stale_access_token=token
                )
                result.status = EntryStatus.FAILED
                result.reason = "access token expired; refreshed, retry on next run"
                result.error_type = AuthenticationError.__name__
                return

            result.status = EntryStatus.UPSERTING
            async with self._write_lock:
                async with transactional_session(self._session_factory) as session:
                    stats = await self._upsert.upsert_playlist_payload(
                        session, config, payload
                    )

            result.status = EntryStatus.DONE
            result.playlist_name = stats.playlist_name
            result.tracks_processed = stats.tracks_processed
            result.artist_links = stats.artist_links
            result.tracks_pruned = stats.tracks_pruned
            logger.info(
                "Synced playlist %s (%r): %d tracks",
                playlist_id,
                stats.playlist_name,
                stats.tracks_processed,
            )

        except EntityNotFoundException as e:
            result.status = EntryStatus.SKIPPED
            result.reason = e.message
            result.error_type = type(e).__name__
            logger.warning("Playlist %s not found on Spotify, skipping", playlist_id)

        except TokenRefreshException as e:
            result.status = EntryStatus.FAILED
            result.reason = e.message
            result.error_type = type(e).__name__
            if self._fatal is None:
                self._fatal = e
            self._abort.set()
            logger.error(
                "Token refresh rejected during playlist %s, stopping sync: %s",
                playlist_id,
                e.message,
            )

        except (ExternalServiceError, ValidationError) as e:
            operation = "fetch" if result.status is EntryStatus.FETCHING else "upsert"
            result.status = EntryStatus.FAILED
            result.reason = e.message
            result.error_type = type(e).__name__
            logger.error(
                "Failed to %s playlist %s: %s",
                operation,
                playlist_id,
                e.message,
            )

        except Exception as e:
            # unexpected (e.g. a database error): this entry fails, the run goes on
            result.status = EntryStatus.FAILED
            result.reason = str(e) or type(e).__name__
            result.error_type = type(e).__name__
            logger.exception("Unexpected error while syncing playlist %s", playlist_id)

    async def _enrich_artist_images(self) -> None:
        """Fill missing artist profile images in batches of 50.

        Only a rejected refresh token matters to the run: it is recorded as the
        run's fatal error. Anything else just stops the enrichment.
        """
        async with self._session_factory() as session:
            missing = await ArtistRepository(session).list_missing_profile_image()
            spotify_ids = [a.spotify_artist_id for a in missing if a.spotify_artist_id]

        if not spotify_ids:
            return

        updated = 0
        for start in range(0, len(spotify_ids), ARTIST_BATCH_SIZE):
            batch = spotify_ids[start : start + ARTIST_BATCH_SIZE]
            try:
                try:
                    artists = await self._client.get_several_artists(
                        batch, self._access_token
                    )
                except AuthenticationError:
                    self._access_token = await self._credentials.refresh(
                        stale_access_token=self._access_token
                    )
                    artists = await self._client.get_several_artists(
                        batch, self._access_token
                    )
            except TokenRefreshException as e:
                self._fatal = e
                logger.error("Token refresh rejected during artist image enrichment: %s", e)
                break
            except Exception as e:
                logger.warning("Artist image enrichment stopped: %s", e)
                break

            async with self._write_lock:
                async with transactional_session(self._session_factory) as session:
                    repo = ArtistRepository(session)
                    for artist in artists:
                        image_url = first_image_url(artist.get("images"), "")
                        if artist.get("id") and image_url:
                            if await repo.set_profile_image(artist["id"], image_url):
                                updated += 1

        logger.info("Artist image enrichment: %d of %d updated", updated, len(spotify_ids))

    async def _run_post_passes(self, summary: SyncSummary) -> None:
        try:
            association = await self._associator.associate_artist_playlists()
            summary.associations_made = association.associations_made
        except Exception:
            logger.exception("Artist-playlist association pass failed")

        try:
            summary.artists_recounted = (
                await self._aggregator.recompute_all_artist_feature_counts()
            )
        except Exception:
            logger.exception("Feature count recompute failed")
