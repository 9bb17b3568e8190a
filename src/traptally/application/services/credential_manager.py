"""Curator credential lifecycle: hand out tokens, refresh them, store new ones."""

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from traptally.application.services.spotify_auth_service import (
    SpotifyAuthService,
    TokenResult,
)
from traptally.config.curated_playlists import CURATOR_ID
from traptally.domain.exceptions import AuthenticationError, TokenRefreshException
from traptally.infrastructure.persistence.models import ensure_utc_aware
from traptally.infrastructure.persistence.repositories import CuratorTokenRepository

logger = logging.getLogger(__name__)


class CredentialManager:
    """Owns the one stored curator credential.

    Hey future me - refresh is REACTIVE. get_valid_access_token() does not look at
    expires_at, it hands out whatever is stored; the sync driver calls refresh()
    when Spotify answers 401. The stored expires_at is informational (status page).

    Refreshes are single-flight: with concurrent entries several of them can hit a
    401 with the same expired token. The first one refreshes, the others wait on the
    lock and then reuse the new token instead of refreshing again.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        auth_service: SpotifyAuthService,
        curator_id: str = CURATOR_ID,
    ) -> None:
        self._session_factory = session_factory
        self._auth_service = auth_service
        self._curator_id = curator_id
        self._refresh_lock = asyncio.Lock()

    def _repo(self, session: AsyncSession) -> CuratorTokenRepository:
        return CuratorTokenRepository(session, self._curator_id)

    async def get_valid_access_token(self) -> str:
        """Return the stored access token.

        Raises:
            AuthenticationError: No credential yet, or it was marked invalid
        """
        async with self._session_factory() as session:
            token = await self._repo(session).get_active_token()
        if token is None:
            raise AuthenticationError(
                "Curator Spotify account not yet authorized (or authorization revoked)"
            )
        return token.access_token

    async def refresh(self, stale_access_token: str | None = None) -> str:
        """Refresh the access token through the token endpoint.

        Args:
            stale_access_token: The token the caller saw rejected. If the stored
                token already differs from it once we hold the lock, another
                caller refreshed in the meantime and that token is returned.

        Returns:
            The new access token

        Raises:
            TokenRefreshException: Refresh failed; the credential is marked invalid
        """
        async with self._refresh_lock:
            async with self._session_factory() as session:
                current = await self._repo(session).get_token_status()

            if current is None:
                raise TokenRefreshException(
                    message="No stored Spotify credential to refresh. "
                    "Please authorize the curator account.",
                    error_code="no_refresh_token",
                )

            if not current.is_valid:
                # a concurrent refresh already failed, don't hammer the token endpoint
                raise TokenRefreshException(
                    message=f"Spotify credential is invalid: {current.last_error}. "
                    "Please re-authenticate with Spotify.",
                    error_code="invalid_grant",
                )

            if (
                stale_access_token is not None
                and current.access_token != stale_access_token
            ):
                logger.debug("Access token already refreshed by a concurrent caller")
                return current.access_token

            try:
                result = await self._auth_service.refresh_token(current.refresh_token)
            except Exception as e:
                # any refresh failure means the credential can't be trusted anymore
                message = getattr(e, "message", None) or str(e) or e.__class__.__name__
                await self._mark_invalid(message)
                logger.error("Spotify token refresh failed: %s", message)
                if isinstance(e, TokenRefreshException):
                    raise
                raise TokenRefreshException(
                    message=f"Token refresh failed: {message}. "
                    "Please re-authenticate with Spotify.",
                    error_code="refresh_failed",
                ) from e

            async with self._session_factory() as session:
                await self._repo(session).update_after_refresh(
                    access_token=result.access_token,
                    expires_at=_expires_at(result.expires_in),
                    refresh_token=result.refresh_token,
                    scope=result.scope,
                    token_type=result.token_type,
                )
                await session.commit()

            logger.info(
                "Refreshed curator access token (refresh token %s)",
                "rotated" if result.refresh_token else "kept",
            )
            return result.access_token

    async def _mark_invalid(self, message: str) -> None:
        async with self._session_factory() as session:
            await self._repo(session).mark_invalid(message)
            await session.commit()

    async def store_authorization(self, code: str, code_verifier: str) -> TokenResult:
        """Exchange an authorization code and persist the credential.

        Raises:
            AuthenticationError: Spotify rejected the code or issued no refresh token
        """
        result = await self._auth_service.exchange_code(code, code_verifier)
        if not result.refresh_token:
            raise AuthenticationError("Spotify issued no refresh token for the curator")

        async with self._session_factory() as session:
            await self._repo(session).upsert_token(
                access_token=result.access_token,
                refresh_token=result.refresh_token,
                expires_at=_expires_at(result.expires_in),
                scope=result.scope,
                token_type=result.token_type,
            )
            await session.commit()

        logger.info("Stored curator Spotify authorization")
        return result

    async def get_status(self) -> dict[str, Any]:
        """Credential status for operators (never includes the tokens)."""
        async with self._session_factory() as session:
            token = await self._repo(session).get_token_status()

        if token is None:
            return {
                "authorized": False,
                "valid": False,
                "expires_at": None,
                "expired": None,
                "last_error": None,
                "last_refreshed_at": None,
            }
        return {
            "authorized": True,
            "valid": token.is_valid,
            "expires_at": ensure_utc_aware(token.expires_at).isoformat(),
            "expired": token.is_expired(),
            "last_error": token.last_error,
            "last_refreshed_at": (
                ensure_utc_aware(token.last_refreshed_at).isoformat()
                if token.last_refreshed_at
                else None
            ),
        }


def _expires_at(expires_in: int) -> datetime:
    return datetime.now(UTC) + timedelta(seconds=expires_in)
