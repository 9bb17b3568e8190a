"""Spotify OAuth service for the curator account.

Wraps the token endpoint calls of the Spotify client behind typed results.
The service stores nothing: CredentialManager persists what comes back.

OAuth flow:
1. generate_auth_url() -> URL + state + PKCE verifier
2. Curator visits the URL and grants access
3. exchange_code() -> tokens from the callback code
4. refresh_token() -> new access token when Spotify answers 401
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Any

from traptally.domain.exceptions import ValidationError
from traptally.domain.ports import ISpotifyClient
from traptally.infrastructure.integrations.spotify_client import SpotifyClient

logger = logging.getLogger(__name__)


@dataclass
class AuthUrlResult:
    """Authorization URL plus the secrets needed for the callback."""

    authorization_url: str
    state: str
    code_verifier: str


@dataclass
class TokenResult:
    """Token endpoint response.

    refresh_token is None when Spotify did not reissue one on refresh; the
    stored one stays in use then.
    """

    access_token: str
    refresh_token: str | None
    expires_in: int
    token_type: str
    scope: str | None


def _to_token_result(token_data: dict[str, Any]) -> TokenResult:
    access_token = token_data.get("access_token")
    if not access_token:
        raise ValidationError("Spotify token response has no access_token")
    return TokenResult(
        access_token=access_token,
        refresh_token=token_data.get("refresh_token"),
        expires_in=int(token_data.get("expires_in", 3600)),
        token_type=token_data.get("token_type", "Bearer"),
        scope=token_data.get("scope"),
    )


class SpotifyAuthService:
    """Typed wrapper over the OAuth half of the Spotify client."""

    def __init__(self, spotify_client: ISpotifyClient) -> None:
        self._client = spotify_client

    async def generate_auth_url(self, state: str | None = None) -> AuthUrlResult:
        """Build the authorization URL with a fresh PKCE verifier.

        Raises:
            ConfigurationError: Client id or redirect URI missing
        """
        if state is None:
            state = secrets.token_urlsafe(32)
        code_verifier = SpotifyClient.generate_code_verifier()

        authorization_url = await self._client.get_authorization_url(
            state, code_verifier
        )
        logger.debug("Generated auth URL with state=%s...", state[:8])

        return AuthUrlResult(
            authorization_url=authorization_url,
            state=state,
            code_verifier=code_verifier,
        )

    async def exchange_code(self, code: str, code_verifier: str) -> TokenResult:
        """Exchange the callback code; the verifier must match the auth URL's."""
        token_data = await self._client.exchange_code(code, code_verifier)
        logger.info("Exchanged authorization code for curator tokens")
        return _to_token_result(token_data)

    async def refresh_token(self, refresh_token: str) -> TokenResult:
        """Get a new access token.

        Raises:
            TokenRefreshException: Spotify rejected the refresh token
            ExternalServiceError: Token endpoint unreachable or failing
        """
        token_data = await self._client.refresh_token(refresh_token)
        logger.debug("Refreshed curator access token")
        return _to_token_result(token_data)
