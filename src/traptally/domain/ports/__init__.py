"""Domain ports (interfaces) for external collaborators."""

from abc import ABC, abstractmethod
from typing import Any


class ISpotifyClient(ABC):
    """Port for the Spotify Web API operations the catalog engine needs.

    Every catalog call takes the access token explicitly. Implementations hold
    no credential state, so a refreshed token is simply passed on the next call.
    """

    @abstractmethod
    async def get_authorization_url(self, state: str, code_verifier: str) -> str:
        """
        Generate Spotify OAuth authorization URL.

        Args:
            state: State parameter for CSRF protection
            code_verifier: PKCE code verifier

        Returns:
            Authorization URL
        """
        pass

    @abstractmethod
    async def exchange_code(self, code: str, code_verifier: str) -> dict[str, Any]:
        """
        Exchange authorization code for access token.

        Returns:
            Token response with access_token, refresh_token, expires_in
        """
        pass

    @abstractmethod
    async def refresh_token(self, refresh_token: str) -> dict[str, Any]:
        """
        Refresh access token.

        Raises:
            TokenRefreshException: When Spotify rejects the refresh token
        """
        pass

    @abstractmethod
    async def get_playlist(self, playlist_id: str, access_token: str) -> dict[str, Any]:
        """
        Get playlist details with every track page merged into tracks.items.

        Raises:
            EntityNotFoundException: Playlist does not exist (404)
            AuthenticationError: Access token rejected (401)
            RateLimitExceededError: Still rate limited after retries
            ExternalServiceError: Any other failure
        """
        pass

    @abstractmethod
    async def search_artist(
        self, query: str, access_token: str, limit: int = 20
    ) -> list[dict[str, Any]]:
        """Search artists by name; returns ranked artist objects."""
        pass

    @abstractmethod
    async def get_several_artists(
        self, artist_ids: list[str], access_token: str
    ) -> list[dict[str, Any]]:
        """Fetch up to 50 artists in one call."""
        pass

    @abstractmethod
    async def get_tracks(
        self, track_ids: list[str], access_token: str
    ) -> list[dict[str, Any]]:
        """Fetch up to 50 tracks in one call."""
        pass


__all__ = ["ISpotifyClient"]
