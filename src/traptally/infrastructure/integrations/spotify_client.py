"""Spotify HTTP client with OAuth PKCE and failure classification."""

import base64
import hashlib
import logging
import secrets
from typing import Any
from urllib.parse import urlencode

import httpx

from traptally.config.settings import SpotifySettings
from traptally.domain.exceptions import (
    AuthenticationError,
    ConfigurationError,
    EntityNotFoundException,
    ExternalServiceError,
    RateLimitExceededError,
    TokenRefreshException,
    ValidationError,
)
from traptally.domain.ports import ISpotifyClient
from traptally.infrastructure.rate_limiter import RateLimiter, get_spotify_limiter

logger = logging.getLogger(__name__)

# Scopes the curator grants once; the sync only ever reads
CURATOR_SCOPES = (
    "playlist-read-private",
    "playlist-read-collaborative",
    "user-library-read",
)

# Hey future me - the fields filter keeps playlist payloads small. tracks.next is in
# there on purpose, without it we can't paginate past the first 100 tracks!
PLAYLIST_FIELDS = (
    "id,name,description,images,external_urls,owner.display_name,"
    "tracks.next,tracks.items(track(id,name,artists(id,name,external_urls),"
    "album(id,name,images,release_date,release_date_precision,album_type,"
    "total_tracks,external_urls),external_urls,duration_ms,popularity,"
    "preview_url,is_local))"
)

MAX_BATCH_SIZE = 50


class SpotifyClient(ISpotifyClient):
    """HTTP client for the Spotify Web API.

    Catalog calls take the access token as an argument and never store it.
    Errors come out as domain exceptions only, so callers never see httpx
    errors:

    - 404 -> EntityNotFoundException
    - 401 -> AuthenticationError
    - 429 after max_retries -> RateLimitExceededError
    - other 4xx/5xx, network errors, timeouts -> ExternalServiceError
    - unexpected payload shape -> ValidationError
    """

    AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
    TOKEN_URL = "https://accounts.spotify.com/api/token"  # nosec B105 - public endpoint URL
    API_BASE_URL = "https://api.spotify.com/v1"

    # Hey future me, we DON'T create the httpx client here. It gets lazy-loaded in
    # _get_client() so it binds to the running event loop. Tests pass a transport
    # (httpx.MockTransport) instead of patching httpx internals.
    def __init__(
        self,
        settings: SpotifySettings,
        transport: httpx.AsyncBaseTransport | None = None,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self.settings = settings
        self._transport = transport
        self._rate_limiter = rate_limiter
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.settings.request_timeout, transport=self._transport
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def rate_limiter(self) -> RateLimiter:
        if self._rate_limiter is None:
            self._rate_limiter = get_spotify_limiter()
        return self._rate_limiter

    # Listen up, this is the ONLY place catalog requests are sent. Rate limiting,
    # 429 retries and error classification all happen here, so every public method
    # stays a thin wrapper.
    async def _api_request(
        self,
        method: str,
        url: str,
        access_token: str,
        params: dict[str, Any] | None = None,
        entity_type: str = "Resource",
        entity_id: str | None = None,
    ) -> dict[str, Any]:
        """Send a rate-limited API request and return the JSON body.

        Args:
            method: HTTP method
            url: Full URL to request
            access_token: OAuth access token
            params: Query parameters
            entity_type: Used in the NotFound message
            entity_id: Used in the NotFound message

        Returns:
            Parsed JSON object
        """
        client = await self._get_client()
        headers = {"Authorization": f"Bearer {access_token}"}
        max_retries = self.settings.max_retries

        for attempt in range(max_retries + 1):
            await self.rate_limiter.acquire()
            try:
                response = await client.request(
                    method=method, url=url, params=params, headers=headers
                )
            except httpx.TimeoutException as e:
                raise ExternalServiceError(f"Spotify request timed out: {url}") from e
            except httpx.HTTPError as e:
                raise ExternalServiceError(
                    f"Spotify request failed: {url}: {e}"
                ) from e

            if response.status_code == 429:
                retry_after = _parse_retry_after(response)
                if attempt >= max_retries:
                    message = (
                        f"Spotify API rate limited (429) after {max_retries} retries. "
                        f"URL: {url}. Retry-After: {retry_after or 'not provided'} seconds."
                    )
                    logger.error(message)
                    raise RateLimitExceededError(message, retry_after=retry_after)

                wait_time = await self.rate_limiter.back_off(retry_after)
                logger.warning(
                    "Spotify 429 (attempt %d/%d): waited %.1fs, retrying %s",
                    attempt + 1,
                    max_retries,
                    wait_time,
                    url,
                )
                continue

            self.rate_limiter.record_success()
            self._raise_for_status(response, entity_type, entity_id or url)
            try:
                body = response.json()
            except ValueError as e:
                raise ValidationError(f"Spotify returned non-JSON body for {url}") from e
            if not isinstance(body, dict):
                raise ValidationError(f"Spotify returned unexpected body for {url}")
            return body

        # unreachable, the loop either returns or raises
        raise RateLimitExceededError(f"Spotify API rate limited: {url}")

    @staticmethod
    def _raise_for_status(
        response: httpx.Response, entity_type: str, entity_id: str
    ) -> None:
        """Map an HTTP error status to a domain exception."""
        status = response.status_code
        if status < 400:
            return
        if status == 404:
            raise EntityNotFoundException(entity_type, entity_id)
        if status == 401:
            raise AuthenticationError(
                f"Spotify rejected the access token for {entity_type} {entity_id}"
            )
        raise ExternalServiceError(
            f"Spotify API error {status} for {entity_type} {entity_id}: "
            f"{response.text[:200]}",
            status_code=status,
        )

    # Yo future me, PKCE: random 32-byte verifier, "=" padding stripped. Never log it!
    @staticmethod
    def generate_code_verifier() -> str:
        """Generate a PKCE code verifier."""
        return (
            base64.urlsafe_b64encode(secrets.token_bytes(32))
            .decode("utf-8")
            .rstrip("=")
        )

    @staticmethod
    def generate_code_challenge(code_verifier: str) -> str:
        """SHA256 the verifier into a URL-safe PKCE challenge."""
        digest = hashlib.sha256(code_verifier.encode("utf-8")).digest()
        return base64.urlsafe_b64encode(digest).decode("utf-8").rstrip("=")

    async def get_authorization_url(self, state: str, code_verifier: str) -> str:
        """
        Generate Spotify OAuth authorization URL for the curator.

        Raises:
            ConfigurationError: If client_id or redirect_uri is not configured
        """
        if not self.settings.client_id.strip():
            raise ConfigurationError(
                "SPOTIFY_CLIENT_ID is not configured. "
                "Get credentials at https://developer.spotify.com/dashboard"
            )
        if not self.settings.redirect_uri.strip():
            raise ConfigurationError(
                "SPOTIFY_REDIRECT_URI is not configured. "
                "Set it to match the /api/auth/spotify/callback URL"
            )

        params = {
            "client_id": self.settings.client_id,
            "response_type": "code",
            "redirect_uri": self.settings.redirect_uri,
            "state": state,
            "code_challenge_method": "S256",
            "code_challenge": self.generate_code_challenge(code_verifier),
            "scope": " ".join(CURATOR_SCOPES),
        }
        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    def _token_auth(self) -> httpx.BasicAuth | None:
        # confidential client: Basic auth on the token endpoint when a secret exists
        if self.settings.client_secret:
            return httpx.BasicAuth(self.settings.client_id, self.settings.client_secret)
        return None

    async def _post_token(self, data: dict[str, str]) -> httpx.Response:
        client = await self._get_client()
        auth = self._token_auth()
        try:
            if auth is not None:
                return await client.post(self.TOKEN_URL, data=data, auth=auth)
            return await client.post(self.TOKEN_URL, data=data)
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Spotify token endpoint unreachable: {e}") from e

    # Hey future me, the code is single-use and expires after ~10 minutes. redirect_uri
    # MUST match the one in get_authorization_url() exactly or Spotify rejects it.
    async def exchange_code(self, code: str, code_verifier: str) -> dict[str, Any]:
        """
        Exchange authorization code for tokens.

        Raises:
            AuthenticationError: Spotify rejected the code
            ExternalServiceError: Token endpoint failed
        """
        response = await self._post_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.settings.redirect_uri,
                "client_id": self.settings.client_id,
                "code_verifier": code_verifier,
            }
        )
        if response.status_code in (400, 401, 403):
            raise AuthenticationError(
                f"Spotify rejected the authorization code: {_oauth_error(response)[1]}"
            )
        if response.status_code >= 400:
            raise ExternalServiceError(
                f"Spotify token endpoint error {response.status_code}",
                status_code=response.status_code,
            )
        return _token_body(response)

    # Spotify answers 400 {"error": "invalid_grant"} when the refresh token was revoked.
    # That one (and 401/403) means the curator has to log in again.
    async def refresh_token(self, refresh_token: str) -> dict[str, Any]:
        """
        Refresh the access token.

        Returns:
            Token response: access_token, token_type, expires_in, scope and
            refresh_token only if Spotify rotated it

        Raises:
            TokenRefreshException: Refresh token invalid or access denied
            ExternalServiceError: Any other token endpoint failure
        """
        response = await self._post_token(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.settings.client_id,
            }
        )

        if response.status_code == 400:
            error_code, description = _oauth_error(response)
            raise TokenRefreshException(
                message=f"Refresh token invalid: {description}. "
                "Please re-authenticate with Spotify.",
                error_code=error_code or "invalid_request",
                http_status=400,
            )
        if response.status_code in (401, 403):
            raise TokenRefreshException(
                message="Spotify access denied. Please re-authenticate with Spotify.",
                error_code="access_denied",
                http_status=response.status_code,
            )
        if response.status_code >= 400:
            raise ExternalServiceError(
                f"Spotify token endpoint error {response.status_code}",
                status_code=response.status_code,
            )
        return _token_body(response)

    # Hey future me - Spotify pages playlist tracks at 100. We follow tracks.next until
    # it's null and merge everything into tracks.items, so callers see ONE list in
    # playlist order. Big artist playlists have 300+ tracks, this matters!
    async def get_playlist(self, playlist_id: str, access_token: str) -> dict[str, Any]:
        """
        Get playlist metadata with all tracks.

        Raises:
            EntityNotFoundException: Playlist doesn't exist
            ValidationError: Payload has no tracks.items list
        """
        playlist = await self._api_request(
            method="GET",
            url=f"{self.API_BASE_URL}/playlists/{playlist_id}",
            access_token=access_token,
            params={"fields": PLAYLIST_FIELDS},
            entity_type="Playlist",
            entity_id=playlist_id,
        )

        tracks = playlist.get("tracks")
        if not isinstance(tracks, dict) or not isinstance(tracks.get("items"), list):
            raise ValidationError(
                f"Playlist {playlist_id} payload has no tracks.items list"
            )

        items: list[dict[str, Any]] = list(tracks["items"])
        next_url = tracks.get("next")
        while next_url:
            page = await self._api_request(
                method="GET",
                url=next_url,
                access_token=access_token,
                entity_type="Playlist",
                entity_id=playlist_id,
            )
            page_items = page.get("items")
            if not isinstance(page_items, list):
                raise ValidationError(
                    f"Playlist {playlist_id} track page has no items list"
                )
            items.extend(page_items)
            next_url = page.get("next")

        playlist["tracks"] = {"items": items, "next": None}
        logger.debug("Fetched playlist %s with %d items", playlist_id, len(items))
        return playlist

    async def search_artist(
        self, query: str, access_token: str, limit: int = 20
    ) -> list[dict[str, Any]]:
        """Search artists; returns the ranked artists.items list."""
        result = await self._api_request(
            method="GET",
            url=f"{self.API_BASE_URL}/search",
            access_token=access_token,
            params={"q": query, "type": "artist", "limit": limit},
            entity_type="Search",
            entity_id=query,
        )
        items = (result.get("artists") or {}).get("items") or []
        return [artist for artist in items if artist is not None]

    async def get_several_artists(
        self, artist_ids: list[str], access_token: str
    ) -> list[dict[str, Any]]:
        """Get up to 50 artists in one request; null entries dropped."""
        if not artist_ids:
            return []
        if len(artist_ids) > MAX_BATCH_SIZE:
            raise ValidationError(
                f"At most {MAX_BATCH_SIZE} artist ids per request, got {len(artist_ids)}"
            )
        result = await self._api_request(
            method="GET",
            url=f"{self.API_BASE_URL}/artists",
            access_token=access_token,
            params={"ids": ",".join(artist_ids)},
            entity_type="Artists",
            entity_id=",".join(artist_ids),
        )
        return [artist for artist in result.get("artists") or [] if artist is not None]

    async def get_tracks(
        self, track_ids: list[str], access_token: str
    ) -> list[dict[str, Any]]:
        """Get up to 50 tracks in one request; null entries dropped."""
        if not track_ids:
            return []
        if len(track_ids) > MAX_BATCH_SIZE:
            raise ValidationError(
                f"At most {MAX_BATCH_SIZE} track ids per request, got {len(track_ids)}"
            )
        result = await self._api_request(
            method="GET",
            url=f"{self.API_BASE_URL}/tracks",
            access_token=access_token,
            params={"ids": ",".join(track_ids)},
            entity_type="Tracks",
            entity_id=",".join(track_ids),
        )
        return [track for track in result.get("tracks") or [] if track is not None]

    async def __aenter__(self) -> "SpotifyClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


def _parse_retry_after(response: httpx.Response) -> int | None:
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _oauth_error(response: httpx.Response) -> tuple[str | None, str]:
    """Extract (error, error_description) from an OAuth error body."""
    try:
        data = response.json()
    except ValueError:
        return None, response.text[:200] or f"HTTP {response.status_code}"
    if not isinstance(data, dict):
        return None, f"HTTP {response.status_code}"
    return data.get("error"), data.get(
        "error_description", f"HTTP {response.status_code}"
    )


def _token_body(response: httpx.Response) -> dict[str, Any]:
    """Parse a successful token endpoint response."""
    try:
        data = response.json()
    except ValueError as e:
        raise ValidationError("Spotify token endpoint returned a non-JSON body") from e
    if not isinstance(data, dict):
        raise ValidationError("Spotify token endpoint returned an unexpected body")
    return data
