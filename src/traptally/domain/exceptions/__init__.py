"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, we store message as an attribute so code can inspect it without parsing
    # str(exception). Don't raise this directly - use a specific subclass so callers can
    # catch precisely (the sync driver classifies entries by exception type!).
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when an entity is not found.

    The Spotify client raises this for 404s too: a curated playlist that was
    removed upstream is skipped, not treated as a run failure.
    """

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationError(DomainException):
    """Input or payload validation failed.

    Raised for malformed curated config and for Spotify payloads with an
    unexpected shape (e.g. missing tracks.items). The sync driver treats it as a
    transient, per-entry failure.

    HTTP Status: 422
    """

    pass


class ConfigurationError(DomainException):
    """Application misconfiguration.

    HTTP Status: 503

    Example:
        raise ConfigurationError("SPOTIFY_CLIENT_ID is not configured")
    """

    pass


class AuthenticationError(DomainException):
    """Not authenticated, or the access token was rejected.

    Raised when no curator credential exists yet, and by the Spotify client on
    a 401. The sync driver reacts with exactly one refresh.

    HTTP Status: 401
    """

    pass


class ExternalServiceError(DomainException):
    """External service returned an error or could not be reached.

    Covers 4xx/5xx other than 401/404, network errors and timeouts.

    HTTP Status: 502
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitExceededError(ExternalServiceError):
    """External service rate limit was exceeded even after retrying.

    HTTP Status: 429
    """

    def __init__(self, message: str, retry_after: int | None = None) -> None:
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class TokenRefreshException(DomainException):
    """Raised when token refresh fails and re-authentication is required.

    Hey future me - this is THE fatal error of a sync run! Spotify says no to our
    refresh token, so no further playlist can be fetched. Common causes:
    - Curator revoked app access in Spotify settings
    - App credentials changed
    - Refresh token was rotated and we lost the new one

    The driver stops processing, flags the summary, and the API surfaces
    "please re-authenticate". Don't swallow it anywhere else!
    """

    def __init__(
        self,
        message: str = "Token refresh failed. Please re-authenticate with Spotify.",
        error_code: str | None = None,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code  # e.g., "invalid_grant"
        self.http_status = http_status  # e.g., 400, 401

    @property
    def requires_reauth(self) -> bool:
        """Check if error requires curator re-authentication."""
        return self.error_code in ("invalid_grant", "no_refresh_token") or (
            self.http_status in (400, 401, 403)
        )


# =============================================================================
# Short aliases matching the sync failure classes
# =============================================================================

ReauthorizationRequired = TokenRefreshException
Unauthorized = AuthenticationError
NotFound = EntityNotFoundException
RateLimited = RateLimitExceededError
Transient = ExternalServiceError
ValidationGap = ValidationError


__all__ = [
    "DomainException",
    "EntityNotFoundException",
    "ValidationError",
    "ConfigurationError",
    "AuthenticationError",
    "ExternalServiceError",
    "RateLimitExceededError",
    "TokenRefreshException",
    # Aliases
    "ReauthorizationRequired",
    "Unauthorized",
    "NotFound",
    "RateLimited",
    "Transient",
    "ValidationGap",
]
