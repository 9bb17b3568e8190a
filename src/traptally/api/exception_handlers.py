"""Maps domain exceptions to HTTP responses."""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from traptally.domain.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DomainException,
    EntityNotFoundException,
    ExternalServiceError,
    RateLimitExceededError,
    TokenRefreshException,
    ValidationError,
)

logger = logging.getLogger(__name__)

# exception type -> (HTTP status, log level). Starlette resolves handlers along the
# exception's MRO, so RateLimitExceededError gets 429 ahead of its ExternalServiceError parent.
_STATUS_MAP: dict[type[DomainException], tuple[int, int]] = {
    TokenRefreshException: (status.HTTP_401_UNAUTHORIZED, logging.WARNING),
    AuthenticationError: (status.HTTP_401_UNAUTHORIZED, logging.WARNING),
    EntityNotFoundException: (status.HTTP_404_NOT_FOUND, logging.INFO),
    ValidationError: (status.HTTP_422_UNPROCESSABLE_ENTITY, logging.WARNING),
    RateLimitExceededError: (status.HTTP_429_TOO_MANY_REQUESTS, logging.WARNING),
    ExternalServiceError: (status.HTTP_502_BAD_GATEWAY, logging.ERROR),
    ConfigurationError: (status.HTTP_503_SERVICE_UNAVAILABLE, logging.ERROR),
}


def _error_body(exc: DomainException) -> dict[str, Any]:
    body: dict[str, Any] = {"detail": exc.message}
    if isinstance(exc, TokenRefreshException):
        body["error_code"] = exc.error_code
    if isinstance(exc, TokenRefreshException | AuthenticationError):
        # The dashboard uses this flag to show the "connect Spotify again" prompt
        body["reauthorization_required"] = True
    return body


def _make_handler(status_code: int, level: int):
    async def handler(request: Request, exc: DomainException) -> JSONResponse:
        logger.log(
            level,
            "%s at %s: %s",
            type(exc).__name__,
            request.url.path,
            exc.message,
        )
        headers = None
        if isinstance(exc, RateLimitExceededError) and exc.retry_after:
            headers = {"Retry-After": str(exc.retry_after)}
        return JSONResponse(
            status_code=status_code, content=_error_body(exc), headers=headers
        )

    return handler


def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers for the domain exceptions the endpoints can raise."""
    for exc_type, (status_code, level) in _STATUS_MAP.items():
        app.add_exception_handler(exc_type, _make_handler(status_code, level))
