"""Curator authorization endpoints (Spotify OAuth PKCE)."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query

from traptally.api.dependencies import (
    get_auth_service,
    get_credential_manager,
    get_pending_auth,
)
from traptally.api.pending_auth import PendingAuthStore
from traptally.application.services import CredentialManager, SpotifyAuthService
from traptally.domain.exceptions import AuthenticationError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# Listen up - the PKCE verifier is kept in-process keyed by state for 10 minutes. A restart
# or a slow login loses it and the callback answers 422; just start the login again.
@router.get("/spotify/login")
async def spotify_login(
    auth_service: SpotifyAuthService = Depends(get_auth_service),
    pending_auth: PendingAuthStore = Depends(get_pending_auth),
) -> dict[str, str]:
    """Start the curator authorization; returns the Spotify URL to open."""
    result = await auth_service.generate_auth_url()
    pending_auth.add(result.state, result.code_verifier)
    return {"authorization_url": result.authorization_url, "state": result.state}


@router.get("/spotify/callback")
async def spotify_callback(
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
    error: str | None = Query(default=None),
    credential_manager: CredentialManager = Depends(get_credential_manager),
    pending_auth: PendingAuthStore = Depends(get_pending_auth),
) -> dict[str, Any]:
    """Store the curator credential after Spotify redirects back."""
    if error:
        raise AuthenticationError(f"Spotify authorization was denied: {error}")
    if not code or not state:
        raise ValidationError("Missing code or state in Spotify callback")

    code_verifier = pending_auth.pop(state)
    if code_verifier is None:
        raise ValidationError("Unknown or expired OAuth state, start the login again")

    result = await credential_manager.store_authorization(code, code_verifier)
    return {"message": "Spotify authorization stored.", "scope": result.scope}


@router.get("/status")
async def auth_status(
    credential_manager: CredentialManager = Depends(get_credential_manager),
) -> dict[str, Any]:
    """Status of the stored curator credential."""
    return await credential_manager.get_status()
