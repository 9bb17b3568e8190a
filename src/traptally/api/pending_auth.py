"""In-process store of PKCE verifiers for curator logins waiting on their callback."""

import logging
import time
from collections import OrderedDict

logger = logging.getLogger(__name__)

PENDING_AUTH_TTL_SECONDS = 600.0
PENDING_AUTH_MAX_ENTRIES = 100


# Hey future me - logins that never come back from Spotify would pile up forever, so
# every add() sweeps entries older than the TTL and the oldest one goes when the store
# is full. pop() treats an expired entry like an unknown state.
class PendingAuthStore:
    """state -> code_verifier, with expiry."""

    def __init__(
        self,
        ttl_seconds: float = PENDING_AUTH_TTL_SECONDS,
        max_entries: int = PENDING_AUTH_MAX_ENTRIES,
    ) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._entries: OrderedDict[str, tuple[str, float]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, state: object) -> bool:
        return state in self._entries

    def add(self, state: str, code_verifier: str) -> None:
        self.cleanup_expired()
        while len(self._entries) >= self._max_entries:
            dropped, _ = self._entries.popitem(last=False)
            logger.warning("Too many pending Spotify logins, dropping state %s", dropped)
        self._entries[state] = (code_verifier, time.monotonic())

    def pop(self, state: str) -> str | None:
        """Verifier for state, or None when unknown or expired. Single use."""
        entry = self._entries.pop(state, None)
        if entry is None:
            return None
        code_verifier, created = entry
        if time.monotonic() - created > self._ttl:
            return None
        return code_verifier

    def cleanup_expired(self) -> int:
        """Drop expired entries; returns how many went."""
        cutoff = time.monotonic() - self._ttl
        expired = [s for s, (_, created) in self._entries.items() if created < cutoff]
        for state in expired:
            del self._entries[state]
        if expired:
            logger.debug("Dropped %d expired pending Spotify logins", len(expired))
        return len(expired)
