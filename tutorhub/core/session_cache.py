from threading import Lock
import time
from typing import Optional

from tutorhub.core.config import settings

# In-memory TTL cache of resolved principals keyed by access token.
# Saves an auth round-trip plus a profile read on every request.

_lock = Lock()
_principals = {}  # token -> (principal, expires_at)


def cache_principal(token: str, principal: dict, ttl: Optional[int] = None) -> None:
    """Remember the principal resolved for an access token."""
    if ttl is None:
        ttl = settings.SESSION_TTL_SECONDS
    expires_at = time.time() + ttl
    clear_expired()
    with _lock:
        _principals[token] = (dict(principal), expires_at)


def get_cached_principal(token: str) -> Optional[dict]:
    """Return the cached principal if present and not expired, else None."""
    now = time.time()
    with _lock:
        data = _principals.get(token)
        if not data:
            return None
        principal, expires_at = data
        if expires_at < now:
            # expired
            del _principals[token]
            return None
        return dict(principal)


def invalidate_token(token: str) -> None:
    with _lock:
        _principals.pop(token, None)


def invalidate_user(user_id: str) -> None:
    """Drop every cached entry for a user, e.g. after a role change."""
    with _lock:
        stale = [t for t, (p, _) in _principals.items() if p.get("id") == user_id]
        for t in stale:
            del _principals[t]


def clear() -> None:
    with _lock:
        _principals.clear()


def clear_expired() -> None:
    now = time.time()
    with _lock:
        expired = [t for t, (_, e) in _principals.items() if e < now]
        for t in expired:
            del _principals[t]


def size() -> int:
    with _lock:
        return len(_principals)
