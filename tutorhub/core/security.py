import logging
from typing import Optional
from fastapi import Request
from starlette.requests import HTTPConnection
from tutorhub.core.config import settings
from tutorhub.core.session_cache import cache_principal, get_cached_principal

logger = logging.getLogger(__name__)

ROLES = ("student", "teacher", "admin")

PROFILE_COLUMNS = "id, role, full_name, email, avatar_url, gender"


def token_from_connection(conn: HTTPConnection) -> Optional[str]:
    """
    Read the caller's access token.

    Looks at the Authorization bearer header first, then the access-token
    cookie set at login, then a `token` query parameter (browsers cannot
    set headers on WebSocket handshakes).
    """
    authorization = conn.headers.get("Authorization")
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
        if token:
            return token

    cookie_token = conn.cookies.get(settings.ACCESS_TOKEN_COOKIE)
    if cookie_token:
        return cookie_token

    return conn.query_params.get("token") or None


def get_access_token(request: Request) -> Optional[str]:
    return token_from_connection(request)


def initials_from_name(name: Optional[str], fallback: str = "?") -> str:
    parts = (name or "").split()
    initials = "".join(p[0].upper() for p in parts[:2])
    return initials or fallback


def profile_summary(profile: Optional[dict], fallback_name: str) -> dict:
    """Display fields for a profile, with initials for the avatar fallback."""
    profile = profile or {}
    name = profile.get("full_name") or fallback_name
    return {
        "id": profile.get("id"),
        "full_name": name,
        "avatar_url": profile.get("avatar_url"),
        "gender": profile.get("gender"),
        "initials": initials_from_name(name, fallback_name[:1].upper()),
    }


def resolve_principal(client, token: Optional[str]) -> Optional[dict]:
    """
    Resolve the authenticated principal behind an access token.

    Args:
        client: Supabase client
        token: Access token from the request, may be None

    Returns:
        dict with id, email, role, full_name, avatar_url and gender,
        or None when the caller is not authenticated
    """
    if not token:
        return None

    cached = get_cached_principal(token)
    if cached:
        return cached

    try:
        auth_response = client.auth.get_user(token)
    except Exception as e:
        logger.warning("Access token rejected: %s", e)
        return None

    user = getattr(auth_response, "user", None)
    if not user:
        return None

    user_id = str(user.id)

    try:
        profile_response = (
            client.table("profiles")
            .select(PROFILE_COLUMNS)
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
    except Exception:
        logger.exception("Profile lookup failed for user %s", user_id)
        return None

    if not profile_response.data:
        logger.warning("No profile row for authenticated user %s", user_id)
        return None

    profile = profile_response.data[0]

    if profile.get("role") not in ROLES:
        logger.warning("Profile %s has no usable role", user_id)
        return None

    principal = {
        "id": user_id,
        "email": profile.get("email") or getattr(user, "email", None),
        "role": profile["role"],
        "full_name": profile.get("full_name"),
        "avatar_url": profile.get("avatar_url"),
        "gender": profile.get("gender"),
    }
    cache_principal(token, principal)
    return principal
