import logging
from typing import Optional
from urllib.parse import urlencode
from fastapi import Depends, HTTPException, Request, status
from supabase import Client
from tutorhub.core.security import get_access_token, resolve_principal
from tutorhub.db.supabase import get_supabase

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"

ROLE_HOME = {
    "student": "/student/dashboard",
    "teacher": "/teacher/dashboard",
    "admin": "/admin",
}


class AuthRedirect(Exception):
    """Raised by view dependencies; turned into a 303 redirect by main.py."""

    def __init__(self, location: str):
        super().__init__(location)
        self.location = location


def login_redirect_url(requested_path: str) -> str:
    return f"{LOGIN_PATH}?{urlencode({'next': requested_path})}"


def role_home(role: str) -> str:
    return ROLE_HOME.get(role, LOGIN_PATH)


def path_allowed_for_role(path: Optional[str], role: str) -> bool:
    """Whether a role-scoped view path belongs to the given role."""
    if not path or not path.startswith("/"):
        return False
    prefix = "/" + role
    return path == prefix or path.startswith(prefix + "/")


def get_optional_principal(
    client: Client = Depends(get_supabase),
    token: Optional[str] = Depends(get_access_token),
) -> Optional[dict]:
    return resolve_principal(client, token)


def get_principal(principal: Optional[dict] = Depends(get_optional_principal)) -> dict:
    """Require an authenticated principal (API endpoints, 401 on failure)."""
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return principal


def require_role(required_role: str):
    """
    Dependency gating a role-scoped view.

    Unauthenticated callers are redirected to the login entry point with
    the requested path in `next`; callers with another role are sent to
    their own home view.
    """
    def role_checker(
        request: Request,
        principal: Optional[dict] = Depends(get_optional_principal),
    ) -> dict:
        if principal is None:
            raise AuthRedirect(login_redirect_url(request.url.path))
        if principal["role"] != required_role:
            logger.info(
                "Role %s hit %s view %s, redirecting home",
                principal["role"], required_role, request.url.path
            )
            raise AuthRedirect(role_home(principal["role"]))
        return principal
    return role_checker


require_student = require_role("student")
require_teacher = require_role("teacher")
require_admin = require_role("admin")


def require_api_role(*roles: str):
    """Like get_principal but restricted to the given roles (403 otherwise)."""
    def role_checker(principal: dict = Depends(get_principal)) -> dict:
        if principal["role"] not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {' or '.join(roles)}"
            )
        return principal
    return role_checker
