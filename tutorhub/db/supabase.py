import logging
from typing import Optional
from fastapi import Depends, WebSocket
from supabase import create_client, acreate_client, Client, AsyncClient
from postgrest.exceptions import APIError
from tutorhub.core.config import settings
from tutorhub.core.security import get_access_token, token_from_connection

logger = logging.getLogger(__name__)


def _require_project_settings() -> None:
    if not settings.SUPABASE_URL or not settings.SUPABASE_ANON_KEY:
        raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")


def create_supabase_client(access_token: Optional[str] = None) -> Client:
    """
    Create a Supabase client scoped to one request.

    The anon key is used so row-level security applies; when the caller
    presented an access token, PostgREST queries run as that user.

    Raises:
        RuntimeError: If the project URL or key is not configured
    """
    _require_project_settings()
    client: Client = create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
    if access_token:
        client.postgrest.auth(access_token)
    return client


def get_supabase(access_token: Optional[str] = Depends(get_access_token)) -> Client:
    """Dependency returning a request-scoped Supabase client."""
    return create_supabase_client(access_token)


def get_ws_supabase(websocket: WebSocket) -> Client:
    """Dependency returning a Supabase client for a WebSocket connection."""
    return create_supabase_client(token_from_connection(websocket))


async def get_async_supabase() -> AsyncClient:
    """Dependency returning an async client, used for realtime channels."""
    _require_project_settings()
    client: AsyncClient = await acreate_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
    logger.debug("Supabase async client created")
    return client


def extract_data(resp):
    """Return the row list from a query response, or an empty list."""
    if resp is None:
        return []
    data = getattr(resp, "data", None)
    if data is None and isinstance(resp, dict):
        data = resp.get("data")
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    return data


def error_message(exc: Exception) -> str:
    """Human-readable text of a backend error, verbatim where available."""
    if isinstance(exc, APIError) and exc.message:
        return exc.message
    return str(exc)
