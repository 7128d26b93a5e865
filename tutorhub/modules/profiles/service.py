import logging
from fastapi import HTTPException
from tutorhub.core.security import PROFILE_COLUMNS
from tutorhub.core.session_cache import invalidate_user
from tutorhub.db.supabase import extract_data, error_message

logger = logging.getLogger(__name__)


def update_profile(client, user_id: str, changes) -> dict:
    """Apply the non-empty fields of `changes` to a profile row."""
    update_data = changes.model_dump(exclude_none=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="Nothing to update")

    try:
        result = client.table("profiles").update(update_data).eq("id", user_id).execute()
    except Exception as e:
        logger.error("Profile update error for %s: %s", user_id, e)
        raise HTTPException(status_code=400, detail=error_message(e))

    rows = extract_data(result)
    if not rows:
        raise HTTPException(status_code=404, detail="Profile not found")

    invalidate_user(user_id)
    return rows[0]


def list_profiles(client, limit: int = 20) -> list[dict]:
    result = client.table("profiles").select(PROFILE_COLUMNS).order("full_name").limit(limit).execute()
    return extract_data(result)
