from fastapi import APIRouter, Depends, HTTPException
from supabase import Client
from tutorhub.db.supabase import get_supabase
from tutorhub.core.dependencies import require_admin
from tutorhub.core.panels import load_panel
from tutorhub.schemas.profiles import AdminProfileUpdate, ProfileResponse
from tutorhub.schemas.sessions import SessionCreate, SessionResponse
from tutorhub.modules.profiles import service as profiles
from tutorhub.modules.sessions import service as sessions

router = APIRouter(tags=["Admin"])


@router.get("")
def admin_dashboard(
    admin: dict = Depends(require_admin),
    client: Client = Depends(get_supabase),
):
    """Admin home: the first 20 profiles."""
    return {"users": load_panel("users", profiles.list_profiles, client)}


@router.get("/live-classes")
def live_classes(
    admin: dict = Depends(require_admin),
    client: Client = Depends(get_supabase),
):
    """
    Every class currently live, with teacher and student names.
    """
    def load_live():
        rows = sessions.live_sessions(client)
        return {
            "sessions": rows,
            "empty_message": None if rows else sessions.NO_LIVE_MESSAGE,
        }

    return load_panel("live classes", load_live)


@router.post("/sessions", response_model=SessionResponse)
def schedule_session(
    session: SessionCreate,
    admin: dict = Depends(require_admin),
    client: Client = Depends(get_supabase),
):
    """Schedule a class between a teacher and a student. Admin only."""
    return SessionResponse(**sessions.create_session(client, session))


@router.put("/profiles/{user_id}", response_model=ProfileResponse)
def update_profile(
    user_id: str,
    profile: AdminProfileUpdate,
    admin: dict = Depends(require_admin),
    client: Client = Depends(get_supabase),
):
    """Update any user's profile, including role. Admin only."""
    if user_id == admin["id"] and profile.role not in (None, "admin"):
        raise HTTPException(status_code=400, detail="Admins cannot remove their own admin role")
    return ProfileResponse(**profiles.update_profile(client, user_id, profile))
