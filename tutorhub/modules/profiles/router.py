from fastapi import APIRouter, Depends
from supabase import Client
from tutorhub.db.supabase import get_supabase
from tutorhub.schemas.profiles import ProfileUpdate, ProfileResponse
from tutorhub.core.dependencies import get_principal
from tutorhub.modules.profiles import service

router = APIRouter(tags=["Profiles"])


@router.get("/me", response_model=ProfileResponse)
def get_my_profile(principal: dict = Depends(get_principal)):
    return ProfileResponse(**principal)


@router.put("/me", response_model=ProfileResponse)
def update_my_profile(
    profile: ProfileUpdate,
    principal: dict = Depends(get_principal),
    client: Client = Depends(get_supabase),
):
    """
    Update current user's profile. Role cannot be changed here.
    """
    return ProfileResponse(**service.update_profile(client, principal["id"], profile))
