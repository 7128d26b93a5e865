from fastapi import APIRouter, HTTPException, Depends, Response
from supabase import Client
from typing import Optional
from tutorhub.db.supabase import get_supabase, error_message
from tutorhub.schemas.auth import LoginRequest, LoginResponse, SignupRequest, SignupResponse, UserResponse
from tutorhub.core.config import settings
from tutorhub.core.dependencies import get_principal, path_allowed_for_role, role_home
from tutorhub.core.security import PROFILE_COLUMNS, get_access_token, initials_from_name
from tutorhub.core.session_cache import cache_principal, invalidate_token
import logging

# Setup logging
logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


@router.post("/signup", response_model=SignupResponse)
def signup(request: SignupRequest, client: Client = Depends(get_supabase)):
    """
    Register a new student or teacher account.

    Creates the auth user and its profile row. The caller is sent to the
    login entry point for their role afterwards.
    """
    try:
        auth_response = client.auth.sign_up({
            "email": request.email,
            "password": request.password,
            "options": {"data": {"full_name": request.full_name}},
        })
    except Exception as e:
        logger.error(f"Signup error: {error_message(e)}")
        raise HTTPException(status_code=400, detail=f"Signup failed: {error_message(e)}")

    if not auth_response.user:
        raise HTTPException(status_code=400, detail="Signup failed. Please try again.")

    user_id = str(auth_response.user.id)
    if auth_response.session:
        client.postgrest.auth(auth_response.session.access_token)

    profile_data = {
        "id": user_id,
        "email": request.email,
        "full_name": request.full_name,
        "role": request.role,
    }
    if request.gender:
        profile_data["gender"] = request.gender

    try:
        client.table("profiles").upsert(profile_data).execute()
        logger.info(f"Profile created for {user_id} as {request.role}")
    except Exception as e:
        logger.error(f"Profile creation error: {error_message(e)}")
        raise HTTPException(status_code=400, detail=f"Profile creation failed: {error_message(e)}")

    return SignupResponse(user_id=user_id, role=request.role, redirect_to=f"/login?role={request.role}")


@router.post("/login", response_model=LoginResponse)
def login(request: LoginRequest, response: Response, client: Client = Depends(get_supabase)):
    """
    Login with email and password.

    Sets the access-token cookie and returns where to go next: the path
    that sent the caller to login when it belongs to their role, else their
    role's home view.
    """
    try:
        auth_response = client.auth.sign_in_with_password({
            "email": request.email,
            "password": request.password
        })
    except Exception as e:
        logger.info(f"Login rejected for {request.email}: {error_message(e)}")
        raise HTTPException(status_code=401, detail="Login failed. Please check your credentials.")

    if not auth_response.user or not auth_response.session:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    user_id = str(auth_response.user.id)
    access_token = auth_response.session.access_token
    client.postgrest.auth(access_token)

    profile = client.table("profiles").select(PROFILE_COLUMNS).eq("id", user_id).limit(1).execute()
    if not profile.data or not profile.data[0].get("role"):
        raise HTTPException(status_code=403, detail="User profile incomplete. Role information missing.")

    role = profile.data[0]["role"]
    cache_principal(access_token, {
        "id": user_id,
        "email": profile.data[0].get("email") or auth_response.user.email,
        "role": role,
        "full_name": profile.data[0].get("full_name"),
        "avatar_url": profile.data[0].get("avatar_url"),
        "gender": profile.data[0].get("gender"),
    })

    response.set_cookie(
        settings.ACCESS_TOKEN_COOKIE,
        access_token,
        httponly=True,
        samesite="lax",
        max_age=settings.SESSION_TTL_SECONDS,
    )

    redirect_to = request.next if path_allowed_for_role(request.next, role) else role_home(role)
    logger.info(f"User {user_id} logged in as {role}")

    return LoginResponse(
        user_id=user_id,
        role=role,
        access_token=access_token,
        refresh_token=auth_response.session.refresh_token,
        redirect_to=redirect_to,
    )


@router.post("/logout")
def logout(
    response: Response,
    client: Client = Depends(get_supabase),
    token: Optional[str] = Depends(get_access_token),
):
    if token:
        invalidate_token(token)
    try:
        client.auth.sign_out()
    except Exception as e:
        logger.warning(f"Sign out call failed: {error_message(e)}")
    response.delete_cookie(settings.ACCESS_TOKEN_COOKIE)
    return {"message": "Logged out", "redirect_to": "/login"}


@router.get("/me", response_model=UserResponse)
def get_current_user_profile(principal: dict = Depends(get_principal)):
    """Current authenticated user's profile."""
    return UserResponse(**principal, initials=initials_from_name(principal.get("full_name")))
