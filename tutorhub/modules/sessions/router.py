from fastapi import APIRouter, Depends, HTTPException
from supabase import Client
from tutorhub.db.supabase import get_supabase
from tutorhub.core.dependencies import get_principal
from tutorhub.schemas.sessions import SessionResponse, TransitionResponse
from tutorhub.modules.sessions import service
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Sessions"])


def _transition_response(client: Client, principal: dict, session_id: str, action: str) -> TransitionResponse:
    session, previous = service.transition(client, principal, session_id, action)
    return TransitionResponse(
        session=SessionResponse(**session),
        previous_status=previous,
        open_url=session.get("zoom_url") if action == "start" else None,
        prompt_assessment=action == "end",
    )


# -------------------------
# UPCOMING / HISTORY (OWN)
# -------------------------
@router.get("/upcoming", response_model=list[SessionResponse])
def get_upcoming(
    principal: dict = Depends(get_principal),
    client: Client = Depends(get_supabase),
):
    try:
        return [SessionResponse(**row) for row in service.upcoming_sessions(client, principal)]
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Upcoming sessions error: %s", e)
        raise HTTPException(status_code=502, detail=f"Could not load upcoming classes: {e}")


@router.get("/history", response_model=list[SessionResponse])
def get_history(
    principal: dict = Depends(get_principal),
    client: Client = Depends(get_supabase),
):
    try:
        return [SessionResponse(**row) for row in service.session_history(client, principal)]
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Session history error: %s", e)
        raise HTTPException(status_code=502, detail=f"Could not load class history: {e}")


# -------------------------
# LIFECYCLE TRANSITIONS
# -------------------------
@router.post("/{session_id}/start", response_model=TransitionResponse)
def start_session(
    session_id: str,
    principal: dict = Depends(get_principal),
    client: Client = Depends(get_supabase),
):
    """
    Start a scheduled class. Assigned teacher only.

    `open_url` carries the meeting link when the class has one.
    """
    return _transition_response(client, principal, session_id, "start")


@router.post("/{session_id}/end", response_model=TransitionResponse)
def end_session(
    session_id: str,
    principal: dict = Depends(get_principal),
    client: Client = Depends(get_supabase),
):
    """
    End a live class. Assigned teacher only.

    `prompt_assessment` tells the client to offer the assessment form.
    """
    return _transition_response(client, principal, session_id, "end")


@router.post("/{session_id}/cancel", response_model=TransitionResponse)
def cancel_session(
    session_id: str,
    principal: dict = Depends(get_principal),
    client: Client = Depends(get_supabase),
):
    return _transition_response(client, principal, session_id, "cancel")


@router.post("/{session_id}/no-show", response_model=TransitionResponse)
def mark_no_show(
    session_id: str,
    principal: dict = Depends(get_principal),
    client: Client = Depends(get_supabase),
):
    return _transition_response(client, principal, session_id, "no_show")
