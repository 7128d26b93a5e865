from fastapi import APIRouter, Depends
from supabase import Client
from tutorhub.db.supabase import get_supabase
from tutorhub.core.dependencies import require_student
from tutorhub.core.panels import load_panel
from tutorhub.core.security import profile_summary
from tutorhub.modules.sessions import service as sessions
from tutorhub.modules.assessments import service as assessments
from tutorhub.modules.messages import service as messages

router = APIRouter(tags=["Student"])

NO_UPCOMING_DASHBOARD = "No upcoming classes yet. Your schedule will appear here when sessions are booked."
NO_MESSAGES_DASHBOARD = "No messages yet. You can message your teacher anytime."
NO_PROGRESS_MESSAGE = "No assessments have been recorded yet."


def _upcoming_panel(client: Client, student: dict) -> dict:
    upcoming = sessions.attach_teachers_and_courses(
        client, sessions.upcoming_sessions(client, student, limit=5)
    )
    return {
        "next_session": upcoming[0] if upcoming else None,
        "sessions": upcoming,
        "empty_message": None if upcoming else NO_UPCOMING_DASHBOARD,
    }


def _message_panel(client: Client, student: dict) -> dict:
    latest = messages.latest_message(client, student)
    return {
        "latest": latest,
        "empty_message": None if latest else NO_MESSAGES_DASHBOARD,
    }


def _assessment_panel(client: Client, student: dict) -> dict:
    recent = assessments.list_assessments(client, student, limit=3)
    return {
        "recent": recent,
        "empty_message": None if recent else assessments.NO_ASSESSMENTS_MESSAGE,
    }


@router.get("/dashboard")
def student_dashboard(
    student: dict = Depends(require_student),
    client: Client = Depends(get_supabase),
):
    """
    Student home: next class, upcoming schedule, latest message and recent
    feedback. Each panel reports its own error.
    """
    return {
        "profile": profile_summary(student, "Student"),
        "upcoming": load_panel("upcoming classes", _upcoming_panel, client, student),
        "messages": load_panel("messages", _message_panel, client, student),
        "assessments": load_panel("assessments", _assessment_panel, client, student),
    }


@router.get("/classes")
def student_classes(
    student: dict = Depends(require_student),
    client: Client = Depends(get_supabase),
):
    """Upcoming schedule and class history."""
    def load_classes():
        upcoming = sessions.upcoming_sessions(client, student)
        history = sessions.session_history(client, student)
        sessions.attach_teachers_and_courses(client, upcoming + history)
        return {
            "upcoming": upcoming,
            "upcoming_empty_message": None if upcoming else sessions.NO_UPCOMING_MESSAGE,
            "history": history,
            "history_empty_message": None if history else sessions.NO_HISTORY_MESSAGE,
        }

    return load_panel("classes", load_classes)


@router.get("/progress")
def student_progress(
    student: dict = Depends(require_student),
    client: Client = Depends(get_supabase),
):
    """All feedback recorded for the student, newest first."""
    def load_progress():
        entries = assessments.student_progress(client, student)
        return {
            "assessments": entries,
            "empty_message": None if entries else NO_PROGRESS_MESSAGE,
        }

    return load_panel("progress", load_progress)
