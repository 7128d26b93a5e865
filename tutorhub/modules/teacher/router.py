from fastapi import APIRouter, Depends
from supabase import Client
from tutorhub.db.supabase import get_supabase
from tutorhub.core.dependencies import require_teacher
from tutorhub.core.panels import load_panel
from tutorhub.core.security import profile_summary
from tutorhub.modules.sessions import service as sessions
from tutorhub.modules.earnings import service as earnings
from tutorhub.modules.availability import service as availability
from tutorhub.modules.assessments import service as assessments

router = APIRouter(tags=["Teacher"])


@router.get("/dashboard")
def teacher_dashboard(
    teacher: dict = Depends(require_teacher),
    client: Client = Depends(get_supabase),
):
    """
    Teacher home: own classes in start order with student names, plus this
    month's earnings and weekly availability. Panels fail independently.
    """
    return {
        "profile": profile_summary(teacher, "Teacher"),
        "sessions": load_panel("classes", sessions.teacher_sessions, client, teacher),
        "earnings": load_panel("earnings data", earnings.monthly_earnings, client, teacher),
        "availability": load_panel("availability", availability.get_availability, client, teacher),
    }


@router.get("/assessments")
def teacher_assessments(
    teacher: dict = Depends(require_teacher),
    client: Client = Depends(get_supabase),
):
    return load_panel("assessments", assessments.list_assessments, client, teacher)
