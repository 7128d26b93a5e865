from fastapi import APIRouter, Depends, HTTPException
from supabase import Client
from tutorhub.db.supabase import get_supabase
from tutorhub.core.dependencies import get_principal, require_api_role
from tutorhub.schemas.assessments import AssessmentCreate, AssessmentResponse
from tutorhub.modules.assessments import service
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Assessments"])


@router.post("/", response_model=AssessmentResponse)
def record_assessment(
    assessment: AssessmentCreate,
    principal: dict = Depends(require_api_role("teacher")),
    client: Client = Depends(get_supabase),
):
    """
    Record feedback for a class. Only the class teacher.

    Either `rating` or all four scores are required, each between 1 and 5.
    A rejection from the database is returned verbatim so the form can retry.
    """
    return AssessmentResponse(**service.record(client, principal, assessment))


@router.get("/", response_model=list[AssessmentResponse])
def get_assessments(
    principal: dict = Depends(get_principal),
    client: Client = Depends(get_supabase),
):
    """Assessments the caller may see: own as student, given as teacher, all as admin."""
    try:
        return [AssessmentResponse(**row) for row in service.list_assessments(client, principal)]
    except HTTPException:
        raise
    except Exception as e:
        logger.error("List assessments error: %s", e)
        raise HTTPException(status_code=502, detail=f"Could not load assessments: {e}")
