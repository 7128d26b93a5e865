from fastapi import APIRouter, Depends, HTTPException
from supabase import Client
from tutorhub.db.supabase import get_supabase
from tutorhub.core.dependencies import require_teacher
from tutorhub.schemas.availability import AvailabilityUpdate, DaySlotResponse
from tutorhub.modules.availability import service
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Availability"])


@router.get("/availability", response_model=list[DaySlotResponse])
def get_availability(
    teacher: dict = Depends(require_teacher),
    client: Client = Depends(get_supabase),
):
    try:
        return service.get_availability(client, teacher)
    except Exception as e:
        logger.error("Fetch availability error: %s", e)
        raise HTTPException(status_code=502, detail="Could not load your availability.")


@router.put("/availability", response_model=list[DaySlotResponse])
def save_availability(
    update: AvailabilityUpdate,
    teacher: dict = Depends(require_teacher),
    client: Client = Depends(get_supabase),
):
    """
    Save the teacher's weekly availability.

    Weekdays run 0 (Monday) to 6 (Sunday); a day appears at most once.
    """
    return service.save_availability(client, teacher, update.slots)
