from fastapi import APIRouter, Depends, HTTPException
from supabase import Client
from tutorhub.db.supabase import get_supabase
from tutorhub.core.dependencies import require_teacher
from tutorhub.schemas.earnings import EarningsSummary
from tutorhub.modules.earnings import service
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Earnings"])


@router.get("/earnings", response_model=EarningsSummary)
def get_monthly_earnings(
    teacher: dict = Depends(require_teacher),
    client: Client = Depends(get_supabase),
):
    """
    This month's earnings for the signed-in teacher.

    Totals are derived from payout rows created in the current UTC month.
    """
    try:
        return EarningsSummary(**service.monthly_earnings(client, teacher))
    except Exception as e:
        logger.error("Error fetching payouts: %s", e)
        raise HTTPException(status_code=502, detail="Could not load earnings data.")
