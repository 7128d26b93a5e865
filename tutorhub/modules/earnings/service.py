import logging
from datetime import datetime, timezone
from typing import Optional
from tutorhub.core.config import settings
from tutorhub.core.visibility import filter_rows, scope_query
from tutorhub.db.supabase import extract_data

logger = logging.getLogger(__name__)

PAYOUT_COLUMNS = "id, teacher_id, amount, currency, status, created_at, paid_at, class_session_id"

RECENT_LIMIT = 6

EMPTY_MESSAGE = "No completed classes recorded for this month yet."


def month_range(now: Optional[datetime] = None):
    """Start of the current UTC month and start of the next one."""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    month_start = datetime(now.year, now.month, 1, tzinfo=timezone.utc)
    if now.month == 12:
        next_month_start = datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        next_month_start = datetime(now.year, now.month + 1, 1, tzinfo=timezone.utc)
    return month_start, next_month_start


def summarize(payouts: list[dict], month_start: datetime, next_month_start: datetime) -> dict:
    total = sum(p.get("amount") or 0 for p in payouts)
    unpaid = sum(p.get("amount") or 0 for p in payouts if p.get("status") == "unpaid")
    currency = (payouts[0].get("currency") if payouts else None) or settings.DEFAULT_CURRENCY

    return {
        "month_label": month_start.strftime("%B %Y"),
        "month_start": month_start,
        "next_month_start": next_month_start,
        "currency": currency,
        "total": round(total, 2),
        "unpaid": round(unpaid, 2),
        "paid": round(total - unpaid, 2),
        "class_count": len(payouts),
        "recent": payouts[:RECENT_LIMIT],
        "empty_message": None if payouts else EMPTY_MESSAGE,
    }


def monthly_earnings(client, principal: dict, now: Optional[datetime] = None) -> dict:
    """Current month's payout summary for a teacher. Read-only."""
    month_start, next_month_start = month_range(now)

    query = scope_query(client.table("teacher_session_payouts").select(PAYOUT_COLUMNS), principal)
    result = (
        query
        .gte("created_at", month_start.isoformat())
        .lt("created_at", next_month_start.isoformat())
        .order("created_at", desc=True)
        .execute()
    )
    payouts = filter_rows(extract_data(result), principal)
    return summarize(payouts, month_start, next_month_start)
