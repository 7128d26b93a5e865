import logging
from fastapi import HTTPException
from tutorhub.core import inflight
from tutorhub.core.visibility import filter_rows, scope_query
from tutorhub.db.supabase import extract_data, error_message
from tutorhub.schemas.availability import WEEKDAYS

logger = logging.getLogger(__name__)

DEFAULT_START = "16:00"
DEFAULT_END = "18:00"


def default_week() -> list[dict]:
    return [
        {
            "weekday": i,
            "day": WEEKDAYS[i],
            "start_time": DEFAULT_START,
            "end_time": DEFAULT_END,
            "is_active": False,
        }
        for i in range(7)
    ]


def _hhmm(value) -> str:
    if hasattr(value, "strftime"):
        return value.strftime("%H:%M")
    return str(value)[:5]


def get_availability(client, principal: dict) -> list[dict]:
    """The teacher's week, stored rows laid over the default week."""
    query = scope_query(
        client.table("teacher_availability").select("teacher_id, weekday, start_time, end_time, is_active"),
        principal,
    )
    rows = filter_rows(extract_data(query.order("weekday").execute()), principal)
    stored = {row["weekday"]: row for row in rows}

    week = default_week()
    for slot in week:
        found = stored.get(slot["weekday"])
        if not found:
            continue
        slot["start_time"] = _hhmm(found["start_time"])
        slot["end_time"] = _hhmm(found["end_time"])
        is_active = found.get("is_active")
        slot["is_active"] = True if is_active is None else is_active
    return week


def save_availability(client, principal: dict, slots) -> list[dict]:
    """Upsert one row per weekday, keyed on (teacher_id, weekday)."""
    payload = []
    for slot in slots:
        if not 0 <= slot.weekday <= 6:
            raise HTTPException(status_code=400, detail=f"Invalid weekday: {slot.weekday}")
        payload.append({
            "teacher_id": principal["id"],
            "weekday": slot.weekday,
            "start_time": _hhmm(slot.start_time),
            "end_time": _hhmm(slot.end_time),
            "is_active": slot.is_active,
        })

    if not payload:
        return get_availability(client, principal)

    with inflight.claim(f"availability:{principal['id']}", detail="Availability is already being saved"):
        try:
            client.table("teacher_availability").upsert(payload, on_conflict="teacher_id,weekday").execute()
        except Exception as e:
            logger.error("Save availability error: %s", e)
            raise HTTPException(status_code=400, detail=error_message(e) or "Failed to save availability.")

    logger.info("Saved %d availability slot(s) for %s", len(payload), principal["id"])
    return get_availability(client, principal)
