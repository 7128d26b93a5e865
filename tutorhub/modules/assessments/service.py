import logging
from fastapi import HTTPException, status
from postgrest.exceptions import APIError
from tutorhub.core import inflight
from tutorhub.core.visibility import filter_rows, scope_query
from tutorhub.db.supabase import extract_data, error_message
from tutorhub.modules.sessions.service import fetch_session
from tutorhub.schemas.assessments import SCORE_FIELDS

logger = logging.getLogger(__name__)

ASSESSMENT_COLUMNS = (
    "id, class_session_id, teacher_id, student_id, rating, "
    "tajweed_score, recitation_score, hifz_score, behaviour_score, notes, created_at"
)

NO_ASSESSMENTS_MESSAGE = "No assessments yet. Feedback will appear here after your classes."


def record(client, principal: dict, data) -> dict:
    """
    Record teacher feedback for a session.

    There is no update path: recording twice for one session stores two rows.
    """
    session = fetch_session(client, data.class_session_id)

    if principal["role"] != "teacher" or session["teacher_id"] != principal["id"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the class teacher can assess this session"
        )

    assessment_data = {
        "class_session_id": session["id"],
        "teacher_id": session["teacher_id"],
        "student_id": session["student_id"],
        "rating": data.rating,
        "notes": data.notes,
    }
    for name in SCORE_FIELDS:
        value = getattr(data, name)
        if value is not None:
            assessment_data[name] = value

    with inflight.claim(f"assessment:{session['id']}:{principal['id']}",
                        detail="Assessment is already being saved"):
        try:
            result = client.table("assessments").insert(assessment_data).execute()
        except APIError as e:
            logger.error("Assessment rejected for session %s: %s", session["id"], e)
            raise HTTPException(status_code=400, detail=error_message(e))
        except Exception as e:
            logger.error("Save assessment error: %s", e)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Failed to save assessment: {e}"
            )

    rows = extract_data(result)
    if not rows:
        raise HTTPException(status_code=400, detail="Failed to save assessment")

    logger.info("Assessment %s recorded for session %s", rows[0].get("id"), session["id"])
    return rows[0]


def list_assessments(client, principal: dict, limit=None) -> list[dict]:
    """Assessments visible to the principal, newest first."""
    query = scope_query(client.table("assessments").select(ASSESSMENT_COLUMNS), principal)
    query = query.order("created_at", desc=True)
    if limit:
        query = query.limit(limit)
    return filter_rows(extract_data(query.execute()), principal)


def student_progress(client, principal: dict) -> list[dict]:
    """A student's assessments with the class times and teacher name."""
    query = scope_query(
        client.table("assessments").select(
            f"{ASSESSMENT_COLUMNS}, "
            "class_session:class_session_id(start_utc, end_utc, teacher:teacher_id(full_name))"
        ),
        principal,
    )
    result = query.order("created_at", desc=True).execute()

    entries = []
    for row in filter_rows(extract_data(result), principal):
        class_session = row.get("class_session") or {}
        teacher = class_session.get("teacher") or {}
        entries.append({
            "id": row["id"],
            "rating": row.get("rating"),
            "notes": row.get("notes"),
            "created_at": row.get("created_at"),
            "class_start": class_session.get("start_utc"),
            "class_end": class_session.get("end_utc"),
            "teacher_name": teacher.get("full_name"),
            **{name: row.get(name) for name in SCORE_FIELDS},
        })
    return entries
