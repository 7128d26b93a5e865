import logging
from datetime import datetime, timezone
from typing import Optional
from fastapi import HTTPException, status
from tutorhub.core import inflight
from tutorhub.core.security import profile_summary
from tutorhub.core.visibility import filter_rows, scope_query
from tutorhub.db.supabase import extract_data

logger = logging.getLogger(__name__)

SESSION_COLUMNS = (
    "id, teacher_id, student_id, course_id, start_utc, end_utc, "
    "status, zoom_url, started_at, ended_at"
)

# action -> (statuses it may leave from, status it moves to)
TRANSITIONS = {
    "start": (("scheduled",), "live"),
    "end": (("live",), "completed"),
    "cancel": (("scheduled",), "cancelled"),
    "no_show": (("scheduled", "live"), "no_show"),
}

TERMINAL_STATUSES = ("completed", "cancelled", "no_show")

TIMESTAMP_COLUMN = {
    "start": "started_at",
    "end": "ended_at",
}

# Only the assigned teacher may start or end; admins may also cancel / mark no-show.
TEACHER_ONLY_ACTIONS = ("start", "end")

NO_UPCOMING_MESSAGE = "No upcoming classes."
NO_HISTORY_MESSAGE = "No past classes yet."
NO_LIVE_MESSAGE = "No teachers are currently live."


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def can_transition(current_status: Optional[str], action: str) -> bool:
    allowed_from, _ = TRANSITIONS[action]
    return current_status in allowed_from


class SessionBoard:
    """
    Displayed statuses for a set of sessions, updated in two phases.

    `apply` sets the tentative status and returns the prior one; the caller
    then either `confirm`s with the persisted row or `rollback`s.
    """

    def __init__(self, sessions=()):
        self._rows = {row["id"]: dict(row) for row in sessions}

    def status_of(self, session_id: str) -> Optional[str]:
        row = self._rows.get(session_id)
        return row["status"] if row else None

    def get(self, session_id: str) -> Optional[dict]:
        row = self._rows.get(session_id)
        return dict(row) if row else None

    def apply(self, session_id: str, new_status: str) -> str:
        row = self._rows[session_id]
        prior = row["status"]
        row["status"] = new_status
        return prior

    def confirm(self, session_id: str, persisted: dict) -> None:
        self._rows[session_id] = {**self._rows.get(session_id, {}), **persisted}

    def rollback(self, session_id: str, prior_status: str) -> None:
        self._rows[session_id]["status"] = prior_status

    def rows(self) -> list[dict]:
        return [dict(row) for row in self._rows.values()]


def fetch_session(client, session_id: str) -> dict:
    try:
        result = (
            client.table("class_sessions")
            .select(SESSION_COLUMNS)
            .eq("id", session_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.error("Failed to load session %s: %s", session_id, e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Could not load class: {e}"
        )

    rows = extract_data(result)
    if not rows:
        raise HTTPException(status_code=404, detail="Class session not found")
    return rows[0]


def _authorize(principal: dict, session: dict, action: str) -> None:
    if principal["role"] == "admin" and action not in TEACHER_ONLY_ACTIONS:
        return
    if principal["role"] != "teacher" or session["teacher_id"] != principal["id"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the assigned teacher can change this class"
        )


def transition(client, principal: dict, session_id: str, action: str,
               now: Optional[datetime] = None, board: Optional[SessionBoard] = None):
    """
    Move a session along its lifecycle.

    The write is conditional on the status still being one the action may
    leave from, so two concurrent `start` calls cannot both succeed.

    `board` is the caller's displayed state, if it keeps one. HTTP callers
    keep theirs client-side, so without a board a one-row board is used and
    the prior status carried in every error detail is what the client rolls
    back to.

    Returns:
        tuple of (persisted session row, previous status)

    Raises:
        HTTPException: 404 unknown session, 403 not allowed, 409 invalid
            transition or lost race, 502 backend failure
    """
    if action not in TRANSITIONS:
        raise HTTPException(status_code=400, detail=f"Unknown action: {action}")

    session = fetch_session(client, session_id)
    _authorize(principal, session, action)

    allowed_from, target = TRANSITIONS[action]
    if not can_transition(session["status"], action):
        if session["status"] in TERMINAL_STATUSES:
            message = f"Class is already {session['status']}"
        else:
            message = f"Cannot {action.replace('_', ' ')} a class that is {session['status']}"
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": message, "status": session["status"]}
        )

    if board is None:
        board = SessionBoard([session])
    elif board.get(session_id) is None:
        board.confirm(session_id, session)

    update_data = {"status": target}
    timestamp_column = TIMESTAMP_COLUMN.get(action)
    if timestamp_column:
        update_data[timestamp_column] = (now or utc_now()).isoformat()

    with inflight.claim(f"{action}:{session_id}"):
        prior = board.apply(session_id, target)
        try:
            result = (
                client.table("class_sessions")
                .update(update_data)
                .eq("id", session_id)
                .in_("status", list(allowed_from))
                .execute()
            )
        except Exception as e:
            board.rollback(session_id, prior)
            logger.error("Failed to %s session %s: %s", action, session_id, e)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail={"message": f"Failed to {action.replace('_', ' ')} class: {e}", "status": prior}
            )

        rows = extract_data(result)
        if not rows:
            board.rollback(session_id, prior)
            current = fetch_session(client, session_id)["status"]
            logger.info("Session %s changed under %s (now %s)", session_id, action, current)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"message": "Class status was changed by someone else", "status": current}
            )

        board.confirm(session_id, rows[0])

    logger.info("Session %s: %s -> %s by %s", session_id, prior, target, principal["id"])
    return board.get(session_id), prior


def upcoming_sessions(client, principal: dict, now: Optional[datetime] = None, limit: int = 50) -> list[dict]:
    """Sessions that have not ended yet, soonest first. Includes live ones."""
    query = scope_query(client.table("class_sessions").select(SESSION_COLUMNS), principal)
    result = (
        query
        .gte("end_utc", (now or utc_now()).isoformat())
        .order("start_utc")
        .limit(limit)
        .execute()
    )
    return filter_rows(extract_data(result), principal)


def session_history(client, principal: dict, now: Optional[datetime] = None, limit: int = 50) -> list[dict]:
    """Sessions that have ended, most recent first."""
    query = scope_query(client.table("class_sessions").select(SESSION_COLUMNS), principal)
    result = (
        query
        .lt("end_utc", (now or utc_now()).isoformat())
        .order("start_utc", desc=True)
        .limit(limit)
        .execute()
    )
    return filter_rows(extract_data(result), principal)


def teacher_sessions(client, principal: dict) -> list[dict]:
    """All of a teacher's sessions in start order, with the student's name."""
    query = scope_query(
        client.table("class_sessions").select(f"{SESSION_COLUMNS}, student:student_id(full_name)"),
        principal,
    )
    result = query.order("start_utc").execute()

    sessions = []
    for row in filter_rows(extract_data(result), principal):
        student = row.pop("student", None) or {}
        row["student_name"] = student.get("full_name") or "Student"
        sessions.append(row)
    return sessions


def live_sessions(client) -> list[dict]:
    """Every session currently live, for the admin operations view."""
    result = (
        client.table("class_sessions")
        .select(
            "id, start_utc, end_utc, zoom_url, status, teacher_id, student_id, "
            "teacher:teacher_id(full_name), student:student_id(full_name)"
        )
        .eq("status", "live")
        .order("start_utc")
        .execute()
    )

    rows = []
    for row in extract_data(result):
        if row.get("status") != "live":
            continue
        teacher = row.pop("teacher", None) or {}
        student = row.pop("student", None) or {}
        row["teacher_name"] = teacher.get("full_name") or "Teacher"
        row["student_name"] = student.get("full_name") or "Student"
        rows.append(row)
    return rows


def attach_teachers_and_courses(client, sessions: list[dict]) -> list[dict]:
    """Add `teacher` display data and `course_title` to each session."""
    teacher_ids = sorted({s["teacher_id"] for s in sessions if s.get("teacher_id")})
    course_ids = sorted({s["course_id"] for s in sessions if s.get("course_id")})

    teachers = {}
    if teacher_ids:
        result = (
            client.table("profiles")
            .select("id, full_name, avatar_url, gender")
            .in_("id", teacher_ids)
            .execute()
        )
        teachers = {t["id"]: t for t in extract_data(result)}

    courses = {}
    if course_ids:
        result = client.table("courses").select("id, title").in_("id", course_ids).execute()
        courses = {c["id"]: c for c in extract_data(result)}

    for s in sessions:
        s["teacher"] = profile_summary(teachers.get(s.get("teacher_id")), "Teacher")
        course = courses.get(s.get("course_id"))
        s["course_title"] = course["title"] if course else None
    return sessions


def _require_profile_role(client, user_id: str, role: str) -> None:
    result = client.table("profiles").select("id, role").eq("id", user_id).limit(1).execute()
    rows = extract_data(result)
    if not rows or rows[0].get("role") != role:
        raise HTTPException(status_code=400, detail=f"{user_id} is not a {role}")


def create_session(client, data) -> dict:
    """Schedule a new session between a teacher and a student."""
    _require_profile_role(client, data.teacher_id, "teacher")
    _require_profile_role(client, data.student_id, "student")

    session_data = {
        "teacher_id": data.teacher_id,
        "student_id": data.student_id,
        "course_id": data.course_id,
        "start_utc": data.start_utc.isoformat(),
        "end_utc": data.end_utc.isoformat(),
        "zoom_url": data.zoom_url,
        "status": "scheduled",
    }

    try:
        result = client.table("class_sessions").insert(session_data).execute()
    except Exception as e:
        logger.error("Session creation error: %s", e)
        raise HTTPException(status_code=400, detail=f"Could not schedule class: {e}")

    rows = extract_data(result)
    if not rows:
        raise HTTPException(status_code=400, detail="Could not schedule class")
    logger.info("Scheduled session %s for teacher %s", rows[0].get("id"), data.teacher_id)
    return rows[0]
