import logging
from bisect import insort
from datetime import datetime
from typing import Optional
from fastapi import HTTPException, status
from tutorhub.core.visibility import filter_rows, scope_query
from tutorhub.db.supabase import extract_data, error_message

logger = logging.getLogger(__name__)

MESSAGE_COLUMNS = "id, sender_id, receiver_id, teacher_id, student_id, body, created_at"


def in_conversation(row: dict, teacher_id: str, student_id: str) -> bool:
    sender, receiver = row.get("sender_id"), row.get("receiver_id")
    return (
        (sender == teacher_id and receiver == student_id)
        or (sender == student_id and receiver == teacher_id)
    )


def created_at_key(row: dict):
    value = row.get("created_at")
    if isinstance(value, datetime):
        return value.isoformat()
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).isoformat()
    except ValueError:
        return str(value)


def check_pair_access(principal: dict, teacher_id: str, student_id: str) -> None:
    if principal["role"] == "admin":
        return
    own_id = teacher_id if principal["role"] == "teacher" else student_id
    if own_id != principal["id"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not part of this conversation"
        )


def history(client, principal: dict, teacher_id: str, student_id: str) -> list[dict]:
    """All messages between a teacher and a student, oldest first."""
    check_pair_access(principal, teacher_id, student_id)

    query = (
        client.table("messages")
        .select(MESSAGE_COLUMNS)
        .or_(
            f"and(sender_id.eq.{teacher_id},receiver_id.eq.{student_id}),"
            f"and(sender_id.eq.{student_id},receiver_id.eq.{teacher_id})"
        )
    )
    result = scope_query(query, principal).order("created_at").execute()

    rows = [
        row for row in filter_rows(extract_data(result), principal)
        if in_conversation(row, teacher_id, student_id)
    ]
    rows.sort(key=created_at_key)
    return rows


def latest_message(client, principal: dict) -> Optional[dict]:
    """Most recent message involving the principal, for dashboard previews."""
    query = scope_query(client.table("messages").select(MESSAGE_COLUMNS), principal)
    result = query.order("created_at", desc=True).limit(1).execute()
    rows = filter_rows(extract_data(result), principal)
    return rows[0] if rows else None


def send(client, principal: dict, receiver_id: str, body: Optional[str]) -> dict:
    """
    Store one message from the principal to their counterpart.

    Teachers write to students and students to teachers.
    """
    body = (body or "").strip()
    if not body:
        raise HTTPException(status_code=400, detail="Message cannot be empty")

    if principal["role"] not in ("teacher", "student"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only teachers and students can send messages"
        )

    expected_role = "student" if principal["role"] == "teacher" else "teacher"
    receiver = extract_data(
        client.table("profiles").select("id, role").eq("id", receiver_id).limit(1).execute()
    )
    if not receiver or receiver[0].get("role") != expected_role:
        raise HTTPException(status_code=400, detail=f"Receiver must be a {expected_role}")

    if principal["role"] == "teacher":
        teacher_id, student_id = principal["id"], receiver_id
    else:
        teacher_id, student_id = receiver_id, principal["id"]

    message_data = {
        "sender_id": principal["id"],
        "receiver_id": receiver_id,
        "teacher_id": teacher_id,
        "student_id": student_id,
        "body": body,
    }

    try:
        result = client.table("messages").insert(message_data).execute()
    except Exception as e:
        logger.error("Send message error: %s", e)
        raise HTTPException(status_code=400, detail=error_message(e))

    rows = extract_data(result)
    if not rows:
        raise HTTPException(status_code=400, detail="Message was not saved")
    return rows[0]


class Conversation:
    """Local, ordered copy of one teacher/student conversation."""

    def __init__(self, teacher_id: str, student_id: str, messages=()):
        self.teacher_id = teacher_id
        self.student_id = student_id
        self._messages = []
        self._ids = set()
        for row in messages:
            self.append(row)

    def accepts(self, row: dict) -> bool:
        return in_conversation(row, self.teacher_id, self.student_id)

    def append(self, row: dict) -> bool:
        """Add a row unless it is foreign or already present. Returns True if added."""
        if not self.accepts(row) or row.get("id") in self._ids:
            return False
        self._ids.add(row.get("id"))
        insort(self._messages, row, key=created_at_key)
        return True

    def __len__(self):
        return len(self._messages)

    @property
    def messages(self) -> list[dict]:
        return list(self._messages)
