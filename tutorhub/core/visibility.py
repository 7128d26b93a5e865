import logging
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

# Column that ties a row to its owner, per role. Admins are unrestricted.
OWNER_COLUMN = {
    "student": "student_id",
    "teacher": "teacher_id",
}


def owner_column(principal: dict) -> Optional[str]:
    if principal["role"] == "admin":
        return None
    return OWNER_COLUMN[principal["role"]]


def scope_query(query, principal: dict):
    """
    Restrict a query to the rows the principal may read.

    Row-level security in Supabase enforces the same rule; this filter keeps
    the request honest and the result small.
    """
    column = owner_column(principal)
    if column is None:
        return query
    return query.eq(column, principal["id"])


def can_read(row: dict, principal: dict) -> bool:
    column = owner_column(principal)
    if column is None:
        return True
    return row.get(column) == principal["id"]


def filter_rows(rows: Iterable[dict], principal: dict) -> list[dict]:
    """Drop any returned row the principal is not allowed to see."""
    rows = list(rows or [])
    visible = [row for row in rows if can_read(row, principal)]
    if len(visible) != len(rows):
        logger.warning(
            "Dropped %d row(s) outside the visibility of %s %s",
            len(rows) - len(visible), principal["role"], principal["id"]
        )
    return visible
