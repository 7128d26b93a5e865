from datetime import datetime, timezone

from tutorhub.modules.earnings import service

from tests.conftest import OTHER_TEACHER, STUDENT, TEACHER
from tests.fakes import auth_header

NOW = datetime(2026, 10, 18, 14, 30, tzinfo=timezone.utc)


def payout(fake, teacher_id, amount, status, created_at, currency="EUR"):
    return fake.insert_row("teacher_session_payouts", {
        "teacher_id": teacher_id,
        "class_session_id": f"session-{amount}-{status}",
        "amount": amount,
        "currency": currency,
        "status": status,
        "created_at": created_at,
        "paid_at": None,
    })


def test_month_range_rolls_over_december():
    start, end = service.month_range(datetime(2026, 12, 31, 23, 59, tzinfo=timezone.utc))
    assert start == datetime(2026, 12, 1, tzinfo=timezone.utc)
    assert end == datetime(2027, 1, 1, tzinfo=timezone.utc)

    start, end = service.month_range(NOW)
    assert (start.month, end.month) == (10, 11)


def test_current_month_totals(fake):
    payout(fake, TEACHER, 10, "unpaid", "2026-10-02T10:00:00+00:00")
    payout(fake, TEACHER, 15, "paid", "2026-10-09T10:00:00+00:00")
    payout(fake, TEACHER, 40, "paid", "2026-09-30T23:59:00+00:00")
    payout(fake, OTHER_TEACHER, 99, "unpaid", "2026-10-05T10:00:00+00:00")

    summary = service.monthly_earnings(fake, {"id": TEACHER, "role": "teacher"}, now=NOW)

    assert summary["total"] == 25.0
    assert summary["unpaid"] == 10.0
    assert summary["paid"] == 15.0
    assert summary["class_count"] == 2
    assert summary["month_label"] == "October 2026"
    assert summary["empty_message"] is None
    # newest first
    assert [p["amount"] for p in summary["recent"]] == [15, 10]


def test_recent_is_capped_and_amounts_rounded(fake):
    for day in range(1, 9):
        payout(fake, TEACHER, 12.345, "unpaid", f"2026-10-{day:02d}T08:00:00+00:00")

    summary = service.monthly_earnings(fake, {"id": TEACHER, "role": "teacher"}, now=NOW)
    assert summary["class_count"] == 8
    assert summary["total"] == 98.76
    assert len(summary["recent"]) == service.RECENT_LIMIT


def test_empty_month_uses_default_currency(fake):
    summary = service.monthly_earnings(fake, {"id": TEACHER, "role": "teacher"}, now=NOW)
    assert summary["currency"] == "EUR"
    assert summary["total"] == 0
    assert summary["empty_message"] == "No completed classes recorded for this month yet."


def test_earnings_endpoint(client, fake):
    payout(fake, TEACHER, 20, "unpaid", fake.next_timestamp(), currency="GBP")

    resp = client.get("/teacher/earnings", headers=auth_header(TEACHER))
    assert resp.status_code == 200
    body = resp.json()
    assert body["currency"] == "GBP"
    assert body["unpaid"] == 20.0


def test_earnings_failure_and_access(client, fake):
    fake.fail("teacher_session_payouts", "select", RuntimeError("timeout"))
    resp = client.get("/teacher/earnings", headers=auth_header(TEACHER))
    assert resp.status_code == 502
    assert resp.json()["detail"] == "Could not load earnings data."

    resp = client.get("/teacher/earnings", headers=auth_header(STUDENT))
    assert resp.status_code == 303
    assert resp.headers["location"] == "/student/dashboard"
