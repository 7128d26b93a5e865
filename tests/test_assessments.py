from datetime import datetime, timedelta, timezone

import pytest
from postgrest.exceptions import APIError

from tutorhub.schemas.assessments import AssessmentCreate

from tests.conftest import OTHER_TEACHER, STUDENT, TEACHER
from tests.fakes import auth_header

NOW = datetime.now(timezone.utc)


@pytest.fixture
def completed(fake):
    return fake.add_session(
        TEACHER, STUDENT, NOW - timedelta(hours=1), NOW - timedelta(minutes=30), status="completed"
    )


def test_rating_or_all_scores_required():
    AssessmentCreate(class_session_id="s", rating=3)
    AssessmentCreate(class_session_id="s", tajweed_score=5, recitation_score=4, hifz_score=3, behaviour_score=5)

    with pytest.raises(ValueError, match="Please fill all scores."):
        AssessmentCreate(class_session_id="s", rating=4, tajweed_score=5)
    with pytest.raises(ValueError, match="Please give a rating or fill all scores."):
        AssessmentCreate(class_session_id="s", notes="Good effort")


def test_teacher_records_assessment(client, fake, completed):
    resp = client.post(
        "/assessments/",
        json={"class_session_id": completed["id"], "rating": 4, "notes": "Steady progress"},
        headers=auth_header(TEACHER),
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["student_id"] == STUDENT
    assert body["teacher_id"] == TEACHER
    assert body["rating"] == 4
    assert len(fake.rows("assessments")) == 1


def test_recording_twice_stores_two_rows(client, fake, completed):
    payload = {"class_session_id": completed["id"], "rating": 5}
    for _ in range(2):
        assert client.post("/assessments/", json=payload, headers=auth_header(TEACHER)).status_code == 200
    assert len(fake.rows("assessments")) == 2


def test_out_of_range_score_never_reaches_the_store(client, fake, completed):
    resp = client.post(
        "/assessments/",
        json={"class_session_id": completed["id"], "rating": 6},
        headers=auth_header(TEACHER),
    )
    assert resp.status_code == 422
    assert ("assessments", "insert") not in fake.calls
    assert ("class_sessions", "select") not in fake.calls


def test_partial_scores_rejected(client, fake, completed):
    resp = client.post(
        "/assessments/",
        json={"class_session_id": completed["id"], "tajweed_score": 4, "hifz_score": 3},
        headers=auth_header(TEACHER),
    )
    assert resp.status_code == 422
    assert "Please fill all scores." in resp.text
    assert fake.rows("assessments") == []


def test_only_the_class_teacher_may_assess(client, completed):
    payload = {"class_session_id": completed["id"], "rating": 3}
    assert client.post("/assessments/", json=payload, headers=auth_header(STUDENT)).status_code == 403
    assert client.post("/assessments/", json=payload, headers=auth_header(OTHER_TEACHER)).status_code == 403


def test_database_rejection_is_shown_verbatim(client, fake, completed):
    fake.fail("assessments", "insert", APIError({
        "message": 'new row violates row-level security policy for table "assessments"',
        "code": "42501",
        "hint": None,
        "details": None,
    }))
    resp = client.post(
        "/assessments/",
        json={"class_session_id": completed["id"], "rating": 2},
        headers=auth_header(TEACHER),
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == 'new row violates row-level security policy for table "assessments"'


def test_student_progress_includes_class_and_teacher(client, fake, completed):
    client.post(
        "/assessments/",
        json={
            "class_session_id": completed["id"],
            "tajweed_score": 4, "recitation_score": 5, "hifz_score": 3, "behaviour_score": 5,
        },
        headers=auth_header(TEACHER),
    )

    data = client.get("/student/progress", headers=auth_header(STUDENT)).json()["data"]
    assert data["empty_message"] is None
    entry = data["assessments"][0]
    assert entry["teacher_name"] == "Amina Yusuf"
    assert entry["class_start"] == completed["start_utc"]
    assert entry["hifz_score"] == 3


def test_progress_empty_state(client):
    data = client.get("/student/progress", headers=auth_header(STUDENT)).json()["data"]
    assert data["assessments"] == []
    assert data["empty_message"] == "No assessments have been recorded yet."


def test_teacher_sees_assessments_they_gave(client, fake, completed):
    fake.insert_row("assessments", {
        "class_session_id": "other", "teacher_id": OTHER_TEACHER, "student_id": STUDENT, "rating": 1,
    })
    client.post("/assessments/", json={"class_session_id": completed["id"], "rating": 5}, headers=auth_header(TEACHER))

    rows = client.get("/assessments/", headers=auth_header(TEACHER)).json()
    assert [r["rating"] for r in rows] == [5]
    assert len(client.get("/assessments/", headers=auth_header(STUDENT)).json()) == 2
