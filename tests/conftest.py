import pytest
from fastapi.testclient import TestClient

from tutorhub.core import session_cache
from tutorhub.db.supabase import get_supabase, get_ws_supabase, get_async_supabase
from tutorhub.main import app

from tests.fakes import FakeSupabase

TEACHER = "11111111-1111-1111-1111-111111111111"
STUDENT = "22222222-2222-2222-2222-222222222222"
OTHER_STUDENT = "33333333-3333-3333-3333-333333333333"
ADMIN = "44444444-4444-4444-4444-444444444444"
OTHER_TEACHER = "55555555-5555-5555-5555-555555555555"


@pytest.fixture
def fake():
    db = FakeSupabase()
    db.add_user(TEACHER, "teacher", "Amina Yusuf", gender="female")
    db.add_user(OTHER_TEACHER, "teacher", "Bilal Khan")
    db.add_user(STUDENT, "student", "Sara Ali")
    db.add_user(OTHER_STUDENT, "student", "Omar Said")
    db.add_user(ADMIN, "admin", "Office Admin")
    return db


@pytest.fixture
def client(fake):
    session_cache.clear()
    app.dependency_overrides[get_supabase] = lambda: fake
    app.dependency_overrides[get_ws_supabase] = lambda: fake
    app.dependency_overrides[get_async_supabase] = lambda: fake.realtime
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    session_cache.clear()
