"""Pytest configuration and fixtures

Provides:
- fake_db: in-memory Supabase stand-in injected through get_supabase
- client: TestClient against the real app
- facilitator / other_facilitator: registered bearer tokens with auth headers
"""

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.database.supabase_client import get_supabase
from app.modules.auth.service import clear_auth_cache
from app.core.rate_limit import limiter
from tests.fakes import FakeSupabase


@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def client(fake_db):
    clear_auth_cache()
    limiter.enabled = False
    app.dependency_overrides[get_supabase] = lambda: fake_db
    yield TestClient(app)
    app.dependency_overrides.clear()
    limiter.enabled = True
    clear_auth_cache()


class Actor:
    def __init__(self, user, token):
        self.id = user.id
        self.token = token
        self.headers = {"Authorization": f"Bearer {token}"}


@pytest.fixture
def facilitator(fake_db):
    return Actor(fake_db.auth.add_user("facilitator-token"), "facilitator-token")


@pytest.fixture
def other_facilitator(fake_db):
    return Actor(fake_db.auth.add_user("other-token"), "other-token")


@pytest.fixture
def pro_facilitator(fake_db, facilitator):
    fake_db._store("profiles", {"id": facilitator.id, "email": "f@example.com", "plan": "pro"})
    return facilitator
