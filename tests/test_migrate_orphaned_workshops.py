import pytest

from app.scripts.migrate_orphaned_workshops import find_orphaned_workshops, migrate, main
from tests.fakes import FakeSupabase

OWNER = "5b0f6c1e-3f0a-4d8e-9a55-0d6c2f9f1a11"


@pytest.fixture
def db():
    fake = FakeSupabase()
    fake._store("workshops", {"name": "Legacy 1", "code": "LEG001"})
    fake._store("workshops", {"name": "Legacy 2", "code": "LEG002"})
    fake._store("workshops", {"name": "Owned", "code": "OWN001", "facilitator_id": "someone"})
    return fake


def test_finds_only_workshops_without_owner(db):
    assert sorted(w["code"] for w in find_orphaned_workshops(db)) == ["LEG001", "LEG002"]


def test_dry_run_changes_nothing(db):
    assert migrate(db, OWNER, dry_run=True) == 0
    assert len(find_orphaned_workshops(db)) == 2


def test_migrate_assigns_owner(db):
    assert migrate(db, OWNER) == 2
    assert find_orphaned_workshops(db) == []
    assert db.rows("workshops", code="OWN001")[0]["facilitator_id"] == "someone"
    assert migrate(db, OWNER) == 0


def test_main_rejects_malformed_id():
    with pytest.raises(SystemExit) as exc:
        main(["not-an-id"])
    assert exc.value.code == 2
