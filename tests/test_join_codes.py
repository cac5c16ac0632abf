import pytest
from postgrest.exceptions import APIError

from app.core.errors import ConflictError
from app.modules.workshops.codes import generate_code, is_valid_code, insert_with_unique_code
from tests.fakes import FakeSupabase


def test_generated_codes_are_six_uppercase_alphanumerics():
    for _ in range(200):
        assert is_valid_code(generate_code())


@pytest.mark.parametrize("code", ["", None, "abc123", "ABC12", "ABC1234", "AB-123"])
def test_invalid_codes(code):
    assert not is_valid_code(code)


def test_collision_is_retried_with_a_fresh_code():
    db = FakeSupabase()
    db._store("workshops", {"name": "Taken", "code": "AAAAAA"})
    codes = iter(["AAAAAA", "AAAAAA", "BBBBBB"])

    row = insert_with_unique_code(db, {"name": "New"}, code_factory=lambda: next(codes))

    assert row["code"] == "BBBBBB"
    assert len(db.rows("workshops", code="BBBBBB")) == 1


def test_gives_up_after_all_attempts_collide():
    db = FakeSupabase()
    db._store("workshops", {"name": "Taken", "code": "AAAAAA"})

    with pytest.raises(ConflictError):
        insert_with_unique_code(db, {"name": "New"}, code_factory=lambda: "AAAAAA", attempts=3)
    assert len(db.rows("workshops")) == 1


def test_other_database_errors_are_not_retried():
    db = FakeSupabase()
    db.fail_next("workshops", "insert", APIError({"code": "23502", "message": "null value in column"}))
    calls = []

    def factory():
        calls.append(1)
        return "CCCCCC"

    with pytest.raises(APIError):
        insert_with_unique_code(db, {"name": "New"}, code_factory=factory)
    assert len(calls) == 1
