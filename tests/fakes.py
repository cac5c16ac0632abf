"""In-memory stand-in for the parts of supabase.Client the services use.

Covers table(...).select/insert/update/upsert/delete with eq, neq, in_, is_, lt,
order, limit, offset, single/maybe_single and count="exact", plus
auth.sign_up/sign_in_with_password/get_user/sign_out. The workshops.code
unique index is enforced the way PostgREST reports it, and fail_next() makes
the next matching call raise.
"""

import copy
import itertools
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError

_BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)

TABLE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "workshops": {
        "date": None,
        "facilitator_id": None,
        "status": "draft",
        "active_board_id": None,
        "timer_running": False,
        "timer_started_at": None,
        "time_remaining": None,
        "version": 0,
        "updated_at": None,
    },
    "boards": {"color_index": 0, "time_limit": 15},
    "questions": {},
    "notes": {"author_id": None, "author_name": None, "color_index": 0},
    "participants": {"color_index": 0},
    "ai_analyses": {},
    "profiles": {"plan": "free"},
}

TIMESTAMP_COLUMN = {
    "workshops": "created_at",
    "boards": "created_at",
    "questions": "created_at",
    "notes": "timestamp",
    "participants": "joined_at",
    "ai_analyses": "created_at",
}

UNIQUE_COLUMNS = {"workshops": ["code"]}


class FakeResponse:
    def __init__(self, data: Any, count: Optional[int] = None):
        self.data = data
        self.count = count


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.action = "select"
        self.columns = "*"
        self.count_mode = None
        self.payload: Any = None
        self.filters: List = []
        self.ordering: List = []
        self.limit_value: Optional[int] = None
        self.offset_value = 0
        self.single_mode: Optional[str] = None

    # Actions

    def select(self, columns: str = "*", count: Optional[str] = None):
        self.action = "select"
        self.columns = columns
        self.count_mode = count
        return self

    def insert(self, payload):
        self.action, self.payload = "insert", payload
        return self

    def upsert(self, payload):
        self.action, self.payload = "upsert", payload
        return self

    def update(self, payload):
        self.action, self.payload = "update", payload
        return self

    def delete(self):
        self.action = "delete"
        return self

    # Filters

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        allowed = list(values)
        self.filters.append(lambda row: row.get(column) in allowed)
        return self

    def is_(self, column, value):
        if value in ("null", None):
            self.filters.append(lambda row: row.get(column) is None)
        else:
            self.filters.append(lambda row: row.get(column) is value)
        return self

    def lt(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) < value)
        return self

    def order(self, column, desc: bool = False):
        self.ordering.append((column, desc))
        return self

    def limit(self, n: int):
        self.limit_value = n
        return self

    def offset(self, n: int):
        self.offset_value = n
        return self

    def single(self):
        self.single_mode = "single"
        return self

    def maybe_single(self):
        self.single_mode = "maybe"
        return self

    # Execution

    def _matches(self, row) -> bool:
        return all(f(row) for f in self.filters)

    def _project(self, row):
        if self.columns.strip() == "*":
            return copy.deepcopy(row)
        keys = [c.strip() for c in self.columns.split(",")]
        return {k: copy.deepcopy(row.get(k)) for k in keys}

    def execute(self) -> FakeResponse:
        self.db._maybe_fail(self.table_name, self.action)
        rows = self.db.tables.setdefault(self.table_name, [])

        if self.action in ("insert", "upsert"):
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            created = [self.db._store(self.table_name, dict(item), upsert=self.action == "upsert") for item in items]
            return FakeResponse([copy.deepcopy(r) for r in created])

        matched = [r for r in rows if self._matches(r)]

        if self.action == "update":
            for row in matched:
                row.update(copy.deepcopy(self.payload))
            return FakeResponse([copy.deepcopy(r) for r in matched])

        if self.action == "delete":
            self.db.tables[self.table_name] = [r for r in rows if not self._matches(r)]
            return FakeResponse([copy.deepcopy(r) for r in matched])

        for column, desc in reversed(self.ordering):
            matched.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        total = len(matched)
        matched = matched[self.offset_value:]
        if self.limit_value is not None:
            matched = matched[:self.limit_value]
        data = [self._project(r) for r in matched]

        if self.single_mode == "maybe":
            return FakeResponse(data[0] if data else None)
        if self.single_mode == "single":
            if len(data) != 1:
                raise APIError({"code": "PGRST116", "message": "JSON object requested, multiple (or no) rows returned"})
            return FakeResponse(data[0])
        return FakeResponse(data, count=total if self.count_mode == "exact" else None)


class FakeAuth:
    def __init__(self):
        self.users_by_token: Dict[str, SimpleNamespace] = {}
        self.passwords: Dict[str, tuple] = {}
        self.get_user_calls = 0

    def add_user(self, token: str, user_id: Optional[str] = None, email: Optional[str] = None) -> SimpleNamespace:
        user = SimpleNamespace(
            id=user_id or str(uuid.uuid4()),
            email=email or f"{token}@example.com",
            user_metadata={},
            app_metadata={},
        )
        self.users_by_token[token] = user
        return user

    def sign_up(self, credentials: Dict[str, Any]):
        email = credentials["email"]
        if email in self.passwords:
            raise Exception("User already registered")
        user = SimpleNamespace(
            id=str(uuid.uuid4()),
            email=email,
            user_metadata=credentials.get("options", {}).get("data", {}),
            app_metadata={},
        )
        self.passwords[email] = (credentials["password"], user)
        return SimpleNamespace(user=user, session=None)

    def sign_in_with_password(self, credentials: Dict[str, Any]):
        password, user = self.passwords.get(credentials["email"], (None, None))
        if user is None or password != credentials["password"]:
            raise Exception("Invalid login credentials")
        token = f"session-{uuid.uuid4().hex}"
        self.users_by_token[token] = user
        return SimpleNamespace(user=user, session=SimpleNamespace(access_token=token))

    def get_user(self, jwt: str = None):
        self.get_user_calls += 1
        user = self.users_by_token.get(jwt)
        if user is None:
            raise Exception("invalid JWT: unable to parse or verify signature")
        return SimpleNamespace(user=user)

    def sign_out(self):
        return None


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.auth = FakeAuth()
        self._clock = itertools.count(1)
        self._failures: List = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def fail_next(self, table: str, action: str, error: Optional[Exception] = None) -> None:
        """Make the next `action` on `table` raise"""
        self._failures.append((table, action, error or Exception(f"injected {action} failure on {table}")))

    def _maybe_fail(self, table: str, action: str) -> None:
        for i, (t, a, error) in enumerate(self._failures):
            if t == table and a == action:
                del self._failures[i]
                raise error

    def _now(self) -> str:
        return (_BASE_TIME + timedelta(seconds=next(self._clock))).isoformat()

    def _store(self, table: str, row: Dict[str, Any], upsert: bool = False) -> Dict[str, Any]:
        rows = self.tables.setdefault(table, [])
        if upsert and row.get("id"):
            for existing in rows:
                if existing["id"] == row["id"]:
                    existing.update(row)
                    return existing
        for column in UNIQUE_COLUMNS.get(table, []):
            if any(r.get(column) == row.get(column) for r in rows):
                raise APIError({
                    "code": "23505",
                    "message": f'duplicate key value violates unique constraint "{table}_{column}_key"',
                    "details": None,
                    "hint": None,
                })
        stored = {**TABLE_DEFAULTS.get(table, {}), **row}
        stored.setdefault("id", str(uuid.uuid4()))
        ts_column = TIMESTAMP_COLUMN.get(table)
        if ts_column:
            stored.setdefault(ts_column, self._now())
        rows.append(stored)
        return stored

    # Test helpers

    def rows(self, table: str, **where) -> List[Dict[str, Any]]:
        return [r for r in self.tables.get(table, []) if all(r.get(k) == v for k, v in where.items())]

    def row(self, table: str, row_id: str) -> Optional[Dict[str, Any]]:
        found = self.rows(table, id=row_id)
        return found[0] if found else None


def seed_workshop(db: FakeSupabase, facilitator_id: str, boards, status: str = "active", code: str = None, name: str = "Retro"):
    """Insert a workshop with boards [(title, [question titles], time_limit?)].

    Returns {"workshop": row, "boards": [row], "questions": {board_id: [row]}}.
    """
    workshop = db._store("workshops", {
        "name": name,
        "code": code or uuid.uuid4().hex[:6].upper(),
        "facilitator_id": facilitator_id,
        "status": status,
    })
    board_rows, questions = [], {}
    for b_index, entry in enumerate(boards):
        title, question_titles = entry[0], entry[1]
        time_limit = entry[2] if len(entry) > 2 else 15
        board = db._store("boards", {
            "workshop_id": workshop["id"], "title": title, "time_limit": time_limit,
            "order_index": b_index, "color_index": b_index,
        })
        board_rows.append(board)
        questions[board["id"]] = [
            db._store("questions", {"board_id": board["id"], "title": q, "order_index": q_index})
            for q_index, q in enumerate(question_titles)
        ]
    if status == "active" and board_rows:
        workshop["active_board_id"] = board_rows[0]["id"]
    return {"workshop": workshop, "boards": board_rows, "questions": questions}


def seed_participant(db: FakeSupabase, workshop_id: str, name: str = "Alex") -> Dict[str, Any]:
    return db._store("participants", {"workshop_id": workshop_id, "name": name, "color_index": 1})


def seed_note(db: FakeSupabase, question_id: str, participant: Dict[str, Any], content: str = "An idea") -> Dict[str, Any]:
    return db._store("notes", {
        "question_id": question_id,
        "content": content,
        "author_id": participant["id"],
        "author_name": participant["name"],
        "color_index": 2,
    })


def participant_headers(participant: Dict[str, Any]) -> Dict[str, str]:
    return {"X-Participant-Token": participant["id"]}
