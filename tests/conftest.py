"""
Shared test fixtures for orgboard-backend.

Supabase is replaced by an in-memory fake that understands the query-builder
calls the services make (select/insert/update/delete with eq/in_/ilike filters,
ordering, paging and exact counts) plus auth.get_user for token lookup.
Foreign-key cascades and unique constraints of the real schema are mirrored so
deletes and duplicate inserts behave like Postgres.
"""

import re
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from itertools import count
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from postgrest.exceptions import APIError

from app.core.rate_limit import CreationThrottle, get_creation_throttle
from app.database.supabase_client import get_service_supabase, get_supabase
from app.main import app

UNIQUE_CONSTRAINTS = {
    "organizations": [("slug",), ("invite_code",)],
    "organization_members": [("organization_id", "user_id")],
    "projects": [("organization_id", "slug")],
    "project_members": [("project_id", "user_id")],
    "user_profiles": [("id",), ("email",)],
}

CASCADES = {
    "organizations": [("organization_members", "organization_id"), ("projects", "organization_id")],
    "projects": [("project_members", "project_id"), ("boards", "project_id")],
    "boards": [("board_columns", "board_id"), ("custom_field_definitions", "board_id")],
}

JOINED_AT_TABLES = {"organization_members", "project_members"}

BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _norm(value: Any) -> Any:
    return None if value is None else str(value)


# ---------------------------------------------------------------------------
# Supabase fake
# ---------------------------------------------------------------------------

class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.operation = "select"
        self.payload: Any = None
        self.count_mode: Optional[str] = None
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self.ordering: List[tuple] = []
        self.row_limit: Optional[int] = None
        self.row_offset = 0

    def select(self, columns: str = "*", count: Optional[str] = None):
        self.operation = "select"
        self.count_mode = count
        return self

    def insert(self, payload):
        self.operation = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.operation = "update"
        self.payload = payload
        return self

    def delete(self):
        self.operation = "delete"
        return self

    def eq(self, column: str, value: Any):
        self.filters.append(lambda row: _norm(row.get(column)) == _norm(value))
        return self

    def neq(self, column: str, value: Any):
        self.filters.append(lambda row: _norm(row.get(column)) != _norm(value))
        return self

    def in_(self, column: str, values):
        allowed = {_norm(v) for v in values}
        self.filters.append(lambda row: _norm(row.get(column)) in allowed)
        return self

    def ilike(self, column: str, pattern: str):
        regex = re.compile("^" + ".*".join(re.escape(part) for part in pattern.split("%")) + "$", re.IGNORECASE)
        self.filters.append(lambda row: row.get(column) is not None and bool(regex.match(str(row[column]))))
        return self

    def order(self, column: str, desc: bool = False):
        self.ordering.append((column, desc))
        return self

    def limit(self, size: int):
        self.row_limit = size
        return self

    def offset(self, size: int):
        self.row_offset = size
        return self

    def _matching(self) -> List[Dict[str, Any]]:
        return [row for row in self.db.tables[self.table] if all(f(row) for f in self.filters)]

    def execute(self):
        self.db.maybe_fail(self.table, self.operation)
        if (self.table, self.operation) in self.db.hidden:
            return SimpleNamespace(data=[], count=0)
        return getattr(self, f"_execute_{self.operation}")()

    def _execute_select(self):
        rows = self._matching()
        for column, desc in reversed(self.ordering):
            rows = sorted(
                rows,
                key=lambda row: (row.get(column) is None, row.get(column) if row.get(column) is not None else 0),
                reverse=desc,
            )
        total = len(rows)
        rows = rows[self.row_offset:]
        if self.row_limit is not None:
            rows = rows[:self.row_limit]
        return SimpleNamespace(
            data=[dict(row) for row in rows],
            count=total if self.count_mode == "exact" else None,
        )

    def _execute_insert(self):
        payload = self.payload if isinstance(self.payload, list) else [self.payload]
        inserted = []
        for item in payload:
            row = dict(item)
            row.setdefault("id", str(uuid4()))
            row.setdefault("created_at", self.db.now())
            if self.table in JOINED_AT_TABLES:
                row.setdefault("joined_at", self.db.now())
            self.db.check_unique(self.table, row)
            self.db.tables[self.table].append(row)
            inserted.append(dict(row))
        return SimpleNamespace(data=inserted, count=None)

    def _execute_update(self):
        updated = []
        for row in self._matching():
            candidate = {**row, **self.payload}
            self.db.check_unique(self.table, candidate, ignore=row)
            row.update(self.payload)
            updated.append(dict(row))
        return SimpleNamespace(data=updated, count=None)

    def _execute_delete(self):
        removed = self._matching()
        self.db.tables[self.table] = [row for row in self.db.tables[self.table] if row not in removed]
        for row in removed:
            self.db.cascade(self.table, row)
        return SimpleNamespace(data=[dict(row) for row in removed], count=None)


class FakeAuth:
    def __init__(self):
        self.users_by_token: Dict[str, SimpleNamespace] = {}

    def add_user(self, user_id: str, email: str) -> str:
        token = f"token-{user_id}"
        self.users_by_token[token] = SimpleNamespace(
            id=user_id,
            email=email,
            user_metadata={},
            app_metadata={},
            created_at=BASE_TIME.isoformat(),
            updated_at=None,
        )
        return token

    def get_user(self, jwt: Optional[str] = None):
        user = self.users_by_token.get(jwt)
        if user is None:
            raise Exception("invalid JWT: unable to parse or verify signature")
        return SimpleNamespace(user=user)


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.auth = FakeAuth()
        self.failures: Dict[tuple, Dict[str, Any]] = {}
        self.hidden: set = set()
        self._clock = count(1)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def now(self) -> str:
        return (BASE_TIME + timedelta(seconds=next(self._clock))).isoformat()

    def fail(self, table: str, operation: str, error: Optional[Exception] = None,
             after: int = 0, times: Optional[int] = None) -> None:
        """Let `after` calls of `operation` on `table` through, then raise `times` times (forever when None)"""
        self.failures[(table, operation)] = {
            "error": error or APIError({"message": "simulated failure", "code": "XX000"}),
            "after": after,
            "times": times,
        }

    def maybe_fail(self, table: str, operation: str) -> None:
        failure = self.failures.get((table, operation))
        if failure is None:
            return
        if failure["after"] > 0:
            failure["after"] -= 1
            return
        if failure["times"] is not None:
            if failure["times"] == 0:
                return
            failure["times"] -= 1
        raise failure["error"]

    def hide(self, table: str, operation: str) -> None:
        """Make `operation` on `table` match no rows, as a row-level security policy would"""
        self.hidden.add((table, operation))

    def check_unique(self, table: str, row: Dict[str, Any], ignore: Optional[Dict[str, Any]] = None) -> None:
        for columns in UNIQUE_CONSTRAINTS.get(table, []):
            key = tuple(_norm(row.get(c)) for c in columns)
            if None in key:
                continue
            for existing in self.tables[table]:
                if existing is ignore:
                    continue
                if tuple(_norm(existing.get(c)) for c in columns) == key:
                    raise APIError({
                        "message": f"duplicate key value violates unique constraint on {table} {columns}",
                        "code": "23505",
                    })

    def cascade(self, table: str, row: Dict[str, Any]) -> None:
        for child_table, column in CASCADES.get(table, []):
            children = [c for c in self.tables[child_table] if _norm(c.get(column)) == _norm(row["id"])]
            self.tables[child_table] = [c for c in self.tables[child_table] if c not in children]
            for child in children:
                self.cascade(child_table, child)

    def rows(self, table: str, **filters) -> List[Dict[str, Any]]:
        return [
            row for row in self.tables[table]
            if all(_norm(row.get(k)) == _norm(v) for k, v in filters.items())
        ]


# ---------------------------------------------------------------------------
# App fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_db():
    db = FakeSupabase()
    db.tables["roles"].extend([
        {"id": str(uuid4()), "name": "Admin", "organization_id": None, "description": "Project admin"},
        {"id": str(uuid4()), "name": "Member", "organization_id": None, "description": "Project member"},
    ])
    return db


@pytest.fixture
def throttle():
    return CreationThrottle("5/hour", "memory://", namespace="test_create_org")


@pytest_asyncio.fixture
async def client(fake_db, throttle):
    app.dependency_overrides[get_supabase] = lambda: fake_db
    app.dependency_overrides[get_service_supabase] = lambda: fake_db
    app.dependency_overrides[get_creation_throttle] = lambda: throttle
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(fake_db):
    """Factory: register a user with the fake auth and return id + auth headers"""
    def _make(email: str) -> SimpleNamespace:
        user_id = str(uuid4())
        token = fake_db.auth.add_user(user_id, email)
        return SimpleNamespace(id=user_id, email=email, token=token,
                               headers={"Authorization": f"Bearer {token}"})
    return _make


@pytest.fixture
def owner(make_user):
    return make_user("owner@acme.test")


@pytest.fixture
def member(make_user):
    return make_user("member@acme.test")


@pytest.fixture
def outsider(make_user):
    return make_user("outsider@elsewhere.test")


@pytest_asyncio.fixture
async def org(client, owner):
    """Organization "Acme" created by owner"""
    resp = await client.post(
        "/api/organizations",
        headers=owner.headers,
        json={"name": "Acme", "slug": "acme", "description": "Widgets"},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest_asyncio.fixture
async def joined_member(client, org, member):
    resp = await client.post(
        "/api/organizations/join",
        headers=member.headers,
        json={"slug": org["slug"], "invite_code": org["invite_code"]},
    )
    assert resp.status_code == 201, resp.text
    return member


@pytest_asyncio.fixture
async def project(client, org, owner):
    resp = await client.post(
        "/api/projects",
        headers=owner.headers,
        json={"organization_id": org["id"], "name": "Website", "slug": "website"},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest_asyncio.fixture
async def board(client, project, owner):
    resp = await client.post(
        "/api/boards",
        headers=owner.headers,
        json={"project_id": project["id"], "name": "Sprint 1"},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()
