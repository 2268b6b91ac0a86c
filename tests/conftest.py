"""Shared fixtures: an in-memory stand-in for the Supabase client wired into the app."""

import re
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from bizplan.database.supabase_client import get_service_supabase, get_session_supabase, get_supabase
from bizplan.main import app


def _sort_key(value):
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return (0, parsed)
        except ValueError:
            return (1, value)
    return (2, value)


class FakeQuery:
    """Subset of the postgrest query builder used by the services."""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.action = "select"
        self.payload = None
        self.want_count = False
        self.filters = []
        self.order_by = None
        self.row_limit = None
        self.row_range = None

    def select(self, columns="*", count=None):
        self.action = "select"
        self.want_count = count is not None
        return self

    def insert(self, data):
        self.action = "insert"
        self.payload = data
        return self

    def update(self, data):
        self.action = "update"
        self.payload = data
        return self

    def delete(self):
        self.action = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def gte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and _sort_key(row[column]) >= _sort_key(value))
        return self

    def lte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and _sort_key(row[column]) <= _sort_key(value))
        return self

    def ilike(self, column, pattern):
        regex = re.compile("^" + ".*".join(re.escape(part) for part in pattern.split("%")) + "$", re.IGNORECASE)
        self.filters.append(lambda row: row.get(column) is not None and bool(regex.match(str(row[column]))))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, count):
        self.row_limit = count
        return self

    def range(self, start, end):
        self.row_range = (start, end)
        return self

    def _matching(self):
        return [row for row in self.db.tables.setdefault(self.table, []) if all(f(row) for f in self.filters)]

    def execute(self):
        if self.db.fail_tables and self.table in self.db.fail_tables:
            raise RuntimeError(f"connection to {self.table} refused")
        if self.action == "insert" and self.table in self.db.fail_inserts:
            raise RuntimeError(f"insert into {self.table} violates a constraint")
        rows = self.db.tables.setdefault(self.table, [])
        if self.action == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for item in items:
                row = {"id": str(uuid.uuid4()), "created_at": self.db.tick(), **item}
                rows.append(row)
                inserted.append(dict(row))
            return SimpleNamespace(data=inserted, count=None)
        if self.action == "update":
            updated = []
            for row in self._matching():
                row.update(self.payload)
                updated.append(dict(row))
            return SimpleNamespace(data=updated, count=None)
        if self.action == "delete":
            doomed = self._matching()
            self.db.tables[self.table] = [row for row in rows if row not in doomed]
            return SimpleNamespace(data=[dict(row) for row in doomed], count=None)

        result = [dict(row) for row in self._matching()]
        total = len(result)
        if self.order_by:
            column, desc = self.order_by
            result.sort(key=lambda row: _sort_key(row.get(column)), reverse=desc)
        if self.row_range:
            start, end = self.row_range
            result = result[start:end + 1]
        if self.row_limit is not None:
            result = result[:self.row_limit]
        return SimpleNamespace(data=result, count=total if self.want_count else None)


class FakeAuthAdmin:
    def __init__(self, auth):
        self.auth = auth
        self.created = []
        self.created_ids = []
        self.updated = []
        self.deleted = []
        self.signed_out = []

    def create_user(self, attributes):
        user = SimpleNamespace(id=str(uuid.uuid4()), email=attributes["email"])
        self.created.append(attributes)
        self.created_ids.append(user.id)
        return SimpleNamespace(user=user)

    def update_user_by_id(self, user_id, attributes):
        self.updated.append((user_id, attributes))
        return SimpleNamespace(user=SimpleNamespace(id=user_id))

    def delete_user(self, user_id):
        self.deleted.append(user_id)

    def sign_out(self, jwt, scope="global"):
        self.signed_out.append(jwt)


class FakeAuth:
    def __init__(self):
        self.tokens = {}
        self.signed_in = []
        self.signed_up = []
        self.admin = FakeAuthAdmin(self)

    def get_user(self, jwt=None):
        if jwt not in self.tokens:
            raise RuntimeError("invalid JWT: signature mismatch")
        user_id, email = self.tokens[jwt]
        return SimpleNamespace(user=SimpleNamespace(
            id=user_id, email=email, user_metadata={}, app_metadata={}
        ))

    def sign_in_with_password(self, credentials):
        for token, (user_id, email) in self.tokens.items():
            if email == credentials["email"] and credentials["password"] == "correct-horse":
                self.signed_in.append(user_id)
                return SimpleNamespace(
                    user=SimpleNamespace(id=user_id, email=email),
                    session=SimpleNamespace(access_token=token),
                )
        raise RuntimeError("Invalid login credentials")

    def sign_up(self, credentials):
        user_id = str(uuid.uuid4())
        self.signed_up.append(user_id)
        return SimpleNamespace(user=SimpleNamespace(id=user_id, email=credentials["email"]))

    def sign_out(self):
        return None


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.auth = FakeAuth()
        self.fail_tables = set()
        self.fail_inserts = set()
        self._clock = datetime.now(timezone.utc) - timedelta(hours=1)

    def tick(self):
        self._clock += timedelta(milliseconds=1)
        return self._clock.isoformat()

    def table(self, name):
        return FakeQuery(self, name)

    def add_user(self, user_id, role="regular", is_active=True, email=None, with_profile=True):
        """Register a token and (optionally) a profile row; returns request headers for that user."""
        email = email or f"{user_id}@example.com"
        token = f"token-{user_id}"
        self.auth.tokens[token] = (user_id, email)
        if with_profile:
            self.tables.setdefault("user_profiles", []).append({
                "id": user_id,
                "email": email,
                "full_name": user_id.title(),
                "role": role,
                "is_active": is_active,
                "created_at": self.tick(),
            })
        return {"Authorization": f"Bearer {token}"}

    def add_membership(self, team_id, user_id, role, status="active"):
        self.tables.setdefault("team_members", []).append({
            "id": str(uuid.uuid4()),
            "team_id": team_id,
            "user_id": user_id,
            "role": role,
            "status": status,
            "joined_at": self.tick(),
            "created_at": self.tick(),
        })

    def rows(self, table, **match):
        return [row for row in self.tables.get(table, []) if all(row.get(k) == v for k, v in match.items())]


@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def client(supabase):
    app.dependency_overrides[get_supabase] = lambda: supabase
    app.dependency_overrides[get_service_supabase] = lambda: supabase
    app.dependency_overrides[get_session_supabase] = lambda: supabase
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def session_supabase(client, supabase):
    """A separate client for sign-up and sign-in that knows the same accounts"""
    session = FakeSupabase()
    session.auth.tokens = supabase.auth.tokens
    app.dependency_overrides[get_session_supabase] = lambda: session
    return session
