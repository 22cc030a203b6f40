# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# Provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up environment variables before any app import
# - FakeSupabase: an in-memory stand-in for the PostgREST query builder,
#   RPC calls and storage, installed as the SupabaseClient singleton
# - Auth overrides for FastAPI's TestClient
# =============================================================================

import copy
import os
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Callable

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# app.config loads settings at import time

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-with-enough-length")
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import pytest

USER_ID = "11111111-1111-1111-1111-111111111111"
CREATOR_ID = "22222222-2222-2222-2222-222222222222"
CHARACTER_ID = "33333333-3333-3333-3333-333333333333"


# =============================================================================
# In-memory Supabase
# =============================================================================

class FakeResponse:
    def __init__(self, data: Any, count: int | None = None):
        self.data = data
        self.count = count


def _same(left: Any, right: Any) -> bool:
    if isinstance(left, str) or isinstance(right, str):
        return str(left) == str(right)
    return left == right


def _ilike(value: Any, pattern: str) -> bool:
    regex = "^" + ".*".join(re.escape(part) for part in pattern.split("%")) + "$"
    return re.match(regex, str(value or ""), re.IGNORECASE | re.DOTALL) is not None


def _sort_key(value: Any) -> tuple:
    return (value is None, value if value is not None else 0)


class FakeQuery:
    """Chainable query over one table of a FakeSupabase."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.action = "select"
        self.payload: Any = None
        self.on_conflict: str | None = None
        self.count_mode: str | None = None
        self.filters: list[Callable[[dict], bool]] = []
        self.orders: list[tuple[str, bool]] = []
        self.window: tuple[int, int] | None = None
        self.max_rows: int | None = None

    # Actions ------------------------------------------------------------

    def select(self, columns: str = "*", count: str | None = None):
        self.count_mode = count
        return self

    def insert(self, rows: Any):
        self.action, self.payload = "insert", rows
        return self

    def update(self, values: dict):
        self.action, self.payload = "update", values
        return self

    def upsert(self, rows: Any, on_conflict: str = "id"):
        self.action, self.payload, self.on_conflict = "upsert", rows, on_conflict
        return self

    def delete(self):
        self.action = "delete"
        return self

    # Filters ------------------------------------------------------------

    def eq(self, column: str, value: Any):
        self.filters.append(lambda row: _same(row.get(column), value))
        return self

    def neq(self, column: str, value: Any):
        self.filters.append(lambda row: not _same(row.get(column), value))
        return self

    def in_(self, column: str, values: list):
        self.filters.append(lambda row: any(_same(row.get(column), v) for v in values))
        return self

    def gte(self, column: str, value: Any):
        self.filters.append(lambda row: row.get(column) is not None and str(row[column]) >= str(value))
        return self

    def lte(self, column: str, value: Any):
        self.filters.append(lambda row: row.get(column) is not None and str(row[column]) <= str(value))
        return self

    def lt(self, column: str, value: Any):
        self.filters.append(lambda row: row.get(column) is not None and str(row[column]) < str(value))
        return self

    def contains(self, column: str, values: list):
        self.filters.append(lambda row: set(values) <= set(row.get(column) or []))
        return self

    def or_(self, expression: str):
        clauses = []
        for clause in expression.split(","):
            column, op, value = clause.split(".", 2)
            clauses.append((column, op, value))

        def matches(row: dict) -> bool:
            for column, op, value in clauses:
                if op == "ilike" and _ilike(row.get(column), value):
                    return True
                if op == "eq" and str(row.get(column)).lower() == value.lower():
                    return True
            return False

        self.filters.append(matches)
        return self

    # Shaping ------------------------------------------------------------

    def order(self, column: str, desc: bool = False):
        self.orders.append((column, desc))
        return self

    def range(self, start: int, end: int):
        self.window = (start, end)
        return self

    def limit(self, count: int):
        self.max_rows = count
        return self

    # Execution ----------------------------------------------------------

    def _matching(self) -> list[dict]:
        return [row for row in self.db.rows(self.table) if all(f(row) for f in self.filters)]

    def execute(self) -> FakeResponse:
        error = self.db.errors.get((self.table, self.action))
        if error:
            raise error

        if self.action == "insert":
            return FakeResponse(self.db.insert(self.table, self.payload))

        if self.action == "upsert":
            return FakeResponse(self.db.upsert(self.table, self.payload, self.on_conflict))

        if self.action == "update":
            rows = self._matching()
            for row in rows:
                row.update(copy.deepcopy(self.payload))
            return FakeResponse(copy.deepcopy(rows))

        if self.action == "delete":
            rows = self._matching()
            self.db.tables[self.table] = [r for r in self.db.rows(self.table) if r not in rows]
            return FakeResponse(copy.deepcopy(rows))

        rows = self._matching()
        for column, desc in reversed(self.orders):
            rows = sorted(rows, key=lambda r: _sort_key(r.get(column)), reverse=desc)
        count = len(rows) if self.count_mode else None
        if self.window:
            rows = rows[self.window[0]:self.window[1] + 1]
        if self.max_rows is not None:
            rows = rows[:self.max_rows]
        return FakeResponse(copy.deepcopy(rows), count)


class FakeRpc:
    def __init__(self, db: "FakeSupabase", name: str, params: dict):
        self.db = db
        self.name = name
        self.params = params

    def execute(self) -> FakeResponse:
        self.db.rpc_calls.append((self.name, self.params))
        handler = self.db.rpc_handlers.get(self.name)
        if handler is None:
            raise Exception(f"Unknown RPC {self.name}")
        return FakeResponse(handler(self.params))


class FakeBucket:
    def __init__(self, storage: "FakeStorage", bucket: str):
        self.storage = storage
        self.bucket = bucket

    def upload(self, path: str, file: bytes, file_options: dict | None = None):
        self.storage.files[(self.bucket, path)] = file
        return {"path": path}

    def get_public_url(self, path: str) -> str:
        return f"https://test-project.supabase.co/storage/v1/object/public/{self.bucket}/{path}?"


class FakeStorage:
    def __init__(self):
        self.files: dict[tuple[str, str], bytes] = {}

    def from_(self, bucket: str) -> FakeBucket:
        return FakeBucket(self, bucket)

    def list_buckets(self) -> list:
        return []


class FakeSupabase:
    """
    Minimal in-memory Supabase client.

    - tables: table name -> list of row dicts
    - unique: table name -> column tuples that must be unique
    - rpc_handlers: function name -> callable(params) returning data
    - errors: (table, action) -> exception raised on execute
    """

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.unique: dict[str, list[tuple[str, ...]]] = {
            "user_follows": [("follower_id", "character_id")],
            "tips": [("stripe_payment_intent_id",)],
            "user_premium_subscriptions": [("user_id",)],
            "image_likes": [("image_identifier", "user_id")],
        }
        self.rpc_handlers: dict[str, Callable[[dict], Any]] = {
            "user_has_premium": lambda params: False,
            "record_interaction": lambda params: str(uuid.uuid4()),
        }
        self.rpc_calls: list[tuple[str, dict]] = []
        self.errors: dict[tuple[str, str], Exception] = {}
        self.storage = FakeStorage()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, name: str, params: dict) -> FakeRpc:
        return FakeRpc(self, name, params)

    # Helpers used by tests and FakeQuery --------------------------------

    def rows(self, table: str) -> list[dict]:
        return self.tables.setdefault(table, [])

    def seed(self, table: str, *rows: dict) -> list[dict]:
        return self.insert(table, list(rows))

    def insert(self, table: str, payload: Any) -> list[dict]:
        new_rows = payload if isinstance(payload, list) else [payload]
        stored = []
        for row in new_rows:
            row = copy.deepcopy(row)
            row.setdefault("id", str(uuid.uuid4()))
            row.setdefault("created_at", datetime.now(timezone.utc).isoformat())
            for columns in self.unique.get(table, []):
                values = tuple(row.get(c) for c in columns)
                if None in values:
                    continue
                if any(tuple(str(r.get(c)) for c in columns) == tuple(map(str, values)) for r in self.rows(table)):
                    raise Exception(
                        f"duplicate key value violates unique constraint on {table} (code 23505)"
                    )
            self.rows(table).append(row)
            stored.append(row)
        return copy.deepcopy(stored)

    def upsert(self, table: str, payload: Any, on_conflict: str) -> list[dict]:
        columns = [c.strip() for c in on_conflict.split(",")]
        new_rows = payload if isinstance(payload, list) else [payload]
        result = []
        for row in new_rows:
            existing = next(
                (r for r in self.rows(table) if all(_same(r.get(c), row.get(c)) for c in columns)),
                None,
            )
            if existing:
                existing.update(copy.deepcopy(row))
                result.append(copy.deepcopy(existing))
            else:
                result.extend(self.insert(table, row))
        return result

    def first(self, table: str, **filters: Any) -> dict | None:
        for row in self.rows(table):
            if all(_same(row.get(k), v) for k, v in filters.items()):
                return row
        return None


def stripe_object(cls: str = "StripeObject", **values: Any) -> Any:
    """A real stripe-python object (not a dict) built from plain values."""
    import stripe

    return getattr(stripe, cls).construct_from(values, None)


def stripe_event(event_type: str, obj: dict[str, Any]) -> Any:
    """A stripe.Event wrapping data.object, as construct_event returns it."""
    import stripe

    return stripe.Event.construct_from({
        "id": f"evt_{uuid.uuid4().hex[:12]}",
        "object": "event",
        "type": event_type,
        "data": {"object": obj},
    }, None)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def fake_db(monkeypatch):
    """Install a fresh FakeSupabase as the Supabase client singleton."""
    from lib.supabase_client import SupabaseClient

    db = FakeSupabase()
    monkeypatch.setattr(SupabaseClient, "_instance", db)
    return db


@pytest.fixture
def premium_users(fake_db):
    """Set of user IDs that user_has_premium reports as premium."""
    users: set[str] = set()
    fake_db.rpc_handlers["user_has_premium"] = lambda params: str(params.get("check_user_id")) in users
    return users


@pytest.fixture
def coin_ledger(fake_db):
    """
    deduct_coins / add_coins backed by a balance dict.

    deduct_coins returns the same shape as the stored procedure:
    [{success, new_balance, transaction_id, error_message}]
    """
    balances: dict[str, int] = {}

    def deduct(params):
        user = str(params["p_user_id"])
        amount = int(params["p_amount"])
        current = balances.get(user, 0)
        if current < amount:
            return [{"success": False, "new_balance": current, "transaction_id": None,
                     "error_message": "Insufficient balance"}]
        balances[user] = current - amount
        return [{"success": True, "new_balance": balances[user],
                 "transaction_id": str(uuid.uuid4()), "error_message": None}]

    def add(params):
        user = str(params["p_user_id"])
        balances[user] = balances.get(user, 0) + int(params["p_amount"])
        return [{"success": True, "new_balance": balances[user], "transaction_id": str(uuid.uuid4())}]

    fake_db.rpc_handlers["deduct_coins"] = deduct
    fake_db.rpc_handlers["add_coins"] = add
    return balances


@pytest.fixture
def character(fake_db):
    """A public character owned by CREATOR_ID."""
    return fake_db.seed("characters", {
        "id": CHARACTER_ID,
        "user_id": CREATOR_ID,
        "name": "Luna",
        "description": "A stargazing barista",
        "category": "Lifestyle",
        "is_public": True,
        "personality": {"traits": ["warm", "witty"], "mood": "cheerful"},
        "physical_attributes": {"gender": "woman", "age": "25", "hairColor": "black"},
        "tags": ["barista", "coffee"],
    })[0]


@pytest.fixture
def stripe_mock(monkeypatch):
    """
    A MagicMock standing in for the configured stripe module.

    Returned by require_stripe() wherever services import it.
    """
    from unittest.mock import MagicMock

    import core.services.premium_service as premium_service
    import core.services.stripe_connect_service as stripe_connect_service
    import core.services.subscription_service as subscription_service
    import core.services.tip_service as tip_service
    import core.services.webhook_service as webhook_service
    import lib.stripe_client as stripe_client
    from app.config import settings

    mock = MagicMock(name="stripe")
    monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "sk_test_123")
    for module in (
        stripe_client,
        premium_service,
        stripe_connect_service,
        subscription_service,
        tip_service,
        webhook_service,
    ):
        if hasattr(module, "require_stripe"):
            monkeypatch.setattr(module, "require_stripe", lambda: mock)
    return mock


@pytest.fixture
def auth_user():
    from app.auth import AuthUser

    return AuthUser(id=uuid.UUID(USER_ID), email="fan@example.com")


@pytest.fixture
def client(fake_db, auth_user):
    """TestClient authenticated as USER_ID."""
    from fastapi.testclient import TestClient

    from app.auth import get_current_user, get_current_user_optional
    from app.main import app

    app.dependency_overrides[get_current_user] = lambda: auth_user
    app.dependency_overrides[get_current_user_optional] = lambda: auth_user
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(fake_db):
    """TestClient without auth overrides."""
    from fastapi.testclient import TestClient

    from app.main import app

    app.dependency_overrides.clear()
    return TestClient(app)


PNG_DATA_URL = "data:image/png;base64,iVBORw0KGgoAAAAAAAAAAAAAAAAAAAA="


@pytest.fixture
def segmind_mock(monkeypatch):
    """
    Configure Segmind and replace its HTTP calls.

    generate_image and face_swap return a small PNG data URL.
    """
    from unittest.mock import MagicMock

    from app.config import settings
    from lib import segmind

    monkeypatch.setattr(settings, "SEGMIND_API_KEY", "test-segmind-key")
    mock = MagicMock(name="segmind")
    mock.generate_image.return_value = PNG_DATA_URL
    mock.face_swap.return_value = PNG_DATA_URL
    monkeypatch.setattr(segmind, "generate_image", mock.generate_image)
    monkeypatch.setattr(segmind, "face_swap", mock.face_swap)
    return mock
