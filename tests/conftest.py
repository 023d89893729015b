"""
Pytest configuration and fixtures for the Frogsy API tests.

Supabase is never contacted: routes get a MockSupabase whose query builders
record every chained call and return canned rows per table.
"""
import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient
import os

# Set environment variables before importing main
os.environ["SUPABASE_URL"] = "https://test.supabase.co"
os.environ["SUPABASE_SERVICE_KEY"] = "test-key"
os.environ["APP_TIMEZONE"] = "Africa/Johannesburg"
os.environ["RATE_LIMIT_STORAGE_URI"] = "memory://"

from main import app

TEST_USER_ID = "123e4567-e89b-12d3-a456-426614174000"
OTHER_USER_ID = "987e6543-e21b-12d3-a456-426614174999"


class MockQueryBuilder:
    """
    Chainable stand-in for the Supabase query builder.

    Every call is recorded in `calls` as (method, args, kwargs) so tests can
    assert on filters and payloads. `operation` remembers the last
    select/insert/upsert/update/delete so errors can target one of them.

    Example:
        >>> builder = MockQueryBuilder("pain_entries", data=[{"pain_level": 3}])
        >>> result = await builder.select("*").eq("user_id", "u").execute()
        >>> assert result.data == [{"pain_level": 3}]
    """

    OPERATIONS = ("select", "insert", "upsert", "update", "delete")
    FILTERS = ("eq", "gte", "lte", "in_", "is_", "order", "limit")

    def __init__(self, table_name, data=None, errors=None):
        self.table_name = table_name
        self.data = data if data is not None else []
        self.errors = errors or {}
        self.calls = []
        self.operation = None

    def __getattr__(self, name):
        if name in self.OPERATIONS or name in self.FILTERS:
            def method(*args, **kwargs):
                self.calls.append((name, args, kwargs))
                if name in self.OPERATIONS:
                    self.operation = name
                return self
            return method
        raise AttributeError(name)

    def called(self, name):
        return [c for c in self.calls if c[0] == name]

    async def execute(self):
        error = self.errors.get((self.table_name, self.operation)) or self.errors.get(self.table_name)
        if error is not None:
            raise error
        mock_response = MagicMock()
        mock_response.data = self.data
        return mock_response


class MockSupabase:
    """
    Minimal async Supabase client.

    Args:
        tables: table name -> rows returned by any query on that table
        errors: table name or (table, operation) -> exception raised on execute
    """

    def __init__(self, tables=None, errors=None):
        self.tables = tables or {}
        self.errors = errors or {}
        self.builders = []

    def table(self, name):
        builder = MockQueryBuilder(name, data=self.tables.get(name, []), errors=self.errors)
        self.builders.append(builder)
        return builder

    def builders_for(self, name, operation=None):
        return [
            b for b in self.builders
            if b.table_name == name and (operation is None or b.operation == operation)
        ]


@pytest.fixture
def mock_supabase():
    return MockSupabase()


@pytest.fixture
def make_client():
    """
    Build a TestClient wired to a given MockSupabase, authenticated as
    TEST_USER_ID, with rate limiting disabled.
    """
    from api.dependencies import get_current_user_id, get_supabase_client

    app.state.limiter.enabled = False
    app.dependency_overrides.clear()

    def _make(supabase, user_id=TEST_USER_ID):
        async def override_get_supabase_client():
            return supabase

        async def override_get_current_user_id():
            return user_id

        app.dependency_overrides[get_supabase_client] = override_get_supabase_client
        app.dependency_overrides[get_current_user_id] = override_get_current_user_id
        return TestClient(app)

    yield _make

    app.dependency_overrides.clear()
    app.state.limiter.enabled = True


@pytest.fixture
def client(make_client, mock_supabase):
    return make_client(mock_supabase)


@pytest.fixture
def supabase_factory():
    """MockSupabase class, for tests that need several differently seeded clients."""
    return MockSupabase
