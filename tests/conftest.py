"""
Shared test fixtures.
"""

import os
import sys
from pathlib import Path

# Add project directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings are loaded at import time
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from unittest.mock import patch
from datetime import datetime, timezone
from typing import Generator
from uuid import uuid4

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """
    Mock Supabase query builder with chainable methods.

    eq / in_ / ilike filter the configured rows so lookups can be tested;
    order and range are accepted and ignored.
    """

    def __init__(self, data: list = None, count: int = None, calls: list = None):
        self._data = data or []
        self._count = count
        self._calls = calls if calls is not None else []

    def select(self, *args, **kwargs):
        return self

    def insert(self, data):
        if isinstance(data, dict):
            data = [data]
        now = datetime.now(timezone.utc).isoformat()
        inserted = []
        for item in data:
            row = dict(item)
            row["id"] = str(uuid4())
            row["created_at"] = now
            row["updated_at"] = now
            inserted.append(row)
        self._calls.append(("insert", inserted))
        self._data = inserted
        return self

    def update(self, data):
        self._calls.append(("update", dict(data)))
        self._pending_update = dict(data)
        return self

    def eq(self, column, value):
        self._data = [row for row in self._data if row.get(column) == value]
        return self

    def in_(self, column, values):
        wanted = set(values)
        self._data = [row for row in self._data if row.get(column) in wanted]
        return self

    def ilike(self, column, pattern):
        needle = pattern.strip("%").lower()
        self._data = [row for row in self._data if needle in str(row.get(column, "")).lower()]
        return self

    def order(self, column, **kwargs):
        return self

    def range(self, start, end):
        self._data = self._data[start:end + 1]
        return self

    def limit(self, count):
        return self

    def execute(self) -> MockSupabaseResponse:
        pending = getattr(self, "_pending_update", None)
        if pending is not None:
            self._data = [{**row, **pending} for row in self._data]
        return MockSupabaseResponse(
            data=self._data,
            count=self._count if self._count is not None else len(self._data)
        )


class MockSupabaseTable:
    """Mock Supabase table with configurable responses."""

    def __init__(self, data: list = None, count: int = None, calls: list = None):
        self._data = data or []
        self._count = count
        self._calls = calls

    def _query(self) -> MockSupabaseQuery:
        return MockSupabaseQuery([dict(row) for row in self._data], self._count, self._calls)

    def select(self, *args, **kwargs):
        return self._query()

    def insert(self, data):
        return self._query().insert(data)

    def update(self, data):
        return self._query().update(data)


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables = {}
        self.calls = []

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure mock data for a table."""
        self._tables[table_name] = {"data": data, "count": count}

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        config = self._tables.get(name, {"data": [], "count": None})
        return MockSupabaseTable(config["data"], config["count"], self.calls)


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("gemstones", [
                {"id": "1", "serial_number": "SP-1", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("gemstones", [...])
            # Now any code using get_supabase_client() gets the mock
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.gemstone_service.get_supabase_client", return_value=mock_supabase):
            yield mock_supabase


@pytest.fixture
def fake_store():
    """Empty in-memory catalog store."""
    from tests.factories import FakeCatalogStore
    return FakeCatalogStore()


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_store(fake_store):
    """
    FastAPI test client whose routes use the in-memory store.

    Usage:
        def test_endpoint(test_client_with_store, fake_store):
            fake_store.add(GemstoneFactory.create())
            response = test_client_with_store.post("/api/catalog/export", json={})
    """
    from fastapi.testclient import TestClient
    from main import app

    with patch("routes.catalog.get_gemstone_service", return_value=fake_store):
        yield TestClient(app)
