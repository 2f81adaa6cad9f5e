"""
Shared test fixtures.

The Supabase mock keeps rows per table in memory and honours the
filters the services use, so create-vs-update decisions are real.
"""

import os
import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings require Supabase credentials at import time
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from unittest.mock import patch
from datetime import datetime
from typing import Generator
from uuid import uuid4

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data=None, count: int = None):
        self.data = data if data is not None else []
        if count is not None:
            self.count = count
        elif isinstance(self.data, list):
            self.count = len(self.data)
        else:
            self.count = 1 if self.data else 0


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods."""

    def __init__(self, table: "MockSupabaseTable", operation: str, payload=None):
        self._table = table
        self._operation = operation
        self._payload = payload
        self._filters = []
        self._order = None
        self._limit = None
        self._is_single = False

    def select(self, *args, **kwargs):
        return self

    def eq(self, column, value):
        self._filters.append(("eq", column, value))
        return self

    def neq(self, column, value):
        self._filters.append(("neq", column, value))
        return self

    def in_(self, column, values):
        self._filters.append(("in", column, list(values)))
        return self

    def single(self):
        self._is_single = True
        return self

    def order(self, column, desc: bool = False, **kwargs):
        self._order = (column, desc)
        return self

    def range(self, start, end):
        return self

    def limit(self, count):
        self._limit = count
        return self

    def _matches(self, row: dict) -> bool:
        for op, column, value in self._filters:
            if op == "eq" and row.get(column) != value:
                return False
            if op == "neq" and row.get(column) == value:
                return False
            if op == "in" and row.get(column) not in value:
                return False
        return True

    def execute(self) -> MockSupabaseResponse:
        self._table.record_call(self._operation, self._payload, self._filters)

        if self._operation == "insert":
            return MockSupabaseResponse(data=self._table.insert_rows(self._payload))

        matched = [row for row in self._table.rows if self._matches(row)]

        if self._operation == "update":
            now = datetime.utcnow().isoformat() + "Z"
            for row in matched:
                row.update(self._payload)
                row["updated_at"] = now
            return MockSupabaseResponse(data=[dict(r) for r in matched])

        if self._operation == "delete":
            self._table.rows[:] = [r for r in self._table.rows if r not in matched]
            return MockSupabaseResponse(data=[dict(r) for r in matched])

        rows = [dict(r) for r in matched]
        if self._order:
            column, desc = self._order
            rows.sort(key=lambda r: str(r.get(column) or ""), reverse=desc)
        if self._limit is not None:
            rows = rows[:self._limit]

        if self._is_single:
            data = rows[0] if rows else None
            return MockSupabaseResponse(data=data, count=1 if data else 0)
        return MockSupabaseResponse(data=rows)


class MockSupabaseTable:
    """Mock Supabase table backed by a shared row list."""

    def __init__(self, client: "MockSupabaseClient", name: str):
        self._client = client
        self.name = name

    @property
    def rows(self) -> list:
        return self._client.rows(self.name)

    def record_call(self, operation: str, payload, filters) -> None:
        self._client.calls.append({
            "table": self.name,
            "operation": operation,
            "payload": payload,
            "filters": list(filters),
        })
        self._client.maybe_fail(self.name, operation)

    def insert_rows(self, data) -> list:
        items = data if isinstance(data, list) else [data]
        now = datetime.utcnow().isoformat() + "Z"
        created = []
        for item in items:
            row = dict(item)
            row.setdefault("id", str(uuid4()))
            row.setdefault("created_at", now)
            self.rows.append(row)
            created.append(dict(row))
        return created

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self, "select")

    def insert(self, data):
        return MockSupabaseQuery(self, "insert", data)

    def update(self, data):
        return MockSupabaseQuery(self, "update", dict(data))

    def delete(self):
        return MockSupabaseQuery(self, "delete")


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables: dict[str, list] = {}
        self._failures: dict[tuple[str, str], int] = {}
        self.calls: list[dict] = []

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure rows for a table."""
        self._tables[table_name] = [dict(row) for row in data]

    def rows(self, table_name: str) -> list:
        """Live row list for a table."""
        return self._tables.setdefault(table_name, [])

    def fail_on(self, table_name: str, operation: str, after: int = 0):
        """Make an operation raise once `after` calls of it have succeeded."""
        self._failures[(table_name, operation)] = after

    def maybe_fail(self, table_name: str, operation: str):
        key = (table_name, operation)
        if key not in self._failures:
            return
        if self._failures[key] <= 0:
            raise Exception(f"mock {operation} on {table_name} failed")
        self._failures[key] -= 1

    def calls_for(self, table_name: str, operation: str) -> list[dict]:
        return [
            c for c in self.calls
            if c["table"] == table_name and c["operation"] == operation
        ]

    def table(self, name: str) -> MockSupabaseTable:
        return MockSupabaseTable(self, name)


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [
                {"id": "1", "title": "Infusion Pump", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("products", [...])
            # Now any code using get_supabase_client() gets the mock
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.catalog_reconciler.get_supabase_client", return_value=mock_supabase):
            with patch("services.catalog_sync_service.get_supabase_client", return_value=mock_supabase):
                with patch("services.catalog_sync_service._catalog_sync_service", None):
                    yield mock_supabase


@pytest.fixture
def full_mapping_rules() -> dict:
    """Mapping rules covering every product field."""
    return {
        "title": "name",
        "description": "details",
        "category": "type",
        "condition": "grade",
        "price": "cost",
        "images": "photos",
        "warranty_duration": "warranty",
    }


@pytest.fixture
def sample_csv() -> str:
    """Small CSV feed matching full_mapping_rules."""
    return (
        "name,details,type,grade,cost,photos,warranty\n"
        "Infusion Pump,Volumetric pump,Infusion,excellent,1200,a.jpg|b.jpg,12\n"
        "Patient Monitor,5-lead ECG,Monitoring,good,850.50,c.jpg,6\n"
    )


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(mock_db):
    """
    Create FastAPI test client with mocked database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            mock_supabase.set_table_data("catalog_sync_configs", [...])
            response = test_client_with_mock_db.get("/api/catalog-sync/configs/abc")
    """
    from fastapi.testclient import TestClient
    from main import app

    yield TestClient(app)
