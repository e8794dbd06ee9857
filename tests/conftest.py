"""
Shared pytest fixtures for the Law Firm Practice Manager tests.

Provides:
- In-memory store with two onboarded firms
- Registries bound to the first firm
- Sample client and case
- Mock cursor/connection for PostgresStore SQL tests
"""
import sys
from contextlib import contextmanager
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from psycopg2 import sql

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from db.store import MemoryStore
from tenant import onboard_firm


@pytest.fixture
def store():
    """Fresh in-memory store."""
    return MemoryStore()


@pytest.fixture
def firm_a(store):
    """Context of the admin of the first firm."""
    return onboard_firm(store, "Despacho Alfa", "user-a", "Ana Alvarez", "ana@alfa.mx")


@pytest.fixture
def firm_b(store):
    """Context of the admin of a second, unrelated firm."""
    return onboard_firm(store, "Bufete Beta", "user-b", "Bruno Beltran", "bruno@beta.mx")


@pytest.fixture
def client_registry(store, firm_a):
    from clients import ClientRegistry
    return ClientRegistry(store, firm_a)


@pytest.fixture
def case_ledger(store, firm_a):
    from cases import CaseLedger
    return CaseLedger(store, firm_a)


@pytest.fixture
def time_log(store, firm_a):
    from time_entries import TimeLog
    return TimeLog(store, firm_a)


@pytest.fixture
def calendar(store, firm_a):
    from calendar_events import CalendarManager
    return CalendarManager(store, firm_a)


@pytest.fixture
def document_registry(store, firm_a):
    from documents import DocumentRegistry
    return DocumentRegistry(store, firm_a)


@pytest.fixture
def billing_engine(store, firm_a):
    from billing import BillingEngine
    return BillingEngine(store, firm_a)


@pytest.fixture
def sample_client(client_registry):
    """An individual client of the first firm."""
    return client_registry.create(
        type="individual",
        full_name="Juan Perez",
        email="juan@example.com",
        phone="555-0100",
    )


@pytest.fixture
def sample_case(case_ledger, sample_client):
    """An hourly case at 300/h for the sample client."""
    return case_ledger.create(
        client_id=sample_client.id,
        title="Juan Perez - Contract dispute",
        billing_type="hourly",
        hourly_rate="300",
        practice_area="Civil",
    )


# ============================================================================
# PostgreSQL mocks
# ============================================================================

@pytest.fixture
def mock_cursor():
    """
    Fixture providing a mock cursor with database methods.

    Supports:
    - execute(sql, params)
    - fetchone()
    - fetchall()
    """
    cursor = MagicMock()
    cursor.fetchone = MagicMock(return_value=None)
    cursor.fetchall = MagicMock(return_value=[])
    cursor.execute = MagicMock(return_value=None)
    cursor.rowcount = 0
    return cursor


@pytest.fixture
def mock_connection(mock_cursor):
    """
    Fixture providing a mock PostgreSQL connection.

    Creates the mock cursor via cursor() and supports commit()/rollback().
    """
    conn = MagicMock()
    conn.cursor = MagicMock(return_value=mock_cursor)
    conn.commit = MagicMock()
    conn.rollback = MagicMock()
    return conn


@pytest.fixture
def mock_get_connection(mock_connection):
    """
    Patch the connection used by PostgresStore.

    db.store imports get_connection by name, so the patch goes there.
    """
    @contextmanager
    def get_connection_mock():
        yield mock_connection

    with patch('db.store.get_connection', side_effect=get_connection_mock):
        yield get_connection_mock


def render_sql(query) -> str:
    """Flatten a psycopg2.sql composable into text without a live connection."""
    if isinstance(query, str):
        return query
    if isinstance(query, sql.Composed):
        return "".join(render_sql(part) for part in query.seq)
    if isinstance(query, sql.Identifier):
        return ".".join(f'"{s}"' for s in query.strings)
    if isinstance(query, sql.Placeholder):
        return "%s"
    if isinstance(query, sql.SQL):
        return query.string
    raise TypeError(f"Cannot render {query!r}")


@pytest.fixture
def assert_sql_contains():
    """
    Helper fixture for asserting SQL content in mocked execute calls.

    Usage:
        assert_sql_contains(cursor, "SELECT", 'FROM "clients"')
    """
    def _assert(cursor, *keywords):
        assert cursor.execute.called, "execute() was not called"
        for call in cursor.execute.call_args_list:
            text = render_sql(call[0][0])
            if all(kw in text for kw in keywords):
                return text
        raise AssertionError(
            f"SQL containing all of {keywords} not found in execute calls: "
            f"{[render_sql(c[0][0]) for c in cursor.execute.call_args_list]}"
        )
    return _assert
