"""
Tests for the store backends and the connection pool.

Run with: uv run pytest tests/test_store.py -v
"""
import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from db import connection
from db.store import MemoryStore, PostgresStore, get_store, split_filter


FIRM = "firm-1"


def client_row(row_id, **fields):
    row = {"id": row_id, "firm_id": FIRM, "type": "individual", "full_name": row_id}
    row.update(fields)
    return row


class TestFilters:
    """Tests for filter key parsing."""

    def test_plain_key_is_equality(self):
        assert split_filter("status") == ("status", "eq")

    def test_operator_suffix(self):
        assert split_filter("start_time__gte") == ("start_time", "gte")

    def test_unknown_operator(self):
        with pytest.raises(ValueError):
            split_filter("name__like")


class TestMemoryStore:
    """Tests for the in-process backend."""

    def test_scoped_by_firm(self):
        store = MemoryStore()
        store.insert("clients", client_row("c1"))
        store.insert("clients", client_row("c2", firm_id="firm-2"))

        assert [r["id"] for r in store.select("clients", FIRM)] == ["c1"]
        assert store.count("clients", "firm-2") == 1

    def test_comparison_and_null_filters(self):
        store = MemoryStore()
        store.insert("clients", client_row("c1", email="a@x.mx"))
        store.insert("clients", client_row("c2"))

        assert [r["id"] for r in store.select("clients", FIRM, {"email": None})] == ["c2"]
        assert [r["id"] for r in store.select("clients", FIRM, {"full_name__gt": "c1"})] == ["c2"]

    def test_nulls_sort_last(self):
        store = MemoryStore()
        store.insert("clients", client_row("c1"))
        store.insert("clients", client_row("c2", email="b@x.mx"))
        store.insert("clients", client_row("c3", email="a@x.mx"))

        rows = store.select("clients", FIRM, order_by="email")
        assert [r["id"] for r in rows] == ["c3", "c2", "c1"]
        assert [r["id"] for r in store.select("clients", FIRM, order_by="email", limit=1)] == ["c3"]

    def test_rows_are_copies(self):
        store = MemoryStore()
        store.insert("clients", client_row("c1"))

        store.select("clients", FIRM)[0]["full_name"] = "changed"
        assert store.select("clients", FIRM)[0]["full_name"] == "c1"

    def test_unknown_column(self):
        store = MemoryStore()
        with pytest.raises(ValueError):
            store.insert("clients", client_row("c1", balance=10))
        with pytest.raises(ValueError):
            store.select("clients", FIRM, {"balance__gt": 0})

    def test_update_and_delete_respect_firm(self):
        store = MemoryStore()
        store.insert("clients", client_row("c1"))

        assert store.update("clients", "firm-2", "c1", {"notes": "x"}) is None
        assert store.delete("clients", "firm-2", "c1") is False
        assert store.update("clients", FIRM, "c1", {"notes": "x"})["notes"] == "x"
        assert store.delete("clients", FIRM, "c1") is True

    def test_find_profile_crosses_firms(self):
        store = MemoryStore()
        store.insert("profiles", {"id": "u1", "firm_id": "firm-2", "full_name": "U", "role": "staff"})
        assert store.find_profile("u1")["firm_id"] == "firm-2"
        assert store.find_profile("u2") is None

    def test_transaction_rolls_back_on_error(self):
        store = MemoryStore()
        store.insert("clients", client_row("c1"))

        with pytest.raises(RuntimeError):
            with store.transaction():
                store.insert("clients", client_row("c2"))
                store.update("clients", FIRM, "c1", {"notes": "x"})
                raise RuntimeError("boom")

        rows = store.select("clients", FIRM)
        assert [r["id"] for r in rows] == ["c1"]
        assert rows[0]["notes"] is None

    def test_transaction_keeps_writes_on_success(self):
        store = MemoryStore()
        with store.transaction():
            store.insert("clients", client_row("c1"))
        assert store.count("clients", FIRM) == 1

    def test_get_store(self):
        assert isinstance(get_store("memory"), MemoryStore)
        assert isinstance(get_store("postgres"), PostgresStore)
        with pytest.raises(ValueError):
            get_store("sqlite")


class TestPostgresStore:
    """Tests for the SQL PostgresStore sends."""

    def test_select(self, mock_get_connection, mock_cursor, assert_sql_contains):
        mock_cursor.fetchall.return_value = [client_row("c1")]

        rows = PostgresStore().select(
            "clients", FIRM, {"type": "company", "email": None}, order_by="created_at", descending=True,
        )

        assert rows == [client_row("c1")]
        assert_sql_contains(
            mock_cursor,
            'SELECT * FROM "clients" WHERE "firm_id" = %s AND "type" = %s AND "email" IS NULL',
            'ORDER BY "created_at" DESC',
        )
        assert mock_cursor.execute.call_args[0][1] == [FIRM, "company"]

    def test_range_filter_and_limit(self, mock_get_connection, mock_cursor, assert_sql_contains):
        start = datetime(2026, 3, 1, tzinfo=timezone.utc)
        PostgresStore().select("calendar_events", FIRM, {"start_time__gte": start}, limit=5)

        assert_sql_contains(mock_cursor, '"start_time" >= %s', "LIMIT %s")
        assert mock_cursor.execute.call_args[0][1] == [FIRM, start, 5]

    def test_firms_scope_on_id(self, mock_get_connection, mock_cursor, assert_sql_contains):
        PostgresStore().select("firms", FIRM)
        assert_sql_contains(mock_cursor, 'FROM "firms" WHERE "id" = %s')

    def test_insert_returns_row(self, mock_get_connection, mock_cursor, assert_sql_contains):
        mock_cursor.fetchone.return_value = client_row("c1")

        row = PostgresStore().insert("clients", client_row("c1"))

        assert row["id"] == "c1"
        assert_sql_contains(mock_cursor, 'INSERT INTO "clients"', "RETURNING *")

    def test_update_missing_row(self, mock_get_connection, mock_cursor, assert_sql_contains):
        assert PostgresStore().update("clients", FIRM, "c1", {"notes": "x"}) is None

        assert_sql_contains(mock_cursor, 'UPDATE "clients" SET "notes" = %s WHERE "firm_id" = %s AND id = %s')
        assert mock_cursor.execute.call_args[0][1] == ["x", FIRM, "c1"]

    def test_delete(self, mock_get_connection, mock_cursor):
        mock_cursor.rowcount = 1
        assert PostgresStore().delete("clients", FIRM, "c1") is True

    def test_count(self, mock_get_connection, mock_cursor, assert_sql_contains):
        mock_cursor.fetchone.return_value = {"n": 3}
        assert PostgresStore().count("cases", FIRM, {"status": "active"}) == 3
        assert_sql_contains(mock_cursor, "SELECT COUNT(*) AS n", '"status" = %s')

    def test_rejects_unknown_column_before_sql(self, mock_get_connection, mock_cursor):
        with pytest.raises(ValueError):
            PostgresStore().select("clients", FIRM, {"name; DROP TABLE clients": 1})
        assert not mock_cursor.execute.called


class TestConnectionPool:
    """Tests for the pooled connection context manager."""

    def test_commits_and_returns_connection(self):
        pool = MagicMock()
        conn = pool.getconn.return_value
        with patch.object(connection, "get_pool", return_value=pool):
            with connection.get_connection() as borrowed:
                assert borrowed is conn

        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()
        pool.putconn.assert_called_once_with(conn)

    def test_rolls_back_on_error(self):
        pool = MagicMock()
        conn = pool.getconn.return_value
        with patch.object(connection, "get_pool", return_value=pool):
            with pytest.raises(RuntimeError):
                with connection.get_connection():
                    raise RuntimeError("boom")

        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()
        pool.putconn.assert_called_once_with(conn)

    def test_requires_database_url(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        with pytest.raises(ValueError):
            connection._get_database_url()

    def test_transaction_shares_one_connection(self):
        pool = MagicMock()
        conn = pool.getconn.return_value
        with patch.object(connection, "get_pool", return_value=pool):
            with connection.transaction() as outer:
                with connection.get_connection() as first:
                    pass
                with connection.transaction():
                    with connection.get_connection() as second:
                        pass
                conn.commit.assert_not_called()

        assert first is second is outer is conn
        pool.getconn.assert_called_once()
        conn.commit.assert_called_once()
        pool.putconn.assert_called_once_with(conn)

    def test_transaction_rolls_back_every_statement(self):
        pool = MagicMock()
        conn = pool.getconn.return_value
        with patch.object(connection, "get_pool", return_value=pool):
            with pytest.raises(RuntimeError):
                with connection.transaction():
                    with connection.get_connection() as borrowed:
                        borrowed.cursor().execute("INSERT INTO invoices DEFAULT VALUES")
                    raise RuntimeError("item insert failed")

            # The next statement gets a fresh connection again
            with connection.get_connection():
                pass

        conn.rollback.assert_called_once()
        assert pool.getconn.call_count == 2
        assert conn.commit.call_count == 1

    def test_postgres_store_writes_share_the_transaction(self):
        pool = MagicMock()
        conn = pool.getconn.return_value
        conn.cursor.return_value.fetchone.return_value = {"id": "c1"}
        store = PostgresStore()
        with patch.object(connection, "get_pool", return_value=pool):
            with store.transaction():
                store.insert("clients", client_row("c1"))
                store.insert("clients", client_row("c2"))

        pool.getconn.assert_called_once()
        conn.commit.assert_called_once()
