"""
Persistent Store Backends

A Store is the generic persistence collaborator: filtered reads and
writes keyed by table and firm_id. The practice modules never talk to a
Store directly; they go through tenant.TenantScopedStore.

Filters are equality matches unless the key carries an operator suffix:

    {"status": "active"}                  status = 'active'
    {"start_time__gte": start}            start_time >= start
    {"case_id": None}                     case_id IS NULL
"""
import copy
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Tuple

from psycopg2 import sql

from db.connection import get_connection, transaction
from db.schema import TABLE_COLUMNS

logger = logging.getLogger(__name__)


OPERATORS = {
    "eq": "=",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
}

# Column that carries the tenant for each table
SCOPE_COLUMNS = {"firms": "id"}


def split_filter(key: str) -> Tuple[str, str]:
    """'start_time__gte' -> ('start_time', 'gte')."""
    if "__" in key:
        column, op = key.rsplit("__", 1)
        if op not in OPERATORS:
            raise ValueError(f"Unsupported filter operator: {op}")
        return column, op
    return key, "eq"


def scope_column(table: str) -> str:
    return SCOPE_COLUMNS.get(table, "firm_id")


def _check_columns(table: str, columns) -> None:
    allowed = TABLE_COLUMNS.get(table)
    if allowed is None:
        raise ValueError(f"Unknown table: {table}")
    unknown = [c for c in columns if c not in allowed]
    if unknown:
        raise ValueError(f"Unknown column(s) for {table}: {', '.join(unknown)}")


class Store:
    """Interface every backend implements."""

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def update(self, table: str, firm_id: str, row_id: str,
               fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def delete(self, table: str, firm_id: str, row_id: str) -> bool:
        raise NotImplementedError

    def select(self, table: str, firm_id: str, filters: Dict[str, Any] = None,
               order_by: str = None, descending: bool = False,
               limit: int = None) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def count(self, table: str, firm_id: str, filters: Dict[str, Any] = None) -> int:
        raise NotImplementedError

    def find_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Look up an actor's profile across all firms (tenant resolution only)."""
        raise NotImplementedError

    def transaction(self):
        """Context manager: writes inside the block land together or not at all."""
        raise NotImplementedError


class PostgresStore(Store):
    """Store backed by the pooled psycopg2 connection."""

    def transaction(self):
        return transaction()

    def _where(self, table: str, firm_id: str, filters: Dict[str, Any] = None):
        clauses = [sql.SQL("{} = %s").format(sql.Identifier(scope_column(table)))]
        params = [firm_id]
        for key, value in (filters or {}).items():
            column, op = split_filter(key)
            _check_columns(table, [column])
            if value is None and op == "eq":
                clauses.append(sql.SQL("{} IS NULL").format(sql.Identifier(column)))
                continue
            clauses.append(
                sql.SQL("{} " + OPERATORS[op] + " %s").format(sql.Identifier(column))
            )
            params.append(value)
        return sql.SQL(" AND ").join(clauses), params

    def insert(self, table, row):
        _check_columns(table, row.keys())
        columns = list(row.keys())
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
            sql.Identifier(table),
            sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            sql.SQL(", ").join(sql.Placeholder() for _ in columns),
        )
        with get_connection() as conn:
            cur = conn.cursor()
            cur.execute(query, [row[c] for c in columns])
            return dict(cur.fetchone())

    def update(self, table, firm_id, row_id, fields):
        _check_columns(table, fields.keys())
        if not fields:
            rows = self.select(table, firm_id, {"id": row_id})
            return rows[0] if rows else None
        columns = list(fields.keys())
        query = sql.SQL("UPDATE {} SET {} WHERE {} = %s AND id = %s RETURNING *").format(
            sql.Identifier(table),
            sql.SQL(", ").join(
                sql.SQL("{} = %s").format(sql.Identifier(c)) for c in columns
            ),
            sql.Identifier(scope_column(table)),
        )
        with get_connection() as conn:
            cur = conn.cursor()
            cur.execute(query, [fields[c] for c in columns] + [firm_id, row_id])
            row = cur.fetchone()
            return dict(row) if row else None

    def delete(self, table, firm_id, row_id):
        query = sql.SQL("DELETE FROM {} WHERE {} = %s AND id = %s").format(
            sql.Identifier(table), sql.Identifier(scope_column(table)),
        )
        with get_connection() as conn:
            cur = conn.cursor()
            cur.execute(query, (firm_id, row_id))
            return cur.rowcount > 0

    def select(self, table, firm_id, filters=None, order_by=None, descending=False, limit=None):
        where, params = self._where(table, firm_id, filters)
        query = sql.SQL("SELECT * FROM {} WHERE {}").format(sql.Identifier(table), where)
        if order_by:
            _check_columns(table, [order_by])
            query += sql.SQL(" ORDER BY {} " + ("DESC" if descending else "ASC")).format(
                sql.Identifier(order_by)
            )
        if limit:
            query += sql.SQL(" LIMIT %s")
            params.append(limit)
        with get_connection() as conn:
            cur = conn.cursor()
            cur.execute(query, params)
            return [dict(r) for r in cur.fetchall()]

    def count(self, table, firm_id, filters=None):
        where, params = self._where(table, firm_id, filters)
        query = sql.SQL("SELECT COUNT(*) AS n FROM {} WHERE {}").format(
            sql.Identifier(table), where,
        )
        with get_connection() as conn:
            cur = conn.cursor()
            cur.execute(query, params)
            row = cur.fetchone()
            return row["n"] if row else 0

    def find_profile(self, user_id):
        with get_connection() as conn:
            cur = conn.cursor()
            cur.execute("SELECT * FROM profiles WHERE id = %s", (user_id,))
            row = cur.fetchone()
            return dict(row) if row else None


class MemoryStore(Store):
    """In-process store with the same filter semantics as PostgresStore."""

    def __init__(self):
        self._tables: Dict[str, Dict[str, Dict[str, Any]]] = {
            table: {} for table in TABLE_COLUMNS
        }

    @staticmethod
    def _matches(row: Dict[str, Any], filters: Dict[str, Any]) -> bool:
        for key, value in filters.items():
            column, op = split_filter(key)
            actual = row.get(column)
            if op == "eq":
                if actual != value:
                    return False
                continue
            if actual is None or value is None:
                return False
            if op == "gt" and not actual > value:
                return False
            if op == "gte" and not actual >= value:
                return False
            if op == "lt" and not actual < value:
                return False
            if op == "lte" and not actual <= value:
                return False
        return True

    def _scoped(self, table, firm_id, filters=None):
        column = scope_column(table)
        for key in filters or {}:
            _check_columns(table, [split_filter(key)[0]])
        return [
            row for row in self._tables[table].values()
            if row.get(column) == firm_id and self._matches(row, filters or {})
        ]

    def insert(self, table, row):
        _check_columns(table, row.keys())
        stored = {column: None for column in TABLE_COLUMNS[table]}
        stored.update(copy.deepcopy(row))
        self._tables[table][stored["id"]] = stored
        return copy.deepcopy(stored)

    def update(self, table, firm_id, row_id, fields):
        _check_columns(table, fields.keys())
        row = self._tables[table].get(row_id)
        if row is None or row.get(scope_column(table)) != firm_id:
            return None
        row.update(copy.deepcopy(fields))
        return copy.deepcopy(row)

    def delete(self, table, firm_id, row_id):
        row = self._tables[table].get(row_id)
        if row is None or row.get(scope_column(table)) != firm_id:
            return False
        del self._tables[table][row_id]
        return True

    def select(self, table, firm_id, filters=None, order_by=None, descending=False, limit=None):
        rows = self._scoped(table, firm_id, filters)
        if order_by:
            _check_columns(table, [order_by])
            present = [r for r in rows if r.get(order_by) is not None]
            missing = [r for r in rows if r.get(order_by) is None]
            present.sort(key=lambda r: r[order_by], reverse=descending)
            # Postgres puts NULLs last ascending, first descending
            rows = missing + present if descending else present + missing
        if limit:
            rows = rows[:limit]
        return [copy.deepcopy(r) for r in rows]

    def count(self, table, firm_id, filters=None):
        return len(self._scoped(table, firm_id, filters))

    def find_profile(self, user_id):
        row = self._tables["profiles"].get(user_id)
        return copy.deepcopy(row) if row else None

    @contextmanager
    def transaction(self):
        snapshot = copy.deepcopy(self._tables)
        try:
            yield self
        except Exception:
            self._tables = snapshot
            raise


def get_store(backend: str = None) -> Store:
    """Build the configured backend."""
    from config import STORE_BACKEND

    backend = backend or STORE_BACKEND
    if backend == "memory":
        return MemoryStore()
    if backend == "postgres":
        return PostgresStore()
    raise ValueError(f"Unknown store backend: {backend}")
