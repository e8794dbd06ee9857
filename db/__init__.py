"""
db/: Practice Persistence Layer

All durable state goes through a Store. Every tenant table uses firm_id
for multi-tenant isolation.

Usage:
    from db import get_store, ensure_all_tables
    from db.store import MemoryStore, PostgresStore

The PostgreSQL pool is initialized on first use from DATABASE_URL.
"""
from db.connection import get_connection, get_pool, close_pool, transaction
from db.schema import ensure_all_tables
from db.store import Store, PostgresStore, MemoryStore, get_store


__all__ = [
    "get_connection",
    "get_pool",
    "close_pool",
    "transaction",
    "ensure_all_tables",
    "Store",
    "PostgresStore",
    "MemoryStore",
    "get_store",
]
