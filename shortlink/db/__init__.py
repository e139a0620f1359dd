"""
Database module with abstraction layer.

This module provides:
- RecordStore interface: the CRUD contract the URL record service depends on
- SQLRecordStore: SQLModel/SQLAlchemy implementation (SQLite by default)
- Database: explicitly owned engine/session handle with initialize/shutdown

To add a new database backend, add a DatabaseAdapter in adapters.py; to
replace SQL altogether, implement RecordStore.
"""

from shortlink.db.interface import RecordStore
from shortlink.db.models import UrlRecord
from shortlink.db.session import Database
from shortlink.db.sql_store import SQLRecordStore

__all__ = [
    "Database",
    "RecordStore",
    "SQLRecordStore",
    "UrlRecord",
]
