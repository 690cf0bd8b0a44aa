"""
Introspection providers for SQLite, Oracle and in-memory snapshots.

All providers implement the MetadataProvider operations and return
RowCursor results with standard column labels.
"""

from metabind.providers.base import (
    DbApiCursor,
    MetadataProvider,
    Operation,
    Param,
    RowCursor,
    RowsCursor,
    UnsupportedOperation,
)
from metabind.providers.memory import MemoryProvider
from metabind.providers.oracle import OracleProvider
from metabind.providers.sqlite import SqliteProvider

__all__ = [
    "DbApiCursor",
    "MetadataProvider",
    "Operation",
    "Param",
    "RowCursor",
    "RowsCursor",
    "UnsupportedOperation",
    "MemoryProvider",
    "OracleProvider",
    "SqliteProvider",
]
