"""Shared fixtures: row builders, canned providers and a small SQLite bank schema."""

import sqlite3
from typing import Any, Dict, Optional

import pytest

from metabind.providers import MemoryProvider, Operation


def _table_row(cat: Optional[str], schem: Optional[str], name: str, table_type: str = "TABLE") -> Dict[str, Any]:
    return {
        "TABLE_CAT": cat,
        "TABLE_SCHEM": schem,
        "TABLE_NAME": name,
        "TABLE_TYPE": table_type,
        "REMARKS": None,
        "TYPE_CAT": None,
        "TYPE_SCHEM": None,
        "TYPE_NAME": None,
        "SELF_REFERENCING_COL_NAME": None,
        "REF_GENERATION": None,
    }


def _column_row(
    cat: Optional[str],
    schem: Optional[str],
    table: str,
    name: str,
    position: int = 1,
    type_name: str = "INTEGER",
    data_type: int = 4,
) -> Dict[str, Any]:
    return {
        "TABLE_CAT": cat,
        "TABLE_SCHEM": schem,
        "TABLE_NAME": table,
        "COLUMN_NAME": name,
        "DATA_TYPE": data_type,
        "TYPE_NAME": type_name,
        "COLUMN_SIZE": 10,
        "BUFFER_LENGTH": None,
        "DECIMAL_DIGITS": None,
        "NUM_PREC_RADIX": 10,
        "NULLABLE": 1,
        "REMARKS": None,
        "COLUMN_DEF": None,
        "SQL_DATA_TYPE": None,
        "SQL_DATETIME_SUB": None,
        "CHAR_OCTET_LENGTH": 10,
        "ORDINAL_POSITION": position,
        "IS_NULLABLE": "YES",
        "SCOPE_CATALOG": None,
        "SCOPE_SCHEMA": None,
        "SCOPE_TABLE": None,
        "SOURCE_DATA_TYPE": None,
        "IS_AUTOINCREMENT": "NO",
        "IS_GENERATEDCOLUMN": "NO",
    }


def _key_row(
    parent: str,
    parent_column: str,
    child: str,
    child_column: str,
    cat: Optional[str] = "db1",
    schem: Optional[str] = "public",
) -> Dict[str, Any]:
    return {
        "PKTABLE_CAT": cat,
        "PKTABLE_SCHEM": schem,
        "PKTABLE_NAME": parent,
        "PKCOLUMN_NAME": parent_column,
        "FKTABLE_CAT": cat,
        "FKTABLE_SCHEM": schem,
        "FKTABLE_NAME": child,
        "FKCOLUMN_NAME": child_column,
        "KEY_SEQ": 1,
        "UPDATE_RULE": 3,
        "DELETE_RULE": 0,
        "FK_NAME": f"fk_{child}_{parent}",
        "PK_NAME": f"pk_{parent}",
        "DEFERRABILITY": 7,
    }


@pytest.fixture
def table_row():
    """Builder for a complete get_tables row."""
    return _table_row


@pytest.fixture
def column_row():
    """Builder for a complete get_columns row."""
    return _column_row


@pytest.fixture
def key_row():
    """Builder for a complete foreign key row."""
    return _key_row


def _bank_provider():
    """
    One catalog (db1) with one schema (public) holding accounts and customers.

    accounts.customer_id references customers.id; every other operation
    returns no rows.
    """
    def schemas(catalog, schema_pattern):
        return [{"TABLE_SCHEM": "public", "TABLE_CATALOG": catalog}]

    def tables(catalog, schema_pattern, table_name_pattern, types):
        return [
            _table_row(catalog, schema_pattern, "accounts"),
            _table_row(catalog, schema_pattern, "customers"),
        ]

    def columns(catalog, schema, table, column_name_pattern):
        return [
            _column_row(catalog, schema, table, "id", 1),
            _column_row(catalog, schema, table, "name", 2, "VARCHAR", 12),
        ]

    def cross_reference(pcat, pschem, ptable, fcat, fschem, ftable):
        if (ptable, ftable) == ("customers", "accounts"):
            return [_key_row("customers", "id", "accounts", "customer_id", pcat, pschem)]
        return []

    return MemoryProvider({
        Operation.GET_CATALOGS: [{"TABLE_CAT": "db1"}],
        Operation.GET_SCHEMAS: schemas,
        Operation.GET_TABLES: tables,
        Operation.GET_COLUMNS: columns,
        Operation.GET_CROSS_REFERENCE: cross_reference,
    })


@pytest.fixture
def bank_provider():
    return _bank_provider()


@pytest.fixture
def make_bank_provider():
    """Factory for independent bank providers."""
    return _bank_provider


BANK_DDL = """
CREATE TABLE customers (
    id INTEGER PRIMARY KEY,
    name VARCHAR(100) NOT NULL,
    email TEXT
);
CREATE TABLE accounts (
    id INTEGER PRIMARY KEY,
    customer_id INTEGER NOT NULL REFERENCES customers(id) ON DELETE CASCADE,
    balance NUMERIC(18,2) DEFAULT 0
);
CREATE UNIQUE INDEX ix_customers_email ON customers(email);
CREATE INDEX ix_accounts_customer ON accounts(customer_id);
CREATE VIEW v_balances AS
    SELECT c.name, a.balance FROM customers c JOIN accounts a ON a.customer_id = c.id;
"""


@pytest.fixture
def bank_db(tmp_path):
    """Path of a SQLite file with customers, accounts and a view."""
    path = tmp_path / "bank.db"
    conn = sqlite3.connect(path)
    conn.executescript(BANK_DDL)
    conn.commit()
    conn.close()
    return path
