"""
SQLite provider built on the sqlite3 PRAGMA interface.

SQLite maps onto the catalog/schema/table model as follows:
- Catalogs: attached databases from PRAGMA database_list ("main", ...)
- Schemas: none; the engine synthesizes a virtual schema per catalog
- Tables: sqlite_master entries of type table and view
- Keys and indexes: PRAGMA table_info / foreign_key_list / index_list / index_info
"""

from __future__ import annotations

import logging
import re
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from metabind.errors import ConnectionClosedError
from metabind.providers.base import MetadataProvider, RowCursor, RowsCursor

logger = logging.getLogger(__name__)


# Standard SQL type codes reported in DATA_TYPE.
SQL_INTEGER = 4
SQL_NUMERIC = 2
SQL_DOUBLE = 8
SQL_VARCHAR = 12
SQL_BLOB = 2004

# Foreign key rule codes for UPDATE_RULE / DELETE_RULE.
FK_RULES = {
    "CASCADE": 0,
    "RESTRICT": 1,
    "SET NULL": 2,
    "NO ACTION": 3,
    "SET DEFAULT": 4,
}
NOT_DEFERRABLE = 7

# Index TYPE code for a regular (non-statistic) index.
INDEX_OTHER = 3

BEST_ROW_NOT_PSEUDO = 1
BEST_ROW_PSEUDO = 2

CATALOG_LABELS = ("TABLE_CAT",)
SCHEMA_LABELS = ("TABLE_SCHEM", "TABLE_CATALOG")
TABLE_LABELS = (
    "TABLE_CAT", "TABLE_SCHEM", "TABLE_NAME", "TABLE_TYPE", "REMARKS", "TYPE_CAT",
    "TYPE_SCHEM", "TYPE_NAME", "SELF_REFERENCING_COL_NAME", "REF_GENERATION",
)
COLUMN_LABELS = (
    "TABLE_CAT", "TABLE_SCHEM", "TABLE_NAME", "COLUMN_NAME", "DATA_TYPE", "TYPE_NAME",
    "COLUMN_SIZE", "BUFFER_LENGTH", "DECIMAL_DIGITS", "NUM_PREC_RADIX", "NULLABLE", "REMARKS",
    "COLUMN_DEF", "SQL_DATA_TYPE", "SQL_DATETIME_SUB", "CHAR_OCTET_LENGTH", "ORDINAL_POSITION",
    "IS_NULLABLE", "SCOPE_CATALOG", "SCOPE_SCHEMA", "SCOPE_TABLE", "SOURCE_DATA_TYPE",
    "IS_AUTOINCREMENT", "IS_GENERATEDCOLUMN",
)
PRIMARY_KEY_LABELS = ("TABLE_CAT", "TABLE_SCHEM", "TABLE_NAME", "COLUMN_NAME", "KEY_SEQ", "PK_NAME")
KEY_LABELS = (
    "PKTABLE_CAT", "PKTABLE_SCHEM", "PKTABLE_NAME", "PKCOLUMN_NAME", "FKTABLE_CAT",
    "FKTABLE_SCHEM", "FKTABLE_NAME", "FKCOLUMN_NAME", "KEY_SEQ", "UPDATE_RULE", "DELETE_RULE",
    "FK_NAME", "PK_NAME", "DEFERRABILITY",
)
INDEX_LABELS = (
    "TABLE_CAT", "TABLE_SCHEM", "TABLE_NAME", "NON_UNIQUE", "INDEX_QUALIFIER", "INDEX_NAME",
    "TYPE", "ORDINAL_POSITION", "COLUMN_NAME", "ASC_OR_DESC", "CARDINALITY", "PAGES",
    "FILTER_CONDITION",
)
BEST_ROW_LABELS = (
    "SCOPE", "COLUMN_NAME", "DATA_TYPE", "TYPE_NAME", "COLUMN_SIZE", "BUFFER_LENGTH",
    "DECIMAL_DIGITS", "PSEUDO_COLUMN",
)
TYPE_INFO_LABELS = (
    "TYPE_NAME", "DATA_TYPE", "PRECISION", "LITERAL_PREFIX", "LITERAL_SUFFIX", "CREATE_PARAMS",
    "NULLABLE", "CASE_SENSITIVE", "SEARCHABLE", "UNSIGNED_ATTRIBUTE", "FIXED_PREC_SCALE",
    "AUTO_INCREMENT", "LOCAL_TYPE_NAME", "MINIMUM_SCALE", "MAXIMUM_SCALE", "SQL_DATA_TYPE",
    "SQL_DATETIME_SUB", "NUM_PREC_RADIX",
)

TABLE_TYPES = {"table": "TABLE", "view": "VIEW"}


def _type_info(name: str, data_type: int, precision: int, prefix: Optional[str] = None) -> Dict[str, Any]:
    return {
        "TYPE_NAME": name, "DATA_TYPE": data_type, "PRECISION": precision,
        "LITERAL_PREFIX": prefix, "LITERAL_SUFFIX": prefix, "CREATE_PARAMS": None,
        "NULLABLE": 1, "CASE_SENSITIVE": data_type == SQL_VARCHAR, "SEARCHABLE": 3,
        "UNSIGNED_ATTRIBUTE": False, "FIXED_PREC_SCALE": False,
        "AUTO_INCREMENT": data_type == SQL_INTEGER, "LOCAL_TYPE_NAME": None,
        "MINIMUM_SCALE": 0, "MAXIMUM_SCALE": 0, "SQL_DATA_TYPE": None,
        "SQL_DATETIME_SUB": None, "NUM_PREC_RADIX": 10,
    }


TYPE_INFO_ROWS = [
    _type_info("BLOB", SQL_BLOB, 0, "X'"),
    _type_info("INTEGER", SQL_INTEGER, 19),
    _type_info("NUMERIC", SQL_NUMERIC, 15),
    _type_info("REAL", SQL_DOUBLE, 15),
    _type_info("TEXT", SQL_VARCHAR, 0, "'"),
]

_SIZE = re.compile(r"\(\s*(\d+)\s*(?:,\s*(\d+)\s*)?\)")


def column_type(declared: Optional[str]) -> Tuple[int, str, int, Optional[int]]:
    """
    Map a declared column type to (DATA_TYPE, TYPE_NAME, COLUMN_SIZE, DECIMAL_DIGITS).

    Follows SQLite's type affinity rules.
    """
    declared = (declared or "").strip()
    upper = declared.upper()
    size, digits = 0, None
    match = _SIZE.search(upper)
    if match:
        size = int(match.group(1))
        digits = int(match.group(2)) if match.group(2) else None
    name = _SIZE.sub("", upper).strip() or "BLOB"

    if "INT" in upper:
        return SQL_INTEGER, name, size or 19, None
    if any(t in upper for t in ("CHAR", "CLOB", "TEXT")):
        return SQL_VARCHAR, name, size, None
    if not upper or "BLOB" in upper:
        return SQL_BLOB, name, size, None
    if any(t in upper for t in ("REAL", "FLOA", "DOUB")):
        return SQL_DOUBLE, name, size or 15, digits
    return SQL_NUMERIC, name, size or 15, digits


def like(value: Optional[str], pattern: Optional[str]) -> bool:
    """Case-sensitive SQL LIKE match; a None pattern matches anything."""
    if pattern is None:
        return True
    if value is None:
        return False
    regex = "".join(
        ".*" if ch == "%" else "." if ch == "_" else re.escape(ch)
        for ch in pattern
    )
    return re.fullmatch(regex, value, re.DOTALL) is not None


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


class SqliteProvider(MetadataProvider):
    """
    MetadataProvider over one SQLite database (plus attached databases).

    Accepts either a database path, opened on first use and closed on exit,
    or an existing sqlite3 connection, which stays owned by the caller.
    """

    def __init__(self, database: Union[str, Path, sqlite3.Connection]):
        if isinstance(database, sqlite3.Connection):
            self.path = None
            self._conn = database
            self._owned = False
        else:
            self.path = str(database)
            self._conn = None
            self._owned = True
        self._closed = False

    def connect(self) -> None:
        """Open the database file."""
        self._closed = False
        if self._conn is None:
            self._conn = sqlite3.connect(self.path)
            logger.info(f"Connected to SQLite database {self.path}")

    def disconnect(self) -> None:
        """Close the connection if this provider opened it."""
        if self._conn is not None and self._owned:
            self._conn.close()
            self._conn = None
        self._closed = True

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()

    def _execute(self, sql: str, parameters: Sequence[Any] = ()) -> List[tuple]:
        if self._closed:
            raise ConnectionClosedError(f"SQLite provider for {self.path or 'connection'} is closed")
        if self._conn is None:
            self.connect()
        cursor = self._conn.execute(sql, parameters)
        try:
            return cursor.fetchall()
        finally:
            cursor.close()

    # -- helpers ------------------------------------------------------------

    def _catalogs(self, catalog: Optional[str]) -> List[str]:
        names = [row[1] for row in self._execute("PRAGMA database_list") if row[1] != "temp"]
        if catalog is None:
            return names
        return [name for name in names if name == catalog]

    def _tables(
        self,
        catalog: Optional[str],
        table_pattern: Optional[str],
        types: Optional[Sequence[str]] = None,
    ) -> Iterator[Tuple[str, str, str]]:
        """Yield (catalog, table name, TABLE_TYPE) in catalog, name order."""
        wanted = {t.upper() for t in types} if types is not None else None
        for cat in self._catalogs(catalog):
            rows = self._execute(
                f"SELECT name, type FROM {_quote(cat)}.sqlite_master "
                "WHERE type IN ('table', 'view') AND name NOT LIKE 'sqlite_%' ORDER BY name"
            )
            for name, kind in rows:
                table_type = TABLE_TYPES[kind]
                if wanted is not None and table_type not in wanted:
                    continue
                if like(name, table_pattern):
                    yield cat, name, table_type

    def _table_info(self, catalog: str, table: str) -> List[tuple]:
        return self._execute(f"PRAGMA {_quote(catalog)}.table_info({_quote(table)})")

    def _foreign_keys(self, catalog: str, table: str) -> List[Dict[str, Any]]:
        """Column pairs of every foreign key declared on ``table``."""
        keys = []
        for fk_id, seq, parent, from_col, to_col, on_update, on_delete, _match in self._execute(
            f"PRAGMA {_quote(catalog)}.foreign_key_list({_quote(table)})"
        ):
            if to_col is None:
                # REFERENCES parent with no column list targets the parent's primary key.
                pk = sorted((r[5], r[1]) for r in self._table_info(catalog, parent) if r[5])
                to_col = pk[seq][1] if seq < len(pk) else None
            keys.append({
                "PKTABLE_CAT": catalog,
                "PKTABLE_SCHEM": None,
                "PKTABLE_NAME": parent,
                "PKCOLUMN_NAME": to_col,
                "FKTABLE_CAT": catalog,
                "FKTABLE_SCHEM": None,
                "FKTABLE_NAME": table,
                "FKCOLUMN_NAME": from_col,
                "KEY_SEQ": seq + 1,
                "UPDATE_RULE": FK_RULES.get((on_update or "").upper(), FK_RULES["NO ACTION"]),
                "DELETE_RULE": FK_RULES.get((on_delete or "").upper(), FK_RULES["NO ACTION"]),
                "FK_NAME": f"fk_{table}_{fk_id}",
                "PK_NAME": None,
                "DEFERRABILITY": NOT_DEFERRABLE,
            })
        return keys

    def _table_type(self, catalog: str, table: str) -> Optional[str]:
        for _cat, name, table_type in self._tables(catalog, table):
            if name == table:
                return table_type
        return None

    # -- catalogs, schemas, tables -------------------------------------------

    def get_catalogs(self) -> RowCursor:
        return RowsCursor([{"TABLE_CAT": name} for name in self._catalogs(None)], CATALOG_LABELS)

    def get_schemas(self, catalog, schema_pattern) -> RowCursor:
        return RowsCursor([], SCHEMA_LABELS)

    def get_table_types(self) -> RowCursor:
        return RowsCursor([{"TABLE_TYPE": t} for t in sorted(TABLE_TYPES.values())], ("TABLE_TYPE",))

    def get_type_info(self) -> RowCursor:
        return RowsCursor(TYPE_INFO_ROWS, TYPE_INFO_LABELS)

    def get_tables(self, catalog, schema_pattern, table_name_pattern, types) -> RowCursor:
        if not like("", schema_pattern):
            return RowsCursor([], TABLE_LABELS)
        rows = [
            {
                "TABLE_CAT": cat, "TABLE_SCHEM": None, "TABLE_NAME": name, "TABLE_TYPE": table_type,
                "REMARKS": None, "TYPE_CAT": None, "TYPE_SCHEM": None, "TYPE_NAME": None,
                "SELF_REFERENCING_COL_NAME": None, "REF_GENERATION": None,
            }
            for cat, name, table_type in self._tables(catalog, table_name_pattern, types)
        ]
        return RowsCursor(rows, TABLE_LABELS)

    def get_columns(self, catalog, schema_pattern, table_name_pattern, column_name_pattern) -> RowCursor:
        rows = []
        if like("", schema_pattern):
            for cat, table, _type in self._tables(catalog, table_name_pattern):
                info = self._table_info(cat, table)
                pk_count = sum(1 for r in info if r[5])
                for cid, name, declared, notnull, default, pk in info:
                    if not like(name, column_name_pattern):
                        continue
                    data_type, type_name, size, digits = column_type(declared)
                    rowid_alias = pk_count == 1 and pk and (declared or "").strip().upper() == "INTEGER"
                    rows.append({
                        "TABLE_CAT": cat, "TABLE_SCHEM": None, "TABLE_NAME": table,
                        "COLUMN_NAME": name, "DATA_TYPE": data_type, "TYPE_NAME": type_name,
                        "COLUMN_SIZE": size, "BUFFER_LENGTH": None, "DECIMAL_DIGITS": digits,
                        "NUM_PREC_RADIX": 10, "NULLABLE": 0 if notnull else 1, "REMARKS": None,
                        "COLUMN_DEF": default, "SQL_DATA_TYPE": None, "SQL_DATETIME_SUB": None,
                        "CHAR_OCTET_LENGTH": size, "ORDINAL_POSITION": cid + 1,
                        "IS_NULLABLE": "NO" if notnull else "YES",
                        "SCOPE_CATALOG": None, "SCOPE_SCHEMA": None, "SCOPE_TABLE": None,
                        "SOURCE_DATA_TYPE": None,
                        "IS_AUTOINCREMENT": "YES" if rowid_alias else "NO",
                        "IS_GENERATEDCOLUMN": "NO",
                    })
        return RowsCursor(rows, COLUMN_LABELS)

    # -- keys and indexes ----------------------------------------------------

    def get_primary_keys(self, catalog, schema, table) -> RowCursor:
        rows = []
        for cat in self._catalogs(catalog):
            for _cid, name, _declared, _notnull, _default, pk in self._table_info(cat, table):
                if pk:
                    rows.append({
                        "TABLE_CAT": cat, "TABLE_SCHEM": None, "TABLE_NAME": table,
                        "COLUMN_NAME": name, "KEY_SEQ": pk, "PK_NAME": None,
                    })
        rows.sort(key=lambda r: (r["TABLE_CAT"], r["KEY_SEQ"]))
        return RowsCursor(rows, PRIMARY_KEY_LABELS)

    def get_imported_keys(self, catalog, schema, table) -> RowCursor:
        rows = []
        for cat in self._catalogs(catalog):
            rows.extend(self._foreign_keys(cat, table))
        rows.sort(key=lambda r: (r["PKTABLE_CAT"], r["PKTABLE_NAME"], r["KEY_SEQ"]))
        return RowsCursor(rows, KEY_LABELS)

    def get_exported_keys(self, catalog, schema, table) -> RowCursor:
        rows = []
        for cat, child, _type in self._tables(catalog, None, ["TABLE"]):
            rows.extend(k for k in self._foreign_keys(cat, child) if k["PKTABLE_NAME"].lower() == table.lower())
        rows.sort(key=lambda r: (r["FKTABLE_CAT"], r["FKTABLE_NAME"], r["KEY_SEQ"]))
        return RowsCursor(rows, KEY_LABELS)

    def get_cross_reference(
        self, parent_catalog, parent_schema, parent_table,
        foreign_catalog, foreign_schema, foreign_table,
    ) -> RowCursor:
        rows = []
        if parent_table and foreign_table:
            for cat in self._catalogs(foreign_catalog):
                if parent_catalog is not None and parent_catalog != cat:
                    continue
                rows.extend(
                    k for k in self._foreign_keys(cat, foreign_table)
                    if k["PKTABLE_NAME"].lower() == parent_table.lower()
                )
        rows.sort(key=lambda r: (r["FK_NAME"], r["KEY_SEQ"]))
        return RowsCursor(rows, KEY_LABELS)

    def get_index_info(self, catalog, schema, table, unique, approximate) -> RowCursor:
        rows = []
        for cat in self._catalogs(catalog):
            for _seq, index_name, is_unique, _origin, _partial in self._execute(
                f"PRAGMA {_quote(cat)}.index_list({_quote(table)})"
            ):
                if unique and not is_unique:
                    continue
                for seqno, _cid, column_name in self._execute(
                    f"PRAGMA {_quote(cat)}.index_info({_quote(index_name)})"
                ):
                    rows.append({
                        "TABLE_CAT": cat, "TABLE_SCHEM": None, "TABLE_NAME": table,
                        "NON_UNIQUE": not is_unique, "INDEX_QUALIFIER": None, "INDEX_NAME": index_name,
                        "TYPE": INDEX_OTHER, "ORDINAL_POSITION": seqno + 1, "COLUMN_NAME": column_name,
                        "ASC_OR_DESC": "A", "CARDINALITY": 0, "PAGES": 0, "FILTER_CONDITION": None,
                    })
        rows.sort(key=lambda r: (r["NON_UNIQUE"], r["INDEX_NAME"], r["ORDINAL_POSITION"]))
        return RowsCursor(rows, INDEX_LABELS)

    def get_best_row_identifier(self, catalog, schema, table, scope, nullable) -> RowCursor:
        rows = []
        for cat in self._catalogs(catalog):
            if self._table_type(cat, table) != "TABLE":
                continue
            pk = sorted((r[5], r[1], r[2]) for r in self._table_info(cat, table) if r[5])
            if not pk:
                pk = [(1, "rowid", "INTEGER")]
                pseudo = BEST_ROW_PSEUDO
            else:
                pseudo = BEST_ROW_NOT_PSEUDO
            for _seq, name, declared in pk:
                data_type, type_name, size, digits = column_type(declared)
                rows.append({
                    "SCOPE": scope, "COLUMN_NAME": name, "DATA_TYPE": data_type, "TYPE_NAME": type_name,
                    "COLUMN_SIZE": size, "BUFFER_LENGTH": None, "DECIMAL_DIGITS": digits,
                    "PSEUDO_COLUMN": pseudo,
                })
        return RowsCursor(rows, BEST_ROW_LABELS)

    # -- concepts SQLite does not have ---------------------------------------

    def get_functions(self, catalog, schema_pattern, function_name_pattern) -> RowCursor:
        return RowsCursor([])

    def get_function_columns(self, catalog, schema_pattern, function_name_pattern, column_name_pattern) -> RowCursor:
        return RowsCursor([])

    def get_procedures(self, catalog, schema_pattern, procedure_name_pattern) -> RowCursor:
        return RowsCursor([])

    def get_procedure_columns(self, catalog, schema_pattern, procedure_name_pattern, column_name_pattern) -> RowCursor:
        return RowsCursor([])

    def get_udts(self, catalog, schema_pattern, type_name_pattern, types) -> RowCursor:
        return RowsCursor([])

    def get_attributes(self, catalog, schema_pattern, type_name_pattern, attribute_name_pattern) -> RowCursor:
        return RowsCursor([])

    def get_super_types(self, catalog, schema_pattern, type_name_pattern) -> RowCursor:
        return RowsCursor([])

    def get_super_tables(self, catalog, schema_pattern, table_name_pattern) -> RowCursor:
        return RowsCursor([])

    def get_table_privileges(self, catalog, schema_pattern, table_name_pattern) -> RowCursor:
        return RowsCursor([])

    def get_column_privileges(self, catalog, schema, table, column_name_pattern) -> RowCursor:
        return RowsCursor([])

    def get_pseudo_columns(self, catalog, schema_pattern, table_name_pattern, column_name_pattern) -> RowCursor:
        return RowsCursor([])

    def get_version_columns(self, catalog, schema, table) -> RowCursor:
        return RowsCursor([])
