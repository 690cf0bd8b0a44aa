"""
Oracle provider using oracledb.

Reads the data dictionary views:
- ALL_USERS (schemas)
- ALL_TABLES / ALL_VIEWS / ALL_TAB_COMMENTS (tables)
- ALL_TAB_COLUMNS (columns)
- ALL_CONSTRAINTS / ALL_CONS_COLUMNS (primary and foreign keys)
- ALL_PROCEDURES (procedures and functions)
- ALL_TAB_PRIVS (table privileges)

Oracle has no catalogs: get_catalogs reports zero rows and every catalog
argument is ignored. Names are matched as stored, which is upper case for
unquoted identifiers.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional

from metabind.errors import ConnectionClosedError
from metabind.providers.base import DbApiCursor, MetadataProvider, RowCursor, RowsCursor

logger = logging.getLogger(__name__)


# Oracle type name -> standard SQL type code
ORACLE_TYPE_MAP = {
    "NUMBER": 2,
    "INTEGER": 4,
    "FLOAT": 6,
    "BINARY_FLOAT": 7,
    "BINARY_DOUBLE": 8,
    "VARCHAR2": 12,
    "NVARCHAR2": -9,
    "CHAR": 1,
    "NCHAR": -15,
    "CLOB": 2005,
    "NCLOB": 2011,
    "DATE": 93,  # Oracle DATE includes time
    "TIMESTAMP": 93,
    "TIMESTAMP WITH TIME ZONE": 2014,
    "TIMESTAMP WITH LOCAL TIME ZONE": 93,
    "RAW": -3,
    "BLOB": 2004,
    "LONG": -1,
    "LONG RAW": -4,
}
SQL_OTHER = 1111
SQL_BIGINT = -5
SQL_INTEGER = 4

CHARACTER_TYPES = ("CHAR", "NCHAR", "VARCHAR2", "NVARCHAR2")

_PRECISION = re.compile(r"\(\d+\)")

COLUMN_LABELS = (
    "TABLE_CAT", "TABLE_SCHEM", "TABLE_NAME", "COLUMN_NAME", "DATA_TYPE", "TYPE_NAME",
    "COLUMN_SIZE", "BUFFER_LENGTH", "DECIMAL_DIGITS", "NUM_PREC_RADIX", "NULLABLE", "REMARKS",
    "COLUMN_DEF", "SQL_DATA_TYPE", "SQL_DATETIME_SUB", "CHAR_OCTET_LENGTH", "ORDINAL_POSITION",
    "IS_NULLABLE", "SCOPE_CATALOG", "SCOPE_SCHEMA", "SCOPE_TABLE", "SOURCE_DATA_TYPE",
    "IS_AUTOINCREMENT", "IS_GENERATEDCOLUMN",
)

TABLES_SQL = """
    SELECT * FROM (
        SELECT
            NULL AS table_cat, t.owner AS table_schem, t.table_name,
            'TABLE' AS table_type, c.comments AS remarks,
            NULL AS type_cat, NULL AS type_schem, NULL AS type_name,
            NULL AS self_referencing_col_name, NULL AS ref_generation
        FROM all_tables t
        LEFT JOIN all_tab_comments c
            ON t.owner = c.owner AND t.table_name = c.table_name
        WHERE t.owner LIKE :owner AND t.table_name LIKE :table_name
        UNION ALL
        SELECT
            NULL, v.owner, v.view_name,
            'VIEW', c.comments,
            NULL, NULL, NULL,
            NULL, NULL
        FROM all_views v
        LEFT JOIN all_tab_comments c
            ON v.owner = c.owner AND v.view_name = c.table_name
        WHERE v.owner LIKE :owner AND v.view_name LIKE :table_name
    )
"""

COLUMNS_SQL = """
    SELECT
        owner, table_name, column_name, data_type, data_length,
        data_precision, data_scale, nullable, data_default, column_id, char_length
    FROM all_tab_columns
    WHERE owner LIKE :owner AND table_name LIKE :table_name AND column_name LIKE :column_name
    ORDER BY owner, table_name, column_id
"""

PRIMARY_KEYS_SQL = """
    SELECT
        NULL AS table_cat, c.owner AS table_schem, c.table_name,
        cc.column_name, cc.position AS key_seq, c.constraint_name AS pk_name
    FROM all_constraints c
    JOIN all_cons_columns cc
        ON c.owner = cc.owner
        AND c.constraint_name = cc.constraint_name
    WHERE (:owner IS NULL OR c.owner = :owner)
        AND c.table_name = :table_name
        AND c.constraint_type = 'P'
    ORDER BY cc.position
"""

# Column pairs of every foreign key; callers append their own filter.
KEYS_SQL = """
    SELECT
        NULL AS pktable_cat, p.owner AS pktable_schem, p.table_name AS pktable_name,
        pc.column_name AS pkcolumn_name,
        NULL AS fktable_cat, f.owner AS fktable_schem, f.table_name AS fktable_name,
        fc.column_name AS fkcolumn_name,
        fc.position AS key_seq,
        3 AS update_rule,
        DECODE(f.delete_rule, 'CASCADE', 0, 'SET NULL', 2, 3) AS delete_rule,
        f.constraint_name AS fk_name, p.constraint_name AS pk_name,
        DECODE(f.deferrable, 'DEFERRABLE', DECODE(f.deferred, 'DEFERRED', 5, 6), 7) AS deferrability
    FROM all_constraints f
    JOIN all_cons_columns fc
        ON f.owner = fc.owner
        AND f.constraint_name = fc.constraint_name
    JOIN all_constraints p
        ON f.r_owner = p.owner
        AND f.r_constraint_name = p.constraint_name
    JOIN all_cons_columns pc
        ON p.owner = pc.owner
        AND p.constraint_name = pc.constraint_name
        AND fc.position = pc.position
    WHERE f.constraint_type = 'R'
"""

ROUTINES_SQL = """
    SELECT
        NULL AS {prefix}_cat, owner AS {prefix}_schem, object_name AS {prefix}_name,
        NULL AS remarks, {kind} AS {prefix}_type, object_name AS specific_name
    FROM all_procedures
    WHERE object_type = :object_type
        AND procedure_name IS NULL
        AND owner LIKE :owner
        AND object_name LIKE :object_name
    ORDER BY owner, object_name
"""

TABLE_PRIVILEGES_SQL = """
    SELECT
        NULL AS table_cat, table_schema AS table_schem, table_name,
        grantor, grantee, privilege, grantable AS is_grantable
    FROM all_tab_privs
    WHERE table_schema LIKE :owner AND table_name LIKE :table_name
    ORDER BY table_schema, table_name, privilege
"""


def make_dsn(connection_string: str) -> Dict[str, Any]:
    """
    Split ``user/pwd@host:port/service`` into oracledb.connect keyword arguments.

    A connect descriptor without a port (a TNS alias or EZConnect string) is
    passed through as the DSN.
    """
    import oracledb

    parts = connection_string.split("@")
    user_pwd = parts[0]
    host_service = parts[1] if len(parts) > 1 else ""

    user, password = user_pwd.split("/", 1) if "/" in user_pwd else (user_pwd, "")

    if ":" in host_service:
        host_port, service = host_service.rsplit("/", 1) if "/" in host_service else (host_service, "")
        host, port = host_port.split(":") if ":" in host_port else (host_port, "1521")
        dsn = oracledb.makedsn(host, int(port), service_name=service)
    else:
        dsn = host_service

    return {"user": user, "password": password, "dsn": dsn}


def sql_type(type_name: str, precision: Optional[int], scale: Optional[int]) -> int:
    """Standard SQL type code of an Oracle column type."""
    base = _PRECISION.sub("", type_name.upper())
    if base == "NUMBER" and scale == 0 and precision is not None:
        return SQL_INTEGER if precision <= 9 else SQL_BIGINT
    return ORACLE_TYPE_MAP.get(base, SQL_OTHER)


def _pattern(value: Optional[str]) -> str:
    return "%" if value is None else value


class OracleProvider(MetadataProvider):
    """
    MetadataProvider over an Oracle database.

    Opens its own connection from a connection string on first use, or wraps
    an existing oracledb connection, which stays owned by the caller.
    """

    def __init__(self, connection_string: Optional[str] = None, connection: Any = None):
        """
        Initialize provider with Oracle connection.

        Args:
            connection_string: Oracle connection string (user/pwd@host:port/service)
            connection: Open oracledb connection to use instead
        """
        if connection_string is None and connection is None:
            raise ValueError("either connection_string or connection is required")
        self.connection_string = connection_string
        self._conn = connection
        self._owned = connection is None
        self._closed = False

    def connect(self) -> None:
        """Establish database connection."""
        self._closed = False
        if self._conn is not None:
            return

        import oracledb

        params = make_dsn(self.connection_string)
        self._conn = oracledb.connect(**params)
        logger.info(f"Connected to Oracle database as {params['user']}")

    def disconnect(self) -> None:
        """Close database connection."""
        if self._conn is not None and self._owned:
            self._conn.close()
            self._conn = None
        self._closed = True

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()

    def _query(self, sql: str, **binds: Any) -> RowCursor:
        if self._closed:
            raise ConnectionClosedError("Oracle provider is closed")
        if self._conn is None:
            self.connect()

        cursor = self._conn.cursor()
        try:
            cursor.execute(sql, **binds)
        except Exception:
            cursor.close()
            raise
        return DbApiCursor(cursor)

    # -- catalogs, schemas, tables -------------------------------------------

    def get_catalogs(self) -> RowCursor:
        return RowsCursor([], ("TABLE_CAT",))

    def get_schemas(self, catalog, schema_pattern) -> RowCursor:
        return self._query(
            """
            SELECT username AS table_schem, NULL AS table_catalog
            FROM all_users
            WHERE username LIKE :owner
            ORDER BY username
            """,
            owner=_pattern(schema_pattern),
        )

    def get_table_types(self) -> RowCursor:
        return RowsCursor([{"TABLE_TYPE": "TABLE"}, {"TABLE_TYPE": "VIEW"}], ("TABLE_TYPE",))

    def get_tables(self, catalog, schema_pattern, table_name_pattern, types) -> RowCursor:
        binds = {"owner": _pattern(schema_pattern), "table_name": _pattern(table_name_pattern)}
        sql = TABLES_SQL
        if types is not None:
            names = [f":type{i}" for i in range(len(types))]
            if not names:
                return RowsCursor([])
            sql += f" WHERE table_type IN ({', '.join(names)})"
            binds.update({f"type{i}": t for i, t in enumerate(types)})
        sql += " ORDER BY table_type, table_schem, table_name"
        return self._query(sql, **binds)

    def get_columns(self, catalog, schema_pattern, table_name_pattern, column_name_pattern) -> RowCursor:
        rows = []
        with self._query(
            COLUMNS_SQL,
            owner=_pattern(schema_pattern),
            table_name=_pattern(table_name_pattern),
            column_name=_pattern(column_name_pattern),
        ) as cursor:
            for row in cursor:
                type_name = row["DATA_TYPE"]
                precision, scale = row["DATA_PRECISION"], row["DATA_SCALE"]
                if precision is not None:
                    size = precision
                elif type_name in CHARACTER_TYPES:
                    size = row["CHAR_LENGTH"]
                else:
                    size = row["DATA_LENGTH"]
                nullable = row["NULLABLE"] == "Y"
                default = row["DATA_DEFAULT"]
                rows.append({
                    "TABLE_CAT": None, "TABLE_SCHEM": row["OWNER"], "TABLE_NAME": row["TABLE_NAME"],
                    "COLUMN_NAME": row["COLUMN_NAME"], "DATA_TYPE": sql_type(type_name, precision, scale),
                    "TYPE_NAME": type_name, "COLUMN_SIZE": size, "BUFFER_LENGTH": None,
                    "DECIMAL_DIGITS": scale, "NUM_PREC_RADIX": 10, "NULLABLE": 1 if nullable else 0,
                    "REMARKS": None, "COLUMN_DEF": default.strip() if default else None,
                    "SQL_DATA_TYPE": None, "SQL_DATETIME_SUB": None, "CHAR_OCTET_LENGTH": row["DATA_LENGTH"],
                    "ORDINAL_POSITION": row["COLUMN_ID"], "IS_NULLABLE": "YES" if nullable else "NO",
                    "SCOPE_CATALOG": None, "SCOPE_SCHEMA": None, "SCOPE_TABLE": None,
                    "SOURCE_DATA_TYPE": None, "IS_AUTOINCREMENT": "NO", "IS_GENERATEDCOLUMN": "NO",
                })
        return RowsCursor(rows, COLUMN_LABELS)

    def get_table_privileges(self, catalog, schema_pattern, table_name_pattern) -> RowCursor:
        return self._query(
            TABLE_PRIVILEGES_SQL, owner=_pattern(schema_pattern), table_name=_pattern(table_name_pattern),
        )

    # -- keys -----------------------------------------------------------------

    def get_primary_keys(self, catalog, schema, table) -> RowCursor:
        return self._query(PRIMARY_KEYS_SQL, owner=schema, table_name=table)

    def get_imported_keys(self, catalog, schema, table) -> RowCursor:
        return self._query(
            KEYS_SQL + """
                AND (:owner IS NULL OR f.owner = :owner)
                AND f.table_name = :table_name
            ORDER BY p.owner, p.table_name, fc.position
            """,
            owner=schema, table_name=table,
        )

    def get_exported_keys(self, catalog, schema, table) -> RowCursor:
        return self._query(
            KEYS_SQL + """
                AND (:owner IS NULL OR p.owner = :owner)
                AND p.table_name = :table_name
            ORDER BY f.owner, f.table_name, fc.position
            """,
            owner=schema, table_name=table,
        )

    def get_cross_reference(
        self, parent_catalog, parent_schema, parent_table,
        foreign_catalog, foreign_schema, foreign_table,
    ) -> RowCursor:
        return self._query(
            KEYS_SQL + """
                AND (:parent_owner IS NULL OR p.owner = :parent_owner)
                AND p.table_name = :parent_table
                AND (:foreign_owner IS NULL OR f.owner = :foreign_owner)
                AND f.table_name = :foreign_table
            ORDER BY f.owner, f.table_name, fc.position
            """,
            parent_owner=parent_schema, parent_table=parent_table,
            foreign_owner=foreign_schema, foreign_table=foreign_table,
        )

    # -- routines -------------------------------------------------------------

    def get_procedures(self, catalog, schema_pattern, procedure_name_pattern) -> RowCursor:
        return self._query(
            ROUTINES_SQL.format(prefix="procedure", kind=1),
            object_type="PROCEDURE", owner=_pattern(schema_pattern), object_name=_pattern(procedure_name_pattern),
        )

    def get_functions(self, catalog, schema_pattern, function_name_pattern) -> RowCursor:
        return self._query(
            ROUTINES_SQL.format(prefix="function", kind=1),
            object_type="FUNCTION", owner=_pattern(schema_pattern), object_name=_pattern(function_name_pattern),
        )
