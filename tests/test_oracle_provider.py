"""
Tests for the Oracle provider.

The database is replaced by a fake DB-API connection that answers each query
with canned rows chosen by a marker found in the SQL text.
"""

from unittest.mock import patch

import pytest

from metabind.binder import BindStatus
from metabind.context import MetadataContext
from metabind.errors import ConnectionClosedError
from metabind.providers import OracleProvider
from metabind.providers.oracle import SQL_BIGINT, SQL_INTEGER, SQL_OTHER, make_dsn, sql_type


COLUMN_QUERY_LABELS = (
    "OWNER", "TABLE_NAME", "COLUMN_NAME", "DATA_TYPE", "DATA_LENGTH",
    "DATA_PRECISION", "DATA_SCALE", "NULLABLE", "DATA_DEFAULT", "COLUMN_ID", "CHAR_LENGTH",
)
TABLE_LABELS = (
    "TABLE_CAT", "TABLE_SCHEM", "TABLE_NAME", "TABLE_TYPE", "REMARKS", "TYPE_CAT",
    "TYPE_SCHEM", "TYPE_NAME", "SELF_REFERENCING_COL_NAME", "REF_GENERATION",
)


class FakeCursor:
    """DB-API cursor answering from the connection's canned results."""

    def __init__(self, connection):
        self.connection = connection
        self.description = None
        self.closed = False
        self._rows = []

    def execute(self, sql, **binds):
        self.connection.executed.append((sql, binds))
        if self.connection.error is not None:
            raise self.connection.error
        for marker, labels, rows in self.connection.results:
            if marker in sql:
                self.description = [(label, None, None, None, None, None, None) for label in labels]
                self._rows = list(rows)
                return
        self.description = []
        self._rows = []

    def __iter__(self):
        return iter(self._rows)

    def close(self):
        self.closed = True


class FakeConnection:
    """Minimal oracledb connection stand-in."""

    def __init__(self, results=(), error=None):
        self.results = list(results)
        self.error = error
        self.executed = []
        self.cursors = []
        self.closed = False

    def cursor(self):
        cursor = FakeCursor(self)
        self.cursors.append(cursor)
        return cursor

    def close(self):
        self.closed = True


BANK_RESULTS = [
    ("all_users", ("TABLE_SCHEM", "TABLE_CATALOG"), [("BANK", None)]),
    ("FROM all_tables", TABLE_LABELS, [
        (None, "BANK", "ACCOUNTS", "TABLE", "Customer accounts", None, None, None, None, None),
    ]),
    ("all_tab_columns", COLUMN_QUERY_LABELS, [
        ("BANK", "ACCOUNTS", "ACCOUNT_ID", "NUMBER", 22, 12, 0, "N", None, 1, 0),
        ("BANK", "ACCOUNTS", "STATUS", "VARCHAR2", 40, None, None, "Y", "'OPEN' ", 2, 10),
        ("BANK", "ACCOUNTS", "OPENED_AT", "TIMESTAMP(6)", 11, None, 6, "Y", None, 3, 0),
    ]),
    ("constraint_type = 'P'", ("TABLE_CAT", "TABLE_SCHEM", "TABLE_NAME", "COLUMN_NAME", "KEY_SEQ", "PK_NAME"), [
        (None, "BANK", "ACCOUNTS", "ACCOUNT_ID", 1, "PK_ACCOUNTS"),
    ]),
]


@pytest.fixture
def connection():
    return FakeConnection(BANK_RESULTS)


@pytest.fixture
def provider(connection):
    return OracleProvider(connection=connection)


def _rows(cursor):
    with cursor:
        return list(cursor)


class TestHelpers:
    """Tests for DSN parsing and type mapping."""

    def test_make_dsn_with_port(self):
        with patch("oracledb.makedsn", return_value="DSN") as makedsn:
            params = make_dsn("scott/tiger@dbhost:1521/ORCL")

        assert params == {"user": "scott", "password": "tiger", "dsn": "DSN"}
        makedsn.assert_called_once_with("dbhost", 1521, service_name="ORCL")

    def test_make_dsn_alias(self):
        assert make_dsn("scott/tiger@BANKDB") == {"user": "scott", "password": "tiger", "dsn": "BANKDB"}

    @pytest.mark.parametrize("type_name, precision, scale, expected", [
        ("NUMBER", 5, 0, SQL_INTEGER),
        ("NUMBER", 12, 0, SQL_BIGINT),
        ("NUMBER", 18, 2, 2),
        ("NUMBER", None, None, 2),
        ("VARCHAR2", None, None, 12),
        ("TIMESTAMP(6)", None, 6, 93),
        ("DATE", None, None, 93),
        ("XMLTYPE", None, None, SQL_OTHER),
    ])
    def test_sql_type(self, type_name, precision, scale, expected):
        assert sql_type(type_name, precision, scale) == expected


class TestOracleProvider:
    """Tests for OracleProvider queries."""

    def test_requires_a_source(self):
        with pytest.raises(ValueError):
            OracleProvider()

    def test_no_catalogs(self, provider, connection):
        assert _rows(provider.get_catalogs()) == []
        assert connection.executed == []

    def test_schemas(self, provider, connection):
        rows = _rows(provider.get_schemas(None, None))

        assert rows == [{"TABLE_SCHEM": "BANK", "TABLE_CATALOG": None}]
        assert connection.executed[0][1] == {"owner": "%"}
        assert connection.cursors[0].closed

    def test_tables_with_types(self, provider, connection):
        rows = _rows(provider.get_tables(None, "BANK", None, ["TABLE", "VIEW"]))

        assert [r["TABLE_NAME"] for r in rows] == ["ACCOUNTS"]
        sql, binds = connection.executed[0]
        assert "table_type IN (:type0, :type1)" in sql
        assert sql.rstrip().endswith("ORDER BY table_type, table_schem, table_name")
        assert binds == {"owner": "BANK", "table_name": "%", "type0": "TABLE", "type1": "VIEW"}

    def test_tables_with_no_types(self, provider, connection):
        assert _rows(provider.get_tables(None, "BANK", None, [])) == []
        assert connection.executed == []

    def test_columns(self, provider, connection):
        rows = _rows(provider.get_columns(None, "BANK", "ACCOUNTS", None))

        account_id, status, opened_at = rows
        assert (account_id["DATA_TYPE"], account_id["COLUMN_SIZE"]) == (SQL_BIGINT, 12)
        assert (account_id["NULLABLE"], account_id["IS_NULLABLE"]) == (0, "NO")
        assert (status["DATA_TYPE"], status["COLUMN_SIZE"], status["COLUMN_DEF"]) == (12, 10, "'OPEN'")
        assert (opened_at["DATA_TYPE"], opened_at["DECIMAL_DIGITS"]) == (93, 6)
        assert all(r["TABLE_CAT"] is None for r in rows)
        assert connection.executed[0][1] == {"owner": "BANK", "table_name": "ACCOUNTS", "column_name": "%"}
        assert connection.cursors[0].closed

    def test_primary_keys(self, provider, connection):
        rows = _rows(provider.get_primary_keys(None, "BANK", "ACCOUNTS"))

        assert [(r["COLUMN_NAME"], r["PK_NAME"]) for r in rows] == [("ACCOUNT_ID", "PK_ACCOUNTS")]
        assert connection.executed[0][1] == {"owner": "BANK", "table_name": "ACCOUNTS"}

    def test_cross_reference_binds(self, provider, connection):
        assert _rows(provider.get_cross_reference(None, "BANK", "CUSTOMERS", None, "BANK", "ACCOUNTS")) == []

        sql, binds = connection.executed[0]
        assert "constraint_type = 'R'" in sql
        assert binds == {
            "parent_owner": "BANK", "parent_table": "CUSTOMERS",
            "foreign_owner": "BANK", "foreign_table": "ACCOUNTS",
        }

    def test_routines(self, provider, connection):
        provider.get_procedures(None, "BANK", None).close()
        provider.get_functions(None, "BANK", "CALC%").close()

        assert connection.executed[0][1]["object_type"] == "PROCEDURE"
        assert connection.executed[1][1] == {"object_type": "FUNCTION", "owner": "BANK", "object_name": "CALC%"}
        assert "procedure_schem" in connection.executed[0][0]
        assert "function_schem" in connection.executed[1][0]

    def test_unsupported_operations(self, provider):
        with pytest.raises(NotImplementedError):
            provider.get_index_info(None, "BANK", "ACCOUNTS", False, True)

    def test_failed_query_closes_cursor(self):
        connection = FakeConnection(error=RuntimeError("ORA-00942: table or view does not exist"))
        provider = OracleProvider(connection=connection)

        with pytest.raises(RuntimeError):
            provider.get_schemas(None, None)

        assert connection.cursors[0].closed


class TestConnectionHandling:
    """Tests for connection ownership."""

    def test_connects_from_string(self, connection):
        with patch("oracledb.makedsn", return_value="DSN"), \
                patch("oracledb.connect", return_value=connection) as connect:
            with OracleProvider("scott/tiger@dbhost:1521/ORCL") as provider:
                _rows(provider.get_schemas(None, None))

        connect.assert_called_once_with(user="scott", password="tiger", dsn="DSN")
        assert connection.closed

    def test_borrowed_connection_stays_open(self, connection):
        with OracleProvider(connection=connection) as provider:
            _rows(provider.get_schemas(None, None))

        assert not connection.closed
        with pytest.raises(ConnectionClosedError):
            provider.get_schemas(None, None)


class TestOracleExtraction:
    """End-to-end extraction over the fake connection."""

    def test_schema_graph(self, provider):
        context = MetadataContext(provider)

        schemas = context.get_schemas(schema_pattern="BANK")

        assert [s.table_schem for s in schemas] == ["BANK"]
        table = schemas[0].tables[0]
        assert table.table_name == "ACCOUNTS"
        assert table.remarks == "Customer accounts"
        assert [c.column_name for c in table.columns] == ["ACCOUNT_ID", "STATUS", "OPENED_AT"]
        assert [k.column_name for k in table.primary_keys] == ["ACCOUNT_ID"]
        assert schemas[0].cross_references == []

        unsupported = {d.path for d in context.diagnostics.by_status(BindStatus.UNSUPPORTED_OPERATION)}
        assert {"table/index_info", "table/best_row_identifiers", "schema/udts"} <= unsupported
        assert "table/columns" not in unsupported
