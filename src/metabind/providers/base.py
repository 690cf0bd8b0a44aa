"""
The MetadataProvider capability consumed by the binding engine.

A provider exposes one method per introspection operation. Every method takes
a fixed positional parameter list and returns a forward-only RowCursor whose
rows are mappings keyed by case-sensitive column label.
"""

from __future__ import annotations

import logging
from collections import deque
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


class Param(str, Enum):
    """Declared parameter types of provider operations."""
    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    STRINGS = "strings"     # list of str, e.g. table type filters
    INTEGERS = "integers"   # list of int, e.g. UDT base types


class Operation(str, Enum):
    """Closed set of introspection operations a provider may support."""
    GET_ATTRIBUTES = "get_attributes"
    GET_BEST_ROW_IDENTIFIER = "get_best_row_identifier"
    GET_CATALOGS = "get_catalogs"
    GET_CLIENT_INFO_PROPERTIES = "get_client_info_properties"
    GET_COLUMNS = "get_columns"
    GET_COLUMN_PRIVILEGES = "get_column_privileges"
    GET_CROSS_REFERENCE = "get_cross_reference"
    GET_EXPORTED_KEYS = "get_exported_keys"
    GET_FUNCTION_COLUMNS = "get_function_columns"
    GET_FUNCTIONS = "get_functions"
    GET_IMPORTED_KEYS = "get_imported_keys"
    GET_INDEX_INFO = "get_index_info"
    GET_PRIMARY_KEYS = "get_primary_keys"
    GET_PROCEDURE_COLUMNS = "get_procedure_columns"
    GET_PROCEDURES = "get_procedures"
    GET_PSEUDO_COLUMNS = "get_pseudo_columns"
    GET_SCHEMAS = "get_schemas"
    GET_SUPER_TABLES = "get_super_tables"
    GET_SUPER_TYPES = "get_super_types"
    GET_TABLE_PRIVILEGES = "get_table_privileges"
    GET_TABLE_TYPES = "get_table_types"
    GET_TABLES = "get_tables"
    GET_TYPE_INFO = "get_type_info"
    GET_UDTS = "get_udts"
    GET_VERSION_COLUMNS = "get_version_columns"


_S, _B, _I = Param.STRING, Param.BOOLEAN, Param.INTEGER

OPERATION_PARAMETERS: Dict[Operation, Tuple[Param, ...]] = {
    Operation.GET_ATTRIBUTES: (_S, _S, _S, _S),
    Operation.GET_BEST_ROW_IDENTIFIER: (_S, _S, _S, _I, _B),
    Operation.GET_CATALOGS: (),
    Operation.GET_CLIENT_INFO_PROPERTIES: (),
    Operation.GET_COLUMNS: (_S, _S, _S, _S),
    Operation.GET_COLUMN_PRIVILEGES: (_S, _S, _S, _S),
    Operation.GET_CROSS_REFERENCE: (_S, _S, _S, _S, _S, _S),
    Operation.GET_EXPORTED_KEYS: (_S, _S, _S),
    Operation.GET_FUNCTION_COLUMNS: (_S, _S, _S, _S),
    Operation.GET_FUNCTIONS: (_S, _S, _S),
    Operation.GET_IMPORTED_KEYS: (_S, _S, _S),
    Operation.GET_INDEX_INFO: (_S, _S, _S, _B, _B),
    Operation.GET_PRIMARY_KEYS: (_S, _S, _S),
    Operation.GET_PROCEDURE_COLUMNS: (_S, _S, _S, _S),
    Operation.GET_PROCEDURES: (_S, _S, _S),
    Operation.GET_PSEUDO_COLUMNS: (_S, _S, _S, _S),
    Operation.GET_SCHEMAS: (_S, _S),
    Operation.GET_SUPER_TABLES: (_S, _S, _S),
    Operation.GET_SUPER_TYPES: (_S, _S, _S),
    Operation.GET_TABLE_PRIVILEGES: (_S, _S, _S),
    Operation.GET_TABLE_TYPES: (),
    Operation.GET_TABLES: (_S, _S, _S, Param.STRINGS),
    Operation.GET_TYPE_INFO: (),
    Operation.GET_UDTS: (_S, _S, _S, Param.INTEGERS),
    Operation.GET_VERSION_COLUMNS: (_S, _S, _S),
}


class UnsupportedOperation(NotImplementedError):
    """Raised when a provider does not implement an operation."""

    def __init__(self, operation: Operation, provider: Any):
        self.operation = operation
        super().__init__(f"{type(provider).__name__} does not support {operation.value}")


class RowCursor:
    """
    Forward-only sequence of labeled rows from one provider call.

    Iterating yields one mapping per row. A cursor can be iterated once and
    must be closed; use it as a context manager.
    """

    @property
    def labels(self) -> Sequence[str]:
        """Column labels exposed by every row of this cursor."""
        raise NotImplementedError

    def __iter__(self) -> Iterator[Mapping[str, Any]]:
        raise NotImplementedError

    def close(self) -> None:
        """Release the underlying resources."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class RowsCursor(RowCursor):
    """Cursor over rows already held in memory."""

    def __init__(self, rows: Iterable[Mapping[str, Any]], labels: Optional[Sequence[str]] = None):
        self._rows = deque(dict(r) for r in rows)
        if labels is None:
            seen: Dict[str, None] = {}
            for row in self._rows:
                for key in row:
                    seen.setdefault(key, None)
            labels = list(seen)
        self._labels = list(labels)
        self.closed = False

    @property
    def labels(self) -> Sequence[str]:
        return self._labels

    def __iter__(self) -> Iterator[Mapping[str, Any]]:
        while self._rows:
            yield self._rows.popleft()

    def close(self) -> None:
        self._rows.clear()
        self.closed = True


class DbApiCursor(RowCursor):
    """Adapts an executed DB-API 2.0 cursor; labels come from cursor.description."""

    def __init__(self, cursor: Any):
        self._cursor = cursor
        self._labels = [d[0] for d in (cursor.description or [])]
        self.closed = False

    @property
    def labels(self) -> Sequence[str]:
        return self._labels

    def __iter__(self) -> Iterator[Mapping[str, Any]]:
        for values in self._cursor:
            yield dict(zip(self._labels, values))

    def close(self) -> None:
        if not self.closed:
            self._cursor.close()
            self.closed = True


class MetadataProvider:
    """
    Base class for introspection sources.

    Subclasses override the operations they support. Every operation left
    alone raises UnsupportedOperation, which the engine treats as a
    field-level anomaly.
    """

    def _unsupported(self, operation: Operation) -> RowCursor:
        raise UnsupportedOperation(operation, self)

    def get_attributes(self, catalog, schema_pattern, type_name_pattern, attribute_name_pattern) -> RowCursor:
        return self._unsupported(Operation.GET_ATTRIBUTES)

    def get_best_row_identifier(self, catalog, schema, table, scope, nullable) -> RowCursor:
        return self._unsupported(Operation.GET_BEST_ROW_IDENTIFIER)

    def get_catalogs(self) -> RowCursor:
        return self._unsupported(Operation.GET_CATALOGS)

    def get_client_info_properties(self) -> RowCursor:
        return self._unsupported(Operation.GET_CLIENT_INFO_PROPERTIES)

    def get_columns(self, catalog, schema_pattern, table_name_pattern, column_name_pattern) -> RowCursor:
        return self._unsupported(Operation.GET_COLUMNS)

    def get_column_privileges(self, catalog, schema, table, column_name_pattern) -> RowCursor:
        return self._unsupported(Operation.GET_COLUMN_PRIVILEGES)

    def get_cross_reference(
        self, parent_catalog, parent_schema, parent_table,
        foreign_catalog, foreign_schema, foreign_table,
    ) -> RowCursor:
        return self._unsupported(Operation.GET_CROSS_REFERENCE)

    def get_exported_keys(self, catalog, schema, table) -> RowCursor:
        return self._unsupported(Operation.GET_EXPORTED_KEYS)

    def get_function_columns(self, catalog, schema_pattern, function_name_pattern, column_name_pattern) -> RowCursor:
        return self._unsupported(Operation.GET_FUNCTION_COLUMNS)

    def get_functions(self, catalog, schema_pattern, function_name_pattern) -> RowCursor:
        return self._unsupported(Operation.GET_FUNCTIONS)

    def get_imported_keys(self, catalog, schema, table) -> RowCursor:
        return self._unsupported(Operation.GET_IMPORTED_KEYS)

    def get_index_info(self, catalog, schema, table, unique, approximate) -> RowCursor:
        return self._unsupported(Operation.GET_INDEX_INFO)

    def get_primary_keys(self, catalog, schema, table) -> RowCursor:
        return self._unsupported(Operation.GET_PRIMARY_KEYS)

    def get_procedure_columns(self, catalog, schema_pattern, procedure_name_pattern, column_name_pattern) -> RowCursor:
        return self._unsupported(Operation.GET_PROCEDURE_COLUMNS)

    def get_procedures(self, catalog, schema_pattern, procedure_name_pattern) -> RowCursor:
        return self._unsupported(Operation.GET_PROCEDURES)

    def get_pseudo_columns(self, catalog, schema_pattern, table_name_pattern, column_name_pattern) -> RowCursor:
        return self._unsupported(Operation.GET_PSEUDO_COLUMNS)

    def get_schemas(self, catalog, schema_pattern) -> RowCursor:
        return self._unsupported(Operation.GET_SCHEMAS)

    def get_super_tables(self, catalog, schema_pattern, table_name_pattern) -> RowCursor:
        return self._unsupported(Operation.GET_SUPER_TABLES)

    def get_super_types(self, catalog, schema_pattern, type_name_pattern) -> RowCursor:
        return self._unsupported(Operation.GET_SUPER_TYPES)

    def get_table_privileges(self, catalog, schema_pattern, table_name_pattern) -> RowCursor:
        return self._unsupported(Operation.GET_TABLE_PRIVILEGES)

    def get_table_types(self) -> RowCursor:
        return self._unsupported(Operation.GET_TABLE_TYPES)

    def get_tables(self, catalog, schema_pattern, table_name_pattern, types) -> RowCursor:
        return self._unsupported(Operation.GET_TABLES)

    def get_type_info(self) -> RowCursor:
        return self._unsupported(Operation.GET_TYPE_INFO)

    def get_udts(self, catalog, schema_pattern, type_name_pattern, types) -> RowCursor:
        return self._unsupported(Operation.GET_UDTS)

    def get_version_columns(self, catalog, schema, table) -> RowCursor:
        return self._unsupported(Operation.GET_VERSION_COLUMNS)


# Dispatch table: one entry per operation, no lookup by arbitrary name.
_DISPATCH: Dict[Operation, Callable[..., RowCursor]] = {
    Operation.GET_ATTRIBUTES: lambda p, *a: p.get_attributes(*a),
    Operation.GET_BEST_ROW_IDENTIFIER: lambda p, *a: p.get_best_row_identifier(*a),
    Operation.GET_CATALOGS: lambda p, *a: p.get_catalogs(*a),
    Operation.GET_CLIENT_INFO_PROPERTIES: lambda p, *a: p.get_client_info_properties(*a),
    Operation.GET_COLUMNS: lambda p, *a: p.get_columns(*a),
    Operation.GET_COLUMN_PRIVILEGES: lambda p, *a: p.get_column_privileges(*a),
    Operation.GET_CROSS_REFERENCE: lambda p, *a: p.get_cross_reference(*a),
    Operation.GET_EXPORTED_KEYS: lambda p, *a: p.get_exported_keys(*a),
    Operation.GET_FUNCTION_COLUMNS: lambda p, *a: p.get_function_columns(*a),
    Operation.GET_FUNCTIONS: lambda p, *a: p.get_functions(*a),
    Operation.GET_IMPORTED_KEYS: lambda p, *a: p.get_imported_keys(*a),
    Operation.GET_INDEX_INFO: lambda p, *a: p.get_index_info(*a),
    Operation.GET_PRIMARY_KEYS: lambda p, *a: p.get_primary_keys(*a),
    Operation.GET_PROCEDURE_COLUMNS: lambda p, *a: p.get_procedure_columns(*a),
    Operation.GET_PROCEDURES: lambda p, *a: p.get_procedures(*a),
    Operation.GET_PSEUDO_COLUMNS: lambda p, *a: p.get_pseudo_columns(*a),
    Operation.GET_SCHEMAS: lambda p, *a: p.get_schemas(*a),
    Operation.GET_SUPER_TABLES: lambda p, *a: p.get_super_tables(*a),
    Operation.GET_SUPER_TYPES: lambda p, *a: p.get_super_types(*a),
    Operation.GET_TABLE_PRIVILEGES: lambda p, *a: p.get_table_privileges(*a),
    Operation.GET_TABLE_TYPES: lambda p, *a: p.get_table_types(*a),
    Operation.GET_TABLES: lambda p, *a: p.get_tables(*a),
    Operation.GET_TYPE_INFO: lambda p, *a: p.get_type_info(*a),
    Operation.GET_UDTS: lambda p, *a: p.get_udts(*a),
    Operation.GET_VERSION_COLUMNS: lambda p, *a: p.get_version_columns(*a),
}


def invoke(provider: Any, operation: Operation, arguments: Sequence[Any]) -> RowCursor:
    """
    Call one operation on a provider.

    Args:
        provider: Any object exposing the operation methods
        operation: Operation to call
        arguments: Positional arguments, already converted

    Returns:
        Whatever the provider returned (expected to be a RowCursor)

    Raises:
        UnsupportedOperation: If the provider has no method for the operation
    """
    if not hasattr(provider, operation.value):
        raise UnsupportedOperation(operation, provider)
    logger.debug(f"{operation.value}{tuple(arguments)!r}")
    return _DISPATCH[operation](provider, *arguments)


def split_literal_list(literal: str) -> List[str]:
    """Split a comma-separated literal into trimmed items."""
    return [part.strip() for part in literal.split(",") if part.strip()]


_TRUE_LITERALS = ("true", "1")
_FALSE_LITERALS = ("false", "0")


def convert_literal(literal: str, param: Param) -> Any:
    """
    Convert a literal argument template to an operation parameter value.

    Raises:
        ValueError: If the literal does not fit the parameter type
    """
    if param is Param.STRING:
        return literal
    if param is Param.BOOLEAN:
        lowered = literal.strip().lower()
        if lowered in _TRUE_LITERALS:
            return True
        if lowered in _FALSE_LITERALS:
            return False
        raise ValueError(f"not a boolean literal: {literal!r}")
    if param is Param.INTEGER:
        return int(literal)
    if param is Param.STRINGS:
        return split_literal_list(literal)
    if param is Param.INTEGERS:
        return [int(item) for item in split_literal_list(literal)]
    raise ValueError(f"unknown parameter type {param!r}")
