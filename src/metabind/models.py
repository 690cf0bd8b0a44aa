"""
Entity types of the metadata graph.

Each class mirrors one introspection result shape. Scalar fields are bound
from labeled columns; list fields are filled by nested provider calls whose
arguments refer back to fields bound on the same instance.

Types are declared leaves first so every element type exists by the time a
parent refers to it.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from metabind.descriptors import bound, derived, descriptors_for, invoked
from metabind.providers.base import Operation

# Marker for the identifying value of a synthesized catalog or schema.
VIRTUAL_NAME = ""


class Entity:
    """Shared serialization helpers for every entity type."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to nested dictionaries and lists for serialization."""
        return to_dict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        """Rebuild an entity (and its collections) from ``to_dict`` output."""
        descriptor = descriptors_for(cls)
        element_types = {d.field_name: d.element_type for d in descriptor.invocations}
        element_types.update({d.field_name: d.element_type for d in descriptor.derived})

        values: Dict[str, Any] = {}
        for f in dataclasses.fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            if f.name in element_types:
                value = [element_types[f.name].from_dict(v) for v in value or []]
            values[f.name] = value
        return cls(**values)


def to_dict(entity: Any) -> Any:
    """Recursively convert an entity, or a list of entities, to plain values."""
    if isinstance(entity, list):
        return [to_dict(e) for e in entity]
    if dataclasses.is_dataclass(entity) and not isinstance(entity, type):
        return {f.name: to_dict(getattr(entity, f.name)) for f in dataclasses.fields(entity)}
    return entity


# -- leaves ---------------------------------------------------------------


@dataclass
class Attribute(Entity):
    """An attribute of a user-defined type."""
    type_cat: Optional[str] = bound("TYPE_CAT", nillable=True)
    type_schem: Optional[str] = bound("TYPE_SCHEM", nillable=True)
    type_name: Optional[str] = bound("TYPE_NAME")
    attr_name: Optional[str] = bound("ATTR_NAME")
    data_type: int = bound("DATA_TYPE", default=0)
    attr_type_name: Optional[str] = bound("ATTR_TYPE_NAME")
    attr_size: int = bound("ATTR_SIZE", default=0)
    decimal_digits: Optional[int] = bound("DECIMAL_DIGITS", nillable=True)
    num_prec_radix: int = bound("NUM_PREC_RADIX", default=0)
    nullable: int = bound("NULLABLE", default=0)
    remarks: Optional[str] = bound("REMARKS", nillable=True)
    attr_def: Optional[str] = bound("ATTR_DEF", nillable=True)
    sql_data_type: Optional[int] = bound("SQL_DATA_TYPE", unused=True)
    sql_datetime_sub: Optional[int] = bound("SQL_DATETIME_SUB", unused=True)
    char_octet_length: int = bound("CHAR_OCTET_LENGTH", default=0)
    ordinal_position: int = bound("ORDINAL_POSITION", default=0)
    is_nullable: Optional[str] = bound("IS_NULLABLE")
    scope_catalog: Optional[str] = bound("SCOPE_CATALOG", nillable=True)
    scope_schema: Optional[str] = bound("SCOPE_SCHEMA", nillable=True)
    scope_table: Optional[str] = bound("SCOPE_TABLE", nillable=True)
    source_data_type: Optional[int] = bound("SOURCE_DATA_TYPE", nillable=True)


@dataclass
class BestRowIdentifier(Entity):
    """A column of a table's optimal row-identifying set."""
    scope: int = bound("SCOPE", default=0)
    column_name: Optional[str] = bound("COLUMN_NAME")
    data_type: int = bound("DATA_TYPE", default=0)
    type_name: Optional[str] = bound("TYPE_NAME")
    column_size: int = bound("COLUMN_SIZE", default=0)
    buffer_length: Optional[int] = bound("BUFFER_LENGTH", unused=True)
    decimal_digits: Optional[int] = bound("DECIMAL_DIGITS", nillable=True)
    pseudo_column: int = bound("PSEUDO_COLUMN", default=0)


@dataclass
class ClientInfoProperty(Entity):
    name: Optional[str] = bound("NAME")
    max_len: int = bound("MAX_LEN", default=0)
    default_value: Optional[str] = bound("DEFAULT_VALUE", nillable=True)
    description: Optional[str] = bound("DESCRIPTION", nillable=True)


@dataclass
class Column(Entity):
    """A table column."""
    table_cat: Optional[str] = bound("TABLE_CAT", nillable=True)
    table_schem: Optional[str] = bound("TABLE_SCHEM", nillable=True)
    table_name: Optional[str] = bound("TABLE_NAME")
    column_name: Optional[str] = bound("COLUMN_NAME")
    data_type: int = bound("DATA_TYPE", default=0)
    type_name: Optional[str] = bound("TYPE_NAME")
    column_size: int = bound("COLUMN_SIZE", default=0)
    buffer_length: Optional[int] = bound("BUFFER_LENGTH", unused=True)
    decimal_digits: Optional[int] = bound("DECIMAL_DIGITS", nillable=True)
    num_prec_radix: int = bound("NUM_PREC_RADIX", default=0)
    nullable: int = bound("NULLABLE", default=0)
    remarks: Optional[str] = bound("REMARKS", nillable=True)
    column_def: Optional[str] = bound("COLUMN_DEF", nillable=True)
    sql_data_type: Optional[int] = bound("SQL_DATA_TYPE", unused=True)
    sql_datetime_sub: Optional[int] = bound("SQL_DATETIME_SUB", unused=True)
    char_octet_length: int = bound("CHAR_OCTET_LENGTH", default=0)
    ordinal_position: int = bound("ORDINAL_POSITION", default=0)
    is_nullable: Optional[str] = bound("IS_NULLABLE")
    scope_catalog: Optional[str] = bound("SCOPE_CATALOG", nillable=True)
    scope_schema: Optional[str] = bound("SCOPE_SCHEMA", nillable=True)
    scope_table: Optional[str] = bound("SCOPE_TABLE", nillable=True)
    source_data_type: Optional[int] = bound("SOURCE_DATA_TYPE", nillable=True)
    is_autoincrement: Optional[str] = bound("IS_AUTOINCREMENT")
    is_generatedcolumn: Optional[str] = bound("IS_GENERATEDCOLUMN")


@dataclass
class ColumnPrivilege(Entity):
    table_cat: Optional[str] = bound("TABLE_CAT", nillable=True)
    table_schem: Optional[str] = bound("TABLE_SCHEM", nillable=True)
    table_name: Optional[str] = bound("TABLE_NAME")
    column_name: Optional[str] = bound("COLUMN_NAME")
    grantor: Optional[str] = bound("GRANTOR", nillable=True)
    grantee: Optional[str] = bound("GRANTEE")
    privilege: Optional[str] = bound("PRIVILEGE")
    is_grantable: Optional[str] = bound("IS_GRANTABLE", nillable=True)


@dataclass
class KeyReference(Entity):
    """Column pair of a foreign key; shared shape of the three key results."""
    pktable_cat: Optional[str] = bound("PKTABLE_CAT", nillable=True)
    pktable_schem: Optional[str] = bound("PKTABLE_SCHEM", nillable=True)
    pktable_name: Optional[str] = bound("PKTABLE_NAME")
    pkcolumn_name: Optional[str] = bound("PKCOLUMN_NAME")
    fktable_cat: Optional[str] = bound("FKTABLE_CAT", nillable=True)
    fktable_schem: Optional[str] = bound("FKTABLE_SCHEM", nillable=True)
    fktable_name: Optional[str] = bound("FKTABLE_NAME")
    fkcolumn_name: Optional[str] = bound("FKCOLUMN_NAME")
    key_seq: int = bound("KEY_SEQ", default=0)
    update_rule: int = bound("UPDATE_RULE", default=0)
    delete_rule: int = bound("DELETE_RULE", default=0)
    fk_name: Optional[str] = bound("FK_NAME", nillable=True)
    pk_name: Optional[str] = bound("PK_NAME", nillable=True)
    deferrability: int = bound("DEFERRABILITY", default=0)


@dataclass
class CrossReference(KeyReference):
    """Foreign key between a parent and a foreign table of the same scope."""


@dataclass
class ExportedKey(KeyReference):
    """Foreign key of another table referencing this table's primary key."""


@dataclass
class ImportedKey(KeyReference):
    """Foreign key of this table referencing another table's primary key."""


@dataclass
class FunctionColumn(Entity):
    function_cat: Optional[str] = bound("FUNCTION_CAT", nillable=True)
    function_schem: Optional[str] = bound("FUNCTION_SCHEM", nillable=True)
    function_name: Optional[str] = bound("FUNCTION_NAME")
    column_name: Optional[str] = bound("COLUMN_NAME")
    column_type: int = bound("COLUMN_TYPE", default=0)
    data_type: int = bound("DATA_TYPE", default=0)
    type_name: Optional[str] = bound("TYPE_NAME")
    precision: int = bound("PRECISION", default=0)
    length: int = bound("LENGTH", default=0)
    scale: Optional[int] = bound("SCALE", nillable=True)
    radix: int = bound("RADIX", default=0)
    nullable: int = bound("NULLABLE", default=0)
    remarks: Optional[str] = bound("REMARKS", nillable=True)
    char_octet_length: Optional[int] = bound("CHAR_OCTET_LENGTH", nillable=True)
    ordinal_position: int = bound("ORDINAL_POSITION", default=0)
    is_nullable: Optional[str] = bound("IS_NULLABLE")
    specific_name: Optional[str] = bound("SPECIFIC_NAME")


@dataclass
class IndexInfo(Entity):
    """One column of one index (or a table statistic row)."""
    table_cat: Optional[str] = bound("TABLE_CAT", nillable=True)
    table_schem: Optional[str] = bound("TABLE_SCHEM", nillable=True)
    table_name: Optional[str] = bound("TABLE_NAME")
    non_unique: bool = bound("NON_UNIQUE", default=False)
    index_qualifier: Optional[str] = bound("INDEX_QUALIFIER", nillable=True)
    index_name: Optional[str] = bound("INDEX_NAME", nillable=True)
    type: int = bound("TYPE", default=0)
    ordinal_position: int = bound("ORDINAL_POSITION", default=0)
    column_name: Optional[str] = bound("COLUMN_NAME", nillable=True)
    asc_or_desc: Optional[str] = bound("ASC_OR_DESC", nillable=True)
    cardinality: int = bound("CARDINALITY", default=0)
    pages: int = bound("PAGES", default=0)
    filter_condition: Optional[str] = bound("FILTER_CONDITION", nillable=True)


@dataclass
class PrimaryKey(Entity):
    table_cat: Optional[str] = bound("TABLE_CAT", nillable=True)
    table_schem: Optional[str] = bound("TABLE_SCHEM", nillable=True)
    table_name: Optional[str] = bound("TABLE_NAME")
    column_name: Optional[str] = bound("COLUMN_NAME")
    key_seq: int = bound("KEY_SEQ", default=0)
    pk_name: Optional[str] = bound("PK_NAME", nillable=True)


@dataclass
class ProcedureColumn(Entity):
    procedure_cat: Optional[str] = bound("PROCEDURE_CAT", nillable=True)
    procedure_schem: Optional[str] = bound("PROCEDURE_SCHEM", nillable=True)
    procedure_name: Optional[str] = bound("PROCEDURE_NAME")
    column_name: Optional[str] = bound("COLUMN_NAME")
    column_type: int = bound("COLUMN_TYPE", default=0)
    data_type: int = bound("DATA_TYPE", default=0)
    type_name: Optional[str] = bound("TYPE_NAME")
    precision: int = bound("PRECISION", default=0)
    length: int = bound("LENGTH", default=0)
    scale: Optional[int] = bound("SCALE", nillable=True)
    radix: int = bound("RADIX", default=0)
    nullable: int = bound("NULLABLE", default=0)
    remarks: Optional[str] = bound("REMARKS", nillable=True)
    column_def: Optional[str] = bound("COLUMN_DEF", nillable=True)
    sql_data_type: Optional[int] = bound("SQL_DATA_TYPE", unused=True)
    sql_datetime_sub: Optional[int] = bound("SQL_DATETIME_SUB", unused=True)
    char_octet_length: Optional[int] = bound("CHAR_OCTET_LENGTH", nillable=True)
    ordinal_position: int = bound("ORDINAL_POSITION", default=0)
    is_nullable: Optional[str] = bound("IS_NULLABLE")
    specific_name: Optional[str] = bound("SPECIFIC_NAME")


@dataclass
class PseudoColumn(Entity):
    """A hidden column (row id and the like)."""
    table_cat: Optional[str] = bound("TABLE_CAT", nillable=True)
    table_schem: Optional[str] = bound("TABLE_SCHEM", nillable=True)
    table_name: Optional[str] = bound("TABLE_NAME")
    column_name: Optional[str] = bound("COLUMN_NAME")
    data_type: int = bound("DATA_TYPE", default=0)
    column_size: int = bound("COLUMN_SIZE", default=0)
    decimal_digits: Optional[int] = bound("DECIMAL_DIGITS", nillable=True)
    num_prec_radix: int = bound("NUM_PREC_RADIX", default=0)
    column_usage: Optional[str] = bound("COLUMN_USAGE")
    remarks: Optional[str] = bound("REMARKS", nillable=True)
    char_octet_length: int = bound("CHAR_OCTET_LENGTH", default=0)
    is_nullable: Optional[str] = bound("IS_NULLABLE")


@dataclass
class SuperTable(Entity):
    table_cat: Optional[str] = bound("TABLE_CAT", nillable=True)
    table_schem: Optional[str] = bound("TABLE_SCHEM", nillable=True)
    table_name: Optional[str] = bound("TABLE_NAME")
    supertable_name: Optional[str] = bound("SUPERTABLE_NAME")


@dataclass
class SuperType(Entity):
    type_cat: Optional[str] = bound("TYPE_CAT", nillable=True)
    type_schem: Optional[str] = bound("TYPE_SCHEM", nillable=True)
    type_name: Optional[str] = bound("TYPE_NAME")
    supertype_cat: Optional[str] = bound("SUPERTYPE_CAT", nillable=True)
    supertype_schem: Optional[str] = bound("SUPERTYPE_SCHEM", nillable=True)
    supertype_name: Optional[str] = bound("SUPERTYPE_NAME")


@dataclass
class TablePrivilege(Entity):
    table_cat: Optional[str] = bound("TABLE_CAT", nillable=True)
    table_schem: Optional[str] = bound("TABLE_SCHEM", nillable=True)
    table_name: Optional[str] = bound("TABLE_NAME")
    grantor: Optional[str] = bound("GRANTOR", nillable=True)
    grantee: Optional[str] = bound("GRANTEE")
    privilege: Optional[str] = bound("PRIVILEGE")
    is_grantable: Optional[str] = bound("IS_GRANTABLE", nillable=True)


@dataclass
class TableType(Entity):
    table_type: Optional[str] = bound("TABLE_TYPE")


@dataclass
class TypeInfo(Entity):
    """A data type supported by the database."""
    type_name: Optional[str] = bound("TYPE_NAME")
    data_type: int = bound("DATA_TYPE", default=0)
    precision: int = bound("PRECISION", default=0)
    literal_prefix: Optional[str] = bound("LITERAL_PREFIX", nillable=True)
    literal_suffix: Optional[str] = bound("LITERAL_SUFFIX", nillable=True)
    create_params: Optional[str] = bound("CREATE_PARAMS", nillable=True)
    nullable: int = bound("NULLABLE", default=0)
    case_sensitive: bool = bound("CASE_SENSITIVE", default=False)
    searchable: int = bound("SEARCHABLE", default=0)
    unsigned_attribute: bool = bound("UNSIGNED_ATTRIBUTE", default=False)
    fixed_prec_scale: bool = bound("FIXED_PREC_SCALE", default=False)
    auto_increment: bool = bound("AUTO_INCREMENT", default=False)
    local_type_name: Optional[str] = bound("LOCAL_TYPE_NAME", nillable=True)
    minimum_scale: int = bound("MINIMUM_SCALE", default=0)
    maximum_scale: int = bound("MAXIMUM_SCALE", default=0)
    sql_data_type: Optional[int] = bound("SQL_DATA_TYPE", unused=True)
    sql_datetime_sub: Optional[int] = bound("SQL_DATETIME_SUB", unused=True)
    num_prec_radix: int = bound("NUM_PREC_RADIX", default=0)


@dataclass
class VersionColumn(Entity):
    """A column updated automatically whenever a row changes."""
    scope: Optional[int] = bound("SCOPE", unused=True)
    column_name: Optional[str] = bound("COLUMN_NAME")
    data_type: int = bound("DATA_TYPE", default=0)
    type_name: Optional[str] = bound("TYPE_NAME")
    column_size: int = bound("COLUMN_SIZE", default=0)
    buffer_length: int = bound("BUFFER_LENGTH", default=0)
    decimal_digits: Optional[int] = bound("DECIMAL_DIGITS", nillable=True)
    pseudo_column: int = bound("PSEUDO_COLUMN", default=0)


# -- owners ---------------------------------------------------------------


@dataclass
class Function(Entity):
    function_cat: Optional[str] = bound("FUNCTION_CAT", nillable=True)
    function_schem: Optional[str] = bound("FUNCTION_SCHEM", nillable=True)
    function_name: Optional[str] = bound("FUNCTION_NAME")
    remarks: Optional[str] = bound("REMARKS", nillable=True)
    function_type: int = bound("FUNCTION_TYPE", default=0)
    specific_name: Optional[str] = bound("SPECIFIC_NAME")

    function_columns: List[FunctionColumn] = invoked(
        FunctionColumn, Operation.GET_FUNCTION_COLUMNS,
        ":function_cat", ":function_schem", ":function_name", "null",
    )


@dataclass
class Procedure(Entity):
    procedure_cat: Optional[str] = bound("PROCEDURE_CAT", nillable=True)
    procedure_schem: Optional[str] = bound("PROCEDURE_SCHEM", nillable=True)
    procedure_name: Optional[str] = bound("PROCEDURE_NAME")
    remarks: Optional[str] = bound("REMARKS", nillable=True)
    procedure_type: int = bound("PROCEDURE_TYPE", default=0)
    specific_name: Optional[str] = bound("SPECIFIC_NAME")

    procedure_columns: List[ProcedureColumn] = invoked(
        ProcedureColumn, Operation.GET_PROCEDURE_COLUMNS,
        ":procedure_cat", ":procedure_schem", ":procedure_name", "null",
    )


@dataclass
class UDT(Entity):
    """A user-defined type."""
    type_cat: Optional[str] = bound("TYPE_CAT", nillable=True)
    type_schem: Optional[str] = bound("TYPE_SCHEM", nillable=True)
    type_name: Optional[str] = bound("TYPE_NAME")
    class_name: Optional[str] = bound("CLASS_NAME")
    data_type: int = bound("DATA_TYPE", default=0)
    remarks: Optional[str] = bound("REMARKS", nillable=True)
    base_type: Optional[int] = bound("BASE_TYPE", nillable=True)

    attributes: List[Attribute] = invoked(
        Attribute, Operation.GET_ATTRIBUTES, ":type_cat", ":type_schem", ":type_name", "null",
    )
    super_types: List[SuperType] = invoked(
        SuperType, Operation.GET_SUPER_TYPES, ":type_cat", ":type_schem", ":type_name",
    )


# Scopes of best row identifiers: temporary, transaction, session.
BEST_ROW_SCOPES = (0, 1, 2)


@dataclass
class Table(Entity):
    table_cat: Optional[str] = bound("TABLE_CAT", nillable=True)
    table_schem: Optional[str] = bound("TABLE_SCHEM", nillable=True)
    table_name: Optional[str] = bound("TABLE_NAME")
    table_type: Optional[str] = bound("TABLE_TYPE")
    remarks: Optional[str] = bound("REMARKS", nillable=True)
    type_cat: Optional[str] = bound("TYPE_CAT", nillable=True)
    type_schem: Optional[str] = bound("TYPE_SCHEM", nillable=True)
    type_name: Optional[str] = bound("TYPE_NAME", nillable=True)
    self_referencing_col_name: Optional[str] = bound("SELF_REFERENCING_COL_NAME", nillable=True)
    ref_generation: Optional[str] = bound("REF_GENERATION", nillable=True)

    columns: List[Column] = invoked(
        Column, Operation.GET_COLUMNS, ":table_cat", ":table_schem", ":table_name", "null",
    )
    column_privileges: List[ColumnPrivilege] = invoked(
        ColumnPrivilege, Operation.GET_COLUMN_PRIVILEGES, ":table_cat", ":table_schem", ":table_name", "null",
    )
    exported_keys: List[ExportedKey] = invoked(
        ExportedKey, Operation.GET_EXPORTED_KEYS, ":table_cat", ":table_schem", ":table_name",
    )
    imported_keys: List[ImportedKey] = invoked(
        ImportedKey, Operation.GET_IMPORTED_KEYS, ":table_cat", ":table_schem", ":table_name",
    )
    index_info: List[IndexInfo] = invoked(
        IndexInfo, Operation.GET_INDEX_INFO, ":table_cat", ":table_schem", ":table_name", "false", "true",
    )
    primary_keys: List[PrimaryKey] = invoked(
        PrimaryKey, Operation.GET_PRIMARY_KEYS, ":table_cat", ":table_schem", ":table_name",
    )
    pseudo_columns: List[PseudoColumn] = invoked(
        PseudoColumn, Operation.GET_PSEUDO_COLUMNS, ":table_cat", ":table_schem", ":table_name", "null",
    )
    super_tables: List[SuperTable] = invoked(
        SuperTable, Operation.GET_SUPER_TABLES, ":table_cat", ":table_schem", ":table_name",
    )
    table_privileges: List[TablePrivilege] = invoked(
        TablePrivilege, Operation.GET_TABLE_PRIVILEGES, ":table_cat", ":table_schem", ":table_name",
    )
    version_columns: List[VersionColumn] = invoked(
        VersionColumn, Operation.GET_VERSION_COLUMNS, ":table_cat", ":table_schem", ":table_name",
    )
    best_row_identifiers: List[BestRowIdentifier] = invoked(
        BestRowIdentifier, Operation.GET_BEST_ROW_IDENTIFIER,
        parameters=[(":table_cat", ":table_schem", ":table_name", str(s), "true") for s in BEST_ROW_SCOPES],
    )

    @property
    def full_name(self) -> str:
        """Return the dotted catalog.schema.table name, skipping empty parts."""
        return ".".join(p for p in (self.table_cat, self.table_schem, self.table_name) if p)


@dataclass
class Schema(Entity):
    table_schem: Optional[str] = bound("TABLE_SCHEM")
    table_catalog: Optional[str] = bound("TABLE_CATALOG", nillable=True)
    virtual: bool = False

    tables: List[Table] = invoked(Table, Operation.GET_TABLES, ":table_catalog", ":table_schem", "null", "null")
    functions: List[Function] = invoked(Function, Operation.GET_FUNCTIONS, ":table_catalog", ":table_schem", "null")
    procedures: List[Procedure] = invoked(
        Procedure, Operation.GET_PROCEDURES, ":table_catalog", ":table_schem", "null",
    )
    udts: List[UDT] = invoked(UDT, Operation.GET_UDTS, ":table_catalog", ":table_schem", "null", "null")
    cross_references: List[CrossReference] = derived(CrossReference)

    @classmethod
    def virtual_instance(cls, table_catalog: Optional[str]) -> Schema:
        """Placeholder schema for a catalog that reports none."""
        return cls(table_schem=VIRTUAL_NAME, table_catalog=table_catalog, virtual=True)


@dataclass
class Catalog(Entity):
    table_cat: Optional[str] = bound("TABLE_CAT")
    virtual: bool = False

    schemas: List[Schema] = invoked(Schema, Operation.GET_SCHEMAS, ":table_cat", "null")
    cross_references: List[CrossReference] = derived(CrossReference)

    @classmethod
    def virtual_instance(cls) -> Catalog:
        """Placeholder catalog for a database that reports none."""
        return cls(table_cat=VIRTUAL_NAME, virtual=True)


ENTITY_TYPES = (
    Attribute, BestRowIdentifier, Catalog, ClientInfoProperty, Column, ColumnPrivilege,
    CrossReference, ExportedKey, Function, FunctionColumn, ImportedKey, IndexInfo,
    PrimaryKey, Procedure, ProcedureColumn, PseudoColumn, Schema, SuperTable, SuperType,
    Table, TablePrivilege, TableType, TypeInfo, UDT, VersionColumn,
)

# Types that can start an extraction and are not reachable from Catalog.
ROOT_TYPES = (Catalog, ClientInfoProperty, TableType, TypeInfo)
