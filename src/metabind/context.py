"""
MetadataContext: top-level entry points of an extraction.

One context wraps one provider and owns one extraction session (suppressed
paths + diagnostics). Every public ``get_*`` method runs the provider
operation of the same name, binds each returned row and expands its nested
collections depth first.

Usage:
    context = MetadataContext(SqliteProvider("bank.db"))
    context.suppress("table/index_info", "table/column_privileges")
    catalogs = context.get_catalogs(nonempty=True)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Optional, Sequence

from metabind.binder import Diagnostics, ExtractionSession, RowBinder
from metabind.config import ExtractionConfig
from metabind.descriptors import DescriptorRegistry, make_path
from metabind.errors import EntityConstructionError, ExtractionError, MalformedDescriptorError
from metabind.expander import GraphExpander
from metabind.models import (
    UDT,
    Attribute,
    BestRowIdentifier,
    Catalog,
    ClientInfoProperty,
    Column,
    ColumnPrivilege,
    CrossReference,
    ExportedKey,
    Function,
    FunctionColumn,
    ImportedKey,
    IndexInfo,
    PrimaryKey,
    Procedure,
    ProcedureColumn,
    PseudoColumn,
    Schema,
    SuperTable,
    SuperType,
    Table,
    TablePrivilege,
    TableType,
    TypeInfo,
    VersionColumn,
)
from metabind.providers.base import Operation, RowCursor, invoke
from metabind.suppression import SuppressionFilter

logger = logging.getLogger(__name__)


class MetadataContext:
    """Binds the results of one MetadataProvider into entity graphs."""

    def __init__(
        self,
        provider: Any,
        suppression: Optional[SuppressionFilter] = None,
        registry: Optional[DescriptorRegistry] = None,
    ):
        """
        Initialize the context.

        Args:
            provider: Introspection source; owned by the caller and never closed here
            suppression: Paths to skip; a fresh empty filter if omitted
            registry: Descriptor cache; the process-wide one if omitted
        """
        if provider is None:
            raise ValueError("provider is None")
        self.provider = provider
        self.session = ExtractionSession(suppression=suppression if suppression is not None else SuppressionFilter())
        self.binder = RowBinder(registry)
        self.expander = GraphExpander(self.binder)
        self.registry = self.binder.registry

    @property
    def suppression(self) -> SuppressionFilter:
        return self.session.suppression

    @property
    def diagnostics(self) -> Diagnostics:
        return self.session.diagnostics

    @classmethod
    def from_config(cls, provider: Any, config: ExtractionConfig) -> MetadataContext:
        return cls(provider, suppression=config.suppression())

    def suppress(self, *paths: str) -> MetadataContext:
        """Suppress ``<entity>/<field>`` paths; returns self for chaining."""
        self.session.suppression.suppress(*paths)
        return self

    def extract(self, config: ExtractionConfig) -> List[Any]:
        """Run the extraction a config describes: schemas when scoped, catalogs otherwise."""
        if config.scoped:
            return self.get_schemas(config.catalog, config.schema_pattern, nonempty=config.nonempty)
        return self.get_catalogs(nonempty=config.nonempty)

    @contextmanager
    def _top_level(self, operation: Operation, entity_type: type) -> Iterator[None]:
        """Re-raise any failure inside a top-level call as ExtractionError."""
        try:
            yield
        except (MalformedDescriptorError, EntityConstructionError, ExtractionError):
            raise
        except Exception as e:
            raise ExtractionError(operation.value, entity_type, path=getattr(e, "path", None), cause=e) from e

    def _bind(self, operation: Operation, entity_type: type, *arguments: Any) -> List[Any]:
        """Run a top-level operation; any provider failure aborts the call."""
        with self._top_level(operation, entity_type):
            cursor = invoke(self.provider, operation, arguments)
            if not isinstance(cursor, RowCursor):
                raise TypeError(f"expected a RowCursor, got {type(cursor).__name__}")
            with cursor:
                instances = self.expander.bind_all(cursor, entity_type, self.session, self.provider)

        logger.info(f"{operation.value}: bound {len(instances)} {entity_type.__name__} entities")
        return instances

    # -- catalogs and schemas -------------------------------------------

    def get_catalogs(self, nonempty: bool = False) -> List[Catalog]:
        """
        Bind every catalog with its schemas, tables and routines.

        Args:
            nonempty: Synthesize a virtual catalog when none is reported, and a
                virtual schema for every catalog left without schemas

        Returns:
            Catalogs, each carrying the cross references among its tables
        """
        catalogs = self._bind(Operation.GET_CATALOGS, Catalog)
        with self._top_level(Operation.GET_CATALOGS, Catalog):
            if not catalogs and nonempty:
                logger.debug("No catalogs reported; adding a virtual catalog")
                catalog = Catalog.virtual_instance()
                self.expander.expand(catalog, Catalog, self.session, self.provider)
                catalogs.append(catalog)

            if nonempty and not self.session.is_suppressed(make_path(Catalog, "schemas")):
                for catalog in catalogs:
                    if not catalog.schemas:
                        catalog.schemas.append(self._virtual_schema(catalog.table_cat))

            for catalog in catalogs:
                self._attach_cross_references(catalog, Catalog)
        return catalogs

    def get_schemas(
        self,
        catalog: Optional[str] = None,
        schema_pattern: Optional[str] = None,
        nonempty: bool = False,
    ) -> List[Schema]:
        """
        Bind the schemas of a catalog with their tables and routines.

        Args:
            catalog: Catalog name; "" for schemas without a catalog, None for any
            schema_pattern: LIKE pattern on schema names; None for any
            nonempty: Synthesize a virtual schema when none is reported

        Returns:
            Schemas, each carrying the cross references among its tables
        """
        schemas = self._bind(Operation.GET_SCHEMAS, Schema, catalog, schema_pattern)
        with self._top_level(Operation.GET_SCHEMAS, Schema):
            if not schemas and nonempty:
                logger.debug(f"No schemas reported for catalog {catalog!r}; adding a virtual schema")
                schemas.append(self._virtual_schema(catalog))

            for schema in schemas:
                self._attach_cross_references(schema, Schema)
        return schemas

    def _virtual_schema(self, table_catalog: Optional[str]) -> Schema:
        schema = Schema.virtual_instance(table_catalog)
        self.expander.expand(schema, Schema, self.session, self.provider)
        return schema

    # -- cross references -----------------------------------------------

    def collect(self, root: Any, entity_type: type) -> List[Any]:
        """Every instance of ``entity_type`` nested below ``root``, depth first."""
        found: List[Any] = []
        descriptor = self.registry.descriptors_for(type(root))
        for directive in descriptor.invocations:
            for child in getattr(root, directive.field_name):
                if isinstance(child, entity_type):
                    found.append(child)
                found.extend(self.collect(child, entity_type))
        return found

    def _attach_cross_references(self, scope: Any, scope_type: type) -> None:
        path = make_path(scope_type, "cross_references")
        if self.session.is_suppressed(path):
            logger.debug(f"Skipping suppressed {path}")
            return
        tables = self.collect(scope, Table)
        scope.cross_references.extend(self._cross_references(tables, path))

    def get_cross_references(self, tables: Sequence[Table], path: str = "cross_reference") -> List[CrossReference]:
        """
        Cross references of every ordered pair of tables, self-pairs included.

        Issues ``len(tables) ** 2`` lookups. A failing lookup is logged and
        contributes nothing. A closed connection raises ExtractionError.
        """
        with self._top_level(Operation.GET_CROSS_REFERENCE, CrossReference):
            return self._cross_references(tables, path)

    def _cross_references(self, tables: Sequence[Table], path: str) -> List[CrossReference]:
        references: List[CrossReference] = []
        for parent in tables:
            for foreign in tables:
                arguments = (
                    parent.table_cat, parent.table_schem, parent.table_name,
                    foreign.table_cat, foreign.table_schem, foreign.table_name,
                )
                references.extend(self.expander.fetch(
                    self.provider, Operation.GET_CROSS_REFERENCE, arguments, CrossReference, self.session, path,
                ))
        logger.debug(f"{len(references)} cross references among {len(tables)} tables")
        return references

    def get_cross_reference(
        self,
        parent_catalog: Optional[str],
        parent_schema: Optional[str],
        parent_table: str,
        foreign_catalog: Optional[str],
        foreign_schema: Optional[str],
        foreign_table: str,
    ) -> List[CrossReference]:
        return self._bind(
            Operation.GET_CROSS_REFERENCE, CrossReference,
            parent_catalog, parent_schema, parent_table, foreign_catalog, foreign_schema, foreign_table,
        )

    # -- tables and their parts -----------------------------------------

    def get_tables(
        self,
        catalog: Optional[str] = None,
        schema_pattern: Optional[str] = None,
        table_name_pattern: Optional[str] = None,
        types: Optional[Sequence[str]] = None,
    ) -> List[Table]:
        return self._bind(
            Operation.GET_TABLES, Table,
            catalog, schema_pattern, table_name_pattern, list(types) if types is not None else None,
        )

    def get_columns(
        self,
        catalog: Optional[str] = None,
        schema_pattern: Optional[str] = None,
        table_name_pattern: Optional[str] = None,
        column_name_pattern: Optional[str] = None,
    ) -> List[Column]:
        return self._bind(
            Operation.GET_COLUMNS, Column, catalog, schema_pattern, table_name_pattern, column_name_pattern,
        )

    def get_column_privileges(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
        column_name_pattern: Optional[str] = None,
    ) -> List[ColumnPrivilege]:
        return self._bind(Operation.GET_COLUMN_PRIVILEGES, ColumnPrivilege, catalog, schema, table, column_name_pattern)

    def get_best_row_identifier(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
        scope: int,
        nullable: bool,
    ) -> List[BestRowIdentifier]:
        return self._bind(Operation.GET_BEST_ROW_IDENTIFIER, BestRowIdentifier, catalog, schema, table, scope, nullable)

    def get_exported_keys(self, catalog: Optional[str], schema: Optional[str], table: str) -> List[ExportedKey]:
        return self._bind(Operation.GET_EXPORTED_KEYS, ExportedKey, catalog, schema, table)

    def get_imported_keys(self, catalog: Optional[str], schema: Optional[str], table: str) -> List[ImportedKey]:
        return self._bind(Operation.GET_IMPORTED_KEYS, ImportedKey, catalog, schema, table)

    def get_index_info(
        self,
        catalog: Optional[str],
        schema: Optional[str],
        table: str,
        unique: bool = False,
        approximate: bool = True,
    ) -> List[IndexInfo]:
        return self._bind(Operation.GET_INDEX_INFO, IndexInfo, catalog, schema, table, unique, approximate)

    def get_primary_keys(self, catalog: Optional[str], schema: Optional[str], table: str) -> List[PrimaryKey]:
        return self._bind(Operation.GET_PRIMARY_KEYS, PrimaryKey, catalog, schema, table)

    def get_pseudo_columns(
        self,
        catalog: Optional[str] = None,
        schema_pattern: Optional[str] = None,
        table_name_pattern: Optional[str] = None,
        column_name_pattern: Optional[str] = None,
    ) -> List[PseudoColumn]:
        return self._bind(
            Operation.GET_PSEUDO_COLUMNS, PseudoColumn, catalog, schema_pattern, table_name_pattern, column_name_pattern,
        )

    def get_super_tables(
        self,
        catalog: Optional[str] = None,
        schema_pattern: Optional[str] = None,
        table_name_pattern: Optional[str] = None,
    ) -> List[SuperTable]:
        return self._bind(Operation.GET_SUPER_TABLES, SuperTable, catalog, schema_pattern, table_name_pattern)

    def get_table_privileges(
        self,
        catalog: Optional[str] = None,
        schema_pattern: Optional[str] = None,
        table_name_pattern: Optional[str] = None,
    ) -> List[TablePrivilege]:
        return self._bind(Operation.GET_TABLE_PRIVILEGES, TablePrivilege, catalog, schema_pattern, table_name_pattern)

    def get_version_columns(self, catalog: Optional[str], schema: Optional[str], table: str) -> List[VersionColumn]:
        return self._bind(Operation.GET_VERSION_COLUMNS, VersionColumn, catalog, schema, table)

    # -- routines ---------------------------------------------------------

    def get_functions(
        self,
        catalog: Optional[str] = None,
        schema_pattern: Optional[str] = None,
        function_name_pattern: Optional[str] = None,
    ) -> List[Function]:
        return self._bind(Operation.GET_FUNCTIONS, Function, catalog, schema_pattern, function_name_pattern)

    def get_function_columns(
        self,
        catalog: Optional[str] = None,
        schema_pattern: Optional[str] = None,
        function_name_pattern: Optional[str] = None,
        column_name_pattern: Optional[str] = None,
    ) -> List[FunctionColumn]:
        return self._bind(
            Operation.GET_FUNCTION_COLUMNS, FunctionColumn,
            catalog, schema_pattern, function_name_pattern, column_name_pattern,
        )

    def get_procedures(
        self,
        catalog: Optional[str] = None,
        schema_pattern: Optional[str] = None,
        procedure_name_pattern: Optional[str] = None,
    ) -> List[Procedure]:
        return self._bind(Operation.GET_PROCEDURES, Procedure, catalog, schema_pattern, procedure_name_pattern)

    def get_procedure_columns(
        self,
        catalog: Optional[str] = None,
        schema_pattern: Optional[str] = None,
        procedure_name_pattern: Optional[str] = None,
        column_name_pattern: Optional[str] = None,
    ) -> List[ProcedureColumn]:
        return self._bind(
            Operation.GET_PROCEDURE_COLUMNS, ProcedureColumn,
            catalog, schema_pattern, procedure_name_pattern, column_name_pattern,
        )

    # -- user-defined types ---------------------------------------------

    def get_udts(
        self,
        catalog: Optional[str] = None,
        schema_pattern: Optional[str] = None,
        type_name_pattern: Optional[str] = None,
        types: Optional[Iterable[int]] = None,
    ) -> List[UDT]:
        return self._bind(
            Operation.GET_UDTS, UDT,
            catalog, schema_pattern, type_name_pattern, list(types) if types is not None else None,
        )

    def get_attributes(
        self,
        catalog: Optional[str] = None,
        schema_pattern: Optional[str] = None,
        type_name_pattern: Optional[str] = None,
        attribute_name_pattern: Optional[str] = None,
    ) -> List[Attribute]:
        return self._bind(
            Operation.GET_ATTRIBUTES, Attribute, catalog, schema_pattern, type_name_pattern, attribute_name_pattern,
        )

    def get_super_types(
        self,
        catalog: Optional[str] = None,
        schema_pattern: Optional[str] = None,
        type_name_pattern: Optional[str] = None,
    ) -> List[SuperType]:
        return self._bind(Operation.GET_SUPER_TYPES, SuperType, catalog, schema_pattern, type_name_pattern)

    # -- database-wide ----------------------------------------------------

    def get_client_info_properties(self) -> List[ClientInfoProperty]:
        return self._bind(Operation.GET_CLIENT_INFO_PROPERTIES, ClientInfoProperty)

    def get_table_types(self) -> List[TableType]:
        return self._bind(Operation.GET_TABLE_TYPES, TableType)

    def get_type_info(self) -> List[TypeInfo]:
        return self._bind(Operation.GET_TYPE_INFO, TypeInfo)
