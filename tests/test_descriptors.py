"""Tests for directive declaration and the descriptor registry."""

import threading
from dataclasses import dataclass
from typing import List, Optional

import pytest

from metabind.descriptors import (
    DescriptorRegistry,
    entity_name,
    invoked,
    bound,
    make_path,
)
from metabind.errors import MalformedDescriptorError
from metabind.models import (
    ROOT_TYPES,
    UDT,
    BestRowIdentifier,
    Catalog,
    Column,
    CrossReference,
    IndexInfo,
    Table,
    TypeInfo,
)
from metabind.providers.base import Operation


class NotADataclass:
    pass


@dataclass
class DuplicateLabel:
    first: Optional[str] = bound("NAME")
    second: Optional[str] = bound("NAME")


@dataclass
class EmptyLabel:
    name: Optional[str] = bound("")


@dataclass
class NillableNotOptional:
    count: int = bound("COUNT", nillable=True, default=0)


@dataclass
class NotAList:
    name: Optional[str] = bound("NAME")
    columns: Column = invoked(Column, Operation.GET_COLUMNS, "null", "null", ":name", "null")


@dataclass
class WrongArity:
    name: Optional[str] = bound("NAME")
    columns: List[Column] = invoked(Column, Operation.GET_COLUMNS, ":name")


@dataclass
class DanglingReference:
    name: Optional[str] = bound("NAME")
    columns: List[Column] = invoked(Column, Operation.GET_COLUMNS, "null", "null", ":missing", "null")


@dataclass
class BadLiteral:
    name: Optional[str] = bound("NAME")
    indexes: List[IndexInfo] = invoked(IndexInfo, Operation.GET_INDEX_INFO, "null", "null", ":name", "maybe", "true")


@dataclass
class ElementNotADataclass:
    name: Optional[str] = bound("NAME")
    things: List[str] = invoked(str, Operation.GET_COLUMNS, "null", "null", ":name", "null")


@dataclass
class UnknownOperation:
    name: Optional[str] = bound("NAME")
    things: List[Column] = invoked(Column, "get_nothing", ":name")


@dataclass
class Renamed:
    __entity_name__ = "renamed_thing"
    name: Optional[str] = bound("NAME")


@pytest.fixture
def registry():
    return DescriptorRegistry()


class TestNaming:
    """Tests for entity names and paths."""

    def test_snake_case_names(self):
        assert entity_name(Table) == "table"
        assert entity_name(BestRowIdentifier) == "best_row_identifier"
        assert entity_name(TypeInfo) == "type_info"
        assert entity_name(UDT) == "udt"
        assert entity_name(CrossReference) == "cross_reference"

    def test_explicit_name(self):
        assert entity_name(Renamed) == "renamed_thing"

    def test_make_path(self):
        assert make_path(Table, "columns") == "table/columns"
        assert make_path(Catalog, "schemas") == "catalog/schemas"


class TestDescriptorRegistry:
    """Tests for DescriptorRegistry."""

    def test_table_descriptor(self, registry):
        descriptor = registry.descriptors_for(Table)

        assert descriptor.name == "table"
        assert descriptor.columns[0].column_label == "TABLE_CAT"
        assert descriptor.columns[0].path == "table/table_cat"
        assert [d.field_name for d in descriptor.invocations][:3] == [
            "columns", "column_privileges", "exported_keys",
        ]
        columns = descriptor.invocations[0]
        assert columns.operation is Operation.GET_COLUMNS
        assert columns.element_type is Column
        assert columns.argument_templates == ((":table_cat", ":table_schem", ":table_name", "null"),)

    def test_column_lookup(self, registry):
        descriptor = registry.descriptors_for(Column)
        directive = descriptor.column("buffer_length")
        assert directive.column_label == "BUFFER_LENGTH"
        assert directive.unused is True
        assert descriptor.column("no_such_field") is None

    def test_value_types(self, registry):
        descriptor = registry.descriptors_for(IndexInfo)
        assert descriptor.column("non_unique").value_type is bool
        assert descriptor.column("ordinal_position").value_type is int
        assert descriptor.column("index_name").value_type is str
        assert descriptor.column("index_name").nillable is True

    def test_multiple_argument_sets(self, registry):
        descriptor = registry.descriptors_for(Table)
        best_rows = next(d for d in descriptor.invocations if d.field_name == "best_row_identifiers")
        assert [t[3] for t in best_rows.argument_templates] == ["0", "1", "2"]

    def test_derived_fields(self, registry):
        descriptor = registry.descriptors_for(Catalog)
        assert [d.path for d in descriptor.derived] == ["catalog/cross_references"]
        assert [d.path for d in descriptor.invocations] == ["catalog/schemas"]

    def test_inherited_columns(self, registry):
        descriptor = registry.descriptors_for(CrossReference)
        assert descriptor.column("pktable_name").path == "cross_reference/pktable_name"
        assert len(descriptor.columns) == 14

    def test_compiled_once(self, registry):
        assert Table not in registry
        first = registry.descriptors_for(Table)
        assert Table in registry
        assert registry.descriptors_for(Table) is first

    def test_concurrent_lookups_share_descriptor(self, registry):
        results = []

        def lookup():
            results.append(registry.descriptors_for(Column))

        threads = [threading.Thread(target=lookup) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 8
        assert all(r is results[0] for r in results)

    def test_unknown_operation_is_kept(self, registry):
        descriptor = registry.descriptors_for(UnknownOperation)
        assert descriptor.invocations[0].operation == "get_nothing"

    def test_known_paths(self, registry):
        paths = registry.known_paths(ROOT_TYPES)
        for path in (
            "catalog/schemas",
            "catalog/cross_references",
            "schema/tables",
            "table/columns",
            "column/column_name",
            "udt/attributes",
            "type_info/type_name",
            "client_info_property/name",
        ):
            assert path in paths
        assert len(paths) == len(set(paths))

    def test_walk_reaches_every_owned_type(self, registry):
        reached = {d.entity_type for d in registry.walk([Catalog])}
        assert Table in reached
        assert Column in reached
        assert CrossReference in reached
        assert TypeInfo not in reached


class TestMalformedDescriptors:
    """Malformed declarations are rejected at first use."""

    @pytest.mark.parametrize("entity_type, fragment", [
        (NotADataclass, "dataclass"),
        (DuplicateLabel, "already bound"),
        (EmptyLabel, "empty column label"),
        (NillableNotOptional, "Optional"),
        (NotAList, "List"),
        (WrongArity, "takes 4 arguments"),
        (DanglingReference, ":missing"),
        (BadLiteral, "boolean"),
        (ElementNotADataclass, "not a dataclass"),
    ])
    def test_rejected(self, registry, entity_type, fragment):
        with pytest.raises(MalformedDescriptorError) as excinfo:
            registry.descriptors_for(entity_type)

        assert fragment in str(excinfo.value)
        assert excinfo.value.entity_type is entity_type
        assert entity_type not in registry

    def test_error_names_field(self, registry):
        with pytest.raises(MalformedDescriptorError) as excinfo:
            registry.descriptors_for(WrongArity)
        assert excinfo.value.field_name == "columns"
        assert "WrongArity.columns" in str(excinfo.value)

    def test_positional_and_parameters_conflict(self):
        with pytest.raises(TypeError):
            invoked(Column, Operation.GET_COLUMNS, ":a", parameters=[("null", "null", "null", "null")])
