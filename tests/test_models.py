"""Tests for the entity types."""

import pytest

from metabind.descriptors import DescriptorRegistry, entity_name
from metabind.models import (
    BEST_ROW_SCOPES,
    ENTITY_TYPES,
    ROOT_TYPES,
    VIRTUAL_NAME,
    Catalog,
    Column,
    CrossReference,
    ExportedKey,
    ImportedKey,
    Schema,
    Table,
    to_dict,
)


class TestEntityTypes:
    """Every entity type compiles and carries the expected shape."""

    @pytest.mark.parametrize("entity_type", ENTITY_TYPES, ids=lambda t: t.__name__)
    def test_compiles(self, entity_type):
        descriptor = DescriptorRegistry().descriptors_for(entity_type)
        assert descriptor.columns
        assert descriptor.name == entity_name(entity_type)

    def test_entity_count(self):
        assert len(ENTITY_TYPES) == 25
        assert len({entity_name(t) for t in ENTITY_TYPES}) == 25

    def test_roots_cover_every_type(self):
        reached = {d.entity_type for d in DescriptorRegistry().walk(ROOT_TYPES)}
        assert reached == set(ENTITY_TYPES)

    def test_key_shapes_match(self):
        registry = DescriptorRegistry()
        labels = [
            [d.column_label for d in registry.descriptors_for(t).columns]
            for t in (CrossReference, ExportedKey, ImportedKey)
        ]
        assert labels[0] == labels[1] == labels[2]

    def test_best_row_scopes(self):
        assert BEST_ROW_SCOPES == (0, 1, 2)


class TestTable:
    """Tests for Table."""

    def test_defaults(self):
        table = Table()
        assert table.table_name is None
        assert table.columns == []
        assert table.best_row_identifiers == []

    def test_collections_not_shared(self):
        first, second = Table(), Table()
        first.columns.append(Column(column_name="id"))
        assert second.columns == []

    def test_full_name(self):
        assert Table(table_cat="db1", table_schem="public", table_name="accounts").full_name == "db1.public.accounts"
        assert Table(table_cat="main", table_name="accounts").full_name == "main.accounts"


class TestVirtualInstances:
    """Tests for synthesized catalogs and schemas."""

    def test_virtual_catalog(self):
        catalog = Catalog.virtual_instance()
        assert catalog.virtual is True
        assert catalog.table_cat == VIRTUAL_NAME
        assert catalog.schemas == []

    def test_virtual_schema(self):
        schema = Schema.virtual_instance("main")
        assert schema.virtual is True
        assert schema.table_schem == VIRTUAL_NAME
        assert schema.table_catalog == "main"

    def test_bound_instances_are_not_virtual(self):
        assert Schema(table_schem="public").virtual is False


class TestSerialization:
    """Tests for to_dict and from_dict."""

    def test_nested_to_dict(self):
        catalog = Catalog(table_cat="db1")
        schema = Schema(table_schem="public", table_catalog="db1")
        table = Table(table_cat="db1", table_schem="public", table_name="accounts", table_type="TABLE")
        table.columns.append(Column(column_name="id", data_type=4, ordinal_position=1))
        schema.tables.append(table)
        catalog.schemas.append(schema)

        data = catalog.to_dict()

        assert data["table_cat"] == "db1"
        assert data["virtual"] is False
        assert data["schemas"][0]["tables"][0]["columns"][0]["column_name"] == "id"
        assert data["cross_references"] == []

    def test_from_dict_rebuilds_nested_types(self):
        table = Table(table_name="accounts")
        table.columns.append(Column(column_name="id"))
        table.imported_keys.append(ImportedKey(pktable_name="customers", fkcolumn_name="customer_id"))

        restored = Table.from_dict(table.to_dict())

        assert restored == table
        assert isinstance(restored.columns[0], Column)
        assert isinstance(restored.imported_keys[0], ImportedKey)

    def test_from_dict_ignores_unknown_keys(self):
        schema = Schema.from_dict({"table_schem": "public", "owner": "bank"})
        assert schema.table_schem == "public"

    def test_to_dict_of_list(self):
        assert to_dict([Schema(table_schem="a"), Schema(table_schem="b")])[1]["table_schem"] == "b"
