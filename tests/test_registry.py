"""Tests for the collection schema registry."""

import pytest

from memorial.services.exchange import (
    REGISTRY,
    CollectionSchema,
    FieldKind,
    FieldSpec,
    Relation,
    SchemaRegistry,
    UnknownCollectionError,
)


def _schema(name: str, *relations: Relation) -> CollectionSchema:
    fields = [FieldSpec("nameEn", FieldKind.TEXT, default="")]
    fields += [
        FieldSpec(f"{relation.collection}Id", FieldKind.REFERENCE, relation=relation)
        for relation in relations
    ]
    return CollectionSchema(
        name=name,
        sheet_name=name.title(),
        fields=tuple(fields),
        natural_key=("nameEn",),
    )


class TestRegistry:
    def test_import_order(self):
        assert REGISTRY.import_order == (
            "wars",
            "sectors",
            "villages",
            "activityTypes",
            "locations",
            "martyrs",
            "legends",
            "activities",
            "news",
        )

    def test_import_order_puts_referenced_collections_first(self):
        order = REGISTRY.import_order
        for schema in REGISTRY:
            for relation in schema.relations.values():
                assert order.index(relation.collection) < order.index(schema.name)

    def test_every_relation_target_is_known(self):
        for schema in REGISTRY:
            for relation in schema.relations.values():
                assert relation.collection in REGISTRY

    def test_relations(self):
        martyrs = REGISTRY.require("martyrs")
        assert set(martyrs.relations) == {"warId", "locationId"}
        assert martyrs.relations["warId"] == Relation("wars", "War")

    def test_natural_keys(self):
        assert REGISTRY.require("martyrs").natural_key == ("nameEn", "nameAr")
        assert REGISTRY.require("activities").natural_key == ("nameEn", "date")
        assert REGISTRY.require("news").natural_key == ("titleEn", "titleAr")

    def test_lookup_by_sheet_name(self):
        assert REGISTRY.by_sheet_name("Activity Types").name == "activityTypes"
        assert REGISTRY.by_sheet_name("Notes") is None

    def test_require_unknown_collection(self):
        with pytest.raises(UnknownCollectionError, match="Unknown collection: nope"):
            REGISTRY.require("nope")
        with pytest.raises(LookupError):
            REGISTRY.require("nope")

    def test_export_columns_wrap_fields_in_system_columns(self):
        columns = REGISTRY.require("wars").export_columns
        assert columns[0] == "id"
        assert columns[-2:] == ["createdAt", "updatedAt"]
        assert "nameEn" in columns

    def test_known_columns_include_aliases(self):
        known = REGISTRY.require("martyrs").known_columns
        assert {"Name (English)", "War ID", "Birth Date", "createdAt"} <= known


class TestRegistryValidation:
    def test_order_follows_relations_not_declaration(self):
        parent = _schema("parents")
        child = _schema("children", Relation("parents", "Parent"))
        registry = SchemaRegistry([child, parent])
        assert registry.import_order == ("parents", "children")

    def test_ties_keep_declaration_order(self):
        registry = SchemaRegistry([_schema("b"), _schema("a"), _schema("c")])
        assert registry.import_order == ("b", "a", "c")

    def test_cycle_rejected(self):
        first = _schema("first", Relation("second", "Second"))
        second = _schema("second", Relation("first", "First"))
        with pytest.raises(ValueError, match="Cyclic"):
            SchemaRegistry([first, second])

    def test_unknown_relation_target_rejected(self):
        with pytest.raises(ValueError, match="unknown collection"):
            SchemaRegistry([_schema("orphans", Relation("ghosts", "Ghost"))])

    def test_duplicate_collection_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            SchemaRegistry([_schema("a"), _schema("a")])

    def test_undeclared_natural_key_rejected(self):
        with pytest.raises(ValueError, match="natural key"):
            CollectionSchema(
                name="broken",
                sheet_name="Broken",
                fields=(FieldSpec("nameEn", FieldKind.TEXT),),
                natural_key=("titleEn",),
            )
