"""Tests for specir.analysis.type_model."""

from __future__ import annotations

import pytest

from specir.analysis.type_model import TypeModelBuilder, component_name, type_expression
from specir.exceptions import UnresolvedReferenceError
from specir.parser.spec_parser import SpecParser


class TestComponentName:
    @pytest.mark.parametrize(
        ("ref", "expected"),
        [
            ("#/components/schemas/Pet", "Pet"),
            ("#/definitions/pet_type", "PetType"),
            ("other.json#/components/schemas/Owner", "Owner"),
            ("#/components/schemas/Pet/properties/name", None),
            ("schemas.yaml#/Pet", None),
            (None, None),
        ],
    )
    def test_component_name(self, ref, expected) -> None:
        assert component_name(ref) == expected


class TestTypeExpression:
    @pytest.mark.parametrize(
        ("schema", "expected"),
        [
            ({}, "any"),
            ({"type": "string"}, "string"),
            ({"type": "string", "format": "binary"}, "binary"),
            ({"type": "integer"}, "number"),
            ({"type": "boolean"}, "boolean"),
            ({"type": "array"}, "any[]"),
            ({"type": "array", "items": {"type": "string"}}, "string[]"),
            ({"type": "array", "items": {"oneOf": [{"type": "string"}, {"type": "number"}]}}, "(string | number)[]"),
            ({"type": "object"}, "Record<string, any>"),
            ({"type": "object", "additionalProperties": {"type": "integer"}}, "Record<string, number>"),
            ({"const": "cat"}, '"cat"'),
            ({"enum": [1, 2]}, "1 | 2"),
            ({"type": "string", "nullable": True}, "string | null"),
        ],
    )
    def test_inline_schemas(self, petstore: SpecParser, schema, expected: str) -> None:
        assert type_expression(schema, petstore.resolver) == expected

    def test_references_are_not_expanded(self, petstore: SpecParser) -> None:
        assert type_expression({"$ref": "#/components/schemas/Pet"}, petstore.resolver) == "Pet"

    def test_intersection(self, petstore: SpecParser) -> None:
        schema = {"allOf": [{"$ref": "#/components/schemas/Pet"}, {"$ref": "#/components/schemas/Category"}]}
        assert type_expression(schema, petstore.resolver) == "Pet & Category"

    def test_inline_object(self, tree: SpecParser) -> None:
        owner = tree.get_definition("Category")["properties"]["owner"]
        assert type_expression(owner, tree.resolver) == "{ email?: string; favourite?: Category }"


class TestTypeModelBuilder:
    def test_interface(self, petstore: SpecParser) -> None:
        model = TypeModelBuilder(petstore).build("Pet")
        props = {p.name: p for p in model.properties}

        assert model.kind == "interface"
        assert model.description == "A pet in the store."
        assert props["id"].read_only is True
        assert props["name"].required is True
        assert props["tag"].nullable is True
        assert props["tag"].type == "string | null"
        assert props["category"].type == "Category"
        assert props["photoUrls"].type == "string[]"

    def test_enum(self, petstore: SpecParser) -> None:
        model = TypeModelBuilder(petstore).build("Status")
        assert model.kind == "enum"
        assert model.enum_values == ["available", "pending", "sold"]

    def test_array_alias(self, petstore: SpecParser) -> None:
        model = TypeModelBuilder(petstore).build("PetList")
        assert (model.kind, model.type_expression) == ("alias", "Pet[]")

    def test_reference_alias(self, make_parser) -> None:
        document = {
            "openapi": "3.0.3",
            "info": {"title": "t", "version": "1"},
            "paths": {},
            "components": {
                "schemas": {
                    "Pet": {"type": "object", "properties": {"name": {"type": "string"}}},
                    "Animal": {"$ref": "#/components/schemas/Pet"},
                }
            },
        }
        model = TypeModelBuilder(make_parser(document)).build("Animal")
        assert (model.kind, model.type_expression) == ("alias", "Pet")

    def test_self_reference(self, tree: SpecParser) -> None:
        model = TypeModelBuilder(tree).build("Node")
        props = {p.name: p for p in model.properties}

        assert model.kind == "interface"
        assert (props["value"].type, props["value"].required) == ("string", True)
        assert props["children"].type == "Node[]"
        assert props["parent"].type == "Node"

    def test_all_of_becomes_extends(self, polymorphism: SpecParser) -> None:
        model = TypeModelBuilder(polymorphism).build("Cat")
        props = {p.name: p for p in model.properties}

        assert model.extends == ["PetBase"]
        assert list(props) == ["petType", "meows"]
        assert props["petType"].type == '"cat"'
        assert props["petType"].required is True
        assert props["meows"].required is False

    def test_all_of_cycle(self, tree: SpecParser) -> None:
        model = TypeModelBuilder(tree).build("Base")
        assert model.extends == ["Derived"]
        assert [(p.name, p.required) for p in model.properties] == [("a", True)]

    def test_union_alias(self, polymorphism: SpecParser) -> None:
        builder = TypeModelBuilder(polymorphism)

        pet = builder.build("Pet")
        assert (pet.kind, pet.type_expression, pet.discriminator) == ("alias", "Cat | Dog", "petType")
        assert builder.build("Value").type_expression == "string | number | Circle"

    def test_build_all(self, petstore: SpecParser) -> None:
        models = TypeModelBuilder(petstore).build_all()
        assert [m.name for m in models] == ["Pet", "Category", "Error", "Report", "Status", "PetList"]

    def test_unknown_schema(self, petstore: SpecParser) -> None:
        with pytest.raises(UnresolvedReferenceError):
            TypeModelBuilder(petstore).build("Missing")

    def test_swagger2_definitions(self, swagger: SpecParser) -> None:
        model = TypeModelBuilder(swagger).build("Pet")
        assert [p.name for p in model.properties] == ["name", "photoUrls"]
