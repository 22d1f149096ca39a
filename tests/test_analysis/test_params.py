"""Tests for specir.analysis.params."""

from __future__ import annotations

from typing import Any

import pytest

from specir.analysis.params import (
    body_param_name,
    build_body_variant,
    build_param_serialization,
    default_style,
    select_body_media_type,
    xml_config,
)
from specir.models import (
    EncodedFormDataBody,
    JsonBody,
    MultipartBody,
    Parameter,
    ParameterLocation,
    PathInfo,
    RawBody,
    RequestBody,
    UrlencodedBody,
    XmlBody,
)
from specir.parser.spec_parser import SpecParser


def _param(location: str, schema: Any = None, **kwargs: Any) -> Parameter:
    return Parameter(name=kwargs.pop("name", "value"), location=ParameterLocation(location), schema=schema, **kwargs)


def _op(content: dict[str, Any] | None, **kwargs: Any) -> PathInfo:
    body = RequestBody(content=content) if content is not None else None
    return PathInfo(path="/x", method="POST", request_body=body, **kwargs)


def _find(parser: SpecParser, operation_id: str) -> PathInfo:
    return next(op for op in parser.operations if op.operation_id == operation_id)


# ---------------------------------------------------------------------------
# Parameter serialization
# ---------------------------------------------------------------------------


class TestParamSerialization:
    @pytest.mark.parametrize(
        ("location", "style"),
        [("query", "form"), ("cookie", "form"), ("path", "simple"), ("header", "simple")],
    )
    def test_default_style(self, location: str, style: str) -> None:
        assert default_style(ParameterLocation(location)) == style

    def test_explode_defaults_follow_style(self, petstore: SpecParser) -> None:
        query = build_param_serialization(_param("query", {"type": "string"}), petstore.resolver)
        path = build_param_serialization(_param("path", {"type": "string"}), petstore.resolver)
        assert query.explode is True
        assert path.explode is False
        assert query.style == "form"
        assert path.style == "simple"

    def test_explicit_style_and_explode(self, petstore: SpecParser) -> None:
        param = _param("query", {"type": "array", "items": {"type": "string"}}, style="pipeDelimited", explode=False)
        result = build_param_serialization(param, petstore.resolver)
        assert (result.style, result.explode, result.serialization_link) == ("pipeDelimited", False, None)

    def test_param_name_is_camel_cased(self, petstore: SpecParser) -> None:
        result = build_param_serialization(_param("header", {"type": "string"}, name="X-Request-ID"), petstore.resolver)
        assert result.param_name == "xRequestId"
        assert result.original_name == "X-Request-ID"

    def test_xml_content_parameter_name(self, petstore: SpecParser) -> None:
        param = _param("query", None, content={"application/xml": {"schema": {"type": "object"}}}, name="doc")
        assert build_param_serialization(param, petstore.resolver).param_name == "docSerialized"

    def test_json_content_needs_link(self, petstore: SpecParser) -> None:
        param = _param("query", {"type": "string"}, content={"application/json": {"schema": {"type": "string"}}})
        assert build_param_serialization(param, petstore.resolver).serialization_link == "json"

    def test_json_content_media_type_needs_link(self, petstore: SpecParser) -> None:
        param = _param("query", {"type": "string", "contentMediaType": "application/json"})
        assert build_param_serialization(param, petstore.resolver).serialization_link == "json"

    def test_flat_array_has_no_link(self, petstore: SpecParser) -> None:
        param = _param("query", {"type": "array", "items": {"type": "integer"}})
        assert build_param_serialization(param, petstore.resolver).serialization_link is None

    def test_nested_object_needs_link(self, petstore: SpecParser) -> None:
        params = {p.name: p for p in _find(petstore, "listPets").parameters}
        result = build_param_serialization(params["filter"], petstore.resolver)
        assert result.style == "deepObject"
        assert result.serialization_link == "json"

    def test_deep_object_rejects_arrays(self, petstore: SpecParser) -> None:
        param = _param("query", {"type": "array", "items": {"type": "string"}}, style="deepObject")
        assert build_param_serialization(param, petstore.resolver).serialization_link == "json"

    def test_referenced_schema_is_resolved(self, petstore: SpecParser) -> None:
        param = _param("query", {"$ref": "#/components/schemas/Pet"})
        # Pet has an object property (category) and an array property, so it nests.
        assert build_param_serialization(param, petstore.resolver).serialization_link == "json"


# ---------------------------------------------------------------------------
# Body variants
# ---------------------------------------------------------------------------


class TestSelectBodyMediaType:
    def test_priority(self) -> None:
        content = {"text/plain": {}, "application/xml": {}, "application/json": {}}
        assert select_body_media_type(content) == "application/json"
        assert select_body_media_type({"text/plain": {}, "multipart/mixed": {}}) == "multipart/mixed"

    def test_falls_back_to_first(self) -> None:
        assert select_body_media_type({"text/csv": {}, "text/plain": {}}) == "text/csv"

    def test_empty(self) -> None:
        assert select_body_media_type({}) is None
        assert select_body_media_type(None) is None


class TestBodyParamName:
    def test_component_reference(self) -> None:
        assert body_param_name({"$ref": "#/components/schemas/NewPet"}) == "newPet"
        assert body_param_name({"$ref": "#/definitions/Pet"}) == "pet"

    def test_inline_schema(self) -> None:
        assert body_param_name({"type": "object"}) == "body"
        assert body_param_name(None) == "body"


class TestBuildBodyVariant:
    def test_no_body(self, petstore: SpecParser) -> None:
        assert build_body_variant(_find(petstore, "listPets"), petstore.resolver) is None

    def test_json_body_from_referenced_request_body(self, petstore: SpecParser) -> None:
        body = build_body_variant(_find(petstore, "createPet"), petstore.resolver)
        assert body == JsonBody(param_name="pet", media_type="application/json")

    def test_vendor_json(self, petstore: SpecParser) -> None:
        op = _op({"application/vnd.api+json": {"schema": {"type": "object"}}})
        assert build_body_variant(op, petstore.resolver) == JsonBody(
            param_name="body", media_type="application/vnd.api+json"
        )

    def test_multipart_default_encodings(self, petstore: SpecParser) -> None:
        body = build_body_variant(_find(petstore, "uploadPhoto"), petstore.resolver)
        assert isinstance(body, MultipartBody)
        parts = body.encoding

        assert parts["metadata"].content_type == "application/json"
        assert parts["metadata"].serialization == "json"
        assert parts["file"].serialization == "binary"
        assert parts["file"].content_type is None
        assert parts["caption"].content_type == "text/plain"
        assert parts["caption"].serialization == "binary"
        assert parts["checksum"].headers == {"Content-Transfer-Encoding": "base64"}

    def test_multipart_string_is_a_value_part(self, petstore: SpecParser) -> None:
        op = _op({"multipart/form-data": {"schema": {"properties": {"note": {"type": "string"}, "meta": {"type": "object"}}}}})
        body = build_body_variant(op, petstore.resolver)
        assert body.encoding["note"].serialization == "value"
        assert body.encoding["note"].content_type is None
        assert body.encoding["meta"].serialization == "json"
        assert body.encoding["meta"].content_type == "application/json"

    def test_multipart_array_of_objects_is_json(self, petstore: SpecParser) -> None:
        op = _op({"multipart/form-data": {"schema": {"properties": {"pets": {"type": "array", "items": {"$ref": "#/components/schemas/Pet"}}}}}})
        body = build_body_variant(op, petstore.resolver)
        assert body.encoding["pets"].content_type == "application/json"

    def test_multipart_item_and_prefix_encoding(self, petstore: SpecParser) -> None:
        op = _op(
            {
                "multipart/mixed": {
                    "schema": {
                        "type": "array",
                        "prefixItems": [{"type": "object"}, {"type": "string", "format": "binary"}],
                        "items": {"type": "string"},
                    },
                    "prefixEncoding": [{"contentType": "application/json"}],
                    "itemEncoding": {"contentType": "text/plain"},
                }
            }
        )
        body = build_body_variant(op, petstore.resolver)
        assert body.media_type == "multipart/mixed"
        assert [p.serialization for p in body.prefix_encoding] == ["json", "binary"]
        assert body.item_encoding.content_type == "text/plain"

    def test_urlencoded(self, petstore: SpecParser) -> None:
        body = build_body_variant(_find(petstore, "login"), petstore.resolver)
        assert body == UrlencodedBody(param_name="body", config={})

    def test_xml_body(self, petstore: SpecParser) -> None:
        body = build_body_variant(_find(petstore, "createReport"), petstore.resolver)
        assert isinstance(body, XmlBody)
        assert body.param_name == "report"
        assert body.root_name == "report"
        assert body.config["namespace"] == "https://example.com/schema"
        assert body.config["properties"]["title"]["attribute"] is True
        assert body.config["properties"]["lines"]["wrapped"] is True
        assert body.config["properties"]["lines"]["items"]["name"] == "line"

    def test_xml_without_name_uses_root(self, petstore: SpecParser) -> None:
        op = _op({"application/xml": {"schema": {"type": "object"}}})
        assert build_body_variant(op, petstore.resolver).root_name == "root"

    def test_schema_less_body_is_raw(self, petstore: SpecParser) -> None:
        op = _op({"application/json": {}})
        assert build_body_variant(op, petstore.resolver) == RawBody(param_name="body", media_type="application/json")

    def test_other_media_type_is_raw(self, petstore: SpecParser) -> None:
        op = _op({"application/octet-stream": {"schema": {"type": "string", "format": "binary"}}})
        assert build_body_variant(op, petstore.resolver) == RawBody(
            param_name="body", media_type="application/octet-stream"
        )

    def test_body_without_content(self, petstore: SpecParser) -> None:
        assert build_body_variant(_op({}), petstore.resolver) == RawBody(param_name="body")

    def test_swagger2_form_data(self, swagger: SpecParser) -> None:
        upload = build_body_variant(_find(swagger, "uploadImage"), swagger.resolver)
        login = build_body_variant(_find(swagger, "login"), swagger.resolver)
        assert upload == EncodedFormDataBody(param_name="formData", mappings=["additionalMetadata", "file"])
        assert login == EncodedFormDataBody(param_name="formBody", mappings=["username", "password"])

    def test_swagger2_body_parameter(self, swagger: SpecParser) -> None:
        assert build_body_variant(_find(swagger, "addPet"), swagger.resolver) == JsonBody(param_name="pet")


class TestXmlConfig:
    def test_depth_limit(self, petstore: SpecParser) -> None:
        schema = {"type": "object", "properties": {"a": {"type": "object", "properties": {"b": {"type": "string"}}}}}
        config = xml_config(schema, petstore.resolver, depth=1)
        assert config == {"nodeType": "element", "properties": {}}

    def test_referenced_schema_has_no_node(self, petstore: SpecParser) -> None:
        assert xml_config({"$ref": "#/components/schemas/Category"}, petstore.resolver)["nodeType"] == "none"

    def test_all_of_properties_are_merged(self, petstore: SpecParser) -> None:
        schema = {
            "allOf": [{"properties": {"id": {"xml": {"attribute": True}}}}],
            "properties": {"name": {"type": "string"}},
        }
        config = xml_config(schema, petstore.resolver)
        assert set(config["properties"]) == {"id", "name"}
