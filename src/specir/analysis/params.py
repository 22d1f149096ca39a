"""Serialization models for operation parameters and request bodies.

Two builders live here:

* :func:`build_param_serialization` turns a path/query/header/cookie
  :class:`~specir.models.Parameter` into a
  :class:`~specir.models.ParamSerialization`, applying the OpenAPI
  per-location ``style``/``explode`` defaults and flagging values that have
  to be JSON-encoded.
* :func:`build_body_variant` picks the request media type and produces the
  matching :data:`~specir.models.BodyVariant`.

Both only read the document; nothing here raises for malformed but
tolerable input. Missing ``encoding`` maps, schema-less bodies and unknown
styles all fall back to defaults.
"""

from __future__ import annotations

from typing import Any, Optional

from specir.analysis.composition import merge_all_of, schema_type
from specir.models import (
    BodyVariant,
    EncodedFormDataBody,
    JsonBody,
    MultipartBody,
    MultipartPart,
    Parameter,
    ParameterLocation,
    ParamSerialization,
    PathInfo,
    RawBody,
    UrlencodedBody,
    XmlBody,
)
from specir.naming import camel_case
from specir.parser.resolver import ReferenceResolver, reference_of

JSON_MEDIA_TYPE = "application/json"
XML_MEDIA_TYPE = "application/xml"
FORM_DATA_MEDIA_TYPE = "multipart/form-data"
URLENCODED_MEDIA_TYPE = "application/x-www-form-urlencoded"

MULTIPART_MEDIA_TYPES = (FORM_DATA_MEDIA_TYPE, "multipart/mixed", "multipart/byteranges")

BODY_MEDIA_TYPE_PRIORITY = (
    JSON_MEDIA_TYPE,
    XML_MEDIA_TYPE,
    *MULTIPART_MEDIA_TYPES,
    URLENCODED_MEDIA_TYPE,
)

# Which composite value shapes each style can put on the wire natively.
_STYLE_SUPPORT: dict[str, frozenset[str]] = {
    "simple": frozenset({"array", "object"}),
    "form": frozenset({"array", "object"}),
    "label": frozenset({"array", "object"}),
    "matrix": frozenset({"array", "object"}),
    "spaceDelimited": frozenset({"array", "object"}),
    "pipeDelimited": frozenset({"array", "object"}),
    "deepObject": frozenset({"object"}),
}

_FORM_STYLE_LOCATIONS = (ParameterLocation.QUERY, ParameterLocation.COOKIE)


# --- Parameters ---


def default_style(location: ParameterLocation) -> str:
    """``form`` for query and cookie parameters, ``simple`` everywhere else."""
    return "form" if location in _FORM_STYLE_LOCATIONS else "simple"


def _is_json_media(media_type: str) -> bool:
    return "application/json" in media_type or "*/*" in media_type or media_type.endswith("+json")


def _is_xml_media(media_type: str) -> bool:
    return XML_MEDIA_TYPE in media_type or media_type.endswith("+xml") or media_type == "text/xml"


def _has_json_content(param: Parameter) -> bool:
    return any(_is_json_media(key) for key in param.content or {})


def _has_xml_content(param: Parameter) -> bool:
    return any(XML_MEDIA_TYPE in key for key in param.content or {})


def _has_json_content_media_type(param: Parameter, resolver: ReferenceResolver) -> bool:
    for schema in (param.schema_, resolver.resolve(param.schema_)):
        if isinstance(schema, dict) and "application/json" in str(schema.get("contentMediaType") or ""):
            return True
    return False


def _is_nested_complex(schema: dict[str, Any], kind: str, resolver: ReferenceResolver) -> bool:
    """Whether an array/object value contains further arrays or objects."""
    if kind == "array":
        items = resolver.resolve(schema.get("items"))
        return schema_type(items) in ("array", "object")
    values = list((schema.get("properties") or {}).values())
    additional = schema.get("additionalProperties")
    if isinstance(additional, dict):
        values.append(additional)
    return any(schema_type(resolver.resolve(value)) in ("array", "object") for value in values)


def needs_json_link(param: Parameter, style: str, resolver: ReferenceResolver) -> bool:
    """Whether the parameter value must be JSON-encoded before serialisation.

    True for parameters declaring JSON ``content`` or a JSON
    ``contentMediaType``, and for array/object values the *style* cannot
    express: nested composites, or shapes outside the style's support
    (``deepObject`` carries objects only).
    """
    if _has_json_content(param) or _has_json_content_media_type(param, resolver):
        return True
    schema = resolver.resolve(param.schema_)
    kind = schema_type(schema)
    if kind not in ("array", "object"):
        return False
    if kind not in _STYLE_SUPPORT.get(style, frozenset()):
        return True
    return _is_nested_complex(schema, kind, resolver)


def build_param_serialization(param: Parameter, resolver: ReferenceResolver) -> ParamSerialization:
    """Build the wire serialisation model for one non-body parameter."""
    style = param.style or default_style(param.location)
    explode = param.explode if param.explode is not None else style == "form"
    param_name = camel_case(param.name)
    if _has_xml_content(param):
        param_name = f"{param_name}Serialized"

    return ParamSerialization(
        param_name=param_name,
        original_name=param.name,
        style=style,
        explode=explode,
        allow_reserved=bool(param.allow_reserved),
        serialization_link="json" if needs_json_link(param, style, resolver) else None,
    )


# --- Request bodies ---


def select_body_media_type(content: Optional[dict[str, Any]]) -> Optional[str]:
    """Pick the request media type to generate for, by fixed priority.

    Falls back to the first declared media type.
    """
    if not content:
        return None
    for media_type in BODY_MEDIA_TYPE_PRIORITY:
        if media_type in content:
            return media_type
    return next(iter(content))


def body_param_name(schema: Any) -> str:
    """``body``, or the camel-cased component name for a referenced model."""
    ref = reference_of(schema)
    if ref and ("/schemas/" in ref or "/definitions/" in ref):
        return camel_case(ref.rstrip("/").rsplit("/", 1)[-1]) or "body"
    return "body"


def _multipart_part(
    prop_schema: Any,
    explicit: dict[str, Any],
    resolver: ReferenceResolver,
) -> MultipartPart:
    """Effective encoding of one multipart property.

    Without an explicit ``contentType``, object and array properties are
    sent as ``application/json`` parts; the check is on the declared
    ``type`` of the resolved property schema.
    """
    resolved = resolver.resolve(prop_schema)
    declared = resolved.get("type") if isinstance(resolved, dict) else None

    content_type = explicit.get("contentType")
    if not content_type and declared in ("object", "array"):
        content_type = JSON_MEDIA_TYPE

    headers = dict(explicit.get("headers") or {})
    encoding = resolved.get("contentEncoding") if isinstance(resolved, dict) else None
    if encoding and not any(name.lower() == "content-transfer-encoding" for name in headers):
        headers["Content-Transfer-Encoding"] = encoding

    if content_type and _is_json_media(content_type):
        serialization = "json"
    elif content_type or _is_file_schema(resolved):
        serialization = "binary"
    else:
        serialization = "value"

    return MultipartPart(
        content_type=content_type,
        headers=headers,
        style=explicit.get("style"),
        explode=explicit.get("explode"),
        allow_reserved=explicit.get("allowReserved"),
        serialization=serialization,
    )


def _is_file_schema(schema: Any) -> bool:
    if not isinstance(schema, dict):
        return False
    return schema.get("format") in ("binary", "byte") or "contentMediaType" in schema


def _build_multipart(
    media_type: str,
    media: dict[str, Any],
    param_name: str,
    resolver: ReferenceResolver,
) -> MultipartBody:
    schema = resolver.resolve(media.get("schema"))
    declared_encoding: dict[str, Any] = dict(media.get("encoding") or {})

    encoding: dict[str, MultipartPart] = {}
    if isinstance(schema, dict):
        for prop_name, prop_schema in merge_all_of(schema, resolver).properties.items():
            encoding[prop_name] = _multipart_part(
                prop_schema, declared_encoding.pop(prop_name, None) or {}, resolver
            )
    # Encoding entries for undeclared properties are kept as written.
    for prop_name, explicit in declared_encoding.items():
        encoding[prop_name] = _multipart_part(None, explicit or {}, resolver)

    prefix_encoding: Optional[list[MultipartPart]] = None
    item_encoding: Optional[MultipartPart] = None
    if isinstance(schema, dict) and (schema.get("type") == "array" or "items" in schema or "prefixItems" in schema):
        declared_prefix = list(media.get("prefixEncoding") or [])
        prefix_items = schema.get("prefixItems")
        if isinstance(prefix_items, list):
            prefix_encoding = [
                _multipart_part(
                    item,
                    (declared_prefix[index] if index < len(declared_prefix) else None) or {},
                    resolver,
                )
                for index, item in enumerate(prefix_items)
            ]
        items = schema.get("items")
        if isinstance(items, dict):
            item_encoding = _multipart_part(items, media.get("itemEncoding") or {}, resolver)

    return MultipartBody(
        param_name=param_name,
        media_type=media_type,
        encoding=encoding,
        prefix_encoding=prefix_encoding,
        item_encoding=item_encoding,
    )


def xml_config(schema: Any, resolver: ReferenceResolver, depth: int = 5) -> dict[str, Any]:
    """Describe how a schema maps onto XML, down to *depth* levels.

    Keys mirror the OpenAPI *XML Object* (``name``, ``attribute``,
    ``wrapped``, ``prefix``, ``namespace``, ``nodeType``) plus ``items`` and
    ``properties`` for nested schemas; ``allOf`` members contribute their
    properties.
    """
    if schema is None or depth <= 0:
        return {}
    resolved = resolver.resolve(schema)
    if not isinstance(resolved, dict):
        return {}

    xml = resolved.get("xml") if isinstance(resolved.get("xml"), dict) else {}
    config: dict[str, Any] = {}
    if xml.get("name"):
        config["name"] = xml["name"]
    if xml.get("attribute"):
        config["attribute"] = True
    if xml.get("wrapped"):
        config["wrapped"] = True
    if xml.get("prefix"):
        config["prefix"] = xml["prefix"]
    if xml.get("namespace"):
        config["namespace"] = xml["namespace"]

    if xml.get("nodeType"):
        config["nodeType"] = xml["nodeType"]
    elif xml.get("wrapped"):
        config["nodeType"] = "element"
    elif reference_of(schema) is not None or resolved.get("type") == "array":
        config["nodeType"] = "none"
    else:
        config["nodeType"] = "element"

    if resolved.get("type") == "array" and resolved.get("items"):
        config["items"] = xml_config(resolved["items"], resolver, depth - 1)

    if isinstance(resolved.get("properties"), dict):
        config["properties"] = {}
        for prop_name, prop_schema in resolved["properties"].items():
            prop_config = xml_config(prop_schema, resolver, depth - 1)
            if prop_config:
                config["properties"][prop_name] = prop_config

    for member in resolved.get("allOf") or []:
        member_config = xml_config(member, resolver, depth - 1)
        if "properties" in member_config:
            config["properties"] = {**config.get("properties", {}), **member_config["properties"]}

    return config


def build_body_variant(
    operation: PathInfo,
    resolver: ReferenceResolver,
    xml_depth: int = 5,
) -> Optional[BodyVariant]:
    """Choose and build the request body variant for *operation*.

    Swagger 2.0 ``formData`` parameters take precedence and produce an
    ``encoded-form-data`` variant. Otherwise the media type chosen by
    :func:`select_body_media_type` decides: JSON family -> ``json``, XML
    family -> ``xml``, multipart -> ``multipart``, url-encoded ->
    ``urlencoded``, anything else or a body without a schema -> ``raw``.
    """
    form_data = [p for p in operation.parameters if p.location == ParameterLocation.FORM_DATA]
    if form_data:
        is_multipart = FORM_DATA_MEDIA_TYPE in (operation.consumes or [])
        return EncodedFormDataBody(
            param_name="formData" if is_multipart else "formBody",
            mappings=[p.name for p in form_data],
        )

    body = operation.request_body
    if body is None:
        return None

    media_type = select_body_media_type(body.content)
    if media_type is None:
        return RawBody(param_name="body")

    media = body.content[media_type] if isinstance(body.content[media_type], dict) else {}
    schema = media.get("schema", media.get("itemSchema"))
    param_name = body_param_name(schema)

    if media_type in MULTIPART_MEDIA_TYPES:
        return _build_multipart(media_type, media, param_name, resolver)
    if media_type == URLENCODED_MEDIA_TYPE:
        return UrlencodedBody(param_name=param_name, config=dict(media.get("encoding") or {}))
    if schema is None:
        return RawBody(param_name=param_name, media_type=media_type)
    if _is_xml_media(media_type):
        resolved = resolver.resolve(schema)
        xml = resolved.get("xml") if isinstance(resolved, dict) else None
        root_name = xml.get("name") if isinstance(xml, dict) and xml.get("name") else "root"
        return XmlBody(
            param_name=param_name,
            root_name=root_name,
            config=xml_config(schema, resolver, xml_depth),
        )
    if _is_json_media(media_type):
        return JsonBody(param_name=param_name, media_type=media_type)
    return RawBody(param_name=param_name, media_type=media_type)
