"""Name and shape models of component schemas, for type emitters.

Types are described with a small, neutral expression language that any
emitter can translate:

* primitives: ``string``, ``number``, ``boolean``, ``null``, ``binary``,
  ``any``
* arrays: ``T[]`` (``(A | B)[]`` when the item is a union)
* unions and intersections: ``A | B``, ``A & B``
* maps: ``Record<string, T>``
* inline objects: ``{ a: T; b?: U }``
* literals from ``const``/``enum``, JSON encoded: ``"cat"``, ``3``

A reference to a component schema always renders as the component's
PascalCase name and is never expanded. That is what keeps expressions for
self-referential schemas finite.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Optional

from specir.analysis.composition import is_nullable, merge_all_of, schema_type
from specir.exceptions import UnresolvedReferenceError
from specir.models import TypeModel, TypeProperty
from specir.naming import pascal_case
from specir.parser.resolver import ReferenceResolver, reference_of

if TYPE_CHECKING:
    from specir.parser.spec_parser import SpecParser

logger = logging.getLogger(__name__)

_COMPONENT_PREFIXES = ("#/components/schemas/", "#/definitions/")


def component_name(ref: Optional[str]) -> Optional[str]:
    """The PascalCase type name for a reference to a component schema, if it is one."""
    if not ref:
        return None
    fragment = "#" + ref.split("#", 1)[1] if "#" in ref else ""
    for prefix in _COMPONENT_PREFIXES:
        if fragment.startswith(prefix):
            name = fragment[len(prefix):]
            if name and "/" not in name:
                return pascal_case(name)
    return None


def _literal(value: Any) -> str:
    return json.dumps(value)


def _wrap(expression: str) -> str:
    return f"({expression})" if " " in expression else expression


def type_expression(
    schema: Any,
    resolver: ReferenceResolver,
    visited: Optional[set[int]] = None,
) -> str:
    """Render *schema* as a neutral type expression."""
    if visited is None:
        visited = set()

    name = component_name(reference_of(schema))
    if name:
        return name

    resolved = resolver.resolve(schema)
    if resolved is True or resolved == {}:
        return "any"
    if not isinstance(resolved, dict):
        return "any"
    if id(resolved) in visited:
        logger.debug("Cycle in inline schema; rendering as any")
        return "any"

    visited.add(id(resolved))
    try:
        expression = _expression_for(resolved, resolver, visited)
    finally:
        visited.discard(id(resolved))

    if is_nullable(resolved) and expression not in ("null", "any"):
        expression = f"{expression} | null"
    return expression


def _expression_for(schema: dict[str, Any], resolver: ReferenceResolver, visited: set[int]) -> str:
    if "const" in schema:
        return _literal(schema["const"])
    enum = schema.get("enum")
    if isinstance(enum, list) and enum:
        return " | ".join(_literal(value) for value in enum if value is not None) or "null"

    for keyword in ("oneOf", "anyOf"):
        members = schema.get(keyword)
        if isinstance(members, list) and members:
            return " | ".join(type_expression(member, resolver, visited) for member in members)
    members = schema.get("allOf")
    if isinstance(members, list) and members and not schema.get("properties"):
        parts = [type_expression(member, resolver, visited) for member in members]
        return parts[0] if len(parts) == 1 else " & ".join(_wrap(part) for part in parts)

    kind = schema_type(schema)
    if kind == "string":
        if schema.get("format") == "binary" or schema.get("contentMediaType") == "application/octet-stream":
            return "binary"
        return "string"
    if kind in ("integer", "number"):
        return "number"
    if kind == "boolean":
        return "boolean"
    if kind == "null":
        return "null"
    if kind == "array":
        items = schema.get("items")
        if items is None:
            return "any[]"
        return f"{_wrap(type_expression(items, resolver, visited))}[]"
    if kind == "object":
        return _object_expression(schema, resolver, visited)
    return "any"


def _object_expression(schema: dict[str, Any], resolver: ReferenceResolver, visited: set[int]) -> str:
    composed = merge_all_of(schema, resolver)
    additional = schema.get("additionalProperties")
    if not composed.properties:
        if isinstance(additional, dict) and additional:
            return f"Record<string, {type_expression(additional, resolver, visited)}>"
        return "Record<string, any>"
    fields = []
    for prop_name, prop_schema in composed.properties.items():
        marker = "" if prop_name in composed.required else "?"
        fields.append(f"{prop_name}{marker}: {type_expression(prop_schema, resolver, visited)}")
    return "{ " + "; ".join(fields) + " }"


class TypeModelBuilder:
    """Builds a :class:`~specir.models.TypeModel` for each component schema."""

    def __init__(self, parser: SpecParser) -> None:
        self.parser = parser
        self.resolver = parser.resolver

    def build(self, name: str) -> TypeModel:
        """Describe component schema *name*.

        Raises:
            UnresolvedReferenceError: If no such component schema exists.
        """
        raw = self.parser.get_definition(name)
        if raw is None:
            raise UnresolvedReferenceError(
                self.parser.component_ref(name), self.parser.entry_uri, "schema is not defined"
            )
        type_name = pascal_case(name)

        aliased = component_name(reference_of(raw))
        if aliased:
            return TypeModel(name=type_name, kind="alias", type_expression=aliased)

        schema = self.resolver.resolve(raw)
        if not isinstance(schema, dict):
            return TypeModel(name=type_name, kind="alias", type_expression="any")

        discriminator = schema.get("discriminator")
        discriminator_prop = discriminator.get("propertyName") if isinstance(discriminator, dict) else None
        description = schema.get("description")

        enum = schema.get("enum")
        if isinstance(enum, list) and enum and not schema.get("properties"):
            return TypeModel(
                name=type_name,
                kind="enum",
                enum_values=list(enum),
                description=description,
            )

        if self._is_interface(schema):
            return self._interface(type_name, schema, discriminator_prop, description)

        return TypeModel(
            name=type_name,
            kind="alias",
            type_expression=type_expression(schema, self.resolver),
            discriminator=discriminator_prop,
            description=description,
        )

    def build_all(self) -> list[TypeModel]:
        return [self.build(name) for name in self.parser.schema_names]

    @staticmethod
    def _is_interface(schema: dict[str, Any]) -> bool:
        if schema.get("oneOf") or schema.get("anyOf"):
            return False
        if schema.get("properties"):
            return True
        if schema.get("allOf"):
            return True
        return schema_type(schema) == "object" and not isinstance(schema.get("additionalProperties"), dict)

    def _interface(
        self,
        type_name: str,
        schema: dict[str, Any],
        discriminator_prop: Optional[str],
        description: Optional[str],
    ) -> TypeModel:
        extends: list[str] = []
        properties: dict[str, Any] = {}
        for member in schema.get("allOf") or []:
            parent = component_name(reference_of(member))
            if parent:
                extends.append(parent)
            else:
                properties.update(merge_all_of(member, self.resolver).properties)
        properties.update(schema.get("properties") or {})

        required = set(merge_all_of(schema, self.resolver).required)
        type_properties = []
        for prop_name, prop_schema in properties.items():
            resolved = self.resolver.resolve(prop_schema)
            flags = resolved if isinstance(resolved, dict) else {}
            own = prop_schema if isinstance(prop_schema, dict) else {}
            type_properties.append(
                TypeProperty(
                    name=prop_name,
                    type=type_expression(prop_schema, self.resolver),
                    required=prop_name in required,
                    nullable=is_nullable(flags),
                    read_only=bool(own.get("readOnly") or flags.get("readOnly")),
                    write_only=bool(own.get("writeOnly") or flags.get("writeOnly")),
                    description=own.get("description") or flags.get("description"),
                )
            )

        return TypeModel(
            name=type_name,
            kind="interface",
            properties=type_properties,
            extends=extends,
            discriminator=discriminator_prop,
            description=description,
        )
