"""Schema composition: ``allOf`` flattening and polymorphic option discovery.

Schema graphs may be cyclic (a tree node whose ``children`` refer back to
the node, or ``allOf`` chains that loop). Every recursive walk in this
module therefore threads a ``visited`` set of node identities. Identity is
stable because :class:`~specir.parser.resolver.ReferenceResolver` returns
the node stored in the document cache, never a copy.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from specir.exceptions import UnresolvedReferenceError
from specir.models import ComposedSchema, PolymorphicOption
from specir.naming import pascal_case
from specir.parser.resolver import ReferenceResolver, reference_of

logger = logging.getLogger(__name__)


def schema_type(schema: Any) -> Optional[str]:
    """Return the effective JSON type of an (already resolved) schema.

    OpenAPI 3.1 type arrays collapse to their first non-``null`` entry. A
    schema without ``type`` is treated as ``object`` when it declares
    ``properties`` and as ``array`` when it declares ``items``.
    """
    if not isinstance(schema, dict):
        return None
    declared = schema.get("type")
    if isinstance(declared, list):
        non_null = [t for t in declared if t != "null"]
        declared = non_null[0] if non_null else "null"
    if isinstance(declared, str):
        return declared
    if "properties" in schema or "additionalProperties" in schema:
        return "object"
    if "items" in schema or "prefixItems" in schema:
        return "array"
    return None


def is_nullable(schema: Any) -> bool:
    if not isinstance(schema, dict):
        return False
    declared = schema.get("type")
    return bool(schema.get("nullable")) or (isinstance(declared, list) and "null" in declared)


def merge_all_of(
    schema: Any,
    resolver: ReferenceResolver,
    visited: Optional[set[int]] = None,
) -> ComposedSchema:
    """Flatten *schema* and its ``allOf`` members into one property set.

    Members are merged in order, then the schema's own ``properties``. A
    property declared again later replaces the earlier definition, but
    ``required`` names only ever accumulate.

    A node already on the current composition path contributes nothing and
    marks the result ``is_cyclic``.
    """
    if visited is None:
        visited = set()

    node = resolver.resolve(schema)
    if not isinstance(node, dict):
        return ComposedSchema()
    if id(node) in visited:
        logger.debug("allOf cycle detected; skipping revisited schema")
        return ComposedSchema(is_cyclic=True)

    visited.add(id(node))
    try:
        properties: dict[str, Any] = {}
        required: list[str] = []
        cyclic = False

        for member in node.get("allOf") or []:
            composed = merge_all_of(member, resolver, visited)
            properties.update(composed.properties)
            required.extend(name for name in composed.required if name not in required)
            cyclic = cyclic or composed.is_cyclic

        own_properties = node.get("properties")
        if isinstance(own_properties, dict):
            properties.update(own_properties)
        own_required = node.get("required")
        if isinstance(own_required, list):
            required.extend(name for name in own_required if name not in required)

        return ComposedSchema(properties=properties, required=required, is_cyclic=cyclic)
    finally:
        visited.discard(id(node))


def _mapping_target(target: str) -> str:
    """A bare mapping value names a component schema."""
    if "#" in target or "/" in target or "." in target:
        return target
    return f"#/components/schemas/{target}"


def _discriminator_value(
    prop_name: str, composed: ComposedSchema, resolver: ReferenceResolver
) -> Optional[str]:
    prop = resolver.resolve(composed.properties.get(prop_name))
    if isinstance(prop, dict):
        if "const" in prop:
            return str(prop["const"])
        enum = prop.get("enum")
        if isinstance(enum, list) and len(enum) == 1:
            return str(enum[0])
    return None


def get_polymorphic_options(
    schema: Any,
    resolver: ReferenceResolver,
    *,
    warn_on_stale_mapping: bool = False,
) -> list[PolymorphicOption]:
    """Return the concrete alternatives of a polymorphic schema, in document order.

    * With ``discriminator.mapping``: one option per mapping entry whose
      target resolves and exposes the discriminator property.
    * With a discriminator but no mapping: the ``$ref`` members of
      ``oneOf``/``anyOf`` that expose the property; inline members are
      ignored. The option name is the property's ``const``, its single
      ``enum`` value, or the referenced component's name.
    * ``oneOf``/``anyOf`` without a discriminator: every member, inline ones
      included.

    Entries that cannot be resolved or do not conform are dropped; the
    result may be empty. Callers must treat ``len(options) > 0`` as the
    polymorphism test.
    """
    node = resolver.resolve(schema)
    if not isinstance(node, dict):
        return []

    level = logging.WARNING if warn_on_stale_mapping else logging.DEBUG
    origin = resolver.origin_of(node)
    discriminator = node.get("discriminator")
    members = node.get("oneOf") or node.get("anyOf") or []
    options: list[PolymorphicOption] = []

    if isinstance(discriminator, dict) and discriminator.get("propertyName"):
        prop_name = discriminator["propertyName"]
        mapping = discriminator.get("mapping") or {}

        if mapping:
            for value, target in mapping.items():
                ref = _mapping_target(str(target))
                try:
                    option_schema = resolver.resolve_reference(ref, origin)
                except UnresolvedReferenceError as exc:
                    logger.log(level, "Dropping discriminator mapping %r: %s", value, exc)
                    continue
                if prop_name not in merge_all_of(option_schema, resolver).properties:
                    logger.log(
                        level,
                        "Dropping discriminator mapping %r: %s has no '%s' property",
                        value,
                        ref,
                        prop_name,
                    )
                    continue
                options.append(PolymorphicOption(name=str(value), schema=option_schema, ref=ref))
            return options

        for member in members:
            ref = reference_of(member)
            if ref is None:
                continue
            try:
                option_schema = resolver.resolve_reference(ref, resolver.origin_of(member))
            except UnresolvedReferenceError as exc:
                logger.log(level, "Dropping polymorphic member %s: %s", ref, exc)
                continue
            composed = merge_all_of(option_schema, resolver)
            if prop_name not in composed.properties:
                logger.log(level, "Dropping polymorphic member %s: no '%s' property", ref, prop_name)
                continue
            name = _discriminator_value(prop_name, composed, resolver)
            if name is None:
                name = ref.rstrip("/").rsplit("/", 1)[-1]
            options.append(PolymorphicOption(name=name, schema=option_schema, ref=ref))
        return options

    for index, member in enumerate(members, start=1):
        ref = reference_of(member)
        option_schema = resolver.resolve(member)
        if ref is not None:
            name = pascal_case(ref.rstrip("/").rsplit("/", 1)[-1])
        elif isinstance(option_schema, dict) and option_schema.get("title"):
            name = str(option_schema["title"])
        else:
            name = f"Option{index}"
        options.append(PolymorphicOption(name=name, schema=option_schema, ref=ref))
    return options
