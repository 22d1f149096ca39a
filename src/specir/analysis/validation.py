"""Derive framework-agnostic validation rules from a schema node.

:func:`extract_rules` is a pure function. The order of the returned list is
fixed and emitters rely on it:

``required`` -> ``const`` -> ``minLength`` -> ``maxLength`` -> ``pattern`` ->
``email`` -> content-encoding ``pattern`` -> minimum bound -> maximum bound
-> ``multipleOf`` -> ``uniqueItems`` -> ``minItems`` -> ``maxItems`` ->
``minProperties`` -> ``maxProperties`` -> ``contains`` -> ``not``.
"""

from __future__ import annotations

from typing import Any, Optional

from specir.models import (
    ConstRule,
    ContainsRule,
    EmailRule,
    ExclusiveMaximumRule,
    ExclusiveMinimumRule,
    MaxItemsRule,
    MaxLengthRule,
    MaxPropertiesRule,
    MaxRule,
    MinItemsRule,
    MinLengthRule,
    MinPropertiesRule,
    MinRule,
    MultipleOfRule,
    NotRule,
    PatternRule,
    RequiredRule,
    UniqueItemsRule,
    ValidationRule,
)
from specir.parser.resolver import ReferenceResolver

BASE64_PATTERN = r"^(?:[A-Za-z0-9+/]{4})*(?:[A-Za-z0-9+/]{2}==|[A-Za-z0-9+/]{3}=)?$"
BASE64URL_PATTERN = r"^[A-Za-z0-9\-_]*$"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def extract_rules(
    schema: Any,
    required: bool = False,
    resolver: Optional[ReferenceResolver] = None,
) -> list[ValidationRule]:
    """Return the ordered validation rules for *schema*.

    Args:
        schema: A resolved schema node. Non-mapping schemas (including the
            boolean schemas of JSON Schema) have no rules.
        required: Whether the owning object lists this property in its
            ``required`` array. A schema carrying a literal ``required: true``
            is treated the same way.
        resolver: Used to resolve a ``$ref`` found under ``not``.

    Returns:
        An empty list for ``readOnly`` schemas; otherwise the rules in the
        order documented on this module.
    """
    if not isinstance(schema, dict) or schema.get("readOnly"):
        return []

    rules: list[ValidationRule] = []

    if required or schema.get("required") is True:
        rules.append(RequiredRule())

    if "const" in schema:
        rules.append(ConstRule(value=schema["const"]))

    if schema.get("minLength"):
        rules.append(MinLengthRule(value=schema["minLength"]))
    if schema.get("maxLength"):
        rules.append(MaxLengthRule(value=schema["maxLength"]))
    if schema.get("pattern"):
        rules.append(PatternRule(value=str(schema["pattern"]).replace("\\\\", "\\")))
    if schema.get("format") == "email":
        rules.append(EmailRule())

    encoding = schema.get("contentEncoding")
    if encoding == "base64":
        rules.append(PatternRule(value=BASE64_PATTERN))
    elif encoding == "base64url":
        rules.append(PatternRule(value=BASE64URL_PATTERN))

    # OAS 3.1 puts the bound in exclusiveMinimum itself; OAS 3.0 uses a flag.
    if _is_number(schema.get("exclusiveMinimum")):
        rules.append(ExclusiveMinimumRule(value=schema["exclusiveMinimum"]))
    elif schema.get("minimum") is not None:
        if schema.get("exclusiveMinimum") is True:
            rules.append(ExclusiveMinimumRule(value=schema["minimum"]))
        else:
            rules.append(MinRule(value=schema["minimum"]))

    if _is_number(schema.get("exclusiveMaximum")):
        rules.append(ExclusiveMaximumRule(value=schema["exclusiveMaximum"]))
    elif schema.get("maximum") is not None:
        if schema.get("exclusiveMaximum") is True:
            rules.append(ExclusiveMaximumRule(value=schema["maximum"]))
        else:
            rules.append(MaxRule(value=schema["maximum"]))

    if schema.get("multipleOf"):
        rules.append(MultipleOfRule(value=schema["multipleOf"]))
    if schema.get("uniqueItems"):
        rules.append(UniqueItemsRule())
    if schema.get("minItems"):
        rules.append(MinItemsRule(value=schema["minItems"]))
    if schema.get("maxItems"):
        rules.append(MaxItemsRule(value=schema["maxItems"]))
    if schema.get("minProperties") is not None:
        rules.append(MinPropertiesRule(value=schema["minProperties"]))
    if schema.get("maxProperties") is not None:
        rules.append(MaxPropertiesRule(value=schema["maxProperties"]))

    if "contains" in schema:
        min_contains = schema.get("minContains")
        max_contains = schema.get("maxContains")
        rules.append(
            ContainsRule(
                schema=schema["contains"],
                min=min_contains if _is_number(min_contains) else 1,
                max=max_contains if _is_number(max_contains) else None,
            )
        )

    negated = schema.get("not")
    if negated:
        if resolver is not None:
            negated = resolver.resolve(negated)
        inner = extract_rules(negated, resolver=resolver)
        if inner:
            rules.append(NotRule(rules=inner))

    return rules


_CUSTOM_RULE_TYPES = frozenset(
    {"exclusiveMinimum", "exclusiveMaximum", "multipleOf", "uniqueItems", "contains", "const", "not"}
)


def uses_custom_validators(rules: list[ValidationRule]) -> bool:
    """Whether *rules* need validators beyond the common built-in set."""
    return any(rule.type in _CUSTOM_RULE_TYPES for rule in rules)
