"""Flatten OpenAPI ``paths``/``webhooks`` into operation records and group them.

:func:`extract_operations` walks a ``paths`` (or ``webhooks``) object and
produces one :class:`~specir.models.PathInfo` per path + method pair. Along
the way it:

* resolves path items, parameters and request bodies that are ``$ref``\\ s
  (local keys of a referencing path item override the target),
* merges path-level ``parameters`` with operation-level ones; the operation
  wins when both declare the same ``name`` and ``in``,
* normalises Swagger 2.0 constructs (``collectionFormat``, ``in: body``,
  ``responses.*.schema``, inline ``type``/``format``/``items``) to their
  OpenAPI 3 equivalents.

:func:`group_by_controller` then buckets operations by controller name and
assigns each one a unique method name.

Operation-level ``security`` is carried through untouched apart from key
normalisation. Whether it overrides the global requirement is decided by
:func:`specir.analysis.security.effective_security`, which needs to tell an
absent keyword (``None``) from an explicit empty list.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from specir.models import HTTPMethod, Parameter, ParameterLocation, PathInfo, RequestBody
from specir.naming import camel_case, normalize_security_key, pascal_case, path_method_suffix
from specir.parser.resolver import ReferenceResolver, reference_of

logger = logging.getLogger(__name__)

_HTTP_METHODS = tuple(m.value for m in HTTPMethod)

_COLLECTION_FORMATS: dict[str, tuple[str, bool]] = {
    "csv": ("form", False),
    "ssv": ("spaceDelimited", False),
    "pipes": ("pipeDelimited", False),
    "multi": ("form", True),
}


def extract_operations(
    paths: Optional[dict[str, Any]],
    resolver: Optional[ReferenceResolver] = None,
    *,
    is_webhook: bool = False,
    default_consumes: Optional[list[str]] = None,
) -> list[PathInfo]:
    """Flatten a ``paths`` or ``webhooks`` object into :class:`PathInfo` records.

    Args:
        paths: The raw ``paths``/``webhooks`` mapping. ``None`` yields ``[]``.
        resolver: Used to resolve ``$ref`` path items, parameters and request
            bodies. Without one, references are left as found.
        is_webhook: Flag every produced record as a webhook.
        default_consumes: Document-level Swagger 2.0 ``consumes`` list, used
            when an operation does not declare its own.

    Returns:
        Records in document order: paths first, then the fixed methods in
        :class:`~specir.models.HTTPMethod` order, then
        ``additionalOperations``.
    """
    if not paths:
        return []

    operations: list[PathInfo] = []
    for path, raw_path_item in paths.items():
        path_item = _resolve_path_item(raw_path_item, resolver)
        if not isinstance(path_item, dict):
            continue

        path_params = [
            _resolve(p, resolver) for p in path_item.get("parameters") or [] if p
        ]

        candidates: list[tuple[str, Any]] = [
            (method, path_item[method]) for method in _HTTP_METHODS if path_item.get(method)
        ]
        for method, operation in (path_item.get("additionalOperations") or {}).items():
            candidates.append((method, operation))

        for method, operation in candidates:
            if not isinstance(operation, dict):
                continue
            operations.append(
                _build_path_info(
                    path,
                    method,
                    operation,
                    path_item,
                    path_params,
                    resolver,
                    is_webhook=is_webhook,
                    default_consumes=default_consumes,
                )
            )
    return operations


def _resolve(node: Any, resolver: Optional[ReferenceResolver]) -> Any:
    if resolver is None:
        return node
    return resolver.resolve(node)


def _resolve_path_item(path_item: Any, resolver: Optional[ReferenceResolver]) -> Any:
    """Resolve a ``$ref`` path item, letting the referencing item's keys win."""
    if resolver is None or reference_of(path_item) is None:
        return path_item
    target = resolver.resolve(path_item)
    overrides = {k: v for k, v in path_item.items() if k not in ("$ref", "$dynamicRef")}
    return {**target, **overrides}


def _merge_parameters(
    path_params: list[dict[str, Any]],
    op_params: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameters.

    Keyed by ``(name, in)``. An operation-level parameter replaces the
    path-level one in place, so declaration order is kept.
    """
    merged: dict[tuple[str, str], dict[str, Any]] = {}
    for param in [*path_params, *op_params]:
        if not isinstance(param, dict):
            continue
        merged[(param.get("name", ""), param.get("in", ""))] = param
    return list(merged.values())


def _build_parameter(param: dict[str, Any]) -> Optional[Parameter]:
    try:
        location = ParameterLocation(param.get("in", "query"))
    except ValueError:
        logger.debug("Skipping parameter %r with unknown location %r", param.get("name"), param.get("in"))
        return None

    schema = param.get("schema")
    content = param.get("content")
    if isinstance(content, dict) and content:
        media = next(iter(content.values()))
        if isinstance(media, dict) and media.get("schema") is not None:
            schema = media["schema"]
    if schema is None:
        # Swagger 2.0 keeps type information on the parameter itself.
        schema = {key: param[key] for key in ("type", "format", "items", "enum", "default") if key in param}

    style = param.get("style")
    explode = param.get("explode")
    collection_format = param.get("collectionFormat")
    if collection_format in _COLLECTION_FORMATS:
        style, explode = _COLLECTION_FORMATS[collection_format]

    return Parameter(
        name=param.get("name", ""),
        location=location,
        required=bool(param.get("required", location == ParameterLocation.PATH)),
        description=param.get("description") or None,
        schema=schema,
        content=content if isinstance(content, dict) else None,
        style=style,
        explode=explode,
        allow_reserved=param.get("allowReserved"),
        allow_empty_value=param.get("allowEmptyValue"),
        deprecated=bool(param.get("deprecated", False)),
        extensions={k: v for k, v in param.items() if k.startswith("x-")},
    )


def _build_request_body(
    operation: dict[str, Any],
    body_param: Optional[dict[str, Any]],
    resolver: Optional[ReferenceResolver],
) -> Optional[RequestBody]:
    raw = operation.get("requestBody")
    if raw is not None:
        raw = _resolve(raw, resolver)
        if not isinstance(raw, dict):
            return None
        return RequestBody(
            required=bool(raw.get("required", False)),
            description=raw.get("description"),
            content=raw.get("content"),
        )
    if body_param is not None:
        return RequestBody(
            required=bool(body_param.get("required", False)),
            description=body_param.get("description"),
            content={"application/json": {"schema": body_param.get("schema")}},
        )
    return None


def _normalize_responses(responses: Any) -> dict[str, Any]:
    """Rewrite Swagger 2.0 ``schema`` responses into ``content`` form."""
    normalized: dict[str, Any] = {}
    if not isinstance(responses, dict):
        return normalized
    for code, response in responses.items():
        if isinstance(response, dict) and "schema" in response and "content" not in response:
            normalized[str(code)] = {
                "description": response.get("description"),
                "headers": response.get("headers"),
                "content": {"application/json": {"schema": response["schema"]}},
            }
        else:
            normalized[str(code)] = response
    return normalized


def _build_path_info(
    path: str,
    method: str,
    operation: dict[str, Any],
    path_item: dict[str, Any],
    path_params: list[dict[str, Any]],
    resolver: Optional[ReferenceResolver],
    *,
    is_webhook: bool,
    default_consumes: Optional[list[str]],
) -> PathInfo:
    op_params = [_resolve(p, resolver) for p in operation.get("parameters") or [] if p]
    merged = _merge_parameters(path_params, op_params)

    body_param = next((p for p in merged if p.get("in") == "body"), None)
    parameters = [
        built
        for built in (_build_parameter(p) for p in merged if p.get("in") != "body")
        if built is not None
    ]

    security = operation.get("security")
    if security is not None:
        security = [
            {normalize_security_key(key): list(scopes or []) for key, scopes in requirement.items()}
            for requirement in security
        ]

    # The responses map may itself hold $refs; resolve each entry.
    responses = {
        code: _resolve(response, resolver)
        for code, response in (operation.get("responses") or {}).items()
    }

    return PathInfo(
        path=path,
        method=method.upper(),
        operation_id=operation.get("operationId"),
        summary=operation.get("summary") or path_item.get("summary"),
        description=operation.get("description") or path_item.get("description"),
        tags=[t for t in operation.get("tags") or [] if isinstance(t, str)],
        parameters=parameters,
        request_body=_build_request_body(operation, body_param, resolver),
        responses=_normalize_responses(responses),
        security=security,
        servers=operation.get("servers") or path_item.get("servers"),
        callbacks=operation.get("callbacks"),
        consumes=operation.get("consumes") or default_consumes,
        external_docs=operation.get("externalDocs"),
        deprecated=bool(operation.get("deprecated", False)),
        is_webhook=is_webhook,
        extensions={k: v for k, v in operation.items() if k.startswith("x-")},
    )


# --- Grouping ---


def controller_name(operation: PathInfo, default: str = "Default") -> str:
    """Return the controller an operation belongs to.

    The first tag wins; otherwise the first path segment that is not a
    template parameter; otherwise *default*.
    """
    if operation.tags and operation.tags[0]:
        return pascal_case(operation.tags[0])
    for segment in operation.path.split("/"):
        if segment and not segment.startswith("{"):
            return pascal_case(segment)
    return default


def base_method_name(operation: PathInfo) -> str:
    if operation.operation_id:
        return camel_case(operation.operation_id)
    return operation.method.lower() + path_method_suffix(operation.path)


def assign_method_names(operations: list[PathInfo]) -> list[PathInfo]:
    """Return copies of *operations* with unique ``method_name`` values.

    Colliding names get a numeric suffix starting at ``2``.
    """
    used: set[str] = set()
    named: list[PathInfo] = []
    for operation in operations:
        base = base_method_name(operation)
        unique = base
        counter = 1
        while unique in used:
            counter += 1
            unique = f"{base}{counter}"
        used.add(unique)
        named.append(operation.model_copy(update={"method_name": unique}))
    return named


def group_by_controller(
    operations: list[PathInfo],
    default: str = "Default",
) -> dict[str, list[PathInfo]]:
    """Group operations by controller, preserving document order in each group.

    Operations without a ``method_name`` are named first via
    :func:`assign_method_names`.
    """
    if any(op.method_name is None for op in operations):
        operations = assign_method_names(operations)
    groups: dict[str, list[PathInfo]] = {}
    for operation in operations:
        groups.setdefault(controller_name(operation, default), []).append(operation)
    return groups
