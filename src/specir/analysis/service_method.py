"""Build one :class:`~specir.models.ServiceMethodModel` per operation.

The builder combines the parameter and body builders from
:mod:`specir.analysis.params` with response analysis and the security
override rule from :mod:`specir.analysis.security`. Its output is all a
service emitter needs; emitters never look at the raw document again.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, Optional

from specir.analysis.params import build_body_variant, build_param_serialization
from specir.analysis.security import effective_security
from specir.models import (
    ErrorResponseInfo,
    ParameterLocation,
    ParamSerialization,
    PathInfo,
    ServiceMethodModel,
)

if TYPE_CHECKING:
    from specir.parser.spec_parser import SpecParser

logger = logging.getLogger(__name__)

_SUCCESS_CODE = re.compile(r"^2\d\d$")


def response_serialization(media_types: list[str]) -> str:
    """Map the media types of a success response to a serialization kind."""
    if not media_types or "application/json" in media_types:
        return "json"
    media_type = media_types[0]
    if media_type == "application/json-seq":
        return "json-seq"
    if media_type in ("application/jsonl", "application/x-ndjson"):
        return "json-lines"
    if "json" in media_type or "*/*" in media_type:
        return "json"
    if media_type == "application/xml" or media_type.endswith("+xml"):
        return "xml"
    if media_type == "text/event-stream":
        return "sse"
    if media_type.startswith("text/"):
        return "text"
    return "blob"


def _media_types_with_schema(content: Optional[dict[str, Any]]) -> list[str]:
    """Media types whose entry declares a ``schema`` or ``itemSchema``."""
    return [
        media_type
        for media_type, media in (content or {}).items()
        if isinstance(media, dict) and (media.get("schema") or media.get("itemSchema"))
    ]


def success_code(responses: dict[str, Any]) -> Optional[str]:
    """Pick the response code treated as success: 204, first 2xx, ``2XX``, then ``default``."""
    if "204" in responses:
        return "204"
    for code in responses:
        if _SUCCESS_CODE.match(code):
            return code
    if "2XX" in responses:
        return "2XX"
    if "default" in responses:
        return "default"
    return None


def substitute_server_variables(server: dict[str, Any]) -> str:
    url = str(server.get("url", ""))
    for name, variable in (server.get("variables") or {}).items():
        if isinstance(variable, dict) and "default" in variable:
            url = url.replace(f"{{{name}}}", str(variable["default"]))
    return url


def build_docs(operation: PathInfo) -> str:
    summary = operation.summary or ""
    description = operation.description or ""
    docs = summary or description or f"Performs a {operation.method} request to {operation.path}."
    if summary and description:
        docs += f"\n\n{description}"
    docs = docs.strip()
    external = operation.external_docs or {}
    if external.get("url"):
        docs += f"\n\n@see {external['url']} {external.get('description') or ''}".rstrip()
    if operation.deprecated:
        docs += "\n\n@deprecated"
    return docs


class ServiceMethodBuilder:
    """Turns :class:`~specir.models.PathInfo` records into service method models.

    Args:
        parser: The loaded document; supplies the resolver, the global
            security requirement and the security schemes.
    """

    def __init__(self, parser: SpecParser) -> None:
        self.parser = parser
        self.resolver = parser.resolver

    def build(self, operation: PathInfo) -> ServiceMethodModel:
        buckets: dict[ParameterLocation, list[ParamSerialization]] = {
            ParameterLocation.PATH: [],
            ParameterLocation.QUERY: [],
            ParameterLocation.HEADER: [],
            ParameterLocation.COOKIE: [],
        }
        for param in operation.parameters:
            if param.location == ParameterLocation.FORM_DATA:
                continue
            location = param.location
            if location == ParameterLocation.QUERYSTRING:
                location = ParameterLocation.QUERY
            buckets[location].append(build_param_serialization(param, self.resolver))

        code = success_code(operation.responses)
        serialization = "json"
        if code is not None and code != "204":
            response = self.resolver.resolve(operation.responses[code])
            content = response.get("content") if isinstance(response, dict) else None
            serialization = response_serialization(_media_types_with_schema(content))

        base_path: Optional[str] = None
        if operation.servers:
            base_path = substitute_server_variables(operation.servers[0])

        return ServiceMethodModel(
            method_name=operation.method_name or "",
            http_method=operation.method.upper(),
            url_template=operation.path,
            docs=build_docs(operation),
            is_deprecated=operation.deprecated,
            path_params=buckets[ParameterLocation.PATH],
            query_params=buckets[ParameterLocation.QUERY],
            header_params=buckets[ParameterLocation.HEADER],
            cookie_params=buckets[ParameterLocation.COOKIE],
            body=build_body_variant(
                operation, self.resolver, self.parser.config.analysis.xml_config_depth
            ),
            response_serialization=serialization,
            success_code=code,
            error_responses=self._error_responses(operation, code),
            security=effective_security(
                operation,
                self.parser.get_spec().get("security"),
                self.parser.get_security_schemes(),
            ),
            has_servers=bool(base_path),
            base_path=base_path,
            extensions=dict(operation.extensions),
        )

    def _error_responses(self, operation: PathInfo, code: Optional[str]) -> list[ErrorResponseInfo]:
        errors: list[ErrorResponseInfo] = []
        for status, raw in operation.responses.items():
            if status == code or _SUCCESS_CODE.match(status) or status == "2XX":
                continue
            response = self.resolver.resolve(raw)
            if not isinstance(response, dict):
                continue
            content = response.get("content") or {}
            media_type: Optional[str] = None
            for candidate in ("application/json", "*/*", "application/xml", "text/plain"):
                if candidate in content:
                    media_type = candidate
                    break
            schema = None
            if media_type is not None and isinstance(content[media_type], dict):
                schema = content[media_type].get("schema")
            errors.append(
                ErrorResponseInfo(
                    code=status,
                    media_type=media_type,
                    schema=schema,
                    description=response.get("description"),
                )
            )
        return errors

    def build_all(self) -> dict[str, list[ServiceMethodModel]]:
        """Service method models for every operation, grouped by controller."""
        result: dict[str, list[ServiceMethodModel]] = {}
        for controller, operations in self.parser.controllers.items():
            logger.debug("Building %d service method(s) for %s", len(operations), controller)
            result[controller] = [self.build(operation) for operation in operations]
        return result
