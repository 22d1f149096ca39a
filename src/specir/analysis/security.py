"""Security scheme normalisation and per-operation security requirements.

:func:`normalize_security_schemes` reads ``components.securitySchemes``
(OpenAPI 3.x) or ``securityDefinitions`` (Swagger 2.0) into
:class:`~specir.models.SecurityScheme` models keyed by scheme name.

:func:`effective_security` applies the OpenAPI override rule: an operation's
own ``security`` array replaces the document-level one, and an explicit
empty array means "no authentication", which is not the same as leaving the
keyword out.
"""

from __future__ import annotations

from typing import Any, Optional

from specir.models import PathInfo, SecurityScheme
from specir.naming import normalize_security_key
from specir.parser.resolver import ReferenceResolver

_SWAGGER2_FLOW_NAMES = {
    "implicit": "implicit",
    "password": "password",
    "application": "clientCredentials",
    "accessCode": "authorizationCode",
}


def _swagger2_flows(data: dict[str, Any]) -> Optional[dict[str, Any]]:
    flow = data.get("flow")
    if flow is None:
        return None
    flow_data: dict[str, Any] = {"scopes": dict(data.get("scopes") or {})}
    if data.get("authorizationUrl"):
        flow_data["authorizationUrl"] = data["authorizationUrl"]
    if data.get("tokenUrl"):
        flow_data["tokenUrl"] = data["tokenUrl"]
    return {_SWAGGER2_FLOW_NAMES.get(flow, flow): flow_data}


def normalize_security_scheme(name: str, data: dict[str, Any]) -> SecurityScheme:
    """Build one :class:`SecurityScheme` from a raw scheme object."""
    scheme_type = data.get("type", "")
    scheme = data.get("scheme")
    flows = data.get("flows")

    if scheme_type == "basic":
        scheme_type, scheme = "http", "basic"
    if scheme_type == "oauth2" and flows is None:
        flows = _swagger2_flows(data)

    return SecurityScheme(
        name=name,
        type=scheme_type,
        description=data.get("description"),
        in_name=data.get("name"),
        in_location=data.get("in"),
        scheme=scheme.lower() if isinstance(scheme, str) else scheme,
        bearer_format=data.get("bearerFormat"),
        flows=flows,
        openid_connect_url=data.get("openIdConnectUrl"),
        deprecated=bool(data.get("deprecated", False)),
    )


def normalize_security_schemes(
    document: dict[str, Any],
    resolver: Optional[ReferenceResolver] = None,
) -> dict[str, SecurityScheme]:
    """Return every declared security scheme keyed by name, in document order.

    ``$ref`` entries are resolved when a *resolver* is given; entries that
    are not mappings are skipped.
    """
    components = document.get("components") or {}
    raw = components.get("securitySchemes") or document.get("securityDefinitions") or {}

    schemes: dict[str, SecurityScheme] = {}
    for name, data in raw.items():
        if resolver is not None:
            data = resolver.resolve(data)
        if not isinstance(data, dict):
            continue
        schemes[name] = normalize_security_scheme(name, data)
    return schemes


def normalize_requirements(
    requirements: Optional[list[dict[str, Any]]],
    schemes: Optional[dict[str, SecurityScheme]] = None,
) -> list[dict[str, list[str]]]:
    """Normalise requirement keys to scheme names and scope lists.

    Scopes are kept for OAuth2 and OpenID Connect schemes; every other
    known scheme gets an empty scope list.
    """
    normalized: list[dict[str, list[str]]] = []
    for requirement in requirements or []:
        if not isinstance(requirement, dict):
            continue
        entry: dict[str, list[str]] = {}
        for key, scopes in requirement.items():
            name = normalize_security_key(key)
            scheme = (schemes or {}).get(name)
            if scheme is not None and not scheme.uses_scopes:
                entry[name] = []
            else:
                entry[name] = [str(scope) for scope in scopes or []]
        normalized.append(entry)
    return normalized


def effective_security(
    operation: PathInfo,
    global_security: Optional[list[dict[str, Any]]],
    schemes: Optional[dict[str, SecurityScheme]] = None,
) -> list[dict[str, list[str]]]:
    """Return the alternatives of requirements that apply to *operation*.

    Each entry is one acceptable combination of schemes. An empty list
    means no authentication is required.
    """
    if operation.security is not None:
        return normalize_requirements(operation.security, schemes)
    return normalize_requirements(global_security, schemes)
