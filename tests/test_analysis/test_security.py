"""Tests for specir.analysis.security."""

from __future__ import annotations

from specir.analysis.security import (
    effective_security,
    normalize_requirements,
    normalize_security_scheme,
    normalize_security_schemes,
)
from specir.models import PathInfo, SecurityScheme
from specir.parser.spec_parser import SpecParser


class TestNormalizeSecuritySchemes:
    def test_openapi3_schemes(self, petstore: SpecParser) -> None:
        schemes = petstore.get_security_schemes()

        assert list(schemes) == ["api_key", "bearer", "oauth"]
        assert schemes["api_key"].type == "apiKey"
        assert schemes["api_key"].param_name == "X-API-Key"
        assert schemes["api_key"].location == "header"
        assert schemes["bearer"].scheme == "bearer"
        assert schemes["bearer"].bearer_format == "JWT"
        assert schemes["oauth"].flows["clientCredentials"]["scopes"] == {"read": "Read access"}

    def test_swagger2_basic_becomes_http(self, swagger: SpecParser) -> None:
        basic = swagger.get_security_schemes()["basicAuth"]
        assert (basic.type, basic.scheme) == ("http", "basic")

    def test_swagger2_oauth_flow_is_renamed(self, swagger: SpecParser) -> None:
        oauth = swagger.get_security_schemes()["petstore_auth"]
        flow = oauth.flows["authorizationCode"]
        assert flow["authorizationUrl"] == "https://auth.example.com/authorize"
        assert flow["tokenUrl"] == "https://auth.example.com/token"
        assert set(flow["scopes"]) == {"write:pets", "read:pets"}

    def test_referenced_scheme_is_resolved(self, make_parser) -> None:
        document = {
            "openapi": "3.0.3",
            "info": {"title": "t", "version": "1"},
            "paths": {},
            "components": {
                "securitySchemes": {
                    "shared": {"$ref": "#/components/x-schemes/token"},
                    "broken": "not-a-scheme",
                },
                "x-schemes": {"token": {"type": "http", "scheme": "bearer"}},
            },
        }
        schemes = normalize_security_schemes(document, make_parser(document).resolver)
        assert list(schemes) == ["shared"]
        assert schemes["shared"].scheme == "bearer"

    def test_no_schemes(self) -> None:
        assert normalize_security_schemes({"openapi": "3.1.0"}) == {}

    def test_openid_connect(self) -> None:
        scheme = normalize_security_scheme(
            "oidc", {"type": "openIdConnect", "openIdConnectUrl": "https://id.example.com/.well-known"}
        )
        assert scheme.openid_connect_url == "https://id.example.com/.well-known"
        assert scheme.uses_scopes


class TestRequirements:
    SCHEMES = {
        "api_key": SecurityScheme(name="api_key", type="apiKey"),
        "oauth": SecurityScheme(name="oauth", type="oauth2"),
    }

    def test_scopes_dropped_for_non_scope_schemes(self) -> None:
        result = normalize_requirements([{"api_key": ["ignored"], "oauth": ["read", "write"]}], self.SCHEMES)
        assert result == [{"api_key": [], "oauth": ["read", "write"]}]

    def test_pointer_keys_are_reduced_to_names(self) -> None:
        result = normalize_requirements([{"#/components/securitySchemes/oauth": ["read"]}], self.SCHEMES)
        assert result == [{"oauth": ["read"]}]

    def test_unknown_scheme_keeps_scopes(self) -> None:
        assert normalize_requirements([{"other": ["x"]}], self.SCHEMES) == [{"other": ["x"]}]

    def test_empty_requirement_object_means_optional(self) -> None:
        assert normalize_requirements([{}, {"api_key": []}], self.SCHEMES) == [{}, {"api_key": []}]


class TestEffectiveSecurity:
    GLOBAL = [{"api_key": []}]

    def test_inherits_global_when_unset(self) -> None:
        operation = PathInfo(path="/", method="GET")
        assert effective_security(operation, self.GLOBAL) == [{"api_key": []}]

    def test_explicit_empty_disables_security(self) -> None:
        operation = PathInfo(path="/", method="GET", security=[])
        assert effective_security(operation, self.GLOBAL) == []

    def test_operation_overrides_global(self) -> None:
        operation = PathInfo(path="/", method="GET", security=[{"oauth": ["read"]}])
        assert effective_security(operation, self.GLOBAL) == [{"oauth": ["read"]}]

    def test_no_global_security(self) -> None:
        assert effective_security(PathInfo(path="/", method="GET"), None) == []

    def test_fixture_operations(self, petstore: SpecParser) -> None:
        by_id = {op.operation_id: op for op in petstore.operations}
        schemes = petstore.get_security_schemes()
        global_security = petstore.get_spec().get("security")

        assert effective_security(by_id["listPets"], global_security, schemes) == [{"api_key": []}]
        assert effective_security(by_id["showPetById"], global_security, schemes) == []
        assert effective_security(by_id["login"], global_security, schemes) == [{"bearer": [], "api_key": []}]
        assert effective_security(by_id["streamEvents"], global_security, schemes) == [{"oauth": ["read"]}]
