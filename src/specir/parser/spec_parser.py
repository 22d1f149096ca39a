"""High-level access to one loaded OpenAPI document.

:class:`SpecParser` bundles the per-run :class:`~specir.parser.loader.DocumentCache`,
a :class:`~specir.parser.resolver.ReferenceResolver` and the operation
extractor behind the accessors emitters use: ``get_spec()``, ``resolve()``,
``get_definition()``, ``get_polymorphic_schema_options()``,
``get_security_schemes()``, ``operations`` and ``controllers``.

Typical usage::

    parser = await SpecParser.create("petstore.yaml")
    for controller, operations in parser.controllers.items():
        ...

or, from synchronous code::

    parser = load_spec("https://example.com/openapi.json")
"""

from __future__ import annotations

import asyncio
import functools
from typing import Any, Optional

from specir.analysis.composition import get_polymorphic_options
from specir.analysis.security import normalize_requirements, normalize_security_schemes
from specir.models import GeneratorConfig, PathInfo, PolymorphicOption, SecurityScheme
from specir.parser.extractor import assign_method_names, extract_operations, group_by_controller
from specir.parser.loader import DocumentCache, canonicalize_uri, detect_spec_version
from specir.parser.resolver import ReferenceResolver


class SpecParser:
    """Read-only view over a loaded document and everything it references.

    Instances are built by :meth:`create` (loads from a path or URL) or
    :meth:`from_document` (wraps an in-memory dict). The document must not
    be mutated afterwards; node identity is what cycle detection relies on.

    Raises:
        SpecLoadError: From the constructor, if the document declares neither
            a Swagger 2.x nor an OpenAPI 3.x version.
    """

    def __init__(
        self,
        document: dict[str, Any],
        cache: DocumentCache,
        entry_uri: str,
        config: Optional[GeneratorConfig] = None,
    ) -> None:
        self.document = document
        self.cache = cache
        self.entry_uri = entry_uri
        self.config = config or GeneratorConfig()
        self.spec_type, self.spec_version = detect_spec_version(document, entry_uri)
        self.resolver = ReferenceResolver(cache, entry_uri)

    @classmethod
    async def create(
        cls,
        source: str,
        config: Optional[GeneratorConfig] = None,
        transport: Optional[Any] = None,
    ) -> SpecParser:
        """Load *source* (and, by default, every document it references)."""
        config = config or GeneratorConfig()
        cache = DocumentCache(config.loader, transport=transport)
        entry_uri = canonicalize_uri(source)
        document = await cache.load(entry_uri)
        return cls(document, cache, entry_uri, config)

    @classmethod
    def from_document(
        cls,
        document: dict[str, Any],
        base_uri: Optional[str] = None,
        config: Optional[GeneratorConfig] = None,
        transport: Optional[Any] = None,
    ) -> SpecParser:
        """Wrap an already parsed document.

        Relative external references resolve against *base_uri*, which
        defaults to ``spec.json`` in the current directory. Referenced
        documents are loaded on first use.
        """
        config = config or GeneratorConfig()
        cache = DocumentCache(config.loader, transport=transport)
        entry_uri = canonicalize_uri(base_uri or "spec.json")
        cache.register(entry_uri, document)
        return cls(document, cache, entry_uri, config)

    # --- document access ---

    def get_spec(self) -> dict[str, Any]:
        return self.document

    @property
    def is_swagger2(self) -> bool:
        return self.spec_type == "swagger"

    def resolve(self, node: Any, origin: Optional[str] = None) -> Any:
        """Resolve a ``$ref``-bearing node; see :class:`ReferenceResolver`."""
        return self.resolver.resolve(node, origin)

    def resolve_reference(self, ref: str, origin: Optional[str] = None) -> Any:
        return self.resolver.resolve_reference(ref, origin)

    def get_definitions(self) -> dict[str, Any]:
        """Component schemas (``definitions`` in Swagger 2.0), in document order."""
        if self.is_swagger2:
            return self.document.get("definitions") or {}
        return (self.document.get("components") or {}).get("schemas") or {}

    def get_definition(self, name: str) -> Optional[Any]:
        return self.get_definitions().get(name)

    @property
    def schema_names(self) -> list[str]:
        return list(self.get_definitions())

    def component_ref(self, name: str) -> str:
        """The local ``$ref`` that addresses component schema *name*."""
        if self.is_swagger2:
            return f"#/definitions/{name}"
        return f"#/components/schemas/{name}"

    @functools.cached_property
    def servers(self) -> list[dict[str, Any]]:
        """Declared servers; OpenAPI 3 documents without any get ``[{"url": "/"}]``."""
        if not self.is_swagger2:
            return list(self.document.get("servers") or []) or [{"url": "/"}]
        host = self.document.get("host")
        base_path = self.document.get("basePath") or ""
        if not host:
            return [{"url": base_path or "/"}]
        schemes = self.document.get("schemes") or ["https"]
        return [{"url": f"{scheme}://{host}{base_path}"} for scheme in schemes]

    # --- operations ---

    @functools.cached_property
    def operations(self) -> list[PathInfo]:
        """Every path operation, flattened, with unique method names."""
        return assign_method_names(
            extract_operations(
                self.document.get("paths"),
                self.resolver,
                default_consumes=self.document.get("consumes"),
            )
        )

    @functools.cached_property
    def webhooks(self) -> list[PathInfo]:
        return assign_method_names(
            extract_operations(self.document.get("webhooks"), self.resolver, is_webhook=True)
        )

    @functools.cached_property
    def controllers(self) -> dict[str, list[PathInfo]]:
        """Operations grouped by controller name."""
        return group_by_controller(self.operations, self.config.analysis.default_controller)

    # --- schemas and security ---

    def get_polymorphic_schema_options(self, schema: Any) -> list[PolymorphicOption]:
        return get_polymorphic_options(
            schema,
            self.resolver,
            warn_on_stale_mapping=self.config.analysis.warn_on_stale_mapping,
        )

    def is_polymorphic(self, schema: Any) -> bool:
        return len(self.get_polymorphic_schema_options(schema)) > 0

    @functools.cached_property
    def security_schemes(self) -> dict[str, SecurityScheme]:
        return normalize_security_schemes(self.document, self.resolver)

    def get_security_schemes(self) -> dict[str, SecurityScheme]:
        return self.security_schemes

    @property
    def global_security(self) -> list[dict[str, list[str]]]:
        return normalize_requirements(self.document.get("security"), self.security_schemes)


def load_spec(
    source: str,
    config: Optional[GeneratorConfig] = None,
    transport: Optional[Any] = None,
) -> SpecParser:
    """Synchronously load *source* into a :class:`SpecParser`.

    Raises:
        SpecLoadError: If the entry document or a preloaded document cannot
            be fetched or parsed.
    """
    return asyncio.run(SpecParser.create(source, config, transport))
