"""Load OpenAPI documents and keep them in a per-run document cache.

This module owns all I/O performed by specir. Documents may live on local
disk or behind an HTTP(S) URL and may be JSON or YAML; the format is
detected from the file extension or ``Content-Type`` header and, failing
that, by attempting JSON before YAML.

The central type is :class:`DocumentCache`, an explicit context object that
maps canonical document URIs to parsed roots. One cache belongs to one
generation run, so several runs in the same process never share state.

Loading is asynchronous: :meth:`DocumentCache.load` fetches the entry
document and then preloads every externally referenced document
concurrently, de-duplicating fetches through an in-flight map. Once loading
has finished, resolution is synchronous; a lookup that still misses the
cache falls back to :meth:`DocumentCache.load_blocking`.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urldefrag, urljoin, urlparse
from urllib.request import url2pathname

import httpx
import yaml

from specir.exceptions import SpecLoadError
from specir.models import LoaderConfig
from specir.parser.pointer import iter_nodes, iter_references

logger = logging.getLogger(__name__)

_REMOTE_SCHEMES = ("http", "https")


def canonicalize_uri(source: str, base: Optional[str] = None) -> str:
    """Return the cache key for *source*.

    Local paths become absolute ``file://`` URIs; URLs lose their fragment.
    When *base* is given, *source* is first joined against it.
    """
    if base:
        return urldefrag(urljoin(base, source))[0]
    parsed = urlparse(source)
    if parsed.scheme in _REMOTE_SCHEMES or parsed.scheme == "file":
        return urldefrag(source)[0]
    return Path(source).expanduser().resolve().as_uri()


def _format_hint(uri: str, content_type: str = "") -> str:
    if "json" in content_type:
        return "json"
    if "yaml" in content_type or "yml" in content_type:
        return "yaml"
    suffix = Path(urlparse(uri).path).suffix.lower()
    if suffix == ".json":
        return "json"
    if suffix in (".yaml", ".yml"):
        return "yaml"
    return ""


def parse_content(content: str, source: str, hint: str = "") -> dict[str, Any]:
    """Parse *content* as JSON or YAML.

    Tries JSON first unless *hint* is ``"yaml"``; a ``"json"`` hint disables
    the YAML fallback.

    Raises:
        SpecLoadError: If the content parses as neither format, or the root
            is not a mapping.
    """
    json_error: Optional[Exception] = None

    if hint != "yaml":
        try:
            result = json.loads(content)
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise SpecLoadError(f"Invalid JSON in {source}: {exc}") from exc
            json_error = exc
        else:
            return _require_mapping(result, source)

    try:
        result = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        msg = f"Failed to parse {source} as JSON or YAML"
        if json_error:
            msg += f"\n  JSON error: {json_error}"
        msg += f"\n  YAML error: {exc}"
        raise SpecLoadError(msg) from exc
    return _require_mapping(result, source)


def _require_mapping(result: Any, source: str) -> dict[str, Any]:
    if not isinstance(result, dict):
        kind = type(result).__name__ if result is not None else "empty document"
        raise SpecLoadError(f"Document {source} must be a JSON/YAML object (got {kind})")
    return result


def detect_spec_version(document: dict[str, Any], source: str = "<document>") -> tuple[str, str]:
    """Return ``("swagger", version)`` or ``("openapi", version)``.

    Raises:
        SpecLoadError: If the document declares neither a Swagger 2.x nor an
            OpenAPI 3.x version.
    """
    if "swagger" in document:
        version = str(document["swagger"])
        if version.startswith("2."):
            return "swagger", version
        raise SpecLoadError(f"Unsupported Swagger version {version} in {source}")

    version = document.get("openapi")
    if version is None:
        raise SpecLoadError(
            f"Missing 'openapi' or 'swagger' field in {source}. "
            "Is this an OpenAPI document?"
        )
    version = str(version)
    if not version.startswith("3."):
        raise SpecLoadError(f"Unsupported OpenAPI version {version} in {source}")
    return "openapi", version


class DocumentCache:
    """Per-run map from canonical document URI to parsed document root.

    Besides whole documents the cache indexes ``$id`` / ``$self`` aliases and
    ``$anchor`` / ``$dynamicAnchor`` names, and remembers the base URI of
    every mapping node it has seen so a resolver can resolve relative
    references found anywhere in a loaded document.

    Args:
        config: Loader settings (timeouts, SSL verification, preloading).
        transport: Optional httpx transport, used for both sync and async
            fetches. Tests pass an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: Optional[LoaderConfig] = None,
        transport: Optional[Any] = None,
    ) -> None:
        self.config = config or LoaderConfig()
        self._transport = transport
        self._documents: dict[str, dict[str, Any]] = {}
        self._aliases: dict[str, Any] = {}
        self._anchors: dict[str, Any] = {}
        self._bases: dict[int, str] = {}
        self._inflight: dict[str, asyncio.Future[dict[str, Any]]] = {}
        self.fetch_count = 0

    def __contains__(self, uri: str) -> bool:
        return uri in self._documents or uri in self._aliases

    @property
    def uris(self) -> list[str]:
        """Canonical URIs of all loaded documents, in load order."""
        return list(self._documents)

    # --- lookup ---

    def get(self, uri: str) -> Optional[Any]:
        """Return the document (or ``$id``-identified schema) at *uri*, if cached."""
        if uri in self._documents:
            return self._documents[uri]
        return self._aliases.get(uri)

    def anchor(self, uri: str, name: str) -> Optional[Any]:
        """Return the node carrying ``$anchor``/``$dynamicAnchor`` *name* under *uri*."""
        return self._anchors.get(f"{uri}#{name}")

    def base_uri_of(self, node: Any) -> Optional[str]:
        """Return the base URI in effect for *node*, or ``None`` if unknown."""
        return self._bases.get(id(node))

    # --- registration ---

    def register(self, uri: str, document: dict[str, Any]) -> dict[str, Any]:
        """Store *document* under *uri* unless another load already won.

        The cache is write-once per URI: the first registered document is
        kept and returned.
        """
        existing = self._documents.get(uri)
        if existing is not None:
            return existing
        self._documents[uri] = document

        base = uri
        self_uri = document.get("$self")
        if isinstance(self_uri, str):
            base = urldefrag(urljoin(uri, self_uri))[0]
            self._aliases.setdefault(base, document)
        root_id = document.get("$id")
        if isinstance(root_id, str):
            base = urldefrag(urljoin(base, root_id))[0]
            self._aliases.setdefault(base, document)

        for node, node_base in iter_nodes(document, base):
            self._bases[id(node)] = node_base
            node_id = node.get("$id")
            if isinstance(node_id, str) and node is not document:
                self._aliases.setdefault(node_base, node)
            for keyword in ("$anchor", "$dynamicAnchor"):
                name = node.get(keyword)
                if isinstance(name, str):
                    self._anchors.setdefault(f"{node_base}#{name}", node)
        logger.debug("Registered document %s", uri)
        return document

    # --- async loading ---

    async def load(self, source: str, base: Optional[str] = None) -> dict[str, Any]:
        """Load *source* (path or URL) into the cache and return its root.

        Concurrent calls for the same URI share one fetch. When
        ``config.preload_external_refs`` is set, every document referenced
        from the loaded one is loaded before this coroutine returns.

        Raises:
            SpecLoadError: If the document cannot be fetched or parsed.
        """
        uri = canonicalize_uri(source, base)
        cached = self.get(uri)
        if cached is not None:
            logger.debug("Cache hit for %s", uri)
            return cached

        future = self._inflight.get(uri)
        if future is None:
            future = asyncio.ensure_future(self._load_uncached(uri))
            self._inflight[uri] = future
        try:
            return await future
        finally:
            self._inflight.pop(uri, None)

    async def _load_uncached(self, uri: str) -> dict[str, Any]:
        content, hint = await self._fetch_async(uri)
        document = self.register(uri, parse_content(content, uri, hint))
        if self.config.preload_external_refs:
            await self.preload(uri)
        return document

    async def preload(self, uri: str) -> None:
        """Concurrently load every external document referenced from *uri*."""
        document = self._documents.get(uri)
        if document is None:
            return
        pending: list[str] = []
        for target in iter_references(document, self._bases.get(id(document), uri)):
            target_uri = urldefrag(target)[0]
            if not target_uri or target_uri in self or target_uri in pending:
                continue
            pending.append(target_uri)
        if not pending:
            return
        logger.debug("Preloading %d external document(s) referenced by %s", len(pending), uri)
        await asyncio.gather(*(self.load(target_uri) for target_uri in pending))

    async def _fetch_async(self, uri: str) -> tuple[str, str]:
        self.fetch_count += 1
        if urlparse(uri).scheme in _REMOTE_SCHEMES:
            logger.debug("Fetching %s", uri)
            async with httpx.AsyncClient(**self._client_options()) as client:
                try:
                    response = await client.get(uri)
                    response.raise_for_status()
                except httpx.HTTPStatusError as exc:
                    raise SpecLoadError(
                        f"HTTP {exc.response.status_code} fetching document from {uri}"
                    ) from exc
                except httpx.RequestError as exc:
                    raise SpecLoadError(f"Failed to fetch document from {uri}: {exc}") from exc
            return response.text, _format_hint(uri, response.headers.get("content-type", ""))
        content = await asyncio.to_thread(self._read_file, uri)
        return content, _format_hint(uri)

    # --- blocking fallback ---

    def load_blocking(self, source: str, base: Optional[str] = None) -> dict[str, Any]:
        """Synchronously load *source*; used when resolution misses the cache.

        Referenced documents are not preloaded; they are loaded the same way
        when a later resolution reaches them.
        """
        uri = canonicalize_uri(source, base)
        cached = self.get(uri)
        if cached is not None:
            return cached

        self.fetch_count += 1
        if urlparse(uri).scheme in _REMOTE_SCHEMES:
            logger.debug("Fetching %s (blocking)", uri)
            with httpx.Client(**self._client_options()) as client:
                try:
                    response = client.get(uri)
                    response.raise_for_status()
                except httpx.HTTPStatusError as exc:
                    raise SpecLoadError(
                        f"HTTP {exc.response.status_code} fetching document from {uri}"
                    ) from exc
                except httpx.RequestError as exc:
                    raise SpecLoadError(f"Failed to fetch document from {uri}: {exc}") from exc
            content = response.text
            hint = _format_hint(uri, response.headers.get("content-type", ""))
        else:
            content = self._read_file(uri)
            hint = _format_hint(uri)
        return self.register(uri, parse_content(content, uri, hint))

    # --- helpers ---

    def _client_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {
            "timeout": self.config.timeout,
            "follow_redirects": self.config.follow_redirects,
        }
        if self._transport is not None:
            options["transport"] = self._transport
        else:
            options["verify"] = self.config.verify_ssl
        return options

    @staticmethod
    def _read_file(uri: str) -> str:
        path = Path(url2pathname(urlparse(uri).path))
        logger.debug("Reading %s", path)
        if not path.is_file():
            raise SpecLoadError(f"Document not found: {path}")
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SpecLoadError(f"Failed to read document {path}: {exc}") from exc
        if not content.strip():
            raise SpecLoadError(f"Document is empty: {path}")
        return content
