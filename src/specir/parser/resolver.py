"""Resolve ``$ref`` pointers against a :class:`~specir.parser.loader.DocumentCache`.

Unlike a deep-copying inliner, this resolver never rewrites documents. It
returns the node a reference points to *inside the cached document*, so
resolving the same reference twice yields the very same object. Consumers
that walk possibly cyclic schema graphs rely on that identity to detect
nodes they have already visited.

Supported reference forms:

* ``#/json/pointer`` -- relative to the referencing document.
* ``other.yaml#/json/pointer`` or an absolute URL -- relative to the target
  document, loaded on demand when it is not cached yet.
* ``schema-id#anchor`` -- a ``$anchor`` or ``$dynamicAnchor`` name.

``$dynamicRef`` is treated as a static ``$ref``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from specir.exceptions import SpecLoadError, UnresolvedReferenceError
from specir.parser.loader import DocumentCache
from specir.parser.pointer import split_ref, walk_pointer

logger = logging.getLogger(__name__)


def reference_of(node: Any) -> Optional[str]:
    """Return the ``$ref`` (or ``$dynamicRef``) string on *node*, if any."""
    if isinstance(node, dict):
        for keyword in ("$ref", "$dynamicRef"):
            value = node.get(keyword)
            if isinstance(value, str):
                return value
    return None


class ReferenceResolver:
    """Pointer-stable ``$ref`` resolution over one document cache.

    Args:
        cache: The run's document cache.
        entry_uri: Canonical URI of the entry document; used as the origin
            for nodes whose document is unknown to the cache.
    """

    def __init__(self, cache: DocumentCache, entry_uri: str) -> None:
        self.cache = cache
        self.entry_uri = entry_uri

    def origin_of(self, node: Any) -> str:
        """Return the base URI of *node*, defaulting to the entry document."""
        return self.cache.base_uri_of(node) or self.entry_uri

    def resolve_reference(self, ref: str, origin: Optional[str] = None) -> Any:
        """Resolve the reference string *ref* found in document *origin*.

        Pure-reference targets (mappings whose only job is to point
        elsewhere) are followed until a concrete node is reached.

        Raises:
            UnresolvedReferenceError: If the target document cannot be loaded,
                the pointer does not exist, or the chain of references loops.
        """
        origin = origin or self.entry_uri
        seen: set[tuple[str, str]] = set()
        current_ref, current_origin = ref, origin

        while True:
            document_uri, fragment = split_ref(current_ref, current_origin)
            key = (document_uri, fragment)
            if key in seen:
                raise UnresolvedReferenceError(ref, origin, "reference chain loops back on itself")
            seen.add(key)

            target = self._locate(document_uri, fragment, current_ref, current_origin)
            next_ref = reference_of(target)
            if next_ref is None:
                return target
            current_ref = next_ref
            current_origin = self.cache.base_uri_of(target) or document_uri

    def resolve(self, node: Any, origin: Optional[str] = None) -> Any:
        """Return *node* with any top-level ``$ref`` resolved.

        Only mappings carrying ``$ref`` or ``$dynamicRef`` are followed. Any
        other node, a string included, is returned unchanged; use
        :meth:`resolve_reference` for a bare reference string.
        """
        ref = reference_of(node)
        if ref is None:
            return node
        return self.resolve_reference(ref, origin or self.origin_of(node))

    def _locate(self, document_uri: str, fragment: str, ref: str, origin: Optional[str]) -> Any:
        root = self.cache.get(document_uri)
        if root is None:
            logger.debug("Cache miss for %s while resolving %s", document_uri, ref)
            try:
                root = self.cache.load_blocking(document_uri)
            except SpecLoadError as exc:
                raise UnresolvedReferenceError(ref, origin, str(exc)) from exc

        if fragment and not fragment.startswith("/"):
            target = self.cache.anchor(document_uri, fragment)
            if target is None:
                raise UnresolvedReferenceError(ref, origin, f"anchor '{fragment}' not found")
            return target
        return walk_pointer(root, fragment, ref, origin)
