"""JSON Pointer and URI helpers shared by the loader and the resolver.

Nothing in here performs I/O. :func:`walk_pointer` navigates an already
parsed document, :func:`iter_nodes` enumerates every mapping node together
with its effective base URI (honouring nested ``$id``), and
:func:`iter_references` lists the absolute targets of every reference
keyword in a document.
"""

from __future__ import annotations

from typing import Any, Iterator, Optional
from urllib.parse import unquote, urldefrag, urljoin

from specir.exceptions import UnresolvedReferenceError

REFERENCE_KEYWORDS = ("$ref", "$dynamicRef", "operationRef")


def split_ref(ref: str, base: Optional[str]) -> tuple[str, str]:
    """Split *ref* into ``(absolute_document_uri, fragment)``.

    Relative references are joined against *base* using RFC 3986 rules. A
    bare fragment (``#/components/schemas/Pet``) yields *base* itself as the
    document URI.
    """
    absolute = urljoin(base, ref) if base else ref
    document_uri, fragment = urldefrag(absolute)
    return document_uri, fragment


def decode_token(token: str) -> str:
    """Decode one JSON Pointer reference token (percent-encoding, ``~1``, ``~0``)."""
    return unquote(token).replace("~1", "/").replace("~0", "~")


def walk_pointer(root: Any, fragment: str, ref: str, origin: Optional[str]) -> Any:
    """Return the node addressed by the JSON Pointer *fragment* within *root*.

    Args:
        root: The document (or ``$id``-scoped sub-schema) the pointer is
            relative to.
        fragment: The pointer without its leading ``#``, e.g.
            ``/components/schemas/Pet``. An empty fragment addresses *root*.
        ref: The original reference text, for error messages.
        origin: URI of the referencing document, for error messages.

    Raises:
        UnresolvedReferenceError: If any token does not exist.
    """
    if not fragment:
        return root
    if not fragment.startswith("/"):
        raise UnresolvedReferenceError(ref, origin, f"'{fragment}' is not a JSON pointer")

    current: Any = root
    for raw_token in fragment[1:].split("/"):
        token = decode_token(raw_token)
        if isinstance(current, dict):
            if token in current:
                current = current[token]
                continue
            # YAML loads unquoted keys such as response codes as ints.
            matches = [key for key in current if not isinstance(key, str) and str(key) == token]
            if not matches:
                raise UnresolvedReferenceError(ref, origin, f"key '{token}' not found")
            current = current[matches[0]]
        elif isinstance(current, list):
            try:
                current = current[int(token)]
            except (ValueError, IndexError) as exc:
                raise UnresolvedReferenceError(
                    ref, origin, f"invalid array index '{token}'"
                ) from exc
        else:
            raise UnresolvedReferenceError(
                ref, origin, f"cannot navigate into {type(current).__name__}"
            )
    return current


def iter_nodes(document: Any, base: str) -> Iterator[tuple[dict[str, Any], str]]:
    """Yield every mapping in *document* with the base URI in effect for it.

    A string ``$id`` on a mapping establishes a new base for that mapping
    and everything below it. Shared sub-trees (YAML aliases) are visited
    once.
    """
    seen: set[int] = set()
    stack: list[tuple[Any, str]] = [(document, base)]
    while stack:
        node, node_base = stack.pop()
        if id(node) in seen:
            continue
        seen.add(id(node))
        if isinstance(node, dict):
            node_id = node.get("$id")
            if isinstance(node_id, str) and node is not document:
                node_base = urldefrag(urljoin(node_base, node_id))[0]
            yield node, node_base
            children = list(node.values())
        elif isinstance(node, list):
            children = node
        else:
            continue
        for child in reversed(children):
            if isinstance(child, (dict, list)):
                stack.append((child, node_base))


def iter_references(document: Any, base: str) -> Iterator[str]:
    """Yield the absolute URI of every reference keyword value in *document*."""
    for node, node_base in iter_nodes(document, base):
        for keyword in REFERENCE_KEYWORDS:
            value = node.get(keyword)
            if isinstance(value, str):
                yield urljoin(node_base, value)
