"""Identifier helpers used when deriving names from an OpenAPI document.

Every generated name (controller, method, parameter, form interface, type)
goes through these helpers, so they must stay deterministic: the same input
always produces the same identifier regardless of the target emitter.
"""

from __future__ import annotations

import re

_NON_WORD = re.compile(r"[^a-zA-Z0-9\s_-]")
_EDGE_SEPARATORS = re.compile(r"^[_-]+|[-_]+$")
_LOWER_UPPER = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM_BOUNDARY = re.compile(r"([A-Z])([A-Z][a-z])")
_SEPARATORS = re.compile(r"[_-]+")
_WHITESPACE = re.compile(r"\s+")


def _normalize(text: str) -> str:
    """Lower-case *text* and split it into space-separated words."""
    if not text:
        return ""
    text = _NON_WORD.sub(" ", text)
    text = _EDGE_SEPARATORS.sub("", text)
    text = _LOWER_UPPER.sub(r"\1 \2", text)
    text = _ACRONYM_BOUNDARY.sub(r"\1 \2", text)
    text = _SEPARATORS.sub(" ", text)
    text = _WHITESPACE.sub(" ", text)
    return text.strip().lower()


def camel_case(text: str) -> str:
    """``"get-user_by ID"`` -> ``"getUserById"``."""
    words = _normalize(text).split(" ")
    if not words[0]:
        return ""
    return words[0] + "".join(word[:1].upper() + word[1:] for word in words[1:])


def pascal_case(text: str) -> str:
    """``"pet store"`` -> ``"PetStore"``."""
    words = _normalize(text).split(" ")
    return "".join(word[:1].upper() + word[1:] for word in words if word)


def singular(word: str) -> str:
    """Naive English singularisation (``categories`` -> ``category``, ``pets`` -> ``pet``)."""
    if word.endswith("ies"):
        return word[:-3] + "y"
    if word.endswith("s"):
        return word[:-1]
    return word


def normalize_security_key(key: str) -> str:
    """Reduce a security requirement key to a scheme name.

    Keys may be plain names, JSON pointers or URIs
    (``#/components/securitySchemes/ApiKey`` -> ``ApiKey``).
    """
    without_query = key.split("?")[0]
    _, hash_sign, fragment = without_query.partition("#")
    target = fragment if hash_sign else without_query
    parts = [part for part in target.split("/") if part]
    return parts[-1] if parts else key


def path_method_suffix(path: str) -> str:
    """``/users/{id}/posts`` -> ``UsersByIdPosts``."""
    parts: list[str] = []
    for segment in path.split("/"):
        if not segment:
            continue
        if segment.startswith("{") and segment.endswith("}"):
            parts.append("By" + pascal_case(segment[1:-1]))
        else:
            parts.append(pascal_case(segment))
    return "".join(parts)
