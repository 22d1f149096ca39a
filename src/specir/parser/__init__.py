"""OpenAPI document loading, ``$ref`` resolution and operation extraction.

This sub-package is the I/O and addressing half of specir: it turns a JSON or
YAML document (local file or remote URL, possibly split across several files)
into an in-memory document graph that the :mod:`specir.analysis` builders walk.

Typical usage::

    from specir.parser.spec_parser import load_spec

    parser = load_spec("https://petstore3.swagger.io/api/v3/openapi.json")
    pet = parser.resolve({"$ref": "#/components/schemas/Pet"})

Sub-modules:

* :mod:`~specir.parser.loader` -- per-run document cache with async loading,
  external-document preloading and JSON/YAML detection.
* :mod:`~specir.parser.pointer` -- JSON Pointer and URI helpers.
* :mod:`~specir.parser.resolver` -- pointer-stable ``$ref`` resolution.
* :mod:`~specir.parser.extractor` -- flattens ``paths``/``webhooks`` and
  groups operations by controller.
* :mod:`~specir.parser.spec_parser` -- the :class:`SpecParser` facade.
"""

from specir.parser.extractor import extract_operations, group_by_controller
from specir.parser.loader import DocumentCache, canonicalize_uri, detect_spec_version
from specir.parser.resolver import ReferenceResolver

__all__ = [
    "DocumentCache",
    "ReferenceResolver",
    "canonicalize_uri",
    "detect_spec_version",
    "extract_operations",
    "group_by_controller",
]
