"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~specir.exceptions.SpecirError` subclass.
External tooling (CI scripts, build wrappers) can inspect the exit code to
determine the failure class without parsing stderr.

Example::

    $ specir inspect operations broken.yaml
    $ echo $?
    8   # EXIT_UNRESOLVED_REFERENCE -- a $ref points nowhere
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or unknown names."""

EXIT_SPEC_LOAD_ERROR = 7
"""The OpenAPI document could not be fetched or parsed."""

EXIT_UNRESOLVED_REFERENCE = 8
"""A ``$ref`` in the document points to nothing reachable."""
