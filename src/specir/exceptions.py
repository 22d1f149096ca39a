"""Exception hierarchy for specir.

All exceptions inherit from :class:`SpecirError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`specir.exit_codes`.
Core components raise these and never report them; the top-level handler in
:func:`specir.app.main` catches ``SpecirError`` and exits with the
appropriate code.

Subclass hierarchy::

    SpecirError (exit 1)
    +-- InvalidUsageError         (exit 2)
    +-- SpecLoadError             (exit 7)
    +-- UnresolvedReferenceError  (exit 8)
    +-- ConfigError               (exit 1)
"""

from __future__ import annotations

from typing import Optional

from specir.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_SPEC_LOAD_ERROR,
    EXIT_UNRESOLVED_REFERENCE,
)


class SpecirError(Exception):
    """Base exception for all specir errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SpecirError):
    """Raised for invalid CLI arguments, e.g. an unknown schema name."""

    exit_code = EXIT_INVALID_USAGE


class SpecLoadError(SpecirError):
    """Raised when a document cannot be fetched, read, or parsed.

    The message always names the offending input and the underlying cause.
    """

    exit_code = EXIT_SPEC_LOAD_ERROR


class UnresolvedReferenceError(SpecirError):
    """Raised when a ``$ref`` cannot be resolved to a concrete node.

    Args:
        ref: The reference string as written in the document.
        origin: URI of the document the reference was resolved against.
        reason: Short description of what went wrong.
    """

    exit_code = EXIT_UNRESOLVED_REFERENCE

    def __init__(self, ref: str, origin: Optional[str], reason: str):
        self.ref = ref
        self.origin = origin
        super().__init__(
            f"Cannot resolve $ref '{ref}' (from {origin or '<unknown document>'}): {reason}"
        )


class ConfigError(SpecirError):
    """Raised for configuration problems (invalid project file or environment overrides)."""

    exit_code = EXIT_GENERIC_FAILURE
