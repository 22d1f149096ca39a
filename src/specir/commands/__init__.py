"""Built-in CLI sub-commands for specir.

* :mod:`~specir.commands.inspect` -- list a document's operations, schemas
  and security schemes.
* :mod:`~specir.commands.ir` -- print the service method, form and type IR
  built from a document.

Commands load documents through :func:`load_parser` and run inside
:func:`reported_errors`, which turns a :class:`~specir.exceptions.SpecirError`
into an error message on stderr and the error's exit code.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import typer

from specir.exceptions import SpecirError
from specir.output import debug, error


@contextmanager
def reported_errors() -> Iterator[None]:
    try:
        yield
    except SpecirError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def load_parser(ctx: typer.Context, source: str):  # noqa: ANN201
    """Resolve configuration and load *source* into a ``SpecParser``.

    Raises:
        ConfigError: If the project config or environment is invalid.
        SpecLoadError: If the document cannot be fetched or parsed.
    """
    from specir.config import resolve_config
    from specir.parser.spec_parser import load_spec

    obj = ctx.obj or {}
    config = resolve_config(obj.get("config_path"))
    debug(f"Loading {source}")
    parser = load_spec(source, config)
    debug(f"Loaded {parser.spec_type} {parser.spec_version} ({len(parser.cache.uris)} document(s))")
    return parser
