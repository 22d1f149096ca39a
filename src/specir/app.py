"""Typer application and CLI entry point for specir.

The CLI is the top-level orchestrator: it resolves configuration, loads a
document through :func:`~specir.parser.spec_parser.load_spec`, runs one of
the analysis builders and prints the resulting IR. It is also the only
layer that reports errors to a user; every core module raises.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.

See Also:
    :mod:`specir.config`: Configuration resolution.
    :mod:`specir.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from specir import __version__
from specir.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="specir",
    help="Compile OpenAPI/Swagger documents into a framework-agnostic IR.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"specir {__version__}")
        raise typer.Exit()


def configure_logging(console: Console, verbose: bool = False, quiet: bool = False) -> None:
    """Route ``specir.*`` log records to the diagnostics *console* through Rich.

    ``--verbose`` shows DEBUG records and ``--quiet`` hides everything below
    ERROR. Only the CLI calls this; the library never installs handlers.
    """
    handler = RichHandler(
        console=console,
        show_time=False,
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    package_logger = logging.getLogger("specir")
    for existing in list(package_logger.handlers):
        package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    if verbose:
        package_logger.setLevel(logging.DEBUG)
    elif quiet:
        package_logger.setLevel(logging.ERROR)
    else:
        package_logger.setLevel(logging.WARNING)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    config_path: Optional[str] = typer.Option(
        None, "--config", "-c", help="Project config file (default: ./specir.json)."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~specir.output.OutputManager` and the
    ``specir`` logger from CLI flags, and stores shared options in the
    Typer context so that sub-commands can read them via ``ctx.obj``.
    """
    from specir.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    configure_logging(output.stderr_console, verbose=verbose, quiet=quiet)

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


def _register_commands() -> None:
    from specir.commands.inspect import inspect_app
    from specir.commands.ir import form_command, methods_command, types_command

    app.add_typer(inspect_app, name="inspect", help="Inspect a document's operations, schemas and security.")
    app.command("methods")(methods_command)
    app.command("form")(form_command)
    app.command("types")(types_command)


_register_commands()


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``specir`` console script.

    Unhandled :class:`~specir.exceptions.SpecirError` instances cause a
    clean exit with the error's ``exit_code``. Any other exception is
    reported as an unexpected error with a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from specir.exceptions import SpecirError
        from specir.output import error

        if isinstance(exc, SpecirError):
            error(str(exc))
            sys.exit(exc.exit_code)
        logging.getLogger(__name__).debug("Unhandled exception", exc_info=True)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
