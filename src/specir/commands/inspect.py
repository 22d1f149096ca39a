"""Inspect commands -- examine what a document declares.

Provides the ``specir inspect`` sub-command group with read-only commands
for viewing the operations, component schemas and security schemes of an
OpenAPI or Swagger document after references have been resolved.
"""

from __future__ import annotations

import typer

from specir.commands import load_parser, reported_errors
from specir.output import get_output, info


inspect_app = typer.Typer(no_args_is_help=True)

SPEC_ARGUMENT = typer.Argument(help="Path or URL of the OpenAPI/Swagger document.")


@inspect_app.command("operations")
def inspect_operations(ctx: typer.Context, spec: str = SPEC_ARGUMENT) -> None:
    """List all operations with their controller and method name.

    Example::

        specir inspect operations petstore.yaml
        specir --json inspect operations https://example.com/openapi.json
    """
    with reported_errors():
        parser = load_parser(ctx, spec)
        controllers = parser.controllers

    rows: list[list[str]] = []
    for controller, operations in controllers.items():
        for op in operations:
            rows.append([
                controller,
                op.method_name or "-",
                op.method,
                op.path,
                "Yes" if op.deprecated else "",
            ])

    get_output().print_table(
        ["Controller", "Method", "HTTP", "Path", "Deprecated"],
        rows,
        title=f"Operations ({len(rows)})",
    )


@inspect_app.command("schemas")
def inspect_schemas(ctx: typer.Context, spec: str = SPEC_ARGUMENT) -> None:
    """List component schemas with their kind and polymorphism.

    Example::

        specir inspect schemas petstore.yaml
    """
    from specir.analysis.composition import schema_type

    with reported_errors():
        parser = load_parser(ctx, spec)
        rows: list[list[str]] = []
        for name in parser.schema_names:
            schema = parser.resolve(parser.get_definition(name))
            props = list((schema.get("properties") or {}) if isinstance(schema, dict) else [])
            summary = ", ".join(props[:5])
            if len(props) > 5:
                summary += "..."
            options = parser.get_polymorphic_schema_options(schema)
            rows.append([
                name,
                schema_type(schema) or "-",
                ", ".join(option.name for option in options) or "-",
                summary or "-",
            ])

    if not rows:
        info("No schemas defined in this document.")
        return

    get_output().print_table(
        ["Schema", "Type", "Options", "Properties"], rows, title=f"Schemas ({len(rows)})"
    )


@inspect_app.command("security")
def inspect_security(ctx: typer.Context, spec: str = SPEC_ARGUMENT) -> None:
    """Show the security schemes and the document-level requirement.

    Example::

        specir inspect security petstore.yaml
    """
    with reported_errors():
        parser = load_parser(ctx, spec)
        schemes = parser.get_security_schemes()
        global_security = parser.global_security

    if not schemes:
        info("No security schemes defined.")
        return

    required = {name for requirement in global_security for name in requirement}
    rows: list[list[str]] = []
    for name, scheme in schemes.items():
        rows.append([
            name,
            scheme.type,
            scheme.scheme or "-",
            scheme.location or "-",
            "Yes" if name in required else "",
            (scheme.description or "-")[:60],
        ])

    get_output().print_table(
        ["Name", "Type", "Scheme", "Location", "Global", "Description"],
        rows,
        title="Security Schemes",
    )
