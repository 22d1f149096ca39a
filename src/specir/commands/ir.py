"""IR commands -- print what an emitter would receive.

``specir methods`` dumps one service method model per operation, grouped by
controller. ``specir form`` dumps the form analysis of one component schema,
and ``specir types`` dumps the type model of every component schema.
Output is JSON (syntax-highlighted on a terminal).
"""

from __future__ import annotations

from typing import Optional

import typer

from specir.commands import load_parser, reported_errors
from specir.exceptions import InvalidUsageError
from specir.output import print_model


def methods_command(
    ctx: typer.Context,
    spec: str = typer.Argument(help="Path or URL of the OpenAPI/Swagger document."),
    controller: Optional[str] = typer.Option(
        None, "--controller", help="Only print methods of this controller."
    ),
) -> None:
    """Print service method models for every operation.

    Example::

        specir methods petstore.yaml
        specir methods petstore.yaml --controller Pets
    """
    from specir.analysis.service_method import ServiceMethodBuilder

    with reported_errors():
        parser = load_parser(ctx, spec)
        grouped = ServiceMethodBuilder(parser).build_all()
        if controller is not None:
            if controller not in grouped:
                known = ", ".join(grouped) or "none"
                raise InvalidUsageError(f"Unknown controller '{controller}' (known: {known})")
            grouped = {controller: grouped[controller]}

    print_model({
        name: [method.model_dump(mode="json", by_alias=True) for method in methods]
        for name, methods in grouped.items()
    })


def form_command(
    ctx: typer.Context,
    spec: str = typer.Argument(help="Path or URL of the OpenAPI/Swagger document."),
    schema: str = typer.Argument(help="Component schema name."),
) -> None:
    """Print the form analysis of one component schema.

    Example::

        specir form petstore.yaml Pet
    """
    from specir.analysis.form_model import FormModelBuilder

    with reported_errors():
        parser = load_parser(ctx, spec)
        if parser.get_definition(schema) is None:
            raise InvalidUsageError(f"Unknown schema '{schema}'")
        result = FormModelBuilder(parser).build(schema)

    print_model(result.model_dump(mode="json", by_alias=True))


def types_command(
    ctx: typer.Context,
    spec: str = typer.Argument(help="Path or URL of the OpenAPI/Swagger document."),
) -> None:
    """Print the type model of every component schema.

    Example::

        specir types petstore.yaml
    """
    from specir.analysis.type_model import TypeModelBuilder

    with reported_errors():
        parser = load_parser(ctx, spec)
        models = TypeModelBuilder(parser).build_all()

    print_model([model.model_dump(mode="json", by_alias=True) for model in models])
