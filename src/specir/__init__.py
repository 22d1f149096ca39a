"""specir -- Compile OpenAPI/Swagger documents into a framework-agnostic IR.

This package turns an OpenAPI 3.x (or Swagger 2.0) document, local or remote,
JSON or YAML, possibly split across several files and possibly cyclic, into a
small set of immutable Pydantic models that code emitters can consume without
re-deriving OpenAPI semantics.

Typical workflow::

    from specir.parser.spec_parser import load_spec
    from specir.analysis import ServiceMethodBuilder, FormModelBuilder

    parser = load_spec("openapi.yaml")
    methods = ServiceMethodBuilder(parser).build_all()
    form = FormModelBuilder(parser).build("Pet")

Modules:
    app: Typer application and CLI entry point (the top-level orchestrator).
    models: Pydantic models for configuration and every IR value type.
    config: Project/environment configuration resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
