"""End-to-end tests for the specir CLI using Typer's CliRunner."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from rich.logging import RichHandler

from specir import __version__
from specir.app import app, configure_logging
from specir.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_SPEC_LOAD_ERROR,
    EXIT_UNRESOLVED_REFERENCE,
)
from specir.output import OutputFormat, OutputManager


@pytest.fixture
def petstore_path(fixtures_dir: Path, isolated_config: Path) -> str:
    return str(fixtures_dir / "petstore_3.0.json")


def _write(path: Path, document: dict) -> str:
    path.write_text(json.dumps(document), encoding="utf-8")
    return str(path)


class TestRootCommand:
    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"specir {__version__}" in result.stdout

    def test_help_lists_commands(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("inspect", "methods", "form", "types"):
            assert command in result.stdout


class TestInspect:
    def test_operations_json(self, cli_runner, petstore_path: str) -> None:
        result = cli_runner.invoke(app, ["--json", "inspect", "operations", petstore_path])

        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert rows[0] == {
            "Controller": "Pets",
            "Method": "listPets",
            "HTTP": "GET",
            "Path": "/pets",
            "Deprecated": "",
        }
        deleted = next(row for row in rows if row["Method"] == "deletePet")
        assert deleted["Deprecated"] == "Yes"

    def test_operations_plain(self, cli_runner, petstore_path: str) -> None:
        result = cli_runner.invoke(app, ["--plain", "inspect", "operations", petstore_path])

        assert result.exit_code == 0, result.output
        lines = result.stdout.strip().split("\n")
        assert lines[0] == "Controller\tMethod\tHTTP\tPath\tDeprecated"
        assert "Auth\tlogin\tPOST\t/login" in result.stdout

    def test_schemas(self, cli_runner, fixtures_dir: Path, isolated_config: Path) -> None:
        result = cli_runner.invoke(
            app, ["--json", "inspect", "schemas", str(fixtures_dir / "polymorphism.json")]
        )

        assert result.exit_code == 0, result.output
        rows = {row["Schema"]: row for row in json.loads(result.stdout)}
        assert rows["Pet"]["Options"] == "cat, dog"
        assert rows["Dog"]["Properties"] == "petType, bark"
        assert rows["PetBase"]["Options"] == "-"

    def test_schemas_across_files(self, cli_runner, fixtures_dir: Path, isolated_config: Path) -> None:
        result = cli_runner.invoke(
            app, ["--json", "inspect", "schemas", str(fixtures_dir / "multi_file" / "root.yaml")]
        )

        assert result.exit_code == 0, result.output
        rows = {row["Schema"]: row for row in json.loads(result.stdout)}
        assert rows["Pet"]["Type"] == "object"

    def test_no_schemas(self, cli_runner, tmp_path: Path, isolated_config: Path) -> None:
        path = _write(tmp_path / "empty.json", {"openapi": "3.1.0", "info": {"title": "t", "version": "1"}})
        result = cli_runner.invoke(app, ["--plain", "inspect", "schemas", path])

        assert result.exit_code == 0
        assert "No schemas defined" in result.output

    def test_quiet_hides_info(self, cli_runner, tmp_path: Path, isolated_config: Path) -> None:
        path = _write(tmp_path / "empty.json", {"openapi": "3.1.0", "info": {"title": "t", "version": "1"}})
        result = cli_runner.invoke(app, ["--quiet", "--plain", "inspect", "schemas", path])

        assert result.exit_code == 0
        assert "No schemas defined" not in result.output

    def test_security(self, cli_runner, petstore_path: str) -> None:
        result = cli_runner.invoke(app, ["--json", "inspect", "security", petstore_path])

        assert result.exit_code == 0, result.output
        rows = {row["Name"]: row for row in json.loads(result.stdout)}
        assert rows["api_key"]["Global"] == "Yes"
        assert rows["api_key"]["Location"] == "header"
        assert rows["bearer"]["Scheme"] == "bearer"
        assert rows["oauth"]["Global"] == ""


class TestIrCommands:
    def test_methods(self, cli_runner, petstore_path: str) -> None:
        result = cli_runner.invoke(app, ["methods", petstore_path])

        assert result.exit_code == 0, result.output
        grouped = json.loads(result.stdout)
        assert list(grouped) == ["Pets", "Widgets", "Default", "Events", "Reports", "Auth"]
        list_pets = grouped["Pets"][0]
        assert list_pets["method_name"] == "listPets"
        assert list_pets["security"] == [{"api_key": []}]

    def test_methods_single_controller(self, cli_runner, petstore_path: str) -> None:
        result = cli_runner.invoke(app, ["methods", petstore_path, "--controller", "Auth"])

        assert result.exit_code == 0, result.output
        grouped = json.loads(result.stdout)
        assert list(grouped) == ["Auth"]
        assert grouped["Auth"][0]["body"]["type"] == "urlencoded"

    def test_methods_unknown_controller(self, cli_runner, petstore_path: str) -> None:
        result = cli_runner.invoke(app, ["methods", petstore_path, "--controller", "Nope"])

        assert result.exit_code == EXIT_INVALID_USAGE
        assert "Unknown controller 'Nope'" in result.output

    def test_form(self, cli_runner, fixtures_dir: Path, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["form", str(fixtures_dir / "tree.json"), "Node"])

        assert result.exit_code == 0, result.output
        form = json.loads(result.stdout)
        assert form["form_interface_name"] == "NodeForm"
        children = next(c for c in form["top_level_controls"] if c["name"] == "children")
        assert children["data_type"] == "NodeForm[]"
        assert children["is_recursive_reference"] is True
        assert "schema" not in children

    def test_form_unknown_schema(self, cli_runner, petstore_path: str) -> None:
        result = cli_runner.invoke(app, ["form", petstore_path, "Unicorn"])

        assert result.exit_code == EXIT_INVALID_USAGE
        assert "Unknown schema 'Unicorn'" in result.output

    def test_types(self, cli_runner, petstore_path: str) -> None:
        result = cli_runner.invoke(app, ["types", petstore_path])

        assert result.exit_code == 0, result.output
        models = {model["name"]: model for model in json.loads(result.stdout)}
        assert models["Status"]["kind"] == "enum"
        assert models["PetList"]["type_expression"] == "Pet[]"


class TestErrors:
    def test_missing_document(self, cli_runner, tmp_path: Path, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["inspect", "operations", str(tmp_path / "missing.json")])

        assert result.exit_code == EXIT_SPEC_LOAD_ERROR
        assert "Document not found" in result.output

    def test_not_an_openapi_document(self, cli_runner, tmp_path: Path, isolated_config: Path) -> None:
        path = _write(tmp_path / "other.json", {"hello": "world"})
        result = cli_runner.invoke(app, ["types", path])

        assert result.exit_code == EXIT_SPEC_LOAD_ERROR
        assert "Missing 'openapi' or 'swagger' field" in result.output

    def test_dangling_reference(self, cli_runner, tmp_path: Path, isolated_config: Path) -> None:
        path = _write(
            tmp_path / "dangling.json",
            {
                "openapi": "3.0.3",
                "info": {"title": "t", "version": "1"},
                "paths": {},
                "components": {
                    "schemas": {
                        "Pet": {
                            "type": "object",
                            "properties": {"owner": {"$ref": "#/components/schemas/Owner"}},
                        }
                    }
                },
            },
        )
        result = cli_runner.invoke(app, ["form", path, "Pet"])

        assert result.exit_code == EXIT_UNRESOLVED_REFERENCE
        assert "#/components/schemas/Owner" in result.output

    def test_missing_config_file(self, cli_runner, petstore_path: str, tmp_path: Path) -> None:
        result = cli_runner.invoke(
            app, ["--config", str(tmp_path / "absent.json"), "types", petstore_path]
        )

        assert result.exit_code == EXIT_GENERIC_FAILURE
        assert "Config file not found" in result.output

    def test_verbose_logs_loading(self, cli_runner, petstore_path: str) -> None:
        result = cli_runner.invoke(app, ["--verbose", "--json", "types", petstore_path])

        assert result.exit_code == 0
        assert "Loading" in result.output


class TestLogging:
    def test_handler_uses_the_diagnostics_console(self) -> None:
        output = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        configure_logging(output.stderr_console)

        [handler] = logging.getLogger("specir").handlers
        assert isinstance(handler, RichHandler)
        assert handler.console is output.stderr_console
        assert logging.getLogger("specir").level == logging.WARNING

    @pytest.mark.parametrize(
        ("verbose", "quiet", "level"),
        [(True, False, logging.DEBUG), (False, True, logging.ERROR), (True, True, logging.DEBUG)],
    )
    def test_levels(self, verbose: bool, quiet: bool, level: int) -> None:
        configure_logging(OutputManager().stderr_console, verbose=verbose, quiet=quiet)
        assert logging.getLogger("specir").level == level
