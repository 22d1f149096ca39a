"""Shared test fixtures for specir.

Provides fixture documents (raw dicts and ready-made parsers), an isolated
configuration environment, output state management and a CLI runner. These
fixtures are automatically discovered by pytest and available to all test
modules without explicit imports.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pytest

from specir.output import OutputFormat, OutputManager, reset_output, set_output
from specir.parser.spec_parser import SpecParser


FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> dict[str, Any]:
    with open(FIXTURES_DIR / name, encoding="utf-8") as f:
        return json.load(f)


def parser_for(document: dict[str, Any], name: str = "spec.json") -> SpecParser:
    """Wrap *document* in a parser whose base URI sits in the fixtures directory."""
    return SpecParser.from_document(document, base_uri=str(FIXTURES_DIR / name))


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and the ``specir`` logger after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    CLI invocations also install a handler on the ``specir`` logger.
    """
    yield
    reset_output()
    package_logger = logging.getLogger("specir")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Raw document fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore_raw() -> dict[str, Any]:
    """Raw OpenAPI 3.0 petstore document."""
    return load_fixture("petstore_3.0.json")


@pytest.fixture
def polymorphism_raw() -> dict[str, Any]:
    return load_fixture("polymorphism.json")


@pytest.fixture
def tree_raw() -> dict[str, Any]:
    """Self-referential schemas (``Node``, ``Category``) and an ``allOf`` loop."""
    return load_fixture("tree.json")


@pytest.fixture
def swagger_raw() -> dict[str, Any]:
    return load_fixture("swagger_2.0.json")


# ---------------------------------------------------------------------------
# Parser fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def petstore(petstore_raw: dict[str, Any]) -> SpecParser:
    return parser_for(petstore_raw, "petstore_3.0.json")


@pytest.fixture
def polymorphism(polymorphism_raw: dict[str, Any]) -> SpecParser:
    return parser_for(polymorphism_raw, "polymorphism.json")


@pytest.fixture
def tree(tree_raw: dict[str, Any]) -> SpecParser:
    return parser_for(tree_raw, "tree.json")


@pytest.fixture
def swagger(swagger_raw: dict[str, Any]) -> SpecParser:
    return parser_for(swagger_raw, "swagger_2.0.json")


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def make_parser():
    """Factory wrapping an in-memory document in a :class:`SpecParser`."""
    return parser_for


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run the test in an empty working directory without ``SPECIR_*`` variables.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    for var in ["SPECIR_TIMEOUT", "SPECIR_VERIFY_SSL", "SPECIR_DEFAULT_CONTROLLER"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
