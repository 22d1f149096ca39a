"""Configuration resolution with precedence handling.

specir keeps no persistent state of its own; configuration is assembled
fresh for every run from four layers:

* **Defaults** -- the field defaults of :class:`~specir.models.GeneratorConfig`.
* **Project config** -- an optional ``./specir.json`` (or an explicit path)
  holding a partial ``GeneratorConfig`` document.
* **Environment** -- ``SPECIR_TIMEOUT``, ``SPECIR_VERIFY_SSL`` and
  ``SPECIR_DEFAULT_CONTROLLER``.
* **Explicit overrides** -- keyword arguments to :func:`resolve_config`,
  typically coming from CLI flags.

Later layers win. Nested sections (``loader``, ``analysis``) are merged key
by key, so a project file can set ``loader.timeout`` without resetting the
rest of the loader settings.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import ValidationError

from specir.exceptions import ConfigError
from specir.models import GeneratorConfig

_PROJECT_CONFIG_FILENAME = "specir.json"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def load_project_config(path: Optional[Union[str, Path]] = None) -> Optional[dict[str, Any]]:
    """Load project-local configuration.

    Args:
        path: Explicit config file. When omitted, ``./specir.json`` in the
            current working directory is used if it exists.

    Returns:
        The parsed JSON object, or ``None`` when no file applies.

    Raises:
        ConfigError: If an explicit path does not exist, or the file holds
            invalid JSON or a non-object document.
    """
    if path is None:
        candidate = Path.cwd() / _PROJECT_CONFIG_FILENAME
        if not candidate.is_file():
            return None
    else:
        candidate = Path(path).expanduser()
        if not candidate.is_file():
            raise ConfigError(f"Config file not found: {candidate}")

    try:
        data = json.loads(candidate.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Invalid project config at {candidate}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {candidate}: expected a JSON object")
    return data


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"Environment variable {name} must be a boolean, got '{value}'")


def _env_overrides() -> dict[str, Any]:
    """Collect configuration values from ``SPECIR_*`` environment variables."""
    loader: dict[str, Any] = {}
    analysis: dict[str, Any] = {}

    timeout = os.environ.get("SPECIR_TIMEOUT")
    if timeout:
        try:
            loader["timeout"] = float(timeout)
        except ValueError as exc:
            raise ConfigError(
                f"Environment variable SPECIR_TIMEOUT must be a number, got '{timeout}'"
            ) from exc

    verify = os.environ.get("SPECIR_VERIFY_SSL")
    if verify:
        loader["verify_ssl"] = _parse_bool("SPECIR_VERIFY_SSL", verify)

    controller = os.environ.get("SPECIR_DEFAULT_CONTROLLER")
    if controller:
        analysis["default_controller"] = controller

    result: dict[str, Any] = {}
    if loader:
        result["loader"] = loader
    if analysis:
        result["analysis"] = analysis
    return result


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def resolve_config(
    config_path: Optional[Union[str, Path]] = None,
    **overrides: Any,
) -> GeneratorConfig:
    """Resolve the effective :class:`~specir.models.GeneratorConfig`.

    Precedence (high to low):
        1. Keyword overrides, e.g. ``loader={"timeout": 5}``
        2. Environment variables (``SPECIR_TIMEOUT``, ``SPECIR_VERIFY_SSL``,
           ``SPECIR_DEFAULT_CONTROLLER``)
        3. Project config (``./specir.json`` or *config_path*)
        4. Defaults

    Raises:
        ConfigError: If any layer is malformed or the merged values fail
            validation.
    """
    data: dict[str, Any] = {}

    project = load_project_config(config_path)
    if project is not None:
        data = _deep_merge(data, project)

    data = _deep_merge(data, _env_overrides())

    if overrides:
        data = _deep_merge(data, overrides)

    try:
        return GeneratorConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
