"""Load JSON/YAML documents used by the chart engine commands."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from analysis.dto import is_number

_YAML_SUFFIXES = frozenset({".yaml", ".yml"})


def load_document(path: str | Path) -> Any:
    """Load a JSON or YAML document.

    YAML is used for `.yaml`/`.yml` files and JSON for everything else.

    Args:
        path: File path.

    Returns:
        Parsed document.

    Raises:
        ValueError: When the file cannot be read or parsed.
    """

    file_path = Path(path)
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Cannot read {file_path}: {exc}") from exc

    if file_path.suffix.lower() in _YAML_SUFFIXES:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {file_path}: {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {file_path}: {exc}") from exc


def load_mapping(path: str | Path | None) -> dict[str, Any]:
    """Load a document that must be a flat object (stats, parameters, manual data).

    Returns:
        The object as a dict, or an empty dict when `path` is None.

    Raises:
        ValueError: When the document is not an object.
    """

    if path is None:
        return {}
    document = load_document(path)
    if document is None:
        return {}
    if not isinstance(document, Mapping):
        raise ValueError(f"{path} must contain an object, got {type(document).__name__}.")
    return {str(key): value for key, value in document.items()}


def load_numbers(path: str | Path | None) -> dict[str, float]:
    """Load a `{key: number}` document (parameters or manual data).

    Raises:
        ValueError: When a value is not numeric.
    """

    values: dict[str, float] = {}
    for key, value in load_mapping(path).items():
        if not is_number(value):
            raise ValueError(f"{path}: value for {key!r} must be numeric, got {value!r}.")
        values[key] = float(value)
    return values
