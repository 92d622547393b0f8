"""Built-in defaults and layer merging utilities."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

DEFAULTS_DIR = Path(__file__).parent / "defaults"


def load_defaults(name: str = "deployment") -> dict[str, Any]:
    """Load a YAML defaults file by name from the defaults directory."""
    path = DEFAULTS_DIR / f"{name}.yaml"
    if not path.exists():
        msg = f"Defaults file '{name}' not found at {path}"
        raise FileNotFoundError(msg)
    with path.open() as f:
        return yaml.safe_load(f) or {}


def merge_layers(*layers: Mapping[str, Any]) -> dict[str, Any]:
    """Merge flat config layers, later layers winning field by field.

    ``None`` values never override: an option the user did not pass must not
    erase a lower-precedence value.
    """
    merged: dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            if value is not None:
                merged[key] = value
    return merged
