"""
Feature-selection and normalization tables.

Both are JSON objects keyed by feature-group name (``style``, ``word1``,
``char3`` ...). The packaged defaults live in ``articlevec/resources``; a
path given on the command line replaces them wholesale.
"""
from __future__ import annotations

import json
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigError

FEATURES_CONFIG = "feature-config.json"
NORMALIZATION_CONFIG = "normalization.json"


def load_table(name: str, path: Optional[Path] = None) -> Dict[str, Any]:
    """Load a config table from ``path`` or from the packaged resource ``name``."""
    try:
        if path is not None:
            text = Path(path).read_text(encoding="utf-8")
        else:
            text = resources.files("articlevec").joinpath("resources").joinpath(name).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Could not load config table {path or name}: {e}") from e
    try:
        table = json.loads(text)
    except ValueError as e:
        raise ConfigError(f"Config table {path or name} is not valid JSON: {e}") from e
    if not isinstance(table, dict):
        raise ConfigError(f"Config table {path or name} must be a JSON object")
    return table


def load_feature_config(path: Optional[Path] = None) -> Dict[str, Any]:
    return load_table(FEATURES_CONFIG, path)


def load_normalization_config(path: Optional[Path] = None) -> Dict[str, Any]:
    return load_table(NORMALIZATION_CONFIG, path)


def section(table: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = table.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section {key!r} must be an object")
    return value
