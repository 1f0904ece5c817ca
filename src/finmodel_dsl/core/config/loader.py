# src/finmodel_dsl/core/config/loader.py
"""
Configuration loader.

The effective configuration is resolved from:
    - a defaults file (mandatory; the bundled `defaults.yaml` when no path
      is given)
    - an optional local override file
    - optional in-memory overrides (`resolve_config`)

Invariants:
    - The result is always a plain `dict`
    - Overrides never mutate the defaults
    - The same inputs always produce the same configuration

Explicit limits:
    - No semantic validation of values
    - No environment variable lookups
"""

from copy import deepcopy
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional
import json

import yaml  # PyYAML

from .merge import deep_merge
from .errors import (
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)


BUNDLED_DEFAULTS = Path(__file__).with_name("defaults.yaml")

_MISSING = object()


def _load_file(path: Path) -> Dict[str, Any]:
    """
    Read one configuration file and check its root type.

    Empty files are read as empty dicts.

    Raises:
        DefaultsNotFoundError: If the file does not exist.
        UnsupportedConfigFormatError: If the extension is not YAML/JSON.
        InvalidConfigRootTypeError: If the root is not a mapping.
    """
    if not path.exists():
        raise DefaultsNotFoundError(f"Config file not found: {path}")

    suffix = path.suffix.lower()

    if suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

    elif suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)

    else:
        raise UnsupportedConfigFormatError(f"Unsupported format: {path.suffix}")

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"Config root must be a dict, got: {type(data).__name__}"
        )

    return data


def load_config(
    *,
    defaults_path: Optional[str] = None,
    local_path: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Load and resolve the effective configuration.

    Resolution policy:
        - Defaults come from `defaults_path` or the bundled file
        - The local file is optional and ignored when missing
        - When present, local values win over defaults via `deep_merge`

    Args:
        defaults_path (Optional[str]): Path to the base configuration.
        local_path (Optional[str]): Optional path to local overrides.

    Returns:
        Dict[str, Any]: Effective configuration.

    Raises:
        DefaultsNotFoundError: If the defaults file does not exist.
        UnsupportedConfigFormatError: If a file format is not supported.
        InvalidConfigRootTypeError: If a file root is not a mapping.
        ConfigTypeConflictError: On a structural conflict while merging.
    """
    defaults_file = Path(defaults_path) if defaults_path is not None else BUNDLED_DEFAULTS
    effective = _load_file(defaults_file)

    if local_path is not None:
        local_file = Path(local_path)
        if local_file.exists():
            effective = deep_merge(effective, _load_file(local_file))

    return effective


@lru_cache(maxsize=1)
def _bundled_defaults() -> Dict[str, Any]:
    return _load_file(BUNDLED_DEFAULTS)


def default_config() -> Dict[str, Any]:
    """Fresh copy of the bundled defaults."""
    return deepcopy(_bundled_defaults())


def resolve_config(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Bundled defaults with in-memory `overrides` deep-merged on top."""
    if not overrides:
        return default_config()
    return deep_merge(_bundled_defaults(), overrides)


def get_setting(config: Optional[Dict[str, Any]], dotted_key: str, default: Any = _MISSING) -> Any:
    """
    Read `dotted_key` (e.g. ``"engine.default_timeout_ms"``) from `config`.

    Falls back to the bundled defaults when the key is absent from
    `config`, then to `default`.

    Raises:
        KeyError: If the key is absent everywhere and no default is given.
    """
    for source in (config or {}, _bundled_defaults()):
        node: Any = source
        for part in dotted_key.split("."):
            if not isinstance(node, dict) or part not in node:
                node = _MISSING
                break
            node = node[part]
        if node is not _MISSING:
            return node

    if default is _MISSING:
        raise KeyError(dotted_key)
    return default
