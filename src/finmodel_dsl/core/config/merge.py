# src/finmodel_dsl/core/config/merge.py
"""
Deep-merge of configuration mappings.

Merge policy (v1):
    - dict + dict → recursive merge per key
    - list        → replaced as a whole
    - scalar      → replaced by the override
    - type clash  → `ConfigTypeConflictError`

Invariants:
    - Inputs are never mutated
    - The same (base, override) pair always yields the same result
    - Keys missing from the override are kept from the base

`int` and `float` are treated as one numeric kind, so an override of
`default_timeout_ms: 2500.0` on an integer default is accepted.
"""

from copy import deepcopy
from numbers import Number
from typing import Any, Dict

from .errors import ConfigTypeConflictError


def _same_kind(a: Any, b: Any) -> bool:
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b)
    if isinstance(a, Number) and isinstance(b, Number):
        return True
    return type(a) is type(b)


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge `override` onto `base` and return a new mapping.

    Args:
        base (Dict[str, Any]): Base configuration (e.g. bundled defaults).
        override (Dict[str, Any]): Explicit overrides.

    Returns:
        Dict[str, Any]: New merged configuration.

    Raises:
        ConfigTypeConflictError: On a type clash between base and override,
            or when either root is not a dict.
    """

    if not isinstance(base, dict) or not isinstance(override, dict):
        raise ConfigTypeConflictError(
            f"Deep-merge requires dicts at the root, got: "
            f"{type(base).__name__} vs {type(override).__name__}"
        )

    result: Dict[str, Any] = deepcopy(base)

    for key, override_value in override.items():
        if key not in result:
            result[key] = deepcopy(override_value)
            continue

        base_value = result[key]

        if isinstance(base_value, dict) and isinstance(override_value, dict):
            result[key] = deep_merge(base_value, override_value)
            continue

        if isinstance(override_value, list):
            result[key] = deepcopy(override_value)
            continue

        # None in the base means "unset", any type may fill it
        if base_value is not None and not _same_kind(base_value, override_value):
            raise ConfigTypeConflictError(
                f"Type conflict on key '{key}': "
                f"{type(base_value).__name__} vs {type(override_value).__name__}"
            )

        result[key] = deepcopy(override_value)

    return result
