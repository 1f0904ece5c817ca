"""
Shared helpers for primitive implementations.

Two concerns live here:

- argument coercion: turning upstream step results into numpy arrays or
  plain lists, and numpy results back into JSON-friendly Python values;
- param checks: small composable rules used to build each primitive's
  `validate` function. Every rule accepts `DEFERRED` (a variable that is
  bound at run time) and only reports a problem for concrete values.

Results handed back to the engine are always freshly allocated Python
lists / floats, never views over an input.
"""

from __future__ import annotations

import math
from numbers import Real
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence

import numpy as np

from finmodel_dsl.core.model.params import is_deferred
from finmodel_dsl.core.pipeline.primitive import Validator


NAN = float("nan")

Rule = Callable[[Mapping[str, Any]], List[str]]


# ---------------------------------------------------------------------------
# Value predicates
# ---------------------------------------------------------------------------

def is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, (bool, np.bool_))


def is_nan(value: Any) -> bool:
    return is_number(value) and math.isnan(value)


def is_missing(value: Any) -> bool:
    return value is None or is_nan(value)


# ---------------------------------------------------------------------------
# Argument coercion
# ---------------------------------------------------------------------------

def as_array(value: Any, *, what: str = "input") -> np.ndarray:
    """Float array for a number or numeric sequence. `None` becomes NaN."""
    if isinstance(value, np.ndarray):
        return value.astype(float, copy=True)
    if is_number(value):
        return np.asarray(float(value))
    if isinstance(value, (list, tuple)):
        if not all(v is None or is_number(v) for v in value):
            raise ValueError(f"{what} must be a numeric sequence")
        return np.asarray([NAN if v is None else float(v) for v in value], dtype=float)
    raise ValueError(f"{what} must be a numeric sequence")


def arg(args: Sequence[Any], index: int, operation: str) -> Any:
    if len(args) <= index or args[index] is None:
        raise ValueError(f"{operation} requires input {index + 1}")
    return args[index]


def series_arg(args: Sequence[Any], index: int, operation: str) -> np.ndarray:
    """1-d float array from positional input `index`."""
    arr = as_array(arg(args, index, operation), what=f"{operation} input {index + 1}")
    if arr.ndim != 1:
        raise ValueError(f"{operation} input {index + 1} must be a numeric sequence")
    return arr


def list_arg(args: Sequence[Any], index: int, operation: str) -> List[Any]:
    """Copy of positional input `index` as a plain list (any element type)."""
    value = arg(args, index, operation)
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, (list, tuple)):
        return list(value)
    raise ValueError(f"{operation} input {index + 1} must be a sequence")


def mapping_arg(args: Sequence[Any], index: int, operation: str, *, keys: Iterable[str], what: str) -> Mapping[str, Any]:
    value = args[index] if len(args) > index else None
    if not isinstance(value, Mapping) or any(value.get(k) is None for k in keys):
        raise ValueError(f"Invalid {what} input")
    return value


def to_value(arr: np.ndarray) -> Any:
    """Python list (1-d) or float (0-d) for a numpy result."""
    return np.asarray(arr, dtype=float).tolist()


# ---------------------------------------------------------------------------
# Param rules
# ---------------------------------------------------------------------------

def rules(*checks: Rule) -> Validator:
    """Combine rules into a primitive `validate` function."""

    def validate(params: Mapping[str, Any]) -> List[str]:
        errors: List[str] = []
        for check in checks:
            errors.extend(check(params))
        return errors

    return validate


def number(
    key: str,
    message: str,
    *,
    required: bool = False,
    integer: bool = False,
    minimum: Optional[float] = None,
    maximum: Optional[float] = None,
    exclusive_minimum: bool = False,
) -> Rule:
    def check(params: Mapping[str, Any]) -> List[str]:
        value = params.get(key)
        if value is None:
            return [message] if required else []
        if is_deferred(value):
            return []
        if not is_number(value) or math.isnan(value):
            return [message]
        if integer and float(value) != int(value):
            return [message]
        if minimum is not None:
            if value < minimum or (exclusive_minimum and value == minimum):
                return [message]
        if maximum is not None and value > maximum:
            return [message]
        return []

    return check


def choice(key: str, options: Sequence[Any], message: str, *, required: bool = False) -> Rule:
    def check(params: Mapping[str, Any]) -> List[str]:
        value = params.get(key)
        if value is None:
            return [message] if required else []
        if is_deferred(value) or value in options:
            return []
        return [message]

    return check


def flag(key: str, message: str) -> Rule:
    def check(params: Mapping[str, Any]) -> List[str]:
        value = params.get(key)
        if value is None or is_deferred(value) or isinstance(value, bool):
            return []
        return [message]

    return check


def text(key: str, message: str, *, required: bool = True) -> Rule:
    def check(params: Mapping[str, Any]) -> List[str]:
        value = params.get(key)
        if value is None:
            return [message] if required else []
        if is_deferred(value):
            return []
        if not isinstance(value, str) or not value.strip():
            return [message]
        return []

    return check


def present(key: str, message: str) -> Rule:
    def check(params: Mapping[str, Any]) -> List[str]:
        return [message] if key not in params else []

    return check


def concrete(params: Mapping[str, Any], *keys: str) -> bool:
    """True when every `key` holds a concrete (non-deferred) number."""
    return all(is_number(params.get(k)) for k in keys)
