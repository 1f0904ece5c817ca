"""
Math primitives.

Elementwise over one numeric sequence, two equal-length sequences, or a
sequence against a `scalar` param. A single number is accepted wherever a
sequence is, and yields a single number.

Numeric edges never raise: division by a zero element, logarithms of
non-positive values and square roots of negatives produce NaN at that
position. Two sequences of different lengths are a hard error.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Sequence

import numpy as np

from finmodel_dsl.core.pipeline.context import RunContext
from finmodel_dsl.core.pipeline.primitive import PrimitiveGroup

from .base import NAN, arg, as_array, concrete, number, rules, to_value


MATH = PrimitiveGroup("math")

_scalar = number("scalar", "scalar must be a number")


def _operand(args: Sequence[Any], index: int, operation: str) -> np.ndarray:
    return as_array(arg(args, index, operation), what=f"{operation} input {index + 1}")


def _binary(name: str, noun: str, fn: Callable[[np.ndarray, Any], np.ndarray]):
    def run(params: Mapping[str, Any], args: Sequence[Any], ctx: RunContext) -> Any:
        a = _operand(args, 0, name)
        scalar = params.get("scalar")
        if scalar is not None:
            return to_value(fn(a, float(scalar)))

        if len(args) < 2 or args[1] is None:
            raise ValueError(f"{name} requires two inputs or one input with scalar param")
        b = _operand(args, 1, name)
        if a.shape != b.shape:
            raise ValueError(f"Arrays must have same length for {noun}")
        return to_value(fn(a, b))

    run.__name__ = name
    return run


def _divide(a: np.ndarray, b: Any) -> np.ndarray:
    b = np.asarray(b, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        out = a / np.where(b == 0, 1.0, b)
    return np.where(b == 0, NAN, out)


def _divide_params(params: Mapping[str, Any]):
    errors = _scalar(params)
    if concrete(params, "scalar") and params["scalar"] == 0:
        errors.append("cannot divide by zero")
    return errors


MATH.operation("add", validate=_scalar)(_binary("add", "addition", np.add))
MATH.operation("subtract", validate=_scalar)(_binary("subtract", "subtraction", np.subtract))
MATH.operation("multiply", validate=_scalar)(_binary("multiply", "multiplication", np.multiply))
MATH.operation("divide", validate=_divide_params)(_binary("divide", "division", _divide))


@MATH.operation(validate=number("exponent", "exponent must be a number", required=True))
def power(params, args, ctx):
    """Raise each value to `exponent`."""
    a = _operand(args, 0, "power")
    with np.errstate(all="ignore"):
        return to_value(np.power(a, float(params["exponent"])))


@MATH.operation("abs")
def absolute(params, args, ctx):
    return to_value(np.abs(_operand(args, 0, "abs")))


def _positive_only(fn: Callable[[np.ndarray], np.ndarray], a: np.ndarray) -> np.ndarray:
    ok = a > 0
    with np.errstate(all="ignore"):
        return np.where(ok, fn(np.where(ok, a, 1.0)), NAN)


@MATH.operation()
def log(params, args, ctx):
    """Natural logarithm; non-positive values give NaN."""
    return to_value(_positive_only(np.log, _operand(args, 0, "log")))


@MATH.operation()
def log10(params, args, ctx):
    return to_value(_positive_only(np.log10, _operand(args, 0, "log10")))


@MATH.operation()
def exp(params, args, ctx):
    with np.errstate(over="ignore"):
        return to_value(np.exp(_operand(args, 0, "exp")))


@MATH.operation()
def sqrt(params, args, ctx):
    """Square root; negative values give NaN."""
    a = _operand(args, 0, "sqrt")
    ok = a >= 0
    return to_value(np.where(ok, np.sqrt(np.where(ok, a, 0.0)), NAN))


@MATH.operation(validate=number("decimals", "decimals must be an integer", integer=True))
def round(params, args, ctx):
    """Round half-up to `decimals` places (default 0)."""
    a = _operand(args, 0, "round")
    multiplier = 10.0 ** int(params.get("decimals", 0))
    return to_value(np.floor(a * multiplier + 0.5) / multiplier)


@MATH.operation()
def floor(params, args, ctx):
    return to_value(np.floor(_operand(args, 0, "floor")))


@MATH.operation()
def ceil(params, args, ctx):
    return to_value(np.ceil(_operand(args, 0, "ceil")))


def _clamp_params(params: Mapping[str, Any]):
    errors = rules(
        number("min", "min must be a number", required=True),
        number("max", "max must be a number", required=True),
    )(params)
    if concrete(params, "min", "max") and params["min"] >= params["max"]:
        errors.append("min must be less than max")
    return errors


@MATH.operation(validate=_clamp_params)
def clamp(params, args, ctx):
    """Bound each value to [min, max]."""
    a = _operand(args, 0, "clamp")
    return to_value(np.clip(a, float(params["min"]), float(params["max"])))
