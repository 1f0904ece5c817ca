"""
Filtering and reshaping primitives.

Positional reshaping (`select`, `slice`, `head`, `tail`, `reverse`,
`unique`, `replace`) works on any sequence, so date labels can be cut the
same way as the values they annotate. Value-based filters (`where`,
`dropna`, `fillna`, `sort`) treat None and NaN as missing.
"""

from __future__ import annotations

import operator
from typing import Any, List, Mapping

import numpy as np

from finmodel_dsl.core.pipeline.primitive import PrimitiveGroup

from .base import NAN, choice, flag, is_missing, is_nan, is_number, list_arg, number, present, rules


FILTERS = PrimitiveGroup("filters")

CONDITIONS = {
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
    "==": operator.eq,
    "!=": operator.ne,
}

FILL_METHODS = ("forward", "backward", "mean", "median")


@FILTERS.operation(
    validate=rules(
        choice(
            "condition",
            tuple(CONDITIONS),
            'condition must be a string (">", "<", ">=", "<=", "==", "!=")',
            required=True,
        ),
        present("value", "value parameter is required"),
    )
)
def where(params, args, ctx) -> List[int]:
    """Indices of the values matching `condition value`; missing values never match."""
    data = list_arg(args, 0, "where")
    compare = CONDITIONS[params["condition"]]
    threshold = params["value"]
    return [i for i, v in enumerate(data) if not is_missing(v) and compare(v, threshold)]


@FILTERS.operation()
def select(params, args, ctx):
    """Values of input 1 at the indices in input 2; out-of-range indices are ignored."""
    data = list_arg(args, 0, "select")
    if len(args) < 2 or not isinstance(args[1], (list, tuple, np.ndarray)):
        raise ValueError("select requires indices array as second input")
    out = []
    for idx in list_arg(args, 1, "select"):
        if is_number(idx) and not is_nan(idx) and float(idx) == int(idx) and 0 <= int(idx) < len(data):
            out.append(data[int(idx)])
    return out


@FILTERS.operation(
    "slice",
    validate=rules(
        number("start", "start must be an integer", integer=True),
        number("end", "end must be an integer", integer=True),
    ),
)
def take_slice(params, args, ctx):
    data = list_arg(args, 0, "slice")
    start = int(params.get("start", 0))
    end = params.get("end")
    return data[start:] if end is None else data[start:int(end)]


_n = number("n", "n must be a non-negative integer", required=True, integer=True, minimum=0)


@FILTERS.operation(validate=_n)
def head(params, args, ctx):
    return list_arg(args, 0, "head")[:int(params["n"])]


@FILTERS.operation(validate=_n)
def tail(params, args, ctx):
    """Last `n` values; `n = 0` gives an empty list."""
    n = int(params["n"])
    data = list_arg(args, 0, "tail")
    return data[-n:] if n else []


@FILTERS.operation()
def dropna(params, args, ctx):
    return [v for v in list_arg(args, 0, "dropna") if not is_missing(v)]


def _fillna_params(params: Mapping[str, Any]) -> List[str]:
    errors = choice(
        "method", FILL_METHODS, 'method must be one of: "forward", "backward", "mean", "median"'
    )(params)
    if params.get("value") is None and params.get("method") is None:
        errors.append("Either value or method must be specified")
    return errors


def _fill_direction(data: List[Any]) -> List[Any]:
    out = list(data)
    last = None
    for i, v in enumerate(out):
        if not is_missing(v):
            last = v
        elif last is not None:
            out[i] = last
    return out


@FILTERS.operation(validate=_fillna_params)
def fillna(params, args, ctx):
    """Replace missing values with `value` or by `method`."""
    data = list_arg(args, 0, "fillna")
    value = params.get("value")
    if value is not None:
        return [value if is_missing(v) else v for v in data]

    method = params["method"]
    if method == "forward":
        return _fill_direction(data)
    if method == "backward":
        return _fill_direction(data[::-1])[::-1]

    valid = [float(v) for v in data if not is_missing(v)]
    if not valid:
        return data
    fill = float(np.mean(valid)) if method == "mean" else float(np.median(valid))
    return [fill if is_missing(v) else v for v in data]


@FILTERS.operation(
    validate=rules(
        present("old_value", "old_value parameter is required"),
        present("new_value", "new_value parameter is required"),
    )
)
def replace(params, args, ctx):
    old, new = params["old_value"], params["new_value"]
    if is_nan(old):
        return [new if is_nan(v) else v for v in list_arg(args, 0, "replace")]
    return [new if v == old else v for v in list_arg(args, 0, "replace")]


@FILTERS.operation()
def reverse(params, args, ctx):
    return list_arg(args, 0, "reverse")[::-1]


@FILTERS.operation(validate=flag("ascending", "ascending must be a boolean"))
def sort(params, args, ctx):
    """Stable sort with missing values last in either direction."""
    data = list_arg(args, 0, "sort")
    present_values = sorted(
        (v for v in data if not is_missing(v)),
        reverse=not params.get("ascending", True),
    )
    return present_values + [NAN if is_nan(v) else v for v in data if is_missing(v)]


@FILTERS.operation()
def unique(params, args, ctx):
    """First occurrence of each value, in input order. NaN is kept once."""
    seen = set()
    nan_seen = False
    out = []
    for v in list_arg(args, 0, "unique"):
        if is_nan(v):
            if not nan_seen:
                nan_seen = True
                out.append(v)
            continue
        key = (type(v).__name__, v) if isinstance(v, bool) else v
        if key not in seen:
            seen.add(key)
            out.append(v)
    return out
