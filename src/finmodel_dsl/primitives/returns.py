"""
Return and risk primitives over one time-ordered numeric sequence.

The first `periods` positions of lagged transforms are NaN. Prices of zero
(or non-positive, for logarithmic returns) give NaN rather than raising.
`cumulative_return` and `annualize_return` expect decimal returns
(0.05 for 5%).
"""

from __future__ import annotations

import math
from typing import Any, Mapping, Sequence

import numpy as np

from finmodel_dsl.core.pipeline.primitive import PrimitiveGroup

from .base import NAN, choice, flag, number, rules, series_arg, to_value


RETURNS = PrimitiveGroup("returns")

_periods = number("periods", "periods must be a positive integer", integer=True, minimum=1)


def _lagged(args: Sequence[Any], params: Mapping[str, Any], operation: str):
    data = series_arg(args, 0, operation)
    periods = int(params.get("periods", 1))
    out = np.full(data.shape, NAN)
    if data.size <= periods:
        return data, out, None, None
    return data, out, data[periods:], data[:-periods]


@RETURNS.operation(validate=_periods)
def percent_change(params, args, ctx):
    """Change from `periods` positions back, in percent."""
    data, out, current, previous = _lagged(args, params, "percent_change")
    if current is not None:
        periods = data.size - current.size
        with np.errstate(all="ignore"):
            out[periods:] = np.where(previous == 0, NAN, (current - previous) / previous * 100.0)
    return to_value(out)


@RETURNS.operation(validate=_periods)
def log_return(params, args, ctx):
    data, out, current, previous = _lagged(args, params, "log_return")
    if current is not None:
        periods = data.size - current.size
        ok = (current > 0) & (previous > 0)
        with np.errstate(all="ignore"):
            out[periods:] = np.where(ok, np.log(np.where(ok, current / previous, 1.0)), NAN)
    return to_value(out)


@RETURNS.operation(validate=flag("as_percentage", "as_percentage must be a boolean"))
def cumulative_return(params, args, ctx):
    """Compounded return to date. NaN returns stay NaN and are skipped."""
    returns = series_arg(args, 0, "cumulative_return")
    scale = 100.0 if params.get("as_percentage", False) else 1.0
    result = []
    product = 1.0
    for r in returns.tolist():
        if math.isnan(r):
            result.append(NAN)
            continue
        product *= 1.0 + r
        result.append((product - 1.0) * scale)
    return result


@RETURNS.operation(validate=_periods)
def diff(params, args, ctx):
    data, out, current, previous = _lagged(args, params, "diff")
    if current is not None:
        out[data.size - current.size:] = current - previous
    return to_value(out)


@RETURNS.operation(
    validate=rules(
        number("window", "window must be at least 2", required=True, integer=True, minimum=2),
        choice("method", ("arithmetic", "geometric"), 'method must be either "arithmetic" or "geometric"'),
    )
)
def rolling_return(params, args, ctx):
    """
    Return over each trailing window.

    `geometric`: end / start - 1 over the window.
    `arithmetic`: mean of the period-to-period returns inside the window,
    skipping pairs with a NaN or a zero previous value.
    """
    data = series_arg(args, 0, "rolling_return").tolist()
    window = int(params["window"])
    method = params.get("method", "arithmetic")
    result = []
    for i in range(len(data)):
        if i < window - 1:
            result.append(NAN)
            continue
        start, end = data[i - window + 1], data[i]
        if method == "geometric":
            result.append(end / start - 1.0 if start > 0 and end > 0 else NAN)
            continue
        steps = [
            (data[j] - data[j - 1]) / data[j - 1]
            for j in range(i - window + 2, i + 1)
            if data[j - 1] != 0 and not math.isnan(data[j - 1]) and not math.isnan(data[j])
        ]
        result.append(sum(steps) / len(steps) if steps else NAN)
    return result


@RETURNS.operation(validate=number("base", "base must be a number"))
def normalize_series(params, args, ctx):
    """Rescale so the first value equals `base` (default 100)."""
    data = series_arg(args, 0, "normalize_series")
    if not data.size:
        return []
    first = data[0]
    if first == 0 or math.isnan(first):
        return [NAN] * int(data.size)
    return to_value(data / first * float(params.get("base", 100)))


@RETURNS.operation(
    validate=number(
        "periods_per_year",
        "periods_per_year must be a positive number (e.g., 252 for daily, 12 for monthly)",
        required=True,
        minimum=0,
        exclusive_minimum=True,
    )
)
def annualize_return(params, args, ctx):
    returns = series_arg(args, 0, "annualize_return")
    valid = returns[~np.isnan(returns)]
    if not valid.size:
        return NAN
    compound = float(np.prod(1.0 + valid))
    with np.errstate(all="ignore"):
        return float(np.power(compound, float(params["periods_per_year"]) / valid.size) - 1.0)


@RETURNS.operation()
def drawdown(params, args, ctx):
    """Percentage decline of each point from the running maximum (<= 0)."""
    data = series_arg(args, 0, "drawdown")
    result = []
    running_max = -math.inf
    for value in data.tolist():
        if math.isnan(value):
            result.append(NAN)
            continue
        running_max = max(running_max, value)
        result.append(0.0 if running_max == 0 else (value - running_max) / running_max * 100.0)
    return result
