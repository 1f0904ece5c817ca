"""
Statistics primitives.

Aggregates (`mean`, `std`, `min`, `max`, `sum`, `median`, `percentile`)
reduce one numeric sequence to a number. They propagate NaN: one missing
value makes the aggregate NaN. `count` is the exception and counts the
non-NaN values.

Rolling variants are backed by pandas rolling windows. `min_periods`
defaults to `window` for all four, so the first `window - 1` positions are
NaN unless a smaller threshold is requested.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

import numpy as np
import pandas as pd

from finmodel_dsl.core.pipeline.primitive import PrimitiveGroup

from .base import NAN, concrete, number, rules, series_arg, to_value


STATS = PrimitiveGroup("stats")

_ddof = number("ddof", "ddof must be a non-negative integer", integer=True, minimum=0)


def _window_params(params: Mapping[str, Any]):
    errors = rules(
        number("window", "window must be a positive integer", required=True, integer=True, minimum=1),
        number("min_periods", "min_periods must be a positive integer", integer=True, minimum=1),
    )(params)
    if concrete(params, "window", "min_periods") and params["min_periods"] > params["window"]:
        errors.append("min_periods must not exceed window")
    return errors


def _rolling(params: Mapping[str, Any], args: Sequence[Any], operation: str):
    data = pd.Series(series_arg(args, 0, operation), dtype=float)
    window = int(params["window"])
    min_periods = int(params.get("min_periods", window))
    return data.rolling(window=window, min_periods=min_periods)


def _std(data: np.ndarray, ddof: int) -> float:
    if data.size - ddof <= 0:
        return NAN
    return float(np.std(data, ddof=ddof))


@STATS.operation()
def mean(params, args, ctx):
    data = series_arg(args, 0, "mean")
    return float(np.mean(data)) if data.size else NAN


@STATS.operation(validate=_ddof)
def std(params, args, ctx):
    """Sample standard deviation (`ddof=1`); `ddof=0` for population."""
    return _std(series_arg(args, 0, "std"), int(params.get("ddof", 1)))


@STATS.operation(validate=_window_params)
def rolling_mean(params, args, ctx):
    return to_value(_rolling(params, args, "rolling_mean").mean().to_numpy())


@STATS.operation(validate=rules(_window_params, _ddof))
def rolling_std(params, args, ctx):
    ddof = int(params.get("ddof", 1))
    return to_value(_rolling(params, args, "rolling_std").std(ddof=ddof).to_numpy())


@STATS.operation()
def zscore(params, args, ctx):
    """Standardize with the population standard deviation."""
    data = series_arg(args, 0, "zscore")
    if not data.size:
        return []
    sd = float(np.std(data))
    if sd == 0:
        return [0.0] * int(data.size)
    return to_value((data - np.mean(data)) / sd)


@STATS.operation("min")
def minimum(params, args, ctx):
    data = series_arg(args, 0, "min")
    return float(np.min(data)) if data.size else NAN


@STATS.operation("max")
def maximum(params, args, ctx):
    data = series_arg(args, 0, "max")
    return float(np.max(data)) if data.size else NAN


@STATS.operation(validate=_window_params)
def rolling_min(params, args, ctx):
    return to_value(_rolling(params, args, "rolling_min").min().to_numpy())


@STATS.operation(validate=_window_params)
def rolling_max(params, args, ctx):
    return to_value(_rolling(params, args, "rolling_max").max().to_numpy())


@STATS.operation("sum")
def total(params, args, ctx):
    return float(np.sum(series_arg(args, 0, "sum")))


@STATS.operation()
def cumsum(params, args, ctx):
    return to_value(np.cumsum(series_arg(args, 0, "cumsum")))


@STATS.operation(
    validate=number("q", "q must be a number between 0 and 100", required=True, minimum=0, maximum=100)
)
def percentile(params, args, ctx):
    """Linear interpolation between order statistics."""
    data = series_arg(args, 0, "percentile")
    if not data.size:
        return NAN
    return float(np.percentile(data, float(params["q"]), method="linear"))


@STATS.operation()
def median(params, args, ctx):
    data = series_arg(args, 0, "median")
    return float(np.median(data)) if data.size else NAN


@STATS.operation()
def count(params, args, ctx):
    data = series_arg(args, 0, "count")
    return int(np.count_nonzero(~np.isnan(data)))
