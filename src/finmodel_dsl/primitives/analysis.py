"""
Two-series analysis primitives.

Every pairwise statistic drops the positions where either side is NaN
before computing. Fewer than two valid pairs, or a zero variance in a
denominator, yields NaN instead of raising. Sequences of different
lengths yield NaN for the scalar statistics; `rolling_correlation` and
`linear_regression` treat a length mismatch as a hard error since they
return positional results.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

from finmodel_dsl.core.pipeline.primitive import PrimitiveGroup

from .base import NAN, number, rules, series_arg, to_value


ANALYSIS = PrimitiveGroup("analysis")


def _pair(args: Sequence[Any], operation: str) -> Optional[Tuple[np.ndarray, np.ndarray]]:
    """Both inputs with NaN pairs removed, or None when lengths differ."""
    x = series_arg(args, 0, operation)
    y = series_arg(args, 1, operation)
    if x.size != y.size:
        return None
    keep = ~(np.isnan(x) | np.isnan(y))
    return x[keep], y[keep]


def _pearson(x: np.ndarray, y: np.ndarray) -> float:
    if x.size < 2:
        return NAN
    dx = x - x.mean()
    dy = y - y.mean()
    denominator = math.sqrt(float(np.sum(dx * dx)) * float(np.sum(dy * dy)))
    if denominator == 0:
        return NAN
    return float(np.sum(dx * dy)) / denominator


@ANALYSIS.operation()
def correlation(params, args, ctx):
    """Pearson correlation coefficient in [-1, 1]."""
    pair = _pair(args, "correlation")
    return NAN if pair is None else _pearson(*pair)


@ANALYSIS.operation(
    validate=number("window", "window must be at least 2", required=True, integer=True, minimum=2)
)
def rolling_correlation(params, args, ctx):
    x = series_arg(args, 0, "rolling_correlation")
    y = series_arg(args, 1, "rolling_correlation")
    if x.size != y.size:
        raise ValueError("Both series must have the same length")
    window = int(params["window"])
    result = []
    for i in range(x.size):
        if i < window - 1:
            result.append(NAN)
            continue
        xs, ys = x[i - window + 1:i + 1], y[i - window + 1:i + 1]
        keep = ~(np.isnan(xs) | np.isnan(ys))
        result.append(_pearson(xs[keep], ys[keep]))
    return result


@ANALYSIS.operation()
def linear_regression(params, args, ctx) -> Dict[str, Any]:
    """
    Ordinary least squares of input 2 (y) on input 1 (x).

    Returns `{slope, intercept, r_squared, predicted}` where `predicted`
    is aligned with the full x input (NaN where x is NaN). With fewer
    than two valid pairs or no variance in x every field is NaN.
    """
    x_full = series_arg(args, 0, "linear_regression")
    pair = _pair(args, "linear_regression")
    if pair is None:
        raise ValueError("Both series must have the same length")
    x, y = pair

    sxx = float(np.sum((x - x.mean()) ** 2)) if x.size else 0.0
    if x.size < 2 or sxx == 0:
        return {
            "slope": NAN,
            "intercept": NAN,
            "r_squared": NAN,
            "predicted": [NAN] * int(x_full.size),
        }

    slope = float(np.sum((x - x.mean()) * (y - y.mean()))) / sxx
    intercept = float(y.mean()) - slope * float(x.mean())
    ss_res = float(np.sum((y - (slope * x + intercept)) ** 2))
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    r_squared = 1.0 if ss_tot == 0 else 1.0 - ss_res / ss_tot

    return {
        "slope": slope,
        "intercept": intercept,
        "r_squared": r_squared,
        "predicted": to_value(slope * x_full + intercept),
    }


@ANALYSIS.operation(validate=number("ddof", "ddof must be a non-negative integer", integer=True, minimum=0))
def covariance(params, args, ctx):
    pair = _pair(args, "covariance")
    if pair is None:
        return NAN
    x, y = pair
    ddof = int(params.get("ddof", 1))
    if x.size < 2 or x.size - ddof <= 0:
        return NAN
    return float(np.sum((x - x.mean()) * (y - y.mean()))) / (x.size - ddof)


@ANALYSIS.operation()
def beta(params, args, ctx):
    """Covariance of asset (input 1) with benchmark (input 2) over benchmark variance."""
    pair = _pair(args, "beta")
    if pair is None:
        return NAN
    asset, benchmark = pair
    if asset.size < 2:
        return NAN
    db = benchmark - benchmark.mean()
    variance = float(np.sum(db * db))
    if variance == 0:
        return NAN
    return float(np.sum((asset - asset.mean()) * db)) / variance


@ANALYSIS.operation(
    validate=rules(
        number("risk_free_rate", "risk_free_rate must be a number"),
        number(
            "periods_per_year",
            "periods_per_year must be a positive number",
            minimum=0,
            exclusive_minimum=True,
        ),
    )
)
def sharpe_ratio(params, args, ctx):
    """Annualized (mean - risk free) / std of periodic decimal returns."""
    returns = series_arg(args, 0, "sharpe_ratio")
    valid = returns[~np.isnan(returns)]
    if valid.size < 2:
        return NAN
    sd = float(np.std(valid, ddof=1))
    if sd == 0:
        return NAN
    periods = float(params.get("periods_per_year", 252))
    risk_free = float(params.get("risk_free_rate", 0))
    return (float(valid.mean()) * periods - risk_free) / (sd * math.sqrt(periods))


@ANALYSIS.operation(
    validate=number("lag", "lag must be a positive integer", required=True, integer=True, minimum=1)
)
def autocorrelation(params, args, ctx):
    data = series_arg(args, 0, "autocorrelation")
    lag = int(params["lag"])
    if data.size <= lag:
        return NAN
    current, lagged = data[lag:], data[:-lag]
    keep = ~(np.isnan(current) | np.isnan(lagged))
    return _pearson(current[keep], lagged[keep])
