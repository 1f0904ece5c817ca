"""
Macro (economic indicator) helpers.

Series follow the `{indicator, data: [{date, value}], metadata?}` shape
returned by the macro collaborator. Alignment and resampling go through
pandas so calendar handling is not reimplemented here.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence

import pandas as pd


# Common FRED series identifiers.
FRED_SERIES: Dict[str, str] = {
    # Interest rates
    "FED_FUNDS_RATE": "DFF",
    "TREASURY_10Y": "DGS10",
    "TREASURY_2Y": "DGS2",
    # Inflation
    "CPI": "CPIAUCSL",
    "CORE_CPI": "CPILFESL",
    "PCE": "PCEPI",
    "CORE_PCE": "PCEPILFE",
    # Activity
    "GDP": "GDP",
    "UNEMPLOYMENT": "UNRATE",
    "PAYROLLS": "PAYEMS",
    "RETAIL_SALES": "RSXFS",
    # Markets
    "VIX": "VIXCLS",
    "SP500": "SP500",
    # Money supply
    "M2": "M2SL",
    "M1": "M1SL",
}

RESAMPLE_PERIODS = {
    "daily": "D",
    "weekly": "W-SUN",
    "monthly": "M",
    "quarterly": "Q",
}


def _points(macro_data: Any) -> List[Mapping[str, Any]]:
    if not isinstance(macro_data, Mapping) or not isinstance(macro_data.get("data"), list):
        raise ValueError("Invalid macro data input")
    return macro_data["data"]


def extract_macro_values(macro_data: Mapping[str, Any]) -> List[float]:
    return [p.get("value") for p in _points(macro_data)]


def extract_macro_dates(macro_data: Mapping[str, Any]) -> List[str]:
    return [p.get("date") for p in _points(macro_data)]


def calculate_yoy_change(points: Sequence[Mapping[str, Any]], periods_per_year: int = 12) -> List[float]:
    """Percent change against the value `periods_per_year` points earlier."""
    result: List[float] = []
    for i, point in enumerate(points):
        if i < periods_per_year:
            result.append(float("nan"))
            continue
        year_ago = points[i - periods_per_year]["value"]
        if year_ago == 0:
            result.append(float("nan"))
        else:
            result.append((point["value"] - year_ago) / year_ago * 100.0)
    return result


def align_to_dates(macro_data: Mapping[str, Any], target_dates: Sequence[str]) -> List[float]:
    """
    Values of the series at `target_dates`, forward-filled along the targets.

    Targets before the first matching date are NaN.
    """
    by_date = {p["date"]: p["value"] for p in _points(macro_data)}
    aligned = pd.Series(by_date, dtype=float).reindex(list(target_dates)).ffill()
    return aligned.astype(float).tolist()


def resample_macro_data(macro_data: Mapping[str, Any], frequency: str) -> Dict[str, Any]:
    """
    Keep the last observation of each period.

    Each output point is dated at the start of its period: the day itself,
    the Monday of the week, the first of the month or the first day of the
    quarter. Returns a new series with `metadata.frequency` set.
    """
    if frequency not in RESAMPLE_PERIODS:
        raise ValueError(f"frequency must be one of: {', '.join(RESAMPLE_PERIODS)}")

    points = _points(macro_data)
    out: Dict[str, Any] = dict(macro_data)
    out["metadata"] = {**(macro_data.get("metadata") or {}), "frequency": frequency}
    if not points:
        out["data"] = []
        return out

    frame = pd.DataFrame(
        {
            "date": pd.to_datetime([p["date"] for p in points]),
            "value": [p["value"] for p in points],
        }
    )
    frame["period"] = frame["date"].dt.to_period(RESAMPLE_PERIODS[frequency]).dt.start_time
    last = frame.drop_duplicates("period", keep="last").sort_values("period")

    out["data"] = [
        {"date": ts.strftime("%Y-%m-%d"), "value": float(v)}
        for ts, v in zip(last["period"], last["value"])
    ]
    return out
