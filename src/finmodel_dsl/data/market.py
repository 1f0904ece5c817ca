"""Market data helpers: bar extraction, date ranges and symbol hygiene."""

from __future__ import annotations

import re
from datetime import date, timedelta
from typing import Any, Dict, List, Mapping, Optional

PRICE_FIELDS = ("open", "high", "low", "close")

_SYMBOL_RE = re.compile(r"^[A-Z]{1,5}(\.[A-Z]{1,2})?$")


def _bars(market_data: Any) -> List[Mapping[str, Any]]:
    if not isinstance(market_data, Mapping) or not isinstance(market_data.get("data"), list):
        raise ValueError("Invalid market data input")
    return market_data["data"]


def extract_price_series(market_data: Mapping[str, Any], field: str = "close") -> List[float]:
    if field not in PRICE_FIELDS:
        raise ValueError(f"field must be one of: {', '.join(PRICE_FIELDS)}")
    return [bar.get(field) for bar in _bars(market_data)]


def extract_volume_series(market_data: Mapping[str, Any]) -> List[float]:
    return [bar.get("volume") for bar in _bars(market_data)]


def extract_date_labels(market_data: Mapping[str, Any]) -> List[str]:
    return [bar.get("date") for bar in _bars(market_data)]


def calculate_date_range(days_back: int, today: Optional[date] = None) -> Dict[str, str]:
    """ISO `start_date` / `end_date` covering the last `days_back` days."""
    if days_back < 0:
        raise ValueError("days_back must be non-negative")
    end = today or date.today()
    start = end - timedelta(days=days_back)
    return {"start_date": start.isoformat(), "end_date": end.isoformat()}


def validate_symbol(symbol: str) -> bool:
    """1-5 uppercase letters with an optional `.XX` share-class suffix."""
    return isinstance(symbol, str) and bool(_SYMBOL_RE.match(symbol))


def normalize_symbol(symbol: str) -> str:
    return symbol.strip().upper()
