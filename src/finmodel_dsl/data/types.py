"""
Record shapes exchanged with data collaborators.

These are plain dicts at run time (they flow through step results and
output formatting unchanged); the TypedDicts document the keys.
"""

from __future__ import annotations

from typing import Any, Dict, List, TypedDict


class MarketBar(TypedDict):
    date: str
    open: float
    high: float
    low: float
    close: float
    volume: float


class MarketDataSeries(TypedDict):
    symbol: str
    interval: str
    data: List[MarketBar]


class MacroPoint(TypedDict):
    date: str
    value: float


class _MacroDataSeriesBase(TypedDict):
    indicator: str
    data: List[MacroPoint]


class MacroDataSeries(_MacroDataSeriesBase, total=False):
    metadata: Dict[str, Any]


class _OptionQuoteBase(TypedDict):
    symbol: str
    underlying: str
    expiration: str
    strike: float
    type: str
    bid: float
    ask: float
    last: float
    volume: float
    open_interest: float


class OptionQuote(_OptionQuoteBase, total=False):
    implied_volatility: float
    delta: float
    gamma: float
    theta: float
    vega: float
    rho: float


class OptionsChain(TypedDict):
    underlying: str
    expiration: str
    underlying_price: float
    calls: List[OptionQuote]
    puts: List[OptionQuote]
