"""
Options chain helpers.

A chain is `{underlying, expiration, underlying_price, calls, puts}` with
legs carrying `strike`, `bid`, `ask`, `volume`, `open_interest` and an
optional `implied_volatility`.

Option tickers use the `O:<UNDERLYING><YYMMDD><C|P><strike * 1000, 8 digits>`
form, e.g. ``O:SPY251219C00600000``.
"""

from __future__ import annotations

import math
import re
from typing import Any, Dict, List, Mapping

_TICKER_RE = re.compile(r"^([A-Z]+)(\d{6})([CP])(\d{8})$")

OPTION_TYPES = ("call", "put")


def _require_chain(chain: Any, *, needs_puts: bool = True) -> Mapping[str, Any]:
    if not isinstance(chain, Mapping) or not isinstance(chain.get("calls"), list):
        raise ValueError("Invalid options chain input")
    if needs_puts and not isinstance(chain.get("puts"), list):
        raise ValueError("Invalid options chain input")
    return chain


def _mid(leg: Mapping[str, Any]) -> float:
    return (float(leg.get("bid") or 0) + float(leg.get("ask") or 0)) / 2.0


def find_atm_strike(chain: Mapping[str, Any]) -> float:
    """Call strike closest to the underlying price (first one on ties)."""
    chain = _require_chain(chain, needs_puts=False)
    calls = chain["calls"]
    if not calls:
        raise ValueError("No calls in options chain")
    price = chain.get("underlying_price")
    if not price:
        raise ValueError("Invalid options chain input")
    best = min(calls, key=lambda c: abs(c["strike"] - price))
    return best["strike"]


def find_atm_straddle(chain: Mapping[str, Any]) -> Dict[str, Any]:
    """Call and put at the ATM strike, with their combined mid premium."""
    chain = _require_chain(chain)
    strike = find_atm_strike(chain)
    call = next((c for c in chain["calls"] if c["strike"] == strike), None)
    put = next((p for p in chain["puts"] if p["strike"] == strike), None)
    if call is None or put is None:
        raise ValueError(f"No straddle found at strike {strike}")
    return {
        "call": dict(call),
        "put": dict(put),
        "total_premium": _mid(call) + _mid(put),
    }


def calculate_expected_move(chain: Mapping[str, Any]) -> Dict[str, float]:
    """Expected move implied by the ATM straddle premium."""
    straddle = find_atm_straddle(chain)
    price = float(chain["underlying_price"])
    move = straddle["total_premium"]
    return {
        "dollar_move": move,
        "percent_move": move / price * 100.0,
        "upper_bound": price + move,
        "lower_bound": price - move,
    }


def extract_implied_volatilities(chain: Mapping[str, Any]) -> Dict[str, List[float]]:
    """Sorted union of strikes with the call and put IV at each (NaN when absent)."""
    chain = _require_chain(chain)
    calls = {c["strike"]: c for c in chain["calls"]}
    puts = {p["strike"]: p for p in chain["puts"]}
    strikes = sorted(set(calls) | set(puts))

    def iv(legs: Mapping[float, Mapping[str, Any]], strike: float) -> float:
        value = legs.get(strike, {}).get("implied_volatility")
        return float(value) if value else math.nan

    return {
        "strikes": [float(s) for s in strikes],
        "call_ivs": [iv(calls, s) for s in strikes],
        "put_ivs": [iv(puts, s) for s in strikes],
    }


def sum_legs(chain: Mapping[str, Any], side: str, field: str) -> float:
    """Sum `field` over the `calls` or `puts` of a chain (missing counts as 0)."""
    if not isinstance(chain, Mapping) or not isinstance(chain.get(side), list):
        raise ValueError("Invalid options chain input")
    return float(sum(leg.get(field) or 0 for leg in chain[side]))


def build_option_ticker(underlying: str, expiration: str, strike: float, option_type: str) -> str:
    if option_type not in OPTION_TYPES:
        raise ValueError('type must be "call" or "put"')
    year, month, day = expiration.split("-")
    strike_part = f"{int(round(strike * 1000)):08d}"
    side = "C" if option_type == "call" else "P"
    return f"O:{underlying}{year[2:]}{month}{day}{side}{strike_part}"


def parse_option_ticker(ticker: str) -> Dict[str, Any]:
    cleaned = ticker[2:] if ticker.startswith("O:") else ticker
    match = _TICKER_RE.match(cleaned)
    if not match:
        raise ValueError(f"Invalid option ticker format: {ticker}")
    underlying, yymmdd, side, strike = match.groups()
    return {
        "underlying": underlying,
        "expiration": f"20{yymmdd[0:2]}-{yymmdd[2:4]}-{yymmdd[4:6]}",
        "strike": int(strike) / 1000.0,
        "type": "call" if side == "C" else "put",
    }
