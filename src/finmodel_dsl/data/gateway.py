"""
Data gateway.

The engine never performs network or storage I/O itself. Data-access
primitives reach external collaborators exclusively through the
`DataGateway` attached to a run, which:

    - normalizes symbols before they reach a provider or a cache key
    - serves repeated requests from an in-process TTL cache
    - accepts providers whose methods are plain or `async` functions

Collaborators are described as structural Protocols; any object with the
right methods can be injected (HTTP clients, fixtures, fakes in tests).

Explicit limits:
    - Ships no concrete network adapter
    - Does not reshape provider responses beyond symbol normalization
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

from finmodel_dsl.core.config import get_setting
from finmodel_dsl.core.exceptions import DataAccessError

from .cache import (
    TTLCache,
    macro_data_key,
    market_data_key,
    options_chain_key,
    options_quote_key,
)
from .market import normalize_symbol
from .types import MacroDataSeries, MarketDataSeries, OptionQuote, OptionsChain


# ---------------------------------------------------------------------------
# Collaborator contracts
# ---------------------------------------------------------------------------

@runtime_checkable
class MarketDataProvider(Protocol):
    def fetch_bars(self, symbol: str, start_date: str, end_date: str, interval: str) -> Any:
        """`{symbol, interval, data: [{date, open, high, low, close, volume}]}` (or awaitable)."""
        ...

    def current_price(self, symbol: str) -> Any:
        """Latest price as a float (or awaitable)."""
        ...


@runtime_checkable
class MacroDataProvider(Protocol):
    def fetch_series(
        self,
        indicator: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        frequency: Optional[str] = None,
    ) -> Any:
        """`{indicator, data: [{date, value}], metadata?}` (or awaitable)."""
        ...


@runtime_checkable
class OptionsDataProvider(Protocol):
    def fetch_chains(self, symbol: str, expiration: Optional[str] = None) -> Any:
        """List of chains, one per expiration (or awaitable)."""
        ...

    def fetch_quote(self, symbol: str, expiration: str, strike: float, option_type: str) -> Any:
        """Single option leg (or awaitable)."""
        ...


async def _call(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    result = fn(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


DEFAULT_TTL_SECONDS: Dict[str, float] = {
    "market_data": 60,
    "macro_data": 300,
    "options_quote": 30,
    "options_chain": 60,
}


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------

@dataclass
class DataGateway:
    """
    Cached access to the market, macro and options collaborators.

    A gateway may be shared by many runs; it holds no per-run state beyond
    the cache. `cache=None` disables caching.
    """

    market: Optional[MarketDataProvider] = None
    macro: Optional[MacroDataProvider] = None
    options: Optional[OptionsDataProvider] = None
    cache: Optional[TTLCache] = field(default_factory=TTLCache)
    ttl_seconds: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_TTL_SECONDS))

    @classmethod
    def from_config(
        cls,
        config: Optional[Dict[str, Any]] = None,
        *,
        market: Optional[MarketDataProvider] = None,
        macro: Optional[MacroDataProvider] = None,
        options: Optional[OptionsDataProvider] = None,
        cache: Optional[TTLCache] = None,
    ) -> "DataGateway":
        """Gateway with cache policy taken from `data.cache` settings."""
        enabled = bool(get_setting(config, "data.cache.enabled", True))
        ttls = dict(DEFAULT_TTL_SECONDS)
        ttls.update(get_setting(config, "data.cache.ttl_seconds", {}) or {})
        max_entries = get_setting(config, "data.cache.max_entries", None)
        return cls(
            market=market,
            macro=macro,
            options=options,
            cache=(cache or TTLCache(max_entries=max_entries)) if enabled else None,
            ttl_seconds=ttls,
        )

    # -----------------------------
    # Internals
    # -----------------------------
    def _require(self, provider: Any, kind: str) -> Any:
        if provider is None:
            raise DataAccessError(
                message=f"No {kind} data provider configured",
                details={"provider": kind},
                hint="Attach a provider to the DataGateway passed in the run context.",
            )
        return provider

    async def _cached(self, key: str, ttl_name: str, load: Callable[[], Any]) -> Any:
        if self.cache is not None:
            hit = self.cache.get(key)
            if hit is not None:
                return hit
        value = await load()
        if self.cache is not None and value is not None:
            self.cache.set(key, value, self.ttl_seconds[ttl_name])
        return value

    # -----------------------------
    # Market
    # -----------------------------
    async def fetch_market_data(
        self, symbol: str, start_date: str, end_date: str, interval: str = "day"
    ) -> MarketDataSeries:
        provider = self._require(self.market, "market")
        symbol = normalize_symbol(symbol)
        return await self._cached(
            market_data_key(symbol, start_date, end_date, interval),
            "market_data",
            lambda: _call(provider.fetch_bars, symbol, start_date, end_date, interval),
        )

    async def get_current_price(self, symbol: str) -> float:
        provider = self._require(self.market, "market")
        return float(await _call(provider.current_price, normalize_symbol(symbol)))

    # -----------------------------
    # Macro
    # -----------------------------
    async def fetch_macro_data(
        self,
        indicator: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        frequency: Optional[str] = None,
    ) -> MacroDataSeries:
        provider = self._require(self.macro, "macro")
        params = {"start_date": start_date, "end_date": end_date, "frequency": frequency}
        return await self._cached(
            macro_data_key(indicator, params),
            "macro_data",
            lambda: _call(provider.fetch_series, indicator, **params),
        )

    # -----------------------------
    # Options
    # -----------------------------
    async def fetch_options_chain(self, symbol: str, expiration: Optional[str] = None) -> List[OptionsChain]:
        provider = self._require(self.options, "options")
        symbol = normalize_symbol(symbol)
        chains = await self._cached(
            options_chain_key(symbol, expiration),
            "options_chain",
            lambda: _call(provider.fetch_chains, symbol, expiration),
        )
        return list(chains or [])

    async def fetch_option_quote(
        self, symbol: str, expiration: str, strike: float, option_type: str
    ) -> OptionQuote:
        provider = self._require(self.options, "options")
        symbol = normalize_symbol(symbol)
        return await self._cached(
            options_quote_key(symbol, expiration, float(strike), option_type),
            "options_quote",
            lambda: _call(provider.fetch_quote, symbol, expiration, strike, option_type),
        )
