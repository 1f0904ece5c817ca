# tests/data/test_gateway.py
"""Tests for DataGateway: caching, symbol normalization, provider checks."""

import asyncio

import pytest

try:
    from finmodel_dsl.core.exceptions import DataAccessError
    from finmodel_dsl.data.cache import TTLCache
    from finmodel_dsl.data.gateway import (
        DataGateway,
        MacroDataProvider,
        MarketDataProvider,
        OptionsDataProvider,
    )
except Exception as e:  # noqa: BLE001
    DataGateway = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing data.gateway. Import error: {_IMPORT_ERR}")


def test_fakes_satisfy_provider_protocols(market_provider, macro_provider, options_provider):
    _require_imports()
    assert isinstance(market_provider, MarketDataProvider)
    assert isinstance(macro_provider, MacroDataProvider)
    assert isinstance(options_provider, OptionsDataProvider)


def test_market_data_is_cached_per_normalized_symbol(gateway, market_provider):
    _require_imports()

    async def go():
        a = await gateway.fetch_market_data("spy", "2024-01-01", "2024-01-31")
        b = await gateway.fetch_market_data(" SPY ", "2024-01-01", "2024-01-31")
        return a, b

    a, b = asyncio.run(go())
    assert a == b
    assert len(market_provider.calls) == 1
    assert "market:SPY:day:2024-01-01:2024-01-31" in gateway.cache


def test_cached_value_cannot_be_altered_by_a_caller(gateway):
    _require_imports()
    first = asyncio.run(gateway.fetch_market_data("SPY", "2024-01-01", "2024-01-31"))
    first["data"].clear()
    second = asyncio.run(gateway.fetch_market_data("SPY", "2024-01-01", "2024-01-31"))
    assert len(second["data"]) == 8


def test_current_price_is_not_cached(gateway, market_provider):
    _require_imports()
    asyncio.run(gateway.get_current_price("spy"))
    asyncio.run(gateway.get_current_price("spy"))
    assert market_provider.calls == [("current_price", "SPY"), ("current_price", "SPY")]


def test_async_provider_methods_are_awaited(gateway, options_provider):
    _require_imports()
    chains = asyncio.run(gateway.fetch_options_chain("SPY"))
    assert chains[0]["underlying"] == "SPY"
    asyncio.run(gateway.fetch_options_chain("SPY"))
    assert options_provider.calls == [("fetch_chains", "SPY", None)]


def test_macro_cache_key_covers_params(gateway, macro_provider):
    _require_imports()
    asyncio.run(gateway.fetch_macro_data("DGS10"))
    asyncio.run(gateway.fetch_macro_data("DGS10", frequency="weekly"))
    asyncio.run(gateway.fetch_macro_data("DGS10", frequency="weekly"))
    assert len(macro_provider.calls) == 2


def test_disabled_cache_always_calls_provider(market_provider):
    _require_imports()
    gw = DataGateway(market=market_provider, cache=None)
    asyncio.run(gw.fetch_market_data("SPY", "2024-01-01", "2024-01-31"))
    asyncio.run(gw.fetch_market_data("SPY", "2024-01-01", "2024-01-31"))
    assert len(market_provider.calls) == 2


@pytest.mark.parametrize(
    "call, kind",
    [
        (lambda gw: gw.fetch_market_data("SPY", "2024-01-01", "2024-01-31"), "market"),
        (lambda gw: gw.fetch_macro_data("DGS10"), "macro"),
        (lambda gw: gw.fetch_option_quote("SPY", "2024-02-16", 100, "call"), "options"),
    ],
)
def test_missing_provider_raises(call, kind):
    _require_imports()
    with pytest.raises(DataAccessError) as ei:
        asyncio.run(call(DataGateway()))
    assert ei.value.message == f"No {kind} data provider configured"
    assert ei.value.details == {"provider": kind}


def test_from_config_applies_cache_policy(market_provider):
    _require_imports()
    enabled = DataGateway.from_config(
        {"data": {"cache": {"enabled": True, "ttl_seconds": {"market_data": 5}}}},
        market=market_provider,
    )
    assert isinstance(enabled.cache, TTLCache)
    assert enabled.ttl_seconds["market_data"] == 5
    assert enabled.ttl_seconds["options_quote"] == 30

    disabled = DataGateway.from_config({"data": {"cache": {"enabled": False}}}, market=market_provider)
    assert disabled.cache is None

    shared = TTLCache()
    assert DataGateway.from_config(None, cache=shared).cache is shared


def test_long_lived_gateway_does_not_accumulate_stale_entries(market_provider):
    _require_imports()
    now = [0.0]
    gw = DataGateway(market=market_provider, cache=TTLCache(clock=lambda: now[0]))

    async def go():
        for day in range(1, 301):
            await gw.fetch_market_data("SPY", f"2024-01-{day:03d}", "2024-12-31")
            now[0] += 120

    asyncio.run(go())
    assert gw.cache.stats()["size"] == 1


def test_from_config_bounds_cache_size(market_provider):
    _require_imports()
    gw = DataGateway.from_config({"data": {"cache": {"max_entries": 2}}}, market=market_provider)
    assert gw.cache.max_entries == 2

    async def go():
        for start in ("2024-01-01", "2024-02-01", "2024-03-01"):
            await gw.fetch_market_data("SPY", start, "2024-12-31")

    asyncio.run(go())
    assert len(gw.cache) == 2
    assert DataGateway.from_config(None).cache.max_entries == 1024
