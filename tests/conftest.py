# tests/conftest.py
"""
Shared fixtures for the finmodel-dsl test suite.

Provides:
- YAML configuration snippets (defaults + local override)
- a resolved configuration and a deterministic RunContext
- fake data providers (market, macro, options), all in-memory
- a slow async market provider for timeout tests
- small model documents used across engine and validation tests

Decisions:
    - Providers are duck-typed classes, not mocks, so Protocol checks apply
    - Core imports are lazy inside fixtures so import errors surface in
      the test that needs them
    - Every fixture returns fresh objects (safe for parallel runs)

Explicit limits:
    - No network, no filesystem outside `tmp_path`
    - No domain assertions here
"""

import asyncio
from datetime import datetime, timezone

import pytest


# =====================================================
# Config
# =====================================================

@pytest.fixture
def project_like_config_defaults_yaml() -> str:
    """Defaults YAML shaped like the bundled `defaults.yaml`."""
    return """\
engine:
  default_timeout_ms: 30000
  debug: false
dsl:
  supported_version: "1.0"
  max_steps_warning: 50
data:
  cache:
    enabled: true
    ttl_seconds:
      market_data: 60
      macro_data: 300
"""


@pytest.fixture
def project_like_config_local_yaml() -> str:
    """Local overrides: shorter timeout, debug on, cache off."""
    return """\
engine:
  default_timeout_ms: 500
  debug: true
data:
  cache:
    enabled: false
"""


@pytest.fixture
def dsl_config() -> dict:
    from finmodel_dsl.core.config import resolve_config

    return resolve_config()


@pytest.fixture
def run_ctx(dsl_config):
    """
    Deterministic RunContext without a data gateway.

    `run_id` and `created_at` are fixed so event assertions are stable.
    """
    from finmodel_dsl.core.pipeline.context import RunContext

    return RunContext(
        run_id="run-test-001",
        created_at=datetime(2026, 1, 16, 0, 0, 0, tzinfo=timezone.utc),
        config=dsl_config,
        variables={"symbol": "SPY"},
    )


# =====================================================
# Fake collaborators
# =====================================================

CLOSES = [100.0, 102.0, 101.0, 105.0, 107.0, 104.0, 108.0, 110.0]


def make_bars(closes=CLOSES, start_day=1):
    return [
        {
            "date": f"2024-01-{start_day + i:02d}",
            "open": c - 1.0,
            "high": c + 1.0,
            "low": c - 2.0,
            "close": c,
            "volume": 1000 + i * 10,
        }
        for i, c in enumerate(closes)
    ]


class FakeMarketProvider:
    """Synchronous market provider returning fixed bars; counts calls."""

    def __init__(self, closes=None, price=110.0):
        self.closes = list(closes or CLOSES)
        self.price = price
        self.calls = []

    def fetch_bars(self, symbol, start_date, end_date, interval):
        self.calls.append(("fetch_bars", symbol, start_date, end_date, interval))
        return {"symbol": symbol, "interval": interval, "data": make_bars(self.closes)}

    def current_price(self, symbol):
        self.calls.append(("current_price", symbol))
        return self.price


class SlowMarketProvider(FakeMarketProvider):
    """Async provider that sleeps before answering; records cancellation."""

    def __init__(self, delay_s=5.0, **kwargs):
        super().__init__(**kwargs)
        self.delay_s = delay_s
        self.cancelled = False

    async def fetch_bars(self, symbol, start_date, end_date, interval):
        self.calls.append(("fetch_bars", symbol, start_date, end_date, interval))
        try:
            await asyncio.sleep(self.delay_s)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return {"symbol": symbol, "interval": interval, "data": make_bars(self.closes)}


class FakeMacroProvider:
    def __init__(self, series=None):
        self.series = series or {
            "DGS10": [4.0, 4.1, 4.2, 4.0],
            "DGS2": [4.5, 4.3, 4.1, 3.9],
        }
        self.calls = []

    def fetch_series(self, indicator, start_date=None, end_date=None, frequency=None):
        self.calls.append((indicator, start_date, end_date, frequency))
        values = self.series[indicator]
        return {
            "indicator": indicator,
            "data": [{"date": f"2024-01-{i + 1:02d}", "value": v} for i, v in enumerate(values)],
        }


def make_chain(underlying_price=101.0, expiration="2024-02-16"):
    calls = [
        {"strike": s, "type": "call", "bid": b, "ask": a, "volume": v, "open_interest": oi, "implied_volatility": iv}
        for s, b, a, v, oi, iv in [
            (95.0, 6.8, 7.2, 100, 1000, 0.25),
            (100.0, 3.0, 3.4, 300, 2000, 0.22),
            (105.0, 1.0, 1.2, 200, 1500, 0.21),
        ]
    ]
    puts = [
        {"strike": s, "type": "put", "bid": b, "ask": a, "volume": v, "open_interest": oi, "implied_volatility": iv}
        for s, b, a, v, oi, iv in [
            (95.0, 0.9, 1.1, 150, 800, 0.27),
            (100.0, 2.0, 2.4, 250, 1200, 0.23),
            (105.0, 5.0, 5.4, 50, 400, None),
        ]
    ]
    return {
        "underlying": "SPY",
        "expiration": expiration,
        "underlying_price": underlying_price,
        "calls": calls,
        "puts": puts,
    }


class FakeOptionsProvider:
    def __init__(self):
        self.calls = []

    async def fetch_chains(self, symbol, expiration=None):
        self.calls.append(("fetch_chains", symbol, expiration))
        return [make_chain(expiration=expiration or "2024-02-16")]

    def fetch_quote(self, symbol, expiration, strike, option_type):
        self.calls.append(("fetch_quote", symbol, expiration, strike, option_type))
        chain = make_chain(expiration=expiration)
        legs = chain["calls"] if option_type == "call" else chain["puts"]
        return next(leg for leg in legs if leg["strike"] == strike)


@pytest.fixture
def market_provider():
    return FakeMarketProvider()


@pytest.fixture
def macro_provider():
    return FakeMacroProvider()


@pytest.fixture
def options_provider():
    return FakeOptionsProvider()


@pytest.fixture
def slow_market_provider():
    return SlowMarketProvider(delay_s=5.0)


@pytest.fixture
def gateway(market_provider, macro_provider, options_provider):
    from finmodel_dsl.data.gateway import DataGateway

    return DataGateway(market=market_provider, macro=macro_provider, options=options_provider)


@pytest.fixture
def chain():
    return make_chain()


# =====================================================
# Model documents
# =====================================================

@pytest.fixture
def market_model() -> dict:
    """Fetch → close series → returns, with series/table/scalar outputs."""
    return {
        "version": "1.0",
        "steps": [
            {
                "id": "fetch_prices",
                "operation": "fetch_market_data",
                "params": {"symbol": "$symbol", "start_date": "2024-01-01", "end_date": "2024-01-31"},
            },
            {"id": "close_prices", "operation": "extract_price_series", "params": {"field": "close"}, "inputs": ["fetch_prices"]},
            {"id": "returns", "operation": "percent_change", "params": {"periods": 1}, "inputs": ["close_prices"]},
            {"id": "sma", "operation": "rolling_mean", "params": {"window": 3}, "inputs": ["close_prices"]},
            {"id": "clean_returns", "operation": "dropna", "inputs": ["returns"]},
            {"id": "avg_return", "operation": "mean", "inputs": ["clean_returns"]},
            {"id": "last_close", "operation": "tail", "params": {"n": 1}, "inputs": ["close_prices"]},
        ],
        "outputs": {
            "series": [
                {"id": "price", "label": "Price", "source": "close_prices"},
                {"id": "sma", "label": "SMA", "source": "sma", "type": "line"},
            ],
            "tables": [{"id": "bars", "label": "Bars", "source": "fetch_prices.data"}],
            "scalars": [
                {"id": "avg", "label": "Average Return", "source": "avg_return"},
                {"id": "last", "label": "Last Close", "source": "last_close"},
            ],
        },
    }
