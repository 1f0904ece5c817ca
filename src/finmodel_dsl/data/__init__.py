"""
Data-access layer.

Collaborator contracts, the cached `DataGateway` handed to runs, and the
pure helpers used by data-access primitives to shape provider responses
into plain sequences.

Components:
    - gateway     → MarketDataProvider / MacroDataProvider / OptionsDataProvider, DataGateway
    - cache       → TTLCache and cache key builders
    - market      → price/volume/date extraction, symbol helpers
    - macro       → FRED series ids, value extraction, alignment, resampling
    - derivatives → ATM strike/straddle, expected move, IV smile, option tickers
    - types       → TypedDict shapes of provider records
"""

from .cache import (
    TTLCache,
    macro_data_key,
    market_data_key,
    model_run_key,
    options_chain_key,
    options_quote_key,
)
from .derivatives import (
    build_option_ticker,
    calculate_expected_move,
    extract_implied_volatilities,
    find_atm_straddle,
    find_atm_strike,
    parse_option_ticker,
    sum_legs,
)
from .gateway import (
    DEFAULT_TTL_SECONDS,
    DataGateway,
    MacroDataProvider,
    MarketDataProvider,
    OptionsDataProvider,
)
from .macro import (
    FRED_SERIES,
    align_to_dates,
    calculate_yoy_change,
    extract_macro_dates,
    extract_macro_values,
    resample_macro_data,
)
from .market import (
    calculate_date_range,
    extract_date_labels,
    extract_price_series,
    extract_volume_series,
    normalize_symbol,
    validate_symbol,
)
from .types import (
    MacroDataSeries,
    MacroPoint,
    MarketBar,
    MarketDataSeries,
    OptionQuote,
    OptionsChain,
)

__all__ = [
    "TTLCache",
    "macro_data_key",
    "market_data_key",
    "model_run_key",
    "options_chain_key",
    "options_quote_key",
    "build_option_ticker",
    "calculate_expected_move",
    "extract_implied_volatilities",
    "find_atm_straddle",
    "find_atm_strike",
    "parse_option_ticker",
    "sum_legs",
    "DEFAULT_TTL_SECONDS",
    "DataGateway",
    "MacroDataProvider",
    "MarketDataProvider",
    "OptionsDataProvider",
    "FRED_SERIES",
    "align_to_dates",
    "calculate_yoy_change",
    "extract_macro_dates",
    "extract_macro_values",
    "resample_macro_data",
    "calculate_date_range",
    "extract_date_labels",
    "extract_price_series",
    "extract_volume_series",
    "normalize_symbol",
    "validate_symbol",
    "MacroDataSeries",
    "MacroPoint",
    "MarketBar",
    "MarketDataSeries",
    "OptionQuote",
    "OptionsChain",
]
