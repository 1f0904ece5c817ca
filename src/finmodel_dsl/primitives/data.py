"""
Data-access primitives.

`fetch_*` and `get_current_price` are the only primitives that suspend:
they are coroutines awaiting the run's `DataGateway`. The remaining
operations in this family are synchronous extractors that turn provider
records into plain sequences, numbers or small records.

A run without a gateway fails the first fetch step with `DataAccessError`.
"""

from __future__ import annotations

from typing import Any, Sequence

from finmodel_dsl.core.exceptions import DataAccessError
from finmodel_dsl.core.pipeline.context import RunContext
from finmodel_dsl.core.pipeline.primitive import PrimitiveGroup
from finmodel_dsl.data import derivatives, macro, market

from .base import arg, choice, number, rules, text


DATA = PrimitiveGroup("data")

_symbol = text("symbol", "symbol must be a string")


def _gateway(ctx: RunContext):
    if ctx.data is None:
        raise DataAccessError(
            message="No data gateway configured for this run",
            hint="Pass a DataGateway in the execution context.",
        )
    return ctx.data


def _input(args: Sequence[Any], operation: str) -> Any:
    return arg(args, 0, operation)


# ---------------------------------------------------------------------------
# Market
# ---------------------------------------------------------------------------

@DATA.operation(
    validate=rules(
        _symbol,
        text("start_date", "start_date must be a string (YYYY-MM-DD)"),
        text("end_date", "end_date must be a string (YYYY-MM-DD)"),
        text("interval", "interval must be a string", required=False),
    )
)
async def fetch_market_data(params, args, ctx):
    """Historical bars for `symbol` between `start_date` and `end_date`."""
    return await _gateway(ctx).fetch_market_data(
        params["symbol"],
        params["start_date"],
        params["end_date"],
        params.get("interval", "day"),
    )


@DATA.operation(
    validate=choice("field", market.PRICE_FIELDS, "field must be one of: open, high, low, close")
)
def extract_price_series(params, args, ctx):
    return market.extract_price_series(_input(args, "extract_price_series"), params.get("field", "close"))


@DATA.operation()
def extract_volume_series(params, args, ctx):
    return market.extract_volume_series(_input(args, "extract_volume_series"))


@DATA.operation()
def extract_date_labels(params, args, ctx):
    return market.extract_date_labels(_input(args, "extract_date_labels"))


@DATA.operation(validate=_symbol)
async def get_current_price(params, args, ctx):
    return await _gateway(ctx).get_current_price(params["symbol"])


# ---------------------------------------------------------------------------
# Macro
# ---------------------------------------------------------------------------

@DATA.operation(
    validate=rules(
        text("indicator", "indicator must be a string"),
        text("start_date", "start_date must be a string (YYYY-MM-DD)", required=False),
        text("end_date", "end_date must be a string (YYYY-MM-DD)", required=False),
        text("frequency", "frequency must be a string", required=False),
    )
)
async def fetch_macro_data(params, args, ctx):
    return await _gateway(ctx).fetch_macro_data(
        params["indicator"],
        start_date=params.get("start_date"),
        end_date=params.get("end_date"),
        frequency=params.get("frequency"),
    )


@DATA.operation()
def extract_macro_values(params, args, ctx):
    return macro.extract_macro_values(_input(args, "extract_macro_values"))


@DATA.operation()
def extract_macro_dates(params, args, ctx):
    return macro.extract_macro_dates(_input(args, "extract_macro_dates"))


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------

@DATA.operation(
    validate=rules(_symbol, text("expiration", "expiration must be a string", required=False))
)
async def fetch_options_chain(params, args, ctx):
    """One chain when `expiration` is given, otherwise every available chain."""
    expiration = params.get("expiration")
    chains = await _gateway(ctx).fetch_options_chain(params["symbol"], expiration)
    if expiration and chains:
        return chains[0]
    return chains


@DATA.operation(
    validate=rules(
        _symbol,
        text("expiration", "expiration must be a string"),
        number("strike", "strike must be a number", required=True),
        choice("type", derivatives.OPTION_TYPES, 'type must be "call" or "put"', required=True),
    )
)
async def fetch_option_quote(params, args, ctx):
    return await _gateway(ctx).fetch_option_quote(
        params["symbol"], params["expiration"], params["strike"], params["type"]
    )


@DATA.operation()
def find_atm_strike(params, args, ctx):
    return derivatives.find_atm_strike(_input(args, "find_atm_strike"))


@DATA.operation()
def find_atm_straddle(params, args, ctx):
    return derivatives.find_atm_straddle(_input(args, "find_atm_straddle"))


@DATA.operation()
def calculate_expected_move(params, args, ctx):
    return derivatives.calculate_expected_move(_input(args, "calculate_expected_move"))


@DATA.operation()
def extract_implied_volatilities(params, args, ctx):
    return derivatives.extract_implied_volatilities(_input(args, "extract_implied_volatilities"))


@DATA.operation()
def sum_call_volume(params, args, ctx):
    return derivatives.sum_legs(_input(args, "sum_call_volume"), "calls", "volume")


@DATA.operation()
def sum_put_volume(params, args, ctx):
    return derivatives.sum_legs(_input(args, "sum_put_volume"), "puts", "volume")


@DATA.operation()
def sum_call_open_interest(params, args, ctx):
    return derivatives.sum_legs(_input(args, "sum_call_open_interest"), "calls", "open_interest")


@DATA.operation()
def sum_put_open_interest(params, args, ctx):
    return derivatives.sum_legs(_input(args, "sum_put_open_interest"), "puts", "open_interest")
