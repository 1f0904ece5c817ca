# tests/core/engine/test_engine.py
"""
Tests for the execution engine.

`execute_dsl` validates, plans and runs a model under a global timeout,
then formats the outputs. It reports model, input and primitive problems
on the `ExecutionResult` instead of raising.

Covers:
- happy path with a fake data gateway (series, tables, scalars)
- validation failures returned before anything runs
- fail-fast step failures with their structured payload
- variable resolution and run-time param re-validation
- the global timeout, with real cancellation of the pending fetch
- debug events, isolation of concurrent runs, JSON-safe results
"""

import asyncio
import math
import time

import pytest

try:
    from finmodel_dsl.core.engine import ExecutionContext, execute_dsl, execute_dsl_sync
    from finmodel_dsl.core.errors import (
        ENGINE_EXECUTION_ERROR,
        EXECUTION_TIMEOUT,
        PRIMITIVE_PARAM_ERROR,
        STEP_EXECUTION_ERROR,
        STRUCTURAL_VALIDATION_ERROR,
        UNKNOWN_OPERATION,
        VARIABLE_RESOLUTION_ERROR,
    )
    from finmodel_dsl.core.pipeline.primitive import FunctionPrimitive
    from finmodel_dsl.core.pipeline.registry import PrimitiveRegistry
    from finmodel_dsl.data.gateway import DataGateway
    from finmodel_dsl.primitives import GROUPS
except Exception as e:  # noqa: BLE001
    execute_dsl = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing engine. Implement src/finmodel_dsl/core/engine/engine.py\n"
            f"Import error: {_IMPORT_ERR}"
        )


CLOSES = [100.0, 102.0, 101.0, 105.0, 107.0, 104.0, 108.0, 110.0]


def _run(model, **context):
    return asyncio.run(execute_dsl(model, ExecutionContext(**context)))


def _registry_with(*extra):
    reg = PrimitiveRegistry()
    for group in GROUPS:
        reg.extend(group.members())
    reg.extend(extra)
    return reg.freeze()


def _busy(params, args, ctx):
    time.sleep(0.03)
    return 1.0


def _explode(params, args, ctx):
    raise ZeroDivisionError("boom")


def _chain_model(operation, n):
    steps = [{"id": "s0", "operation": operation}]
    steps += [{"id": f"s{i}", "operation": operation, "inputs": [f"s{i - 1}"]} for i in range(1, n)]
    return {
        "version": "1.0",
        "steps": steps,
        "outputs": {"scalars": [{"id": "last", "label": "Last", "source": f"s{n - 1}"}]},
    }


# -----------------------------
# Happy path
# -----------------------------

def test_market_model_runs_end_to_end(market_model, gateway, market_provider):
    _require_imports()
    result = _run(market_model, inputs={"symbol": " spy "}, data=gateway)

    assert result.success is True, result.error
    assert result.error is None and result.error_payload is None
    assert result.steps_executed == 7
    assert result.runtime_ms >= 0
    assert market_provider.calls[0][:2] == ("fetch_bars", "SPY")

    out = result.output
    price, sma = out["series"]
    assert price["id"] == "price" and price["type"] == "line"
    assert [p["y"] for p in price["data"]] == CLOSES
    assert [p["x"] for p in price["data"]] == list(range(8))
    assert math.isnan(sma["data"][0]["y"]) and math.isnan(sma["data"][1]["y"])
    assert sma["data"][2]["y"] == pytest.approx((100 + 102 + 101) / 3)

    bars = out["tables"][0]
    assert len(bars["rows"]) == 8
    assert [c["key"] for c in bars["columns"]] == ["date", "open", "high", "low", "close", "volume"]
    assert bars["columns"][0]["type"] == "date"
    assert bars["columns"][4] == {"key": "close", "label": "Close", "type": "number"}

    returns = [(b - a) / a * 100 for a, b in zip(CLOSES, CLOSES[1:])]
    assert out["scalars"]["avg"] == pytest.approx(sum(returns) / len(returns))
    assert out["scalars"]["last"] == 110.0

    assert out["metadata"]["warnings"] == []
    assert out["metadata"]["computed_at"].endswith("+00:00")


def test_result_events_trace_the_run(market_model, gateway):
    _require_imports()
    result = _run(market_model, inputs={"symbol": "SPY"}, data=gateway)

    messages = [e["message"] for e in result.events]
    assert messages == ["run_started", "run_finished"]
    assert result.events[0]["timeout_ms"] == 30000
    assert result.events[-1]["success"] is True
    assert all(e["run_id"] == result.run_id for e in result.events)
    assert len(result.model_hash) == 64


def test_debug_adds_order_and_step_events(market_model, gateway):
    _require_imports()
    result = _run(market_model, inputs={"symbol": "SPY"}, data=gateway, debug=True)

    order = next(e for e in result.events if e["message"] == "execution_order")
    assert order["order"] == [
        "fetch_prices", "close_prices", "returns", "sma", "clean_returns", "avg_return", "last_close",
    ]
    completed = [e for e in result.events if e["message"] == "step_completed"]
    assert [e["step_id"] for e in completed] == order["order"]
    assert completed[1]["result_type"] == "array" and completed[1]["result_size"] == 8
    assert completed[0]["result_type"] == "object"
    assert completed[5]["result_type"] == "float"


def test_debug_can_come_from_configuration(market_model, gateway):
    _require_imports()
    result = asyncio.run(
        execute_dsl(
            market_model,
            ExecutionContext(inputs={"symbol": "SPY"}, data=gateway),
            config={"engine": {"debug": True}},
        )
    )
    assert any(e["message"] == "step_completed" for e in result.events)


def test_cached_fetch_is_shared_between_runs(market_model, gateway, market_provider):
    _require_imports()
    first = _run(market_model, inputs={"symbol": "SPY"}, data=gateway)
    second = _run(market_model, inputs={"symbol": "spy"}, data=gateway)

    assert first.success and second.success
    assert [c[0] for c in market_provider.calls] == ["fetch_bars"]
    assert first.run_id != second.run_id


def test_concurrent_runs_are_isolated(market_model, gateway):
    _require_imports()

    async def both():
        return await asyncio.gather(
            execute_dsl(market_model, ExecutionContext(inputs={"symbol": "SPY"}, data=gateway)),
            execute_dsl(market_model, ExecutionContext(inputs={"symbol": "QQQ"}, data=gateway)),
        )

    a, b = asyncio.run(both())

    assert a.success and b.success
    assert a.run_id != b.run_id
    assert a.steps_executed == b.steps_executed == 7
    assert {e["run_id"] for e in a.events} == {a.run_id}


def test_sync_wrapper(market_model, gateway):
    _require_imports()
    result = execute_dsl_sync(market_model, ExecutionContext(inputs={"symbol": "SPY"}, data=gateway))
    assert result.success is True


def test_to_dict_is_json_safe(market_model, gateway):
    _require_imports()
    d = _run(market_model, inputs={"symbol": "SPY"}, data=gateway).to_dict()

    assert d["success"] is True
    assert d["output"]["series"][1]["data"][0]["y"] is None
    assert d["error_payload"] is None
    assert isinstance(d["events"], list)


# -----------------------------
# Validation failures
# -----------------------------

def test_invalid_model_is_returned_not_raised():
    _require_imports()
    model = {
        "version": "1.0",
        "steps": [{"id": "a", "operation": "teleport"}, {"id": "b", "operation": "mean", "inputs": ["zzz"]}],
        "outputs": {"scalars": [{"id": "v", "label": "V", "source": "b"}]},
    }

    result = _run(model)

    assert result.success is False
    assert result.steps_executed == 0
    assert result.error.startswith('DSL validation failed: a: Unknown operation "teleport"')
    assert 'b: Input references unknown step "zzz"' in result.error
    assert result.error_payload.type == UNKNOWN_OPERATION
    assert len(result.error_payload.details["errors"]) == 2
    assert result.events == []


def test_cycle_is_a_validation_failure():
    _require_imports()
    model = {
        "version": "1.0",
        "steps": [
            {"id": "a", "operation": "mean", "inputs": ["b"]},
            {"id": "b", "operation": "mean", "inputs": ["a"]},
        ],
        "outputs": {"scalars": [{"id": "v", "label": "V", "source": "b"}]},
    }
    result = _run(model)
    assert result.success is False
    assert "Circular dependency detected: a -> b -> a" in result.error


def test_non_mapping_model_is_a_validation_failure():
    _require_imports()
    result = _run("not a model")
    assert result.success is False
    assert result.error_payload.type == STRUCTURAL_VALIDATION_ERROR


# -----------------------------
# Run-time failures
# -----------------------------

def test_missing_variable_fails_before_the_step_runs(market_model, gateway, market_provider):
    _require_imports()
    result = _run(market_model, data=gateway)

    assert result.success is False
    assert result.steps_executed == 0
    assert result.error_payload.type == VARIABLE_RESOLUTION_ERROR
    assert result.error_payload.details["step_id"] == "fetch_prices"
    assert result.error_payload.details["variable"] == "symbol"
    assert market_provider.calls == []
    assert [e["message"] for e in result.events] == ["run_started", "step_failed", "run_finished"]


def test_resolved_params_are_revalidated(market_model, gateway):
    _require_imports()
    market_model["steps"][3]["params"] = {"window": "$window"}

    result = _run(market_model, inputs={"symbol": "SPY", "window": "wide"}, data=gateway)

    assert result.success is False
    assert result.error_payload.type == PRIMITIVE_PARAM_ERROR
    assert result.error == 'Step "sma" (rolling_mean) has invalid params: window must be a positive integer'
    assert result.steps_executed == 3


def test_primitive_failure_is_wrapped_with_step_and_operation(market_model, options_provider):
    _require_imports()
    result = _run(market_model, inputs={"symbol": "SPY"}, data=DataGateway(options=options_provider))

    assert result.success is False
    assert result.error == 'Step "fetch_prices" (fetch_market_data) failed: No market data provider configured'
    payload = result.error_payload
    assert payload.type == STEP_EXECUTION_ERROR
    assert payload.details["step_id"] == "fetch_prices"
    assert payload.details["operation"] == "fetch_market_data"
    assert payload.details["cause"] == "DataAccessError"
    assert payload.details["cause_code"] == "DATA_ACCESS_ERROR"


def test_fail_fast_stops_at_the_first_failure():
    _require_imports()
    registry = _registry_with(
        FunctionPrimitive(name="one", category="test", run=lambda p, a, c: 1.0),
        FunctionPrimitive(name="explode", category="test", run=_explode),
    )
    model = {
        "version": "1.0",
        "steps": [
            {"id": "a", "operation": "one"},
            {"id": "b", "operation": "one", "inputs": ["a"]},
            {"id": "c", "operation": "explode", "inputs": ["b"]},
            {"id": "d", "operation": "one", "inputs": ["c"]},
        ],
        "outputs": {"scalars": [{"id": "v", "label": "V", "source": "d"}]},
    }

    result = asyncio.run(execute_dsl(model, registry=registry))

    assert result.success is False
    assert result.steps_executed == 2
    assert result.error == 'Step "c" (explode) failed: boom'
    assert result.error_payload.details["cause"] == "ZeroDivisionError"
    assert result.error_payload.details["cause_code"] is None
    failed = next(e for e in result.events if e["message"] == "step_failed")
    assert failed["step_id"] == "c"
    assert failed["level"] == "ERROR"
    assert result.error_payload.type != ENGINE_EXECUTION_ERROR


def test_default_registry_rejects_custom_operations():
    _require_imports()
    result = _run(_chain_model("busy", 2))
    assert result.error_payload.type == UNKNOWN_OPERATION


# -----------------------------
# Timeout
# -----------------------------

def test_timeout_cancels_a_pending_fetch(market_model, slow_market_provider):
    _require_imports()
    gateway = DataGateway(market=slow_market_provider)

    started = time.perf_counter()
    result = _run(market_model, inputs={"symbol": "SPY"}, data=gateway, timeout_ms=50)
    elapsed = time.perf_counter() - started

    assert result.success is False
    assert result.error == "Execution timeout after 50ms"
    assert result.error_payload.type == EXECUTION_TIMEOUT
    assert result.error_payload.details == {"timeout_ms": 50, "steps_executed": 0}
    assert result.steps_executed == 0
    assert slow_market_provider.cancelled is True
    assert elapsed < 2.0
    assert "run_timeout" in [e["message"] for e in result.events]


def test_timeout_default_comes_from_configuration(market_model, slow_market_provider):
    _require_imports()
    gateway = DataGateway(market=slow_market_provider)

    result = asyncio.run(
        execute_dsl(
            market_model,
            ExecutionContext(inputs={"symbol": "SPY"}, data=gateway),
            config={"engine": {"default_timeout_ms": 50}},
        )
    )

    assert result.error_payload.type == EXECUTION_TIMEOUT
    assert result.error_payload.details["timeout_ms"] == 50


def test_timeout_is_observed_between_synchronous_steps():
    """Blocking primitives cannot be interrupted, but the run stops at the next step boundary."""
    _require_imports()
    registry = _registry_with(FunctionPrimitive(name="busy", category="test", run=_busy))

    result = asyncio.run(
        execute_dsl(_chain_model("busy", 8), ExecutionContext(timeout_ms=40), registry=registry)
    )

    assert result.success is False
    assert result.error_payload.type == EXECUTION_TIMEOUT
    assert 1 <= result.steps_executed < 8
