# tests/core/outputs/test_formatter.py
"""
Tests for the output formatter.

Formatting never fails a run: an output whose source is missing or has
the wrong shape degrades (empty series/table, NaN scalar) and a warning
is recorded.
"""

import math

import numpy as np
import pytest

try:
    from finmodel_dsl.core.outputs.formatter import (
        OUTPUT_STEP_ID,
        format_outputs,
        infer_columns,
        resolve_source,
        title_label,
    )
    from finmodel_dsl.core.exceptions import OutputResolutionError
except Exception as e:  # noqa: BLE001
    format_outputs = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing formatter. Implement src/finmodel_dsl/core/outputs/formatter.py\n"
            f"Import error: {_IMPORT_ERR}"
        )


RESULTS = {
    "closes": [100.0, 101.5, None],
    "regression": {"slope": 0.5, "intercept": 1.0, "predicted": [1.0, 1.5]},
    "ivs": {"strikes": [95.0, 100.0], "call_ivs": [0.25, 0.22], "put_ivs": [0.27, 0.23]},
    "bars": [{"date": "2024-01-02", "close": 10.0, "halted": False, "venue": "XNYS"}],
    "avg": np.float64(1.25),
    "tail": [42.0],
    "label": "bullish",
    "points": [{"x": "2024-01-01", "y": 1.0}, {"x": "2024-01-02", "y": 2.0}],
    "where": [0, 3],
}


def test_resolve_source_walks_fields_and_indexes():
    _require_imports()
    assert resolve_source(RESULTS, "closes") == [100.0, 101.5, None]
    assert resolve_source(RESULTS, "regression.slope") == 0.5
    assert resolve_source(RESULTS, "regression.predicted.1") == 1.5


@pytest.mark.parametrize(
    "source, message",
    [
        ("ghost", 'Source step "ghost" not found in results'),
        ("regression.beta", 'Field "beta" not found in source "regression"'),
        ("regression.predicted.9", 'Field "9" not found in source "regression.predicted"'),
    ],
)
def test_resolve_source_errors(source, message):
    _require_imports()
    with pytest.raises(OutputResolutionError) as ei:
        resolve_source(RESULTS, source)
    assert ei.value.message == message


def test_series_from_numeric_arrays_and_points():
    _require_imports()
    out = format_outputs(RESULTS, {
        "series": [
            {"id": "px", "label": "Price", "source": "closes", "color": "#f00"},
            {"id": "fit", "label": "Fit", "source": "regression.predicted", "type": "area"},
            {"id": "raw", "label": "Raw", "source": "points"},
        ]
    })

    px, fit, raw = out["series"]
    assert px == {
        "id": "px",
        "label": "Price",
        "data": [{"x": 0, "y": 100.0}, {"x": 1, "y": 101.5}, {"x": 2, "y": None}],
        "color": "#f00",
        "type": "line",
    }
    assert fit["type"] == "area"
    assert raw["data"] == RESULTS["points"]
    assert "tables" not in out and "scalars" not in out


def test_tables_from_records_and_columnar_mappings():
    _require_imports()
    out = format_outputs(RESULTS, {
        "tables": [
            {"id": "bars", "label": "Bars", "source": "bars"},
            {"id": "smile", "label": "Smile", "source": "ivs", "columns": ["strikes", "call_ivs"]},
            {"id": "hits", "label": "Hits", "source": "where"},
        ]
    })

    bars, smile, hits = out["tables"]
    assert bars["columns"] == [
        {"key": "date", "label": "Date", "type": "date"},
        {"key": "close", "label": "Close", "type": "number"},
        {"key": "halted", "label": "Halted", "type": "boolean"},
        {"key": "venue", "label": "Venue", "type": "string"},
    ]
    assert smile["columns"] == [
        {"key": "strikes", "label": "Strikes", "type": "number"},
        {"key": "call_ivs", "label": "Call Ivs", "type": "number"},
    ]
    assert smile["rows"][1] == {"strikes": 100.0, "call_ivs": 0.22, "put_ivs": 0.23}
    assert hits["rows"] == [{"value": 0}, {"value": 3}]
    assert hits["columns"] == [{"key": "value", "label": "Value", "type": "number"}]


def test_scalars_accept_numbers_strings_and_single_element_lists():
    _require_imports()
    out = format_outputs(RESULTS, {
        "scalars": [
            {"id": "avg", "label": "Avg", "source": "avg"},
            {"id": "last", "label": "Last", "source": "tail"},
            {"id": "signal", "label": "Signal", "source": "label"},
            {"id": "slope", "label": "Slope", "source": "regression.slope"},
        ]
    })

    assert out["scalars"] == {"avg": 1.25, "last": 42.0, "signal": "bullish", "slope": 0.5}
    assert type(out["scalars"]["avg"]) is float


def test_degraded_outputs_become_warnings(run_ctx):
    _require_imports()
    out = format_outputs(
        RESULTS,
        {
            "series": [
                {"id": "s1", "label": "S1", "source": "avg"},
                {"id": "s2", "label": "S2", "source": "bars"},
            ],
            "tables": [{"id": "t1", "label": "T1", "source": "ghost"}],
            "scalars": [{"id": "c1", "label": "C1", "source": "closes"}],
        },
        ctx=run_ctx,
    )

    assert out["series"][0]["data"] == [] and out["series"][1]["data"] == []
    assert out["tables"][0] == {"id": "t1", "label": "T1", "columns": [], "rows": []}
    assert math.isnan(out["scalars"]["c1"])
    assert out["metadata"]["warnings"] == [
        'Series "s1" source "avg" did not return an array',
        'Series "s2" source "bars" did not return a numeric array',
        'Source step "ghost" not found in results',
        'Scalar "c1" source "closes" did not return a scalar value',
    ]

    assert run_ctx.warnings[OUTPUT_STEP_ID] == out["metadata"]["warnings"]
    degraded = [e for e in run_ctx.events if e["message"] == "output_degraded"]
    assert [e["output"] for e in degraded] == ["s1", "s2", "t1", "c1"]
    assert degraded[2]["error"]["type"] == "OUTPUT_RESOLUTION_WARNING"
    assert degraded[2]["error"]["details"] == {"output": "t1", "source": "ghost"}


def test_step_results_are_not_mutated():
    _require_imports()
    results = {"bars": [{"a": 1}]}
    out = format_outputs(results, {"tables": [{"id": "t", "label": "T", "source": "bars"}]})
    out["tables"][0]["rows"][0]["a"] = 99
    assert results == {"bars": [{"a": 1}]}


def test_metadata_shape():
    _require_imports()
    meta = format_outputs({}, {"scalars": []})["metadata"]
    assert set(meta) == {"computed_at", "data_sources", "warnings"}
    assert meta["data_sources"] == []


def test_helpers():
    _require_imports()
    assert title_label("call_iv") == "Call Iv"
    assert title_label("close") == "Close"
    assert infer_columns([]) == []
    assert infer_columns([1.0, 2.0]) == [{"key": "value", "label": "Value", "type": "string"}]
