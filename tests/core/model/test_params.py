# tests/core/model/test_params.py
"""
Tests for the step parameter tagged union.

Covers parsing of ``"$name"`` leaves into `VariableRef`, resolution
against run variables, the `DEFERRED` validation view and the
round-trip back to authoring form.
"""

import pytest

try:
    from finmodel_dsl.core.model.params import (
        DEFERRED,
        Literal,
        Nested,
        ParamList,
        VariableRef,
        is_deferred,
        parse_param,
        parse_params,
    )
    from finmodel_dsl.core.exceptions import VariableResolutionError
except Exception as e:  # noqa: BLE001
    parse_params = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing params module. Implement src/finmodel_dsl/core/model/params.py\n"
            f"Import error: {_IMPORT_ERR}"
        )


RAW = {
    "symbol": "$symbol",
    "window": 20,
    "fields": ["close", "$extra"],
    "range": {"start": "$start_date", "end": "2024-12-31"},
}


def test_parse_builds_the_union():
    _require_imports()
    p = parse_params(RAW)

    assert isinstance(p, Nested)
    assert p.fields["symbol"] == VariableRef("symbol")
    assert p.fields["window"] == Literal(20)
    assert p.fields["fields"] == ParamList((Literal("close"), VariableRef("extra")))
    assert isinstance(p.fields["range"], Nested)


def test_lone_dollar_is_a_literal():
    _require_imports()
    assert parse_param("$") == Literal("$")
    assert parse_param("USD $5") == Literal("USD $5")


def test_none_params_are_empty():
    _require_imports()
    p = parse_params(None)
    assert len(p) == 0
    assert p.resolve({}) == {}


def test_non_mapping_params_raise_type_error():
    _require_imports()
    with pytest.raises(TypeError):
        parse_params(["window", 3])


def test_variables_are_collected_once_in_order():
    _require_imports()
    p = parse_params({**RAW, "again": "$symbol"})
    assert p.variables() == ("symbol", "extra", "start_date")


def test_resolve_substitutes_variables():
    _require_imports()
    variables = {"symbol": "SPY", "extra": "volume", "start_date": "2024-01-01"}

    out = parse_params(RAW).resolve(variables)

    assert out == {
        "symbol": "SPY",
        "window": 20,
        "fields": ["close", "volume"],
        "range": {"start": "2024-01-01", "end": "2024-12-31"},
    }
    assert variables == {"symbol": "SPY", "extra": "volume", "start_date": "2024-01-01"}


def test_resolve_missing_variable_names_the_parameter_path():
    _require_imports()
    with pytest.raises(VariableResolutionError) as ei:
        parse_params(RAW).resolve({"symbol": "SPY", "extra": "volume"})

    exc = ei.value
    assert exc.details == {"parameter": "range.start", "variable": "start_date"}
    assert '"$start_date"' in exc.message


def test_list_paths_use_indexes():
    _require_imports()
    with pytest.raises(VariableResolutionError) as ei:
        parse_params({"fields": ["close", "$extra"]}).resolve({})
    assert ei.value.details["parameter"] == "fields[1]"


def test_validation_view_uses_deferred():
    _require_imports()
    view = parse_params(RAW).validation_view()

    assert view["symbol"] is DEFERRED
    assert is_deferred(view["fields"][1])
    assert view["window"] == 20
    assert repr(DEFERRED) == "DEFERRED"


def test_to_raw_restores_authoring_form():
    _require_imports()
    assert parse_params(RAW).to_raw() == RAW


def test_nested_fields_are_read_only():
    _require_imports()
    p = parse_params({"a": 1})
    with pytest.raises(TypeError):
        p.fields["a"] = Literal(2)
