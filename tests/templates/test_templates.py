# tests/templates/test_templates.py
"""Tests for the bundled template catalog."""

import pytest

try:
    from finmodel_dsl.core.validation import validate_dsl_model, validate_inputs
    from finmodel_dsl.templates import TemplateNotFoundError, list_templates, load_template
except Exception as e:  # noqa: BLE001
    load_template = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing templates package. Import error: {_IMPORT_ERR}")


SLUGS = [
    "atm-straddle-expected-move",
    "implied-volatility-smile",
    "mean-reversion",
    "momentum-strategy",
    "yield-curve-spread",
]


def test_list_templates():
    _require_imports()
    assert list_templates() == SLUGS


@pytest.mark.parametrize("slug", SLUGS)
def test_every_template_is_a_clean_model(slug):
    _require_imports()
    tpl = load_template(slug)
    assert tpl.slug == slug
    assert tpl.name

    result = validate_dsl_model(tpl.model)
    assert result.errors == []
    assert result.warnings == []


@pytest.mark.parametrize("slug", SLUGS)
def test_steps_only_reference_earlier_steps(slug):
    _require_imports()
    seen = set()
    for step in load_template(slug).model.steps:
        assert set(step.inputs) <= seen
        seen.add(step.id)


def test_template_metadata_and_defaults():
    _require_imports()
    tpl = load_template("mean-reversion")
    assert tpl.lab_scope == "econ"
    assert tpl.difficulty == "intermediate"
    assert "mean-reversion" in tpl.tags
    assert tpl.default_inputs() == {
        "symbol": "SPY",
        "window": 20,
        "start_date": "2023-01-01",
        "end_date": "2024-01-01",
    }
    assert validate_inputs(tpl.default_inputs(), tpl.input_schema).valid


def test_required_input_without_default_is_reported():
    _require_imports()
    tpl = load_template("atm-straddle-expected-move")
    assert tpl.default_inputs() == {"symbol": "SPY"}

    result = validate_inputs(tpl.default_inputs(), tpl.input_schema)
    assert not result.valid
    assert len(result.errors) == 1
    assert "expiration" in result.errors[0]


def test_to_dict_carries_the_model():
    _require_imports()
    d = load_template("yield-curve-spread").to_dict()
    assert d["slug"] == "yield-curve-spread"
    assert d["model"]["version"] == "1.0"
    assert [s["id"] for s in d["model"]["steps"]][:2] == ["fetch_10y", "fetch_2y"]


def test_unknown_slug():
    _require_imports()
    with pytest.raises(TemplateNotFoundError) as ei:
        load_template("does-not-exist")
    assert "Unknown template: 'does-not-exist'" in str(ei.value)
    assert "momentum-strategy" in str(ei.value)
