# tests/primitives/test_catalog.py
"""
Tests for the built-in primitive catalog.

The catalog is built once, frozen and shared. Every primitive follows
the validate/execute contract and belongs to one of six families.
"""

import pytest

try:
    from finmodel_dsl.primitives import (
        PRIMITIVES,
        build_registry,
        get_primitive,
        get_primitives_by_category,
        has_primitive,
        list_primitives,
    )
    from finmodel_dsl.core.model.params import DEFERRED
    from finmodel_dsl.core.pipeline.primitive import Primitive
    from finmodel_dsl.core.pipeline.registry import RegistryFrozenError
except Exception as e:  # noqa: BLE001
    PRIMITIVES = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing primitive catalog. Import error: {_IMPORT_ERR}")


def test_catalog_is_frozen_and_sorted():
    _require_imports()
    assert PRIMITIVES.frozen is True
    assert list_primitives() == sorted(list_primitives())
    with pytest.raises(RegistryFrozenError):
        PRIMITIVES.add(get_primitive("add"))


def test_families():
    _require_imports()
    cats = get_primitives_by_category()
    assert list(cats) == ["math", "stats", "returns", "analysis", "filters", "data"]
    assert cats["math"][:4] == ["add", "subtract", "multiply", "divide"]
    assert "rolling_mean" in cats["stats"]
    assert "drawdown" in cats["returns"]
    assert "linear_regression" in cats["analysis"]
    assert "where" in cats["filters"]
    assert "fetch_market_data" in cats["data"]
    assert sum(len(v) for v in cats.values()) == len(PRIMITIVES)


def test_lookup_helpers():
    _require_imports()
    assert has_primitive("mean")
    assert not has_primitive("teleport")
    assert get_primitive("abs").name == "abs"


def test_every_primitive_honours_the_contract():
    """Validation never raises, even for params it does not understand."""
    _require_imports()
    for name in list_primitives():
        p = get_primitive(name)
        assert isinstance(p, Primitive)
        assert p.category in {"math", "stats", "returns", "analysis", "filters", "data"}
        assert isinstance(p.validate({}), list)
        assert isinstance(p.validate({"window": "x", "n": -1, "scalar": DEFERRED}), list)


def test_build_registry_gives_an_independent_copy():
    _require_imports()
    fresh = build_registry()
    assert fresh is not PRIMITIVES
    assert fresh.names() == PRIMITIVES.names()
