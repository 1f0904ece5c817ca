"""
Primitive catalog.

Builds the process-wide `PrimitiveRegistry` once at import, from the six
operation families, and freezes it. The registry is shared read-only by
every validation and every run.

Families:
    - math     → elementwise arithmetic (`arithmetic`)
    - stats    → aggregates and rolling windows (`stats`)
    - returns  → return/risk transforms (`returns`)
    - analysis → two-series statistics (`analysis`)
    - filters  → filtering and reshaping (`filters`)
    - data     → data-access adapters and extractors (`data`)
"""

from __future__ import annotations

from typing import Dict, List

from finmodel_dsl.core.pipeline.primitive import Primitive
from finmodel_dsl.core.pipeline.registry import PrimitiveRegistry

from .analysis import ANALYSIS
from .arithmetic import MATH
from .data import DATA
from .filters import FILTERS
from .returns import RETURNS
from .stats import STATS

GROUPS = (MATH, STATS, RETURNS, ANALYSIS, FILTERS, DATA)


def build_registry() -> PrimitiveRegistry:
    """Fresh frozen registry holding every built-in primitive."""
    registry = PrimitiveRegistry()
    for group in GROUPS:
        registry.extend(group.members())
    return registry.freeze()


PRIMITIVES: PrimitiveRegistry = build_registry()


def get_primitive(name: str) -> Primitive:
    return PRIMITIVES.get(name)


def has_primitive(name: str) -> bool:
    return PRIMITIVES.has(name)


def list_primitives() -> List[str]:
    return PRIMITIVES.names()


def get_primitives_by_category() -> Dict[str, List[str]]:
    return PRIMITIVES.by_category()


__all__ = [
    "GROUPS",
    "PRIMITIVES",
    "build_registry",
    "get_primitive",
    "has_primitive",
    "list_primitives",
    "get_primitives_by_category",
]
