# src/finmodel_dsl/core/pipeline/__init__.py
"""
# Pipeline core of finmodel-dsl

This package defines the **canonical contracts** shared by the validator,
the engine and the primitive catalog.

## Components

- **context**
  - `RunContext`: per-run state (variables, data gateway, step results, events)

- **primitive**
  - `Primitive` (Protocol): validate/execute contract of an operation
  - `FunctionPrimitive`, `PrimitiveGroup`: function-backed primitives

- **registry**
  - `PrimitiveRegistry`: read-only name → primitive map

## Principles

- Primitives **do not know** the engine or the planner
- Primitives **do not control** execution order
- Step results flow **only through RunContext**

## Explicit limits

- Does not plan execution
- Does not run models
"""

from .context import RUN_STEP_ID, RunContext
from .primitive import FunctionPrimitive, Primitive, PrimitiveGroup
from .registry import DuplicatePrimitiveError, PrimitiveRegistry, RegistryFrozenError

__all__ = [
    "RUN_STEP_ID",
    "RunContext",
    "FunctionPrimitive",
    "Primitive",
    "PrimitiveGroup",
    "DuplicatePrimitiveError",
    "PrimitiveRegistry",
    "RegistryFrozenError",
]
