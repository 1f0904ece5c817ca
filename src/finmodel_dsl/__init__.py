"""
finmodel-dsl: a declarative DSL engine for financial analytics models.

A model is a graph of named steps, each invoking one primitive from a
fixed catalog (math, statistics, returns, analysis, filters, data
access). The runtime validates the graph, runs it in dependency order
under a global timeout and maps step results onto typed series, table
and scalar outputs.

High-level architecture:
    - core.model      → model types and document loading
    - core.validation → model and input validation
    - core.engine     → planning and execution
    - core.outputs    → output formatting
    - primitives      → built-in primitive catalog
    - data            → collaborator protocols, gateway, TTL cache
    - templates       → bundled seed models

Explicit limits:
    - Ships no network adapters: data providers are injected by callers
    - Does not persist models or runs
"""

from .core.engine import ExecutionContext, ExecutionResult, execute_dsl, execute_dsl_sync
from .core.model import DslModel, load_model_document
from .core.outputs import format_outputs
from .core.validation import ValidationResult, prepare_inputs, validate_dsl_model, validate_inputs

__all__ = [
    "ExecutionContext",
    "ExecutionResult",
    "execute_dsl",
    "execute_dsl_sync",
    "DslModel",
    "load_model_document",
    "format_outputs",
    "ValidationResult",
    "prepare_inputs",
    "validate_dsl_model",
    "validate_inputs",
]
