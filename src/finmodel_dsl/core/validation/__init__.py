"""
Validation layer.

Batch validators that never raise: they return a `ValidationResult`
with every error (message + structured payload) and warning found.

Components:
    - validator → validate_dsl_model (structure, params, references, cycles)
    - inputs    → validate_inputs, prepare_inputs (run inputs vs. input schema)
    - cycles    → find_cycles over the step dependency graph
    - result    → ValidationResult
"""

from .cycles import find_cycles, format_cycle
from .inputs import prepare_inputs, validate_inputs
from .result import ValidationResult
from .validator import STEP_ID_RE, validate_dsl_model

__all__ = [
    "find_cycles",
    "format_cycle",
    "prepare_inputs",
    "validate_inputs",
    "ValidationResult",
    "STEP_ID_RE",
    "validate_dsl_model",
]
