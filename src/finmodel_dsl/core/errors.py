"""
finmodel-dsl: canonical error structures (v1)

This module defines the canonical error shape used across validation,
execution and output formatting. Errors are domain artifacts and part of
the operational contract of the engine, so they must be:

- explicit
- serializable
- traceable
- actionable

Every validator diagnostic and every failed run carries an `ErrorPayload`
with a stable `type` code from the catalog below.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# Canonical payload
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ErrorPayload:
    """
    Canonical error payload.

    Fields:
    - type: stable error code (never free text)
    - message: short human-readable message
    - details: structured data relevant for diagnosis
    - hint: suggested action for the model author or operator
    """

    type: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Return a serializable representation of the error."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Error type catalog (v1)
# ---------------------------------------------------------------------------

# Validation
STRUCTURAL_VALIDATION_ERROR = "STRUCTURAL_VALIDATION_ERROR"
PRIMITIVE_PARAM_ERROR = "PRIMITIVE_PARAM_ERROR"
UNKNOWN_OPERATION = "UNKNOWN_OPERATION"
UNKNOWN_STEP_REFERENCE = "UNKNOWN_STEP_REFERENCE"
CIRCULAR_DEPENDENCY = "CIRCULAR_DEPENDENCY"
INPUT_SCHEMA_VALIDATION_ERROR = "INPUT_SCHEMA_VALIDATION_ERROR"

# Execution
VARIABLE_RESOLUTION_ERROR = "VARIABLE_RESOLUTION_ERROR"
STEP_EXECUTION_ERROR = "STEP_EXECUTION_ERROR"
EXECUTION_TIMEOUT = "EXECUTION_TIMEOUT"
DATA_ACCESS_ERROR = "DATA_ACCESS_ERROR"
ENGINE_EXECUTION_ERROR = "ENGINE_EXECUTION_ERROR"

# Output formatting
OUTPUT_RESOLUTION_WARNING = "OUTPUT_RESOLUTION_WARNING"


# ---------------------------------------------------------------------------
# Factory helpers
# ---------------------------------------------------------------------------

def structural_validation_error(
    *,
    message: str,
    step: Optional[str] = None,
    hint: str = "Fix the model definition so it matches the DSL v1 structure.",
) -> ErrorPayload:
    return ErrorPayload(
        type=STRUCTURAL_VALIDATION_ERROR,
        message=message,
        details={"step": step},
        hint=hint,
    )


def primitive_param_error(
    *,
    message: str,
    step: Optional[str],
    operation: str,
    hint: str = "Adjust the step params to the ones accepted by the operation.",
) -> ErrorPayload:
    return ErrorPayload(
        type=PRIMITIVE_PARAM_ERROR,
        message=message,
        details={"step": step, "operation": operation},
        hint=hint,
    )


def unknown_operation(
    *,
    message: str,
    step: Optional[str],
    operation: str,
    available: List[str],
) -> ErrorPayload:
    return ErrorPayload(
        type=UNKNOWN_OPERATION,
        message=message,
        details={"step": step, "operation": operation, "available": list(available)},
        hint="Use one of the registered primitive operations.",
    )


def unknown_step_reference(
    *,
    message: str,
    step: Optional[str],
    reference: str,
    declared_later: bool = False,
) -> ErrorPayload:
    hint = (
        "Move the referenced step above the step that consumes it."
        if declared_later
        else "Declare the referenced step or fix the reference."
    )
    return ErrorPayload(
        type=UNKNOWN_STEP_REFERENCE,
        message=message,
        details={"step": step, "reference": reference, "declared_later": declared_later},
        hint=hint,
    )


def circular_dependency(*, message: str, path: List[str]) -> ErrorPayload:
    return ErrorPayload(
        type=CIRCULAR_DEPENDENCY,
        message=message,
        details={"path": list(path)},
        hint="Remove one of the inputs so the steps form an acyclic graph.",
    )


def execution_timeout(*, timeout_ms: int, steps_executed: int) -> ErrorPayload:
    return ErrorPayload(
        type=EXECUTION_TIMEOUT,
        message=f"Execution timeout after {timeout_ms}ms",
        details={"timeout_ms": timeout_ms, "steps_executed": steps_executed},
        hint="Reduce the amount of fetched data or raise timeout_ms for this run.",
    )


def output_resolution_warning(*, message: str, output_id: str, source: str) -> ErrorPayload:
    return ErrorPayload(
        type=OUTPUT_RESOLUTION_WARNING,
        message=message,
        details={"output": output_id, "source": source},
        hint="Point the output source at a step result with the expected shape.",
    )


def engine_execution_error(
    *,
    step: Optional[str] = None,
    exc_type: Optional[str] = None,
    exc_message: Optional[str] = None,
    hint: str = "Inspect the run events to diagnose the failure. No fallback is applied automatically.",
) -> ErrorPayload:
    return ErrorPayload(
        type=ENGINE_EXECUTION_ERROR,
        message=exc_message or "Unexpected failure while executing the model",
        details={
            "step": step,
            "exc_type": exc_type,
            "exc_message": exc_message,
        },
        hint=hint,
    )
