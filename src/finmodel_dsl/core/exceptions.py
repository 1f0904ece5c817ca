"""
finmodel-dsl: canonical exceptions (v1)

Typed internal exceptions raised by the planner, the executor, the
primitives and the output formatter.

Goals:
- Let the engine and primitives raise semantic, typed exceptions
- Map every exception deterministically to an `ErrorPayload`
- Avoid generic ValueError/RuntimeError on critical guardrails

Rules:
- Exceptions carry only structured (serializable) data in `details`
- Messages are short and human
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Optional

from .errors import (
    CIRCULAR_DEPENDENCY,
    DATA_ACCESS_ERROR,
    ENGINE_EXECUTION_ERROR,
    EXECUTION_TIMEOUT,
    INPUT_SCHEMA_VALIDATION_ERROR,
    OUTPUT_RESOLUTION_WARNING,
    PRIMITIVE_PARAM_ERROR,
    STEP_EXECUTION_ERROR,
    STRUCTURAL_VALIDATION_ERROR,
    UNKNOWN_OPERATION,
    UNKNOWN_STEP_REFERENCE,
    VARIABLE_RESOLUTION_ERROR,
    ErrorPayload,
)


@dataclass(eq=False)
class DslException(Exception):
    """Base class for internal DSL exceptions.

    Important:
    - Always carry structured data in `details`
    - Never embed stack traces in error payloads
    - `code` is the stable catalog type used by `to_payload`
    """

    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None

    code: ClassVar[str] = ENGINE_EXECUTION_ERROR

    def __str__(self) -> str:
        return self.message

    def to_payload(self) -> ErrorPayload:
        return ErrorPayload(
            type=self.code,
            message=self.message,
            details=dict(self.details),
            hint=self.hint,
        )


# ---------------------------------------------------------------------------
# Validation / structure
# ---------------------------------------------------------------------------

class StructuralValidationError(DslException):
    """Model does not satisfy the structural rules of the DSL."""

    code = STRUCTURAL_VALIDATION_ERROR


class PrimitiveParamError(DslException):
    """Step params were rejected by the primitive's own validation."""

    code = PRIMITIVE_PARAM_ERROR


class UnknownOperationError(DslException):
    """Operation name is not registered."""

    code = UNKNOWN_OPERATION

    @property
    def available(self) -> List[str]:
        return list(self.details.get("available", []))


class UnknownStepReferenceError(DslException):
    """A step input or output source names a step that does not exist."""

    code = UNKNOWN_STEP_REFERENCE


class CircularDependencyError(DslException):
    """Step dependency graph contains a cycle."""

    code = CIRCULAR_DEPENDENCY

    @property
    def path(self) -> List[str]:
        return list(self.details.get("path", []))


class InputSchemaValidationError(DslException):
    """Run inputs do not satisfy the model's input schema."""

    code = INPUT_SCHEMA_VALIDATION_ERROR

    @property
    def errors(self) -> List[str]:
        return list(self.details.get("errors", []))


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

class VariableResolutionError(DslException):
    """A parameter references a run input variable that was not supplied."""

    code = VARIABLE_RESOLUTION_ERROR


class StepExecutionError(DslException):
    """Primitive failure wrapped with the step id and operation name."""

    code = STEP_EXECUTION_ERROR

    @property
    def step_id(self) -> Optional[str]:
        return self.details.get("step_id")

    @property
    def operation(self) -> Optional[str]:
        return self.details.get("operation")


class ExecutionTimeoutError(DslException):
    """Run exceeded its global timeout."""

    code = EXECUTION_TIMEOUT

    @property
    def timeout_ms(self) -> Optional[int]:
        return self.details.get("timeout_ms")


class DataAccessError(DslException):
    """A data-access primitive could not reach its collaborator."""

    code = DATA_ACCESS_ERROR


# ---------------------------------------------------------------------------
# Output formatting
# ---------------------------------------------------------------------------

class OutputResolutionError(DslException):
    """Output source path could not be resolved against step results."""

    code = OUTPUT_RESOLUTION_WARNING


class OutputResolutionWarning(DslException):
    """Resolved value has the wrong shape for its output.

    Raised by the per-kind coercion helpers and always caught by
    `format_outputs`, which degrades the output and records a warning.
    """

    code = OUTPUT_RESOLUTION_WARNING
