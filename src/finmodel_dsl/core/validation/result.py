"""
Validation result.

Validators collect diagnostics in batch and never raise: every problem
found is reported at once as a human message plus a structured
`ErrorPayload` carrying a stable catalog code.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..errors import ErrorPayload


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of validating a model or a set of run inputs.

    Invariants:
        - `valid` is True iff `errors` is empty
        - `issues[i]` is the structured form of `errors[i]`
    """

    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    issues: List[ErrorPayload] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "issues": [i.to_dict() for i in self.issues],
        }


@dataclass
class Report:
    """Mutable collector used while a validator walks its input."""

    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    issues: List[ErrorPayload] = field(default_factory=list)

    def error(self, payload: ErrorPayload) -> None:
        self.errors.append(payload.message)
        self.issues.append(payload)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def result(self) -> ValidationResult:
        return ValidationResult(
            valid=not self.errors,
            errors=list(self.errors),
            warnings=list(self.warnings),
            issues=list(self.issues),
        )
