"""
Model validator.

`validate_dsl_model` is the gate in front of every run. It checks a model
document in one pass and reports every problem found instead of stopping
at the first one.

Checks, in order:
    1. version is supported
    2. steps is a non-empty list (stops here otherwise)
    3. each step, in declaration order: id, operation, primitive params,
       params/inputs shape, input references (define-before-use)
    4. outputs: definition checks and source references
    5. dependency cycles
    6. best-practice warnings (step count, undeclared variables)

Principles:
    - Pure: no I/O, no mutation of the model, repeatable
    - Never raises: every problem becomes an error string plus payload
    - Params referencing run variables are checked with `DEFERRED`
      placeholders; the engine re-checks them once resolved

Explicit limits:
    - Does not execute primitives
    - Does not check run inputs (see `validate_inputs`)
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence, Set, Union

from ..config import get_setting
from ..errors import (
    circular_dependency,
    primitive_param_error,
    structural_validation_error,
    unknown_operation,
    unknown_step_reference,
)
from ..model.loader import as_document
from ..model.params import parse_params
from ..model.types import INPUT_FIELD_TYPES, SUPPORTED_VERSION, DslModel
from ..outputs.definition import output_sources, validate_output_definition
from .cycles import find_cycles, format_cycle
from .result import Report, ValidationResult

if TYPE_CHECKING:  # pragma: no cover
    from ..pipeline.registry import PrimitiveRegistry


STEP_ID_RE = re.compile(r"^[a-z][a-z0-9_]*$")


def _default_registry() -> "PrimitiveRegistry":
    from finmodel_dsl.primitives import PRIMITIVES

    return PRIMITIVES


def _valid_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _check_params(
    report: Report,
    label: str,
    step_id: Optional[str],
    operation: str,
    registry: "PrimitiveRegistry",
    params: Any,
) -> None:
    if not registry.has(operation):
        available = registry.names()
        report.error(
            unknown_operation(
                message=(
                    f'{label}: Unknown operation "{operation}". '
                    f'Available operations: {", ".join(available)}'
                ),
                step=step_id,
                operation=operation,
                available=available,
            )
        )
        return

    if params is not None and not isinstance(params, Mapping):
        return

    primitive = registry.get(operation)
    try:
        messages = primitive.validate(parse_params(params).validation_view())
    except Exception as exc:
        messages = [f"invalid params ({type(exc).__name__}: {exc})"]
    for message in messages:
        report.error(
            primitive_param_error(
                message=f"{label}: {message}",
                step=step_id,
                operation=operation,
            )
        )


def _check_step(
    report: Report,
    raw: Any,
    index: int,
    seen: Set[str],
    declared: Set[str],
    registry: "PrimitiveRegistry",
) -> Optional[str]:
    """Validate one step; returns its id when it has a usable one."""
    if not isinstance(raw, Mapping):
        report.error(structural_validation_error(message=f"step {index}: Step must be an object"))
        return None

    step_id = raw.get("id")
    has_id = _valid_str(step_id)
    label = step_id if has_id else f"step {index}"
    sid = step_id if has_id else None

    if not has_id:
        report.error(structural_validation_error(message=f"{label}: Step must have a valid id"))
    elif step_id in seen:
        report.error(structural_validation_error(message=f'{label}: Duplicate step id "{step_id}"', step=sid))
    elif not STEP_ID_RE.match(step_id):
        report.error(
            structural_validation_error(
                message=(
                    f"{label}: Step id must start with lowercase letter and contain only "
                    "lowercase letters, numbers, and underscores"
                ),
                step=sid,
            )
        )

    operation = raw.get("operation")
    params = raw.get("params")
    if not _valid_str(operation):
        report.error(structural_validation_error(message=f"{label}: Step must have a valid operation", step=sid))
    else:
        _check_params(report, label, sid, operation, registry, params)

    if params is not None and not isinstance(params, Mapping):
        report.error(structural_validation_error(message=f"{label}: params must be an object", step=sid))

    inputs = raw.get("inputs")
    if inputs is not None:
        if not isinstance(inputs, (list, tuple)):
            report.error(structural_validation_error(message=f"{label}: inputs must be an array", step=sid))
        else:
            for ref in inputs:
                if not isinstance(ref, str):
                    report.error(
                        structural_validation_error(
                            message=f"{label}: All input references must be strings", step=sid
                        )
                    )
                elif ref in seen:
                    continue
                elif ref in declared:
                    report.error(
                        unknown_step_reference(
                            message=f'{label}: Input references step "{ref}" before it is declared',
                            step=sid,
                            reference=ref,
                            declared_later=True,
                        )
                    )
                else:
                    report.error(
                        unknown_step_reference(
                            message=f'{label}: Input references unknown step "{ref}"',
                            step=sid,
                            reference=ref,
                        )
                    )

    return step_id if has_id else None


def _check_outputs(report: Report, outputs: Any, seen: Set[str]) -> None:
    if outputs is None:
        report.error(structural_validation_error(message="DSL must define outputs"))
        return
    if not isinstance(outputs, Mapping):
        report.error(structural_validation_error(message="outputs must be an object"))
        return

    for message in validate_output_definition(outputs):
        report.error(structural_validation_error(message=message))

    for source in output_sources(outputs):
        step_id = source.split(".")[0]
        if step_id not in seen:
            report.error(
                unknown_step_reference(
                    message=f'Output source "{source}" references unknown step "{step_id}"',
                    step=None,
                    reference=step_id,
                )
            )


def _check_input_schema(report: Report, schema: Any) -> Optional[Set[str]]:
    """Declared variable names, or None when the model has no usable schema."""
    if schema is None:
        return None
    if not isinstance(schema, Mapping) or not isinstance(schema.get("fields"), (list, tuple)):
        report.error(structural_validation_error(message="Invalid input schema: fields must be an array"))
        return None

    names: Set[str] = set()
    for i, f in enumerate(schema["fields"]):
        if not isinstance(f, Mapping) or not _valid_str(f.get("name")):
            report.error(structural_validation_error(message=f"Input field {i} must have a valid name"))
            continue
        name = f["name"]
        if name in names:
            report.error(structural_validation_error(message=f'Duplicate input field "{name}"'))
        names.add(name)
        ftype = f.get("type", "string")
        if ftype not in INPUT_FIELD_TYPES:
            report.error(
                structural_validation_error(message=f'Input field "{name}" has unknown type "{ftype}"')
            )
        if f.get("options") is not None and not isinstance(f.get("options"), (list, tuple)):
            report.error(structural_validation_error(message=f'Input field "{name}" options must be an array'))
    return names


def _variable_warnings(report: Report, steps: Sequence[Any], declared: Set[str]) -> None:
    for raw in steps:
        if not isinstance(raw, Mapping) or not isinstance(raw.get("params"), Mapping):
            continue
        label = raw.get("id") or "step"
        for name in parse_params(raw["params"]).variables():
            if name not in declared:
                report.warn(f'{label}: Variable "${name}" is not declared in the input schema')


def validate_dsl_model(
    model: Union[DslModel, Mapping[str, Any]],
    *,
    registry: Optional["PrimitiveRegistry"] = None,
    config: Optional[Dict[str, Any]] = None,
) -> ValidationResult:
    """
    Validate a model (a `DslModel` or its raw mapping).

    Args:
        model: model to check.
        registry: primitive registry; defaults to the built-in catalog.
        config: effective configuration (`dsl.supported_version`,
            `dsl.max_steps_warning`).

    Returns:
        ValidationResult with every error and warning found.
    """
    report = Report()
    registry = registry if registry is not None else _default_registry()

    if not isinstance(model, (DslModel, Mapping)):
        report.error(structural_validation_error(message="DSL model must be an object"))
        return report.result()

    doc = as_document(model)

    supported = str(get_setting(config, "dsl.supported_version", SUPPORTED_VERSION))
    version = doc.get("version")
    if version != supported:
        report.error(
            structural_validation_error(
                message=f'Unsupported DSL version: "{version}". Expected "{supported}"',
                hint=f'Set version to "{supported}".',
            )
        )

    steps = doc.get("steps")
    if not isinstance(steps, (list, tuple)) or not steps:
        report.error(structural_validation_error(message="DSL must have at least one step"))
        return report.result()

    declared = {s.get("id") for s in steps if isinstance(s, Mapping) and _valid_str(s.get("id"))}
    seen: Set[str] = set()
    graph: Dict[str, List[str]] = {}
    for index, raw in enumerate(steps):
        step_id = _check_step(report, raw, index, seen, declared, registry)
        if step_id is None:
            continue
        seen.add(step_id)
        inputs = raw.get("inputs")
        if step_id not in graph and isinstance(inputs, (list, tuple)):
            graph[step_id] = [r for r in inputs if isinstance(r, str)]
        graph.setdefault(step_id, [])

    _check_outputs(report, doc.get("outputs"), seen)

    for cycle in find_cycles(graph):
        report.error(circular_dependency(message=format_cycle(cycle), path=cycle))

    limit = int(get_setting(config, "dsl.max_steps_warning", 50))
    if len(steps) > limit:
        report.warn(f"Model has more than {limit} steps - consider breaking into smaller models")

    variables = _check_input_schema(report, doc.get("input_schema", doc.get("inputSchema")))
    if variables is not None:
        _variable_warnings(report, steps, variables)

    return report.result()
