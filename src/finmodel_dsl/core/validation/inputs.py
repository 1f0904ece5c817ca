"""
Run input validation against a model's input schema.

`validate_inputs` reports every problem in one pass. `prepare_inputs`
is the gate used before a run: it raises on invalid inputs and returns
the sanitized variable map (schema defaults filled in, unknown fields
dropped).

Field types:
    string, number, date, boolean, select, multi-select

Explicit limits:
    - No coercion: ``"5"`` is not a number, ``"true"`` is not a boolean
    - Dates are strings starting with ``YYYY-MM-DD`` that pandas can parse
"""

from __future__ import annotations

import math
import re
from numbers import Real
from typing import Any, Dict, List, Mapping, Optional, Union

import pandas as pd

from ..errors import ErrorPayload, INPUT_SCHEMA_VALIDATION_ERROR
from ..exceptions import DslException, InputSchemaValidationError
from ..model.types import InputField, InputSchema
from .result import Report, ValidationResult


_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")

SchemaLike = Union[InputSchema, Mapping[str, Any]]


def _issue(message: str, field: Optional[str] = None) -> ErrorPayload:
    return ErrorPayload(
        type=INPUT_SCHEMA_VALIDATION_ERROR,
        message=message,
        details={"field": field},
        hint="Provide run inputs that match the model's input schema.",
    )


def _num(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and not math.isnan(value)


def _is_date(value: Any) -> bool:
    if not isinstance(value, str) or not _DATE_RE.match(value):
        return False
    try:
        pd.to_datetime(value)
    except (ValueError, TypeError, OverflowError):
        return False
    return True


def _check_field(f: InputField, value: Any) -> List[str]:
    name = f.name
    if f.type == "number":
        if not _is_number(value):
            return [f'Field "{name}" must be a number']
        errors = []
        if f.min is not None and value < f.min:
            errors.append(f'Field "{name}" must be at least {_num(f.min)}, got {_num(value)}')
        if f.max is not None and value > f.max:
            errors.append(f'Field "{name}" must be at most {_num(f.max)}, got {_num(value)}')
        return errors

    if f.type == "string":
        if not isinstance(value, str):
            return [f'Field "{name}" must be a string']
        if f.pattern:
            try:
                matched = re.search(f.pattern, value) is not None
            except re.error:
                return [f'Field "{name}" has an invalid pattern: {f.pattern}']
            if not matched:
                return [f'Field "{name}" does not match required pattern: {f.pattern}']
        return []

    if f.type == "date":
        return [] if _is_date(value) else [f'Field "{name}" must be a valid date string']

    if f.type == "boolean":
        return [] if isinstance(value, bool) else [f'Field "{name}" must be a boolean']

    if f.type == "select":
        options = f.option_values()
        if options and value not in options:
            return [f'Field "{name}" must be one of: {", ".join(str(o) for o in options)}']
        return []

    if f.type == "multi-select":
        if not isinstance(value, (list, tuple)):
            return [f'Field "{name}" must be a list of options']
        options = f.option_values()
        invalid = [v for v in value if options and v not in options]
        if invalid:
            return [
                f'Field "{name}" contains invalid options: {", ".join(str(v) for v in invalid)}. '
                f'Must be one of: {", ".join(str(o) for o in options)}'
            ]
        return []

    return [f'Field "{name}" has unknown type "{f.type}"']


def _as_schema(schema: SchemaLike, report: Report) -> Optional[InputSchema]:
    if isinstance(schema, InputSchema):
        return schema
    if not isinstance(schema, Mapping) or not isinstance(schema.get("fields"), (list, tuple)):
        report.error(_issue("Invalid input schema: fields must be an array"))
        return None
    try:
        return InputSchema.from_dict(schema)
    except DslException as exc:
        report.error(_issue(f"Invalid input schema: {exc.message}"))
        return None


def validate_inputs(inputs: Mapping[str, Any], schema: SchemaLike) -> ValidationResult:
    """
    Check `inputs` against `schema`.

    A field whose value is ``None`` counts as not provided. Fields not in
    the schema produce warnings, never errors.
    """
    report = Report()
    parsed = _as_schema(schema, report)
    if parsed is None:
        return report.result()

    inputs = inputs or {}
    for f in parsed.fields:
        value = inputs.get(f.name)
        if value is None:
            if f.required:
                report.error(_issue(f'Required field "{f.name}" is missing', f.name))
            continue
        for message in _check_field(f, value):
            report.error(_issue(message, f.name))

    declared = set(parsed.field_names())
    for name in inputs:
        if name not in declared:
            report.warn(f'Unknown field "{name}" will be ignored')

    return report.result()


def prepare_inputs(raw_inputs: Mapping[str, Any], schema: Optional[SchemaLike]) -> Dict[str, Any]:
    """
    Validate `raw_inputs` and return the variables bound for a run.

    Without a schema the inputs are returned as a shallow copy.

    Raises:
        InputSchemaValidationError: when `validate_inputs` reports errors.
    """
    raw_inputs = dict(raw_inputs or {})
    if schema is None:
        return raw_inputs

    result = validate_inputs(raw_inputs, schema)
    if not result.valid:
        raise InputSchemaValidationError(
            message=f"Input validation failed: {'; '.join(result.errors)}",
            details={"errors": list(result.errors), "warnings": list(result.warnings)},
            hint="Provide run inputs that match the model's input schema.",
        )

    parsed = schema if isinstance(schema, InputSchema) else InputSchema.from_dict(schema)
    prepared: Dict[str, Any] = {}
    for f in parsed.fields:
        value = raw_inputs.get(f.name)
        if value is None:
            value = f.default
        if value is not None:
            prepared[f.name] = value
    return prepared
