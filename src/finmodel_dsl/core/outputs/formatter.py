"""
Output formatter.

Maps the StepResults of a finished run onto the model's declared
outputs:

    series  → [{x, y}] points (numeric lists are indexed by position)
    tables  → column descriptors + row records
    scalars → {id: number | string}

Formatting never fails a run. An output whose source cannot be resolved,
or resolves to a value of the wrong shape, degrades to an empty series,
an empty table or a NaN scalar, and a warning is recorded in
`metadata.warnings`.

Invariants:
    - Every declared output appears in the result, in declaration order
    - StepResults are never mutated
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timezone
from numbers import Real
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..errors import output_resolution_warning
from ..exceptions import OutputResolutionError, OutputResolutionWarning
from ..model.types import OutputDefinition, ScalarOutput, SeriesOutput, TableOutput

if TYPE_CHECKING:  # pragma: no cover
    from ..pipeline.context import RunContext


_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")

OUTPUT_STEP_ID = "outputs"


# ---------------------------------------------------------------------------
# Source resolution
# ---------------------------------------------------------------------------

def resolve_source(step_results: Mapping[str, Any], source: str) -> Any:
    """
    Value addressed by ``stepId[.field...]``.

    Mapping segments are looked up by key; list segments must be integer
    indexes.

    Raises:
        OutputResolutionError: when the step or a field is missing.
    """
    parts = source.split(".")
    step_id = parts[0]
    if step_id not in step_results:
        raise OutputResolutionError(
            message=f'Source step "{step_id}" not found in results',
            details={"source": source, "step": step_id},
        )

    value = step_results[step_id]
    for i, part in enumerate(parts[1:], start=1):
        if isinstance(value, Mapping) and part in value:
            value = value[part]
        elif isinstance(value, (list, tuple)) and _is_index(part, len(value)):
            value = value[int(part)]
        else:
            raise OutputResolutionError(
                message=f'Field "{part}" not found in source "{".".join(parts[:i])}"',
                details={"source": source, "field": part},
            )
    return value


def _is_index(part: str, size: int) -> bool:
    return part.isdigit() and int(part) < size


# ---------------------------------------------------------------------------
# Shape helpers
# ---------------------------------------------------------------------------

def _plain(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def title_label(key: str) -> str:
    """``call_iv`` → ``Call Iv``."""
    return " ".join(w[:1].upper() + w[1:] for w in key.split("_"))


def _looks_like_date(value: Any) -> bool:
    if isinstance(value, (date, datetime)):
        return True
    if not isinstance(value, str) or not _DATE_RE.match(value):
        return False
    try:
        pd.to_datetime(value)
    except (ValueError, TypeError, OverflowError):
        return False
    return True


def _column_type(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if _is_number(value):
        return "number"
    if _looks_like_date(value):
        return "date"
    return "string"


def infer_columns(rows: Sequence[Any]) -> List[Dict[str, str]]:
    """Column descriptors from the first row."""
    if not rows:
        return []
    first = rows[0]
    if not isinstance(first, Mapping):
        return [{"key": "value", "label": "Value", "type": "string"}]
    return [
        {"key": str(k), "label": title_label(str(k)), "type": _column_type(v)}
        for k, v in first.items()
    ]


def _records(value: Any) -> Optional[List[Any]]:
    """Row list for a table, or None when `value` cannot be tabulated."""
    value = _plain(value)
    if isinstance(value, (list, tuple)):
        return [dict(r) if isinstance(r, Mapping) else _plain(r) for r in value]
    if isinstance(value, Mapping) and value:
        columns = {k: _plain(v) for k, v in value.items()}
        if all(isinstance(v, (list, tuple)) for v in columns.values()):
            lengths = {len(v) for v in columns.values()}
            if len(lengths) == 1:
                n = lengths.pop()
                return [{k: v[i] for k, v in columns.items()} for i in range(n)]
    return None


# ---------------------------------------------------------------------------
# Per-kind coercion
# ---------------------------------------------------------------------------

def _series_points(defn: SeriesOutput, value: Any) -> List[Any]:
    value = _plain(value)
    if not isinstance(value, (list, tuple)):
        raise OutputResolutionWarning(
            message=f'Series "{defn.id}" source "{defn.source}" did not return an array',
            details={"output": defn.id, "source": defn.source},
        )
    items = [_plain(v) for v in value]
    if all(v is None or _is_number(v) for v in items):
        return [{"x": i, "y": v} for i, v in enumerate(items)]
    if all(isinstance(v, Mapping) and "x" in v and "y" in v for v in items):
        return [dict(v) for v in items]
    raise OutputResolutionWarning(
        message=f'Series "{defn.id}" source "{defn.source}" did not return a numeric array',
        details={"output": defn.id, "source": defn.source},
    )


def _table_rows(defn: TableOutput, value: Any) -> List[Any]:
    rows = _records(value)
    if rows is None:
        raise OutputResolutionWarning(
            message=f'Table "{defn.id}" source "{defn.source}" did not return an array',
            details={"output": defn.id, "source": defn.source},
        )
    if rows and not isinstance(rows[0], Mapping):
        rows = [{"value": r} for r in rows]
    return rows


def _scalar_value(defn: ScalarOutput, value: Any) -> Union[float, int, str]:
    value = _plain(value)
    if isinstance(value, (list, tuple)) and len(value) == 1:
        value = _plain(value[0])
    if _is_number(value) or isinstance(value, str):
        return value
    raise OutputResolutionWarning(
        message=f'Scalar "{defn.id}" source "{defn.source}" did not return a scalar value',
        details={"output": defn.id, "source": defn.source},
    )


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

class _Warnings:
    def __init__(self, ctx: Optional["RunContext"]):
        self.ctx = ctx
        self.messages: List[str] = []

    def add(
        self,
        exc: Union[OutputResolutionError, OutputResolutionWarning],
        output_id: str,
        source: str,
    ) -> None:
        self.messages.append(exc.message)
        if self.ctx is not None:
            self.ctx.add_warning(step_id=OUTPUT_STEP_ID, message=exc.message)
            self.ctx.log(
                step_id=OUTPUT_STEP_ID,
                level="WARNING",
                message="output_degraded",
                output=output_id,
                error=output_resolution_warning(
                    message=exc.message, output_id=output_id, source=source
                ).to_dict(),
            )


def format_outputs(
    step_results: Mapping[str, Any],
    output_definition: Union[OutputDefinition, Mapping[str, Any]],
    *,
    ctx: Optional["RunContext"] = None,
) -> Dict[str, Any]:
    """
    Build the run output from `step_results`.

    Args:
        step_results: step id → result of a finished run.
        output_definition: the model's declared outputs.
        ctx: optional run context; degraded outputs are also recorded in
            its warnings and event log.

    Returns:
        ``{series?, tables?, scalars?, metadata}``; a kind is present only
        when the definition declares at least one output of that kind.
    """
    defn = (
        output_definition
        if isinstance(output_definition, OutputDefinition)
        else OutputDefinition.from_dict(output_definition)
    )
    warnings = _Warnings(ctx)
    output: Dict[str, Any] = {}

    if defn.series:
        series = []
        for s in defn.series:
            try:
                data = _series_points(s, resolve_source(step_results, s.source))
            except (OutputResolutionError, OutputResolutionWarning) as exc:
                warnings.add(exc, s.id, s.source)
                data = []
            series.append({
                "id": s.id,
                "label": s.label,
                "data": data,
                "color": s.color,
                "type": s.type or "line",
            })
        output["series"] = series

    if defn.tables:
        tables = []
        for t in defn.tables:
            try:
                rows = _table_rows(t, resolve_source(step_results, t.source))
            except (OutputResolutionError, OutputResolutionWarning) as exc:
                warnings.add(exc, t.id, t.source)
                tables.append({"id": t.id, "label": t.label, "columns": [], "rows": []})
                continue
            if t.columns:
                first = rows[0] if rows else {}
                columns = [
                    {"key": c, "label": title_label(c), "type": _column_type(first.get(c, ""))}
                    for c in t.columns
                ]
            else:
                columns = infer_columns(rows)
            tables.append({"id": t.id, "label": t.label, "columns": columns, "rows": rows})
        output["tables"] = tables

    if defn.scalars:
        scalars: Dict[str, Any] = {}
        for sc in defn.scalars:
            try:
                scalars[sc.id] = _scalar_value(sc, resolve_source(step_results, sc.source))
            except (OutputResolutionError, OutputResolutionWarning) as exc:
                warnings.add(exc, sc.id, sc.source)
                scalars[sc.id] = math.nan
        output["scalars"] = scalars

    output["metadata"] = {
        "computed_at": datetime.now(timezone.utc).isoformat(),
        "data_sources": [],
        "warnings": warnings.messages,
    }
    return output
