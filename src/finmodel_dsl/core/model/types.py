"""
Canonical model types (DSL v1).

Frozen dataclasses for a model, its steps, its output definition and its
optional input schema. A model is authored once and shared read-only by
every run, so all collections are tuples and params are a frozen tagged
union (see `params.py`).

`from_dict` materializes a mapping (YAML/JSON document) and raises
`StructuralValidationError` on shapes it cannot represent. It does not
check references, cycles or primitive params: that is the validator's
job, which works on the raw mapping so it can report every problem at
once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..exceptions import StructuralValidationError
from .params import Nested, parse_params


SUPPORTED_VERSION = "1.0"

SERIES_TYPES = ("line", "bar", "area")
INPUT_FIELD_TYPES = ("string", "number", "date", "boolean", "select", "multi-select")


def _expect(cond: bool, msg: str) -> None:
    if not cond:
        raise StructuralValidationError(message=msg)


def _str_tuple(raw: Any, what: str) -> Tuple[str, ...]:
    if raw is None:
        return ()
    _expect(isinstance(raw, (list, tuple)), f"{what} must be a list")
    _expect(all(isinstance(x, str) for x in raw), f"{what} must contain only strings")
    return tuple(raw)


def _drop_none(d: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


@dataclass(frozen=True)
class DslStep:
    """One named operation invocation with params and upstream inputs."""

    id: str
    operation: str
    params: Nested = field(default_factory=lambda: Nested({}))
    inputs: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "DslStep":
        _expect(isinstance(raw, Mapping), "step must be a mapping")
        step_id = raw.get("id")
        operation = raw.get("operation")
        _expect(isinstance(step_id, str) and bool(step_id.strip()), "step.id is required")
        _expect(isinstance(operation, str) and bool(operation.strip()), f"{step_id}: step.operation is required")
        params = raw.get("params")
        _expect(params is None or isinstance(params, Mapping), f"{step_id}: params must be an object")
        return cls(
            id=step_id,
            operation=operation,
            params=parse_params(params),
            inputs=_str_tuple(raw.get("inputs"), f"{step_id}: inputs"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id, "operation": self.operation}
        if len(self.params):
            out["params"] = self.params.to_raw()
        if self.inputs:
            out["inputs"] = list(self.inputs)
        return out


@dataclass(frozen=True)
class SeriesOutput:
    id: str
    label: str
    source: str
    color: Optional[str] = None
    type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none({
            "id": self.id,
            "label": self.label,
            "source": self.source,
            "color": self.color,
            "type": self.type,
        })


@dataclass(frozen=True)
class TableOutput:
    id: str
    label: str
    source: str
    columns: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id, "label": self.label, "source": self.source}
        if self.columns:
            out["columns"] = list(self.columns)
        return out


@dataclass(frozen=True)
class ScalarOutput:
    id: str
    label: str
    source: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label, "source": self.source}


@dataclass(frozen=True)
class OutputDefinition:
    """Declared series, tables and scalars of a model."""

    series: Tuple[SeriesOutput, ...] = ()
    tables: Tuple[TableOutput, ...] = ()
    scalars: Tuple[ScalarOutput, ...] = ()

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "OutputDefinition":
        _expect(isinstance(raw, Mapping), "outputs must be a mapping")

        def rows(key: str) -> List[Mapping[str, Any]]:
            value = raw.get(key) or []
            _expect(isinstance(value, list), f"outputs.{key} must be a list")
            _expect(all(isinstance(r, Mapping) for r in value), f"outputs.{key} entries must be mappings")
            return value

        return cls(
            series=tuple(
                SeriesOutput(
                    id=r.get("id"),
                    label=r.get("label"),
                    source=r.get("source"),
                    color=r.get("color"),
                    type=r.get("type"),
                )
                for r in rows("series")
            ),
            tables=tuple(
                TableOutput(
                    id=r.get("id"),
                    label=r.get("label"),
                    source=r.get("source"),
                    columns=_str_tuple(r.get("columns"), f"table {r.get('id')}: columns"),
                )
                for r in rows("tables")
            ),
            scalars=tuple(
                ScalarOutput(id=r.get("id"), label=r.get("label"), source=r.get("source"))
                for r in rows("scalars")
            ),
        )

    def is_empty(self) -> bool:
        return not (self.series or self.tables or self.scalars)

    def sources(self) -> List[str]:
        return [o.source for o in (*self.series, *self.tables, *self.scalars)]

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.series:
            out["series"] = [s.to_dict() for s in self.series]
        if self.tables:
            out["tables"] = [t.to_dict() for t in self.tables]
        if self.scalars:
            out["scalars"] = [s.to_dict() for s in self.scalars]
        return out


@dataclass(frozen=True)
class InputField:
    name: str
    type: str
    label: Optional[str] = None
    required: bool = False
    default: Any = None
    description: Optional[str] = None
    options: Tuple[Any, ...] = ()
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None
    placeholder: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "InputField":
        _expect(isinstance(raw, Mapping), "input field must be a mapping")
        name = raw.get("name")
        _expect(isinstance(name, str) and bool(name), "input field name is required")
        options = raw.get("options") or ()
        _expect(isinstance(options, (list, tuple)), f'Field "{name}" options must be a list')
        return cls(
            name=name,
            type=raw.get("type", "string"),
            label=raw.get("label"),
            required=bool(raw.get("required", False)),
            default=raw.get("default"),
            description=raw.get("description"),
            options=tuple(options),
            min=raw.get("min"),
            max=raw.get("max"),
            pattern=raw.get("pattern"),
            placeholder=raw.get("placeholder"),
        )

    def option_values(self) -> List[Any]:
        return [o.get("value") if isinstance(o, Mapping) else o for o in self.options]

    def to_dict(self) -> Dict[str, Any]:
        out = _drop_none({
            "name": self.name,
            "type": self.type,
            "label": self.label,
            "default": self.default,
            "description": self.description,
            "min": self.min,
            "max": self.max,
            "pattern": self.pattern,
            "placeholder": self.placeholder,
        })
        out["required"] = self.required
        if self.options:
            out["options"] = [dict(o) if isinstance(o, Mapping) else o for o in self.options]
        return out


@dataclass(frozen=True)
class InputSchema:
    fields: Tuple[InputField, ...] = ()

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "InputSchema":
        _expect(isinstance(raw, Mapping), "input schema must be a mapping")
        fields = raw.get("fields")
        _expect(isinstance(fields, (list, tuple)), "Invalid input schema: fields must be an array")
        return cls(fields=tuple(InputField.from_dict(f) for f in fields))

    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def to_dict(self) -> Dict[str, Any]:
        return {"fields": [f.to_dict() for f in self.fields]}


@dataclass(frozen=True)
class DslModel:
    """Full declarative definition of steps, outputs and inputs."""

    version: str
    steps: Tuple[DslStep, ...]
    outputs: OutputDefinition = field(default_factory=OutputDefinition)
    input_schema: Optional[InputSchema] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "DslModel":
        _expect(isinstance(raw, Mapping), "DSL model must be a mapping")
        steps = raw.get("steps")
        _expect(isinstance(steps, (list, tuple)), "steps must be a list")
        schema = raw.get("input_schema", raw.get("inputSchema"))
        return cls(
            version=str(raw.get("version")),
            steps=tuple(DslStep.from_dict(s) for s in steps),
            outputs=OutputDefinition.from_dict(raw.get("outputs") or {}),
            input_schema=InputSchema.from_dict(schema) if schema is not None else None,
        )

    @property
    def step_ids(self) -> List[str]:
        return [s.id for s in self.steps]

    def step(self, step_id: str) -> DslStep:
        for s in self.steps:
            if s.id == step_id:
                return s
        raise KeyError(step_id)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "version": self.version,
            "steps": [s.to_dict() for s in self.steps],
            "outputs": self.outputs.to_dict(),
        }
        if self.input_schema is not None:
            out["input_schema"] = self.input_schema.to_dict()
        return out
