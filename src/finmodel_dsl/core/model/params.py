"""
Step parameters as an explicit tagged union.

Authors write parameters as plain YAML/JSON values, where a string leaf
of the form ``"$name"`` refers to a run input variable. That convention
is parsed once, when a step is materialized, into:

    Literal(value)        plain value, passed through unchanged
    VariableRef(name)     run input variable, substituted at run time
    Nested(fields)        mapping of name -> Param
    ParamList(items)      ordered sequence of Param

Consumers never sniff strings again: resolution walks the union and
validation works on a view where every `VariableRef` is the `DEFERRED`
marker.

Invariants:
    - Parsing never fails: any JSON-like value has a representation
    - `resolve` never mutates the union or the variable mapping
    - `to_raw(parse_param(x)) == x` for JSON-like `x`
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Tuple, Union

from ..exceptions import VariableResolutionError


VARIABLE_PREFIX = "$"


class _Deferred:
    """Placeholder for a value only known once run inputs are bound."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DEFERRED"

    def __reduce__(self):
        return (_Deferred, ())


DEFERRED = _Deferred()


def is_deferred(value: Any) -> bool:
    return value is DEFERRED


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class VariableRef:
    name: str

    @property
    def token(self) -> str:
        return f"{VARIABLE_PREFIX}{self.name}"


@dataclass(frozen=True)
class ParamList:
    items: Tuple["Param", ...] = ()


@dataclass(frozen=True)
class Nested:
    fields: Mapping[str, "Param"]

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def __iter__(self) -> Iterator[str]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def variables(self) -> Tuple[str, ...]:
        """Names of all variables referenced anywhere below this node."""
        found: Dict[str, None] = {}
        _collect_variables(self, found)
        return tuple(found)

    def resolve(self, variables: Mapping[str, Any]) -> Dict[str, Any]:
        """Plain params with every variable substituted from `variables`."""
        return _resolve(self, variables, "")

    def validation_view(self) -> Dict[str, Any]:
        """Plain params with every variable replaced by `DEFERRED`."""
        return _view(self)

    def to_raw(self) -> Dict[str, Any]:
        """Authoring form, with variables rendered back as ``"$name"``."""
        return to_raw(self)


Param = Union[Literal, VariableRef, Nested, ParamList]


def parse_param(raw: Any) -> Param:
    if isinstance(raw, str) and raw.startswith(VARIABLE_PREFIX) and len(raw) > 1:
        return VariableRef(raw[len(VARIABLE_PREFIX):])
    if isinstance(raw, Mapping):
        return Nested({str(k): parse_param(v) for k, v in raw.items()})
    if isinstance(raw, (list, tuple)):
        return ParamList(tuple(parse_param(v) for v in raw))
    return Literal(raw)


def parse_params(raw: Any) -> Nested:
    """Parse a step's ``params`` mapping. ``None`` means no params."""
    if raw is None:
        return Nested({})
    if not isinstance(raw, Mapping):
        raise TypeError(f"params must be a mapping, got: {type(raw).__name__}")
    return Nested({str(k): parse_param(v) for k, v in raw.items()})


def to_raw(param: Param) -> Any:
    if isinstance(param, Literal):
        return param.value
    if isinstance(param, VariableRef):
        return param.token
    if isinstance(param, ParamList):
        return [to_raw(p) for p in param.items]
    return {k: to_raw(v) for k, v in param.fields.items()}


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def _resolve(param: Param, variables: Mapping[str, Any], path: str) -> Any:
    if isinstance(param, Literal):
        return param.value
    if isinstance(param, VariableRef):
        if param.name not in variables:
            raise VariableResolutionError(
                message=(
                    f'Parameter "{path}" references undefined input variable '
                    f'"{param.token}"'
                ),
                details={"parameter": path, "variable": param.name},
                hint="Supply the variable in the run inputs or fix the reference.",
            )
        return variables[param.name]
    if isinstance(param, ParamList):
        return [_resolve(p, variables, f"{path}[{i}]") for i, p in enumerate(param.items)]
    return {k: _resolve(v, variables, _join(path, k)) for k, v in param.fields.items()}


def _view(param: Param) -> Any:
    if isinstance(param, Literal):
        return param.value
    if isinstance(param, VariableRef):
        return DEFERRED
    if isinstance(param, ParamList):
        return [_view(p) for p in param.items]
    return {k: _view(v) for k, v in param.fields.items()}


def _collect_variables(param: Param, found: Dict[str, None]) -> None:
    if isinstance(param, VariableRef):
        found[param.name] = None
    elif isinstance(param, ParamList):
        for p in param.items:
            _collect_variables(p, found)
    elif isinstance(param, Nested):
        for p in param.fields.values():
            _collect_variables(p, found)
