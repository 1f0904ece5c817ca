# src/finmodel_dsl/core/pipeline/primitive.py
"""
Primitive contract.

A primitive is the implementation behind one DSL operation name. It
exposes a uniform pair of methods:

    validate(params) -> list[str]
        Checks declared params before anything runs. Values that are only
        known at run time arrive as `DEFERRED` and must be accepted.

    execute(params, args, ctx) -> result | awaitable
        `params` are resolved plain values, `args` are the results of the
        step's `inputs` in declared order, `ctx` is the run's RunContext.
        Pure primitives return directly; data-access primitives return an
        awaitable.

Principles:
    - Primitives are stateless with respect to models and runs
    - Primitives never mutate their inputs
    - Conformance is structural (`@runtime_checkable` Protocol)

Explicit limits:
    - Primitives do not know the planner or the engine
    - Primitives do not control execution order
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

from .context import RunContext


Validator = Callable[[Mapping[str, Any]], List[str]]
Runner = Callable[[Mapping[str, Any], Sequence[Any], RunContext], Any]


@runtime_checkable
class Primitive(Protocol):
    """
    Contract of a registered operation.

    Required attributes:
        - name: operation name used in `step.operation`
        - category: family name (math, stats, returns, analysis, filters, data)

    Invariants:
        - `validate` never raises for malformed params, it reports them
        - `execute` returns a newly allocated value
    """
    name: str
    category: str

    def validate(self, params: Mapping[str, Any]) -> List[str]:
        """Return error messages for `params` (empty when valid)."""
        ...

    def execute(self, params: Mapping[str, Any], args: Sequence[Any], ctx: RunContext) -> Any:
        """Run the operation once with resolved params and upstream results."""
        ...


def _no_params(params: Mapping[str, Any]) -> List[str]:
    return []


@dataclass(frozen=True)
class FunctionPrimitive:
    """Primitive backed by plain functions."""

    name: str
    category: str
    run: Runner
    validator: Validator = _no_params
    doc: Optional[str] = None

    def validate(self, params: Mapping[str, Any]) -> List[str]:
        return list(self.validator(params))

    def execute(self, params: Mapping[str, Any], args: Sequence[Any], ctx: RunContext) -> Any:
        return self.run(params, args, ctx)


@dataclass
class PrimitiveGroup:
    """
    Ordered collection of primitives of one family.

    Modules declare their operations with the `operation` decorator:

        MATH = PrimitiveGroup("math")

        @MATH.operation(validate=_scalar_param)
        def add(params, args, ctx):
            ...
    """

    category: str
    _members: Dict[str, FunctionPrimitive] = field(default_factory=dict, init=False, repr=False)

    def operation(
        self,
        name: Optional[str] = None,
        *,
        validate: Validator = _no_params,
    ) -> Callable[[Runner], Runner]:
        def register(fn: Runner) -> Runner:
            op_name = name or fn.__name__
            if op_name in self._members:
                raise ValueError(f"Duplicate operation in group {self.category}: {op_name}")
            self._members[op_name] = FunctionPrimitive(
                name=op_name,
                category=self.category,
                run=fn,
                validator=validate,
                doc=(fn.__doc__ or "").strip() or None,
            )
            return fn

        return register

    def names(self) -> List[str]:
        return list(self._members)

    def members(self) -> List[FunctionPrimitive]:
        return list(self._members.values())
