"""
Execution planner.

Turns the declared steps of a model into a linear execution order that
respects every `inputs` dependency.

The planner only looks at structure:
    - step ids
    - declared dependencies (`inputs`)
    - cycles

Architectural decisions:
    - Kahn's algorithm over adjacency maps `id -> set(dependent ids)`
    - Ready steps are released in declaration order (min-heap on index)
    - Structural errors are fatal

Invariants:
    - No step appears before any of its dependencies
    - Every step appears exactly once
    - The same model always produces the same order

Explicit limits:
    - Does not execute steps
    - Does not touch the RunContext
"""

from __future__ import annotations

import heapq
from typing import Dict, Iterable, List, Set

from finmodel_dsl.core.exceptions import (
    CircularDependencyError,
    StructuralValidationError,
    UnknownStepReferenceError,
)
from finmodel_dsl.core.model.types import DslStep


def plan_execution(steps: Iterable[DslStep]) -> List[DslStep]:
    """
    Deterministic topological order of `steps`.

    When several steps are ready at once, the one declared first runs
    first. For a model that already satisfies define-before-use this is
    exactly the declaration order.

    Raises:
        StructuralValidationError: on a missing or duplicate step id.
        UnknownStepReferenceError: when a step depends on an undeclared id.
        CircularDependencyError: when the dependency graph has a cycle.
    """
    step_list = list(steps)
    index: Dict[str, int] = {}
    for i, s in enumerate(step_list):
        if not isinstance(s.id, str) or not s.id.strip():
            raise StructuralValidationError(message="All steps must have an id")
        if s.id in index:
            raise StructuralValidationError(
                message=f'Duplicate step id "{s.id}"', details={"step_id": s.id}
            )
        index[s.id] = i

    incoming: Dict[str, int] = {sid: 0 for sid in index}
    outgoing: Dict[str, Set[str]] = {sid: set() for sid in index}
    for s in step_list:
        for dep in s.inputs:
            if dep not in index:
                raise UnknownStepReferenceError(
                    message=f'Step "{s.id}" depends on unknown step "{dep}"',
                    details={"step_id": s.id, "reference": dep},
                )
            if s.id not in outgoing[dep]:
                outgoing[dep].add(s.id)
                incoming[s.id] += 1

    ready = [index[sid] for sid, n in incoming.items() if n == 0]
    heapq.heapify(ready)
    order: List[DslStep] = []

    while ready:
        step = step_list[heapq.heappop(ready)]
        order.append(step)
        for child in outgoing[step.id]:
            incoming[child] -= 1
            if incoming[child] == 0:
                heapq.heappush(ready, index[child])

    if len(order) != len(step_list):
        stuck = [s.id for s in step_list if incoming[s.id] > 0]
        raise CircularDependencyError(
            message="Circular dependency detected in DSL steps",
            details={"path": stuck},
        )

    return order
