"""
Execution engine.

Plans and runs a model once for a given set of inputs.

Main components:
    - planner → deterministic topological order (Kahn, declaration order)
    - engine  → execute_dsl / execute_dsl_sync under a global timeout

Invariants:
    - A step runs only after all of its inputs
    - Each step runs at most once per run
    - The result always reports how many steps completed

Explicit limits:
    - No parallel fan-out of independent branches
    - No per-step cancellation (the run timeout is the only one)
    - No persistence of results
"""

from .engine import ExecutionContext, ExecutionResult, execute_dsl, execute_dsl_sync
from .planner import plan_execution

__all__ = [
    "ExecutionContext",
    "ExecutionResult",
    "execute_dsl",
    "execute_dsl_sync",
    "plan_execution",
]
