# src/finmodel_dsl/core/pipeline/context.py
"""
Per-run execution context.

`RunContext` is the state owned by exactly one run of a model: the bound
input variables, the data gateway handed to data-access primitives, the
StepResults map, the executed-step counter and the structured event log.

Principles:
    - Isolation per run (each run gets its own context)
    - Explicit, traceable communication
    - No shared global state

Invariants:
    - Step results are keyed by step id and written once
    - Log events always include `run_id` and `step_id`
    - Warnings are grouped by `step_id`

Explicit limits:
    - Does not execute steps
    - Does not plan execution
    - Does not persist anything
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

if TYPE_CHECKING:  # pragma: no cover
    from finmodel_dsl.data.gateway import DataGateway


RUN_STEP_ID = "*"


@dataclass
class RunContext:
    """
    Execution context of one run.

    Primitives receive it as their third argument. Pure primitives ignore
    it; data-access primitives reach their collaborators through `data`.

    Invariants:
        - One RunContext per run, never shared between runs
        - `step_results` only grows while the run is in progress
        - `steps_executed` equals the number of stored results
    """
    run_id: str
    created_at: datetime
    config: Dict[str, Any]
    variables: Mapping[str, Any] = field(default_factory=dict)
    data: Optional["DataGateway"] = None
    debug: bool = False
    model_hash: Optional[str] = None

    step_results: Dict[str, Any] = field(default_factory=dict, init=False)
    steps_executed: int = field(default=0, init=False)
    events: List[Dict[str, Any]] = field(default_factory=list, init=False)
    warnings: Dict[str, List[str]] = field(default_factory=dict, init=False)

    @classmethod
    def create(
        cls,
        *,
        config: Dict[str, Any],
        variables: Optional[Mapping[str, Any]] = None,
        data: Optional["DataGateway"] = None,
        debug: bool = False,
        model_hash: Optional[str] = None,
    ) -> "RunContext":
        return cls(
            run_id=uuid.uuid4().hex,
            created_at=datetime.now(timezone.utc),
            config=config,
            variables=dict(variables or {}),
            data=data,
            debug=debug,
            model_hash=model_hash,
        )

    # -----------------------------
    # Step results
    # -----------------------------
    def record_result(self, step_id: str, value: Any) -> None:
        if step_id in self.step_results:
            raise ValueError(f"Step result already recorded: {step_id}")
        self.step_results[step_id] = value
        self.steps_executed += 1

    def has_result(self, step_id: str) -> bool:
        return step_id in self.step_results

    def get_result(self, step_id: str) -> Any:
        if step_id not in self.step_results:
            raise KeyError(step_id)
        return self.step_results[step_id]

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, step_id: str, level: str, message: str, **extra: Any) -> None:
        event = {
            "run_id": self.run_id,
            "step_id": step_id,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        self.events.append(event)

    def debug_log(self, *, step_id: str, message: str, **extra: Any) -> None:
        """`log` at DEBUG level, recorded only when the run has debug on."""
        if self.debug:
            self.log(step_id=step_id, level="DEBUG", message=message, **extra)

    def add_warning(self, *, step_id: str, message: str) -> None:
        if step_id not in self.warnings:
            self.warnings[step_id] = []
        self.warnings[step_id].append(message)

    def all_warnings(self) -> List[str]:
        return [m for msgs in self.warnings.values() for m in msgs]
