"""
Execution engine.

Runs a validated model once for one set of inputs:

    validate → plan → execute steps (under the global timeout) → format outputs

Each run owns a fresh `RunContext` (variables, StepResults, counter,
event log). The model, its steps and the primitive registry are shared
read-only, so independent runs may proceed concurrently.

Failure handling:
    - Validation failures are returned, never raised
    - Step failures stop the run (fail fast) and are returned as an
      `ErrorPayload`, without stack traces
    - The timeout cancels the executing task; cancellation is delivered
      at the next suspension point (between steps or inside an awaiting
      data-access primitive)
    - Output formatting degrades per output and never fails a run

Events recorded on the run (`ExecutionResult.events`):
    run_started, step_failed, run_timeout, run_finished
    execution_order, step_completed (debug only)
"""

from __future__ import annotations

import asyncio
import inspect
import math
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Union

import numpy as np

from finmodel_dsl.core.config import get_setting, resolve_config
from finmodel_dsl.core.errors import ErrorPayload, engine_execution_error, execution_timeout
from finmodel_dsl.core.exceptions import (
    DslException,
    ExecutionTimeoutError,
    PrimitiveParamError,
    StepExecutionError,
    UnknownStepReferenceError,
    VariableResolutionError,
)
from finmodel_dsl.core.model.loader import model_fingerprint
from finmodel_dsl.core.model.types import DslModel, DslStep
from finmodel_dsl.core.outputs.formatter import format_outputs
from finmodel_dsl.core.pipeline.context import RUN_STEP_ID, RunContext
from finmodel_dsl.core.validation.validator import validate_dsl_model

from .planner import plan_execution

if TYPE_CHECKING:  # pragma: no cover
    from finmodel_dsl.core.pipeline.registry import PrimitiveRegistry
    from finmodel_dsl.data.gateway import DataGateway


def _default_registry() -> "PrimitiveRegistry":
    from finmodel_dsl.primitives import PRIMITIVES

    return PRIMITIVES


# ---------------------------------------------------------------------------
# Request / result
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExecutionContext:
    """Run request: input variables, timeout, debug flag and data gateway."""

    inputs: Mapping[str, Any] = field(default_factory=dict)
    timeout_ms: Optional[int] = None
    debug: bool = False
    data: Optional["DataGateway"] = None


def _json_safe(value: Any) -> Any:
    if isinstance(value, ErrorPayload):
        return _json_safe(value.to_dict())
    if isinstance(value, Mapping):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if isinstance(value, np.ndarray):
        return _json_safe(value.tolist())
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


@dataclass(frozen=True)
class ExecutionResult:
    """
    Outcome of one run.

    Invariants:
        - `success` implies `output` is set and `error` is None
        - failure implies `error` and `error_payload` are set
        - `steps_executed` counts the steps completed before the run ended
    """

    success: bool
    runtime_ms: int
    steps_executed: int
    output: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    error_payload: Optional[ErrorPayload] = None
    warnings: List[str] = field(default_factory=list)
    events: List[Dict[str, Any]] = field(default_factory=list)
    run_id: Optional[str] = None
    model_hash: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe form: non-finite floats become None."""
        return _json_safe({
            "success": self.success,
            "output": self.output,
            "error": self.error,
            "error_payload": self.error_payload,
            "runtime_ms": self.runtime_ms,
            "steps_executed": self.steps_executed,
            "warnings": self.warnings,
            "events": self.events,
            "run_id": self.run_id,
            "model_hash": self.model_hash,
        })


# ---------------------------------------------------------------------------
# Step execution
# ---------------------------------------------------------------------------

def _result_shape(value: Any) -> Dict[str, Any]:
    if isinstance(value, (list, tuple)):
        return {"result_type": "array", "result_size": len(value)}
    if isinstance(value, Mapping):
        return {"result_type": "object", "result_size": len(value)}
    return {"result_type": type(value).__name__, "result_size": None}


async def _execute_step(step: DslStep, ctx: RunContext, registry: "PrimitiveRegistry") -> Any:
    primitive = registry.get(step.operation)
    where = {"step_id": step.id, "operation": step.operation}

    try:
        params = step.params.resolve(ctx.variables)
    except VariableResolutionError as exc:
        raise VariableResolutionError(
            message=exc.message, details={**exc.details, **where}, hint=exc.hint
        ) from exc

    problems = primitive.validate(params)
    if problems:
        raise PrimitiveParamError(
            message=f'Step "{step.id}" ({step.operation}) has invalid params: {"; ".join(problems)}',
            details={**where, "errors": list(problems)},
        )

    args = []
    for ref in step.inputs:
        if not ctx.has_result(ref):
            raise UnknownStepReferenceError(
                message=f'Input references unknown or unexecuted step "{ref}"',
                details={**where, "reference": ref},
            )
        args.append(ctx.get_result(ref))

    try:
        result = primitive.execute(params, args, ctx)
        if inspect.isawaitable(result):
            result = await result
    except Exception as exc:
        raise StepExecutionError(
            message=f'Step "{step.id}" ({step.operation}) failed: {exc}',
            details={
                **where,
                "cause": type(exc).__name__,
                "cause_code": getattr(exc, "code", None),
            },
        ) from exc
    return result


async def _execute_steps(model: DslModel, ctx: RunContext, registry: "PrimitiveRegistry") -> None:
    order = plan_execution(model.steps)
    ctx.debug_log(step_id=RUN_STEP_ID, message="execution_order", order=[s.id for s in order])

    for step in order:
        # Sync primitives never suspend; yield so a pending timeout is seen.
        await asyncio.sleep(0)
        result = await _execute_step(step, ctx, registry)
        ctx.record_result(step.id, result)
        ctx.debug_log(
            step_id=step.id,
            message="step_completed",
            operation=step.operation,
            **_result_shape(result),
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def _elapsed_ms(start: float) -> int:
    return int(round((time.perf_counter() - start) * 1000))


async def execute_dsl(
    model: Union[DslModel, Mapping[str, Any]],
    context: Optional[ExecutionContext] = None,
    *,
    registry: Optional["PrimitiveRegistry"] = None,
    config: Optional[Dict[str, Any]] = None,
) -> ExecutionResult:
    """
    Validate and run `model` once.

    Args:
        model: a `DslModel` or its raw mapping.
        context: run request (inputs, timeout_ms, debug, data gateway).
        registry: primitive registry; defaults to the built-in catalog.
        config: configuration overrides merged onto the bundled defaults.

    Returns:
        ExecutionResult. This coroutine does not raise for model, input or
        primitive problems; they are reported on the result.
    """
    start = time.perf_counter()
    context = context or ExecutionContext()
    registry = registry if registry is not None else _default_registry()
    cfg = resolve_config(config)

    validation = validate_dsl_model(model, registry=registry, config=cfg)
    if not validation.valid:
        first = validation.issues[0]
        return ExecutionResult(
            success=False,
            error=f"DSL validation failed: {'; '.join(validation.errors)}",
            error_payload=ErrorPayload(
                type=first.type,
                message=first.message,
                details={"errors": list(validation.errors)},
                hint=first.hint,
            ),
            runtime_ms=_elapsed_ms(start),
            steps_executed=0,
            warnings=list(validation.warnings),
        )

    try:
        dsl = model if isinstance(model, DslModel) else DslModel.from_dict(model)
    except DslException as exc:
        return ExecutionResult(
            success=False,
            error=exc.message,
            error_payload=exc.to_payload(),
            runtime_ms=_elapsed_ms(start),
            steps_executed=0,
            warnings=list(validation.warnings),
        )

    ctx = RunContext.create(
        config=cfg,
        variables=context.inputs,
        data=context.data,
        debug=bool(context.debug or get_setting(cfg, "engine.debug", False)),
        model_hash=model_fingerprint(dsl),
    )
    timeout_ms = int(context.timeout_ms or get_setting(cfg, "engine.default_timeout_ms"))
    ctx.log(step_id=RUN_STEP_ID, level="INFO", message="run_started", steps=len(dsl.steps), timeout_ms=timeout_ms)

    def failed(exc: DslException, payload: Optional[ErrorPayload] = None) -> ExecutionResult:
        runtime_ms = _elapsed_ms(start)
        ctx.log(
            step_id=RUN_STEP_ID,
            level="INFO",
            message="run_finished",
            success=False,
            runtime_ms=runtime_ms,
            steps_executed=ctx.steps_executed,
        )
        return ExecutionResult(
            success=False,
            error=exc.message,
            error_payload=payload or exc.to_payload(),
            runtime_ms=runtime_ms,
            steps_executed=ctx.steps_executed,
            warnings=list(validation.warnings),
            events=list(ctx.events),
            run_id=ctx.run_id,
            model_hash=ctx.model_hash,
        )

    try:
        await asyncio.wait_for(_execute_steps(dsl, ctx, registry), timeout=timeout_ms / 1000.0)
    except asyncio.TimeoutError:
        payload = execution_timeout(timeout_ms=timeout_ms, steps_executed=ctx.steps_executed)
        exc = ExecutionTimeoutError(message=payload.message, details=payload.details, hint=payload.hint)
        ctx.log(step_id=RUN_STEP_ID, level="ERROR", message="run_timeout", timeout_ms=timeout_ms)
        return failed(exc)
    except DslException as exc:
        ctx.log(
            step_id=exc.details.get("step_id") or RUN_STEP_ID,
            level="ERROR",
            message="step_failed",
            error=exc.to_payload().to_dict(),
        )
        return failed(exc)
    except Exception as exc:
        payload = engine_execution_error(exc_type=type(exc).__name__, exc_message=str(exc) or None)
        ctx.log(step_id=RUN_STEP_ID, level="ERROR", message="step_failed", error=payload.to_dict())
        return failed(DslException(message=payload.message), payload)

    output = format_outputs(ctx.step_results, dsl.outputs, ctx=ctx)
    output["metadata"]["warnings"] = output["metadata"]["warnings"] + list(validation.warnings)

    runtime_ms = _elapsed_ms(start)
    ctx.log(
        step_id=RUN_STEP_ID,
        level="INFO",
        message="run_finished",
        success=True,
        runtime_ms=runtime_ms,
        steps_executed=ctx.steps_executed,
    )
    return ExecutionResult(
        success=True,
        output=output,
        runtime_ms=runtime_ms,
        steps_executed=ctx.steps_executed,
        warnings=list(validation.warnings),
        events=list(ctx.events),
        run_id=ctx.run_id,
        model_hash=ctx.model_hash,
    )


def execute_dsl_sync(
    model: Union[DslModel, Mapping[str, Any]],
    context: Optional[ExecutionContext] = None,
    *,
    registry: Optional["PrimitiveRegistry"] = None,
    config: Optional[Dict[str, Any]] = None,
) -> ExecutionResult:
    """Blocking wrapper around `execute_dsl` (starts its own event loop)."""
    return asyncio.run(execute_dsl(model, context, registry=registry, config=config))
