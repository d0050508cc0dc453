"""
TransformEngine — drives one envelope through its flow of steps.

    run()        resolve the flow for the operation, then run_steps()
    run_steps()  execute a given step list against a context

A run stops at the first failed step.  The error that stopped it is kept
on the result (``failure``) so callers can re-raise the original kind.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from nmdbridge.core.constants import FlowType, OperationType, PipelineStatus, StepStatus
from nmdbridge.core.logging import get_logger
from nmdbridge.pipeline.context import StepResult, TransformContext
from nmdbridge.pipeline.errors import (
    FlowResolutionError,
    StepExecutionError,
    TransformError,
)
from nmdbridge.pipeline.flow_resolver import FlowResolver
from nmdbridge.pipeline.step import TransformStep
from nmdbridge.processing.schemas import CanonicalPatchRequest

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PipelineResult:
    """What a transform run produced, step by step."""

    execution_id: str
    status: PipelineStatus
    started_at: datetime | None = None
    finished_at: datetime | None = None
    duration_ms: int = 0
    steps_completed: int = 0
    total_steps: int = 0
    step_results: list[dict[str, Any]] = field(default_factory=list)
    context_summary: dict[str, Any] = field(default_factory=dict)
    canonical: CanonicalPatchRequest | None = None
    payload: dict[str, Any] | None = None
    error: str | None = None
    failure: TransformError | None = field(default=None, repr=False)

    def raise_for_failure(self) -> None:
        """Re-raise the error that stopped the run, if any."""
        if self.failure is not None:
            raise self.failure


class TransformEngine:
    """
    Stateless runner; one engine can serve any number of transforms.

    Usage::

        engine = TransformEngine()
        result = engine.run(raw_message, operation="UPDATE", etag='"abc"')
        result.raise_for_failure()
        payload = result.payload
    """

    def __init__(self, flow_resolver: FlowResolver | None = None) -> None:
        self.flow_resolver = flow_resolver or FlowResolver()

    def run(
        self,
        raw_envelope: Any,
        operation: OperationType | str = OperationType.CREATE,
        etag: str | None = None,
        flow_type: FlowType | str | None = None,
        clock: Clock | None = None,
    ) -> PipelineResult:
        """
        Transform one envelope.

        Args:
            raw_envelope: JSON text, dict, or parsed Envelope.
            operation: CREATE or UPDATE.
            etag: Optimistic-concurrency token (UPDATE only).
            flow_type: Override the flow; defaults to the operation's flow.
            clock: Source of "now" for UPDATE's modified timestamp.
        """
        operation = OperationType(operation)
        flow = FlowType(flow_type or operation.value)
        ctx = TransformContext(
            raw_envelope=raw_envelope,
            operation=operation,
            etag=etag,
            clock=clock,
        )

        log = logger.bind(
            execution_id=ctx.execution_id,
            operation=operation.value,
            flow_type=flow.value,
        )
        log.info("Transform started")

        try:
            steps = self.flow_resolver.resolve(flow)
        except FlowResolutionError as exc:
            exc.execution_id = ctx.execution_id
            ctx.failure = exc
            log.error("No flow for transform", error=str(exc))
            return self._result(ctx, _utc_now(), steps_completed=0, error=str(exc))

        result = self.run_steps(ctx, steps)
        log.info(
            "Transform finished",
            status=result.status.value,
            steps=f"{result.steps_completed}/{result.total_steps}",
            duration_ms=result.duration_ms,
        )
        return result

    def run_steps(self, ctx: TransformContext, steps: list[TransformStep]) -> PipelineResult:
        """
        Run ``steps`` in order against ``ctx``.

        Skipped steps count as completed.  Bypasses flow resolution, so a
        hand-built step list can be exercised directly.
        """
        started_at = _utc_now()
        ctx.total_steps = len(steps)
        completed = 0

        for position, step in enumerate(steps, start=1):
            ctx.current_step_index = position - 1
            step_log = logger.bind(
                execution_id=ctx.execution_id,
                step_name=step.name,
                step=f"{position}/{len(steps)}",
            )

            if step.should_skip(ctx):
                ctx.step_results.append(self._skipped(step))
                step_log.debug("Step skipped")
                completed += 1
                continue

            step_log.debug(step.description or "Running step")
            outcome = self._execute(step, ctx, step_log)
            ctx.step_results.append(outcome)

            if outcome.status != StepStatus.COMPLETED:
                step_log.error(
                    "Step failed, stopping transform",
                    error=outcome.error,
                    duration_ms=outcome.duration_ms,
                )
                return self._result(ctx, started_at, completed, error=outcome.error)

            completed += 1
            step_log.debug("Step completed", duration_ms=outcome.duration_ms, metadata=outcome.metadata)

        return self._result(ctx, started_at, completed)

    def _execute(self, step: TransformStep, ctx: TransformContext, log) -> StepResult:
        """Run one step; any exception becomes a FAILED StepResult."""
        started_at = _utc_now()
        try:
            return step.execute(ctx)
        except TransformError as exc:
            exc.execution_id = exc.execution_id or ctx.execution_id
            exc.step_name = exc.step_name or step.name
            ctx.failure = exc
            return step._failure(started_at, str(exc), metadata={"details": exc.details})
        except Exception as exc:
            log.exception("Unexpected error in step", error=str(exc))
            wrapped = StepExecutionError(
                f"Unexpected: {exc}",
                execution_id=ctx.execution_id,
                step_name=step.name,
            )
            wrapped.__cause__ = exc
            ctx.failure = wrapped
            return step._failure(started_at, str(wrapped))

    @staticmethod
    def _skipped(step: TransformStep) -> StepResult:
        now = _utc_now()
        return StepResult(
            step_name=step.name,
            status=StepStatus.SKIPPED,
            started_at=now,
            completed_at=now,
        )

    @staticmethod
    def _result(
        ctx: TransformContext,
        started_at: datetime,
        steps_completed: int,
        error: str | None = None,
    ) -> PipelineResult:
        finished_at = _utc_now()
        failed = error is not None or ctx.failure is not None
        return PipelineResult(
            execution_id=ctx.execution_id,
            status=PipelineStatus.FAILED if failed else PipelineStatus.COMPLETED,
            started_at=started_at,
            finished_at=finished_at,
            duration_ms=int((finished_at - started_at).total_seconds() * 1000),
            steps_completed=steps_completed,
            total_steps=ctx.total_steps,
            step_results=[result.to_dict() for result in ctx.step_results],
            context_summary=ctx.to_summary_dict(),
            canonical=ctx.canonical,
            payload=None if failed else ctx.payload,
            error=error,
            failure=ctx.failure,
        )


def transform_envelope(
    raw_envelope: Any,
    operation: OperationType | str = OperationType.CREATE,
    etag: str | None = None,
    clock: Clock | None = None,
) -> dict[str, Any]:
    """
    Envelope in, V3 patch request out.

    Raises:
        EnvelopeValidationError: input is not a well-formed envelope.
        StepExecutionError: a step failed unexpectedly.
    """
    result = TransformEngine().run(raw_envelope, operation=operation, etag=etag, clock=clock)
    result.raise_for_failure()
    return result.payload


def build_canonical_payload(
    raw_envelope: Any,
    operation: OperationType | str = OperationType.CREATE,
    clock: Clock | None = None,
) -> dict[str, Any]:
    """Envelope in, PascalCase canonical request out (no V3 projection)."""
    result = TransformEngine().run(
        raw_envelope,
        operation=operation,
        flow_type=FlowType.CANONICAL,
        clock=clock,
    )
    result.raise_for_failure()
    return result.payload
