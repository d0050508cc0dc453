"""
TransformStep — one unit of work in an envelope transform.

A step reads what earlier steps left on the TransformContext, writes its
own output back, and reports a StepResult.  Timing, logging and error
capture live in the engine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from nmdbridge.core.constants import StepStatus
from nmdbridge.pipeline.context import StepResult, TransformContext


class TransformStep(ABC):
    """
    Base for parse, assemble, V3 projection and eTag steps.

    Override ``execute``; override ``should_skip`` when the step only
    applies to some operations (e.g. UPDATE-only).  Set ``name`` to a
    stable snake_case id, it appears in every step log and result.
    """

    name: str = "transform_step"
    description: str = ""

    @abstractmethod
    def execute(self, ctx: TransformContext) -> StepResult:
        """Do the work; raise a TransformError subclass to fail the run."""

    def should_skip(self, ctx: TransformContext) -> bool:
        return False

    def _success(self, started_at: datetime, metadata: dict[str, Any] | None = None) -> StepResult:
        return self._finish(started_at, StepStatus.COMPLETED, metadata=metadata)

    def _failure(
        self,
        started_at: datetime,
        error: str,
        metadata: dict[str, Any] | None = None,
    ) -> StepResult:
        return self._finish(started_at, StepStatus.FAILED, error=error, metadata=metadata)

    def _finish(
        self,
        started_at: datetime,
        status: StepStatus,
        error: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> StepResult:
        finished_at = self._now()
        elapsed = finished_at - started_at
        return StepResult(
            step_name=self.name,
            status=status,
            started_at=started_at,
            completed_at=finished_at,
            duration_ms=int(elapsed.total_seconds() * 1000),
            error=error,
            metadata=dict(metadata or {}),
        )

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)
