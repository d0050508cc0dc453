"""
ApplyETagStep — merges the optimistic-concurrency token into an UPDATE.

Skipped for CREATE.  A missing token is not fatal: the payload goes out
without one and a warning is recorded.
"""

from __future__ import annotations

from nmdbridge.core.constants import OperationType
from nmdbridge.core.logging import get_logger
from nmdbridge.pipeline.context import StepResult, TransformContext
from nmdbridge.pipeline.errors import StepExecutionError
from nmdbridge.pipeline.step import TransformStep

logger = get_logger(__name__)


class ApplyETagStep(TransformStep):
    """Set the root eTag from the caller-supplied token."""

    name = "apply_etag"
    description = "Include eTag for optimistic locking"

    def should_skip(self, ctx: TransformContext) -> bool:
        return ctx.operation is not OperationType.UPDATE

    def execute(self, ctx: TransformContext) -> StepResult:
        started_at = self._now()

        if ctx.payload is None:
            raise StepExecutionError(
                "No payload to tag",
                execution_id=ctx.execution_id,
                step_name=self.name,
            )

        if not ctx.etag:
            logger.warning("No eTag supplied for UPDATE operation")
            ctx.add_warning("No eTag supplied for UPDATE operation")
            return self._success(started_at, metadata={"etag_applied": False})

        ctx.payload = {**ctx.payload, "eTag": ctx.etag}
        logger.info("Including eTag for UPDATE", etag=ctx.etag)

        return self._success(started_at, metadata={"etag_applied": True})
