"""
AssembleRequestStep — builds the canonical patch request.

Leaves both ``ctx.canonical`` (the model) and ``ctx.payload`` (its
PascalCase wire form) on the context; V3 stages rewrite the payload.
"""

from __future__ import annotations

from nmdbridge.pipeline.context import StepResult, TransformContext
from nmdbridge.pipeline.errors import StepExecutionError
from nmdbridge.pipeline.step import TransformStep
from nmdbridge.processing.mapper import build_patch_request


class AssembleRequestStep(TransformStep):
    """Assemble the canonical CREATE / UPDATE request."""

    name = "assemble_request"
    description = "Assemble canonical patch request"

    def execute(self, ctx: TransformContext) -> StepResult:
        started_at = self._now()

        if ctx.envelope is None:
            raise StepExecutionError(
                "No parsed envelope on context",
                execution_id=ctx.execution_id,
                step_name=self.name,
            )

        ctx.canonical = build_patch_request(ctx.envelope, ctx.operation, clock=ctx.clock)
        ctx.payload = ctx.canonical.to_wire()

        return self._success(started_at, metadata={
            "operation": ctx.operation.value,
            "state": ctx.canonical.state.value,
            "versions": len(ctx.canonical.versions),
            "acl_entries": len(ctx.canonical.acl),
            "custom_attributes": len(ctx.canonical.custom_attributes),
        })
