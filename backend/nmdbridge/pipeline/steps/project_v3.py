"""
ProjectV3Step — runs one V3 projector stage over ``ctx.payload``.

One instance per stage; the flow resolver lines them up in the fixed
order defined by ``V3_STAGES``.

Usage::

    ProjectV3Step(
        step_name="normalize_casing",
        step_description="V3: camelCase keys",
        stage=normalize_casing,
    )
"""

from __future__ import annotations

from typing import Any, Callable

from nmdbridge.pipeline.context import StepResult, TransformContext
from nmdbridge.pipeline.errors import StepExecutionError
from nmdbridge.pipeline.step import TransformStep
from nmdbridge.processing.v3_projector import V3_STAGES


STAGE_DESCRIPTIONS = {
    "normalize_casing": "V3: lowercase leading character of keys",
    "reshape_structure": "V3: flatten audit stamps and rename sub-records",
    "normalize_nulls": "V3: empty ids to null, drop deprecated fields",
    "correct_cross_fields": "V3: envUrl, cabinetId, attributes, timestamps",
}


class ProjectV3Step(TransformStep):
    """Apply a single pure V3 rewrite to the working payload."""

    def __init__(
        self,
        step_name: str,
        step_description: str,
        stage: Callable[[Any], Any],
    ) -> None:
        self.name = step_name
        self.description = step_description
        self._stage = stage

    def execute(self, ctx: TransformContext) -> StepResult:
        started_at = self._now()

        if ctx.payload is None:
            raise StepExecutionError(
                "No payload to project",
                execution_id=ctx.execution_id,
                step_name=self.name,
            )

        ctx.payload = self._stage(ctx.payload)

        return self._success(started_at, metadata={"keys": len(ctx.payload)})


def v3_steps() -> list[ProjectV3Step]:
    """The four V3 stages, in order."""
    return [
        ProjectV3Step(step_name=name, step_description=STAGE_DESCRIPTIONS[name], stage=stage)
        for name, stage in V3_STAGES
    ]
