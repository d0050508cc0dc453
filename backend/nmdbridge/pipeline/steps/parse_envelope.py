"""
ParseEnvelopeStep — validates the raw NMD message into typed models.

A malformed envelope is fatal: EnvelopeValidationError is raised and the
engine stops the run.
"""

from __future__ import annotations

from nmdbridge.pipeline.context import StepResult, TransformContext
from nmdbridge.pipeline.step import TransformStep
from nmdbridge.processing.envelope import parse_envelope


class ParseEnvelopeStep(TransformStep):
    """Parse and validate the raw envelope."""

    name = "parse_envelope"
    description = "Validate the NMD envelope"

    def execute(self, ctx: TransformContext) -> StepResult:
        started_at = self._now()

        ctx.envelope = parse_envelope(ctx.raw_envelope)
        doc_props = ctx.envelope.document.doc_props

        return self._success(started_at, metadata={
            "document_id": doc_props.id,
            "versions": len(ctx.envelope.versions),
            "custom_fields": len(doc_props.custom_fields),
            "ignored_properties": len(doc_props.extras),
        })
