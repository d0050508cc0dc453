"""
nmdbridge — NMD envelope → V3 metadata patch request transformer.

    from nmdbridge import transform_envelope

    payload = transform_envelope(raw_message)                   # CREATE
    payload = transform_envelope(raw_message, "UPDATE", etag)   # UPDATE
"""

from nmdbridge.pipeline.engine import (
    PipelineResult,
    TransformEngine,
    build_canonical_payload,
    transform_envelope,
)
from nmdbridge.pipeline.errors import (
    EnvelopeValidationError,
    StepExecutionError,
    TransformError,
)

__all__ = [
    "EnvelopeValidationError",
    "PipelineResult",
    "StepExecutionError",
    "TransformEngine",
    "TransformError",
    "build_canonical_payload",
    "transform_envelope",
]
