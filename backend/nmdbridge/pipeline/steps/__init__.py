"""Transform steps, one module per step."""

from nmdbridge.pipeline.steps.apply_etag import ApplyETagStep
from nmdbridge.pipeline.steps.assemble_request import AssembleRequestStep
from nmdbridge.pipeline.steps.parse_envelope import ParseEnvelopeStep
from nmdbridge.pipeline.steps.project_v3 import ProjectV3Step, v3_steps

__all__ = [
    "ApplyETagStep",
    "AssembleRequestStep",
    "ParseEnvelopeStep",
    "ProjectV3Step",
    "v3_steps",
]
