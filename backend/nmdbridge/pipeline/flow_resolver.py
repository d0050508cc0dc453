"""
FlowResolver — maps a flow type to an ordered step sequence.

    CREATE     parse → assemble → V3 stages 1..4
    UPDATE     parse → assemble → V3 stages 1..4 → apply eTag
    CANONICAL  parse → assemble   (stops at the PascalCase request)

To add a flow:
    1. Write a builder returning a fresh list of TransformStep instances
    2. Register it in FLOW_REGISTRY below
"""

from __future__ import annotations

from typing import Callable

from nmdbridge.core.constants import FlowType
from nmdbridge.core.logging import get_logger
from nmdbridge.pipeline.errors import FlowResolutionError
from nmdbridge.pipeline.step import TransformStep
from nmdbridge.pipeline.steps import (
    ApplyETagStep,
    AssembleRequestStep,
    ParseEnvelopeStep,
    v3_steps,
)

logger = get_logger(__name__)


def _canonical_flow() -> list[TransformStep]:
    return [
        ParseEnvelopeStep(),
        AssembleRequestStep(),
    ]


def _create_flow() -> list[TransformStep]:
    return [
        *_canonical_flow(),
        *v3_steps(),
    ]


def _update_flow() -> list[TransformStep]:
    return [
        *_canonical_flow(),
        *v3_steps(),
        ApplyETagStep(),
    ]


FLOW_REGISTRY: dict[str, Callable[[], list[TransformStep]]] = {
    FlowType.CREATE: _create_flow,
    FlowType.UPDATE: _update_flow,
    FlowType.CANONICAL: _canonical_flow,
}


class FlowResolver:
    """Resolves a flow type to a fresh, ordered list of steps."""

    def __init__(self, registry: dict[str, Callable[[], list[TransformStep]]] | None = None) -> None:
        self.registry = registry or FLOW_REGISTRY

    def resolve(self, flow_type: str) -> list[TransformStep]:
        """
        Return the ordered step list for the given flow.

        Raises:
            FlowResolutionError: If no flow is registered under that name.
        """
        builder = self.registry.get(flow_type)
        if builder is None:
            raise FlowResolutionError(
                f"No flow registered for '{flow_type}'",
                step_name="flow_resolution",
                details={"available": self.list_available_flows()},
            )

        steps = builder()
        logger.debug("Flow resolved", flow_type=str(flow_type), steps=[s.name for s in steps])
        return steps

    def list_available_flows(self) -> list[str]:
        """Return all registered flow keys."""
        return [str(key) for key in self.registry]
