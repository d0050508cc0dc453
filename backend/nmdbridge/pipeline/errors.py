"""
Errors raised while transforming an envelope.

Everything derives from TransformError.  The engine fills in
``execution_id`` and ``step_name`` when a step lets one escape, so the
error that reaches the caller says where the run stopped.
"""

from __future__ import annotations


class TransformError(Exception):
    """Base exception for all transform errors."""

    def __init__(
        self,
        message: str,
        *,
        execution_id: str | None = None,
        step_name: str | None = None,
        details: dict | None = None,
    ) -> None:
        self.execution_id = execution_id
        self.step_name = step_name
        self.details = details or {}
        super().__init__(message)


class EnvelopeValidationError(TransformError):
    """The input is not a well-formed NMD envelope."""
    pass


class StepExecutionError(TransformError):
    """A step failed during execution."""
    pass


class FlowResolutionError(TransformError):
    """Could not resolve the step sequence for a given flow type."""
    pass
