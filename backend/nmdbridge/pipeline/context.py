"""
TransformContext — state object carried through every step of one run.

Each step reads from and writes to the context.  A context is created
fresh for every transform and never shared between runs.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable

from nmdbridge.core.constants import OperationType, StepStatus
from nmdbridge.processing.envelope import Envelope
from nmdbridge.processing.schemas import CanonicalPatchRequest


# ═══════════════════════════════════════════════════════════
#  StepResult
# ═══════════════════════════════════════════════════════════

@dataclass
class StepResult:
    """How one step went: status, timing, and step-specific metadata."""

    step_name: str
    status: StepStatus
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly form; timestamps as ISO strings."""
        record = asdict(self)
        for key in ("started_at", "completed_at"):
            moment = record[key]
            record[key] = moment.isoformat() if moment else None
        return record


# ═══════════════════════════════════════════════════════════
#  TransformContext
# ═══════════════════════════════════════════════════════════

@dataclass
class TransformContext:
    """
    Carries all state between transform steps.

    Populated progressively — parsing fills in ``envelope``, assembly
    fills in ``canonical``, the V3 stages rewrite ``payload`` in turn.
    """

    # ─── Input (set at init) ───────────────────────────
    raw_envelope: Any
    operation: OperationType = OperationType.CREATE
    etag: str | None = None
    clock: Callable[[], datetime] | None = None
    execution_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    # ─── Derived ───────────────────────────────────────
    envelope: Envelope | None = None
    canonical: CanonicalPatchRequest | None = None
    payload: dict[str, Any] | None = None

    # ─── Execution tracking ────────────────────────────
    current_step_index: int = 0
    total_steps: int = 0
    step_results: list[StepResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    failure: BaseException | None = None

    def add_warning(self, warning: str) -> None:
        """Record a non-fatal problem."""
        self.warnings.append(warning)

    def to_summary_dict(self) -> dict[str, Any]:
        """Compact summary for logging."""
        canonical = self.canonical
        return {
            "execution_id": self.execution_id,
            "operation": self.operation.value,
            "document_id": canonical.document_id if canonical else None,
            "state": canonical.state.value if canonical else None,
            "versions": len(canonical.versions) if canonical else 0,
            "acl_entries": len(canonical.acl) if canonical else 0,
            "custom_attributes": len(canonical.custom_attributes) if canonical else 0,
            "steps_completed": len(self.step_results),
            "total_steps": self.total_steps,
            "warnings": self.warnings,
        }
