"""
Build the V3 patch request for a session and write it back to the store.

Reads the raw NMD message from the store, runs the transform, merges the
stored eTag for UPDATE, saves the pretty-printed payload and logs a
summary of what went out.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Callable

from nmdbridge.core.config import settings
from nmdbridge.core.constants import OperationType
from nmdbridge.core.logging import get_logger
from nmdbridge.pipeline.engine import PipelineResult, TransformEngine
from nmdbridge.pipeline.errors import EnvelopeValidationError
from nmdbridge.processing.schemas import CanonicalPatchRequest
from nmdbridge.submission.store import KeyValueStore

logger = get_logger(__name__)


def build_payload(
    raw_envelope: Any,
    operation: OperationType | str = OperationType.CREATE,
    etag: str | None = None,
    clock: Callable[[], datetime] | None = None,
) -> PipelineResult:
    """
    Transform one envelope and return the completed run.

    Raises:
        EnvelopeValidationError: the envelope is malformed.
        StepExecutionError: a step failed unexpectedly.
    """
    result = TransformEngine().run(raw_envelope, operation=operation, etag=etag, clock=clock)
    result.raise_for_failure()
    return result


def summarize(canonical: CanonicalPatchRequest) -> dict[str, Any]:
    """Counts and status notes reported after a build."""
    summary: dict[str, Any] = {
        "document": canonical.name,
        "state": canonical.state.value,
        "versions": len(canonical.versions),
        "acl_entries": len(canonical.acl),
        "custom_attributes": len(canonical.custom_attributes),
        "linked_documents": len(canonical.linked_documents),
        "parent_folders": len(canonical.parent_folders),
        "folder_tree": len(canonical.folder_tree),
    }
    if canonical.archived:
        summary["archived"] = True
    if canonical.checked_out.user_id:
        summary["checked_out_by"] = canonical.checked_out.user_id
    if canonical.locked.user_id:
        summary["locked_by"] = canonical.locked.user_id
    if canonical.classification_id:
        summary["classification"] = canonical.classification_id
    if canonical.policy_id:
        summary["dlp_policy"] = canonical.policy_id
    return summary


def build_and_save_patch_request(
    store: KeyValueStore,
    operation: OperationType | str = OperationType.CREATE,
    clock: Callable[[], datetime] | None = None,
) -> dict[str, Any]:
    """
    Build the V3 patch request from the stored envelope and save it.

    Args:
        store: Session store holding the raw envelope (and, for UPDATE,
            the current eTag).
        operation: CREATE or UPDATE.
        clock: Source of "now" for UPDATE's modified timestamp.

    Returns:
        The V3 payload that was written to the store.

    Raises:
        EnvelopeValidationError: no envelope in the store, or it is malformed.
    """
    operation = OperationType(operation)

    raw_envelope = store.get(settings.ENVELOPE_STORE_KEY)
    if raw_envelope is None:
        raise EnvelopeValidationError(
            f"No envelope stored under '{settings.ENVELOPE_STORE_KEY}'",
            step_name="load_envelope",
        )

    etag = None
    if operation is OperationType.UPDATE:
        etag = store.get(settings.ETAG_STORE_KEY)

    result = build_payload(raw_envelope, operation=operation, etag=etag, clock=clock)
    store.set(settings.PAYLOAD_STORE_KEY, json.dumps(result.payload, indent=2, ensure_ascii=False))

    logger.info(
        f"{operation.value} patch request built",
        execution_id=result.execution_id,
        **summarize(result.canonical),
    )
    return result.payload
