"""
Canonical Request Assembler — NMD envelope → CanonicalPatchRequest.

Fans in the field extractors, ACL deriver, version builder, custom
attribute extractor and state determiner into one desired-state record.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Callable

from nmdbridge.core.config import settings
from nmdbridge.core.constants import COLLAB_EDIT_COMMENT_PREFIX, OperationType
from nmdbridge.core.logging import get_logger
from nmdbridge.processing.acl import build_acl
from nmdbridge.processing.custom_attributes import extract_custom_attributes
from nmdbridge.processing.envelope import DocProps, Envelope, parse_envelope
from nmdbridge.processing.extractors import (
    convert_date,
    extract_classification_id,
    extract_deleted_cabinets,
    extract_env_url,
    extract_policy_id,
    extract_status_flags,
    format_instant,
    parse_email_info,
    parse_folder_tree,
    parse_linked_documents,
    parse_parent_folders,
)
from nmdbridge.processing.schemas import (
    AuditStamp,
    CanonicalPatchRequest,
    CheckedOutInfo,
    EmailInfo,
    LockedInfo,
)
from nmdbridge.processing.state import determine_document_state
from nmdbridge.processing.versions import build_versions

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════
#  Checked-out / locked sub-records
# ═══════════════════════════════════════════════════════════

def build_checked_out(doc_props: DocProps, is_checked_out: bool) -> CheckedOutInfo:
    """
    Checked-out sub-record.

    Collaborative edits do not always set the checked-out bit, so a
    collab-edit type on the document also counts as checked out.
    """
    collab_edit_type = doc_props.collab_edit_indicator

    if not is_checked_out and not collab_edit_type:
        return CheckedOutInfo()

    comment = doc_props.action_comment or ""
    if comment.startswith(COLLAB_EDIT_COMMENT_PREFIX):
        comment = comment[len(COLLAB_EDIT_COMMENT_PREFIX):]

    return CheckedOutInfo(
        user_id=doc_props.action_by or None,
        timestamp=convert_date(doc_props.action_date),
        comment=comment,
        collaboration_edit=doc_props.collaboration_edit or None,
        collaboration_edit_type=collab_edit_type,
    )


def _parse_lock_descriptor(raw: Any) -> dict | None:
    if not isinstance(raw, str):
        logger.warning(
            "Failed to parse lockDocumentModel",
            error=f"expected a JSON string, got {type(raw).__name__}",
        )
        return None
    try:
        descriptor = json.loads(raw)
    except ValueError as exc:
        logger.warning("Failed to parse lockDocumentModel", error=str(exc))
        return None
    if not isinstance(descriptor, dict):
        logger.warning(
            "Failed to parse lockDocumentModel",
            error=f"expected an object, got {type(descriptor).__name__}",
        )
        return None
    return descriptor


def build_locked(doc_props: DocProps, is_locked: bool) -> LockedInfo:
    """
    Locked sub-record.

    Precedence: the serialized lockDocumentModel (when it parses), then
    the legacy action fields if the locked bit is set, else all null.
    """
    if doc_props.lock_document_model:
        descriptor = _parse_lock_descriptor(doc_props.lock_document_model)
        if descriptor is not None:
            return LockedInfo(
                user_id=descriptor.get("ActionBy") or None,
                comment=descriptor.get("Comment") or None,
                timestamp=convert_date(descriptor.get("ActionDate")),
            )

    if not is_locked:
        return LockedInfo()

    return LockedInfo(
        user_id=doc_props.action_by or None,
        comment=doc_props.action_comment or None,
        timestamp=convert_date(doc_props.action_date),
    )


# ═══════════════════════════════════════════════════════════
#  Patch request
# ═══════════════════════════════════════════════════════════

def _increment(value: int | None) -> int | None:
    return None if value is None else value + 1


def build_patch_request(
    envelope: Envelope | dict | str,
    operation: OperationType | str = OperationType.CREATE,
    clock: Clock | None = None,
) -> CanonicalPatchRequest:
    """
    Assemble the canonical patch request for the envelope's document.

    Args:
        envelope: Parsed Envelope, or raw JSON / dict (parsed here).
        operation: CREATE or UPDATE.
        clock: Source of "now" for UPDATE's modified timestamp.

    Raises:
        EnvelopeValidationError: raw input is not a valid envelope.
    """
    envelope = parse_envelope(envelope)
    operation = OperationType(operation)

    env_props = envelope.env_props
    doc_props = envelope.document.doc_props
    status_flags = extract_status_flags(doc_props.status)
    email_info = parse_email_info(doc_props.email_props)

    name = doc_props.name
    doc_mod_num = env_props.doc_mod_num
    name_mod_num = doc_props.name_mod_num
    modified = AuditStamp(
        user_id=env_props.modified_by_guid,
        timestamp=convert_date(env_props.modified),
    )

    if operation is OperationType.UPDATE:
        # TODO: confirm with product whether UPDATE should keep the source
        # modified timestamp instead of the wall clock.
        name = f"{name or ''}{settings.UPDATE_NAME_SUFFIX}"
        doc_mod_num = _increment(doc_mod_num)
        name_mod_num = _increment(name_mod_num)
        modified = AuditStamp(
            user_id=env_props.modified_by_guid,
            timestamp=format_instant((clock or utc_now)()),
        )

    request = CanonicalPatchRequest(
        document_id=doc_props.id,
        cabinet_id=env_props.containing_cabinets[0] if env_props.containing_cabinets else None,
        name=name,
        state=determine_document_state(envelope),
        official_version=doc_props.last_ver_no,
        next_version=_increment(doc_props.last_ver_no),
        env_url=extract_env_url(env_props.url),
        parent_folders=parse_parent_folders(env_props.jumbo_folders),
        folder_tree=parse_folder_tree(env_props.folder_tree),
        acl_freeze=False,
        archived=status_flags["archived"],
        auto_version=status_flags["autoVersion"],
        doc_mod_num=doc_mod_num,
        name_mod_num=name_mod_num,
        content_mod_num=doc_props.content_mod_num,
        doc_num=doc_props.doc_num,
        created=AuditStamp(
            user_id=env_props.author_guid,
            timestamp=convert_date(env_props.created),
        ),
        modified=modified,
        checked_out=build_checked_out(doc_props, status_flags["isCheckedOut"]),
        locked=build_locked(doc_props, status_flags["isLocked"]),
        linked_documents=parse_linked_documents(doc_props.links),
        custom_attributes=extract_custom_attributes(doc_props),
        versions=build_versions(envelope.versions),
        acl=build_acl(envelope),
        policy_id=extract_policy_id(env_props.dlp),
        classification_id=extract_classification_id(env_props.data_classification),
        deleted_cabinets=extract_deleted_cabinets(env_props.deleted_cabinets),
        email_info=EmailInfo.model_validate(email_info) if email_info else None,
    )

    logger.info(
        "Canonical patch request built",
        operation=operation.value,
        document_id=request.document_id,
        state=request.state.value,
        versions=len(request.versions),
        acl_entries=len(request.acl),
        custom_attributes=len(request.custom_attributes),
    )
    return request
