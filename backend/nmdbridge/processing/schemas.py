"""
Canonical patch request schema.

Models use snake_case attributes and dump to the PascalCase wire shape
via ``model_dump(by_alias=True)``.  Field declaration order is the key
order of the serialized request.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal

from nmdbridge.core.constants import DocumentState, SubjectType, VersionState


class CanonicalModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_pascal,
        populate_by_name=True,
        frozen=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """JSON-compatible dict with PascalCase keys."""
        return self.model_dump(by_alias=True, mode="json")


class AuditStamp(CanonicalModel):
    user_id: str | None = None
    timestamp: str | None = None


class AccessControlEntry(CanonicalModel):
    subject_type: SubjectType
    subject_id: str
    relations: list[str] = Field(default_factory=list)


class CanonicalVersion(CanonicalModel):
    version_id: int | None
    name: str | None
    description: str = ""
    extension: str | None = None
    label: str | None = None
    size: Any = None
    locked: bool = False
    delivery_revoked: bool = False
    created: AuditStamp
    modified: AuditStamp
    state: VersionState = VersionState.ACTIVE
    copied_from: int | None = None
    legacy_signatures: Any = None


class CustomAttribute(CanonicalModel):
    key: str
    values: list[str] = Field(default_factory=list)
    is_deleted: bool = False


class CheckedOutInfo(CanonicalModel):
    user_id: str | None = None
    timestamp: str | None = None
    comment: str | None = None
    collaboration_edit: Any = None
    collaboration_edit_type: str | None = None


class LockedInfo(CanonicalModel):
    user_id: str | None = None
    comment: str | None = None
    timestamp: str | None = None


class EmailInfo(CanonicalModel):
    from_: str | None = Field(None, alias="From")
    to: list[str] = Field(default_factory=list)
    cc: list[str] = Field(default_factory=list)
    subject: str | None = None
    sent_date: str | None = None


class CanonicalPatchRequest(CanonicalModel):
    """Desired state of one document, prior to V3 reshaping."""

    document_id: str | None
    cabinet_id: str | None
    name: str | None
    state: DocumentState
    official_version: int | None
    next_version: int | None
    env_url: str
    parent_folders: list[str] = Field(default_factory=list)
    folder_tree: list[str] = Field(default_factory=list)
    acl_freeze: bool = False
    archived: bool = False
    auto_version: bool = False
    doc_mod_num: int | None = None
    name_mod_num: int | None = None
    content_mod_num: int | None = None
    doc_num: str | int | None = None
    created: AuditStamp
    modified: AuditStamp
    checked_out: CheckedOutInfo
    locked: LockedInfo
    linked_documents: list[str] = Field(default_factory=list)
    custom_attributes: list[CustomAttribute] = Field(default_factory=list)
    versions: list[CanonicalVersion] = Field(default_factory=list)
    acl: list[AccessControlEntry] = Field(default_factory=list)
    policy_id: str = ""
    classification_id: str = ""
    deleted_cabinets: list[str] = Field(default_factory=list)
    alerts: Any = None
    approvals: Any = None
    email_info: EmailInfo | None = None
