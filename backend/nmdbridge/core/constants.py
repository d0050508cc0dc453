"""Shared constants and enums used across the transformer."""

from enum import IntFlag, StrEnum


class OperationType(StrEnum):
    """Which patch request variant to build."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"


class FlowType(StrEnum):
    """Step sequences known to the flow resolver."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    CANONICAL = "CANONICAL"


class PipelineStatus(StrEnum):
    """Overall status of a transform run."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class StepStatus(StrEnum):
    """Status of an individual transform step."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class DocumentState(StrEnum):
    """Lifecycle state of a document."""

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    DELETED = "DELETED"
    PURGE = "PURGE"


class VersionState(StrEnum):
    """Lifecycle state of a single version."""

    ACTIVE = "ACTIVE"
    DELETED = "DELETED"


class SubjectType(StrEnum):
    """Kind of principal an ACL entry grants to."""

    USER = "user"
    GROUP = "group"
    CABINET = "cabinet"


class Relation(StrEnum):
    """Relation names understood by the metadata service."""

    VIEWER = "viewer"
    EDITOR = "editor"
    SHARER = "sharer"
    ADMINISTRATOR = "administrator"
    DENIED = "denied"
    DEFAULT = "default"
    OFFICIAL_ACCESS_ONLY = "official_access_only"


class DocStatusFlag(IntFlag):
    """Bits of the legacy document status field."""

    CHECKED_OUT = 1
    EMAIL = 2
    ARCHIVED = 4
    AUTO_VERSION = 8
    COLLAB_EDIT = 16
    LOCKED = 32


# Rights character → relation.  Characters not listed are dropped.
RIGHTS_MAP: dict[str, Relation] = {
    "V": Relation.VIEWER,
    "E": Relation.EDITOR,
    "S": Relation.SHARER,
    "D": Relation.ADMINISTRATOR,
    "A": Relation.ADMINISTRATOR,
    "N": Relation.DENIED,
    "Z": Relation.DEFAULT,
}

GROUP_PREFIXES = ("UG-",)
CABINET_PREFIXES = ("NG-", "CA-")

# Document properties that are never treated as custom attributes.
SYSTEM_PROPERTIES = frozenset({
    "docNum", "id", "status", "officialVersion", "lastVerNo", "verLabel",
    "name", "nameModNum", "contentModNum", "actionBy", "actionDate",
    "actionComment", "links", "emailProps", "indexType-Metadata",
    "indexLocation-Metadata", "indexType-FullText", "indexLocation-FullText",
    "indexType-Entities", "indexLocation-Entities", "collaborationEdit",
    "collaborationEditType", "parent",
    "deleted", "locked", "lockDocumentModel", "wopiLock", "collabEditType",
    "archived", "autoVersion", "nextVersion", "envUrl", "aclFreeze",
    "created", "modified", "approval", "docSize", "cabinetId", "state",
})

CUSTOM_PROPERTY_PREFIX = "cp|"
DELETION_MARKER_SUFFIX = "_IsDeleted"
COLLAB_EDIT_COMMENT_PREFIX = "CollaborationEditType:"
