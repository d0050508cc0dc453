"""
NMD envelope models — the typed, immutable view of the raw input.

The raw message is a loose JSON document.  It is validated once into
frozen pydantic models; downstream builders never touch raw dicts.

docProps is an open-ended property bag.  At parse time it is split into:
    - the fixed system fields declared on DocProps,
    - custom_fields:    ordered ``cp|<attributeId>|<index>`` entries,
    - deletion_markers: ``<key>_IsDeleted`` flags keyed by ``<key>``,
    - extras:           everything else (kept, never interpreted).
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)

from nmdbridge.core.config import settings
from nmdbridge.core.constants import (
    CUSTOM_PROPERTY_PREFIX,
    DELETION_MARKER_SUFFIX,
    SYSTEM_PROPERTIES,
)
from nmdbridge.core.logging import get_logger
from nmdbridge.pipeline.errors import EnvelopeValidationError
from nmdbridge.processing.extractors import parse_int

logger = get_logger(__name__)


def _none_as_empty(value: Any) -> Any:
    return [] if value is None else value


def _none_as_empty_map(value: Any) -> Any:
    return {} if value is None else value


IntLike = Annotated[int | None, BeforeValidator(parse_int)]
StrList = Annotated[list[str], BeforeValidator(_none_as_empty)]
AnyList = Annotated[list[Any], BeforeValidator(_none_as_empty)]


class _NmdModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )


# ═══════════════════════════════════════════════════════════
#  Custom property keys
# ═══════════════════════════════════════════════════════════

class CustomPropertyField(_NmdModel):
    """One ``cp|<attributeId>|<index>`` entry from docProps."""

    key: str
    attribute_id: str
    index: str
    value: Any = None

    @classmethod
    def parse_key(cls, key: str) -> tuple[str, str] | None:
        """Return (attribute_id, index) for a well-formed key, else None."""
        if not key.startswith(CUSTOM_PROPERTY_PREFIX):
            return None
        parts = key.split("|")
        if len(parts) != 3:
            return None
        return parts[1], parts[2]


# ═══════════════════════════════════════════════════════════
#  Versions
# ═══════════════════════════════════════════════════════════

class VerProps(_NmdModel):
    ver_name: str | None = Field(None, alias="verName")
    description: str | None = None
    extension: str | None = Field(None, alias="exten")
    label: str | None = Field(None, alias="verLabel")
    size: Any = None
    locked: bool | None = None
    delivery_revoked: bool | None = Field(None, alias="deliveryRevoked")
    creator_guid: str | None = Field(None, alias="creatorguid")
    modified_by_guid: str | None = Field(None, alias="modifiedByGuid")
    created: str | None = None
    modified: str | None = None
    deleted: bool | None = None
    parent: IntLike = None
    snapshots: AnyList = Field(default_factory=list)
    access: str | None = None


class Version(_NmdModel):
    ver_props: VerProps = Field(default_factory=VerProps, alias="verProps")


# ═══════════════════════════════════════════════════════════
#  Document
# ═══════════════════════════════════════════════════════════

_PARTITION_FIELDS = ("custom_fields", "deletion_markers", "extras")


class DocProps(_NmdModel):
    """Fixed system fields plus the partitioned extension keys."""

    id: str | None = None
    doc_num: str | int | None = Field(None, alias="docNum")
    name: str | None = None
    status: IntLike = None
    last_ver_no: IntLike = Field(None, alias="lastVerNo")
    name_mod_num: IntLike = Field(None, alias="nameModNum")
    content_mod_num: IntLike = Field(None, alias="contentModNum")
    action_by: str | None = Field(None, alias="actionBy")
    action_date: str | None = Field(None, alias="actionDate")
    action_comment: str | None = Field(None, alias="actionComment")
    lock_document_model: Any = Field(None, alias="lockDocumentModel")
    email_props: str | None = Field(None, alias="emailProps")
    links: str | None = None
    collaboration_edit: Any = Field(None, alias="collaborationEdit")
    collab_edit_type: str | None = Field(None, alias="collabEditType")
    collaboration_edit_type: str | None = Field(None, alias="collaborationEditType")

    custom_fields: tuple[CustomPropertyField, ...] = ()
    deletion_markers: dict[str, Any] = Field(default_factory=dict)
    extras: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _partition_properties(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        if any(name in data for name in _PARTITION_FIELDS):
            return data

        fixed_keys = {
            field.alias or name
            for name, field in cls.model_fields.items()
            if name not in _PARTITION_FIELDS
        }

        fixed: dict[str, Any] = {}
        custom: list[dict[str, Any]] = []
        markers: dict[str, Any] = {}
        extras: dict[str, Any] = {}

        for key, value in data.items():
            if key in fixed_keys:
                fixed[key] = value
            elif key.endswith(DELETION_MARKER_SUFFIX):
                markers[key[: -len(DELETION_MARKER_SUFFIX)]] = value
            elif key in SYSTEM_PROPERTIES:
                extras[key] = value
            elif parsed := CustomPropertyField.parse_key(key):
                attribute_id, index = parsed
                custom.append({
                    "key": key,
                    "attribute_id": attribute_id,
                    "index": index,
                    "value": value,
                })
            else:
                extras[key] = value

        return {
            **fixed,
            "custom_fields": custom,
            "deletion_markers": markers,
            "extras": extras,
        }

    @property
    def collab_edit_indicator(self) -> str | None:
        return self.collab_edit_type or self.collaboration_edit_type or None

    def is_marked_deleted(self, key: str) -> bool:
        """True only when ``<key>_IsDeleted`` is literally true."""
        return self.deletion_markers.get(key) is True


class Document(_NmdModel):
    doc_props: DocProps = Field(alias="docProps")
    versions: Annotated[dict[str, Version], BeforeValidator(_none_as_empty_map)] = Field(
        default_factory=dict
    )


# ═══════════════════════════════════════════════════════════
#  Envelope
# ═══════════════════════════════════════════════════════════

class AclGrant(_NmdModel):
    guid: str
    rights: str | None = None


class EnvProps(_NmdModel):
    acl: Annotated[list[AclGrant], BeforeValidator(_none_as_empty)] = Field(default_factory=list)
    containing_cabinets: StrList = Field(default_factory=list, alias="containingcabs")
    deleted_cabinets: StrList = Field(default_factory=list, alias="deletedcabs")
    author_guid: str | None = Field(None, alias="authorguid")
    modified_by_guid: str | None = Field(None, alias="modified by guid")
    created: str | None = None
    modified: str | None = None
    url: str | None = None
    jumbo_folders: str | list[str] | None = Field(None, alias="jumbofolders")
    folder_tree: str | list[str] | None = Field(None, alias="foldertree")
    dlp: str | None = None
    data_classification: str | None = Field(None, alias="dataclassification")
    doc_mod_num: IntLike = Field(None, alias="docmodnum")
    purged: Any = None


class Envelope(_NmdModel):
    env_props: EnvProps = Field(alias="envProps")
    documents: dict[str, Document]

    @property
    def document(self) -> Document:
        """The document this pipeline operates on (ordinal "1" by default)."""
        return self.documents[settings.DOCUMENT_ORDINAL]

    @property
    def versions(self) -> dict[str, Version]:
        return self.document.versions


def parse_envelope(raw: str | bytes | Mapping[str, Any] | Envelope) -> Envelope:
    """
    Validate a raw NMD message into an Envelope.

    Args:
        raw: JSON text, an already-decoded dict, or an Envelope.

    Raises:
        EnvelopeValidationError: input is not a well-formed envelope or the
            primary document ordinal is missing.
    """
    if isinstance(raw, Envelope):
        envelope = raw
    else:
        try:
            if isinstance(raw, (str, bytes)):
                envelope = Envelope.model_validate_json(raw)
            elif isinstance(raw, Mapping):
                envelope = Envelope.model_validate(raw)
            else:
                raise EnvelopeValidationError(
                    f"Unsupported envelope type: {type(raw).__name__}",
                    step_name="parse_envelope",
                )
        except ValidationError as exc:
            raise EnvelopeValidationError(
                f"Malformed NMD envelope: {exc.error_count()} validation error(s)",
                step_name="parse_envelope",
                details={"errors": json.loads(exc.json(include_url=False))},
            ) from exc

    ordinal = settings.DOCUMENT_ORDINAL
    if ordinal not in envelope.documents:
        raise EnvelopeValidationError(
            f"Envelope has no document with ordinal '{ordinal}'",
            step_name="parse_envelope",
            details={"ordinals": list(envelope.documents)},
        )

    document = envelope.documents[ordinal]
    logger.debug(
        "Envelope parsed",
        document_id=document.doc_props.id,
        versions=len(document.versions),
        custom_fields=len(document.doc_props.custom_fields),
    )
    return envelope
