"""
V3 Projector — rewrites a canonical patch request into the V3 API shape.

Four stages, always applied in this order:

    1. normalize_casing      PascalCase keys → camelCase (recursive)
    2. reshape_structure     flatten audit stamps, rename checkedOut /
                             locked / version fields, fill version defaults
    3. normalize_nulls       "" → None for nullable ids, drop isDeleted
    4. correct_cross_fields  envUrl slash, cabinetId backfill, custom
                             attribute consolidation, modifiedAt >= createdAt

Every stage is a pure function: it returns a new structure and leaves its
input untouched.
"""

from __future__ import annotations

from datetime import datetime, timezone
from functools import reduce
from typing import Any, Callable

from nmdbridge.core.config import settings
from nmdbridge.core.logging import get_logger
from nmdbridge.processing.schemas import CanonicalPatchRequest

logger = get_logger(__name__)

# Sub-records that stage 2 rebuilds itself instead of recursing into.
_RESHAPED_KEYS = frozenset({"created", "modified", "checkedOut", "locked"})

# Empty string means "not set" for these; V3 wants an explicit null.
NULLABLE_FIELDS = frozenset({"policyId", "classificationId", "eTag"})

# Not part of the V3 CustomAttribute schema.
DEPRECATED_FIELDS = frozenset({"isDeleted"})


# ═══════════════════════════════════════════════════════════
#  Stage 1 — casing
# ═══════════════════════════════════════════════════════════

def _lower_first(key: str) -> str:
    return key[:1].lower() + key[1:]


def normalize_casing(value: Any) -> Any:
    """Lowercase the first character of every mapping key, recursively."""
    if isinstance(value, list):
        return [normalize_casing(item) for item in value]
    if isinstance(value, dict):
        return {_lower_first(key): normalize_casing(item) for key, item in value.items()}
    return value


# ═══════════════════════════════════════════════════════════
#  Stage 2 — structure
# ═══════════════════════════════════════════════════════════

def _default_filename(extension: str | None) -> str:
    stem = settings.DEFAULT_FILENAME_STEM
    return f"{stem}.{extension}" if extension else stem


def _reshape_version(version: dict[str, Any]) -> dict[str, Any]:
    if "size" in version:
        version["contentSize"] = version.pop("size")
    if not version.get("fileName"):
        version["fileName"] = _default_filename(version.get("extension"))
    if not version.get("eTag"):
        version["eTag"] = ""
    return version


def reshape_structure(value: Any) -> Any:
    """
    Flatten audit stamps and rename sub-record fields for V3.

        created  {userId, timestamp} → createdBy / createdAt
        modified {userId, timestamp} → modifiedBy / modifiedAt
        checkedOut {userId, timestamp, ...} → checkedOutBy / checkedOutAt
        locked {userId, timestamp, comment} → lockedBy / lockedAt

    Version records (anything carrying versionId) additionally get
    size → contentSize, a synthesized fileName and a default eTag.
    """
    if isinstance(value, list):
        return [reshape_structure(item) for item in value]
    if not isinstance(value, dict):
        return value

    shaped = {
        key: item if key in _RESHAPED_KEYS else reshape_structure(item)
        for key, item in value.items()
    }

    for audit in ("created", "modified"):
        stamp = shaped.get(audit)
        if isinstance(stamp, dict):
            del shaped[audit]
            shaped[f"{audit}By"] = stamp.get("userId")
            shaped[f"{audit}At"] = stamp.get("timestamp")

    if "versionId" in shaped:
        shaped = _reshape_version(shaped)

    checked_out = shaped.get("checkedOut")
    if isinstance(checked_out, dict):
        shaped["checkedOut"] = {
            "comment": checked_out.get("comment") or None,
            "collaborationEdit": checked_out.get("collaborationEdit") or None,
            "collaborationEditType": checked_out.get("collaborationEditType") or None,
            "checkedOutBy": checked_out.get("userId") or None,
            "checkedOutAt": checked_out.get("timestamp") or None,
        }

    locked = shaped.get("locked")
    if isinstance(locked, dict):
        shaped["locked"] = {
            "comment": locked.get("comment") or None,
            "lockedBy": locked.get("userId") or None,
            "lockedAt": locked.get("timestamp") or None,
        }

    return shaped


# ═══════════════════════════════════════════════════════════
#  Stage 3 — nulls
# ═══════════════════════════════════════════════════════════

def normalize_nulls(value: Any) -> Any:
    """Empty nullable ids become None; deprecated fields are dropped."""
    if isinstance(value, list):
        return [normalize_nulls(item) for item in value]
    if not isinstance(value, dict):
        return value

    cleaned: dict[str, Any] = {}
    for key, item in value.items():
        if key in DEPRECATED_FIELDS:
            continue
        if item == "" and key in NULLABLE_FIELDS:
            cleaned[key] = None
        else:
            cleaned[key] = normalize_nulls(item)
    return cleaned


# ═══════════════════════════════════════════════════════════
#  Stage 4 — cross-field corrections
# ═══════════════════════════════════════════════════════════

def _merge_attribute(
    merged: dict[str, list[Any]],
    attribute: dict[str, Any],
) -> dict[str, list[Any]]:
    values = attribute.get("values")
    key = attribute.get("key")
    return {**merged, key: [*merged.get(key, []), *(values if isinstance(values, list) else [])]}


def consolidate_custom_attributes(attributes: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    One entry per attribute key, values concatenated in input order.

    cp|CA-1|1="a", cp|CA-1|2="b" → [{"key": "CA-1", "values": ["a", "b"]}]
    """
    merged = reduce(_merge_attribute, attributes, {})
    return [{"key": key, "values": values} for key, values in merged.items()]


def _parse_instant(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        moment = datetime.fromisoformat(value)
    except ValueError:
        return None
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


def enforce_timestamp_order(record: dict[str, Any]) -> dict[str, Any]:
    """Return a copy whose modifiedAt is never earlier than createdAt."""
    created_at = record.get("createdAt")
    modified_at = record.get("modifiedAt")
    if not created_at or not modified_at:
        return record

    created = _parse_instant(created_at)
    modified = _parse_instant(modified_at)
    if created is None or modified is None or modified >= created:
        return record

    logger.debug(
        "modifiedAt precedes createdAt, clamping",
        created_at=created_at,
        modified_at=modified_at,
        version_id=record.get("versionId"),
    )
    return {**record, "modifiedAt": created_at}


def correct_cross_fields(payload: dict[str, Any]) -> dict[str, Any]:
    """Apply the V3 validation fixes that span more than one field."""
    corrected = dict(payload)

    env_url = corrected.get("envUrl")
    if env_url and not env_url.startswith("/"):
        corrected["envUrl"] = f"/{env_url}"

    deleted_cabinets = corrected.get("deletedCabinets")
    if not corrected.get("cabinetId") and deleted_cabinets:
        corrected["cabinetId"] = deleted_cabinets[0]

    attributes = corrected.get("customAttributes")
    if isinstance(attributes, list):
        corrected["customAttributes"] = consolidate_custom_attributes(attributes)

    corrected = enforce_timestamp_order(corrected)

    versions = corrected.get("versions")
    if isinstance(versions, list):
        corrected["versions"] = [
            enforce_timestamp_order(version) if isinstance(version, dict) else version
            for version in versions
        ]

    return corrected


# ═══════════════════════════════════════════════════════════
#  Full projection
# ═══════════════════════════════════════════════════════════

V3_STAGES: tuple[tuple[str, Callable[[Any], Any]], ...] = (
    ("normalize_casing", normalize_casing),
    ("reshape_structure", reshape_structure),
    ("normalize_nulls", normalize_nulls),
    ("correct_cross_fields", correct_cross_fields),
)


def apply_v3_transformations(
    canonical: CanonicalPatchRequest | dict[str, Any],
) -> dict[str, Any]:
    """Run all four V3 stages over a canonical request."""
    payload: Any = canonical.to_wire() if isinstance(canonical, CanonicalPatchRequest) else canonical
    for _, stage in V3_STAGES:
        payload = stage(payload)
    return payload
