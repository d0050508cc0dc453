"""Version Builder — NMD version map → canonical version records."""

from __future__ import annotations

from nmdbridge.core.constants import VersionState
from nmdbridge.processing.envelope import Version
from nmdbridge.processing.extractors import convert_date, parse_int
from nmdbridge.processing.schemas import AuditStamp, CanonicalVersion


def build_version(version_key: str, version: Version) -> CanonicalVersion:
    props = version.ver_props
    return CanonicalVersion(
        version_id=parse_int(version_key),
        name=props.ver_name or version_key,
        description=props.description or "",
        extension=props.extension,
        label=props.label,
        size=props.size,
        locked=bool(props.locked),
        delivery_revoked=bool(props.delivery_revoked),
        created=AuditStamp(
            user_id=props.creator_guid,
            timestamp=convert_date(props.created),
        ),
        # Versions that were never edited carry no modifier fields.
        modified=AuditStamp(
            user_id=props.modified_by_guid or props.creator_guid,
            timestamp=convert_date(props.modified or props.created),
        ),
        state=VersionState.DELETED if props.deleted else VersionState.ACTIVE,
        copied_from=props.parent or None,
    )


def build_versions(versions: dict[str, Version] | None) -> list[CanonicalVersion]:
    """Map every version entry, preserving the envelope's iteration order."""
    return [build_version(key, version) for key, version in (versions or {}).items()]
