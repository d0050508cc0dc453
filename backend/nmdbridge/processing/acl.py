"""
ACL Deriver — document-level grants plus version-only "official" access.

Document-level entries come straight from envProps.acl.  Every version
also carries an access string ("VDUCOT-USER1|VESD:VDUCOT-USER2|VE");
subjects that appear there but not in the document-level list are
granted the synthetic ``official_access_only`` relation.
"""

from __future__ import annotations

import re

from nmdbridge.core.constants import (
    CABINET_PREFIXES,
    GROUP_PREFIXES,
    RIGHTS_MAP,
    Relation,
    SubjectType,
)
from nmdbridge.core.logging import get_logger
from nmdbridge.processing.envelope import Envelope, Version
from nmdbridge.processing.schemas import AccessControlEntry

logger = get_logger(__name__)

# <classification letter><subject id>|<rights run>
_VERSION_GRANT_RE = re.compile(r"[A-Z]([A-Z0-9-]+)\|([A-Z]+)")


def get_subject_type(guid: str) -> SubjectType:
    """Classify a subject by its id prefix."""
    if guid.startswith(GROUP_PREFIXES):
        return SubjectType.GROUP
    if guid.startswith(CABINET_PREFIXES):
        return SubjectType.CABINET
    return SubjectType.USER


def map_rights_to_relations(rights: str | None) -> list[str]:
    """Map each rights character to a relation; unknown characters are dropped."""
    return [RIGHTS_MAP[char].value for char in (rights or "") if char in RIGHTS_MAP]


def extract_version_subjects(versions: dict[str, Version]) -> list[str]:
    """Subject ids named in version access strings, first-seen order, no repeats."""
    seen: dict[str, None] = {}
    for version in versions.values():
        access = version.ver_props.access
        if not access:
            continue
        for match in _VERSION_GRANT_RE.finditer(access):
            seen.setdefault(match.group(1), None)
    return list(seen)


def build_acl(envelope: Envelope) -> list[AccessControlEntry]:
    """
    Full access-control list for the document.

    Order: document-level entries as given, then version-only subjects in
    the order they were first encountered.  Subject ids are compared
    case-insensitively.
    """
    document_acl = [
        AccessControlEntry(
            subject_type=get_subject_type(grant.guid),
            subject_id=grant.guid,
            relations=map_rights_to_relations(grant.rights),
        )
        for grant in envelope.env_props.acl
    ]

    known = {entry.subject_id.upper() for entry in document_acl}
    official_only = [
        AccessControlEntry(
            subject_type=get_subject_type(subject_id),
            subject_id=subject_id,
            relations=[Relation.OFFICIAL_ACCESS_ONLY.value],
        )
        for subject_id in extract_version_subjects(envelope.versions)
        if subject_id.upper() not in known
    ]

    if official_only:
        logger.debug(
            "Version-only subjects granted official access",
            subjects=[entry.subject_id for entry in official_only],
        )

    return document_acl + official_only
