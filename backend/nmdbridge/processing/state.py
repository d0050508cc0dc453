"""State Determiner — lifecycle state of the document."""

from __future__ import annotations

from nmdbridge.core.constants import DocumentState
from nmdbridge.processing.envelope import Envelope


def determine_document_state(envelope: Envelope) -> DocumentState:
    """
    Evaluate the state rules in precedence order; the first match wins.

        1. PURGE    — envProps.purged is exactly true
        2. DELETED  — no containing cabinets, at least one deleted cabinet,
                      and a status of exactly 0
        3. ACTIVE   — some version carries a snapshot
        4. PENDING  — everything else (new documents without content)
    """
    env_props = envelope.env_props
    doc_props = envelope.document.doc_props

    if env_props.purged is True:
        return DocumentState.PURGE

    deleted_from_all_cabinets = (
        not env_props.containing_cabinets and bool(env_props.deleted_cabinets)
    )
    if deleted_from_all_cabinets and doc_props.status == 0:
        return DocumentState.DELETED

    if any(version.ver_props.snapshots for version in envelope.versions.values()):
        return DocumentState.ACTIVE

    return DocumentState.PENDING
