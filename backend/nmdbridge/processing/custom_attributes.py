"""
Custom Attribute Extractor — user-defined metadata from docProps.

Each ``cp|<attributeId>|<index>`` field becomes one CustomAttribute.
One attribute id may yield several records here (one per index); they
are merged into a single entry by the V3 projector.
"""

from __future__ import annotations

from typing import Any

from nmdbridge.core.logging import get_logger
from nmdbridge.processing.envelope import DocProps
from nmdbridge.processing.schemas import CustomAttribute

logger = get_logger(__name__)


def stringify_value(value: Any) -> str:
    """String form of a property value as the metadata service expects it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(stringify_value(item) for item in value)
    return str(value)


def extract_custom_attributes(doc_props: DocProps) -> list[CustomAttribute]:
    """
    Build one CustomAttribute per custom-property field.

    Args:
        doc_props: Parsed document properties.

    Returns:
        Attributes in docProps key order, unmerged.
    """
    attributes: list[CustomAttribute] = []

    for field in doc_props.custom_fields:
        attributes.append(CustomAttribute(
            key=field.attribute_id,
            values=[] if field.value is None else [stringify_value(field.value)],
            is_deleted=doc_props.is_marked_deleted(field.key),
        ))

    if doc_props.extras:
        logger.debug(
            "Ignored non-custom document properties",
            keys=sorted(doc_props.extras),
        )

    return attributes
