"""
Field extractors — pure conversions for NMD scalar fields.

Dates, packed timestamps, status bitmasks, URLs and the small
delimited-list fields found on envProps / docProps.  Every function
here degrades to a documented default instead of raising.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Any

from nmdbridge.core.constants import DocStatusFlag
from nmdbridge.core.logging import get_logger

logger = get_logger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_DIGITS_RE = re.compile(r"\d+")
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_ENV_URL_RE = re.compile(r"https?://[^/]+/(.*)")
_PACKED_TIMESTAMP_LENGTH = 17


# ═══════════════════════════════════════════════════════════
#  Numbers & dates
# ═══════════════════════════════════════════════════════════

def parse_int(value: Any) -> int | None:
    """
    Lenient integer parse: leading digit run of the string form.

    "12" → 12, "12abc" → 12, 7.9 → 7, "abc" / None / True → None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    match = _LEADING_INT_RE.match(str(value))
    return int(match.group(1)) if match else None


def format_instant(moment: datetime) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2024-09-09T05:33:36.957Z."""
    moment = moment.astimezone(timezone.utc)
    return f"{moment:%Y-%m-%dT%H:%M:%S}.{moment.microsecond // 1000:03d}Z"


def convert_date(value: Any) -> str | None:
    """
    Convert a bracketed millisecond epoch to an ISO-8601 instant.

    Args:
        value: e.g. "/Date(1725881590170)/".

    Returns:
        "2024-09-09T11:33:10.170Z", or None when absent / no digits /
        outside the representable range.
    """
    if not value:
        return None
    match = _DIGITS_RE.search(str(value))
    if not match:
        return None
    try:
        moment = _EPOCH + timedelta(milliseconds=int(match.group(0)))
    except OverflowError:
        logger.warning("Epoch out of range", value=value)
        return None
    return format_instant(moment)


def convert_mod_num_to_iso(value: Any) -> str | None:
    """
    Convert a packed yyyyMMddHHmmssfff timestamp to ISO-8601.

    "20240909053336957" → "2024-09-09T05:33:36.957Z".  Any other length
    (or a non-digit character) yields None.
    """
    if not value:
        return None
    text = str(value)
    if len(text) != _PACKED_TIMESTAMP_LENGTH or not text.isdigit():
        return None
    return (
        f"{text[0:4]}-{text[4:6]}-{text[6:8]}"
        f"T{text[8:10]}:{text[10:12]}:{text[12:14]}.{text[14:17]}Z"
    )


# ═══════════════════════════════════════════════════════════
#  Status bitmask
# ═══════════════════════════════════════════════════════════

def extract_status_flags(status: int | None) -> dict[str, bool]:
    """
    Decode the docProps status bitmask.

    A zero / absent status returns only the four primary flags, all
    False.  isEmail and isCollabEdit are present only for non-zero input.
    """
    if not status:
        return {
            "archived": False,
            "autoVersion": False,
            "isCheckedOut": False,
            "isLocked": False,
        }

    return {
        "archived": bool(status & DocStatusFlag.ARCHIVED),
        "autoVersion": bool(status & DocStatusFlag.AUTO_VERSION),
        "isCheckedOut": bool(status & DocStatusFlag.CHECKED_OUT),
        "isLocked": bool(status & DocStatusFlag.LOCKED),
        "isEmail": bool(status & DocStatusFlag.EMAIL),
        "isCollabEdit": bool(status & DocStatusFlag.COLLAB_EDIT),
    }


# ═══════════════════════════════════════════════════════════
#  Locators, folders, links
# ═══════════════════════════════════════════════════════════

def extract_env_url(url: str | None) -> str:
    """
    Strip scheme and host from a storage URL.

    "https://ducot.netdocuments.com/Ducot3/1/~25.nev" → "Ducot3/1/~25.nev".
    Non-matching input is returned unchanged; absent input gives "".
    """
    if not url:
        return ""
    match = _ENV_URL_RE.search(url)
    return match.group(1) if match else url


def parse_linked_documents(links: str | None) -> list[str]:
    """Split the comma-joined linked document list."""
    if not links:
        return []
    return [link.strip() for link in links.split(",") if link.strip()]


def parse_parent_folders(value: str | list[str] | None) -> list[str]:
    """Parent folder URLs arrive space-separated or already as a list."""
    if not value:
        return []
    if isinstance(value, list):
        return list(value)
    if isinstance(value, str):
        return [part for part in value.split(" ") if part]
    return []


def parse_folder_tree(value: str | list[str] | None) -> list[str]:
    """Folder tree paths arrive pipe-separated or already as a list."""
    if not value:
        return []
    if isinstance(value, list):
        return list(value)
    if isinstance(value, str):
        return [part for part in value.split("|") if part]
    return []


def extract_deleted_cabinets(value: list[str] | None) -> list[str]:
    return list(value or [])


# ═══════════════════════════════════════════════════════════
#  DLP / classification
# ═══════════════════════════════════════════════════════════

def _second_segment(value: str | None) -> str:
    if not value:
        return ""
    parts = value.split(":")
    return parts[1] if len(parts) == 2 else ""


def extract_policy_id(dlp: str | None) -> str:
    """Policy id after the colon: NG-8RZI6EOH:AC-DLPPOLICY1 → AC-DLPPOLICY1."""
    return _second_segment(dlp)


def extract_classification_id(classification: str | None) -> str:
    """Label id after the colon: NG-8RZI6EOH:RL-CONFIDENTIAL → RL-CONFIDENTIAL."""
    return _second_segment(classification)


# ═══════════════════════════════════════════════════════════
#  Email metadata
# ═══════════════════════════════════════════════════════════

def _xml_value(xml: str, tag: str) -> str | None:
    match = re.search(rf"<{tag}>([^<]*)</{tag}>", xml, re.IGNORECASE)
    return match.group(1) if match else None


def parse_email_info(email_props: str | None) -> dict[str, Any] | None:
    """
    Pull the basic envelope fields out of the emailProps XML fragment.

    Returns None when there is no XML or neither a sender nor a
    recipient could be found.
    """
    if not email_props:
        return None

    sender = _xml_value(email_props, "from")
    to = _xml_value(email_props, "to")
    cc = _xml_value(email_props, "cc")

    if not sender and not to:
        return None

    return {
        "From": sender,
        "To": [addr for addr in to.split(";") if addr] if to else [],
        "Cc": [addr for addr in cc.split(";") if addr] if cc else [],
        "Subject": _xml_value(email_props, "subject"),
        "SentDate": _xml_value(email_props, "sent"),
    }
