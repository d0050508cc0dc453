"""
nmdbridge test suite — shared fixtures.

Run:  pytest tests/ -v
"""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Any, Dict

import pytest
import structlog


CREATED_EPOCH = "/Date(1725881590170)/"     # 2024-09-09T11:33:10.170Z
ONE_HOUR_LATER = "/Date(1725885190170)/"    # 2024-09-09T12:33:10.170Z
TWO_HOURS_LATER = "/Date(1725888790170)/"   # 2024-09-09T13:33:10.170Z

NMD_MESSAGE: Dict[str, Any] = {
    "envProps": {
        "acl": [
            {"guid": "DUCOT-USER1", "rights": "VESD"},
            {"guid": "UG-LEGAL", "rights": "VE"},
            {"guid": "NG-8RZI6EOH", "rights": "V"},
        ],
        "containingcabs": ["NG-8RZI6EOH"],
        "deletedcabs": [],
        "authorguid": "DUCOT-USER1",
        "created": CREATED_EPOCH,
        "modified": ONE_HOUR_LATER,
        "modified by guid": "DUCOT-USER2",
        "url": "https://ducot.netdocuments.com/Ducot3/1/1/2/9/~251023154100603.nev",
        "jumbofolders": (
            "https://ducot.netdocuments.com/folder/F-1 "
            "https://ducot.netdocuments.com/folder/F-2"
        ),
        "foldertree": "F-ROOT|F-1|F-2",
        "dlp": "NG-8RZI6EOH:AC-DLPPOLICY1",
        "dataclassification": "NG-8RZI6EOH:RL-CONFIDENTIAL",
        "docmodnum": "12",
        "purged": False,
    },
    "documents": {
        "1": {
            "docProps": {
                "id": "4821-7193-0456",
                "docNum": 4821719304,
                "name": "Engagement Letter",
                "status": 0,
                "lastVerNo": 2,
                "nameModNum": "3",
                "contentModNum": "5",
                "links": "1111-2222-3333, 4444-5555-6666",
                "indexType-Metadata": "standard",
                "cp|CA-CLIENT|1": "ACME",
                "cp|CA-MATTER|1": "M-100",
                "cp|CA-MATTER|2": "M-200",
                "cp|CA-MATTER|2_IsDeleted": True,
            },
            "versions": {
                "1": {
                    "verProps": {
                        "verName": "Draft",
                        "exten": "docx",
                        "size": 2048,
                        "creatorguid": "DUCOT-USER1",
                        "created": CREATED_EPOCH,
                        "snapshots": ["S-1"],
                        "access": "VDUCOT-USER1|VESD:VDUCOT-USER3|VE",
                    }
                },
                "2": {
                    "verProps": {
                        "exten": "pdf",
                        "size": 4096,
                        "creatorguid": "DUCOT-USER2",
                        "modifiedByGuid": "DUCOT-USER2",
                        "created": ONE_HOUR_LATER,
                        "modified": TWO_HOURS_LATER,
                        "parent": "1",
                        "access": "VUG-LEGAL|VE:VDUCOT-USER4|V",
                    }
                },
            },
        }
    },
}


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo any structlog configuration a test applied."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def nmd_message() -> Dict[str, Any]:
    """A fresh, mutable copy of the sample NMD message."""
    return copy.deepcopy(NMD_MESSAGE)


@pytest.fixture
def doc_props(nmd_message) -> Dict[str, Any]:
    return nmd_message["documents"]["1"]["docProps"]


@pytest.fixture
def env_props(nmd_message) -> Dict[str, Any]:
    return nmd_message["envProps"]


@pytest.fixture
def fixed_clock():
    """Clock pinned to 2025-01-02T03:04:05.678Z."""
    moment = datetime(2025, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)
    return lambda: moment
