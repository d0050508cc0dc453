"""Tests for the V3 projector stages."""

import copy

import pytest

from nmdbridge.processing.mapper import build_patch_request
from nmdbridge.processing.v3_projector import (
    V3_STAGES,
    apply_v3_transformations,
    consolidate_custom_attributes,
    correct_cross_fields,
    enforce_timestamp_order,
    normalize_casing,
    normalize_nulls,
    reshape_structure,
)


@pytest.fixture
def projected(nmd_message):
    return apply_v3_transformations(build_patch_request(nmd_message))


class TestNormalizeCasing:

    def test_recursive(self):
        assert normalize_casing({"A": {"BC": [{"De": 1}]}, "x": "Keep"}) == {
            "a": {"bC": [{"de": 1}]},
            "x": "Keep",
        }

    def test_input_untouched(self):
        original = {"Name": {"Inner": 1}}
        snapshot = copy.deepcopy(original)
        normalize_casing(original)
        assert original == snapshot

    def test_scalars_pass_through(self):
        assert normalize_casing("Name") == "Name"
        assert normalize_casing(None) is None


class TestReshapeStructure:

    def test_flattens_audit_stamps(self):
        shaped = reshape_structure({
            "created": {"userId": "U1", "timestamp": "T1"},
            "modified": {"userId": "U2", "timestamp": "T2"},
        })
        assert shaped == {
            "createdBy": "U1",
            "createdAt": "T1",
            "modifiedBy": "U2",
            "modifiedAt": "T2",
        }

    def test_version_defaults(self):
        shaped = reshape_structure({"versions": [
            {"versionId": 1, "extension": "docx", "size": 10},
            {"versionId": 2, "extension": None},
            {"versionId": 3, "extension": "pdf", "fileName": "kept.pdf", "eTag": '"v3"'},
        ]})
        first, second, third = shaped["versions"]
        assert first["fileName"] == "document.docx"
        assert first["contentSize"] == 10
        assert "size" not in first
        assert first["eTag"] == ""
        assert second["fileName"] == "document"
        assert third["fileName"] == "kept.pdf"
        assert third["eTag"] == '"v3"'

    def test_checked_out_and_locked(self):
        shaped = reshape_structure({
            "checkedOut": {
                "userId": "U1",
                "timestamp": "T1",
                "comment": "",
                "collaborationEdit": None,
                "collaborationEditType": "Office",
            },
            "locked": {"userId": None, "comment": "c", "timestamp": None},
        })
        assert shaped["checkedOut"] == {
            "comment": None,
            "collaborationEdit": None,
            "collaborationEditType": "Office",
            "checkedOutBy": "U1",
            "checkedOutAt": "T1",
        }
        assert shaped["locked"] == {"comment": "c", "lockedBy": None, "lockedAt": None}

    def test_input_untouched(self):
        original = {"versions": [{"versionId": 1, "size": 1, "created": {"userId": "U"}}]}
        snapshot = copy.deepcopy(original)
        reshape_structure(original)
        assert original == snapshot


class TestNormalizeNulls:

    def test_nullable_ids_and_deprecated_fields(self):
        cleaned = normalize_nulls({
            "policyId": "",
            "classificationId": "",
            "name": "",
            "customAttributes": [{"key": "k", "values": [], "isDeleted": True}],
            "versions": [{"eTag": ""}],
        })
        assert cleaned == {
            "policyId": None,
            "classificationId": None,
            "name": "",
            "customAttributes": [{"key": "k", "values": []}],
            "versions": [{"eTag": None}],
        }

    def test_non_empty_ids_kept(self):
        assert normalize_nulls({"policyId": "AC-1"}) == {"policyId": "AC-1"}


class TestCorrectCrossFields:

    def test_env_url_gets_leading_slash(self):
        assert correct_cross_fields({"envUrl": "a/b"})["envUrl"] == "/a/b"
        assert correct_cross_fields({"envUrl": "/a/b"})["envUrl"] == "/a/b"
        assert correct_cross_fields({"envUrl": ""})["envUrl"] == ""

    def test_cabinet_backfilled_from_deleted_cabinets(self):
        corrected = correct_cross_fields({"cabinetId": None, "deletedCabinets": ["NG-1", "NG-2"]})
        assert corrected["cabinetId"] == "NG-1"

    def test_cabinet_not_overwritten(self):
        corrected = correct_cross_fields({"cabinetId": "NG-0", "deletedCabinets": ["NG-1"]})
        assert corrected["cabinetId"] == "NG-0"

    def test_consolidates_custom_attributes(self):
        corrected = correct_cross_fields({"customAttributes": [
            {"key": "CA-1", "values": ["a"]},
            {"key": "CA-2", "values": []},
            {"key": "CA-1", "values": ["b"]},
        ]})
        assert corrected["customAttributes"] == [
            {"key": "CA-1", "values": ["a", "b"]},
            {"key": "CA-2", "values": []},
        ]

    def test_idempotent(self, projected):
        assert correct_cross_fields(projected) == projected

    def test_input_untouched(self):
        original = {"envUrl": "a", "customAttributes": [{"key": "k", "values": ["v"]}]}
        snapshot = copy.deepcopy(original)
        correct_cross_fields(original)
        assert original == snapshot


class TestTimestampOrder:

    def test_clamps_modified_to_created(self):
        record = {"createdAt": "2024-09-09T12:00:00.000Z", "modifiedAt": "2024-09-09T11:00:00.000Z"}
        assert enforce_timestamp_order(record)["modifiedAt"] == "2024-09-09T12:00:00.000Z"

    def test_ordered_and_equal_left_alone(self):
        ordered = {"createdAt": "2024-09-09T11:00:00.000Z", "modifiedAt": "2024-09-09T12:00:00.000Z"}
        equal = {"createdAt": "2024-09-09T11:00:00.000Z", "modifiedAt": "2024-09-09T11:00:00.000Z"}
        assert enforce_timestamp_order(ordered) == ordered
        assert enforce_timestamp_order(equal) == equal

    @pytest.mark.parametrize("record", [
        {"createdAt": None, "modifiedAt": "2024-09-09T11:00:00.000Z"},
        {"createdAt": "garbage", "modifiedAt": "2024-09-09T11:00:00.000Z"},
        {},
    ])
    def test_incomplete_or_unparsable_left_alone(self, record):
        assert enforce_timestamp_order(record) == record

    def test_applied_to_root_and_versions(self, nmd_message):
        env_props = nmd_message["envProps"]
        env_props["created"], env_props["modified"] = env_props["modified"], env_props["created"]
        second = nmd_message["documents"]["1"]["versions"]["2"]["verProps"]
        second["modified"] = "/Date(1725881590170)/"

        payload = apply_v3_transformations(build_patch_request(nmd_message))

        assert payload["modifiedAt"] == payload["createdAt"] == "2024-09-09T12:33:10.170Z"
        version = payload["versions"][1]
        assert version["modifiedAt"] == version["createdAt"] == "2024-09-09T12:33:10.170Z"
        assert correct_cross_fields(payload) == payload


def test_consolidate_empty():
    assert consolidate_custom_attributes([]) == []


def test_stage_order():
    assert [name for name, _ in V3_STAGES] == [
        "normalize_casing",
        "reshape_structure",
        "normalize_nulls",
        "correct_cross_fields",
    ]


class TestFullProjection:

    def test_root_fields(self, projected):
        assert projected["documentId"] == "4821-7193-0456"
        assert projected["envUrl"] == "/Ducot3/1/1/2/9/~251023154100603.nev"
        assert projected["cabinetId"] == "NG-8RZI6EOH"
        assert projected["state"] == "ACTIVE"
        assert projected["createdBy"] == "DUCOT-USER1"
        assert projected["createdAt"] == "2024-09-09T11:33:10.170Z"
        assert projected["modifiedBy"] == "DUCOT-USER2"
        assert projected["modifiedAt"] == "2024-09-09T12:33:10.170Z"
        assert "created" not in projected
        assert "modified" not in projected
        assert "eTag" not in projected
        assert projected["policyId"] == "AC-DLPPOLICY1"
        assert projected["classificationId"] == "RL-CONFIDENTIAL"

    def test_sub_records(self, projected):
        assert projected["checkedOut"] == {
            "comment": None,
            "collaborationEdit": None,
            "collaborationEditType": None,
            "checkedOutBy": None,
            "checkedOutAt": None,
        }
        assert projected["locked"] == {"comment": None, "lockedBy": None, "lockedAt": None}
        assert projected["emailInfo"] is None

    def test_versions(self, projected):
        first, second = projected["versions"]
        assert first["versionId"] == 1
        assert first["fileName"] == "document.docx"
        assert first["contentSize"] == 2048
        assert first["eTag"] is None
        assert first["createdBy"] == "DUCOT-USER1"
        assert first["modifiedAt"] == "2024-09-09T11:33:10.170Z"
        assert second["copiedFrom"] == 1
        assert second["fileName"] == "document.pdf"
        assert all(version["fileName"] for version in projected["versions"])

    def test_custom_attributes_consolidated(self, projected):
        assert projected["customAttributes"] == [
            {"key": "CA-CLIENT", "values": ["ACME"]},
            {"key": "CA-MATTER", "values": ["M-100", "M-200"]},
        ]

    def test_acl(self, projected):
        assert projected["acl"][3] == {
            "subjectType": "user",
            "subjectId": "DUCOT-USER3",
            "relations": ["official_access_only"],
        }

    def test_empty_ids_become_null(self, nmd_message):
        del nmd_message["envProps"]["dlp"]
        nmd_message["envProps"]["dataclassification"] = "malformed"
        payload = apply_v3_transformations(build_patch_request(nmd_message))
        assert payload["policyId"] is None
        assert payload["classificationId"] is None

    def test_deleted_document_keeps_a_cabinet(self, nmd_message):
        nmd_message["envProps"]["containingcabs"] = []
        nmd_message["envProps"]["deletedcabs"] = ["NG-OLD"]
        payload = apply_v3_transformations(build_patch_request(nmd_message))
        assert payload["state"] == "DELETED"
        assert payload["cabinetId"] == "NG-OLD"

    def test_accepts_wire_dict(self, nmd_message):
        canonical = build_patch_request(nmd_message)
        assert apply_v3_transformations(canonical.to_wire()) == apply_v3_transformations(canonical)
