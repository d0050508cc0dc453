"""Tests for canonical patch request assembly."""

import json

import pytest
from structlog.testing import capture_logs

from nmdbridge.core.constants import DocumentState, OperationType
from nmdbridge.pipeline.errors import EnvelopeValidationError
from nmdbridge.processing.envelope import DocProps
from nmdbridge.processing.mapper import (
    build_checked_out,
    build_locked,
    build_patch_request,
)


class TestBuildPatchRequestCreate:

    def test_scalar_fields(self, nmd_message):
        request = build_patch_request(nmd_message)

        assert request.document_id == "4821-7193-0456"
        assert request.cabinet_id == "NG-8RZI6EOH"
        assert request.name == "Engagement Letter"
        assert request.state is DocumentState.ACTIVE
        assert request.official_version == 2
        assert request.next_version == 3
        assert request.env_url == "Ducot3/1/1/2/9/~251023154100603.nev"
        assert request.doc_mod_num == 12
        assert request.name_mod_num == 3
        assert request.content_mod_num == 5
        assert request.acl_freeze is False
        assert request.archived is False
        assert request.auto_version is False
        assert request.policy_id == "AC-DLPPOLICY1"
        assert request.classification_id == "RL-CONFIDENTIAL"

    def test_audit_stamps(self, nmd_message):
        request = build_patch_request(nmd_message)
        assert request.created.user_id == "DUCOT-USER1"
        assert request.created.timestamp == "2024-09-09T11:33:10.170Z"
        assert request.modified.user_id == "DUCOT-USER2"
        assert request.modified.timestamp == "2024-09-09T12:33:10.170Z"

    def test_list_fields(self, nmd_message):
        request = build_patch_request(nmd_message)
        assert request.linked_documents == ["1111-2222-3333", "4444-5555-6666"]
        assert request.parent_folders == [
            "https://ducot.netdocuments.com/folder/F-1",
            "https://ducot.netdocuments.com/folder/F-2",
        ]
        assert request.folder_tree == ["F-ROOT", "F-1", "F-2"]
        assert request.deleted_cabinets == []
        assert len(request.versions) == 2
        assert len(request.acl) == 5
        assert len(request.custom_attributes) == 3

    def test_accepts_json_text(self, nmd_message):
        request = build_patch_request(json.dumps(nmd_message))
        assert request.document_id == "4821-7193-0456"

    def test_missing_cabinet(self, nmd_message):
        nmd_message["envProps"]["containingcabs"] = []
        assert build_patch_request(nmd_message).cabinet_id is None

    def test_missing_last_version_number(self, nmd_message):
        del nmd_message["documents"]["1"]["docProps"]["lastVerNo"]
        request = build_patch_request(nmd_message)
        assert request.official_version is None
        assert request.next_version is None

    def test_wire_form_is_pascal_case(self, nmd_message):
        wire = build_patch_request(nmd_message).to_wire()
        assert list(wire)[:4] == ["DocumentId", "CabinetId", "Name", "State"]
        assert wire["EnvUrl"] == "Ducot3/1/1/2/9/~251023154100603.nev"
        assert wire["Alerts"] is None
        assert wire["Approvals"] is None
        assert wire["EmailInfo"] is None

    def test_email_info(self, nmd_message):
        nmd_message["documents"]["1"]["docProps"]["emailProps"] = (
            "<email><from>a@example.com</from><to>b@example.com</to>"
            "<cc>c@example.com;d@example.com</cc><subject>Hi</subject></email>"
        )
        wire = build_patch_request(nmd_message).to_wire()
        assert wire["EmailInfo"] == {
            "From": "a@example.com",
            "To": ["b@example.com"],
            "Cc": ["c@example.com", "d@example.com"],
            "Subject": "Hi",
            "SentDate": None,
        }

    def test_invalid_envelope(self):
        with pytest.raises(EnvelopeValidationError):
            build_patch_request({"documents": {}})


class TestBuildPatchRequestUpdate:

    def test_update_adjustments(self, nmd_message, fixed_clock):
        request = build_patch_request(nmd_message, OperationType.UPDATE, clock=fixed_clock)
        assert request.name == "Engagement Letter [UPDATED]"
        assert request.doc_mod_num == 13
        assert request.name_mod_num == 4
        assert request.content_mod_num == 5
        assert request.modified.user_id == "DUCOT-USER2"
        assert request.modified.timestamp == "2025-01-02T03:04:05.678Z"
        assert request.created.timestamp == "2024-09-09T11:33:10.170Z"

    def test_operation_as_string(self, nmd_message, fixed_clock):
        request = build_patch_request(nmd_message, "UPDATE", clock=fixed_clock)
        assert request.name.endswith(" [UPDATED]")

    def test_missing_counters_stay_missing(self, nmd_message, fixed_clock):
        del nmd_message["envProps"]["docmodnum"]
        request = build_patch_request(nmd_message, OperationType.UPDATE, clock=fixed_clock)
        assert request.doc_mod_num is None

    def test_missing_name(self, nmd_message, fixed_clock):
        del nmd_message["documents"]["1"]["docProps"]["name"]
        request = build_patch_request(nmd_message, OperationType.UPDATE, clock=fixed_clock)
        assert request.name == " [UPDATED]"

    def test_suffix_is_configurable(self, monkeypatch, nmd_message, fixed_clock):
        from nmdbridge.core.config import settings

        monkeypatch.setattr(settings, "UPDATE_NAME_SUFFIX", " (rev)")
        request = build_patch_request(nmd_message, OperationType.UPDATE, clock=fixed_clock)
        assert request.name == "Engagement Letter (rev)"


class TestCheckedOut:

    def test_not_checked_out(self):
        info = build_checked_out(DocProps.model_validate({"actionBy": "U1"}), False)
        assert info.to_wire() == {
            "UserId": None,
            "Timestamp": None,
            "Comment": None,
            "CollaborationEdit": None,
            "CollaborationEditType": None,
        }

    def test_checked_out_strips_collab_prefix(self):
        doc_props = DocProps.model_validate({
            "actionBy": "DUCOT-USER9",
            "actionDate": "/Date(1725881590170)/",
            "actionComment": "CollaborationEditType:Office365",
        })
        info = build_checked_out(doc_props, True)
        assert info.user_id == "DUCOT-USER9"
        assert info.timestamp == "2024-09-09T11:33:10.170Z"
        assert info.comment == "Office365"

    def test_collab_edit_type_counts_as_checked_out(self):
        doc_props = DocProps.model_validate({
            "actionBy": "DUCOT-USER9",
            "collaborationEditType": "Office365",
            "collaborationEdit": True,
        })
        info = build_checked_out(doc_props, False)
        assert info.user_id == "DUCOT-USER9"
        assert info.collaboration_edit is True
        assert info.collaboration_edit_type == "Office365"
        assert info.comment == ""

    def test_status_bit_drives_checked_out(self, nmd_message):
        doc_props = nmd_message["documents"]["1"]["docProps"]
        doc_props.update({"status": 1, "actionBy": "DUCOT-USER9", "actionComment": "editing"})
        request = build_patch_request(nmd_message)
        assert request.checked_out.user_id == "DUCOT-USER9"
        assert request.checked_out.comment == "editing"


class TestLocked:

    def test_descriptor_wins(self):
        doc_props = DocProps.model_validate({
            "actionBy": "LEGACY",
            "lockDocumentModel": json.dumps({
                "ActionBy": "DUCOT-USER7",
                "Comment": "Under review",
                "ActionDate": "/Date(1725881590170)/",
            }),
        })
        info = build_locked(doc_props, True)
        assert info.user_id == "DUCOT-USER7"
        assert info.comment == "Under review"
        assert info.timestamp == "2024-09-09T11:33:10.170Z"

    def test_unparsable_descriptor_falls_back_to_legacy_fields(self):
        doc_props = DocProps.model_validate({
            "actionBy": "DUCOT-USER8",
            "actionComment": "legal hold",
            "lockDocumentModel": "{not json",
        })
        with capture_logs() as cap_logs:
            info = build_locked(doc_props, True)

        assert info.user_id == "DUCOT-USER8"
        assert info.comment == "legal hold"
        assert any(
            entry["event"] == "Failed to parse lockDocumentModel"
            and entry["log_level"] == "warning"
            for entry in cap_logs
        )

    def test_non_object_descriptor_is_a_parse_failure(self):
        doc_props = DocProps.model_validate({"lockDocumentModel": "[1, 2]"})
        with capture_logs() as cap_logs:
            info = build_locked(doc_props, False)
        assert info.user_id is None
        assert [e["log_level"] for e in cap_logs] == ["warning"]

    def test_object_descriptor_falls_back_without_failing_the_envelope(self, nmd_message):
        doc_props = nmd_message["documents"]["1"]["docProps"]
        doc_props.update({
            "status": 32,
            "actionBy": "LEGACY",
            "lockDocumentModel": {"ActionBy": "DUCOT-USER7"},
        })
        with capture_logs() as cap_logs:
            request = build_patch_request(nmd_message)

        assert request.locked.user_id == "LEGACY"
        assert any(
            entry["event"] == "Failed to parse lockDocumentModel"
            and entry["log_level"] == "warning"
            for entry in cap_logs
        )

    def test_not_locked(self):
        info = build_locked(DocProps.model_validate({"actionBy": "U1"}), False)
        assert info.to_wire() == {"UserId": None, "Comment": None, "Timestamp": None}
