"""Tests for record models and flow/tool contracts."""

import json

import pytest

from practice_flows.errors import InputValidationError, ModelOutputError
from practice_flows.models import (
    ACTIVE_STATUSES,
    Client,
    EngagementStatus,
    Todo,
    is_active_status,
)
from practice_flows.schemas import (
    EMAIL_CATEGORIES,
    AssignmentPlan,
    ProcessEmailInput,
    ProcessEmailOutput,
    SendBulkEmailInput,
    TimesheetQuery,
    decode,
    tool_json_schema,
)


class TestRecords:
    """Tests for stored record models."""

    def test_active_status_set(self):
        """Completed and Cancelled are the only inactive statuses."""
        assert {s.value for s in ACTIVE_STATUSES} == {
            "Pending",
            "In Process",
            "Awaiting Documents",
            "Partner Review",
            "On Hold",
        }
        assert not is_active_status("Completed")
        assert not is_active_status(EngagementStatus.CANCELLED)
        assert is_active_status("On Hold")

    def test_client_ignores_unknown_stored_fields(self):
        client = Client.model_validate(
            {"id": "C1", "name": "Acme", "mailId": "a@acme.in", "uiOnlyField": 1}
        )

        assert client.mail_id == "a@acme.in"
        assert client.has_usable_email

    def test_unassigned_mail_is_not_usable(self):
        assert not Client(id="C1", name="Acme").has_usable_email
        assert not Client(id="C1", name="Acme", mail_id="").has_usable_email

    def test_todo_needs_an_assignee(self):
        with pytest.raises(ValueError):
            Todo(
                id="t1",
                type="GENERAL_TASK",
                text="x",
                created_by="system",
                assigned_to=[],
                created_at="2025-06-15T10:30:00+00:00",
                related_entity={"type": "engagement", "id": "ENG2"},
            )

    def test_to_document_uses_camel_case(self):
        doc = Client(id="C1", name="Acme", partner_id="S001").to_document()

        assert doc["partnerId"] == "S001"
        assert "partner_id" not in doc
        assert "firmId" not in doc


class TestDecode:
    """Tests for contract decoding."""

    def test_input_accepts_wire_names(self):
        request = decode(
            ProcessEmailInput, {"from": "a@acme.in", "subject": "Docs", "body": "Attached"}
        )

        assert request.sender == "a@acme.in"
        assert request.to_payload() == {"from": "a@acme.in", "subject": "Docs", "body": "Attached"}

    def test_unknown_keys_are_rejected(self):
        with pytest.raises(InputValidationError) as exc_info:
            decode(
                ProcessEmailInput,
                {"from": "a@acme.in", "subject": "s", "body": "b", "priority": "high"},
            )

        assert "priority" in exc_info.value.fields

    def test_field_paths_are_reported(self):
        with pytest.raises(InputValidationError) as exc_info:
            decode(ProcessEmailInput, {"from": "not-an-email", "subject": "s"})

        assert set(exc_info.value.fields) == {"from", "body"}

    def test_output_failures_are_model_errors(self):
        with pytest.raises(ModelOutputError):
            decode(
                ProcessEmailOutput,
                {"summary": "s", "category": "Spam", "actionItems": [], "visibleTo": []},
                source="output",
            )

    def test_category_is_a_closed_set(self):
        assert EMAIL_CATEGORIES == (
            "Query",
            "Document Submission",
            "Follow-up",
            "Appreciation",
            "Urgent",
            "General",
        )

    def test_period_format(self):
        decode(TimesheetQuery, {"employeeId": "E001", "period": "2025-06"})
        with pytest.raises(InputValidationError):
            decode(TimesheetQuery, {"employeeId": "E001", "period": "2025-13"})

    def test_bulk_status_accepts_all(self):
        request = decode(
            SendBulkEmailInput,
            {"clients": [], "subjectTemplate": "s", "bodyTemplate": "b", "status": "All"},
        )

        assert request.status == "All"

    def test_optional_output_fields_are_omitted(self):
        output = ProcessEmailOutput(
            summary="s", category="General", action_items=[], visible_to=["S001"]
        )

        payload = output.to_payload()
        assert "clientId" not in payload
        assert "clientName" not in payload
        assert payload["visibleTo"] == ["S001"]


class TestToolJsonSchema:
    """Tests for provider-facing JSON schemas."""

    def test_refs_are_inlined(self):
        schema = tool_json_schema(ProcessEmailOutput)

        assert "$defs" not in schema
        assert "title" not in schema
        assert set(schema["required"]) == {"summary", "category", "actionItems", "visibleTo"}
        assert schema["properties"]["category"]["enum"] == list(EMAIL_CATEGORIES)

    def test_nested_models_are_inlined(self):
        schema = tool_json_schema(AssignmentPlan)

        items = schema["properties"]["plan"]["items"]
        assert "$ref" not in json.dumps(items)
        assert "clientId" in items["properties"]
