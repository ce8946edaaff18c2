"""Tests for the schedule_engagements and generate_email flows."""

import pytest

from practice_flows.errors import InputValidationError, MissingReferenceError, ModelOutputError
from practice_flows.flows import GenerateEmailFlow, ScheduleEngagementsFlow


def plan_entry(client_id: str, client_name: str, assignee: str = "E001") -> dict:
    return {
        "clientId": client_id,
        "clientName": client_name,
        "assignedToId": assignee,
        "assignedToName": "Priya Nair",
        "reportedToId": "S001",
        "reportedToName": "Anita Rao",
    }


class TestScheduleEngagementsFlow:
    """Tests for ScheduleEngagementsFlow."""

    @pytest.fixture
    def flow(self, store, fake_inference, clock):
        return ScheduleEngagementsFlow(store, fake_inference, clock=clock)

    @pytest.mark.asyncio
    async def test_plan_covers_resolved_clients(self, flow, fake_inference):
        fake_inference.answers["schedule_engagements"] = {
            "plan": [plan_entry("C001", "Acme Traders"), plan_entry("C003", "Coastal Exports", "E002")]
        }

        result = await flow({
            "clientIds": ["C001", "C003", "missing"],
            "assignmentPrompt": "Distribute equally among Articles",
        })

        assert [e["clientId"] for e in result["plan"]] == ["C001", "C003"]
        payload = fake_inference.requests[0].payload
        assert payload["assignmentPrompt"] == "Distribute equally among Articles"
        assert [c["id"] for c in payload["clients"]] == ["C001", "C003"]
        assert payload["clients"][0]["partnerId"] == "S001"

    @pytest.mark.asyncio
    async def test_no_valid_clients(self, flow, fake_inference):
        with pytest.raises(MissingReferenceError, match="No valid clients"):
            await flow({"clientIds": ["x", "y"], "assignmentPrompt": "Assign to Articles"})

        assert fake_inference.calls == 0

    @pytest.mark.asyncio
    async def test_empty_client_list_is_invalid(self, flow):
        with pytest.raises(InputValidationError):
            await flow({"clientIds": [], "assignmentPrompt": "Assign"})

    @pytest.mark.asyncio
    async def test_plan_missing_a_client(self, flow, fake_inference):
        fake_inference.answers["schedule_engagements"] = {
            "plan": [plan_entry("C001", "Acme Traders")]
        }

        with pytest.raises(ModelOutputError) as exc_info:
            await flow({"clientIds": ["C001", "C003"], "assignmentPrompt": "Assign"})

        assert exc_info.value.details["missing"] == ["C003"]

    @pytest.mark.asyncio
    async def test_plan_with_unknown_client(self, flow, fake_inference):
        fake_inference.answers["schedule_engagements"] = {
            "plan": [plan_entry("C001", "Acme Traders"), plan_entry("C999", "Ghost Ltd")]
        }

        with pytest.raises(ModelOutputError) as exc_info:
            await flow({"clientIds": ["C001"], "assignmentPrompt": "Assign"})

        assert exc_info.value.details["unknown"] == ["C999"]


class TestGenerateEmailFlow:
    """Tests for GenerateEmailFlow."""

    @pytest.fixture
    def flow(self, store, fake_inference, clock):
        return GenerateEmailFlow(store, fake_inference, clock=clock)

    @pytest.mark.asyncio
    async def test_generates_subject_and_body(self, flow, fake_inference):
        fake_inference.answers["generate_email"] = {
            "subject": "Welcome to Rao & Associates!",
            "body": "Dear Meera,\n\nThank you for choosing us.\n\nAnita Rao\nPartner",
        }

        result = await flow({
            "templateName": "New Client Onboarding",
            "clientId": "C001",
            "userId": "S001",
        })

        assert result["subject"] == "Welcome to Rao & Associates!"
        payload = fake_inference.requests[0].payload
        assert payload["templateName"] == "New Client Onboarding"
        assert payload["firm"]["name"] == "Rao & Associates"
        assert payload["sender"] == {"name": "Anita Rao", "designation": "Partner"}
        assert payload["client"]["contactPerson"] == "Meera Joshi"

    @pytest.mark.asyncio
    async def test_unknown_template_is_rejected(self, flow):
        with pytest.raises(InputValidationError):
            await flow({"templateName": "Birthday Wishes", "clientId": "C001", "userId": "S001"})

    @pytest.mark.asyncio
    async def test_client_without_firm(self, flow, fake_inference):
        with pytest.raises(MissingReferenceError):
            await flow({
                "templateName": "Fee Revision Approval",
                "clientId": "C003",
                "userId": "S001",
            })

        assert fake_inference.calls == 0

    @pytest.mark.asyncio
    async def test_missing_sender(self, flow):
        with pytest.raises(MissingReferenceError) as exc_info:
            await flow({
                "templateName": "Engagement Letter - Audit",
                "clientId": "C001",
                "userId": "nobody",
            })

        assert exc_info.value.collection == "employees"

    @pytest.mark.asyncio
    async def test_empty_body_is_a_model_error(self, flow, fake_inference):
        fake_inference.answers["generate_email"] = {"subject": "Hello", "body": ""}

        with pytest.raises(ModelOutputError):
            await flow({
                "templateName": "New Client Onboarding",
                "clientId": "C001",
                "userId": "S001",
            })
