"""Tests for the reallocate_engagements flow."""

import pytest

from practice_flows.errors import ModelOutputError
from practice_flows.flows import ReallocateEngagementsFlow


def entry(engagement_id: str, assignee_id: str, assignee_name: str) -> dict:
    return {
        "engagementId": engagement_id,
        "engagementRemarks": "",
        "newAssigneeId": assignee_id,
        "newAssigneeName": assignee_name,
        "reasoning": "Lowest current workload",
    }


@pytest.fixture
def flow(store, fake_inference, clock):
    return ReallocateEngagementsFlow(store, fake_inference, clock=clock)


class TestReallocateEngagementsFlow:
    """Tests for ReallocateEngagementsFlow."""

    @pytest.mark.asyncio
    async def test_nothing_active_skips_inference(self, flow, fake_inference):
        """E002 only has completed and cancelled work."""
        result = await flow({"inactiveEmployeeId": "E002"})

        assert result == {"plan": []}
        assert fake_inference.calls == 0

    @pytest.mark.asyncio
    async def test_plan_for_active_engagements(self, flow, fake_inference, store):
        fake_inference.answers["reallocate_engagements"] = {
            "plan": [
                entry("ENG2", "S001", "Anita Rao"),
                entry("abcde12345", "E002", "Rahul Mehta"),
            ]
        }

        result = await flow({"inactiveEmployeeId": "E001"})

        assert len(result["plan"]) == 2
        payload = fake_inference.requests[0].payload
        assert payload["inactiveEmployee"] == {"id": "E001", "name": "Priya Nair"}
        assert [e["id"] for e in payload["engagementsToReallocate"]] == ["ENG2", "abcde12345"]
        assert [w["employeeId"] for w in payload["employeeWorkloads"]] == ["S001", "E002", "M001"]
        assert payload["employeeWorkloads"][1]["workloadHours"] == 8.0
        # Proposals only: nothing is reassigned until the plan is applied.
        assert store.writes == 0

    @pytest.mark.asyncio
    async def test_unknown_employee_name(self, store, fake_inference, clock):
        await store.set(
            "engagements",
            "ENG9",
            {
                "id": "ENG9",
                "clientId": "C003",
                "type": "T1",
                "status": "On Hold",
                "dueDate": "2025-07-15",
                "assignedTo": ["X404"],
            },
        )
        fake_inference.answers["reallocate_engagements"] = {"plan": []}
        flow = ReallocateEngagementsFlow(store, fake_inference, clock=clock)

        await flow({"inactiveEmployeeId": "X404"})

        payload = fake_inference.requests[0].payload
        assert payload["inactiveEmployee"]["name"] == "Unknown Employee"

    @pytest.mark.asyncio
    async def test_assigning_back_to_departed_employee_fails(self, flow, fake_inference):
        fake_inference.answers["reallocate_engagements"] = {
            "plan": [entry("ENG2", "E001", "Priya Nair")]
        }

        with pytest.raises(ModelOutputError) as exc_info:
            await flow({"inactiveEmployeeId": "E001"})

        assert exc_info.value.details["invalidAssignees"] == ["E001"]

    @pytest.mark.asyncio
    async def test_inactive_assignee_fails(self, flow, fake_inference):
        fake_inference.answers["reallocate_engagements"] = {
            "plan": [entry("ENG2", "E003", "Suresh Iyer")]
        }

        with pytest.raises(ModelOutputError):
            await flow({"inactiveEmployeeId": "E001"})

    @pytest.mark.asyncio
    async def test_unknown_engagement_fails(self, flow, fake_inference):
        fake_inference.answers["reallocate_engagements"] = {
            "plan": [entry("ENG4", "E002", "Rahul Mehta")]
        }

        with pytest.raises(ModelOutputError) as exc_info:
            await flow({"inactiveEmployeeId": "E001"})

        assert exc_info.value.details["unknownEngagements"] == ["ENG4"]

    @pytest.mark.asyncio
    async def test_partial_plan_is_allowed(self, flow, fake_inference):
        fake_inference.answers["reallocate_engagements"] = {
            "plan": [entry("ENG2", "E002", "Rahul Mehta")]
        }

        result = await flow({"inactiveEmployeeId": "E001"})

        assert [e["engagementId"] for e in result["plan"]] == ["ENG2"]
