"""Tests for the process_email flow."""

import pytest

from practice_flows.flows import ProcessEmailFlow

EMAIL = {
    "from": "accounts@acme.in",
    "subject": "Bank statements for June",
    "body": "Please find attached our statements. Can you file GSTR-3B by Friday?",
}

LINKED = {
    "clientId": "C001",
    "clientName": "Acme Traders",
    "summary": "Acme sent June bank statements and asks for GSTR-3B filing.",
    "category": "Document Submission",
    "actionItems": ["File GSTR-3B by Friday"],
    "visibleTo": ["S001", "E001", "M001"],
}

UNLINKED = {
    "summary": "Newsletter from an unknown sender.",
    "category": "General",
    "actionItems": [],
    "visibleTo": [],
}


@pytest.fixture
def flow(store, fake_inference, settings, clock):
    return ProcessEmailFlow(store, fake_inference, settings=settings, clock=clock)


class TestProcessEmailFlow:
    """Tests for ProcessEmailFlow."""

    @pytest.mark.asyncio
    async def test_linked_email(self, flow, fake_inference):
        fake_inference.answers["process_email"] = LINKED

        result = await flow(EMAIL)

        assert result == LINKED
        request = fake_inference.requests[0]
        assert request.payload == EMAIL
        assert [t.name for t in request.tools] == ["get_client_and_team_by_email"]

    @pytest.mark.asyncio
    async def test_unlinked_email_omits_client_fields(self, flow, fake_inference):
        """No client: clientId and clientName are absent, not null or empty."""
        fake_inference.answers["process_email"] = UNLINKED

        result = await flow(EMAIL)

        assert "clientId" not in result
        assert "clientName" not in result
        assert result["visibleTo"] == ["S001"]

    @pytest.mark.asyncio
    async def test_blank_client_id_counts_as_unlinked(self, flow, fake_inference):
        fake_inference.answers["process_email"] = {
            **UNLINKED,
            "clientId": "  ",
            "clientName": "Someone",
            "visibleTo": ["E001"],
        }

        result = await flow(EMAIL)

        assert "clientId" not in result
        assert "clientName" not in result
        assert result["visibleTo"] == ["S001"]

    @pytest.mark.asyncio
    async def test_fallback_admin_comes_from_settings(
        self, store, fake_inference, settings, clock
    ):
        fake_inference.answers["process_email"] = UNLINKED
        flow = ProcessEmailFlow(
            store,
            fake_inference,
            settings=settings.model_copy(update={"fallback_admin_id": "A001"}),
            clock=clock,
        )

        result = await flow(EMAIL)

        assert result["visibleTo"] == ["A001"]

    @pytest.mark.asyncio
    async def test_linked_email_without_team_goes_to_admin(self, flow, fake_inference):
        fake_inference.answers["process_email"] = {**LINKED, "visibleTo": []}

        result = await flow(EMAIL)

        assert result["clientId"] == "C001"
        assert result["visibleTo"] == ["S001"]

    @pytest.mark.asyncio
    async def test_flow_does_not_write(self, flow, fake_inference, store):
        fake_inference.answers["process_email"] = LINKED

        await flow(EMAIL)

        assert store.writes == 0
