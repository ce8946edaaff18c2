"""Tests for the send_email and send_bulk_email flows."""

from unittest.mock import AsyncMock, patch

import pytest

from practice_flows.errors import InputValidationError
from practice_flows.flows import SendBulkEmailFlow, SendEmailFlow
from practice_flows.flows.send_email import format_due_date, render

CLIENTS = [
    {"id": "C001", "name": "Acme Traders", "email": "accounts@acme.in"},
    {"id": "C002", "name": "Bharat Foods", "email": "unassigned"},
    {"id": "C003", "name": "Coastal Exports", "email": "ops@coastal.in"},
]


class TestHelpers:
    """Tests for placeholder rendering."""

    def test_format_due_date(self):
        assert format_due_date("2024-07-31T00:00:00.000Z") == "31 Jul, 2024"
        assert format_due_date("2025-06-20") == "20 Jun, 2025"

    def test_render_leaves_unknown_placeholders(self):
        text = render("Dear {{clientName}}, re {{engagementType}} {{other}}", {"clientName": "Acme"})

        assert text == "Dear Acme, re {{engagementType}} {{other}}"


class TestSendEmailFlow:
    """Tests for SendEmailFlow."""

    @pytest.mark.asyncio
    async def test_send(self, store):
        flow = SendEmailFlow(store)

        result = await flow({
            "recipientEmails": ["accounts@acme.in"],
            "subject": "Reminder",
            "body": "Please send your documents.",
        })

        assert result == {"success": True}

    @pytest.mark.asyncio
    async def test_needs_a_recipient(self, store):
        with pytest.raises(InputValidationError):
            await SendEmailFlow(store)({"recipientEmails": [], "subject": "s", "body": "b"})


class TestSendBulkEmailFlow:
    """Tests for SendBulkEmailFlow."""

    @pytest.mark.asyncio
    async def test_personalizes_and_skips_unassigned(self, store):
        flow = SendBulkEmailFlow(store)

        with patch.object(SendEmailFlow, "deliver", new_callable=AsyncMock) as deliver:
            result = await flow({
                "clients": CLIENTS,
                "subjectTemplate": "{{engagementType}} for {{clientName}}",
                "bodyTemplate": "Dear {{clientName}}, your filing is due on {{dueDate}}.",
                "engagementTypeId": "T1",
                "status": "Pending",
            })

        assert result == {"success": True, "sentCount": 2}
        messages = [call.args[0] for call in deliver.await_args_list]
        assert messages[0].recipient_emails == ["accounts@acme.in"]
        assert messages[0].subject == "GST Filing for Acme Traders"
        assert messages[0].body == "Dear Acme Traders, your filing is due on 20 Jun, 2025."
        # Coastal has no matching engagement, so only its name is filled.
        assert messages[1].subject == "{{engagementType}} for Coastal Exports"

    @pytest.mark.asyncio
    async def test_status_all_with_financial_year(self, store):
        flow = SendBulkEmailFlow(store)

        with patch.object(SendEmailFlow, "deliver", new_callable=AsyncMock) as deliver:
            await flow({
                "clients": CLIENTS[:1],
                "subjectTemplate": "{{dueDate}}",
                "bodyTemplate": "b",
                "engagementTypeId": "T1",
                "status": "All",
                "financialYear": "2025-26",
            })

        assert deliver.await_args.args[0].subject == "20 Jun, 2025"

    @pytest.mark.asyncio
    async def test_without_engagement_type_only_names_are_filled(self, store):
        flow = SendBulkEmailFlow(store)

        with patch.object(SendEmailFlow, "deliver", new_callable=AsyncMock) as deliver:
            result = await flow({
                "clients": CLIENTS,
                "subjectTemplate": "Hello {{clientName}}",
                "bodyTemplate": "Season's greetings",
            })

        assert result["sentCount"] == 2
        assert deliver.await_args_list[1].args[0].subject == "Hello Coastal Exports"

    @pytest.mark.asyncio
    async def test_client_ids_are_queried_in_chunks(self, empty_store):
        clients = [
            {"id": f"C{i:03d}", "name": f"Client {i}", "email": f"c{i}@example.com"}
            for i in range(45)
        ]
        flow = SendBulkEmailFlow(empty_store)

        with patch.object(SendEmailFlow, "deliver", new_callable=AsyncMock):
            result = await flow({
                "clients": clients,
                "subjectTemplate": "s",
                "bodyTemplate": "b",
                "engagementTypeId": "T1",
            })

        assert result["sentCount"] == 45
        # two engagement queries of at most 30 ids, plus the engagement types
        assert empty_store.reads == 3

    @pytest.mark.asyncio
    async def test_malformed_addresses_are_skipped(self, store):
        """A bad address is skipped like an unassigned one; later clients still get mail."""
        clients = [
            {"id": "C001", "name": "Acme Traders", "email": "accounts at acme"},
            {"id": "C003", "name": "Coastal Exports", "email": "ops@coastal.in"},
        ]
        flow = SendBulkEmailFlow(store)

        with patch.object(SendEmailFlow, "deliver", new_callable=AsyncMock) as deliver:
            result = await flow({
                "clients": clients,
                "subjectTemplate": "Hello {{clientName}}",
                "bodyTemplate": "b",
            })

        assert result == {"success": True, "sentCount": 1}
        assert deliver.await_args.args[0].recipient_emails == ["ops@coastal.in"]
