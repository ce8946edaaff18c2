"""Outbound e-mail: single message and personalized bulk mail.

Neither flow calls the model. Delivery is a logging stub; a real mail
provider plugs in behind ``SendEmailFlow.deliver``.
"""

import re
from datetime import datetime

from practice_flows.flows.base import Flow
from practice_flows.models import (
    ENGAGEMENT_TYPES,
    ENGAGEMENTS,
    Engagement,
    EngagementType,
    is_usable_email,
)
from practice_flows.schemas import (
    SendBulkEmailInput,
    SendBulkEmailOutput,
    SendEmailInput,
    SendEmailOutput,
    decode,
)
from practice_flows.store import Filter
from practice_flows.tools.data_access import load_all

# Firestore caps ``in`` filters at 30 values.
IN_FILTER_LIMIT = 30

_PLACEHOLDER = re.compile(r"\{\{(clientName|engagementType|dueDate)\}\}")


def format_due_date(value: str) -> str:
    """'2024-07-31T00:00:00.000Z' -> '31 Jul, 2024'."""
    return datetime.fromisoformat(value).strftime("%d %b, %Y")


def render(template: str, values: dict[str, str]) -> str:
    """Substitute known placeholders; ones without a value are left as-is."""
    return _PLACEHOLDER.sub(lambda m: values.get(m.group(1), m.group(0)), template)


class SendEmailFlow(Flow[SendEmailInput, SendEmailOutput]):
    name = "send_email"
    description = "Send one e-mail to a list of recipients"
    input_model = SendEmailInput
    output_model = SendEmailOutput

    async def run(self, request: SendEmailInput) -> SendEmailOutput:
        await self.deliver(request)
        return SendEmailOutput(success=True)

    async def deliver(self, message: SendEmailInput) -> None:
        self._logger.info(
            "email_sent",
            recipients=message.recipient_emails,
            subject=message.subject,
            body_length=len(message.body),
        )


class SendBulkEmailFlow(Flow[SendBulkEmailInput, SendBulkEmailOutput]):
    """Personalize one template per client and send it.

    ``{{clientName}}`` is always filled. When an engagement type is given, the
    client's first matching engagement also fills ``{{engagementType}}`` and
    ``{{dueDate}}``. Clients whose address is empty, ``unassigned`` or malformed
    are skipped.
    """

    name = "send_bulk_email"
    description = "Send a personalized e-mail to many clients"
    input_model = SendBulkEmailInput
    output_model = SendBulkEmailOutput

    async def run(self, request: SendBulkEmailInput) -> SendBulkEmailOutput:
        engagements = await self._engagements_by_client(request)
        type_names = {
            t.id: t.name
            for t in load_all(EngagementType, await self.store.fetch_all(ENGAGEMENT_TYPES))
        }
        sender = SendEmailFlow(self.store, settings=self.settings, clock=self.clock)

        sent_count = 0
        for client in request.clients:
            if not is_usable_email(client.email):
                self._logger.info("client_skipped", client_id=client.id, email=client.email)
                continue

            values = {"clientName": client.name}
            engagement = engagements.get(client.id)
            if engagement is not None:
                values["engagementType"] = type_names.get(engagement.type) or engagement.remarks
                values["dueDate"] = format_due_date(engagement.due_date)

            message = decode(
                SendEmailInput,
                {
                    "recipientEmails": [client.email],
                    "subject": render(request.subject_template, values),
                    "body": render(request.body_template, values),
                },
            )
            await sender.deliver(message)
            sent_count += 1

        self._logger.info("bulk_email_sent", sent=sent_count, clients=len(request.clients))
        return SendBulkEmailOutput(success=True, sent_count=sent_count)

    async def _engagements_by_client(self, request: SendBulkEmailInput) -> dict[str, Engagement]:
        if not request.engagement_type_id or not request.clients:
            return {}

        filters = [Filter("type", "==", request.engagement_type_id)]
        if request.status and request.status != "All":
            status = getattr(request.status, "value", request.status)
            filters.append(Filter("status", "==", status))
        if request.financial_year:
            filters.append(Filter("financialYear", "==", request.financial_year))

        client_ids = [c.id for c in request.clients]
        by_client: dict[str, Engagement] = {}
        for start in range(0, len(client_ids), IN_FILTER_LIMIT):
            chunk = client_ids[start : start + IN_FILTER_LIMIT]
            documents = await self.store.query(
                ENGAGEMENTS, filters + [Filter("clientId", "in", chunk)]
            )
            for engagement in load_all(Engagement, documents):
                by_client.setdefault(engagement.client_id, engagement)
        return by_client
