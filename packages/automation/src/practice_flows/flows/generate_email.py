"""Templated client correspondence."""

import asyncio

from practice_flows.errors import MissingReferenceError
from practice_flows.flows.base import Flow
from practice_flows.models import CLIENTS, EMPLOYEES, FIRMS, Client, Employee, Firm
from practice_flows.schemas import GenerateEmailInput, GenerateEmailOutput
from practice_flows.tools import GENERATE_EMAIL_TOOLS
from practice_flows.tools.data_access import load

INSTRUCTIONS = """\
You are an administrative assistant at a Chartered Accountancy firm. Write a
professional e-mail to a client using the requested template.

- Personalize it with the client, firm and sender details provided. Use
  get_client_and_firm if you need more client or firm details.
- The body is plain text with blank lines between paragraphs. No HTML, no
  Markdown.
- Sign off with the sender's name, designation and the firm's name.

Templates:
- "New Client Onboarding": subject "Welcome to <Firm Name>!". A warm welcome
  that thanks the client for choosing the firm and introduces the sender as
  their main point of contact.
- "Engagement Letter - Audit": subject "Engagement Letter for Statutory Audit of
  <Client Name>". A formal note enclosing the audit engagement letter, naming
  the financial year, asking the client to review, sign and return it.
- "Recurring Service Agreement": subject "Agreement for <Service Name> Services -
  <Client Name>". A formal note on a recurring service agreement covering scope,
  responsibilities and fees, asking the client to confirm acceptance.
- "Fee Revision Approval": subject "Important Update: Revision of Professional
  Fees for <Service Name>". A formal notice of a fee revision stating old and
  new fees, thanking the client and giving a reason for the change.
"""


class GenerateEmailFlow(Flow[GenerateEmailInput, GenerateEmailOutput]):
    name = "generate_email"
    description = "Draft a client e-mail from one of the firm's templates"
    input_model = GenerateEmailInput
    output_model = GenerateEmailOutput
    instructions = INSTRUCTIONS
    tools = GENERATE_EMAIL_TOOLS

    async def run(self, request: GenerateEmailInput) -> GenerateEmailOutput:
        client = load(Client, await self.store.get(CLIENTS, request.client_id))
        if client is None:
            raise MissingReferenceError(CLIENTS, request.client_id)
        if not client.firm_id:
            raise MissingReferenceError(FIRMS, "", f"Client '{client.id}' has no firm")

        firm_doc, sender_doc = await asyncio.gather(
            self.store.get(FIRMS, client.firm_id),
            self.store.get(EMPLOYEES, request.user_id),
        )
        firm = load(Firm, firm_doc)
        if firm is None:
            raise MissingReferenceError(FIRMS, client.firm_id)
        sender = load(Employee, sender_doc)
        if sender is None:
            raise MissingReferenceError(EMPLOYEES, request.user_id)

        return await self.infer({
            "templateName": request.template_name,
            "client": {
                "id": client.id,
                "name": client.name,
                "contactPerson": client.contact_person,
                "contactPersonDesignation": client.contact_person_designation,
            },
            "firm": {"name": firm.name, "email": firm.email},
            "sender": {"name": sender.name, "designation": sender.designation},
        })
