"""Triage of inbound client e-mail."""

from practice_flows.flows.base import Flow
from practice_flows.schemas import ProcessEmailInput, ProcessEmailOutput
from practice_flows.tools import PROCESS_EMAIL_TOOLS

INSTRUCTIONS = """\
You are an assistant for a firm of Chartered Accountants. Process one incoming
e-mail and return a structured summary of it.

1. Call get_client_and_team_by_email with the sender's address to find the
   client and the ids of everyone on the client's team.
2. If a client is found, return its id as clientId, its name as clientName and
   the team member ids as visibleTo.
3. If no client is found, leave clientId and clientName out of the answer
   entirely and return an empty visibleTo list.
4. Summarize the e-mail concisely.
5. Categorize it as exactly one of: Query, Document Submission, Follow-up,
   Appreciation, Urgent, General.
6. List clear action items for the team; use an empty list if there are none.
"""


class ProcessEmailFlow(Flow[ProcessEmailInput, ProcessEmailOutput]):
    """Link an e-mail to a client, summarize and categorize it, pick its audience."""

    name = "process_email"
    description = "Summarize, categorize and route an inbound client e-mail"
    input_model = ProcessEmailInput
    output_model = ProcessEmailOutput
    instructions = INSTRUCTIONS
    tools = PROCESS_EMAIL_TOOLS

    async def run(self, request: ProcessEmailInput) -> ProcessEmailOutput:
        answer = await self.infer(request.to_payload())

        client_id = (answer.client_id or "").strip() or None
        client_name = (answer.client_name or "").strip() or None
        visible_to = [i for i in answer.visible_to if i]

        if client_id is None:
            # Unlinked mail goes to the admin for manual routing.
            client_name = None
            visible_to = [self.settings.fallback_admin_id]
        elif not visible_to:
            visible_to = [self.settings.fallback_admin_id]

        self._logger.info(
            "email_processed",
            linked=client_id is not None,
            category=answer.category,
            audience=len(visible_to),
        )
        return answer.model_copy(
            update={"client_id": client_id, "client_name": client_name, "visible_to": visible_to}
        )
