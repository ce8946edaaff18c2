"""Bulk assignment of new engagements to staff."""

from collections import Counter

from practice_flows.errors import MissingReferenceError, ModelOutputError
from practice_flows.flows.base import Flow
from practice_flows.models import CLIENTS, Client
from practice_flows.schemas import AssignmentPlan, ScheduleEngagementsInput
from practice_flows.tools import SCHEDULE_ENGAGEMENTS_TOOLS

INSTRUCTIONS = """\
You are the resource manager of a Chartered Accountancy firm. Build an
assignment plan for a batch of new engagements, one entry per client, following
the user's assignment instructions.

- "Assigned to" is the person doing the work; "reported to" is the manager or
  partner overseeing it.
- If the instructions mention a department (e.g. "Articles"), call
  get_employees_by_department to find its members.
- For every client call get_manager_and_partner_for_client. The client's partner
  is the default reported-to person, including when the partner is also the
  assignee.
- When asked to distribute work equally, spread it as evenly as possible.
- Every client in the input must appear in the plan exactly once; do not add
  any other client.
"""


class ScheduleEngagementsFlow(Flow[ScheduleEngagementsInput, AssignmentPlan]):
    name = "schedule_engagements"
    description = "Propose who works on and who reviews a batch of new engagements"
    input_model = ScheduleEngagementsInput
    output_model = AssignmentPlan
    instructions = INSTRUCTIONS
    tools = SCHEDULE_ENGAGEMENTS_TOOLS

    async def run(self, request: ScheduleEngagementsInput) -> AssignmentPlan:
        documents = await self.store.get_many(CLIENTS, request.client_ids)
        clients = [Client.model_validate(d) for d in documents if d is not None]
        if not clients:
            raise MissingReferenceError(
                CLIENTS,
                ", ".join(request.client_ids),
                "No valid clients found for the provided IDs",
            )
        if len(clients) < len(request.client_ids):
            self._logger.warning(
                "clients_skipped",
                requested=len(request.client_ids),
                resolved=len(clients),
            )

        plan = await self.infer({
            "assignmentPrompt": request.assignment_prompt,
            "clients": [
                {"id": c.id, "name": c.name, "category": c.category, "partnerId": c.partner_id}
                for c in clients
            ],
        })

        self._check_coverage(plan, {c.id for c in clients})
        return plan

    def _check_coverage(self, plan: AssignmentPlan, client_ids: set[str]) -> None:
        counts = Counter(entry.client_id for entry in plan.plan)
        unknown = sorted(set(counts) - client_ids)
        missing = sorted(client_ids - set(counts))
        repeated = sorted(i for i, n in counts.items() if n > 1)
        if unknown or missing or repeated:
            raise ModelOutputError(
                "Assignment plan must cover every client exactly once",
                details={"unknown": unknown, "missing": missing, "repeated": repeated},
            )
