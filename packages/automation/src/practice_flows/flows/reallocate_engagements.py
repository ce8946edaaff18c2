"""Redistribution of a departing employee's open engagements."""

import asyncio
from collections import Counter

from practice_flows.errors import ModelOutputError
from practice_flows.flows.base import Flow
from practice_flows.models import EMPLOYEES
from practice_flows.schemas import (
    EmployeeRef,
    ReallocateEngagementsInput,
    ReallocationPlan,
    WorkloadQuery,
)
from practice_flows.tools import REALLOCATION_TOOLS
from practice_flows.tools.data_access import (
    get_active_engagements_for_employee,
    get_employee_workloads,
)

INSTRUCTIONS = """\
You are the resource manager of a Chartered Accountancy firm. An employee has
become inactive and their open engagements must be handed over.

- The input lists the engagements to reassign and the current workload, in
  hours, of every other active employee.
- Assign each engagement to the best fit, spreading the new work as evenly as
  possible and favouring employees with lower workloads.
- Only use employees from the workload list. Never assign work back to the
  inactive employee.
- Give a short reason for every assignment (e.g. "Lowest current workload").
- Return one plan entry per engagement to reassign.
"""

UNKNOWN_EMPLOYEE = "Unknown Employee"


class ReallocateEngagementsFlow(Flow[ReallocateEngagementsInput, ReallocationPlan]):
    name = "reallocate_engagements"
    description = "Propose new owners for an inactive employee's open engagements"
    input_model = ReallocateEngagementsInput
    output_model = ReallocationPlan
    instructions = INSTRUCTIONS
    tools = REALLOCATION_TOOLS

    async def run(self, request: ReallocateEngagementsInput) -> ReallocationPlan:
        ctx = self.tool_context()
        departed_id = request.inactive_employee_id

        active = await get_active_engagements_for_employee(
            ctx, EmployeeRef(employee_id=departed_id)
        )
        if not active.engagements:
            self._logger.info("nothing_to_reallocate", employee_id=departed_id)
            return ReallocationPlan(plan=[])

        window_end = max(e.due_date for e in active.engagements)
        workloads, departed_doc = await asyncio.gather(
            get_employee_workloads(
                ctx, WorkloadQuery(exclude_employee_id=departed_id, window_end=window_end)
            ),
            self.store.get(EMPLOYEES, departed_id),
        )

        plan = await self.infer({
            "inactiveEmployee": {
                "id": departed_id,
                "name": (departed_doc or {}).get("name") or UNKNOWN_EMPLOYEE,
            },
            "engagementsToReallocate": [
                {
                    "id": e.id,
                    "remarks": e.remarks,
                    "status": e.status,
                    "dueDate": e.due_date,
                    "budgetedHours": e.budgeted_hours,
                }
                for e in active.engagements
            ],
            "employeeWorkloads": [w.to_payload() for w in workloads.workloads],
        })

        self._check_plan(
            plan,
            departed_id,
            engagement_ids={e.id for e in active.engagements},
            candidate_ids={w.employee_id for w in workloads.workloads},
        )
        return plan

    def _check_plan(
        self,
        plan: ReallocationPlan,
        departed_id: str,
        engagement_ids: set[str],
        candidate_ids: set[str],
    ) -> None:
        counts = Counter(entry.engagement_id for entry in plan.plan)
        problems = {
            "unknownEngagements": sorted(set(counts) - engagement_ids),
            "repeatedEngagements": sorted(i for i, n in counts.items() if n > 1),
            "invalidAssignees": sorted(
                {
                    entry.new_assignee_id
                    for entry in plan.plan
                    if entry.new_assignee_id == departed_id
                    or entry.new_assignee_id not in candidate_ids
                }
            ),
        }
        if any(problems.values()):
            raise ModelOutputError("Reallocation plan is inconsistent", details=problems)

        skipped = engagement_ids - set(counts)
        if skipped:
            self._logger.warning("engagements_left_unassigned", engagement_ids=sorted(skipped))
