"""Cover planning for an approved leave request."""

from practice_flows.applier import TodoDraft, apply_todos
from practice_flows.errors import MissingReferenceError, ModelOutputError
from practice_flows.flows.base import Flow
from practice_flows.models import (
    EMPLOYEES,
    ENGAGEMENTS,
    LEAVE_REQUESTS,
    Employee,
    LeaveRequest,
    RelatedEntity,
    TodoType,
)
from practice_flows.schemas import HandleLeaveRequestInput, LeavePlan, LeavePlanItem
from practice_flows.tools import LEAVE_REQUEST_TOOLS
from practice_flows.tools.data_access import load

INSTRUCTIONS = """\
You are an HR assistant at a firm of Chartered Accountants. An employee's leave
has been approved; find what it clashes with and who can cover.

1. Call get_conflicting_events with the employee id and the leave dates.
2. For each conflicting event, check whether it is linked to an engagement.
3. If it is, call find_replacement_colleagues for that engagement and suggest
   the most senior available colleague (a Manager over an Employee). If nobody
   else is on the engagement, say so and suggest no one.
4. If it is not linked to an engagement, treat it as a personal or general
   event: suggest no one and say why.
5. Return one plan item per conflicting event with your reasoning. Never
   suggest the employee who is on leave.
"""

SYSTEM_USER = "system"


class HandleLeaveRequestFlow(Flow[HandleLeaveRequestInput, LeavePlan]):
    name = "handle_leave_request"
    description = "Find meetings clashing with approved leave and assign cover"
    input_model = HandleLeaveRequestInput
    output_model = LeavePlan
    instructions = INSTRUCTIONS
    tools = LEAVE_REQUEST_TOOLS

    async def run(self, request: HandleLeaveRequestInput) -> LeavePlan:
        leave = load(LeaveRequest, await self.store.get(LEAVE_REQUESTS, request.leave_request_id))
        if leave is None:
            raise MissingReferenceError(LEAVE_REQUESTS, request.leave_request_id)
        employee = load(Employee, await self.store.get(EMPLOYEES, leave.employee_id))
        if employee is None:
            raise MissingReferenceError(EMPLOYEES, leave.employee_id)

        plan = await self.infer({
            "leaveRequest": {
                "id": leave.id,
                "startDate": leave.start_date,
                "endDate": leave.end_date,
                "reason": leave.reason,
            },
            "employee": {
                "id": employee.id,
                "name": employee.name,
                "designation": employee.designation,
            },
        })

        for item in plan.plan:
            if item.suggested_replacement_id == employee.id:
                raise ModelOutputError(
                    f"Plan suggests {employee.id} to cover their own leave",
                    details={"conflictingEventId": item.conflicting_event_id},
                )

        await self._create_cover_todos(employee, plan.plan)
        return plan

    async def _create_cover_todos(self, employee: Employee, items: list[LeavePlanItem]) -> None:
        actionable = [i for i in items if i.suggested_replacement_id and i.engagement_id]
        if not actionable:
            return

        engagements = await self.store.get_many(
            ENGAGEMENTS, [item.engagement_id for item in actionable]
        )
        drafts = []
        for item, engagement in zip(actionable, engagements):
            remarks = (engagement or {}).get("remarks") or "an engagement"
            drafts.append(
                TodoDraft(
                    type=TodoType.GENERAL_TASK,
                    text=(
                        f'Cover for {employee.name} on "{remarks}" due to their leave. '
                        f"Reason: {item.reasoning}"
                    ),
                    created_by=SYSTEM_USER,
                    assigned_to=[item.suggested_replacement_id],
                    related_entity=RelatedEntity(type="engagement", id=item.engagement_id),
                )
            )

        await apply_todos(self.store, drafts, self.clock)
        self._logger.info("cover_assigned", employee_id=employee.id, todos=len(drafts))
