"""Monthly performance review: hour deficit and budget overruns.

The hour figures are computed here from timesheets and budgets; the model
only explains them. Its summary goes to the employee's manager as a Todo.
"""

import asyncio
from collections import defaultdict
from datetime import datetime

from practice_flows.applier import TodoDraft, apply_todos
from practice_flows.errors import MissingReferenceError
from practice_flows.flows.base import Flow
from practice_flows.models import (
    DEPARTMENTS,
    EMPLOYEES,
    ENGAGEMENT_TYPES,
    Department,
    Employee,
    EngagementType,
    RelatedEntity,
    Timesheet,
    TodoType,
)
from practice_flows.schemas import (
    EmployeeRef,
    HandlePerformanceReviewInput,
    OverrunEngagement,
    PerformanceReviewOutput,
    TimesheetQuery,
    TypedEngagement,
)
from practice_flows.store import Filter
from practice_flows.tools import PERFORMANCE_REVIEW_TOOLS
from practice_flows.tools.data_access import (
    engagement_hours,
    get_engagements_for_employee,
    get_monthly_timesheets,
    load,
    load_all,
)

WEEKS_PER_MONTH = 4
OVERRUN_TOLERANCE_HOURS = 5.0

# Todos only link to clients or engagements. Reviews carry the employee id
# under the client tag as a placeholder until an employee link exists.
REVIEW_ENTITY_TYPE = "client"

INSTRUCTIONS = """\
You are a performance analyst at a CA firm. Review one employee's month.

The input already contains the computed figures: monthly target hours, hours
logged, the deficit (if any) and every engagement where logged hours exceed
the budget by more than 5 hours. Use get_monthly_timesheets or
get_engagements_for_employee only if you need more detail.

Write a concise, professional summary naming the key issues (for example
"significant hour deficit" or "budget overrun on 2 engagements"). If there
are no issues, say so. Report deficitHours and overrunEngagements exactly as
computed.
"""


def timesheet_hours(timesheet: Timesheet) -> float:
    return timesheet.total_hours or sum(entry.hours for entry in timesheet.entries)


def find_overruns(
    timesheets: list[Timesheet],
    engagements: list[TypedEngagement],
    engagement_types: dict[str, EngagementType],
    default_hours: float,
) -> list[OverrunEngagement]:
    """Engagements whose logged hours exceed their budget by more than the tolerance."""
    logged: dict[str, float] = defaultdict(float)
    for timesheet in timesheets:
        for entry in timesheet.entries:
            logged[entry.engagement_id] += entry.hours

    overruns = []
    for engagement in engagements:
        budget = engagement_hours(engagement, engagement_types, default_hours)
        excess = logged.get(engagement.id, 0.0) - budget
        if excess > OVERRUN_TOLERANCE_HOURS:
            overruns.append(
                OverrunEngagement(
                    engagement_id=engagement.id,
                    engagement_name=engagement.remarks or engagement.engagement_type_name,
                    overrun_hours=round(excess, 2),
                )
            )
    return overruns


class HandlePerformanceReviewFlow(Flow[HandlePerformanceReviewInput, PerformanceReviewOutput]):
    name = "handle_performance_review"
    description = "Review an employee's month and notify their manager"
    input_model = HandlePerformanceReviewInput
    output_model = PerformanceReviewOutput
    instructions = INSTRUCTIONS
    tools = PERFORMANCE_REVIEW_TOOLS

    async def run(self, request: HandlePerformanceReviewInput) -> PerformanceReviewOutput:
        employee = load(Employee, await self.store.get(EMPLOYEES, request.employee_id))
        if employee is None:
            raise MissingReferenceError(EMPLOYEES, request.employee_id)

        department_name = employee.role[0]
        departments = await self.store.query(DEPARTMENTS, [Filter("name", "==", department_name)])
        if not departments:
            raise MissingReferenceError(
                DEPARTMENTS, department_name, f"Department '{department_name}' not found"
            )
        department = Department.model_validate(departments[0])

        ctx = self.tool_context()
        timesheet_list, engagement_list = await asyncio.gather(
            get_monthly_timesheets(
                ctx, TimesheetQuery(employee_id=employee.id, period=request.period)
            ),
            get_engagements_for_employee(ctx, EmployeeRef(employee_id=employee.id)),
        )
        timesheets, engagements = timesheet_list.timesheets, engagement_list.engagements

        type_ids = list(dict.fromkeys(e.type for e in engagements))
        type_docs = await self.store.get_many(ENGAGEMENT_TYPES, type_ids) if type_ids else []
        engagement_types = {
            t.id: t for t in load_all(EngagementType, [d for d in type_docs if d is not None])
        }

        target_hours = department.standard_weekly_hours * WEEKS_PER_MONTH
        logged_hours = sum(timesheet_hours(t) for t in timesheets)
        deficit = round(target_hours - logged_hours, 2) if logged_hours < target_hours else None
        overruns = find_overruns(
            timesheets, engagements, engagement_types, self.settings.default_engagement_hours
        )

        answer = await self.infer({
            "employee": {"id": employee.id, "name": employee.name, "department": department.name},
            "period": request.period,
            "monthlyTargetHours": target_hours,
            "loggedHours": logged_hours,
            "deficitHours": deficit,
            "overrunEngagements": [o.to_payload() for o in overruns],
            "timesheets": [
                {"weekStartDate": t.week_start_date, "totalHours": timesheet_hours(t)}
                for t in timesheets
            ],
        })
        review = self.validated(
            answer.model_copy(update={"deficit_hours": deficit, "overrun_engagements": overruns})
        )

        month = datetime.strptime(request.period, "%Y-%m").strftime("%B %Y")
        await apply_todos(
            self.store,
            [
                TodoDraft(
                    type=TodoType.PERFORMANCE_REVIEW,
                    text=f"Review performance for {employee.name} for {month}. "
                    f"Issues: {review.summary}",
                    created_by=request.reviewer_id,
                    assigned_to=[employee.manager_id or self.settings.fallback_partner_id],
                    related_entity=RelatedEntity(type=REVIEW_ENTITY_TYPE, id=employee.id),
                )
            ],
            self.clock,
        )
        return review
