"""Tool definitions for LLM function calling over the practice store.

Each tool pairs a data-access handler with its input and output contracts.
The definition handed to the model is derived from the input contract, so the
schema the model sees and the one the executor enforces never drift apart.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from practice_flows.schemas import (
    ClientAndFirm,
    ClientRef,
    ClientTeam,
    ColleagueList,
    ColleagueQuery,
    ConflictQuery,
    DepartmentQuery,
    EmailLookup,
    EmployeeList,
    EmployeeRef,
    EngagementList,
    EngagementRef,
    EventList,
    InvoiceData,
    ManagerAndPartner,
    TimesheetList,
    TimesheetQuery,
    TypedEngagementList,
    WorkloadList,
    WorkloadQuery,
    tool_json_schema,
)
from practice_flows.tools import data_access
from practice_flows.tools.data_access import ToolContext

ToolHandler = Callable[[ToolContext, Any], Awaitable[BaseModel]]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_model: type[BaseModel]
    output_model: type[BaseModel]
    handler: ToolHandler

    def definition(self) -> dict[str, Any]:
        """Provider-neutral definition: name, description and input schema."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": tool_json_schema(self.input_model),
        }


# === Employees & clients ===

GET_EMPLOYEES_BY_DEPARTMENT_TOOL = ToolSpec(
    name="get_employees_by_department",
    description=(
        "List employees whose role includes the given department name "
        "(e.g. 'Articles', 'Audit'). Use it to find candidates to assign work to."
    ),
    input_model=DepartmentQuery,
    output_model=EmployeeList,
    handler=data_access.get_employees_by_department,
)

GET_MANAGER_AND_PARTNER_TOOL = ToolSpec(
    name="get_manager_and_partner_for_client",
    description=(
        "Get the partner responsible for a client and the manager engagements "
        "should report to. Either may be missing."
    ),
    input_model=ClientRef,
    output_model=ManagerAndPartner,
    handler=data_access.get_manager_and_partner_for_client,
)

GET_CLIENT_AND_TEAM_BY_EMAIL_TOOL = ToolSpec(
    name="get_client_and_team_by_email",
    description=(
        "Find the client whose registered e-mail matches the sender, plus the ids "
        "of every employee on that client's team. found=false if no client matches."
    ),
    input_model=EmailLookup,
    output_model=ClientTeam,
    handler=data_access.get_client_and_team_by_email,
)

GET_CLIENT_AND_FIRM_TOOL = ToolSpec(
    name="get_client_and_firm",
    description="Get a client and the firm that serves it, including billing details.",
    input_model=ClientRef,
    output_model=ClientAndFirm,
    handler=data_access.get_client_and_firm,
)

# === Leave handling ===

GET_CONFLICTING_EVENTS_TOOL = ToolSpec(
    name="get_conflicting_events",
    description=(
        "List calendar events the employee attends that start between startDate "
        "and endDate. A date without a time covers the whole day."
    ),
    input_model=ConflictQuery,
    output_model=EventList,
    handler=data_access.get_conflicting_events,
)

FIND_REPLACEMENT_COLLEAGUES_TOOL = ToolSpec(
    name="find_replacement_colleagues",
    description=(
        "List the other employees assigned to an engagement, excluding the one on "
        "leave. Empty if nobody else is assigned."
    ),
    input_model=ColleagueQuery,
    output_model=ColleagueList,
    handler=data_access.find_replacement_colleagues,
)

# === Workload & reallocation ===

GET_ACTIVE_ENGAGEMENTS_TOOL = ToolSpec(
    name="get_active_engagements_for_employee",
    description=(
        "List engagements assigned to an employee that are still open "
        "(Pending, In Process, Awaiting Documents, Partner Review, On Hold)."
    ),
    input_model=EmployeeRef,
    output_model=EngagementList,
    handler=data_access.get_active_engagements_for_employee,
)

GET_EMPLOYEE_WORKLOADS_TOOL = ToolSpec(
    name="get_employee_workloads",
    description=(
        "Hours of work each active employee carries from the start of this month "
        "to windowEnd, lightest first. The excluded employee is left out."
    ),
    input_model=WorkloadQuery,
    output_model=WorkloadList,
    handler=data_access.get_employee_workloads,
)

# === Performance review ===

GET_MONTHLY_TIMESHEETS_TOOL = ToolSpec(
    name="get_monthly_timesheets",
    description="List an employee's weekly timesheets whose week starts in the given month.",
    input_model=TimesheetQuery,
    output_model=TimesheetList,
    handler=data_access.get_monthly_timesheets,
)

GET_ENGAGEMENTS_FOR_EMPLOYEE_TOOL = ToolSpec(
    name="get_engagements_for_employee",
    description=(
        "List every engagement assigned to an employee with its engagement type "
        "name and budgeted hours."
    ),
    input_model=EmployeeRef,
    output_model=TypedEngagementList,
    handler=data_access.get_engagements_for_employee,
)

# === Billing ===

GET_INVOICE_DATA_TOOL = ToolSpec(
    name="get_invoice_data",
    description=(
        "Get an engagement with its client and the client's firm, everything an "
        "invoice needs. found=false if any of the three is missing."
    ),
    input_model=EngagementRef,
    output_model=InvoiceData,
    handler=data_access.get_invoice_data,
)


# === Tool sets per flow ===

PROCESS_EMAIL_TOOLS: list[ToolSpec] = [GET_CLIENT_AND_TEAM_BY_EMAIL_TOOL]

SCHEDULE_ENGAGEMENTS_TOOLS: list[ToolSpec] = [
    GET_EMPLOYEES_BY_DEPARTMENT_TOOL,
    GET_MANAGER_AND_PARTNER_TOOL,
]

GENERATE_EMAIL_TOOLS: list[ToolSpec] = [GET_CLIENT_AND_FIRM_TOOL]

GENERATE_INVOICE_TOOLS: list[ToolSpec] = [GET_INVOICE_DATA_TOOL]

LEAVE_REQUEST_TOOLS: list[ToolSpec] = [
    GET_CONFLICTING_EVENTS_TOOL,
    FIND_REPLACEMENT_COLLEAGUES_TOOL,
]

PERFORMANCE_REVIEW_TOOLS: list[ToolSpec] = [
    GET_MONTHLY_TIMESHEETS_TOOL,
    GET_ENGAGEMENTS_FOR_EMPLOYEE_TOOL,
]

REALLOCATION_TOOLS: list[ToolSpec] = [
    GET_ACTIVE_ENGAGEMENTS_TOOL,
    GET_EMPLOYEE_WORKLOADS_TOOL,
]

# All available tools, by name
ALL_TOOLS: dict[str, ToolSpec] = {
    spec.name: spec
    for spec in [
        GET_EMPLOYEES_BY_DEPARTMENT_TOOL,
        GET_MANAGER_AND_PARTNER_TOOL,
        GET_CLIENT_AND_TEAM_BY_EMAIL_TOOL,
        GET_CLIENT_AND_FIRM_TOOL,
        GET_CONFLICTING_EVENTS_TOOL,
        FIND_REPLACEMENT_COLLEAGUES_TOOL,
        GET_ACTIVE_ENGAGEMENTS_TOOL,
        GET_EMPLOYEE_WORKLOADS_TOOL,
        GET_MONTHLY_TIMESHEETS_TOOL,
        GET_ENGAGEMENTS_FOR_EMPLOYEE_TOOL,
        GET_INVOICE_DATA_TOOL,
    ]
}
