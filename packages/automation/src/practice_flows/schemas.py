"""Input/output contracts for every flow and tool.

Contracts are closed pydantic models: unknown keys are rejected, enums are
restricted to named literal sets and field descriptions are exported to the
model as part of the JSON schema.
"""

import copy
from typing import Annotated, Any, Literal, TypeVar, get_args

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from practice_flows.errors import InputValidationError, ModelOutputError
from practice_flows.models import (
    EMAIL_PATTERN,
    CalendarEvent,
    Client,
    Employee,
    Engagement,
    EngagementStatus,
    Firm,
    Timesheet,
)

Id = Annotated[str, Field(min_length=1)]
Email = Annotated[str, Field(pattern=EMAIL_PATTERN)]
Period = Annotated[str, Field(pattern=r"^\d{4}-(0[1-9]|1[0-2])$", description="Month as yyyy-MM")]

EmailCategory = Literal[
    "Query", "Document Submission", "Follow-up", "Appreciation", "Urgent", "General"
]
EmailTemplate = Literal[
    "New Client Onboarding",
    "Engagement Letter - Audit",
    "Recurring Service Agreement",
    "Fee Revision Approval",
]

EMAIL_CATEGORIES: tuple[str, ...] = get_args(EmailCategory)
EMAIL_TEMPLATES: tuple[str, ...] = get_args(EmailTemplate)


class Contract(BaseModel):
    """Base for closed, camelCase contracts."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    def to_payload(self) -> dict[str, Any]:
        """JSON-able dict; optional fields left unset are omitted, not null."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


ContractT = TypeVar("ContractT", bound=BaseModel)


def _error_fields(error: ValidationError) -> list[str]:
    return [".".join(str(part) for part in item["loc"]) or "<root>" for item in error.errors()]


def decode(
    model: type[ContractT], payload: Any, source: Literal["input", "output"] = "input"
) -> ContractT:
    """Validate a payload against a contract.

    Raises InputValidationError for caller payloads and ModelOutputError for
    model answers; nothing is coerced beyond pydantic's JSON lax mode.
    """
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        fields = _error_fields(e)
        if source == "output":
            raise ModelOutputError(
                f"Model output failed {model.__name__}: invalid {', '.join(fields)}",
                details=e.errors(include_url=False),
            ) from e
        raise InputValidationError(
            f"Invalid {model.__name__}: {', '.join(fields)}",
            fields=fields,
            details=e.errors(include_url=False),
        ) from e


def _resolve_refs(node: Any, defs: dict[str, Any]) -> Any:
    if isinstance(node, dict):
        if "$ref" in node:
            target = defs[node["$ref"].rsplit("/", 1)[-1]]
            return _resolve_refs(copy.deepcopy(target), defs)
        return {
            key: _resolve_refs(value, defs)
            for key, value in node.items()
            if key not in ("title", "$defs")
        }
    if isinstance(node, list):
        return [_resolve_refs(item, defs) for item in node]
    return node


def tool_json_schema(model: type[BaseModel]) -> dict[str, Any]:
    """JSON schema with every ``$ref`` inlined and titles dropped.

    Some providers (Gemini) only accept a self-contained OpenAPI subset.
    """
    schema = model.model_json_schema(by_alias=True)
    return _resolve_refs(schema, schema.get("$defs", {}))


# === Tool contracts ===


class DepartmentQuery(Contract):
    department_name: Id = Field(description="Department or role name, e.g. 'Articles'")


class EmployeeList(Contract):
    employees: list[Employee]


class ClientRef(Contract):
    client_id: Id = Field(description="Client document id")


class ManagerAndPartner(Contract):
    partner: Employee | None = None
    manager: Employee | None = None


class EmailLookup(Contract):
    email: Email = Field(description="Sender e-mail address")


class ClientTeam(Contract):
    found: bool
    client: Client | None = None
    team_member_ids: list[str] = Field(default_factory=list)


class ClientAndFirm(Contract):
    found: bool
    client: Client | None = None
    firm: Firm | None = None


class ConflictQuery(Contract):
    employee_id: Id
    start_date: Id = Field(description="Leave start, ISO 8601 date or datetime")
    end_date: Id = Field(description="Leave end, ISO 8601 date or datetime")


class EventList(Contract):
    events: list[CalendarEvent]


class ColleagueQuery(Contract):
    engagement_id: Id
    employee_on_leave_id: Id


class ColleagueList(Contract):
    colleagues: list[Employee]


class WorkloadQuery(Contract):
    exclude_employee_id: Id
    window_end: Id = Field(description="Last due date counted, ISO 8601")


class EmployeeWorkload(Contract):
    employee_id: str
    employee_name: str
    workload_hours: float


class WorkloadList(Contract):
    workloads: list[EmployeeWorkload]


class EmployeeRef(Contract):
    employee_id: Id


class EngagementList(Contract):
    engagements: list[Engagement]


class TimesheetQuery(Contract):
    employee_id: Id
    period: Period


class TimesheetList(Contract):
    timesheets: list[Timesheet]


class TypedEngagement(Engagement):
    engagement_type_name: str = ""


class TypedEngagementList(Contract):
    engagements: list[TypedEngagement]


class EngagementRef(Contract):
    engagement_id: Id


class InvoiceData(Contract):
    found: bool
    engagement: Engagement | None = None
    client: Client | None = None
    firm: Firm | None = None


# === Flow contracts ===


class ProcessEmailInput(Contract):
    sender: Email = Field(alias="from", description="The sender's email address.")
    subject: str = Field(description="The subject line of the email.")
    body: str = Field(description="The full body content of the email.")


class ProcessEmailOutput(Contract):
    client_id: str | None = Field(
        default=None, description="ID of the client linked to this email. Omit if none found."
    )
    client_name: str | None = Field(
        default=None, description="Name of the linked client. Omit if none found."
    )
    summary: str = Field(description="A concise summary of the email's content.")
    category: EmailCategory = Field(description="The category of the email.")
    action_items: list[str] = Field(
        description="Clear, actionable items derived from the email; empty if none."
    )
    visible_to: list[str] = Field(description="Employee IDs who should see this email.")


class ScheduleEngagementsInput(Contract):
    client_ids: list[Id] = Field(min_length=1, description="Clients to create engagements for.")
    assignment_prompt: str = Field(
        min_length=1, description="Instructions on how to assign the engagements."
    )


class AssignmentPlanEntry(Contract):
    client_id: str
    client_name: str
    assigned_to_id: str
    assigned_to_name: str
    reported_to_id: str
    reported_to_name: str


class AssignmentPlan(Contract):
    plan: list[AssignmentPlanEntry] = Field(
        description="The final assignment plan, one entry per client."
    )


class GenerateEmailInput(Contract):
    template_name: EmailTemplate = Field(description="The email template to use.")
    client_id: Id = Field(description="The client the email is addressed to.")
    user_id: Id = Field(description="The employee sending the email (usually the partner).")


class GenerateEmailOutput(Contract):
    subject: str = Field(min_length=1, description="The generated subject line.")
    body: str = Field(min_length=1, description="Plain-text body with line breaks.")


class GenerateInvoiceInput(Contract):
    engagement_id: Id = Field(description="The engagement to invoice.")


class GenerateInvoiceOutput(Contract):
    html_content: str = Field(min_length=1, description="The full HTML content of the invoice.")
    recipient_email: Email = Field(description="The client's email address.")
    subject: str = Field(min_length=1, description="Subject line for the invoice email.")


class HandleLeaveRequestInput(Contract):
    leave_request_id: Id = Field(description="The approved leave request.")


class LeavePlanItem(Contract):
    conflicting_event_id: str
    conflicting_event_title: str
    engagement_id: str | None = None
    suggested_replacement_id: str | None = None
    reasoning: str = Field(min_length=1)


class LeavePlan(Contract):
    plan: list[LeavePlanItem] = Field(description="One action per conflicting event.")


class HandlePerformanceReviewInput(Contract):
    employee_id: Id = Field(description="The employee to review.")
    period: Period
    reviewer_id: Id = Field(description="The partner or manager initiating the review.")


class OverrunEngagement(Contract):
    engagement_id: str
    engagement_name: str
    overrun_hours: float


class PerformanceReviewOutput(Contract):
    summary: str = Field(min_length=1, description="Concise summary of the issues found.")
    deficit_hours: float | None = Field(
        default=None, description="Shortfall against monthly target hours."
    )
    overrun_engagements: list[OverrunEngagement] = Field(
        description="Engagements where logged hours exceeded the budget."
    )


class ReallocateEngagementsInput(Contract):
    inactive_employee_id: Id = Field(description="The employee who is now inactive.")


class ReallocationEntry(Contract):
    engagement_id: str
    engagement_remarks: str
    new_assignee_id: str
    new_assignee_name: str
    reasoning: str = Field(description="Why this reassignment is suggested.")


class ReallocationPlan(Contract):
    plan: list[ReallocationEntry] = Field(description="The proposed reallocation plan.")


class SendEmailInput(Contract):
    recipient_emails: list[Email] = Field(min_length=1)
    subject: str
    body: str


class SendEmailOutput(Contract):
    success: bool


class BulkEmailClient(Contract):
    id: Id
    name: str
    email: str


class SendBulkEmailInput(Contract):
    clients: list[BulkEmailClient]
    subject_template: str
    body_template: str
    engagement_type_id: str | None = None
    status: EngagementStatus | Literal["All"] | None = None
    financial_year: str | None = None


class SendBulkEmailOutput(Contract):
    success: bool
    sent_count: int


# === Applier requests ===


class CreateEngagementsInput(Contract):
    plan: list[AssignmentPlanEntry] = Field(min_length=1)
    engagement_type_id: Id
    due_date: Id = Field(description="ISO 8601 due date for every new engagement")
    fees: float | None = None


class CreateEngagementsOutput(Contract):
    engagement_ids: list[str]


class ApplyReallocationInput(Contract):
    inactive_employee_id: Id
    plan: list[ReallocationEntry]


class ApplyReallocationOutput(Contract):
    updated_count: int


class ReviseFeeInput(Contract):
    new_fee: float = Field(ge=0)
    actor_id: Id = Field(description="Employee making the change")


class ReviseFeeOutput(Contract):
    approval_todo_id: str | None = None
