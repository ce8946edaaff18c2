"""Practice records as they are stored in the document store.

Documents use camelCase keys (``clientId``, ``assignedTo``); the models expose
snake_case attributes and accept either spelling. Extra keys written by other
collaborators are ignored on read.
"""

import re
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EngagementStatus(str, Enum):
    """Engagement lifecycle, in display order."""

    PENDING = "Pending"
    AWAITING_DOCUMENTS = "Awaiting Documents"
    IN_PROCESS = "In Process"
    PARTNER_REVIEW = "Partner Review"
    ON_HOLD = "On Hold"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


TERMINAL_STATUSES = frozenset({EngagementStatus.COMPLETED, EngagementStatus.CANCELLED})

ACTIVE_STATUSES: tuple[EngagementStatus, ...] = (
    EngagementStatus.PENDING,
    EngagementStatus.IN_PROCESS,
    EngagementStatus.AWAITING_DOCUMENTS,
    EngagementStatus.PARTNER_REVIEW,
    EngagementStatus.ON_HOLD,
)


def is_active_status(status: EngagementStatus | str) -> bool:
    """True for every status that still needs someone working on it."""
    return EngagementStatus(status) in ACTIVE_STATUSES


class TodoType(str, Enum):
    """Kinds of to-do records the flows create."""

    GENERAL_TASK = "GENERAL_TASK"
    PERFORMANCE_REVIEW = "PERFORMANCE_REVIEW"
    FEE_REVISION_APPROVAL = "FEE_REVISION_APPROVAL"


class Recurrence(str, Enum):
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    YEARLY = "Yearly"


UNASSIGNED = "unassigned"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def is_usable_email(value: str | None) -> bool:
    """True for a real address; empty values and the `unassigned` marker are not."""
    return bool(value) and value != UNASSIGNED and re.match(EMAIL_PATTERN, value) is not None


class Record(BaseModel):
    """Base for every stored document."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        use_enum_values=True,
    )

    def to_document(self) -> dict[str, Any]:
        """Serialize to the camelCase shape written to the store."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Employee(Record):
    id: str
    name: str
    email: str = ""
    avatar: str = ""
    designation: str | None = None
    role: list[str] = Field(min_length=1, description="Department names, or Partner/Admin")
    manager_id: str | None = None
    charge_out_rate: float | None = None
    is_active: bool = True


class Department(Record):
    id: str
    name: str
    order: int = 0
    standard_weekly_hours: float = 40.0


class Client(Record):
    id: str
    name: str
    category: str | None = None
    mail_id: str = UNASSIGNED
    mobile_number: str | None = None
    partner_id: str | None = None
    firm_id: str | None = None
    linked_client_ids: list[str] = Field(default_factory=list)
    contact_person: str | None = None
    contact_person_designation: str | None = None
    pan: str | None = None
    gstin: str | None = None
    billing_address_line1: str | None = None
    billing_address_line2: str | None = None
    billing_address_line3: str | None = None
    state: str | None = None
    country: str | None = None

    @property
    def has_usable_email(self) -> bool:
        return is_usable_email(self.mail_id)


class Firm(Record):
    id: str
    name: str
    billing_address_line1: str | None = None
    billing_address_line2: str | None = None
    billing_address_line3: str | None = None
    gstn: str | None = None
    pan: str | None = None
    email: str | None = None


class EngagementType(Record):
    id: str
    name: str
    description: str = ""
    standard_hours: float | None = None
    recurrence: Recurrence | None = None
    sub_task_titles: list[str] = Field(default_factory=list)
    applicable_categories: list[str] = Field(default_factory=list)


class Engagement(Record):
    id: str
    client_id: str
    type: str
    remarks: str = ""
    status: EngagementStatus = EngagementStatus.PENDING
    due_date: str
    assigned_to: list[str] = Field(default_factory=list)
    reported_to: str | None = None
    fees: float | None = None
    budgeted_hours: float | None = None
    recurring_engagement_id: str | None = None
    bill_status: Literal["To Bill", "Pending Collection", "Collected"] | None = None
    financial_year: str | None = None


class RecurringEngagement(Record):
    id: str
    client_id: str
    engagement_type_id: str
    fees: float | None = None
    is_active: bool = True


class Task(Record):
    id: str
    engagement_id: str
    title: str
    status: Literal["Pending", "Completed", "Cancelled"] = "Pending"
    order: int
    assigned_to: str


class TimesheetEntry(Record):
    engagement_id: str
    hours: float


class Timesheet(Record):
    id: str
    user_id: str
    user_name: str = ""
    is_partner: bool = False
    week_start_date: str
    total_hours: float = 0.0
    entries: list[TimesheetEntry] = Field(default_factory=list)


class LeaveRequest(Record):
    id: str
    employee_id: str
    employee_name: str = ""
    start_date: str
    end_date: str
    reason: str = ""
    status: Literal["Pending", "Approved", "Rejected"] = "Pending"
    approved_by: str | None = None


class CalendarEvent(Record):
    id: str
    title: str
    start: str
    end: str
    all_day: bool = False
    created_by: str | None = None
    attendees: list[str] = Field(default_factory=list)
    engagement_id: str | None = None
    description: str | None = None
    location: str | None = None


class RelatedEntity(Record):
    type: Literal["client", "engagement"]
    id: str


class Todo(Record):
    id: str
    type: TodoType
    text: str
    created_by: str
    assigned_to: list[str] = Field(min_length=1)
    is_completed: bool = False
    created_at: str
    related_entity: RelatedEntity
    related_data: dict[str, Any] | None = None


# Collection names in the shared store.
CLIENTS = "clients"
EMPLOYEES = "employees"
DEPARTMENTS = "departments"
ENGAGEMENTS = "engagements"
ENGAGEMENT_TYPES = "engagementTypes"
RECURRING_ENGAGEMENTS = "recurringEngagements"
TASKS = "tasks"
TIMESHEETS = "timesheets"
LEAVE_REQUESTS = "leaveRequests"
EVENTS = "events"
FIRMS = "firms"
TODOS = "todos"
