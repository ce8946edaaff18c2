"""Read-side tools over the document store.

Every tool takes a :class:`ToolContext` and a validated input contract and
returns a validated output contract. Queries only use equality, range,
``in`` and ``array-contains`` filters; joins happen here, in memory, after
the reads. A query that matches nothing returns an empty result rather than
raising.
"""

import asyncio
import calendar
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel

from practice_flows.models import (
    ACTIVE_STATUSES,
    CLIENTS,
    EMPLOYEES,
    ENGAGEMENT_TYPES,
    ENGAGEMENTS,
    EVENTS,
    FIRMS,
    TIMESHEETS,
    CalendarEvent,
    Client,
    Employee,
    Engagement,
    EngagementStatus,
    EngagementType,
    Firm,
    Timesheet,
)
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
    EmployeeWorkload,
    EngagementList,
    EngagementRef,
    EventList,
    InvoiceData,
    ManagerAndPartner,
    TimesheetList,
    TimesheetQuery,
    TypedEngagement,
    TypedEngagementList,
    WorkloadList,
    WorkloadQuery,
)
from practice_flows.store import DocumentStore, Filter

logger = structlog.get_logger(__name__)

DEFAULT_ENGAGEMENT_HOURS = 10.0

RecordT = TypeVar("RecordT", bound=BaseModel)


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class ToolContext:
    """What a tool may touch: the store, the clock and practice defaults."""

    store: DocumentStore
    clock: Callable[[], datetime] = field(default=utc_now)
    default_engagement_hours: float = DEFAULT_ENGAGEMENT_HOURS


def load(model: type[RecordT], document: dict[str, Any] | None) -> RecordT | None:
    return model.model_validate(document) if document is not None else None


def load_all(model: type[RecordT], documents: list[dict[str, Any]]) -> list[RecordT]:
    return [model.model_validate(document) for document in documents]


def end_of_day_bound(value: str) -> str:
    """Upper bound for an ISO string; a bare date covers the whole day."""
    return f"{value}T23:59:59.999999Z" if len(value) == 10 else value


def month_bounds(period: str) -> tuple[str, str]:
    """First and last instant of a ``yyyy-MM`` period, as ISO strings."""
    year, month = (int(part) for part in period.split("-"))
    last_day = calendar.monthrange(year, month)[1]
    return f"{period}-01", end_of_day_bound(f"{period}-{last_day:02d}")


def start_of_month(today: date) -> str:
    return today.replace(day=1).isoformat()


def resolve_client_manager(partner: Employee | None) -> Employee | None:
    """Manager responsible for a client.

    Clients carry no manager of their own, so the partner stands in. Kept as
    one function so the rule can change in one place.
    """
    return partner


def engagement_hours(
    engagement: Engagement,
    engagement_types: dict[str, EngagementType],
    default_hours: float = DEFAULT_ENGAGEMENT_HOURS,
) -> float:
    """Budgeted hours, else the type's standard hours, else the default."""
    if engagement.budgeted_hours is not None:
        return engagement.budgeted_hours
    engagement_type = engagement_types.get(engagement.type)
    if engagement_type and engagement_type.standard_hours is not None:
        return engagement_type.standard_hours
    return default_hours


# === Employees & clients ===


async def get_employees_by_department(
    ctx: ToolContext, query: DepartmentQuery
) -> EmployeeList:
    documents = await ctx.store.query(
        EMPLOYEES, [Filter("role", "array-contains", query.department_name)]
    )
    return EmployeeList(employees=load_all(Employee, documents))


async def get_manager_and_partner_for_client(
    ctx: ToolContext, query: ClientRef
) -> ManagerAndPartner:
    client = load(Client, await ctx.store.get(CLIENTS, query.client_id))
    if client is None or not client.partner_id:
        return ManagerAndPartner()

    partner = load(Employee, await ctx.store.get(EMPLOYEES, client.partner_id))
    return ManagerAndPartner(partner=partner, manager=resolve_client_manager(partner))


async def get_client_and_team_by_email(ctx: ToolContext, query: EmailLookup) -> ClientTeam:
    """Client whose ``mailId`` matches, plus everyone working for them."""
    documents = await ctx.store.query(CLIENTS, [Filter("mailId", "==", query.email)])
    if not documents:
        return ClientTeam(found=False)

    client = Client.model_validate(documents[0])
    team: dict[str, None] = {}
    if client.partner_id:
        team[client.partner_id] = None

    engagements = load_all(
        Engagement,
        await ctx.store.query(ENGAGEMENTS, [Filter("clientId", "==", client.id)]),
    )
    for engagement in engagements:
        if engagement.reported_to:
            team[engagement.reported_to] = None
        for employee_id in engagement.assigned_to:
            team[employee_id] = None

    return ClientTeam(found=True, client=client, team_member_ids=list(team))


async def get_client_and_firm(ctx: ToolContext, query: ClientRef) -> ClientAndFirm:
    client = load(Client, await ctx.store.get(CLIENTS, query.client_id))
    if client is None:
        return ClientAndFirm(found=False)

    firm = None
    if client.firm_id:
        firm = load(Firm, await ctx.store.get(FIRMS, client.firm_id))
    return ClientAndFirm(found=True, client=client, firm=firm)


# === Leave handling ===


async def get_conflicting_events(ctx: ToolContext, query: ConflictQuery) -> EventList:
    """Events the employee attends that start inside the leave window."""
    documents = await ctx.store.query(
        EVENTS,
        [
            Filter("attendees", "array-contains", query.employee_id),
            Filter("start", ">=", query.start_date),
            Filter("start", "<=", end_of_day_bound(query.end_date)),
        ],
    )
    events = sorted(load_all(CalendarEvent, documents), key=lambda e: e.start)
    return EventList(events=events)


async def find_replacement_colleagues(
    ctx: ToolContext, query: ColleagueQuery
) -> ColleagueList:
    engagement = load(Engagement, await ctx.store.get(ENGAGEMENTS, query.engagement_id))
    if engagement is None:
        return ColleagueList(colleagues=[])

    colleague_ids = [i for i in engagement.assigned_to if i != query.employee_on_leave_id]
    if not colleague_ids:
        return ColleagueList(colleagues=[])

    documents = await ctx.store.get_many(EMPLOYEES, colleague_ids)
    return ColleagueList(
        colleagues=[Employee.model_validate(d) for d in documents if d is not None]
    )


# === Workload & reallocation ===


async def get_active_engagements_for_employee(
    ctx: ToolContext, query: EmployeeRef
) -> EngagementList:
    documents = await ctx.store.query(
        ENGAGEMENTS,
        [
            Filter("assignedTo", "array-contains", query.employee_id),
            Filter("status", "in", [status.value for status in ACTIVE_STATUSES]),
        ],
    )
    engagements = sorted(load_all(Engagement, documents), key=lambda e: e.due_date)
    return EngagementList(engagements=engagements)


async def get_employee_workloads(ctx: ToolContext, query: WorkloadQuery) -> WorkloadList:
    """Hours each other active employee is carrying this month.

    The window runs from the first day of the current month to
    ``window_end``. Cancelled engagements never count; completed ones do.
    """
    window_start = start_of_month(ctx.clock().date())
    window_end = end_of_day_bound(query.window_end)

    employee_docs, engagement_docs, type_docs = await asyncio.gather(
        ctx.store.fetch_all(EMPLOYEES),
        ctx.store.query(
            ENGAGEMENTS,
            [Filter("dueDate", ">=", window_start), Filter("dueDate", "<=", window_end)],
        ),
        ctx.store.fetch_all(ENGAGEMENT_TYPES),
    )

    engagement_types = {t.id: t for t in load_all(EngagementType, type_docs)}
    engagements = [
        e
        for e in load_all(Engagement, engagement_docs)
        if e.status != EngagementStatus.CANCELLED
    ]
    employees = [
        e
        for e in load_all(Employee, employee_docs)
        if e.is_active and e.id != query.exclude_employee_id
    ]

    hours: dict[str, float] = {e.id: 0.0 for e in employees}
    for engagement in engagements:
        for employee_id in engagement.assigned_to:
            if employee_id in hours:
                hours[employee_id] += engagement_hours(
                    engagement, engagement_types, ctx.default_engagement_hours
                )

    workloads = [
        EmployeeWorkload(
            employee_id=e.id, employee_name=e.name, workload_hours=hours[e.id]
        )
        for e in employees
    ]
    workloads.sort(key=lambda w: (w.workload_hours, w.employee_id))

    logger.debug(
        "workloads_computed",
        window_start=window_start,
        window_end=window_end,
        employees=len(workloads),
        engagements=len(engagements),
    )
    return WorkloadList(workloads=workloads)


# === Performance review ===


async def get_monthly_timesheets(ctx: ToolContext, query: TimesheetQuery) -> TimesheetList:
    month_start, month_end = month_bounds(query.period)
    documents = await ctx.store.query(
        TIMESHEETS,
        [
            Filter("userId", "==", query.employee_id),
            Filter("weekStartDate", ">=", month_start),
            Filter("weekStartDate", "<=", month_end),
        ],
    )
    timesheets = sorted(load_all(Timesheet, documents), key=lambda t: t.week_start_date)
    return TimesheetList(timesheets=timesheets)


async def get_engagements_for_employee(
    ctx: ToolContext, query: EmployeeRef
) -> TypedEngagementList:
    engagements = load_all(
        Engagement,
        await ctx.store.query(
            ENGAGEMENTS, [Filter("assignedTo", "array-contains", query.employee_id)]
        ),
    )
    type_ids = list(dict.fromkeys(e.type for e in engagements))
    type_docs = await ctx.store.get_many(ENGAGEMENT_TYPES, type_ids) if type_ids else []
    type_names = {
        type_id: (doc or {}).get("name", "") for type_id, doc in zip(type_ids, type_docs)
    }

    return TypedEngagementList(
        engagements=[
            TypedEngagement(
                **e.model_dump(), engagement_type_name=type_names.get(e.type, "")
            )
            for e in engagements
        ]
    )


# === Billing ===


async def get_invoice_data(ctx: ToolContext, query: EngagementRef) -> InvoiceData:
    """Engagement, its client and the client's firm; ``found`` is False if any link is missing."""
    engagement = load(Engagement, await ctx.store.get(ENGAGEMENTS, query.engagement_id))
    if engagement is None:
        return InvoiceData(found=False)

    client = load(Client, await ctx.store.get(CLIENTS, engagement.client_id))
    if client is None or not client.firm_id:
        return InvoiceData(found=False)

    firm = load(Firm, await ctx.store.get(FIRMS, client.firm_id))
    if firm is None:
        return InvoiceData(found=False)

    return InvoiceData(found=True, engagement=engagement, client=client, firm=firm)
