"""Side-effect applier: turns validated plans into store writes.

Every function here writes through one atomic batch, so a failure or a
cancellation before ``commit`` leaves the store untouched. Todos are
append-only: they are created with fresh ids and never modified here.
"""

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog

from practice_flows.errors import MissingReferenceError
from practice_flows.models import (
    CLIENTS,
    ENGAGEMENT_TYPES,
    ENGAGEMENTS,
    RECURRING_ENGAGEMENTS,
    TASKS,
    TODOS,
    Client,
    Engagement,
    EngagementStatus,
    EngagementType,
    RecurringEngagement,
    RelatedEntity,
    Task,
    Todo,
    TodoType,
)
from practice_flows.schemas import AssignmentPlanEntry, ReallocationEntry
from practice_flows.store import DocumentStore, new_id
from practice_flows.tools.data_access import load, utc_now

logger = structlog.get_logger(__name__)


@dataclass
class TodoDraft:
    """A Todo before it has an id and a timestamp."""

    type: TodoType
    text: str
    created_by: str
    assigned_to: list[str]
    related_entity: RelatedEntity
    related_data: dict[str, Any] | None = None

    def to_todo(self, created_at: datetime) -> Todo:
        return Todo(
            id=new_id(),
            type=self.type,
            text=self.text,
            created_by=self.created_by,
            assigned_to=self.assigned_to,
            is_completed=False,
            created_at=created_at.isoformat(),
            related_entity=self.related_entity,
            related_data=self.related_data,
        )


async def apply_todos(
    store: DocumentStore,
    drafts: Sequence[TodoDraft],
    clock: Callable[[], datetime] = utc_now,
) -> list[Todo]:
    """Create one Todo per draft in a single atomic batch."""
    if not drafts:
        return []

    created_at = clock()
    todos = [draft.to_todo(created_at) for draft in drafts]
    batch = store.batch()
    for todo in todos:
        batch.set(TODOS, todo.id, todo.to_document())
    await batch.commit()

    logger.info("todos_created", count=len(todos), ids=[t.id for t in todos])
    return todos


async def create_engagements_from_plan(
    store: DocumentStore,
    plan: Sequence[AssignmentPlanEntry],
    engagement_type_id: str,
    due_date: str,
    fees: float | None = None,
) -> list[Engagement]:
    """Create a Pending engagement per plan entry, with its sub-tasks.

    Remarks default to the engagement type name; each of the type's
    ``subTaskTitles`` becomes a Pending Task assigned to the same person.
    """
    engagement_type = load(
        EngagementType, await store.get(ENGAGEMENT_TYPES, engagement_type_id)
    )
    if engagement_type is None:
        raise MissingReferenceError(ENGAGEMENT_TYPES, engagement_type_id)

    batch = store.batch()
    engagements = []
    for entry in plan:
        engagement = Engagement(
            id=new_id(),
            client_id=entry.client_id,
            type=engagement_type.id,
            remarks=engagement_type.name,
            status=EngagementStatus.PENDING,
            due_date=due_date,
            assigned_to=[entry.assigned_to_id],
            reported_to=entry.reported_to_id,
            fees=fees,
        )
        batch.set(ENGAGEMENTS, engagement.id, engagement.to_document())
        engagements.append(engagement)

        for order, title in enumerate(engagement_type.sub_task_titles, start=1):
            task = Task(
                id=new_id(),
                engagement_id=engagement.id,
                title=title,
                order=order,
                assigned_to=entry.assigned_to_id,
            )
            batch.set(TASKS, task.id, task.to_document())

    await batch.commit()
    logger.info(
        "engagements_created",
        count=len(engagements),
        engagement_type=engagement_type.id,
        writes=len(batch),
    )
    return engagements


async def apply_reallocation_plan(
    store: DocumentStore,
    departed_employee_id: str,
    plan: Sequence[ReallocationEntry],
) -> int:
    """Swap the departed employee for the new assignee on each engagement.

    Returns the number of engagements updated. Every engagement is read
    before anything is written; a missing one aborts the whole plan.
    """
    if not plan:
        return 0

    documents = await store.get_many(ENGAGEMENTS, [entry.engagement_id for entry in plan])
    batch = store.batch()
    for entry, document in zip(plan, documents):
        if document is None:
            raise MissingReferenceError(ENGAGEMENTS, entry.engagement_id)
        engagement = Engagement.model_validate(document)

        assigned_to: list[str] = []
        for employee_id in engagement.assigned_to:
            replacement = (
                entry.new_assignee_id if employee_id == departed_employee_id else employee_id
            )
            if replacement not in assigned_to:
                assigned_to.append(replacement)
        if entry.new_assignee_id not in assigned_to:
            assigned_to.append(entry.new_assignee_id)

        batch.update(ENGAGEMENTS, engagement.id, {"assignedTo": assigned_to})

    await batch.commit()
    logger.info(
        "reallocation_applied",
        departed_employee=departed_employee_id,
        engagements=len(plan),
    )
    return len(plan)


async def revise_recurring_fee(
    store: DocumentStore,
    recurring_engagement_id: str,
    new_fee: float,
    actor_id: str,
    clock: Callable[[], datetime] = utc_now,
) -> Todo | None:
    """Update a recurring engagement's fee and ask the partner to approve it.

    The approval Todo is only created when the fee actually changed and the
    client has a partner. Returns that Todo, if any.
    """
    recurring = load(
        RecurringEngagement, await store.get(RECURRING_ENGAGEMENTS, recurring_engagement_id)
    )
    if recurring is None:
        raise MissingReferenceError(RECURRING_ENGAGEMENTS, recurring_engagement_id)

    client_doc, type_doc = await asyncio.gather(
        store.get(CLIENTS, recurring.client_id),
        store.get(ENGAGEMENT_TYPES, recurring.engagement_type_id),
    )
    client = load(Client, client_doc)
    if client is None:
        raise MissingReferenceError(CLIENTS, recurring.client_id)
    engagement_type = load(EngagementType, type_doc)

    batch = store.batch()
    batch.update(RECURRING_ENGAGEMENTS, recurring.id, {"fees": new_fee})

    todo = None
    if recurring.fees != new_fee and client.partner_id:
        type_name = engagement_type.name if engagement_type else "Unknown"
        todo = TodoDraft(
            type=TodoType.FEE_REVISION_APPROVAL,
            text=(
                f"Approve fee revision for {client.name} ({type_name}): "
                f"{recurring.fees} to {new_fee}"
            ),
            created_by=actor_id,
            assigned_to=[client.partner_id],
            related_entity=RelatedEntity(type="client", id=client.id),
            related_data={
                "recurringEngagementId": recurring.id,
                "oldFee": recurring.fees,
                "newFee": new_fee,
                "clientName": client.name,
                "engagementTypeName": type_name,
            },
        ).to_todo(clock())
        batch.set(TODOS, todo.id, todo.to_document())

    await batch.commit()
    logger.info(
        "recurring_fee_revised",
        recurring_engagement=recurring.id,
        old_fee=recurring.fees,
        new_fee=new_fee,
        approval_todo=todo.id if todo else None,
    )
    return todo
