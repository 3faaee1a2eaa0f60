"""Workflow management: bulk creation, status changes, delivery fields."""

import logging
from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from polarad_admin.core.exceptions import InvalidStateError, NotFoundError
from polarad_admin.models.workflow import Workflow
from polarad_admin.services.state_machines import (
    DEFAULT_WORKFLOW_TYPES,
    EntityType,
    WorkflowStatus,
    WorkflowType,
    get_allowed_transitions,
)
from polarad_admin.services.stats import invalidate_status_counts, status_counts
from polarad_admin.services.transitions import append_log, apply_transition, atomic

logger = logging.getLogger(__name__)

# Columns an admin may set alongside (or instead of) a status change
WORKFLOW_FIELDS = ("design_url", "final_url", "courier", "tracking_number", "admin_note")


async def get_workflow(db: AsyncSession, workflow_id: int, with_logs: bool = False) -> Workflow:
    stmt = select(Workflow).where(Workflow.id == workflow_id)
    if with_logs:
        stmt = stmt.options(selectinload(Workflow.logs))
    result = await db.execute(stmt)
    workflow = result.scalar_one_or_none()
    if not workflow:
        raise NotFoundError("Workflow", workflow_id)
    return workflow


async def list_workflows(
    db: AsyncSession,
    *,
    user_id: int | None = None,
    workflow_type: str | None = None,
    status: str | None = None,
    offset: int = 0,
    limit: int = 20,
) -> tuple[list[Workflow], int]:
    conditions = []
    if user_id is not None:
        conditions.append(Workflow.user_id == user_id)
    if workflow_type:
        conditions.append(Workflow.type == workflow_type)
    if status:
        conditions.append(Workflow.status == status)

    total = (
        await db.execute(select(func.count(Workflow.id)).where(*conditions))
    ).scalar_one()
    result = await db.execute(
        select(Workflow)
        .where(*conditions)
        .order_by(Workflow.updated_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def workflow_stats(db: AsyncSession) -> dict[str, int]:
    return await status_counts(db, Workflow)


async def ensure_workflows(
    db: AsyncSession,
    user_id: int,
    types: Iterable[str] | None = None,
    changed_by: str = "system",
) -> list[Workflow]:
    """Stage one PENDING workflow per type the user does not have yet.

    Idempotent by (user_id, type). Does not commit.
    """
    try:
        wanted = [WorkflowType(t) for t in (types or DEFAULT_WORKFLOW_TYPES)]
    except ValueError as exc:
        raise InvalidStateError(f"Unknown workflow type: {exc}") from exc
    result = await db.execute(select(Workflow.type).where(Workflow.user_id == user_id))
    existing = set(result.scalars().all())

    created: list[Workflow] = []
    for workflow_type in dict.fromkeys(wanted):
        if workflow_type.value in existing:
            continue
        workflow = Workflow(
            user_id=user_id,
            type=workflow_type.value,
            status=WorkflowStatus.PENDING.value,
            revision_count=0,
        )
        db.add(workflow)
        created.append(workflow)

    if created:
        await db.flush()
        for workflow in created:
            append_log(
                db, EntityType.WORKFLOW, workflow.id, None,
                WorkflowStatus.PENDING.value, changed_by, "Workflow created",
            )
        logger.info(
            "Created %d workflows for user %d: %s",
            len(created), user_id, [w.type for w in created],
        )
    return created


async def create_workflows(
    db: AsyncSession, user_id: int, types: Iterable[str] | None, changed_by: str
) -> list[Workflow]:
    async with atomic(db):
        created = await ensure_workflows(db, user_id, types, changed_by)
    if created:
        await invalidate_status_counts(Workflow.__tablename__)
    return created


async def set_workflow_status(
    db: AsyncSession,
    workflow_id: int,
    new_status: str | None,
    changed_by: str,
    fields: dict | None = None,
    note: str | None = None,
) -> Workflow:
    """Change status and/or merge delivery fields in one transaction.

    A ``revision_note`` in ``fields`` bumps ``revision_count``. A call that
    leaves the status unchanged writes no log row.
    """
    workflow = await get_workflow(db, workflow_id)
    fields = fields or {}
    event = None

    async with atomic(db):
        if new_status and new_status != workflow.status:
            event = apply_transition(
                db, EntityType.WORKFLOW, workflow, new_status,
                changed_by=changed_by,
                note=note or fields.get("revision_note"),
            )

        for name in WORKFLOW_FIELDS:
            value = fields.get(name)
            if value is not None:
                setattr(workflow, name, value)

        revision_note = fields.get("revision_note")
        if revision_note:
            workflow.revision_note = revision_note
            workflow.revision_count = (workflow.revision_count or 0) + 1

    if event is not None:
        await invalidate_status_counts(Workflow.__tablename__)
        from polarad_admin.services.notification import notify_workflow_status

        await notify_workflow_status(db, workflow, event.from_status, changed_by)
    return workflow


def allowed_workflow_statuses(workflow: Workflow) -> list[str]:
    return get_allowed_transitions(EntityType.WORKFLOW, workflow.status)


async def delete_workflow(db: AsyncSession, workflow_id: int) -> None:
    workflow = await get_workflow(db, workflow_id)
    async with atomic(db):
        await db.delete(workflow)
    await invalidate_status_counts(Workflow.__tablename__)
    logger.info("Deleted workflow %d", workflow_id)
