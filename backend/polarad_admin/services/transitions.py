"""Shared status-change helper used by every lifecycle service.

``apply_transition`` validates the edge, writes the new status, stamps the
per-status timestamp, and appends the log row to the same session. The
caller commits once (see ``atomic``), so the status and its log row are
persisted together or not at all.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.models.contract import ContractLog
from polarad_admin.models.workflow import WorkflowLog
from polarad_admin.services.state_machines import EntityType, validate_transition

logger = logging.getLogger(__name__)

# Entities with an append-only history table: (log model, foreign key column)
_LOG_MODELS: dict[EntityType, tuple[type, str]] = {
    EntityType.WORKFLOW: (WorkflowLog, "workflow_id"),
    EntityType.CONTRACT: (ContractLog, "contract_id"),
}

# Column stamped when an entity enters a status
STATUS_TIMESTAMPS: dict[EntityType, dict[str, str]] = {
    EntityType.SUBMISSION: {
        "SUBMITTED": "submitted_at",
        "APPROVED": "reviewed_at",
        "REJECTED": "reviewed_at",
    },
    EntityType.WORKFLOW: {
        "SUBMITTED": "submitted_at",
        "IN_PROGRESS": "design_started_at",
        "DESIGN_UPLOADED": "design_uploaded_at",
        "ORDER_REQUESTED": "order_requested_at",
        "ORDER_APPROVED": "order_approved_at",
        "COMPLETED": "completed_at",
        "SHIPPED": "shipped_at",
    },
    EntityType.DESIGN: {"APPROVED": "approved_at"},
    EntityType.CONTRACT: {
        "SUBMITTED": "signed_at",
        "APPROVED": "approved_at",
        "REJECTED": "rejected_at",
    },
    EntityType.THREAD: {},
}


@dataclass(frozen=True)
class StatusChanged:
    """Domain event emitted for every committed-to-be status change."""

    entity_type: EntityType
    entity_id: int
    from_status: str | None
    to_status: str
    changed_by: str
    subject: Any = field(default=None, compare=False, repr=False)


def append_log(
    db: AsyncSession,
    entity_type: EntityType,
    entity_id: int,
    from_status: str | None,
    to_status: str,
    changed_by: str,
    note: str | None = None,
) -> None:
    """Add a history row for entities that keep one; no-op otherwise."""
    entry = _LOG_MODELS.get(entity_type)
    if entry is None:
        return
    log_model, fk = entry
    db.add(
        log_model(
            **{fk: entity_id},
            from_status=from_status,
            to_status=to_status,
            changed_by=changed_by,
            note=note,
        )
    )


def apply_transition(
    db: AsyncSession,
    entity_type: EntityType,
    obj: Any,
    target: str,
    *,
    changed_by: str,
    note: str | None = None,
    now: datetime | None = None,
) -> StatusChanged:
    """Move ``obj`` to ``target`` and stage the log row.

    Raises InvalidTransitionError for an illegal edge; nothing is written
    to the session in that case.
    """
    old_status = obj.status
    new_status = validate_transition(entity_type, old_status, target)

    now = now or datetime.now(timezone.utc)
    obj.status = new_status.value
    column = STATUS_TIMESTAMPS[entity_type].get(new_status.value)
    if column:
        setattr(obj, column, now)

    append_log(db, entity_type, obj.id, old_status, new_status.value, changed_by, note)

    logger.info(
        "%s %s status %s -> %s by %s",
        entity_type.value, obj.id, old_status, new_status.value, changed_by,
    )
    return StatusChanged(
        entity_type=entity_type,
        entity_id=obj.id,
        from_status=old_status,
        to_status=new_status.value,
        changed_by=changed_by,
        subject=obj,
    )


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit on success, roll back on any error."""
    try:
        yield db
        await db.commit()
    except Exception:
        await db.rollback()
        raise
