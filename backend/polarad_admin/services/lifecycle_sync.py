"""Parent/child lifecycle reconciliation.

Design status changes can advance the parent Workflow. The mapping lives
here and only here, so it can be tested without any triggering service.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.models.workflow import Workflow
from polarad_admin.services.state_machines import (
    DesignStatus,
    EntityType,
    WorkflowStatus,
)
from polarad_admin.services.transitions import StatusChanged, apply_transition

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"

# (design status, current workflow status) -> workflow status to move to
DESIGN_TO_WORKFLOW: dict[tuple[DesignStatus, WorkflowStatus], WorkflowStatus] = {
    (DesignStatus.PENDING_REVIEW, WorkflowStatus.IN_PROGRESS): WorkflowStatus.DESIGN_UPLOADED,
    (DesignStatus.APPROVED, WorkflowStatus.DESIGN_UPLOADED): WorkflowStatus.ORDER_REQUESTED,
}


def workflow_target_for_design(
    design_status: str, workflow_status: str
) -> WorkflowStatus | None:
    """Return the workflow status implied by a design status, or None."""
    try:
        key = (DesignStatus(design_status), WorkflowStatus(workflow_status))
    except ValueError:
        return None
    return DESIGN_TO_WORKFLOW.get(key)


async def reconcile(db: AsyncSession, event: StatusChanged) -> StatusChanged | None:
    """Apply parent-side effects of ``event`` inside the caller's transaction.

    Returns the derived Workflow event, or None when nothing changes.
    """
    if event.entity_type != EntityType.DESIGN or event.subject is None:
        return None

    workflow = await db.get(Workflow, event.subject.workflow_id)
    if workflow is None:
        logger.warning("Design %s has no workflow to reconcile", event.entity_id)
        return None

    target = workflow_target_for_design(event.to_status, workflow.status)
    if target is None:
        return None

    return apply_transition(
        db,
        EntityType.WORKFLOW,
        workflow,
        target,
        changed_by=SYSTEM_ACTOR,
        note=f"Design #{event.entity_id} {event.to_status}",
    )
