"""Design review cycle: versions, review requests, feedback, approval."""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from polarad_admin.core.exceptions import InvalidStateError, NotFoundError
from polarad_admin.core.security import AdminSession
from polarad_admin.models.design import Design, DesignFeedback, DesignVersion
from polarad_admin.models.workflow import Workflow
from polarad_admin.services.audit import log_audit
from polarad_admin.services.lifecycle_sync import reconcile
from polarad_admin.services.state_machines import DesignStatus, EntityType
from polarad_admin.services.stats import invalidate_status_counts, status_counts
from polarad_admin.services.transitions import StatusChanged, apply_transition, atomic

logger = logging.getLogger(__name__)

FEEDBACK_AUTHOR_TYPES = ("user", "admin")


async def get_design(db: AsyncSession, design_id: int, with_versions: bool = False) -> Design:
    stmt = select(Design).where(Design.id == design_id)
    if with_versions:
        stmt = stmt.options(
            selectinload(Design.versions).selectinload(DesignVersion.feedbacks)
        )
    result = await db.execute(stmt)
    design = result.scalar_one_or_none()
    if not design:
        raise NotFoundError("Design", design_id)
    return design


async def list_designs(
    db: AsyncSession,
    *,
    status: str | None = None,
    workflow_type: str | None = None,
    offset: int = 0,
    limit: int = 20,
) -> tuple[list[Design], int]:
    stmt = select(Design)
    count_stmt = select(func.count(Design.id))
    if workflow_type:
        stmt = stmt.join(Workflow, Workflow.id == Design.workflow_id).where(
            Workflow.type == workflow_type
        )
        count_stmt = count_stmt.join(Workflow, Workflow.id == Design.workflow_id).where(
            Workflow.type == workflow_type
        )
    if status:
        stmt = stmt.where(Design.status == status)
        count_stmt = count_stmt.where(Design.status == status)

    total = (await db.execute(count_stmt)).scalar_one()
    result = await db.execute(
        stmt.order_by(Design.updated_at.desc()).offset(offset).limit(limit)
    )
    return list(result.scalars().all()), total


async def design_stats(db: AsyncSession) -> dict[str, int]:
    return await status_counts(db, Design)


async def create_design(
    db: AsyncSession, workflow_id: int, url: str, note: str | None, admin: AdminSession
) -> Design:
    """Create the workflow's design with its first version."""
    workflow = await db.get(Workflow, workflow_id)
    if workflow is None:
        raise NotFoundError("Workflow", workflow_id)

    existing = await db.execute(select(Design.id).where(Design.workflow_id == workflow_id))
    if existing.scalar_one_or_none() is not None:
        raise InvalidStateError(f"Workflow {workflow_id} already has a design")

    async with atomic(db):
        design = Design(
            workflow_id=workflow_id,
            status=DesignStatus.DRAFT.value,
            current_version=1,
        )
        db.add(design)
        await db.flush()
        db.add(
            DesignVersion(
                design_id=design.id,
                version=1,
                url=url,
                note=note,
                uploaded_by=admin.admin_id,
            )
        )
        await log_audit(
            db,
            action="design.create",
            entity_type="design",
            entity_id=design.id,
            admin_id=admin.admin_id,
            details={"workflow_id": workflow_id},
        )

    await invalidate_status_counts(Design.__tablename__)
    return design


async def upload_design_version(
    db: AsyncSession,
    design_id: int,
    url: str,
    note: str | None,
    admin: AdminSession,
    notify: bool = False,
) -> DesignVersion:
    """Append a new version. Status and ``approved_version`` are untouched."""
    design = await get_design(db, design_id)

    async with atomic(db):
        design.current_version = (design.current_version or 0) + 1
        version = DesignVersion(
            design_id=design.id,
            version=design.current_version,
            url=url,
            note=note,
            uploaded_by=admin.admin_id,
        )
        db.add(version)

    if notify:
        await _notify(design, "DESIGN_VERSION_ADDED")
    return version


async def _transition(
    db: AsyncSession,
    design: Design,
    target: DesignStatus,
    changed_by: str,
    note: str | None = None,
) -> tuple[StatusChanged, StatusChanged | None]:
    """Stage the design transition and its workflow reconciliation."""
    event = apply_transition(
        db, EntityType.DESIGN, design, target, changed_by=changed_by, note=note
    )
    derived = await reconcile(db, event)
    return event, derived


async def _after_transition(db: AsyncSession, derived: StatusChanged | None) -> None:
    tables = [Design.__tablename__]
    if derived is not None:
        tables.append(Workflow.__tablename__)
    await invalidate_status_counts(*tables)
    if derived is not None:
        from polarad_admin.services.notification import notify_workflow_status

        await notify_workflow_status(db, derived.subject, derived.from_status, derived.changed_by)


async def _notify(design: Design, event: str, feedback: str | None = None) -> None:
    from polarad_admin.services.notification import notify_design_event

    workflow = design.workflow
    await notify_design_event(
        event,
        design,
        workflow.user if workflow is not None else None,
        workflow.type if workflow is not None else "",
        feedback=feedback,
    )


async def request_review(
    db: AsyncSession, design_id: int, changed_by: str, notify: bool = True
) -> Design:
    """Send the current version to the customer for review."""
    design = await get_design(db, design_id)

    async with atomic(db):
        _, derived = await _transition(db, design, DesignStatus.PENDING_REVIEW, changed_by)
        if derived is not None:
            latest = await db.execute(
                select(DesignVersion.url).where(
                    DesignVersion.design_id == design.id,
                    DesignVersion.version == design.current_version,
                )
            )
            url = latest.scalar_one_or_none()
            if url:
                derived.subject.design_url = url

    await _after_transition(db, derived)
    if notify:
        await _notify(design, "DESIGN_UPLOADED")
    return design


async def request_revision(
    db: AsyncSession, design_id: int, changed_by: str, note: str | None = None
) -> Design:
    design = await get_design(db, design_id)

    async with atomic(db):
        _, derived = await _transition(
            db, design, DesignStatus.REVISION_REQUESTED, changed_by, note
        )
        workflow = await db.get(Workflow, design.workflow_id)
        if workflow is not None:
            workflow.revision_count = (workflow.revision_count or 0) + 1
            if note:
                workflow.revision_note = note

    await _after_transition(db, derived)
    await _notify(design, "REVISION_REQUESTED", feedback=note)
    return design


async def reset_to_draft(db: AsyncSession, design_id: int, changed_by: str) -> Design:
    design = await get_design(db, design_id)
    async with atomic(db):
        _, derived = await _transition(db, design, DesignStatus.DRAFT, changed_by)
    await _after_transition(db, derived)
    return design


async def approve_design(db: AsyncSession, design_id: int, changed_by: str) -> Design:
    """Approve the design at its current version.

    ``approved_version`` is captured here and never moved by later uploads.
    """
    design = await get_design(db, design_id)

    async with atomic(db):
        _, derived = await _transition(db, design, DesignStatus.APPROVED, changed_by)
        design.approved_version = design.current_version

    await _after_transition(db, derived)
    await _notify(design, "DESIGN_APPROVED")
    return design


async def set_design_status(
    db: AsyncSession,
    design_id: int,
    status: str,
    changed_by: str,
    note: str | None = None,
    notify: bool = True,
) -> Design:
    """Route a requested status to the matching review-cycle operation."""
    try:
        target = DesignStatus(status)
    except ValueError:
        raise InvalidStateError(f"Unknown design status: {status}")

    if target == DesignStatus.PENDING_REVIEW:
        return await request_review(db, design_id, changed_by, notify=notify)
    if target == DesignStatus.REVISION_REQUESTED:
        return await request_revision(db, design_id, changed_by, note)
    if target == DesignStatus.APPROVED:
        return await approve_design(db, design_id, changed_by)
    return await reset_to_draft(db, design_id, changed_by)


async def get_version(db: AsyncSession, version_id: int) -> DesignVersion:
    result = await db.execute(
        select(DesignVersion)
        .where(DesignVersion.id == version_id)
        .options(selectinload(DesignVersion.design))
    )
    version = result.scalar_one_or_none()
    if not version:
        raise NotFoundError("DesignVersion", version_id)
    return version


async def get_current_version_id(db: AsyncSession, design_id: int) -> int:
    design = await get_design(db, design_id)
    result = await db.execute(
        select(DesignVersion.id).where(
            DesignVersion.design_id == design.id,
            DesignVersion.version == design.current_version,
        )
    )
    version_id = result.scalar_one_or_none()
    if version_id is None:
        raise NotFoundError("DesignVersion")
    return version_id


async def record_feedback(
    db: AsyncSession,
    version_id: int,
    author_type: str,
    author_name: str,
    content: str,
    author_id: int | None = None,
) -> DesignFeedback:
    """Append a feedback message. Never changes the design status."""
    if author_type not in FEEDBACK_AUTHOR_TYPES:
        raise InvalidStateError(f"Invalid feedback author type: {author_type}")
    if not content or not content.strip():
        raise InvalidStateError("Feedback content is required")

    version = await get_version(db, version_id)

    async with atomic(db):
        feedback = DesignFeedback(
            version_id=version.id,
            author_id=author_id,
            author_type=author_type,
            author_name=author_name,
            content=content.strip(),
        )
        db.add(feedback)

    if author_type == "admin" and version.design is not None:
        await _notify(version.design, "DESIGN_FEEDBACK", feedback=feedback.content)
    return feedback


async def delete_design(db: AsyncSession, design_id: int) -> None:
    design = await get_design(db, design_id)
    async with atomic(db):
        await db.delete(design)
    await invalidate_status_counts(Design.__tablename__)
    logger.info("Deleted design %d", design_id)
