"""Onboarding submission review: start review, approve, reject."""

import logging
from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.core.exceptions import InvalidStateError, NotFoundError
from polarad_admin.core.security import AdminSession
from polarad_admin.models.submission import Submission
from polarad_admin.models.workflow import Workflow
from polarad_admin.services.audit import log_audit
from polarad_admin.services.state_machines import EntityType, SubmissionStatus
from polarad_admin.services.stats import invalidate_status_counts, status_counts
from polarad_admin.services.transitions import apply_transition, atomic
from polarad_admin.services.workflow import ensure_workflows

logger = logging.getLogger(__name__)

REVIEWABLE_STATUSES = frozenset({SubmissionStatus.SUBMITTED, SubmissionStatus.IN_REVIEW})


async def get_submission(db: AsyncSession, submission_id: int) -> Submission:
    result = await db.execute(select(Submission).where(Submission.id == submission_id))
    submission = result.scalar_one_or_none()
    if not submission:
        raise NotFoundError("Submission", submission_id)
    return submission


async def list_submissions(
    db: AsyncSession,
    *,
    status: str | None = None,
    search: str | None = None,
    offset: int = 0,
    limit: int = 20,
) -> tuple[list[Submission], int]:
    conditions = []
    if status:
        conditions.append(Submission.status == status)
    if search:
        conditions.append(Submission.brand_name.ilike(f"%{search}%"))

    total = (
        await db.execute(select(func.count(Submission.id)).where(*conditions))
    ).scalar_one()
    result = await db.execute(
        select(Submission)
        .where(*conditions)
        .order_by(Submission.submitted_at.desc().nulls_last(), Submission.id.desc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def submission_stats(db: AsyncSession) -> dict[str, int]:
    return await status_counts(db, Submission)


def _require_reviewable(submission: Submission, action: str) -> None:
    if submission.status not in REVIEWABLE_STATUSES:
        raise InvalidStateError(
            f"Submission {submission.id} cannot be {action} in status {submission.status}"
        )


async def start_review(db: AsyncSession, submission_id: int, admin: AdminSession) -> Submission:
    submission = await get_submission(db, submission_id)
    async with atomic(db):
        apply_transition(
            db, EntityType.SUBMISSION, submission, SubmissionStatus.IN_REVIEW,
            changed_by=admin.label,
        )
        submission.reviewed_by = admin.admin_id
    await invalidate_status_counts(Submission.__tablename__)
    return submission


async def approve_submission(
    db: AsyncSession,
    submission_id: int,
    admin: AdminSession,
    workflow_types: Iterable[str] | None = None,
) -> list[Workflow]:
    """Approve and create the customer's default workflows.

    Returns only the workflows created by this call.
    """
    submission = await get_submission(db, submission_id)
    _require_reviewable(submission, "approved")

    async with atomic(db):
        apply_transition(
            db, EntityType.SUBMISSION, submission, SubmissionStatus.APPROVED,
            changed_by=admin.label,
        )
        submission.reviewed_by = admin.admin_id
        submission.rejection_reason = None
        workflows = await ensure_workflows(
            db, submission.user_id, workflow_types, changed_by=admin.label
        )
        await log_audit(
            db,
            action="submission.approve",
            entity_type="submission",
            entity_id=submission.id,
            admin_id=admin.admin_id,
            details={"workflows": [w.type for w in workflows]},
        )

    await invalidate_status_counts(Submission.__tablename__, Workflow.__tablename__)

    from polarad_admin.services.notification import notify_submission_approved

    channel_id = await notify_submission_approved(submission, submission.user)
    if channel_id and channel_id != submission.slack_channel_id:
        try:
            submission.slack_channel_id = channel_id
            await db.commit()
        except Exception:
            await db.rollback()
            logger.exception("Failed to store Slack channel for submission %d", submission.id)
    return workflows


async def reject_submission(
    db: AsyncSession, submission_id: int, admin: AdminSession, reason: str
) -> Submission:
    submission = await get_submission(db, submission_id)
    _require_reviewable(submission, "rejected")
    if not reason or not reason.strip():
        raise InvalidStateError("A rejection reason is required")

    async with atomic(db):
        apply_transition(
            db, EntityType.SUBMISSION, submission, SubmissionStatus.REJECTED,
            changed_by=admin.label, note=reason,
        )
        submission.reviewed_by = admin.admin_id
        submission.rejection_reason = reason.strip()
        await log_audit(
            db,
            action="submission.reject",
            entity_type="submission",
            entity_id=submission.id,
            admin_id=admin.admin_id,
            details={"reason": reason},
        )

    await invalidate_status_counts(Submission.__tablename__)

    from polarad_admin.services.notification import notify_submission_rejected

    await notify_submission_rejected(submission, submission.user, submission.rejection_reason)
    return submission
