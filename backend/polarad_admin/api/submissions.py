from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.api.schemas import (
    SubmissionApproveRequest,
    SubmissionListResponse,
    SubmissionRejectRequest,
    SubmissionResponse,
    WorkflowResponse,
)
from polarad_admin.core.deps import get_db
from polarad_admin.core.rbac import require_section
from polarad_admin.core.security import AdminSession
from polarad_admin.services import submission as submission_svc

router = APIRouter(prefix="/admin/submissions", tags=["submissions"])

_guard = require_section("/submissions")


@router.get("", response_model=SubmissionListResponse)
async def list_submissions(
    status: str | None = Query(default=None),
    search: str | None = Query(default=None, max_length=100),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    items, total = await submission_svc.list_submissions(
        db, status=status, search=search, offset=offset, limit=limit
    )
    stats = await submission_svc.submission_stats(db)
    return SubmissionListResponse(items=items, total=total, stats=stats)


@router.get("/{submission_id}", response_model=SubmissionResponse)
async def get_submission(
    submission_id: int,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    return await submission_svc.get_submission(db, submission_id)


@router.post("/{submission_id}/review", response_model=SubmissionResponse)
async def start_review(
    submission_id: int,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    return await submission_svc.start_review(db, submission_id, admin)


@router.post("/{submission_id}/approve", response_model=list[WorkflowResponse])
async def approve_submission(
    submission_id: int,
    body: SubmissionApproveRequest | None = None,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    """Approve the submission and open its production workflows.

    Returns the workflows created by this call (none when they already existed).
    """
    types = body.workflow_types if body else None
    return await submission_svc.approve_submission(db, submission_id, admin, types)


@router.post("/{submission_id}/reject", response_model=SubmissionResponse)
async def reject_submission(
    submission_id: int,
    body: SubmissionRejectRequest,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    return await submission_svc.reject_submission(db, submission_id, admin, body.reason)
