from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.api.schemas import (
    WorkflowDetailResponse,
    WorkflowEnsureRequest,
    WorkflowListResponse,
    WorkflowResponse,
    WorkflowUpdateRequest,
)
from polarad_admin.core.deps import get_db
from polarad_admin.core.rbac import require_section
from polarad_admin.core.security import AdminSession
from polarad_admin.services import workflow as workflow_svc

router = APIRouter(prefix="/workflows", tags=["workflows"])

_guard = require_section("/workflows")


def _detail(workflow) -> WorkflowDetailResponse:
    resp = WorkflowDetailResponse.model_validate(workflow)
    resp.allowed_statuses = workflow_svc.allowed_workflow_statuses(workflow)
    return resp


@router.get("", response_model=WorkflowListResponse)
async def list_workflows(
    user_id: int | None = Query(default=None),
    type: str | None = Query(default=None),
    status: str | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    items, total = await workflow_svc.list_workflows(
        db, user_id=user_id, workflow_type=type, status=status, offset=offset, limit=limit
    )
    stats = await workflow_svc.workflow_stats(db)
    return WorkflowListResponse(items=items, total=total, stats=stats)


@router.post("", response_model=list[WorkflowResponse], status_code=201)
async def ensure_workflows(
    body: WorkflowEnsureRequest,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    """Create the missing workflows for a customer. Existing ones are left alone."""
    return await workflow_svc.create_workflows(db, body.user_id, body.types, admin.label)


@router.get("/{workflow_id}", response_model=WorkflowDetailResponse)
async def get_workflow(
    workflow_id: int,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    workflow = await workflow_svc.get_workflow(db, workflow_id, with_logs=True)
    return _detail(workflow)


@router.patch("/{workflow_id}", response_model=WorkflowDetailResponse)
async def update_workflow(
    workflow_id: int,
    body: WorkflowUpdateRequest,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    fields = body.model_dump(exclude={"status", "note"}, exclude_none=True)
    await workflow_svc.set_workflow_status(
        db, workflow_id, body.status, admin.label, fields=fields, note=body.note
    )
    workflow = await workflow_svc.get_workflow(db, workflow_id, with_logs=True)
    return _detail(workflow)


@router.delete("/{workflow_id}", status_code=204)
async def delete_workflow(
    workflow_id: int,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    await workflow_svc.delete_workflow(db, workflow_id)
