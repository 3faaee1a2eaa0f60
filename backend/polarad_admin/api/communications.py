from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.api.schemas import (
    MessageResponse,
    ReplyCreate,
    ThreadDetailResponse,
    ThreadListResponse,
    ThreadResponse,
    ThreadUpdate,
)
from polarad_admin.core.deps import get_db
from polarad_admin.core.rbac import require_section
from polarad_admin.core.security import AdminSession
from polarad_admin.services import communication as communication_svc

router = APIRouter(prefix="/admin/communications", tags=["communications"])

_guard = require_section("/communications")


@router.get("", response_model=ThreadListResponse)
async def list_threads(
    status: str | None = Query(default=None),
    category: str | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    items, total = await communication_svc.list_threads(
        db, status=status, category=category, offset=offset, limit=limit
    )
    stats = await communication_svc.thread_stats(db)
    return ThreadListResponse(items=items, total=total, stats=stats)


@router.get("/{thread_id}", response_model=ThreadDetailResponse)
async def get_thread(
    thread_id: int,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    """Thread with its messages; customer messages are marked read."""
    return await communication_svc.open_thread(db, thread_id)


@router.patch("/{thread_id}", response_model=ThreadResponse)
async def update_thread(
    thread_id: int,
    body: ThreadUpdate,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    return await communication_svc.update_thread(
        db,
        thread_id,
        admin.label,
        status=body.status,
        expected_completion_date=body.expected_completion_date,
    )


@router.post("/{thread_id}/messages", response_model=MessageResponse, status_code=201)
async def reply(
    thread_id: int,
    body: ReplyCreate,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    return await communication_svc.reply_to_thread(
        db,
        thread_id,
        admin,
        body.content,
        attachments=body.attachments,
        expected_completion_date=body.expected_completion_date,
        change_status=body.change_status,
    )
