from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.api.schemas import (
    DesignCreate,
    DesignDetailResponse,
    DesignFeedbackCreate,
    DesignFeedbackResponse,
    DesignListResponse,
    DesignResponse,
    DesignStatusUpdate,
    DesignVersionCreate,
    DesignVersionDetailResponse,
    DesignVersionResponse,
)
from polarad_admin.core.deps import get_db
from polarad_admin.core.exceptions import InvalidStateError
from polarad_admin.core.rbac import require_section
from polarad_admin.core.security import AdminSession
from polarad_admin.services import design as design_svc
from polarad_admin.services.state_machines import EntityType, get_allowed_transitions

router = APIRouter(prefix="/admin/designs", tags=["designs"])

_guard = require_section("/designs")


async def _detail(db: AsyncSession, design_id: int) -> DesignDetailResponse:
    design = await design_svc.get_design(db, design_id, with_versions=True)
    resp = DesignDetailResponse.model_validate(design)
    resp.versions.sort(key=lambda v: v.version, reverse=True)
    resp.allowed_statuses = get_allowed_transitions(EntityType.DESIGN, design.status)
    return resp


@router.get("", response_model=DesignListResponse)
async def list_designs(
    status: str | None = Query(default=None),
    type: str | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    items, total = await design_svc.list_designs(
        db, status=status, workflow_type=type, offset=offset, limit=limit
    )
    stats = await design_svc.design_stats(db)
    return DesignListResponse(items=items, total=total, stats=stats)


@router.post("", response_model=DesignResponse, status_code=201)
async def create_design(
    body: DesignCreate,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    return await design_svc.create_design(db, body.workflow_id, body.url, body.note, admin)


@router.get("/{design_id}", response_model=DesignDetailResponse)
async def get_design(
    design_id: int,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    return await _detail(db, design_id)


@router.delete("/{design_id}", status_code=204)
async def delete_design(
    design_id: int,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    await design_svc.delete_design(db, design_id)


# ---------------------------------------------------------------------------
# Versions
# ---------------------------------------------------------------------------


@router.get("/{design_id}/versions", response_model=list[DesignVersionDetailResponse])
async def list_versions(
    design_id: int,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    return (await _detail(db, design_id)).versions


@router.post("/{design_id}/versions", response_model=DesignVersionResponse, status_code=201)
async def upload_version(
    design_id: int,
    body: DesignVersionCreate,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    return await design_svc.upload_design_version(
        db, design_id, body.url, body.note, admin, notify=body.notify
    )


# ---------------------------------------------------------------------------
# Review cycle
# ---------------------------------------------------------------------------


@router.patch("/{design_id}/status", response_model=DesignDetailResponse)
async def update_status(
    design_id: int,
    body: DesignStatusUpdate,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    """Move the design through its review cycle.

    PENDING_REVIEW, REVISION_REQUESTED and APPROVED also advance the linked
    workflow.
    """
    await design_svc.set_design_status(
        db, design_id, body.status, admin.label, note=body.note, notify=body.notify
    )
    return await _detail(db, design_id)


@router.post("/{design_id}/feedback", response_model=DesignFeedbackResponse, status_code=201)
async def add_feedback(
    design_id: int,
    body: DesignFeedbackCreate,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    if body.version_id is not None:
        version = await design_svc.get_version(db, body.version_id)
        if version.design_id != design_id:
            raise InvalidStateError("Version does not belong to this design")
        version_id = version.id
    else:
        version_id = await design_svc.get_current_version_id(db, design_id)

    return await design_svc.record_feedback(
        db,
        version_id,
        author_type="admin",
        author_name=admin.label,
        content=body.content,
        author_id=admin.admin_id,
    )
