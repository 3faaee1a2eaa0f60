from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.api.schemas import TokenRefreshRequest, TokenRefreshResponse
from polarad_admin.core.deps import get_db
from polarad_admin.core.rbac import require_section
from polarad_admin.core.security import AdminSession
from polarad_admin.services import token as token_svc

router = APIRouter(prefix="/tokens", tags=["tokens"])

_guard = require_section("/tokens")


@router.get("")
async def token_status(
    days: int | None = Query(default=None, ge=1, le=90),
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Clients whose Meta token is expiring, expired or needs re-authorisation."""
    return await token_svc.list_token_status(db, days=days)


@router.post("/{client_id}/refresh", response_model=TokenRefreshResponse, status_code=201)
async def record_refresh(
    client_id: int,
    body: TokenRefreshRequest,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    return await token_svc.record_token_refresh(db, client_id, **body.model_dump())
