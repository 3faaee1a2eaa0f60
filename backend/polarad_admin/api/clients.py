from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.api.schemas import (
    ClientCreate,
    ClientDetailResponse,
    ClientListResponse,
    ClientResponse,
    ClientUpdate,
)
from polarad_admin.core.deps import get_db
from polarad_admin.core.rbac import require_section
from polarad_admin.core.security import AdminSession
from polarad_admin.services import client as client_svc

router = APIRouter(prefix="/clients", tags=["clients"])

_guard = require_section("/clients")


@router.get("", response_model=ClientListResponse)
async def list_clients(
    search: str | None = Query(default=None, max_length=100),
    auth_status: str | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    include_stats: bool = Query(default=False),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    """Advertiser clients; ``include_stats`` adds the latest data date and row count."""
    items, total = await client_svc.list_clients(
        db,
        search=search,
        auth_status=auth_status,
        is_active=is_active,
        include_stats=include_stats,
        offset=offset,
        limit=limit,
    )
    stats = await client_svc.client_summary(db)
    return ClientListResponse(items=items, total=total, stats=stats)


@router.post("", response_model=ClientResponse, status_code=201)
async def create_client(
    body: ClientCreate,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    client = await client_svc.create_client(db, admin, **body.model_dump())
    return client_svc.client_to_dict(client)


@router.get("/{client_id}", response_model=ClientDetailResponse)
async def get_client(
    client_id: int,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    return await client_svc.get_client_detail(db, client_id)


@router.patch("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: int,
    body: ClientUpdate,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    client = await client_svc.update_client(
        db, client_id, admin, body.model_dump(exclude_unset=True)
    )
    return client_svc.client_to_dict(client)


@router.delete("/{client_id}", status_code=204)
async def delete_client(
    client_id: int,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    await client_svc.delete_client(db, client_id, admin)
