from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.api.schemas import (
    ContractCreate,
    ContractDetailResponse,
    ContractListResponse,
    ContractRejectRequest,
    ContractResponse,
    ContractStatusUpdate,
    ContractSubmitRequest,
)
from polarad_admin.core.deps import get_db
from polarad_admin.core.rbac import require_section
from polarad_admin.core.security import AdminSession
from polarad_admin.services import contract as contract_svc
from polarad_admin.services.state_machines import EntityType, get_allowed_transitions

router = APIRouter(prefix="/admin/contracts", tags=["contracts"])

_guard = require_section("/contracts")


async def _detail(db: AsyncSession, contract_id: int) -> ContractDetailResponse:
    contract = await contract_svc.get_contract(db, contract_id, with_logs=True)
    resp = ContractDetailResponse.model_validate(contract)
    resp.allowed_statuses = get_allowed_transitions(EntityType.CONTRACT, contract.status)
    return resp


@router.get("", response_model=ContractListResponse)
async def list_contracts(
    status: str | None = Query(default=None),
    search: str | None = Query(default=None, max_length=100),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    items, total = await contract_svc.list_contracts(
        db, status=status, search=search, offset=offset, limit=limit
    )
    stats = await contract_svc.contract_stats(db)
    return ContractListResponse(items=items, total=total, stats=stats)


@router.post("", response_model=ContractResponse, status_code=201)
async def create_contract(
    body: ContractCreate,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    return await contract_svc.create_contract(db, admin, **body.model_dump())


@router.get("/{contract_id}", response_model=ContractDetailResponse)
async def get_contract(
    contract_id: int,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    return await _detail(db, contract_id)


@router.delete("/{contract_id}", status_code=204)
async def delete_contract(
    contract_id: int,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    await contract_svc.delete_contract(db, contract_id, admin)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@router.post("/{contract_id}/submit", response_model=ContractDetailResponse)
async def submit_contract(
    contract_id: int,
    body: ContractSubmitRequest,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    """Record the customer's signature on their behalf."""
    await contract_svc.submit_contract(
        db, contract_id, admin.label, signature=body.model_dump(exclude_none=True)
    )
    return await _detail(db, contract_id)


@router.post("/{contract_id}/approve", response_model=ContractDetailResponse)
async def approve_contract(
    contract_id: int,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    await contract_svc.approve_contract(db, contract_id, admin)
    return await _detail(db, contract_id)


@router.post("/{contract_id}/reject", response_model=ContractDetailResponse)
async def reject_contract(
    contract_id: int,
    body: ContractRejectRequest | None = None,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    reason = body.reason if body else None
    await contract_svc.reject_contract(db, contract_id, admin, reason)
    return await _detail(db, contract_id)


@router.patch("/{contract_id}/status", response_model=ContractDetailResponse)
async def update_status(
    contract_id: int,
    body: ContractStatusUpdate,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    await contract_svc.set_contract_status(db, contract_id, body.status, admin, note=body.note)
    return await _detail(db, contract_id)
