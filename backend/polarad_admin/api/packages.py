from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.api.schemas import PackageResponse
from polarad_admin.core.deps import get_db
from polarad_admin.core.rbac import require_section
from polarad_admin.core.security import AdminSession
from polarad_admin.models.package import Package

router = APIRouter(prefix="/packages", tags=["packages"])


@router.get("", response_model=list[PackageResponse])
async def list_packages(
    include_inactive: bool = Query(default=False),
    admin: AdminSession = Depends(require_section("/contracts")),
    db: AsyncSession = Depends(get_db),
):
    """Service packages offered on contracts, cheapest first."""
    stmt = select(Package).order_by(Package.price.asc())
    if not include_inactive:
        stmt = stmt.where(Package.is_active == True)  # noqa: E712
    result = await db.execute(stmt)
    return list(result.scalars().all())
