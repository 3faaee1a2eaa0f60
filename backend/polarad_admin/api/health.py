from fastapi import APIRouter

from polarad_admin.core.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "app": settings.app_name}
