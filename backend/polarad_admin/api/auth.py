from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.api.schemas import AdminResponse, LoginRequest
from polarad_admin.core.config import settings
from polarad_admin.core.deps import get_db
from polarad_admin.core.rate_limit import limiter
from polarad_admin.core.security import AdminSession, create_admin_token, get_current_admin
from polarad_admin.services.admin import authenticate

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=AdminResponse)
@limiter.limit(settings.rate_limit_auth)
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> AdminResponse:
    """Verify admin credentials and set the signed session cookie."""
    admin = await authenticate(db, body.email, body.password)
    token = create_admin_token(admin.id, admin.role, admin.name, admin.email)
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        secure=not settings.debug,
        samesite="lax",
        max_age=settings.jwt_expire_minutes * 60,
        path="/",
    )
    return AdminResponse(id=admin.id, email=admin.email, name=admin.name, role=admin.role)


@router.post("/logout")
async def logout(response: Response) -> dict:
    response.delete_cookie(settings.auth_cookie_name, path="/")
    return {"success": True}


@router.get("/me", response_model=AdminResponse)
async def me(admin: AdminSession = Depends(get_current_admin)) -> AdminResponse:
    return AdminResponse(
        id=admin.admin_id, email=admin.email, name=admin.name, role=admin.role
    )
