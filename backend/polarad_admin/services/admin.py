import logging

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.core.crypto import verify_password
from polarad_admin.models.admin import Admin

logger = logging.getLogger(__name__)


async def get_admin_by_email(db: AsyncSession, email: str) -> Admin | None:
    result = await db.execute(select(Admin).where(Admin.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def authenticate(db: AsyncSession, email: str, password: str) -> Admin:
    """Return the active admin matching the credentials, or raise 401."""
    admin = await get_admin_by_email(db, email)
    if admin is None or not admin.is_active or not verify_password(password, admin.password_hash):
        logger.warning("Failed admin login for %s", email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    return admin
