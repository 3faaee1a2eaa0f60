"""Meta access-token registry: expiry overview and refresh bookkeeping."""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.core.config import settings
from polarad_admin.core.crypto import encrypt_token
from polarad_admin.core.exceptions import NotFoundError
from polarad_admin.models.client import Client, TokenRefreshLog

logger = logging.getLogger(__name__)

AUTH_ACTIVE = "ACTIVE"
AUTH_REQUIRED = "AUTH_REQUIRED"
TOKEN_EXPIRED = "TOKEN_EXPIRED"


def _days_left(expires_at: datetime | None, now: datetime) -> int | None:
    if expires_at is None:
        return None
    return (expires_at - now).days


def _summary(client: Client, now: datetime) -> dict:
    return {
        "id": client.id,
        "client_name": client.client_name,
        "auth_status": client.auth_status,
        "token_expires_at": client.token_expires_at,
        "days_left": _days_left(client.token_expires_at, now),
    }


async def list_token_status(
    db: AsyncSession, days: int | None = None, now: datetime | None = None
) -> dict:
    """Group active clients into expiring, expired and auth-required."""
    days = days or settings.token_expiring_days
    now = now or datetime.now(timezone.utc)
    horizon = now + timedelta(days=days)

    result = await db.execute(
        select(Client).where(Client.is_active == True).order_by(Client.token_expires_at.asc())  # noqa: E712
    )
    clients = list(result.scalars().all())

    expiring, expired, auth_required = [], [], []
    for client in clients:
        if client.auth_status == AUTH_REQUIRED:
            auth_required.append(_summary(client, now))
        elif client.auth_status == TOKEN_EXPIRED or (
            client.token_expires_at is not None and client.token_expires_at <= now
        ):
            expired.append(_summary(client, now))
        elif client.token_expires_at is not None and client.token_expires_at <= horizon:
            expiring.append(_summary(client, now))

    critical = sum(
        1 for c in expiring
        if c["days_left"] is not None and c["days_left"] <= settings.token_critical_days
    )
    return {
        "expiring": expiring,
        "expired": expired,
        "auth_required": auth_required,
        "summary": {
            "expiring": len(expiring),
            "expired": len(expired),
            "auth_required": len(auth_required),
            "critical": critical,
        },
    }


async def record_token_refresh(
    db: AsyncSession,
    client_id: int,
    *,
    access_token: str | None = None,
    expires_at: datetime | None = None,
    success: bool = True,
    error_message: str | None = None,
) -> TokenRefreshLog:
    client = await db.get(Client, client_id)
    if client is None:
        raise NotFoundError("Client", client_id)

    entry = TokenRefreshLog(
        client_id=client.id,
        expires_at=expires_at,
        success=success,
        error_message=error_message,
    )
    db.add(entry)
    if success:
        if access_token:
            client.encrypted_access_token = encrypt_token(access_token)
        if expires_at is not None:
            client.token_expires_at = expires_at
        client.auth_status = AUTH_ACTIVE
    else:
        logger.warning("Token refresh failed for client %d: %s", client_id, error_message)

    await db.commit()
    await db.refresh(entry)
    return entry


async def mark_expired_tokens(db: AsyncSession, now: datetime | None = None) -> int:
    """Flag ACTIVE clients whose token expiry has passed. Returns the count."""
    now = now or datetime.now(timezone.utc)
    result = await db.execute(
        update(Client)
        .where(
            Client.auth_status == AUTH_ACTIVE,
            Client.token_expires_at.is_not(None),
            Client.token_expires_at <= now,
        )
        .values(auth_status=TOKEN_EXPIRED)
    )
    await db.commit()
    count = result.rowcount or 0
    if count:
        logger.info("Marked %d client tokens as expired", count)
    return count
