"""Advertiser client registry: listing with data coverage, registration, edits."""

import logging
import re
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.core.crypto import encrypt_token
from polarad_admin.core.exceptions import ConflictError, InvalidStateError, NotFoundError
from polarad_admin.core.security import AdminSession
from polarad_admin.models.client import Client, TokenRefreshLog
from polarad_admin.models.notification_log import NotificationLog
from polarad_admin.models.raw_data import RawData
from polarad_admin.services.audit import log_audit
from polarad_admin.services.contract import add_months, today_kst
from polarad_admin.services.token import AUTH_ACTIVE, AUTH_REQUIRED, TOKEN_EXPIRED
from polarad_admin.services.transitions import atomic

logger = logging.getLogger(__name__)

AUTH_STATUSES = (AUTH_ACTIVE, AUTH_REQUIRED, TOKEN_EXPIRED)
PLAN_TYPES = ("FREE", "BASIC", "PREMIUM", "ENTERPRISE")
DEFAULT_SERVICE_MONTHS = 3
SUMMARY_EXPIRING_DAYS = 7
RECENT_NOTIFICATIONS = 10
RECENT_TOKEN_REFRESHES = 5

EDITABLE_FIELDS = (
    "client_name",
    "email",
    "phone",
    "contact_name",
    "contact_phone",
    "meta_ad_account_id",
    "auth_status",
    "telegram_chat_id",
    "telegram_enabled",
    "plan_type",
    "is_active",
    "memo",
    "token_expires_at",
    "service_start",
    "service_end",
)


def default_email(client_name: str) -> str:
    """Placeholder login email for clients registered without one."""
    local = re.sub(r"[^a-z0-9]", "", client_name.lower()) or "client"
    return f"{local}@polarad.local"


def default_service_end(start: date) -> date:
    """Last day of the default three-month term."""
    return add_months(start, DEFAULT_SERVICE_MONTHS) - timedelta(days=1)


def _validate_choices(auth_status: str | None, plan_type: str | None) -> None:
    if auth_status is not None and auth_status not in AUTH_STATUSES:
        raise InvalidStateError(f"Invalid auth status: {auth_status}")
    if plan_type is not None and plan_type not in PLAN_TYPES:
        raise InvalidStateError(f"Invalid plan type: {plan_type}")


async def _ensure_unique(
    db: AsyncSession,
    client_name: str | None,
    meta_ad_account_id: str | None,
    exclude_id: int | None = None,
) -> None:
    if client_name:
        stmt = select(Client.id).where(func.lower(Client.client_name) == client_name.lower())
        if exclude_id is not None:
            stmt = stmt.where(Client.id != exclude_id)
        if (await db.execute(stmt.limit(1))).scalar_one_or_none() is not None:
            raise ConflictError(f"Client name already registered: {client_name}")
    if meta_ad_account_id:
        stmt = select(Client.id).where(Client.meta_ad_account_id == meta_ad_account_id)
        if exclude_id is not None:
            stmt = stmt.where(Client.id != exclude_id)
        if (await db.execute(stmt.limit(1))).scalar_one_or_none() is not None:
            raise ConflictError(f"Ad account already registered: {meta_ad_account_id}")


async def get_client(db: AsyncSession, client_id: int) -> Client:
    client = await db.get(Client, client_id)
    if client is None:
        raise NotFoundError("Client", client_id)
    return client


async def list_clients(
    db: AsyncSession,
    *,
    search: str | None = None,
    auth_status: str | None = None,
    is_active: bool | None = None,
    include_stats: bool = False,
    offset: int = 0,
    limit: int = 20,
) -> tuple[list[dict], int]:
    conditions = []
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(Client.client_name.ilike(pattern), Client.email.ilike(pattern)))
    if auth_status:
        conditions.append(Client.auth_status == auth_status)
    if is_active is not None:
        conditions.append(Client.is_active == is_active)

    total = (
        await db.execute(select(func.count(Client.id)).where(*conditions))
    ).scalar_one()
    result = await db.execute(
        select(Client)
        .where(*conditions)
        .order_by(Client.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    clients = list(result.scalars().all())

    coverage: dict[int, tuple[date | None, int]] = {}
    if include_stats and clients:
        rows = await db.execute(
            select(RawData.client_id, func.max(RawData.date), func.count(RawData.id))
            .where(RawData.client_id.in_([c.id for c in clients]))
            .group_by(RawData.client_id)
        )
        coverage = {client_id: (latest, count) for client_id, latest, count in rows.all()}

    items = []
    for client in clients:
        item = client_to_dict(client)
        if include_stats:
            latest, count = coverage.get(client.id, (None, 0))
            item["latest_data_date"] = latest
            item["data_count"] = count
        items.append(item)
    return items, total


async def client_summary(db: AsyncSession, now: datetime | None = None) -> dict[str, int]:
    """Registry-wide counters for the clients screen header."""
    now = now or datetime.now(timezone.utc)
    horizon = now + timedelta(days=SUMMARY_EXPIRING_DAYS)
    row = (
        await db.execute(
            select(
                func.count(Client.id),
                func.count(Client.id).filter(Client.is_active == True),  # noqa: E712
                func.count(Client.id).filter(
                    Client.is_active == True,  # noqa: E712
                    Client.token_expires_at >= now,
                    Client.token_expires_at <= horizon,
                ),
                func.count(Client.id).filter(Client.auth_status == AUTH_REQUIRED),
                func.count(Client.id).filter(Client.telegram_enabled == True),  # noqa: E712
            )
        )
    ).one()
    total, active, expiring, auth_required, telegram_enabled = row
    return {
        "total": total,
        "active": active,
        "token_expiring": expiring,
        "auth_required": auth_required,
        "telegram_enabled": telegram_enabled,
    }


def client_to_dict(client: Client) -> dict:
    return {
        "id": client.id,
        "client_name": client.client_name,
        "email": client.email,
        "phone": client.phone,
        "contact_name": client.contact_name,
        "contact_phone": client.contact_phone,
        "meta_ad_account_id": client.meta_ad_account_id,
        "has_access_token": bool(client.encrypted_access_token),
        "auth_status": client.auth_status,
        "token_expires_at": client.token_expires_at,
        "service_start": client.service_start,
        "service_end": client.service_end,
        "telegram_chat_id": client.telegram_chat_id,
        "telegram_enabled": client.telegram_enabled,
        "plan_type": client.plan_type,
        "is_active": client.is_active,
        "memo": client.memo,
        "created_at": client.created_at,
    }


async def get_client_detail(db: AsyncSession, client_id: int) -> dict:
    """Client with its latest notification and token-refresh history."""
    client = await get_client(db, client_id)
    notifications = await db.execute(
        select(NotificationLog)
        .where(NotificationLog.client_id == client.id)
        .order_by(NotificationLog.sent_at.desc(), NotificationLog.id.desc())
        .limit(RECENT_NOTIFICATIONS)
    )
    refreshes = await db.execute(
        select(TokenRefreshLog)
        .where(TokenRefreshLog.client_id == client.id)
        .order_by(TokenRefreshLog.created_at.desc())
        .limit(RECENT_TOKEN_REFRESHES)
    )
    detail = client_to_dict(client)
    detail["notification_logs"] = list(notifications.scalars().all())
    detail["token_refresh_logs"] = list(refreshes.scalars().all())
    return detail


async def create_client(
    db: AsyncSession,
    admin: AdminSession,
    *,
    client_name: str,
    email: str | None = None,
    phone: str | None = None,
    contact_name: str | None = None,
    contact_phone: str | None = None,
    meta_ad_account_id: str | None = None,
    meta_access_token: str | None = None,
    telegram_chat_id: str | None = None,
    telegram_enabled: bool = False,
    plan_type: str = "FREE",
    memo: str | None = None,
    service_start: date | None = None,
    service_end: date | None = None,
    unlimited_service: bool = False,
) -> Client:
    """Register an advertiser. Duplicate names (any case) and ad accounts are refused."""
    client_name = (client_name or "").strip()
    if not client_name:
        raise InvalidStateError("Client name is required")
    _validate_choices(None, plan_type)
    await _ensure_unique(db, client_name, meta_ad_account_id)

    start = service_start or today_kst()
    if unlimited_service:
        end = None
    else:
        end = service_end or default_service_end(start)

    client = Client(
        client_name=client_name,
        email=email or default_email(client_name),
        phone=phone,
        contact_name=contact_name,
        contact_phone=contact_phone,
        meta_ad_account_id=meta_ad_account_id or None,
        encrypted_access_token=encrypt_token(meta_access_token) if meta_access_token else None,
        auth_status=AUTH_ACTIVE if meta_access_token else AUTH_REQUIRED,
        telegram_chat_id=telegram_chat_id or None,
        telegram_enabled=telegram_enabled,
        plan_type=plan_type,
        is_active=True,
        service_start=start,
        service_end=end,
        memo=memo,
    )
    try:
        async with atomic(db):
            db.add(client)
            await db.flush()
            await log_audit(
                db,
                action="client.create",
                entity_type="client",
                entity_id=client.id,
                admin_id=admin.admin_id,
                details={"client_name": client_name, "meta_ad_account_id": meta_ad_account_id},
            )
    except IntegrityError as exc:
        raise ConflictError(f"Client already registered: {client_name}") from exc

    await db.refresh(client)
    logger.info("Registered client %s (%s)", client.id, client_name)
    return client


async def update_client(
    db: AsyncSession, client_id: int, admin: AdminSession, changes: dict
) -> Client:
    """Apply a partial update. ``meta_access_token`` is stored encrypted."""
    client = await get_client(db, client_id)
    _validate_choices(changes.get("auth_status"), changes.get("plan_type"))
    if "client_name" in changes and not (changes["client_name"] or "").strip():
        raise InvalidStateError("Client name is required")
    await _ensure_unique(
        db, changes.get("client_name"), changes.get("meta_ad_account_id"), exclude_id=client.id
    )

    try:
        async with atomic(db):
            for field in EDITABLE_FIELDS:
                if field in changes:
                    setattr(client, field, changes[field])
            if changes.get("meta_access_token"):
                client.encrypted_access_token = encrypt_token(changes["meta_access_token"])
            await log_audit(
                db,
                action="client.update",
                entity_type="client",
                entity_id=client.id,
                admin_id=admin.admin_id,
                details={"fields": sorted(k for k in changes if k != "meta_access_token")},
            )
    except IntegrityError as exc:
        raise ConflictError(f"Client {client_id} conflicts with an existing client") from exc

    await db.refresh(client)
    return client


async def delete_client(db: AsyncSession, client_id: int, admin: AdminSession) -> None:
    """Hard-delete a client; its ads data and logs go with it (FK cascade)."""
    client = await get_client(db, client_id)
    async with atomic(db):
        await log_audit(
            db,
            action="client.delete",
            entity_type="client",
            entity_id=client.id,
            admin_id=admin.admin_id,
            details={"client_name": client.client_name},
        )
        await db.delete(client)
    logger.info("Deleted client %s (%s)", client_id, client.client_name)
