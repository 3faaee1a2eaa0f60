"""Audit trail for admin actions on clients, contracts, submissions and workflows."""

import json
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


async def log_audit(
    db: AsyncSession,
    *,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    admin_id: int | None = None,
    details: dict | None = None,
    ip_address: str | None = None,
) -> None:
    """Add an ``AuditLog`` row to the caller's transaction and mirror it to the app log.

    ``action`` is ``<entity>.<verb>`` (``contract.approve``). Korean text in
    ``details`` is stored unescaped. A failed flush is logged, not raised.
    """
    entry = AuditLog(
        admin_id=admin_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=json.dumps(details, default=str, ensure_ascii=False) if details else None,
        ip_address=ip_address,
    )
    try:
        db.add(entry)
        await db.flush()
    except Exception:
        logger.exception("Failed to write audit log: %s %s/%s", action, entity_type, entity_id)
        return
    logger.info(
        "audit %s",
        action,
        extra={"admin_id": admin_id, "entity_type": entity_type, "entity_id": entity_id},
    )
