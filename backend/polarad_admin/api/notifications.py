from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.api.schemas import NotificationListResponse, NotificationSendRequest
from polarad_admin.core.deps import get_db
from polarad_admin.core.rbac import require_section
from polarad_admin.core.security import AdminSession
from polarad_admin.services import notification as notification_svc

router = APIRouter(prefix="/notifications", tags=["notifications"])

_guard = require_section("/notifications")


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    client_id: int | None = Query(default=None),
    type: str | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
):
    """Delivery log, newest first, with today's sent/failed counts."""
    items, total = await notification_svc.list_notification_logs(
        db, client_id=client_id, notification_type=type, offset=offset, limit=limit
    )
    stats = await notification_svc.today_stats(db)
    return NotificationListResponse(items=items, total=total, today_stats=stats)


@router.post("")
async def send_notification(
    body: NotificationSendRequest,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Send a message to a client now. Unreachable clients are reported as skipped."""
    outcome = await notification_svc.send_manual_notification(
        db, body.client_id, body.notification_type, body.message, body.channel
    )
    if outcome["skipped"]:
        return {"success": False, "skipped": True, "message": outcome["reason"]}

    log = outcome["log"]
    if log.status == notification_svc.LOG_FAILED:
        raise HTTPException(status_code=500, detail=log.error_message or "Notification failed")
    if log.status == notification_svc.LOG_SKIPPED:
        return {
            "success": False,
            "skipped": True,
            "message": f"{log.channel} transport is not configured",
            "log_id": log.id,
        }
    return {"success": True, "log_id": log.id}
