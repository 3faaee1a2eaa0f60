from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.api.schemas import BackfillRequest
from polarad_admin.core.deps import get_db
from polarad_admin.core.rbac import require_section
from polarad_admin.core.security import AdminSession
from polarad_admin.db.session import async_session_factory
from polarad_admin.services import backfill as backfill_svc

router = APIRouter(prefix="/admin/backfill", tags=["backfill"])

_guard = require_section("/meta-ads")


@router.get("")
async def check_backfill(
    client_id: int = Query(...),
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Whether the client has what a backfill needs, and its latest stored day."""
    return await backfill_svc.check_backfill(db, client_id)


@router.post("")
async def start_backfill(
    body: BackfillRequest,
    admin: AdminSession = Depends(_guard),
    db: AsyncSession = Depends(get_db),
) -> StreamingResponse:
    """Run a backfill and stream its progress as server-sent events.

    Validation errors are returned as plain JSON before the stream opens.
    """
    job = await backfill_svc.prepare_backfill(
        db, body.client_id, body.start_date, body.end_date, body.days
    )

    async def event_stream():
        # the request session is released before the body is streamed
        async with async_session_factory() as stream_db:
            async for event, payload in backfill_svc.run_backfill(stream_db, job):
                yield backfill_svc.format_sse(event, payload)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
