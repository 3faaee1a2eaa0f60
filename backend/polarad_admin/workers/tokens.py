"""Periodic Meta token housekeeping."""

import logging

from polarad_admin.db.session import async_session_factory
from polarad_admin.workers import celery_app, worker_loop

logger = logging.getLogger(__name__)


@celery_app.task(
    name="mark_expired_tokens", bind=True, max_retries=3, default_retry_delay=60
)
def mark_expired_tokens(self) -> int:
    """Flip ACTIVE clients with a lapsed token expiry to TOKEN_EXPIRED."""
    from polarad_admin.services.token import mark_expired_tokens as mark_expired

    async def _run() -> int:
        async with async_session_factory() as db:
            try:
                return await mark_expired(db)
            finally:
                await db.close()

    try:
        return worker_loop().run_until_complete(_run())
    except Exception as exc:
        logger.exception("mark_expired_tokens failed")
        raise self.retry(exc=exc)
