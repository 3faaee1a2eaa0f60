import asyncio

from celery import Celery
from celery.schedules import crontab

from polarad_admin.core.config import settings

_loop = None


def worker_loop() -> asyncio.AbstractEventLoop:
    """Return a shared event loop for all Celery worker tasks.

    All async tasks must use the same loop to avoid 'Future attached to
    a different loop' errors caused by the shared asyncpg connection pool.
    """
    global _loop
    if _loop is None or _loop.is_closed():
        _loop = asyncio.new_event_loop()
    return _loop


celery_app = Celery(
    "polarad_worker",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Asia/Seoul",
    enable_utc=True,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    beat_schedule={
        "mark-expired-tokens-hourly": {
            "task": "mark_expired_tokens",
            "schedule": crontab(minute=5, hour="*"),
        },
    },
)

# Import tasks so they are registered with the celery app
import polarad_admin.workers.notifications  # noqa: F401, E402
import polarad_admin.workers.tokens  # noqa: F401, E402
