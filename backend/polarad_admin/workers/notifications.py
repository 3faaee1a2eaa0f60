"""Queued notification delivery.

Services enqueue ``deliver_notification`` instead of calling a transport
directly when ``APP_NOTIFICATIONS_VIA_WORKER`` is set; a failed send is
retried here with backoff and logged as FAILED once retries run out.
"""

import logging

from polarad_admin.workers import celery_app, worker_loop

logger = logging.getLogger(__name__)


@celery_app.task(
    name="deliver_notification", bind=True, max_retries=3, default_retry_delay=30
)
def deliver_notification(
    self,
    channel: str,
    payload: dict,
    notification_type: str = "SYSTEM",
    client_id: int | None = None,
) -> bool:
    """Send one notification through ``channel`` with the given keyword payload."""
    from polarad_admin.services.notification import UnknownChannelError, send_and_record

    last_attempt = self.request.retries >= self.max_retries
    try:
        result = worker_loop().run_until_complete(
            send_and_record(
                channel,
                payload,
                notification_type=notification_type,
                client_id=client_id,
                record_failure=last_attempt,
            )
        )
    except UnknownChannelError:
        logger.error("Dropping notification for unknown channel %s", channel)
        return False
    except Exception as exc:
        logger.exception("deliver_notification failed for channel %s", channel)
        raise self.retry(exc=exc, countdown=30 * (2 ** self.request.retries))
    return bool(result)
