"""Customer email through the Resend REST API."""

import logging

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential

from polarad_admin.core.config import settings

logger = logging.getLogger(__name__)

_RESEND_URL = "https://api.resend.com/emails"


@retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=1, max=10), reraise=True)
async def _post(payload: dict) -> dict:
    headers = {"Authorization": f"Bearer {settings.resend_api_key}"}
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        resp = await client.post(_RESEND_URL, json=payload, headers=headers)
        resp.raise_for_status()
        return resp.json()


async def send_email(to: str, subject: str, html: str) -> bool:
    """Send one email. Returns False when Resend is not configured."""
    if not settings.resend_api_key:
        logger.warning("RESEND_API_KEY not set, skipping email to %s", to)
        return False
    await _post({
        "from": f"Polarad <{settings.resend_from_email}>",
        "to": [to],
        "subject": subject,
        "html": html,
    })
    logger.info("Email sent to %s: %s", to, subject)
    return True
