"""Customer SMS through NCP SENS (signed v2 API)."""

import base64
import hashlib
import hmac
import logging
import time

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential

from polarad_admin.core.config import settings

logger = logging.getLogger(__name__)

_SENS_HOST = "https://sens.apigw.ntruss.com"


class SmsError(Exception):
    pass


def make_signature(method: str, uri: str, timestamp: str, access_key: str, secret_key: str) -> str:
    """HMAC-SHA256 signature for the ``x-ncp-apigw-signature-v2`` header."""
    message = f"{method} {uri}\n{timestamp}\n{access_key}"
    digest = hmac.new(secret_key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def _configured() -> bool:
    return all((
        settings.ncp_access_key,
        settings.ncp_secret_key,
        settings.ncp_service_id,
        settings.ncp_sender_phone,
    ))


@retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=1, max=10), reraise=True)
async def _post(uri: str, payload: dict) -> dict:
    timestamp = str(int(time.time() * 1000))
    headers = {
        "Content-Type": "application/json; charset=utf-8",
        "x-ncp-apigw-timestamp": timestamp,
        "x-ncp-iam-access-key": settings.ncp_access_key,
        "x-ncp-apigw-signature-v2": make_signature(
            "POST", uri, timestamp, settings.ncp_access_key, settings.ncp_secret_key
        ),
    }
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        resp = await client.post(f"{_SENS_HOST}{uri}", json=payload, headers=headers)
        data = resp.json()
    if resp.status_code >= 400 or data.get("statusCode") != "202":
        raise SmsError(f"SENS rejected message: {data}")
    return data


async def send_sms(to: str, content: str) -> bool:
    """Send an LMS message. Returns False when SENS is not configured."""
    if not _configured():
        logger.warning("NCP SENS not configured, skipping SMS to %s", to)
        return False
    uri = f"/sms/v2/services/{settings.ncp_service_id}/messages"
    await _post(uri, {
        "type": "LMS",
        "from": settings.ncp_sender_phone.replace("-", ""),
        "content": content,
        "messages": [{"to": to.replace("-", "")}],
    })
    logger.info("SMS sent to %s", to)
    return True
