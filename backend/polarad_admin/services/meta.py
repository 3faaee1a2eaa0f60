"""Meta Graph API: ad-level daily insights for one ad account."""

import json
import logging
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from polarad_admin.core.config import settings

logger = logging.getLogger(__name__)

INSIGHT_FIELDS = ",".join((
    "date_start",
    "ad_id",
    "ad_name",
    "campaign_id",
    "campaign_name",
    "account_currency",
    "impressions",
    "reach",
    "inline_link_clicks",
    "spend",
    "actions",
))
BREAKDOWNS = "publisher_platform,device_platform"
PAGE_LIMIT = 500


class MetaApiError(Exception):
    def __init__(self, message: str, status_code: int | None = None, error_payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.error_payload = error_payload


def normalize_ad_account_id(ad_account_id: str) -> str:
    if ad_account_id.startswith("act_"):
        return ad_account_id
    return f"act_{ad_account_id}"


def get_action_value(actions: list[dict] | None, action_type: str) -> int:
    """Sum of ``value`` for entries of ``action_type`` in an insights ``actions`` list."""
    total = 0
    for action in actions or []:
        if action.get("action_type") == action_type:
            try:
                total += int(float(action.get("value") or 0))
            except (TypeError, ValueError):
                continue
    return total


@retry(
    retry=retry_if_exception_type(httpx.TransportError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    reraise=True,
)
async def _get(client: httpx.AsyncClient, url: str, params: dict | None) -> dict:
    response = await client.get(url, params=params)
    if response.status_code >= 400:
        try:
            payload = response.json()
        except ValueError:
            payload = {"text": response.text}
        message = payload.get("error", {}).get("message") if isinstance(payload, dict) else None
        raise MetaApiError(
            message or f"Meta Graph API error ({response.status_code})",
            status_code=response.status_code,
            error_payload=payload,
        )
    return response.json()


async def fetch_ads_insights(
    ad_account_id: str, access_token: str, start_date: str, end_date: str
) -> list[dict]:
    """Fetch every daily insights row in ``[start_date, end_date]``, following paging."""
    url = f"{settings.meta_api_base_url}/{normalize_ad_account_id(ad_account_id)}/insights"
    params: dict | None = {
        "access_token": access_token,
        "level": "ad",
        "fields": INSIGHT_FIELDS,
        "breakdowns": BREAKDOWNS,
        "time_range": json.dumps({"since": start_date, "until": end_date}),
        "time_increment": 1,
        "limit": PAGE_LIMIT,
    }

    rows: list[dict] = []
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds * 3) as client:
        while url:
            payload = await _get(client, url, params)
            rows.extend(payload.get("data", []))
            # ``next`` already carries every query parameter
            url = payload.get("paging", {}).get("next")
            params = None
    logger.info(
        "Fetched %d insight rows for %s (%s ~ %s)", len(rows), ad_account_id, start_date, end_date
    )
    return rows
