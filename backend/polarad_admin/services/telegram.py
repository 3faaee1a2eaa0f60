import logging
from typing import Any

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential

from polarad_admin.core.config import settings

logger = logging.getLogger(__name__)

_BASE_URL = "https://api.telegram.org"


class TelegramApiError(Exception):
    """Bot API answered with ``ok: false`` (rate limit, blocked bot, bad chat id)."""

    def __init__(self, method: str, description: str):
        self.method = method
        self.description = description
        super().__init__(f"Telegram {method} failed: {description}")


@retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=1, max=10), reraise=True)
async def _call(method: str, **params: Any) -> dict:
    """Call Telegram Bot API and return the result dict, with retry."""
    url = f"{_BASE_URL}/bot{settings.bot_token}/{method}"
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        resp = await client.post(url, json=params)
        data = resp.json()
    if not data.get("ok"):
        desc = data.get("description", "Unknown error")
        logger.error("Telegram API error: %s → %s", method, desc)
        raise TelegramApiError(method, desc)
    return data["result"]


async def send_message(
    chat_id: int | str, text: str, parse_mode: str | None = "HTML"
) -> dict | None:
    """Send a text message to a chat. Returns None when the bot is not configured."""
    if not settings.bot_token:
        logger.warning("TELEGRAM_BOT_TOKEN not set, skipping message to %s", chat_id)
        return None
    params: dict[str, Any] = {"chat_id": chat_id, "text": text}
    if parse_mode:
        params["parse_mode"] = parse_mode
    return await _call("sendMessage", **params)
