"""Slack Web API client: per-customer project channels and progress logs."""

import logging
import re
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential

from polarad_admin.core.config import settings

logger = logging.getLogger(__name__)

_BASE_URL = "https://slack.com/api"
_KST = ZoneInfo("Asia/Seoul")

STATE_EMOJI = {
    "PENDING": "⏳",
    "SUBMITTED": "📝",
    "IN_PROGRESS": "🎨",
    "DESIGN_UPLOADED": "👀",
    "ORDER_REQUESTED": "🚀",
    "ORDER_APPROVED": "✅",
    "COMPLETED": "🎉",
    "SHIPPED": "📦",
}


class SlackError(Exception):
    def __init__(self, method: str, error: str):
        self.method = method
        self.error = error
        super().__init__(f"Slack {method} failed: {error}")


@retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=1, max=10), reraise=True)
async def _call(method: str, **params: Any) -> dict:
    """POST to a Slack Web API method; raises SlackError when ``ok`` is false."""
    headers = {"Authorization": f"Bearer {settings.slack_bot_token}"}
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        resp = await client.post(f"{_BASE_URL}/{method}", json=params, headers=headers)
        data = resp.json()
    if not data.get("ok"):
        raise SlackError(method, data.get("error", "unknown_error"))
    return data


def channel_name_for(client_name: str) -> str:
    """Slack channel name for a customer: ``polarad-homepage-<slug>``."""
    slug = re.sub(r"\s+", "-", client_name.strip().lower())
    slug = re.sub(r"[^\w-]", "", slug)
    return f"polarad-homepage-{slug}"[:80]


def _timestamp_block() -> dict:
    now = datetime.now(_KST).strftime("%Y-%m-%d %H:%M:%S")
    return {"type": "context", "elements": [{"type": "mrkdwn", "text": f"📅 {now}"}]}


async def find_channel(name: str) -> str | None:
    data = await _call("conversations.list", types="public_channel,private_channel", limit=1000)
    for channel in data.get("channels", []):
        if channel.get("name") == name:
            return channel["id"]
    return None


async def create_project_channel(
    client_name: str, user_name: str, brand_name: str, phone: str, email: str
) -> str | None:
    """Create (or reuse) the customer's project channel and post the kickoff message.

    Returns the channel id, or None when Slack is not configured.
    """
    if not settings.slack_bot_token:
        logger.warning("SLACK_BOT_TOKEN not set, skipping channel creation")
        return None

    name = channel_name_for(client_name)
    channel_id = await find_channel(name)
    if channel_id:
        logger.info("Reusing Slack channel %s (%s)", name, channel_id)
        return channel_id

    data = await _call("conversations.create", name=name, is_private=False)
    channel_id = data["channel"]["id"]

    if settings.slack_invite_user_ids:
        try:
            await _call(
                "conversations.invite",
                channel=channel_id,
                users=",".join(settings.slack_invite_user_ids),
            )
        except SlackError:
            logger.exception("Failed to invite admins to Slack channel %s", channel_id)

    await post_message(
        channel_id,
        "🎉 새로운 프로젝트 시작",
        blocks=[
            {"type": "header", "text": {"type": "plain_text", "text": "🎉 새로운 홈페이지 제작 프로젝트"}},
            {
                "type": "section",
                "fields": [
                    {"type": "mrkdwn", "text": f"*고객명:*\n{user_name}"},
                    {"type": "mrkdwn", "text": f"*브랜드:*\n{brand_name}"},
                    {"type": "mrkdwn", "text": f"*연락처:*\n{phone}"},
                    {"type": "mrkdwn", "text": f"*이메일:*\n{email}"},
                ],
            },
            _timestamp_block(),
        ],
    )
    logger.info("Created Slack channel %s (%s)", name, channel_id)
    return channel_id


async def post_message(channel_id: str, text: str, blocks: list[dict] | None = None) -> dict | None:
    if not settings.slack_bot_token:
        logger.warning("SLACK_BOT_TOKEN not set, skipping message to %s", channel_id)
        return None
    params: dict[str, Any] = {"channel": channel_id, "text": text}
    if blocks:
        params["blocks"] = blocks
    return await _call("chat.postMessage", **params)


async def log_progress(
    channel_id: str,
    stage: str,
    status: str,
    details: dict[str, str] | None = None,
    emoji: str = "📝",
) -> dict | None:
    fields = [
        {"type": "mrkdwn", "text": f"*단계:*\n{stage}"},
        {"type": "mrkdwn", "text": f"*상태:*\n{status}"},
    ]
    for key, value in (details or {}).items():
        fields.append({"type": "mrkdwn", "text": f"*{key}:*\n{value}"})
    return await post_message(
        channel_id,
        f"{emoji} {stage} - {status}",
        blocks=[
            {"type": "section", "text": {"type": "mrkdwn", "text": f"{emoji} *{stage}*"}},
            {"type": "section", "fields": fields},
            _timestamp_block(),
            {"type": "divider"},
        ],
    )


async def log_state_change(
    channel_id: str,
    from_state: str | None,
    to_state: str,
    changed_by: str | None = None,
    from_label: str | None = None,
    to_label: str | None = None,
) -> dict | None:
    """Post a status change. Labels are shown when given; the emoji follows ``to_state``."""
    shown_to = to_label or to_state
    details = {"이전 상태": from_label or from_state or "-", "변경 후": shown_to}
    if changed_by:
        details["변경자"] = changed_by
    return await log_progress(
        channel_id, "상태 변경", shown_to, details, emoji=STATE_EMOJI.get(to_state, "📌")
    )


async def push_submission_data(channel_id: str, fields: dict[str, str | None]) -> dict | None:
    """Post the customer's production brief (only non-empty fields)."""
    blocks_fields = [
        {"type": "mrkdwn", "text": f"*{label}:*\n{value}"}
        for label, value in fields.items()
        if value
    ]
    return await post_message(
        channel_id,
        "📋 제작 정보",
        blocks=[
            {"type": "header", "text": {"type": "plain_text", "text": "📋 제작 정보"}},
            {"type": "section", "fields": blocks_fields},
            _timestamp_block(),
        ],
    )


async def log_design_upload(
    channel_id: str, item_name: str, design_url: str, version: int | None = None
) -> dict | None:
    version_text = f"(버전 {version})" if version else ""
    return await post_message(
        channel_id,
        f"🎨 시안 업로드: {item_name} {version_text}",
        blocks=[
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"🎨 *시안 업로드: {item_name}* {version_text}\n<{design_url}|시안 보기>"},
            },
            _timestamp_block(),
        ],
    )
