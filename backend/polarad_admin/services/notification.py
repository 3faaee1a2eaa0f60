"""Fire-and-forget notifications for lifecycle events.

Customers get Telegram, email and SMS; staff get the admin Telegram chat
and the customer's Slack project channel. Every public helper catches and
logs its own exceptions: a failed notification never undoes or blocks the
status change that triggered it.
"""

import logging
from datetime import date, datetime, time, timezone
from html import escape
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.core.config import settings
from polarad_admin.core.exceptions import InvalidStateError, NotFoundError
from polarad_admin.db.session import async_session_factory
from polarad_admin.models.client import Client
from polarad_admin.models.notification_log import NotificationLog
from polarad_admin.services import mailer, slack, sms, telegram

logger = logging.getLogger(__name__)

STATUS_KOREAN = {
    "PENDING": "대기 중",
    "SUBMITTED": "제출됨",
    "IN_PROGRESS": "진행 중",
    "DESIGN_UPLOADED": "시안 업로드",
    "ORDER_REQUESTED": "발주 요청",
    "ORDER_APPROVED": "발주 승인",
    "COMPLETED": "완료",
    "SHIPPED": "배송 완료",
    "CANCELLED": "취소됨",
    "DRAFT": "작성 중",
    "IN_REVIEW": "검토 중",
    "APPROVED": "승인됨",
    "REJECTED": "반려됨",
}

WORKFLOW_TYPE_KOREAN = {
    "NAMECARD": "명함",
    "NAMETAG": "명찰",
    "CONTRACT": "계약서",
    "ENVELOPE": "대봉투",
    "WEBSITE": "홈페이지",
    "BLOG": "블로그",
    "META_ADS": "메타광고",
    "NAVER_ADS": "네이버광고",
}

_TEMPLATES = {
    "submission_approved": (
        "✅ <b>자료 승인 완료</b>\n\n{user_name}님의 \"{brand_name}\" 자료가 승인되었습니다.\n"
        "워크플로우가 생성되어 제작이 시작됩니다."
    ),
    "submission_rejected": (
        "⚠️ <b>자료 보완 요청</b>\n\n{user_name}님의 자료가 반려되었습니다.\n사유: {reason}"
    ),
    "design_uploaded": (
        "🎨 <b>시안 업로드</b>\n\n{workflow_type} 시안이 업로드되었습니다.\n대시보드에서 확인해주세요."
    ),
    "workflow_completed": "🎉 <b>제작 완료</b>\n\n{workflow_type} 제작이 완료되었습니다.",
    "shipped": "📦 <b>배송 시작</b>\n\n{workflow_type}이(가) 발송되었습니다.\n{courier_line}운송장: {tracking_number}",
    "contract_created": (
        "📄 <b>계약서 도착</b>\n\n{package_name} 계약서({contract_number})가 발송되었습니다.\n"
        "대시보드에서 확인 후 서명해주세요."
    ),
    "contract_approved": (
        "✅ <b>계약 승인</b>\n\n계약({contract_number})이 승인되었습니다.\n"
        "계약 기간: {start_date} ~ {end_date}"
    ),
    "contract_rejected": "❌ <b>계약 반려</b>\n\n계약({contract_number})이 반려되었습니다.\n사유: {reason}",
    "thread_reply": "💬 <b>문의 답변</b>\n\n\"{title}\" 문의에 답변이 등록되었습니다.\n\n{preview}",
}

# Customer channels per design event (email/SMS) and staff events (admin Telegram)
_DESIGN_CUSTOMER_EVENTS = ("DESIGN_UPLOADED", "DESIGN_VERSION_ADDED", "DESIGN_FEEDBACK")
_DESIGN_ADMIN_EVENTS = ("REVISION_REQUESTED", "DESIGN_APPROVED")

_CHANNEL_HANDLERS = {
    "telegram": (telegram, "send_message"),
    "email": (mailer, "send_email"),
    "sms": (sms, "send_sms"),
    "slack": (slack, "post_message"),
    "slack_state": (slack, "log_state_change"),
    "slack_design": (slack, "log_design_upload"),
}

# Types an admin may send by hand to an advertiser client
NOTIFICATION_TYPES = (
    "TOKEN_EXPIRY_CRITICAL",
    "TOKEN_EXPIRY_WARNING",
    "TOKEN_EXPIRY_NOTICE",
    "AUTH_REQUIRED",
    "SERVICE_EXPIRING",
    "SERVICE_EXPIRED",
    "WELCOME",
    "REPORT_DAILY",
    "REPORT_WEEKLY",
    "CUSTOM",
)

# Manual-send channel name -> transport
MANUAL_CHANNELS = {"TELEGRAM": "telegram", "EMAIL": "email", "SMS": "sms"}

LOG_SENT = "SENT"
LOG_FAILED = "FAILED"
LOG_SKIPPED = "SKIPPED"

_KST = ZoneInfo("Asia/Seoul")


class UnknownChannelError(Exception):
    """No transport is registered under the requested channel name."""

    def __init__(self, channel: str):
        self.channel = channel
        super().__init__(f"Unknown notification channel: {channel}")


def status_korean(status: str | None) -> str:
    if not status:
        return "-"
    return STATUS_KOREAN.get(status, status)


def workflow_type_korean(workflow_type: str) -> str:
    return WORKFLOW_TYPE_KOREAN.get(workflow_type, workflow_type)


async def send_via_channel(channel: str, payload: dict):
    """Deliver one notification now. Raises on transport failure."""
    entry = _CHANNEL_HANDLERS.get(channel)
    if entry is None:
        raise UnknownChannelError(channel)
    module, name = entry
    return await getattr(module, name)(**payload)


def _recipient(payload: dict) -> str | None:
    value = payload.get("chat_id") or payload.get("to") or payload.get("channel_id")
    return str(value) if value else None


def _log_message(channel: str, payload: dict) -> str:
    if channel == "slack_state":
        return f"{payload.get('from_state') or '-'} → {payload.get('to_state')}"
    if channel == "slack_design":
        return payload.get("design_url") or ""
    return payload.get("text") or payload.get("content") or payload.get("subject") or ""


async def record_delivery(
    channel: str,
    payload: dict,
    status: str,
    *,
    notification_type: str = "SYSTEM",
    client_id: int | None = None,
    error_message: str | None = None,
) -> None:
    """Write one ``notification_logs`` row in its own session.

    Never raises; a failed write only goes to the application log.
    """
    try:
        async with async_session_factory() as session:
            session.add(NotificationLog(
                client_id=client_id,
                notification_type=notification_type,
                channel=channel,
                recipient=_recipient(payload),
                message=_log_message(channel, payload),
                status=status,
                error_message=error_message,
                sent_at=datetime.now(timezone.utc),
            ))
            await session.commit()
    except Exception:
        logger.exception("Failed to record %s notification on %s", status, channel)


async def send_and_record(
    channel: str,
    payload: dict,
    *,
    notification_type: str = "SYSTEM",
    client_id: int | None = None,
    record_failure: bool = True,
):
    """Send now and log the outcome. Transport errors are re-raised after logging.

    A falsy transport result means the transport is not configured and is
    logged as SKIPPED.
    """
    try:
        result = await send_via_channel(channel, payload)
    except UnknownChannelError:
        raise
    except Exception as exc:
        if record_failure:
            await record_delivery(
                channel, payload, LOG_FAILED,
                notification_type=notification_type, client_id=client_id,
                error_message=str(exc),
            )
        raise
    await record_delivery(
        channel, payload, LOG_SENT if result else LOG_SKIPPED,
        notification_type=notification_type, client_id=client_id,
    )
    return result


async def deliver(
    channel: str,
    payload: dict,
    *,
    notification_type: str = "SYSTEM",
    client_id: int | None = None,
):
    """Send inline, or queue for the worker (which retries) when configured.

    Returns the transport result, or True once queued.
    """
    if settings.notifications_via_worker:
        from polarad_admin.workers.notifications import deliver_notification

        deliver_notification.delay(channel, payload, notification_type, client_id)
        return True
    return await send_and_record(
        channel, payload, notification_type=notification_type, client_id=client_id
    )


def _customer_chat_id(user) -> str | None:
    if user is None or not getattr(user, "telegram_enabled", False):
        return None
    return user.telegram_chat_id


async def _notify_customer_telegram(user, text: str, notification_type: str) -> None:
    chat_id = _customer_chat_id(user)
    if not chat_id:
        return
    await deliver(
        "telegram", {"chat_id": chat_id, "text": text}, notification_type=notification_type
    )


async def _slack_channel_for_user(db, user_id: int) -> str | None:
    from polarad_admin.models.submission import Submission

    result = await db.execute(
        select(Submission.slack_channel_id).where(Submission.user_id == user_id)
    )
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------


async def notify_submission_approved(submission, user) -> str | None:
    """Open the Slack project channel and tell the customer.

    Returns the Slack channel id when one was created or found.
    """
    channel_id = None
    try:
        if user is not None:
            channel_id = await slack.create_project_channel(
                client_name=user.client_name,
                user_name=user.name,
                brand_name=submission.brand_name or "",
                phone=submission.contact_phone or user.phone or "",
                email=submission.contact_email or user.email or "",
            )
        if channel_id:
            await slack.push_submission_data(channel_id, {
                "브랜드명": submission.brand_name,
                "연락처": submission.contact_phone,
                "이메일": submission.contact_email,
                "배송 주소": submission.delivery_address,
                "홈페이지 스타일": submission.website_style,
                "홈페이지 컬러": submission.website_color,
                "블로그 디자인 노트": submission.blog_design_note,
                "추가 요청사항": submission.additional_note,
            })
    except Exception:
        logger.exception("Slack setup failed for submission %s", submission.id)

    try:
        text = _TEMPLATES["submission_approved"].format(
            user_name=user.name if user else "",
            brand_name=submission.brand_name or "",
        )
        await _notify_customer_telegram(user, text, "SUBMISSION_APPROVED")
    except Exception:
        logger.exception("Failed to notify customer about submission %s", submission.id)
    return channel_id


async def notify_submission_rejected(submission, user, reason: str) -> None:
    try:
        text = _TEMPLATES["submission_rejected"].format(
            user_name=user.name if user else "", reason=reason
        )
        await _notify_customer_telegram(user, text, "SUBMISSION_REJECTED")
    except Exception:
        logger.exception("Failed to notify customer about submission %s", submission.id)


# ---------------------------------------------------------------------------
# Workflows
# ---------------------------------------------------------------------------


async def notify_workflow_status(db, workflow, from_status: str | None, changed_by: str) -> None:
    """Slack state log for staff, Telegram for the customer on key stages."""
    type_name = workflow_type_korean(workflow.type)
    try:
        channel_id = await _slack_channel_for_user(db, workflow.user_id)
        if channel_id:
            await deliver("slack_state", {
                "channel_id": channel_id,
                "from_state": from_status,
                "to_state": workflow.status,
                "changed_by": changed_by,
                "from_label": status_korean(from_status),
                "to_label": status_korean(workflow.status),
            }, notification_type="WORKFLOW_STATUS")
            if workflow.status == "DESIGN_UPLOADED" and workflow.design_url:
                await deliver("slack_design", {
                    "channel_id": channel_id,
                    "item_name": type_name,
                    "design_url": workflow.design_url,
                }, notification_type="DESIGN_UPLOADED")
    except Exception:
        logger.exception("Slack log failed for workflow %s", workflow.id)

    try:
        text = None
        if workflow.status == "DESIGN_UPLOADED":
            text = _TEMPLATES["design_uploaded"].format(workflow_type=type_name)
        elif workflow.status == "COMPLETED":
            text = _TEMPLATES["workflow_completed"].format(workflow_type=type_name)
        elif workflow.status == "SHIPPED" and workflow.tracking_number:
            courier_line = f"택배사: {workflow.courier}\n" if workflow.courier else ""
            text = _TEMPLATES["shipped"].format(
                workflow_type=type_name,
                courier_line=courier_line,
                tracking_number=workflow.tracking_number,
            )
        if text:
            await _notify_customer_telegram(workflow.user, text, "WORKFLOW_STATUS")
    except Exception:
        logger.exception("Failed to notify customer about workflow %s", workflow.id)


# ---------------------------------------------------------------------------
# Designs
# ---------------------------------------------------------------------------


def design_email(event: str, type_name: str, version: int, user_name: str,
                 design_url: str, feedback: str | None = None) -> tuple[str, str] | None:
    """Return (subject, html) for customer-facing design events."""
    button = (
        f'<div style="margin: 30px 0;"><a href="{design_url}" '
        'style="background: #2563eb; color: white; padding: 12px 24px; '
        'border-radius: 8px; text-decoration: none;">시안 확인하기</a></div>'
    )
    footer = '<p style="color: #9ca3af; font-size: 14px;">이 메일은 Polarad에서 자동 발송되었습니다.</p>'
    if event in ("DESIGN_UPLOADED", "DESIGN_VERSION_ADDED"):
        subject = f"[Polarad] {type_name} 시안이 업로드되었습니다"
        body = (
            f"<h2>🎨 {type_name} 시안 업로드</h2>"
            f"<p>안녕하세요, {user_name}님!<br><br>{type_name} 시안(v{version})이 업로드되었습니다.<br>"
            "아래 버튼을 클릭하여 시안을 확인하고 피드백을 남겨주세요.</p>"
        )
    elif event == "DESIGN_FEEDBACK":
        subject = f"[Polarad] {type_name} 시안에 답변이 등록되었습니다"
        quote = ""
        if feedback:
            excerpt = feedback[:200] + ("..." if len(feedback) > 200 else "")
            quote = f'<div style="background: #f3f4f6; padding: 16px;">"{excerpt}"</div>'
        body = (
            "<h2>💬 관리자 답변</h2>"
            f"<p>안녕하세요, {user_name}님!<br><br>{type_name} 시안에 관리자 답변이 등록되었습니다.</p>"
            f"{quote}"
        )
    else:
        return None
    return subject, f"<div>{body}{button}{footer}</div>"


def design_sms(event: str, type_name: str, version: int) -> str | None:
    if event in ("DESIGN_UPLOADED", "DESIGN_VERSION_ADDED"):
        return f"[Polarad] {type_name} 시안(v{version})이 업로드되었습니다. 마이페이지에서 확인해주세요."
    if event == "DESIGN_FEEDBACK":
        return f"[Polarad] {type_name} 시안에 관리자 답변이 등록되었습니다. 마이페이지에서 확인해주세요."
    return None


def design_admin_message(event: str, user, type_name: str, version: int,
                         design_url: str, feedback: str | None = None) -> str | None:
    name = f"{user.name}({user.client_name})" if user else "-"
    if event == "REVISION_REQUESTED":
        text = f"✏️ <b>시안 수정 요청</b>\n\n{name}\n{type_name} v{version}"
        if feedback:
            text += f"\n\n\"{feedback[:200]}\""
        return f"{text}\n\n{design_url}"
    if event == "DESIGN_APPROVED":
        return f"✅ <b>시안 승인</b>\n\n{name}\n{type_name} v{version} 승인 완료\n\n{design_url}"
    return None


async def notify_design_event(
    event: str,
    design,
    user,
    workflow_type: str,
    feedback: str | None = None,
) -> None:
    """Customer email + SMS, or admin Telegram, depending on ``event``."""
    type_name = workflow_type_korean(workflow_type)
    try:
        if event in _DESIGN_CUSTOMER_EVENTS and user is not None:
            client_url = f"{settings.client_panel_url}/dashboard/designs/{design.id}"
            if user.email:
                content = design_email(
                    event, type_name, design.current_version, user.name, client_url, feedback
                )
                if content:
                    subject, html = content
                    await deliver(
                        "email", {"to": user.email, "subject": subject, "html": html},
                        notification_type=event,
                    )
            if user.phone:
                text = design_sms(event, type_name, design.current_version)
                if text:
                    await deliver(
                        "sms", {"to": user.phone, "content": text}, notification_type=event
                    )

        if event in _DESIGN_ADMIN_EVENTS:
            admin_url = f"{settings.admin_panel_url}/designs/{design.id}"
            text = design_admin_message(
                event, user, type_name, design.current_version, admin_url, feedback
            )
            if text and settings.admin_chat_id:
                await deliver(
                    "telegram", {"chat_id": settings.admin_chat_id, "text": text},
                    notification_type=event,
                )
    except Exception:
        logger.exception("Failed to send %s notification for design %s", event, design.id)


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------


async def notify_contract_created(contract, user, package_name: str) -> None:
    try:
        text = _TEMPLATES["contract_created"].format(
            package_name=package_name, contract_number=contract.contract_number
        )
        await _notify_customer_telegram(user, text, "CONTRACT_CREATED")
    except Exception:
        logger.exception("Failed to notify customer about contract %s", contract.id)


def contract_approved_email(contract, user_name: str) -> tuple[str, str]:
    subject = f"[Polarad] 계약이 승인되었습니다 ({contract.contract_number})"
    html = (
        "<div>"
        f"<h2>✅ 계약 승인 안내</h2><p>안녕하세요, {user_name}님!<br><br>"
        f"계약번호 {contract.contract_number} 계약이 승인되었습니다.</p>"
        "<ul>"
        f"<li>계약 기간: {contract.start_date} ~ {contract.end_date} ({contract.contract_period}개월)</li>"
        f"<li>월 이용료: {int(contract.monthly_fee):,}원</li>"
        f"<li>설치비: {int(contract.setup_fee or 0):,}원</li>"
        f"<li>총 계약금액: {int(contract.total_amount):,}원</li>"
        "</ul>"
        '<p style="color: #9ca3af; font-size: 14px;">이 메일은 Polarad에서 자동 발송되었습니다.</p>'
        "</div>"
    )
    return subject, html


async def notify_contract_approved(contract, user) -> bool:
    """Email the approved contract and ping the customer.

    Returns True when the email was handed off successfully.
    """
    email_sent = False
    recipient = contract.contact_email or (user.email if user else None)
    try:
        if recipient:
            subject, html = contract_approved_email(
                contract, contract.contact_name or (user.name if user else "")
            )
            email_sent = bool(
                await deliver(
                    "email", {"to": recipient, "subject": subject, "html": html},
                    notification_type="CONTRACT_APPROVED",
                )
            )
    except Exception:
        logger.exception("Failed to email approved contract %s", contract.id)

    try:
        text = _TEMPLATES["contract_approved"].format(
            contract_number=contract.contract_number,
            start_date=contract.start_date,
            end_date=contract.end_date,
        )
        await _notify_customer_telegram(user, text, "CONTRACT_APPROVED")
    except Exception:
        logger.exception("Failed to notify customer about contract %s", contract.id)
    return email_sent


async def notify_contract_rejected(contract, user) -> None:
    try:
        text = _TEMPLATES["contract_rejected"].format(
            contract_number=contract.contract_number, reason=contract.reject_reason
        )
        await _notify_customer_telegram(user, text, "CONTRACT_REJECTED")
    except Exception:
        logger.exception("Failed to notify customer about contract %s", contract.id)


# ---------------------------------------------------------------------------
# Communications
# ---------------------------------------------------------------------------


async def notify_thread_reply(thread, user, content: str) -> None:
    try:
        preview = content[:200] + ("..." if len(content) > 200 else "")
        text = _TEMPLATES["thread_reply"].format(title=thread.title, preview=preview)
        await _notify_customer_telegram(user, text, "THREAD_REPLY")
    except Exception:
        logger.exception("Failed to notify customer about thread %s", thread.id)


# ---------------------------------------------------------------------------
# Backfill
# ---------------------------------------------------------------------------


def backfill_message(
    client_name: str,
    start_date: date | str,
    end_date: date | str,
    fetched: int,
    saved: int,
    success: bool,
    error_message: str | None = None,
) -> str:
    emoji, label = ("✅", "완료") if success else ("❌", "실패")
    lines = [
        f"{emoji} *[POLARAD] 백필 {label}*",
        "",
        f"📋 클라이언트: {client_name}",
        f"📅 기간: {start_date} ~ {end_date}",
    ]
    if success:
        lines += [f"📊 수집: {fetched}건", f"💾 저장: {saved}건"]
    elif error_message:
        lines += ["", f"⚠️ {error_message}"]
    lines += ["", "---", "🤖 POLARAD Meta Ads"]
    return "\n".join(lines)


async def notify_backfill_result(
    client_name: str,
    start_date: date | str,
    end_date: date | str,
    fetched: int,
    saved: int,
    success: bool,
    error_message: str | None = None,
) -> None:
    try:
        text = backfill_message(
            client_name, start_date, end_date, fetched, saved, success, error_message
        )
        await deliver("telegram", {
            "chat_id": settings.backfill_chat_id,
            "text": text,
            "parse_mode": "Markdown",
        }, notification_type="BACKFILL_RESULT")
    except Exception:
        logger.exception("Failed to send backfill notification for %s", client_name)


# ---------------------------------------------------------------------------
# Notification log (admin screen)
# ---------------------------------------------------------------------------


def _start_of_today_kst(now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return datetime.combine(now.astimezone(_KST).date(), time.min, tzinfo=_KST)


async def list_notification_logs(
    db: AsyncSession,
    *,
    client_id: int | None = None,
    notification_type: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[dict], int]:
    """Newest first, each row carrying the client's name when it has one."""
    conditions = []
    if client_id is not None:
        conditions.append(NotificationLog.client_id == client_id)
    if notification_type:
        conditions.append(NotificationLog.notification_type == notification_type)

    total = (
        await db.execute(select(func.count(NotificationLog.id)).where(*conditions))
    ).scalar_one()
    result = await db.execute(
        select(NotificationLog, Client.client_name)
        .outerjoin(Client, Client.id == NotificationLog.client_id)
        .where(*conditions)
        .order_by(NotificationLog.sent_at.desc(), NotificationLog.id.desc())
        .offset(offset)
        .limit(limit)
    )
    items = []
    for log, client_name in result.all():
        items.append({
            "id": log.id,
            "client_id": log.client_id,
            "client_name": client_name,
            "notification_type": log.notification_type,
            "channel": log.channel,
            "recipient": log.recipient,
            "message": log.message,
            "status": log.status,
            "error_message": log.error_message,
            "sent_at": log.sent_at,
        })
    return items, total


async def today_stats(db: AsyncSession, now: datetime | None = None) -> dict[str, int]:
    """Counts of today's (KST) log rows by outcome."""
    result = await db.execute(
        select(NotificationLog.status, func.count(NotificationLog.id))
        .where(NotificationLog.sent_at >= _start_of_today_kst(now))
        .group_by(NotificationLog.status)
    )
    counts = {status: count for status, count in result.all()}
    return {
        "sent": counts.get(LOG_SENT, 0),
        "failed": counts.get(LOG_FAILED, 0),
        "total": sum(counts.values()),
    }


def _manual_payload(client: Client, channel: str, message: str) -> dict | None:
    if channel == "TELEGRAM":
        if not client.telegram_enabled or not client.telegram_chat_id:
            return None
        return {"chat_id": client.telegram_chat_id, "text": message}
    if channel == "EMAIL":
        if not client.email:
            return None
        body = escape(message).replace("\n", "<br>")
        return {
            "to": client.email,
            "subject": f"[Polarad] {client.client_name} 알림",
            "html": f"<div><p>{body}</p></div>",
        }
    phone = client.contact_phone or client.phone
    if not phone:
        return None
    return {"to": phone, "content": message}


async def send_manual_notification(
    db: AsyncSession,
    client_id: int,
    notification_type: str,
    message: str,
    channel: str = "TELEGRAM",
) -> dict:
    """Send an admin-written message to a client right away and log it.

    Returns ``{"skipped": True, "reason": ...}`` when the client cannot be
    reached on ``channel``; otherwise ``{"skipped": False, "log": NotificationLog}``
    with the log's status set to SENT, SKIPPED or FAILED.
    """
    if notification_type not in NOTIFICATION_TYPES:
        raise InvalidStateError(f"Invalid notification type: {notification_type}")
    if channel not in MANUAL_CHANNELS:
        raise InvalidStateError(f"Invalid notification channel: {channel}")

    client = await db.get(Client, client_id)
    if client is None:
        raise NotFoundError("Client", client_id)
    if not client.is_active:
        return {"skipped": True, "reason": "Client is inactive"}

    payload = _manual_payload(client, channel, message)
    if payload is None:
        return {"skipped": True, "reason": f"Client has no {channel.lower()} contact enabled"}

    transport = MANUAL_CHANNELS[channel]
    log = NotificationLog(
        client_id=client.id,
        notification_type=notification_type,
        channel=transport,
        recipient=_recipient(payload),
        message=message,
        sent_at=datetime.now(timezone.utc),
    )
    try:
        result = await send_via_channel(transport, payload)
        log.status = LOG_SENT if result else LOG_SKIPPED
    except Exception as exc:
        logger.exception("Manual %s notification to client %s failed", channel, client_id)
        log.status = LOG_FAILED
        log.error_message = str(exc)

    db.add(log)
    await db.commit()
    await db.refresh(log)
    logger.info(
        "Manual notification %s to client %s: %s", notification_type, client_id, log.status
    )
    return {"skipped": False, "log": log}
