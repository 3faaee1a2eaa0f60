"""Tests for notification routing: channels, design events, contracts and backfill reports."""

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from polarad_admin.core.config import settings
from polarad_admin.core.exceptions import InvalidStateError, NotFoundError
from polarad_admin.models.client import Client
from polarad_admin.models.contract import Contract
from polarad_admin.models.design import Design
from polarad_admin.models.notification_log import NotificationLog
from polarad_admin.models.user import User
from polarad_admin.models.workflow import Workflow
from polarad_admin.services import notification, slack
from polarad_admin.services.notification import (
    UnknownChannelError,
    backfill_message,
    deliver,
    design_admin_message,
    design_email,
    design_sms,
    notify_backfill_result,
    notify_contract_approved,
    notify_design_event,
    notify_submission_rejected,
    notify_workflow_status,
    send_and_record,
    send_manual_notification,
    send_via_channel,
    status_korean,
    today_stats,
    workflow_type_korean,
)

from conftest import mock_db, mock_result

SEND_MESSAGE = "polarad_admin.services.telegram.send_message"
SEND_EMAIL = "polarad_admin.services.mailer.send_email"
SEND_SMS = "polarad_admin.services.sms.send_sms"


def _user(**overrides) -> User:
    fields = dict(
        name="Lee",
        client_name="Polar Cafe",
        email="lee@example.com",
        phone="010-1234-5678",
        telegram_chat_id="555",
        telegram_enabled=True,
    )
    fields.update(overrides)
    return User(**fields)


def _design() -> Design:
    design = Design(workflow_id=7, status="IN_REVIEW", current_version=2)
    object.__setattr__(design, "id", 3)
    return design


def _contract(**overrides) -> Contract:
    fields = dict(
        contract_number="PR-20250101-0001",
        user_id=1,
        package_id=1,
        status="APPROVED",
        contract_period=12,
        monthly_fee=Decimal(100000),
        setup_fee=Decimal(0),
        total_amount=Decimal(1200000),
        start_date=date(2025, 1, 1),
        end_date=date(2026, 1, 1),
    )
    fields.update(overrides)
    contract = Contract(**fields)
    object.__setattr__(contract, "id", 11)
    return contract


class TestLabels:
    def test_known_values_are_translated(self):
        assert status_korean("SHIPPED") == "배송 완료"
        assert workflow_type_korean("NAMECARD") == "명함"

    def test_unknown_values_pass_through(self):
        assert status_korean("LOST") == "LOST"
        assert status_korean(None) == "-"
        assert workflow_type_korean("BANNER") == "BANNER"


class TestChannels:
    @pytest.mark.asyncio
    async def test_unknown_channel_raises(self):
        with pytest.raises(UnknownChannelError, match="fax"):
            await send_via_channel("fax", {})

    @pytest.mark.asyncio
    @patch(SEND_EMAIL, new_callable=AsyncMock, return_value=True)
    async def test_channel_dispatches_payload(self, mock_email):
        result = await send_via_channel("email", {"to": "a@b.kr", "subject": "s", "html": "h"})

        assert result is True
        mock_email.assert_awaited_once_with(to="a@b.kr", subject="s", html="h")

    @pytest.mark.asyncio
    @patch(SEND_SMS, new_callable=AsyncMock, return_value=True)
    async def test_deliver_sends_inline_by_default(self, mock_sms):
        with patch.object(settings, "notifications_via_worker", False):
            await deliver("sms", {"to": "01012345678", "content": "hi"})

        mock_sms.assert_awaited_once_with(to="01012345678", content="hi")

    @pytest.mark.asyncio
    @patch(SEND_SMS, new_callable=AsyncMock)
    async def test_deliver_queues_when_worker_enabled(self, mock_sms):
        with patch.object(settings, "notifications_via_worker", True), patch(
            "polarad_admin.workers.notifications.deliver_notification"
        ) as mock_task:
            result = await deliver("sms", {"to": "01012345678", "content": "hi"})

        assert result is True
        mock_task.delay.assert_called_once_with(
            "sms", {"to": "01012345678", "content": "hi"}, "SYSTEM", None
        )
        mock_sms.assert_not_awaited()


class TestCustomerTelegram:
    @pytest.mark.asyncio
    @patch(SEND_MESSAGE, new_callable=AsyncMock)
    async def test_rejection_reaches_enabled_customer(self, mock_send):
        submission = MagicMock(id=1)

        await notify_submission_rejected(submission, _user(), "사업자등록증 누락")

        mock_send.assert_awaited_once()
        kwargs = mock_send.await_args.kwargs
        assert kwargs["chat_id"] == "555"
        assert "사업자등록증 누락" in kwargs["text"]

    @pytest.mark.asyncio
    @patch(SEND_MESSAGE, new_callable=AsyncMock)
    async def test_disabled_customer_is_skipped(self, mock_send):
        await notify_submission_rejected(MagicMock(id=1), _user(telegram_enabled=False), "x")

        mock_send.assert_not_awaited()

    @pytest.mark.asyncio
    @patch(SEND_MESSAGE, new_callable=AsyncMock, side_effect=RuntimeError("telegram down"))
    async def test_transport_failure_is_swallowed(self, mock_send):
        await notify_submission_rejected(MagicMock(id=1), _user(), "x")

        mock_send.assert_awaited_once()


class TestDesignMessages:
    def test_upload_email_links_to_design(self):
        subject, html = design_email("DESIGN_UPLOADED", "명함", 2, "Lee", "https://my.polarad.kr/d/3")

        assert "명함" in subject
        assert "v2" in html
        assert "https://my.polarad.kr/d/3" in html

    def test_feedback_email_quotes_truncated_text(self):
        _, html = design_email("DESIGN_FEEDBACK", "명함", 1, "Lee", "u", feedback="a" * 250)

        assert "a" * 200 + "..." in html
        assert "a" * 201 not in html

    def test_no_email_for_staff_events(self):
        assert design_email("DESIGN_APPROVED", "명함", 1, "Lee", "u") is None
        assert design_sms("REVISION_REQUESTED", "명함", 1) is None

    def test_admin_message_for_revision_includes_feedback(self):
        text = design_admin_message(
            "REVISION_REQUESTED", _user(), "명함", 2, "https://admin/designs/3", "로고 크게"
        )

        assert "Lee(Polar Cafe)" in text
        assert "로고 크게" in text
        assert text.endswith("https://admin/designs/3")

    def test_admin_message_skips_customer_events(self):
        assert design_admin_message("DESIGN_UPLOADED", _user(), "명함", 1, "u") is None


class TestNotifyDesignEvent:
    @pytest.mark.asyncio
    @patch(SEND_MESSAGE, new_callable=AsyncMock)
    @patch(SEND_SMS, new_callable=AsyncMock)
    @patch(SEND_EMAIL, new_callable=AsyncMock)
    async def test_upload_goes_to_customer(self, mock_email, mock_sms, mock_tg):
        await notify_design_event("DESIGN_UPLOADED", _design(), _user(), "NAMECARD")

        assert mock_email.await_args.kwargs["to"] == "lee@example.com"
        assert mock_sms.await_args.kwargs["to"] == "010-1234-5678"
        mock_tg.assert_not_awaited()

    @pytest.mark.asyncio
    @patch(SEND_MESSAGE, new_callable=AsyncMock)
    @patch(SEND_SMS, new_callable=AsyncMock)
    @patch(SEND_EMAIL, new_callable=AsyncMock)
    async def test_approval_goes_to_admin_chat(self, mock_email, mock_sms, mock_tg):
        with patch.object(settings, "admin_chat_id", "-100"):
            await notify_design_event("DESIGN_APPROVED", _design(), _user(), "NAMECARD")

        mock_tg.assert_awaited_once()
        assert mock_tg.await_args.kwargs["chat_id"] == "-100"
        mock_email.assert_not_awaited()
        mock_sms.assert_not_awaited()

    @pytest.mark.asyncio
    @patch(SEND_MESSAGE, new_callable=AsyncMock)
    async def test_no_admin_chat_configured(self, mock_tg):
        with patch.object(settings, "admin_chat_id", ""):
            await notify_design_event("REVISION_REQUESTED", _design(), _user(), "NAMECARD")

        mock_tg.assert_not_awaited()

    @pytest.mark.asyncio
    @patch(SEND_SMS, new_callable=AsyncMock)
    @patch(SEND_EMAIL, new_callable=AsyncMock, side_effect=RuntimeError("smtp"))
    async def test_email_failure_does_not_raise(self, mock_email, mock_sms):
        await notify_design_event("DESIGN_FEEDBACK", _design(), _user(), "NAMECARD", "ok")

        mock_email.assert_awaited_once()


class TestContractApproved:
    @pytest.mark.asyncio
    @patch(SEND_MESSAGE, new_callable=AsyncMock)
    @patch(SEND_EMAIL, new_callable=AsyncMock, return_value=True)
    async def test_contact_email_preferred(self, mock_email, mock_tg):
        contract = _contract(contact_email="ceo@polar.kr", contact_name="Park")

        sent = await notify_contract_approved(contract, _user())

        assert sent is True
        assert mock_email.await_args.kwargs["to"] == "ceo@polar.kr"
        assert "1,200,000원" in mock_email.await_args.kwargs["html"]
        mock_tg.assert_awaited_once()

    @pytest.mark.asyncio
    @patch(SEND_EMAIL, new_callable=AsyncMock)
    async def test_no_recipient_returns_false(self, mock_email):
        sent = await notify_contract_approved(_contract(), None)

        assert sent is False
        mock_email.assert_not_awaited()

    @pytest.mark.asyncio
    @patch(SEND_MESSAGE, new_callable=AsyncMock)
    @patch(SEND_EMAIL, new_callable=AsyncMock, return_value=False)
    async def test_unconfigured_mailer_returns_false(self, mock_email, mock_tg):
        assert await notify_contract_approved(_contract(), _user()) is False


class TestBackfillReport:
    def test_success_message_lists_counts(self):
        text = backfill_message("Polar Cafe", date(2025, 1, 1), date(2025, 1, 31), 120, 118, True)

        assert "백필 완료" in text
        assert "📊 수집: 120건" in text
        assert "💾 저장: 118건" in text

    def test_failure_message_carries_error(self):
        text = backfill_message("Polar Cafe", "2025-01-01", "2025-01-31", 0, 0, False, "token expired")

        assert "백필 실패" in text
        assert "⚠️ token expired" in text
        assert "수집" not in text

    @pytest.mark.asyncio
    @patch(SEND_MESSAGE, new_callable=AsyncMock)
    async def test_sent_as_markdown_to_backfill_chat(self, mock_tg):
        await notify_backfill_result("Polar Cafe", "2025-01-01", "2025-01-31", 1, 1, True)

        kwargs = mock_tg.await_args.kwargs
        assert kwargs["chat_id"] == settings.backfill_chat_id
        assert kwargs["parse_mode"] == "Markdown"

    def test_handlers_resolve_to_transport_functions(self):
        for module, name in notification._CHANNEL_HANDLERS.values():
            assert callable(getattr(module, name))


class TestWorkflowStatusLabels:
    @pytest.mark.asyncio
    @patch("polarad_admin.services.slack.log_state_change", new_callable=AsyncMock)
    async def test_slack_log_gets_korean_labels(self, mock_log):
        workflow = Workflow(user_id=9, type="NAMECARD", status="SHIPPED")
        object.__setattr__(workflow, "id", 21)
        workflow.user = None
        db = mock_db(mock_result(scalar="C1"))

        await notify_workflow_status(db, workflow, "COMPLETED", "Kim")

        kwargs = mock_log.await_args.kwargs
        assert kwargs["channel_id"] == "C1"
        assert (kwargs["from_state"], kwargs["to_state"]) == ("COMPLETED", "SHIPPED")
        assert (kwargs["from_label"], kwargs["to_label"]) == ("완료", "배송 완료")

    @pytest.mark.asyncio
    async def test_label_is_shown_and_emoji_follows_state(self):
        with patch.object(slack, "post_message", new_callable=AsyncMock) as mock_post:
            await slack.log_state_change(
                "C1", "COMPLETED", "SHIPPED", "Kim", from_label="완료", to_label="배송 완료"
            )

        assert mock_post.await_args.args[1] == "📦 상태 변경 - 배송 완료"


class TestDeliveryLog:
    @pytest.mark.asyncio
    @patch(SEND_SMS, new_callable=AsyncMock, return_value=True)
    async def test_inline_send_is_logged(self, mock_sms, notification_log_session):
        with patch.object(settings, "notifications_via_worker", False):
            await deliver(
                "sms", {"to": "01012345678", "content": "hi"},
                notification_type="WELCOME", client_id=4,
            )

        log = notification_log_session.add.call_args.args[0]
        assert isinstance(log, NotificationLog)
        assert (log.status, log.channel, log.recipient) == ("SENT", "sms", "01012345678")
        assert (log.notification_type, log.client_id, log.message) == ("WELCOME", 4, "hi")
        assert log.sent_at is not None
        notification_log_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    @patch(SEND_SMS, new_callable=AsyncMock, return_value=False)
    async def test_unconfigured_transport_is_logged_as_skipped(self, mock_sms, notification_log_session):
        await send_and_record("sms", {"to": "01012345678", "content": "hi"})

        assert notification_log_session.add.call_args.args[0].status == "SKIPPED"

    @pytest.mark.asyncio
    @patch(SEND_SMS, new_callable=AsyncMock, side_effect=RuntimeError("sens down"))
    async def test_failure_is_logged_and_reraised(self, mock_sms, notification_log_session):
        with pytest.raises(RuntimeError, match="sens down"):
            await send_and_record("sms", {"to": "01012345678", "content": "hi"})

        log = notification_log_session.add.call_args.args[0]
        assert (log.status, log.error_message) == ("FAILED", "sens down")

    @pytest.mark.asyncio
    @patch(SEND_SMS, new_callable=AsyncMock, side_effect=RuntimeError("sens down"))
    async def test_failure_before_last_attempt_is_not_logged(self, mock_sms, notification_log_session):
        with pytest.raises(RuntimeError):
            await send_and_record(
                "sms", {"to": "01012345678", "content": "hi"}, record_failure=False
            )

        notification_log_session.add.assert_not_called()

    @pytest.mark.asyncio
    @patch(SEND_SMS, new_callable=AsyncMock, return_value=True)
    async def test_log_write_failure_does_not_fail_the_send(self, mock_sms, notification_log_session):
        notification_log_session.commit.side_effect = RuntimeError("db gone")

        assert await send_and_record("sms", {"to": "01012345678", "content": "hi"}) is True

    @pytest.mark.asyncio
    @patch(SEND_MESSAGE, new_callable=AsyncMock, return_value={"message_id": 1})
    async def test_lifecycle_message_carries_its_type(self, mock_send, notification_log_session):
        await notify_submission_rejected(MagicMock(id=1), _user(), "x")

        log = notification_log_session.add.call_args.args[0]
        assert (log.notification_type, log.recipient) == ("SUBMISSION_REJECTED", "555")


def _client(**overrides) -> Client:
    fields = dict(
        client_name="Polar Cafe",
        email="ads@polar.kr",
        phone="010-1111-2222",
        telegram_chat_id="777",
        telegram_enabled=True,
        is_active=True,
    )
    fields.update(overrides)
    client = Client(**fields)
    object.__setattr__(client, "id", 4)
    return client


class TestManualNotification:
    @pytest.mark.asyncio
    async def test_invalid_type(self):
        db = mock_db()
        with pytest.raises(InvalidStateError):
            await send_manual_notification(db, 4, "PROMO", "hi")
        db.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_channel(self):
        with pytest.raises(InvalidStateError):
            await send_manual_notification(mock_db(), 4, "CUSTOM", "hi", channel="FAX")

    @pytest.mark.asyncio
    async def test_missing_client(self):
        db = mock_db()
        db.get = AsyncMock(return_value=None)
        with pytest.raises(NotFoundError):
            await send_manual_notification(db, 4, "CUSTOM", "hi")

    @pytest.mark.asyncio
    @patch(SEND_MESSAGE, new_callable=AsyncMock)
    async def test_telegram_disabled_is_skipped(self, mock_send):
        db = mock_db()
        db.get = AsyncMock(return_value=_client(telegram_enabled=False))

        result = await send_manual_notification(db, 4, "CUSTOM", "hi")

        assert result["skipped"] is True
        mock_send.assert_not_awaited()
        db.add.assert_not_called()

    @pytest.mark.asyncio
    @patch(SEND_MESSAGE, new_callable=AsyncMock, return_value={"message_id": 1})
    async def test_sent_and_logged(self, mock_send):
        db = mock_db()
        db.get = AsyncMock(return_value=_client())

        result = await send_manual_notification(db, 4, "WELCOME", "환영합니다")

        log = result["log"]
        assert result["skipped"] is False
        assert (log.status, log.recipient, log.client_id) == ("SENT", "777", 4)
        assert (log.notification_type, log.channel) == ("WELCOME", "telegram")
        mock_send.assert_awaited_once_with(chat_id="777", text="환영합니다")
        db.add.assert_called_once_with(log)
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    @patch(SEND_EMAIL, new_callable=AsyncMock, return_value=True)
    async def test_email_body_is_escaped(self, mock_email):
        db = mock_db()
        db.get = AsyncMock(return_value=_client())

        await send_manual_notification(db, 4, "CUSTOM", "<b>hi</b>\nthere", channel="EMAIL")

        kwargs = mock_email.await_args.kwargs
        assert kwargs["to"] == "ads@polar.kr"
        assert "&lt;b&gt;hi&lt;/b&gt;<br>there" in kwargs["html"]

    @pytest.mark.asyncio
    @patch(SEND_MESSAGE, new_callable=AsyncMock, side_effect=RuntimeError("Forbidden: bot was blocked"))
    async def test_transport_failure_is_logged(self, mock_send):
        db = mock_db()
        db.get = AsyncMock(return_value=_client())

        result = await send_manual_notification(db, 4, "CUSTOM", "hi")

        assert result["log"].status == "FAILED"
        assert "blocked" in result["log"].error_message
        db.commit.assert_awaited_once()


class TestLogQueries:
    @pytest.mark.asyncio
    async def test_today_stats(self):
        db = mock_db(mock_result(rows=[("SENT", 5), ("FAILED", 2), ("SKIPPED", 1)]))

        assert await today_stats(db) == {"sent": 5, "failed": 2, "total": 8}

    @pytest.mark.asyncio
    async def test_list_includes_client_name(self):
        log = NotificationLog(
            client_id=4, notification_type="WELCOME", channel="telegram",
            recipient="777", message="hi", status="SENT",
        )
        object.__setattr__(log, "id", 1)
        db = mock_db(mock_result(scalar_one=1), mock_result(rows=[(log, "Polar Cafe")]))

        items, total = await notification.list_notification_logs(db, client_id=4)

        assert total == 1
        assert items[0]["client_name"] == "Polar Cafe"
        assert items[0]["status"] == "SENT"
