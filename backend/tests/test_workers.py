"""Tests for the Celery tasks, run eagerly in-process."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from polarad_admin.core.config import settings
from polarad_admin.services.telegram import TelegramApiError
from polarad_admin.workers import celery_app
from polarad_admin.workers.notifications import deliver_notification
from polarad_admin.workers.tokens import mark_expired_tokens

SEND = "polarad_admin.services.notification.send_via_channel"


class TestDeliverNotification:
    @patch(SEND, new_callable=AsyncMock, return_value={"message_id": 1})
    def test_sends_through_channel(self, mock_send):
        assert deliver_notification("telegram", {"chat_id": "1", "text": "hi"}) is True
        mock_send.assert_awaited_once_with("telegram", {"chat_id": "1", "text": "hi"})

    @patch(SEND, new_callable=AsyncMock, return_value=False)
    def test_unconfigured_transport(self, mock_send):
        assert deliver_notification("email", {"to": "a@b.kr", "subject": "s", "html": "h"}) is False

    def test_unknown_channel_is_dropped(self, notification_log_session):
        assert deliver_notification("fax", {}) is False
        notification_log_session.add.assert_not_called()

    def test_telegram_api_error_is_retried(self):
        with patch.object(settings, "bot_token", "123:abc"), patch(
            "polarad_admin.services.telegram._call",
            new_callable=AsyncMock,
            side_effect=TelegramApiError("sendMessage", "Too Many Requests: retry after 5"),
        ) as mock_call:
            with pytest.raises(TelegramApiError, match="Too Many Requests"):
                deliver_notification("telegram", {"chat_id": "1", "text": "hi"})

        mock_call.assert_awaited_once()

    def test_value_error_from_transport_is_retried(self):
        with patch(SEND, new_callable=AsyncMock, side_effect=ValueError("bad payload")):
            with pytest.raises(ValueError, match="bad payload"):
                deliver_notification("sms", {"to": "010", "content": "hi"})

    @patch(SEND, new_callable=AsyncMock, side_effect=RuntimeError("telegram down"))
    def test_transport_failure_is_retried(self, mock_send):
        with pytest.raises(RuntimeError, match="telegram down"):
            deliver_notification("telegram", {"chat_id": "1", "text": "hi"})

    @patch(SEND, new_callable=AsyncMock, return_value={"message_id": 1})
    def test_outcome_is_logged_with_type_and_client(self, mock_send, notification_log_session):
        deliver_notification("telegram", {"chat_id": "1", "text": "hi"}, "WELCOME", 4)

        log = notification_log_session.add.call_args.args[0]
        assert (log.status, log.notification_type, log.client_id) == ("SENT", "WELCOME", 4)


class TestMarkExpiredTokens:
    @patch("polarad_admin.services.token.mark_expired_tokens", new_callable=AsyncMock, return_value=2)
    @patch("polarad_admin.workers.tokens.async_session_factory")
    def test_runs_in_own_session(self, mock_factory, mock_mark):
        session = AsyncMock()
        cm = MagicMock()
        cm.__aenter__ = AsyncMock(return_value=session)
        cm.__aexit__ = AsyncMock(return_value=False)
        mock_factory.return_value = cm

        assert mark_expired_tokens() == 2
        mock_mark.assert_awaited_once_with(session)
        session.close.assert_awaited_once()


def test_beat_schedule_registers_token_sweep():
    entry = celery_app.conf.beat_schedule["mark-expired-tokens-hourly"]

    assert entry["task"] == "mark_expired_tokens"
    assert "mark_expired_tokens" in celery_app.tasks
    assert "deliver_notification" in celery_app.tasks
