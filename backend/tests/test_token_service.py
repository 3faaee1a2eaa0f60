"""Tests for the Meta token registry."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from polarad_admin.core.exceptions import NotFoundError
from polarad_admin.models.client import Client, TokenRefreshLog
from polarad_admin.services.token import (
    list_token_status,
    mark_expired_tokens,
    record_token_refresh,
)

from conftest import mock_db, mock_result

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _client(client_id: int, auth_status: str = "ACTIVE", expires_in: int | None = None) -> Client:
    client = Client(
        client_name=f"client-{client_id}",
        auth_status=auth_status,
        token_expires_at=NOW + timedelta(days=expires_in, hours=1) if expires_in is not None else None,
        is_active=True,
    )
    object.__setattr__(client, "id", client_id)
    return client


class TestTokenStatus:
    @pytest.mark.asyncio
    async def test_groups_clients(self):
        clients = [
            _client(1, expires_in=-2),
            _client(2, expires_in=2),
            _client(3, expires_in=10),
            _client(4, expires_in=60),
            _client(5, auth_status="AUTH_REQUIRED"),
            _client(6, auth_status="TOKEN_EXPIRED", expires_in=30),
            _client(7),
        ]
        db = mock_db(mock_result(items=clients))

        result = await list_token_status(db, days=14, now=NOW)

        assert [c["id"] for c in result["expired"]] == [1, 6]
        assert [c["id"] for c in result["expiring"]] == [2, 3]
        assert [c["id"] for c in result["auth_required"]] == [5]
        assert result["summary"] == {"expiring": 2, "expired": 2, "auth_required": 1, "critical": 1}
        assert result["expiring"][0]["days_left"] == 2


class TestRecordRefresh:
    @pytest.mark.asyncio
    @patch("polarad_admin.services.token.encrypt_token", return_value="cipher")
    async def test_success_stores_encrypted_token(self, mock_encrypt):
        client = _client(1, auth_status="TOKEN_EXPIRED")
        db = mock_db()
        db.get = AsyncMock(return_value=client)
        expires = NOW + timedelta(days=60)

        entry = await record_token_refresh(db, 1, access_token="EAAB", expires_at=expires)

        assert isinstance(entry, TokenRefreshLog)
        assert entry.success is True
        assert client.encrypted_access_token == "cipher"
        assert client.token_expires_at == expires
        assert client.auth_status == "ACTIVE"
        mock_encrypt.assert_called_once_with("EAAB")
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    @patch("polarad_admin.services.token.encrypt_token")
    async def test_failure_only_logs(self, mock_encrypt):
        client = _client(1, auth_status="TOKEN_EXPIRED")
        db = mock_db()
        db.get = AsyncMock(return_value=client)

        entry = await record_token_refresh(db, 1, success=False, error_message="invalid grant")

        assert entry.error_message == "invalid grant"
        assert client.auth_status == "TOKEN_EXPIRED"
        mock_encrypt.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_client(self):
        db = mock_db()
        db.get = AsyncMock(return_value=None)

        with pytest.raises(NotFoundError):
            await record_token_refresh(db, 404)


class TestMarkExpired:
    @pytest.mark.asyncio
    async def test_returns_rowcount(self):
        result = MagicMock(rowcount=3)
        db = mock_db(result)

        assert await mark_expired_tokens(db, now=NOW) == 3
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_nothing_expired(self):
        db = mock_db(MagicMock(rowcount=0))

        assert await mark_expired_tokens(db, now=NOW) == 0
