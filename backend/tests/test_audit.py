"""Tests for the admin audit trail."""

import json
from unittest.mock import AsyncMock

import pytest

from polarad_admin.models.audit_log import AuditLog
from polarad_admin.services.audit import log_audit

from conftest import mock_db


class TestLogAudit:
    @pytest.mark.asyncio
    async def test_row_is_added_and_flushed(self):
        db = mock_db()

        await log_audit(
            db,
            action="client.create",
            entity_type="client",
            entity_id=4,
            admin_id=1,
            details={"client_name": "폴라 카페"},
        )

        entry = db.add.call_args.args[0]
        assert isinstance(entry, AuditLog)
        assert (entry.action, entry.entity_id, entry.admin_id) == ("client.create", 4, 1)
        assert "폴라 카페" in entry.details
        assert json.loads(entry.details) == {"client_name": "폴라 카페"}
        db.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_details(self):
        db = mock_db()

        await log_audit(db, action="contract.delete", entity_type="contract", entity_id=9)

        assert db.add.call_args.args[0].details is None

    @pytest.mark.asyncio
    async def test_flush_failure_does_not_raise(self, caplog):
        db = mock_db()
        db.flush = AsyncMock(side_effect=RuntimeError("connection reset"))

        await log_audit(db, action="submission.approve", entity_type="submission", entity_id=1)

        assert "Failed to write audit log" in caplog.text
