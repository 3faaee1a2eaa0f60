"""Tests for submission review: approve creates workflows, reject needs a reason."""

from unittest.mock import AsyncMock, patch

import pytest

from polarad_admin.core.exceptions import InvalidStateError, NotFoundError
from polarad_admin.models.audit_log import AuditLog
from polarad_admin.models.submission import Submission
from polarad_admin.models.user import User
from polarad_admin.models.workflow import Workflow, WorkflowLog
from polarad_admin.services.submission import (
    approve_submission,
    get_submission,
    reject_submission,
    start_review,
)

from conftest import make_admin, mock_db, mock_result


def _submission(id: int = 4, status: str = "SUBMITTED", slack_channel_id=None) -> Submission:
    submission = Submission(
        user_id=9, status=status, brand_name="Polar Cafe", slack_channel_id=slack_channel_id
    )
    object.__setattr__(submission, "id", id)
    submission.user = User(name="Lee", client_name="Polar Cafe", email="lee@example.com")
    return submission


def _added(db, model) -> list:
    return [c.args[0] for c in db.add.call_args_list if isinstance(c.args[0], model)]


class TestGetSubmission:
    @pytest.mark.asyncio
    async def test_missing_raises_not_found(self):
        db = mock_db(mock_result(scalar=None))
        with pytest.raises(NotFoundError):
            await get_submission(db, 99)


class TestStartReview:
    @pytest.mark.asyncio
    async def test_moves_to_in_review(self):
        submission = _submission()
        db = mock_db(mock_result(scalar=submission))

        result = await start_review(db, 4, make_admin(admin_id=3))

        assert result.status == "IN_REVIEW"
        assert result.reviewed_by == 3
        db.commit.assert_awaited_once()


class TestApproveSubmission:
    @pytest.mark.asyncio
    @patch(
        "polarad_admin.services.notification.notify_submission_approved",
        new_callable=AsyncMock,
        return_value="C123",
    )
    async def test_creates_default_workflows(self, mock_notify):
        submission = _submission()
        db = mock_db(mock_result(scalar=submission), mock_result(items=[]))

        created = await approve_submission(db, 4, make_admin())

        assert submission.status == "APPROVED"
        assert submission.reviewed_at is not None
        assert [w.type for w in created] == ["NAMECARD", "NAMETAG", "CONTRACT", "ENVELOPE", "WEBSITE"]
        assert all(w.status == "PENDING" and w.user_id == 9 for w in created)

        logs = _added(db, WorkflowLog)
        assert len(logs) == 5
        assert all(log.from_status is None and log.to_status == "PENDING" for log in logs)
        assert len(_added(db, AuditLog)) == 1

        mock_notify.assert_awaited_once_with(submission, submission.user)
        assert submission.slack_channel_id == "C123"
        # status + workflows, then the Slack channel id
        assert db.commit.await_count == 2

    @pytest.mark.asyncio
    @patch(
        "polarad_admin.services.notification.notify_submission_approved",
        new_callable=AsyncMock,
        return_value=None,
    )
    async def test_skips_existing_workflow_types(self, mock_notify):
        submission = _submission(status="IN_REVIEW")
        db = mock_db(
            mock_result(scalar=submission),
            mock_result(items=["NAMECARD", "WEBSITE"]),
        )

        created = await approve_submission(db, 4, make_admin())

        assert [w.type for w in created] == ["NAMETAG", "CONTRACT", "ENVELOPE"]
        assert db.commit.await_count == 1

    @pytest.mark.asyncio
    @patch("polarad_admin.services.notification.notify_submission_approved", new_callable=AsyncMock)
    async def test_explicit_types(self, mock_notify):
        submission = _submission()
        db = mock_db(mock_result(scalar=submission), mock_result(items=[]))

        created = await approve_submission(db, 4, make_admin(), ["WEBSITE", "BLOG", "WEBSITE"])

        assert [w.type for w in created] == ["WEBSITE", "BLOG"]

    @pytest.mark.asyncio
    @patch("polarad_admin.services.notification.notify_submission_approved", new_callable=AsyncMock)
    async def test_already_approved_is_rejected(self, mock_notify):
        db = mock_db(mock_result(scalar=_submission(status="APPROVED")))

        with pytest.raises(InvalidStateError):
            await approve_submission(db, 4, make_admin())

        db.add.assert_not_called()
        db.commit.assert_not_awaited()
        mock_notify.assert_not_awaited()

    @pytest.mark.asyncio
    @patch("polarad_admin.services.notification.notify_submission_approved", new_callable=AsyncMock)
    async def test_draft_is_not_reviewable(self, mock_notify):
        db = mock_db(mock_result(scalar=_submission(status="DRAFT")))

        with pytest.raises(InvalidStateError):
            await approve_submission(db, 4, make_admin())

    @pytest.mark.asyncio
    @patch(
        "polarad_admin.services.notification.notify_submission_approved",
        new_callable=AsyncMock,
        return_value="C999",
    )
    async def test_channel_save_failure_keeps_approval(self, mock_notify):
        submission = _submission()
        db = mock_db(mock_result(scalar=submission), mock_result(items=[]))
        db.commit = AsyncMock(side_effect=[None, RuntimeError("db gone")])

        created = await approve_submission(db, 4, make_admin())

        assert submission.status == "APPROVED"
        assert len(created) == 5
        db.rollback.assert_awaited_once()


class TestRejectSubmission:
    @pytest.mark.asyncio
    @patch("polarad_admin.services.notification.notify_submission_rejected", new_callable=AsyncMock)
    async def test_rejects_with_reason(self, mock_notify):
        submission = _submission(status="IN_REVIEW")
        db = mock_db(mock_result(scalar=submission))

        result = await reject_submission(db, 4, make_admin(), "  Logo file is missing ")

        assert result.status == "REJECTED"
        assert result.rejection_reason == "Logo file is missing"
        assert not _added(db, Workflow)
        mock_notify.assert_awaited_once_with(submission, submission.user, "Logo file is missing")

    @pytest.mark.asyncio
    @patch("polarad_admin.services.notification.notify_submission_rejected", new_callable=AsyncMock)
    async def test_blank_reason_is_rejected(self, mock_notify):
        submission = _submission()
        db = mock_db(mock_result(scalar=submission))

        with pytest.raises(InvalidStateError):
            await reject_submission(db, 4, make_admin(), "   ")

        assert submission.status == "SUBMITTED"
        mock_notify.assert_not_awaited()
