"""Tests for the design review cycle and its effect on the parent workflow."""

from unittest.mock import AsyncMock, patch

import pytest

from polarad_admin.core.exceptions import InvalidStateError, NotFoundError
from polarad_admin.models.design import Design, DesignFeedback, DesignVersion
from polarad_admin.models.user import User
from polarad_admin.models.workflow import Workflow, WorkflowLog
from polarad_admin.services.design import (
    approve_design,
    create_design,
    record_feedback,
    request_review,
    request_revision,
    set_design_status,
    upload_design_version,
)
from polarad_admin.services.state_machines import InvalidTransitionError

from conftest import make_admin, mock_db, mock_result

NOTIFY_DESIGN = "polarad_admin.services.notification.notify_design_event"
NOTIFY_WORKFLOW = "polarad_admin.services.notification.notify_workflow_status"


def _workflow(status: str = "IN_PROGRESS", revision_count: int = 0) -> Workflow:
    workflow = Workflow(user_id=1, type="NAMECARD", status=status, revision_count=revision_count)
    object.__setattr__(workflow, "id", 7)
    workflow.user = User(name="Lee", client_name="Polar Cafe")
    return workflow


def _design(status: str = "DRAFT", current_version: int = 1, workflow: Workflow | None = None) -> Design:
    design = Design(workflow_id=7, status=status, current_version=current_version)
    object.__setattr__(design, "id", 3)
    design.workflow = workflow or _workflow()
    return design


def _db_for(design: Design, *more):
    db = mock_db(mock_result(scalar=design), *more)
    db.get = AsyncMock(return_value=design.workflow)
    return db


class TestCreateDesign:
    @pytest.mark.asyncio
    async def test_creates_draft_with_first_version(self):
        db = mock_db(mock_result(scalar=None))
        db.get = AsyncMock(return_value=_workflow())

        design = await create_design(db, 7, "https://cdn.polarad.kr/v1.png", None, make_admin(admin_id=2))

        assert design.status == "DRAFT"
        assert design.current_version == 1
        version = next(c.args[0] for c in db.add.call_args_list if isinstance(c.args[0], DesignVersion))
        assert version.version == 1
        assert version.uploaded_by == 2
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_workflow(self):
        db = mock_db()
        db.get = AsyncMock(return_value=None)
        with pytest.raises(NotFoundError):
            await create_design(db, 7, "https://x", None, make_admin())

    @pytest.mark.asyncio
    async def test_one_design_per_workflow(self):
        db = mock_db(mock_result(scalar=3))
        db.get = AsyncMock(return_value=_workflow())
        with pytest.raises(InvalidStateError):
            await create_design(db, 7, "https://x", None, make_admin())


class TestUploadVersion:
    @pytest.mark.asyncio
    @patch(NOTIFY_DESIGN, new_callable=AsyncMock)
    async def test_keeps_status_and_approved_version(self, mock_notify):
        design = _design(status="APPROVED", current_version=2)
        design.approved_version = 2
        db = _db_for(design)

        version = await upload_design_version(db, 3, "https://x/v3.png", "tweak", make_admin())

        assert version.version == 3
        assert design.current_version == 3
        assert design.status == "APPROVED"
        assert design.approved_version == 2
        mock_notify.assert_not_awaited()


class TestRequestReview:
    @pytest.mark.asyncio
    @patch(NOTIFY_WORKFLOW, new_callable=AsyncMock)
    @patch(NOTIFY_DESIGN, new_callable=AsyncMock)
    async def test_moves_workflow_to_design_uploaded(self, mock_design, mock_workflow):
        workflow = _workflow(status="IN_PROGRESS")
        design = _design(status="DRAFT", current_version=2, workflow=workflow)
        db = _db_for(design, mock_result(scalar="https://x/v2.png"))

        await request_review(db, 3, "Kim")

        assert design.status == "PENDING_REVIEW"
        assert workflow.status == "DESIGN_UPLOADED"
        assert workflow.design_url == "https://x/v2.png"
        log = next(c.args[0] for c in db.add.call_args_list if isinstance(c.args[0], WorkflowLog))
        assert log.changed_by == "system"
        db.commit.assert_awaited_once()
        mock_workflow.assert_awaited_once_with(db, workflow, "IN_PROGRESS", "system")
        assert mock_design.await_args.args[0] == "DESIGN_UPLOADED"

    @pytest.mark.asyncio
    @patch(NOTIFY_WORKFLOW, new_callable=AsyncMock)
    @patch(NOTIFY_DESIGN, new_callable=AsyncMock)
    async def test_workflow_elsewhere_is_left_alone(self, mock_design, mock_workflow):
        workflow = _workflow(status="PENDING")
        db = _db_for(_design(status="REVISION_REQUESTED", workflow=workflow))

        await request_review(db, 3, "Kim", notify=False)

        assert workflow.status == "PENDING"
        mock_workflow.assert_not_awaited()
        mock_design.assert_not_awaited()

    @pytest.mark.asyncio
    @patch(NOTIFY_DESIGN, new_callable=AsyncMock)
    async def test_approved_design_cannot_go_back_to_review(self, mock_design):
        db = _db_for(_design(status="APPROVED"))

        with pytest.raises(InvalidTransitionError):
            await request_review(db, 3, "Kim")
        db.rollback.assert_awaited_once()


class TestRequestRevision:
    @pytest.mark.asyncio
    @patch(NOTIFY_WORKFLOW, new_callable=AsyncMock)
    @patch(NOTIFY_DESIGN, new_callable=AsyncMock)
    async def test_bumps_workflow_revision_count(self, mock_design, mock_workflow):
        workflow = _workflow(status="DESIGN_UPLOADED", revision_count=1)
        db = _db_for(_design(status="PENDING_REVIEW", workflow=workflow))

        design = await request_revision(db, 3, "Lee", note="Use the blue logo")

        assert design.status == "REVISION_REQUESTED"
        assert workflow.status == "DESIGN_UPLOADED"
        assert workflow.revision_count == 2
        assert workflow.revision_note == "Use the blue logo"
        mock_design.assert_awaited_once()
        assert mock_design.await_args.kwargs["feedback"] == "Use the blue logo"


class TestApproveDesign:
    @pytest.mark.asyncio
    @patch(NOTIFY_WORKFLOW, new_callable=AsyncMock)
    @patch(NOTIFY_DESIGN, new_callable=AsyncMock)
    async def test_pins_version_and_requests_order(self, mock_design, mock_workflow):
        workflow = _workflow(status="DESIGN_UPLOADED")
        design = _design(status="PENDING_REVIEW", current_version=3, workflow=workflow)
        db = _db_for(design)

        await approve_design(db, 3, "Lee")

        assert design.status == "APPROVED"
        assert design.approved_version == 3
        assert design.approved_at is not None
        assert workflow.status == "ORDER_REQUESTED"
        assert workflow.order_requested_at is not None
        assert mock_design.await_args.args[0] == "DESIGN_APPROVED"


class TestSetDesignStatus:
    @pytest.mark.asyncio
    async def test_unknown_status(self):
        with pytest.raises(InvalidStateError):
            await set_design_status(mock_db(), 3, "PUBLISHED", "Kim")

    @pytest.mark.asyncio
    @patch(NOTIFY_WORKFLOW, new_callable=AsyncMock)
    async def test_draft_resets(self, mock_workflow):
        db = _db_for(_design(status="PENDING_REVIEW"))
        design = await set_design_status(db, 3, "DRAFT", "Kim")
        assert design.status == "DRAFT"


class TestRecordFeedback:
    def _version(self, design: Design) -> DesignVersion:
        version = DesignVersion(design_id=3, version=1, url="https://x/v1.png")
        object.__setattr__(version, "id", 21)
        version.design = design
        return version

    @pytest.mark.asyncio
    @patch(NOTIFY_DESIGN, new_callable=AsyncMock)
    async def test_admin_feedback_notifies_without_status_change(self, mock_design):
        design = _design(status="PENDING_REVIEW")
        db = mock_db(mock_result(scalar=self._version(design)))

        feedback = await record_feedback(db, 21, "admin", "Kim", "  Check the phone number ")

        assert isinstance(feedback, DesignFeedback)
        assert feedback.content == "Check the phone number"
        assert design.status == "PENDING_REVIEW"
        assert mock_design.await_args.args[0] == "DESIGN_FEEDBACK"

    @pytest.mark.asyncio
    @patch(NOTIFY_DESIGN, new_callable=AsyncMock)
    async def test_customer_feedback_is_silent(self, mock_design):
        db = mock_db(mock_result(scalar=self._version(_design())))

        await record_feedback(db, 21, "user", "Lee", "Looks good")

        mock_design.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rejects_unknown_author_type(self):
        with pytest.raises(InvalidStateError):
            await record_feedback(mock_db(), 21, "bot", "x", "hi")

    @pytest.mark.asyncio
    async def test_rejects_empty_content(self):
        with pytest.raises(InvalidStateError):
            await record_feedback(mock_db(), 21, "admin", "Kim", "   ")
