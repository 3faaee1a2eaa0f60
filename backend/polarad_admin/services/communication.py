"""Customer support threads."""

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from polarad_admin.core.exceptions import InvalidStateError, NotFoundError
from polarad_admin.core.security import AdminSession
from polarad_admin.models.communication import CommunicationMessage, CommunicationThread
from polarad_admin.services.state_machines import EntityType, ThreadStatus
from polarad_admin.services.stats import invalidate_status_counts, status_counts
from polarad_admin.services.transitions import apply_transition, atomic

logger = logging.getLogger(__name__)


async def get_thread(db: AsyncSession, thread_id: int, with_messages: bool = False) -> CommunicationThread:
    stmt = select(CommunicationThread).where(CommunicationThread.id == thread_id)
    if with_messages:
        stmt = stmt.options(selectinload(CommunicationThread.messages))
    result = await db.execute(stmt)
    thread = result.scalar_one_or_none()
    if not thread:
        raise NotFoundError("Thread", thread_id)
    return thread


async def list_threads(
    db: AsyncSession,
    *,
    status: str | None = None,
    category: str | None = None,
    offset: int = 0,
    limit: int = 20,
) -> tuple[list[CommunicationThread], int]:
    conditions = []
    if status:
        conditions.append(CommunicationThread.status == status)
    if category:
        conditions.append(CommunicationThread.category == category)

    total = (
        await db.execute(select(func.count(CommunicationThread.id)).where(*conditions))
    ).scalar_one()
    result = await db.execute(
        select(CommunicationThread)
        .where(*conditions)
        .order_by(
            CommunicationThread.last_reply_at.desc().nulls_last(),
            CommunicationThread.id.desc(),
        )
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def thread_stats(db: AsyncSession) -> dict[str, int]:
    counts = dict(await status_counts(db, CommunicationThread))
    unread = await db.execute(
        select(func.count(CommunicationMessage.id)).where(
            CommunicationMessage.author_type == "user",
            CommunicationMessage.is_read_by_admin == False,  # noqa: E712
        )
    )
    counts["unread"] = unread.scalar_one()
    return counts


async def open_thread(db: AsyncSession, thread_id: int) -> CommunicationThread:
    """Load a thread with messages and mark customer messages as read by admin."""
    thread = await get_thread(db, thread_id, with_messages=True)
    async with atomic(db):
        await db.execute(
            update(CommunicationMessage)
            .where(
                CommunicationMessage.thread_id == thread_id,
                CommunicationMessage.author_type == "user",
                CommunicationMessage.is_read_by_admin == False,  # noqa: E712
            )
            .values(is_read_by_admin=True)
        )
    for message in thread.messages:
        if message.author_type == "user":
            message.is_read_by_admin = True
    return thread


async def update_thread(
    db: AsyncSession,
    thread_id: int,
    changed_by: str,
    status: str | None = None,
    expected_completion_date: datetime | None = None,
) -> CommunicationThread:
    thread = await get_thread(db, thread_id)
    async with atomic(db):
        if status and status != thread.status:
            apply_transition(db, EntityType.THREAD, thread, status, changed_by=changed_by)
        if expected_completion_date is not None:
            thread.expected_completion_date = expected_completion_date
    await invalidate_status_counts(CommunicationThread.__tablename__)
    return thread


async def reply_to_thread(
    db: AsyncSession,
    thread_id: int,
    admin: AdminSession,
    content: str,
    attachments: list | None = None,
    expected_completion_date: datetime | None = None,
    change_status: str | None = None,
) -> CommunicationMessage:
    """Post an admin reply; message and thread update commit together.

    An OPEN thread moves to IN_PROGRESS unless ``change_status`` says otherwise.
    """
    if not content or not content.strip():
        raise InvalidStateError("Reply content is required")

    thread = await get_thread(db, thread_id)
    now = datetime.now(timezone.utc)

    async with atomic(db):
        message = CommunicationMessage(
            thread_id=thread.id,
            author_id=admin.admin_id,
            author_type="admin",
            author_name=admin.label,
            content=content.strip(),
            attachments=attachments or None,
            expected_completion_date=expected_completion_date,
            is_read_by_admin=True,
            is_read_by_user=False,
        )
        db.add(message)

        target = change_status
        if target is None and thread.status == ThreadStatus.OPEN.value:
            target = ThreadStatus.IN_PROGRESS.value
        if target and target != thread.status:
            apply_transition(db, EntityType.THREAD, thread, target, changed_by=admin.label)
        thread.last_reply_at = now
        if expected_completion_date is not None:
            thread.expected_completion_date = expected_completion_date

    await invalidate_status_counts(CommunicationThread.__tablename__)

    from polarad_admin.services.notification import notify_thread_reply

    await notify_thread_reply(thread, thread.user, message.content)
    return message
