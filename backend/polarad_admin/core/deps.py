from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.db.session import async_session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session for the admin routers.

    Work left uncommitted when a handler raises is rolled back before the
    session goes back to the pool.
    """
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
