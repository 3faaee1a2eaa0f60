"""Async engine and session factory shared by the API, SSE streams and workers."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from polarad_admin.core.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
    pool_pre_ping=True,
)

# Objects stay usable after commit: services return them to the routers
async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)
