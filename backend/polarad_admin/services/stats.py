"""Per-status counters for the dashboard list pages, cached in Redis."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.core.cache import (
    cache_delete,
    cache_get_json,
    cache_set_json,
    make_cache_key,
)


def _key(table: str) -> str:
    return make_cache_key("status-counts", table)


async def status_counts(db: AsyncSession, model) -> dict[str, int]:
    """Return ``{status: count, ..., "total": n}`` for ``model``."""
    key = _key(model.__tablename__)
    cached = await cache_get_json(key)
    if cached is not None:
        return cached

    result = await db.execute(
        select(model.status, func.count(model.id)).group_by(model.status)
    )
    counts = {status: count for status, count in result.all()}
    counts["total"] = sum(counts.values())
    await cache_set_json(key, counts)
    return counts


async def invalidate_status_counts(*tables: str) -> None:
    await cache_delete(*(_key(t) for t in tables))
