"""Meta ads historical backfill.

A requested date range is split into inclusive windows, each fetched with
one insights call and saved row by row into ``raw_data``. Progress is
yielded as ``(event, payload)`` pairs for the SSE endpoint. A failed
window or a failed row is reported and skipped; the job carries on.
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from polarad_admin.core.config import settings
from polarad_admin.core.crypto import decrypt_token
from polarad_admin.core.exceptions import InvalidStateError, NotFoundError
from polarad_admin.models.client import Client
from polarad_admin.models.raw_data import RawData
from polarad_admin.services.meta import fetch_ads_insights, get_action_value

logger = logging.getLogger(__name__)

_KST = ZoneInfo("Asia/Seoul")

RAW_DATA_KEY = ("client_id", "date", "ad_id", "platform", "device")
RAW_DATA_VALUES = (
    "ad_name",
    "campaign_id",
    "campaign_name",
    "currency",
    "impressions",
    "reach",
    "clicks",
    "leads",
    "spend",
)


@dataclass(frozen=True)
class DateWindow:
    start: date
    end: date

    def as_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass(frozen=True)
class BackfillJob:
    client_id: int
    client_name: str
    ad_account_id: str
    access_token: str
    start_date: date
    end_date: date


def split_date_range(start: date, end: date, window_days: int = 30) -> list[DateWindow]:
    """Consecutive inclusive windows of at most ``window_days`` covering [start, end]."""
    windows: list[DateWindow] = []
    current = start
    while current <= end:
        window_end = min(current + timedelta(days=window_days - 1), end)
        windows.append(DateWindow(current, window_end))
        current = window_end + timedelta(days=1)
    return windows


def plan_windows(
    start: date,
    end: date,
    threshold_days: int | None = None,
    window_days: int | None = None,
) -> list[DateWindow]:
    """One window, or 30-day windows when the span exceeds the threshold."""
    threshold = threshold_days if threshold_days is not None else settings.backfill_split_threshold_days
    size = window_days if window_days is not None else settings.backfill_window_days
    if (end - start).days > threshold:
        return split_date_range(start, end, size)
    return [DateWindow(start, end)]


def default_range(days: int | None = None, today: date | None = None) -> tuple[date, date]:
    """The ``days`` days ending yesterday."""
    days = days or settings.backfill_default_days
    today = today or datetime.now(_KST).date()
    end = today - timedelta(days=1)
    return end - timedelta(days=days - 1), end


def _to_int(value) -> int:
    try:
        return int(float(value or 0))
    except (TypeError, ValueError):
        return 0


def _to_decimal(value) -> Decimal:
    try:
        return Decimal(str(value or 0))
    except InvalidOperation:
        return Decimal(0)


def to_raw_record(client_id: int, item: dict) -> dict:
    """Map one insights row to ``raw_data`` column values."""
    return {
        "client_id": client_id,
        "date": date.fromisoformat(item["date_start"]),
        "ad_id": item["ad_id"],
        "ad_name": item.get("ad_name") or "Unknown",
        "campaign_id": item.get("campaign_id") or "",
        "campaign_name": item.get("campaign_name") or "Unknown",
        "platform": item.get("publisher_platform") or "unknown",
        "device": item.get("device_platform") or "unknown",
        "currency": item.get("account_currency") or "KRW",
        "impressions": _to_int(item.get("impressions")),
        "reach": _to_int(item.get("reach")),
        "clicks": _to_int(item.get("inline_link_clicks")),
        "leads": get_action_value(item.get("actions"), "lead"),
        "spend": _to_decimal(item.get("spend")),
    }


def upsert_statement(record: dict):
    """INSERT ... ON CONFLICT (natural key) DO UPDATE: the latest values win."""
    stmt = pg_insert(RawData).values(**record)
    return stmt.on_conflict_do_update(
        index_elements=[getattr(RawData, col) for col in RAW_DATA_KEY],
        set_={
            **{col: getattr(stmt.excluded, col) for col in RAW_DATA_VALUES},
            "updated_at": func.now(),
        },
    )


async def upsert_raw_data(db: AsyncSession, record: dict) -> None:
    """Upsert one row inside a savepoint so a bad row does not poison the window."""
    async with db.begin_nested():
        await db.execute(upsert_statement(record))


async def _get_client(db: AsyncSession, client_id: int) -> Client:
    client = await db.get(Client, client_id)
    if client is None:
        raise NotFoundError("Client", client_id)
    return client


async def check_backfill(db: AsyncSession, client_id: int) -> dict:
    client = await _get_client(db, client_id)
    has_account_id = bool(client.meta_ad_account_id)
    has_token = bool(client.encrypted_access_token)

    result = await db.execute(
        select(func.max(RawData.date)).where(RawData.client_id == client_id)
    )
    latest = result.scalar_one_or_none()

    missing = []
    if not has_account_id:
        missing.append("Meta ad account id")
    if not has_token:
        missing.append("Access token")

    return {
        "can_backfill": has_account_id and has_token,
        "client": {
            "id": client.id,
            "name": client.client_name,
            "has_account_id": has_account_id,
            "has_token": has_token,
            "latest_data_date": latest.isoformat() if latest else None,
        },
        "missing_requirements": missing,
    }


async def prepare_backfill(
    db: AsyncSession,
    client_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
    days: int | None = None,
) -> BackfillJob:
    """Validate the client and range before any streaming starts."""
    client = await _get_client(db, client_id)
    if not client.meta_ad_account_id:
        raise InvalidStateError("Meta ad account id is not set for this client")

    access_token = decrypt_token(client.encrypted_access_token)
    if not access_token:
        raise InvalidStateError("Access token is missing or could not be decrypted")

    if start_date and end_date:
        start, end = start_date, end_date
    else:
        start, end = default_range(days)
    if start > end:
        raise InvalidStateError("start_date must not be after end_date")

    return BackfillJob(
        client_id=client.id,
        client_name=client.client_name,
        ad_account_id=client.meta_ad_account_id,
        access_token=access_token,
        start_date=start,
        end_date=end,
    )


def _log(message: str, kind: str = "info") -> tuple[str, dict]:
    now = datetime.now(_KST).strftime("%H:%M:%S")
    return "log", {"time": now, "type": kind, "message": message}


async def run_backfill(
    db: AsyncSession,
    job: BackfillJob,
    pause_seconds: float | None = None,
) -> AsyncIterator[tuple[str, dict]]:
    """Run the job, yielding ``(event, payload)`` as work progresses."""
    from polarad_admin.services.notification import notify_backfill_result

    pause = settings.backfill_window_pause_seconds if pause_seconds is None else pause_seconds
    windows = plan_windows(job.start_date, job.end_date)
    span_days = (job.end_date - job.start_date).days
    total_fetched = 0
    total_saved = 0

    try:
        yield _log(f"🔍 {job.client_name} 백필 시작")
        yield _log(f"📅 기간: {job.start_date} ~ {job.end_date} ({span_days}일)")
        if len(windows) > 1:
            yield _log(f"⚠️ 90일 초과 - {len(windows)}개 구간으로 분할 실행", "warning")

        for index, window in enumerate(windows, start=1):
            yield _log(f"📡 [{index}/{len(windows)}] {window.start} ~ {window.end} 수집 중...")
            yield "progress", {
                "current": index,
                "total": len(windows),
                "phase": "fetching",
                "range": window.as_dict(),
            }

            try:
                insights = await fetch_ads_insights(
                    job.ad_account_id,
                    job.access_token,
                    window.start.isoformat(),
                    window.end.isoformat(),
                )
            except Exception as exc:
                logger.warning(
                    "Backfill window %s~%s failed for client %d: %s",
                    window.start, window.end, job.client_id, exc,
                )
                yield _log(f"❌ API 오류: {exc}", "error")
                continue

            yield _log(f"📊 {len(insights)}개 레코드 수신", "success")
            total_fetched += len(insights)

            if insights:
                yield _log("💾 저장 시작...")
                yield "progress", {
                    "current": index,
                    "total": len(windows),
                    "phase": "saving",
                    "records": len(insights),
                }
                saved = 0
                for item in insights:
                    try:
                        await upsert_raw_data(db, to_raw_record(job.client_id, item))
                        saved += 1
                    except Exception as exc:
                        logger.warning("Backfill row skipped for client %d: %s", job.client_id, exc)
                        yield _log(f"⚠️ 저장 중 오류: {exc}", "warning")
                await db.commit()
                total_saved += saved
                yield _log(f"✅ {saved}건 저장 완료", "success")
            else:
                yield _log("⚠️ 해당 기간 데이터 없음", "warning")

            if index < len(windows):
                yield _log("⏳ 다음 구간 대기 중...")
                await asyncio.sleep(pause)

        yield _log("🎉 백필 완료!", "success")
        yield _log(f"📊 총 수집: {total_fetched}건")
        yield _log(f"💾 총 저장: {total_saved}건")
        yield "complete", {
            "success": True,
            "total_records": total_fetched,
            "saved_records": total_saved,
            "duration": f"{len(windows)}개 구간 처리",
            "start_date": job.start_date.isoformat(),
            "end_date": job.end_date.isoformat(),
        }
        logger.info(
            "Backfill finished for client %d: fetched=%d saved=%d",
            job.client_id, total_fetched, total_saved,
        )
        await notify_backfill_result(
            job.client_name, job.start_date, job.end_date, total_fetched, total_saved, True
        )
    except Exception as exc:
        logger.exception("Backfill failed for client %d", job.client_id)
        await db.rollback()
        message = str(exc) or exc.__class__.__name__
        yield _log(f"❌ 오류 발생: {message}", "error")
        yield "error", {"message": message}
        await notify_backfill_result(
            job.client_name, job.start_date, job.end_date, 0, 0, False, message
        )


def format_sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False, default=str)}\n\n"
