"""Behaviour of the ON CONFLICT upserts (contract counter, raw ads rows).

``UpsertTable`` executes the compiled PostgreSQL statement against an
in-memory dict keyed by the conflict target, holding a lock for the
read-modify-write the way the row lock does in PostgreSQL.
"""

import asyncio
import re
from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.dialects import postgresql

from polarad_admin.core.exceptions import InvalidStateError
from polarad_admin.services.backfill import to_raw_record, upsert_raw_data
from polarad_admin.services.contract import allocate_contract_number

from conftest import mock_result

_EXCLUDED = re.compile(r"(\w+) = excluded\.(\w+)")
_INCREMENT = re.compile(r"(\w+) = \(?\w+\.(\w+) \+ %\((\w+)\)s\)?")


class UpsertTable:
    def __init__(self):
        self.rows: dict[tuple, dict] = {}
        self._lock = asyncio.Lock()

    async def apply(self, stmt):
        compiled = stmt.compile(dialect=postgresql.dialect())
        sql, params = str(compiled), compiled.params
        conflict = re.search(r"ON CONFLICT \(([^)]+)\) DO UPDATE SET (.*?)(?: RETURNING |$)", sql, re.S)
        assert conflict, f"not an upsert: {sql}"
        key_cols = [c.strip() for c in conflict.group(1).split(",")]
        set_clause = conflict.group(2)
        key = tuple(params[c] for c in key_cols)
        values = {c: params[c] for c in stmt.table.c.keys() if c in params}

        async with self._lock:
            existing = self.rows.get(key)
            await asyncio.sleep(0)
            if existing is None:
                row = dict(values)
            else:
                row = dict(existing)
                for target, source in _EXCLUDED.findall(set_clause):
                    row[target] = values[source]
                for target, column, param in _INCREMENT.findall(set_clause):
                    row[target] = existing[column] + params[param]
            self.rows[key] = row

        returning = re.search(r"RETURNING \w+\.(\w+)", sql)
        return row[returning.group(1)] if returning else None


class TableSession:
    """Just enough of ``AsyncSession`` for code that only issues upserts."""

    def __init__(self, table: UpsertTable):
        self.table = table

    async def execute(self, stmt):
        return mock_result(scalar_one=await self.table.apply(stmt))

    @asynccontextmanager
    async def begin_nested(self):
        snapshot = dict(self.table.rows)
        try:
            yield self
        except Exception:
            self.table.rows = snapshot
            raise


class TestContractCounter:
    @pytest.mark.asyncio
    async def test_concurrent_allocations_are_unique(self):
        table = UpsertTable()
        day = date(2025, 3, 1)

        numbers = await asyncio.gather(
            *(allocate_contract_number(TableSession(table), day) for _ in range(25))
        )

        assert len(set(numbers)) == 25
        assert sorted(numbers) == [f"20250301-{n:04d}" for n in range(1, 26)]

    @pytest.mark.asyncio
    async def test_each_day_has_its_own_counter(self):
        session = TableSession(UpsertTable())

        await allocate_contract_number(session, date(2025, 3, 1))
        second = await allocate_contract_number(session, date(2025, 3, 1))
        other_day = await allocate_contract_number(session, date(2025, 3, 2))

        assert second == "20250301-0002"
        assert other_day == "20250302-0001"

    @pytest.mark.asyncio
    async def test_sequence_past_four_digits_is_refused(self):
        table = UpsertTable()
        table.rows[("20250301",)] = {"day": "20250301", "last_value": 9999}

        with pytest.raises(InvalidStateError, match="9999"):
            await allocate_contract_number(TableSession(table), date(2025, 3, 1))


def _insight(ad_id: str = "ad-1", device: str = "mobile_app", **metrics) -> dict:
    row = {
        "date_start": "2025-01-05",
        "ad_id": ad_id,
        "ad_name": "봄 프로모션",
        "campaign_name": "Spring",
        "publisher_platform": "instagram",
        "device_platform": device,
        "impressions": "1000",
        "spend": "10000",
    }
    row.update(metrics)
    return row


class TestRawDataUpsert:
    @pytest.mark.asyncio
    async def test_later_values_win(self):
        table = UpsertTable()
        session = TableSession(table)

        await upsert_raw_data(session, to_raw_record(4, _insight(impressions="1000", spend="10000")))
        await upsert_raw_data(
            session, to_raw_record(4, _insight(impressions="1800", spend="15400.5", ad_name="봄 세일"))
        )

        assert len(table.rows) == 1
        row = next(iter(table.rows.values()))
        assert row["impressions"] == 1800
        assert row["spend"] == Decimal("15400.5")
        assert row["ad_name"] == "봄 세일"
        assert (row["client_id"], row["date"], row["ad_id"]) == (4, date(2025, 1, 5), "ad-1")

    @pytest.mark.asyncio
    async def test_other_device_is_a_separate_row(self):
        table = UpsertTable()
        session = TableSession(table)

        await upsert_raw_data(session, to_raw_record(4, _insight(device="mobile_app")))
        await upsert_raw_data(session, to_raw_record(4, _insight(device="desktop")))
        await upsert_raw_data(session, to_raw_record(5, _insight(device="desktop")))

        assert len(table.rows) == 3

    @pytest.mark.asyncio
    async def test_refetching_a_window_does_not_duplicate(self):
        table = UpsertTable()
        session = TableSession(table)
        window = [to_raw_record(4, _insight(ad_id=f"ad-{i}")) for i in range(5)]

        for _ in range(2):
            await asyncio.gather(*(upsert_raw_data(session, record) for record in window))

        assert len(table.rows) == 5
