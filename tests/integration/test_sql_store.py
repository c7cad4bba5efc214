from datetime import UTC, datetime, timedelta, timezone
from pathlib import Path

import pytest

from sqllog_report.domain import AbnormalRule, AnomalyRule, LogRecord, TimeWindow
from sqllog_report.exceptions import RecordValidationError, StoreError
from sqllog_report.store import RecordStore, Sample, SqlAlchemyRecordStore

T0 = datetime(2024, 5, 1, 0, 0, tzinfo=UTC)


def _record(db: str, sql: str, exec_time_ms: int, exec_count: int, hours: int = 0) -> LogRecord:
    return LogRecord(db, sql, exec_time_ms, exec_count, created_at=T0 + timedelta(hours=hours))


class TestSqlAlchemyRecordStore:
    @pytest.mark.asyncio
    async def test_implements_protocol(self, sql_store: SqlAlchemyRecordStore) -> None:
        assert isinstance(sql_store, RecordStore)

    @pytest.mark.asyncio
    async def test_insert_and_list_newest_first(self, sql_store: SqlAlchemyRecordStore) -> None:
        await sql_store.insert_batch(
            [
                _record("sales", "SELECT 1", 10, 1, hours=0),
                _record("sales", "SELECT 2", 20, 2, hours=2),
                _record("sales", "SELECT 3", 30, 3, hours=1),
                _record("hr", "SELECT 4", 40, 4),
            ]
        )

        rows = await sql_store.list_by_database("sales")

        assert [row.sql_text for row in rows] == ["SELECT 2", "SELECT 3", "SELECT 1"]
        assert rows[0].created_at == T0 + timedelta(hours=2)
        assert rows[0].created_at.tzinfo is not None
        assert len(await sql_store.list_by_database("sales", limit=1)) == 1

    @pytest.mark.asyncio
    async def test_batch_larger_than_chunk_size(self, sql_store: SqlAlchemyRecordStore) -> None:
        await sql_store.insert_batch([_record("a", f"SELECT {i}", i, 1) for i in range(7)])

        assert await sql_store.count_matching(None) == 7

    @pytest.mark.asyncio
    async def test_invalid_record_rejects_whole_batch(
        self, sql_store: SqlAlchemyRecordStore
    ) -> None:
        batch = [_record("a", "SELECT 1", 1, 1), _record("a", "", 1, 1), _record("", "x", 1, 1)]

        with pytest.raises(RecordValidationError) as excinfo:
            await sql_store.insert_batch(batch)

        assert excinfo.value.index == 1
        assert await sql_store.count_matching(None) == 0

    @pytest.mark.asyncio
    async def test_created_at_assigned_when_missing(
        self, sql_store: SqlAlchemyRecordStore
    ) -> None:
        before = datetime.now(UTC) - timedelta(seconds=1)
        await sql_store.insert_batch([LogRecord("a", "SELECT 1", 1, 1)])

        [row] = await sql_store.list_by_database("a")

        assert row.created_at is not None
        assert row.created_at >= before

    @pytest.mark.asyncio
    async def test_non_utc_timestamps_are_normalized(
        self, sql_store: SqlAlchemyRecordStore
    ) -> None:
        plus7 = timezone(timedelta(hours=7))
        moment = datetime(2024, 5, 1, 7, 0, tzinfo=plus7)
        await sql_store.insert_batch([LogRecord("a", "SELECT 1", 1, 1, created_at=moment)])

        [row] = await sql_store.list_by_database("a")
        window = TimeWindow(start=T0 - timedelta(minutes=1), end=T0 + timedelta(minutes=1))

        assert row.created_at == moment
        assert await sql_store.count_matching(window) == 1

    @pytest.mark.asyncio
    async def test_distinct_databases_sorted(self, sql_store: SqlAlchemyRecordStore) -> None:
        await sql_store.insert_batch(
            [_record("zeta", "q", 1, 1), _record("alpha", "q", 1, 1), _record("zeta", "q", 1, 1)]
        )

        assert await sql_store.list_distinct_databases() == ["alpha", "zeta"]

    @pytest.mark.asyncio
    async def test_window_is_inclusive(self, sql_store: SqlAlchemyRecordStore) -> None:
        await sql_store.insert_batch(
            [_record("a", "q", 1, 1, hours=h) for h in (0, 1, 2, 3)]
        )
        window = TimeWindow(start=T0 + timedelta(hours=1), end=T0 + timedelta(hours=2))

        assert await sql_store.count_matching(window) == 2
        assert await sql_store.count_by_database(window) == {"a": 2}

    @pytest.mark.asyncio
    async def test_anomaly_rule_and_ordering(self, sql_store: SqlAlchemyRecordStore) -> None:
        await sql_store.insert_batch(
            [
                _record("a", "fast", 10, 1),
                _record("a", "slow", 1500, 1),
                _record("a", "hot", 600, 150),
                _record("b", "slowest", 3000, 1),
                _record("a", "tie", 1500, 9),
            ]
        )
        rule = AnomalyRule(slow_ms=1000, freq_slow_ms=500, freq_count=100)

        rows = await sql_store.list_matching(None, None, rule)

        assert [row.sql_text for row in rows] == ["slowest", "tie", "slow", "hot"]
        assert await sql_store.count_matching(None, None, rule) == 4
        assert await sql_store.count_matching(None, "a", rule) == 3
        assert len(await sql_store.list_matching(None, None, rule, limit=2)) == 2

    @pytest.mark.asyncio
    async def test_abnormal_rule_requires_both(self, sql_store: SqlAlchemyRecordStore) -> None:
        await sql_store.insert_batch(
            [
                _record("a", "both", 500, 100),
                _record("a", "time only", 5000, 1),
                _record("a", "count only", 1, 5000),
            ]
        )
        rule = AbnormalRule(exec_time_ms=500, exec_count=100)

        rows = await sql_store.list_matching(None, "a", rule)

        assert [row.sql_text for row in rows] == ["both"]

    @pytest.mark.asyncio
    async def test_fetch_samples(self, sql_store: SqlAlchemyRecordStore) -> None:
        await sql_store.insert_batch([_record("a", "q1", 5, 6), _record("b", "q2", 7, 8)])

        samples = await sql_store.fetch_samples(None, "b")

        assert samples == [Sample("b", "q2", 7, 8)]

    @pytest.mark.asyncio
    async def test_database_failures_raise_store_error(self, tmp_path: Path) -> None:
        store = SqlAlchemyRecordStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'bare.db'}")
        try:
            with pytest.raises(StoreError):
                await store.count_matching(None)
        finally:
            await store.close()
