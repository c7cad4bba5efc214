from collections.abc import AsyncIterator, Sequence
from datetime import UTC, datetime
from pathlib import Path

import pytest
import pytest_asyncio

from sqllog_report.domain import LogRecord, TimeWindow
from sqllog_report.exceptions import RecordValidationError
from sqllog_report.store import MatchRule, Sample, SqlAlchemyRecordStore

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


class InMemoryRecordStore:
    """RecordStore double that evaluates rules in Python."""

    def __init__(self, records: Sequence[LogRecord] = ()) -> None:
        self.records: list[LogRecord] = []
        self.insert_calls = 0
        self.fetch_calls = 0
        for record in records:
            self.records.append(_stamped(record))

    async def create_schema(self) -> None:
        return None

    async def insert_batch(self, records: Sequence[LogRecord]) -> None:
        for index, record in enumerate(records):
            if not record.database_name or not record.sql_text:
                raise RecordValidationError(index)
        self.insert_calls += 1
        self.records.extend(_stamped(record) for record in records)

    async def list_by_database(self, name: str, limit: int | None = None) -> list[LogRecord]:
        rows = [record for record in reversed(self.records) if record.database_name == name]
        return rows[:limit] if limit is not None else rows

    async def list_distinct_databases(self) -> list[str]:
        return sorted({record.database_name for record in self.records})

    async def count_matching(
        self,
        window: TimeWindow | None,
        database: str | None = None,
        rule: MatchRule | None = None,
    ) -> int:
        return len(self._select(window, database, rule))

    async def list_matching(
        self,
        window: TimeWindow | None,
        database: str | None = None,
        rule: MatchRule | None = None,
        limit: int | None = None,
    ) -> list[LogRecord]:
        rows = sorted(
            self._select(window, database, rule),
            key=lambda record: (-record.exec_time_ms, -record.exec_count),
        )
        return rows[:limit] if limit is not None else rows

    async def count_by_database(
        self, window: TimeWindow | None, database: str | None = None
    ) -> dict[str, int]:
        counts: dict[str, int] = {}
        for record in self._select(window, database, None):
            counts[record.database_name] = counts.get(record.database_name, 0) + 1
        return counts

    async def fetch_samples(
        self, window: TimeWindow | None, database: str | None = None
    ) -> list[Sample]:
        self.fetch_calls += 1
        return [
            Sample(r.database_name, r.sql_text, r.exec_time_ms, r.exec_count)
            for r in self._select(window, database, None)
        ]

    def _select(
        self, window: TimeWindow | None, database: str | None, rule: MatchRule | None
    ) -> list[LogRecord]:
        return [
            record
            for record in self.records
            if (window is None or window.contains(record.created_at))  # type: ignore[arg-type]
            and (not database or record.database_name == database)
            and (rule is None or rule.matches(record))
        ]


def _stamped(record: LogRecord) -> LogRecord:
    if record.created_at is not None:
        return record
    return LogRecord(
        database_name=record.database_name,
        sql_text=record.sql_text,
        exec_time_ms=record.exec_time_ms,
        exec_count=record.exec_count,
        created_at=NOW,
    )


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def fixture_log() -> Path:
    return Path(__file__).parent / "fixtures" / "sample_sql.log"


@pytest_asyncio.fixture
async def sql_store(tmp_path: Path) -> AsyncIterator[SqlAlchemyRecordStore]:
    store = SqlAlchemyRecordStore.from_url(
        f"sqlite+aiosqlite:///{tmp_path / 'sqllog.db'}", batch_size=2
    )
    await store.create_schema()
    try:
        yield store
    finally:
        await store.close()
