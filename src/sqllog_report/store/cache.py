import asyncio
from collections.abc import Sequence

from sqllog_report.domain import LogRecord, TimeWindow
from sqllog_report.store.base import MatchRule, RecordStore, Sample

SampleKey = tuple[TimeWindow | None, str | None]


class SampleCachingStore:
    """RecordStore view that reads each ``(window, database)`` sample set once.

    Analyzers running concurrently over the same filter share one in-flight
    fetch. Meant to live for a single report run; every other call goes
    straight to the wrapped store.
    """

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._samples: dict[SampleKey, asyncio.Future[list[Sample]]] = {}

    async def fetch_samples(
        self, window: TimeWindow | None, database: str | None = None
    ) -> list[Sample]:
        key = (window, database)
        pending = self._samples.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._store.fetch_samples(window, database))
            self._samples[key] = pending
        return await asyncio.shield(pending)

    async def create_schema(self) -> None:
        await self._store.create_schema()

    async def insert_batch(self, records: Sequence[LogRecord]) -> None:
        await self._store.insert_batch(records)

    async def list_by_database(self, name: str, limit: int | None = None) -> list[LogRecord]:
        return await self._store.list_by_database(name, limit)

    async def list_distinct_databases(self) -> list[str]:
        return await self._store.list_distinct_databases()

    async def count_matching(
        self,
        window: TimeWindow | None,
        database: str | None = None,
        rule: MatchRule | None = None,
    ) -> int:
        return await self._store.count_matching(window, database, rule)

    async def list_matching(
        self,
        window: TimeWindow | None,
        database: str | None = None,
        rule: MatchRule | None = None,
        limit: int | None = None,
    ) -> list[LogRecord]:
        return await self._store.list_matching(window, database, rule, limit)

    async def count_by_database(
        self, window: TimeWindow | None, database: str | None = None
    ) -> dict[str, int]:
        return await self._store.count_by_database(window, database)
