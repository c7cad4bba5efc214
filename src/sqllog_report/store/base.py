from collections.abc import Sequence
from typing import NamedTuple, Protocol, runtime_checkable

from sqllog_report.domain import AbnormalRule, AnomalyRule, LogRecord, TimeWindow

MatchRule = AnomalyRule | AbnormalRule


class Sample(NamedTuple):
    """The columns the statistics engine needs from one stored record."""

    database_name: str
    sql_text: str
    exec_time_ms: int
    exec_count: int


@runtime_checkable
class RecordStore(Protocol):
    """Narrow query surface over persisted log records."""

    async def create_schema(self) -> None:
        ...

    async def insert_batch(self, records: Sequence[LogRecord]) -> None:
        ...

    async def list_by_database(self, name: str, limit: int | None = None) -> list[LogRecord]:
        ...

    async def list_distinct_databases(self) -> list[str]:
        ...

    async def count_matching(
        self,
        window: TimeWindow | None,
        database: str | None = None,
        rule: MatchRule | None = None,
    ) -> int:
        ...

    async def list_matching(
        self,
        window: TimeWindow | None,
        database: str | None = None,
        rule: MatchRule | None = None,
        limit: int | None = None,
    ) -> list[LogRecord]:
        ...

    async def count_by_database(
        self, window: TimeWindow | None, database: str | None = None
    ) -> dict[str, int]:
        ...

    async def fetch_samples(
        self, window: TimeWindow | None, database: str | None = None
    ) -> list[Sample]:
        ...
