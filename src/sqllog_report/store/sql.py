import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import ColumnElement, and_, func, insert, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from sqllog_report.domain import AbnormalRule, AnomalyRule, LogRecord, TimeWindow
from sqllog_report.exceptions import RecordValidationError, StoreError
from sqllog_report.store.base import MatchRule, Sample
from sqllog_report.store.tables import Base, SqlLogRow

logger = logging.getLogger(__name__)


class SqlAlchemyRecordStore:
    """RecordStore backed by any SQLAlchemy async engine (PostgreSQL, SQLite)."""

    def __init__(self, engine: AsyncEngine, batch_size: int = 500) -> None:
        self._engine = engine
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)
        self._batch_size = batch_size

    @classmethod
    def from_url(
        cls, url: str, batch_size: int = 500, **engine_kwargs: Any
    ) -> "SqlAlchemyRecordStore":
        engine = create_async_engine(url, pool_pre_ping=True, **engine_kwargs)
        return cls(engine, batch_size=batch_size)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def close(self) -> None:
        await self._engine.dispose()

    async def create_schema(self) -> None:
        with _store_errors("create schema"):
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

    async def insert_batch(self, records: Sequence[LogRecord]) -> None:
        """Insert all records in one transaction, or none of them."""
        if not records:
            return

        for index, record in enumerate(records):
            if not record.database_name or not record.sql_text:
                raise RecordValidationError(index)

        now = datetime.now(UTC)
        rows = [
            {
                "db_name": record.database_name,
                "sql_query": record.sql_text,
                "exec_time_ms": record.exec_time_ms,
                "exec_count": record.exec_count,
                "created_at": _to_utc(record.created_at or now),
            }
            for record in records
        ]

        with _store_errors("insert batch"):
            async with self._sessions.begin() as session:
                for offset in range(0, len(rows), self._batch_size):
                    chunk = rows[offset : offset + self._batch_size]
                    await session.execute(insert(SqlLogRow), chunk)

        logger.debug("inserted %d sql log record(s)", len(rows))

    async def list_by_database(self, name: str, limit: int | None = None) -> list[LogRecord]:
        stmt = (
            select(SqlLogRow)
            .where(SqlLogRow.db_name == name.strip())
            .order_by(SqlLogRow.created_at.desc(), SqlLogRow.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        with _store_errors("list by database"):
            async with self._sessions() as session:
                rows = (await session.scalars(stmt)).all()
        return [_to_record(row) for row in rows]

    async def list_distinct_databases(self) -> list[str]:
        stmt = select(SqlLogRow.db_name).distinct().order_by(SqlLogRow.db_name)
        with _store_errors("list databases"):
            async with self._sessions() as session:
                return list((await session.scalars(stmt)).all())

    async def count_matching(
        self,
        window: TimeWindow | None,
        database: str | None = None,
        rule: MatchRule | None = None,
    ) -> int:
        stmt = select(func.count()).select_from(SqlLogRow).where(*_filters(window, database, rule))
        with _store_errors("count"):
            async with self._sessions() as session:
                return int((await session.execute(stmt)).scalar_one())

    async def list_matching(
        self,
        window: TimeWindow | None,
        database: str | None = None,
        rule: MatchRule | None = None,
        limit: int | None = None,
    ) -> list[LogRecord]:
        stmt = (
            select(SqlLogRow)
            .where(*_filters(window, database, rule))
            .order_by(SqlLogRow.exec_time_ms.desc(), SqlLogRow.exec_count.desc(), SqlLogRow.id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        with _store_errors("list"):
            async with self._sessions() as session:
                rows = (await session.scalars(stmt)).all()
        return [_to_record(row) for row in rows]

    async def count_by_database(
        self, window: TimeWindow | None, database: str | None = None
    ) -> dict[str, int]:
        stmt = (
            select(SqlLogRow.db_name, func.count())
            .where(*_filters(window, database, None))
            .group_by(SqlLogRow.db_name)
        )
        with _store_errors("count by database"):
            async with self._sessions() as session:
                result = await session.execute(stmt)
                return {name: int(count) for name, count in result.all()}

    async def fetch_samples(
        self, window: TimeWindow | None, database: str | None = None
    ) -> list[Sample]:
        stmt = select(
            SqlLogRow.db_name,
            SqlLogRow.sql_query,
            SqlLogRow.exec_time_ms,
            SqlLogRow.exec_count,
        ).where(*_filters(window, database, None))
        with _store_errors("fetch samples"):
            async with self._sessions() as session:
                result = await session.execute(stmt)
                return [Sample(*row) for row in result.all()]


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise StoreError(f"{operation}: {exc}") from exc


def _filters(
    window: TimeWindow | None,
    database: str | None,
    rule: MatchRule | None,
) -> list[ColumnElement[bool]]:
    clauses: list[ColumnElement[bool]] = []
    if window is not None:
        clauses.append(SqlLogRow.created_at >= _to_utc(window.start))
        clauses.append(SqlLogRow.created_at <= _to_utc(window.end))
    if database and database.strip():
        clauses.append(SqlLogRow.db_name == database.strip())
    if rule is not None:
        clauses.append(_rule_clause(rule))
    return clauses


def _rule_clause(rule: MatchRule) -> ColumnElement[bool]:
    if isinstance(rule, AnomalyRule):
        return or_(
            SqlLogRow.exec_time_ms >= rule.slow_ms,
            and_(
                SqlLogRow.exec_time_ms >= rule.freq_slow_ms,
                SqlLogRow.exec_count >= rule.freq_count,
            ),
        )
    if isinstance(rule, AbnormalRule):
        return and_(
            SqlLogRow.exec_time_ms >= rule.exec_time_ms,
            SqlLogRow.exec_count >= rule.exec_count,
        )
    raise TypeError(f"unsupported rule: {type(rule).__name__}")


def _to_utc(moment: datetime) -> datetime:
    # SQLite drops tzinfo on write, so every stored and compared value is UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def _to_record(row: SqlLogRow) -> LogRecord:
    created_at = row.created_at
    if created_at is not None and created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)
    return LogRecord(
        database_name=row.db_name,
        sql_text=row.sql_query,
        exec_time_ms=row.exec_time_ms,
        exec_count=row.exec_count,
        created_at=created_at,
    )
