import asyncio
import logging
import re
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, BinaryIO, ClassVar

from sqllog_report.analyzers import AnalyzerRegistry
from sqllog_report.config import Settings, get_settings
from sqllog_report.core.ingestion import IngestionPipeline
from sqllog_report.core.pipeline import ReportPipeline
from sqllog_report.domain import (
    AbnormalRule,
    IngestResult,
    LogRecord,
    ReportDefaults,
    ReportFilter,
    ReportResult,
    ScanResult,
    load_timezone,
)
from sqllog_report.exceptions import SqlLogError, StreamError
from sqllog_report.input import LineInput, LogFileInput, check_upload
from sqllog_report.output import build_filename, get_output, render_report
from sqllog_report.store import RecordStore, SqlAlchemyRecordStore

logger = logging.getLogger(__name__)

SCAN_DEFAULT_EXEC_TIME_MS = 500
SCAN_DEFAULT_EXEC_COUNT = 100
SCAN_DEFAULT_LIMIT = 100
SCAN_MAX_LIMIT = 1000


class SqlLogService:
    """Entry point for callers: ingestion, queries, scans and reports.

    Failures are logged here once and re-raised unchanged.
    """

    DATABASE_NAME_PATTERN: ClassVar[re.Pattern[str]] = re.compile(r"^[A-Za-z0-9_.-]{1,128}$")

    def __init__(
        self,
        store: RecordStore,
        settings: Settings | None = None,
        registry: AnalyzerRegistry | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or get_settings()
        self._defaults = self._settings.report_defaults()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._ingestion = IngestionPipeline(
            store, max_error_samples=self._settings.max_error_samples
        )
        self._reports = ReportPipeline(store, registry, clock=self._clock)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "SqlLogService":
        settings = settings or get_settings()
        store = SqlAlchemyRecordStore.from_url(
            settings.database_url, batch_size=settings.insert_batch_size
        )
        return cls(store, settings)

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def defaults(self) -> ReportDefaults:
        return self._defaults

    async def close(self) -> None:
        close = getattr(self._store, "close", None)
        if close is not None:
            await close()

    async def init_schema(self) -> None:
        try:
            await self._store.create_schema()
        except SqlLogError:
            logger.exception("schema creation failed")
            raise

    async def ingest(
        self, stream: BinaryIO, cancel: asyncio.Event | None = None
    ) -> IngestResult:
        """Ingest an open binary stream of log lines. The caller closes the stream."""
        source = LogFileInput.from_stream(stream, self._settings.max_line_bytes)
        return await self._ingest(source, cancel)

    async def ingest_file(
        self,
        path: str | Path,
        content_type: str | None = None,
        cancel: asyncio.Event | None = None,
    ) -> IngestResult:
        path = Path(path)
        try:
            check_upload(path.name, content_type)
        except SqlLogError as exc:
            logger.warning("rejected upload %s: %s", path.name, exc)
            raise

        source = LogFileInput(path, self._settings.max_line_bytes)
        try:
            return await self._ingest(source, cancel)
        finally:
            source.close()

    async def ingest_lines(
        self, lines: Iterable[str], cancel: asyncio.Event | None = None
    ) -> IngestResult:
        source = LogFileInput.from_lines(lines, self._settings.max_line_bytes)
        return await self._ingest(source, cancel)

    async def _ingest(self, source: LineInput, cancel: asyncio.Event | None) -> IngestResult:
        try:
            result = await self._ingestion.run(source, cancel)
        except StreamError as exc:
            logger.warning("ingestion stopped early: %s", exc)
            raise
        except SqlLogError:
            logger.exception("ingestion failed")
            raise

        logger.info(
            "ingested %d line(s): %d accepted, %d rejected",
            result.total_lines,
            result.accepted,
            result.rejected,
        )
        return result

    def build_filter(self, **options: Any) -> ReportFilter:
        """ReportFilter from caller options with this service's defaults applied."""
        options.setdefault("now", self._clock())
        return ReportFilter.build(self._defaults, **options)

    async def analyze(self, report_filter: ReportFilter | None = None) -> ReportResult:
        report_filter = report_filter or self.build_filter()
        try:
            return await self._reports.run(report_filter)
        except SqlLogError:
            logger.exception("report analysis failed")
            raise

    async def export(self, report: ReportResult, format: str) -> bytes:
        try:
            # reportlab layout is CPU bound
            return await asyncio.to_thread(render_report, report, format)
        except (SqlLogError, ValueError):
            logger.exception("report export failed")
            raise

    async def report(self, report_filter: ReportFilter | None, format: str) -> bytes:
        """Analyze then render. Analysis failures abort before any rendering."""
        get_output(format)
        report = await self.analyze(report_filter)
        return await self.export(report, format)

    def report_filename(self, format: str) -> str:
        output = get_output(format)
        return build_filename(
            output.extension, load_timezone(self._defaults.timezone), self._clock()
        )

    async def list_databases(self) -> list[str]:
        try:
            names = await self._store.list_distinct_databases()
        except SqlLogError:
            logger.exception("list databases failed")
            raise

        safe: list[str] = []
        for name in names:
            trimmed = name.strip()
            if self.DATABASE_NAME_PATTERN.fullmatch(trimmed):
                safe.append(trimmed)
            else:
                logger.warning("dropping unsafe database name %r", name)
        return safe

    async def list_by_database(self, name: str, limit: int | None = None) -> list[LogRecord]:
        name = self.validate_database_name(name)
        try:
            return await self._store.list_by_database(name, limit)
        except SqlLogError:
            logger.exception("list by database failed for %s", name)
            raise

    async def scan(
        self,
        database: str | None = None,
        exec_time_ms: int = SCAN_DEFAULT_EXEC_TIME_MS,
        exec_count: int = SCAN_DEFAULT_EXEC_COUNT,
        limit: int = SCAN_DEFAULT_LIMIT,
    ) -> ScanResult:
        """Records where both exec_time_ms and exec_count reach their thresholds.

        Unbounded in time. ``limit`` is clamped to [1, 1000].
        """
        if exec_time_ms < 0:
            raise ValueError("exec_time_ms must not be negative")
        if exec_count < 0:
            raise ValueError("exec_count must not be negative")
        limit = min(max(limit, 1), SCAN_MAX_LIMIT)
        database = database.strip() if database else None
        rule = AbnormalRule(exec_time_ms=exec_time_ms, exec_count=exec_count)

        try:
            total = await self._store.count_matching(None, database, rule)
            if total == 0:
                return ScanResult(total=0)
            items = await self._store.list_matching(None, database, rule, limit)
        except SqlLogError:
            logger.exception("scan failed")
            raise
        return ScanResult(total=total, items=tuple(items))

    async def seed(self, records: Iterable[LogRecord]) -> int:
        batch = list(records)
        try:
            await self._store.insert_batch(batch)
        except SqlLogError:
            logger.exception("seed insert failed")
            raise
        logger.info("seeded %d record(s)", len(batch))
        return len(batch)

    @classmethod
    def validate_database_name(cls, name: str) -> str:
        trimmed = name.strip()
        if not trimmed:
            raise ValueError("database name is required")
        if not cls.DATABASE_NAME_PATTERN.fullmatch(trimmed):
            raise ValueError("invalid database name; allowed [A-Za-z0-9_.-], max length 128")
        return trimmed
