import asyncio
import logging
from collections.abc import Callable

from sqllog_report.domain import IngestResult, LogRecord, RejectedLine
from sqllog_report.exceptions import IngestCancelledError, LineParseError, StreamError
from sqllog_report.input import LineInput, LogLineParser
from sqllog_report.store import RecordStore

logger = logging.getLogger(__name__)

# Lines processed between cooperative yields to the event loop
YIELD_EVERY = 1000


class StreamIngestor:
    """Applies the line parser to every line of a stream without stopping on bad lines."""

    def __init__(self, parser: LogLineParser | None = None) -> None:
        self._parser = parser or LogLineParser()

    async def run(
        self,
        lines: LineInput,
        on_record: Callable[[LogRecord], None],
        on_error: Callable[[RejectedLine], None],
        cancel: asyncio.Event | None = None,
    ) -> int:
        """Consume ``lines`` and return how many were read.

        Raises IngestCancelledError as soon as ``cancel`` is set. Records
        already handed to ``on_record`` are not taken back.
        """
        count = 0
        async for line in lines:
            if cancel is not None and cancel.is_set():
                raise IngestCancelledError(count)

            count += 1
            try:
                record = self._parser.parse_line(line)
            except LineParseError as exc:
                on_error(RejectedLine(line_number=count, line=line, error=exc))
            else:
                on_record(record)

            if count % YIELD_EVERY == 0:
                await asyncio.sleep(0)

        if cancel is not None and cancel.is_set():
            raise IngestCancelledError(count)
        return count


class IngestionPipeline:
    """Parses a line source and stores the valid records with one batch insert."""

    def __init__(
        self,
        store: RecordStore,
        ingestor: StreamIngestor | None = None,
        max_error_samples: int = 20,
    ) -> None:
        self._store = store
        self._ingestor = ingestor or StreamIngestor()
        self._max_error_samples = max_error_samples

    async def run(self, source: LineInput, cancel: asyncio.Event | None = None) -> IngestResult:
        records: list[LogRecord] = []
        samples: list[str] = []
        rejected = 0

        def on_error(rejection: RejectedLine) -> None:
            nonlocal rejected
            rejected += 1
            if len(samples) < self._max_error_samples:
                samples.append(rejection.describe())
            logger.warning("sql log parse error: %s", rejection.describe())

        try:
            total = await self._ingestor.run(source, records.append, on_error, cancel)
        except StreamError as exc:
            # lines accepted before the failure are still stored
            await self._store_accepted(records)
            exc.result = IngestResult(
                total_lines=len(records) + rejected,
                accepted=len(records),
                rejected=rejected,
                rejected_reasons=tuple(samples),
            )
            raise

        await self._store_accepted(records)
        return IngestResult(
            total_lines=total,
            accepted=len(records),
            rejected=rejected,
            rejected_reasons=tuple(samples),
        )

    async def _store_accepted(self, records: list[LogRecord]) -> None:
        if records:
            await self._store.insert_batch(records)
