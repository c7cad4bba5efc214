import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from sqllog_report.analyzers import AnalyzerRegistry, default_registry
from sqllog_report.domain import (
    Percentiles,
    ReportFilter,
    ReportResult,
    ReportSummary,
    TimeWindow,
    load_timezone,
)
from sqllog_report.store import RecordStore, SampleCachingStore

logger = logging.getLogger(__name__)


class ReportPipeline:
    """Runs the section analyzers over a store and assembles one ReportResult."""

    def __init__(
        self,
        store: RecordStore,
        registry: AnalyzerRegistry | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._registry = registry or default_registry()
        self._clock = clock or (lambda: datetime.now(UTC))

    async def run(self, report_filter: ReportFilter) -> ReportResult:
        # statistics analyzers share one sample read per run
        store = SampleCachingStore(self._store)
        sections = await self._registry.analyze_all(store, report_filter)

        fields: dict[str, Any] = {}
        for section in sections:
            fields.update(section.report_fields())

        tz = load_timezone(report_filter.timezone)
        window = TimeWindow(
            start=report_filter.window.start.astimezone(tz),
            end=report_filter.window.end.astimezone(tz),
        )

        summary = ReportSummary(
            total_queries=fields.get("total_queries", 0),
            anomaly_count=fields.get("anomaly_count", 0),
            suggestion_count=fields.get("suggestion_count", 0),
            by_database=fields.get("by_database", {}),
            window=window,
        )
        result = ReportResult(
            generated_at=self._clock().astimezone(tz),
            timezone=str(tz),
            summary=summary,
            anomalies=fields.get("anomalies", ()),
            percentiles_overall=fields.get("percentiles_overall", Percentiles()),
            percentiles_by_database=fields.get("percentiles_by_database", {}),
            top_patterns_overall=fields.get("top_patterns_overall", ()),
            top_patterns_by_database=fields.get("top_patterns_by_database", {}),
        )

        logger.info(
            "report built: %d queries, %d anomalies (%d listed)",
            summary.total_queries,
            summary.anomaly_count,
            len(result.anomalies),
        )
        return result
