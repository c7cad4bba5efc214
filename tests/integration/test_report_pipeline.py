import json
from datetime import UTC, datetime

import pytest

from sqllog_report.analyzers import AnalyzerRegistry
from sqllog_report.core import IngestionPipeline, ReportPipeline
from sqllog_report.domain import ReasonCode, ReportFilter, SuggestionCode
from sqllog_report.exceptions import AnalysisError
from sqllog_report.input import LogFileInput
from sqllog_report.output import render_report
from sqllog_report.store import SqlAlchemyRecordStore

SCENARIO_LINES = [
    "DB:sales,sql:SELECT * FROM orders,exec_time_ms:1200,exec_count:5",
    "DB:sales,sql:SELECT id FROM orders WHERE id=1,exec_time_ms:50,exec_count:200",
]


class FailingAnalyzer:
    @property
    def name(self) -> str:
        return "exploding"

    async def analyze(self, store, report_filter):
        raise RuntimeError("kaboom")


class TestReportPipeline:
    @pytest.mark.asyncio
    async def test_end_to_end_scenario(self, sql_store: SqlAlchemyRecordStore) -> None:
        ingest = await IngestionPipeline(sql_store).run(LogFileInput.from_lines(SCENARIO_LINES))
        assert ingest.accepted == 2

        report = await ReportPipeline(sql_store).run(ReportFilter.build())

        assert report.summary.total_queries == 2
        assert report.summary.anomaly_count == 1
        assert report.summary.suggestion_count == 1
        assert report.summary.by_database == {"sales": 2}
        [anomaly] = report.anomalies
        assert anomaly.sql_text == "SELECT * FROM orders"
        assert anomaly.reasons == (ReasonCode.SLOW_QUERY, ReasonCode.SELECT_STAR)
        assert anomaly.suggestions == (
            SuggestionCode.AVOID_SELECT_STAR,
            SuggestionCode.ADD_INDEX_ON_WHERE_COLUMNS,
        )
        assert report.percentiles_overall.exec_time_ms.get(0.5) == 50
        assert report.top_patterns_overall[0].occurrences == 1
        assert set(report.top_patterns_by_database) == {"sales"}

    @pytest.mark.asyncio
    async def test_report_is_localized(self, sql_store: SqlAlchemyRecordStore) -> None:
        clock = lambda: datetime(2024, 5, 1, 20, 0, tzinfo=UTC)  # noqa: E731
        report_filter = ReportFilter.build(now=clock())

        report = await ReportPipeline(sql_store, clock=clock).run(report_filter)

        assert report.timezone == "Asia/Ho_Chi_Minh"
        assert report.generated_at.isoformat() == "2024-05-02T03:00:00+07:00"
        assert report.summary.window.end.utcoffset().total_seconds() == 7 * 3600

    @pytest.mark.asyncio
    async def test_window_excludes_older_rows(self, sql_store: SqlAlchemyRecordStore) -> None:
        await IngestionPipeline(sql_store).run(LogFileInput.from_lines(SCENARIO_LINES))
        past = datetime(2020, 1, 1, tzinfo=UTC)

        report = await ReportPipeline(sql_store).run(
            ReportFilter.build(start=past, end=past.replace(day=2))
        )

        assert report.summary.total_queries == 0
        assert report.anomalies == ()
        assert report.percentiles_overall.is_empty
        assert report.top_patterns_overall == ()

    @pytest.mark.asyncio
    async def test_analysis_failure_aborts_report(self, sql_store: SqlAlchemyRecordStore) -> None:
        registry = AnalyzerRegistry()
        registry.register(FailingAnalyzer())

        with pytest.raises(AnalysisError) as excinfo:
            await ReportPipeline(sql_store, registry).run(ReportFilter.build())

        assert excinfo.value.phase == "exploding"

    @pytest.mark.asyncio
    async def test_every_format_renders_empty_report(
        self, sql_store: SqlAlchemyRecordStore
    ) -> None:
        report = await ReportPipeline(sql_store).run(ReportFilter.build())

        assert json.loads(render_report(report, "json"))["summary"]["total_queries"] == 0
        assert render_report(report, "csv").decode().rstrip("\n").endswith(
            "db_name,exec_time_ms,exec_count,reasons,suggestions,sql_query"
        )
        assert render_report(report, "pdf").startswith(b"%PDF")
