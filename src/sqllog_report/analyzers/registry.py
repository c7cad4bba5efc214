import asyncio

from sqllog_report.analyzers.base import ReportAnalyzer, ReportSection, analysis_phase
from sqllog_report.domain import ReportFilter
from sqllog_report.store import RecordStore


class AnalyzerRegistry:
    """Registry for managing and orchestrating report analyzers."""

    def __init__(self) -> None:
        self._analyzers: list[ReportAnalyzer] = []

    def register(self, analyzer: ReportAnalyzer) -> None:
        self._analyzers.append(analyzer)

    @property
    def analyzers(self) -> tuple[ReportAnalyzer, ...]:
        return tuple(self._analyzers)

    async def analyze_all(
        self, store: RecordStore, report_filter: ReportFilter
    ) -> list[ReportSection]:
        """Run every analyzer concurrently.

        Sections are returned in registration order. If any analyzer fails,
        the first failure (in registration order) is raised as an
        AnalysisError and all other results are discarded.
        """
        results = await asyncio.gather(
            *(self._run(analyzer, store, report_filter) for analyzer in self._analyzers),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return list(results)  # type: ignore[arg-type]

    async def _run(
        self, analyzer: ReportAnalyzer, store: RecordStore, report_filter: ReportFilter
    ) -> ReportSection:
        with analysis_phase(analyzer.name):
            return await analyzer.analyze(store, report_filter)
