import pytest

from sqllog_report.analyzers import PercentileAnalyzer, nearest_rank, percentile_set
from sqllog_report.domain import LogRecord, ReportFilter


class TestNearestRank:
    def test_median_of_five(self) -> None:
        assert nearest_rank([10, 20, 30, 40, 50], 0.50) == 30

    @pytest.mark.parametrize(
        ("fraction", "expected"),
        [(0.0, 10), (0.2, 10), (0.21, 20), (0.75, 40), (0.99, 50), (1.0, 50)],
    )
    def test_never_interpolates(self, fraction: float, expected: int) -> None:
        assert nearest_rank([10, 20, 30, 40, 50], fraction) == expected

    def test_single_value(self) -> None:
        assert nearest_rank([7], 0.5) == 7

    def test_empty_input(self) -> None:
        assert nearest_rank([], 0.5) is None


def test_percentile_set_sorts_input() -> None:
    values = percentile_set([50, 10, 40, 20, 30], (0.5, 0.9))

    assert values.labels() == {"p50": 30, "p90": 50}


def test_percentile_set_empty_without_values() -> None:
    assert len(percentile_set([], (0.5,))) == 0


class TestPercentileAnalyzer:
    @pytest.mark.asyncio
    async def test_overall_and_per_database(self, memory_store, now) -> None:
        await memory_store.insert_batch(
            [LogRecord("a", "q", t, c) for t, c in [(10, 1), (20, 2), (30, 3), (40, 4), (50, 5)]]
            + [LogRecord("b", "q", 1000, 9)]
        )
        report_filter = ReportFilter.build(percentiles=[0.5], now=now)

        section = await PercentileAnalyzer().analyze(memory_store, report_filter)

        assert section.overall.exec_time_ms.labels() == {"p50": 30}
        assert section.overall.exec_count.labels() == {"p50": 3}
        assert list(section.by_database) == ["a", "b"]
        assert section.by_database["a"].exec_time_ms.labels() == {"p50": 30}
        assert section.by_database["b"].exec_time_ms.labels() == {"p50": 1000}

    @pytest.mark.asyncio
    async def test_no_rows_gives_empty_sets(self, memory_store, now) -> None:
        section = await PercentileAnalyzer().analyze(memory_store, ReportFilter.build(now=now))

        assert section.overall.is_empty
        assert section.by_database == {}
        assert set(section.report_fields()) == {"percentiles_overall", "percentiles_by_database"}
