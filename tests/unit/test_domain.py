from dataclasses import FrozenInstanceError
from datetime import UTC, datetime, timedelta

import pytest

from sqllog_report.domain import (
    AbnormalRule,
    AnomalyRule,
    LogRecord,
    PatternStat,
    Percentiles,
    PercentileSet,
    RejectedLine,
    TimeWindow,
    percentile_label,
)
from sqllog_report.exceptions import LineParseError, ParseErrorKind


def _record(exec_time_ms: int, exec_count: int, sql: str = "SELECT 1") -> LogRecord:
    return LogRecord(
        database_name="db", sql_text=sql, exec_time_ms=exec_time_ms, exec_count=exec_count
    )


class TestLogRecord:
    def test_is_immutable(self) -> None:
        record = _record(1, 1)
        with pytest.raises(FrozenInstanceError):
            record.exec_time_ms = 5  # type: ignore[misc]

    def test_created_at_defaults_to_none(self) -> None:
        assert _record(1, 1).created_at is None


class TestTimeWindow:
    def test_rejects_inverted_range(self) -> None:
        start = datetime(2024, 1, 2, tzinfo=UTC)
        with pytest.raises(ValueError):
            TimeWindow(start=start, end=start - timedelta(seconds=1))

    def test_contains_is_inclusive(self) -> None:
        start = datetime(2024, 1, 1, tzinfo=UTC)
        end = datetime(2024, 1, 2, tzinfo=UTC)
        window = TimeWindow(start=start, end=end)

        assert window.contains(start)
        assert window.contains(end)
        assert not window.contains(end + timedelta(microseconds=1))


class TestAnomalyRule:
    @pytest.fixture
    def rule(self) -> AnomalyRule:
        return AnomalyRule(slow_ms=1000, freq_slow_ms=500, freq_count=100)

    @pytest.mark.parametrize(
        ("exec_time_ms", "exec_count", "expected"),
        [
            (1000, 1, True),
            (999, 1, False),
            (500, 100, True),
            (499, 100, False),
            (500, 99, False),
            (50, 10_000, False),
        ],
    )
    def test_matches_thresholds(
        self, rule: AnomalyRule, exec_time_ms: int, exec_count: int, expected: bool
    ) -> None:
        assert rule.matches(_record(exec_time_ms, exec_count)) is expected


class TestAbnormalRule:
    def test_requires_both_thresholds(self) -> None:
        rule = AbnormalRule(exec_time_ms=500, exec_count=100)

        assert rule.matches(_record(500, 100))
        assert not rule.matches(_record(5000, 99))
        assert not rule.matches(_record(499, 5000))


class TestPercentileSet:
    def test_labels_round_fraction_to_percent(self) -> None:
        values = PercentileSet(((0.5, 30), (0.95, 48), (0.999, 50)))

        assert values.labels() == {"p50": 30, "p95": 48, "p100": 50}

    def test_get_by_fraction(self) -> None:
        values = PercentileSet(((0.5, 30), (0.9, 45)))

        assert values.get(0.5) == 30
        assert values.get(0.90) == 45
        assert values.get(0.75) is None

    def test_empty_set_is_falsy(self) -> None:
        assert not PercentileSet()
        assert Percentiles().is_empty

    def test_percentile_label(self) -> None:
        assert percentile_label(0.5) == "p50"
        assert percentile_label(0.99) == "p99"


class TestPatternStat:
    def test_rank_key_orders_by_occurrences_then_pattern(self) -> None:
        stats = [PatternStat("b", 2), PatternStat("a", 2), PatternStat("c", 5)]

        ranked = sorted(stats, key=lambda stat: stat.rank_key)

        assert [stat.pattern for stat in ranked] == ["c", "a", "b"]


class TestRejectedLine:
    def test_describe_includes_position_and_error(self) -> None:
        error = LineParseError(ParseErrorKind.INVALID_NUMBER, "bad", "invalid exec_time_ms: 'x'")
        rejected = RejectedLine(line_number=3, line="bad", error=error)

        assert rejected.describe() == (
            "line 3: invalid_number: invalid exec_time_ms: 'x'; line='bad'"
        )
