"""Core domain models for SQL log ingestion and reporting."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class ReasonCode(StrEnum):
    """Why a record was flagged, in evaluation order."""

    SLOW_QUERY = "slow_query"
    FREQUENT_AND_SLOW = "frequent_and_slow"
    SELECT_STAR = "select_star"


class SuggestionCode(StrEnum):
    """Remediation hints, in the order they are attached."""

    AVOID_SELECT_STAR = "avoid_select_star"
    ADD_INDEX_ON_WHERE_COLUMNS = "add_index_on_where_columns"
    CONSIDER_CACHING = "consider_caching"


@dataclass(frozen=True, slots=True)
class LogRecord:
    """One observed SQL execution event."""

    database_name: str
    sql_text: str
    exec_time_ms: int
    exec_count: int
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """Inclusive time range used to scope every analysis query."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError("window start must not be after window end")

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


@dataclass(frozen=True, slots=True)
class AnomalyRule:
    """A record is anomalous when slow, or when both frequent and moderately slow."""

    slow_ms: int
    freq_slow_ms: int
    freq_count: int

    def is_slow(self, record: LogRecord) -> bool:
        return record.exec_time_ms >= self.slow_ms

    def is_frequent_and_slow(self, record: LogRecord) -> bool:
        return record.exec_time_ms >= self.freq_slow_ms and record.exec_count >= self.freq_count

    def matches(self, record: LogRecord) -> bool:
        return self.is_slow(record) or self.is_frequent_and_slow(record)


@dataclass(frozen=True, slots=True)
class AbnormalRule:
    """Scan rule: both execution time and count reach their thresholds."""

    exec_time_ms: int
    exec_count: int

    def matches(self, record: LogRecord) -> bool:
        return record.exec_time_ms >= self.exec_time_ms and record.exec_count >= self.exec_count


@dataclass(frozen=True, slots=True)
class AnomalyRecord:
    """A log record annotated with the reasons it is anomalous."""

    database_name: str
    sql_text: str
    exec_time_ms: int
    exec_count: int
    reasons: tuple[ReasonCode, ...] = ()
    suggestions: tuple[SuggestionCode, ...] = ()


def percentile_label(fraction: float) -> str:
    return f"p{int(fraction * 100 + 0.5)}"


@dataclass(frozen=True, slots=True)
class PercentileSet:
    """Ordered (fraction, value) pairs; labels are only produced for export."""

    values: tuple[tuple[float, int], ...] = ()

    def __len__(self) -> int:
        return len(self.values)

    def get(self, fraction: float) -> int | None:
        for candidate, value in self.values:
            if percentile_label(candidate) == percentile_label(fraction):
                return value
        return None

    def labels(self) -> dict[str, int]:
        return {percentile_label(fraction): value for fraction, value in self.values}


@dataclass(frozen=True, slots=True)
class Percentiles:
    exec_time_ms: PercentileSet = field(default_factory=PercentileSet)
    exec_count: PercentileSet = field(default_factory=PercentileSet)

    @property
    def is_empty(self) -> bool:
        return not self.exec_time_ms and not self.exec_count


@dataclass(frozen=True, slots=True)
class PatternStat:
    """A canonicalized SQL shape and how often it occurred."""

    pattern: str
    occurrences: int

    @property
    def rank_key(self) -> tuple[int, str]:
        return (-self.occurrences, self.pattern)


@dataclass(frozen=True, slots=True)
class ReportSummary:
    total_queries: int
    anomaly_count: int
    suggestion_count: int
    by_database: dict[str, int]
    window: TimeWindow


@dataclass(frozen=True, slots=True)
class ReportResult:
    """Aggregate output of one analysis run."""

    generated_at: datetime
    timezone: str
    summary: ReportSummary
    anomalies: tuple[AnomalyRecord, ...] = ()
    percentiles_overall: Percentiles = field(default_factory=Percentiles)
    percentiles_by_database: dict[str, Percentiles] = field(default_factory=dict)
    top_patterns_overall: tuple[PatternStat, ...] = ()
    top_patterns_by_database: dict[str, tuple[PatternStat, ...]] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RejectedLine:
    """A line the parser refused, with its 1-based position in the stream."""

    line_number: int
    line: str
    error: Exception

    def describe(self) -> str:
        return f"line {self.line_number}: {self.error}; line={self.line!r}"


@dataclass(frozen=True, slots=True)
class IngestResult:
    total_lines: int
    accepted: int
    rejected: int
    rejected_reasons: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ScanResult:
    total: int
    items: tuple[LogRecord, ...] = ()
