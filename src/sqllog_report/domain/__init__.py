"""Domain models for SQL log ingestion and reporting."""

from sqllog_report.domain.filters import (
    ReportDefaults,
    ReportFilter,
    load_timezone,
    parse_time_bound,
    sanitize_fractions,
)
from sqllog_report.domain.models import (
    AbnormalRule,
    AnomalyRecord,
    AnomalyRule,
    IngestResult,
    LogRecord,
    PatternStat,
    Percentiles,
    PercentileSet,
    ReasonCode,
    RejectedLine,
    ReportResult,
    ReportSummary,
    ScanResult,
    SuggestionCode,
    TimeWindow,
    percentile_label,
)

__all__ = [
    "AbnormalRule",
    "AnomalyRecord",
    "AnomalyRule",
    "IngestResult",
    "LogRecord",
    "PatternStat",
    "Percentiles",
    "PercentileSet",
    "ReasonCode",
    "RejectedLine",
    "ReportDefaults",
    "ReportFilter",
    "ReportResult",
    "ReportSummary",
    "ScanResult",
    "SuggestionCode",
    "TimeWindow",
    "load_timezone",
    "parse_time_bound",
    "percentile_label",
    "sanitize_fractions",
]
