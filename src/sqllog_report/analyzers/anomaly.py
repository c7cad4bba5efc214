from dataclasses import dataclass, field
from typing import Any

from sqllog_report.analyzers.base import analysis_phase
from sqllog_report.domain import (
    AnomalyRecord,
    AnomalyRule,
    LogRecord,
    ReasonCode,
    ReportFilter,
    SuggestionCode,
)
from sqllog_report.store import RecordStore


@dataclass(frozen=True, slots=True)
class AnomalySection:
    total_queries: int
    anomaly_count: int
    suggestion_count: int
    by_database: dict[str, int] = field(default_factory=dict)
    anomalies: tuple[AnomalyRecord, ...] = ()

    def report_fields(self) -> dict[str, Any]:
        return {
            "total_queries": self.total_queries,
            "anomaly_count": self.anomaly_count,
            "suggestion_count": self.suggestion_count,
            "by_database": dict(self.by_database),
            "anomalies": self.anomalies,
        }


def derive_reasons_and_suggestions(
    record: LogRecord, rule: AnomalyRule
) -> tuple[tuple[ReasonCode, ...], tuple[SuggestionCode, ...]]:
    """Reason and suggestion codes for one record, each in fixed order without duplicates."""
    reasons: list[ReasonCode] = []
    if rule.is_slow(record):
        reasons.append(ReasonCode.SLOW_QUERY)
    if rule.is_frequent_and_slow(record):
        reasons.append(ReasonCode.FREQUENT_AND_SLOW)
    if "select *" in record.sql_text.lower():
        reasons.append(ReasonCode.SELECT_STAR)

    suggestions: list[SuggestionCode] = []
    if ReasonCode.SELECT_STAR in reasons:
        suggestions.append(SuggestionCode.AVOID_SELECT_STAR)
    if ReasonCode.SLOW_QUERY in reasons or ReasonCode.FREQUENT_AND_SLOW in reasons:
        suggestions.append(SuggestionCode.ADD_INDEX_ON_WHERE_COLUMNS)
    # independent of reasons
    if record.exec_count >= rule.freq_count:
        suggestions.append(SuggestionCode.CONSIDER_CACHING)

    return tuple(dict.fromkeys(reasons)), tuple(dict.fromkeys(suggestions))


def annotate(record: LogRecord, rule: AnomalyRule) -> AnomalyRecord:
    reasons, suggestions = derive_reasons_and_suggestions(record, rule)
    return AnomalyRecord(
        database_name=record.database_name,
        sql_text=record.sql_text,
        exec_time_ms=record.exec_time_ms,
        exec_count=record.exec_count,
        reasons=reasons,
        suggestions=suggestions,
    )


class AnomalyAnalyzer:
    """Classifies records in the window against the anomaly rule.

    The returned list is capped at ``anomaly_limit`` and ordered by
    exec_time_ms then exec_count, both descending. ``anomaly_count`` is always
    the size of the full matching set so callers can detect truncation.
    """

    name: str = "anomalies"

    async def analyze(self, store: RecordStore, report_filter: ReportFilter) -> AnomalySection:
        window, database, rule = report_filter.window, report_filter.database, report_filter.rule

        with analysis_phase("count total"):
            total = await store.count_matching(window, database)

        with analysis_phase("count by database"):
            by_database = await store.count_by_database(window, database)

        with analysis_phase("list anomalies"):
            matching = await store.list_matching(
                window, database, rule, limit=report_filter.anomaly_limit
            )

        with analysis_phase("count anomalies"):
            anomaly_count = await store.count_matching(window, database, rule)

        anomalies = tuple(annotate(record, rule) for record in matching)
        suggestion_count = sum(1 for anomaly in anomalies if anomaly.suggestions)

        return AnomalySection(
            total_queries=total,
            anomaly_count=anomaly_count,
            suggestion_count=suggestion_count,
            by_database=by_database,
            anomalies=anomalies,
        )
