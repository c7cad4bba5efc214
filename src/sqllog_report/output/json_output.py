import json
from datetime import datetime
from enum import StrEnum
from typing import Any

from sqllog_report.domain import AnomalyRecord, PatternStat, Percentiles, ReportResult


class JsonReportOutput:
    """Serializes a report with stable field names."""

    def __init__(self, indent: int | None = 2) -> None:
        self._indent = indent

    @property
    def name(self) -> str:
        return "json"

    @property
    def media_type(self) -> str:
        return "application/json"

    @property
    def extension(self) -> str:
        return "json"

    def render(self, report: ReportResult) -> bytes:
        payload = report_to_dict(report)
        text = json.dumps(
            payload, default=self._json_default, ensure_ascii=False, indent=self._indent
        )
        return text.encode("utf-8")

    @staticmethod
    def _json_default(obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, StrEnum):
            return str(obj)
        raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def report_to_dict(report: ReportResult) -> dict[str, Any]:
    summary = report.summary
    return {
        "generated_at": report.generated_at,
        "timezone": report.timezone,
        "summary": {
            "total_queries": summary.total_queries,
            "anomaly_count": summary.anomaly_count,
            "suggestion_count": summary.suggestion_count,
            "by_db": dict(sorted(summary.by_database.items())),
            "from": summary.window.start,
            "to": summary.window.end,
        },
        "anomalies": [_anomaly(anomaly) for anomaly in report.anomalies],
        "percentiles_overall": _percentiles(report.percentiles_overall),
        "percentiles_by_db": {
            name: _percentiles(report.percentiles_by_database[name])
            for name in sorted(report.percentiles_by_database)
        },
        "top_patterns_overall": [_pattern(stat) for stat in report.top_patterns_overall],
        "top_patterns_by_db": {
            name: [_pattern(stat) for stat in report.top_patterns_by_database[name]]
            for name in sorted(report.top_patterns_by_database)
        },
    }


def _anomaly(anomaly: AnomalyRecord) -> dict[str, Any]:
    return {
        "db_name": anomaly.database_name,
        "sql_query": anomaly.sql_text,
        "exec_time_ms": anomaly.exec_time_ms,
        "exec_count": anomaly.exec_count,
        "reasons": list(anomaly.reasons),
        "suggestions": list(anomaly.suggestions),
    }


def _percentiles(percentiles: Percentiles) -> dict[str, dict[str, int]]:
    return {
        "exec_time_ms": percentiles.exec_time_ms.labels(),
        "exec_count": percentiles.exec_count.labels(),
    }


def _pattern(stat: PatternStat) -> dict[str, Any]:
    return {"pattern": stat.pattern, "occurrences": stat.occurrences}
