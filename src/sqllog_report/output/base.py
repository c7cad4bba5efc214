from datetime import UTC, datetime, tzinfo
from typing import Protocol, runtime_checkable

from sqllog_report.domain import AnomalyRecord, PercentileSet, ReportResult


@runtime_checkable
class ReportOutput(Protocol):
    """Protocol for report renderers."""

    @property
    def name(self) -> str:
        ...

    @property
    def media_type(self) -> str:
        ...

    @property
    def extension(self) -> str:
        ...

    def render(self, report: ReportResult) -> bytes:
        ...


def format_timestamp(moment: datetime) -> str:
    return moment.isoformat(timespec="seconds")


def format_percentile_set(values: PercentileSet) -> str:
    """Render as ``p50=30,p75=40`` in ascending percentile order."""
    return ",".join(f"{label}={value}" for label, value in values.labels().items())


def anomaly_cells(anomaly: AnomalyRecord) -> list[str]:
    """One anomaly as table cells, SQL flattened to a single line."""
    return [
        anomaly.database_name,
        str(anomaly.exec_time_ms),
        str(anomaly.exec_count),
        "|".join(anomaly.reasons),
        "|".join(anomaly.suggestions),
        anomaly.sql_text.replace("\r\n", " ").replace("\n", " "),
    ]


def build_filename(extension: str, tz: tzinfo = UTC, now: datetime | None = None) -> str:
    """``sql-report-YYYYMMDD-HHMM.<ext>`` stamped in ``tz``."""
    moment = (now or datetime.now(UTC)).astimezone(tz)
    return f"sql-report-{moment:%Y%m%d-%H%M}.{extension.lstrip('.')}"
