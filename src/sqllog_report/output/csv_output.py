import csv
import io

from sqllog_report.domain import ReportResult
from sqllog_report.output.base import anomaly_cells, format_percentile_set, format_timestamp

ANOMALY_HEADER = ["db_name", "exec_time_ms", "exec_count", "reasons", "suggestions", "sql_query"]
PATTERN_HEADER = ["pattern", "occurrences"]


class CsvReportOutput:
    """UTF-8 CSV: key/value summary, statistics blocks, then the anomaly table.

    Statistics blocks are only written when they have content. The anomaly
    header is always written, even for an empty report.
    """

    @property
    def name(self) -> str:
        return "csv"

    @property
    def media_type(self) -> str:
        return "text/csv"

    @property
    def extension(self) -> str:
        return "csv"

    def render(self, report: ReportResult) -> bytes:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        summary = report.summary

        writer.writerow(["key", "value"])
        writer.writerow(["generated_at", format_timestamp(report.generated_at)])
        writer.writerow(["timezone", report.timezone])
        writer.writerow(["from", format_timestamp(summary.window.start)])
        writer.writerow(["to", format_timestamp(summary.window.end)])
        writer.writerow(["total_queries", summary.total_queries])
        writer.writerow(["anomaly_count", summary.anomaly_count])
        writer.writerow(["suggestion_count", summary.suggestion_count])
        if summary.by_database:
            pairs = sorted(f"{name}={count}" for name, count in summary.by_database.items())
            writer.writerow(["by_db", "; ".join(pairs)])

        overall = report.percentiles_overall
        if not overall.is_empty:
            writer.writerow([])
            writer.writerow(
                ["percentiles_overall_exec_time_ms", format_percentile_set(overall.exec_time_ms)]
            )
            writer.writerow(
                ["percentiles_overall_exec_count", format_percentile_set(overall.exec_count)]
            )

        if report.percentiles_by_database:
            writer.writerow([])
            for name in sorted(report.percentiles_by_database):
                percentiles = report.percentiles_by_database[name]
                writer.writerow(
                    [
                        f"percentiles_db_exec_time_ms[{name}]",
                        format_percentile_set(percentiles.exec_time_ms),
                    ]
                )
                writer.writerow(
                    [
                        f"percentiles_db_exec_count[{name}]",
                        format_percentile_set(percentiles.exec_count),
                    ]
                )

        if report.top_patterns_overall:
            writer.writerow([])
            writer.writerow(["top_patterns_overall_count", len(report.top_patterns_overall)])
            writer.writerow(PATTERN_HEADER)
            for stat in report.top_patterns_overall:
                writer.writerow([stat.pattern, stat.occurrences])

        if report.top_patterns_by_database:
            writer.writerow([])
            for name in sorted(report.top_patterns_by_database):
                stats = report.top_patterns_by_database[name]
                writer.writerow([f"top_patterns_db[{name}]", len(stats)])
                writer.writerow(PATTERN_HEADER)
                for stat in stats:
                    writer.writerow([stat.pattern, stat.occurrences])
                writer.writerow([])

        writer.writerow([])
        writer.writerow(ANOMALY_HEADER)
        for anomaly in report.anomalies:
            writer.writerow(anomaly_cells(anomaly))

        return buffer.getvalue().encode("utf-8")
