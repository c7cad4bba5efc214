from sqllog_report.domain import ReportResult
from sqllog_report.exceptions import ExportError
from sqllog_report.output.base import ReportOutput
from sqllog_report.output.csv_output import CsvReportOutput
from sqllog_report.output.json_output import JsonReportOutput
from sqllog_report.output.pdf_output import PdfReportOutput

OUTPUT_FORMATS = ("json", "csv", "pdf")


def get_output(format: str) -> ReportOutput:
    """Renderer for ``format`` (case-insensitive); ValueError when unknown."""
    key = format.strip().lower()
    if key == "json":
        return JsonReportOutput()
    if key == "csv":
        return CsvReportOutput()
    if key == "pdf":
        return PdfReportOutput()
    expected = ", ".join(OUTPUT_FORMATS)
    raise ValueError(f"unsupported format: {format!r} (expected one of {expected})")


def render_report(report: ReportResult, format: str) -> bytes:
    """Render with the named output, wrapping any renderer failure as ExportError."""
    output = get_output(format)
    try:
        return output.render(report)
    except Exception as exc:
        raise ExportError(output.name, exc) from exc
