from sqllog_report.output.base import ReportOutput, build_filename, format_percentile_set
from sqllog_report.output.csv_output import CsvReportOutput
from sqllog_report.output.json_output import JsonReportOutput, report_to_dict
from sqllog_report.output.pdf_output import PdfReportOutput
from sqllog_report.output.registry import OUTPUT_FORMATS, get_output, render_report

__all__ = [
    "OUTPUT_FORMATS",
    "CsvReportOutput",
    "JsonReportOutput",
    "PdfReportOutput",
    "ReportOutput",
    "build_filename",
    "format_percentile_set",
    "get_output",
    "render_report",
    "report_to_dict",
]
