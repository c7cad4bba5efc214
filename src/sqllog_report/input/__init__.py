from sqllog_report.input.base import LineInput
from sqllog_report.input.logfile import LogFileInput, LogLineParser, format_line
from sqllog_report.input.upload import check_upload

__all__ = [
    "LineInput",
    "LogFileInput",
    "LogLineParser",
    "check_upload",
    "format_line",
]
