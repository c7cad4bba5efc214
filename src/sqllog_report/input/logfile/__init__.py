from sqllog_report.input.logfile.adapter import LogFileInput
from sqllog_report.input.logfile.parser import LogLineParser, format_line

__all__ = ["LogFileInput", "LogLineParser", "format_line"]
