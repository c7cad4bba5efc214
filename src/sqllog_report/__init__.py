__version__ = "0.1.0"

from sqllog_report.analyzers import (
    AnalyzerRegistry,
    AnomalyAnalyzer,
    PatternAnalyzer,
    PercentileAnalyzer,
    ReportAnalyzer,
    canonicalize,
    default_registry,
)
from sqllog_report.config import Settings, get_settings
from sqllog_report.core import IngestionPipeline, ReportPipeline, SqlLogService, StreamIngestor
from sqllog_report.domain import (
    AbnormalRule,
    AnomalyRecord,
    AnomalyRule,
    IngestResult,
    LogRecord,
    ReportFilter,
    ReportResult,
    TimeWindow,
)
from sqllog_report.input import LineInput, LogFileInput, LogLineParser
from sqllog_report.output import ReportOutput, get_output
from sqllog_report.store import RecordStore, SqlAlchemyRecordStore

__all__ = [
    "__version__",
    "SqlLogService",
    "IngestionPipeline",
    "StreamIngestor",
    "ReportPipeline",
    "LogRecord",
    "TimeWindow",
    "AnomalyRule",
    "AbnormalRule",
    "AnomalyRecord",
    "ReportFilter",
    "ReportResult",
    "IngestResult",
    "LineInput",
    "LogFileInput",
    "LogLineParser",
    "ReportAnalyzer",
    "AnalyzerRegistry",
    "AnomalyAnalyzer",
    "PercentileAnalyzer",
    "PatternAnalyzer",
    "canonicalize",
    "default_registry",
    "RecordStore",
    "SqlAlchemyRecordStore",
    "ReportOutput",
    "get_output",
    "Settings",
    "get_settings",
]
