from sqllog_report.core.ingestion import IngestionPipeline, StreamIngestor
from sqllog_report.core.pipeline import ReportPipeline
from sqllog_report.core.seed import demo_records
from sqllog_report.core.service import SqlLogService

__all__ = [
    "IngestionPipeline",
    "ReportPipeline",
    "SqlLogService",
    "StreamIngestor",
    "demo_records",
]
