from sqllog_report.store.base import MatchRule, RecordStore, Sample
from sqllog_report.store.cache import SampleCachingStore
from sqllog_report.store.sql import SqlAlchemyRecordStore
from sqllog_report.store.tables import Base, SqlLogRow

__all__ = [
    "Base",
    "MatchRule",
    "RecordStore",
    "Sample",
    "SampleCachingStore",
    "SqlAlchemyRecordStore",
    "SqlLogRow",
]
