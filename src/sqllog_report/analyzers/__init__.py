from sqllog_report.analyzers.anomaly import (
    AnomalyAnalyzer,
    AnomalySection,
    derive_reasons_and_suggestions,
)
from sqllog_report.analyzers.base import ReportAnalyzer, ReportSection, analysis_phase
from sqllog_report.analyzers.canonical import canonicalize
from sqllog_report.analyzers.patterns import PatternAnalyzer, PatternSection, top_patterns
from sqllog_report.analyzers.percentiles import (
    PercentileAnalyzer,
    PercentileSection,
    nearest_rank,
    percentile_set,
)
from sqllog_report.analyzers.registry import AnalyzerRegistry


def default_registry() -> AnalyzerRegistry:
    registry = AnalyzerRegistry()
    registry.register(AnomalyAnalyzer())
    registry.register(PercentileAnalyzer())
    registry.register(PatternAnalyzer())
    return registry


__all__ = [
    "AnalyzerRegistry",
    "AnomalyAnalyzer",
    "AnomalySection",
    "PatternAnalyzer",
    "PatternSection",
    "PercentileAnalyzer",
    "PercentileSection",
    "ReportAnalyzer",
    "ReportSection",
    "analysis_phase",
    "canonicalize",
    "default_registry",
    "derive_reasons_and_suggestions",
    "nearest_rank",
    "percentile_set",
    "top_patterns",
]
