from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Protocol, runtime_checkable

from sqllog_report.domain import ReportFilter
from sqllog_report.exceptions import AnalysisError
from sqllog_report.store import RecordStore


@runtime_checkable
class ReportSection(Protocol):
    """Result of one analyzer, merged into the final ReportResult."""

    def report_fields(self) -> dict[str, Any]:
        ...


@runtime_checkable
class ReportAnalyzer(Protocol):
    """Protocol for report analyzers. ``name`` doubles as the failure phase label."""

    @property
    def name(self) -> str:
        ...

    async def analyze(self, store: RecordStore, report_filter: ReportFilter) -> ReportSection:
        ...


@contextmanager
def analysis_phase(phase: str) -> Iterator[None]:
    """Wrap any failure inside the block as an AnalysisError labelled ``phase``."""
    try:
        yield
    except AnalysisError:
        raise
    except Exception as exc:
        raise AnalysisError(phase, exc) from exc
