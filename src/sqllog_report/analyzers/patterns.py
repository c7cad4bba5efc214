import heapq
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Any

from sqllog_report.analyzers.canonical import canonicalize
from sqllog_report.domain import PatternStat, ReportFilter
from sqllog_report.store import RecordStore


def top_patterns(counter: Counter[str], limit: int) -> tuple[PatternStat, ...]:
    """Most frequent patterns first; ties broken by pattern text ascending."""
    if limit <= 0:
        return ()
    stats = (PatternStat(pattern=pattern, occurrences=count) for pattern, count in counter.items())
    return tuple(heapq.nsmallest(limit, stats, key=lambda stat: stat.rank_key))


@dataclass(frozen=True, slots=True)
class PatternSection:
    overall: tuple[PatternStat, ...] = ()
    by_database: dict[str, tuple[PatternStat, ...]] = field(default_factory=dict)

    def report_fields(self) -> dict[str, Any]:
        return {
            "top_patterns_overall": self.overall,
            "top_patterns_by_database": dict(self.by_database),
        }


class PatternAnalyzer:
    """Top-K canonicalized SQL patterns, overall and per database."""

    name: str = "patterns"

    async def analyze(self, store: RecordStore, report_filter: ReportFilter) -> PatternSection:
        if report_filter.top_patterns <= 0:
            return PatternSection()

        samples = await store.fetch_samples(report_filter.window, report_filter.database)

        overall: Counter[str] = Counter()
        per_database: dict[str, Counter[str]] = defaultdict(Counter)
        cache: dict[str, str] = {}
        for sample in samples:
            pattern = cache.get(sample.sql_text)
            if pattern is None:
                pattern = cache[sample.sql_text] = canonicalize(sample.sql_text)
            overall[pattern] += 1
            per_database[sample.database_name][pattern] += 1

        limit = report_filter.top_patterns
        return PatternSection(
            overall=top_patterns(overall, limit),
            by_database={
                name: top_patterns(per_database[name], limit) for name in sorted(per_database)
            },
        )
