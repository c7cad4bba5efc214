from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from sqllog_report.domain import Percentiles, PercentileSet, ReportFilter
from sqllog_report.store import RecordStore


def nearest_rank(sorted_values: Sequence[int], fraction: float) -> int | None:
    """Discrete percentile: the smallest observed value whose rank covers ``fraction``.

    Matches PostgreSQL ``percentile_disc``. Never interpolates.
    """
    if not sorted_values:
        return None
    return sorted_values[_rank_index(len(sorted_values), fraction)]


def _rank_index(size: int, fraction: float) -> int:
    # integer percent keeps ceil() exact, e.g. 0.29 * 100 is not 29.0 in floating point
    percent = int(fraction * 100 + 0.5)
    rank = -(-percent * size // 100)
    return min(max(rank - 1, 0), size - 1)


def percentile_set(values: Iterable[int], fractions: Sequence[float]) -> PercentileSet:
    ordered = sorted(values)
    if not ordered or not fractions:
        return PercentileSet()
    size = len(ordered)
    return PercentileSet(
        tuple((fraction, ordered[_rank_index(size, fraction)]) for fraction in fractions)
    )


@dataclass(frozen=True, slots=True)
class PercentileSection:
    overall: Percentiles = field(default_factory=Percentiles)
    by_database: dict[str, Percentiles] = field(default_factory=dict)

    def report_fields(self) -> dict[str, Any]:
        return {
            "percentiles_overall": self.overall,
            "percentiles_by_database": dict(self.by_database),
        }


class PercentileAnalyzer:
    """exec_time_ms and exec_count percentiles, overall and per database."""

    name: str = "percentiles"

    async def analyze(self, store: RecordStore, report_filter: ReportFilter) -> PercentileSection:
        fractions = report_filter.percentiles
        if not fractions:
            return PercentileSection()

        samples = await store.fetch_samples(report_filter.window, report_filter.database)

        times: list[int] = []
        counts: list[int] = []
        times_by_db: dict[str, list[int]] = defaultdict(list)
        counts_by_db: dict[str, list[int]] = defaultdict(list)
        for sample in samples:
            times.append(sample.exec_time_ms)
            counts.append(sample.exec_count)
            times_by_db[sample.database_name].append(sample.exec_time_ms)
            counts_by_db[sample.database_name].append(sample.exec_count)

        overall = Percentiles(
            exec_time_ms=percentile_set(times, fractions),
            exec_count=percentile_set(counts, fractions),
        )
        by_database = {
            name: Percentiles(
                exec_time_ms=percentile_set(times_by_db[name], fractions),
                exec_count=percentile_set(counts_by_db[name], fractions),
            )
            for name in sorted(times_by_db)
        }
        return PercentileSection(overall=overall, by_database=by_database)
