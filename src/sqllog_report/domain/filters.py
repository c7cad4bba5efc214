"""Report filter construction: caller input merged with explicit defaults."""

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqllog_report.domain.models import AnomalyRule, TimeWindow


DEFAULT_PERCENTILES: tuple[float, ...] = (0.50, 0.75, 0.90, 0.95, 0.99)


@dataclass(frozen=True, slots=True)
class ReportDefaults:
    """Default knobs for a report run. Built once and passed around as data."""

    slow_ms: int = 1000
    freq_slow_ms: int = 500
    freq_count: int = 100
    anomaly_limit: int = 500
    anomaly_cap: int = 5000
    percentiles: tuple[float, ...] = DEFAULT_PERCENTILES
    max_percentiles: int = 10
    top_patterns: int = 20
    max_top_patterns: int = 200
    window: timedelta = timedelta(days=7)
    timezone: str = "Asia/Ho_Chi_Minh"


@dataclass(frozen=True, slots=True)
class ReportFilter:
    """Parameters bounding one analysis run. Use ``build`` to apply defaults."""

    window: TimeWindow
    rule: AnomalyRule
    database: str | None = None
    anomaly_limit: int = 500
    percentiles: tuple[float, ...] = DEFAULT_PERCENTILES
    top_patterns: int = 20
    timezone: str = "Asia/Ho_Chi_Minh"
    defaults: ReportDefaults = field(default_factory=ReportDefaults, compare=False)

    @classmethod
    def build(
        cls,
        defaults: ReportDefaults | None = None,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        database: str | None = None,
        anomaly_limit: int | None = None,
        anomaly_cap: int | None = None,
        slow_ms: int | None = None,
        freq_slow_ms: int | None = None,
        freq_count: int | None = None,
        percentiles: Sequence[float] | None = None,
        top_patterns: int | None = None,
        now: datetime | None = None,
    ) -> "ReportFilter":
        defaults = defaults or ReportDefaults()
        now = _as_utc(now) if now else datetime.now(UTC)
        start = _as_utc(start) if start else None
        end = _as_utc(end) if end else None

        if end is None:
            end = now
        if start is None:
            start = end - defaults.window
        if start > end:
            end = now
            if start > end:
                start = end - defaults.window

        cap = _positive_or(anomaly_cap, defaults.anomaly_cap)
        limit = min(_positive_or(anomaly_limit, defaults.anomaly_limit), cap)

        fractions = tuple(percentiles) if percentiles else defaults.percentiles
        fractions = sanitize_fractions(fractions[: defaults.max_percentiles])

        top = min(_positive_or(top_patterns, defaults.top_patterns), defaults.max_top_patterns)

        database = database.strip() if database else None

        return cls(
            window=TimeWindow(start=start, end=end),
            rule=AnomalyRule(
                slow_ms=_positive_or(slow_ms, defaults.slow_ms),
                freq_slow_ms=_positive_or(freq_slow_ms, defaults.freq_slow_ms),
                freq_count=_positive_or(freq_count, defaults.freq_count),
            ),
            database=database or None,
            anomaly_limit=limit,
            percentiles=fractions,
            top_patterns=top,
            timezone=defaults.timezone,
            defaults=defaults,
        )


def _as_utc(moment: datetime) -> datetime:
    # naive values are UTC, matching parse_time_bound and the store
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


def _positive_or(value: int | None, default: int) -> int:
    if value is None or value <= 0:
        return default
    return value


def sanitize_fractions(fractions: Sequence[float]) -> tuple[float, ...]:
    """Drop non-finite values, clamp to [0, 1], round to whole percents, dedupe and sort."""
    seen: set[int] = set()
    for value in fractions:
        if not math.isfinite(value):
            continue
        clamped = min(max(value, 0.0), 1.0)
        seen.add(int(clamped * 100 + 0.5))
    return tuple(key / 100 for key in sorted(seen))


def parse_time_bound(text: str, *, end_of_day: bool = False) -> datetime:
    """Parse an RFC 3339 timestamp or a ``YYYY-MM-DD`` date.

    Naive values are taken as UTC. A date-only upper bound (``end_of_day``)
    covers the whole day.
    """
    text = text.strip()
    try:
        day = date.fromisoformat(text) if len(text) == len("2006-01-02") else None
    except ValueError:
        day = None

    if day is not None:
        moment = datetime.combine(day, time.min, tzinfo=UTC)
        if end_of_day:
            moment += timedelta(days=1) - timedelta(microseconds=1)
        return moment

    try:
        moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"invalid time {text!r}: must be RFC3339 or YYYY-MM-DD") from None

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment


def load_timezone(name: str) -> tzinfo:
    """Resolve an IANA zone name, falling back to UTC when it is unknown."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return UTC
