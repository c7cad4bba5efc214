from datetime import timedelta
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sqllog_report.domain import ReportDefaults
from sqllog_report.domain.filters import DEFAULT_PERCENTILES

MIN_LINE_BYTES = 1 << 20


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SQLLOG_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    database_url: str = Field("sqlite+aiosqlite:///./sqllog.db")
    log_level: str = Field("INFO")

    # Ingestion
    max_line_bytes: int = Field(MIN_LINE_BYTES)
    max_error_samples: int = Field(20)
    insert_batch_size: int = Field(500)

    # Report defaults
    report_timezone: str = Field("Asia/Ho_Chi_Minh")
    default_window_days: int = Field(7)
    slow_ms: int = Field(1000)
    freq_slow_ms: int = Field(500)
    freq_count: int = Field(100)
    anomaly_limit: int = Field(500)
    anomaly_cap: int = Field(5000)
    top_patterns: int = Field(20)
    percentiles: list[float] = Field(default_factory=lambda: list(DEFAULT_PERCENTILES))

    @field_validator("max_line_bytes")
    @classmethod
    def _at_least_one_mib(cls, value: int) -> int:
        return max(value, MIN_LINE_BYTES)

    @field_validator("max_error_samples", "insert_batch_size", "default_window_days")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    def report_defaults(self) -> ReportDefaults:
        return ReportDefaults(
            slow_ms=self.slow_ms,
            freq_slow_ms=self.freq_slow_ms,
            freq_count=self.freq_count,
            anomaly_limit=self.anomaly_limit,
            anomaly_cap=self.anomaly_cap,
            percentiles=tuple(self.percentiles),
            top_patterns=self.top_patterns,
            window=timedelta(days=self.default_window_days),
            timezone=self.report_timezone,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


def reset_settings() -> None:
    """Clear cached settings (useful in tests when env vars change)."""
    get_settings.cache_clear()
