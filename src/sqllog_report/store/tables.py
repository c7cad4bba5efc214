from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Index, Integer, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class SqlLogRow(Base):
    """Append-only table of parsed SQL log records."""

    __tablename__ = "sql_log"

    # BIGSERIAL on PostgreSQL, INTEGER PRIMARY KEY (rowid) on SQLite
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    db_name: Mapped[str] = mapped_column(Text, nullable=False)
    sql_query: Mapped[str] = mapped_column(Text, nullable=False)
    exec_time_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)
    exec_count: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("idx_sql_log_db_name", "db_name"),
        Index("idx_sql_log_db_exec_time", "db_name", "exec_time_ms"),
        Index("idx_sql_log_created_at", "created_at"),
        Index("idx_sql_log_db_created_at", "db_name", "created_at"),
    )
