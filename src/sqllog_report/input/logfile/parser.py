import re
from typing import ClassVar

from sqllog_report.domain import LogRecord
from sqllog_report.exceptions import LineParseError, ParseErrorKind


class LogLineParser:
    """Parser for ``DB:<name>,sql:<query>,exec_time_ms:<int>,exec_count:<int>`` lines.

    The query may itself contain commas, so it is matched non-greedily and the
    two trailing numeric fields anchor the end of the line.
    """

    LOG_LINE_PATTERN: ClassVar[re.Pattern[str]] = re.compile(
        r"^DB:(?P<db>[^,]*),"
        r"sql:(?P<sql>.*?),"
        r"exec_time_ms:(?P<exec_time>[^,]*?),"
        r"exec_count:(?P<exec_count>[^,]*?)\s*$",
        re.DOTALL,
    )

    INTEGER_PATTERN: ClassVar[re.Pattern[str]] = re.compile(r"^-?\d+$")

    def parse_line(self, line: str) -> LogRecord:
        """Parse one log line. Raises LineParseError describing the violated constraint."""
        stripped = line.strip()
        if not stripped:
            raise LineParseError(ParseErrorKind.EMPTY_LINE, line, "empty line")

        match = self.LOG_LINE_PATTERN.match(stripped)
        if not match:
            raise LineParseError(ParseErrorKind.MALFORMED_FORMAT, line, "invalid line format")

        exec_time_ms = self._parse_int(match.group("exec_time").strip(), "exec_time_ms", line)
        exec_count = self._parse_int(match.group("exec_count").strip(), "exec_count", line)

        database_name = match.group("db").strip()
        sql_text = match.group("sql").strip()
        if not database_name or not sql_text:
            raise LineParseError(ParseErrorKind.MISSING_FIELD, line, "db or sql is empty")

        if exec_time_ms < 0 or exec_count < 0:
            raise LineParseError(ParseErrorKind.NEGATIVE_VALUE, line, "negative values not allowed")

        return LogRecord(
            database_name=database_name,
            sql_text=sql_text,
            exec_time_ms=exec_time_ms,
            exec_count=exec_count,
        )

    def _parse_int(self, raw: str, field_name: str, line: str) -> int:
        if not self.INTEGER_PATTERN.match(raw):
            raise LineParseError(
                ParseErrorKind.INVALID_NUMBER, line, f"invalid {field_name}: {raw!r}"
            )
        return int(raw)


def format_line(record: LogRecord) -> str:
    """Render a record in the line grammar understood by LogLineParser."""
    return (
        f"DB:{record.database_name},sql:{record.sql_text},"
        f"exec_time_ms:{record.exec_time_ms},exec_count:{record.exec_count}"
    )
