from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqllog_report.domain import IngestResult


class SqlLogError(Exception):
    pass


class ParseErrorKind(StrEnum):
    EMPTY_LINE = "empty_line"
    MALFORMED_FORMAT = "malformed_format"
    INVALID_NUMBER = "invalid_number"
    NEGATIVE_VALUE = "negative_value"
    MISSING_FIELD = "missing_field"


class LineParseError(SqlLogError):
    def __init__(self, kind: ParseErrorKind, line: str, detail: str | None = None) -> None:
        message = f"{kind}: {detail}" if detail else str(kind)
        super().__init__(message)
        self.kind = kind
        self.line = line
        self.detail = detail


class StreamError(SqlLogError):
    # counts for the lines consumed before the stream failed, when known
    result: "IngestResult | None" = None


class LineTooLongError(StreamError):
    def __init__(self, line_number: int, max_bytes: int) -> None:
        super().__init__(f"line {line_number} exceeds maximum length of {max_bytes} bytes")
        self.line_number = line_number
        self.max_bytes = max_bytes


class IngestCancelledError(StreamError):
    def __init__(self, lines_read: int) -> None:
        super().__init__(f"ingestion cancelled after {lines_read} line(s)")
        self.lines_read = lines_read


class UnsupportedUploadError(SqlLogError):
    pass


class RecordValidationError(SqlLogError):
    def __init__(self, index: int) -> None:
        super().__init__(f"missing required fields at index {index}")
        self.index = index


class StoreError(SqlLogError):
    pass


class AnalysisError(SqlLogError):
    def __init__(self, phase: str, cause: BaseException) -> None:
        super().__init__(f"{phase}: {cause}")
        self.phase = phase
        self.cause = cause


class ExportError(SqlLogError):
    def __init__(self, format: str, cause: BaseException) -> None:
        super().__init__(f"{format} export failed: {cause}")
        self.format = format
        self.cause = cause
