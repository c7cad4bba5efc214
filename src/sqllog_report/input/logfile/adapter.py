from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import BinaryIO

from sqllog_report.exceptions import LineTooLongError

DEFAULT_MAX_LINE_BYTES = 1 << 20
CHUNK_SIZE = 64 * 1024


class LogFileInput:
    """Async line source over a SQL log file or binary stream.

    Reads in fixed-size chunks so memory stays bounded by ``max_line_bytes``
    regardless of file size. A line longer than the limit raises
    LineTooLongError, which ends the stream.
    """

    def __init__(
        self,
        file_path: str | Path,
        max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
    ) -> None:
        self._file_path: Path | None = Path(file_path)
        self._max_line_bytes = max_line_bytes
        self._stream: BinaryIO | None = None
        self._owns_stream = True
        self._lines: Iterator[str] | None = None
        self._buffer = bytearray()
        self._scan_from = 0
        self._line_number = 0
        self._exhausted = False

    @classmethod
    def from_stream(
        cls,
        stream: BinaryIO,
        max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
    ) -> "LogFileInput":
        """Wrap an already open binary stream (e.g. an uploaded file). The caller closes it."""
        instance = cls("/dev/null", max_line_bytes)
        instance._file_path = None
        instance._stream = stream
        instance._owns_stream = False
        return instance

    @classmethod
    def from_lines(
        cls,
        lines: Iterable[str],
        max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
    ) -> "LogFileInput":
        """Create adapter from pre-loaded lines (for testing)."""
        instance = cls("/dev/null", max_line_bytes)
        instance._file_path = None
        instance._lines = iter(lines)
        return instance

    @property
    def line_number(self) -> int:
        return self._line_number

    def __aiter__(self) -> "LogFileInput":
        return self

    async def __anext__(self) -> str:
        if self._exhausted:
            raise StopAsyncIteration

        try:
            line = self._next_from_lines() if self._lines is not None else self._next_from_stream()
        except BaseException:
            self.close()
            raise

        if line is None:
            self.close()
            raise StopAsyncIteration

        self._line_number += 1
        return line

    def close(self) -> None:
        self._exhausted = True
        if self._stream is not None and self._owns_stream:
            self._stream.close()
        self._stream = None

    def _next_from_lines(self) -> str | None:
        line = next(self._lines, None)  # type: ignore[arg-type]
        if line is None:
            return None
        if len(line.encode("utf-8")) > self._max_line_bytes:
            raise LineTooLongError(self._line_number + 1, self._max_line_bytes)
        return line

    def _next_from_stream(self) -> str | None:
        if self._stream is None:
            self._open_file()

        while True:
            newline = self._buffer.find(b"\n", self._scan_from)
            if newline >= 0:
                raw = bytes(self._buffer[:newline])
                del self._buffer[: newline + 1]
                self._scan_from = 0
                return self._decode(raw)

            if len(self._buffer) > self._max_line_bytes:
                raise LineTooLongError(self._line_number + 1, self._max_line_bytes)

            self._scan_from = len(self._buffer)
            chunk = self._stream.read(CHUNK_SIZE)  # type: ignore[union-attr]
            if not chunk:
                if not self._buffer:
                    return None
                raw = bytes(self._buffer)
                self._buffer.clear()
                self._scan_from = 0
                return self._decode(raw)
            self._buffer.extend(chunk)

    def _decode(self, raw: bytes) -> str:
        if raw.endswith(b"\r"):
            raw = raw[:-1]
        if len(raw) > self._max_line_bytes:
            raise LineTooLongError(self._line_number + 1, self._max_line_bytes)
        return raw.decode("utf-8", errors="replace")

    def _open_file(self) -> None:
        if self._file_path is None or not self._file_path.exists():
            raise FileNotFoundError(f"Log file not found: {self._file_path}")
        self._stream = open(self._file_path, "rb")
