from pathlib import PurePath

from sqllog_report.exceptions import UnsupportedUploadError

ALLOWED_EXTENSIONS = frozenset({".log", ".txt"})


def check_upload(filename: str, content_type: str | None = None) -> None:
    """Reject uploads that are not plain-text SQL log files."""
    extension = PurePath(filename.lower()).suffix
    if extension not in ALLOWED_EXTENSIONS:
        raise UnsupportedUploadError(
            f"unsupported file extension: {extension or '<none>'} (allowed: .log, .txt)"
        )

    content_type = (content_type or "").strip().lower()
    if content_type and not (
        content_type.startswith("text/plain") or content_type == "application/octet-stream"
    ):
        raise UnsupportedUploadError(f"unsupported content-type: {content_type}")
