"""Command-line entry point: ``sqllog-report <command>``."""

import argparse
import asyncio
import json
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from sqllog_report.config import get_settings
from sqllog_report.core import SqlLogService, demo_records
from sqllog_report.domain import IngestResult, parse_time_bound
from sqllog_report.exceptions import SqlLogError, StreamError
from sqllog_report.logging_setup import configure_logging
from sqllog_report.output import OUTPUT_FORMATS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sqllog-report",
        description="Ingest SQL execution logs and build anomaly reports.",
    )
    parser.add_argument("--database-url", help="Override SQLLOG_DATABASE_URL")
    parser.add_argument("--log-level", help="Override SQLLOG_LOG_LEVEL")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create the sql_log table and indexes")

    ingest = commands.add_parser("ingest", help="Parse a log file and store its records")
    ingest.add_argument("path", type=Path)
    ingest.add_argument("--content-type", default=None)

    commands.add_parser("databases", help="List database names present in the store")

    listing = commands.add_parser("list", help="List records for one database, newest first")
    listing.add_argument("--db", required=True)
    listing.add_argument("--limit", type=int, default=None)

    scan = commands.add_parser("scan", help="Records where exec time AND count reach thresholds")
    scan.add_argument("--db", default=None)
    scan.add_argument("--exec-time-ms", type=int, default=500)
    scan.add_argument("--exec-count", type=int, default=100)
    scan.add_argument("--limit", type=int, default=100)

    report = commands.add_parser("report", help="Build a report and write it to a file")
    report.add_argument("--format", choices=OUTPUT_FORMATS, default="json")
    report.add_argument("--from", dest="start", default=None, help="RFC3339 or YYYY-MM-DD")
    report.add_argument("--to", dest="end", default=None, help="RFC3339 or YYYY-MM-DD")
    report.add_argument("--db", default=None)
    report.add_argument("--limit", type=int, default=None)
    report.add_argument("--slow-ms", type=int, default=None)
    report.add_argument("--freq-slow-ms", type=int, default=None)
    report.add_argument("--freq-count", type=int, default=None)
    report.add_argument(
        "--percentiles",
        default=None,
        help="Comma-separated fractions, e.g. 0.5,0.9,0.99",
    )
    report.add_argument("--top-patterns", type=int, default=None)
    report.add_argument(
        "--output", type=Path, default=None, help="File or directory; '-' writes to stdout"
    )

    seed = commands.add_parser("seed", help="Insert deterministic demo records")
    seed.add_argument("--count", type=int, default=200)
    seed.add_argument("--seed", type=int, default=7)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    overrides: dict[str, str] = {}
    if args.database_url:
        overrides["database_url"] = args.database_url
    if args.log_level:
        overrides["log_level"] = args.log_level
    if overrides:
        settings = settings.model_copy(update=overrides)

    configure_logging(settings.log_level)

    try:
        return asyncio.run(_run(args, SqlLogService.from_settings(settings)))
    except (SqlLogError, ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


async def _run(args: argparse.Namespace, service: SqlLogService) -> int:
    try:
        handler = COMMANDS[args.command]
        return await handler(args, service)
    finally:
        await service.close()


async def _init_db(args: argparse.Namespace, service: SqlLogService) -> int:
    await service.init_schema()
    print("schema ready")
    return 0


async def _ingest(args: argparse.Namespace, service: SqlLogService) -> int:
    try:
        result = await service.ingest_file(args.path, args.content_type)
    except StreamError as exc:
        if exc.result is not None:
            _print_json(_ingest_payload(exc.result))
        raise
    _print_json(_ingest_payload(result))
    return 0


def _ingest_payload(result: IngestResult) -> dict[str, Any]:
    return {
        "total_lines": result.total_lines,
        "accepted": result.accepted,
        "rejected": result.rejected,
        "rejected_reasons": list(result.rejected_reasons),
    }


async def _databases(args: argparse.Namespace, service: SqlLogService) -> int:
    _print_json({"databases": await service.list_databases()})
    return 0


async def _list(args: argparse.Namespace, service: SqlLogService) -> int:
    records = await service.list_by_database(args.db, args.limit)
    _print_json(
        {
            "db": args.db.strip(),
            "count": len(records),
            "items": [
                {
                    "db_name": record.database_name,
                    "sql_query": record.sql_text,
                    "exec_time_ms": record.exec_time_ms,
                    "exec_count": record.exec_count,
                    "created_at": record.created_at.isoformat() if record.created_at else None,
                }
                for record in records
            ],
        }
    )
    return 0


async def _scan(args: argparse.Namespace, service: SqlLogService) -> int:
    result = await service.scan(args.db, args.exec_time_ms, args.exec_count, args.limit)
    _print_json(
        {
            "message": "scan complete" if result.total else "No abnormal queries detected",
            "total": result.total,
            "items": [
                {
                    "db_name": item.database_name,
                    "sql_query": item.sql_text,
                    "exec_time_ms": item.exec_time_ms,
                    "exec_count": item.exec_count,
                    "status": "abnormal",
                }
                for item in result.items
            ],
        }
    )
    return 0


async def _report(args: argparse.Namespace, service: SqlLogService) -> int:
    report_filter = service.build_filter(
        start=parse_time_bound(args.start) if args.start else None,
        end=parse_time_bound(args.end, end_of_day=True) if args.end else None,
        database=args.db,
        anomaly_limit=args.limit,
        slow_ms=args.slow_ms,
        freq_slow_ms=args.freq_slow_ms,
        freq_count=args.freq_count,
        percentiles=_parse_percentiles(args.percentiles),
        top_patterns=args.top_patterns,
    )
    payload = await service.report(report_filter, args.format)

    if args.output is not None and str(args.output) == "-":
        sys.stdout.buffer.write(payload)
        return 0

    target = args.output or Path.cwd()
    if target.is_dir():
        target = target / service.report_filename(args.format)
    target.write_bytes(payload)
    print(target)
    return 0


async def _seed(args: argparse.Namespace, service: SqlLogService) -> int:
    await service.init_schema()
    inserted = await service.seed(demo_records(args.count, args.seed))
    print(f"seeded {inserted} record(s)")
    return 0


def _parse_percentiles(text: str | None) -> list[float] | None:
    if not text:
        return None
    try:
        return [float(part) for part in text.split(",") if part.strip()]
    except ValueError:
        raise ValueError(f"invalid percentiles {text!r}: expected fractions like 0.5,0.9") from None


def _print_json(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


COMMANDS = {
    "init-db": _init_db,
    "ingest": _ingest,
    "databases": _databases,
    "list": _list,
    "scan": _scan,
    "report": _report,
    "seed": _seed,
}


if __name__ == "__main__":
    sys.exit(main())
