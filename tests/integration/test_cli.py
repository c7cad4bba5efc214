import json
from pathlib import Path

import pytest

from sqllog_report.cli import build_parser, main
from sqllog_report.config import reset_settings


@pytest.fixture
def database_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    monkeypatch.chdir(tmp_path)
    reset_settings()
    yield f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"
    reset_settings()


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_report_format_choices() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["report", "--format", "xlsx"])


def test_ingest_then_report(
    database_url: str, fixture_log: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main(["--database-url", database_url, "init-db"]) == 0
    assert main(["--database-url", database_url, "ingest", str(fixture_log)]) == 0
    ingest = json.loads(capsys.readouterr().out)
    assert ingest["accepted"] == 5

    target = tmp_path / "report.csv"
    args = ["--database-url", database_url, "report", "--format", "csv", "--output", str(target)]
    assert main(args) == 0
    assert target.read_text().startswith("key,value\n")

    assert main(["--database-url", database_url, "report", "--output", str(tmp_path)]) == 0
    assert list(tmp_path.glob("sql-report-*.json"))


def test_seed_and_scan(database_url: str, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--database-url", database_url, "seed", "--count", "40"]) == 0
    capsys.readouterr()

    assert main(["--database-url", database_url, "scan", "--limit", "5"]) == 0
    payload = json.loads(capsys.readouterr().out)

    assert payload["total"] >= len(payload["items"])
    assert len(payload["items"]) <= 5


def test_invalid_database_name_fails(database_url: str, capsys: pytest.CaptureFixture[str]) -> None:
    main(["--database-url", database_url, "init-db"])

    assert main(["--database-url", database_url, "list", "--db", "bad name"]) == 1
    assert "invalid database name" in capsys.readouterr().err
