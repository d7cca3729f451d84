import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from export_templates.cli import app

runner = CliRunner()


@pytest.fixture
def files(tmp_path: Path, txn, ledger) -> dict[str, Path]:
    txn_path = tmp_path / "txn.json"
    txn_path.write_text(json.dumps(txn), encoding="utf-8")
    feed_path = tmp_path / "feed.json"
    feed_path.write_text(json.dumps({"transactions": [txn, {**txn, "status": "failed"}]}))
    ctx_path = tmp_path / "context.json"
    ctx_path.write_text(ledger.model_dump_json(by_alias=True), encoding="utf-8")
    mappings_path = tmp_path / "mappings.json"
    mappings_path.write_text(
        json.dumps(
            [
                {
                    "company_id": 1,
                    "export_type": "quickbooks_checks",
                    "field_name": "Memo",
                    "template": "{txn.categoryData.name}",
                }
            ]
        )
    )
    return {"txn": txn_path, "feed": feed_path, "ctx": ctx_path, "mappings": mappings_path}


def test_render(files):
    result = runner.invoke(
        app,
        [
            "render",
            "--template",
            "{concat(txn.counterpartyName, ' / ', bank)} {lookup:counterpartyName}",
            "--transaction",
            str(files["txn"]),
            "--context",
            str(files["ctx"]),
            "--var",
            "bank=Mercury",
        ],
    )
    assert result.exit_code == 0, result.output
    assert result.stdout.strip() == "Acme / Mercury Checking-1000"


def test_render_reports_missing_file(tmp_path: Path):
    result = runner.invoke(
        app, ["render", "--template", "{txn.id}", "--transaction", str(tmp_path / "nope.json")]
    )
    assert result.exit_code == 1
    assert "File not found" in result.output


def test_render_rejects_bad_var(files):
    result = runner.invoke(
        app,
        ["render", "--template", "x", "--transaction", str(files["txn"]), "--var", "novalue"],
    )
    assert result.exit_code == 1
    assert "KEY=VALUE" in result.output


def test_render_reports_too_complex(files, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("EXPORT_TEMPLATES_MAX_LENGTH", "5")
    result = runner.invoke(
        app, ["render", "--template", "{txn.id}", "--transaction", str(files["txn"])]
    )
    assert result.exit_code == 1
    assert "exceeds" in result.output


def test_export_rows_with_mappings(files):
    result = runner.invoke(
        app,
        [
            "export-rows",
            "--export-type",
            "quickbooks_checks",
            "--transactions",
            str(files["feed"]),
            "--context",
            str(files["ctx"]),
            "--mappings",
            str(files["mappings"]),
        ],
    )
    assert result.exit_code == 0, result.output
    lines = [line for line in result.stdout.splitlines() if line.strip()]
    assert len(lines) == 1
    row = json.loads(lines[0])
    assert row["Memo"] == "Payroll"
    assert row["Bank Account"] == "Mercury Checking 1000"
    assert list(row)[0] == "Bank Account"


def test_fields(files):
    result = runner.invoke(app, ["fields", "--export-type", "quickbooks_deposits"])
    assert result.exit_code == 0
    first = result.stdout.splitlines()[0]
    assert first.split("\t") == [
        "Deposit To",
        "{or(glNameMercuryChecking, ledgerLookup(gl_name_mercury_checking))}",
    ]


def test_log_level_option_reports_selection(files):
    result = runner.invoke(
        app,
        [
            "--log-level",
            "INFO",
            "export-rows",
            "--export-type",
            "quickbooks_checks",
            "--transactions",
            str(files["feed"]),
        ],
    )
    assert result.exit_code == 0, result.output
    assert "INFO export_templates.exports: selected 1 of 2 transactions for quickbooks_checks" in (
        result.output
    )
