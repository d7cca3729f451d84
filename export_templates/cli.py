"""CLI for the ``export_templates`` package.

This module exposes callable command handlers (``cmd_render``,
``cmd_export_rows``, ``cmd_fields``) and a Typer-based console interface.
Environment variables (log level, engine limits) are loaded from a local
``.env`` using ``python-dotenv`` before delegating to command logic. All
evaluation lives in ``export_templates.template`` and
``export_templates.exports``.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from pydantic import ValidationError

from .exports import DEFAULT_FIELD_TEMPLATES, ExportType, render_rows
from .logging_setup import configure_logging, get_logger
from .models import CsvMapping, LedgerContext, Transaction
from .template import TemplateTooComplex, process_template

_logger = get_logger("export_templates.cli")


class InputError(Exception):
    """A CLI input file or argument could not be used."""


# ---- Input helpers -----------------------------------------------------------


def _load_json(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise InputError(f"File not found: {path}") from e
    except PermissionError as e:
        raise InputError(f"Permission denied: {path}") from e
    except json.JSONDecodeError as e:
        raise InputError(f"Invalid JSON in {path}: {e}") from e


def _parse_vars(pairs: Sequence[str] | None) -> dict[str, str]:
    """Parse repeated ``KEY=VALUE`` options; the value may contain ``=``."""

    out: dict[str, str] = {}
    for pair in pairs or ():
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise InputError(f"Expected KEY=VALUE, got {pair!r}")
        out[key.strip()] = value
    return out


def _load_context(path: Path | None) -> LedgerContext | None:
    if path is None:
        return None
    try:
        return LedgerContext.model_validate(_load_json(path))
    except ValidationError as e:
        raise InputError(f"Invalid ledger context in {path}: {e}") from e


def _load_transactions(path: Path) -> list[Transaction]:
    data = _load_json(path)
    if isinstance(data, dict) and "transactions" in data:
        data = data["transactions"]
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise InputError(f"Expected a transaction object or list in {path}")
    try:
        return [Transaction.model_validate(item) for item in data]
    except ValidationError as e:
        raise InputError(f"Invalid transaction in {path}: {e}") from e


def _load_mappings(path: Path | None) -> list[CsvMapping]:
    if path is None:
        return []
    data = _load_json(path)
    if not isinstance(data, list):
        raise InputError(f"Expected a list of mappings in {path}")
    try:
        return [CsvMapping.model_validate(item) for item in data]
    except ValidationError as e:
        raise InputError(f"Invalid CSV mapping in {path}: {e}") from e


# ---- Command handlers --------------------------------------------------------


def cmd_render(
    template: str,
    transaction_path: Path,
    *,
    context_path: Path | None = None,
    variables: Sequence[str] | None = None,
) -> int:
    """Evaluate ``template`` against the first transaction in a JSON file.

    Prints the result to stdout. Errors are written to stderr and a non-zero
    exit status is returned.
    """

    try:
        transactions = _load_transactions(transaction_path)
        if not transactions:
            raise InputError(f"No transactions in {transaction_path}")
        context = _load_context(context_path)
        additional_vars = _parse_vars(variables)
    except InputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        result = process_template(template, transactions[0], additional_vars, context)
    except TemplateTooComplex as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(result)
    return 0


def cmd_export_rows(
    export_type: ExportType,
    transactions_path: Path,
    *,
    context_path: Path | None = None,
    mappings_path: Path | None = None,
    company_id: int | None = None,
    variables: Sequence[str] | None = None,
) -> int:
    """Render the cells of ``export_type`` for every qualifying transaction.

    Writes one JSON object per row (header -> cell value) to stdout, in
    column order.
    """

    try:
        transactions = _load_transactions(transactions_path)
        context = _load_context(context_path)
        mappings = _load_mappings(mappings_path)
        additional_vars = _parse_vars(variables)
    except InputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        headers, rows = render_rows(
            export_type,
            transactions,
            additional_vars,
            context,
            mappings,
            company_id=company_id,
        )
    except TemplateTooComplex as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for row in rows:
        print(json.dumps(dict(zip(headers, row, strict=True)), ensure_ascii=False))
    _logger.debug("wrote %d rows", len(rows))
    return 0


def cmd_fields(export_type: ExportType) -> int:
    """Print the default ``<header>\\t<template>`` pairs for ``export_type``."""

    for header, template in DEFAULT_FIELD_TEMPLATES[ExportType(export_type)].items():
        print(f"{header}\t{template}")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Evaluate accounting-export field templates against bank transactions.",
)

VarsOption = Annotated[
    list[str] | None,
    typer.Option("--var", help="Additional variable as KEY=VALUE (repeatable)."),
]
ContextOption = Annotated[
    Path | None,
    typer.Option("--context", help="JSON file with the ledger lookup tables.", dir_okay=False),
]


def _exit(code: int) -> None:
    if code:
        raise typer.Exit(code)


@app.command("render")
def render_cmd(
    template: Annotated[str, typer.Option("--template", help="Template text to evaluate.")],
    transaction: Annotated[
        Path, typer.Option("--transaction", help="JSON file with the transaction.", dir_okay=False)
    ],
    context: ContextOption = None,
    var: VarsOption = None,
) -> None:
    """Evaluate a single template against one transaction."""

    _exit(cmd_render(template, transaction, context_path=context, variables=var))


@app.command("export-rows")
def export_rows_cmd(
    export_type: Annotated[ExportType, typer.Option("--export-type", help="Export to render.")],
    transactions: Annotated[
        Path,
        typer.Option("--transactions", help="JSON file with a list of transactions.", dir_okay=False),
    ],
    context: ContextOption = None,
    mappings: Annotated[
        Path | None,
        typer.Option("--mappings", help="JSON file with saved CSV mappings.", dir_okay=False),
    ] = None,
    company_id: Annotated[
        int | None, typer.Option("--company-id", help="Only apply this company's mappings.")
    ] = None,
    var: VarsOption = None,
) -> None:
    """Render every column of an export for the qualifying transactions."""

    _exit(
        cmd_export_rows(
            export_type,
            transactions,
            context_path=context,
            mappings_path=mappings,
            company_id=company_id,
            variables=var,
        )
    )


@app.command("fields")
def fields_cmd(
    export_type: Annotated[ExportType, typer.Option("--export-type", help="Export to describe.")],
) -> None:
    """List the default column templates of an export."""

    _exit(cmd_fields(export_type))


@app.callback()
def _root(
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="DEBUG, INFO, WARNING or ERROR (default: $EXPORT_TEMPLATES_LOG_LEVEL or WARNING).",
        ),
    ] = None,
) -> None:
    """Load ``.env`` from the current directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


if __name__ == "__main__":  # pragma: no cover
    app()
