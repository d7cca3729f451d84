"""Pytest configuration for test isolation.

Engine limits and the log level are read from ``EXPORT_TEMPLATES_*``
environment variables (and the CLI loads a ``.env`` from the working
directory). Each test gets a clean environment and its own working directory
so a developer's local settings can't leak into assertions.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from export_templates import LedgerContext


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in list(os.environ):
        if name.startswith("EXPORT_TEMPLATES_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    pkg_logger = logging.getLogger("export_templates")
    level = pkg_logger.level
    yield
    pkg_logger.setLevel(level)


@pytest.fixture
def txn() -> dict:
    return {
        "id": "7b1c9e2a-44f0-11ee-be56-0242ac120002",
        "amount": -42.5,
        "createdAt": "2025-08-29T14:03:11Z",
        "status": "sent",
        "bankDescription": "ACME CORP PAYROLL",
        "counterpartyName": "Acme",
        "kind": "outgoingPayment",
        "mercuryCategory": "Payroll",
        "generalLedgerCodeName": "6000 Payroll|6010 Taxes",
        "categoryData": {"id": "cat_1", "name": "Payroll"},
        "details": {
            "creditCardInfo": {"email": "ops@example.com", "paymentMethod": "virtual"}
        },
        "attachments": [{"fileName": "r.pdf", "url": "https://files.example.com/r.pdf"}],
    }


@pytest.fixture
def ledger() -> LedgerContext:
    return LedgerContext.model_validate(
        {
            "ledgerRecords": {
                "gl_checking": "Checking-1000",
                "gl_name_mercury_checking": "Mercury Checking 1000",
                "gl_name_mercury_credit_card": "Mercury Card 2000",
            },
            "mercuryAccounts": [
                {"id": 1, "external_id": "ext-acme", "name": "Acme", "nickname": None},
                {"id": 2, "external_id": "ext-ops", "name": "Operations", "nickname": "Ops"},
                {"id": 4, "external_id": "ext-orphan", "name": "Orphan"},
            ],
            "ledgerPresets": [
                {"id": 3, "key": "gl_checking", "label": "GL Checking"},
                {"id": 5, "key": "gl_unset", "label": "GL Unset"},
            ],
            "mercuryAccountMappings": {"1": 3, "2": 5},
        }
    )
