"""Export types, default field templates and per-row cell production.

Each export type has an ordered set of columns, each column a template
evaluated by :func:`~export_templates.template.process_template`. Companies
override individual columns through :class:`~export_templates.models.CsvMapping`
records. This module only produces cell values; escaping and writing CSV
files is left to the caller.

Besides the caller's variables, every row gets a few derived variables
computed from its transaction (see :func:`derived_vars`), so the defaults can
express things templates alone cannot (absolute amounts, US dates).
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from .config import EngineLimits
from .logging_setup import get_logger
from .lookups import get_nested_value, stringify
from .models import CsvMapping, LedgerContext, Transaction, TransactionRecord
from .template import process_template

_logger = get_logger("export_templates.exports")


class ExportType(str, Enum):
    MERCURY = "mercury"
    QUICKBOOKS_DEPOSITS = "quickbooks_deposits"
    QUICKBOOKS_CHECKS = "quickbooks_checks"
    QUICKBOOKS_CREDIT_CARD = "quickbooks_credit_card"


QUICKBOOKS_EXPORTABLE_STATUSES: tuple[str, ...] = ("sent", "pending")

_AUTOPAY_MARKER = "IO AUTOPAY"

# ---------------------------------------------------------------------------
# Transaction selection
# ---------------------------------------------------------------------------


def _amount(txn: TransactionRecord) -> Decimal | None:
    raw = txn.get("amount")
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return raw if isinstance(raw, Decimal) else Decimal(str(raw).strip())
    except InvalidOperation:
        return None


def _is_exportable(txn: TransactionRecord) -> bool:
    return txn.get("status") in QUICKBOOKS_EXPORTABLE_STATUSES


def _is_autopay(txn: TransactionRecord) -> bool:
    return txn.get("kind") == "other" and _AUTOPAY_MARKER in (txn.get("bankDescription") or "")


def _is_autopay_credit(txn: TransactionRecord) -> bool:
    amount = _amount(txn)
    return _is_autopay(txn) and amount is not None and amount > 0


def is_deposit_transaction(txn: TransactionRecord) -> bool:
    if not _is_exportable(txn) or _is_autopay_credit(txn):
        return False
    if txn.get("kind") in ("outgoingPayment", "creditCardTransaction"):
        return False
    amount = _amount(txn)
    return amount is not None and amount > 0


def is_withdrawal_transaction(txn: TransactionRecord) -> bool:
    if not _is_exportable(txn):
        return False
    kind = txn.get("kind")
    if kind == "outgoingPayment":
        return True
    if kind == "creditCardTransaction" or _is_autopay_credit(txn):
        return False
    amount = _amount(txn)
    return amount is not None and amount < 0


def is_credit_card_transaction(txn: TransactionRecord) -> bool:
    return _is_exportable(txn) and txn.get("kind") == "creditCardTransaction"


_SELECTORS: dict[ExportType, Callable[[TransactionRecord], bool]] = {
    ExportType.MERCURY: lambda _txn: True,
    ExportType.QUICKBOOKS_DEPOSITS: is_deposit_transaction,
    ExportType.QUICKBOOKS_CHECKS: is_withdrawal_transaction,
    ExportType.QUICKBOOKS_CREDIT_CARD: is_credit_card_transaction,
}


def select_transactions(
    export_type: ExportType, transactions: Iterable[TransactionRecord]
) -> list[TransactionRecord]:
    """Keep the transactions that belong in ``export_type``, in input order."""

    selector = _SELECTORS[ExportType(export_type)]
    return [t for t in transactions if selector(t)]


# ---------------------------------------------------------------------------
# Derived variables
# ---------------------------------------------------------------------------


def _us_date(created_at: Any) -> str:
    if not isinstance(created_at, str) or not created_at.strip():
        return ""
    try:
        dt = datetime.fromisoformat(created_at.strip())
    except ValueError:
        return ""
    return f"{dt.month}/{dt.day}/{dt.year}"


def derived_vars(txn: TransactionRecord) -> dict[str, str]:
    """Per-transaction variables available to every export template.

    - ``amountAbs``: absolute amount (``"42.5"`` for ``-42.5``)
    - ``createdDate``: ``createdAt`` as ``M/D/YYYY`` (calendar date as written,
      no timezone conversion)
    - ``glCode``: ``generalLedgerCodeName`` with ``|`` separators turned into commas
    - ``shortId``: first eight characters of the transaction id
    - ``isAutopay``: ``"true"`` for ``IO AUTOPAY`` transfers, else empty
    """

    amount = _amount(txn)
    gl_code = stringify(txn.get("generalLedgerCodeName"))
    return {
        "amountAbs": stringify(abs(amount)) if amount is not None else "",
        "createdDate": _us_date(txn.get("createdAt")),
        "glCode": gl_code.replace("|", ","),
        "shortId": stringify(get_nested_value(txn, "id"))[:8],
        "isAutopay": "true" if _is_autopay(txn) else "",
    }


# ---------------------------------------------------------------------------
# Field templates
# ---------------------------------------------------------------------------

_CHECKING_ACCOUNT = "{or(glNameMercuryChecking, ledgerLookup(gl_name_mercury_checking))}"
_CREDIT_CARD_ACCOUNT = "{or(glNameMercuryCreditCard, ledgerLookup(gl_name_mercury_credit_card))}"
_MEMO = '{concat(txn.bankDescription, " - ", txn.categoryData.name)}'

_ITEM_COLUMNS: tuple[str, ...] = (
    "Item",
    "Item Description",
    "Item Qty.",
    "Item Cost",
    "Item Amount",
    "Item Customer:Job",
    "Item Billable",
    "Item Class",
)

DEFAULT_FIELD_TEMPLATES: dict[ExportType, dict[str, str]] = {
    ExportType.MERCURY: {
        "ID": "{txn.id}",
        "Card Name": "{txn.details.creditCardInfo.email}",
        "Card Payment Method": "{txn.details.creditCardInfo.paymentMethod}",
        "Amount": "{txn.amount}",
        "Created": "{txn.createdAt}",
        "Status": "{txn.status}",
        "Counterparty Name": "{txn.counterpartyName}",
        "Bank Description": "{txn.bankDescription}",
        "Kind": "{txn.kind}",
        "Category": "{txn.categoryData.name}",
        "Mercury Category": "{txn.mercuryCategory}",
        "GL Code": "{txn.generalLedgerCodeName}",
        "Attachments": "{txn.attachments.0.url}",
    },
    ExportType.QUICKBOOKS_DEPOSITS: {
        "Deposit To": _CHECKING_ACCOUNT,
        "Date": "{createdDate}",
        "Memo": _MEMO,
        "Received From": "{txn.counterpartyName}",
        "From Account": "{glCode}",
        "Line Memo": "{txn.bankDescription}",
        "Check No.": "",
        "Payment Method": "{txn.kind}",
        "Class": "",
        "Amount": "{amountAbs}",
        "Less Cash Back": "",
        "Cash back Accnt.": "",
        "Cash back Memo": "",
    },
    ExportType.QUICKBOOKS_CHECKS: {
        "Bank Account": _CHECKING_ACCOUNT,
        "Payee": "{txn.counterpartyName}",
        "Number": "{shortId}",
        "Date": "{createdDate}",
        "Total Amount": "{amountAbs}",
        "Memo": _MEMO,
        "Expense Account": (
            "{if(isAutopay, or(glNameMercuryCreditCard, "
            "ledgerLookup(gl_name_mercury_credit_card)), glCode)}"
        ),
        "Expense Amount": "{amountAbs}",
        "Expense Memo": "{txn.bankDescription}",
        "Expense Customer:Job": "",
        "Expense Billable": "",
        "Expense Class": "",
        **dict.fromkeys(_ITEM_COLUMNS, ""),
    },
    ExportType.QUICKBOOKS_CREDIT_CARD: {
        "Credit Card Account": _CREDIT_CARD_ACCOUNT,
        "Purchased From": "{txn.counterpartyName}",
        "Ref Number": "{shortId}",
        "Date": "{createdDate}",
        "Expense Account": "{glCode}",
        "Expense Amount": "{amountAbs}",
        "Expense Customer:Job": "{txn.mercuryCategory}",
        "Expense Billable": "",
        "Expense Class": "",
        **dict.fromkeys(_ITEM_COLUMNS, ""),
    },
}


def resolve_field_templates(
    export_type: ExportType,
    mappings: Iterable[CsvMapping] = (),
    *,
    company_id: int | None = None,
) -> dict[str, str]:
    """Overlay a company's saved mappings onto the default columns.

    Mappings for other export types (or other companies, when ``company_id``
    is given) are ignored. Overridden columns keep their default position;
    columns the defaults don't know are appended in the order given.
    """

    export_type = ExportType(export_type)
    fields = dict(DEFAULT_FIELD_TEMPLATES[export_type])
    for m in mappings:
        if m.export_type != export_type.value:
            continue
        if company_id is not None and m.company_id != company_id:
            continue
        fields[m.field_name] = m.template
    return fields


# ---------------------------------------------------------------------------
# Row production
# ---------------------------------------------------------------------------


def _as_record(txn: TransactionRecord | Transaction) -> TransactionRecord:
    return txn.to_record() if isinstance(txn, Transaction) else txn


def render_row(
    field_templates: Mapping[str, str],
    transaction: TransactionRecord | Transaction,
    additional_vars: Mapping[str, str] | None = None,
    ledger_context: LedgerContext | None = None,
    *,
    limits: EngineLimits | None = None,
) -> list[str]:
    """Evaluate every column template for one transaction, in column order."""

    record = _as_record(transaction)
    variables = {**derived_vars(record), **(additional_vars or {})}
    limits = limits if limits is not None else EngineLimits.from_env()
    return [
        process_template(template, record, variables, ledger_context, limits=limits)
        for template in field_templates.values()
    ]


def render_rows(
    export_type: ExportType,
    transactions: Iterable[TransactionRecord | Transaction],
    additional_vars: Mapping[str, str] | None = None,
    ledger_context: LedgerContext | None = None,
    mappings: Sequence[CsvMapping] = (),
    *,
    company_id: int | None = None,
    limits: EngineLimits | None = None,
) -> tuple[list[str], list[list[str]]]:
    """Select the transactions for ``export_type`` and render their cells.

    Returns ``(headers, rows)``. ``rows`` is empty when nothing qualifies.
    """

    export_type = ExportType(export_type)
    records = [_as_record(t) for t in transactions]
    selected = select_transactions(export_type, records)
    _logger.info(
        "selected %d of %d transactions for %s", len(selected), len(records), export_type.value
    )

    fields = resolve_field_templates(export_type, mappings, company_id=company_id)
    limits = limits if limits is not None else EngineLimits.from_env()
    rows = [
        render_row(fields, txn, additional_vars, ledger_context, limits=limits)
        for txn in selected
    ]
    return list(fields), rows


__all__ = [
    "DEFAULT_FIELD_TEMPLATES",
    "ExportType",
    "QUICKBOOKS_EXPORTABLE_STATUSES",
    "derived_vars",
    "is_credit_card_transaction",
    "is_deposit_transaction",
    "is_withdrawal_transaction",
    "render_row",
    "render_rows",
    "resolve_field_templates",
    "select_transactions",
]
