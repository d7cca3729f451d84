"""Public interface for the ``export_templates`` package.

This module exposes the package's API functions and public models/types as the
stable import surface. There is no runtime logic here, only symbol re-exports.
"""

from .config import EngineLimits
from .exports import (
    DEFAULT_FIELD_TEMPLATES,
    QUICKBOOKS_EXPORTABLE_STATUSES,
    ExportType,
    derived_vars,
    is_credit_card_transaction,
    is_deposit_transaction,
    is_withdrawal_transaction,
    render_row,
    render_rows,
    resolve_field_templates,
    select_transactions,
)
from .lookups import get_ledger_preset_key, get_nested_value, perform_ledger_lookup
from .models import (
    CsvMapping,
    LedgerContext,
    LedgerPreset,
    MercuryAccount,
    Transaction,
    TransactionRecord,
)
from .scanning import find_function_calls, split_by_comma, split_comparison
from .template import TemplateTooComplex, evaluate_condition, process_template, resolve_value

__all__ = [
    # Engine
    "process_template",
    "resolve_value",
    "evaluate_condition",
    "find_function_calls",
    "split_by_comma",
    "split_comparison",
    "get_nested_value",
    "perform_ledger_lookup",
    "get_ledger_preset_key",
    "EngineLimits",
    "TemplateTooComplex",
    # Exports
    "ExportType",
    "DEFAULT_FIELD_TEMPLATES",
    "QUICKBOOKS_EXPORTABLE_STATUSES",
    "derived_vars",
    "is_credit_card_transaction",
    "is_deposit_transaction",
    "is_withdrawal_transaction",
    "render_row",
    "render_rows",
    "resolve_field_templates",
    "select_transactions",
    # Models / types
    "Transaction",
    "TransactionRecord",
    "LedgerContext",
    "LedgerPreset",
    "MercuryAccount",
    "CsvMapping",
]
