"""Transaction field access and the ledger lookup chain.

The lookup chain joins a transaction value to a ledger record in three hops::

    transaction[<path>]
        -> Mercury account (matched on name, external_id or nickname)
        -> ledger preset   (via the account -> preset mapping)
        -> ledger record   (ledger_records[preset.key])

Every miss along the way yields ``None``. Callers decide how to render it.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any

from .logging_setup import get_logger
from .models import LedgerContext, LedgerPreset, MercuryAccount, TransactionRecord

_logger = get_logger("export_templates.lookups")


def get_nested_value(obj: Any, path: str) -> Any:
    """Read a dotted ``path`` from nested mappings and lists.

    Numeric segments index into lists (``attachments.0.url``). Any missing
    key, out-of-range index or non-container along the way yields ``None``.
    """

    current = obj
    for key in path.split("."):
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(key)
        elif isinstance(current, Sequence) and not isinstance(current, str):
            if not key.isdigit() or int(key) >= len(current):
                return None
            current = current[int(key)]
        else:
            return None
    return current


def stringify(value: Any) -> str:
    """Render a transaction value the way it appears in an export cell."""

    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            return str(value)
        return format(value.normalize(), "f")
    if isinstance(value, (list, tuple)):
        return ",".join(stringify(v) for v in value)
    return str(value)


def find_mercury_account(
    accounts: Sequence[MercuryAccount], value: Any
) -> MercuryAccount | None:
    """Return the first account whose name, external id or nickname equals ``value``."""

    for account in accounts:
        if value in (account.name, account.external_id) or (
            account.nickname is not None and account.nickname == value
        ):
            return account
    return None


def _preset_for_value(value: Any, context: LedgerContext) -> LedgerPreset | None:
    if (
        context.mercury_accounts is None
        or context.ledger_presets is None
        or context.mercury_account_mappings is None
    ):
        return None
    if not value:
        return None

    account = find_mercury_account(context.mercury_accounts, value)
    if account is None:
        _logger.debug("no Mercury account matches %r", value)
        return None

    preset_id = context.mercury_account_mappings.get(account.id)
    if preset_id is None:
        _logger.debug("Mercury account %s has no ledger preset mapping", account.id)
        return None

    for preset in context.ledger_presets:
        if preset.id == preset_id:
            return preset
    _logger.debug("ledger preset %s not found", preset_id)
    return None


def perform_ledger_lookup(
    txn: TransactionRecord, prop: str, context: LedgerContext
) -> str | None:
    """Resolve ``txn[prop]`` through the full chain to a ledger record value.

    Returns ``None`` when any hop misses or the record is unset/empty.
    """

    preset = _preset_for_value(get_nested_value(txn, prop), context)
    if preset is None:
        return None
    return context.ledger_records.get(preset.key) or None


def get_ledger_preset_key(
    arg: str,
    txn: TransactionRecord,
    additional_vars: Mapping[str, str],
    context: LedgerContext,
) -> str | None:
    """Resolve ``arg`` through the chain and return the matched preset's key.

    ``arg`` selects the value to match: ``lookup:<path>`` and ``txn.<path>``
    both read ``<path>`` from the transaction; any other text names an
    additional variable. This stops one hop short of
    :func:`perform_ledger_lookup` so the key can feed ``ledgerLookup(...)``.
    """

    if arg.startswith("lookup:"):
        value = get_nested_value(txn, arg[len("lookup:") :])
    elif arg.startswith("txn."):
        value = get_nested_value(txn, arg[len("txn.") :])
    else:
        value = additional_vars.get(arg)

    preset = _preset_for_value(value, context)
    return preset.key if preset is not None else None


__all__ = [
    "find_mercury_account",
    "get_ledger_preset_key",
    "get_nested_value",
    "perform_ledger_lookup",
    "stringify",
]
