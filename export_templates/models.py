"""Data models and type aliases for ``export_templates``.

The template engine itself reads transactions as plain mappings (see
:data:`TransactionRecord`) so that template paths such as
``txn.categoryData.name`` address the keys exactly as the bank feed returns
them. The pydantic models here validate JSON supplied by the data layer or the
CLI and convert it into those mappings.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

TransactionRecord: TypeAlias = Mapping[str, Any]
"""A single transaction keyed by the feed's camelCase field names.

Nested objects (``categoryData``, ``details.creditCardInfo``) are nested
mappings and ``attachments`` is a list. Missing keys are allowed anywhere;
the engine treats them as "no value".
"""


class CreditCardInfo(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    email: str | None = None
    payment_method: str | None = Field(default=None, alias="paymentMethod")


class TransactionDetails(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    credit_card_info: CreditCardInfo | None = Field(default=None, alias="creditCardInfo")


class CategoryData(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    name: str | None = None


class Attachment(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    file_name: str | None = Field(default=None, alias="fileName")
    url: str | None = None
    attachment_type: str | None = Field(default=None, alias="attachmentType")


class Transaction(BaseModel):
    """A bank-feed transaction as consumed by export templates.

    ``amount`` is signed (negative for debits). ``generalLedgerCodeName`` may
    carry several ``|``-delimited codes. Unknown feed fields are preserved so
    templates can still reach them through ``txn.<path>``.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    id: str
    amount: Decimal
    created_at: str = Field(alias="createdAt")
    status: str
    bank_description: str | None = Field(default=None, alias="bankDescription")
    counterparty_name: str | None = Field(default=None, alias="counterpartyName")
    kind: str | None = None
    mercury_category: str | None = Field(default=None, alias="mercuryCategory")
    general_ledger_code_name: str | None = Field(default=None, alias="generalLedgerCodeName")
    category_data: CategoryData | None = Field(default=None, alias="categoryData")
    details: TransactionDetails | None = None
    attachments: list[Attachment] = Field(default_factory=list)

    def to_record(self) -> dict[str, Any]:
        """Return the transaction as a camelCase mapping for the engine."""

        return self.model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------


class MercuryAccount(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: int
    external_id: str
    name: str
    nickname: str | None = None


class LedgerPreset(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: int
    key: str
    label: str


class LedgerContext(BaseModel):
    """The four lookup tables joined by the ledger lookup chain.

    ``ledger_records`` maps a ledger preset key to the company's value for it.
    The other three tables are optional; when any of them is ``None`` the
    lookup chain short-circuits to "no value" while plain ``ledgerLookup``
    calls keep working against ``ledger_records``.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    ledger_records: dict[str, str] = Field(default_factory=dict, alias="ledgerRecords")
    mercury_accounts: list[MercuryAccount] | None = Field(default=None, alias="mercuryAccounts")
    ledger_presets: list[LedgerPreset] | None = Field(default=None, alias="ledgerPresets")
    mercury_account_mappings: dict[int, int] | None = Field(
        default=None, alias="mercuryAccountMappings"
    )

    @field_validator("ledger_records", mode="before")
    @classmethod
    def _drop_null_records(cls, v: Any) -> Any:
        # Unset records come back from the data layer as nulls.
        if isinstance(v, Mapping):
            return {str(k): val for k, val in v.items() if val is not None}
        return v


# ---------------------------------------------------------------------------
# Persisted per-company field mappings
# ---------------------------------------------------------------------------


class CsvMapping(BaseModel):
    """A company's template override for one column of one export type."""

    model_config = ConfigDict(extra="ignore")

    company_id: int
    export_type: str
    field_name: str
    template: str

    @field_validator("field_name", "export_type")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must be non-empty")
        return v


__all__ = [
    "Attachment",
    "CategoryData",
    "CreditCardInfo",
    "CsvMapping",
    "LedgerContext",
    "LedgerPreset",
    "MercuryAccount",
    "Transaction",
    "TransactionDetails",
    "TransactionRecord",
]
