from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Head(str, Enum):
    REVENUE = "Revenue"
    RETURNS = "Returns"
    DISCOUNTS = "Discounts"
    TAXES = "Taxes"
    COST_OF_GOODS = "Cost of Goods"
    CHANNEL_FULFILLMENT = "Channel & Fulfillment"
    SALES_MARKETING = "Sales & Marketing"
    PLATFORM_COSTS = "Platform Costs"
    OPERATING_EXPENSES = "Operating Expenses"
    NON_OPERATING = "Non-Operating"
    EXCLUDED = "Excluded"
    IGNORED = "Ignored"


class HeadType(str, Enum):
    REVENUE = "revenue"
    EXPENSE = "expense"
    IGNORE = "ignore"


class MatchType(str, Enum):
    EXACT = "exact"
    CONTAINS = "contains"
    REGEX = "regex"


class RuleSource(str, Enum):
    USER = "user"
    SYSTEM = "system"
    AI = "ai"


# Default priorities per provenance; lower is evaluated first.
DEFAULT_PRIORITY_BY_SOURCE: Dict[RuleSource, int] = {
    RuleSource.USER: 0,
    RuleSource.SYSTEM: 1,
    RuleSource.AI: 2,
}


class ConfidenceTier(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SalesChannel(str, Enum):
    WEBSITE = "Website"
    AMAZON = "Amazon"
    BLINKIT = "Blinkit"
    OFFLINE_OEM = "Offline & OEM"


class LedgerSection(str, Enum):
    # Trading account: direct / manufacturing expenses.
    DIRECT = "direct"
    # P&L account: indirect / administrative expenses.
    GENERAL = "general"


class EntrySide(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class TransactionSource(str, Enum):
    JOURNAL = "journal"
    PURCHASE_REGISTER = "purchase_register"
    SALES_REGISTER = "sales_register"
    BALANCE_SHEET = "balance_sheet"


class Period(BaseModel):
    """A calendar month. Fiscal years start in April."""

    model_config = ConfigDict(frozen=True)

    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1900, le=9999)

    @property
    def key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def label(self) -> str:
        return f"{calendar.month_abbr[self.month]} {self.year}"

    @property
    def fy_start_year(self) -> int:
        return self.year if self.month >= 4 else self.year - 1

    @property
    def fy_label(self) -> str:
        start = self.fy_start_year
        return f"FY {start}-{str(start + 1)[-2:]}"

    @classmethod
    def from_key(cls, key: str) -> "Period":
        parts = (key or "").strip().split("-")
        if len(parts) != 2 or not all(p.isdigit() for p in parts):
            raise ValueError(f"Period key must look like YYYY-MM, got {key!r}")
        return cls(year=int(parts[0]), month=int(parts[1]))

    @classmethod
    def from_date(cls, value: date) -> "Period":
        return cls(year=value.year, month=value.month)

    def next(self) -> "Period":
        if self.month == 12:
            return Period(year=self.year + 1, month=1)
        return Period(year=self.year, month=self.month + 1)

    def __lt__(self, other: "Period") -> bool:
        return (self.year, self.month) < (other.year, other.month)

    def __le__(self, other: "Period") -> bool:
        return (self.year, self.month) <= (other.year, other.month)


def period_range(start: Period, end: Period) -> List[Period]:
    """Inclusive list of months from start to end (empty when start > end)."""
    periods: List[Period] = []
    current = start
    while current <= end:
        periods.append(current)
        current = current.next()
    return periods


class Transaction(BaseModel):
    """One ledger line as produced by the parsing layer."""

    model_config = ConfigDict(frozen=True)

    id: str
    date: date
    account: str
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    state: str = ""
    notes: Optional[str] = None
    party_name: Optional[str] = None
    source: TransactionSource = TransactionSource.JOURNAL
    # Set when the line was taken from a known ledger section (trading vs P&L).
    section: Optional[LedgerSection] = None

    @property
    def amount(self) -> Decimal:
        return self.debit or self.credit

    @property
    def side(self) -> EntrySide:
        return EntrySide.DEBIT if self.debit else EntrySide.CREDIT


class ClassificationRule(BaseModel):
    id: str
    pattern: str
    match_type: MatchType = MatchType.CONTAINS
    head: Head
    subhead: str
    confidence: Optional[Decimal] = Field(default=None, ge=0, le=1)
    priority: int = DEFAULT_PRIORITY_BY_SOURCE[RuleSource.SYSTEM]
    active: bool = True
    source: RuleSource = RuleSource.SYSTEM
    created_at: Optional[datetime] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _subhead_belongs_to_head(self) -> "ClassificationRule":
        from .taxonomy import is_valid_subhead

        if not self.pattern.strip():
            raise ValueError("Rule pattern must not be empty")
        if not is_valid_subhead(self.head, self.subhead):
            raise ValueError(f"Subhead {self.subhead!r} is not configured for head {self.head.value!r}")
        return self


@dataclass(frozen=True)
class NumericConfidence:
    value: Decimal


@dataclass(frozen=True)
class ProvenanceOnly:
    source: RuleSource


ConfidenceBasis = Union[NumericConfidence, ProvenanceOnly]


class ClassificationDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    head: Head
    subhead: str
    confidence: ConfidenceTier
    rule_id: Optional[str] = None
    matched_pattern: Optional[str] = None


class ClassifiedTransaction(BaseModel):
    transaction: Transaction
    head: Head
    subhead: str
    confidence: ConfidenceTier
    is_auto_classified: bool = True
    rule_id: Optional[str] = None
    matched_pattern: Optional[str] = None

    @classmethod
    def from_decision(
        cls, transaction: Transaction, decision: ClassificationDecision
    ) -> "ClassifiedTransaction":
        return cls(
            transaction=transaction,
            head=decision.head,
            subhead=decision.subhead,
            confidence=decision.confidence,
            is_auto_classified=True,
            rule_id=decision.rule_id,
            matched_pattern=decision.matched_pattern,
        )


class ClassificationStats(BaseModel):
    total: int = 0
    classified: int = 0
    unclassified: int = 0
    by_head: Dict[Head, int] = Field(default_factory=dict)


class ClassificationRun(BaseModel):
    classified: List[ClassifiedTransaction] = Field(default_factory=list)
    unclassified: List[Transaction] = Field(default_factory=list)
    # Section summary lines (stock, totals, profit) that are not mapped at all.
    skipped: List[Transaction] = Field(default_factory=list)
    stats: ClassificationStats = Field(default_factory=ClassificationStats)


class TransactionRef(BaseModel):
    id: str
    date: date
    account: str
    amount: Decimal
    side: EntrySide
    source: TransactionSource = TransactionSource.JOURNAL
    state: str = ""
    notes: Optional[str] = None
    party_name: Optional[str] = None
    matched_pattern: Optional[str] = None


class HeadAggregation(BaseModel):
    head: Head
    head_type: HeadType
    subhead_totals: Dict[str, Decimal] = Field(default_factory=dict)
    total: Decimal = Decimal("0")
    transaction_count: int = 0
    subhead_counts: Dict[str, int] = Field(default_factory=dict)
    transactions_by_subhead: Dict[str, List[TransactionRef]] = Field(default_factory=dict)

    def subhead_total(self, subhead: str) -> Decimal:
        return self.subhead_totals.get(subhead, Decimal("0"))


class StockTransfer(BaseModel):
    from_state: str
    to_state: str = "Unknown"
    amount: Decimal


class GstSplit(BaseModel):
    sgst: Decimal = Decimal("0")
    cgst: Decimal = Decimal("0")
    igst: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return self.sgst + self.cgst + self.igst

    def plus(self, other: "GstSplit") -> "GstSplit":
        return GstSplit(
            sgst=self.sgst + other.sgst,
            cgst=self.cgst + other.cgst,
            igst=self.igst + other.igst,
        )


class TaxSummary(BaseModel):
    output_gst: GstSplit = Field(default_factory=GstSplit)
    input_gst: GstSplit = Field(default_factory=GstSplit)
    expense_gst: GstSplit = Field(default_factory=GstSplit)
    tds: Decimal = Decimal("0")
    sales_round_offs: Decimal = Decimal("0")
    purchase_round_offs: Decimal = Decimal("0")
    journal_round_offs: Decimal = Decimal("0")

    @property
    def net_gst(self) -> Decimal:
        # Payable when positive.
        return self.output_gst.total - self.input_gst.total - self.expense_gst.total

    @property
    def round_offs(self) -> Decimal:
        return self.sales_round_offs - self.purchase_round_offs + self.journal_round_offs

    def plus(self, other: "TaxSummary") -> "TaxSummary":
        return TaxSummary(
            output_gst=self.output_gst.plus(other.output_gst),
            input_gst=self.input_gst.plus(other.input_gst),
            expense_gst=self.expense_gst.plus(other.expense_gst),
            tds=self.tds + other.tds,
            sales_round_offs=self.sales_round_offs + other.sales_round_offs,
            purchase_round_offs=self.purchase_round_offs + other.purchase_round_offs,
            journal_round_offs=self.journal_round_offs + other.journal_round_offs,
        )


class StateSalesSummary(BaseModel):
    """Sales-register totals for one state and period."""

    sales_by_channel: Dict[SalesChannel, Decimal] = Field(default_factory=dict)
    returns_by_channel: Dict[SalesChannel, Decimal] = Field(default_factory=dict)
    discounts_by_channel: Dict[SalesChannel, Decimal] = Field(default_factory=dict)
    taxes_by_channel: Dict[SalesChannel, Decimal] = Field(default_factory=dict)
    stock_transfers: List[StockTransfer] = Field(default_factory=list)


class StateBalanceSheet(BaseModel):
    opening_stock: Decimal = Decimal("0")
    closing_stock: Decimal = Decimal("0")
    purchases: Decimal = Decimal("0")
    gross_sales: Decimal = Decimal("0")
    # Positive = profit, negative = loss.
    net_profit_or_loss: Decimal = Decimal("0")


class StatePeriodData(BaseModel):
    """Everything the parsing layer hands over for one (period, state)."""

    period: Period
    state: str
    transactions: List[Transaction] = Field(default_factory=list)
    sales: Optional[StateSalesSummary] = None
    balance_sheet: Optional[StateBalanceSheet] = None
    taxes: TaxSummary = Field(default_factory=TaxSummary)

    @property
    def has_data(self) -> bool:
        return bool(self.transactions) or self.sales is not None or self.balance_sheet is not None
