from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .amounts import ZERO, add_mappings, sum_amounts
from .config import MISEngineConfig
from .models import (
    ClassificationStats,
    ClassifiedTransaction,
    Head,
    HeadAggregation,
    Period,
    SalesChannel,
    StockTransfer,
    TaxSummary,
    Transaction,
)


class RevenueSource(str, Enum):
    SALES_REGISTER = "sales_register"
    LEDGER = "ledger"


class RawMaterialsSource(str, Enum):
    STOCK_MOVEMENT = "stock_movement"
    JOURNAL = "journal"


class RevenueData(BaseModel):
    """Channel-level revenue. Stock transfers are listed but never counted as revenue."""

    source: RevenueSource = RevenueSource.SALES_REGISTER
    gross_sales: Dict[SalesChannel, Decimal] = Field(default_factory=dict)
    returns: Dict[SalesChannel, Decimal] = Field(default_factory=dict)
    discounts: Dict[SalesChannel, Decimal] = Field(default_factory=dict)
    taxes: Dict[SalesChannel, Decimal] = Field(default_factory=dict)
    stock_transfers: List[StockTransfer] = Field(default_factory=list)

    total_gross_revenue: Decimal = ZERO
    total_returns: Decimal = ZERO
    total_discounts: Decimal = ZERO
    total_taxes: Decimal = ZERO
    # Gross - returns - discounts.
    total_revenue: Decimal = ZERO
    # Total revenue - taxes; the base of every waterfall percentage.
    net_revenue: Decimal = ZERO
    total_stock_transfers: Decimal = ZERO

    @classmethod
    def from_channels(
        cls,
        *,
        gross_sales: Dict[SalesChannel, Decimal],
        returns: Dict[SalesChannel, Decimal],
        discounts: Dict[SalesChannel, Decimal],
        taxes: Dict[SalesChannel, Decimal],
        stock_transfers: Optional[List[StockTransfer]] = None,
        source: RevenueSource = RevenueSource.SALES_REGISTER,
    ) -> "RevenueData":
        transfers = list(stock_transfers or [])
        gross = sum_amounts(gross_sales.values())
        ret = sum_amounts(returns.values())
        disc = sum_amounts(discounts.values())
        tax = sum_amounts(taxes.values())
        total_revenue = gross - ret - disc
        return cls(
            source=source,
            gross_sales=dict(gross_sales),
            returns=dict(returns),
            discounts=dict(discounts),
            taxes=dict(taxes),
            stock_transfers=transfers,
            total_gross_revenue=gross,
            total_returns=ret,
            total_discounts=disc,
            total_taxes=tax,
            total_revenue=total_revenue,
            net_revenue=total_revenue - tax,
            total_stock_transfers=sum_amounts(t.amount for t in transfers),
        )

    def plus(self, other: "RevenueData") -> "RevenueData":
        source = RevenueSource.SALES_REGISTER
        if self.source == other.source == RevenueSource.LEDGER:
            source = RevenueSource.LEDGER
        return RevenueData.from_channels(
            gross_sales=add_mappings(self.gross_sales, other.gross_sales),
            returns=add_mappings(self.returns, other.returns),
            discounts=add_mappings(self.discounts, other.discounts),
            taxes=add_mappings(self.taxes, other.taxes),
            stock_transfers=self.stock_transfers + other.stock_transfers,
            source=source,
        )


class CogmBreakdown(BaseModel):
    """Cost of goods manufactured, by Cost of Goods subhead."""

    components: Dict[str, Decimal] = Field(default_factory=dict)
    raw_materials_source: RawMaterialsSource = RawMaterialsSource.JOURNAL
    total: Decimal = ZERO


class AggregatedBalanceSheet(BaseModel):
    # Taken from the primary state only (or first/last period of a range).
    opening_stock: Decimal = ZERO
    closing_stock: Decimal = ZERO
    has_primary_stock: bool = False
    # Summed across states and periods.
    purchases: Decimal = ZERO
    gross_sales: Decimal = ZERO
    net_profit_or_loss: Decimal = ZERO

    @property
    def calculated_cogs(self) -> Decimal:
        return self.opening_stock + self.purchases - self.closing_stock


class WaterfallInputs(BaseModel):
    net_revenue: Decimal = ZERO
    total_cogm: Decimal = ZERO
    channel_fulfillment: Decimal = ZERO
    sales_marketing: Decimal = ZERO
    platform_costs: Decimal = ZERO
    operating_expenses: Decimal = ZERO
    interest: Decimal = ZERO
    depreciation: Decimal = ZERO
    amortization: Decimal = ZERO
    income_tax: Decimal = ZERO


class MarginFigure(BaseModel):
    amount: Decimal = ZERO
    # Percent of net revenue; zero when net revenue <= 0.
    percent: Decimal = ZERO


class Waterfall(BaseModel):
    net_revenue: Decimal = ZERO
    gross_margin: MarginFigure = Field(default_factory=MarginFigure)
    cm1: MarginFigure = Field(default_factory=MarginFigure)
    cm2: MarginFigure = Field(default_factory=MarginFigure)
    cm3: MarginFigure = Field(default_factory=MarginFigure)
    ebitda: MarginFigure = Field(default_factory=MarginFigure)
    ebt: MarginFigure = Field(default_factory=MarginFigure)
    net_income: MarginFigure = Field(default_factory=MarginFigure)


class ReconciliationResult(BaseModel):
    mis_net_revenue: Decimal
    bs_gross_sales: Decimal
    stock_transfers: Decimal
    # bs_gross_sales - stock_transfers
    expected_revenue: Decimal
    revenue_variance: Decimal
    mis_net_income: Decimal
    bs_net_profit_or_loss: Decimal
    profit_variance: Decimal


class PeriodRecord(BaseModel):
    """The MIS record for one month across every contributing state."""

    model_config = ConfigDict(frozen=True)

    period: Period
    period_key: str
    fy_label: str
    created_at: datetime
    states: List[str]
    primary_state: str
    # Settings the figures were derived with; recomputations reuse them.
    engine_config: MISEngineConfig = Field(default_factory=MISEngineConfig)

    revenue: RevenueData
    cogm: CogmBreakdown
    heads: Dict[Head, HeadAggregation]
    waterfall_inputs: WaterfallInputs
    waterfall: Waterfall

    classified_transactions: List[ClassifiedTransaction] = Field(default_factory=list)
    unclassified_transactions: List[Transaction] = Field(default_factory=list)
    unclassified_count: int = 0
    stats: ClassificationStats = Field(default_factory=ClassificationStats)
    ignored_total: Decimal = ZERO
    excluded_total: Decimal = ZERO

    balance_sheet: Optional[AggregatedBalanceSheet] = None
    taxes: TaxSummary = Field(default_factory=TaxSummary)
    reconciliation: Optional[ReconciliationResult] = None


class RangeRecord(BaseModel):
    """Consecutive period records rolled into one start..end figure set."""

    model_config = ConfigDict(frozen=True)

    start: Period
    end: Period
    period_keys: List[str]
    created_at: datetime
    states: List[str]
    primary_state: str

    revenue: RevenueData
    cogm: CogmBreakdown
    heads: Dict[Head, HeadAggregation]
    waterfall_inputs: WaterfallInputs
    waterfall: Waterfall

    unclassified_count: int = 0
    ignored_total: Decimal = ZERO
    excluded_total: Decimal = ZERO

    balance_sheet: Optional[AggregatedBalanceSheet] = None
    taxes: TaxSummary = Field(default_factory=TaxSummary)
    reconciliation: Optional[ReconciliationResult] = None

    @property
    def months(self) -> int:
        return len(self.period_keys)
