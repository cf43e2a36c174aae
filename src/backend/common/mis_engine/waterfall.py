"""Margin waterfall: net revenue down to net income as an ordered list of stages.

Each stage subtracts one deduction from the previous stage's amount. The first
stage starts from net revenue. Percentages are always taken against net revenue.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, Mapping, Optional, Tuple

from . import taxonomy as tx
from .aggregation import head_total, subhead_total
from .amounts import quantize_amount, percent_of
from .models import Head, HeadAggregation
from .records import CogmBreakdown, MarginFigure, Waterfall, WaterfallInputs


@dataclass(frozen=True)
class WaterfallStage:
    key: str
    label: str
    deduction: Callable[[WaterfallInputs], Decimal]

    def apply(self, previous: Decimal, inputs: WaterfallInputs) -> Decimal:
        return previous - self.deduction(inputs)


WATERFALL_STAGES: Tuple[WaterfallStage, ...] = (
    WaterfallStage("gross_margin", "Gross Margin", lambda i: i.total_cogm),
    WaterfallStage("cm1", "CM1", lambda i: i.channel_fulfillment),
    WaterfallStage("cm2", "CM2", lambda i: i.sales_marketing),
    WaterfallStage("cm3", "CM3", lambda i: i.platform_costs),
    WaterfallStage("ebitda", "EBITDA", lambda i: i.operating_expenses),
    WaterfallStage("ebt", "EBT", lambda i: i.interest + i.depreciation + i.amortization),
    WaterfallStage("net_income", "Net Income", lambda i: i.income_tax),
)


def waterfall_inputs_from(
    heads: Mapping[Head, HeadAggregation],
    cogm: CogmBreakdown,
    net_revenue: Decimal,
) -> WaterfallInputs:
    return WaterfallInputs(
        net_revenue=net_revenue,
        total_cogm=cogm.total,
        channel_fulfillment=head_total(heads, Head.CHANNEL_FULFILLMENT),
        sales_marketing=head_total(heads, Head.SALES_MARKETING),
        platform_costs=head_total(heads, Head.PLATFORM_COSTS),
        operating_expenses=head_total(heads, Head.OPERATING_EXPENSES),
        interest=subhead_total(heads, Head.NON_OPERATING, tx.INTEREST_EXPENSE),
        depreciation=subhead_total(heads, Head.NON_OPERATING, tx.DEPRECIATION),
        amortization=subhead_total(heads, Head.NON_OPERATING, tx.AMORTIZATION),
        income_tax=subhead_total(heads, Head.NON_OPERATING, tx.INCOME_TAX),
    )


def compute_waterfall(inputs: WaterfallInputs, *, quantize: Optional[Decimal] = None) -> Waterfall:
    """Run every stage in order.

    With `quantize` set, every input is rounded before it enters the chain, so the
    reported figures still satisfy every stage formula exactly.
    """
    if quantize is not None:
        inputs = inputs.model_copy(
            update={name: quantize_amount(value, quantize) for name, value in inputs}
        )
    revenue = inputs.net_revenue
    figures: Dict[str, MarginFigure] = {}
    previous = revenue
    for stage in WATERFALL_STAGES:
        amount = stage.apply(previous, inputs)
        figures[stage.key] = MarginFigure(
            amount=amount,
            percent=quantize_amount(percent_of(amount, revenue), quantize),
        )
        previous = amount
    return Waterfall(net_revenue=revenue, **figures)
