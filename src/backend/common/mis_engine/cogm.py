from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, Mapping, Optional

from . import taxonomy as tx
from .amounts import add_mappings, sum_amounts
from .models import Head, HeadAggregation, SalesChannel
from .records import (
    AggregatedBalanceSheet,
    CogmBreakdown,
    RawMaterialsSource,
    RevenueData,
    RevenueSource,
)


def _with_stock_derivation(
    components: Dict[str, Decimal],
    balance_sheet: Optional[AggregatedBalanceSheet],
) -> CogmBreakdown:
    source = RawMaterialsSource.JOURNAL
    if balance_sheet is not None and balance_sheet.has_primary_stock:
        # Opening + purchases - closing replaces any journal figure for raw materials.
        components[tx.RAW_MATERIALS] = balance_sheet.calculated_cogs
        source = RawMaterialsSource.STOCK_MOVEMENT
    return CogmBreakdown(
        components=components,
        raw_materials_source=source,
        total=sum_amounts(components.values()),
    )


def build_cogm(
    heads: Mapping[Head, HeadAggregation],
    balance_sheet: Optional[AggregatedBalanceSheet] = None,
) -> CogmBreakdown:
    agg = heads.get(Head.COST_OF_GOODS)
    components = dict(agg.subhead_totals) if agg is not None else {}
    return _with_stock_derivation(components, balance_sheet)


def combine_cogm(
    breakdowns: Iterable[CogmBreakdown],
    balance_sheet: Optional[AggregatedBalanceSheet] = None,
) -> CogmBreakdown:
    components: Dict[str, Decimal] = {}
    for breakdown in breakdowns:
        components = add_mappings(components, breakdown.components)
    return _with_stock_derivation(components, balance_sheet)


def revenue_from_heads(heads: Mapping[Head, HeadAggregation]) -> RevenueData:
    """Channel revenue read off the ledger when no sales register was supplied."""

    def _by_channel(head: Head) -> Dict[SalesChannel, Decimal]:
        agg = heads.get(head)
        if agg is None:
            return {}
        return {SalesChannel(subhead): amount for subhead, amount in agg.subhead_totals.items()}

    return RevenueData.from_channels(
        gross_sales=_by_channel(Head.REVENUE),
        returns=_by_channel(Head.RETURNS),
        discounts=_by_channel(Head.DISCOUNTS),
        taxes=_by_channel(Head.TAXES),
        source=RevenueSource.LEDGER,
    )
