"""Cross-state and cross-period aggregation.

Flows (sales, purchases, expenses, taxes, stock transfers) are summed. Opening and
closing stock are balances, not flows: within a period they come from the primary
state only, and across a range opening comes from the first period and closing
from the last.
"""

from __future__ import annotations

from datetime import datetime, timezone
from functools import reduce
from typing import Iterable, List, Optional, Sequence

from .aggregation import HeadAggregations, head_total, merge_head_aggregations
from .amounts import ZERO, sum_amounts
from .cogm import combine_cogm
from .config import MISEngineConfig
from .logging_setup import get_logger
from .models import Head, Period, StatePeriodData, TaxSummary
from .reconciliation import reconcile
from .records import AggregatedBalanceSheet, PeriodRecord, RangeRecord, RevenueData
from .waterfall import compute_waterfall, waterfall_inputs_from

logger = get_logger(__name__)


def order_states(states: Iterable[str], primary_state: str) -> List[str]:
    """Primary state first, then the rest alphabetically, without duplicates."""
    unique = sorted(set(states))
    if primary_state in unique:
        unique.remove(primary_state)
        return [primary_state] + unique
    return unique


def consolidate_revenue(entries: Sequence[StatePeriodData]) -> Optional[RevenueData]:
    summaries = [entry.sales for entry in entries if entry.sales is not None]
    if not summaries:
        return None
    parts = [
        RevenueData.from_channels(
            gross_sales=summary.sales_by_channel,
            returns=summary.returns_by_channel,
            discounts=summary.discounts_by_channel,
            taxes=summary.taxes_by_channel,
            stock_transfers=summary.stock_transfers,
        )
        for summary in summaries
    ]
    return reduce(lambda left, right: left.plus(right), parts)


def consolidate_balance_sheets(
    entries: Sequence[StatePeriodData],
    primary_state: str,
) -> Optional[AggregatedBalanceSheet]:
    with_sheet = [entry for entry in entries if entry.balance_sheet is not None]
    if not with_sheet:
        return None

    primary = next((entry.balance_sheet for entry in with_sheet if entry.state == primary_state), None)
    sheets = [entry.balance_sheet for entry in with_sheet]
    return AggregatedBalanceSheet(
        opening_stock=primary.opening_stock if primary is not None else ZERO,
        closing_stock=primary.closing_stock if primary is not None else ZERO,
        has_primary_stock=primary is not None,
        purchases=sum_amounts(sheet.purchases for sheet in sheets),
        gross_sales=sum_amounts(sheet.gross_sales for sheet in sheets),
        net_profit_or_loss=sum_amounts(sheet.net_profit_or_loss for sheet in sheets),
    )


def consolidate_taxes(summaries: Iterable[TaxSummary]) -> TaxSummary:
    return reduce(lambda left, right: left.plus(right), summaries, TaxSummary())


def combine_range_balance_sheets(records: Sequence[PeriodRecord]) -> Optional[AggregatedBalanceSheet]:
    """`records` must be in period order."""
    sheets = [record.balance_sheet for record in records if record.balance_sheet is not None]
    if not sheets:
        return None

    first = records[0].balance_sheet
    last = records[-1].balance_sheet
    has_opening = first is not None and first.has_primary_stock
    has_closing = last is not None and last.has_primary_stock
    return AggregatedBalanceSheet(
        opening_stock=first.opening_stock if has_opening else ZERO,
        closing_stock=last.closing_stock if has_closing else ZERO,
        has_primary_stock=has_opening and has_closing,
        purchases=sum_amounts(sheet.purchases for sheet in sheets),
        gross_sales=sum_amounts(sheet.gross_sales for sheet in sheets),
        net_profit_or_loss=sum_amounts(sheet.net_profit_or_loss for sheet in sheets),
    )


def aggregate_range(
    records: Iterable[PeriodRecord],
    start: Period,
    end: Period,
    *,
    config: Optional[MISEngineConfig] = None,
) -> Optional[RangeRecord]:
    """Roll the period records between start and end (inclusive) into one record.

    Returns None when no record falls inside the range. Without `config`, the
    settings the first record was built with are reused.
    """
    in_range = sorted(
        (record for record in records if start <= record.period <= end),
        key=lambda record: (record.period.year, record.period.month),
    )
    if not in_range:
        logger.info("No period data between %s and %s; no range record", start.key, end.key)
        return None
    cfg = config or in_range[0].engine_config

    revenue = reduce(lambda left, right: left.plus(right), (r.revenue for r in in_range))
    heads: HeadAggregations = reduce(
        lambda left, right: merge_head_aggregations(left, right),
        (r.heads for r in in_range),
        {},
    )
    balance_sheet = combine_range_balance_sheets(in_range)
    cogm = combine_cogm((r.cogm for r in in_range), balance_sheet)
    inputs = waterfall_inputs_from(heads, cogm, revenue.net_revenue)
    waterfall = compute_waterfall(inputs, quantize=cfg.amount_quantize)

    states: List[str] = []
    for record in in_range:
        states.extend(record.states)

    return RangeRecord(
        start=start,
        end=end,
        period_keys=[record.period_key for record in in_range],
        created_at=datetime.now(timezone.utc),
        states=order_states(states, cfg.primary_state),
        primary_state=cfg.primary_state,
        revenue=revenue,
        cogm=cogm,
        heads=heads,
        waterfall_inputs=inputs,
        waterfall=waterfall,
        unclassified_count=sum(r.unclassified_count for r in in_range),
        ignored_total=head_total(heads, Head.IGNORED),
        excluded_total=head_total(heads, Head.EXCLUDED),
        balance_sheet=balance_sheet,
        taxes=consolidate_taxes(r.taxes for r in in_range),
        reconciliation=reconcile(
            net_revenue=waterfall.net_revenue,
            net_income=waterfall.net_income.amount,
            balance_sheet=balance_sheet,
            stock_transfers=revenue.total_stock_transfers,
            scope=f"{start.key}..{end.key}",
        ),
    )
