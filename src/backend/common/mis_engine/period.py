from __future__ import annotations

from datetime import datetime, timezone
from itertools import chain
from typing import Optional, Sequence

from .aggregation import aggregate_by_head, head_total
from .classifier import RuleSnapshot, classify_transactions
from .cogm import build_cogm, revenue_from_heads
from .config import MISEngineConfig
from .models import ClassificationRun, Head, Period, StatePeriodData, TaxSummary
from .reconciliation import reconcile
from .records import AggregatedBalanceSheet, PeriodRecord, RevenueData
from .scope import (
    consolidate_balance_sheets,
    consolidate_revenue,
    consolidate_taxes,
    order_states,
)
from .waterfall import compute_waterfall, waterfall_inputs_from


def assemble_period_record(
    *,
    period: Period,
    states: Sequence[str],
    run: ClassificationRun,
    sales_revenue: Optional[RevenueData],
    balance_sheet: Optional[AggregatedBalanceSheet],
    taxes: TaxSummary,
    config: MISEngineConfig,
) -> PeriodRecord:
    """Derive every figure of a period record from a finished classification run.

    Revenue comes from the sales registers when any were supplied, otherwise from
    the Revenue/Returns/Discounts/Taxes heads of the ledger.
    """
    heads = aggregate_by_head(run.classified)
    revenue = sales_revenue if sales_revenue is not None else revenue_from_heads(heads)
    cogm = build_cogm(heads, balance_sheet)
    inputs = waterfall_inputs_from(heads, cogm, revenue.net_revenue)
    waterfall = compute_waterfall(inputs, quantize=config.amount_quantize)

    return PeriodRecord(
        period=period,
        period_key=period.key,
        fy_label=period.fy_label,
        created_at=datetime.now(timezone.utc),
        states=list(states),
        primary_state=config.primary_state,
        engine_config=config,
        revenue=revenue,
        cogm=cogm,
        heads=heads,
        waterfall_inputs=inputs,
        waterfall=waterfall,
        classified_transactions=list(run.classified),
        unclassified_transactions=list(run.unclassified),
        unclassified_count=len(run.unclassified),
        stats=run.stats,
        ignored_total=head_total(heads, Head.IGNORED),
        excluded_total=head_total(heads, Head.EXCLUDED),
        balance_sheet=balance_sheet,
        taxes=taxes,
        reconciliation=reconcile(
            net_revenue=waterfall.net_revenue,
            net_income=waterfall.net_income.amount,
            balance_sheet=balance_sheet,
            stock_transfers=revenue.total_stock_transfers,
            scope=period.key,
        ),
    )


def build_period_record(
    period: Period,
    entries: Sequence[StatePeriodData],
    rules: RuleSnapshot,
    config: Optional[MISEngineConfig] = None,
) -> PeriodRecord:
    """Run the full pipeline for one period over every state's inputs."""
    cfg = config or MISEngineConfig()
    for entry in entries:
        if entry.period != period:
            raise ValueError(f"State data for {entry.state} belongs to {entry.period.key}, not {period.key}")

    states = order_states((entry.state for entry in entries), cfg.primary_state)
    by_state = {state: [e for e in entries if e.state == state] for state in states}
    ordered = [entry for state in states for entry in by_state[state]]

    run = classify_transactions(
        chain.from_iterable(entry.transactions for entry in ordered),
        rules,
        cfg,
    )
    return assemble_period_record(
        period=period,
        states=states,
        run=run,
        sales_revenue=consolidate_revenue(ordered),
        balance_sheet=consolidate_balance_sheets(ordered, cfg.primary_state),
        taxes=consolidate_taxes(entry.taxes for entry in ordered),
        config=cfg,
    )
