from decimal import Decimal

import pytest

from common.mis_engine.classifier import snapshot_rules
from common.mis_engine.config import MISEngineConfig
from common.mis_engine.models import (
    GstSplit,
    Head,
    LedgerSection,
    Period,
    SalesChannel,
    TaxSummary,
)
from common.mis_engine.period import build_period_record
from common.mis_engine.records import RevenueSource


def test_revenue_falls_back_to_ledger_heads(april, engine_config, make_rule, make_state_data, make_transaction):
    rules = snapshot_rules(
        [
            make_rule("amazon sale", Head.REVENUE, "Amazon"),
            make_rule("amazon return", Head.RETURNS, "Amazon"),
            make_rule("website discount", Head.DISCOUNTS, "Website"),
            make_rule("output igst", Head.TAXES, "Amazon"),
        ]
    )
    entry = make_state_data(
        "UP",
        transactions=[
            make_transaction("Amazon Sale April", credit=10000),
            make_transaction("Amazon Return April", debit=1000),
            make_transaction("Website Discount", debit=500),
            make_transaction("Output IGST Amazon", debit=900),
        ],
    )
    record = build_period_record(april, [entry], rules, engine_config)

    assert record.revenue.source == RevenueSource.LEDGER
    assert record.revenue.gross_sales == {SalesChannel.AMAZON: Decimal("10000")}
    assert record.revenue.total_revenue == Decimal("8500")
    assert record.revenue.net_revenue == Decimal("7600")
    assert record.waterfall.net_revenue == Decimal("7600")


def test_sales_register_takes_precedence(
    april, engine_config, make_rule, make_state_data, make_transaction, make_sales
):
    rules = snapshot_rules([make_rule("amazon sale", Head.REVENUE, "Amazon")])
    entry = make_state_data(
        "UP",
        transactions=[make_transaction("Amazon Sale April", credit=99999)],
        sales=make_sales(sales={"Amazon": 1000}, discounts={"Amazon": 100}, taxes={"Amazon": 50}, transfers={"HR": 400}),
    )
    record = build_period_record(april, [entry], rules, engine_config)

    assert record.revenue.source == RevenueSource.SALES_REGISTER
    assert record.revenue.net_revenue == Decimal("850")
    # Stock transfers are listed, never counted as revenue or returns.
    assert record.revenue.total_stock_transfers == Decimal("400")
    assert record.revenue.total_returns == Decimal("0")


def test_record_surfaces_counts_totals_and_taxes(april, engine_config, make_rule, make_state_data, make_transaction):
    rules = snapshot_rules(
        [
            make_rule("cgst", Head.IGNORED, "GST Input/Output"),
            make_rule("drawings", Head.EXCLUDED, "Owner Withdrawals"),
        ]
    )
    up = make_state_data(
        "UP",
        transactions=[
            make_transaction("CGST Input", debit=90),
            make_transaction("CGST Output", credit=60),
            make_transaction("Drawings - partner", debit=500),
            make_transaction("XYZ UNKNOWN VENDOR 123", debit=700),
            make_transaction("Closing Stock", credit=1, section=LedgerSection.DIRECT),
        ],
        taxes=TaxSummary(
            output_gst=GstSplit(sgst=Decimal("100"), cgst=Decimal("100")),
            input_gst=GstSplit(igst=Decimal("50")),
            sales_round_offs=Decimal("2"),
            purchase_round_offs=Decimal("1"),
        ),
    )
    hr = make_state_data(
        "HR",
        taxes=TaxSummary(expense_gst=GstSplit(cgst=Decimal("10")), journal_round_offs=Decimal("0.5")),
    )
    record = build_period_record(april, [hr, up], rules, engine_config)

    assert record.period_key == "2024-04"
    assert record.fy_label == "FY 2024-25"
    assert record.states == ["UP", "HR"]
    assert record.unclassified_count == 1
    assert record.stats.total == 4
    assert record.ignored_total == Decimal("150")
    assert record.excluded_total == Decimal("500")
    assert record.taxes.net_gst == Decimal("140")
    assert record.taxes.round_offs == Decimal("1.5")
    assert record.reconciliation is None


def test_every_head_total_equals_its_subheads(april, engine_config, make_state_data, make_transaction):
    from common.mis_engine.system_rules import system_rules

    entry = make_state_data(
        "UP",
        transactions=[
            make_transaction("AMAZON LOGISTICS EXP", debit=5000),
            make_transaction("Facebook ads", debit=10),
            make_transaction("Google India", debit=20),
            make_transaction("Salary April", debit=30),
            make_transaction("Bank Charges", debit=1),
        ],
    )
    record = build_period_record(april, [entry], snapshot_rules(system_rules()), engine_config)
    for agg in record.heads.values():
        assert sum(agg.subhead_totals.values()) == agg.total


def test_mismatched_period_is_rejected(april, make_state_data):
    entry = make_state_data("UP", period=Period(month=5, year=2024))
    with pytest.raises(ValueError):
        build_period_record(april, [entry], (), MISEngineConfig())


def test_record_is_frozen(april, engine_config, make_state_data):
    record = build_period_record(april, [make_state_data("UP")], (), engine_config)
    with pytest.raises(Exception):
        record.unclassified_count = 5
