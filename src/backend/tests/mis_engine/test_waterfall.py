from decimal import ROUND_HALF_UP, Decimal

from common.mis_engine.aggregation import aggregate_by_head
from common.mis_engine.cogm import build_cogm
from common.mis_engine.models import ClassifiedTransaction, ConfidenceTier, Head
from common.mis_engine.records import WaterfallInputs
from common.mis_engine.waterfall import (
    WATERFALL_STAGES,
    compute_waterfall,
    waterfall_inputs_from,
)


def test_gross_margin_scenario():
    waterfall = compute_waterfall(
        WaterfallInputs(net_revenue=Decimal("100000"), total_cogm=Decimal("40000"))
    )
    assert waterfall.gross_margin.amount == Decimal("60000")
    assert waterfall.gross_margin.percent == Decimal("60")


def test_zero_revenue_gives_zero_percentages():
    waterfall = compute_waterfall(
        WaterfallInputs(
            net_revenue=Decimal("0"),
            total_cogm=Decimal("500"),
            operating_expenses=Decimal("100"),
        )
    )
    for stage in WATERFALL_STAGES:
        assert getattr(waterfall, stage.key).percent == Decimal("0")
    assert waterfall.net_income.amount == Decimal("-600")
    dumped = waterfall.model_dump(mode="json")
    assert dumped["ebitda"]["percent"] == "0"


def test_negative_revenue_gives_zero_percentages():
    waterfall = compute_waterfall(WaterfallInputs(net_revenue=Decimal("-10")))
    assert waterfall.gross_margin.percent == Decimal("0")


def test_full_chain_holds():
    inputs = WaterfallInputs(
        net_revenue=Decimal("105000"),
        total_cogm=Decimal("47000"),
        channel_fulfillment=Decimal("6500"),
        sales_marketing=Decimal("11000"),
        platform_costs=Decimal("2000"),
        operating_expenses=Decimal("20400"),
        interest=Decimal("1000"),
        depreciation=Decimal("500"),
        amortization=Decimal("0"),
        income_tax=Decimal("1200"),
    )
    w = compute_waterfall(inputs)

    assert w.gross_margin.amount == inputs.net_revenue - inputs.total_cogm
    assert w.cm1.amount == w.gross_margin.amount - inputs.channel_fulfillment
    assert w.cm2.amount == w.cm1.amount - inputs.sales_marketing
    assert w.cm3.amount == w.cm2.amount - inputs.platform_costs
    assert w.ebitda.amount == w.cm3.amount - inputs.operating_expenses
    assert w.ebt.amount == w.ebitda.amount - (inputs.interest + inputs.depreciation + inputs.amortization)
    assert w.net_income.amount == w.ebt.amount - inputs.income_tax
    assert w.net_income.amount == Decimal("15400")
    assert w.cm1.percent == w.cm1.amount / inputs.net_revenue * 100


def test_quantized_figures_still_chain_exactly():
    inputs = WaterfallInputs(
        net_revenue=Decimal("1000.005"),
        total_cogm=Decimal("333.333"),
        channel_fulfillment=Decimal("10.555"),
    )
    w = compute_waterfall(inputs, quantize=Decimal("0.01"))
    assert w.net_revenue == Decimal("1000.01")
    assert w.gross_margin.amount == Decimal("666.68")
    assert w.cm1.amount == w.gross_margin.amount - Decimal("10.56")
    assert w.gross_margin.percent == Decimal("66.67")


def test_stage_order_is_fixed():
    assert [stage.key for stage in WATERFALL_STAGES] == [
        "gross_margin",
        "cm1",
        "cm2",
        "cm3",
        "ebitda",
        "ebt",
        "net_income",
    ]


def test_each_stage_subtracts_its_deduction():
    inputs = WaterfallInputs(interest=Decimal("3"), depreciation=Decimal("2"), amortization=Decimal("1"))
    ebt = next(stage for stage in WATERFALL_STAGES if stage.key == "ebt")
    assert ebt.apply(Decimal("10"), inputs) == Decimal("4")


def test_inputs_come_from_named_heads(make_transaction):
    def c(account, debit, head, subhead):
        return ClassifiedTransaction(
            transaction=make_transaction(account, debit=debit),
            head=head,
            subhead=subhead,
            confidence=ConfidenceTier.HIGH,
        )

    heads = aggregate_by_head(
        [
            c("job work", 300, Head.COST_OF_GOODS, "Job Work"),
            c("amazon", 50, Head.CHANNEL_FULFILLMENT, "Amazon Fees"),
            c("fb", 40, Head.SALES_MARKETING, "Facebook Ads"),
            c("shopify", 30, Head.PLATFORM_COSTS, "Shopify Subscription"),
            c("salary", 20, Head.OPERATING_EXPENSES, "Salaries (Admin, Mgmt)"),
            c("interest", 5, Head.NON_OPERATING, "Interest Expense"),
            c("depreciation", 4, Head.NON_OPERATING, "Depreciation"),
            c("amortization", 3, Head.NON_OPERATING, "Amortization"),
            c("income tax", 2, Head.NON_OPERATING, "Income Tax"),
            c("gst", 999, Head.IGNORED, "GST/TDS"),
        ]
    )
    inputs = waterfall_inputs_from(heads, build_cogm(heads), Decimal("1000"))

    assert inputs.total_cogm == Decimal("300")
    assert inputs.channel_fulfillment == Decimal("50")
    assert inputs.sales_marketing == Decimal("40")
    assert inputs.platform_costs == Decimal("30")
    assert inputs.operating_expenses == Decimal("20")
    assert (inputs.interest, inputs.depreciation, inputs.amortization, inputs.income_tax) == (
        Decimal("5"),
        Decimal("4"),
        Decimal("3"),
        Decimal("2"),
    )
    assert compute_waterfall(inputs).net_income.amount == Decimal("546")


def test_reported_figures_come_from_the_stage_transforms():
    inputs = WaterfallInputs(
        net_revenue=Decimal("500.004"),
        interest=Decimal("0.004"),
        depreciation=Decimal("0.004"),
        amortization=Decimal("0.004"),
        income_tax=Decimal("1.005"),
    )
    cent = Decimal("0.01")
    w = compute_waterfall(inputs, quantize=cent)

    rounded = inputs.model_copy(
        update={name: value.quantize(cent, rounding=ROUND_HALF_UP) for name, value in inputs}
    )
    previous = w.net_revenue
    for stage in WATERFALL_STAGES:
        figure = getattr(w, stage.key)
        assert figure.amount == stage.apply(previous, rounded)
        previous = figure.amount
    # Each input is rounded on its own, so three sub-cent charges round to nothing.
    assert w.ebt.amount == w.ebitda.amount
    assert w.net_income.amount == Decimal("498.99")
