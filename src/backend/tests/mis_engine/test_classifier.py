from decimal import Decimal

from common.mis_engine.classifier import (
    classify_transaction,
    classify_transactions,
    resolve_confidence_tier,
    rule_matches,
    snapshot_rules,
)
from common.mis_engine.models import (
    ConfidenceTier,
    Head,
    LedgerSection,
    MatchType,
    NumericConfidence,
    ProvenanceOnly,
    RuleSource,
)
from common.mis_engine.system_rules import system_rules


def test_amazon_logistics_regex_rule(make_transaction, make_rule):
    rule = make_rule(
        "AMAZON.*LOGISTICS",
        Head.CHANNEL_FULFILLMENT,
        "Amazon Fees",
        match_type=MatchType.REGEX,
        priority=1,
    )
    txn = make_transaction("AMAZON LOGISTICS EXP", debit=5000)

    decision = classify_transaction(txn, snapshot_rules([rule]))

    assert decision is not None
    assert decision.head == Head.CHANNEL_FULFILLMENT
    assert decision.subhead == "Amazon Fees"
    # No numeric confidence on a system rule: tier comes from provenance.
    assert decision.confidence == ConfidenceTier.MEDIUM
    assert decision.rule_id == rule.id
    assert decision.matched_pattern == "AMAZON.*LOGISTICS"


def test_unmatched_account_is_counted_once(make_transaction, make_rule):
    rules = snapshot_rules([make_rule("SHOPIFY", Head.PLATFORM_COSTS, "Shopify Subscription")])
    known = make_transaction("Shopify Plus", debit=100)
    unknown = make_transaction("XYZ UNKNOWN VENDOR 123", debit=700)

    assert classify_transaction(unknown, rules) is None

    run = classify_transactions([known, unknown], rules)
    assert run.stats.unclassified == 1
    assert run.unclassified == [unknown]
    assert run.stats.classified == 1
    assert run.stats.total == 2
    assert run.stats.by_head == {Head.PLATFORM_COSTS: 1}


def test_lower_priority_number_wins_regardless_of_list_order(make_transaction, make_rule):
    system = make_rule("AMAZON", Head.REVENUE, "Amazon", priority=1)
    user = make_rule(
        "amazon logistics",
        Head.CHANNEL_FULFILLMENT,
        "Amazon Fees",
        priority=0,
        source=RuleSource.USER,
    )
    txn = make_transaction("AMAZON LOGISTICS EXP", debit=5000)

    for ordering in ([system, user], [user, system]):
        decision = classify_transaction(txn, snapshot_rules(ordering))
        assert decision.head == Head.CHANNEL_FULFILLMENT
        assert decision.confidence == ConfidenceTier.HIGH


def test_equal_priority_ties_go_to_insertion_order(make_transaction, make_rule):
    first = make_rule("AMAZON", Head.CHANNEL_FULFILLMENT, "Amazon Fees", rule_id="first")
    second = make_rule("LOGISTICS", Head.CHANNEL_FULFILLMENT, "D2C Fees", rule_id="second")
    txn = make_transaction("AMAZON LOGISTICS EXP", debit=1)

    assert classify_transaction(txn, snapshot_rules([first, second])).rule_id == "first"
    assert classify_transaction(txn, snapshot_rules([second, first])).rule_id == "second"


def test_inactive_rules_are_not_in_snapshot(make_rule):
    active = make_rule("A", Head.REVENUE, "Amazon")
    inactive = make_rule("B", Head.REVENUE, "Website", active=False)
    assert snapshot_rules([inactive, active]) == (active,)


def test_snapshot_is_isolated_from_later_rule_edits(make_transaction, make_rule):
    rule = make_rule("SHOPIFY", Head.PLATFORM_COSTS, "Shopify Subscription")
    snapshot = snapshot_rules([rule])
    rule.pattern = "NOTHING MATCHES THIS"

    decision = classify_transaction(make_transaction("Shopify invoice"), snapshot)
    assert decision is not None


def test_match_types(make_rule):
    exact = make_rule("  Office Rent ", Head.OPERATING_EXPENSES, "Administrative Expenses", match_type=MatchType.EXACT)
    assert rule_matches(exact, "office rent")
    assert rule_matches(exact, "OFFICE RENT  ")
    assert not rule_matches(exact, "office rent april")

    contains = make_rule("rent", Head.OPERATING_EXPENSES, "Administrative Expenses")
    assert rule_matches(contains, "OFFICE RENT APRIL")
    assert not rule_matches(contains, "Salary")

    regex = make_rule(r"^google\s+india", Head.SALES_MARKETING, "Google Ads", match_type=MatchType.REGEX)
    assert rule_matches(regex, "GOOGLE  INDIA PVT LTD")
    assert not rule_matches(regex, "PAID GOOGLE INDIA")


def test_invalid_regex_degrades_to_substring(make_transaction, make_rule):
    rule = make_rule("ADS (META", Head.SALES_MARKETING, "Facebook Ads", match_type=MatchType.REGEX)

    assert rule_matches(rule, "fb ads (meta) april")
    assert not rule_matches(rule, "ads meta")

    decision = classify_transaction(make_transaction("FB ADS (META) APRIL"), snapshot_rules([rule]))
    assert decision.subhead == "Facebook Ads"


def test_classification_is_deterministic(make_transaction):
    rules = snapshot_rules(system_rules())
    txn = make_transaction("AMAZON SELLER SERVICES PVT LTD", debit=1200)

    decisions = {classify_transaction(txn, rules) for _ in range(5)}
    assert len(decisions) == 1


def test_numeric_confidence_tiers():
    assert resolve_confidence_tier(NumericConfidence(Decimal("0.8"))) == ConfidenceTier.HIGH
    assert resolve_confidence_tier(NumericConfidence(Decimal("0.79"))) == ConfidenceTier.MEDIUM
    assert resolve_confidence_tier(NumericConfidence(Decimal("0.5"))) == ConfidenceTier.MEDIUM
    assert resolve_confidence_tier(NumericConfidence(Decimal("0.49"))) == ConfidenceTier.LOW


def test_provenance_tiers():
    assert resolve_confidence_tier(ProvenanceOnly(RuleSource.USER)) == ConfidenceTier.HIGH
    assert resolve_confidence_tier(ProvenanceOnly(RuleSource.SYSTEM)) == ConfidenceTier.MEDIUM
    assert resolve_confidence_tier(ProvenanceOnly(RuleSource.AI)) == ConfidenceTier.MEDIUM


def test_rule_confidence_overrides_provenance(make_transaction, make_rule):
    rule = make_rule("wati", Head.PLATFORM_COSTS, "Wati Subscription", source=RuleSource.AI, confidence="0.3")
    decision = classify_transaction(make_transaction("WATI renewal"), snapshot_rules([rule]))
    assert decision.confidence == ConfidenceTier.LOW


def test_section_lines_bypass_rules(make_transaction, make_rule):
    rules = snapshot_rules([make_rule("job work", Head.OPERATING_EXPENSES, "Administrative Expenses")])
    job_work = make_transaction("Job Work Charges", debit=3000, section=LedgerSection.DIRECT)
    opening = make_transaction("Opening Stock", debit=50000, section=LedgerSection.DIRECT)
    unknown = make_transaction("Rates and Taxes", debit=400, section=LedgerSection.GENERAL)

    run = classify_transactions([job_work, opening, unknown], rules)

    assert [c.head for c in run.classified] == [Head.COST_OF_GOODS, Head.OPERATING_EXPENSES]
    assert run.classified[0].subhead == "Job Work"
    assert run.classified[1].subhead == "Other Operating Expenses"
    assert run.classified[1].confidence == ConfidenceTier.LOW
    assert run.skipped == [opening]
    assert run.unclassified == []
