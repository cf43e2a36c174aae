from __future__ import annotations

import re
from decimal import Decimal
from functools import lru_cache
from typing import Dict, Iterable, Optional, Sequence, Tuple

from .config import MISEngineConfig
from .logging_setup import get_logger
from .models import (
    ClassificationDecision,
    ClassificationRule,
    ClassificationRun,
    ClassificationStats,
    ClassifiedTransaction,
    ConfidenceBasis,
    ConfidenceTier,
    Head,
    MatchType,
    NumericConfidence,
    ProvenanceOnly,
    RuleSource,
    Transaction,
)
from .section_mapper import is_special_account, map_transaction_by_section

logger = get_logger(__name__)

RuleSnapshot = Tuple[ClassificationRule, ...]

# Tier used when a rule carries no numeric confidence.
_PROVENANCE_TIERS: Dict[RuleSource, ConfidenceTier] = {
    RuleSource.USER: ConfidenceTier.HIGH,
    RuleSource.SYSTEM: ConfidenceTier.MEDIUM,
    RuleSource.AI: ConfidenceTier.MEDIUM,
}


def snapshot_rules(rules: Iterable[ClassificationRule]) -> RuleSnapshot:
    """Freeze the active rules in evaluation order.

    Rules are copied so later edits in the store never leak into a run. `sorted` is
    stable, so rules sharing a priority keep their insertion order.
    """
    active = [rule.model_copy(deep=True) for rule in rules if rule.active]
    return tuple(sorted(active, key=lambda rule: rule.priority))


@lru_cache(maxsize=2048)
def _compile(pattern: str) -> Optional[re.Pattern[str]]:
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as exc:
        logger.debug("Invalid regex %r (%s); falling back to substring match", pattern, exc)
        return None


def rule_matches(rule: ClassificationRule, account_name: str) -> bool:
    account = account_name or ""
    if rule.match_type == MatchType.EXACT:
        return account.strip().lower() == rule.pattern.strip().lower()
    if rule.match_type == MatchType.CONTAINS:
        return rule.pattern.lower() in account.lower()

    compiled = _compile(rule.pattern)
    if compiled is None:
        return rule.pattern.lower() in account.lower()
    return compiled.search(account) is not None


def confidence_basis(rule: ClassificationRule) -> ConfidenceBasis:
    if rule.confidence is not None:
        return NumericConfidence(rule.confidence)
    return ProvenanceOnly(rule.source)


def resolve_confidence_tier(
    basis: ConfidenceBasis,
    *,
    high_threshold: Decimal = Decimal("0.8"),
    medium_threshold: Decimal = Decimal("0.5"),
) -> ConfidenceTier:
    if isinstance(basis, NumericConfidence):
        for threshold, tier in (
            (high_threshold, ConfidenceTier.HIGH),
            (medium_threshold, ConfidenceTier.MEDIUM),
        ):
            if basis.value >= threshold:
                return tier
        return ConfidenceTier.LOW
    return _PROVENANCE_TIERS[basis.source]


def classify_transaction(
    transaction: Transaction,
    rules: RuleSnapshot,
    config: Optional[MISEngineConfig] = None,
) -> Optional[ClassificationDecision]:
    """First matching rule wins; None means unclassified."""
    cfg = config or MISEngineConfig()
    for rule in rules:
        if not rule_matches(rule, transaction.account):
            continue
        tier = resolve_confidence_tier(
            confidence_basis(rule),
            high_threshold=cfg.high_confidence_threshold,
            medium_threshold=cfg.medium_confidence_threshold,
        )
        return ClassificationDecision(
            head=rule.head,
            subhead=rule.subhead,
            confidence=tier,
            rule_id=rule.id,
            matched_pattern=rule.pattern,
        )
    return None


def classification_stats(
    classified: Sequence[ClassifiedTransaction],
    unclassified: Sequence[Transaction],
) -> ClassificationStats:
    by_head: Dict[Head, int] = {}
    for item in classified:
        by_head[item.head] = by_head.get(item.head, 0) + 1
    return ClassificationStats(
        total=len(classified) + len(unclassified),
        classified=len(classified),
        unclassified=len(unclassified),
        by_head=by_head,
    )


def classify_transactions(
    transactions: Iterable[Transaction],
    rules: RuleSnapshot,
    config: Optional[MISEngineConfig] = None,
) -> ClassificationRun:
    """Classify a batch against one rule snapshot.

    Section-scoped lines go through the section mapper and are never left
    unclassified; summary lines inside a section (stock, totals, profit) are skipped.
    Free-text lines go through the rule snapshot.
    """
    cfg = config or MISEngineConfig()
    run = ClassificationRun()

    for transaction in transactions:
        if transaction.section is not None:
            if is_special_account(transaction.account):
                run.skipped.append(transaction)
                continue
            decision = map_transaction_by_section(transaction)
        else:
            decision = classify_transaction(transaction, rules, cfg)

        if decision is None:
            run.unclassified.append(transaction)
            continue
        run.classified.append(ClassifiedTransaction.from_decision(transaction, decision))

    run.stats = classification_stats(run.classified, run.unclassified)
    logger.info(
        "Classified %d/%d transactions against %d rules (%d skipped)",
        run.stats.classified,
        run.stats.total,
        len(rules),
        len(run.skipped),
    )
    return run
