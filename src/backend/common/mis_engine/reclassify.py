from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from pydantic import BaseModel

from .classifier import classification_stats
from .config import MISEngineConfig
from .errors import TransactionNotFoundError
from .logging_setup import get_logger
from .models import (
    DEFAULT_PRIORITY_BY_SOURCE,
    ClassificationRule,
    ClassificationRun,
    ClassifiedTransaction,
    ConfidenceTier,
    Head,
    MatchType,
    RuleSource,
    Transaction,
)
from .period import assemble_period_record
from .records import PeriodRecord, RevenueSource
from .taxonomy import is_valid_subhead

logger = get_logger(__name__)


class ClassificationApplied(BaseModel):
    """Emitted when a person moves a transaction; callers may persist `suggested_rule`."""

    period_key: str
    transaction_id: str
    state: str = ""
    account: str
    previous_head: Optional[Head] = None
    previous_subhead: Optional[str] = None
    head: Head
    subhead: str
    applied_at: datetime
    suggested_rule: ClassificationRule


def suggest_user_rule(account: str, head: Head, subhead: str, *, now: datetime) -> ClassificationRule:
    return ClassificationRule(
        id=f"user-{uuid.uuid4().hex[:12]}",
        pattern=account.strip(),
        match_type=MatchType.EXACT,
        head=head,
        subhead=subhead,
        confidence=Decimal("1"),
        priority=DEFAULT_PRIORITY_BY_SOURCE[RuleSource.USER],
        source=RuleSource.USER,
        created_at=now,
    )


def _is_target(transaction: Transaction, transaction_id: str, state: Optional[str]) -> bool:
    return transaction.id == transaction_id and (state is None or transaction.state == state)


def reclassify_transaction(
    record: PeriodRecord,
    transaction_id: str,
    head: Head,
    subhead: str,
    *,
    state: Optional[str] = None,
    config: Optional[MISEngineConfig] = None,
) -> Tuple[PeriodRecord, ClassificationApplied]:
    """Move one transaction and rebuild every derived figure of the period.

    Ids are only unique within a state. `state` may be omitted when the id
    matches exactly one line of the period; otherwise it is required.
    """
    if not is_valid_subhead(head, subhead):
        raise ValueError(f"Subhead {subhead!r} is not configured for head {head.value!r}")
    cfg = config or record.engine_config

    matches = [
        item.transaction
        for item in record.classified_transactions
        if _is_target(item.transaction, transaction_id, state)
    ] + [txn for txn in record.unclassified_transactions if _is_target(txn, transaction_id, state)]
    if not matches:
        raise TransactionNotFoundError(transaction_id if state is None else f"{state}/{transaction_id}")
    if len(matches) > 1:
        found = ", ".join(sorted({txn.state or "-" for txn in matches}))
        raise ValueError(
            f"Transaction id {transaction_id!r} matches {len(matches)} lines (states: {found}); pass state to pick one"
        )
    target = matches[0]

    classified: List[ClassifiedTransaction] = []
    previous: Optional[ClassifiedTransaction] = None
    for item in record.classified_transactions:
        if item.transaction is target:
            previous = item
            continue
        classified.append(item)
    unclassified: List[Transaction] = [txn for txn in record.unclassified_transactions if txn is not target]

    classified.append(
        ClassifiedTransaction(
            transaction=target,
            head=head,
            subhead=subhead,
            confidence=ConfidenceTier.HIGH,
            is_auto_classified=False,
        )
    )
    run = ClassificationRun(
        classified=classified,
        unclassified=unclassified,
        stats=classification_stats(classified, unclassified),
    )
    sales_revenue = record.revenue if record.revenue.source == RevenueSource.SALES_REGISTER else None
    updated = assemble_period_record(
        period=record.period,
        states=record.states,
        run=run,
        sales_revenue=sales_revenue,
        balance_sheet=record.balance_sheet,
        taxes=record.taxes,
        config=cfg,
    )

    now = datetime.now(timezone.utc)
    event = ClassificationApplied(
        period_key=record.period_key,
        transaction_id=transaction_id,
        state=target.state,
        account=target.account,
        previous_head=previous.head if previous else None,
        previous_subhead=previous.subhead if previous else None,
        head=head,
        subhead=subhead,
        applied_at=now,
        suggested_rule=suggest_user_rule(target.account, head, subhead, now=now),
    )
    logger.info(
        "Reclassified %s/%s (%s) to %s / %s in %s",
        target.state or "-",
        transaction_id,
        target.account,
        head.value,
        subhead,
        record.period_key,
    )
    return updated, event
