from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, Mapping

from .amounts import ZERO, add_mappings
from .models import (
    ClassifiedTransaction,
    Head,
    HeadAggregation,
    HeadType,
    Transaction,
    TransactionRef,
)
from .taxonomy import head_type

HeadAggregations = Dict[Head, HeadAggregation]


def counted_amount(transaction: Transaction, kind: HeadType) -> Decimal:
    """Expense heads count debits, revenue heads count credits, ignore heads count both."""
    if kind == HeadType.EXPENSE:
        return transaction.debit
    if kind == HeadType.REVENUE:
        return transaction.credit
    return transaction.debit + transaction.credit


def _ref(item: ClassifiedTransaction, amount: Decimal) -> TransactionRef:
    txn = item.transaction
    return TransactionRef(
        id=txn.id,
        date=txn.date,
        account=txn.account,
        amount=amount,
        side=txn.side,
        source=txn.source,
        state=txn.state,
        notes=txn.notes,
        party_name=txn.party_name,
        matched_pattern=item.matched_pattern,
    )


def aggregate_by_head(classified: Iterable[ClassifiedTransaction]) -> HeadAggregations:
    result: HeadAggregations = {}
    for item in classified:
        kind = head_type(item.head)
        amount = counted_amount(item.transaction, kind)

        agg = result.get(item.head)
        if agg is None:
            agg = HeadAggregation(head=item.head, head_type=kind)
            result[item.head] = agg

        agg.subhead_totals[item.subhead] = agg.subhead_total(item.subhead) + amount
        agg.subhead_counts[item.subhead] = agg.subhead_counts.get(item.subhead, 0) + 1
        agg.transactions_by_subhead.setdefault(item.subhead, []).append(_ref(item, amount))
        agg.total += amount
        agg.transaction_count += 1
    return result


def head_total(aggregations: Mapping[Head, HeadAggregation], head: Head) -> Decimal:
    agg = aggregations.get(head)
    return agg.total if agg is not None else ZERO


def subhead_total(aggregations: Mapping[Head, HeadAggregation], head: Head, subhead: str) -> Decimal:
    agg = aggregations.get(head)
    return agg.subhead_total(subhead) if agg is not None else ZERO


def merge_head_aggregations(
    left: Mapping[Head, HeadAggregation],
    right: Mapping[Head, HeadAggregation],
    *,
    keep_transactions: bool = False,
) -> HeadAggregations:
    """Sum two aggregation sets head by head; totals stay equal to the subhead sums."""
    merged: HeadAggregations = {}
    for head in list(left.keys()) + [h for h in right.keys() if h not in left]:
        a = left.get(head)
        b = right.get(head)
        parts = [p for p in (a, b) if p is not None]
        subhead_totals: Dict[str, Decimal] = {}
        subhead_counts: Dict[str, int] = {}
        refs: Dict[str, list[TransactionRef]] = {}
        for part in parts:
            subhead_totals = add_mappings(subhead_totals, part.subhead_totals)
            for subhead, count in part.subhead_counts.items():
                subhead_counts[subhead] = subhead_counts.get(subhead, 0) + count
            if keep_transactions:
                for subhead, items in part.transactions_by_subhead.items():
                    refs.setdefault(subhead, []).extend(items)
        merged[head] = HeadAggregation(
            head=head,
            head_type=parts[0].head_type,
            subhead_totals=subhead_totals,
            total=sum((p.total for p in parts), ZERO),
            transaction_count=sum(p.transaction_count for p in parts),
            subhead_counts=subhead_counts,
            transactions_by_subhead=refs,
        )
    return merged
