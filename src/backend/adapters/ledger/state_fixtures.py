from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List

from common.mis_engine.models import (
    GstSplit,
    LedgerSection,
    Period,
    SalesChannel,
    StateBalanceSheet,
    StatePeriodData,
    StateSalesSummary,
    StockTransfer,
    TaxSummary,
    Transaction,
    TransactionSource,
)


class StateFixtureAdapterError(ValueError):
    pass


def _parse_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        s = value.strip().replace(",", "")
        if not s:
            return Decimal("0")
        negative = s.startswith("(") and s.endswith(")")
        if negative:
            s = s[1:-1]
        try:
            amount = Decimal(s)
        except InvalidOperation as exc:
            raise StateFixtureAdapterError(f"Not an amount: {value!r}") from exc
        return -amount if negative else amount
    raise StateFixtureAdapterError(f"Not an amount: {value!r}")


def _parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip())
        except ValueError as exc:
            raise StateFixtureAdapterError(f"Not an ISO date: {value!r}") from exc
    raise StateFixtureAdapterError(f"Missing transaction date: {value!r}")


def _channel_amounts(raw: Any) -> Dict[SalesChannel, Decimal]:
    if not isinstance(raw, dict):
        return {}
    out: Dict[SalesChannel, Decimal] = {}
    for name, amount in raw.items():
        try:
            channel = SalesChannel(name)
        except ValueError as exc:
            raise StateFixtureAdapterError(f"Unknown sales channel {name!r}") from exc
        out[channel] = out.get(channel, Decimal("0")) + _parse_decimal(amount)
    return out


def _gst_split(raw: Any) -> GstSplit:
    if not isinstance(raw, dict):
        return GstSplit()
    return GstSplit(
        sgst=_parse_decimal(raw.get("sgst")),
        cgst=_parse_decimal(raw.get("cgst")),
        igst=_parse_decimal(raw.get("igst")),
    )


def _transactions(raw: Any, *, state: str, period: Period) -> List[Transaction]:
    if not isinstance(raw, list):
        return []
    out: List[Transaction] = []
    for idx, row in enumerate(raw, start=1):
        if not isinstance(row, dict):
            raise StateFixtureAdapterError(f"Transaction #{idx} is not a mapping")
        account = str(row.get("account") or "").strip()
        if not account:
            raise StateFixtureAdapterError(f"Transaction #{idx} has no account name")
        try:
            source = TransactionSource(row.get("source") or TransactionSource.JOURNAL.value)
            section = LedgerSection(row["section"]) if row.get("section") else None
        except ValueError as exc:
            raise StateFixtureAdapterError(f"Transaction #{idx} has a bad source or section: {exc}") from exc
        out.append(
            Transaction(
                id=str(row.get("id") or f"{state}-{period.key}-{idx}"),
                date=_parse_date(row.get("date")),
                account=account,
                debit=_parse_decimal(row.get("debit")),
                credit=_parse_decimal(row.get("credit")),
                state=state,
                notes=row.get("notes"),
                party_name=row.get("party_name"),
                source=source,
                section=section,
            )
        )
    return out


def _sales(raw: Any, *, state: str) -> StateSalesSummary | None:
    if not isinstance(raw, dict):
        return None
    transfers = [
        StockTransfer(
            from_state=state,
            to_state=str(item.get("to_state") or "Unknown"),
            amount=_parse_decimal(item.get("amount")),
        )
        for item in raw.get("stock_transfers") or []
        if isinstance(item, dict)
    ]
    return StateSalesSummary(
        sales_by_channel=_channel_amounts(raw.get("sales_by_channel")),
        returns_by_channel=_channel_amounts(raw.get("returns_by_channel")),
        discounts_by_channel=_channel_amounts(raw.get("discounts_by_channel")),
        taxes_by_channel=_channel_amounts(raw.get("taxes_by_channel")),
        stock_transfers=transfers,
    )


def _balance_sheet(raw: Any) -> StateBalanceSheet | None:
    if not isinstance(raw, dict):
        return None
    return StateBalanceSheet(
        opening_stock=_parse_decimal(raw.get("opening_stock")),
        closing_stock=_parse_decimal(raw.get("closing_stock")),
        purchases=_parse_decimal(raw.get("purchases")),
        gross_sales=_parse_decimal(raw.get("gross_sales")),
        net_profit_or_loss=_parse_decimal(raw.get("net_profit_or_loss")),
    )


def _taxes(raw: Any) -> TaxSummary:
    if not isinstance(raw, dict):
        return TaxSummary()
    return TaxSummary(
        output_gst=_gst_split(raw.get("output_gst")),
        input_gst=_gst_split(raw.get("input_gst")),
        expense_gst=_gst_split(raw.get("expense_gst")),
        tds=_parse_decimal(raw.get("tds")),
        sales_round_offs=_parse_decimal(raw.get("sales_round_offs")),
        purchase_round_offs=_parse_decimal(raw.get("purchase_round_offs")),
        journal_round_offs=_parse_decimal(raw.get("journal_round_offs")),
    )


def state_period_data_from_payload(
    payload: dict[str, Any],
    *,
    state: str | None = None,
    period: Period | None = None,
) -> StatePeriodData:
    """Convert one per-state JSON payload into engine inputs.

    `state` / `period` fill in for (or must agree with) the payload's own fields.
    """
    if not isinstance(payload, dict):
        raise StateFixtureAdapterError("State payload must be a JSON object")

    payload_state = str(payload.get("state") or "").strip()
    resolved_state = state or payload_state
    if not resolved_state:
        raise StateFixtureAdapterError("State payload has no state")
    if state and payload_state and payload_state != state:
        raise StateFixtureAdapterError(f"Payload is for state {payload_state!r}, expected {state!r}")

    payload_period = payload.get("period")
    try:
        resolved_period = Period.from_key(payload_period) if payload_period else period
    except ValueError as exc:
        raise StateFixtureAdapterError(str(exc)) from exc
    if resolved_period is None:
        raise StateFixtureAdapterError("State payload has no period")
    if period is not None and resolved_period != period:
        raise StateFixtureAdapterError(f"Payload is for {resolved_period.key}, expected {period.key}")

    return StatePeriodData(
        period=resolved_period,
        state=resolved_state,
        transactions=_transactions(payload.get("transactions"), state=resolved_state, period=resolved_period),
        sales=_sales(payload.get("sales"), state=resolved_state),
        balance_sheet=_balance_sheet(payload.get("balance_sheet")),
        taxes=_taxes(payload.get("taxes")),
    )
