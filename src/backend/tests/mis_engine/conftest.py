import os
import sys


# Ensure `src/backend` is on sys.path so imports like `import common...` work.
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

from datetime import date
from decimal import Decimal
from itertools import count
from pathlib import Path

import pytest

from common.mis_engine.config import MISEngineConfig
from common.mis_engine.models import (
    ClassificationRule,
    MatchType,
    Period,
    RuleSource,
    SalesChannel,
    StateBalanceSheet,
    StatePeriodData,
    StateSalesSummary,
    StockTransfer,
    Transaction,
)

FIXTURES_ROOT = Path(__file__).parent / "fixtures" / "sample_company"


@pytest.fixture
def april() -> Period:
    return Period(month=4, year=2024)


@pytest.fixture
def engine_config() -> MISEngineConfig:
    return MISEngineConfig(primary_state="UP")


@pytest.fixture
def fixtures_root() -> Path:
    return FIXTURES_ROOT


@pytest.fixture
def make_transaction(april):
    ids = count(1)

    def _make(
        account: str,
        *,
        debit="0",
        credit="0",
        state: str = "UP",
        txn_id: str | None = None,
        section=None,
        on: date | None = None,
    ) -> Transaction:
        return Transaction(
            id=txn_id or f"T{next(ids)}",
            date=on or date(april.year, april.month, 15),
            account=account,
            debit=Decimal(str(debit)),
            credit=Decimal(str(credit)),
            state=state,
            section=section,
        )

    return _make


@pytest.fixture
def make_rule():
    ids = count(1)

    def _make(
        pattern: str,
        head,
        subhead: str,
        *,
        match_type: MatchType = MatchType.CONTAINS,
        priority: int = 1,
        source: RuleSource = RuleSource.SYSTEM,
        confidence=None,
        rule_id: str | None = None,
        active: bool = True,
    ) -> ClassificationRule:
        return ClassificationRule(
            id=rule_id or f"R{next(ids)}",
            pattern=pattern,
            match_type=match_type,
            head=head,
            subhead=subhead,
            priority=priority,
            source=source,
            confidence=Decimal(str(confidence)) if confidence is not None else None,
            active=active,
        )

    return _make


@pytest.fixture
def make_sales():
    def _make(*, sales=None, returns=None, discounts=None, taxes=None, transfers=None, state="UP"):
        def _channels(raw):
            return {SalesChannel(k): Decimal(str(v)) for k, v in (raw or {}).items()}

        return StateSalesSummary(
            sales_by_channel=_channels(sales),
            returns_by_channel=_channels(returns),
            discounts_by_channel=_channels(discounts),
            taxes_by_channel=_channels(taxes),
            stock_transfers=[
                StockTransfer(from_state=state, to_state=to_state, amount=Decimal(str(amount)))
                for to_state, amount in (transfers or {}).items()
            ],
        )

    return _make


@pytest.fixture
def make_balance_sheet():
    def _make(*, opening="0", closing="0", purchases="0", gross_sales="0", net="0") -> StateBalanceSheet:
        return StateBalanceSheet(
            opening_stock=Decimal(str(opening)),
            closing_stock=Decimal(str(closing)),
            purchases=Decimal(str(purchases)),
            gross_sales=Decimal(str(gross_sales)),
            net_profit_or_loss=Decimal(str(net)),
        )

    return _make


@pytest.fixture
def make_state_data(april):
    def _make(
        state: str,
        *,
        period: Period | None = None,
        transactions=(),
        sales=None,
        balance_sheet=None,
        taxes=None,
    ) -> StatePeriodData:
        kwargs = {}
        if taxes is not None:
            kwargs["taxes"] = taxes
        return StatePeriodData(
            period=period or april,
            state=state,
            transactions=list(transactions),
            sales=sales,
            balance_sheet=balance_sheet,
            **kwargs,
        )

    return _make
