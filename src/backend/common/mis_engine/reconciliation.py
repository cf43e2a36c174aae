from __future__ import annotations

from decimal import Decimal
from typing import Optional

from .amounts import ZERO
from .logging_setup import get_logger
from .records import AggregatedBalanceSheet, ReconciliationResult

logger = get_logger(__name__)


def reconcile(
    *,
    net_revenue: Decimal,
    net_income: Decimal,
    balance_sheet: Optional[AggregatedBalanceSheet],
    stock_transfers: Decimal = ZERO,
    scope: str = "",
) -> Optional[ReconciliationResult]:
    """Compare waterfall figures with the reported balance sheet.

    Variances are informational; nothing here feeds back into the waterfall.
    Returns None when no balance sheet was supplied.
    """
    if balance_sheet is None:
        logger.info("No balance sheet for %s; reconciliation skipped", scope or "scope")
        return None

    expected_revenue = balance_sheet.gross_sales - stock_transfers
    return ReconciliationResult(
        mis_net_revenue=net_revenue,
        bs_gross_sales=balance_sheet.gross_sales,
        stock_transfers=stock_transfers,
        expected_revenue=expected_revenue,
        revenue_variance=net_revenue - expected_revenue,
        mis_net_income=net_income,
        bs_net_profit_or_loss=balance_sheet.net_profit_or_loss,
        profit_variance=net_income - balance_sheet.net_profit_or_loss,
    )
