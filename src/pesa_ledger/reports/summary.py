"""Spending summaries over the stored ledger."""

import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Optional

from ..credit.simulator import DebtSimulator
from ..ingestion.pipeline import credit_event_from_transaction
from ..models.core import Direction, TransactionKind
from ..storage.base import LedgerStore


logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


@dataclass
class SpendingSummary:
    """Dashboard totals at a point in time.

    Spend and income cover standard transactions only; credit drawdowns
    and repayments move money through the facility, not out of the wallet.
    """
    current_balance: Decimal = ZERO
    daily_total: Decimal = ZERO
    weekly_total: Decimal = ZERO
    monthly_total: Decimal = ZERO
    transaction_count: int = 0
    total_spent: Decimal = ZERO
    monthly_transaction_cost: Decimal = ZERO
    total_income: Decimal = ZERO
    credit_outstanding: Decimal = ZERO

    def to_dict(self) -> Dict[str, Any]:
        return {key: str(value) if isinstance(value, Decimal) else value
                for key, value in asdict(self).items()}


def _same_month(moment: datetime, as_of: datetime) -> bool:
    return moment.year == as_of.year and moment.month == as_of.month


def build_spending_summary(store: LedgerStore,
                           as_of: Optional[datetime] = None,
                           simulator: Optional[DebtSimulator] = None) -> SpendingSummary:
    """Summarize every transaction that occurred on or before ``as_of``.

    ``weekly_total`` covers the seven days ending at ``as_of``;
    ``monthly_total`` and ``monthly_transaction_cost`` cover its calendar
    month. ``current_balance`` is the wallet balance reported by the most
    recent message that carried one.
    """
    as_of = as_of or datetime.now()
    week_start = as_of - timedelta(days=7)
    summary = SpendingSummary()
    credit_events = []
    latest_balance_at = None

    for tx in store.list_transactions():
        if tx.occurred_at > as_of:
            continue

        if tx.is_credit_event:
            credit_events.append(credit_event_from_transaction(tx))
            continue

        if tx.kind is TransactionKind.CREDIT_FEES:
            if _same_month(tx.occurred_at, as_of):
                summary.monthly_transaction_cost += tx.amount
            continue

        summary.transaction_count += 1
        if tx.post_balance > 0 and (latest_balance_at is None or tx.occurred_at >= latest_balance_at):
            summary.current_balance = tx.post_balance
            latest_balance_at = tx.occurred_at

        if tx.direction is Direction.RECEIVED:
            summary.total_income += tx.amount
            continue

        summary.total_spent += tx.amount
        if tx.occurred_at.date() == as_of.date():
            summary.daily_total += tx.amount
        if tx.occurred_at > week_start:
            summary.weekly_total += tx.amount
        if _same_month(tx.occurred_at, as_of):
            summary.monthly_total += tx.amount
            summary.monthly_transaction_cost += tx.fee_charged

    if credit_events:
        simulator = simulator or DebtSimulator()
        summary.credit_outstanding = simulator.simulate_detailed(credit_events, as_of).closing_balance

    return summary


def category_spending(store: LedgerStore, month: str) -> Dict[Optional[int], Decimal]:
    """Total standard expenses per category id for a ``YYYY-MM`` month.

    Uncategorized spend is reported under ``None``.
    """
    totals: Dict[Optional[int], Decimal] = {}
    for tx in store.list_transactions():
        if tx.kind is not TransactionKind.STANDARD or tx.direction is not Direction.SENT:
            continue
        if f"{tx.occurred_at.year}-{tx.occurred_at.month:02d}" != month:
            continue
        totals[tx.category_id] = totals.get(tx.category_id, ZERO) + tx.amount

    logger.debug(f"Category spending for {month}: {len(totals)} categories")
    return totals
