"""Monthly budgets and how actual spending compares with them."""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from .summary import category_spending
from ..categorization.catalog import CategoryCatalog
from ..models.core import CategoryType, MonthlyBudget
from ..storage.base import LedgerStore


logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


@dataclass
class BudgetLine:
    """Allocation and actual spend of one expense category"""
    category_id: int
    name: str
    allocated: Decimal = ZERO
    spent: Decimal = ZERO

    @property
    def remaining(self) -> Decimal:
        return self.allocated - self.spent

    @property
    def over_budget(self) -> bool:
        return self.spent > self.allocated


@dataclass
class BudgetReport:
    month: str
    total_income: Decimal = ZERO
    total_allocated: Decimal = ZERO
    remaining_income: Decimal = ZERO
    total_spent: Decimal = ZERO
    uncategorized_spent: Decimal = ZERO
    lines: List[BudgetLine] = field(default_factory=list)

    @property
    def over_budget_lines(self) -> List[BudgetLine]:
        return [line for line in self.lines if line.over_budget]


def save_budget(store: LedgerStore, month: str,
                total_income: Optional[Decimal] = None,
                allocations: Optional[Dict[int, Decimal]] = None) -> MonthlyBudget:
    """Create or update the budget of ``month``.

    Values not given keep what is stored. An allocation of zero removes the
    category from the budget.

    Raises:
        ValueError: For a malformed month or a negative amount
    """
    budget = store.get_monthly_budget(month) or MonthlyBudget(month)

    merged = dict(budget.allocations)
    for category_id, amount in (allocations or {}).items():
        amount = Decimal(str(amount))
        if amount == 0:
            merged.pop(int(category_id), None)
        else:
            merged[int(category_id)] = amount

    budget = MonthlyBudget(
        month=month,
        total_income=budget.total_income if total_income is None else total_income,
        allocations=merged,
    )
    store.save_monthly_budget(budget)
    logger.info(f"Saved budget for {month}: income {budget.total_income}, "
                f"{len(budget.allocations)} allocations")
    return budget


def build_budget_report(store: LedgerStore, month: str) -> BudgetReport:
    """Compare a month's allocations with its categorized spending.

    Every expense category of the catalogue gets a line, as does any
    category that has an allocation or spending without being in the
    catalogue. Spending without a category is totalled separately.
    """
    budget = store.get_monthly_budget(month) or MonthlyBudget(month)
    spending = category_spending(store, month)
    catalog = CategoryCatalog(store)

    category_ids = [c.id for c in catalog.list_categories(CategoryType.EXPENSE)]
    for category_id in sorted(set(budget.allocations) | {k for k in spending if k is not None}):
        if category_id not in category_ids:
            category_ids.append(category_id)

    report = BudgetReport(
        month=month,
        total_income=budget.total_income,
        total_allocated=budget.total_allocated,
        remaining_income=budget.remaining_income,
        total_spent=sum(spending.values(), ZERO),
        uncategorized_spent=spending.get(None, ZERO),
    )
    for category_id in category_ids:
        report.lines.append(BudgetLine(
            category_id=category_id,
            name=catalog.name_for(category_id),
            allocated=budget.allocations.get(category_id, ZERO),
            spent=spending.get(category_id, ZERO),
        ))

    return report
