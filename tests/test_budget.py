"""Tests for monthly budgets and the budget report."""

from datetime import datetime
from decimal import Decimal

import pytest

from pesa_ledger.models.core import (
    Category,
    CategoryType,
    Direction,
    MonthlyBudget,
    Transaction,
    TransactionKind,
)
from pesa_ledger.reports.budget import build_budget_report, save_budget
from pesa_ledger.storage.memory_store import InMemoryLedgerStore


def spend(tx_id, amount, category_id=None, when=datetime(2025, 11, 10, 12, 0),
          direction=Direction.SENT, **extra):
    return Transaction(
        id=tx_id,
        amount=Decimal(amount),
        direction=direction,
        counterparty_id="SHOP",
        counterparty_name="SHOP",
        occurred_at=when,
        category_id=category_id,
        **extra
    )


class TestMonthlyBudget:
    """Test cases for MonthlyBudget"""

    def test_totals(self):
        budget = MonthlyBudget("2025-11", Decimal("50000"), {1: Decimal("15000"), 2: 5000.5})

        assert budget.total_income == Decimal("50000.00")
        assert budget.allocations[2] == Decimal("5000.50")
        assert budget.total_allocated == Decimal("20000.50")
        assert budget.remaining_income == Decimal("29999.50")

    @pytest.mark.parametrize("month", ["2025-13", "2025-1", "November", ""])
    def test_malformed_month(self, month):
        with pytest.raises(ValueError):
            MonthlyBudget(month)

    def test_negative_amounts(self):
        with pytest.raises(ValueError):
            MonthlyBudget("2025-11", Decimal("-1"))
        with pytest.raises(ValueError):
            MonthlyBudget("2025-11", Decimal("100"), {1: Decimal("-5")})


class TestSaveBudget:
    """Test cases for save_budget"""

    def setup_method(self):
        self.store = InMemoryLedgerStore()

    def test_creates_budget(self):
        budget = save_budget(self.store, "2025-11", Decimal("40000"), {3: Decimal("8000")})

        assert self.store.get_monthly_budget("2025-11") == budget
        assert budget.remaining_income == Decimal("32000.00")

    def test_updates_merge_with_stored_values(self):
        save_budget(self.store, "2025-11", Decimal("40000"), {3: Decimal("8000"), 4: Decimal("2000")})

        budget = save_budget(self.store, "2025-11", allocations={4: Decimal("0"), 5: Decimal("1000")})

        assert budget.total_income == Decimal("40000.00")
        assert budget.allocations == {3: Decimal("8000.00"), 5: Decimal("1000.00")}

    def test_invalid_month_is_not_saved(self):
        with pytest.raises(ValueError):
            save_budget(self.store, "2025/11", Decimal("100"))
        assert self.store.budgets == {}


class TestBudgetReport:
    """Test cases for build_budget_report"""

    def setup_method(self):
        """Set up test fixtures"""
        self.store = InMemoryLedgerStore()
        self.store.save_category(Category(None, "Food", CategoryType.EXPENSE))
        self.store.save_category(Category(None, "Transport", CategoryType.EXPENSE))
        self.store.save_category(Category(None, "Salary", CategoryType.INCOME))

        self.store.upsert_transaction(spend("A", "3000.00", 1))
        self.store.upsert_transaction(spend("B", "2500.00", 1))
        self.store.upsert_transaction(spend("C", "400.00", 2))
        self.store.upsert_transaction(spend("D", "700.00"))
        self.store.upsert_transaction(spend("E", "900.00", 9))
        # Not part of November spending
        self.store.upsert_transaction(spend("F", "50000.00", 3, direction=Direction.RECEIVED))
        self.store.upsert_transaction(spend("G", "100.00", 1, when=datetime(2025, 10, 31, 23, 0)))
        self.store.upsert_transaction(spend("FEES-2025-11", "12.00", 1, kind=TransactionKind.CREDIT_FEES))

        save_budget(self.store, "2025-11", Decimal("50000"), {1: Decimal("5000"), 2: Decimal("1000")})

    def test_totals(self):
        report = build_budget_report(self.store, "2025-11")

        assert report.total_income == Decimal("50000.00")
        assert report.total_allocated == Decimal("6000.00")
        assert report.remaining_income == Decimal("44000.00")
        assert report.total_spent == Decimal("7500.00")
        assert report.uncategorized_spent == Decimal("700.00")

    def test_lines(self):
        report = build_budget_report(self.store, "2025-11")
        lines = {line.category_id: line for line in report.lines}

        assert list(lines) == [1, 2, 9]
        assert lines[1].spent == Decimal("5500.00")
        assert lines[1].remaining == Decimal("-500.00")
        assert lines[1].over_budget
        assert lines[2].remaining == Decimal("600.00")
        assert not lines[2].over_budget
        assert lines[9].name == "Category 9"
        assert lines[9].allocated == Decimal("0.00")
        assert report.over_budget_lines == [lines[1], lines[9]]

    def test_month_without_budget(self):
        report = build_budget_report(self.store, "2025-10")

        assert report.total_income == Decimal("0.00")
        assert report.total_spent == Decimal("100.00")
        assert [line.name for line in report.lines] == ["Food", "Transport"]

    def test_malformed_month(self):
        with pytest.raises(ValueError):
            build_budget_report(self.store, "2025-1")
