"""Tests for the JSON-backed ledger store."""

import json
from datetime import datetime
from decimal import Decimal

import pytest

from pesa_ledger.models.core import (
    AutomationRule,
    Category,
    CategoryMemoryEntry,
    CategoryType,
    ConditionField,
    ConditionOperator,
    Direction,
    MonthlyBudget,
    RuleCondition,
    RuleType,
    Transaction,
    TransactionKind,
)
from pesa_ledger.storage.base import PersistenceError
from pesa_ledger.storage.json_store import JSONLedgerStore


def make_transaction(tx_id="AB12CD", **overrides):
    values = dict(
        id=tx_id,
        amount=Decimal("1200.00"),
        direction=Direction.SENT,
        counterparty_id="JOHN DOE",
        counterparty_name="JOHN DOE",
        occurred_at=datetime(2025, 3, 5, 10, 0),
        post_balance=Decimal("500.00"),
        fee_charged=Decimal("15.00"),
    )
    values.update(overrides)
    return Transaction(**values)


class TestJSONLedgerStore:
    """Test cases for JSONLedgerStore"""

    def test_state_survives_reload(self, tmp_path):
        state_file = tmp_path / "ledger_state.json"
        store = JSONLedgerStore(str(state_file))

        store.upsert_transaction(make_transaction(category_id=3))
        store.upsert_transaction(make_transaction(
            "TL5FV06V3A",
            amount=Decimal("70.00"),
            direction=Direction.RECEIVED,
            kind=TransactionKind.CREDIT_DRAWDOWN,
            access_fee=Decimal("0.70"),
            outstanding_balance_after=Decimal("244.15"),
            due_date=datetime(2025, 12, 3),
        ))
        store.mark_message_processed("42")
        store.save_category_for_counterparty(
            CategoryMemoryEntry("JOHN DOE", Direction.SENT, 3, datetime(2025, 3, 6))
        )
        rule = store.save_rule(AutomationRule(
            id=None, name="Nights", applies_to=RuleType.EXPENSE,
            conditions=[RuleCondition(ConditionField.TIME, ConditionOperator.BETWEEN, {"start": 22, "end": 4})],
            target_category_id=5,
        ))

        reloaded = JSONLedgerStore(str(state_file))

        assert reloaded.get_transaction("AB12CD") == make_transaction(category_id=3)
        credit = reloaded.get_transaction("TL5FV06V3A")
        assert credit.kind == TransactionKind.CREDIT_DRAWDOWN
        assert credit.access_fee == Decimal("0.70")
        assert credit.due_date == datetime(2025, 12, 3)
        assert reloaded.is_message_processed("42")
        assert reloaded.get_category_for_counterparty("JOHN DOE", Direction.SENT) == 3
        assert reloaded.list_rules() == [rule]

    def test_amounts_are_stored_as_strings(self, tmp_path):
        state_file = tmp_path / "ledger_state.json"
        JSONLedgerStore(str(state_file)).upsert_transaction(make_transaction())

        with open(state_file) as f:
            data = json.load(f)

        assert data['transactions'][0]['amount'] == "1200.00"
        assert data['transactions'][0]['direction'] == "SENT"

    def test_rule_management(self, tmp_path):
        store = JSONLedgerStore(str(tmp_path / "state.json"))
        first = store.save_rule(AutomationRule(None, "a", RuleType.EXPENSE, [], 1))
        second = store.save_rule(AutomationRule(None, "b", RuleType.INCOME, [], 2))

        assert (first.id, second.id) == (1, 2)
        assert store.toggle_rule(1, False)
        assert not store.list_rules()[0].enabled
        assert store.delete_rule(2)
        assert not store.delete_rule(2)
        assert not store.toggle_rule(99, True)

        reloaded = JSONLedgerStore(str(tmp_path / "state.json"))
        assert [r.name for r in reloaded.list_rules()] == ["a"]

    def test_categories_and_budgets_survive_reload(self, tmp_path):
        state_file = tmp_path / "ledger_state.json"
        store = JSONLedgerStore(str(state_file))

        saved = store.save_category(Category(None, "Rent", CategoryType.EXPENSE, "home", "#8b5cf6"))
        store.save_category(Category(None, "Salary", CategoryType.INCOME, is_custom=False))
        store.save_monthly_budget(MonthlyBudget("2025-11", Decimal("50000"), {saved.id: Decimal("15000")}))

        reloaded = JSONLedgerStore(str(state_file))

        assert [c.name for c in reloaded.list_categories()] == ["Rent", "Salary"]
        assert reloaded.get_category(1) == saved
        assert reloaded.get_category(2).type is CategoryType.INCOME
        assert not reloaded.get_category(2).is_custom
        budget = reloaded.get_monthly_budget("2025-11")
        assert budget.total_income == Decimal("50000.00")
        assert budget.allocations == {1: Decimal("15000.00")}
        assert reloaded.get_monthly_budget("2025-12") is None

    def test_state_without_categories_loads(self, tmp_path):
        state_file = tmp_path / "ledger_state.json"
        state_file.write_text(json.dumps({"version": 1, "transactions": [], "rules": []}))

        store = JSONLedgerStore(str(state_file))

        assert store.list_categories() == []
        assert store.get_monthly_budget("2025-11") is None

    def test_clear_processed_messages(self, tmp_path):
        store = JSONLedgerStore(str(tmp_path / "state.json"))
        store.mark_message_processed("1")
        store.mark_message_processed("2")

        assert store.clear_processed_messages() == 2
        assert not JSONLedgerStore(str(tmp_path / "state.json")).is_message_processed("1")

    def test_list_transactions_since(self, tmp_path):
        store = JSONLedgerStore(str(tmp_path / "state.json"))
        store.upsert_transaction(make_transaction("OLD", occurred_at=datetime(2025, 1, 1)))
        store.upsert_transaction(make_transaction("NEW", occurred_at=datetime(2025, 6, 1)))

        assert [tx.id for tx in store.list_transactions()] == ["OLD", "NEW"]
        assert [tx.id for tx in store.list_transactions_since(datetime(2025, 3, 1))] == ["NEW"]

    def test_corrupted_state_raises(self, tmp_path):
        state_file = tmp_path / "state.json"
        state_file.write_text("{not json")

        with pytest.raises(PersistenceError):
            JSONLedgerStore(str(state_file))

    def test_unwritable_state_raises(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        store = JSONLedgerStore(str(blocker / "state.json"))

        with pytest.raises(PersistenceError):
            store.mark_message_processed("1")

    def test_returned_rows_are_copies(self, tmp_path):
        store = JSONLedgerStore(str(tmp_path / "state.json"))
        store.upsert_transaction(make_transaction())

        store.get_transaction("AB12CD").category_id = 99

        assert store.get_transaction("AB12CD").category_id is None
