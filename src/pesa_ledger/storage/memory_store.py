"""Dictionary-backed ledger store."""

from dataclasses import replace
from typing import Dict, List, Optional, Set, Tuple

from .base import LedgerStore
from ..models.core import (
    AutomationRule,
    Category,
    CategoryMemoryEntry,
    Direction,
    MonthlyBudget,
    Transaction,
)


class InMemoryLedgerStore(LedgerStore):
    """Keeps the whole ledger in process memory.

    Rows are copied on the way in and out so callers must upsert to change
    stored state.
    """

    def __init__(self):
        self.transactions: Dict[str, Transaction] = {}
        self.processed_messages: Set[str] = set()
        self.category_memory: Dict[Tuple[str, Direction], CategoryMemoryEntry] = {}
        self.rules: Dict[int, AutomationRule] = {}
        self.categories: Dict[int, Category] = {}
        self.budgets: Dict[str, MonthlyBudget] = {}

    def upsert_transaction(self, transaction: Transaction) -> None:
        self.transactions[transaction.id] = replace(transaction)
        self._changed()

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        transaction = self.transactions.get(transaction_id)
        return replace(transaction) if transaction else None

    def list_transactions(self) -> List[Transaction]:
        return sorted(
            (replace(tx) for tx in self.transactions.values()),
            key=lambda tx: tx.occurred_at
        )

    def mark_message_processed(self, external_id: str) -> None:
        if external_id not in self.processed_messages:
            self.processed_messages.add(external_id)
            self._changed()

    def is_message_processed(self, external_id: str) -> bool:
        return external_id in self.processed_messages

    def clear_processed_messages(self) -> int:
        count = len(self.processed_messages)
        self.processed_messages.clear()
        self._changed()
        return count

    def get_category_for_counterparty(self, counterparty_id: str,
                                      direction: Direction) -> Optional[int]:
        entry = self.category_memory.get((counterparty_id, direction))
        return entry.category_id if entry else None

    def save_category_for_counterparty(self, entry: CategoryMemoryEntry) -> None:
        self.category_memory[(entry.counterparty_id, entry.direction)] = replace(entry)
        self._changed()

    def list_category_memory(self) -> List[CategoryMemoryEntry]:
        return [replace(entry) for entry in self.category_memory.values()]

    def list_rules(self) -> List[AutomationRule]:
        return [replace(self.rules[rule_id]) for rule_id in sorted(self.rules)]

    def save_rule(self, rule: AutomationRule) -> AutomationRule:
        if rule.id is None:
            rule = replace(rule, id=max(self.rules, default=0) + 1)
        self.rules[rule.id] = replace(rule)
        self._changed()
        return replace(rule)

    def delete_rule(self, rule_id: int) -> bool:
        if self.rules.pop(rule_id, None) is None:
            return False
        self._changed()
        return True

    def toggle_rule(self, rule_id: int, enabled: bool) -> bool:
        rule = self.rules.get(rule_id)
        if rule is None:
            return False
        rule.enabled = enabled
        self._changed()
        return True

    def list_categories(self) -> List[Category]:
        return [replace(self.categories[category_id]) for category_id in sorted(self.categories)]

    def get_category(self, category_id: int) -> Optional[Category]:
        category = self.categories.get(category_id)
        return replace(category) if category else None

    def save_category(self, category: Category) -> Category:
        if category.id is None:
            category = replace(category, id=max(self.categories, default=0) + 1)
        self.categories[category.id] = replace(category)
        self._changed()
        return replace(category)

    def get_monthly_budget(self, month: str) -> Optional[MonthlyBudget]:
        budget = self.budgets.get(month)
        return replace(budget, allocations=dict(budget.allocations)) if budget else None

    def save_monthly_budget(self, budget: MonthlyBudget) -> None:
        self.budgets[budget.month] = replace(budget, allocations=dict(budget.allocations))
        self._changed()

    def _changed(self):
        """Hook called after every write"""
