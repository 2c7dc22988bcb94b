"""Abstract ledger storage interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from ..models.core import (
    AutomationRule,
    Category,
    CategoryMemoryEntry,
    Direction,
    MonthlyBudget,
    Transaction,
)


class PersistenceError(Exception):
    """Raised when the backing store cannot complete a write or read"""


class LedgerStore(ABC):
    """Persistence for everything the ledger keeps between runs.

    Transactions are keyed by ``Transaction.id`` with insert-or-replace
    semantics. Implementations raise ``PersistenceError`` for I/O failures.
    """

    # Transactions

    @abstractmethod
    def upsert_transaction(self, transaction: Transaction) -> None:
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        pass

    @abstractmethod
    def list_transactions(self) -> List[Transaction]:
        """All transactions, oldest first"""
        pass

    def list_transactions_since(self, since: datetime) -> List[Transaction]:
        return [tx for tx in self.list_transactions() if tx.occurred_at >= since]

    # Processed message ledger

    @abstractmethod
    def mark_message_processed(self, external_id: str) -> None:
        pass

    @abstractmethod
    def is_message_processed(self, external_id: str) -> bool:
        pass

    @abstractmethod
    def clear_processed_messages(self) -> int:
        """Forget every processed id; returns how many were cleared"""
        pass

    # Category memory

    @abstractmethod
    def get_category_for_counterparty(self, counterparty_id: str,
                                      direction: Direction) -> Optional[int]:
        pass

    @abstractmethod
    def save_category_for_counterparty(self, entry: CategoryMemoryEntry) -> None:
        pass

    @abstractmethod
    def list_category_memory(self) -> List[CategoryMemoryEntry]:
        pass

    # Automation rules

    @abstractmethod
    def list_rules(self) -> List[AutomationRule]:
        """Rules in creation order"""
        pass

    @abstractmethod
    def save_rule(self, rule: AutomationRule) -> AutomationRule:
        """Insert (assigning an id when ``rule.id`` is None) or replace"""
        pass

    @abstractmethod
    def delete_rule(self, rule_id: int) -> bool:
        pass

    @abstractmethod
    def toggle_rule(self, rule_id: int, enabled: bool) -> bool:
        pass

    # Category catalogue

    @abstractmethod
    def list_categories(self) -> List[Category]:
        """Categories ordered by id"""
        pass

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Category]:
        pass

    @abstractmethod
    def save_category(self, category: Category) -> Category:
        """Insert (assigning an id when ``category.id`` is None) or replace"""
        pass

    # Monthly budgets

    @abstractmethod
    def get_monthly_budget(self, month: str) -> Optional[MonthlyBudget]:
        pass

    @abstractmethod
    def save_monthly_budget(self, budget: MonthlyBudget) -> None:
        pass
