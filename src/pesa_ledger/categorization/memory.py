"""Learned counterparty to category associations."""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

from ..models.core import CategoryMemoryEntry, Direction, Transaction, TransactionKind
from ..storage.base import LedgerStore


logger = logging.getLogger(__name__)


class CategoryMemory:
    """Remembers which category the user picked for a counterparty.

    Entries are keyed by ``(counterparty_id, direction)`` so money sent to
    and received from the same person can land in different categories.
    Entries are only written by explicit user categorization.
    """

    def __init__(self, store: LedgerStore, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.clock = clock

    def lookup(self, counterparty_id: str, direction: Direction) -> Optional[int]:
        return self.store.get_category_for_counterparty(counterparty_id, direction)

    def save_mapping(self, counterparty_id: str, direction: Direction, category_id: int) -> int:
        """Learn a mapping and back-fill uncategorized history.

        Returns:
            Number of stored transactions that received the category
        """
        self.store.save_category_for_counterparty(
            CategoryMemoryEntry(counterparty_id, direction, category_id, self.clock())
        )

        backfilled = 0
        for tx in self.store.list_transactions():
            if (tx.kind is TransactionKind.STANDARD
                    and tx.category_id is None
                    and tx.counterparty_id == counterparty_id
                    and tx.direction is direction):
                self.store.upsert_transaction(replace(tx, category_id=category_id))
                backfilled += 1

        logger.info(
            f"Remembered category {category_id} for {counterparty_id} ({direction.value}); "
            f"back-filled {backfilled} transactions"
        )
        return backfilled

    def categorize_transaction(self, transaction_id: str, category_id: int,
                               remember: bool = True) -> Optional[Transaction]:
        """Apply a manual category to one transaction.

        Returns the updated transaction, or None when the id is unknown.
        """
        tx = self.store.get_transaction(transaction_id)
        if tx is None:
            logger.warning(f"Cannot categorize unknown transaction {transaction_id}")
            return None

        updated = replace(tx, category_id=category_id)
        self.store.upsert_transaction(updated)

        if remember and tx.kind is TransactionKind.STANDARD:
            self.save_mapping(tx.counterparty_id, tx.direction, category_id)

        return updated
