"""Ledger store persisted to a single JSON state file."""

import json
import logging
import os
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

from .base import PersistenceError
from .memory_store import InMemoryLedgerStore
from ..models.core import (
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
from ..utils.error_handler import ErrorCategory, ErrorHandler


logger = logging.getLogger(__name__)

STATE_VERSION = 2


def _decimal(value: Optional[str]) -> Optional[Decimal]:
    return Decimal(value) if value is not None else None


def _datetime(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value is not None else None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _str(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


def transaction_to_dict(tx: Transaction) -> Dict[str, Any]:
    return {
        'id': tx.id,
        'amount': str(tx.amount),
        'direction': tx.direction.value,
        'counterparty_id': tx.counterparty_id,
        'counterparty_name': tx.counterparty_name,
        'occurred_at': tx.occurred_at.isoformat(),
        'post_balance': str(tx.post_balance),
        'fee_charged': str(tx.fee_charged),
        'category_id': tx.category_id,
        'kind': tx.kind.value,
        'raw_text': tx.raw_text,
        'access_fee': _str(tx.access_fee),
        'outstanding_balance_after': _str(tx.outstanding_balance_after),
        'due_date': _iso(tx.due_date),
    }


def transaction_from_dict(data: Dict[str, Any]) -> Transaction:
    return Transaction(
        id=data['id'],
        amount=Decimal(data['amount']),
        direction=Direction(data['direction']),
        counterparty_id=data['counterparty_id'],
        counterparty_name=data['counterparty_name'],
        occurred_at=datetime.fromisoformat(data['occurred_at']),
        post_balance=Decimal(data.get('post_balance', '0.00')),
        fee_charged=Decimal(data.get('fee_charged', '0.00')),
        category_id=data.get('category_id'),
        kind=TransactionKind(data.get('kind', TransactionKind.STANDARD.value)),
        raw_text=data.get('raw_text'),
        access_fee=_decimal(data.get('access_fee')),
        outstanding_balance_after=_decimal(data.get('outstanding_balance_after')),
        due_date=_datetime(data.get('due_date')),
    )


def memory_entry_to_dict(entry: CategoryMemoryEntry) -> Dict[str, Any]:
    return {
        'counterparty_id': entry.counterparty_id,
        'direction': entry.direction.value,
        'category_id': entry.category_id,
        'last_seen_at': entry.last_seen_at.isoformat(),
    }


def memory_entry_from_dict(data: Dict[str, Any]) -> CategoryMemoryEntry:
    return CategoryMemoryEntry(
        counterparty_id=data['counterparty_id'],
        direction=Direction(data['direction']),
        category_id=data['category_id'],
        last_seen_at=datetime.fromisoformat(data['last_seen_at']),
    )


def rule_to_dict(rule: AutomationRule) -> Dict[str, Any]:
    return {
        'id': rule.id,
        'name': rule.name,
        'applies_to': rule.applies_to.value,
        'conditions': [
            {'field': c.field.value, 'operator': c.operator.value, 'value': c.value}
            for c in rule.conditions
        ],
        'target_category_id': rule.target_category_id,
        'enabled': rule.enabled,
    }


def rule_from_dict(data: Dict[str, Any]) -> AutomationRule:
    return AutomationRule(
        id=data.get('id'),
        name=data['name'],
        applies_to=RuleType(data['applies_to']),
        conditions=[
            RuleCondition(
                field=ConditionField(c['field']),
                operator=ConditionOperator(c['operator']),
                value=c['value'],
            )
            for c in data.get('conditions', [])
        ],
        target_category_id=data['target_category_id'],
        enabled=data.get('enabled', True),
    )



def category_to_dict(category: Category) -> Dict[str, Any]:
    return {
        'id': category.id,
        'name': category.name,
        'type': category.type.value,
        'icon': category.icon,
        'color': category.color,
        'is_custom': category.is_custom,
        'description': category.description,
    }


def category_from_dict(data: Dict[str, Any]) -> Category:
    return Category(
        id=data['id'],
        name=data['name'],
        type=CategoryType(data.get('type', CategoryType.EXPENSE.value)),
        icon=data.get('icon', 'tag'),
        color=data.get('color', '#64748b'),
        is_custom=data.get('is_custom', True),
        description=data.get('description', ''),
    )


def budget_to_dict(budget: MonthlyBudget) -> Dict[str, Any]:
    # JSON object keys are strings
    return {
        'month': budget.month,
        'total_income': str(budget.total_income),
        'allocations': {str(k): str(v) for k, v in sorted(budget.allocations.items())},
    }


def budget_from_dict(data: Dict[str, Any]) -> MonthlyBudget:
    return MonthlyBudget(
        month=data['month'],
        total_income=Decimal(data.get('total_income', '0.00')),
        allocations={int(k): Decimal(v) for k, v in data.get('allocations', {}).items()},
    )

class JSONLedgerStore(InMemoryLedgerStore):
    """In-memory ledger written back to ``state_file`` after every change.

    A state file that exists but cannot be read raises ``PersistenceError``
    instead of starting from an empty ledger, so a damaged file is never
    silently overwritten.
    """

    def __init__(self, state_file: str, error_handler: Optional[ErrorHandler] = None):
        super().__init__()
        self.state_file = Path(state_file)
        self.error_handler = error_handler
        self._load_state()

    def _load_state(self):
        """Load ledger state from disk"""
        if not self.state_file.exists():
            return

        try:
            with open(self.state_file, 'r', encoding='utf-8') as f:
                data = json.load(f)

            for item in data.get('transactions', []):
                tx = transaction_from_dict(item)
                self.transactions[tx.id] = tx
            self.processed_messages = set(data.get('processed_messages', []))
            for item in data.get('category_memory', []):
                entry = memory_entry_from_dict(item)
                self.category_memory[(entry.counterparty_id, entry.direction)] = entry
            for item in data.get('rules', []):
                rule = rule_from_dict(item)
                self.rules[rule.id] = rule
            for item in data.get('categories', []):
                category = category_from_dict(item)
                self.categories[category.id] = category
            for item in data.get('budgets', []):
                budget = budget_from_dict(item)
                self.budgets[budget.month] = budget

        except (OSError, ValueError, KeyError, TypeError, ArithmeticError) as e:
            self._report(f"Failed to load ledger state: {str(e)}", "STATE_FILE_CORRUPTED", e)
            raise PersistenceError(f"Cannot read ledger state {self.state_file}: {e}") from e

        logger.debug(
            f"Loaded {len(self.transactions)} transactions and "
            f"{len(self.processed_messages)} processed messages from {self.state_file}"
        )

    def _save_state(self):
        """Save ledger state to disk"""
        state_data = {
            'version': STATE_VERSION,
            'last_updated': datetime.now().isoformat(),
            'transactions': [transaction_to_dict(tx) for tx in self.transactions.values()],
            'processed_messages': sorted(self.processed_messages),
            'category_memory': [memory_entry_to_dict(e) for e in self.category_memory.values()],
            'rules': [rule_to_dict(self.rules[rule_id]) for rule_id in sorted(self.rules)],
            'categories': [category_to_dict(self.categories[i]) for i in sorted(self.categories)],
            'budgets': [budget_to_dict(self.budgets[month]) for month in sorted(self.budgets)],
        }

        temp_file = self.state_file.with_name(self.state_file.name + '.tmp')
        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(state_data, f, indent=2)
            os.replace(temp_file, self.state_file)

        except (OSError, TypeError, ValueError) as e:
            self._report(f"Failed to save ledger state: {str(e)}", "PERSISTENCE_FAILURE", e)
            raise PersistenceError(f"Cannot write ledger state {self.state_file}: {e}") from e

    def _changed(self):
        self._save_state()

    def _report(self, message: str, error_type: str, exception: Exception):
        if self.error_handler:
            self.error_handler.log_error(
                message,
                error_type,
                ErrorCategory.PERSISTENCE,
                context={'state_file': str(self.state_file)},
                exception=exception,
            )
        else:
            logger.error(message)
