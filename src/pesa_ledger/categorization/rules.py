"""User-defined automation rules for categorizing transactions."""

import logging
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from ..models.core import (
    AutomationRule,
    ConditionField,
    ConditionOperator,
    RuleCondition,
    RuleType,
    Transaction,
    TransactionKind,
)
from ..storage.base import LedgerStore


logger = logging.getLogger(__name__)


def _to_decimal(value: Any) -> Optional[Decimal]:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def hour_in_range(hour: int, start: int, end: int) -> bool:
    """Inclusive hour window; ``start > end`` wraps past midnight"""
    if start <= end:
        return start <= hour <= end
    return hour >= start or hour <= end


class RuleEngine:
    """Evaluates automation rules against transactions.

    Rules are checked in the order given; the first enabled rule whose type
    matches the transaction direction and whose conditions all hold wins.
    A rule without conditions matches every transaction of its type.
    """

    def __init__(self, store: Optional[LedgerStore] = None):
        self.store = store

    def evaluate_transaction(self, rules: Iterable[AutomationRule],
                             transaction: Transaction) -> Optional[AutomationRule]:
        rule_type = RuleType.for_direction(transaction.direction)
        for rule in rules:
            if not rule.enabled or rule.applies_to is not rule_type:
                continue
            if all(self.check_condition(transaction, c) for c in rule.conditions):
                return rule
        return None

    def apply_rules(self, rules: Iterable[AutomationRule], transaction: Transaction) -> Optional[int]:
        """Category id of the first matching rule, if any"""
        rule = self.evaluate_transaction(rules, transaction)
        if rule is None:
            return None
        logger.debug(f"Rule '{rule.name}' matched transaction {transaction.id}")
        return rule.target_category_id

    def check_condition(self, transaction: Transaction, condition: RuleCondition) -> bool:
        if condition.field is ConditionField.TIME:
            return self._check_time(transaction, condition)
        if condition.field is ConditionField.AMOUNT:
            return self._check_amount(transaction, condition)
        if condition.field is ConditionField.DESCRIPTION:
            return self._check_description(transaction, condition)
        return False

    def _check_time(self, transaction: Transaction, condition: RuleCondition) -> bool:
        value = condition.value
        if not isinstance(value, dict) or 'start' not in value or 'end' not in value:
            logger.warning(f"TIME condition needs start and end hours, got {value!r}")
            return False
        return hour_in_range(transaction.occurred_at.hour, int(value['start']), int(value['end']))

    def _check_amount(self, transaction: Transaction, condition: RuleCondition) -> bool:
        amount = transaction.amount
        operator = condition.operator

        if operator is ConditionOperator.BETWEEN:
            value = condition.value if isinstance(condition.value, dict) else {}
            low, high = _to_decimal(value.get('min')), _to_decimal(value.get('max'))
            if low is None or high is None:
                logger.warning(f"AMOUNT BETWEEN needs min and max, got {condition.value!r}")
                return False
            return low <= amount <= high

        threshold = _to_decimal(condition.value)
        if threshold is None:
            logger.warning(f"AMOUNT condition has non-numeric value {condition.value!r}")
            return False
        if operator is ConditionOperator.GREATER_THAN:
            return amount > threshold
        if operator is ConditionOperator.LESS_THAN:
            return amount < threshold
        if operator is ConditionOperator.EQUALS:
            return amount == threshold
        return False

    def _check_description(self, transaction: Transaction, condition: RuleCondition) -> bool:
        text = (transaction.counterparty_name or transaction.raw_text or '').lower()
        keyword = str(condition.value).lower()
        if condition.operator is ConditionOperator.CONTAINS:
            return keyword in text
        if condition.operator is ConditionOperator.EQUALS:
            return text == keyword
        return False

    def apply_rule_to_existing(self, rule: AutomationRule) -> int:
        """Recategorize every stored transaction the rule matches.

        Unlike ingestion, this overwrites existing categories: applying a
        rule retroactively is an explicit user action.

        Returns:
            Number of transactions updated
        """
        if self.store is None:
            raise ValueError("apply_rule_to_existing requires a store")

        active_rule = replace(rule, enabled=True)
        updated = 0
        for tx in self.store.list_transactions():
            if tx.kind is not TransactionKind.STANDARD:
                continue
            if self.evaluate_transaction([active_rule], tx) is None:
                continue
            if tx.category_id != rule.target_category_id:
                self.store.upsert_transaction(replace(tx, category_id=rule.target_category_id))
            updated += 1

        logger.info(f"Rule '{rule.name}' applied to {updated} existing transactions")
        return updated
