"""Data models and structures"""

from .core import (
    AutomationRule,
    Category,
    CategoryMemoryEntry,
    CategoryType,
    ConditionField,
    ConditionOperator,
    CreditDrawdown,
    CreditEvent,
    CreditRepayment,
    Direction,
    IngestionResult,
    LedgerConfig,
    MonthlyBudget,
    ParsedEvent,
    RawMessage,
    RuleCondition,
    RuleType,
    StandardTransaction,
    Transaction,
    TransactionKind,
    Unrecognized,
    stamp_event,
)

__all__ = [
    'AutomationRule',
    'Category',
    'CategoryMemoryEntry',
    'CategoryType',
    'ConditionField',
    'ConditionOperator',
    'CreditDrawdown',
    'CreditEvent',
    'CreditRepayment',
    'Direction',
    'IngestionResult',
    'LedgerConfig',
    'MonthlyBudget',
    'ParsedEvent',
    'RawMessage',
    'RuleCondition',
    'RuleType',
    'StandardTransaction',
    'Transaction',
    'TransactionKind',
    'Unrecognized',
    'stamp_event',
]
