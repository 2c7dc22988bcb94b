"""Core data models for the message ledger."""

import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union


MONTH_KEY_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
CENTS = Decimal("0.01")


class Direction(Enum):
    """Money flow relative to the account holder"""
    SENT = "SENT"
    RECEIVED = "RECEIVED"


class RuleType(Enum):
    """Transaction type an automation rule or a category applies to"""
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"

    @classmethod
    def for_direction(cls, direction: Direction) -> "RuleType":
        return cls.EXPENSE if direction is Direction.SENT else cls.INCOME


CategoryType = RuleType


class TransactionKind(Enum):
    """Origin of a ledger entry"""
    STANDARD = "STANDARD"
    CREDIT_DRAWDOWN = "CREDIT_DRAWDOWN"
    CREDIT_REPAYMENT = "CREDIT_REPAYMENT"
    CREDIT_FEES = "CREDIT_FEES"


class ConditionField(Enum):
    TIME = "TIME"
    AMOUNT = "AMOUNT"
    DESCRIPTION = "DESCRIPTION"


class ConditionOperator(Enum):
    BETWEEN = "BETWEEN"
    GREATER_THAN = "GREATER_THAN"
    LESS_THAN = "LESS_THAN"
    CONTAINS = "CONTAINS"
    EQUALS = "EQUALS"


@dataclass(frozen=True)
class RawMessage:
    """A text message as delivered by the message source"""
    external_id: str
    sender_label: str
    body: str
    timestamp: datetime


@dataclass(frozen=True)
class StandardTransaction:
    """Money movement with a counterparty (sent, received, paid, withdrawn).

    Attributes:
        confirmation_code: Provider code, or a synthetic id for card purchases
        amount: Positive amount with two fraction digits
        direction: SENT or RECEIVED
        counterparty_id: Normalized key used by the category memory
        counterparty_name: Display name as written in the message
        occurred_at: Date and time from the message text, None if absent
        post_balance: Wallet balance after the transaction
        fee_charged: Transaction cost charged by the provider
        reference_code: Secondary reference (e.g. the M-PESA ref of a bank transfer)
        grammar: Name of the grammar that produced the event
    """
    confirmation_code: str
    amount: Decimal
    direction: Direction
    counterparty_id: str
    counterparty_name: str
    occurred_at: Optional[datetime] = None
    post_balance: Decimal = Decimal("0.00")
    fee_charged: Decimal = Decimal("0.00")
    reference_code: Optional[str] = None
    grammar: str = ""


@dataclass(frozen=True)
class CreditDrawdown:
    """Credit facility loan notification"""
    confirmation_code: str
    amount: Decimal
    access_fee: Decimal
    outstanding_balance_after: Optional[Decimal] = None
    due_date: Optional[datetime] = None
    occurred_at: Optional[datetime] = None


@dataclass(frozen=True)
class CreditRepayment:
    """Credit facility repayment notification.

    ``outstanding_balance_after`` is 0 when the message reports a full payoff.
    """
    confirmation_code: str
    amount: Decimal
    outstanding_balance_after: Optional[Decimal] = None
    available_limit: Optional[Decimal] = None
    occurred_at: Optional[datetime] = None


@dataclass(frozen=True)
class Unrecognized:
    """Message was read but matched no grammar"""


CreditEvent = Union[CreditDrawdown, CreditRepayment]
ParsedEvent = Union[StandardTransaction, CreditDrawdown, CreditRepayment, Unrecognized]


def stamp_event(event: ParsedEvent, timestamp: datetime) -> ParsedEvent:
    """Fill a missing occurrence time with the message receive time"""
    if isinstance(event, Unrecognized) or event.occurred_at is not None:
        return event
    return replace(event, occurred_at=timestamp)


@dataclass
class Transaction:
    """Ledger entry keyed by ``id``"""
    id: str
    amount: Decimal
    direction: Direction
    counterparty_id: str
    counterparty_name: str
    occurred_at: datetime
    post_balance: Decimal = Decimal("0.00")
    fee_charged: Decimal = Decimal("0.00")
    category_id: Optional[int] = None
    kind: TransactionKind = TransactionKind.STANDARD
    raw_text: Optional[str] = None
    access_fee: Optional[Decimal] = None
    outstanding_balance_after: Optional[Decimal] = None
    due_date: Optional[datetime] = None

    @property
    def rule_type(self) -> RuleType:
        return RuleType.for_direction(self.direction)

    @property
    def is_credit_event(self) -> bool:
        return self.kind in (TransactionKind.CREDIT_DRAWDOWN, TransactionKind.CREDIT_REPAYMENT)


@dataclass
class CategoryMemoryEntry:
    """Learned counterparty to category association"""
    counterparty_id: str
    direction: Direction
    category_id: int
    last_seen_at: datetime


@dataclass
class Category:
    """Entry of the category catalogue.

    Attributes:
        id: Store-assigned id, None until saved
        name: Display name, unique ignoring case
        type: EXPENSE or INCOME
        icon: Icon name for display
        color: Hex color for display
        is_custom: False for the built-in defaults
        description: Optional free text
    """
    id: Optional[int]
    name: str
    type: CategoryType = CategoryType.EXPENSE
    icon: str = "tag"
    color: str = "#64748b"
    is_custom: bool = True
    description: str = ""

    def __post_init__(self):
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValueError("Category name must not be empty")


@dataclass
class MonthlyBudget:
    """Planned income and per-category spending limits for one ``YYYY-MM`` month"""
    month: str
    total_income: Decimal = Decimal("0.00")
    allocations: Dict[int, Decimal] = field(default_factory=dict)

    def __post_init__(self):
        if not MONTH_KEY_PATTERN.match(self.month or ""):
            raise ValueError(f"Month must look like YYYY-MM, got {self.month!r}")
        self.total_income = Decimal(str(self.total_income)).quantize(CENTS)
        self.allocations = {
            int(category_id): Decimal(str(amount)).quantize(CENTS)
            for category_id, amount in self.allocations.items()
        }
        if self.total_income < 0 or any(amount < 0 for amount in self.allocations.values()):
            raise ValueError("Budget amounts must not be negative")

    @property
    def total_allocated(self) -> Decimal:
        return sum(self.allocations.values(), Decimal("0.00"))

    @property
    def remaining_income(self) -> Decimal:
        return self.total_income - self.total_allocated


@dataclass
class RuleCondition:
    """Single condition of an automation rule.

    ``value`` depends on the field: ``{"start": 18, "end": 22}`` for TIME,
    a number or ``{"min": .., "max": ..}`` for AMOUNT, a keyword for DESCRIPTION.
    """
    field: ConditionField
    operator: ConditionOperator
    value: Any


@dataclass
class AutomationRule:
    """User-defined categorization rule"""
    id: Optional[int]
    name: str
    applies_to: RuleType
    conditions: List[RuleCondition]
    target_category_id: int
    enabled: bool = True


@dataclass
class IngestionResult:
    """Result of one ingestion batch"""
    messages_seen: int = 0
    messages_skipped: int = 0
    new_transactions: int = 0
    updated_transactions: int = 0
    credit_events: int = 0
    unrecognized: int = 0
    fee_months_updated: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass
class LedgerConfig:
    """Configuration for ledger behavior"""
    state_file: str = "ledger_state.json"
    export_directory: str = "data"
    log_directory: Optional[str] = None
    sync_window_days: int = 30
    enabled_providers: Optional[List[str]] = None
    fee_bands: Optional[List[List[float]]] = None
    fee_counterparty: str = "FULIZA M-PESA"

    def __post_init__(self):
        if self.enabled_providers is None:
            self.enabled_providers = ["mpesa", "im_bank", "fuliza"]
