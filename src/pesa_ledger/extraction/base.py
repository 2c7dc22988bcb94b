"""Abstract grammar interface and field normalization for message extraction."""

import re
from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from re import Match, Pattern
from typing import Optional

from ..models.core import ParsedEvent


CENTS = Decimal('0.01')

# Fragments shared by the mobile-money grammars
CODE = r'(?P<code>[A-Z0-9]+)\s+Confirmed\.'
KSH_AMOUNT = r'Ksh\s*(?P<amount>[\d,]+\.\d{2})'
ON_DATE_AT_TIME = (
    r'on\s+(?P<date>\d{1,2}/\d{1,2}/\d{2})\s+at\s+(?P<time>\d{1,2}:\d{2}\s*[AP]M)'
)

BALANCE_PATTERN = re.compile(r'balance\s+is\s+Ksh\s*([\d,]+\.\d{2})')
COST_PATTERN = re.compile(r'cost,?\s*Ksh\s*([\d,]+\.\d{2})')


class MalformedFieldError(ValueError):
    """A grammar matched but one of its captured fields could not be converted"""

    def __init__(self, field_name: str, raw_value: str, reason: str = ""):
        self.field_name = field_name
        self.raw_value = raw_value
        super().__init__(f"Malformed {field_name}: {raw_value!r} {reason}".strip())


class MessageGrammar(ABC):
    """One message format of one provider.

    Subclasses define ``name``, ``provider`` and a compiled ``pattern`` with
    named groups, and turn a match into a parsed event in ``build``.
    """

    name: str = ""
    provider: str = ""
    pattern: Pattern

    def match(self, text: str) -> Optional[Match]:
        """Return the match for this grammar or None"""
        return self.pattern.search(text)

    @abstractmethod
    def build(self, match: Match, text: str) -> ParsedEvent:
        """Build the event from a successful match.

        Raises:
            MalformedFieldError: If a captured field cannot be converted
        """
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.provider}/{self.name}>"


class FieldNormalizer:
    """Converts captured text fields to typed values"""

    MESSAGE_DATETIME_FORMAT = "%d/%m/%y %I:%M %p"
    CARD_DATE_FORMATS = ["%Y-%m-%d %H:%M:%S", "%d-%m-%Y %H:%M:%S"]

    @staticmethod
    def normalize_text(body: str) -> str:
        """Unify provider spelling variants before matching"""
        if not body:
            return ""
        return re.sub(r'\bM-?PESA\b', 'M-PESA', body, flags=re.IGNORECASE)

    @staticmethod
    def normalize_amount(amount_str: str, field_name: str = 'amount',
                         allow_zero: bool = False) -> Decimal:
        """Strip thousands separators and quantize to two fraction digits"""
        cleaned = (amount_str or '').replace(',', '').strip()
        if not cleaned or cleaned == '.':
            raise MalformedFieldError(field_name, amount_str)

        try:
            amount = Decimal(cleaned)
        except InvalidOperation as e:
            raise MalformedFieldError(field_name, amount_str) from e

        if amount < 0 or (amount == 0 and not allow_zero):
            raise MalformedFieldError(field_name, amount_str, "must be positive")

        return amount.quantize(CENTS, rounding=ROUND_HALF_UP)

    def optional_amount(self, amount_str: Optional[str], field_name: str) -> Optional[Decimal]:
        if amount_str is None:
            return None
        return self.normalize_amount(amount_str, field_name, allow_zero=True)

    def find_amount(self, pattern: Pattern, text: str, field_name: str) -> Decimal:
        """Search a trailing amount such as balance or cost, 0.00 when absent"""
        match = pattern.search(text)
        if not match:
            return Decimal('0.00')
        return self.normalize_amount(match.group(1), field_name, allow_zero=True)

    def parse_message_datetime(self, date_str: str, time_str: str) -> datetime:
        """Parse ``d/m/yy`` plus a 12-hour clock such as ``7:25 PM`` or ``2:26PM``"""
        time_clean = re.sub(r'\s*([AaPp][Mm])$', r' \1', time_str.strip()).upper()
        value = f"{date_str.strip()} {time_clean}"
        try:
            return datetime.strptime(value, self.MESSAGE_DATETIME_FORMAT)
        except ValueError as e:
            raise MalformedFieldError('date', value) from e

    def parse_due_date(self, date_str: str) -> datetime:
        try:
            return datetime.strptime(date_str.strip(), "%d/%m/%y")
        except ValueError as e:
            raise MalformedFieldError('due_date', date_str) from e

    def parse_card_datetime(self, date_str: str, time_str: str) -> datetime:
        """Card purchases use ISO dates, some terminals send day-first"""
        value = f"{date_str.strip()} {time_str.strip()}"
        for fmt in self.CARD_DATE_FORMATS:
            try:
                return datetime.strptime(value, fmt)
            except ValueError:
                continue
        raise MalformedFieldError('date', value)

    @staticmethod
    def clean_name(name: str) -> str:
        """Collapse whitespace, including line breaks of multi-line bodies"""
        return ' '.join((name or '').split()).rstrip('.').strip()

    def counterparty_key(self, name: str) -> str:
        return self.clean_name(name).upper()
