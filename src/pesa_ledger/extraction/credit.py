"""Fuliza M-PESA credit facility grammars."""

import re
from decimal import Decimal
from re import Match

from .base import FieldNormalizer, MessageGrammar
from ..models.core import CreditDrawdown, CreditRepayment


FULIZA_AMOUNT = r'[\d,]+\.\d{2}'

AVAILABLE_LIMIT_PATTERN = re.compile(
    r'(?:Your\s+)?available\s+Fuliza\s+M-PESA\s+limit\s+is\s+Ksh\s*(' + FULIZA_AMOUNT + r')',
    re.IGNORECASE,
)
OUTSTANDING_AFTER_PATTERN = re.compile(
    r'outstanding\s+Fuliza\s+M-PESA\s+(?:amount|balance)\s+is\s+Ksh\s*(' + FULIZA_AMOUNT + r')',
    re.IGNORECASE,
)


class CreditGrammar(MessageGrammar):
    provider = "fuliza"

    def __init__(self):
        self.normalizer = FieldNormalizer()


class DrawdownGrammar(CreditGrammar):
    # "TL5FV06V3A Confirmed. Fuliza M-Pesa amount is Ksh 100.00. Access Fee charged Ksh 1.00.
    #  Total Fuliza M-Pesa outstanding amount is Ksh173.45 due on 03/01/26."
    name = "fuliza_drawdown"
    pattern = re.compile(
        r'(?P<code>[A-Z0-9]+)\s+Confirmed\.\s*Fuliza\s+M-PESA\s+amount\s+is\s+Ksh\s*(?P<amount>' + FULIZA_AMOUNT + r')\.?'
        r'\s*Access\s+Fee\s+charged\s+Ksh\s*(?P<fee>' + FULIZA_AMOUNT + r')\.?'
        r'(?:\s*Total\s+Fuliza\s+M-PESA\s+outstanding\s+amount\s+is\s+Ksh\s*(?P<outstanding>' + FULIZA_AMOUNT + r'))?'
        r'(?:\s+due\s+on\s+(?P<due>\d{1,2}/\d{1,2}/\d{2}))?',
        re.IGNORECASE | re.DOTALL,
    )

    def build(self, match: Match, text: str) -> CreditDrawdown:
        due = match.group('due')
        return CreditDrawdown(
            confirmation_code=match.group('code').upper(),
            amount=self.normalizer.normalize_amount(match.group('amount')),
            access_fee=self.normalizer.normalize_amount(match.group('fee'), 'access_fee', allow_zero=True),
            outstanding_balance_after=self.normalizer.optional_amount(match.group('outstanding'), 'outstanding'),
            due_date=self.normalizer.parse_due_date(due) if due else None,
        )


class RepaymentGrammar(CreditGrammar):
    # "TL6FV0BMLB Confirmed. Ksh 244.15 from your M-PESA has been used to fully pay your
    #  outstanding Fuliza M-PESA. Available Fuliza M-PESA limit is Ksh 1500.00."
    name = "fuliza_repayment"
    pattern = re.compile(
        r'(?P<code>[A-Z0-9]+)\s+Confirmed\.\s*Ksh\s*(?P<amount>' + FULIZA_AMOUNT + r')\s+'
        r'from\s+your\s+M-PESA\s+has\s+been\s+used\s+to\s+(?P<extent>partially|fully)\s+pay\s+'
        r'your\s+outstanding\s+Fuliza\s+M-PESA',
        re.IGNORECASE | re.DOTALL,
    )

    def build(self, match: Match, text: str) -> CreditRepayment:
        limit_match = AVAILABLE_LIMIT_PATTERN.search(text)
        available_limit = (
            self.normalizer.optional_amount(limit_match.group(1), 'limit') if limit_match else None
        )

        # The available limit is not the outstanding balance; only an explicit
        # outstanding figure or a full payoff is authoritative.
        if match.group('extent').lower() == 'fully':
            outstanding = Decimal('0.00')
        else:
            outstanding_match = OUTSTANDING_AFTER_PATTERN.search(text, match.end())
            outstanding = (
                self.normalizer.optional_amount(outstanding_match.group(1), 'outstanding')
                if outstanding_match else None
            )

        return CreditRepayment(
            confirmation_code=match.group('code').upper(),
            amount=self.normalizer.normalize_amount(match.group('amount')),
            outstanding_balance_after=outstanding,
            available_limit=available_limit,
        )


CREDIT_GRAMMARS = [
    DrawdownGrammar,
    RepaymentGrammar,
]
