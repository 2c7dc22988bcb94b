"""M-PESA wallet notification grammars."""

import re
from decimal import Decimal
from re import Match

from .base import (
    BALANCE_PATTERN,
    CODE,
    COST_PATTERN,
    KSH_AMOUNT,
    ON_DATE_AT_TIME,
    FieldNormalizer,
    MessageGrammar,
)
from ..models.core import Direction, StandardTransaction


class MpesaGrammar(MessageGrammar):
    """Shared field handling for wallet notifications"""

    provider = "mpesa"
    direction = Direction.SENT
    has_cost = True

    def __init__(self):
        self.normalizer = FieldNormalizer()

    def counterparty(self, match: Match):
        """Return ``(counterparty_id, counterparty_name)``"""
        name = self.normalizer.clean_name(match.group('name'))
        return name.upper(), name

    def build(self, match: Match, text: str) -> StandardTransaction:
        counterparty_id, counterparty_name = self.counterparty(match)
        fee = self.normalizer.find_amount(COST_PATTERN, text, 'fee') if self.has_cost else Decimal('0.00')

        return StandardTransaction(
            confirmation_code=match.group('code'),
            amount=self.normalizer.normalize_amount(match.group('amount')),
            direction=self.direction,
            counterparty_id=counterparty_id,
            counterparty_name=counterparty_name,
            occurred_at=self.normalizer.parse_message_datetime(match.group('date'), match.group('time')),
            post_balance=self.normalizer.find_amount(BALANCE_PATTERN, text, 'balance'),
            fee_charged=fee,
            grammar=self.name,
        )


class SentGrammar(MpesaGrammar):
    # "AB12CD Confirmed. Ksh1,200.00 sent to JOHN DOE on 5/3/25 at 10:00 AM. New M-PESA balance ..."
    name = "mpesa_sent"
    pattern = re.compile(
        CODE + r'\s*' + KSH_AMOUNT +
        r'\s+sent\s+to\s+(?P<name>(?:(?!\s+for\s+account\s).)+?)\s+' + ON_DATE_AT_TIME,
        re.DOTALL,
    )


class ReceivedGrammar(MpesaGrammar):
    # "RKXABCD123 Confirmed. You have received Ksh500.00 from JOHN DOE on 29/11/25 at 10:00 AM."
    name = "mpesa_received"
    direction = Direction.RECEIVED
    has_cost = False
    pattern = re.compile(
        CODE + r'\s*You\s+have\s+received\s+' + KSH_AMOUNT +
        r'\s+from\s+(?P<name>.+?)\s+' + ON_DATE_AT_TIME,
        re.DOTALL,
    )


class PayBillGrammar(MpesaGrammar):
    # "TKSFVBGF9G Confirmed. Ksh900.00 sent to DTB Account for account 333667 on 28/11/25 at 3:06 PM"
    name = "mpesa_paybill"
    pattern = re.compile(
        CODE + r'\s*' + KSH_AMOUNT +
        r'\s+sent\s+to\s+(?P<name>.+?)\s+for\s+account\s+(?P<account>.+?)\s+' + ON_DATE_AT_TIME,
        re.DOTALL,
    )

    def counterparty(self, match: Match):
        business = self.normalizer.clean_name(match.group('name'))
        account = self.normalizer.clean_name(match.group('account'))
        return account.upper(), f"{business} - {account}"


class BuyGoodsGrammar(MpesaGrammar):
    # "TKTFVBL1ZS Confirmed. Ksh1,510.00 paid to DAD RONGAI. on 29/11/25 at 7:25 PM."
    name = "mpesa_buy_goods"
    pattern = re.compile(
        CODE + r'\s*' + KSH_AMOUNT +
        r'\s+paid\s+to\s+(?P<name>.+?)\.?\s+' + ON_DATE_AT_TIME,
        re.DOTALL,
    )


class WithdrawalGrammar(MpesaGrammar):
    # "TKLFVATCJ7 Confirmed.on 21/11/25 at 2:26 PMWithdraw Ksh82,000.00 from 2998848 - Soluster LANGATA New M-PESA ..."
    name = "mpesa_withdrawal"
    pattern = re.compile(
        CODE + r'\s*' + ON_DATE_AT_TIME +
        r'\s*Withdraw\s+' + KSH_AMOUNT + r'\s+from\s+(?P<name>.+?)\.?\s+New\s+M-PESA',
        re.DOTALL,
    )


MPESA_GRAMMARS = [
    SentGrammar,
    ReceivedGrammar,
    PayBillGrammar,
    BuyGoodsGrammar,
    WithdrawalGrammar,
]
