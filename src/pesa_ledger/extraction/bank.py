"""I&M Bank notification grammars.

The bank-to-M-PESA transfer and the matching bank receipt notification
carry the same Transaction Ref ID. Both grammars use that ref as the
confirmation code so a second notification replaces the first ledger
row instead of adding a duplicate.
"""

import re
from decimal import Decimal
from re import Match

from .base import FieldNormalizer, MessageGrammar
from ..models.core import Direction, StandardTransaction


KES_AMOUNT = r'KES\s*(?P<amount>[\d,]+\.\d{2})'
BANK_REFS = (
    r'Transaction\s+Ref\s+ID:\s*(?P<code>[A-Z0-9]+)\.?\s+'
    r'M-?PESA\s+Ref\s+ID:\s*(?P<ref>[A-Z0-9]+)'
)


class BankGrammar(MessageGrammar):
    provider = "im_bank"

    def __init__(self):
        self.normalizer = FieldNormalizer()


class BankTransferGrammar(BankGrammar):
    # "Bank to M-PESA transfer of KES 1,500.00 to 0702173240 - PAULINE WAIRIMU NGUGI successfully
    #  processed. Transaction Ref ID: 2987VCSA2052. M-PESA Ref ID: TLCNB0QWT3"
    name = "im_bank_transfer"
    pattern = re.compile(
        r'Bank\s+to\s+M-?PESA\s+transfer\s+of\s+' + KES_AMOUNT +
        r'\s+to\s+(?P<phone>\d+)\s+-\s+(?P<name>.+?)\s+successfully\s+processed\.\s+' + BANK_REFS,
        re.IGNORECASE | re.DOTALL,
    )

    def build(self, match: Match, text: str) -> StandardTransaction:
        return StandardTransaction(
            confirmation_code=match.group('code').upper(),
            amount=self.normalizer.normalize_amount(match.group('amount')),
            direction=Direction.SENT,
            counterparty_id=match.group('phone'),
            counterparty_name=self.normalizer.clean_name(match.group('name')),
            occurred_at=None,
            reference_code=match.group('ref').upper(),
            grammar=self.name,
        )


class BankReceiptGrammar(BankGrammar):
    # "You have received KES 2,000.00 from BENSON NJOROGE MWANIKI. Transaction Ref ID: 2933OIGG1912.
    #  Mpesa Ref ID: TL6FV0BMLA."
    name = "im_bank_receipt"
    pattern = re.compile(
        r'You\s+have\s+received\s+' + KES_AMOUNT +
        r'\s+from\s+(?P<name>.+?)\.\s+' + BANK_REFS,
        re.IGNORECASE | re.DOTALL,
    )

    def build(self, match: Match, text: str) -> StandardTransaction:
        # Same money movement as the transfer notification, so it stays an outflow
        name = self.normalizer.clean_name(match.group('name'))
        return StandardTransaction(
            confirmation_code=match.group('code').upper(),
            amount=self.normalizer.normalize_amount(match.group('amount')),
            direction=Direction.SENT,
            counterparty_id=name.upper(),
            counterparty_name=name,
            occurred_at=None,
            reference_code=match.group('ref').upper(),
            grammar=self.name,
        )


class CardPurchaseGrammar(BankGrammar):
    # "Dear BENSON, You made a purchase of KES 700.00 on 2025-11-21 22:10:21 at CASTLE GARDENS
    #  using I&M 5477********0012."
    name = "im_bank_card_purchase"
    pattern = re.compile(
        r'You\s+made\s+a\s+purchase\s+of\s*KES\s*(?P<amount>[\d,]+(?:\.\d{1,2})?)\s+'
        r'on\s+(?P<date>\d{4}-\d{2}-\d{2}|\d{2}-\d{2}-\d{4})\s+(?P<time>\d{2}:\d{2}:\d{2})\s+'
        r'at\s+(?P<merchant>.+?)(?:\s+using\s|\.\s|\.?$)',
        re.IGNORECASE | re.DOTALL,
    )

    def synthetic_id(self, merchant: str, date_str: str, time_str: str) -> str:
        """Card notifications carry no reference, so derive one from their content"""
        merchant_key = re.sub(r'[^A-Z0-9]+', '', merchant.upper())
        stamp = re.sub(r'\D', '', date_str) + re.sub(r'\D', '', time_str)
        return f"IM_CARD_{merchant_key}_{stamp}"

    def build(self, match: Match, text: str) -> StandardTransaction:
        merchant = self.normalizer.clean_name(match.group('merchant'))
        return StandardTransaction(
            confirmation_code=self.synthetic_id(merchant, match.group('date'), match.group('time')),
            amount=self.normalizer.normalize_amount(match.group('amount')),
            direction=Direction.SENT,
            counterparty_id=merchant.upper(),
            counterparty_name=merchant,
            occurred_at=self.normalizer.parse_card_datetime(match.group('date'), match.group('time')),
            post_balance=Decimal('0.00'),
            grammar=self.name,
        )


BANK_GRAMMARS = [
    BankTransferGrammar,
    BankReceiptGrammar,
    CardPurchaseGrammar,
]
