"""Message grammars and the event extractor"""

from .base import FieldNormalizer, MalformedFieldError, MessageGrammar
from .bank import BankReceiptGrammar, BankTransferGrammar, CardPurchaseGrammar
from .credit import DrawdownGrammar, RepaymentGrammar
from .extractor import DEFAULT_GRAMMARS, PROVIDERS, EventExtractor
from .mpesa import (
    BuyGoodsGrammar,
    PayBillGrammar,
    ReceivedGrammar,
    SentGrammar,
    WithdrawalGrammar,
)

__all__ = [
    'FieldNormalizer',
    'MalformedFieldError',
    'MessageGrammar',
    'BankReceiptGrammar',
    'BankTransferGrammar',
    'CardPurchaseGrammar',
    'DrawdownGrammar',
    'RepaymentGrammar',
    'DEFAULT_GRAMMARS',
    'PROVIDERS',
    'EventExtractor',
    'BuyGoodsGrammar',
    'PayBillGrammar',
    'ReceivedGrammar',
    'SentGrammar',
    'WithdrawalGrammar',
]
