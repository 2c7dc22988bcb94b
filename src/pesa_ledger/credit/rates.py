"""Tiered daily maintenance fees for the credit facility."""

from decimal import Decimal
from typing import List, Optional, Sequence, Tuple


# (upper bound of the outstanding balance, daily fee); balances above the
# last bound pay OVERFLOW_FEE
DEFAULT_BANDS: List[Tuple[Decimal, Decimal]] = [
    (Decimal('100'), Decimal('0')),
    (Decimal('500'), Decimal('3')),
    (Decimal('1000'), Decimal('6')),
    (Decimal('1500'), Decimal('18')),
    (Decimal('2500'), Decimal('20')),
    (Decimal('70000'), Decimal('25')),
]
OVERFLOW_FEE = Decimal('30')

ACCESS_FEE_RATE = Decimal('0.01')


class RateTable:
    """Band lookup keyed by end-of-day outstanding balance"""

    def __init__(self,
                 bands: Optional[Sequence[Sequence]] = None,
                 overflow_fee: Optional[Decimal] = None):
        if bands:
            self.bands = sorted(
                ((Decimal(str(bound)), Decimal(str(fee))) for bound, fee in bands),
                key=lambda band: band[0]
            )
        else:
            self.bands = list(DEFAULT_BANDS)
        self.overflow_fee = Decimal(str(overflow_fee)) if overflow_fee is not None else OVERFLOW_FEE

    def maintenance_fee(self, balance: Decimal) -> Decimal:
        """Daily fee for ``balance``; bounds are inclusive"""
        balance = Decimal(str(balance))
        for upper_bound, fee in self.bands:
            if balance <= upper_bound:
                return fee
        return self.overflow_fee

    @classmethod
    def from_config(cls, fee_bands: Optional[List[List[float]]]) -> "RateTable":
        """Build from ``[[upper_bound, fee], ..., [None, overflow_fee]]``"""
        if not fee_bands:
            return cls()
        bands = [band for band in fee_bands if band[0] is not None]
        overflow = [band[1] for band in fee_bands if band[0] is None]
        return cls(bands, overflow[0] if overflow else None)


DEFAULT_RATE_TABLE = RateTable()


def maintenance_fee(balance: Decimal) -> Decimal:
    return DEFAULT_RATE_TABLE.maintenance_fee(balance)


def access_fee_estimate(amount: Decimal) -> Decimal:
    """Approximate one-time fee charged on a drawdown"""
    return (Decimal(str(amount)) * ACCESS_FEE_RATE).quantize(Decimal('0.01'))


def estimate_cost(outstanding_balance: Decimal, days_until_payback: int,
                  rate_table: Optional[RateTable] = None) -> dict:
    """Projected cost of carrying ``outstanding_balance`` for a number of days"""
    table = rate_table or DEFAULT_RATE_TABLE
    daily_charge = table.maintenance_fee(outstanding_balance)
    access_fee = access_fee_estimate(outstanding_balance)
    return {
        'daily_charge': daily_charge,
        'access_fee': access_fee,
        'total_cost': access_fee + daily_charge * days_until_payback,
    }
