"""Day-by-day replay of credit facility events into monthly fee totals."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from .rates import RateTable, DEFAULT_RATE_TABLE
from ..models.core import CreditDrawdown, CreditEvent, CreditRepayment
from ..utils.error_handler import ErrorCategory, ErrorHandler


logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


def month_key(day: date) -> str:
    """``YYYY-MM`` accumulator key"""
    return f"{day.year}-{day.month:02d}"


@dataclass
class DailyCharge:
    """Costs attributed to one calendar day"""
    day: date
    closing_balance: Decimal
    access_fees: Decimal
    maintenance_fee: Decimal

    @property
    def total(self) -> Decimal:
        return self.access_fees + self.maintenance_fee


@dataclass
class SimulationResult:
    """Full output of a replay"""
    monthly_fees: Dict[str, Decimal] = field(default_factory=dict)
    closing_balance: Decimal = ZERO
    daily_charges: List[DailyCharge] = field(default_factory=list)
    skipped_events: List[str] = field(default_factory=list)


class DebtSimulator:
    """Replays drawdowns and repayments to compute facility costs.

    The replay starts at the day of the first event and walks one calendar
    day at a time up to and including the day of ``as_of``. Events of a day
    are applied in chronological order, then the end-of-day balance is
    looked up in the rate table. An explicit outstanding balance stated in
    a message always replaces the running arithmetic.

    The simulator holds no state between runs; rerunning it over the same
    events gives the same result.
    """

    def __init__(self,
                 rate_table: Optional[RateTable] = None,
                 error_handler: Optional[ErrorHandler] = None):
        self.rate_table = rate_table or DEFAULT_RATE_TABLE
        self.error_handler = error_handler

    def simulate(self, events: Sequence[CreditEvent], as_of: datetime) -> Dict[str, Decimal]:
        """Return fee totals keyed by ``YYYY-MM``"""
        return self.simulate_detailed(events, as_of).monthly_fees

    def simulate_detailed(self, events: Sequence[CreditEvent], as_of: datetime) -> SimulationResult:
        result = SimulationResult()
        replayable = self._valid_events(events, as_of, result)
        if not replayable:
            return result

        balance = ZERO
        index = 0
        day = replayable[0].occurred_at.date()
        last_day = as_of.date()

        while day <= last_day:
            access_fees = ZERO

            while index < len(replayable) and replayable[index].occurred_at.date() <= day:
                event = replayable[index]
                balance = self.apply_event(balance, event)
                if isinstance(event, CreditDrawdown) and event.access_fee > 0:
                    access_fees += event.access_fee
                index += 1

            maintenance = self.rate_table.maintenance_fee(balance)
            charge = DailyCharge(day, balance, access_fees, maintenance)
            if charge.total > 0:
                key = month_key(day)
                result.monthly_fees[key] = result.monthly_fees.get(key, ZERO) + charge.total
                result.daily_charges.append(charge)

            day += timedelta(days=1)

        result.closing_balance = balance
        logger.debug(
            f"Replayed {len(replayable)} credit events through {last_day}: "
            f"{len(result.monthly_fees)} months, closing balance {balance}"
        )
        return result

    @staticmethod
    def apply_event(balance: Decimal, event: CreditEvent) -> Decimal:
        """Balance after one event"""
        if event.outstanding_balance_after is not None:
            return event.outstanding_balance_after

        if isinstance(event, CreditDrawdown):
            return balance + event.amount + event.access_fee
        if isinstance(event, CreditRepayment):
            return max(ZERO, balance - event.amount)
        raise TypeError(f"Not a credit event: {event!r}")

    def _valid_events(self, events: Sequence[CreditEvent], as_of: datetime,
                      result: SimulationResult) -> List[CreditEvent]:
        valid = []
        for event in events:
            if event.occurred_at is None or event.occurred_at > as_of:
                result.skipped_events.append(event.confirmation_code)
                self._warn_skipped(event, as_of)
                continue
            valid.append(event)

        # Stable: same-instant events keep their input order
        return sorted(valid, key=lambda e: e.occurred_at)

    def _warn_skipped(self, event: CreditEvent, as_of: datetime):
        message = (
            f"Skipping credit event {event.confirmation_code}: "
            f"occurred_at {event.occurred_at} is not on or before {as_of}"
        )
        if self.error_handler:
            self.error_handler.log_warning(
                message,
                "SIMULATION_INPUT_INVALID",
                ErrorCategory.SIMULATION,
                message_id=event.confirmation_code,
            )
        else:
            logger.warning(message)
