"""Tests for the credit facility debt simulator."""

from datetime import datetime
from decimal import Decimal

from pesa_ledger.credit.rates import RateTable
from pesa_ledger.credit.simulator import DebtSimulator, month_key
from pesa_ledger.models.core import CreditDrawdown, CreditRepayment
from pesa_ledger.utils.error_handler import ErrorHandler


def drawdown(code, when, amount, fee, outstanding=None):
    return CreditDrawdown(
        confirmation_code=code,
        amount=Decimal(amount),
        access_fee=Decimal(fee),
        outstanding_balance_after=Decimal(outstanding) if outstanding is not None else None,
        occurred_at=when,
    )


def repayment(code, when, amount, outstanding=None):
    return CreditRepayment(
        confirmation_code=code,
        amount=Decimal(amount),
        outstanding_balance_after=Decimal(outstanding) if outstanding is not None else None,
        occurred_at=when,
    )


class TestDebtSimulator:
    """Test cases for DebtSimulator"""

    def setup_method(self):
        """Set up test fixtures"""
        self.error_handler = ErrorHandler(enable_console=False)
        self.simulator = DebtSimulator(error_handler=self.error_handler)

    def test_drawdown_then_full_repayment_next_day(self):
        """Test day 1 pays access fee plus its end-of-day band, day 2 is free"""
        events = [
            drawdown("D1", datetime(2025, 11, 3, 9, 0), "70.00", "0.70", "244.15"),
            repayment("R1", datetime(2025, 11, 4, 10, 0), "244.15", "0.00"),
        ]

        result = self.simulator.simulate_detailed(events, datetime(2025, 11, 4, 23, 0))

        assert result.monthly_fees == {"2025-11": Decimal("3.70")}
        assert result.closing_balance == Decimal("0.00")
        assert [charge.day.day for charge in result.daily_charges] == [3]

    def test_same_day_repayment_costs_access_fee_only(self):
        events = [
            drawdown("D1", datetime(2025, 11, 3, 9, 0), "70.00", "0.70", "244.15"),
            repayment("R1", datetime(2025, 11, 3, 18, 0), "244.15", "0.00"),
        ]

        fees = self.simulator.simulate(events, datetime(2025, 11, 10))

        assert fees == {"2025-11": Decimal("0.70")}

    def test_explicit_outstanding_overrides_arithmetic(self):
        """Test a stated outstanding balance replaces the running sum"""
        events = [drawdown("D1", datetime(2025, 5, 1, 8, 0), "50.00", "0.50", "600.00")]

        result = self.simulator.simulate_detailed(events, datetime(2025, 5, 1, 20, 0))

        # 50.50 by arithmetic would fall in the free band
        assert result.closing_balance == Decimal("600.00")
        assert result.monthly_fees == {"2025-05": Decimal("6.50")}

    def test_arithmetic_without_outstanding(self):
        events = [
            drawdown("D1", datetime(2025, 5, 1, 8, 0), "400.00", "4.00"),
            repayment("R1", datetime(2025, 5, 2, 8, 0), "200.00"),
        ]

        result = self.simulator.simulate_detailed(events, datetime(2025, 5, 3, 12, 0))

        assert result.closing_balance == Decimal("204.00")
        assert result.monthly_fees == {"2025-05": Decimal("13.00")}

    def test_repayment_never_goes_negative(self):
        events = [
            drawdown("D1", datetime(2025, 5, 1, 8, 0), "100.00", "1.00"),
            repayment("R1", datetime(2025, 5, 1, 9, 0), "500.00"),
        ]

        result = self.simulator.simulate_detailed(events, datetime(2025, 5, 1, 23, 0))

        assert result.closing_balance == Decimal("0.00")

    def test_costs_split_across_months(self):
        events = [drawdown("D1", datetime(2025, 1, 30, 12, 0), "990.00", "10.00", "1000.00")]

        fees = self.simulator.simulate(events, datetime(2025, 2, 2, 12, 0))

        assert list(fees) == ["2025-01", "2025-02"]
        assert fees["2025-01"] == Decimal("22.00")
        assert fees["2025-02"] == Decimal("12.00")

    def test_months_are_monotonic(self):
        events = [
            drawdown("D1", datetime(2024, 11, 20, 12, 0), "300.00", "3.00"),
            drawdown("D2", datetime(2025, 1, 5, 12, 0), "300.00", "3.00"),
        ]

        keys = list(self.simulator.simulate(events, datetime(2025, 3, 1)))

        assert keys == sorted(keys)
        assert keys == ["2024-11", "2024-12", "2025-01", "2025-02", "2025-03"]

    def test_closed_month_total_does_not_change_later(self):
        events = [
            drawdown("D1", datetime(2025, 1, 10, 12, 0), "600.00", "6.00"),
            repayment("R1", datetime(2025, 2, 20, 12, 0), "300.00"),
        ]

        early = self.simulator.simulate(events, datetime(2025, 2, 10))
        later = self.simulator.simulate(events, datetime(2025, 3, 10))

        assert early["2025-01"] == later["2025-01"]
        assert later["2025-01"] == Decimal("6.00") + Decimal("6") * 22

    def test_full_repayment_resets_drifted_balance(self):
        """Test a stated zero balance wins over an arithmetic balance that drifted up"""
        events = [
            drawdown("D1", datetime(2025, 6, 1, 8, 0), "400.00", "4.00"),
            drawdown("D2", datetime(2025, 6, 2, 8, 0), "400.00", "4.00"),
            drawdown("D3", datetime(2025, 6, 3, 8, 0), "400.00", "4.00"),
            repayment("R1", datetime(2025, 6, 4, 8, 0), "500.00", "0.00"),
        ]

        result = self.simulator.simulate_detailed(events, datetime(2025, 6, 6, 23, 0))

        # Arithmetic alone would leave 712.00 outstanding
        assert result.closing_balance == Decimal("0.00")
        assert [charge.day.day for charge in result.daily_charges] == [1, 2, 3]

    def test_unsorted_input(self):
        events = [
            repayment("R1", datetime(2025, 11, 4, 10, 0), "244.15", "0.00"),
            drawdown("D1", datetime(2025, 11, 3, 9, 0), "70.00", "0.70", "244.15"),
        ]

        fees = self.simulator.simulate(events, datetime(2025, 11, 4, 23, 0))

        assert fees == {"2025-11": Decimal("3.70")}

    def test_future_events_are_skipped(self):
        events = [
            drawdown("D1", datetime(2025, 11, 3, 9, 0), "70.00", "0.70", "244.15"),
            drawdown("D2", datetime(2025, 12, 1, 9, 0), "500.00", "5.00"),
        ]

        result = self.simulator.simulate_detailed(events, datetime(2025, 11, 3, 23, 0))

        assert result.skipped_events == ["D2"]
        assert result.monthly_fees == {"2025-11": Decimal("3.70")}
        assert self.error_handler.warnings[0].error_code == "M001"

    def test_no_events(self):
        assert self.simulator.simulate([], datetime(2025, 1, 1)) == {}

    def test_rerun_gives_same_result(self):
        events = [drawdown("D1", datetime(2025, 5, 1, 8, 0), "400.00", "4.00")]
        as_of = datetime(2025, 5, 20)

        assert self.simulator.simulate(events, as_of) == self.simulator.simulate(events, as_of)

    def test_custom_rate_table(self):
        simulator = DebtSimulator(RateTable([[100, 1]], overflow_fee=2))
        events = [drawdown("D1", datetime(2025, 5, 1, 8, 0), "50.00", "0.00")]

        assert simulator.simulate(events, datetime(2025, 5, 2, 8, 0)) == {"2025-05": Decimal("2")}


def test_month_key_zero_pads():
    assert month_key(datetime(2025, 3, 9).date()) == "2025-03"
