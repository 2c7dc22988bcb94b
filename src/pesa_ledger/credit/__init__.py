"""Credit facility fee rates and cost simulation"""

from .rates import RateTable, access_fee_estimate, estimate_cost, maintenance_fee
from .simulator import DailyCharge, DebtSimulator, SimulationResult, month_key

__all__ = [
    'RateTable',
    'access_fee_estimate',
    'estimate_cost',
    'maintenance_fee',
    'DailyCharge',
    'DebtSimulator',
    'SimulationResult',
    'month_key',
]
