"""Ledger reports"""

from .budget import BudgetLine, BudgetReport, build_budget_report, save_budget
from .summary import SpendingSummary, build_spending_summary, category_spending

__all__ = [
    'BudgetLine',
    'BudgetReport',
    'build_budget_report',
    'save_budget',
    'SpendingSummary',
    'build_spending_summary',
    'category_spending',
]
