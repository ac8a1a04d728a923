"""
Cashflows: dated payments and their generation from schedules.
"""

from fi_toolkit.cashflows.cashflow import (
    Cashflow,
    CashflowKind,
    CashflowStream,
    fixed_cashflows,
    floating_cashflows,
    straight_line_notionals,
)

__all__ = [
    "Cashflow",
    "CashflowKind",
    "CashflowStream",
    "fixed_cashflows",
    "floating_cashflows",
    "straight_line_notionals",
]
