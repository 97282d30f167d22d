# SMB Payables - Recurring obligations & profit engine for service SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Profit aggregator.

Combines, for one [start, end] window:

- revenue  : settlement amount of completed sales dated in the window,
- expenses : ad-hoc expenses dated in the window
             + prorated cost of obligations (proration.py),
- net profit = revenue - expenses.

This is a pure read-then-compute step: inputs are plain DataFrames and
obligation records, and nothing is written.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

import pandas as pd

from .exceptions import ObligationValidationError
from .models import RecurringObligation, money
from .periods import Period, filter_frame_by_period
from .proration import prorate

DEFAULT_REVENUE_STATUSES: tuple[str, ...] = ("paid", "completed")


@dataclass(frozen=True)
class ProfitReport:
    """
    Profit and loss figures for a window.

    Attributes
    ----------
    start, end:
        Inclusive window boundaries.
    revenue:
        Sum of completed sales.
    ad_hoc_expenses:
        Sum of one-time expenses recorded outside the obligation model.
    recurring_costs:
        Prorated cost of obligations over the window.
    expenses:
        ad_hoc_expenses + recurring_costs.
    net_profit:
        revenue - expenses.
    issues:
        Obligations excluded from proration because they are invalid.
    """

    start: date
    end: date
    revenue: Decimal
    ad_hoc_expenses: Decimal
    recurring_costs: Decimal
    expenses: Decimal
    net_profit: Decimal
    issues: list[ObligationValidationError] = field(default_factory=list)


def _sum_amounts(frame: pd.DataFrame) -> Decimal:
    # Amount columns hold Decimal objects; sum them without going through float.
    if frame.empty:
        return Decimal("0")
    return sum((Decimal(str(v)) for v in frame["amount"]), Decimal("0"))


def realized_revenue(
    sales: pd.DataFrame,
    period: Period,
    revenue_statuses: Iterable[str] = DEFAULT_REVENUE_STATUSES,
) -> Decimal:
    """
    Sum the amount of sales in the period whose status counts as revenue.

    Parameters
    ----------
    sales:
        DataFrame with at least 'date' (datetime64), 'status' and 'amount'.
    period:
        Inclusive window.
    revenue_statuses:
        Sale statuses treated as completed (case-insensitive).
    """
    in_period = filter_frame_by_period(sales, period)
    if in_period.empty:
        return Decimal("0")
    statuses = {s.lower() for s in revenue_statuses}
    completed = in_period[in_period["status"].astype(str).str.lower().isin(statuses)]
    return _sum_amounts(completed)


def profit_report(
    start: date,
    end: date,
    sales: pd.DataFrame,
    expenses: pd.DataFrame,
    obligations: Iterable[RecurringObligation],
    revenue_statuses: Iterable[str] = DEFAULT_REVENUE_STATUSES,
) -> ProfitReport:
    """
    Build the profit report for the inclusive window [start, end].

    Parameters
    ----------
    start, end:
        Window boundaries.
    sales:
        Sales DataFrame (date, status, amount). Rows outside the window
        are ignored.
    expenses:
        Ad-hoc expenses DataFrame (date, amount). Rows outside the window
        are ignored.
    obligations:
        Obligation definitions, prorated over the window.
    revenue_statuses:
        Sale statuses counted as revenue.

    Returns
    -------
    ProfitReport
        All amounts rounded to cents.

    Raises
    ------
    ValueError
        If `end` is before `start`.
    """
    if end < start:
        raise ValueError("Profit report end date cannot be before start date.")

    period = Period(start=start, end=end, label="Profit window")

    revenue = realized_revenue(sales, period, revenue_statuses)
    ad_hoc = _sum_amounts(filter_frame_by_period(expenses, period))
    proration = prorate(obligations, start, end)

    total_expenses = money(ad_hoc) + proration.total_amount
    return ProfitReport(
        start=start,
        end=end,
        revenue=money(revenue),
        ad_hoc_expenses=money(ad_hoc),
        recurring_costs=proration.total_amount,
        expenses=total_expenses,
        net_profit=money(revenue) - total_expenses,
        issues=list(proration.issues),
    )
