# SMB Payables - Recurring obligations & profit engine for service SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period proration engine.

Computes the cost of obligations over an arbitrary [start, end] window by
apportioning recurring values by elapsed days. This is deliberately a
different model from instance expansion (expansion.py):

- expansion asks "which dated occurrences fall in the window";
- proration asks "how many days of a continuous daily rate overlap the
  window".

The two can disagree for the same fixtures (a monthly cost whose due date
falls outside a short window still costs something here), and this module
never consults the instance list.

Daily rate
----------
    daily_rate = value / unit_days

with unit_days = 1 (daily), 7 (weekly), 30 (monthly) or 365 (yearly).
The monthly divisor is a flat 30 days, not the calendar month used by
expansion; both behaviours are kept as they are.

Overlap
-------
    effective_days = min(end, recurrence_end_date or end)
                     - max(start, anchor_date) + 1 day

clamped to >= 0. One-time obligations contribute their full value when
their anchor date lies in [start, end].
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from .exceptions import ObligationValidationError
from .models import RecurringObligation, money, split_valid_obligations
from .periods import overlap_days

logger = logging.getLogger(__name__)

UNIT_DAYS: dict[str, int] = {
    "daily": 1,
    "weekly": 7,
    "monthly": 30,
    "yearly": 365,
}


@dataclass(frozen=True)
class ProrationResult:
    """
    Aggregate cost of obligations over a window.

    Attributes
    ----------
    start, end:
        Inclusive window boundaries.
    total_amount:
        Sum of all contributions, rounded to cents once at the end.
    by_obligation:
        Unrounded contribution of each obligation that overlaps the window.
    issues:
        Validation errors of obligations excluded from the computation.
    """

    start: date
    end: date
    total_amount: Decimal
    by_obligation: dict[str, Decimal] = field(default_factory=dict)
    issues: list[ObligationValidationError] = field(default_factory=list)


def daily_rate(obligation: RecurringObligation) -> Decimal:
    """Value per day of a recurring obligation."""
    return obligation.value / UNIT_DAYS[obligation.recurrence_frequency]


def effective_days(obligation: RecurringObligation, start: date, end: date) -> int:
    """Days of [start, end] during which a recurring obligation is active."""
    return overlap_days(
        start, end, obligation.anchor_date, obligation.recurrence_end_date
    )


def contribution(obligation: RecurringObligation, start: date, end: date) -> Decimal:
    """Unrounded cost of one (valid) obligation over [start, end]."""
    if not obligation.is_recurring:
        if start <= obligation.anchor_date <= end:
            return obligation.value
        return Decimal("0")

    days = effective_days(obligation, start, end)
    if days <= 0:
        return Decimal("0")
    # Multiply before dividing so exact ratios stay exact.
    return obligation.value * days / UNIT_DAYS[obligation.recurrence_frequency]


def prorate(
    obligations: Iterable[RecurringObligation],
    start: date,
    end: date,
) -> ProrationResult:
    """
    Prorate obligations over the inclusive window [start, end].

    Invalid obligations are excluded and reported in `issues`.

    Raises
    ------
    ValueError
        If `end` is before `start`.
    """
    if end < start:
        raise ValueError(
            f"Proration window end {end.isoformat()} is before start "
            f"{start.isoformat()}."
        )

    valid, errors = split_valid_obligations(list(obligations))
    for error in errors:
        logger.warning("Excluding obligation from proration: %s", error)

    total = Decimal("0")
    by_obligation: dict[str, Decimal] = {}
    for obligation in valid:
        amount = contribution(obligation, start, end)
        if amount == 0:
            continue
        by_obligation[obligation.id] = (
            by_obligation.get(obligation.id, Decimal("0")) + amount
        )
        total += amount

    logger.debug(
        "Prorated %d obligations over %s → %s: %s",
        len(valid),
        start.isoformat(),
        end.isoformat(),
        total,
    )
    return ProrationResult(
        start=start,
        end=end,
        total_amount=money(total),
        by_obligation=by_obligation,
        issues=errors,
    )
