# SMB Payables - Recurring obligations & profit engine for service SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Occurrence schedule of an obligation.

The n-th occurrence of a recurring obligation is always computed from
its anchor date (anchor + n units), never by chaining from the previous
occurrence. With monthly recurrences this keeps a 31st anchor on the
31st whenever the month allows it:

    2024-01-31, 2024-02-29, 2024-03-31, 2024-04-30, ...
"""

from collections.abc import Iterator
from datetime import date, timedelta
from typing import Optional

from .models import RecurringObligation
from .periods import add_months

_DAY_STEPS = {"daily": 1, "weekly": 7}
_MONTH_STEPS = {"monthly": 1, "yearly": 12}


def occurrence_date(obligation: RecurringObligation, index: int) -> date:
    """Return the date of occurrence number `index` (0 = anchor date)."""
    if not obligation.is_recurring:
        if index != 0:
            raise ValueError("One-time obligations only have occurrence 0.")
        return obligation.anchor_date

    frequency = obligation.recurrence_frequency
    if frequency in _DAY_STEPS:
        return obligation.anchor_date + timedelta(days=index * _DAY_STEPS[frequency])
    if frequency in _MONTH_STEPS:
        return add_months(obligation.anchor_date, index * _MONTH_STEPS[frequency])
    raise ValueError(f"Unknown recurrence frequency: {frequency!r}")


def first_index_on_or_after(obligation: RecurringObligation, day: date) -> int:
    """Smallest occurrence index whose date is >= `day`."""
    anchor = obligation.anchor_date
    if day <= anchor:
        return 0

    frequency = obligation.recurrence_frequency
    if frequency in _DAY_STEPS:
        step = _DAY_STEPS[frequency]
        return -(-(day - anchor).days // step)

    step = _MONTH_STEPS[frequency]
    months = (day.year - anchor.year) * 12 + (day.month - anchor.month)
    index = max(0, months // step - 1)
    while occurrence_date(obligation, index) < day:
        index += 1
    return index


def iter_occurrences(
    obligation: RecurringObligation,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Iterator[date]:
    """
    Yield occurrence dates of an obligation, in ascending order.

    Occurrences are limited to [start, end] and, for recurring
    obligations, to the recurrence end date. A recurrence end date that
    falls between two occurrences never produces a partial occurrence.

    Raises
    ------
    ValueError
        If the obligation is open-ended and no `end` bound is given.
    """
    if not obligation.is_recurring:
        day = obligation.anchor_date
        if (start is None or day >= start) and (end is None or day <= end):
            yield day
        return

    limit = obligation.recurrence_end_date
    if end is not None:
        limit = end if limit is None else min(limit, end)
    if limit is None:
        raise ValueError(
            f"Obligation {obligation.id!r} is open-ended; an end bound is required."
        )

    index = first_index_on_or_after(obligation, start) if start is not None else 0
    while True:
        day = occurrence_date(obligation, index)
        if day > limit:
            return
        yield day
        index += 1


def is_occurrence(obligation: RecurringObligation, day: date) -> bool:
    """Whether `day` is a scheduled due date of the obligation."""
    if not obligation.is_recurring:
        return day == obligation.anchor_date
    if day < obligation.anchor_date:
        return False
    end = obligation.recurrence_end_date
    if end is not None and day > end:
        return False
    return occurrence_date(obligation, first_index_on_or_after(obligation, day)) == day
