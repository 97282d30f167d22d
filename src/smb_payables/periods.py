# SMB Payables - Recurring obligations & profit engine for service SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period and calendar helpers for SMB Payables.

This module defines:
- the Period value object used for reporting windows (ledger, P&L),
- the Horizon value object bounding instance generation,
- calendar-date arithmetic shared by expansion and proration
  (month stepping with clamping, inclusive overlaps),
- builders for named periods (fiscal year, YTD, MTD, last month, last
  fiscal year).

There is no implicit "today" anywhere in this module: every helper that
depends on the current date receives it as an argument.
"""

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

import pandas as pd

from .config import FiscalYear


@dataclass
class Period:
    """Represents a reporting period with a human-readable label."""

    start: date
    end: date
    label: str


@dataclass(frozen=True)
class Horizon:
    """
    Inclusive [start, end] window bounding instance generation.

    Occurrences of recurring obligations are only materialized when they
    fall inside the horizon.
    """

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(
                f"Horizon end {self.end.isoformat()} is before start "
                f"{self.start.isoformat()}."
            )

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @classmethod
    def around(
        cls, reference_date: date, months_back: int, months_ahead: int
    ) -> "Horizon":
        """Horizon spanning `months_back` before and `months_ahead` after a date."""
        if months_back < 0 or months_ahead < 0:
            raise ValueError("Horizon month offsets must be non-negative.")
        return cls(
            start=add_months(reference_date, -months_back),
            end=add_months(reference_date, months_ahead),
        )

    @classmethod
    def from_period(cls, period: Period) -> "Horizon":
        return cls(start=period.start, end=period.end)


# ---------------------------------------------------------------------------
# Calendar arithmetic
# ---------------------------------------------------------------------------


def add_months(day: date, months: int) -> date:
    """
    Shift a date by a number of calendar months.

    The day of month is preserved and clamped to the last valid day of
    the target month (2024-01-31 + 1 month = 2024-02-29).
    """
    month_index = day.year * 12 + (day.month - 1) + months
    year, month0 = divmod(month_index, 12)
    month = month0 + 1
    last_day = monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def days_inclusive(start: date, end: date) -> int:
    """Number of calendar days in [start, end], 0 if the range is empty."""
    return max(0, (end - start).days + 1)


def overlap_days(
    start: date,
    end: date,
    active_start: date,
    active_end: Optional[date],
) -> int:
    """
    Days shared by [start, end] and [active_start, active_end].

    An `active_end` of None means the active interval never ends.
    """
    lower = max(start, active_start)
    upper = end if active_end is None else min(end, active_end)
    return days_inclusive(lower, upper)


# ---------------------------------------------------------------------------
# Named periods
# ---------------------------------------------------------------------------


def period_fy(fy: FiscalYear) -> Period:
    """Full current fiscal year."""
    return Period(
        start=fy.start_date,
        end=fy.end_date,
        label=f"Fiscal year {fy.start_date.year}",
    )


def period_ytd(fy: FiscalYear, today: date) -> Period:
    """Year-to-date within the fiscal year."""
    start = fy.start_date
    end = min(max(today, fy.start_date), fy.end_date)
    return Period(start=start, end=end, label="Year to date")


def period_mtd(fy: FiscalYear, today: date) -> Period:
    """Month-to-date within the fiscal year."""
    # Outside the fiscal year we fall back to the full fiscal year.
    if today < fy.start_date or today > fy.end_date:
        return period_fy(fy)

    start = today.replace(day=1)
    return Period(start=start, end=today, label="Month to date")


def period_last_month(fy: FiscalYear, today: date) -> Period:
    """Full previous calendar month, clamped to the fiscal year if needed."""
    first_of_month = today.replace(day=1)
    end = first_of_month - timedelta(days=1)
    start = end.replace(day=1)

    if end < fy.start_date or start > fy.end_date:
        return period_fy(fy)

    return Period(
        start=max(start, fy.start_date),
        end=min(end, fy.end_date),
        label="Last month",
    )


def period_last_fy(fy: FiscalYear) -> Period:
    """Previous fiscal year (same boundaries shifted back twelve months)."""
    start = add_months(fy.start_date, -12)
    end = add_months(fy.end_date, -12)
    return Period(
        start=start,
        end=end,
        label=f"Previous fiscal year ({start.year})",
    )


def determine_period_from_args(args, fy: FiscalYear, today: date) -> Period:
    """
    Determine the reporting period to use based on CLI args and the fiscal year.

    Priority (highest to lowest):

        1. args.period (fy, ytd, mtd, last-month, last-fy)
        2. args.from_date / args.to_date (custom period)
        3. fiscal year by default
    """
    if getattr(args, "period", None):
        p = args.period
        if p == "fy":
            return period_fy(fy)
        if p == "ytd":
            return period_ytd(fy, today)
        if p == "mtd":
            return period_mtd(fy, today)
        if p == "last-month":
            return period_last_month(fy, today)
        if p == "last-fy":
            return period_last_fy(fy)
        raise ValueError(f"Unknown period: {p!r}")

    from_raw: Optional[str] = getattr(args, "from_date", None)
    to_raw: Optional[str] = getattr(args, "to_date", None)

    if from_raw or to_raw:
        start = date.fromisoformat(from_raw) if from_raw else fy.start_date
        end = date.fromisoformat(to_raw) if to_raw else fy.end_date

        if end < start:
            raise ValueError("Custom period end date cannot be before start date.")

        label = f"Custom period ({start} → {end})"
        return Period(start=start, end=end, label=label)

    return period_fy(fy)


def filter_frame_by_period(frame: pd.DataFrame, period: Period) -> pd.DataFrame:
    """
    Keep only the rows of `frame` whose 'date' column lies in the period.

    Parameters
    ----------
    frame:
        DataFrame with at least a 'date' column (datetime64[ns]).
    period:
        Period defining the [start, end] boundaries (inclusive).

    Returns
    -------
    pandas.DataFrame
        Filtered copy.
    """
    if frame.empty:
        return frame.copy()
    mask = (frame["date"] >= pd.Timestamp(period.start)) & (
        frame["date"] <= pd.Timestamp(period.end)
    )
    return frame.loc[mask].copy()
