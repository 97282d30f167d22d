from datetime import date
from types import SimpleNamespace

import pandas as pd
import pytest

import smb_payables.periods as periods
from smb_payables.config import FiscalYear

FY_2024 = FiscalYear(start_date=date(2024, 1, 1), end_date=date(2024, 12, 31))


@pytest.mark.parametrize(
    "day, months, expected",
    [
        (date(2024, 1, 31), 1, date(2024, 2, 29)),
        (date(2023, 1, 31), 1, date(2023, 2, 28)),
        (date(2024, 3, 31), -1, date(2024, 2, 29)),
        (date(2024, 2, 29), 12, date(2025, 2, 28)),
        (date(2024, 11, 15), 3, date(2025, 2, 15)),
        (date(2024, 1, 15), -13, date(2022, 12, 15)),
    ],
)
def test_add_months_clamps_day_of_month(day, months, expected) -> None:
    assert periods.add_months(day, months) == expected


def test_overlap_days_inclusive_and_open_ended() -> None:
    start, end = date(2024, 2, 1), date(2024, 2, 29)

    assert periods.overlap_days(start, end, date(2024, 1, 1), None) == 29
    assert periods.overlap_days(start, end, date(2024, 2, 10), date(2024, 2, 10)) == 1
    assert periods.overlap_days(start, end, date(2024, 3, 1), None) == 0
    assert periods.overlap_days(start, end, date(2023, 1, 1), date(2024, 1, 31)) == 0


def test_horizon_validation_and_helpers() -> None:
    with pytest.raises(ValueError):
        periods.Horizon(date(2024, 2, 1), date(2024, 1, 1))

    horizon = periods.Horizon.around(date(2024, 3, 31), months_back=1, months_ahead=2)
    assert horizon == periods.Horizon(date(2024, 2, 29), date(2024, 5, 31))
    assert horizon.contains(date(2024, 2, 29))
    assert not horizon.contains(date(2024, 6, 1))

    with pytest.raises(ValueError):
        periods.Horizon.around(date(2024, 3, 31), months_back=-1, months_ahead=0)


def test_named_periods() -> None:
    today = date(2024, 3, 10)

    ytd = periods.period_ytd(FY_2024, today)
    assert (ytd.start, ytd.end) == (date(2024, 1, 1), today)

    mtd = periods.period_mtd(FY_2024, today)
    assert (mtd.start, mtd.end) == (date(2024, 3, 1), today)

    last_month = periods.period_last_month(FY_2024, today)
    assert (last_month.start, last_month.end) == (date(2024, 2, 1), date(2024, 2, 29))

    last_fy = periods.period_last_fy(FY_2024)
    assert (last_fy.start, last_fy.end) == (date(2023, 1, 1), date(2023, 12, 31))


def test_mtd_outside_fiscal_year_falls_back_to_full_year() -> None:
    p = periods.period_mtd(FY_2024, date(2025, 2, 3))

    assert (p.start, p.end) == (FY_2024.start_date, FY_2024.end_date)


def test_determine_period_from_args_priority() -> None:
    today = date(2024, 3, 10)

    named = SimpleNamespace(period="mtd", from_date="2024-01-01", to_date=None)
    by_name = periods.determine_period_from_args(named, FY_2024, today)
    assert by_name.start == date(2024, 3, 1)

    open_range = SimpleNamespace(period=None, from_date="2024-02-01", to_date=None)
    custom = periods.determine_period_from_args(open_range, FY_2024, today)
    assert (custom.start, custom.end) == (date(2024, 2, 1), date(2024, 12, 31))

    default = periods.determine_period_from_args(SimpleNamespace(), FY_2024, today)
    assert (default.start, default.end) == (date(2024, 1, 1), date(2024, 12, 31))


def test_determine_period_rejects_reversed_custom_range() -> None:
    args = SimpleNamespace(period=None, from_date="2024-03-01", to_date="2024-02-01")

    with pytest.raises(ValueError):
        periods.determine_period_from_args(args, FY_2024, date(2024, 3, 10))


def test_filter_frame_by_period_inclusive_bounds() -> None:
    df = pd.DataFrame(
        {
            "date": pd.to_datetime(
                ["2024-01-31", "2024-02-01", "2024-02-29", "2024-03-01"]
            ),
            "amount": [1, 2, 3, 4],
        }
    )
    p = periods.Period(start=date(2024, 2, 1), end=date(2024, 2, 29), label="Feb")

    filtered = periods.filter_frame_by_period(df, p)

    assert filtered["amount"].tolist() == [2, 3]
