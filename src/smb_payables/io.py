# SMB Payables - Recurring obligations & profit engine for service SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for SMB Payables.

This module reads sales, ad-hoc expenses and obligation definitions from
CSV files and normalizes them before they are stored in the database.
Column names are case-insensitive.

Expected input formats
----------------------

1) Sales
       date, amount, status, description

   - ``status`` is optional and defaults to "completed".
   - ``final_amount`` is accepted as an alias for ``amount``.
   - ``description`` is optional.

2) Expenses
       date, description, amount, category

   - ``title`` is accepted as an alias for ``description``.
   - ``category`` is optional.

3) Obligations
       description, value, kind, anchor_date,
       is_recurring, recurrence_frequency, recurrence_end_date, category

   - ``kind`` defaults to "fixed".
   - ``is_recurring`` accepts true/false, yes/no, 1/0 and defaults to
     false.
   - ``expense_date`` is accepted as an alias for ``anchor_date``.

Amounts are converted to Decimal through their text representation so
that "19.90" stays exactly 19.90.
"""

import os
from datetime import date
from typing import Union

import pandas as pd

from .db import NewObligation
from .models import to_decimal

PathLike = Union[str, "os.PathLike[str]"]

_TRUE_VALUES = {"true", "yes", "1", "y"}
_FALSE_VALUES = {"false", "no", "0", "n", ""}


def _read_normalized(path: PathLike, aliases: dict[str, str]) -> pd.DataFrame:
    # Keep everything as text: amounts are parsed to Decimal, not float.
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df.columns = [c.lower().strip() for c in df.columns]
    for alias, canonical in aliases.items():
        if alias in df.columns and canonical not in df.columns:
            df = df.rename(columns={alias: canonical})
    return df


def _require(df: pd.DataFrame, required: set[str], what: str) -> None:
    missing = required - set(df.columns)
    if missing:
        raise ValueError(
            f"Invalid {what} CSV structure: missing column(s) "
            f"{', '.join(sorted(missing))}."
        )


def _parse_dates(series: pd.Series, column: str) -> pd.Series:
    try:
        return pd.to_datetime(series, format="%Y-%m-%d", errors="raise")
    except (ValueError, TypeError) as exc:
        raise ValueError(f"Invalid values in '{column}' column.") from exc


def _parse_amounts(series: pd.Series, column: str) -> list:
    try:
        return [to_decimal(v) for v in series]
    except ValueError as exc:
        raise ValueError(f"Invalid numeric values in '{column}' column.") from exc


def read_sales(path: PathLike) -> pd.DataFrame:
    """
    Read sales from a CSV file.

    Returns
    -------
    pandas.DataFrame
        Columns: date (datetime64[ns]), status (str, lowercase),
        description (str or None), amount (Decimal).
    """
    df = _read_normalized(path, {"final_amount": "amount"})
    _require(df, {"date", "amount"}, "sales")

    out = pd.DataFrame({"date": _parse_dates(df["date"], "date")})
    if "status" in df.columns:
        out["status"] = df["status"].str.strip().str.lower().replace("", "completed")
    else:
        out["status"] = "completed"
    if "description" in df.columns:
        out["description"] = df["description"].where(df["description"] != "", None)
    else:
        out["description"] = None
    out["amount"] = _parse_amounts(df["amount"], "amount")
    return out


def read_expenses(path: PathLike) -> pd.DataFrame:
    """
    Read ad-hoc expenses from a CSV file.

    Returns
    -------
    pandas.DataFrame
        Columns: date (datetime64[ns]), description (str),
        category (str or None), amount (Decimal).
    """
    df = _read_normalized(path, {"title": "description"})
    _require(df, {"date", "description", "amount"}, "expenses")

    out = pd.DataFrame({"date": _parse_dates(df["date"], "date")})
    out["description"] = df["description"]
    if "category" in df.columns:
        out["category"] = df["category"].where(df["category"] != "", None)
    else:
        out["category"] = None
    out["amount"] = _parse_amounts(df["amount"], "amount")
    return out


def _parse_bool(value: str, row_number: int) -> bool:
    text = value.strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean {value!r} in 'is_recurring' (row {row_number}).")


def read_obligations(path: PathLike) -> list[NewObligation]:
    """
    Read obligation definitions from a CSV file.

    Rows are returned as `NewObligation` values; invariants are checked
    when they are stored (`db.add_obligation`).

    Raises
    ------
    ValueError
        If required columns are missing or a value cannot be parsed.
    """
    df = _read_normalized(path, {"expense_date": "anchor_date", "type": "kind"})
    _require(df, {"description", "value", "anchor_date"}, "obligations")

    def optional(row: pd.Series, column: str) -> str:
        return str(row[column]).strip() if column in row.index else ""

    obligations: list[NewObligation] = []
    for index, row in df.iterrows():
        number = int(index) + 1
        try:
            anchor = date.fromisoformat(str(row["anchor_date"]).strip())
            end_raw = optional(row, "recurrence_end_date")
            end = date.fromisoformat(end_raw) if end_raw else None
        except ValueError as exc:
            raise ValueError(
                f"Invalid date in obligations CSV (row {number})."
            ) from exc

        try:
            value = to_decimal(row["value"])
        except ValueError as exc:
            raise ValueError(
                f"Invalid value in obligations CSV (row {number})."
            ) from exc

        is_recurring = _parse_bool(optional(row, "is_recurring"), number)
        frequency = optional(row, "recurrence_frequency").lower() or None
        category = optional(row, "category") or None

        obligations.append(
            NewObligation(
                description=str(row["description"]),
                value=value,
                kind=optional(row, "kind").lower() or "fixed",
                anchor_date=anchor,
                is_recurring=is_recurring,
                recurrence_frequency=frequency if is_recurring else None,
                recurrence_end_date=end if is_recurring else None,
                category=category,
            )
        )
    return obligations
