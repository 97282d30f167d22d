# SMB Payables - Recurring obligations & profit engine for service SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Database layer for SMB Payables.

This module is the obligation store: it persists the plain records the
engine consumes and performs the only two writes the engine defines
(mark-as-paid / mark-as-unpaid).

------------------------------------------------------------------------------
Schema Overview
------------------------------------------------------------------------------

1) obligations
   One row per cost definition (one-time or recurring).

   - id                   TEXT PRIMARY KEY          -- uuid4
   - description          TEXT NOT NULL
   - value_cents          INTEGER NOT NULL          -- amount due per occurrence
   - kind                 TEXT NOT NULL             -- "fixed" | "variable"
   - anchor_date          TEXT NOT NULL             -- ISO date, first occurrence
   - is_recurring         INTEGER NOT NULL DEFAULT 0
   - recurrence_frequency TEXT                      -- daily | weekly | monthly | yearly
   - recurrence_end_date  TEXT                      -- NULL = open-ended
   - category             TEXT
   - is_paid              INTEGER NOT NULL DEFAULT 0  -- one-time obligations only
   - paid_date            TEXT                        -- one-time obligations only
   - created_at, updated_at TEXT                      -- UTC timestamps

2) obligation_payments
   Settlement of one occurrence of a recurring obligation.

   - id                     TEXT PRIMARY KEY
   - obligation_id          TEXT NOT NULL  -- FK obligations.id (cascade delete)
   - due_date               TEXT NOT NULL  -- occurrence being paid
   - paid_value_cents       INTEGER NOT NULL
   - paid_date              TEXT
   - is_paid                INTEGER NOT NULL DEFAULT 1
   - fine_amount_cents      INTEGER NOT NULL DEFAULT 0
   - interest_amount_cents  INTEGER NOT NULL DEFAULT 0
   - created_at, updated_at TEXT

   UNIQUE (obligation_id, due_date): the reconciliation key. Payments are
   linked to obligations by id only, never by description text.

3) sales
   - id, date, final_amount_cents, status, description, created_at

4) expenses
   Ad-hoc one-time expenses, outside the obligation model.
   - id, date, description, category, amount_cents, created_at

------------------------------------------------------------------------------
Write-back rules (mark as paid / unpaid)
------------------------------------------------------------------------------

- Recurring obligation: marking an occurrence as paid upserts the payment
  row for (obligation_id, due_date); marking it as unpaid deletes that row
  so later reconciliation reports Open/Overdue again.
- One-time obligation: the obligation row itself is updated
  (value = paid value, is_paid, paid_date). The original value is lost
  when the paid value differs; callers that need it must keep it before
  calling. This is a deliberate simplification.

Concurrency: last write wins, as enforced by SQLite itself. No locking
is performed here.

------------------------------------------------------------------------------
SQLite Notes
------------------------------------------------------------------------------

- Amounts are stored as integer cents and returned as Decimal.
- Dates are stored as ISO "YYYY-MM-DD" text.
- Foreign key enforcement is explicitly enabled on every connection.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path

import pandas as pd

from .models import (
    Expense,
    Frequency,
    ObligationKind,
    ObligationPayment,
    RecurringObligation,
    Sale,
    from_cents,
    to_cents,
    validate_obligation,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database configuration for SMB Payables.

    Attributes
    ----------
    engine:
        Database engine identifier. Only "sqlite" is supported.
    path:
        Path to the SQLite database file.
    """

    engine: str
    path: Path


@dataclass(frozen=True)
class NewObligation:
    """Data required to create an obligation. The store assigns the id."""

    description: str
    value: Decimal
    kind: ObligationKind
    anchor_date: date
    is_recurring: bool = False
    recurrence_frequency: Frequency | None = None
    recurrence_end_date: date | None = None
    category: str | None = None


@dataclass(frozen=True)
class ObligationUpdate:
    """
    Fields that can be updated on an existing obligation.

    Only non-None values are applied. Use `clear_recurrence_end_date` to
    make a recurrence open-ended again. Payment state is not editable
    here: use `set_paid`.
    """

    description: str | None = None
    value: Decimal | None = None
    kind: ObligationKind | None = None
    anchor_date: date | None = None
    is_recurring: bool | None = None
    recurrence_frequency: Frequency | None = None
    recurrence_end_date: date | None = None
    clear_recurrence_end_date: bool = False
    category: str | None = None


@dataclass(frozen=True)
class NewSale:
    date: date
    final_amount: Decimal
    status: str = "completed"
    description: str | None = None


@dataclass(frozen=True)
class NewExpense:
    date: date
    description: str
    amount: Decimal
    category: str | None = None


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _ensure_sqlite(cfg: DatabaseConfig) -> None:
    """Raise if the configuration does not refer to a supported engine."""
    if cfg.engine.lower() != "sqlite":
        msg = (
            f"Unsupported database engine: {cfg.engine!r}. "
            "Only 'sqlite' is supported for now."
        )
        raise ValueError(msg)


def _connect(cfg: DatabaseConfig) -> sqlite3.Connection:
    """
    Open a SQLite connection with foreign keys enabled.

    The caller is responsible for closing the connection.
    """
    _ensure_sqlite(cfg)
    conn = sqlite3.connect(cfg.path)
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    """Create tables and indexes if they do not exist yet (idempotent)."""
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS obligations (
            id                   TEXT    PRIMARY KEY,
            description          TEXT    NOT NULL,
            value_cents          INTEGER NOT NULL,
            kind                 TEXT    NOT NULL,
            anchor_date          TEXT    NOT NULL,  -- ISO date 'YYYY-MM-DD'
            is_recurring         INTEGER NOT NULL DEFAULT 0,
            recurrence_frequency TEXT,
            recurrence_end_date  TEXT,
            category             TEXT,
            is_paid              INTEGER NOT NULL DEFAULT 0,
            paid_date            TEXT,
            created_at           TEXT    NOT NULL,
            updated_at           TEXT
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS obligation_payments (
            id                    TEXT    PRIMARY KEY,
            obligation_id         TEXT    NOT NULL,
            due_date              TEXT    NOT NULL,
            paid_value_cents      INTEGER NOT NULL,
            paid_date             TEXT,
            is_paid               INTEGER NOT NULL DEFAULT 1,
            fine_amount_cents     INTEGER NOT NULL DEFAULT 0,
            interest_amount_cents INTEGER NOT NULL DEFAULT 0,
            created_at            TEXT    NOT NULL,
            updated_at            TEXT,

            UNIQUE (obligation_id, due_date),
            FOREIGN KEY (obligation_id) REFERENCES obligations(id)
                ON DELETE CASCADE
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS sales (
            id                 TEXT    PRIMARY KEY,
            date               TEXT    NOT NULL,
            final_amount_cents INTEGER NOT NULL,
            status             TEXT    NOT NULL,
            description        TEXT,
            created_at         TEXT    NOT NULL
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS expenses (
            id           TEXT    PRIMARY KEY,
            date         TEXT    NOT NULL,
            description  TEXT    NOT NULL,
            category     TEXT,
            amount_cents INTEGER NOT NULL,
            created_at   TEXT    NOT NULL
        );
        """
    )

    conn.execute("CREATE INDEX IF NOT EXISTS idx_sales_date ON sales(date);")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_expenses_date ON expenses(date);")


def _to_iso_date(value) -> str:
    """Normalize a date-like value (date, datetime, Timestamp, str) to ISO text."""
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10]).isoformat()
    if isinstance(value, (datetime, pd.Timestamp)):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    raise ValueError(f"Unsupported date value: {value!r}")


def _optional_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def _optional_iso(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _new_id() -> str:
    return str(uuid.uuid4())


_OBLIGATION_COLUMNS = """
    id, description, value_cents, kind, anchor_date, is_recurring,
    recurrence_frequency, recurrence_end_date, category, is_paid, paid_date
"""

_PAYMENT_COLUMNS = """
    id, obligation_id, due_date, paid_value_cents, paid_date, is_paid,
    fine_amount_cents, interest_amount_cents
"""


def _row_to_obligation(row: tuple) -> RecurringObligation:
    (
        obligation_id,
        description,
        value_cents,
        kind,
        anchor_date,
        is_recurring,
        frequency,
        end_date,
        category,
        is_paid,
        paid_date,
    ) = row
    return RecurringObligation(
        id=obligation_id,
        description=description,
        value=from_cents(value_cents),
        kind=kind,
        anchor_date=date.fromisoformat(anchor_date),
        is_recurring=bool(is_recurring),
        recurrence_frequency=frequency,
        recurrence_end_date=_optional_date(end_date),
        category=category,
        is_paid=bool(is_paid),
        paid_date=_optional_date(paid_date),
    )


def _row_to_payment(row: tuple) -> ObligationPayment:
    return ObligationPayment(
        id=row[0],
        obligation_id=row[1],
        due_date=date.fromisoformat(row[2]),
        paid_value=from_cents(row[3]),
        paid_date=_optional_date(row[4]),
        is_paid=bool(row[5]),
        fine_amount=from_cents(row[6]),
        interest_amount=from_cents(row[7]),
    )


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


def init_database(cfg: DatabaseConfig) -> None:
    """
    Initialize the database schema if needed.

    - Creates the SQLite file (and its parent directory) if needed.
    - Creates tables and indexes if they are missing.
    - Idempotent: calling it multiple times is safe.

    Raises
    ------
    ValueError
        If cfg.engine is not supported.
    sqlite3.Error
        If schema creation fails.
    """
    cfg.path.parent.mkdir(parents=True, exist_ok=True)

    conn = _connect(cfg)
    try:
        _create_schema_if_needed(conn)
        conn.commit()
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Obligations
# ---------------------------------------------------------------------------


def get_obligation(
    cfg: DatabaseConfig, obligation_id: str
) -> RecurringObligation | None:
    """Return the obligation with the given id, or None if it does not exist."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            f"SELECT {_OBLIGATION_COLUMNS} FROM obligations WHERE id = ?;",
            (obligation_id,),
        )
        row = cur.fetchone()
    finally:
        conn.close()

    return _row_to_obligation(row) if row else None


def list_obligations(cfg: DatabaseConfig) -> list[RecurringObligation]:
    """Return every obligation, ordered by anchor date then description."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            f"""
            SELECT {_OBLIGATION_COLUMNS}
              FROM obligations
             ORDER BY anchor_date, description, id;
            """
        )
        rows = cur.fetchall()
    finally:
        conn.close()

    return [_row_to_obligation(row) for row in rows]


def add_obligation(cfg: DatabaseConfig, new: NewObligation) -> RecurringObligation:
    """
    Insert a new obligation and return it with its assigned id.

    Raises
    ------
    ObligationValidationError
        If the definition breaks an obligation invariant.
    """
    init_database(cfg)

    obligation = RecurringObligation(
        id=_new_id(),
        description=new.description,
        value=new.value,
        kind=new.kind,
        anchor_date=new.anchor_date,
        is_recurring=new.is_recurring,
        recurrence_frequency=new.recurrence_frequency if new.is_recurring else None,
        recurrence_end_date=new.recurrence_end_date if new.is_recurring else None,
        category=new.category,
    )
    validate_obligation(obligation)

    conn = _connect(cfg)
    try:
        conn.execute(
            """
            INSERT INTO obligations (
                id, description, value_cents, kind, anchor_date, is_recurring,
                recurrence_frequency, recurrence_end_date, category,
                is_paid, paid_date, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 0, NULL, ?, NULL);
            """,
            (
                obligation.id,
                obligation.description,
                to_cents(obligation.value),
                obligation.kind,
                obligation.anchor_date.isoformat(),
                int(obligation.is_recurring),
                obligation.recurrence_frequency,
                _optional_iso(obligation.recurrence_end_date),
                obligation.category,
                _now_utc_iso(),
            ),
        )
        conn.commit()
    finally:
        conn.close()

    logger.info("Created obligation %s (%s)", obligation.id, obligation.description)
    return obligation


def update_obligation(
    cfg: DatabaseConfig,
    obligation_id: str,
    update: ObligationUpdate,
) -> RecurringObligation:
    """
    Apply a partial update to an existing obligation.

    Existing payment rows are left untouched. If the schedule changes so
    that a paid due date is no longer an occurrence, the payment becomes
    an orphan and is reported by the expansion engine.

    Raises
    ------
    LookupError
        If the obligation does not exist.
    ObligationValidationError
        If the updated definition breaks an obligation invariant.
    ValueError
        If no fields are provided for update.
    """
    current = get_obligation(cfg, obligation_id)
    if current is None:
        raise LookupError(f"Obligation {obligation_id!r} not found.")

    changes: dict[str, object] = {
        name: getattr(update, name)
        for name in (
            "description",
            "value",
            "kind",
            "anchor_date",
            "is_recurring",
            "recurrence_frequency",
            "recurrence_end_date",
            "category",
        )
        if getattr(update, name) is not None
    }
    if update.clear_recurrence_end_date:
        changes["recurrence_end_date"] = None
    if not changes:
        raise ValueError("No fields to update in ObligationUpdate.")

    candidate = replace(current, **changes)
    validate_obligation(candidate)

    conn = _connect(cfg)
    try:
        conn.execute(
            """
            UPDATE obligations
               SET description          = ?,
                   value_cents          = ?,
                   kind                 = ?,
                   anchor_date          = ?,
                   is_recurring         = ?,
                   recurrence_frequency = ?,
                   recurrence_end_date  = ?,
                   category             = ?,
                   updated_at           = ?
             WHERE id = ?;
            """,
            (
                candidate.description,
                to_cents(candidate.value),
                candidate.kind,
                candidate.anchor_date.isoformat(),
                int(candidate.is_recurring),
                candidate.recurrence_frequency,
                _optional_iso(candidate.recurrence_end_date),
                candidate.category,
                _now_utc_iso(),
                obligation_id,
            ),
        )
        conn.commit()
    finally:
        conn.close()

    return candidate


def delete_obligation(cfg: DatabaseConfig, obligation_id: str) -> bool:
    """
    Delete an obligation and its payment rows.

    Returns
    -------
    bool
        True if a row was deleted, False if the obligation did not exist.
    """
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute("DELETE FROM obligations WHERE id = ?;", (obligation_id,))
        conn.commit()
        deleted = cur.rowcount > 0
    finally:
        conn.close()

    if deleted:
        logger.info("Deleted obligation %s", obligation_id)
    return deleted


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------


def list_payments(
    cfg: DatabaseConfig,
    obligation_id: str | None = None,
) -> list[ObligationPayment]:
    """Return payment records, optionally restricted to one obligation."""
    init_database(cfg)

    query = f"SELECT {_PAYMENT_COLUMNS} FROM obligation_payments"
    params: tuple = ()
    if obligation_id is not None:
        query += " WHERE obligation_id = ?"
        params = (obligation_id,)
    query += " ORDER BY due_date, obligation_id;"

    conn = _connect(cfg)
    try:
        rows = conn.execute(query, params).fetchall()
    finally:
        conn.close()

    return [_row_to_payment(row) for row in rows]


def set_paid(
    cfg: DatabaseConfig,
    obligation_id: str,
    due_date: date,
    paid_value: Decimal | None,
    is_paid: bool,
    is_recurring: bool,
    paid_date: date | None = None,
    fine_amount: Decimal = Decimal("0"),
    interest_amount: Decimal = Decimal("0"),
) -> None:
    """
    Mark an occurrence of an obligation as paid or unpaid.

    Parameters
    ----------
    cfg:
        Database configuration.
    obligation_id:
        Obligation being settled.
    due_date:
        Occurrence being settled. Ignored for one-time obligations, whose
        only occurrence is their anchor date.
    paid_value:
        Amount paid. Required when `is_paid` is True.
    is_paid:
        True to mark as paid, False to undo.
    is_recurring:
        Must agree with the stored obligation.
    paid_date:
        Settlement date. Required when `is_paid` is True.
    fine_amount, interest_amount:
        Late-payment charges recorded with a recurring payment. One-time
        obligations keep no payment record and accept only zero.

    Behavior
    --------
    - recurring, is_paid=True  → upsert the (obligation_id, due_date) payment row;
      the due date must be a scheduled occurrence.
    - recurring, is_paid=False → delete that row (no flag is kept). Any due
      date is accepted so that orphaned rows can be removed.
    - one-time,  is_paid=True  → value = paid_value, is_paid = 1, paid_date set.
    - one-time,  is_paid=False → is_paid = 0, paid_date cleared; value is
      replaced only when a paid_value is given.

    Raises
    ------
    LookupError
        If the obligation does not exist.
    ValueError
        If `is_recurring` disagrees with the stored obligation, if
        `is_paid` is True without a paid value or paid date or for a date
        that is not an occurrence, or if an amount is negative.
    """
    obligation = get_obligation(cfg, obligation_id)
    if obligation is None:
        raise LookupError(f"Obligation {obligation_id!r} not found.")
    if obligation.is_recurring != is_recurring:
        raise ValueError(
            f"Obligation {obligation_id!r} is "
            f"{'recurring' if obligation.is_recurring else 'one-time'}, "
            f"but is_recurring={is_recurring} was given."
        )
    if is_paid and (paid_value is None or paid_date is None):
        raise ValueError("Marking as paid requires both a paid value and a paid date.")
    if paid_value is not None and paid_value < 0:
        raise ValueError(f"Paid value must be >= 0 (got {paid_value}).")
    for label, amount in (("Fine", fine_amount), ("Interest", interest_amount)):
        if amount < 0:
            raise ValueError(f"{label} amount must be >= 0 (got {amount}).")
    if not is_recurring and (fine_amount or interest_amount):
        raise ValueError(
            "Fines and interest are only recorded on recurring obligation payments."
        )
    if is_recurring and is_paid:
        from .schedule import is_occurrence

        if not is_occurrence(obligation, due_date):
            raise ValueError(
                f"{due_date.isoformat()} is not a due date of obligation "
                f"{obligation_id!r}."
            )

    now = _now_utc_iso()
    conn = _connect(cfg)
    try:
        if is_recurring and is_paid:
            conn.execute(
                """
                INSERT INTO obligation_payments (
                    id, obligation_id, due_date, paid_value_cents, paid_date,
                    is_paid, fine_amount_cents, interest_amount_cents,
                    created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, 1, ?, ?, ?, NULL)
                ON CONFLICT (obligation_id, due_date) DO UPDATE SET
                    paid_value_cents      = excluded.paid_value_cents,
                    paid_date             = excluded.paid_date,
                    fine_amount_cents     = excluded.fine_amount_cents,
                    interest_amount_cents = excluded.interest_amount_cents,
                    is_paid               = 1,
                    updated_at            = ?;
                """,
                (
                    _new_id(),
                    obligation_id,
                    due_date.isoformat(),
                    to_cents(paid_value),
                    paid_date.isoformat(),
                    to_cents(fine_amount),
                    to_cents(interest_amount),
                    now,
                    now,
                ),
            )
        elif is_recurring:
            conn.execute(
                """
                DELETE FROM obligation_payments
                 WHERE obligation_id = ? AND due_date = ?;
                """,
                (obligation_id, due_date.isoformat()),
            )
        else:
            value_cents = (
                to_cents(paid_value)
                if paid_value is not None
                else to_cents(obligation.value)
            )
            conn.execute(
                """
                UPDATE obligations
                   SET value_cents = ?,
                       is_paid     = ?,
                       paid_date   = ?,
                       updated_at  = ?
                 WHERE id = ?;
                """,
                (
                    value_cents,
                    int(is_paid),
                    paid_date.isoformat() if is_paid else None,
                    now,
                    obligation_id,
                ),
            )
        conn.commit()
    finally:
        conn.close()

    logger.info(
        "Marked obligation %s due %s as %s",
        obligation_id,
        due_date.isoformat(),
        "paid" if is_paid else "unpaid",
    )


# ---------------------------------------------------------------------------
# Sales & expenses
# ---------------------------------------------------------------------------


def add_sale(cfg: DatabaseConfig, new: NewSale) -> Sale:
    """
    Register a sale.

    Raises
    ------
    ValueError
        If the final amount is negative.
    """
    if new.final_amount < 0:
        raise ValueError("Sale final amount cannot be negative.")
    init_database(cfg)

    sale = Sale(
        id=_new_id(),
        date=new.date,
        final_amount=new.final_amount,
        status=new.status.lower(),
        description=new.description,
    )
    conn = _connect(cfg)
    try:
        conn.execute(
            """
            INSERT INTO sales (
                id, date, final_amount_cents, status, description, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?);
            """,
            (
                sale.id,
                sale.date.isoformat(),
                to_cents(sale.final_amount),
                sale.status,
                sale.description,
                _now_utc_iso(),
            ),
        )
        conn.commit()
    finally:
        conn.close()
    return sale


def add_expense(cfg: DatabaseConfig, new: NewExpense) -> Expense:
    """
    Register an ad-hoc expense.

    Raises
    ------
    ValueError
        If the amount is negative.
    """
    if new.amount < 0:
        raise ValueError("Expense amount cannot be negative.")
    init_database(cfg)

    expense = Expense(
        id=_new_id(),
        date=new.date,
        description=new.description,
        amount=new.amount,
        category=new.category,
    )
    conn = _connect(cfg)
    try:
        conn.execute(
            """
            INSERT INTO expenses (
                id, date, description, category, amount_cents, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?);
            """,
            (
                expense.id,
                expense.date.isoformat(),
                expense.description,
                expense.category,
                to_cents(expense.amount),
                _now_utc_iso(),
            ),
        )
        conn.commit()
    finally:
        conn.close()
    return expense


def import_sales(df: pd.DataFrame, cfg: DatabaseConfig) -> int:
    """
    Insert every row of a normalized sales DataFrame (see io.read_sales).

    Returns the number of rows inserted. All rows are inserted in a single
    transaction; a negative amount aborts the whole import.
    """
    rows = []
    for row in df.itertuples(index=False):
        amount = Decimal(str(row.amount))
        if amount < 0:
            raise ValueError(f"Sale final amount cannot be negative (got {amount}).")
        description = None if pd.isna(row.description) else str(row.description)
        rows.append(
            (
                _new_id(),
                _to_iso_date(row.date),
                to_cents(amount),
                str(row.status).lower(),
                description,
                _now_utc_iso(),
            )
        )
    return _insert_many(
        cfg,
        """
        INSERT INTO sales (
            id, date, final_amount_cents, status, description, created_at
        )
        VALUES (?, ?, ?, ?, ?, ?);
        """,
        rows,
    )


def import_expenses(df: pd.DataFrame, cfg: DatabaseConfig) -> int:
    """Insert every row of a normalized expenses DataFrame (see io.read_expenses)."""
    rows = []
    for row in df.itertuples(index=False):
        amount = Decimal(str(row.amount))
        if amount < 0:
            raise ValueError(f"Expense amount cannot be negative (got {amount}).")
        category = None if pd.isna(row.category) else str(row.category)
        rows.append(
            (
                _new_id(),
                _to_iso_date(row.date),
                str(row.description),
                category,
                to_cents(amount),
                _now_utc_iso(),
            )
        )
    return _insert_many(
        cfg,
        """
        INSERT INTO expenses (
            id, date, description, category, amount_cents, created_at
        )
        VALUES (?, ?, ?, ?, ?, ?);
        """,
        rows,
    )


def _insert_many(cfg: DatabaseConfig, sql: str, rows: list[tuple]) -> int:
    init_database(cfg)
    conn = _connect(cfg)
    try:
        conn.executemany(sql, rows)
        conn.commit()
    finally:
        conn.close()
    return len(rows)


def _load_frame(
    cfg: DatabaseConfig,
    sql: str,
    params: tuple,
    columns: list[str],
    cents_column: str,
) -> pd.DataFrame:
    init_database(cfg)

    conn = _connect(cfg)
    try:
        rows = conn.execute(sql, params).fetchall()
    finally:
        conn.close()

    output_columns = [c for c in columns if c != cents_column] + ["amount"]
    if not rows:
        return pd.DataFrame(columns=output_columns)

    df = pd.DataFrame(rows, columns=columns)
    df["date"] = pd.to_datetime(df["date"], format="%Y-%m-%d")
    df["amount"] = [from_cents(c) for c in df[cents_column]]
    return df[output_columns]


def load_sales(cfg: DatabaseConfig, start: date, end: date) -> pd.DataFrame:
    """
    Load sales whose date lies in [start, end].

    Returns
    -------
    pandas.DataFrame
        Columns: id, date (datetime64[ns]), status, description,
        amount (Decimal objects).
    """
    return _load_frame(
        cfg,
        """
        SELECT id, date, status, description, final_amount_cents
          FROM sales
         WHERE date BETWEEN ? AND ?
         ORDER BY date, id;
        """,
        (start.isoformat(), end.isoformat()),
        ["id", "date", "status", "description", "final_amount_cents"],
        "final_amount_cents",
    )


def load_expenses(cfg: DatabaseConfig, start: date, end: date) -> pd.DataFrame:
    """
    Load ad-hoc expenses whose date lies in [start, end].

    Returns
    -------
    pandas.DataFrame
        Columns: id, date (datetime64[ns]), description, category,
        amount (Decimal objects).
    """
    return _load_frame(
        cfg,
        """
        SELECT id, date, description, category, amount_cents
          FROM expenses
         WHERE date BETWEEN ? AND ?
         ORDER BY date, id;
        """,
        (start.isoformat(), end.isoformat()),
        ["id", "date", "description", "category", "amount_cents"],
        "amount_cents",
    )
