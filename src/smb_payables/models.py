# SMB Payables - Recurring obligations & profit engine for service SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Value types shared by the obligation engine.

Two families of records live here:

- persisted records, read from (and written to) the obligation store:
  * `RecurringObligation`  (a cost or expense definition),
  * `ObligationPayment`    (settlement of one recurring occurrence),
  * `Sale`, `Expense`      (inputs of the profit report);

- derived records, computed by the engine and never persisted:
  * `ObligationInstance`   (one dated occurrence with its status).

All amounts are `decimal.Decimal` in currency units. All dates are
calendar dates (`datetime.date`) without time of day or timezone.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Literal, Optional

from .exceptions import ObligationValidationError

Frequency = Literal["daily", "weekly", "monthly", "yearly"]
"""
Recurrence unit of a recurring obligation.

Values
------
- "daily"  : every calendar day.
- "weekly" : every 7 days.
- "monthly": same day of month, clamped to the month's last day.
- "yearly" : same day every 12 months, with the same clamping.
"""

FREQUENCIES: tuple[str, ...] = ("daily", "weekly", "monthly", "yearly")

ObligationKind = Literal["fixed", "variable"]

InstanceStatus = Literal["Paid", "Open", "Overdue"]

CENT = Decimal("0.01")


def to_decimal(value: object) -> Decimal:
    """
    Convert a user or storage value to Decimal without float artefacts.

    Floats go through their shortest string representation, so ``0.1``
    becomes ``Decimal("0.1")`` rather than its binary expansion.

    Raises
    ------
    ValueError
        If the value cannot be interpreted as a number.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc


def money(value: object) -> Decimal:
    """Round an amount to two decimal places (half up)."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(value: object) -> int:
    """Return the amount as integer cents, the storage representation."""
    return int(money(value) * 100)


def from_cents(cents: int) -> Decimal:
    return (Decimal(int(cents)) / 100).quantize(CENT)


# ---------------------------------------------------------------------------
# Persisted records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecurringObligation:
    """
    A fixed or variable cost, either one-time or recurring.

    The `is_recurring` flag tags the record: recurring obligations use
    `recurrence_frequency` and `recurrence_end_date`; one-time obligations
    ignore both and carry their payment state directly (`is_paid`,
    `paid_date`).

    Attributes
    ----------
    id:
        Stable identifier. Payments reference obligations by this id only.
    description:
        Free text label. Never used as a matching key.
    value:
        Amount due per occurrence (>= 0).
    kind:
        "fixed" or "variable".
    anchor_date:
        First (or only) occurrence.
    is_recurring:
        Whether the obligation repeats.
    recurrence_frequency:
        Recurrence unit, required when `is_recurring` is True.
    recurrence_end_date:
        Last date on which an occurrence may fall. None means open-ended.
    category:
        Optional grouping label.
    is_paid, paid_date:
        Payment state of one-time obligations.
    """

    id: str
    description: str
    value: Decimal
    kind: ObligationKind
    anchor_date: date
    is_recurring: bool = False
    recurrence_frequency: Optional[Frequency] = None
    recurrence_end_date: Optional[date] = None
    category: Optional[str] = None
    is_paid: bool = False
    paid_date: Optional[date] = None

    @property
    def is_open_ended(self) -> bool:
        return self.is_recurring and self.recurrence_end_date is None


@dataclass(frozen=True)
class ObligationPayment:
    """
    Settlement of one occurrence of a recurring obligation.

    `(obligation_id, due_date)` is the reconciliation key: at most one
    payment record is expected per key.
    """

    id: str
    obligation_id: str
    due_date: date
    paid_value: Decimal
    paid_date: Optional[date]
    is_paid: bool = True
    fine_amount: Decimal = Decimal("0")
    interest_amount: Decimal = Decimal("0")

    @property
    def key(self) -> tuple[str, date]:
        return (self.obligation_id, self.due_date)


@dataclass(frozen=True)
class Sale:
    """A registered sale (service order). Only completed sales are revenue."""

    id: str
    date: date
    final_amount: Decimal
    status: str
    description: Optional[str] = None


@dataclass(frozen=True)
class Expense:
    """An ad-hoc, one-time expense recorded outside the obligation model."""

    id: str
    date: date
    description: str
    amount: Decimal
    category: Optional[str] = None


# ---------------------------------------------------------------------------
# Derived records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ObligationInstance:
    """
    One concrete occurrence of an obligation.

    Status rule: "Paid" iff a matching payment with ``is_paid=True``
    exists; otherwise "Overdue" iff ``due_date < reference_date``;
    otherwise "Open".
    """

    source_obligation_id: str
    description: str
    due_date: date
    original_value: Decimal
    status: InstanceStatus
    is_recurring: bool
    paid_value: Optional[Decimal] = None
    paid_date: Optional[date] = None
    payment_id: Optional[str] = None
    fine_amount: Decimal = Decimal("0")
    interest_amount: Decimal = Decimal("0")
    category: Optional[str] = None
    kind: ObligationKind = "fixed"
    has_conflict: bool = False

    @property
    def key(self) -> tuple[str, date]:
        return (self.source_obligation_id, self.due_date)

    @property
    def is_paid(self) -> bool:
        return self.status == "Paid"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_obligation(obligation: RecurringObligation) -> None:
    """
    Check the invariants of an obligation definition.

    Rules
    -----
    - value must be >= 0;
    - recurring obligations need a known recurrence frequency;
    - recurrence_end_date, when present on a recurring obligation, must not
      be before anchor_date.

    Recurrence fields of one-time obligations are ignored.

    Raises
    ------
    ObligationValidationError
        On the first broken rule.
    """
    if obligation.value < 0:
        raise ObligationValidationError(
            obligation.id, f"value must be >= 0 (got {obligation.value})"
        )

    if not obligation.is_recurring:
        return

    if obligation.recurrence_frequency is None:
        raise ObligationValidationError(
            obligation.id, "recurring obligation has no recurrence frequency"
        )
    if obligation.recurrence_frequency not in FREQUENCIES:
        raise ObligationValidationError(
            obligation.id,
            f"unknown recurrence frequency {obligation.recurrence_frequency!r}",
        )

    end = obligation.recurrence_end_date
    if end is not None and end < obligation.anchor_date:
        raise ObligationValidationError(
            obligation.id,
            f"recurrence end date {end.isoformat()} is before anchor date "
            f"{obligation.anchor_date.isoformat()}",
        )


def split_valid_obligations(
    obligations: list[RecurringObligation],
) -> tuple[list[RecurringObligation], list[ObligationValidationError]]:
    """Partition obligations into valid ones and validation errors."""
    valid: list[RecurringObligation] = []
    errors: list[ObligationValidationError] = []
    for obligation in obligations:
        try:
            validate_obligation(obligation)
        except ObligationValidationError as exc:
            errors.append(exc)
            continue
        valid.append(obligation)
    return valid, errors
