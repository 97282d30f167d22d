# SMB Payables - Recurring obligations & profit engine for service SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Error taxonomy for SMB Payables.

Every condition below is local to one obligation or one payment. Batch
functions (expansion, proration, profit) collect them on their result
objects instead of aborting; only `UnboundedGenerationError` is raised
to the caller because it signals a programming error.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from .models import ObligationPayment


class ObligationError(ValueError):
    """Base class for obligation engine errors."""


class ObligationValidationError(ObligationError):
    """An obligation definition is inconsistent and cannot be used."""

    def __init__(self, obligation_id: str, reason: str) -> None:
        self.obligation_id = obligation_id
        self.reason = reason
        super().__init__(f"Obligation {obligation_id!r} is invalid: {reason}")


class ReconciliationConflict(ObligationError):
    """More than one payment record settles the same occurrence."""

    def __init__(
        self,
        obligation_id: str,
        due_date: date,
        payment_ids: tuple[str, ...],
    ) -> None:
        self.obligation_id = obligation_id
        self.due_date = due_date
        self.payment_ids = payment_ids
        super().__init__(
            f"{len(payment_ids)} payment records match obligation "
            f"{obligation_id!r} due {due_date.isoformat()}: "
            f"{', '.join(payment_ids)}"
        )


class UnboundedGenerationError(ObligationError):
    """An open-ended recurrence was expanded without a horizon."""

    def __init__(self, obligation_ids: list[str]) -> None:
        self.obligation_ids = obligation_ids
        super().__init__(
            "Cannot expand open-ended recurring obligations without a horizon: "
            + ", ".join(repr(i) for i in obligation_ids)
        )


OrphanReason = Literal["unknown_obligation", "invalid_obligation", "not_an_occurrence"]


@dataclass(frozen=True)
class OrphanedPayment:
    """
    Warning record for a payment that no longer settles any occurrence.

    Orphans are reported alongside normal output and never dropped or
    raised. Typical cause: the recurrence was shortened or its anchor
    moved after the occurrence had been paid.
    """

    payment: "ObligationPayment"
    reason: OrphanReason

    def __str__(self) -> str:
        return (
            f"Payment {self.payment.id!r} for obligation "
            f"{self.payment.obligation_id!r} due "
            f"{self.payment.due_date.isoformat()} is orphaned ({self.reason})"
        )
