# SMB Payables - Recurring obligations & profit engine for service SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Payment reconciliation.

Matches payment records to the occurrences they settle and assigns the
lifecycle status of each instance. The reconciliation key is the pair
``(obligation_id, due_date)``.

Conflict policy
---------------
When more than one payment record matches the same key, `reconcile`
rejects the match and raises `ReconciliationConflict`. Callers that
process batches (see expansion.py) catch it, keep the instance unpaid,
flag it with ``has_conflict=True`` and report the conflict. No payment
is ever chosen arbitrarily.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import replace
from datetime import date
from decimal import Decimal

from .exceptions import OrphanedPayment, ReconciliationConflict
from .models import (
    InstanceStatus,
    ObligationInstance,
    ObligationPayment,
    RecurringObligation,
)
from .schedule import is_occurrence

logger = logging.getLogger(__name__)

PaymentIndex = Mapping[tuple[str, date], list[ObligationPayment]]


def index_payments(
    payments: Iterable[ObligationPayment],
) -> dict[tuple[str, date], list[ObligationPayment]]:
    """Group payment records by reconciliation key."""
    index: dict[tuple[str, date], list[ObligationPayment]] = defaultdict(list)
    for payment in payments:
        index[payment.key].append(payment)
    return dict(index)


def classify_status(
    due_date: date, reference_date: date, is_paid: bool
) -> InstanceStatus:
    """Paid, else Overdue when strictly before the reference date, else Open."""
    if is_paid:
        return "Paid"
    if due_date < reference_date:
        return "Overdue"
    return "Open"


def reconcile(
    instance: ObligationInstance,
    payments: Iterable[ObligationPayment],
    reference_date: date,
) -> ObligationInstance:
    """
    Attach the matching payment (if any) to an instance and set its status.

    Parameters
    ----------
    instance:
        Occurrence to reconcile. Any payment data it already carries is
        discarded and recomputed.
    payments:
        Candidate payment records. Records with another key are ignored.
    reference_date:
        Date used to tell Overdue from Open.

    Returns
    -------
    ObligationInstance
        A new instance; the input is not modified.

    Raises
    ------
    ReconciliationConflict
        If more than one payment record matches the instance key.
    """
    matches = [p for p in payments if p.key == instance.key]

    if len(matches) > 1:
        raise ReconciliationConflict(
            instance.source_obligation_id,
            instance.due_date,
            tuple(p.id for p in matches),
        )

    if not matches:
        return replace(
            instance,
            status=classify_status(instance.due_date, reference_date, False),
            paid_value=None,
            paid_date=None,
            payment_id=None,
            fine_amount=Decimal("0"),
            interest_amount=Decimal("0"),
            has_conflict=False,
        )

    payment = matches[0]
    return replace(
        instance,
        status=classify_status(instance.due_date, reference_date, payment.is_paid),
        paid_value=payment.paid_value,
        paid_date=payment.paid_date,
        payment_id=payment.id,
        fine_amount=payment.fine_amount,
        interest_amount=payment.interest_amount,
        has_conflict=False,
    )


def find_orphaned_payments(
    payments: Iterable[ObligationPayment],
    obligations: Mapping[str, RecurringObligation],
    invalid_ids: set[str],
) -> list[OrphanedPayment]:
    """
    Report payments that do not settle any currently valid occurrence.

    Parameters
    ----------
    payments:
        All payment records under consideration.
    obligations:
        Known obligations by id (valid and invalid).
    invalid_ids:
        Ids of obligations that failed validation.

    Notes
    -----
    The check is independent of any generation horizon: a payment for a
    valid occurrence that merely lies outside the requested window is not
    an orphan.
    """
    orphans: list[OrphanedPayment] = []
    for payment in payments:
        obligation = obligations.get(payment.obligation_id)
        if obligation is None:
            orphan = OrphanedPayment(payment, "unknown_obligation")
        elif payment.obligation_id in invalid_ids:
            orphan = OrphanedPayment(payment, "invalid_obligation")
        elif not obligation.is_recurring or not is_occurrence(
            obligation, payment.due_date
        ):
            orphan = OrphanedPayment(payment, "not_an_occurrence")
        else:
            continue
        logger.warning("%s", orphan)
        orphans.append(orphan)
    return orphans
