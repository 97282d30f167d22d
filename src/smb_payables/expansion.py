# SMB Payables - Recurring obligations & profit engine for service SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Instance expansion engine.

Turns obligation definitions into the payable ledger: one
`ObligationInstance` per concrete occurrence, reconciled against
payment records and classified as Paid / Open / Overdue.

Pipeline
--------
1. Validate obligations. Invalid ones are excluded and reported; they
   never abort the batch.
2. Refuse to run when an open-ended recurrence has no horizon
   (`UnboundedGenerationError`).
3. One-time obligations yield exactly one instance on their anchor date,
   with payment state read from the obligation itself.
4. Recurring obligations yield one instance per occurrence inside the
   horizon and on or before the recurrence end date.
5. Each recurring instance is reconciled against payments keyed by
   ``(obligation_id, due_date)``.
6. Payments that settle no valid occurrence are reported as orphans.

`expand` is a pure function: identical inputs yield identical output.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Optional, Union

from .exceptions import (
    ObligationValidationError,
    OrphanedPayment,
    ReconciliationConflict,
    UnboundedGenerationError,
)
from .models import (
    ObligationInstance,
    ObligationPayment,
    RecurringObligation,
    split_valid_obligations,
)
from .periods import Horizon
from .reconciliation import (
    classify_status,
    find_orphaned_payments,
    index_payments,
    reconcile,
)
from .schedule import iter_occurrences

logger = logging.getLogger(__name__)

ExpansionIssue = Union[ObligationValidationError, ReconciliationConflict]


@dataclass(frozen=True)
class ExpansionResult:
    """
    Output of `expand`.

    Attributes
    ----------
    instances:
        Instances sorted by (due_date, description, obligation id).
    issues:
        Validation errors of excluded obligations and reconciliation
        conflicts, in the order they were found.
    orphaned_payments:
        Payments that do not settle any valid occurrence.
    """

    instances: list[ObligationInstance]
    issues: list[ExpansionIssue] = field(default_factory=list)
    orphaned_payments: list[OrphanedPayment] = field(default_factory=list)

    @property
    def conflicts(self) -> list[ReconciliationConflict]:
        return [i for i in self.issues if isinstance(i, ReconciliationConflict)]

    @property
    def validation_errors(self) -> list[ObligationValidationError]:
        return [i for i in self.issues if isinstance(i, ObligationValidationError)]


def _one_time_instance(
    obligation: RecurringObligation, reference_date: date
) -> ObligationInstance:
    # Payment state of one-time obligations lives on the obligation itself.
    return ObligationInstance(
        source_obligation_id=obligation.id,
        description=obligation.description,
        due_date=obligation.anchor_date,
        original_value=obligation.value,
        status=classify_status(
            obligation.anchor_date, reference_date, obligation.is_paid
        ),
        is_recurring=False,
        paid_value=obligation.value if obligation.is_paid else None,
        paid_date=obligation.paid_date if obligation.is_paid else None,
        category=obligation.category,
        kind=obligation.kind,
    )


def expand(
    obligations: Iterable[RecurringObligation],
    payments: Iterable[ObligationPayment],
    reference_date: date,
    horizon: Optional[Horizon] = None,
) -> ExpansionResult:
    """
    Expand obligations into reconciled instances.

    Parameters
    ----------
    obligations:
        Obligation definitions (one-time and recurring).
    payments:
        Payment records of recurring occurrences.
    reference_date:
        Date used for Overdue/Open classification.
    horizon:
        Window bounding recurring occurrences. May only be omitted when
        every valid recurring obligation has an end date.

    Returns
    -------
    ExpansionResult

    Raises
    ------
    UnboundedGenerationError
        If `horizon` is None and a valid recurring obligation is open-ended.
    """
    all_obligations = list(obligations)
    all_payments = list(payments)

    valid, validation_errors = split_valid_obligations(all_obligations)
    for error in validation_errors:
        logger.warning("Excluding obligation from expansion: %s", error)

    if horizon is None:
        unbounded = [o.id for o in valid if o.is_open_ended]
        if unbounded:
            raise UnboundedGenerationError(unbounded)

    payment_index = index_payments(all_payments)
    issues: list[ExpansionIssue] = list(validation_errors)
    instances: list[ObligationInstance] = []

    for obligation in valid:
        if not obligation.is_recurring:
            instances.append(_one_time_instance(obligation, reference_date))
            continue

        occurrences = iter_occurrences(
            obligation,
            start=horizon.start if horizon else None,
            end=horizon.end if horizon else None,
        )
        for due_date in occurrences:
            instance = ObligationInstance(
                source_obligation_id=obligation.id,
                description=obligation.description,
                due_date=due_date,
                original_value=obligation.value,
                status=classify_status(due_date, reference_date, False),
                is_recurring=True,
                category=obligation.category,
                kind=obligation.kind,
            )
            candidates = payment_index.get(instance.key, [])
            try:
                instance = reconcile(instance, candidates, reference_date)
            except ReconciliationConflict as conflict:
                logger.warning("Reconciliation conflict: %s", conflict)
                issues.append(conflict)
                instance = replace(instance, has_conflict=True)
            instances.append(instance)

    invalid_ids = {error.obligation_id for error in validation_errors}
    orphans = find_orphaned_payments(
        all_payments,
        {o.id: o for o in all_obligations},
        invalid_ids,
    )

    instances.sort(key=lambda i: (i.due_date, i.description, i.source_obligation_id))
    logger.debug(
        "Expanded %d obligations into %d instances (%d issues, %d orphans)",
        len(valid),
        len(instances),
        len(issues),
        len(orphans),
    )
    return ExpansionResult(
        instances=instances,
        issues=issues,
        orphaned_payments=orphans,
    )
