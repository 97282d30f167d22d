# SMB Payables - Recurring obligations & profit engine for service SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
High-level services for the payable ledger and the profit report.

This module sits between:
- the obligation store in `db.py`, and
- user-facing layers such as the CLI.

It wires the two independent computation paths over the same
obligations:

    store → expansion → reconciliation → payable ledger
    store → proration → profit aggregator → profit report

and exposes the narrow write operations (mark as paid / unpaid).

Responsibilities
----------------
1) Payable ledger
   - Expand obligations over the requested period with an explicit
     reference date.
   - Keep instances whose due date lies in the period.
   - Summarize totals per status and surface data-integrity issues
     (invalid obligations, reconciliation conflicts, orphaned payments).

2) Due alerts
   - Unpaid instances that are overdue, due on the reference date, or
     due within the configured number of days.

3) Write-back
   - `mark_paid` / `mark_unpaid` delegate to `db.set_paid`.

4) Profit report
   - Load sales, ad-hoc expenses and obligations, then delegate to
     `profit.profit_report`.

Design notes
------------
- The reference date is always an argument. Only the CLI reads the
  system clock.
- The ledger never feeds the profit report and vice versa.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Literal, Optional

from .config import AppConfig
from .db import list_obligations, list_payments, load_expenses, load_sales, set_paid
from .exceptions import OrphanedPayment
from .expansion import ExpansionIssue, expand
from .models import InstanceStatus, ObligationInstance, money
from .periods import Horizon, Period, add_months
from .profit import ProfitReport, profit_report

logger = logging.getLogger(__name__)

AlertKind = Literal["overdue", "due_today", "due_soon"]


@dataclass(frozen=True)
class StatusTotal:
    count: int
    total: Decimal


@dataclass(frozen=True)
class PayableLedger:
    """
    Payable ledger for one period.

    Attributes
    ----------
    period:
        Window the instances were selected for.
    reference_date:
        Date used for Overdue/Open classification.
    instances:
        Instances due in the period, sorted by due date.
    summary:
        Count and total per status (see `summarize_ledger`).
    issues:
        Invalid obligations and reconciliation conflicts.
    orphaned_payments:
        Payments that do not settle any valid occurrence.
    """

    period: Period
    reference_date: date
    instances: list[ObligationInstance]
    summary: dict[InstanceStatus, StatusTotal]
    issues: list[ExpansionIssue] = field(default_factory=list)
    orphaned_payments: list[OrphanedPayment] = field(default_factory=list)


@dataclass(frozen=True)
class DueAlert:
    kind: AlertKind
    instance: ObligationInstance

    @property
    def message(self) -> str:
        value = money(self.instance.original_value)
        due = self.instance.due_date.isoformat()
        if self.kind == "overdue":
            return f'"{self.instance.description}" ({value}) is overdue since {due}.'
        if self.kind == "due_today":
            return f'"{self.instance.description}" ({value}) is due today.'
        return f'"{self.instance.description}" ({value}) is due on {due}.'


def summarize_ledger(
    instances: Iterable[ObligationInstance],
) -> dict[InstanceStatus, StatusTotal]:
    """
    Count and total instances per status.

    Open and Overdue totals use the original value; Paid totals use the
    amount actually paid.
    """
    counts: dict[str, int] = {"Paid": 0, "Open": 0, "Overdue": 0}
    totals: dict[str, Decimal] = {s: Decimal("0") for s in counts}
    for instance in instances:
        counts[instance.status] += 1
        if instance.status == "Paid" and instance.paid_value is not None:
            totals[instance.status] += instance.paid_value
        else:
            totals[instance.status] += instance.original_value
    return {
        status: StatusTotal(count=counts[status], total=money(totals[status]))
        for status in counts
    }


def due_alerts(
    instances: Iterable[ObligationInstance],
    reference_date: date,
    due_soon_days: int,
) -> list[DueAlert]:
    """
    Alerts for unpaid instances, most urgent first.

    - "overdue"  : due before the reference date,
    - "due_today": due on the reference date,
    - "due_soon" : due within `due_soon_days` days after it.
    """
    soon_limit = reference_date + timedelta(days=due_soon_days)
    alerts: list[DueAlert] = []
    for instance in instances:
        if instance.is_paid:
            continue
        if instance.due_date < reference_date:
            alerts.append(DueAlert("overdue", instance))
        elif instance.due_date == reference_date:
            alerts.append(DueAlert("due_today", instance))
        elif instance.due_date <= soon_limit:
            alerts.append(DueAlert("due_soon", instance))
    alerts.sort(key=lambda a: (a.instance.due_date, a.instance.description))
    return alerts


def default_ledger_period(config: AppConfig, reference_date: date) -> Period:
    """Period spanning the configured months before and after a date."""
    horizon = Horizon.around(
        reference_date, config.ledger.months_back, config.ledger.months_ahead
    )
    return Period(
        start=horizon.start,
        end=horizon.end,
        label=f"Ledger window ({horizon.start} → {horizon.end})",
    )


def build_payable_ledger(
    config: AppConfig,
    period: Period,
    reference_date: date,
) -> PayableLedger:
    """
    Build the payable ledger for a period.

    Parameters
    ----------
    config:
        Application configuration (database location).
    period:
        Window of due dates to show. It also bounds instance generation.
    reference_date:
        Date used for Overdue/Open classification.
    """
    obligations = list_obligations(config.database)
    payments = list_payments(config.database)

    result = expand(
        obligations,
        payments,
        reference_date,
        horizon=Horizon.from_period(period),
    )
    instances = [
        i for i in result.instances if period.start <= i.due_date <= period.end
    ]
    logger.info(
        "Ledger %s → %s: %d instances, %d issues, %d orphaned payments",
        period.start.isoformat(),
        period.end.isoformat(),
        len(instances),
        len(result.issues),
        len(result.orphaned_payments),
    )
    return PayableLedger(
        period=period,
        reference_date=reference_date,
        instances=instances,
        summary=summarize_ledger(instances),
        issues=list(result.issues),
        orphaned_payments=list(result.orphaned_payments),
    )


def upcoming_alerts(config: AppConfig, reference_date: date) -> list[DueAlert]:
    """
    Due alerts around a reference date using the configured windows.

    Overdue instances are searched back to the configured `months_back`.
    """
    period = Period(
        start=add_months(reference_date, -config.ledger.months_back),
        end=reference_date + timedelta(days=config.ledger.due_soon_days),
        label="Alerts window",
    )
    ledger = build_payable_ledger(config, period, reference_date)
    return due_alerts(ledger.instances, reference_date, config.ledger.due_soon_days)


def mark_paid(
    config: AppConfig,
    obligation_id: str,
    due_date: date,
    paid_value: Decimal,
    paid_date: date,
    is_recurring: bool,
    fine_amount: Decimal = Decimal("0"),
    interest_amount: Decimal = Decimal("0"),
) -> None:
    """Record the payment of one occurrence (see `db.set_paid`)."""
    set_paid(
        config.database,
        obligation_id,
        due_date,
        paid_value,
        True,
        is_recurring,
        paid_date=paid_date,
        fine_amount=fine_amount,
        interest_amount=interest_amount,
    )


def mark_unpaid(
    config: AppConfig,
    obligation_id: str,
    due_date: date,
    is_recurring: bool,
    paid_value: Optional[Decimal] = None,
) -> None:
    """Undo the payment of one occurrence (see `db.set_paid`)."""
    set_paid(
        config.database,
        obligation_id,
        due_date,
        paid_value,
        False,
        is_recurring,
    )


def compute_profit_report(config: AppConfig, period: Period) -> ProfitReport:
    """Load the period's sales, expenses and all obligations, then build the report."""
    sales = load_sales(config.database, period.start, period.end)
    expenses = load_expenses(config.database, period.start, period.end)
    obligations = list_obligations(config.database)

    report = profit_report(
        period.start,
        period.end,
        sales,
        expenses,
        obligations,
        revenue_statuses=config.revenue_statuses,
    )
    logger.info(
        "Profit %s → %s: revenue=%s expenses=%s net=%s",
        period.start.isoformat(),
        period.end.isoformat(),
        report.revenue,
        report.expenses,
        report.net_profit,
    )
    return report
