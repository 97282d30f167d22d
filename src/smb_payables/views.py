# SMB Payables - Recurring obligations & profit engine for service SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for SMB Payables.

Helpers that turn engine results (ledger instances, status summaries,
profit reports, data-integrity issues) into pandas DataFrames ready for
console display or CSV export. They contain no business logic.
"""

from collections.abc import Iterable

import pandas as pd

from .exceptions import (
    ObligationValidationError,
    OrphanedPayment,
    ReconciliationConflict,
)
from .ledger_service import DueAlert, StatusTotal
from .models import ObligationInstance
from .profit import ProfitReport

LEDGER_COLUMNS = [
    "due_date",
    "description",
    "category",
    "original_value",
    "paid_value",
    "paid_date",
    "fine_amount",
    "interest_amount",
    "status",
    "is_recurring",
    "obligation_id",
]


def _fmt(value) -> str:
    return "" if value is None else str(value)


def ledger_to_dataframe(instances: Iterable[ObligationInstance]) -> pd.DataFrame:
    """One row per instance, dates as ISO strings, amounts as text."""
    rows = [
        {
            "due_date": i.due_date.isoformat(),
            "description": i.description,
            "category": _fmt(i.category),
            "original_value": f"{i.original_value:.2f}",
            "paid_value": "" if i.paid_value is None else f"{i.paid_value:.2f}",
            "paid_date": "" if i.paid_date is None else i.paid_date.isoformat(),
            "fine_amount": f"{i.fine_amount:.2f}",
            "interest_amount": f"{i.interest_amount:.2f}",
            "status": i.status + (" (conflict)" if i.has_conflict else ""),
            "is_recurring": i.is_recurring,
            "obligation_id": i.source_obligation_id,
        }
        for i in instances
    ]
    return pd.DataFrame(rows, columns=LEDGER_COLUMNS)


def summary_to_dataframe(summary: dict[str, StatusTotal]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"status": status, "count": total.count, "total": f"{total.total:.2f}"}
            for status, total in summary.items()
        ],
        columns=["status", "count", "total"],
    )


def profit_report_to_dataframe(report: ProfitReport) -> pd.DataFrame:
    """Two-column (item, amount) table of a profit report."""
    items = [
        ("Revenue", report.revenue),
        ("Ad-hoc expenses", report.ad_hoc_expenses),
        ("Recurring costs (prorated)", report.recurring_costs),
        ("Total expenses", report.expenses),
        ("Net profit", report.net_profit),
    ]
    return pd.DataFrame(
        [{"item": label, "amount": f"{amount:.2f}"} for label, amount in items],
        columns=["item", "amount"],
    )


def issues_to_dataframe(issues: Iterable[object]) -> pd.DataFrame:
    """
    Flatten data-integrity conditions into a (type, obligation_id, detail) table.

    Accepts validation errors, reconciliation conflicts and orphaned
    payments in any mix.
    """
    rows = []
    for issue in issues:
        if isinstance(issue, ObligationValidationError):
            rows.append(
                {
                    "type": "invalid_obligation",
                    "obligation_id": issue.obligation_id,
                    "detail": issue.reason,
                }
            )
        elif isinstance(issue, ReconciliationConflict):
            rows.append(
                {
                    "type": "reconciliation_conflict",
                    "obligation_id": issue.obligation_id,
                    "detail": (
                        f"{issue.due_date.isoformat()}: "
                        f"payments {', '.join(issue.payment_ids)}"
                    ),
                }
            )
        elif isinstance(issue, OrphanedPayment):
            rows.append(
                {
                    "type": "orphaned_payment",
                    "obligation_id": issue.payment.obligation_id,
                    "detail": (
                        f"payment {issue.payment.id} due "
                        f"{issue.payment.due_date.isoformat()} ({issue.reason})"
                    ),
                }
            )
        else:
            raise TypeError(f"Unsupported issue type: {type(issue).__name__}")
    return pd.DataFrame(rows, columns=["type", "obligation_id", "detail"])


def alerts_to_dataframe(alerts: Iterable[DueAlert]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "alert": a.kind,
                "due_date": a.instance.due_date.isoformat(),
                "description": a.instance.description,
                "value": f"{a.instance.original_value:.2f}",
                "message": a.message,
            }
            for a in alerts
        ],
        columns=["alert", "due_date", "description", "value", "message"],
    )
