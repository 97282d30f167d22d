# SMB Payables - Recurring obligations & profit engine for service SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for SMB Payables.

The CLI is intentionally thin: it parses arguments, loads the TOML
configuration, calls the services in `ledger_service` / `db` and renders
the resulting DataFrames (see `views`). It never implements financial
logic itself.

Commands
--------

    obligations add|list|import|delete
        Manage cost definitions (one-time or recurring).

    ledger
        Payable ledger: one line per due occurrence with its status
        (Paid / Open / Overdue), a summary per status, and data-integrity
        issues (invalid obligations, reconciliation conflicts, orphaned
        payments).

    pay OBLIGATION_ID / unpay OBLIGATION_ID
        Mark one occurrence as paid (optionally with --fine and
        --interest) or undo the payment. Only scheduled due dates can be
        marked as paid.

    alerts
        Unpaid occurrences that are overdue, due today or due soon.

    profit
        Revenue, ad-hoc expenses, prorated recurring costs and net profit.

    sales add|import, expenses add|import
        Record the inputs of the profit report.

Reference date
--------------
Status classification depends on a reference date. It defaults to the
current date and can be set with ``--as-of YYYY-MM-DD``. The CLI is the
only place where the system clock is read.

Period selection
----------------
``ledger`` and ``profit`` accept ``--period fy|ytd|mtd|last-month|last-fy``
or ``--from-date`` / ``--to-date``. Without them, ``profit`` uses the
fiscal year and ``ledger`` uses the configured window
([ledger] months_back / months_ahead around the reference date).

Display
-------
``--display-mode table|csv|both`` overrides [display] mode. CSV files are
written to ``--output`` (default ``data/output``).

Usage:
    python -m smb_payables.cli --help
"""

import argparse
import logging
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .config import AppConfig, load_app_config
from .db import (
    NewExpense,
    NewObligation,
    NewSale,
    add_expense,
    add_obligation,
    add_sale,
    delete_obligation,
    get_obligation,
    import_expenses,
    import_sales,
    list_obligations,
)
from .io import read_expenses, read_obligations, read_sales
from .ledger_service import (
    build_payable_ledger,
    compute_profit_report,
    default_ledger_period,
    mark_paid,
    mark_unpaid,
    upcoming_alerts,
)
from .logging_config import configure_logging
from .models import FREQUENCIES, to_decimal
from .periods import Period, determine_period_from_args
from .views import (
    alerts_to_dataframe,
    issues_to_dataframe,
    ledger_to_dataframe,
    profit_report_to_dataframe,
    summary_to_dataframe,
)

logger = logging.getLogger(__name__)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"Invalid date format: {value!r}. Expected YYYY-MM-DD."
        ) from exc


def _parse_amount(value: str) -> Decimal:
    try:
        amount = to_decimal(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid amount: {value!r}.") from exc
    if amount < 0:
        raise argparse.ArgumentTypeError(f"Amount must be >= 0 (got {value}).")
    return amount


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="python -m smb_payables.cli",
        description=(
            "SMB Payables - payable ledger of recurring and one-time costs, "
            "and profit report over any period."
        ),
    )

    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of smb_payables and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the TOML configuration file. "
            "If omitted, 'smb_payables_config.toml' in the current directory is used."
        ),
    )
    ap.add_argument(
        "--as-of",
        dest="as_of",
        type=_parse_date,
        help="Reference date (YYYY-MM-DD) for statuses and alerts. Default: today.",
    )
    ap.add_argument(
        "--log-level",
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override the [logging] level from the configuration file.",
    )
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=["table", "csv", "both"],
        help="Override the [display] mode from the configuration file.",
    )
    ap.add_argument(
        "--output",
        dest="output_dir",
        help="Directory for CSV output. If omitted, 'data/output' is used.",
    )

    period_parent = argparse.ArgumentParser(add_help=False)
    period_parent.add_argument(
        "--period",
        choices=["fy", "ytd", "mtd", "last-month", "last-fy"],
        help="Predefined period.",
    )
    period_parent.add_argument(
        "--from-date", dest="from_date", help="Custom period start (YYYY-MM-DD)."
    )
    period_parent.add_argument(
        "--to-date", dest="to_date", help="Custom period end (YYYY-MM-DD)."
    )

    subparsers = ap.add_subparsers(dest="command", metavar="command")

    # -- obligations ---------------------------------------------------------
    obligations = subparsers.add_parser("obligations", help="Manage cost definitions.")
    obligations_sub = obligations.add_subparsers(dest="obligations_command")
    obligations_sub.required = True

    ob_add = obligations_sub.add_parser("add", help="Create an obligation.")
    ob_add.add_argument("--description", required=True)
    ob_add.add_argument("--value", type=_parse_amount, required=True)
    ob_add.add_argument("--kind", choices=["fixed", "variable"], default="fixed")
    ob_add.add_argument(
        "--anchor-date",
        dest="anchor_date",
        type=_parse_date,
        required=True,
        help="First (or only) due date.",
    )
    ob_add.add_argument(
        "--recurring",
        dest="frequency",
        choices=list(FREQUENCIES),
        help="Make the obligation recurring with this frequency.",
    )
    ob_add.add_argument(
        "--end-date",
        dest="end_date",
        type=_parse_date,
        help="Last possible due date of a recurring obligation.",
    )
    ob_add.add_argument("--category")

    obligations_sub.add_parser("list", help="List obligations.")

    ob_import = obligations_sub.add_parser(
        "import", help="Import obligations from CSV."
    )
    ob_import.add_argument("csv_path")

    ob_delete = obligations_sub.add_parser(
        "delete", help="Delete an obligation and its payment records."
    )
    ob_delete.add_argument("obligation_id")

    # -- ledger / alerts -----------------------------------------------------
    subparsers.add_parser(
        "ledger", parents=[period_parent], help="Show the payable ledger."
    )
    subparsers.add_parser("alerts", help="Show overdue and upcoming unpaid costs.")

    # -- pay / unpay ---------------------------------------------------------
    pay = subparsers.add_parser("pay", help="Mark an occurrence as paid.")
    pay.add_argument("obligation_id")
    pay.add_argument(
        "--due-date",
        dest="due_date",
        type=_parse_date,
        help="Occurrence to settle. Defaults to the anchor date of one-time costs.",
    )
    pay.add_argument(
        "--value",
        type=_parse_amount,
        help="Amount paid. Defaults to the obligation value.",
    )
    pay.add_argument(
        "--paid-date",
        dest="paid_date",
        type=_parse_date,
        help="Settlement date. Defaults to the reference date.",
    )
    pay.add_argument(
        "--fine",
        type=_parse_amount,
        default=Decimal("0"),
        help="Late-payment fine paid with a recurring occurrence.",
    )
    pay.add_argument(
        "--interest",
        type=_parse_amount,
        default=Decimal("0"),
        help="Late-payment interest paid with a recurring occurrence.",
    )

    unpay = subparsers.add_parser("unpay", help="Undo the payment of an occurrence.")
    unpay.add_argument("obligation_id")
    unpay.add_argument("--due-date", dest="due_date", type=_parse_date)
    unpay.add_argument(
        "--value",
        type=_parse_amount,
        help="Restore this value on a one-time obligation.",
    )

    # -- profit --------------------------------------------------------------
    subparsers.add_parser(
        "profit", parents=[period_parent], help="Show the profit report."
    )

    # -- sales / expenses ----------------------------------------------------
    sales = subparsers.add_parser("sales", help="Record sales.")
    sales_sub = sales.add_subparsers(dest="sales_command")
    sales_sub.required = True
    sales_add = sales_sub.add_parser("add", help="Register a sale.")
    sales_add.add_argument("--date", type=_parse_date, required=True)
    sales_add.add_argument("--amount", type=_parse_amount, required=True)
    sales_add.add_argument("--status", default="completed")
    sales_add.add_argument("--description")
    sales_import = sales_sub.add_parser("import", help="Import sales from CSV.")
    sales_import.add_argument("csv_path")

    expenses = subparsers.add_parser("expenses", help="Record ad-hoc expenses.")
    expenses_sub = expenses.add_subparsers(dest="expenses_command")
    expenses_sub.required = True
    exp_add = expenses_sub.add_parser("add", help="Register an expense.")
    exp_add.add_argument("--date", type=_parse_date, required=True)
    exp_add.add_argument("--amount", type=_parse_amount, required=True)
    exp_add.add_argument("--description", required=True)
    exp_add.add_argument("--category")
    exp_import = expenses_sub.add_parser("import", help="Import expenses from CSV.")
    exp_import.add_argument("csv_path")

    return ap


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _render(
    tables: list[tuple[str, pd.DataFrame]],
    args: argparse.Namespace,
    config: AppConfig,
) -> None:
    """Print and/or write the given (title, DataFrame) pairs."""
    display_mode = args.display_mode or config.display_mode

    if display_mode in {"table", "both"}:
        for title, df in tables:
            print()
            print(f"=== {title} ===")
            if df.empty:
                print("(none)")
            else:
                print(df.to_string(index=False))

    if display_mode in {"csv", "both"}:
        output_dir = Path(args.output_dir) if args.output_dir else Path("data/output")
        output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        for title, df in tables:
            slug = title.lower().replace(" ", "_")
            path = output_dir / f"{slug}_{timestamp}.csv"
            df.to_csv(path, index=False)
            print(f"Wrote {path} ({len(df)} rows)")


def _period_given(args: argparse.Namespace) -> bool:
    return bool(args.period or args.from_date or args.to_date)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _handle_obligations(args: argparse.Namespace, config: AppConfig) -> None:
    cmd = args.obligations_command

    if cmd == "add":
        if args.end_date and not args.frequency:
            raise SystemExit("--end-date requires --recurring.")
        obligation = add_obligation(
            config.database,
            NewObligation(
                description=args.description,
                value=args.value,
                kind=args.kind,
                anchor_date=args.anchor_date,
                is_recurring=args.frequency is not None,
                recurrence_frequency=args.frequency,
                recurrence_end_date=args.end_date,
                category=args.category,
            ),
        )
        print(f"Created obligation {obligation.id}")
        return

    if cmd == "import":
        new_obligations = read_obligations(args.csv_path)
        for new in new_obligations:
            add_obligation(config.database, new)
        print(f"Imported {len(new_obligations)} obligations from {args.csv_path}")
        return

    if cmd == "delete":
        if not delete_obligation(config.database, args.obligation_id):
            raise SystemExit(f"Obligation {args.obligation_id!r} not found.")
        print(f"Deleted obligation {args.obligation_id}")
        return

    rows = [
        {
            "id": o.id,
            "description": o.description,
            "value": f"{o.value:.2f}",
            "kind": o.kind,
            "anchor_date": o.anchor_date.isoformat(),
            "frequency": o.recurrence_frequency if o.is_recurring else "",
            "end_date": (
                o.recurrence_end_date.isoformat()
                if o.is_recurring and o.recurrence_end_date
                else ""
            ),
            "category": o.category or "",
            "paid": o.is_paid if not o.is_recurring else "",
        }
        for o in list_obligations(config.database)
    ]
    _render([("Obligations", pd.DataFrame(rows))], args, config)


def _handle_ledger(args: argparse.Namespace, config: AppConfig, today: date) -> None:
    if _period_given(args):
        period = determine_period_from_args(args, config.fiscal_year, today)
    else:
        period = default_ledger_period(config, today)

    ledger = build_payable_ledger(config, period, today)

    print(
        f"Applied period: {period.label} "
        f"({period.start.isoformat()} → {period.end.isoformat()}), "
        f"reference date {today.isoformat()}"
    )
    tables = [
        ("Payable ledger", ledger_to_dataframe(ledger.instances)),
        ("Ledger summary", summary_to_dataframe(ledger.summary)),
    ]
    issues = [*ledger.issues, *ledger.orphaned_payments]
    if issues:
        tables.append(("Data issues", issues_to_dataframe(issues)))
    _render(tables, args, config)


def _handle_alerts(args: argparse.Namespace, config: AppConfig, today: date) -> None:
    alerts = upcoming_alerts(config, today)
    _render([("Due alerts", alerts_to_dataframe(alerts))], args, config)


def _handle_pay(args: argparse.Namespace, config: AppConfig, today: date) -> None:
    obligation = get_obligation(config.database, args.obligation_id)
    if obligation is None:
        raise SystemExit(f"Obligation {args.obligation_id!r} not found.")

    due_date: Optional[date] = args.due_date
    if due_date is None:
        if obligation.is_recurring:
            raise SystemExit("--due-date is required for recurring obligations.")
        due_date = obligation.anchor_date

    if args.command == "pay":
        mark_paid(
            config,
            obligation.id,
            due_date,
            args.value if args.value is not None else obligation.value,
            args.paid_date or today,
            obligation.is_recurring,
            fine_amount=args.fine,
            interest_amount=args.interest,
        )
        print(f"Marked {obligation.description!r} due {due_date} as paid.")
    else:
        mark_unpaid(
            config,
            obligation.id,
            due_date,
            obligation.is_recurring,
            paid_value=args.value,
        )
        print(f"Marked {obligation.description!r} due {due_date} as unpaid.")


def _handle_profit(args: argparse.Namespace, config: AppConfig, today: date) -> None:
    period: Period = determine_period_from_args(args, config.fiscal_year, today)
    report = compute_profit_report(config, period)

    print(
        f"Applied period: {period.label} "
        f"({period.start.isoformat()} → {period.end.isoformat()})"
    )
    tables = [
        (f"Profit report ({config.currency})", profit_report_to_dataframe(report))
    ]
    if report.issues:
        tables.append(("Data issues", issues_to_dataframe(report.issues)))
    _render(tables, args, config)


def _handle_sales(args: argparse.Namespace, config: AppConfig) -> None:
    if args.sales_command == "import":
        count = import_sales(read_sales(args.csv_path), config.database)
        print(f"Imported {count} sales from {args.csv_path}")
        return
    sale = add_sale(
        config.database,
        NewSale(
            date=args.date,
            final_amount=args.amount,
            status=args.status,
            description=args.description,
        ),
    )
    print(f"Registered sale {sale.id}")


def _handle_expenses(args: argparse.Namespace, config: AppConfig) -> None:
    if args.expenses_command == "import":
        count = import_expenses(read_expenses(args.csv_path), config.database)
        print(f"Imported {count} expenses from {args.csv_path}")
        return
    expense = add_expense(
        config.database,
        NewExpense(
            date=args.date,
            description=args.description,
            amount=args.amount,
            category=args.category,
        ),
    )
    print(f"Registered expense {expense.id}")


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point of the SMB Payables CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"smb_payables {__version__}")
        return

    if args.command is None:
        parser.print_help()
        return

    config = load_app_config(args.config_path)
    configure_logging(args.log_level or config.logging.level, config.logging.file)

    today = args.as_of or date.today()

    try:
        if args.command == "obligations":
            _handle_obligations(args, config)
        elif args.command == "ledger":
            _handle_ledger(args, config, today)
        elif args.command == "alerts":
            _handle_alerts(args, config, today)
        elif args.command in {"pay", "unpay"}:
            _handle_pay(args, config, today)
        elif args.command == "profit":
            _handle_profit(args, config, today)
        elif args.command == "sales":
            _handle_sales(args, config)
        elif args.command == "expenses":
            _handle_expenses(args, config)
    except (LookupError, ValueError) as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        raise SystemExit(f"Error: {exc}") from exc


if __name__ == "__main__":
    main()
