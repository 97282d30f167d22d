from datetime import date
from decimal import Decimal

import pytest

from smb_payables.config import AppConfig, FiscalYear, LedgerConfig, LoggingConfig
from smb_payables.db import (
    DatabaseConfig,
    NewExpense,
    NewObligation,
    NewSale,
    ObligationUpdate,
    add_expense,
    add_obligation,
    add_sale,
    list_payments,
    update_obligation,
)
from smb_payables.ledger_service import (
    StatusTotal,
    build_payable_ledger,
    compute_profit_report,
    default_ledger_period,
    due_alerts,
    mark_paid,
    mark_unpaid,
    summarize_ledger,
    upcoming_alerts,
)
from smb_payables.models import ObligationInstance
from smb_payables.periods import Period

REFERENCE_DATE = date(2024, 3, 10)
Q1 = Period(start=date(2024, 1, 1), end=date(2024, 3, 31), label="Q1")


def make_config(tmp_path, **ledger) -> AppConfig:
    return AppConfig(
        fiscal_year=FiscalYear(
            start_date=date(2024, 1, 1), end_date=date(2024, 12, 31)
        ),
        currency="BRL",
        database=DatabaseConfig(engine="sqlite", path=tmp_path / "ledger.sqlite"),
        ledger=LedgerConfig(**ledger),
        revenue_statuses=("paid", "completed"),
        logging=LoggingConfig(),
        display_mode="table",
    )


def add_monthly(config, description, value, anchor, end=None):
    return add_obligation(
        config.database,
        NewObligation(
            description=description,
            value=Decimal(value),
            kind="fixed",
            anchor_date=anchor,
            is_recurring=True,
            recurrence_frequency="monthly",
            recurrence_end_date=end,
        ),
    )


def add_one_time(config, description, value, anchor):
    return add_obligation(
        config.database,
        NewObligation(
            description=description,
            value=Decimal(value),
            kind="variable",
            anchor_date=anchor,
        ),
    )


def make_instance(due_date, status="Open", value="100", description="Cost"):
    return ObligationInstance(
        source_obligation_id=description.lower(),
        description=description,
        due_date=due_date,
        original_value=Decimal(value),
        status=status,
        is_recurring=True,
        paid_value=Decimal(value) if status == "Paid" else None,
    )


def test_payable_ledger_for_a_period(tmp_path):
    config = make_config(tmp_path)
    rent = add_monthly(config, "Office rent", "1000", date(2024, 1, 5))
    add_one_time(config, "Laptop", "2500", date(2024, 2, 10))
    add_one_time(config, "Desk", "400", date(2024, 6, 1))
    mark_paid(
        config, rent.id, date(2024, 2, 5), Decimal("1000"), date(2024, 2, 5), True
    )

    ledger = build_payable_ledger(config, Q1, REFERENCE_DATE)

    assert [(i.due_date, i.description, i.status) for i in ledger.instances] == [
        (date(2024, 1, 5), "Office rent", "Overdue"),
        (date(2024, 2, 5), "Office rent", "Paid"),
        (date(2024, 2, 10), "Laptop", "Overdue"),
        (date(2024, 3, 5), "Office rent", "Overdue"),
    ]
    assert ledger.summary == {
        "Paid": StatusTotal(count=1, total=Decimal("1000.00")),
        "Open": StatusTotal(count=0, total=Decimal("0.00")),
        "Overdue": StatusTotal(count=3, total=Decimal("4500.00")),
    }
    assert ledger.issues == []
    assert ledger.orphaned_payments == []


def test_ledger_surfaces_payments_orphaned_by_an_edit(tmp_path):
    config = make_config(tmp_path)
    rent = add_monthly(config, "Office rent", "1000", date(2024, 1, 5))
    mark_paid(
        config, rent.id, date(2024, 2, 5), Decimal("1000"), date(2024, 2, 5), True
    )

    update_obligation(
        config.database,
        rent.id,
        ObligationUpdate(recurrence_end_date=date(2024, 1, 31)),
    )
    ledger = build_payable_ledger(config, Q1, REFERENCE_DATE)

    assert [i.due_date for i in ledger.instances] == [date(2024, 1, 5)]
    (orphan,) = ledger.orphaned_payments
    assert orphan.payment.due_date == date(2024, 2, 5)
    assert orphan.reason == "not_an_occurrence"


def test_mark_paid_then_unpaid_through_the_service(tmp_path):
    config = make_config(tmp_path)
    rent = add_monthly(config, "Office rent", "1000", date(2024, 3, 5))

    mark_paid(
        config, rent.id, date(2024, 3, 5), Decimal("1000"), date(2024, 3, 4), True
    )
    paid = build_payable_ledger(config, Q1, REFERENCE_DATE)
    assert paid.instances[0].status == "Paid"

    mark_unpaid(config, rent.id, date(2024, 3, 5), True)
    ledger = build_payable_ledger(config, Q1, REFERENCE_DATE)

    assert ledger.instances[0].status == "Overdue"
    assert list_payments(config.database) == []


def test_summarize_ledger_uses_paid_value_for_paid_instances():
    instances = [
        make_instance(date(2024, 3, 1), "Paid", value="99.995"),
        make_instance(date(2024, 3, 2), "Open", value="10"),
        make_instance(date(2024, 3, 3), "Open", value="5.50"),
    ]

    summary = summarize_ledger(instances)

    assert summary["Paid"] == StatusTotal(count=1, total=Decimal("100.00"))
    assert summary["Open"] == StatusTotal(count=2, total=Decimal("15.50"))
    assert summary["Overdue"] == StatusTotal(count=0, total=Decimal("0.00"))


def test_due_alerts_classification_and_order():
    instances = [
        make_instance(date(2024, 3, 14), description="Too far"),
        make_instance(date(2024, 3, 12), description="Soon"),
        make_instance(date(2024, 3, 10), description="Today"),
        make_instance(date(2024, 3, 1), "Overdue", description="Late"),
        make_instance(date(2024, 3, 5), "Paid", description="Settled"),
    ]

    alerts = due_alerts(instances, REFERENCE_DATE, due_soon_days=3)

    assert [(a.kind, a.instance.description) for a in alerts] == [
        ("overdue", "Late"),
        ("due_today", "Today"),
        ("due_soon", "Soon"),
    ]
    assert "overdue since 2024-03-01" in alerts[0].message
    assert "due today" in alerts[1].message


def test_upcoming_alerts_from_the_store(tmp_path):
    config = make_config(tmp_path, due_soon_days=3)
    rent = add_monthly(config, "Office rent", "100", date(2024, 1, 12))
    mark_paid(
        config, rent.id, date(2024, 1, 12), Decimal("100"), date(2024, 1, 12), True
    )

    alerts = upcoming_alerts(config, REFERENCE_DATE)

    assert [(a.kind, a.instance.due_date) for a in alerts] == [
        ("overdue", date(2024, 2, 12)),
        ("due_soon", date(2024, 3, 12)),
    ]


def test_default_ledger_period_uses_configured_window(tmp_path):
    config = make_config(tmp_path, months_back=1, months_ahead=1)

    period = default_ledger_period(config, date(2024, 3, 31))

    assert (period.start, period.end) == (date(2024, 2, 29), date(2024, 4, 30))


def test_compute_profit_report_from_the_store(tmp_path):
    config = make_config(tmp_path)
    add_sale(
        config.database,
        NewSale(date=date(2024, 2, 10), final_amount=Decimal("1000")),
    )
    add_sale(
        config.database,
        NewSale(
            date=date(2024, 2, 11), final_amount=Decimal("500"), status="cancelled"
        ),
    )
    add_expense(
        config.database,
        NewExpense(date=date(2024, 2, 3), description="Ink", amount=Decimal("80")),
    )
    add_monthly(config, "Rent", "300", date(2024, 1, 1), end=date(2024, 2, 15))

    feb = Period(start=date(2024, 2, 1), end=date(2024, 2, 28), label="Feb")
    report = compute_profit_report(config, feb)

    assert report.revenue == Decimal("1000.00")
    assert report.ad_hoc_expenses == Decimal("80.00")
    assert report.recurring_costs == Decimal("150.00")
    assert report.net_profit == Decimal("770.00")


def test_compute_profit_report_on_empty_store(tmp_path):
    config = make_config(tmp_path)

    report = compute_profit_report(config, Q1)

    assert report.net_profit == Decimal("0.00")


@pytest.mark.parametrize("is_recurring", [True, False])
def test_mark_paid_requires_matching_recurrence_flag(tmp_path, is_recurring):
    config = make_config(tmp_path)
    if is_recurring:
        ob = add_one_time(config, "Laptop", "2500", date(2024, 2, 10))
    else:
        ob = add_monthly(config, "Rent", "300", date(2024, 1, 1))

    with pytest.raises(ValueError):
        mark_paid(config, ob.id, ob.anchor_date, ob.value, ob.anchor_date, is_recurring)
