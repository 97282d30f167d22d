from datetime import date
from decimal import Decimal

import pytest

from smb_payables.exceptions import UnboundedGenerationError
from smb_payables.expansion import expand
from smb_payables.models import ObligationPayment, RecurringObligation
from smb_payables.periods import Horizon

REFERENCE_DATE = date(2024, 3, 10)


def monthly(obligation_id="rent", anchor=date(2024, 1, 31), end=None, value="300"):
    return RecurringObligation(
        id=obligation_id,
        description=f"Monthly {obligation_id}",
        value=Decimal(value),
        kind="fixed",
        anchor_date=anchor,
        is_recurring=True,
        recurrence_frequency="monthly",
        recurrence_end_date=end,
    )


def one_time(obligation_id, anchor, value="100", **kwargs):
    return RecurringObligation(
        id=obligation_id,
        description=f"One-time {obligation_id}",
        value=Decimal(value),
        kind="variable",
        anchor_date=anchor,
        **kwargs,
    )


def payment(payment_id, obligation_id, due_date, value="300", is_paid=True):
    return ObligationPayment(
        id=payment_id,
        obligation_id=obligation_id,
        due_date=due_date,
        paid_value=Decimal(value),
        paid_date=due_date,
        is_paid=is_paid,
    )


def test_monthly_expansion_over_window_with_statuses() -> None:
    horizon = Horizon(date(2024, 1, 1), date(2024, 4, 30))

    result = expand([monthly()], [], REFERENCE_DATE, horizon=horizon)

    assert [(i.due_date, i.status) for i in result.instances] == [
        (date(2024, 1, 31), "Overdue"),
        (date(2024, 2, 29), "Overdue"),
        (date(2024, 3, 31), "Open"),
        (date(2024, 4, 30), "Open"),
    ]
    assert all(i.is_recurring for i in result.instances)
    assert all(i.original_value == Decimal("300") for i in result.instances)
    assert result.issues == []
    assert result.orphaned_payments == []


def test_status_classification_around_reference_date() -> None:
    obligations = [
        one_time("past", date(2024, 3, 1)),
        one_time("today", REFERENCE_DATE),
        one_time("future", date(2024, 3, 20)),
        monthly("paid-rent", anchor=date(2024, 3, 1), end=date(2024, 3, 1)),
    ]
    payments = [payment("p1", "paid-rent", date(2024, 3, 1))]

    result = expand(obligations, payments, REFERENCE_DATE)
    by_id = {i.source_obligation_id: i for i in result.instances}

    assert by_id["past"].status == "Overdue"
    # Overdue is strictly before the reference date.
    assert by_id["today"].status == "Open"
    assert by_id["future"].status == "Open"
    assert by_id["paid-rent"].status == "Paid"
    assert by_id["paid-rent"].paid_value == Decimal("300")
    assert by_id["paid-rent"].payment_id == "p1"


def test_payment_flagged_unpaid_does_not_settle_instance() -> None:
    ob = monthly(anchor=date(2024, 2, 1), end=date(2024, 2, 1))
    unpaid_record = payment("p1", "rent", date(2024, 2, 1), is_paid=False)

    result = expand([ob], [unpaid_record], REFERENCE_DATE)

    assert result.instances[0].status == "Overdue"
    assert result.orphaned_payments == []


def test_one_time_obligation_carries_its_own_payment_state() -> None:
    ob = one_time(
        "laptop",
        date(2024, 2, 10),
        value="2450",
        is_paid=True,
        paid_date=date(2024, 2, 12),
    )

    (instance,) = expand([ob], [], REFERENCE_DATE).instances

    assert instance.status == "Paid"
    assert instance.paid_value == Decimal("2450")
    assert instance.paid_date == date(2024, 2, 12)
    assert not instance.is_recurring


def test_one_time_obligation_yields_one_instance_whatever_the_horizon() -> None:
    ob = one_time("laptop", date(2023, 6, 1))
    horizon = Horizon(date(2024, 1, 1), date(2024, 1, 31))

    result = expand([ob], [], REFERENCE_DATE, horizon=horizon)

    assert [i.due_date for i in result.instances] == [date(2023, 6, 1)]


def test_expansion_is_idempotent_and_order_independent() -> None:
    obligations = [
        monthly("a"),
        monthly("b", anchor=date(2024, 1, 15)),
        one_time("c", date(2024, 2, 1)),
    ]
    payments = [payment("p1", "a", date(2024, 2, 29))]
    horizon = Horizon(date(2024, 1, 1), date(2024, 6, 30))

    first = expand(obligations, payments, REFERENCE_DATE, horizon=horizon)
    second = expand(obligations, payments, REFERENCE_DATE, horizon=horizon)
    reversed_input = expand(
        list(reversed(obligations)), payments, REFERENCE_DATE, horizon=horizon
    )

    assert first.instances == second.instances
    assert first.instances == reversed_input.instances
    assert first.orphaned_payments == second.orphaned_payments


def test_instances_are_sorted_by_due_date() -> None:
    obligations = [
        monthly("late", anchor=date(2024, 1, 20)),
        monthly("early", anchor=date(2024, 1, 5)),
    ]
    horizon = Horizon(date(2024, 1, 1), date(2024, 2, 28))

    result = expand(obligations, [], REFERENCE_DATE, horizon=horizon)

    days = [i.due_date for i in result.instances]
    assert days == sorted(days)
    assert result.instances[0].source_obligation_id == "early"


def test_open_ended_recurrence_without_horizon_fails_fast() -> None:
    bounded = monthly("bounded", end=date(2024, 6, 30))
    unbounded = monthly("unbounded")

    with pytest.raises(UnboundedGenerationError) as excinfo:
        expand([bounded, unbounded], [], REFERENCE_DATE)

    assert excinfo.value.obligation_ids == ["unbounded"]


def test_bounded_recurrences_need_no_horizon() -> None:
    ob = monthly(anchor=date(2024, 1, 15), end=date(2024, 3, 14))

    result = expand([ob], [], REFERENCE_DATE)

    assert [i.due_date for i in result.instances] == [
        date(2024, 1, 15),
        date(2024, 2, 15),
    ]


def test_invalid_obligation_is_excluded_and_reported() -> None:
    broken = monthly("broken", anchor=date(2024, 3, 1), end=date(2024, 2, 1))
    healthy = monthly("healthy", anchor=date(2024, 1, 5), end=date(2024, 2, 5))
    payments = [payment("p-broken", "broken", date(2024, 3, 1))]

    result = expand([broken, healthy], payments, REFERENCE_DATE)

    assert {i.source_obligation_id for i in result.instances} == {"healthy"}
    assert [e.obligation_id for e in result.validation_errors] == ["broken"]
    assert [(o.payment.id, o.reason) for o in result.orphaned_payments] == [
        ("p-broken", "invalid_obligation")
    ]


def test_invalid_open_ended_obligation_does_not_block_unbounded_check() -> None:
    """Only valid obligations are considered for the horizon requirement."""
    broken = RecurringObligation(
        id="broken",
        description="No frequency",
        value=Decimal("10"),
        kind="fixed",
        anchor_date=date(2024, 1, 1),
        is_recurring=True,
    )

    result = expand([broken], [], REFERENCE_DATE)

    assert result.instances == []
    assert len(result.validation_errors) == 1


def test_duplicate_payments_are_rejected_and_reported() -> None:
    ob = monthly(anchor=date(2024, 2, 1), end=date(2024, 3, 1))
    payments = [
        payment("p1", "rent", date(2024, 2, 1)),
        payment("p2", "rent", date(2024, 2, 1), value="310"),
    ]

    result = expand([ob], payments, REFERENCE_DATE)
    conflicted, clean = result.instances

    assert conflicted.due_date == date(2024, 2, 1)
    assert conflicted.has_conflict
    assert conflicted.status == "Overdue"
    assert conflicted.payment_id is None
    assert not clean.has_conflict

    (conflict,) = result.conflicts
    assert conflict.obligation_id == "rent"
    assert conflict.due_date == date(2024, 2, 1)
    assert conflict.payment_ids == ("p1", "p2")
    # Duplicates settle a real occurrence: they are not orphans.
    assert result.orphaned_payments == []


def test_orphaned_payments_are_reported_not_dropped() -> None:
    ob = monthly(anchor=date(2024, 1, 31), end=date(2024, 2, 29))
    payments = [
        payment("valid", "rent", date(2024, 2, 29)),
        payment("off-schedule", "rent", date(2024, 2, 15)),
        payment("after-end", "rent", date(2024, 3, 31)),
        payment("unknown", "deleted-obligation", date(2024, 2, 1)),
    ]

    result = expand([ob], payments, REFERENCE_DATE)

    assert {(o.payment.id, o.reason) for o in result.orphaned_payments} == {
        ("off-schedule", "not_an_occurrence"),
        ("after-end", "not_an_occurrence"),
        ("unknown", "unknown_obligation"),
    }
    assert result.instances[-1].status == "Paid"


def test_payment_outside_horizon_is_not_an_orphan() -> None:
    ob = monthly(anchor=date(2024, 1, 31))
    horizon = Horizon(date(2024, 3, 1), date(2024, 3, 31))

    payments = [payment("p1", "rent", date(2024, 1, 31))]

    result = expand([ob], payments, REFERENCE_DATE, horizon=horizon)

    assert [i.due_date for i in result.instances] == [date(2024, 3, 31)]
    assert result.orphaned_payments == []


def test_instances_carry_category_and_kind() -> None:
    ob = RecurringObligation(
        id="saas",
        description="CRM subscription",
        value=Decimal("49.90"),
        kind="variable",
        anchor_date=date(2024, 3, 1),
        is_recurring=True,
        recurrence_frequency="yearly",
        recurrence_end_date=date(2026, 3, 1),
        category="software",
    )

    result = expand([ob], [], REFERENCE_DATE)

    assert [i.due_date.year for i in result.instances] == [2024, 2025, 2026]
    assert {(i.category, i.kind) for i in result.instances} == {
        ("software", "variable")
    }
