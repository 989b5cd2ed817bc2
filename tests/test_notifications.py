from datetime import date, timedelta

from finpal.domain import (
    Budget,
    Monthly,
    NotificationSettings,
    RecurringTemplate,
    SavingsGoal,
    Snapshot,
    StudentLoan,
    Transaction,
)
from finpal.notifications import evaluate

TODAY = date(2024, 5, 7)


def make_tx(id, amount, category="Food", kind="expense", on=date(2024, 5, 1)):
    return Transaction(id=id, type=kind, amount=amount, category=category, date=on, description="")


def make_rt(id="rt1", next_due=TODAY):
    return RecurringTemplate(
        id=id,
        type="expense",
        amount=1500.0,
        category="Utilities",
        description="Wi-Fi",
        schedule=Monthly(next_due.day),
        start_date=date(2024, 1, 1),
        next_due_date=next_due,
    )


def ids(evaluation):
    return [e.id for e in evaluation.events]


def test_budget_warning_at_86_percent():
    snap = Snapshot(
        transactions=(make_tx("t1", 3000), make_tx("t2", 1300)),
        budgets=(Budget("Food", 5000),),
    )
    assert ids(evaluate(snap, TODAY)) == ["budget-warning-Food"]


def test_budget_over_takes_precedence():
    snap = Snapshot(transactions=(make_tx("t1", 5500),), budgets=(Budget("Food", 5000),))
    result = evaluate(snap, TODAY)

    assert ids(result) == ["budget-over-Food"]
    assert result.events[0].title == "Budget Alert"
    assert "500.00" in result.events[0].body


def test_budget_exactly_at_limit_is_over():
    snap = Snapshot(transactions=(make_tx("t1", 5000),), budgets=(Budget("Food", 5000),))
    assert ids(evaluate(snap, TODAY)) == ["budget-over-Food"]


def test_budget_thresholds():
    at_85 = Snapshot(transactions=(make_tx("t1", 4250),), budgets=(Budget("Food", 5000),))
    below = Snapshot(transactions=(make_tx("t1", 4000),), budgets=(Budget("Food", 5000),))

    assert ids(evaluate(at_85, TODAY)) == ["budget-warning-Food"]
    assert ids(evaluate(below, TODAY)) == []


def test_budget_ignores_income_and_other_categories():
    snap = Snapshot(
        transactions=(
            make_tx("t1", 9000, kind="income"),
            make_tx("t2", 9000, category="Rent"),
            make_tx("t3", 100),
        ),
        budgets=(Budget("Food", 5000),),
    )
    assert ids(evaluate(snap, TODAY)) == []


def test_budget_spent_is_all_time_by_default():
    snap = Snapshot(
        transactions=(make_tx("old", 4000, on=date(2023, 1, 1)), make_tx("new", 1000)),
        budgets=(Budget("Food", 5000),),
    )
    assert ids(evaluate(snap, TODAY)) == ["budget-over-Food"]
    assert ids(evaluate(snap, TODAY, budget_since=date(2024, 5, 1))) == []


def test_budget_with_zero_limit_is_ignored():
    snap = Snapshot(transactions=(make_tx("t1", 10),), budgets=(Budget("Food", 0),))
    assert ids(evaluate(snap, TODAY)) == []


def test_bill_reminder_window():
    snap = Snapshot(
        templates=(
            make_rt("today", TODAY),
            make_rt("in2", TODAY + timedelta(days=2)),
            make_rt("in3", TODAY + timedelta(days=3)),
            make_rt("past", TODAY - timedelta(days=1)),
        )
    )
    assert ids(evaluate(snap, TODAY)) == [
        "bill-reminder-today-2024-05-07",
        "bill-reminder-in2-2024-05-09",
    ]


def test_bill_reminder_body_names_amount_and_date():
    result = evaluate(Snapshot(templates=(make_rt(),)), TODAY)
    body = result.events[0].body
    assert "1500.00" in body
    assert "2024-05-07" in body


def test_savings_reminder_for_unfunded_goal():
    goal = SavingsGoal("g1", "Laptop", 1000, 500, TODAY + timedelta(days=7))
    funded = SavingsGoal("g1", "Laptop", 1000, 1000, TODAY + timedelta(days=7))
    late = SavingsGoal("g2", "Trip", 1000, 0, TODAY + timedelta(days=8))

    assert ids(evaluate(Snapshot(goals=(goal,)), TODAY)) == ["savings-reminder-g1"]
    assert ids(evaluate(Snapshot(goals=(funded,)), TODAY)) == []
    assert ids(evaluate(Snapshot(goals=(late,)), TODAY)) == []


def test_loan_reminder_days():
    loan = StudentLoan("l1", "HELB", 250000, 240000, 4, 10)
    snap = Snapshot(loans=(loan,))

    assert ids(evaluate(snap, date(2024, 5, 7))) == ["loan-reminder-l1-2024-05-07"]
    assert ids(evaluate(snap, date(2024, 5, 8))) == []
    assert ids(evaluate(snap, date(2024, 5, 10))) == ["loan-reminder-l1-2024-05-10"]


def test_loan_reminders_on_different_days_are_distinct():
    snap = Snapshot(loans=(StudentLoan("l1", "HELB", 1000, 1000, 4, 10),))
    first = evaluate(snap, date(2024, 5, 7))
    second = evaluate(snap, date(2024, 5, 10), first.newly_sent)
    assert len(second.events) == 1


def test_disabled_settings_suppress_checks():
    snap = Snapshot(
        transactions=(make_tx("t1", 5000),),
        budgets=(Budget("Food", 5000),),
        templates=(make_rt(),),
        goals=(SavingsGoal("g1", "Laptop", 1000, 0, TODAY),),
        loans=(StudentLoan("l1", "HELB", 1000, 1000, 4, TODAY.day),),
        settings=NotificationSettings(False, False, False, False),
    )
    assert ids(evaluate(snap, TODAY)) == []


def test_second_evaluation_with_carried_set_emits_nothing():
    snap = Snapshot(
        transactions=(make_tx("t1", 4300),),
        budgets=(Budget("Food", 5000),),
        templates=(make_rt(),),
    )
    already = set()
    first = evaluate(snap, TODAY, already)
    second = evaluate(snap, TODAY, first.newly_sent)

    assert len(first.events) == 2
    assert second.events == ()
    assert second.newly_sent == first.newly_sent
    assert already == set()


def test_already_sent_ids_are_suppressed():
    snap = Snapshot(transactions=(make_tx("t1", 4300),), budgets=(Budget("Food", 5000),))
    result = evaluate(snap, TODAY, {"budget-warning-Food"})
    assert result.events == ()
    assert "budget-warning-Food" in result.newly_sent


def test_warning_then_over_are_separate_ids():
    budgets = (Budget("Food", 5000),)
    first = evaluate(Snapshot(transactions=(make_tx("t1", 4300),), budgets=budgets), TODAY)
    second = evaluate(
        Snapshot(transactions=(make_tx("t1", 4300), make_tx("t2", 900)), budgets=budgets),
        TODAY,
        first.newly_sent,
    )
    assert ids(second) == ["budget-over-Food"]
