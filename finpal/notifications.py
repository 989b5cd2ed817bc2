"""Decide which reminders and alerts should fire for a given day.

Each check yields :class:`Notification` objects keyed by a dedup id. The id
names the condition instance, so one that was already delivered in this
session (present in ``already_sent``) is not emitted again.
"""
import logging
from datetime import date, timedelta
from typing import AbstractSet, Iterable, Iterator, NamedTuple, Optional

from finpal.domain import (
    Budget,
    Notification,
    RecurringTemplate,
    SavingsGoal,
    Snapshot,
    StudentLoan,
    Transaction,
)
from finpal.filters import all_of, by_category, since
from finpal.transforms import expense_transactions

logger = logging.getLogger(__name__)

BUDGET_WARNING_PERCENT = 85
BILL_LEAD_DAYS = 2
SAVINGS_LEAD_DAYS = 7
LOAN_LEAD_DAYS = 3


class Evaluation(NamedTuple):
    events: tuple[Notification, ...]
    newly_sent: frozenset[str]


def budget_spent(budget: Budget, trans: Iterable[Transaction], start: Optional[date] = None) -> float:
    pred = all_of(by_category(budget.category), since(start))
    return sum(t.amount for t in expense_transactions(trans) if pred(t))


def check_budgets(
    trans: tuple[Transaction, ...],
    budgets: Iterable[Budget],
    currency: str = "KSH",
    start: Optional[date] = None,
) -> Iterator[Notification]:
    for budget in budgets:
        if budget.limit <= 0:
            logger.warning("Ignoring budget for %s with non-positive limit %s", budget.category, budget.limit)
            continue
        spent = budget_spent(budget, trans, start)
        percentage = spent * 100 / budget.limit

        if percentage >= 100:
            yield Notification(
                id=f"budget-over-{budget.category}",
                title="Budget Alert",
                body=(
                    f"You've gone over your {currency} {budget.limit:.2f} budget for "
                    f"{budget.category} by {currency} {spent - budget.limit:.2f}!"
                ),
            )
        elif percentage >= BUDGET_WARNING_PERCENT:
            yield Notification(
                id=f"budget-warning-{budget.category}",
                title="Budget Warning",
                body=f"You've spent {percentage:.0f}% of your budget for {budget.category}.",
            )


def check_bills(templates: Iterable[RecurringTemplate], today: date, currency: str = "KSH") -> Iterator[Notification]:
    horizon = today + timedelta(days=BILL_LEAD_DAYS)
    for rt in templates:
        due = rt.next_due_date
        if today <= due <= horizon:
            yield Notification(
                id=f"bill-reminder-{rt.id}-{due.isoformat()}",
                title="Upcoming Bill",
                body=f"{rt.description or rt.category} of {currency} {rt.amount:.2f} is due on {due.isoformat()}.",
            )


def check_savings(goals: Iterable[SavingsGoal], today: date) -> Iterator[Notification]:
    horizon = today + timedelta(days=SAVINGS_LEAD_DAYS)
    for goal in goals:
        if goal.funded:
            continue
        if today <= goal.deadline <= horizon:
            yield Notification(
                id=f"savings-reminder-{goal.id}",
                title="Savings Goal Deadline",
                body=f'Your deadline for "{goal.name}" is approaching on {goal.deadline.isoformat()}!',
            )


def check_loans(loans: Iterable[StudentLoan], today: date) -> Iterator[Notification]:
    # the date in the id lets the early reminder and the due-day reminder both fire
    for loan in loans:
        if today.day in (loan.payment_due_day - LOAN_LEAD_DAYS, loan.payment_due_day):
            yield Notification(
                id=f"loan-reminder-{loan.id}-{today.isoformat()}",
                title="Loan Payment Due",
                body=f"Your payment for {loan.lender} is due on day {loan.payment_due_day} of this month.",
            )


def evaluate(
    snapshot: Snapshot,
    today: date,
    already_sent: AbstractSet[str] = frozenset(),
    budget_since: Optional[date] = None,
    currency: str = "KSH",
) -> Evaluation:
    settings = snapshot.settings
    candidates: list[Notification] = []

    if settings.budget_alerts:
        candidates.extend(check_budgets(snapshot.transactions, snapshot.budgets, currency, budget_since))
    if settings.bill_reminders:
        candidates.extend(check_bills(snapshot.templates, today, currency))
    if settings.savings_reminders:
        candidates.extend(check_savings(snapshot.goals, today))
    if settings.loan_reminders:
        candidates.extend(check_loans(snapshot.loans, today))

    sent = set(already_sent)
    events = []
    for note in candidates:
        if note.id in sent:
            continue
        sent.add(note.id)
        events.append(note)

    if events:
        logger.info("%d notification(s) due on %s", len(events), today)
    return Evaluation(tuple(events), frozenset(sent))
