import json
import logging
import time
from collections import defaultdict
from dataclasses import replace
from datetime import date
from typing import Iterable, Optional, Tuple

from finpal.domain import (
    EXPENSE,
    LOAN_PAYMENT_CATEGORY,
    Budget,
    Frequency,
    LoanPayment,
    RecurringTemplate,
    SavingsGoal,
    Snapshot,
    StudentLoan,
    Transaction,
)
from finpal.filters import by_type
from finpal.functional import (
    Either,
    find_goal,
    find_loan,
    require,
    validate_budget,
    validate_goal,
    validate_loan,
    validate_payment,
    validate_template,
    validate_transaction,
)
from finpal.storage import decode_snapshot

logger = logging.getLogger(__name__)

_last_id = 0


def new_transaction_id() -> str:
    """Millisecond timestamp id, bumped so ids always grow in creation order."""
    global _last_id
    candidate = time.time_ns() // 1_000_000
    _last_id = max(candidate, _last_id + 1)
    return str(_last_id)


def _unwrap(result: Either):
    if result.is_left():
        raise ValueError(result.get_error()["message"])
    return result.get_or_else(None)


def load_seed(path: str) -> Snapshot:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return decode_snapshot(data)


def sort_ledger(trans: Iterable[Transaction]) -> Tuple[Transaction, ...]:
    # newest first; sort is stable so same-day entries keep their order
    return tuple(sorted(trans, key=lambda t: t.date, reverse=True))


def add_transaction(trans: Tuple[Transaction, ...], t: Transaction) -> Tuple[Transaction, ...]:
    _unwrap(validate_transaction(t))
    return sort_ledger((t,) + trans)


def prepend_transactions(
    trans: Tuple[Transaction, ...], new: Iterable[Transaction]
) -> Tuple[Transaction, ...]:
    return sort_ledger(tuple(new) + trans)


def remove_transaction(trans: Tuple[Transaction, ...], tx_id: str) -> Tuple[Transaction, ...]:
    return tuple(t for t in trans if t.id != tx_id)


def set_budget(budgets: Tuple[Budget, ...], budget: Budget) -> Tuple[Budget, ...]:
    _unwrap(validate_budget(budget))
    others = tuple(b for b in budgets if b.category != budget.category)
    return others + (budget,)


def remove_budget(budgets: Tuple[Budget, ...], category: str) -> Tuple[Budget, ...]:
    return tuple(b for b in budgets if b.category != category)


def create_template(
    templates: Tuple[RecurringTemplate, ...],
    *,
    type: str,
    amount: float,
    category: str,
    schedule: Frequency,
    start_date: date,
    description: str = "",
    template_id: Optional[str] = None,
) -> Tuple[RecurringTemplate, ...]:
    template = RecurringTemplate(
        id=template_id or new_transaction_id(),
        type=type,
        amount=amount,
        category=category,
        description=description,
        schedule=schedule,
        start_date=start_date,
        next_due_date=start_date,
    )
    _unwrap(validate_template(template))
    return templates + (template,)


def remove_template(templates: Tuple[RecurringTemplate, ...], template_id: str) -> Tuple[RecurringTemplate, ...]:
    return tuple(rt for rt in templates if rt.id != template_id)


def add_goal(goals: Tuple[SavingsGoal, ...], goal: SavingsGoal) -> Tuple[SavingsGoal, ...]:
    return _unwrap(validate_goal(goal).map(lambda g: goals + (g,)))


def add_funds(goals: Tuple[SavingsGoal, ...], goal_id: str, amount: float) -> Tuple[SavingsGoal, ...]:
    goal = _unwrap(validate_payment(amount).bind(
        lambda _: require(find_goal(goals, goal_id), "unknown_goal", f"Savings goal {goal_id} does not exist")
    ))
    funded = replace(goal, current_amount=min(goal.target_amount, goal.current_amount + amount))
    return tuple(funded if g.id == goal_id else g for g in goals)


def add_loan(loans: Tuple[StudentLoan, ...], loan: StudentLoan) -> Tuple[StudentLoan, ...]:
    return _unwrap(validate_loan(loan).map(lambda valid: loans + (valid,)))


def log_loan_payment(
    loans: Tuple[StudentLoan, ...], loan_id: str, amount: float, today: date
) -> Tuple[Tuple[StudentLoan, ...], Transaction]:
    """Record a payment against a loan.

    Returns the updated loans together with the "Loan Payment" expense the
    caller appends to the ledger. Both must be stored together.
    """
    loan = _unwrap(validate_payment(amount).bind(
        lambda _: require(find_loan(loans, loan_id), "unknown_loan", f"Loan {loan_id} does not exist")
    ))

    paid = replace(
        loan,
        current_balance=max(0.0, loan.current_balance - amount),
        payment_history=loan.payment_history + (LoanPayment(date=today, amount=amount),),
    )
    payment = Transaction(
        id=new_transaction_id(),
        type=EXPENSE,
        amount=amount,
        category=LOAN_PAYMENT_CATEGORY,
        date=today,
        description=f"Payment for {loan.lender}",
    )
    logger.info("Logged payment of %.2f for loan %s", amount, loan_id)
    return tuple(paid if other.id == loan_id else other for other in loans), payment


def expense_transactions(trans: Iterable[Transaction]) -> Tuple[Transaction, ...]:
    return tuple(filter(by_type(EXPENSE), trans))


def expenses_by_category(trans: Iterable[Transaction]) -> dict[str, float]:
    totals: dict[str, float] = defaultdict(float)
    for t in expense_transactions(trans):
        totals[t.category] += t.amount
    return dict(totals)
