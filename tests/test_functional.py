from datetime import date

from finpal.domain import Budget, Monthly, RecurringTemplate, SavingsGoal, StudentLoan, Transaction
from finpal.functional import (
    Left,
    Nothing,
    Right,
    Some,
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


def test_maybe_map():
    assert Some(5).map(lambda x: x * 2).get_or_else(0) == 10
    assert Nothing().map(lambda x: x * 2) == Nothing()
    assert Nothing().get_or_else(0) == 0


def test_either_bind():
    def half(x: int):
        return Left("odd") if x % 2 else Right(x // 2)

    assert Right(8).bind(half).bind(half) == Right(2)
    assert Right(6).bind(half).bind(half) == Left("odd")
    assert Left("boom").map(lambda x: x + 1).get_error() == "boom"


def test_require_turns_lookup_into_either():
    assert require(Some(3), "missing", "gone") == Right(3)
    assert require(Nothing(), "missing", "gone").get_error() == {"error": "missing", "message": "gone"}


def test_validate_transaction():
    ok = Transaction("t1", "expense", 100, "Food", date(2024, 1, 1))
    assert validate_transaction(ok).is_right()

    bad_type = Transaction("t1", "refund", 100, "Food", date(2024, 1, 1))
    assert validate_transaction(bad_type).get_error()["error"] == "invalid_type"

    negative = Transaction("t1", "income", -1, "Salary", date(2024, 1, 1))
    assert validate_transaction(negative).get_error()["error"] == "negative_amount"


def test_validate_budget():
    assert validate_budget(Budget("Food", 100)).is_right()
    assert validate_budget(Budget("Food", -1)).get_error()["error"] == "invalid_limit"


def test_validate_template_requires_schedule():
    rt = RecurringTemplate("rt1", "expense", 10, "Rent", "", None, date(2024, 1, 1), date(2024, 1, 1))
    error = validate_template(rt).get_error()
    assert error["error"] == "invalid_schedule"
    assert "rt1" in error["message"]

    assert validate_template(RecurringTemplate(
        "rt1", "expense", 10, "Rent", "", Monthly(32), date(2024, 1, 1), date(2024, 1, 1)
    )).is_left()


def test_validate_goal_and_loan():
    assert validate_goal(SavingsGoal("g1", "Laptop", 0, 0, date(2024, 1, 1))).is_left()
    assert validate_loan(StudentLoan("l1", "HELB", 1000, 1000, 4, 0)).get_error()["error"] == "invalid_due_day"
    assert validate_loan(StudentLoan("l1", "HELB", 1000, 1000, 4, 31)).is_right()
    assert validate_payment(0).is_left()


def test_find_helpers():
    loans = (StudentLoan("l1", "HELB", 1000, 1000, 4, 5),)
    goals = (SavingsGoal("g1", "Laptop", 10, 0, date(2024, 1, 1)),)

    assert find_loan(loans, "l1").map(lambda l: l.lender).get_or_else(None) == "HELB"
    assert find_loan(loans, "x") == Nothing()
    assert find_goal(goals, "g1") == Some(goals[0])
