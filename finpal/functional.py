from abc import ABC, abstractmethod
from typing import Callable, Generic, Iterable, TypeVar

from finpal.domain import (
    TRANSACTION_TYPES,
    Budget,
    Monthly,
    RecurringTemplate,
    SavingsGoal,
    StudentLoan,
    Transaction,
    Weekly,
)

T = TypeVar('T')
U = TypeVar('U')
E = TypeVar('E')


class Maybe(Generic[T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass


class Some(Maybe[T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        return Some(f(self._value))

    def get_or_else(self, default: T) -> T:
        return self._value

    def __repr__(self) -> str:
        return f"Some({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Some) and self._value == other._value


class Nothing(Maybe[T]):

    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        return Nothing()

    def get_or_else(self, default: T) -> T:
        return default

    def __repr__(self) -> str:
        return "Nothing()"

    def __eq__(self, other) -> bool:
        return isinstance(other, Nothing)


class Either(Generic[E, T], ABC):

    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        pass

    @abstractmethod
    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        pass

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def is_right(self) -> bool:
        pass

    @abstractmethod
    def get_error(self) -> E:
        pass

    def is_left(self) -> bool:
        return not self.is_right()


class Right(Either[E, T]):

    def __init__(self, value: T):
        self._value = value

    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        return Right(f(self._value))

    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        return f(self._value)

    def get_or_else(self, default: T) -> T:
        return self._value

    def is_right(self) -> bool:
        return True

    def get_error(self) -> E:
        raise ValueError("Cannot get error from Right")

    def __repr__(self) -> str:
        return f"Right({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Right) and self._value == other._value


class Left(Either[E, T]):

    def __init__(self, error: E):
        self._error = error

    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        return self

    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        return self

    def get_or_else(self, default: T) -> T:
        return default

    def is_right(self) -> bool:
        return False

    def get_error(self) -> E:
        return self._error

    def __repr__(self) -> str:
        return f"Left({self._error!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Left) and self._error == other._error


def _error(code: str, message: str, **extra) -> Left:
    return Left({"error": code, "message": message, **extra})


def require(found: Maybe[T], code: str, message: str) -> Either[dict, T]:
    """Turn a lookup result into an Either so it can be chained with validators."""
    return found.map(Right).get_or_else(_error(code, message))


def find_loan(loans: Iterable[StudentLoan], loan_id: str) -> Maybe[StudentLoan]:
    for loan in loans:
        if loan.id == loan_id:
            return Some(loan)
    return Nothing()


def find_goal(goals: Iterable[SavingsGoal], goal_id: str) -> Maybe[SavingsGoal]:
    for goal in goals:
        if goal.id == goal_id:
            return Some(goal)
    return Nothing()


def validate_transaction(t: Transaction) -> Either[dict, Transaction]:
    if t.type not in TRANSACTION_TYPES:
        return _error("invalid_type", f"Unknown transaction type {t.type!r}", type=t.type)
    if t.amount < 0:
        return _error("negative_amount", f"Transaction amount cannot be negative: {t.amount}", amount=t.amount)
    if not t.category:
        return _error("missing_category", "Transaction needs a category")
    return Right(t)


def validate_budget(b: Budget) -> Either[dict, Budget]:
    if not b.category:
        return _error("missing_category", "Budget needs a category")
    if b.limit <= 0:
        return _error("invalid_limit", f"Budget limit for {b.category} must be positive", limit=b.limit)
    return Right(b)


def validate_template(rt: RecurringTemplate) -> Either[dict, RecurringTemplate]:
    if rt.type not in TRANSACTION_TYPES:
        return _error("invalid_type", f"Unknown transaction type {rt.type!r}", type=rt.type)
    if rt.amount < 0:
        return _error("negative_amount", f"Recurring amount cannot be negative: {rt.amount}", amount=rt.amount)
    if isinstance(rt.schedule, Weekly):
        if not 0 <= rt.schedule.day_of_week <= 6:
            return _error("invalid_schedule", f"Day of week must be 0-6, got {rt.schedule.day_of_week}")
    elif isinstance(rt.schedule, Monthly):
        if not 1 <= rt.schedule.day_of_month <= 31:
            return _error("invalid_schedule", f"Day of month must be 1-31, got {rt.schedule.day_of_month}")
    else:
        return _error("invalid_schedule", f"Recurring transaction {rt.id} has no weekly or monthly schedule")
    return Right(rt)


def validate_goal(g: SavingsGoal) -> Either[dict, SavingsGoal]:
    if g.target_amount <= 0:
        return _error("invalid_target", f"Target for {g.name!r} must be positive", target=g.target_amount)
    if g.current_amount < 0:
        return _error("negative_amount", f"Saved amount for {g.name!r} cannot be negative")
    return Right(g)


def validate_loan(loan: StudentLoan) -> Either[dict, StudentLoan]:
    if not loan.lender:
        return _error("missing_lender", "Loan needs a lender name")
    if loan.initial_amount <= 0:
        return _error("invalid_amount", f"Loan amount for {loan.lender} must be positive")
    if not 1 <= loan.payment_due_day <= 31:
        return _error("invalid_due_day", f"Payment due day must be 1-31, got {loan.payment_due_day}")
    return Right(loan)


def validate_payment(amount: float) -> Either[dict, float]:
    if amount <= 0:
        return _error("invalid_amount", f"Payment amount must be positive, got {amount}", amount=amount)
    return Right(amount)
