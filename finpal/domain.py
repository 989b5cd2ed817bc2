from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Union

INCOME = "income"
EXPENSE = "expense"
TRANSACTION_TYPES = (INCOME, EXPENSE)

INCOME_CATEGORIES = ("Salary", "Allowance", "HELB", "Side Hustle", "Gift", "Other")
EXPENSE_CATEGORIES = (
    "Food",
    "Rent",
    "Transport",
    "Airtime & Data",
    "Books & Supplies",
    "Entertainment",
    "Utilities",
    "Health",
    "Loan Payment",
    "Other",
)
LOAN_PAYMENT_CATEGORY = "Loan Payment"


@dataclass(frozen=True)
class Transaction:
    id: str
    type: str        # "income" or "expense"
    amount: float    # always >= 0, sign comes from type
    category: str
    date: date
    description: str = ""


@dataclass(frozen=True)
class Weekly:
    day_of_week: int  # 0 = Sunday .. 6 = Saturday


@dataclass(frozen=True)
class Monthly:
    day_of_month: int  # 1 .. 31


Frequency = Union[Weekly, Monthly]


@dataclass(frozen=True)
class RecurringTemplate:
    id: str
    type: str
    amount: float
    category: str
    description: str
    schedule: Optional[Frequency]  # None when the stored record was malformed
    start_date: date
    next_due_date: date

    @property
    def frequency(self) -> Optional[str]:
        if isinstance(self.schedule, Weekly):
            return "weekly"
        if isinstance(self.schedule, Monthly):
            return "monthly"
        return None


# A budget (monthly ceiling for a category)
@dataclass(frozen=True)
class Budget:
    category: str
    limit: float


@dataclass(frozen=True)
class SavingsGoal:
    id: str
    name: str
    target_amount: float
    current_amount: float
    deadline: date

    @property
    def funded(self) -> bool:
        return self.current_amount >= self.target_amount


@dataclass(frozen=True)
class LoanPayment:
    date: date
    amount: float


@dataclass(frozen=True)
class StudentLoan:
    id: str
    lender: str
    initial_amount: float
    current_balance: float
    interest_rate: float   # percent, informational only
    payment_due_day: int   # day of the month
    payment_history: tuple[LoanPayment, ...] = ()


@dataclass(frozen=True)
class NotificationSettings:
    budget_alerts: bool = True
    bill_reminders: bool = True
    savings_reminders: bool = True
    loan_reminders: bool = True


@dataclass(frozen=True)
class Notification:
    id: str
    title: str
    body: str


@dataclass(frozen=True)
class Snapshot:
    transactions: tuple[Transaction, ...] = ()
    budgets: tuple[Budget, ...] = ()
    templates: tuple[RecurringTemplate, ...] = ()
    goals: tuple[SavingsGoal, ...] = ()
    loans: tuple[StudentLoan, ...] = ()
    settings: NotificationSettings = field(default_factory=NotificationSettings)
