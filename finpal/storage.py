"""Key-value persistence for the finance snapshot.

Each entity collection lives under its own key as a list of plain records
using the camelCase field names of the stored format. The store itself only
moves JSON-compatible values around; encoding and decoding happen here.
"""
from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from datetime import date
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol

from finpal.domain import (
    Budget,
    LoanPayment,
    Monthly,
    NotificationSettings,
    RecurringTemplate,
    SavingsGoal,
    Snapshot,
    StudentLoan,
    Transaction,
    Weekly,
)

logger = logging.getLogger(__name__)

TRANSACTIONS_KEY = "transactions"
BUDGETS_KEY = "budgets"
GOALS_KEY = "savingsGoals"
LOANS_KEY = "loans"
TEMPLATES_KEY = "recurringTransactions"
SETTINGS_KEY = "notificationSettings"

ALL_KEYS = (TRANSACTIONS_KEY, BUDGETS_KEY, GOALS_KEY, LOANS_KEY, TEMPLATES_KEY, SETTINGS_KEY)


class StorageError(Exception):
    """Raised when the store cannot be read or written."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def set_many(self, items: Mapping[str, Any]) -> None: ...


class MemoryStore:
    """In-process store, mostly for tests and throwaway sessions."""

    def __init__(self, data: Optional[dict[str, Any]] = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(data) if data else {}

    def get(self, key: str) -> Any:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def set_many(self, items: Mapping[str, Any]) -> None:
        self._data.update(copy.deepcopy(dict(items)))


class JsonFileStore:
    """All keys in one JSON document, rewritten atomically on every change."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._data = self._read()

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Could not read {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"{self._path} does not hold a JSON object")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
        except OSError as e:
            raise StorageError(f"Could not write {self._path}: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, self._path)
        except (OSError, TypeError, ValueError) as e:
            Path(tmp).unlink(missing_ok=True)
            raise StorageError(f"Could not write {self._path}: {e}") from e

    def get(self, key: str) -> Any:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        self.set_many({key: value})

    def set_many(self, items: Mapping[str, Any]) -> None:
        updated = {**self._data, **copy.deepcopy(dict(items))}
        self._write(updated)
        # only adopt the new state once it is on disk
        self._data = updated


def _parse_date(value: str) -> date:
    # accepts both "2024-01-05" and full ISO timestamps
    return date.fromisoformat(str(value)[:10])


def encode_transaction(t: Transaction) -> dict:
    return {
        "id": t.id,
        "type": t.type,
        "amount": t.amount,
        "category": t.category,
        "description": t.description,
        "date": t.date.isoformat(),
    }


def decode_transaction(d: dict) -> Transaction:
    return Transaction(
        id=str(d["id"]),
        type=d["type"],
        amount=float(d["amount"]),
        category=d["category"],
        date=_parse_date(d["date"]),
        description=d.get("description") or "",
    )


def encode_template(rt: RecurringTemplate) -> dict:
    record = {
        "id": rt.id,
        "type": rt.type,
        "amount": rt.amount,
        "category": rt.category,
        "description": rt.description,
        "frequency": rt.frequency,
        "startDate": rt.start_date.isoformat(),
        "nextDueDate": rt.next_due_date.isoformat(),
    }
    if isinstance(rt.schedule, Weekly):
        record["dayOfWeek"] = rt.schedule.day_of_week
    elif isinstance(rt.schedule, Monthly):
        record["dayOfMonth"] = rt.schedule.day_of_month
    return record


def decode_schedule(d: dict):
    frequency = d.get("frequency")
    if frequency == "weekly" and d.get("dayOfWeek") is not None:
        return Weekly(int(d["dayOfWeek"]))
    if frequency == "monthly" and d.get("dayOfMonth") is not None:
        return Monthly(int(d["dayOfMonth"]))
    logger.warning("Recurring transaction %s has frequency %r without its day field", d.get("id"), frequency)
    return None


def decode_template(d: dict) -> RecurringTemplate:
    start = _parse_date(d["startDate"])
    return RecurringTemplate(
        id=str(d["id"]),
        type=d["type"],
        amount=float(d["amount"]),
        category=d["category"],
        description=d.get("description") or "",
        schedule=decode_schedule(d),
        start_date=start,
        next_due_date=_parse_date(d["nextDueDate"]) if d.get("nextDueDate") else start,
    )


def encode_budget(b: Budget) -> dict:
    return {"category": b.category, "limit": b.limit}


def decode_budget(d: dict) -> Budget:
    return Budget(category=d["category"], limit=float(d["limit"]))


def encode_goal(g: SavingsGoal) -> dict:
    return {
        "id": g.id,
        "name": g.name,
        "targetAmount": g.target_amount,
        "currentAmount": g.current_amount,
        "deadline": g.deadline.isoformat(),
    }


def decode_goal(d: dict) -> SavingsGoal:
    return SavingsGoal(
        id=str(d["id"]),
        name=d["name"],
        target_amount=float(d["targetAmount"]),
        current_amount=float(d.get("currentAmount", 0)),
        deadline=_parse_date(d["deadline"]),
    )


def encode_loan(loan: StudentLoan) -> dict:
    return {
        "id": loan.id,
        "lender": loan.lender,
        "initialAmount": loan.initial_amount,
        "currentBalance": loan.current_balance,
        "interestRate": loan.interest_rate,
        "paymentDueDate": loan.payment_due_day,
        "paymentHistory": [{"date": p.date.isoformat(), "amount": p.amount} for p in loan.payment_history],
    }


def decode_loan(d: dict) -> StudentLoan:
    initial = float(d["initialAmount"])
    return StudentLoan(
        id=str(d["id"]),
        lender=d["lender"],
        initial_amount=initial,
        current_balance=float(d.get("currentBalance", initial)),
        interest_rate=float(d.get("interestRate", 0)),
        payment_due_day=int(d["paymentDueDate"]),
        payment_history=tuple(
            LoanPayment(date=_parse_date(p["date"]), amount=float(p["amount"]))
            for p in d.get("paymentHistory") or ()
        ),
    )


def encode_settings(s: NotificationSettings) -> dict:
    return {
        "budgetAlerts": s.budget_alerts,
        "billReminders": s.bill_reminders,
        "savingsReminders": s.savings_reminders,
        "loanReminders": s.loan_reminders,
    }


def decode_settings(d: Optional[dict]) -> NotificationSettings:
    d = d or {}
    return NotificationSettings(
        budget_alerts=bool(d.get("budgetAlerts", True)),
        bill_reminders=bool(d.get("billReminders", True)),
        savings_reminders=bool(d.get("savingsReminders", True)),
        loan_reminders=bool(d.get("loanReminders", True)),
    )


def encode_snapshot(snapshot: Snapshot) -> dict[str, Any]:
    return {
        TRANSACTIONS_KEY: [encode_transaction(t) for t in snapshot.transactions],
        BUDGETS_KEY: [encode_budget(b) for b in snapshot.budgets],
        GOALS_KEY: [encode_goal(g) for g in snapshot.goals],
        LOANS_KEY: [encode_loan(loan) for loan in snapshot.loans],
        TEMPLATES_KEY: [encode_template(rt) for rt in snapshot.templates],
        SETTINGS_KEY: encode_settings(snapshot.settings),
    }


def decode_snapshot(data: Mapping[str, Any]) -> Snapshot:
    try:
        return Snapshot(
            transactions=tuple(decode_transaction(t) for t in data.get(TRANSACTIONS_KEY) or ()),
            budgets=tuple(decode_budget(b) for b in data.get(BUDGETS_KEY) or ()),
            templates=tuple(decode_template(rt) for rt in data.get(TEMPLATES_KEY) or ()),
            goals=tuple(decode_goal(g) for g in data.get(GOALS_KEY) or ()),
            loans=tuple(decode_loan(loan) for loan in data.get(LOANS_KEY) or ()),
            settings=decode_settings(data.get(SETTINGS_KEY)),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise StorageError(f"Stored data is malformed: {e!r}") from e


def load_snapshot(store: KeyValueStore) -> Snapshot:
    return decode_snapshot({key: store.get(key) for key in ALL_KEYS})


def save_snapshot(store: KeyValueStore, snapshot: Snapshot, keys=ALL_KEYS) -> None:
    """Write the given keys of ``snapshot`` to ``store`` in a single call."""
    encoded = encode_snapshot(snapshot)
    store.set_many({key: encoded[key] for key in keys})
