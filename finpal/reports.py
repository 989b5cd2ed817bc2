from datetime import date
from typing import Iterable

import pandas as pd

from finpal.domain import EXPENSE, INCOME, Budget, Transaction
from finpal.filters import by_date_range
from finpal.notifications import budget_spent

COLUMNS = ["id", "date", "type", "category", "description", "amount"]


def transactions_frame(trans: Iterable[Transaction]) -> pd.DataFrame:
    rows = [
        {
            "id": t.id,
            "date": pd.Timestamp(t.date),
            "type": t.type,
            "category": t.category,
            "description": t.description,
            "amount": float(t.amount),
        }
        for t in trans
    ]
    return pd.DataFrame(rows, columns=COLUMNS)


def summary(trans: Iterable[Transaction]) -> dict[str, float]:
    df = transactions_frame(trans)
    income = float(df.loc[df["type"] == INCOME, "amount"].sum())
    expenses = float(df.loc[df["type"] == EXPENSE, "amount"].sum())
    return {"income": income, "expenses": expenses, "net": income - expenses}


def statement(trans: Iterable[Transaction], start: date, end: date) -> dict:
    """Transactions dated within ``[start, end]`` plus their totals."""
    if start > end:
        raise ValueError(f"Statement start {start} is after end {end}")
    in_range = tuple(filter(by_date_range(start, end), trans))
    return {
        "start": start,
        "end": end,
        "summary": summary(in_range),
        "transactions": transactions_frame(in_range).sort_values("date", ascending=False, kind="stable"),
    }


def monthly_trend(trans: Iterable[Transaction]) -> pd.DataFrame:
    """Income and expense totals per calendar month, oldest first."""
    df = transactions_frame(trans)
    if df.empty:
        return pd.DataFrame(columns=[INCOME, EXPENSE])
    df["month"] = df["date"].dt.strftime("%Y-%m")
    table = df.pivot_table(index="month", columns="type", values="amount", aggfunc="sum", fill_value=0.0)
    return table.reindex(columns=[INCOME, EXPENSE], fill_value=0.0).sort_index()


def budget_progress(trans: tuple[Transaction, ...], budgets: Iterable[Budget], start: date | None = None) -> pd.DataFrame:
    rows = []
    for b in budgets:
        spent = budget_spent(b, trans, start)
        rows.append({
            "category": b.category,
            "limit": b.limit,
            "spent": spent,
            "percent": spent * 100 / b.limit if b.limit > 0 else 0.0,
            "remaining": b.limit - spent,
        })
    return pd.DataFrame(rows, columns=["category", "limit", "spent", "percent", "remaining"])
