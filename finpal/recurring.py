"""Recurring transaction rollforward.

Every template whose next due date has arrived produces one ledger entry
dated on that due date, and its due date moves forward by one period.
"""
import logging
from dataclasses import replace
from datetime import date, timedelta
from typing import Callable, Iterable, NamedTuple

import pandas as pd

from finpal.domain import Frequency, Monthly, RecurringTemplate, Transaction, Weekly
from finpal.transforms import new_transaction_id

logger = logging.getLogger(__name__)

RECURRING_PREFIX = "(Recurring) "


class Rollover(NamedTuple):
    materialized: tuple[Transaction, ...]
    updated_templates: tuple[RecurringTemplate, ...]


def advance_due_date(due: date, schedule: Frequency) -> date:
    """Move a due date forward by exactly one period.

    Monthly steps land on the schedule's day of the following month, clamped
    to the end of shorter months (Jan 31 -> Feb 29 -> Mar 31 in a leap year).
    """
    if isinstance(schedule, Weekly):
        return due + timedelta(days=7)
    if isinstance(schedule, Monthly):
        nxt = pd.Timestamp(due) + pd.DateOffset(months=1)
        return nxt.replace(day=min(schedule.day_of_month, nxt.days_in_month)).date()
    raise ValueError(f"Unsupported schedule: {schedule!r}")


def materialize(rt: RecurringTemplate, tx_id: str) -> Transaction:
    return Transaction(
        id=tx_id,
        type=rt.type,
        amount=rt.amount,
        category=rt.category,
        date=rt.next_due_date,
        description=f"{RECURRING_PREFIX}{rt.description}",
    )


def process(
    templates: Iterable[RecurringTemplate],
    today: date,
    id_factory: Callable[[], str] = new_transaction_id,
) -> Rollover:
    materialized = []
    updated = []

    for rt in templates:
        if rt.next_due_date > today:
            updated.append(rt)
            continue

        if rt.schedule is None:
            logger.warning("Skipping recurring transaction %s: no weekly or monthly schedule", rt.id)
            updated.append(rt)
            continue

        materialized.append(materialize(rt, id_factory()))
        next_due = advance_due_date(rt.next_due_date, rt.schedule)
        logger.debug("Recurring %s due %s, next due %s", rt.id, rt.next_due_date, next_due)
        updated.append(replace(rt, next_due_date=next_due))

    if materialized:
        logger.info("Materialized %d recurring transaction(s) for %s", len(materialized), today)
    return Rollover(tuple(materialized), tuple(updated))
