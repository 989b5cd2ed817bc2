from datetime import date
from typing import Callable

from finpal.domain import Transaction

Predicate = Callable[[Transaction], bool]


def by_category(category: str) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return t.category == category

    return _filter


def by_type(kind: str) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return t.type == kind

    return _filter


def by_date_range(start: date, end: date) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return start <= t.date <= end

    return _filter


def since(start: date | None) -> Predicate:
    # None means no lower bound
    def _filter(t: Transaction) -> bool:
        return start is None or t.date >= start

    return _filter


def all_of(*preds: Predicate) -> Predicate:
    def _filter(t: Transaction) -> bool:
        return all(p(t) for p in preds)

    return _filter
