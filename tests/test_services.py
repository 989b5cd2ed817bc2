from dataclasses import replace
from datetime import date
from pathlib import Path

import pytest

from finpal.config import AppConfig
from finpal.domain import Budget, Monthly, RecurringTemplate, Snapshot, Transaction
from finpal.events import NOTIFICATION, STORAGE_FAILED, TRANSACTION_ADDED, EventBus
from finpal.services import FinanceSession
from finpal.storage import MemoryStore, StorageError, encode_snapshot, load_snapshot
from finpal.transforms import add_transaction, set_budget

TODAY = date(2024, 3, 5)


class FailingStore(MemoryStore):
    def set_many(self, items):
        raise StorageError("quota exceeded")


def make_state():
    return Snapshot(
        transactions=(Transaction("t1", "expense", 4000, "Food", date(2024, 3, 1)),),
        budgets=(Budget("Food", 5000), Budget("Rent", 6000)),
        templates=(
            RecurringTemplate("rt1", "expense", 6000, "Rent", "Hostel", Monthly(5), date(2024, 1, 5), TODAY),
        ),
    )


def make_session(store=None, bus=None, **config):
    store = store if store is not None else MemoryStore(encode_snapshot(make_state()))
    session = FinanceSession(store, bus or EventBus(), AppConfig(data_file=Path("unused.json"), **config))
    session.load()
    return session


def test_cycle_materializes_and_persists_together():
    store = MemoryStore(encode_snapshot(make_state()))
    session = make_session(store)

    report = session.run_cycle(TODAY)

    assert [t.date for t in report.materialized] == [TODAY]
    stored = load_snapshot(store)
    assert len(stored.transactions) == 2
    assert stored.templates[0].next_due_date == date(2024, 4, 5)
    assert stored == session.snapshot


def test_evaluation_sees_rolled_forward_state():
    session = make_session()
    report = session.run_cycle(TODAY)

    # rent was due today and is now paid, so it pushes Rent to 100% and no bill is pending
    assert [n.id for n in report.notifications] == ["budget-over-Rent"]


def test_notifications_published_once_per_session():
    bus = EventBus()
    delivered = []
    bus.subscribe(NOTIFICATION, lambda event, payload: delivered.append(payload["id"]) or {})
    session = make_session(bus=bus)
    session.apply(lambda s: replace(
        s, transactions=add_transaction(s.transactions, Transaction("t2", "expense", 400, "Food", TODAY))
    ))

    session.run_cycle(TODAY)
    second = session.run_cycle(TODAY)

    assert sorted(delivered) == ["budget-over-Rent", "budget-warning-Food"]
    assert second.notifications == ()
    assert second.materialized == ()


def test_new_session_fires_again():
    store = MemoryStore(encode_snapshot(make_state()))
    make_session(store).run_cycle(TODAY)

    fresh = make_session(store)
    assert [n.id for n in fresh.run_cycle(TODAY).notifications] == ["budget-over-Rent"]


def test_transaction_added_published_for_materialized():
    bus = EventBus()
    added = []
    bus.subscribe(TRANSACTION_ADDED, lambda event, payload: added.append(payload["category"]) or {})
    make_session(bus=bus).run_cycle(TODAY)
    assert added == ["Rent"]


def test_storage_failure_keeps_state_and_still_evaluates():
    bus = EventBus()
    failures = []
    bus.subscribe(STORAGE_FAILED, lambda event, payload: failures.append(payload) or {})
    session = make_session(FailingStore(encode_snapshot(make_state())), bus)

    report = session.run_cycle(TODAY)

    assert report.materialized == ()
    assert report.errors == ["quota exceeded"]
    assert failures[0]["stage"] == "rollover"
    assert session.snapshot == make_state()
    # the template was not rolled forward, so the bill is still upcoming
    assert [n.id for n in report.notifications] == ["bill-reminder-rt1-2024-03-05"]


def test_next_cycle_catches_up_after_failure():
    session = make_session(FailingStore(encode_snapshot(make_state())))
    session.run_cycle(TODAY)

    session.store = MemoryStore(encode_snapshot(session.snapshot))
    report = session.run_cycle(TODAY)
    assert len(report.materialized) == 1


def test_budget_window_from_config():
    state = Snapshot(
        transactions=(Transaction("t1", "expense", 4500, "Food", date(2024, 2, 20)),),
        budgets=(Budget("Food", 5000),),
    )
    all_time = make_session(MemoryStore(encode_snapshot(state)))
    this_month = make_session(MemoryStore(encode_snapshot(state)), budget_window="month")

    assert [n.id for n in all_time.run_cycle(TODAY).notifications] == ["budget-warning-Food"]
    assert this_month.run_cycle(TODAY).notifications == ()


def test_apply_stores_user_action():
    store = MemoryStore(encode_snapshot(make_state()))
    session = make_session(store)

    error = session.apply(lambda s: replace(s, budgets=set_budget(s.budgets, Budget("Food", 8000))))

    assert error is None
    assert Budget("Food", 8000) in load_snapshot(store).budgets


def test_apply_failure_returns_error():
    session = make_session(FailingStore(encode_snapshot(make_state())))
    before = session.snapshot

    error = session.apply(lambda s: Snapshot())

    assert error == "quota exceeded"
    assert session.snapshot == before


def test_apply_propagates_invalid_input():
    session = make_session()
    with pytest.raises(ValueError):
        session.apply(lambda s: set_budget(s.budgets, Budget("Food", -1)))


def test_run_cycle_is_not_reentrant():
    bus = EventBus()
    session = make_session(bus=bus)
    errors = []

    def nested(event, payload):
        try:
            session.run_cycle(TODAY)
        except RuntimeError as e:
            errors.append(str(e))
        return {}

    bus.subscribe(NOTIFICATION, nested)
    session.run_cycle(TODAY)

    assert errors and "already in progress" in errors[0]
