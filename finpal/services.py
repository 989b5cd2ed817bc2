import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Callable, Optional

from finpal.config import AppConfig
from finpal.domain import Notification, Snapshot, Transaction
from finpal.events import NOTIFICATION, STORAGE_FAILED, TRANSACTION_ADDED, EventBus
from finpal.notifications import evaluate
from finpal.recurring import process
from finpal.storage import (
    TEMPLATES_KEY,
    TRANSACTIONS_KEY,
    KeyValueStore,
    StorageError,
    load_snapshot,
    save_snapshot,
)
from finpal.transforms import prepend_transactions

logger = logging.getLogger(__name__)


@dataclass
class CycleReport:
    today: date
    materialized: tuple[Transaction, ...] = ()
    notifications: tuple[Notification, ...] = ()
    errors: list[str] = field(default_factory=list)


class FinanceSession:
    """Host-side owner of the current snapshot and the session dedup set.

    One session corresponds to one user session of the host app: the set of
    already delivered notification ids lives here and dies with it.
    """

    def __init__(self, store: KeyValueStore, bus: EventBus, config: AppConfig):
        self.store = store
        self.bus = bus
        self.config = config
        self.snapshot = Snapshot()
        self.sent: frozenset[str] = frozenset()
        self._running = False

    def load(self) -> Snapshot:
        self.snapshot = load_snapshot(self.store)
        logger.info(
            "Loaded %d transaction(s), %d recurring template(s)",
            len(self.snapshot.transactions),
            len(self.snapshot.templates),
        )
        return self.snapshot

    def run_cycle(self, today: date) -> CycleReport:
        """Roll recurring transactions forward, then evaluate notifications.

        The rollover is stored (ledger and templates together) before the
        evaluator sees it. If storing fails the snapshot is left untouched
        and evaluation runs on the previous state.
        """
        if self._running:
            raise RuntimeError("run_cycle is already in progress for this session")
        self._running = True
        try:
            report = CycleReport(today=today)
            self._rollover(today, report)

            evaluation = evaluate(
                self.snapshot,
                today,
                self.sent,
                budget_since=self.config.budget_since(today),
                currency=self.config.currency,
            )
            self.sent = evaluation.newly_sent
            report.notifications = evaluation.events
            for note in evaluation.events:
                self.bus.publish(NOTIFICATION, {"id": note.id, "title": note.title, "body": note.body})
            return report
        finally:
            self._running = False

    def _rollover(self, today: date, report: CycleReport) -> None:
        rollover = process(self.snapshot.templates, today)
        if not rollover.materialized:
            return

        candidate = replace(
            self.snapshot,
            transactions=prepend_transactions(self.snapshot.transactions, rollover.materialized),
            templates=rollover.updated_templates,
        )
        try:
            save_snapshot(self.store, candidate, keys=(TRANSACTIONS_KEY, TEMPLATES_KEY))
        except StorageError as e:
            logger.error("Could not store recurring rollover for %s: %s", today, e)
            report.errors.append(str(e))
            self.bus.publish(STORAGE_FAILED, {"error": str(e), "stage": "rollover"})
            return

        self.snapshot = candidate
        report.materialized = rollover.materialized
        for t in rollover.materialized:
            self.bus.publish(TRANSACTION_ADDED, {"id": t.id, "amount": t.amount, "category": t.category})

    def apply(self, mutator: Callable[[Snapshot], Snapshot], keys=None) -> Optional[str]:
        """Apply a user action and store the result.

        Returns an error message when storing failed; the in-memory snapshot
        then stays as it was. Invalid input from the mutator propagates as
        ``ValueError``.
        """
        updated = mutator(self.snapshot)
        try:
            if keys is None:
                save_snapshot(self.store, updated)
            else:
                save_snapshot(self.store, updated, keys=keys)
        except StorageError as e:
            logger.error("Could not store change: %s", e)
            self.bus.publish(STORAGE_FAILED, {"error": str(e), "stage": "apply"})
            return str(e)
        self.snapshot = updated
        return None
