import logging
from datetime import datetime
from typing import Callable, Dict, List, NamedTuple

__all__ = ['EventBus', 'Event', 'TRANSACTION_ADDED', 'NOTIFICATION', 'STORAGE_FAILED']

logger = logging.getLogger(__name__)


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


Handler = Callable[[Event, dict], dict]


class EventBus:
    def __init__(self):
        self._subscribers: Dict[str, List[Handler]] = {}

    def subscribe(self, name: str, handler: Handler) -> None:
        self._subscribers.setdefault(name, []).append(handler)

    def publish(self, name: str, payload: dict) -> List[dict]:
        """Deliver ``payload`` to every handler subscribed to ``name``.

        A failing handler is logged and reported as ``{"error": ...}`` in the
        results; the remaining handlers still run.
        """
        handlers = list(self._subscribers.get(name, ()))
        if not handlers:
            return []

        event = Event(name=name, ts=datetime.now().isoformat(), payload=payload)

        results = []
        for handler in handlers:
            try:
                result = handler(event, payload)
            except Exception as e:
                logger.exception("Handler %s failed for %s", getattr(handler, "__name__", handler), name)
                result = {"error": str(e)}
            results.append(result if result is not None else {})
        return results

    def unsubscribe(self, name: str, handler: Handler) -> None:
        if handler in self._subscribers.get(name, ()):
            self._subscribers[name].remove(handler)


TRANSACTION_ADDED = "TRANSACTION_ADDED"
NOTIFICATION = "NOTIFICATION"
STORAGE_FAILED = "STORAGE_FAILED"
