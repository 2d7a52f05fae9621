"""Publish/subscribe delivery of engine events."""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from datetime import datetime, timezone

from mtsics_sim.core.model import Event, EventKind

Handler = Callable[[Event], None]
LOGGER = logging.getLogger(__name__)


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class EventBus:
    """Fire-and-forget event delivery.

    ``publish`` only enqueues. A single worker thread drains the queue and
    calls subscribers, so publication order is kept and a slow or failing
    subscriber never stalls the protocol path.
    """

    def __init__(self) -> None:
        self._handlers: dict[EventKind, list[Handler]] = {kind: [] for kind in EventKind}
        self._lock = threading.Lock()
        self._queue: queue.Queue[Event | None] = queue.Queue()
        self._worker: threading.Thread | None = None
        self._pending = 0
        self._delivered = threading.Condition()
        self._closed = False

    def subscribe(self, kind: EventKind | str, handler: Handler) -> Callable[[], None]:
        event_kind = EventKind(kind)
        with self._lock:
            self._handlers[event_kind].append(handler)

        def _unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers[event_kind]:
                    self._handlers[event_kind].remove(handler)

        return _unsubscribe

    def publish(self, kind: EventKind | str, payload: str) -> Event:
        event = Event(utc=utc_timestamp(), kind=EventKind(kind), payload=payload)
        if self._closed:
            LOGGER.debug("Event bus closed, dropping %s event", event.kind)
            return event
        self._ensure_worker()
        with self._delivered:
            self._pending += 1
        self._queue.put(event)
        return event

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until every queued event has been delivered."""
        with self._delivered:
            return self._delivered.wait_for(lambda: self._pending == 0, timeout)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._worker is not None:
            self._queue.put(None)
            self._worker.join()

    def _ensure_worker(self) -> None:
        with self._lock:
            if self._worker is None:
                self._worker = threading.Thread(target=self._run, name="mtsics-events", daemon=True)
                self._worker.start()

    def _run(self) -> None:
        while True:
            event = self._queue.get()
            if event is None:
                return
            try:
                self._deliver(event)
            finally:
                with self._delivered:
                    self._pending -= 1
                    self._delivered.notify_all()

    def _deliver(self, event: Event) -> None:
        with self._lock:
            handlers = list(self._handlers[event.kind])
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                LOGGER.exception("Subscriber failed while handling %s event", event.kind)
