"""MT-SICS protocol engine: connection lifecycle and line handling."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from mtsics_sim.core.dispatcher import CommandDispatcher
from mtsics_sim.core.errors import InvalidStateTransition, TransportError
from mtsics_sim.core.events import EventBus, Handler
from mtsics_sim.core.model import ConnectionState, EventKind, InstrumentProfile, SerialSettings
from mtsics_sim.core.normalizer import normalize_line
from mtsics_sim.transports.base import LINE_ENCODING, LINE_TERMINATOR, Transport

_TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.CLOSED: frozenset({ConnectionState.OPENING}),
    ConnectionState.OPENING: frozenset({ConnectionState.OFFLINE, ConnectionState.CLOSED}),
    ConnectionState.OFFLINE: frozenset({ConnectionState.INITIALIZING, ConnectionState.CLOSING}),
    ConnectionState.INITIALIZING: frozenset({ConnectionState.ONLINE, ConnectionState.CLOSING}),
    ConnectionState.ONLINE: frozenset({ConnectionState.CLOSING}),
    ConnectionState.CLOSING: frozenset({ConnectionState.CLOSED}),
}
OPEN_STATES = frozenset({ConnectionState.OFFLINE, ConnectionState.INITIALIZING, ConnectionState.ONLINE})
LOGGER = logging.getLogger(__name__)


class SimulatorEngine:
    """Simulated balance bound to a borrowed transport.

    Every public operation and every transport callback runs under one
    re-entrant lock, so lines are handled one at a time and a close request
    arriving mid-dispatch waits for the dispatch to finish. Failures are
    reported through ``error`` events, never raised to the caller.
    """

    def __init__(
        self,
        transport: Transport,
        profile: InstrumentProfile | None = None,
        *,
        settings: SerialSettings | None = None,
        dispatcher: CommandDispatcher | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self.profile = profile or InstrumentProfile()
        self.settings = settings or SerialSettings()
        self.dispatcher = dispatcher or CommandDispatcher(self.profile)
        self.bus = bus or EventBus()
        self._transport = transport
        self._state = ConnectionState.CLOSED
        self._lock = threading.RLock()
        self._closed = threading.Event()
        self._closed.set()

    @property
    def state(self) -> ConnectionState:
        return self._state

    def subscribe(self, kind: EventKind | str, handler: Handler) -> Callable[[], None]:
        return self.bus.subscribe(kind, handler)

    def wait_closed(self, timeout: float | None = None) -> bool:
        """Block until the engine reaches Closed, e.g. after an asynchronous close."""
        return self._closed.wait(timeout)

    def open(self, address: str) -> bool:
        with self._lock:
            if self._state is not ConnectionState.CLOSED:
                self.bus.publish(EventKind.ERROR, f"Cannot open {address}: engine is {self._state}")
                return False

            self._set_state(ConnectionState.OPENING)
            try:
                self._transport.open(address, self.settings, self)
            except (TransportError, OSError) as exc:
                self.bus.publish(EventKind.ERROR, f"Port failed to open: {exc}")
                self._set_state(ConnectionState.CLOSED)
                return False

            self._set_state(ConnectionState.OFFLINE)
            return True

    def close(self) -> None:
        with self._lock:
            if self._state in (ConnectionState.CLOSED, ConnectionState.CLOSING):
                LOGGER.debug("Close ignored, engine is %s", self._state)
                return

            self._set_state(ConnectionState.CLOSING)
            if not self._transport.is_open():
                self._set_state(ConnectionState.CLOSED)
                return
            try:
                self._transport.close()
            except (TransportError, OSError) as exc:
                self.bus.publish(EventKind.ERROR, f"Port failed to close: {exc}")
                self._set_state(ConnectionState.CLOSED)

    def on_line(self, line: bytes) -> None:
        with self._lock:
            if self._state not in OPEN_STATES:
                LOGGER.debug("Dropping line received while %s: %r", self._state, line)
                return

            normalized = normalize_line(line.decode(LINE_ENCODING))
            if normalized is None:
                return
            self.bus.publish(EventKind.RX, normalized.text)
            if normalized.command_id is None:
                return

            self._write(self.dispatcher.dispatch(normalized.command_id))

    def on_error(self, description: str) -> None:
        with self._lock:
            if self._state is ConnectionState.CLOSED:
                LOGGER.warning("Transport error while closed: %s", description)
                return

            self.bus.publish(EventKind.ERROR, f"Port error: {description}")
            if self._state in OPEN_STATES:
                self.close()
            elif self._state is ConnectionState.CLOSING and not self._transport.is_open():
                self._set_state(ConnectionState.CLOSED)

    def on_close(self) -> None:
        with self._lock:
            if self._state is ConnectionState.CLOSED:
                return
            if self._state in OPEN_STATES:
                LOGGER.warning("Transport closed unexpectedly while %s", self._state)
                self._set_state(ConnectionState.CLOSING)
            self._set_state(ConnectionState.CLOSED)

    def _write(self, response: str) -> None:
        data = response.encode(LINE_ENCODING, errors="replace")
        try:
            self._transport.write(data + LINE_TERMINATOR)
        except (TransportError, OSError) as exc:
            self.on_error(f"write failed: {exc}")
            return
        self.bus.publish(EventKind.TX, data.decode(LINE_ENCODING))

    def _set_state(self, new_state: ConnectionState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise InvalidStateTransition(f"Cannot move from {self._state} to {new_state}")
        LOGGER.info("State %s -> %s", self._state, new_state)
        self._state = new_state
        self.bus.publish(EventKind.STATE, new_state)
        # Closed is signalled only once its state event is queued.
        if new_state is ConnectionState.CLOSED:
            self._closed.set()
        else:
            self._closed.clear()
