from __future__ import annotations

import threading
from pathlib import Path

import pytest

from mtsics_sim.core.model import ConnectionState, Event, EventKind, SerialSettings
from mtsics_sim.core.service import SimulatorService
from mtsics_sim.transports.base import TransportListener


class ThreadedCloseTransport:
    """Reports close completion from another thread, like the serial reader."""

    def __init__(self) -> None:
        self.listener: TransportListener | None = None
        self._open = False

    def open(self, address: str, settings: SerialSettings, listener: TransportListener) -> None:
        self.listener = listener
        self._open = True

    def write(self, data: bytes) -> None:
        pass

    def close(self) -> None:
        listener = self.listener

        def _finish() -> None:
            threading.Event().wait(0.05)
            self._open = False
            assert listener is not None
            listener.on_close()

        threading.Thread(target=_finish, daemon=True).start()

    def is_open(self) -> bool:
        return self._open


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))


def test_stop_delivers_closed_state_from_reader_thread() -> None:
    service = SimulatorService(transport=ThreadedCloseTransport())
    states: list[str] = []
    service.watch((EventKind.STATE,), lambda event: states.append(str(event.payload)))

    assert service.start("/dev/ttyUSB1")
    service.stop()

    assert service.engine.state is ConnectionState.CLOSED
    assert states == ["Opening", "Offline", "Closing", "Closed"]


def test_query_answers_without_serial_device() -> None:
    service = SimulatorService(transport=ThreadedCloseTransport())
    received: list[Event] = []
    service.watch((EventKind.TX,), received.append)

    assert service.query(["I4", "M01"]) == ['I4 A "X12345678"', "M01 A 0"]
    service.stop()
    assert [event.payload for event in received] == ['I4 A "X12345678"', "M01 A 0"]
