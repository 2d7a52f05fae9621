"""Transport interfaces."""

from __future__ import annotations

from typing import Protocol

from mtsics_sim.core.model import SerialSettings

LINE_TERMINATOR = b"\r\n"
# Single-byte codec so every received byte maps to one character and back.
LINE_ENCODING = "latin-1"


class TransportListener(Protocol):
    def on_line(self, line: bytes) -> None:
        """Receive one complete line with its terminator removed."""

    def on_error(self, description: str) -> None:
        """Receive a runtime transport failure."""

    def on_close(self) -> None:
        """Receive notice that the transport has finished closing."""


class Transport(Protocol):
    def open(self, address: str, settings: SerialSettings, listener: TransportListener) -> None:
        """Open the device and start reporting lines to ``listener``."""

    def write(self, data: bytes) -> None:
        """Write raw bytes to the device."""

    def close(self) -> None:
        """Begin closing; completion is reported through ``on_close``."""

    def is_open(self) -> bool:
        """Return whether the device is currently open."""
