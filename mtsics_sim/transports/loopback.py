"""In-memory transport used by the interactive console and tests."""

from __future__ import annotations

import logging

from mtsics_sim.core.errors import TransportOpenError, TransportWriteError
from mtsics_sim.core.model import SerialSettings
from mtsics_sim.transports.base import LINE_ENCODING, LINE_TERMINATOR, TransportListener

LOGGER = logging.getLogger(__name__)


class LoopbackTransport:
    """Transport whose far end is the calling code.

    ``feed`` plays the role of the host sending bytes; everything the engine
    writes is collected in ``written``. Close completion is reported
    synchronously from ``close``.
    """

    def __init__(self) -> None:
        self.address: str | None = None
        self.settings: SerialSettings | None = None
        self.written: list[bytes] = []
        self._listener: TransportListener | None = None
        self._buffer = b""
        self._open = False

    def open(self, address: str, settings: SerialSettings, listener: TransportListener) -> None:
        if self._open:
            raise TransportOpenError(f"Loopback {address} is already open")
        self.address = address
        self.settings = settings
        self._listener = listener
        self._buffer = b""
        self._open = True
        LOGGER.debug("Loopback %s opened", address)

    def write(self, data: bytes) -> None:
        if not self._open:
            raise TransportWriteError("Loopback is not open")
        self.written.append(data)

    def close(self) -> None:
        if not self._open:
            return
        self._open = False
        listener = self._listener
        self._listener = None
        if listener is not None:
            listener.on_close()

    def is_open(self) -> bool:
        return self._open

    def feed(self, data: bytes | str) -> None:
        """Deliver host bytes, splitting complete CR LF lines to the listener."""
        if isinstance(data, str):
            data = data.encode(LINE_ENCODING, errors="replace")
        listener = self._listener
        if not self._open or listener is None:
            raise TransportWriteError("Loopback is not open")
        self._buffer += data
        while self._open and LINE_TERMINATOR in self._buffer:
            line, self._buffer = self._buffer.split(LINE_TERMINATOR, 1)
            listener.on_line(line)

    def fail(self, description: str) -> None:
        """Report a runtime error as a real device would."""
        if self._listener is not None:
            self._listener.on_error(description)

    def drain(self) -> list[str]:
        lines = [chunk.decode(LINE_ENCODING).removesuffix("\r\n") for chunk in self.written]
        self.written.clear()
        return lines
