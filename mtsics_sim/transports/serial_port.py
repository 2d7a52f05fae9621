"""Serial transport implementation using pyserial."""

from __future__ import annotations

import logging
import threading

import serial

from mtsics_sim.core.errors import TransportOpenError, TransportWriteError
from mtsics_sim.core.model import SerialSettings
from mtsics_sim.transports.base import LINE_TERMINATOR, TransportListener

READ_TIMEOUT_S = 0.1
WRITE_TIMEOUT_S = 1.0
LOGGER = logging.getLogger(__name__)


class SerialTransport:
    """Serial device with a background reader thread.

    The reader buffers partial reads until CR LF and hands complete lines to
    the listener. Close completion is reported from the reader thread once
    it exits.
    """

    def __init__(self, *, read_timeout_s: float = READ_TIMEOUT_S) -> None:
        self._read_timeout_s = read_timeout_s
        self._port: serial.Serial | None = None
        self._listener: TransportListener | None = None
        self._reader: threading.Thread | None = None
        self._stopping = threading.Event()

    def open(self, address: str, settings: SerialSettings, listener: TransportListener) -> None:
        try:
            port = serial.Serial(
                port=address,
                baudrate=settings.baudrate,
                bytesize=settings.bytesize,
                stopbits=settings.stopbits,
                parity=settings.parity,
                timeout=self._read_timeout_s,
                write_timeout=WRITE_TIMEOUT_S,
            )
        except (serial.SerialException, ValueError) as exc:
            raise TransportOpenError(f"Could not open serial port {address}: {exc}") from exc

        LOGGER.info("Opened %s at %d baud", address, settings.baudrate)
        self._port = port
        self._listener = listener
        self._stopping.clear()
        self._reader = threading.Thread(
            target=self._read_loop,
            args=(port, listener),
            name=f"mtsics-serial-{address}",
            daemon=True,
        )
        self._reader.start()

    def write(self, data: bytes) -> None:
        port = self._port
        if port is None or not port.is_open:
            raise TransportWriteError("Serial port is not open")
        try:
            port.write(data)
            port.flush()
        except serial.SerialException as exc:
            raise TransportWriteError(f"Serial write failed: {exc}") from exc

    def close(self) -> None:
        port = self._port
        if port is None:
            return
        self._stopping.set()
        try:
            port.cancel_read()
        except (AttributeError, serial.SerialException):
            pass
        port.close()

    def is_open(self) -> bool:
        return self._port is not None and self._port.is_open

    def _read_loop(self, port: serial.Serial, listener: TransportListener) -> None:
        buffer = b""
        try:
            while not self._stopping.is_set():
                try:
                    chunk = port.read_until(LINE_TERMINATOR)
                except (serial.SerialException, TypeError, OSError) as exc:
                    if not self._stopping.is_set():
                        listener.on_error(str(exc))
                    return
                if not chunk:
                    continue
                buffer += chunk
                while LINE_TERMINATOR in buffer:
                    line, buffer = buffer.split(LINE_TERMINATOR, 1)
                    listener.on_line(line)
        finally:
            if port.is_open:
                port.close()
            self._port = None
            LOGGER.info("Serial port %s closed", port.port)
            listener.on_close()
