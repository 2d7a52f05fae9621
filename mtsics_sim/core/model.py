"""Core data models shared by the engine, loader, and CLI."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable


class ConnectionState(str, Enum):
    CLOSED = "Closed"
    OPENING = "Opening"
    OFFLINE = "Offline"
    INITIALIZING = "Initializing"
    ONLINE = "Online"
    CLOSING = "Closing"

    def __str__(self) -> str:
        return self.value


class EventKind(str, Enum):
    STATE = "state"
    RX = "rx"
    TX = "tx"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class InstrumentConfiguration:
    weigh_mode: str = "0"
    environmental_stability: str = "2"
    auto_zero_mode: str = "1"
    standby_timeout: str = "0"


@dataclass(frozen=True)
class InstrumentProfile:
    make: str = "Mettler Toledo"
    model: str = "SimModel"
    type: str = "SimType"
    serial_number: str = "X12345678"
    firmware_rev: str = "SIM.0.0.0"
    configuration: InstrumentConfiguration = InstrumentConfiguration()


@dataclass(frozen=True)
class SerialSettings:
    """Line settings for the serial device. Framing is fixed at 8N1."""

    baudrate: int = 38400
    bytesize: int = 8
    stopbits: int = 1
    parity: str = "N"


@dataclass(frozen=True)
class CommandRule:
    command_id: str
    description: str
    respond: Callable[[InstrumentProfile, datetime], str]


@dataclass(frozen=True)
class Event:
    utc: str
    kind: EventKind
    payload: str
