"""Stable public API for embedding the simulator.

Build an engine around any object satisfying :class:`Transport`, subscribe
to its events, then drive it with ``open``/``close``.
"""

from __future__ import annotations

from mtsics_sim.core.dispatcher import CommandDispatcher, synthetic_weight
from mtsics_sim.core.engine import SimulatorEngine
from mtsics_sim.core.errors import (
    InvalidStateTransition,
    ProfileLoadError,
    ProfileValidationError,
    SimulatorError,
    TransportError,
    TransportOpenError,
    TransportWriteError,
)
from mtsics_sim.core.events import EventBus
from mtsics_sim.core.model import (
    CommandRule,
    ConnectionState,
    Event,
    EventKind,
    InstrumentConfiguration,
    InstrumentProfile,
    SerialSettings,
)
from mtsics_sim.core.normalizer import NormalizedLine, normalize_line
from mtsics_sim.core.profile_loader import load_profile
from mtsics_sim.transports.base import Transport, TransportListener
from mtsics_sim.transports.loopback import LoopbackTransport
from mtsics_sim.transports.serial_port import SerialTransport

__all__ = [
    "SimulatorError",
    "ProfileLoadError",
    "ProfileValidationError",
    "InvalidStateTransition",
    "TransportError",
    "TransportOpenError",
    "TransportWriteError",
    "CommandRule",
    "ConnectionState",
    "Event",
    "EventKind",
    "InstrumentConfiguration",
    "InstrumentProfile",
    "SerialSettings",
    "NormalizedLine",
    "normalize_line",
    "CommandDispatcher",
    "synthetic_weight",
    "EventBus",
    "SimulatorEngine",
    "Transport",
    "TransportListener",
    "LoopbackTransport",
    "SerialTransport",
    "load_profile",
    "create_engine",
]


def create_engine(
    transport: Transport,
    *,
    profile_path: str | None = None,
    baudrate: int = 38400,
) -> SimulatorEngine:
    """Build an engine with the resolved instrument profile."""
    loaded = load_profile(profile_path)
    return SimulatorEngine(transport, loaded.profile, settings=SerialSettings(baudrate=baudrate))
