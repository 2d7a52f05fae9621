"""Service layer used by the CLI and the interactive console."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from mtsics_sim.core.dispatcher import CommandDispatcher
from mtsics_sim.core.engine import SimulatorEngine
from mtsics_sim.core.events import EventBus
from mtsics_sim.core.model import CommandRule, Event, EventKind, InstrumentProfile, SerialSettings
from mtsics_sim.core.profile_loader import load_profile
from mtsics_sim.transports.base import Transport
from mtsics_sim.transports.loopback import LoopbackTransport
from mtsics_sim.transports.serial_port import SerialTransport

DEFAULT_PORT = "/dev/ttyUSB1"
DEFAULT_BAUDRATE = 38400
LOOPBACK_ADDRESS = "loopback"
LOGGER = logging.getLogger(__name__)


class SimulatorService:
    """Owns one engine and the configuration it was built from."""

    def __init__(
        self,
        *,
        profile_path: Path | str | None = None,
        baudrate: int = DEFAULT_BAUDRATE,
        transport: Transport | None = None,
    ) -> None:
        loaded = load_profile(profile_path)
        self.profile: InstrumentProfile = loaded.profile
        self.profile_source = loaded.source
        self.settings = SerialSettings(baudrate=baudrate)
        self.transport: Transport = transport or SerialTransport()
        self.bus = EventBus()
        self.engine = SimulatorEngine(
            self.transport,
            self.profile,
            settings=self.settings,
            dispatcher=CommandDispatcher(self.profile),
            bus=self.bus,
        )

    def list_commands(self) -> list[CommandRule]:
        return sorted(self.engine.dispatcher.list_rules(), key=lambda rule: rule.command_id)

    def watch(self, kinds: tuple[EventKind, ...], sink: Callable[[Event], None]) -> None:
        for kind in kinds:
            self.engine.subscribe(kind, sink)

    def start(self, port: str) -> bool:
        return self.engine.open(port)

    def stop(self, timeout: float = 2.0) -> None:
        self.engine.close()
        if not self.engine.wait_closed(timeout):
            LOGGER.warning("Transport did not confirm close within %.1fs", timeout)
        self.bus.flush(timeout=timeout)
        self.bus.close()

    def query(self, lines: list[str]) -> list[str]:
        """Answer command lines offline through a loopback transport."""
        loopback = LoopbackTransport()
        engine = SimulatorEngine(
            loopback,
            self.profile,
            settings=self.settings,
            dispatcher=self.engine.dispatcher,
            bus=self.bus,
        )
        if not engine.open(LOOPBACK_ADDRESS):
            return []
        responses: list[str] = []
        try:
            for line in lines:
                loopback.feed(line + "\r\n")
                responses.extend(loopback.drain())
        finally:
            engine.close()
        return responses
