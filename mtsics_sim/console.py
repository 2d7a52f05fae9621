"""Interactive console driving an engine over a loopback transport."""

from __future__ import annotations

from collections.abc import Callable

from mtsics_sim.core.engine import SimulatorEngine
from mtsics_sim.transports.loopback import LoopbackTransport

HELP_TEXT = """Type an MT-SICS command (e.g. S, I4, M02) to see the balance response.
  :state   show the connection state
  :open    reopen the loopback connection
  :close   close the connection
  :help    show this help
  :quit    leave the console"""


class Console:
    def __init__(
        self,
        engine: SimulatorEngine,
        loopback: LoopbackTransport,
        *,
        address: str,
        echo: Callable[[str], None],
    ) -> None:
        self.engine = engine
        self.loopback = loopback
        self.address = address
        self.echo = echo

    def handle(self, line: str) -> bool:
        """Handle one input line. Returns False when the session should end."""
        command = line.strip()
        if command == ":quit":
            return False
        if command == ":help":
            self.echo(HELP_TEXT)
        elif command == ":state":
            self.echo(str(self.engine.state))
        elif command == ":open":
            self.engine.open(self.address)
            self.echo(str(self.engine.state))
        elif command == ":close":
            self.engine.close()
            self.echo(str(self.engine.state))
        elif not self.loopback.is_open():
            self.echo(f"Engine is {self.engine.state}; use :open first")
        else:
            self.loopback.feed(line + "\r\n")
            for response in self.loopback.drain():
                self.echo(response)
        return True

    def run(self, read: Callable[[], str]) -> None:
        if not self.engine.open(self.address):
            self.echo(f"Could not open {self.address}")
            return
        try:
            while True:
                try:
                    line = read()
                except EOFError:
                    break
                if not self.handle(line):
                    break
        finally:
            self.engine.close()
