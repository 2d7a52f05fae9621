"""MT-SICS command table and response generation."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable
from datetime import datetime, timezone

from mtsics_sim.core.model import CommandRule, InstrumentProfile

WEIGHT_UNIT = "KG"
LOGGER = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def synthetic_weight(now: datetime) -> str:
    """Weight derived from the wall clock; steps by 10 every 10 seconds."""
    return f"{math.floor(now.second / 10) * 10:.2f}"


def _weight_rule(command_id: str, status: str, description: str) -> CommandRule:
    return CommandRule(
        command_id=command_id,
        description=description,
        respond=lambda _profile, now: f"{command_id} {status} {synthetic_weight(now)} {WEIGHT_UNIT}",
    )


def _quoted_rule(
    command_id: str,
    description: str,
    field: Callable[[InstrumentProfile], str],
) -> CommandRule:
    return CommandRule(
        command_id=command_id,
        description=description,
        respond=lambda profile, _now: f'{command_id} A "{field(profile)}"',
    )


def _plain_rule(
    command_id: str,
    description: str,
    field: Callable[[InstrumentProfile], str],
) -> CommandRule:
    return CommandRule(
        command_id=command_id,
        description=description,
        respond=lambda profile, _now: f"{command_id} A {field(profile)}",
    )


DEFAULT_RULES: tuple[CommandRule, ...] = (
    _weight_rule("S", "S", "Stable weight value"),
    _weight_rule("TA", "A", "Tare weight value"),
    _quoted_rule("I11", "Balance model", lambda p: p.model),
    _quoted_rule("I2", "Balance type", lambda p: p.type),
    _quoted_rule("I4", "Serial number", lambda p: p.serial_number),
    _quoted_rule("I3", "Firmware revision", lambda p: p.firmware_rev),
    _plain_rule("M01", "Weighing mode", lambda p: p.configuration.weigh_mode),
    _plain_rule("M02", "Environmental stability", lambda p: p.configuration.environmental_stability),
    _plain_rule("M03", "Auto zero mode", lambda p: p.configuration.auto_zero_mode),
    _plain_rule("M16", "Standby timeout", lambda p: p.configuration.standby_timeout),
)


def acknowledge(command_id: str) -> str:
    return f"{command_id} A"


class CommandDispatcher:
    """Maps canonical command IDs to response text.

    Lookup is by exact token equality. Anything not in the table, e.g. TIM,
    DAT, I10, D, DW or M12, gets a bare acknowledgement.
    """

    def __init__(
        self,
        profile: InstrumentProfile,
        *,
        rules: Iterable[CommandRule] = DEFAULT_RULES,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._profile = profile
        self._clock = clock
        self._rules: dict[str, CommandRule] = {rule.command_id: rule for rule in rules}

    @property
    def profile(self) -> InstrumentProfile:
        return self._profile

    def list_rules(self) -> list[CommandRule]:
        return list(self._rules.values())

    def dispatch(self, command_id: str) -> str:
        rule = self._rules.get(command_id)
        if rule is None:
            LOGGER.debug("No rule for %s, sending acknowledgement", command_id)
            return acknowledge(command_id)
        return rule.respond(self._profile, self._clock())
