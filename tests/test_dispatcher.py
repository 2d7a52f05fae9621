from __future__ import annotations

import re
from datetime import datetime, timezone

import pytest

from mtsics_sim.core.dispatcher import CommandDispatcher, synthetic_weight
from mtsics_sim.core.model import InstrumentConfiguration, InstrumentProfile
from mtsics_sim.core.normalizer import normalize_line


def _clock(second: int):
    return lambda: datetime(2024, 5, 1, 12, 30, second, tzinfo=timezone.utc)


@pytest.fixture
def dispatcher() -> CommandDispatcher:
    return CommandDispatcher(InstrumentProfile(), clock=_clock(37))


@pytest.mark.parametrize(
    "command_id, response",
    [
        ("S", "S S 30.00 KG"),
        ("TA", "TA A 30.00 KG"),
        ("I11", 'I11 A "SimModel"'),
        ("I2", 'I2 A "SimType"'),
        ("I4", 'I4 A "X12345678"'),
        ("I3", 'I3 A "SIM.0.0.0"'),
        ("M01", "M01 A 0"),
        ("M02", "M02 A 2"),
        ("M03", "M03 A 1"),
        ("M16", "M16 A 0"),
    ],
)
def test_table_responses(dispatcher: CommandDispatcher, command_id: str, response: str) -> None:
    assert dispatcher.dispatch(command_id) == response


@pytest.mark.parametrize("command_id", ["TIM", "DAT", "I10", "D", "DW", "M12", "SR", "s", "I4X"])
def test_unknown_commands_are_acknowledged(dispatcher: CommandDispatcher, command_id: str) -> None:
    assert dispatcher.dispatch(command_id) == f"{command_id} A"


@pytest.mark.parametrize("second, weight", [(0, "0.00"), (9, "0.00"), (10, "10.00"), (59, "50.00")])
def test_synthetic_weight_steps_every_ten_seconds(second: int, weight: str) -> None:
    assert synthetic_weight(_clock(second)()) == weight


def test_weight_responses_use_current_clock() -> None:
    dispatcher = CommandDispatcher(InstrumentProfile())
    assert re.fullmatch(r"S S (0|10|20|30|40|50)\.00 KG", dispatcher.dispatch("S"))


def test_profile_values_are_reported() -> None:
    profile = InstrumentProfile(
        model="XPR205",
        serial_number="B123",
        configuration=InstrumentConfiguration(environmental_stability="4", standby_timeout="30"),
    )
    dispatcher = CommandDispatcher(profile)
    assert dispatcher.dispatch("I11") == 'I11 A "XPR205"'
    assert dispatcher.dispatch("I4") == 'I4 A "B123"'
    assert dispatcher.dispatch("M02") == "M02 A 4"
    assert dispatcher.dispatch("M16") == "M16 A 30"


def test_reset_and_serial_query_match(dispatcher: CommandDispatcher) -> None:
    reset = normalize_line("@")
    query = normalize_line("I4")
    assert reset is not None and query is not None
    assert dispatcher.dispatch(reset.command_id) == dispatcher.dispatch(query.command_id)


@pytest.mark.parametrize("raw, plain", [("SI", "S"), ("SIR", "SR"), ("SIX", "SX")])
def test_stability_prefix_matches_plain_request(dispatcher: CommandDispatcher, raw: str, plain: str) -> None:
    with_prefix = normalize_line(raw)
    without_prefix = normalize_line(plain)
    assert with_prefix is not None and without_prefix is not None
    assert dispatcher.dispatch(with_prefix.command_id) == dispatcher.dispatch(without_prefix.command_id)


def test_list_rules_covers_table(dispatcher: CommandDispatcher) -> None:
    ids = {rule.command_id for rule in dispatcher.list_rules()}
    assert ids == {"S", "TA", "I11", "I2", "I4", "I3", "M01", "M02", "M03", "M16"}
