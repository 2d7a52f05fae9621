from __future__ import annotations

import pytest

from mtsics_sim.core.normalizer import clean_line, extract_command_id, normalize_line


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("I4\r\n", "I4"),
        ("  S  ", "S"),
        ("\x1bM02\r", "M02"),
        ("T\rA\n", "TA"),
        ("@", "I4"),
        (" @\r\n", "I4"),
    ],
)
def test_clean_line(raw: str, expected: str) -> None:
    assert clean_line(raw) == expected


def test_reset_alias_only_applies_to_whole_line() -> None:
    assert clean_line("@X") == "@X"


@pytest.mark.parametrize("raw", ["", "   ", "\r\n", "\x1b", " \t \r\n"])
def test_blank_input_is_ignored(raw: str) -> None:
    assert normalize_line(raw) is None


@pytest.mark.parametrize(
    "text, command_id",
    [
        ("S", "S"),
        ("SI", "S"),
        ("SIR", "SR"),
        ("SIU 1", "SU"),
        ("M01 2", "M01"),
        ("XSI", "XSI"),
        ("TA 12.5 g", "TA"),
    ],
)
def test_extract_command_id(text: str, command_id: str) -> None:
    assert extract_command_id(text) == command_id


def test_unsplittable_text_has_no_command_id() -> None:
    assert extract_command_id(" leading") is None


def test_normalize_keeps_cleaned_text() -> None:
    normalized = normalize_line("SIR 5\r\n")
    assert normalized is not None
    assert normalized.text == "SIR 5"
    assert normalized.command_id == "SR"


def test_normalization_is_idempotent() -> None:
    first = clean_line("\x1b  I11 \r\n")
    assert clean_line(first) == first
