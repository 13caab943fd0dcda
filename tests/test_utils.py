"""Utility helper tests."""

from datetime import date

import pytest

from clinic_slots_agent.utils import (
    as_count,
    as_identifier,
    as_text,
    first_present,
    normalise_whitespace,
    parse_month,
    to_iso_date,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2025-11-03", "2025-11-03"),
        ("2025-11-03T09:00:00Z", "2025-11-03"),
        ("2025-11-03T23:30:00-02:00", "2025-11-04"),
        ("2025-11-03T23:30:00", "2025-11-03"),
        ("2025-11-03 (Mon)", "2025-11-03"),
        ("03.11.2025", "2025-11-03"),
        ("2025/11/03", "2025-11-03"),
        ("2025.1.9", "2025-01-09"),
        ("2025-13-01", None),
        ("Monday", None),
        ("", None),
        (None, None),
        ({"date": "2025-11-03"}, None),
    ],
)
def test_to_iso_date(value, expected):
    assert to_iso_date(value) == expected


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("2025-11", date(2025, 11, 1)),
        ("2025-11-17", date(2025, 11, 1)),
        ("2025-11-17T10:00:00Z", date(2025, 11, 1)),
        ("17.11.2025", date(2025, 11, 1)),
        ("november", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_month(text, expected):
    assert parse_month(text) == expected


def test_identifier_normalisation():
    assert as_identifier(7) == "7"
    assert as_identifier(7.0) == "7"
    assert as_identifier(" 7 ") == "7"
    assert as_identifier(True) is None
    assert as_identifier(None) is None


def test_as_text_rejects_containers():
    assert as_text(["09:00"]) is None
    assert as_text("  09:00  ") == "09:00"
    assert as_text(900) == "900"


def test_as_count():
    assert as_count("3") == 3
    assert as_count(-1) is None
    assert as_count([1, 2]) is None
    assert as_count(False) is None


def test_first_present_skips_blanks_but_keeps_zero():
    assert first_present({"a": "", "b": 0}, ("a", "b")) == 0
    assert first_present({"a": None}, ("a", "b")) is None


def test_normalise_whitespace():
    assert normalise_whitespace("  Dr.\n  Lin ") == "Dr. Lin"
