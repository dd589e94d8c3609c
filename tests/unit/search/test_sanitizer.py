"""Unit tests for feed field sanitization."""

from __future__ import annotations

import json

import pytest

from site_search.search.sanitizer import (
    EMPTY_ARRAY,
    INT64_MAX,
    INT64_MIN,
    bounded_int,
    sanitize,
    sanitize_structured,
    validate_date,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, ""),
        ("plain text", "plain text"),
        ("nul\x00byte", "nulbyte"),
        ("bell\x07 and \x1bescape", "bell and escape"),
        ("keep\ttabs\nand\r\nnewlines", "keep\ttabs\nand\r\nnewlines"),
        ("c1\x85control", "c1control"),
        (b"caf\xc3\xa9", "café"),
        (b"bad\xffbyte", "bad�byte"),
        (42, "42"),
    ],
)
def test_sanitize_cleans_text(raw, expected):
    assert sanitize(raw) == expected


def test_sanitize_replaces_lone_surrogates():
    text = json.loads('"broken \\udc80 surrogate"')
    cleaned = sanitize(text)
    cleaned.encode("utf-8")
    assert "\udc80" not in cleaned


@pytest.mark.parametrize("raw", ["", "abc", "a\x00b\x01c", "ünïcødé \x9f", b"\xfe\xff", "\ud800x"])
def test_sanitize_is_idempotent_and_nul_free(raw):
    once = sanitize(raw)
    assert "\x00" not in once
    assert sanitize(once) == once
    once.encode("utf-8")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, []),
        (["a", "b"], ["a", "b"]),
        (("x", "y"), ["x", "y"]),
        ("not json", ["not json"]),
        ("[1,2]", [1, 2]),
        ('["python", "sqlite"]', ["python", "sqlite"]),
        ("", []),
        ("   ", []),
        ('{"a": 1}', []),
        ("42", []),
        (7, []),
        ({"tags": ["a"]}, []),
    ],
)
def test_sanitize_structured(raw, expected):
    result = sanitize_structured(raw)
    assert json.loads(result) == expected


def test_sanitize_structured_strips_control_characters_from_items():
    assert json.loads(sanitize_structured(["ta\x00g", 3, None])) == ["tag", 3, None]


def test_sanitize_structured_output_is_compact_and_keeps_unicode():
    assert sanitize_structured(["café", "naïve"]) == '["café","naïve"]'


def test_sanitize_structured_rejects_circular_lists():
    items: list = []
    items.append(items)
    assert sanitize_structured(items) == EMPTY_ARRAY


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (0, 0),
        (INT64_MAX, INT64_MAX),
        (INT64_MIN, INT64_MIN),
        (INT64_MAX + 1, str(INT64_MAX + 1)),
        (INT64_MIN - 1, str(INT64_MIN - 1)),
    ],
)
def test_bounded_int(value, expected):
    assert bounded_int(value) == expected


def test_sanitize_structured_stringifies_oversized_integers():
    assert sanitize_structured([123456789012345678901234567890, 5]) == '["123456789012345678901234567890",5]'
    assert sanitize_structured("[123456789012345678901234567890]") == '["123456789012345678901234567890"]'


def test_sanitize_structured_bounds_nested_integers_and_keeps_booleans():
    nested = [{"n": 2**70, "flag": True}, [2**64, "x\x00y"]]

    assert json.loads(sanitize_structured(nested)) == [{"n": str(2**70), "flag": True}, [str(2**64), "xy"]]


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2024-02-29", True),
        ("2023-02-29", False),
        ("2024-02-30", False),
        ("2024-01-01", True),
        ("2024-13-01", False),
        ("2024-1-01", False),
        ("2024-01-01T00:00:00", False),
        (" 2024-01-01", False),
        ("", False),
        (None, False),
        (20240101, False),
    ],
)
def test_validate_date(value, expected):
    assert validate_date(value) is expected
