"""Tests for turning the upstream body into an integer."""

import pytest

from pollgauge.collector.parser import parse_value
from pollgauge.errors import FetchStage, ParseError


def test_quoted_value():
    assert parse_value(b'"42"') == 42


def test_bare_value():
    assert parse_value(b"42") == 42


def test_str_input():
    assert parse_value('"17"') == 17


def test_signed_values():
    assert parse_value(b'"-5"') == -5
    assert parse_value(b"+7") == 7


def test_quotes_anywhere_are_stripped():
    assert parse_value(b'"1"2"') == 12


def test_non_numeric_fails():
    with pytest.raises(ParseError):
        parse_value(b'"abc"')


@pytest.mark.parametrize("body", [b"", b'""', b" 42", b"42\n", b"4 2", b"1_000", b"42.0", b"--1", b"+"])
def test_rejects_residue(body):
    with pytest.raises(ParseError):
        parse_value(body)


def test_rejects_non_ascii_digits():
    # Arabic-Indic digits; int() would accept these
    with pytest.raises(ParseError):
        parse_value("٤٢".encode("utf-8"))


def test_rejects_invalid_utf8():
    with pytest.raises(ParseError):
        parse_value(b"\xff\xfe")


def test_int64_bounds():
    assert parse_value(b"9223372036854775807") == 2 ** 63 - 1
    assert parse_value(b"-9223372036854775808") == -(2 ** 63)
    with pytest.raises(ParseError):
        parse_value(b"9223372036854775808")


def test_parse_error_stage():
    with pytest.raises(ParseError) as info:
        parse_value(b"nope")
    assert info.value.stage is FetchStage.PARSE
