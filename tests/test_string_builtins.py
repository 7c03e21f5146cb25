import math

import pytest

from plbridge import BuiltinSession, MemoryContext
from plbridge.pl_datatypes import UnsignedInteger, SignedInteger, FloatingPoint, Character, String
from plbridge.pl_stdlib import parse_int_prefix, parse_float_prefix


@pytest.fixture
def session():
    return BuiltinSession(MemoryContext())


def call_ok(session, name, *args):
    res = session.call(f"std::string::{name}", list(args))
    assert res.status == "success", res.error_message
    return res.value


def call_err(session, name, *args):
    res = session.call(f"std::string::{name}", list(args))
    assert res.status == "error", f"expected error, got success: {res.value!r}"
    return res.error_message


def test_length_counts_utf8_bytes(session):
    assert call_ok(session, "length", String("hello")) == UnsignedInteger(5)
    assert call_ok(session, "length", String("")) == UnsignedInteger(0)
    assert call_ok(session, "length", String("é")) == UnsignedInteger(2)
    assert "expected string value" in call_err(session, "length", UnsignedInteger(5))


def test_at_positive_and_negative_indices(session):
    s = String("hello")
    assert call_ok(session, "at", s, UnsignedInteger(0)) == Character("h")
    assert call_ok(session, "at", s, SignedInteger(4)) == Character("o")
    assert call_ok(session, "at", s, SignedInteger(-1)) == Character("o")
    # Magnitude equal to the length is the first character when negative
    assert call_ok(session, "at", s, SignedInteger(-5)) == Character("h")


def test_at_out_of_range_aborts(session):
    s = String("hello")
    assert call_err(session, "at", s, UnsignedInteger(5)) == "character index out of range"
    assert call_err(session, "at", s, SignedInteger(-6)) == "character index out of range"
    assert call_err(session, "at", String(""), SignedInteger(0)) == "character index out of range"


def test_substr_clamps_count_but_checks_position(session):
    s = String("hello")
    assert call_ok(session, "substr", s, UnsignedInteger(2), UnsignedInteger(10)) == String("llo")
    assert call_ok(session, "substr", s, UnsignedInteger(1), UnsignedInteger(3)) == String("ell")
    assert call_ok(session, "substr", s, UnsignedInteger(5), UnsignedInteger(1)) == String("")
    assert call_err(session, "substr", s, UnsignedInteger(6), UnsignedInteger(1)) == "character index out of range"


def test_parse_int(session):
    assert call_ok(session, "parse_int", String("ff"), UnsignedInteger(16)) == SignedInteger(255)
    assert call_ok(session, "parse_int", String("0x1F"), UnsignedInteger(16)) == SignedInteger(31)
    assert call_ok(session, "parse_int", String("  -42abc"), UnsignedInteger(10)) == SignedInteger(-42)
    assert call_ok(session, "parse_int", String("not-a-number"), UnsignedInteger(10)) == SignedInteger(0)
    assert call_ok(session, "parse_int", String(""), UnsignedInteger(10)) == SignedInteger(0)


def test_parse_int_prefix_edge_cases():
    assert parse_int_prefix("0x10", 0) == 16
    assert parse_int_prefix("010", 0) == 8
    assert parse_int_prefix("10", 0) == 10
    assert parse_int_prefix("101", 2) == 5
    assert parse_int_prefix("z", 36) == 35
    assert parse_int_prefix("12", 1) == 0
    assert parse_int_prefix("12", 37) == 0
    assert parse_int_prefix("0xg", 16) == 0
    assert parse_int_prefix("99999999999999999999", 10) == (1 << 63) - 1
    assert parse_int_prefix("-99999999999999999999", 10) == -(1 << 63)
    assert parse_int_prefix("٣", 10) == 0


def test_parse_float(session):
    assert call_ok(session, "parse_float", String("3.5")) == FloatingPoint(3.5)
    assert call_ok(session, "parse_float", String("  -1e3xyz")) == FloatingPoint(-1000.0)
    assert call_ok(session, "parse_float", String("garbage")) == FloatingPoint(0.0)


def test_parse_float_prefix_edge_cases():
    assert parse_float_prefix(".5") == 0.5
    assert parse_float_prefix("1e") == 1.0
    assert parse_float_prefix("7.") == 7.0
    assert parse_float_prefix("-inf") == -math.inf
    assert math.isnan(parse_float_prefix("nan"))
    assert parse_float_prefix("") == 0.0


def test_parse_float_accepts_hexadecimal_floats(session):
    assert parse_float_prefix("0x10") == 16.0
    assert parse_float_prefix("0x1p3") == 8.0
    assert parse_float_prefix("  -0X1.8p1zz") == -3.0
    assert parse_float_prefix("0x.8") == 0.5
    assert parse_float_prefix("0x1p") == 1.0
    assert parse_float_prefix("0xg") == 0.0
    assert parse_float_prefix("0x1p99999") == math.inf
    assert call_ok(session, "parse_float", String("0x1p3")) == FloatingPoint(8.0)
