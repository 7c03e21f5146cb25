import pytest

from plbridge.pl_coerce import (
    to_unsigned, to_signed, to_float, to_string, to_native, sign_extend, encode_text,
)
from plbridge.pl_datatypes import (
    EvaluationAbort, Pattern, UnsignedInteger, SignedInteger, FloatingPoint, Boolean,
    Character, String, PatternReference, U128_MAX, kind_of,
)


class Point(Pattern):
    def to_string(self):
        return "Point { x: 1, y: 2 }"


def test_literal_constructors_reject_out_of_domain_values():
    with pytest.raises(ValueError):
        UnsignedInteger(-1)
    with pytest.raises(ValueError):
        UnsignedInteger(1 << 128)
    with pytest.raises(ValueError):
        SignedInteger(1 << 127)
    with pytest.raises(ValueError):
        Character("ab")
    with pytest.raises(ValueError):
        Character("Ā")
    with pytest.raises(ValueError):
        Boolean(1)
    with pytest.raises(ValueError):
        UnsignedInteger(True)
    assert SignedInteger(-(1 << 127)).value == -(1 << 127)
    assert FloatingPoint(3).value == 3.0


def test_to_unsigned_accepts_integral_kinds():
    assert to_unsigned(UnsignedInteger(42)) == 42
    assert to_unsigned(SignedInteger(42)) == 42
    assert to_unsigned(Boolean(True)) == 1
    assert to_unsigned(Character("A")) == 0x41


def test_to_unsigned_widens_negative_values_as_twos_complement():
    # The bit pattern is kept; the magnitude is not taken
    assert to_unsigned(SignedInteger(-1)) == U128_MAX
    assert to_unsigned(SignedInteger(-1)) != 1
    assert to_unsigned(SignedInteger(-2)) == U128_MAX - 1
    assert to_unsigned(SignedInteger(-(1 << 127))) == 1 << 127


@pytest.mark.parametrize("value", [FloatingPoint(1.5), String("1"), PatternReference(Point())])
def test_to_unsigned_rejects_non_integral(value):
    with pytest.raises(EvaluationAbort) as ei:
        to_unsigned(value)
    assert "expected integral value" in ei.value.message


def test_to_signed_reinterprets_high_unsigned_values():
    assert to_signed(UnsignedInteger(U128_MAX)) == -1
    assert to_signed(UnsignedInteger((1 << 127) - 1)) == (1 << 127) - 1
    assert to_signed(SignedInteger(-5)) == -5
    assert to_signed(Character("\xff")) == 255
    with pytest.raises(EvaluationAbort):
        to_signed(FloatingPoint(2.0))


def test_signed_unsigned_roundtrip_preserves_bits():
    for v in (-1, -12345, 0, 7, -(1 << 127)):
        assert to_signed(UnsignedInteger(to_unsigned(SignedInteger(v)))) == v


def test_sign_extend():
    assert sign_extend(8, 0xFF) == -1
    assert sign_extend(8, 0x7F) == 127
    assert sign_extend(16, 0x8000) == -32768
    assert sign_extend(12, 0x1800) == -2048  # bits above the width are ignored
    assert sign_extend(0, 0x1234) == 0


def test_to_float_accepts_every_numeric_kind():
    assert to_float(UnsignedInteger(3)) == 3.0
    assert to_float(SignedInteger(-3)) == -3.0
    assert to_float(FloatingPoint(0.25)) == 0.25
    assert to_float(Boolean(True)) == 1.0
    assert to_float(Character("a")) == 97.0
    with pytest.raises(EvaluationAbort):
        to_float(String("1.0"))


def test_to_string_without_coercion_only_accepts_strings():
    assert to_string(String("abc"), False) == "abc"
    with pytest.raises(EvaluationAbort) as ei:
        to_string(UnsignedInteger(1), False)
    assert "expected string value, got unsigned integer" in ei.value.message


def test_to_string_with_coercion_renders_any_literal():
    assert to_string(UnsignedInteger(255), True) == "255"
    assert to_string(SignedInteger(-7), True) == "-7"
    assert to_string(FloatingPoint(1.5), True) == "1.5"
    assert to_string(Boolean(False), True) == "false"
    assert to_string(Character("x"), True) == "x"
    assert to_string(PatternReference(Point()), True) == "Point { x: 1, y: 2 }"


def test_to_native_renders_patterns_and_unwraps_the_rest():
    assert to_native(PatternReference(Point())) == "Point { x: 1, y: 2 }"
    assert to_native(UnsignedInteger(5)) == 5
    assert to_native(Boolean(True)) is True
    assert to_native(String("s")) == "s"


def test_high_byte_characters_render_as_the_byte_they_hold():
    for code in (0x80, 0xC3, 0xFF):
        c = Character(chr(code))
        assert encode_text(to_string(c, True)) == bytes([code])
        assert encode_text(to_native(c)) == bytes([code])
    assert to_native(Character("z")) == "z"


@pytest.mark.parametrize("func", [
    to_unsigned, to_signed, to_float, to_native, kind_of, lambda v: to_string(v, True),
])
def test_non_literals_are_host_errors_not_aborts(func):
    with pytest.raises(TypeError):
        func(42)
