"""
Conversions from literal values into Python numbers and strings.

Every conversion either succeeds or raises EvaluationAbort; none of them
return an error value.
"""
from __future__ import annotations

from plbridge.pl_datatypes import (
    EvaluationAbort, LiteralValue, UnsignedInteger, SignedInteger, FloatingPoint,
    Boolean, Character, String, PatternReference, U128_MAX, kind_of,
)

_BIT_WIDTH = 128


def sign_extend(bits: int, value: int) -> int:
    """Interpret the low `bits` bits of `value` as a two's-complement number."""
    if bits <= 0:
        return 0
    value &= (1 << bits) - 1
    sign_bit = 1 << (bits - 1)
    return (value ^ sign_bit) - sign_bit


def to_unsigned(value: LiteralValue) -> int:
    # Negative values keep their 128-bit two's-complement pattern: -1 -> 2**128 - 1
    match value:
        case UnsignedInteger(value=v):
            return v
        case SignedInteger(value=v):
            return v & U128_MAX
        case Boolean(value=b):
            return int(b)
        case Character(value=c):
            return ord(c)
        case FloatingPoint() | String() | PatternReference():
            raise EvaluationAbort(f"expected integral value, got {kind_of(value)}")
        case _:
            raise TypeError(f"not a literal value: {value!r}")


def to_signed(value: LiteralValue) -> int:
    match value:
        case UnsignedInteger(value=v):
            return sign_extend(_BIT_WIDTH, v)
        case SignedInteger(value=v):
            return v
        case Boolean(value=b):
            return int(b)
        case Character(value=c):
            return ord(c)
        case FloatingPoint() | String() | PatternReference():
            raise EvaluationAbort(f"expected integral value, got {kind_of(value)}")
        case _:
            raise TypeError(f"not a literal value: {value!r}")


def to_float(value: LiteralValue) -> float:
    match value:
        case UnsignedInteger(value=v) | SignedInteger(value=v):
            return float(v)
        case FloatingPoint(value=f):
            return f
        case Boolean(value=b):
            return 1.0 if b else 0.0
        case Character(value=c):
            return float(ord(c))
        case String() | PatternReference():
            raise EvaluationAbort(f"expected numeric value, got {kind_of(value)}")
        case _:
            raise TypeError(f"not a literal value: {value!r}")


def character_text(c: str) -> str:
    """
    The text of a one-byte Character. Bytes above 0x7F are not code points
    on their own, so they become the escaped byte that encode_text writes back.
    """
    if ord(c) < 0x80:
        return c
    return decode_text(bytes([ord(c)]))


def to_string(value: LiteralValue, coerce_non_string: bool) -> str:
    """
    Returns the text of a String literal. With `coerce_non_string`, any
    other literal is rendered instead of rejected.
    """
    match value:
        case String(value=s):
            return s
        case _ if not coerce_non_string:
            raise EvaluationAbort(f"expected string value, got {kind_of(value)}")
        case UnsignedInteger(value=v) | SignedInteger(value=v):
            return str(v)
        case FloatingPoint(value=f):
            return repr(f)
        case Boolean(value=b):
            return "true" if b else "false"
        case Character(value=c):
            return character_text(c)
        case PatternReference(pattern=p):
            return p.to_string()
        case _:
            raise TypeError(f"not a literal value: {value!r}")


def to_native(value: LiteralValue):
    """Unwraps a literal for template substitution; patterns become their text."""
    match value:
        case PatternReference(pattern=p):
            return p.to_string()
        case Character(value=c):
            return character_text(c)
        case (UnsignedInteger(value=v) | SignedInteger(value=v) | FloatingPoint(value=v)
              | Boolean(value=v) | String(value=v)):
            return v
        case _:
            raise TypeError(f"not a literal value: {value!r}")


def encode_text(text: str) -> bytes:
    """Script strings carry arbitrary bytes; surrogateescape keeps them lossless."""
    return text.encode("utf-8", errors="surrogateescape")


def decode_text(data: bytes) -> str:
    return bytes(data).decode("utf-8", errors="surrogateescape")
