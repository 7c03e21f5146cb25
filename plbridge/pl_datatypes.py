"""
Defines the runtime value types exchanged between the pattern language
evaluator and the builtin functions.

A literal is exactly one of the variants below. Code that needs to look
inside a literal matches on the variant explicitly; there is no implicit
conversion between them (see pl_coerce for the conversion rules).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Union

U128_MAX = (1 << 128) - 1
I128_MIN = -(1 << 127)
I128_MAX = (1 << 127) - 1


class EvaluationAbort(Exception):
    """Terminates the current builtin call; the message is shown to the script author."""
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# =================================================================
# Pattern capability
# =================================================================

class Pattern(ABC):
    """A compound value owned by the evaluator (struct, array, bitfield...)."""

    @abstractmethod
    def to_string(self) -> str:
        raise NotImplementedError


# =================================================================
# Literal variants
# =================================================================

@dataclass(frozen=True)
class UnsignedInteger:
    value: int

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValueError(f"UnsignedInteger expects an int, not {type(self.value).__name__}")
        if not 0 <= self.value <= U128_MAX:
            raise ValueError(f"UnsignedInteger out of 128-bit range: {self.value}")


@dataclass(frozen=True)
class SignedInteger:
    value: int

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValueError(f"SignedInteger expects an int, not {type(self.value).__name__}")
        if not I128_MIN <= self.value <= I128_MAX:
            raise ValueError(f"SignedInteger out of 128-bit range: {self.value}")


@dataclass(frozen=True)
class FloatingPoint:
    value: float

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise ValueError(f"FloatingPoint expects a float, not {type(self.value).__name__}")
        object.__setattr__(self, "value", float(self.value))


@dataclass(frozen=True)
class Boolean:
    value: bool

    def __post_init__(self):
        if not isinstance(self.value, bool):
            raise ValueError(f"Boolean expects a bool, not {type(self.value).__name__}")


@dataclass(frozen=True)
class Character:
    """A single byte-sized character (code point 0..0xFF)."""
    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or len(self.value) != 1 or ord(self.value) > 0xFF:
            raise ValueError(f"Character expects a single byte-sized character, got {self.value!r}")


@dataclass(frozen=True)
class String:
    value: str

    def __post_init__(self):
        if not isinstance(self.value, str):
            raise ValueError(f"String expects a str, not {type(self.value).__name__}")


@dataclass(frozen=True)
class PatternReference:
    pattern: Pattern

    def __post_init__(self):
        if not callable(getattr(self.pattern, "to_string", None)):
            raise ValueError("PatternReference expects an object with a to_string() method")


LiteralValue = Union[
    UnsignedInteger, SignedInteger, FloatingPoint, Boolean, Character, String, PatternReference
]


def kind_of(value: LiteralValue) -> str:
    """Human-readable variant name, used in abort messages."""
    match value:
        case UnsignedInteger():
            return "unsigned integer"
        case SignedInteger():
            return "signed integer"
        case FloatingPoint():
            return "floating point"
        case Boolean():
            return "boolean"
        case Character():
            return "character"
        case String():
            return "string"
        case PatternReference():
            return "pattern"
        case _:
            raise TypeError(f"not a literal value: {value!r}")
