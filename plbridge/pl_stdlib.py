"""
Python implementations of the pattern language builtins.

Each library groups the functions of one namespace. Methods marked with
`builtin_function` / `dangerous_function` are bound into the session's
registry; they receive the evaluation context and the already
arity-checked argument list.
"""
from __future__ import annotations

import contextlib
import math
import re
from typing import List, Optional

import httpx

from plbridge.pl_coerce import (
    to_unsigned, to_signed, to_float, to_string, sign_extend, encode_text, decode_text,
)
from plbridge.pl_config import BridgeConfig
from plbridge.pl_context import EvaluationContext, LogLevel
from plbridge.pl_datatypes import (
    EvaluationAbort, LiteralValue, UnsignedInteger, SignedInteger, FloatingPoint, Character, String,
)
from plbridge.pl_files import FileHandleTable
from plbridge.pl_format import format_literals
from plbridge.pl_http import http_get_string
from plbridge.pl_registry import ParameterCount, builtin_function, dangerous_function
from plbridge.pl_search import find_sequence_in_range

Params = List[LiteralValue]
MAX_READ_SIZE = 16

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_HEX_FLOAT_PREFIX = re.compile(
    r"[+-]?0x(?:[0-9a-f]+\.?[0-9a-f]*|\.[0-9a-f]+)(?:p[+-]?\d+)?",
    re.IGNORECASE,
)
_FLOAT_PREFIX = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)


# ===================================================================
# Numeric parsing (strtoll / strtod prefix semantics)
# ===================================================================

def parse_int_prefix(text: str, base: int) -> int:
    """Parses the longest valid integer prefix; returns 0 when there is none."""
    if base != 0 and not 2 <= base <= 36:
        return 0
    s = text.lstrip()
    sign = 1
    if s[:1] in ("+", "-"):
        sign = -1 if s[0] == "-" else 1
        s = s[1:]

    has_hex_prefix = s[:2].lower() == "0x" and len(s) > 2 and s[2] in "0123456789abcdefABCDEF"
    if base == 0:
        if has_hex_prefix:
            base, s = 16, s[2:]
        elif s[:1] == "0":
            base = 8
        else:
            base = 10
    elif base == 16 and has_hex_prefix:
        s = s[2:]

    value = 0
    digits = 0
    for ch in s:
        if not ch.isascii():
            break
        try:
            d = int(ch, 36)
        except ValueError:
            break
        if d >= base:
            break
        value = value * base + d
        digits += 1
    if digits == 0:
        return 0
    return max(_INT64_MIN, min(_INT64_MAX, sign * value))


def parse_float_prefix(text: str) -> float:
    s = text.lstrip()
    m = _HEX_FLOAT_PREFIX.match(s)
    if m:
        try:
            return float.fromhex(m.group(0))
        except OverflowError:
            return -math.inf if m.group(0).startswith("-") else math.inf
    m = _FLOAT_PREFIX.match(s)
    if not m:
        return 0.0
    return float(m.group(0))


# ===================================================================
# IEEE-754 style math helpers
# ===================================================================

def _is_odd_integer(y: float) -> bool:
    return y.is_integer() and y % 2 == 1


def _unary(func, x: float, overflow: Optional[float] = None) -> float:
    try:
        return float(func(x))
    except OverflowError:
        return overflow if overflow is not None else math.copysign(math.inf, x)
    except ValueError:
        return math.nan


def _integral(func, x: float) -> float:
    if not math.isfinite(x):
        return x
    r = float(func(x))
    # keep the sign of zero results: ceil(-0.5) == -0.0
    return math.copysign(r, x) if r == 0 else r


def _round_half_away(x: float) -> float:
    if not math.isfinite(x):
        return x
    a = abs(x)
    r = math.floor(a)
    if a - r >= 0.5:
        r += 1
    return math.copysign(float(r), x)


def _log(func, x: float) -> float:
    if x == 0:
        return -math.inf
    return _unary(func, x)


def _atanh(x: float) -> float:
    if abs(x) == 1:
        return math.copysign(math.inf, x)
    return _unary(math.atanh, x)


def _pow(base: float, exp: float) -> float:
    try:
        return math.pow(base, exp)
    except OverflowError:
        return -math.inf if base < 0 and _is_odd_integer(exp) else math.inf
    except ValueError:
        if base == 0:
            # pole: pow(-0.0, -3) == -inf, pow(0.0, -2) == inf
            return math.copysign(math.inf, base) if _is_odd_integer(exp) else math.inf
        return math.nan


def _fmod(x: float, y: float) -> float:
    try:
        return math.fmod(x, y)
    except ValueError:
        return math.nan


# ===================================================================
# Libraries
# ===================================================================

class StdLibrary:
    """Console, formatting and environment builtins."""
    namespace = ("std",)

    @builtin_function("print", ParameterCount.more_than(0))
    def _print(self, ctx: EvaluationContext, params: Params):
        ctx.log(LogLevel.INFO, format_literals(params))
        return None

    @builtin_function("format", ParameterCount.more_than(0))
    def _format(self, ctx: EvaluationContext, params: Params):
        return String(format_literals(params))

    @builtin_function("env", ParameterCount.exactly(1))
    def _env(self, ctx: EvaluationContext, params: Params):
        name = to_string(params[0], False)
        value = ctx.get_env_variable(name)
        if value is None:
            ctx.log(LogLevel.WARNING, f"environment variable '{name}' does not exist")
            return String("")
        return String(value)

    @builtin_function("sizeof_pack", ParameterCount.at_least(0))
    def _sizeof_pack(self, ctx: EvaluationContext, params: Params):
        return UnsignedInteger(len(params))

    @builtin_function("error", ParameterCount.exactly(1))
    def _error(self, ctx: EvaluationContext, params: Params):
        raise EvaluationAbort(to_string(params[0], True))

    @builtin_function("warning", ParameterCount.exactly(1))
    def _warning(self, ctx: EvaluationContext, params: Params):
        ctx.log(LogLevel.WARNING, to_string(params[0], True))
        return None


class MemLibrary:
    """Reads from the data being analysed."""
    namespace = ("std", "mem")

    def __init__(self, config: BridgeConfig):
        self.config = config

    @builtin_function("base_address", ParameterCount.none())
    def _base_address(self, ctx: EvaluationContext, params: Params):
        return UnsignedInteger(ctx.get_data_base_address())

    @builtin_function("size", ParameterCount.none())
    def _size(self, ctx: EvaluationContext, params: Params):
        return UnsignedInteger(ctx.get_data_size())

    @builtin_function("find_sequence_in_range", ParameterCount.more_than(3))
    def _find_sequence_in_range(self, ctx: EvaluationContext, params: Params):
        occurrence_index = to_unsigned(params[0])
        offset_from = to_unsigned(params[1])
        offset_to = to_unsigned(params[2])

        sequence = []
        for i, param in enumerate(params[3:], start=3):
            byte = to_unsigned(param)
            if byte > 0xFF:
                raise EvaluationAbort(f"byte #{i} value out of range: {byte} > 0xFF")
            sequence.append(byte)

        offset = find_sequence_in_range(ctx, occurrence_index, offset_from, offset_to, sequence,
                                        chunk_size=self.config.search_chunk_size)
        if offset < 0:
            return SignedInteger(-1)
        return UnsignedInteger(offset)

    def _read_sized(self, ctx: EvaluationContext, params: Params) -> tuple[bytes, int]:
        address = to_unsigned(params[0])
        size = to_unsigned(params[1])
        if size > MAX_READ_SIZE:
            raise EvaluationAbort("read size out of range")
        return ctx.read_data(address, size), size

    @builtin_function("read_unsigned", ParameterCount.exactly(2))
    def _read_unsigned(self, ctx: EvaluationContext, params: Params):
        data, _ = self._read_sized(ctx, params)
        return UnsignedInteger(int.from_bytes(data, "little"))

    @builtin_function("read_signed", ParameterCount.exactly(2))
    def _read_signed(self, ctx: EvaluationContext, params: Params):
        data, size = self._read_sized(ctx, params)
        return SignedInteger(sign_extend(size * 8, int.from_bytes(data, "little")))

    @builtin_function("read_string", ParameterCount.exactly(2))
    def _read_string(self, ctx: EvaluationContext, params: Params):
        address = to_unsigned(params[0])
        size = to_unsigned(params[1])
        return String(decode_text(ctx.read_data(address, size)))


class StringLibrary:
    """String helpers. Lengths and indices count UTF-8 bytes."""
    namespace = ("std", "string")

    @builtin_function("length", ParameterCount.exactly(1))
    def _length(self, ctx: EvaluationContext, params: Params):
        return UnsignedInteger(len(encode_text(to_string(params[0], False))))

    @builtin_function("at", ParameterCount.exactly(2))
    def _at(self, ctx: EvaluationContext, params: Params):
        data = encode_text(to_string(params[0], False))
        index = to_signed(params[1])
        # -len(data) is the first character; len(data) is past the end
        if index >= len(data) or -index > len(data):
            raise EvaluationAbort("character index out of range")
        return Character(chr(data[index]))

    @builtin_function("substr", ParameterCount.exactly(3))
    def _substr(self, ctx: EvaluationContext, params: Params):
        data = encode_text(to_string(params[0], False))
        pos = to_unsigned(params[1])
        count = to_unsigned(params[2])
        if pos > len(data):
            raise EvaluationAbort("character index out of range")
        return String(decode_text(data[pos:pos + count]))

    @builtin_function("parse_int", ParameterCount.exactly(2))
    def _parse_int(self, ctx: EvaluationContext, params: Params):
        text = to_string(params[0], False)
        base = to_unsigned(params[1])
        return SignedInteger(parse_int_prefix(text, base))

    @builtin_function("parse_float", ParameterCount.exactly(1))
    def _parse_float(self, ctx: EvaluationContext, params: Params):
        return FloatingPoint(parse_float_prefix(to_string(params[0], False)))


class HttpLibrary:
    namespace = ("std", "http")

    def __init__(self, config: BridgeConfig):
        self.config = config

    @dangerous_function("get", ParameterCount.exactly(1))
    def _get(self, ctx: EvaluationContext, params: Params):
        url = to_string(params[0], False)
        ctx._dbg("HTTP GET", url)
        try:
            return String(http_get_string(url, self.config.http_options()))
        except httpx.HTTPError as e:
            raise EvaluationAbort(f"failed to fetch {url}: {e}") from None


def _file_offset(value: LiteralValue, what: str) -> int:
    """Offsets and sizes handed to the OS must fit a signed 64-bit off_t."""
    n = to_unsigned(value)
    if n > _INT64_MAX:
        raise EvaluationAbort(f"file {what} out of range: {n}")
    return n


@contextlib.contextmanager
def _host_io():
    try:
        yield
    except OSError as e:
        raise EvaluationAbort(f"file operation failed: {e.strerror or e}") from None
    except OverflowError as e:
        raise EvaluationAbort(f"file operation failed: {e}") from None


class FileLibrary:
    """File access through the session's handle table."""
    namespace = ("std", "file")

    def __init__(self, files: FileHandleTable):
        self.files = files

    @dangerous_function("open", ParameterCount.exactly(2))
    def _open(self, ctx: EvaluationContext, params: Params):
        path = to_string(params[0], False)
        mode = to_unsigned(params[1])
        handle = self.files.open(path, mode)
        ctx._dbg("FILE OPEN", path, "mode", mode, "->", handle)
        return UnsignedInteger(handle)

    @dangerous_function("close", ParameterCount.exactly(1))
    def _close(self, ctx: EvaluationContext, params: Params):
        with _host_io():
            self.files.close(to_unsigned(params[0]))
        return None

    @dangerous_function("read", ParameterCount.exactly(2))
    def _read(self, ctx: EvaluationContext, params: Params):
        handle = to_unsigned(params[0])
        size = _file_offset(params[1], "read size")
        with _host_io():
            return String(self.files.read(handle, size))

    @dangerous_function("write", ParameterCount.exactly(2))
    def _write(self, ctx: EvaluationContext, params: Params):
        handle = to_unsigned(params[0])
        data = to_string(params[1], True)
        with _host_io():
            self.files.write(handle, data)
        return None

    @dangerous_function("seek", ParameterCount.exactly(2))
    def _seek(self, ctx: EvaluationContext, params: Params):
        handle = to_unsigned(params[0])
        offset = _file_offset(params[1], "offset")
        with _host_io():
            self.files.seek(handle, offset)
        return None

    @dangerous_function("size", ParameterCount.exactly(1))
    def _size(self, ctx: EvaluationContext, params: Params):
        with _host_io():
            return UnsignedInteger(self.files.size(to_unsigned(params[0])))

    @dangerous_function("resize", ParameterCount.exactly(2))
    def _resize(self, ctx: EvaluationContext, params: Params):
        handle = to_unsigned(params[0])
        size = _file_offset(params[1], "size")
        with _host_io():
            self.files.resize(handle, size)
        return None

    @dangerous_function("flush", ParameterCount.exactly(1))
    def _flush(self, ctx: EvaluationContext, params: Params):
        with _host_io():
            self.files.flush(to_unsigned(params[0]))
        return None

    @dangerous_function("remove", ParameterCount.exactly(1))
    def _remove(self, ctx: EvaluationContext, params: Params):
        with _host_io():
            self.files.remove(to_unsigned(params[0]))
        return None


class MathLibrary:
    """Double precision math. Domain errors give nan, poles and overflow give inf."""
    namespace = ("std", "math")

    # --- Rounding ---
    @builtin_function("floor", ParameterCount.exactly(1))
    def _floor(self, ctx, params): return FloatingPoint(_integral(math.floor, to_float(params[0])))
    @builtin_function("ceil", ParameterCount.exactly(1))
    def _ceil(self, ctx, params): return FloatingPoint(_integral(math.ceil, to_float(params[0])))
    @builtin_function("round", ParameterCount.exactly(1))
    def _round(self, ctx, params): return FloatingPoint(_round_half_away(to_float(params[0])))
    @builtin_function("trunc", ParameterCount.exactly(1))
    def _trunc(self, ctx, params): return FloatingPoint(_integral(math.trunc, to_float(params[0])))

    # --- Logarithms and powers ---
    @builtin_function("log10", ParameterCount.exactly(1))
    def _log10(self, ctx, params): return FloatingPoint(_log(math.log10, to_float(params[0])))
    @builtin_function("log2", ParameterCount.exactly(1))
    def _log2(self, ctx, params): return FloatingPoint(_log(math.log2, to_float(params[0])))
    @builtin_function("ln", ParameterCount.exactly(1))
    def _ln(self, ctx, params): return FloatingPoint(_log(math.log, to_float(params[0])))
    @builtin_function("fmod", ParameterCount.exactly(2))
    def _fmod(self, ctx, params): return FloatingPoint(_fmod(to_float(params[0]), to_float(params[1])))
    @builtin_function("pow", ParameterCount.exactly(2))
    def _pow(self, ctx, params): return FloatingPoint(_pow(to_float(params[0]), to_float(params[1])))
    @builtin_function("sqrt", ParameterCount.exactly(1))
    def _sqrt(self, ctx, params): return FloatingPoint(_unary(math.sqrt, to_float(params[0])))
    @builtin_function("cbrt", ParameterCount.exactly(1))
    def _cbrt(self, ctx, params): return FloatingPoint(_unary(math.cbrt, to_float(params[0])))

    # --- Trigonometry ---
    @builtin_function("sin", ParameterCount.exactly(1))
    def _sin(self, ctx, params): return FloatingPoint(_unary(math.sin, to_float(params[0])))
    @builtin_function("cos", ParameterCount.exactly(1))
    def _cos(self, ctx, params): return FloatingPoint(_unary(math.cos, to_float(params[0])))
    @builtin_function("tan", ParameterCount.exactly(1))
    def _tan(self, ctx, params): return FloatingPoint(_unary(math.tan, to_float(params[0])))
    @builtin_function("asin", ParameterCount.exactly(1))
    def _asin(self, ctx, params): return FloatingPoint(_unary(math.asin, to_float(params[0])))
    @builtin_function("acos", ParameterCount.exactly(1))
    def _acos(self, ctx, params): return FloatingPoint(_unary(math.acos, to_float(params[0])))
    @builtin_function("atan", ParameterCount.exactly(1))
    def _atan(self, ctx, params): return FloatingPoint(_unary(math.atan, to_float(params[0])))
    @builtin_function("atan2", ParameterCount.exactly(2))
    def _atan2(self, ctx, params): return FloatingPoint(math.atan2(to_float(params[0]), to_float(params[1])))

    # --- Hyperbolic ---
    @builtin_function("sinh", ParameterCount.exactly(1))
    def _sinh(self, ctx, params): return FloatingPoint(_unary(math.sinh, to_float(params[0])))
    @builtin_function("cosh", ParameterCount.exactly(1))
    def _cosh(self, ctx, params): return FloatingPoint(_unary(math.cosh, to_float(params[0]), overflow=math.inf))
    @builtin_function("tanh", ParameterCount.exactly(1))
    def _tanh(self, ctx, params): return FloatingPoint(_unary(math.tanh, to_float(params[0])))
    @builtin_function("asinh", ParameterCount.exactly(1))
    def _asinh(self, ctx, params): return FloatingPoint(_unary(math.asinh, to_float(params[0])))
    @builtin_function("acosh", ParameterCount.exactly(1))
    def _acosh(self, ctx, params): return FloatingPoint(_unary(math.acosh, to_float(params[0])))
    @builtin_function("atanh", ParameterCount.exactly(1))
    def _atanh(self, ctx, params): return FloatingPoint(_atanh(to_float(params[0])))


def default_libraries(files: FileHandleTable, config: BridgeConfig) -> list:
    return [
        StdLibrary(),
        MemLibrary(config),
        StringLibrary(),
        HttpLibrary(config),
        FileLibrary(files),
        MathLibrary(),
    ]
