from __future__ import annotations
import string
from typing import Sequence

from plbridge.pl_coerce import to_string, to_native, encode_text, decode_text
from plbridge.pl_datatypes import EvaluationAbort, LiteralValue


class _PositionalFormatter(string.Formatter):
    """str.format restricted to positional fields: '{}', '{1}', '{0:#x}'."""

    def get_field(self, field_name, args, kwargs):
        # Auto-numbered fields arrive here already numbered
        if not field_name.isdigit():
            raise ValueError(f"unsupported replacement field '{{{field_name}}}'")
        index = int(field_name)
        if index >= len(args):
            raise IndexError(f"argument index {index} out of range ({len(args)} arguments given)")
        return args[index], field_name


class _ScriptBool:
    """Formats as true/false, or as 0/1 under a numeric presentation type."""
    __slots__ = ("value",)

    def __init__(self, value: bool):
        self.value = value

    def __format__(self, spec: str) -> str:
        if spec and spec[-1] in "bcdoxXn":
            return format(int(self.value), spec)
        if spec and spec[-1] in "eEfFgG%":
            return format(float(self.value), spec)
        return format("true" if self.value else "false", spec)


_formatter = _PositionalFormatter()


def format_template(template: str, args: Sequence) -> str:
    try:
        return _formatter.vformat(template, tuple(args), {})
    except (ValueError, IndexError, KeyError, TypeError) as e:
        raise EvaluationAbort(f"format error: {e}") from None


def format_literals(params: Sequence[LiteralValue]) -> str:
    """Renders params[0] as the template and the rest as its arguments."""
    template = to_string(params[0], True)
    args = []
    for p in params[1:]:
        value = to_native(p)
        args.append(_ScriptBool(value) if isinstance(value, bool) else value)
    # Escaped bytes from Characters rejoin into the UTF-8 text they came from
    return decode_text(encode_text(format_template(template, args)))
