import pytest

from plbridge import BuiltinSession, MemoryContext, LogLevel
from plbridge.pl_datatypes import (
    EvaluationAbort, Pattern, PatternReference, UnsignedInteger, SignedInteger, FloatingPoint,
    Boolean, Character, String,
)
from plbridge.pl_format import format_literals, format_template


class Header(Pattern):
    def to_string(self):
        return "Header { magic: 0x7F }"


def test_positional_and_implicit_fields():
    assert format_template("{} + {} = {}", [1, 2, 3]) == "1 + 2 = 3"
    assert format_template("{1}{0}", ["a", "b"]) == "ba"
    assert format_template("{0:#x} {0:08b}", [10]) == "0xa 00001010"


def test_literal_kinds_are_substituted_natively():
    out = format_literals([
        String("{} {} {:.2f} {} {} {}"),
        UnsignedInteger(255), SignedInteger(-1), FloatingPoint(3.14159), Boolean(True), Character("z"),
        PatternReference(Header()),
    ])
    assert out == "255 -1 3.14 true z Header { magic: 0x7F }"


def test_booleans_follow_the_presentation_type():
    assert format_literals([String("{} {:d} {:>6}"), Boolean(False), Boolean(True), Boolean(True)]) == "false 1   true"


def test_template_itself_may_be_a_non_string_literal():
    assert format_literals([UnsignedInteger(7)]) == "7"


@pytest.mark.parametrize("template,args", [
    ("{} {}", [1]),          # too few arguments
    ("{", []),               # malformed
    ("{name}", [1]),         # named fields are not supported
    ("{0.real}", [1]),       # neither is attribute access
    ("{0[0]}", ["ab"]),      # nor indexing
    ("{:d}", ["text"]),      # bad spec for the value
    ("{} {1}", [1, 2]),      # mixing implicit and explicit numbering
])
def test_template_failures_abort(template, args):
    with pytest.raises(EvaluationAbort) as ei:
        format_template(template, args)
    assert ei.value.message.startswith("format error: ")


def test_print_logs_at_info_and_returns_no_value():
    ctx = MemoryContext()
    session = BuiltinSession(ctx)
    res = session.call("std::print", [String("value = {}"), UnsignedInteger(5)])
    assert res.ok
    assert res.value is None
    assert ctx.messages(LogLevel.INFO) == ["value = 5"]


def test_format_returns_string():
    session = BuiltinSession(MemoryContext())
    res = session.call("std::format", [String("{:>4}|"), String("ab")])
    assert res.value == String("  ab|")


def test_format_error_is_reported_through_the_call_result():
    ctx = MemoryContext()
    session = BuiltinSession(ctx)
    res = session.call("std::format", [String("{} {}"), UnsignedInteger(1)])
    assert res.status == "error"
    assert res.error_message.startswith("format error:")
    assert res.format_error().startswith("Error in std::format: format error:")
    assert ctx.messages(LogLevel.ERROR) == [res.format_error()]


def test_characters_taken_from_utf8_text_reassemble_it():
    session = BuiltinSession(MemoryContext())
    s = String("é")
    parts = [session.call("std::string::at", [s, UnsignedInteger(i)]).value for i in (0, 1)]
    res = session.call("std::format", [String("{}{}")] + parts)
    assert res.value == s
    assert session.call("std::string::length", [res.value]).value == UnsignedInteger(2)
