import io

import pytest

from taperipper.display.fmt import (
    FmtOption,
    FormatWith,
    IndentWriter,
    as_alt,
    as_bin,
    as_hex,
    as_ptr,
    comma_delimited,
    opt,
    with_indent,
)


def test_format_with_uses_function():
    wrapped = FormatWith(3, lambda v: f"<{v * 2}>")
    assert repr(wrapped) == "<6>"
    assert str(wrapped) == "<6>"


def test_as_hex_pins_value():
    assert repr(as_hex(255)) == "0xff"


def test_as_bin_pins_value():
    assert repr(as_bin(5)) == "0b101"


def test_as_bin_round_trip():
    assert int(repr(as_bin(1234)), 2) == 1234


def test_as_ptr_round_trip():
    text = repr(as_ptr(0x1000))
    assert text.startswith("0x")
    assert int(text, 16) == 0x1000


def test_as_ptr_rejects_negative():
    with pytest.raises(ValueError):
        as_ptr(-1)


def test_as_alt_round_trips_structure():
    data = {"a": [1, 2, 3], "b": {"c": "d"}}
    assert eval_free_parse(repr(as_alt(data))) == data


def eval_free_parse(text):
    import ast

    return ast.literal_eval(text)


def test_opt_none_is_empty():
    assert str(opt(None)) == ""
    assert repr(opt(None)) == ""


def test_opt_or_else_fallback():
    assert str(opt(None).or_else("<none>")) == "<none>"
    assert f"{opt(None).or_else('-'):x}" == "-"


def test_opt_with_value_ignores_fallback():
    value = opt(42).or_else("<none>")
    assert str(value) == "42"
    assert int(f"{value:x}", 16) == 42
    assert repr(opt("s")) == repr("s")


def test_or_else_returns_new_option():
    base = FmtOption(None)
    changed = base.or_else("x")
    assert str(base) == ""
    assert str(changed) == "x"


def test_comma_delimited_invariant():
    buf = io.StringIO()
    comma_delimited(buf, ["a", "b", "c"])
    assert buf.getvalue().split(", ") == ["a", "b", "c"]


def test_comma_delimited_empty():
    buf = io.StringIO()
    comma_delimited(buf, [])
    assert buf.getvalue() == ""


def test_comma_delimited_single():
    buf = io.StringIO()
    comma_delimited(buf, iter([7]))
    assert buf.getvalue() == "7"


def test_with_indent_pins_value():
    buf = io.StringIO()
    with_indent(buf, 2).write("a\nb")
    assert buf.getvalue() == "a\n  b"


def test_with_indent_invariant():
    buf = io.StringIO()
    writer = with_indent(buf, 4)
    text = "first\nsecond\n\nthird"
    assert writer.write(text) == len(text)
    lines = buf.getvalue().split("\n")
    assert lines[0] == "first"
    assert all(line.startswith("    ") for line in lines[1:])
    assert "\n".join(line[4:] if i else line for i, line in enumerate(lines)) == text


def test_indent_writer_no_newline_passthrough():
    buf = io.StringIO()
    IndentWriter(buf, 3).write("plain")
    assert buf.getvalue() == "plain"