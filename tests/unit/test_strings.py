import pytest

import bloks_parser as bp
import bloks_values as bv


def _only_arg(payload):
    return bp.parse(payload).blok_args[0]


def test_newline_escape():
    assert _only_arg('(test, "hello\\nworld")') == bv.string("hello\nworld")

def test_all_single_escapes():
    assert _only_arg('(test, "\\b\\f\\r\\t\\n")') == bv.string("\b\f\r\t\n")

def test_escaped_quotes_and_backslashes():
    assert _only_arg('(test, "say \\"hello\\"")') == bv.string('say "hello"')
    assert _only_arg('(test, "path\\\\to\\\\file")') == bv.string("path\\to\\file")

def test_unicode_escape():
    assert _only_arg('(test, "hello\\u0020world")') == bv.string("hello world")
    assert _only_arg('(test, "\\u00e9\\u00C9")') == bv.string("éÉ")

def test_unknown_escape_keeps_character():
    assert _only_arg('(test, "a\\qb\\/c")') == bv.string("aqb/c")

def test_non_ascii_passes_through():
    assert _only_arg('(test, "héllo 😀")') == bv.string("héllo 😀")

def test_surrogate_pair_escapes_are_not_recombined():
    value = _only_arg('(test, "\\ud83d\\ude00")')
    assert value == bv.string(chr(0xD83D) + chr(0xDE00))
    assert len(value.data) == 2
    assert value.data != chr(0x1F600)

def test_invalid_hex_escape_reports_offset():
    with pytest.raises(bv.BloksParserError) as ei:
        bp.parse('(test, "\\u123g")')
    err = ei.value
    assert err.kind == bv.INVALID_ESCAPE_SEQUENCE
    assert err.literal == "\\u123"
    assert err.position == 13
    assert "invalid escape sequence \\u123" in str(err)

def test_short_unicode_escape_reports_offset():
    with pytest.raises(bv.BloksParserError) as ei:
        bp.parse('(test, "\\u12")')
    assert ei.value.kind == bv.INVALID_ESCAPE_SEQUENCE
    assert ei.value.literal == "\\u12"
    assert ei.value.position == 12

def test_unicode_escape_cut_off_by_end_of_input():
    with pytest.raises(bv.BloksParserError) as ei:
        bp.parse('"\\u00')
    assert ei.value.kind == bv.INVALID_ESCAPE_SEQUENCE
    assert ei.value.position == 5

def test_unterminated_string_reports_opening_quote():
    with pytest.raises(bv.BloksParserError) as ei:
        bp.parse('(test, "hello)')
    assert ei.value.kind == bv.UNTERMINATED_STRING
    assert ei.value.position == 7
    assert "unterminated string starting at offset 7" in str(ei.value)

def test_trailing_backslash_is_unterminated():
    with pytest.raises(bv.BloksParserError) as ei:
        bp.parse('"abc\\')
    assert ei.value.kind == bv.UNTERMINATED_STRING
    assert ei.value.position == 0

def test_error_is_a_syntax_error():
    with pytest.raises(SyntaxError):
        bp.parse('"open')
