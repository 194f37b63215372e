# bloks_parser.py
# Recursive-descent parser for bloks payloads
#
# =============================================================================
#  PARSER IMPLEMENTATION: RECURSIVE DESCENT OVER A CHARACTER CURSOR
# =============================================================================
#
# Grammar (whitespace allowed between every token):
#
#   value := blok | string | number | "true" | "false" | "null"
#   blok  := '(' ['#'] name (',' value)* [','] ')'
#   name  := local:  [letters digits _ - :]+
#            global: [letters digits _ .]+
#
# There is no separate token pass. Each production reads characters on
# demand from a Cursor that is created per call and threaded through every
# parsing function, so one BloksParser can serve many parses at once.
#
# Once a blok's closing paren is consumed, the (name, args, is_local) triple
# is handed to the registered processor for that name, then to the "@"
# registry entry, then to the parser's fallback. Processors therefore run
# post-order: a parent only ever sees arguments that were already processed.
#
# Depth guard defaults to DEPTH_LIMIT_DEFAULT nested bloks so adversarial
# nesting fails with a typed error instead of exhausting the interpreter stack.
#
# =============================================================================

import argparse
import sys
from types import MappingProxyType
from typing import Callable, List, Mapping, Optional

from bloks_processors import (
    BASIC_PROCESSORS,
    FALLBACK_KEY,
    Processor,
    default_processor,
)
from bloks_tree import dump_json, find_map, to_json, to_json_string
from bloks_values import (
    FALSE,
    NULL,
    TRUE,
    BloksParserError,
    Value,
    number,
    string,
)

# ---------------------------------------------------------------------------
# CONSTANTS AND TUNABLES
# ---------------------------------------------------------------------------
DEPTH_LIMIT_DEFAULT = 256    # nested bloks; two interpreter frames per level

_DIGITS       = frozenset("0123456789")
_HEX_DIGITS   = frozenset("0123456789abcdefABCDEF")
_NUMBER_START = frozenset("+-0123456789")
_LOCAL_EXTRA  = frozenset("_-:")
_GLOBAL_EXTRA = frozenset("_.")

_SIMPLE_ESCAPES = {
    '"':  '"',
    "\\": "\\",
    "b":  "\b",
    "f":  "\f",
    "r":  "\r",
    "t":  "\t",
    "n":  "\n",
}

_BOOLEAN_LITERALS = (("true", TRUE), ("false", FALSE))
_NULL_LITERALS    = (("null", NULL),)


# ---------------------------------------------------------------------------
# CURSOR
# ---------------------------------------------------------------------------
class Cursor:
    """
    Read position over an immutable input string.

    Offsets are str indices, i.e. characters rather than encoded bytes, so
    error positions stay meaningful for non-ASCII payloads.
    """
    __slots__ = ("text", "index")

    def __init__(self, text: str):
        self.text = text
        self.index = 0

    def current_char(self) -> Optional[str]:
        if self.index < len(self.text):
            return self.text[self.index]
        return None

    def advance(self) -> None:
        if self.index < len(self.text):
            self.index += 1

    def skip_whitespace(self) -> None:
        text = self.text
        while self.index < len(text) and text[self.index].isspace():
            self.index += 1

    def expect(self, expected: str) -> None:
        current = self.current_char()
        if current != expected:
            raise BloksParserError.expected_character(expected, current, self.index)
        self.index += 1

    def position(self) -> int:
        return self.index

    def has_prefix(self, literal: str) -> bool:
        return self.text.startswith(literal, self.index)


# ---------------------------------------------------------------------------
# LEXICAL PRODUCTIONS
# ---------------------------------------------------------------------------
def _parse_name(cursor: Cursor, is_local: bool) -> str:
    extra = _LOCAL_EXTRA if is_local else _GLOBAL_EXTRA
    start = cursor.position()
    while True:
        ch = cursor.current_char()
        if ch is None or not (ch.isalnum() or ch in extra):
            break
        cursor.advance()
    return cursor.text[start:cursor.position()]


def _read_unicode_escape(cursor: Cursor) -> str:
    """
    Read the four hex digits after \\u and return the code point as one char.

    Surrogate halves are returned as they are; a pair written as two
    escapes stays two separate characters.
    """
    digits = ""
    for _ in range(4):
        ch = cursor.current_char()
        if ch is None or ch not in _HEX_DIGITS:
            raise BloksParserError.invalid_escape_sequence("\\u" + digits, cursor.position())
        digits += ch
        cursor.advance()
    return chr(int(digits, 16))


def _parse_string(cursor: Cursor) -> Value:
    """
    Parse a double-quoted string.

    Unknown escapes keep the escaped character as-is (\\q reads as q).
    End of input anywhere before the closing quote, including straight
    after a backslash, is reported at the opening quote.
    """
    start = cursor.position()
    cursor.expect('"')
    chunks: List[str] = []
    while True:
        ch = cursor.current_char()
        if ch is None:
            raise BloksParserError.unterminated_string(start)
        if ch == '"':
            cursor.advance()
            return string("".join(chunks))
        if ch != "\\":
            chunks.append(ch)
            cursor.advance()
            continue

        cursor.advance()
        escaped = cursor.current_char()
        if escaped is None:
            raise BloksParserError.unterminated_string(start)
        if escaped == "u":
            cursor.advance()
            chunks.append(_read_unicode_escape(cursor))
            continue
        chunks.append(_SIMPLE_ESCAPES.get(escaped, escaped))
        cursor.advance()


def _skip_digits(cursor: Cursor) -> None:
    while cursor.current_char() in _DIGITS:
        cursor.advance()


def _parse_number(cursor: Cursor) -> Value:
    """
    Lex sign, digits, fraction and exponent by character class only, then
    let float() decide whether the text is a number.
    """
    start = cursor.position()
    if cursor.current_char() in ("+", "-"):
        cursor.advance()
    _skip_digits(cursor)
    if cursor.current_char() == ".":
        cursor.advance()
        _skip_digits(cursor)
    if cursor.current_char() in ("e", "E"):
        cursor.advance()
        if cursor.current_char() in ("+", "-"):
            cursor.advance()
        _skip_digits(cursor)

    literal = cursor.text[start:cursor.position()]
    try:
        return number(float(literal))
    except ValueError:
        raise BloksParserError.invalid_number(literal, start) from None


def _parse_literal(cursor: Cursor, literals) -> Value:
    start = cursor.position()
    for text, value in literals:
        if cursor.has_prefix(text):
            for _ in text:
                cursor.advance()
            return value
    raise BloksParserError.unexpected_character(cursor.current_char(), start)


# ---------------------------------------------------------------------------
# PARSER
# ---------------------------------------------------------------------------
class BloksParser:
    """
    Parser configured once with a processor registry.

    processors          name -> Processor; the "@" key, when present, handles
                        every name without an exact entry
    fallback_processor  used when neither an exact entry nor "@" exists;
                        defaults to rebuilding the blok unchanged
    max_depth           maximum blok nesting, or None for no limit

    The registry is copied into a read-only mapping and no parse state is
    kept on the instance, so parse() may be called concurrently.
    """

    def __init__(self, processors: Optional[Mapping[str, Processor]] = None,
                 fallback_processor: Processor = default_processor, *,
                 max_depth: Optional[int] = DEPTH_LIMIT_DEFAULT):
        self._processors = MappingProxyType(dict(processors or {}))
        self._fallback_processor = fallback_processor
        self._max_depth = max_depth

    @classmethod
    def with_basic_processors(cls, **kwargs) -> "BloksParser":
        return cls(BASIC_PROCESSORS, **kwargs)

    @property
    def processors(self) -> Mapping[str, Processor]:
        return self._processors

    @property
    def fallback_processor(self) -> Processor:
        return self._fallback_processor

    @property
    def max_depth(self) -> Optional[int]:
        return self._max_depth

    # -----------------------------------------------------------------------
    # PUBLIC API
    # -----------------------------------------------------------------------
    def parse(self, text: str) -> Value:
        """
        Parse exactly one top-level value; trailing whitespace is allowed,
        anything else after the value is an UNEXPECTED_CHARACTER error.

        Running out of interpreter stack (possible with max_depth=None) is
        reported as DEPTH_LIMIT_EXCEEDED at the offset reached.
        """
        cursor = Cursor(text)
        cursor.skip_whitespace()
        try:
            result = self._parse_value(cursor, 0)
        except RecursionError:
            raise BloksParserError.depth_limit_exceeded(self._max_depth, cursor.position()) from None
        cursor.skip_whitespace()
        trailing = cursor.current_char()
        if trailing is not None:
            raise BloksParserError.unexpected_character(trailing, cursor.position())
        return result

    # -----------------------------------------------------------------------
    # STRUCTURAL PRODUCTIONS
    # -----------------------------------------------------------------------
    def _parse_value(self, cursor: Cursor, depth: int) -> Value:
        cursor.skip_whitespace()
        ch = cursor.current_char()
        if ch is None:
            raise BloksParserError.unexpected_end_of_input(cursor.position())
        if ch == "(":
            return self._parse_blok(cursor, depth + 1)
        if ch == '"':
            return _parse_string(cursor)
        if ch == "t" or ch == "f":
            return _parse_literal(cursor, _BOOLEAN_LITERALS)
        if ch == "n":
            return _parse_literal(cursor, _NULL_LITERALS)
        if ch in _NUMBER_START:
            return _parse_number(cursor)
        raise BloksParserError.unexpected_character(ch, cursor.position())

    def _parse_blok(self, cursor: Cursor, depth: int) -> Value:
        start = cursor.position()
        if self._max_depth is not None and depth > self._max_depth:
            raise BloksParserError.depth_limit_exceeded(self._max_depth, start)
        cursor.expect("(")
        cursor.skip_whitespace()

        is_local = cursor.current_char() == "#"
        if is_local:
            cursor.advance()
        name = _parse_name(cursor, is_local)
        if not name:
            raise BloksParserError.invalid_blok_name(start)
        cursor.skip_whitespace()

        args: List[Value] = []
        while cursor.current_char() == ",":
            cursor.advance()
            cursor.skip_whitespace()
            if cursor.current_char() == ")":
                break    # trailing comma
            args.append(self._parse_value(cursor, depth))
            cursor.skip_whitespace()
        cursor.expect(")")

        return self._process(name, tuple(args), is_local)

    def _process(self, name: str, args, is_local: bool) -> Value:
        processor = self._processors.get(name)
        if processor is None:
            processor = self._processors.get(FALLBACK_KEY, self._fallback_processor)
        return processor(name, args, is_local)


# ---------------------------------------------------------------------------
# CONVENIENCE FACTORIES
# ---------------------------------------------------------------------------
def create_bloks_parser(processors: Optional[Mapping[str, Processor]] = None) -> Callable[[str], Value]:
    return BloksParser(processors).parse


def create_bloks_parser_with_basics() -> Callable[[str], Value]:
    return BloksParser.with_basic_processors().parse


def parse(text: str, *, processors: Optional[Mapping[str, Processor]] = None,
          fallback_processor: Processor = default_processor,
          max_depth: Optional[int] = DEPTH_LIMIT_DEFAULT) -> Value:
    """Parse bloks text with a throwaway parser."""
    return BloksParser(processors, fallback_processor, max_depth=max_depth).parse(text)


# ---------------------------------------------------------------------------
# CLI ENTRYPOINT
# ---------------------------------------------------------------------------
def _cli(argv: List[str]) -> int:
    """
    Parse a payload file and print it as JSON.

    Exit codes: 0 on success, 1 on a BloksParserError, 2 when --find-map
    finds no map holding the key.
    """
    ap = argparse.ArgumentParser(description="Bloks payload parser")
    ap.add_argument("file", help="bloks payload file, or - for stdin")
    ap.add_argument("--basic", action="store_true", help="apply the basic bk.action.* processors")
    ap.add_argument("--pretty", action="store_true", help="indent JSON output with sorted keys")
    ap.add_argument("--max-depth", type=int, default=DEPTH_LIMIT_DEFAULT)
    ap.add_argument("--find-map", metavar="KEY", help="print the first map containing KEY")
    ap.add_argument("--debug", action="store_true", help="print the tree in bloks notation and exit")
    args = ap.parse_args(argv)

    if args.file == "-":
        data = sys.stdin.read()
    else:
        with open(args.file, "r", encoding="utf-8") as fh:
            data = fh.read()

    parser = BloksParser(BASIC_PROCESSORS if args.basic else None, max_depth=args.max_depth)
    try:
        tree = parser.parse(data)
        if args.debug:
            print(tree.describe())
            return 0
        if args.find_map is not None:
            found = find_map(args.find_map, tree)
            if found is None:
                print(f"no map containing key {args.find_map!r}", file=sys.stderr)
                return 2
            print(dump_json({k: to_json(v) for k, v in found.items()}, args.pretty))
            return 0
        print(to_json_string(tree, args.pretty))
        return 0
    except BloksParserError as exc:
        print(f"BloksParserError: {exc}", file=sys.stderr)
        return 1


def main() -> int:
    return _cli(sys.argv[1:])


# ---------------------------------------------------------------------------
# MAIN GUARD
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    sys.exit(main())
