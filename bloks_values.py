# bloks_values.py
# Value model and error type for the bloks payload parser
#
# =============================================================================
#  VALUE MODEL: A CLOSED TAGGED UNION
# =============================================================================
#
# Every parsed node is a Value, an immutable (kind, data) pair. There are
# exactly five kinds and consumers branch on `kind`:
#
#   NULL    data is None
#   BOOL    data is a bool
#   NUMBER  data is a float (no integer/float distinction is kept)
#   STRING  data is a str
#   BLOK    data is a Blok(name, args, is_local)
#
# Because the kind is part of the tuple, BOOL true never compares equal to
# NUMBER 1.0 even though Python's True == 1.0.
#
# =============================================================================

import math
from typing import Any, NamedTuple, Optional, Sequence, Tuple

# ---------------------------------------------------------------------------
# VALUE KINDS
# ---------------------------------------------------------------------------
KIND_NULL   = "NULL"
KIND_BOOL   = "BOOL"
KIND_NUMBER = "NUMBER"
KIND_STRING = "STRING"
KIND_BLOK   = "BLOK"

KINDS = frozenset({KIND_NULL, KIND_BOOL, KIND_NUMBER, KIND_STRING, KIND_BLOK})

# ---------------------------------------------------------------------------
# RENDERING TABLES
# ---------------------------------------------------------------------------
_ESCAPES_OUT = {
    '"':  '\\"',
    "\\": "\\\\",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def _format_number(value: float) -> str:
    if math.isfinite(value) and value == int(value):
        return "%.0f" % value
    return repr(value)


def _quote(text: str) -> str:
    out = ['"']
    for ch in text:
        code = ord(ch)
        if ch in _ESCAPES_OUT:
            out.append(_ESCAPES_OUT[ch])
        elif code < 0x20 or 0xD800 <= code <= 0xDFFF:
            out.append("\\u%04x" % code)
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)


# ---------------------------------------------------------------------------
# NODE RECORDS
# ---------------------------------------------------------------------------
class Blok(NamedTuple):
    """Payload of a BLOK value: name, ordered argument tuple, locality flag."""
    name: str
    args: Tuple["Value", ...] = ()
    is_local: bool = False


class Value(NamedTuple):
    """
    Immutable tagged value: (kind, data).

    Build instances with the module-level constructors (null, boolean,
    number, string, blok) so the payload always has the right Python type.
    """
    kind: str
    data: Any = None

    @property
    def blok_name(self) -> Optional[str]:
        return self.data.name if self.kind == KIND_BLOK else None

    @property
    def blok_args(self) -> Optional[Tuple["Value", ...]]:
        return self.data.args if self.kind == KIND_BLOK else None

    @property
    def is_local_blok(self) -> bool:
        return self.kind == KIND_BLOK and self.data.is_local

    def describe(self) -> str:
        """
        Render the value in bloks notation.

        The output parses back to an equal tree for every finite number;
        strings are re-escaped and local bloks keep their '#' prefix.
        """
        kind, data = self
        if kind == KIND_NULL:
            return "null"
        if kind == KIND_BOOL:
            return "true" if data else "false"
        if kind == KIND_NUMBER:
            return _format_number(data)
        if kind == KIND_STRING:
            return _quote(data)
        if kind == KIND_BLOK:
            head = ("#" if data.is_local else "") + data.name
            return "(" + ", ".join([head] + [arg.describe() for arg in data.args]) + ")"
        raise ValueError(f"unknown value kind {kind!r}")

    def __str__(self) -> str:
        return self.describe()


# ---------------------------------------------------------------------------
# CONSTRUCTORS
# ---------------------------------------------------------------------------
NULL  = Value(KIND_NULL)
TRUE  = Value(KIND_BOOL, True)
FALSE = Value(KIND_BOOL, False)


def null() -> Value:
    return NULL


def boolean(flag: bool) -> Value:
    return TRUE if flag else FALSE


def number(value: float) -> Value:
    return Value(KIND_NUMBER, float(value))


def string(text: str) -> Value:
    return Value(KIND_STRING, text)


def blok(name: str, args: Sequence[Value] = (), is_local: bool = False) -> Value:
    # tuple() copies, so a caller's list is never aliased into the tree
    return Value(KIND_BLOK, Blok(name, tuple(args), bool(is_local)))


# ---------------------------------------------------------------------------
# ERRORS
# ---------------------------------------------------------------------------
UNEXPECTED_END_OF_INPUT = "UNEXPECTED_END_OF_INPUT"
UNEXPECTED_CHARACTER    = "UNEXPECTED_CHARACTER"
INVALID_NUMBER          = "INVALID_NUMBER"
INVALID_ESCAPE_SEQUENCE = "INVALID_ESCAPE_SEQUENCE"
UNTERMINATED_STRING     = "UNTERMINATED_STRING"
EXPECTED_CHARACTER      = "EXPECTED_CHARACTER"
INVALID_BLOK_NAME       = "INVALID_BLOK_NAME"
DEPTH_LIMIT_EXCEEDED    = "DEPTH_LIMIT_EXCEEDED"
INTERNAL_ERROR          = "INTERNAL_ERROR"

ERROR_KINDS = frozenset({
    UNEXPECTED_END_OF_INPUT,
    UNEXPECTED_CHARACTER,
    INVALID_NUMBER,
    INVALID_ESCAPE_SEQUENCE,
    UNTERMINATED_STRING,
    EXPECTED_CHARACTER,
    INVALID_BLOK_NAME,
    DEPTH_LIMIT_EXCEEDED,
    INTERNAL_ERROR,
})


class BloksParserError(SyntaxError):
    """
    Raised for the first failure met while parsing or exporting a payload.

    `kind` is one of ERROR_KINDS. `position` is a character offset into the
    input (None for internal errors). The remaining attributes carry the
    data each kind needs to rebuild its message: `char` is the offending or
    actual character, `expected` the character a mismatch wanted, `literal`
    the number text or partial escape, `detail` an internal message.
    """

    def __init__(self, kind: str, message: str, *, position: Optional[int] = None,
                 char: Optional[str] = None, expected: Optional[str] = None,
                 literal: Optional[str] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.position = position
        self.char = char
        self.expected = expected
        self.literal = literal
        self.detail = detail

    @classmethod
    def unexpected_end_of_input(cls, position: int) -> "BloksParserError":
        return cls(UNEXPECTED_END_OF_INPUT, f"unexpected end of input at offset {position}",
                   position=position)

    @classmethod
    def unexpected_character(cls, char: str, position: int) -> "BloksParserError":
        return cls(UNEXPECTED_CHARACTER, f"unexpected character {char!r} at offset {position}",
                   position=position, char=char)

    @classmethod
    def invalid_number(cls, literal: str, position: int) -> "BloksParserError":
        return cls(INVALID_NUMBER, f"invalid number {literal!r} at offset {position}",
                   position=position, literal=literal)

    @classmethod
    def invalid_escape_sequence(cls, literal: str, position: int) -> "BloksParserError":
        return cls(INVALID_ESCAPE_SEQUENCE, f"invalid escape sequence {literal} at offset {position}",
                   position=position, literal=literal)

    @classmethod
    def unterminated_string(cls, position: int) -> "BloksParserError":
        return cls(UNTERMINATED_STRING, f"unterminated string starting at offset {position}",
                   position=position)

    @classmethod
    def expected_character(cls, expected: str, got: Optional[str], position: int) -> "BloksParserError":
        if got is None:
            message = f"expected {expected!r} but reached end of input at offset {position}"
        else:
            message = f"expected {expected!r} but got {got!r} at offset {position}"
        return cls(EXPECTED_CHARACTER, message, position=position, char=got, expected=expected)

    @classmethod
    def invalid_blok_name(cls, position: int) -> "BloksParserError":
        return cls(INVALID_BLOK_NAME, f"invalid blok name at offset {position}", position=position)

    @classmethod
    def depth_limit_exceeded(cls, limit: Optional[int], position: int) -> "BloksParserError":
        if limit is None:
            message = f"nesting too deep for the interpreter stack at offset {position}"
        else:
            message = f"depth limit {limit} exceeded at offset {position}"
        return cls(DEPTH_LIMIT_EXCEEDED, message, position=position)

    @classmethod
    def internal_error(cls, detail: str) -> "BloksParserError":
        return cls(INTERNAL_ERROR, f"internal error: {detail}", detail=detail)
