# bloks_processors.py
# Processor type and the basic processors for common bk.action.* bloks
#
# A processor receives a fully parsed blok as (name, args, is_local) and
# returns the Value that replaces it in the tree. The parser calls them
# post-order, so every argument has already been through its own processor.

from types import MappingProxyType
from typing import Callable, Mapping, Tuple

from bloks_values import (
    KIND_BOOL,
    KIND_NUMBER,
    KIND_STRING,
    NULL,
    Value,
    blok,
    boolean,
)

Processor = Callable[[str, Tuple[Value, ...], bool], Value]

# Registry key consulted when no processor matches the blok name exactly
FALLBACK_KEY = "@"

ARRAY_NAME = "array"
MAP_NAME   = "map"


def default_processor(name: str, args: Tuple[Value, ...], is_local: bool) -> Value:
    """Identity: rebuild the blok unchanged."""
    return blok(name, args, is_local)


# ---------------------------------------------------------------------------
# BASIC PROCESSORS
# ---------------------------------------------------------------------------
def array_make(name: str, args: Tuple[Value, ...], is_local: bool) -> Value:
    return blok(ARRAY_NAME, args)


def number_const(name: str, args: Tuple[Value, ...], is_local: bool) -> Value:
    """
    Unwrap an i32/i64/f64 constant.

    A NUMBER first argument is returned bare. Anything else in first
    position is passed through unchanged, and no arguments yields null.
    """
    if not args:
        return NULL
    return args[0]


def bool_const(name: str, args: Tuple[Value, ...], is_local: bool) -> Value:
    """
    Coerce the first argument to BOOL.

    Numbers are true when non-zero; strings are true unless empty, "false"
    or "0"; any other present value is true; a missing argument is false.
    """
    if not args:
        return boolean(False)
    first = args[0]
    kind, data = first
    if kind == KIND_BOOL:
        return first
    if kind == KIND_NUMBER:
        return boolean(data != 0)
    if kind == KIND_STRING:
        return boolean(data not in ("", "false", "0"))
    return boolean(True)


def map_make(name: str, args: Tuple[Value, ...], is_local: bool) -> Value:
    # Conventionally two array children: keys, then values
    return blok(MAP_NAME, args)


BASIC_PROCESSORS: Mapping[str, Processor] = MappingProxyType({
    "bk.action.array.Make": array_make,
    "bk.action.i32.Const":  number_const,
    "bk.action.i64.Const":  number_const,
    "bk.action.f64.Const":  number_const,
    "bk.action.bool.Const": bool_const,
    "bk.action.map.Make":   map_make,
})
