# bloks_tree.py
# Consumers of a parsed tree: map search and JSON export

import json
import re
from typing import Any, Dict, Optional

from bloks_processors import MAP_NAME
from bloks_values import (
    KIND_BLOK,
    KIND_BOOL,
    KIND_NULL,
    KIND_NUMBER,
    KIND_STRING,
    BloksParserError,
    Value,
)


# ---------------------------------------------------------------------------
# MAP SEARCH
# ---------------------------------------------------------------------------
def _zip_map(keys: Value, values: Value) -> Optional[Dict[str, Value]]:
    if keys.kind != KIND_BLOK or values.kind != KIND_BLOK:
        return None
    if len(keys.data.args) != len(values.data.args):
        return None
    # Non-string keys are skipped; a repeated key keeps its last value
    return {
        k.data: v
        for k, v in zip(keys.data.args, values.data.args)
        if k.kind == KIND_STRING
    }


def find_map(key: str, root: Value, map_name: str = MAP_NAME) -> Optional[Dict[str, Value]]:
    """
    Return the first map blok (pre-order, left to right) that contains `key`.

    A map blok is one named `map_name` with exactly two blok arguments of
    equal length: the keys and the values. The match is returned as a dict
    of string key to Value; None when no map anywhere holds the key.
    """
    if root.kind != KIND_BLOK:
        return None
    node = root.data
    if node.name == map_name and len(node.args) == 2:
        mapping = _zip_map(*node.args)
        if mapping is not None and key in mapping:
            return mapping
    for arg in node.args:
        found = find_map(key, arg, map_name)
        if found is not None:
            return found
    return None


# ---------------------------------------------------------------------------
# JSON EXPORT
# ---------------------------------------------------------------------------
# Lone surrogates only occur inside JSON strings; written as \u escapes
_SURROGATE_RE = re.compile("[\ud800-\udfff]")


def _escape_surrogate(match) -> str:
    return "\\u%04x" % ord(match.group())


def to_json(value: Value) -> Any:
    """
    Convert a Value to plain JSON-compatible Python data.

    A blok becomes a list whose first item is its name followed by its
    converted arguments. The is_local flag has no JSON representation and
    is dropped, so "(#a)" and "(a)" export identically.
    """
    kind, data = value
    if kind == KIND_NULL:
        return None
    if kind in (KIND_BOOL, KIND_NUMBER, KIND_STRING):
        return data
    if kind == KIND_BLOK:
        return [data.name] + [to_json(arg) for arg in data.args]
    raise BloksParserError.internal_error(f"unknown value kind {kind!r}")


def dump_json(obj: Any, pretty: bool = False) -> str:
    """
    Serialize already-converted JSON data.

    Pretty output is indented with sorted keys so it is deterministic.
    Anything the encoder rejects (NaN, infinities, foreign objects) is
    reported as an INTERNAL_ERROR.
    """
    try:
        if pretty:
            text = json.dumps(obj, indent=2, sort_keys=True, allow_nan=False, ensure_ascii=False)
        else:
            text = json.dumps(obj, separators=(",", ":"), allow_nan=False, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise BloksParserError.internal_error(str(exc)) from exc
    return _SURROGATE_RE.sub(_escape_surrogate, text)


def to_json_string(value: Value, pretty: bool = False) -> str:
    return dump_json(to_json(value), pretty)
