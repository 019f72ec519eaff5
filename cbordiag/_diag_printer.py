"""Diagnostic notation printer — Value -> text.

The output re-parses to the same Value: every width or length mode that
differs from what the parser would pick for unsuffixed input gets an
explicit encoding indicator (``1_0``, ``"a"_1``, ``[_0 1]``, ``1.5_3``),
and indefinite items carry the ``_`` marker.

Known tags print in their specialized notation when the tag table accepts
the payload; anything else prints as ``N(value)``.
"""

from __future__ import annotations

import base64
import math
import re
from typing import Callable, List

from ._constants import (
    FLOAT_WIDTH_TO_INDICATOR,
    PRETTY_INDENT,
    PRETTY_TRIVIAL_WIDTH,
    SIMPLE_NAMES,
    TAG_EXPECT_BASE16,
    TAG_EXPECT_BASE64,
    TAG_EXPECT_BASE64URL,
    WIDTH_TO_INDICATOR,
)
from ._model import (
    Array,
    ByteString,
    Float,
    IndefiniteByteString,
    IndefiniteTextString,
    Map,
    NegativeInteger,
    Simple,
    Tag,
    TextString,
    UnsignedInteger,
    Value,
    float_from_literal,
    minimal_width,
)
from ._tags import render_specialized

# Byte string encodings.  Tags 21/22/23 switch the encoding for everything
# nested inside them.
BASE16 = "base16"
BASE64URL = "base64url"
BASE64 = "base64"

_TAG_ENCODINGS = {
    TAG_EXPECT_BASE64URL: BASE64URL,
    TAG_EXPECT_BASE64: BASE64,
    TAG_EXPECT_BASE16: BASE16,
}

_EXPONENT = re.compile(r"e([+-])0*(\d)")

_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


# ── Scalars ───────────────────────────────────────────────────

def _suffix(width: int, arg: int) -> str:
    if width == minimal_width(arg):
        return ""
    return "_" + WIDTH_TO_INDICATOR[width]


def _float_repr(x: float) -> str:
    # 1e+16, 6e-08 -> 1e+16, 6e-8
    return _EXPONENT.sub(r"e\1\2", repr(x))


def format_float(val: Float) -> str:
    """Decimal text for a float's exact value, no suffix.

    Half and single values are exact doubles, so ``repr`` of the widened
    value reads back to the same bits at any width that can hold it.
    """
    x = val.value
    if math.isnan(x):
        return "NaN"
    if math.isinf(x):
        return "-Infinity" if x < 0 else "Infinity"
    return _float_repr(x)


def _shortest_at_width(val: Float) -> str:
    """Fewest significant digits that round to val's bits at its own width."""
    x = val.value
    for precision in range(1, 18):
        text = "{:.{}g}".format(x, precision)
        try:
            if Float.from_value(float(text), val.width).bits == val.bits:
                return _float_repr(float(text))
        except OverflowError:
            continue
    return _float_repr(x)


def _float_text(val: Float) -> str:
    text = format_float(val)
    if float_from_literal(text) == val:
        return text
    # Only a non-preferred width gets here.  The suffix pins the width, so
    # the digits need only round correctly at that width.
    if val.width != 8 and math.isfinite(val.value):
        text = _shortest_at_width(val)
    return text + "_" + FLOAT_WIDTH_TO_INDICATOR[val.width]


def escape_text(s: str) -> str:
    out: List[str] = []
    for ch in s:
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append("\\u{:04x}".format(ord(ch)))
        else:
            out.append(ch)
    return "".join(out)


def _bytes_text(val: ByteString, encoding: str) -> str:
    if encoding == BASE64URL:
        body = "b64'" + base64.urlsafe_b64encode(val.data).decode("ascii").rstrip("=") + "'"
    elif encoding == BASE64:
        body = "b64'" + base64.b64encode(val.data).decode("ascii").rstrip("=") + "'"
    else:
        body = "h'" + val.data.hex() + "'"
    return body + _suffix(val.width, len(val.data))


def _text_text(val: TextString) -> str:
    return '"' + escape_text(val.data) + '"' + _suffix(val.width, len(val.data.encode("utf-8")))


def _simple_text(val: Simple) -> str:
    if val.code in SIMPLE_NAMES:
        return SIMPLE_NAMES[val.code]
    return "simple({})".format(val.code)


# ── Containers ────────────────────────────────────────────────

def _container(begin: str, marker: str, rendered: Callable[[bool, int], List[str]],
               end: str, pretty: bool, indent: int) -> str:
    """Lay out a container on one line, or one item per line when pretty.

    ``rendered(pretty, indent)`` returns the item texts.  In the pretty
    layout a container whose single-line form is short stays on one line.
    """
    head = begin + (marker + " " if marker else "")
    single = head + ", ".join(rendered(False, indent)) + end
    if not pretty or len(single) < PRETTY_TRIVIAL_WIDTH:
        return single
    inner = indent + PRETTY_INDENT
    lines = [begin + marker]
    for text in rendered(True, inner):
        lines.append(" " * inner + text + ",")
    lines.append(" " * indent + end)
    return "\n".join(lines)


def _marker(indefinite: bool, width, count: int) -> str:
    if indefinite:
        return "_"
    return _suffix(width, count)


def _emit(val: Value, encoding: str, pretty: bool, indent: int) -> str:
    if isinstance(val, UnsignedInteger):
        return str(val.value) + _suffix(val.width, val.value)

    if isinstance(val, NegativeInteger):
        return str(val.value) + _suffix(val.width, val.magnitude)

    if isinstance(val, Float):
        return _float_text(val)

    if isinstance(val, Simple):
        return _simple_text(val)

    if isinstance(val, ByteString):
        return _bytes_text(val, encoding)

    if isinstance(val, TextString):
        return _text_text(val)

    if isinstance(val, IndefiniteByteString):
        if not val.chunks:
            return "''_"
        return "(_ " + ", ".join(_bytes_text(c, encoding) for c in val.chunks) + ")"

    if isinstance(val, IndefiniteTextString):
        if not val.chunks:
            return '""_'
        return "(_ " + ", ".join(_text_text(c) for c in val.chunks) + ")"

    if isinstance(val, Array):
        def items(p: bool, ind: int) -> List[str]:
            return [_emit(item, encoding, p, ind) for item in val.items]
        return _container("[", _marker(val.indefinite, val.width, len(val.items)),
                          items, "]", pretty, indent)

    if isinstance(val, Map):
        def pairs(p: bool, ind: int) -> List[str]:
            return [_emit(k, encoding, p, ind) + ": " + _emit(v, encoding, p, ind)
                    for k, v in val.pairs]
        return _container("{", _marker(val.indefinite, val.width, len(val.pairs)),
                          pairs, "}", pretty, indent)

    if isinstance(val, Tag):
        encoding = _TAG_ENCODINGS.get(val.number, encoding)
        special = render_specialized(val, lambda v: _emit(v, encoding, pretty, indent))
        if special is not None:
            return special
        return "{}{}({})".format(val.number, _suffix(val.width, val.number),
                                 _emit(val.value, encoding, pretty, indent))

    raise TypeError("not a CBOR value: {}".format(type(val).__name__))


def print_diag(val: Value, *, pretty: bool = False) -> str:
    """Render a Value as diagnostic notation.

    Single line by default (``[1, 2]``, ``{"a": 1}``).  ``pretty`` breaks
    long containers over several lines with four-space indentation and a
    trailing comma after every item.  Never fails on a well-formed Value.
    """
    return _emit(val, BASE16, pretty, 0)
