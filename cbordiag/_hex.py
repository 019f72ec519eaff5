"""Hex text <-> bytes, with structural annotation.

``annotate_hex`` lays a decoded item out one structural unit per line,
as in RFC 8949 Appendix A style dumps:

    82         # array(2)
       01      #   unsigned(1)
       62      #   text(2)
          6869 #   "hi"

The ``#`` column is aligned across the whole output.  ``parse_hex``
accepts that output back, along with plain hex in any case and spacing.
"""

from __future__ import annotations

from typing import List, Tuple

from ._constants import SIMPLE_NAMES
from ._core import decode_binary, encode_item_head
from ._diag_printer import format_float
from ._errors import ERR_INVALID_HEX_DIGIT, ERR_ODD_LENGTH, HexError
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
)
from ._tags import tag_name

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

# Data bytes per line under a string header.
_LINE_BYTES = 16

# (hex indent level, hex text, comment indent level, comment)
_Line = Tuple[int, str, int, str]


# ── Parse ────────────────────────────────────────────────────

def parse_hex(text: str) -> bytes:
    """Decode hex text.  ``#`` starts a comment running to end of line;
    whitespace anywhere is ignored."""
    digits: List[str] = []
    last = 0
    in_comment = False
    for i, ch in enumerate(text):
        if in_comment:
            if ch == "\n":
                in_comment = False
            continue
        if ch == "#":
            in_comment = True
        elif ch.isspace():
            continue
        elif ch in _HEX_DIGITS:
            digits.append(ch)
            last = i
        else:
            raise HexError(ERR_INVALID_HEX_DIGIT,
                           "invalid hex digit {!r}".format(ch), i)
    if len(digits) % 2:
        raise HexError(ERR_ODD_LENGTH, "odd number of hex digits", last)
    return bytes.fromhex("".join(digits))


# ── Annotate ─────────────────────────────────────────────────

def _escape_bytes(data: bytes) -> str:
    """Printable ASCII as is, quotes and backslash escaped, anything else \\xNN."""
    out: List[str] = []
    for b in data:
        if b == 0x09:
            out.append("\\t")
        elif b == 0x0A:
            out.append("\\n")
        elif b == 0x0D:
            out.append("\\r")
        elif b in (0x22, 0x27, 0x5C):
            out.append("\\" + chr(b))
        elif 0x20 <= b < 0x7F:
            out.append(chr(b))
        else:
            out.append("\\x{:02x}".format(b))
    return "".join(out)


def _escape_text(s: str) -> str:
    out: List[str] = []
    for ch in s:
        if ch.isascii():
            out.append(_escape_bytes(ch.encode("ascii")))
        elif ch.isprintable():
            out.append(ch)
        else:
            out.append("\\u{{{:04x}}}".format(ord(ch)))
    return "".join(out)


def _text_lines(s: str) -> List[str]:
    """Split text into runs of at most _LINE_BYTES UTF-8 bytes, never
    cutting a character."""
    lines: List[str] = []
    current = ""
    size = 0
    for ch in s:
        n = len(ch.encode("utf-8"))
        if current and size + n > _LINE_BYTES:
            lines.append(current)
            current, size = "", 0
        current += ch
        size += n
    if current:
        lines.append(current)
    return lines


def _head_hex(val: Value) -> str:
    """Initial byte, then the argument bytes as one group: ``19 0100``."""
    head = encode_item_head(val)
    if len(head) == 1:
        return head.hex()
    return head[:1].hex() + " " + head[1:].hex()


def _simple_comment(code: int) -> str:
    if code in SIMPLE_NAMES:
        label = SIMPLE_NAMES[code]
    elif 24 <= code < 32:
        label = "reserved"
    else:
        label = "unassigned"
    return "{}, simple({})".format(label, code)


def _string_lines(val: Value, depth: int, lines: List[_Line]) -> None:
    if isinstance(val, ByteString):
        lines.append((depth, _head_hex(val), depth, "bytes({})".format(len(val.data))))
        chunks = [val.data[i:i + _LINE_BYTES] for i in range(0, len(val.data), _LINE_BYTES)]
        for chunk in chunks:
            lines.append((depth + 1, chunk.hex(), depth, '"{}"'.format(_escape_bytes(chunk))))
        if not chunks:
            lines.append((depth + 1, "", depth, '""'))
        return
    raw = val.data.encode("utf-8")
    lines.append((depth, _head_hex(val), depth, "text({})".format(len(raw))))
    parts = _text_lines(val.data)
    for part in parts:
        lines.append((depth + 1, part.encode("utf-8").hex(), depth,
                      '"{}"'.format(_escape_text(part))))
    if not parts:
        lines.append((depth + 1, "", depth, '""'))


def _walk(val: Value, depth: int, lines: List[_Line]) -> None:
    if isinstance(val, UnsignedInteger):
        lines.append((depth, _head_hex(val), depth, "unsigned({})".format(val.value)))

    elif isinstance(val, NegativeInteger):
        lines.append((depth, _head_hex(val), depth, "negative({})".format(val.magnitude)))

    elif isinstance(val, (ByteString, TextString)):
        _string_lines(val, depth, lines)

    elif isinstance(val, (IndefiniteByteString, IndefiniteTextString)):
        kind = "bytes" if isinstance(val, IndefiniteByteString) else "text"
        lines.append((depth, _head_hex(val), depth, "{}(*)".format(kind)))
        for chunk in val.chunks:
            _string_lines(chunk, depth + 1, lines)
        lines.append((depth + 1, "ff", depth + 1, "break"))

    elif isinstance(val, Array):
        count = "*" if val.indefinite else str(len(val.items))
        lines.append((depth, _head_hex(val), depth, "array({})".format(count)))
        for item in val.items:
            _walk(item, depth + 1, lines)
        if val.indefinite:
            lines.append((depth + 1, "ff", depth + 1, "break"))

    elif isinstance(val, Map):
        count = "*" if val.indefinite else str(len(val.pairs))
        lines.append((depth, _head_hex(val), depth, "map({})".format(count)))
        for k, v in val.pairs:
            _walk(k, depth + 1, lines)
            _walk(v, depth + 1, lines)
        if val.indefinite:
            lines.append((depth + 1, "ff", depth + 1, "break"))

    elif isinstance(val, Tag):
        name = tag_name(val.number)
        comment = "tag({})".format(val.number)
        if name is not None:
            comment = "{}, {}".format(name, comment)
        lines.append((depth, _head_hex(val), depth, comment))
        _walk(val.value, depth + 1, lines)

    elif isinstance(val, Simple):
        lines.append((depth, _head_hex(val), depth, _simple_comment(val.code)))

    elif isinstance(val, Float):
        lines.append((depth, _head_hex(val), depth, "float({})".format(format_float(val))))

    else:
        raise TypeError("not a CBOR value: {}".format(type(val).__name__))


def annotate_hex(data: bytes) -> str:
    """Annotated hex dump of one CBOR item.

    Decoding errors from the binary codec propagate unchanged.
    """
    lines: List[_Line] = []
    _walk(decode_binary(data), 0, lines)
    left = ["   " * level + text for level, text, _, _ in lines]
    column = max(len(s) for s in left)
    out = []
    for prefix, (_, _, level, comment) in zip(left, lines):
        out.append("{} # {}{}".format(prefix.ljust(column), "  " * level, comment))
    return "\n".join(out) + "\n"
