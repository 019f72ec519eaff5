"""CBOR binary codec — bytes <-> Value.

Decoding walks the buffer with an explicit offset, one item per call,
returning ``(value, next_offset)``.  Every item starts with an initial byte:

    bits 7-5   major type (0 unsigned .. 7 simple/float/break)
    bits 4-0   additional information (ai)

ai 0-23 is the argument itself, 24-27 say the argument follows in 1/2/4/8
big-endian bytes, 28-30 are reserved and 31 marks indefinite length (or
break, for major type 7).  The width actually used is recorded on the
Value so encoding reproduces the input byte for byte, including
non-preferred widths.

Encoding is total for well-formed Values.  A Value whose recorded width
cannot hold its argument violates the model's contract; it is not checked
here.
"""

from __future__ import annotations

from typing import List, Tuple

from ._constants import (
    AI_DOUBLE_FLOAT,
    AI_HALF_FLOAT,
    AI_INDEFINITE,
    AI_ONE_BYTE,
    AI_SINGLE_FLOAT,
    AI_TO_WIDTH,
    BREAK,
    MAX_DEPTH,
    MIN_EXTENDED_SIMPLE,
    MT_ARRAY,
    MT_BYTES,
    MT_MAP,
    MT_NEGATIVE,
    MT_SIMPLE,
    MT_TAG,
    MT_TEXT,
    MT_UNSIGNED,
    WIDTH_TO_AI,
)
from ._errors import (
    ERR_BREAK_OUTSIDE_INDEFINITE,
    ERR_INVALID_ADDITIONAL_INFO,
    ERR_INVALID_CHUNK,
    ERR_INVALID_UTF8,
    ERR_LIMIT_DEPTH,
    ERR_RESERVED_SIMPLE_CODE,
    ERR_TRAILING_BYTES,
    ERR_UNEXPECTED_EOF,
    DecodeError,
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
)

_FLOAT_AI_TO_WIDTH = {AI_HALF_FLOAT: 2, AI_SINGLE_FLOAT: 4, AI_DOUBLE_FLOAT: 8}
_FLOAT_WIDTH_TO_AI = {w: ai for ai, w in _FLOAT_AI_TO_WIDTH.items()}


# ── Decode ───────────────────────────────────────────────────

def _need(buf: bytes, off: int, n: int, what: str) -> None:
    if off + n > len(buf):
        raise DecodeError(ERR_UNEXPECTED_EOF, "truncated {}".format(what), len(buf))


def _read_argument(buf: bytes, off: int, ai: int) -> Tuple[int, int, int]:
    """Read the argument selected by ai.  Returns (argument, width, offset)."""
    if ai < AI_ONE_BYTE:
        return ai, 0, off
    width = AI_TO_WIDTH[ai]
    _need(buf, off, width, "argument")
    return int.from_bytes(buf[off:off + width], "big"), width, off + width


def _check_depth(depth: int, max_depth: int, start: int) -> None:
    if depth + 1 > max_depth:
        raise DecodeError(ERR_LIMIT_DEPTH, "nesting exceeds max_depth {}".format(max_depth), start)


def _decode_text(raw: bytes, start: int) -> str:
    try:
        return raw.decode("utf-8", errors="strict")
    except UnicodeDecodeError as e:
        raise DecodeError(ERR_INVALID_UTF8, "invalid utf-8 in text string", start + e.start)


def _decode_simple(buf: bytes, off: int, ai: int, start: int) -> Tuple[Value, int]:
    """Major type 7: simple values, floats and the stray break."""
    if ai < AI_ONE_BYTE:
        return Simple(ai), off
    if ai == AI_ONE_BYTE:
        _need(buf, off, 1, "simple value")
        code = buf[off]
        if code < MIN_EXTENDED_SIMPLE:
            raise DecodeError(ERR_RESERVED_SIMPLE_CODE,
                              "simple value {} must not use the one-byte form".format(code),
                              start)
        return Simple(code), off + 1
    if ai in _FLOAT_AI_TO_WIDTH:
        width = _FLOAT_AI_TO_WIDTH[ai]
        _need(buf, off, width, "float")
        return Float(int.from_bytes(buf[off:off + width], "big"), width), off + width
    # ai 31; 28-30 were rejected by the caller.
    raise DecodeError(ERR_BREAK_OUTSIDE_INDEFINITE, "break outside indefinite-length item", start)


def _decode_indefinite_string(buf: bytes, off: int, major: int, depth: int,
                              max_depth: int) -> Tuple[Value, int]:
    """Chunks until break.  Each chunk is a definite string of the same major type."""
    chunks = []
    while True:
        _need(buf, off, 1, "indefinite-length string")
        if buf[off] == BREAK:
            off += 1
            break
        chunk_major = buf[off] >> 5
        if chunk_major != major or buf[off] & 0x1F == AI_INDEFINITE:
            raise DecodeError(ERR_INVALID_CHUNK,
                              "indefinite-length {} string holds a foreign chunk".format(
                                  "byte" if major == MT_BYTES else "text"),
                              off)
        chunk, off = _decode_one(buf, off, depth, max_depth)
        chunks.append(chunk)
    if major == MT_BYTES:
        return IndefiniteByteString(tuple(chunks)), off
    return IndefiniteTextString(tuple(chunks)), off


def _decode_one(buf: bytes, off: int, depth: int, max_depth: int) -> Tuple[Value, int]:
    """Decode one item from buf at offset.  depth counts enclosing containers and tags."""
    _need(buf, off, 1, "item")
    start = off
    initial = buf[off]
    off += 1
    major = initial >> 5
    ai = initial & 0x1F

    if 28 <= ai <= 30:
        raise DecodeError(ERR_INVALID_ADDITIONAL_INFO,
                          "reserved additional information {}".format(ai), start)

    if major == MT_SIMPLE:
        return _decode_simple(buf, off, ai, start)

    # ── Indefinite length ─────────────────────────────────────
    if ai == AI_INDEFINITE:
        if major in (MT_BYTES, MT_TEXT):
            return _decode_indefinite_string(buf, off, major, depth, max_depth)

        if major == MT_ARRAY:
            _check_depth(depth, max_depth, start)
            items: List[Value] = []
            while True:
                _need(buf, off, 1, "indefinite-length array")
                if buf[off] == BREAK:
                    return Array(tuple(items), indefinite=True), off + 1
                item, off = _decode_one(buf, off, depth + 1, max_depth)
                items.append(item)

        if major == MT_MAP:
            _check_depth(depth, max_depth, start)
            pairs = []
            while True:
                _need(buf, off, 1, "indefinite-length map")
                if buf[off] == BREAK:
                    return Map(tuple(pairs), indefinite=True), off + 1
                k, off = _decode_one(buf, off, depth + 1, max_depth)
                # A break here lands in _decode_simple and is rejected.
                v, off = _decode_one(buf, off, depth + 1, max_depth)
                pairs.append((k, v))

        raise DecodeError(ERR_INVALID_ADDITIONAL_INFO,
                          "indefinite length is not allowed for major type {}".format(major),
                          start)

    arg, width, off = _read_argument(buf, off, ai)

    if major == MT_UNSIGNED:
        return UnsignedInteger(arg, width), off

    if major == MT_NEGATIVE:
        return NegativeInteger(arg, width), off

    if major == MT_BYTES:
        _need(buf, off, arg, "byte string payload")
        return ByteString(buf[off:off + arg], width), off + arg

    if major == MT_TEXT:
        _need(buf, off, arg, "text string payload")
        return TextString(_decode_text(buf[off:off + arg], off), width), off + arg

    if major == MT_ARRAY:
        _check_depth(depth, max_depth, start)
        items = []
        for _ in range(arg):
            item, off = _decode_one(buf, off, depth + 1, max_depth)
            items.append(item)
        return Array(tuple(items), width), off

    if major == MT_MAP:
        _check_depth(depth, max_depth, start)
        pairs = []
        for _ in range(arg):
            k, off = _decode_one(buf, off, depth + 1, max_depth)
            v, off = _decode_one(buf, off, depth + 1, max_depth)
            pairs.append((k, v))
        return Map(tuple(pairs), width), off

    # MT_TAG
    _check_depth(depth, max_depth, start)
    inner, off = _decode_one(buf, off, depth + 1, max_depth)
    return Tag(arg, inner, width), off


def decode_binary_partial(data: bytes, *, max_depth: int = MAX_DEPTH) -> Tuple[Value, int]:
    """Decode the first item of data.  Returns (value, bytes consumed)."""
    return _decode_one(bytes(data), 0, 0, max_depth)


def decode_binary(data: bytes, *, max_depth: int = MAX_DEPTH) -> Value:
    """Decode exactly one item; anything left over is ERR_TRAILING_BYTES."""
    buf = bytes(data)
    val, end = _decode_one(buf, 0, 0, max_depth)
    if end != len(buf):
        raise DecodeError(ERR_TRAILING_BYTES,
                          "{} bytes remaining after root item".format(len(buf) - end), end)
    return val


def decode_sequence(data: bytes, *, max_depth: int = MAX_DEPTH) -> List[Value]:
    """Decode a CBOR sequence (RFC 8742): zero or more items back to back."""
    buf = bytes(data)
    out: List[Value] = []
    off = 0
    while off < len(buf):
        val, off = _decode_one(buf, off, 0, max_depth)
        out.append(val)
    return out


# ── Encode ───────────────────────────────────────────────────

def encode_head(major: int, arg: int, width: int) -> bytes:
    """Initial byte plus argument bytes at the given width."""
    if width == 0:
        return bytes([(major << 5) | arg])
    return bytes([(major << 5) | WIDTH_TO_AI[width]]) + arg.to_bytes(width, "big")


def encode_item_head(val: Value) -> bytes:
    """The bytes an item contributes before its payload or children.

    For definite strings this excludes the string data; for indefinite
    items it is the single 0x?f start byte.  Used by the hex annotator.
    """
    if isinstance(val, UnsignedInteger):
        return encode_head(MT_UNSIGNED, val.value, val.width)
    if isinstance(val, NegativeInteger):
        return encode_head(MT_NEGATIVE, val.magnitude, val.width)
    if isinstance(val, ByteString):
        return encode_head(MT_BYTES, len(val.data), val.width)
    if isinstance(val, TextString):
        return encode_head(MT_TEXT, len(val.data.encode("utf-8")), val.width)
    if isinstance(val, IndefiniteByteString):
        return bytes([(MT_BYTES << 5) | AI_INDEFINITE])
    if isinstance(val, IndefiniteTextString):
        return bytes([(MT_TEXT << 5) | AI_INDEFINITE])
    if isinstance(val, Array):
        if val.indefinite:
            return bytes([(MT_ARRAY << 5) | AI_INDEFINITE])
        return encode_head(MT_ARRAY, len(val.items), val.width)
    if isinstance(val, Map):
        if val.indefinite:
            return bytes([(MT_MAP << 5) | AI_INDEFINITE])
        return encode_head(MT_MAP, len(val.pairs), val.width)
    if isinstance(val, Tag):
        return encode_head(MT_TAG, val.number, val.width)
    if isinstance(val, Simple):
        if val.code < AI_ONE_BYTE:
            return bytes([(MT_SIMPLE << 5) | val.code])
        return bytes([(MT_SIMPLE << 5) | AI_ONE_BYTE, val.code])
    if isinstance(val, Float):
        return (bytes([(MT_SIMPLE << 5) | _FLOAT_WIDTH_TO_AI[val.width]])
                + val.bits.to_bytes(val.width, "big"))
    raise TypeError("not a CBOR value: {}".format(type(val).__name__))


def _encode_into(val: Value, parts: List[bytes]) -> None:
    parts.append(encode_item_head(val))

    if isinstance(val, ByteString):
        parts.append(val.data)
    elif isinstance(val, TextString):
        parts.append(val.data.encode("utf-8"))
    elif isinstance(val, (IndefiniteByteString, IndefiniteTextString)):
        for chunk in val.chunks:
            _encode_into(chunk, parts)
        parts.append(bytes([BREAK]))
    elif isinstance(val, Array):
        for item in val.items:
            _encode_into(item, parts)
        if val.indefinite:
            parts.append(bytes([BREAK]))
    elif isinstance(val, Map):
        for k, v in val.pairs:
            _encode_into(k, parts)
            _encode_into(v, parts)
        if val.indefinite:
            parts.append(bytes([BREAK]))
    elif isinstance(val, Tag):
        _encode_into(val.value, parts)


def encode_binary(val: Value) -> bytes:
    """Encode a Value using exactly the widths and length modes it records."""
    parts: List[bytes] = []
    _encode_into(val, parts)
    return b"".join(parts)
