"""CBOR value model.

One frozen dataclass per data-model shape.  Every variant records enough
about its original encoding (argument width, indefinite length, float
width and exact bit pattern) to reproduce the input bytes exactly:

    UnsignedInteger(value, width)         major type 0
    NegativeInteger(magnitude, width)     major type 1, value = -1 - magnitude
    ByteString(data, width)               major type 2, definite
    IndefiniteByteString(chunks)          major type 2, 0x5f ... 0xff
    TextString(data, width)               major type 3, definite
    IndefiniteTextString(chunks)          major type 3, 0x7f ... 0xff
    Array(items, width, indefinite)       major type 4
    Map(pairs, width, indefinite)         major type 5
    Tag(number, value, width)             major type 6
    Simple(code)                          major type 7, simple values
    Float(bits, width)                    major type 7, half/single/double

``width`` is the number of argument bytes after the initial byte: 0 when
the argument is packed into the initial byte, otherwise 1, 2, 4 or 8.
Leaving it out picks the minimal width, which is what an encoder following
RFC 8949 preferred serialization would choose.
"""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from ._constants import (
    CANONICAL_NAN,
    FLOAT_BITS_FORMATS,
    FLOAT_FORMATS,
    SIMPLE_FALSE,
    SIMPLE_NULL,
    SIMPLE_TRUE,
    SIMPLE_UNDEFINED,
    TAG_NEGATIVE_BIGNUM,
    TAG_POSITIVE_BIGNUM,
    UINT64_MAX,
)


def minimal_width(n: int) -> int:
    """Smallest argument width (in bytes after the initial byte) for n."""
    if n < 24:
        return 0
    if n <= 0xFF:
        return 1
    if n <= 0xFFFF:
        return 2
    if n <= 0xFFFFFFFF:
        return 4
    return 8


def _set(obj: object, name: str, value: object) -> None:
    # Frozen dataclasses only allow normalization through object.__setattr__.
    object.__setattr__(obj, name, value)


@dataclass(frozen=True)
class UnsignedInteger:
    value: int
    width: Optional[int] = None

    def __post_init__(self) -> None:
        if self.width is None:
            _set(self, "width", minimal_width(self.value))


@dataclass(frozen=True)
class NegativeInteger:
    """Negative integer stored as its wire magnitude (``-1 - value``)."""

    magnitude: int
    width: Optional[int] = None

    def __post_init__(self) -> None:
        if self.width is None:
            _set(self, "width", minimal_width(self.magnitude))

    @property
    def value(self) -> int:
        return -1 - self.magnitude


@dataclass(frozen=True)
class ByteString:
    data: bytes
    width: Optional[int] = None

    def __post_init__(self) -> None:
        _set(self, "data", bytes(self.data))
        if self.width is None:
            _set(self, "width", minimal_width(len(self.data)))


@dataclass(frozen=True)
class IndefiniteByteString:
    chunks: Tuple[ByteString, ...] = ()

    def __post_init__(self) -> None:
        _set(self, "chunks", tuple(self.chunks))

    @property
    def data(self) -> bytes:
        return b"".join(c.data for c in self.chunks)


@dataclass(frozen=True)
class TextString:
    data: str
    width: Optional[int] = None

    def __post_init__(self) -> None:
        if self.width is None:
            _set(self, "width", minimal_width(len(self.data.encode("utf-8"))))


@dataclass(frozen=True)
class IndefiniteTextString:
    chunks: Tuple[TextString, ...] = ()

    def __post_init__(self) -> None:
        _set(self, "chunks", tuple(self.chunks))

    @property
    def data(self) -> str:
        return "".join(c.data for c in self.chunks)


@dataclass(frozen=True)
class Array:
    """Array of values.  ``width`` is meaningless (None) when indefinite."""

    items: Tuple["Value", ...] = ()
    width: Optional[int] = None
    indefinite: bool = False

    def __post_init__(self) -> None:
        _set(self, "items", tuple(self.items))
        if self.indefinite:
            _set(self, "width", None)
        elif self.width is None:
            _set(self, "width", minimal_width(len(self.items)))


@dataclass(frozen=True)
class Map:
    """Ordered key/value pairs.  Duplicate keys are kept as they came."""

    pairs: Tuple[Tuple["Value", "Value"], ...] = ()
    width: Optional[int] = None
    indefinite: bool = False

    def __post_init__(self) -> None:
        _set(self, "pairs", tuple((k, v) for k, v in self.pairs))
        if self.indefinite:
            _set(self, "width", None)
        elif self.width is None:
            _set(self, "width", minimal_width(len(self.pairs)))


@dataclass(frozen=True)
class Tag:
    number: int
    value: "Value"
    width: Optional[int] = None

    def __post_init__(self) -> None:
        if self.width is None:
            _set(self, "width", minimal_width(self.number))


@dataclass(frozen=True)
class Simple:
    code: int

    @property
    def width(self) -> int:
        return 0 if self.code < 24 else 1


@dataclass(frozen=True)
class Float:
    """IEEE 754 float kept as its exact bit pattern.

    Comparing bit patterns rather than float values keeps NaN payloads,
    negative zero and subnormal half floats distinct and equal to themselves.
    """

    bits: int
    width: int = 8

    @property
    def value(self) -> float:
        raw = struct.pack(FLOAT_BITS_FORMATS[self.width], self.bits)
        return struct.unpack(FLOAT_FORMATS[self.width], raw)[0]

    @classmethod
    def from_value(cls, x: float, width: Optional[int] = None) -> "Float":
        """Build a Float from a Python float.

        With no width, pick the narrowest of half/single/double that holds x
        exactly.  With a width, round to it (OverflowError if x is finite
        but too large for that width).  NaN always becomes the canonical
        quiet NaN of the chosen width.
        """
        if math.isnan(x):
            w = width or 2
            return cls(CANONICAL_NAN[w], w)
        if width is not None:
            return cls(_float_bits(x, width), width)
        for w in (2, 4):
            try:
                bits = _float_bits(x, w)
            except OverflowError:
                continue
            if cls(bits, w).value == x:
                return cls(bits, w)
        return cls(_float_bits(x, 8), 8)


def float_from_literal(text: str, width: Optional[int] = None) -> Float:
    """Float for a diagnostic-notation float literal (without its suffix).

    ValueError for text that is not a float, OverflowError when the value
    does not fit the requested width.
    """
    if text == "NaN":
        return Float.from_value(math.nan, width)
    if text == "Infinity":
        return Float.from_value(math.inf, width)
    if text == "-Infinity":
        return Float.from_value(-math.inf, width)
    return Float.from_value(float(text), width)


def _float_bits(x: float, width: int) -> int:
    raw = struct.pack(FLOAT_FORMATS[width], x)
    return struct.unpack(FLOAT_BITS_FORMATS[width], raw)[0]


Value = Union[
    UnsignedInteger,
    NegativeInteger,
    ByteString,
    IndefiniteByteString,
    TextString,
    IndefiniteTextString,
    Array,
    Map,
    Tag,
    Simple,
    Float,
]

FALSE = Simple(SIMPLE_FALSE)
TRUE = Simple(SIMPLE_TRUE)
NULL = Simple(SIMPLE_NULL)
UNDEFINED = Simple(SIMPLE_UNDEFINED)


# ── Construction helpers ──────────────────────────────────────

def int_to_bytes(n: int) -> bytes:
    """Big-endian bytes of a non-negative int, no leading zero bytes."""
    return n.to_bytes((n.bit_length() + 7) // 8, "big")


# int() and str() refuse decimal text past the interpreter's digit limit
# (4300 by default); bignums go through in pieces of this many digits.
_DECIMAL_CHUNK_DIGITS = 1000
_DECIMAL_CHUNK = 10 ** _DECIMAL_CHUNK_DIGITS


def int_to_decimal(n: int) -> str:
    """Decimal text of an int of any size."""
    if n < 0:
        return "-" + int_to_decimal(-n)
    parts = []
    while n >= _DECIMAL_CHUNK:
        n, low = divmod(n, _DECIMAL_CHUNK)
        parts.append(str(low).zfill(_DECIMAL_CHUNK_DIGITS))
    parts.append(str(n))
    return "".join(reversed(parts))


def decimal_to_int(text: str) -> int:
    """Optional ``-`` then ASCII digits, of any length.  ValueError otherwise."""
    negative = text.startswith("-")
    digits = text[1:] if negative else text
    if not digits or not (digits.isascii() and digits.isdigit()):
        raise ValueError("not a decimal integer {!r}".format(text[:40]))
    n = 0
    for i in range(0, len(digits), _DECIMAL_CHUNK_DIGITS):
        piece = digits[i:i + _DECIMAL_CHUNK_DIGITS]
        n = n * 10 ** len(piece) + int(piece)
    return -n if negative else n


def integer(n: int) -> Value:
    """Build the Value for an integer of any size.

    Integers beyond the 64-bit argument range become bignum tags (2 or 3)
    wrapping a big-endian byte string, per RFC 8949 §3.4.3.
    """
    if n >= 0:
        if n <= UINT64_MAX:
            return UnsignedInteger(n)
        return Tag(TAG_POSITIVE_BIGNUM, ByteString(int_to_bytes(n)))
    magnitude = -1 - n
    if magnitude <= UINT64_MAX:
        return NegativeInteger(magnitude)
    return Tag(TAG_NEGATIVE_BIGNUM, ByteString(int_to_bytes(magnitude)))


def integer_value(v: Value) -> Optional[int]:
    """Python int for an integer variant, None for anything else."""
    if isinstance(v, UnsignedInteger):
        return v.value
    if isinstance(v, NegativeInteger):
        return v.value
    return None
