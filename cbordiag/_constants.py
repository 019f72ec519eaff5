"""CBOR constants — major types, additional-information values, simple codes,
well-known tag numbers, and the nesting limit.

RFC references: RFC 8949 §3 (initial byte), §3.3 (major type 7),
§3.4 (tags), RFC 8610 Appendix G (diagnostic notation extensions).
"""

from __future__ import annotations

# ── Major types (top 3 bits of the initial byte) ─────────────
MT_UNSIGNED: int = 0
MT_NEGATIVE: int = 1
MT_BYTES: int = 2
MT_TEXT: int = 3
MT_ARRAY: int = 4
MT_MAP: int = 5
MT_TAG: int = 6
MT_SIMPLE: int = 7

# ── Additional information (low 5 bits) ──────────────────────
# 0..23 carry the argument directly.  24..27 say the argument follows in
# 1/2/4/8 big-endian bytes.  28..30 are reserved.  31 is indefinite length
# (major types 2-5) or break (major type 7).
AI_ONE_BYTE: int = 24
AI_TWO_BYTES: int = 25
AI_FOUR_BYTES: int = 26
AI_EIGHT_BYTES: int = 27
AI_INDEFINITE: int = 31

BREAK: int = 0xFF

# Argument width in bytes, keyed by additional info and back again.
# Width 0 means "packed into the initial byte".
AI_TO_WIDTH = {AI_ONE_BYTE: 1, AI_TWO_BYTES: 2, AI_FOUR_BYTES: 4, AI_EIGHT_BYTES: 8}
WIDTH_TO_AI = {w: ai for ai, w in AI_TO_WIDTH.items()}

# Diagnostic notation encoding indicators: "_0" .. "_3" select a 1/2/4/8
# byte argument.  For floats the same digits select half/single/double.
INDICATOR_TO_WIDTH = {"0": 1, "1": 2, "2": 4, "3": 8}
WIDTH_TO_INDICATOR = {w: i for i, w in INDICATOR_TO_WIDTH.items()}
FLOAT_INDICATOR_TO_WIDTH = {"1": 2, "2": 4, "3": 8}
FLOAT_WIDTH_TO_INDICATOR = {w: i for i, w in FLOAT_INDICATOR_TO_WIDTH.items()}

UINT64_MAX: int = 2**64 - 1

# ── Major type 7 ─────────────────────────────────────────────
SIMPLE_FALSE: int = 20
SIMPLE_TRUE: int = 21
SIMPLE_NULL: int = 22
SIMPLE_UNDEFINED: int = 23
AI_HALF_FLOAT: int = 25
AI_SINGLE_FLOAT: int = 26
AI_DOUBLE_FLOAT: int = 27

SIMPLE_NAMES = {
    SIMPLE_FALSE: "false",
    SIMPLE_TRUE: "true",
    SIMPLE_NULL: "null",
    SIMPLE_UNDEFINED: "undefined",
}

# f8 00 .. f8 1f are not well-formed (RFC 8949 §3.3).
MIN_EXTENDED_SIMPLE: int = 32

# struct format characters per float width.
FLOAT_FORMATS = {2: ">e", 4: ">f", 8: ">d"}
FLOAT_BITS_FORMATS = {2: ">H", 4: ">I", 8: ">Q"}

# Canonical quiet NaN per width, used when the diagnostic text says "NaN".
CANONICAL_NAN = {2: 0x7E00, 4: 0x7FC00000, 8: 0x7FF8000000000000}

# ── Well-known tags ──────────────────────────────────────────
TAG_DATETIME_STRING: int = 0
TAG_EPOCH_DATETIME: int = 1
TAG_POSITIVE_BIGNUM: int = 2
TAG_NEGATIVE_BIGNUM: int = 3
TAG_DECIMAL_FRACTION: int = 4
TAG_BIGFLOAT: int = 5
TAG_EXPECT_BASE64URL: int = 21
TAG_EXPECT_BASE64: int = 22
TAG_EXPECT_BASE16: int = 23
TAG_ENCODED_CBOR: int = 24
TAG_RATIONAL: int = 30
TAG_URI: int = 32
TAG_BASE64URL_TEXT: int = 33
TAG_BASE64_TEXT: int = 34
TAG_REGEX: int = 35
TAG_MIME: int = 36
TAG_UUID: int = 37
TAG_SELF_DESCRIBE: int = 55799

# ── Safety limits ────────────────────────────────────────────
# Both codecs recurse once per nesting level.  The default leaves headroom
# under CPython's default recursion limit for the diagnostic parser, which
# uses several frames per level.
MAX_DEPTH: int = 128

# Containers whose single-line rendering is shorter than this stay on one
# line in the pretty layout.
PRETTY_TRIVIAL_WIDTH: int = 60
PRETTY_INDENT: int = 4
