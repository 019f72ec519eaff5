"""cbordiag — CBOR bytes, annotated hex and diagnostic notation.

Convert between the three common representations of CBOR (RFC 8949)
without losing encoding detail: integer, length and tag argument widths,
indefinite lengths and float widths all survive every round trip.

Quick start:
    >>> from cbordiag import parse, render
    >>> v = parse(bytes.fromhex("820102"))
    >>> render(v, "compact")
    '[1, 2]'
    >>> render(parse('{_ "a": 1}'), "hex")
    'bf616101ff'

Well-known tags print in specialized notation:
    >>> render(parse("c11a514b67b0"), "compact")
    "DT'2013-03-21T20:04:00Z'"
"""

from __future__ import annotations

from typing import List, Union

from ._constants import MAX_DEPTH
from ._core import decode_binary, decode_binary_partial, decode_sequence, encode_binary
from ._diag_parser import parse_diag
from ._diag_printer import print_diag
from ._errors import (
    ERR_BREAK_OUTSIDE_INDEFINITE,
    ERR_INVALID_ADDITIONAL_INFO,
    ERR_INVALID_BYTE_STRING,
    ERR_INVALID_CHUNK,
    ERR_INVALID_ESCAPE,
    ERR_INVALID_HEX_DIGIT,
    ERR_INVALID_NUMBER_LITERAL,
    ERR_INVALID_SEMANTIC_TAG_PAYLOAD,
    ERR_INVALID_UTF8,
    ERR_LIMIT_DEPTH,
    ERR_NO_PARSER,
    ERR_ODD_LENGTH,
    ERR_RESERVED_SIMPLE_CODE,
    ERR_TRAILING_BYTES,
    ERR_UNBALANCED_DELIMITER,
    ERR_UNEXPECTED_EOF,
    ERR_UNEXPECTED_TOKEN,
    ERR_UNTERMINATED_STRING,
    CborDiagError,
    DecodeError,
    DiagParseError,
    HexError,
)
from ._hex import annotate_hex, parse_hex
from ._model import (
    FALSE,
    NULL,
    TRUE,
    UNDEFINED,
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
    integer,
    minimal_width,
)
from ._tags import TAG_TABLE, is_known_tag, tag_name

__version__ = "0.4.0"

__all__ = [
    # Conversions
    "parse",
    "render",
    "render_sequence",
    "decode_binary",
    "decode_binary_partial",
    "decode_sequence",
    "encode_binary",
    "parse_hex",
    "annotate_hex",
    "parse_diag",
    "print_diag",
    # Value model
    "Value",
    "UnsignedInteger",
    "NegativeInteger",
    "ByteString",
    "IndefiniteByteString",
    "TextString",
    "IndefiniteTextString",
    "Array",
    "Map",
    "Tag",
    "Simple",
    "Float",
    "FALSE",
    "TRUE",
    "NULL",
    "UNDEFINED",
    "integer",
    "minimal_width",
    # Tags
    "TAG_TABLE",
    "is_known_tag",
    "tag_name",
    # Exceptions
    "CborDiagError",
    "DecodeError",
    "HexError",
    "DiagParseError",
    # Error codes
    "ERR_UNEXPECTED_EOF",
    "ERR_INVALID_ADDITIONAL_INFO",
    "ERR_BREAK_OUTSIDE_INDEFINITE",
    "ERR_INVALID_UTF8",
    "ERR_RESERVED_SIMPLE_CODE",
    "ERR_INVALID_CHUNK",
    "ERR_TRAILING_BYTES",
    "ERR_ODD_LENGTH",
    "ERR_INVALID_HEX_DIGIT",
    "ERR_UNEXPECTED_TOKEN",
    "ERR_UNTERMINATED_STRING",
    "ERR_INVALID_ESCAPE",
    "ERR_INVALID_NUMBER_LITERAL",
    "ERR_UNBALANCED_DELIMITER",
    "ERR_INVALID_SEMANTIC_TAG_PAYLOAD",
    "ERR_INVALID_BYTE_STRING",
    "ERR_LIMIT_DEPTH",
    "ERR_NO_PARSER",
]

SOURCES = ("auto", "bytes", "hex", "diag")
TARGETS = ("bytes", "hex", "annotated", "diag", "compact")


# ── Dispatch ──────────────────────────────────────────────────

def _as_text(data: Union[bytes, str]) -> str:
    if isinstance(data, str):
        return data
    return bytes(data).decode("utf-8")


def parse(data: Union[bytes, str], source: str = "auto", *,
          max_depth: int = MAX_DEPTH) -> Value:
    """Parse one CBOR item from any of the three forms.

    source is "bytes", "hex", "diag" or "auto".  Auto-detection tries
    binary (bytes input only), then hex, then diagnostic notation, and
    returns the first that parses.  When none does it raises CborDiagError
    with ERR_NO_PARSER, chaining the diagnostic-notation failure.
    """
    if source == "bytes":
        if isinstance(data, str):
            raise TypeError("binary input must be bytes")
        return decode_binary(data, max_depth=max_depth)
    if source == "hex":
        return decode_binary(parse_hex(_as_text(data)), max_depth=max_depth)
    if source == "diag":
        return parse_diag(_as_text(data), max_depth=max_depth)
    if source != "auto":
        raise ValueError("unknown source {!r}, expected one of {}".format(source, SOURCES))

    if not isinstance(data, str):
        try:
            return decode_binary(data, max_depth=max_depth)
        except DecodeError:
            pass
        try:
            text = _as_text(data)
        except UnicodeDecodeError:
            raise CborDiagError(ERR_NO_PARSER,
                                "input is neither CBOR, hex nor diagnostic notation")
    else:
        text = data
    try:
        return decode_binary(parse_hex(text), max_depth=max_depth)
    except (HexError, DecodeError):
        pass
    try:
        return parse_diag(text, max_depth=max_depth)
    except DiagParseError as e:
        raise CborDiagError(ERR_NO_PARSER,
                            "input is neither CBOR, hex nor diagnostic notation") from e


def render(val: Value, target: str = "diag") -> Union[bytes, str]:
    """Render a Value.

    Targets: "bytes" (binary CBOR), "hex" (plain lowercase hex),
    "annotated" (annotated hex), "diag" (pretty diagnostic notation) and
    "compact" (single-line diagnostic notation).
    """
    if target == "bytes":
        return encode_binary(val)
    if target == "hex":
        return encode_binary(val).hex()
    if target == "annotated":
        return annotate_hex(encode_binary(val))
    if target == "diag":
        return print_diag(val, pretty=True)
    if target == "compact":
        return print_diag(val)
    raise ValueError("unknown target {!r}, expected one of {}".format(target, TARGETS))


def render_sequence(vals: List[Value], target: str = "diag") -> Union[bytes, str]:
    """Render a CBOR sequence: concatenated for binary and hex targets,
    one rendering per line (annotated dumps separated by a blank line)
    for the text targets."""
    if target == "bytes":
        return b"".join(encode_binary(v) for v in vals)
    if target == "hex":
        return "".join(encode_binary(v).hex() for v in vals)
    if target == "annotated":
        return "\n".join(annotate_hex(encode_binary(v)) for v in vals)
    return "".join(render(v, target) + "\n" for v in vals)
