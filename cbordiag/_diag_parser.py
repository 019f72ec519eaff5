"""Diagnostic notation parser — text -> Value (RFC 8949 §8, RFC 8610 App. G).

Recursive descent over the text, one item per document.  Every helper takes
the text and a position and returns ``(value, next_position)``; whitespace
between tokens is skipped by the caller that expects the next token.

Unsuffixed literals take the width an RFC 8949 preferred-serialization
encoder would pick.  An encoding indicator (``_0`` .. ``_3``) forces the
argument width, or for floats the half/single/double width (``_1``, ``_2``,
``_3``).  Specialized literals such as ``dt'...'`` or ``1/3`` are handed to
the tag table, and a ValueError from it is reported as
ERR_INVALID_SEMANTIC_TAG_PAYLOAD at the start of the literal.
"""

from __future__ import annotations

import base64
import binascii
import math
import re
from typing import List, Optional, Tuple

from ._constants import (
    FLOAT_INDICATOR_TO_WIDTH,
    INDICATOR_TO_WIDTH,
    MAX_DEPTH,
    TAG_NEGATIVE_BIGNUM,
    TAG_POSITIVE_BIGNUM,
    TAG_RATIONAL,
    TAG_SELF_DESCRIBE,
    TAG_UUID,
    UINT64_MAX,
)
from ._errors import (
    ERR_INVALID_BYTE_STRING,
    ERR_INVALID_ESCAPE,
    ERR_INVALID_NUMBER_LITERAL,
    ERR_INVALID_SEMANTIC_TAG_PAYLOAD,
    ERR_LIMIT_DEPTH,
    ERR_UNBALANCED_DELIMITER,
    ERR_UNEXPECTED_TOKEN,
    ERR_UNTERMINATED_STRING,
    DiagParseError,
)
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
    decimal_to_int,
    float_from_literal,
    int_to_decimal,
)
from ._tags import APP_STRING_TAGS, URN_UUID_PREFIX, UUID_PATTERN, parse_specialized

_WS = re.compile(r"\s*")

_NUMBER = re.compile(
    r"-?(?:0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+"
    r"|[0-9]+(?P<frac>\.[0-9]+)?(?P<exp>[eE][+-]?[0-9]+)?)"
)

# Underscores only between letters, so ``NaN_1`` reads as NaN plus an indicator.
_WORD = re.compile(r"[A-Za-z][A-Za-z0-9]*(?:_[A-Za-z][A-Za-z0-9]*)*")

_INDICATOR = re.compile(r"_([0-9])")

_BARE_UUID = re.compile(r"(?:urn:uuid:)?" + UUID_PATTERN + r"(?![0-9A-Za-z_\-])")

# What may follow a urn:uuid: literal's body.
_URN_BODY = re.compile(r"[^\s,:\]\})(]*")

_CLOSERS = {"[": "]", "{": "}", "(": ")"}

_NAMED_SIMPLE = {"false": FALSE, "true": TRUE, "null": NULL, "undefined": UNDEFINED}

_FLOAT_WORDS = ("NaN", "Infinity")

_JSON_ESCAPES = {
    '"': '"',
    "'": "'",
    "\\": "\\",
    "/": "/",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
}

_BYTE_STRING_PREFIXES = ("h", "b64", "b64url", "b32", "h32")


# ── Helpers ──────────────────────────────────────────────────

def _skip_ws(text: str, pos: int) -> int:
    return _WS.match(text, pos).end()


def _fits(n: int, width: int) -> bool:
    if width == 0:
        return n < 24
    return n < 1 << (8 * width)


def _check_depth(depth: int, max_depth: int, start: int) -> None:
    if depth + 1 > max_depth:
        raise DiagParseError(ERR_LIMIT_DEPTH,
                             "nesting exceeds max_depth {}".format(max_depth), start)


def _read_indicator(text: str, pos: int) -> Tuple[Optional[str], int]:
    """An ``_N`` encoding indicator at pos, as (digit, next pos) or (None, pos)."""
    m = _INDICATOR.match(text, pos)
    if m is None:
        return None, pos
    return m.group(1), m.end()


def _width_for(digit: str, pos: int) -> int:
    if digit not in INDICATOR_TO_WIDTH:
        raise DiagParseError(ERR_INVALID_NUMBER_LITERAL,
                             "unknown encoding indicator _{}".format(digit), pos)
    return INDICATOR_TO_WIDTH[digit]


def _specialized(number: int, body: str, start: int) -> Tag:
    try:
        return parse_specialized(number, body)
    except ValueError as e:
        raise DiagParseError(ERR_INVALID_SEMANTIC_TAG_PAYLOAD, str(e), start)


def _unexpected(text: str, pos: int, what: str) -> DiagParseError:
    if pos >= len(text):
        return DiagParseError(ERR_UNEXPECTED_TOKEN,
                              "unexpected end of input, expected {}".format(what), pos)
    return DiagParseError(ERR_UNEXPECTED_TOKEN,
                          "unexpected {!r}, expected {}".format(text[pos], what), pos)


# ── Quoted strings ───────────────────────────────────────────

def _scan_quoted(text: str, pos: int, json_escapes: bool) -> Tuple[str, int]:
    """Read a quoted string whose opening quote is at pos.

    Returns (content, position after the closing quote).  Without
    json_escapes only the quote character and backslash may be escaped,
    which is the rule for app-strings and base-encoded byte strings.
    """
    quote = text[pos]
    out: List[str] = []
    i = pos + 1
    while True:
        if i >= len(text):
            raise DiagParseError(ERR_UNTERMINATED_STRING, "unterminated string", pos)
        ch = text[i]
        if ch == quote:
            return "".join(out), i + 1
        if ch != "\\":
            out.append(ch)
            i += 1
            continue
        if i + 1 >= len(text):
            raise DiagParseError(ERR_UNTERMINATED_STRING, "unterminated string", pos)
        esc = text[i + 1]
        if esc == quote or esc == "\\":
            out.append(esc)
            i += 2
        elif json_escapes and esc in _JSON_ESCAPES:
            out.append(_JSON_ESCAPES[esc])
            i += 2
        elif json_escapes and esc == "u":
            ch, i = _scan_unicode_escape(text, i)
            out.append(ch)
        else:
            raise DiagParseError(ERR_INVALID_ESCAPE,
                                 "invalid escape \\{}".format(esc), i)


def _hex4(text: str, pos: int) -> int:
    digits = text[pos:pos + 4]
    if len(digits) != 4 or not all(c in "0123456789abcdefABCDEF" for c in digits):
        raise DiagParseError(ERR_INVALID_ESCAPE, "\\u needs four hex digits", pos - 2)
    return int(digits, 16)


def _scan_unicode_escape(text: str, pos: int) -> Tuple[str, int]:
    """``\\uXXXX`` at pos, joining a surrogate pair.  Lone surrogates are errors."""
    code = _hex4(text, pos + 2)
    if 0xDC00 <= code <= 0xDFFF:
        raise DiagParseError(ERR_INVALID_ESCAPE, "lone low surrogate", pos)
    if 0xD800 <= code <= 0xDBFF:
        if text[pos + 6:pos + 8] != "\\u":
            raise DiagParseError(ERR_INVALID_ESCAPE, "lone high surrogate", pos)
        low = _hex4(text, pos + 8)
        if not 0xDC00 <= low <= 0xDFFF:
            raise DiagParseError(ERR_INVALID_ESCAPE, "lone high surrogate", pos)
        code = 0x10000 + ((code - 0xD800) << 10) + (low - 0xDC00)
        return chr(code), pos + 12
    return chr(code), pos + 6


def _decode_base(prefix: str, body: str, start: int) -> bytes:
    """Content of h'', b64'', b64url'', b32'' or h32''."""
    s = "".join(body.split())
    try:
        if prefix == "h":
            return bytes.fromhex(s)
        if prefix in ("b64", "b64url"):
            # Either alphabet, padding optional.
            s = s.rstrip("=").replace("-", "+").replace("_", "/")
            return base64.b64decode(s + "=" * (-len(s) % 4), validate=True)
        s = s.rstrip("=")
        padded = s + "=" * (-len(s) % 8)
        if prefix == "b32":
            return base64.b32decode(padded, casefold=True)
        return base64.b32hexdecode(padded, casefold=True)
    except (binascii.Error, ValueError) as e:
        raise DiagParseError(ERR_INVALID_BYTE_STRING,
                             "bad {}'' content: {}".format(prefix, e), start)


def _finish_string(text: str, pos: int, start: int, data, is_text: bool) -> Tuple[Value, int]:
    """Apply a trailing ``_N`` length indicator, or ``_`` for an empty
    indefinite string, to a string literal that ended at pos."""
    digit, end = _read_indicator(text, pos)
    if digit is not None:
        width = _width_for(digit, pos)
        length = len(data.encode("utf-8")) if is_text else len(data)
        if not _fits(length, width):
            raise DiagParseError(ERR_INVALID_NUMBER_LITERAL,
                                 "length {} does not fit _{}".format(length, digit), pos)
        return (TextString(data, width) if is_text else ByteString(data, width)), end
    if text.startswith("_", pos):
        if data:
            raise _unexpected(text, pos, "',' or closing delimiter")
        return (IndefiniteTextString() if is_text else IndefiniteByteString()), pos + 1
    return (TextString(data) if is_text else ByteString(data)), pos


# ── Numbers ──────────────────────────────────────────────────

def _parse_float(text: str, literal: str, start: int, end: int) -> Tuple[Value, int]:
    digit, after = _read_indicator(text, end)
    width = None
    if digit is not None:
        if digit not in FLOAT_INDICATOR_TO_WIDTH:
            raise DiagParseError(ERR_INVALID_NUMBER_LITERAL,
                                 "_{} is not a float width".format(digit), end)
        width = FLOAT_INDICATOR_TO_WIDTH[digit]
    try:
        val = float_from_literal(literal, width)
    except OverflowError:
        raise DiagParseError(ERR_INVALID_NUMBER_LITERAL,
                             "{} does not fit a {}-byte float".format(literal, width), start)
    if math.isinf(val.value) and "Infinity" not in literal:
        raise DiagParseError(ERR_INVALID_NUMBER_LITERAL,
                             "{} is out of float range".format(literal), start)
    return val, after


def _int_literal(literal: str) -> int:
    negative = literal.startswith("-")
    body = literal[1:] if negative else literal
    prefix = body[:2].lower()
    if prefix == "0x":
        n = int(body[2:], 16)
    elif prefix == "0o":
        n = int(body[2:], 8)
    elif prefix == "0b":
        n = int(body[2:], 2)
    else:
        n = decimal_to_int(body)
    return -n if negative else n


def _parse_number(text: str, pos: int, depth: int, max_depth: int) -> Tuple[Value, int]:
    start = pos
    if text.startswith("-Infinity", pos):
        return _parse_float(text, "-Infinity", start, pos + len("-Infinity"))
    m = _NUMBER.match(text, pos)
    if m is None:
        raise _unexpected(text, pos, "a value")
    literal = m.group(0)
    end = m.end()
    nxt = text[end:end + 1]
    if nxt and (nxt.isalnum() or nxt == "."):
        raise DiagParseError(ERR_INVALID_NUMBER_LITERAL,
                             "malformed number {!r}".format(text[start:end + 1]), start)

    if m.group("frac") or m.group("exp"):
        return _parse_float(text, literal, start, end)

    n = _int_literal(literal)

    if nxt == "/":
        return _parse_rational(text, literal, start, end)

    digit, after = _read_indicator(text, end)
    width = None if digit is None else _width_for(digit, end)

    if text.startswith("(", after):
        if n < 0 or n > UINT64_MAX:
            raise DiagParseError(ERR_INVALID_NUMBER_LITERAL,
                                 "tag number {} out of range".format(literal), start)
        if width is not None and not _fits(n, width):
            raise DiagParseError(ERR_INVALID_NUMBER_LITERAL,
                                 "tag number {} does not fit _{}".format(n, digit), end)
        _check_depth(depth, max_depth, start)
        inner, pos = _parse_value(text, _skip_ws(text, after + 1), depth + 1, max_depth)
        pos = _expect_closer(text, pos, "(")
        return Tag(n, inner, width), pos

    magnitude = n if n >= 0 else -1 - n
    if magnitude > UINT64_MAX:
        if width is not None:
            raise DiagParseError(ERR_INVALID_NUMBER_LITERAL,
                                 "{} is too large for an encoding indicator".format(literal),
                                 end)
        number = TAG_POSITIVE_BIGNUM if n >= 0 else TAG_NEGATIVE_BIGNUM
        return _specialized(number, int_to_decimal(n), start), after
    if width is not None and not _fits(magnitude, width):
        raise DiagParseError(ERR_INVALID_NUMBER_LITERAL,
                             "{} does not fit _{}".format(literal, digit), end)
    if n >= 0:
        return UnsignedInteger(n, width), after
    return NegativeInteger(magnitude, width), after


def _parse_rational(text: str, numerator: str, start: int, slash: int) -> Tuple[Value, int]:
    m = _NUMBER.match(text, slash + 1)
    if m is None:
        raise DiagParseError(ERR_INVALID_SEMANTIC_TAG_PAYLOAD,
                             "rational needs a denominator", start)
    end = m.end()
    return _specialized(TAG_RATIONAL, text[start:end], start), end


# ── Containers ───────────────────────────────────────────────

def _expect_closer(text: str, pos: int, opener: str) -> int:
    pos = _skip_ws(text, pos)
    closer = _CLOSERS[opener]
    if text.startswith(closer, pos):
        return pos + 1
    if pos >= len(text) or text[pos] in ")]}":
        raise DiagParseError(ERR_UNBALANCED_DELIMITER,
                             "expected {!r} to close {!r}".format(closer, opener), pos)
    raise _unexpected(text, pos, repr(closer))


def _after_item(text: str, pos: int, opener: str) -> Tuple[bool, int]:
    """After a container item: (closed, next position)."""
    pos = _skip_ws(text, pos)
    if text.startswith(",", pos):
        pos = _skip_ws(text, pos + 1)
        if text.startswith(_CLOSERS[opener], pos):
            return True, pos + 1
        return False, pos
    return True, _expect_closer(text, pos, opener)


def _container_marker(text: str, pos: int) -> Tuple[bool, Optional[int], int]:
    """Read ``_`` or ``_N`` after an opening bracket: (indefinite, width, pos)."""
    digit, end = _read_indicator(text, pos)
    if digit is not None:
        return False, _width_for(digit, pos), end
    if text.startswith("_", pos):
        return True, None, pos + 1
    return False, None, pos


def _parse_array(text: str, pos: int, depth: int, max_depth: int) -> Tuple[Value, int]:
    start = pos
    _check_depth(depth, max_depth, start)
    indefinite, width, pos = _container_marker(text, pos + 1)
    items: List[Value] = []
    pos = _skip_ws(text, pos)
    if text.startswith("]", pos):
        pos += 1
    else:
        while True:
            item, pos = _parse_value(text, pos, depth + 1, max_depth)
            items.append(item)
            closed, pos = _after_item(text, pos, "[")
            if closed:
                break
    if width is not None and not _fits(len(items), width):
        raise DiagParseError(ERR_INVALID_NUMBER_LITERAL,
                             "array length {} does not fit its indicator".format(len(items)),
                             start)
    return Array(tuple(items), width, indefinite), pos


def _parse_map(text: str, pos: int, depth: int, max_depth: int) -> Tuple[Value, int]:
    start = pos
    _check_depth(depth, max_depth, start)
    indefinite, width, pos = _container_marker(text, pos + 1)
    pairs = []
    pos = _skip_ws(text, pos)
    if text.startswith("}", pos):
        pos += 1
    else:
        while True:
            key, pos = _parse_value(text, pos, depth + 1, max_depth)
            pos = _skip_ws(text, pos)
            if not text.startswith(":", pos):
                raise _unexpected(text, pos, "':'")
            val, pos = _parse_value(text, _skip_ws(text, pos + 1), depth + 1, max_depth)
            pairs.append((key, val))
            closed, pos = _after_item(text, pos, "{")
            if closed:
                break
    if width is not None and not _fits(len(pairs), width):
        raise DiagParseError(ERR_INVALID_NUMBER_LITERAL,
                             "map length {} does not fit its indicator".format(len(pairs)),
                             start)
    return Map(tuple(pairs), width, indefinite), pos


def _parse_chunks(text: str, pos: int, depth: int, max_depth: int) -> Tuple[Value, int]:
    """``(_ chunk, ...)``: an indefinite string of definite chunks of one kind."""
    chunks: List[Value] = []
    kind = None
    pos = _skip_ws(text, pos + 2)
    if text.startswith(")", pos):
        return IndefiniteByteString(), pos + 1
    while True:
        chunk_start = pos
        chunk, pos = _parse_value(text, pos, depth, max_depth)
        if not isinstance(chunk, (ByteString, TextString)):
            raise DiagParseError(ERR_UNEXPECTED_TOKEN,
                                 "indefinite string chunks must be definite strings",
                                 chunk_start)
        if kind is None:
            kind = type(chunk)
        elif type(chunk) is not kind:
            raise DiagParseError(ERR_UNEXPECTED_TOKEN,
                                 "indefinite string mixes byte and text chunks", chunk_start)
        chunks.append(chunk)
        closed, pos = _after_item(text, pos, "(")
        if closed:
            break
    if kind is TextString:
        return IndefiniteTextString(tuple(chunks)), pos
    return IndefiniteByteString(tuple(chunks)), pos


# ── Words ────────────────────────────────────────────────────

def _parse_word(text: str, pos: int, depth: int, max_depth: int) -> Tuple[Value, int]:
    start = pos
    m = _WORD.match(text, pos)
    word = m.group(0)
    end = m.end()

    if text.startswith("'", end):
        if word in _BYTE_STRING_PREFIXES:
            body, after = _scan_quoted(text, end, json_escapes=False)
            data = _decode_base(word, body, start)
            return _finish_string(text, after, start, data, is_text=False)
        if word in APP_STRING_TAGS:
            body, after = _scan_quoted(text, end, json_escapes=False)
            return _specialized(APP_STRING_TAGS[word], body, start), after
        raise DiagParseError(ERR_UNEXPECTED_TOKEN,
                             "unknown string prefix {!r}".format(word), start)

    if word in _FLOAT_WORDS:
        return _parse_float(text, word, start, end)

    if word in _NAMED_SIMPLE:
        return _NAMED_SIMPLE[word], end

    if word == "simple" and text.startswith("(", end):
        pos = _skip_ws(text, end + 1)
        m = _NUMBER.match(text, pos)
        if m is None or m.group("frac") or m.group("exp"):
            raise _unexpected(text, pos, "a simple value number")
        code = _int_literal(m.group(0))
        if code < 0 or code > 0xFF:
            raise DiagParseError(ERR_INVALID_NUMBER_LITERAL,
                                 "simple({}) is not a valid simple value".format(code), pos)
        return Simple(code), _expect_closer(text, m.end(), "(")

    if word == "self_describe" and text.startswith("(", end):
        _check_depth(depth, max_depth, start)
        inner, pos = _parse_value(text, _skip_ws(text, end + 1), depth + 1, max_depth)
        return Tag(TAG_SELF_DESCRIBE, inner), _expect_closer(text, pos, "(")

    raise DiagParseError(ERR_UNEXPECTED_TOKEN, "unknown word {!r}".format(word), start)


# ── Values ───────────────────────────────────────────────────

def _parse_value(text: str, pos: int, depth: int, max_depth: int) -> Tuple[Value, int]:
    """Parse one value starting exactly at pos (no leading whitespace)."""
    if pos >= len(text):
        raise _unexpected(text, pos, "a value")
    ch = text[pos]

    if ch == "[":
        return _parse_array(text, pos, depth, max_depth)
    if ch == "{":
        return _parse_map(text, pos, depth, max_depth)
    if ch == "(":
        if text.startswith("(_", pos):
            return _parse_chunks(text, pos, depth, max_depth)
        raise _unexpected(text, pos, "a value")
    if ch in ")]}":
        raise DiagParseError(ERR_UNBALANCED_DELIMITER,
                             "unexpected {!r}".format(ch), pos)

    if ch == '"':
        body, end = _scan_quoted(text, pos, json_escapes=True)
        return _finish_string(text, end, pos, body, is_text=True)
    if ch == "'":
        body, end = _scan_quoted(text, pos, json_escapes=True)
        return _finish_string(text, end, pos, body.encode("utf-8"), is_text=False)

    if text.startswith(URN_UUID_PREFIX, pos):
        end = _URN_BODY.match(text, pos).end()
        return _specialized(TAG_UUID, text[pos:end], pos), end
    m = _BARE_UUID.match(text, pos)
    if m is not None:
        return _specialized(TAG_UUID, m.group(0), pos), m.end()

    if ch.isdigit() or ch == "-":
        return _parse_number(text, pos, depth, max_depth)
    if ch.isascii() and ch.isalpha():
        return _parse_word(text, pos, depth, max_depth)

    raise _unexpected(text, pos, "a value")


def parse_diag(text: str, *, max_depth: int = MAX_DEPTH) -> Value:
    """Parse one item of diagnostic notation.

    Raises DiagParseError (with a character offset) on malformed input;
    nothing but whitespace may follow the item.
    """
    pos = _skip_ws(text, 0)
    val, pos = _parse_value(text, pos, 0, max_depth)
    pos = _skip_ws(text, pos)
    if pos < len(text):
        if text[pos] in ")]}":
            raise DiagParseError(ERR_UNBALANCED_DELIMITER,
                                 "unmatched {!r}".format(text[pos]), pos)
        raise DiagParseError(ERR_UNEXPECTED_TOKEN,
                             "unexpected {!r} after the item".format(text[pos]), pos)
    return val
