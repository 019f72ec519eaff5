"""Semantic tag table.

Maps a tag number to what the diagnostic printer and parser know about it:

    name       human-readable name, also used in annotated hex
    prefix     app-string prefix (``dt'...'``), None for other notations
    validate   inner -> bool: can the specialized notation carry this payload?
    render     (inner, emit) -> str: the specialized literal
    parse      literal body -> inner Value, ValueError when malformed

Printing is lenient: a payload that fails validation (wrong shape, non
minimal width, anything the specialized literal could not reproduce) is
printed with generic ``N(value)`` syntax instead.  Parsing is strict: the
diagnostic parser turns a ValueError from ``parse`` into
ERR_INVALID_SEMANTIC_TAG_PAYLOAD.

For app-string tags ``validate`` renders the body and parses it back, so a
specialized literal is only ever printed when it re-parses to exactly the
same inner Value.
"""

from __future__ import annotations

import math
import re
import uuid
from datetime import datetime, timedelta, timezone
from decimal import ROUND_FLOOR, Decimal
from typing import Callable, Dict, NamedTuple, Optional

from ._constants import (
    TAG_BASE64_TEXT,
    TAG_BASE64URL_TEXT,
    TAG_BIGFLOAT,
    TAG_DATETIME_STRING,
    TAG_DECIMAL_FRACTION,
    TAG_ENCODED_CBOR,
    TAG_EPOCH_DATETIME,
    TAG_EXPECT_BASE16,
    TAG_EXPECT_BASE64,
    TAG_EXPECT_BASE64URL,
    TAG_MIME,
    TAG_NEGATIVE_BIGNUM,
    TAG_POSITIVE_BIGNUM,
    TAG_RATIONAL,
    TAG_REGEX,
    TAG_SELF_DESCRIBE,
    TAG_URI,
    TAG_UUID,
    UINT64_MAX,
)
from ._model import (
    Array,
    ByteString,
    Float,
    Tag,
    TextString,
    UnsignedInteger,
    Value,
    decimal_to_int,
    int_to_bytes,
    int_to_decimal,
    integer,
    integer_value,
    minimal_width,
)

Emit = Callable[[Value], str]


class TagSemantics(NamedTuple):
    name: str
    prefix: Optional[str] = None
    validate: Optional[Callable[[Value], bool]] = None
    render: Optional[Callable[[Value, Emit], str]] = None
    parse: Optional[Callable[[str], Value]] = None


def quote_app_string(prefix: str, body: str) -> str:
    """``prefix'body'`` with backslash and single quote escaped."""
    return "{}'{}'".format(prefix, body.replace("\\", "\\\\").replace("'", "\\'"))


def _app_string_tag(name: str, prefix: Optional[str],
                    body: Callable[[Value], Optional[str]],
                    parse: Callable[[str], Value]) -> TagSemantics:
    """Entry whose literal is a pure function of the payload.

    ``body`` returns the literal text for a payload (None if it has no
    specialized form).  Without a prefix the body is the whole literal, as
    with bignums and rationals.
    """

    def validate(inner: Value) -> bool:
        text = body(inner)
        if text is None:
            return False
        try:
            return parse(text) == inner
        except ValueError:
            return False

    def render(inner: Value, emit: Emit) -> str:
        text = body(inner)
        if prefix is None:
            return text
        return quote_app_string(prefix, text)

    return TagSemantics(name, prefix, validate, render, parse)


# ── Bignums (tags 2, 3) ──────────────────────────────────────
# Written as plain integers beyond the 64-bit argument range.

def _bignum_magnitude(inner: Value) -> Optional[int]:
    if not isinstance(inner, ByteString):
        return None
    return int.from_bytes(inner.data, "big")


def _positive_bignum_body(inner: Value) -> Optional[str]:
    n = _bignum_magnitude(inner)
    return None if n is None else int_to_decimal(n)


def _negative_bignum_body(inner: Value) -> Optional[str]:
    n = _bignum_magnitude(inner)
    return None if n is None else int_to_decimal(-1 - n)


def _parse_positive_bignum(text: str) -> Value:
    n = decimal_to_int(text)
    if n <= UINT64_MAX:
        raise ValueError("{} fits in an unsigned integer".format(text))
    return ByteString(int_to_bytes(n))


def _parse_negative_bignum(text: str) -> Value:
    magnitude = -1 - decimal_to_int(text)
    if magnitude <= UINT64_MAX:
        raise ValueError("{} fits in a negative integer".format(text))
    return ByteString(int_to_bytes(magnitude))


# ── Rational numbers (tag 30) ────────────────────────────────

_RATIONAL = re.compile(r"^(-?[0-9]+)/([0-9]+)\Z")


def _rational_body(inner: Value) -> Optional[str]:
    if not isinstance(inner, Array) or inner.indefinite or len(inner.items) != 2:
        return None
    num = integer_value(inner.items[0])
    den = inner.items[1]
    if num is None or not isinstance(den, UnsignedInteger) or den.value == 0:
        return None
    return "{}/{}".format(int_to_decimal(num), den.value)


def _parse_rational(text: str) -> Value:
    m = _RATIONAL.match(text)
    if not m:
        raise ValueError("malformed rational {!r}".format(text))
    den = decimal_to_int(m.group(2))
    if den == 0:
        raise ValueError("rational with zero denominator")
    return Array((integer(decimal_to_int(m.group(1))), integer(den)))


# ── Decimal fractions (tag 4) ────────────────────────────────
# [exponent, mantissa] means mantissa * 10**exponent.  The literal follows
# the decimal module's string form, which keeps the exponent exactly
# ("273.15" is [-2, 27315], "5E+3" is [3, 5]), but is built by hand: the
# exponent may be any 64-bit argument, far past what Decimal accepts.

_DECIMAL = re.compile(r"^([+-]?)([0-9]*)(?:\.([0-9]*))?(?:[eE]([+-]?[0-9]+))?\Z")


def _decimal_body(inner: Value) -> Optional[str]:
    if not isinstance(inner, Array) or inner.indefinite or len(inner.items) != 2:
        return None
    exponent = integer_value(inner.items[0])
    mantissa = integer_value(inner.items[1])
    if exponent is None or mantissa is None:
        return None
    digits = int_to_decimal(abs(mantissa))
    sign = "-" if mantissa < 0 else ""
    leading = exponent + len(digits)
    # Plain notation for small negative exponents, otherwise one digit
    # before the point and an explicit exponent.
    point = leading if exponent <= 0 and leading > -6 else 1
    if point <= 0:
        number = "0." + "0" * -point + digits
    elif point >= len(digits):
        number = digits + "0" * (point - len(digits))
    else:
        number = digits[:point] + "." + digits[point:]
    if leading != point:
        number += "E{:+d}".format(leading - point)
    return sign + number


def _parse_decimal(text: str) -> Value:
    m = _DECIMAL.match(text)
    if not m or not (m.group(2) or m.group(3)):
        raise ValueError("malformed decimal fraction {!r}".format(text))
    sign, whole, fraction, exp = m.groups()
    fraction = fraction or ""
    exponent = decimal_to_int(exp.lstrip("+")) if exp else 0
    exponent -= len(fraction)
    if not -UINT64_MAX - 1 <= exponent <= UINT64_MAX:
        raise ValueError("decimal fraction exponent out of range in {!r}".format(text))
    mantissa = decimal_to_int(whole + fraction)
    return Array((integer(exponent), integer(-mantissa if sign == "-" else mantissa)))


# ── Date/time (tags 0, 1) ────────────────────────────────────

_RFC3339 = re.compile(
    r"^([0-9]{4})-([0-9]{2})-([0-9]{2})[Tt]([0-9]{2}):([0-9]{2}):([0-9]{2})"
    r"(?:\.([0-9]+))?([Zz]|[+-][0-9]{2}:[0-9]{2})\Z"
)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Year 9999 is about 2.5e11 seconds out; beyond that datetime overflows.
_MAX_EPOCH_SECONDS = 1e12


def _parse_rfc3339(text: str):
    """Return (aware datetime, fraction digits).  ValueError when malformed."""
    m = _RFC3339.match(text)
    if not m:
        raise ValueError("malformed date/time {!r}".format(text))
    year, month, day, hour, minute, second = (int(g) for g in m.groups()[:6])
    zone = m.group(8)
    if zone in ("Z", "z"):
        tz = timezone.utc
    else:
        hours, minutes = int(zone[1:3]), int(zone[4:6])
        if hours > 23 or minutes > 59:
            raise ValueError("bad utc offset {!r}".format(zone))
        offset = timedelta(hours=hours, minutes=minutes)
        tz = timezone(-offset if zone[0] == "-" else offset)
    # A leap second is carried into the next minute.
    leap = second == 60
    dt = datetime(year, month, day, hour, minute, 59 if leap else second, tzinfo=tz)
    if leap:
        try:
            dt += timedelta(seconds=1)
        except OverflowError:
            raise ValueError("date/time out of range {!r}".format(text))
    return dt, m.group(7) or ""


def _datetime_string_body(inner: Value) -> Optional[str]:
    if not isinstance(inner, TextString):
        return None
    return inner.data


def _parse_datetime_string(text: str) -> Value:
    _parse_rfc3339(text)
    return TextString(text)


def _format_epoch(seconds: int, fraction: str) -> Optional[str]:
    try:
        dt = _EPOCH + timedelta(seconds=seconds)
    except OverflowError:
        return None
    return "{:04d}-{:02d}-{:02d}T{:02d}:{:02d}:{:02d}{}Z".format(
        dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second,
        "." + fraction if fraction else "")


def _epoch_datetime_body(inner: Value) -> Optional[str]:
    seconds = integer_value(inner)
    if seconds is not None:
        return _format_epoch(seconds, "")
    if not isinstance(inner, Float):
        return None
    x = inner.value
    if not math.isfinite(x) or abs(x) > _MAX_EPOCH_SECONDS:
        return None
    d = Decimal(repr(x))
    whole = int(d.to_integral_value(rounding=ROUND_FLOOR))
    fraction = d - whole
    digits = "" if fraction == 0 else format(fraction, "f").split(".")[1].rstrip("0")
    return _format_epoch(whole, digits)


def _parse_epoch_datetime(text: str) -> Value:
    dt, fraction = _parse_rfc3339(text)
    delta = dt - _EPOCH
    seconds = delta.days * 86400 + delta.seconds
    if not fraction.strip("0"):
        return integer(seconds)
    return Float.from_value(float(Decimal(seconds) + Decimal("0." + fraction)))


# ── UUID (tag 37) ────────────────────────────────────────────

UUID_PATTERN = r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
URN_UUID_PREFIX = "urn:uuid:"
_UUID = re.compile("^" + UUID_PATTERN + r"\Z")


def _uuid_body(inner: Value) -> Optional[str]:
    if not isinstance(inner, ByteString) or len(inner.data) != 16:
        return None
    return str(uuid.UUID(bytes=inner.data))


def _parse_uuid(text: str) -> Value:
    if text.startswith(URN_UUID_PREFIX):
        text = text[len(URN_UUID_PREFIX):]
    if not _UUID.match(text):
        raise ValueError("malformed uuid {!r}".format(text))
    return ByteString(uuid.UUID(text).bytes)


# ── URI (tag 32), regular expression (tag 35) ────────────────

_URI = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:[^\s]*\Z")


def _text_body(inner: Value) -> Optional[str]:
    if not isinstance(inner, TextString):
        return None
    return inner.data


def _parse_uri(text: str) -> Value:
    if not _URI.match(text):
        raise ValueError("malformed uri {!r}".format(text))
    return TextString(text)


def _parse_regex(text: str) -> Value:
    return TextString(text)


# ── Self-describe (tag 55799) ────────────────────────────────

def _render_self_describe(inner: Value, emit: Emit) -> str:
    return "self_describe({})".format(emit(inner))


# ── The table ────────────────────────────────────────────────

TAG_TABLE: Dict[int, TagSemantics] = {
    TAG_DATETIME_STRING: _app_string_tag(
        "standard datetime string", "dt", _datetime_string_body, _parse_datetime_string),
    TAG_EPOCH_DATETIME: _app_string_tag(
        "epoch datetime value", "DT", _epoch_datetime_body, _parse_epoch_datetime),
    TAG_POSITIVE_BIGNUM: _app_string_tag(
        "positive bignum", None, _positive_bignum_body, _parse_positive_bignum),
    TAG_NEGATIVE_BIGNUM: _app_string_tag(
        "negative bignum", None, _negative_bignum_body, _parse_negative_bignum),
    TAG_DECIMAL_FRACTION: _app_string_tag(
        "decimal fraction", "decimal", _decimal_body, _parse_decimal),
    TAG_BIGFLOAT: TagSemantics("bigfloat"),
    TAG_EXPECT_BASE64URL: TagSemantics("expected conversion to base64url encoding"),
    TAG_EXPECT_BASE64: TagSemantics("expected conversion to base64 encoding"),
    TAG_EXPECT_BASE16: TagSemantics("expected conversion to base16 encoding"),
    TAG_ENCODED_CBOR: TagSemantics("encoded cbor data item"),
    TAG_RATIONAL: _app_string_tag(
        "rational number", None, _rational_body, _parse_rational),
    TAG_URI: _app_string_tag("uri", "uri", _text_body, _parse_uri),
    TAG_BASE64URL_TEXT: TagSemantics("base64url encoded text"),
    TAG_BASE64_TEXT: TagSemantics("base64 encoded text"),
    TAG_REGEX: _app_string_tag("regular expression", "re", _text_body, _parse_regex),
    TAG_MIME: TagSemantics("mime message"),
    TAG_UUID: _app_string_tag("uuid", "uuid", _uuid_body, _parse_uuid),
    TAG_SELF_DESCRIBE: TagSemantics(
        "self describe cbor", None, lambda inner: True, _render_self_describe),
}

# App-string prefix -> tag number, for the diagnostic parser.
APP_STRING_TAGS: Dict[str, int] = {
    sem.prefix: number for number, sem in TAG_TABLE.items() if sem.prefix is not None
}


def is_known_tag(number: int) -> bool:
    return number in TAG_TABLE


def tag_name(number: int) -> Optional[str]:
    sem = TAG_TABLE.get(number)
    return None if sem is None else sem.name


def render_specialized(tag: Tag, emit: Emit) -> Optional[str]:
    """Specialized literal for a tag, or None to fall back to ``N(value)``.

    A tag written with a non-minimal argument width always falls back so
    the width suffix survives.
    """
    sem = TAG_TABLE.get(tag.number)
    if sem is None or sem.render is None:
        return None
    if tag.width != minimal_width(tag.number):
        return None
    if not sem.validate(tag.value):
        return None
    return sem.render(tag.value, emit)


def parse_specialized(number: int, text: str) -> Tag:
    """Build the tag for a specialized literal body.  ValueError when malformed."""
    return Tag(number, TAG_TABLE[number].parse(text))
