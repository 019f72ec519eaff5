"""cbordiag error codes and exception classes.

Every failure raised by the parsers is a ``CborDiagError`` subclass carrying
a grep-friendly ``code`` string and the ``offset`` at which the problem was
detected: a byte offset for binary and hex input, a character offset for
diagnostic notation.  Printing never raises.
"""

from __future__ import annotations

from typing import Optional

# ── Binary decoding ──────────────────────────────────────────
ERR_UNEXPECTED_EOF: str = "ERR_UNEXPECTED_EOF"                    # ran out of bytes mid-item
ERR_INVALID_ADDITIONAL_INFO: str = "ERR_INVALID_ADDITIONAL_INFO"  # ai 28-30, or 31 where not allowed
ERR_BREAK_OUTSIDE_INDEFINITE: str = "ERR_BREAK_OUTSIDE_INDEFINITE"
ERR_INVALID_UTF8: str = "ERR_INVALID_UTF8"                        # text string is not UTF-8
ERR_RESERVED_SIMPLE_CODE: str = "ERR_RESERVED_SIMPLE_CODE"        # f8 00 .. f8 1f
ERR_INVALID_CHUNK: str = "ERR_INVALID_CHUNK"                      # bad chunk in indefinite string
ERR_TRAILING_BYTES: str = "ERR_TRAILING_BYTES"                    # bytes left after the root item

# ── Hex text ─────────────────────────────────────────────────
ERR_ODD_LENGTH: str = "ERR_ODD_LENGTH"
ERR_INVALID_HEX_DIGIT: str = "ERR_INVALID_HEX_DIGIT"

# ── Diagnostic notation ──────────────────────────────────────
ERR_UNEXPECTED_TOKEN: str = "ERR_UNEXPECTED_TOKEN"
ERR_UNTERMINATED_STRING: str = "ERR_UNTERMINATED_STRING"
ERR_INVALID_ESCAPE: str = "ERR_INVALID_ESCAPE"
ERR_INVALID_NUMBER_LITERAL: str = "ERR_INVALID_NUMBER_LITERAL"
ERR_UNBALANCED_DELIMITER: str = "ERR_UNBALANCED_DELIMITER"
ERR_INVALID_SEMANTIC_TAG_PAYLOAD: str = "ERR_INVALID_SEMANTIC_TAG_PAYLOAD"
ERR_INVALID_BYTE_STRING: str = "ERR_INVALID_BYTE_STRING"          # bad h''/b64''/b32'' content

# ── Shared ───────────────────────────────────────────────────
ERR_LIMIT_DEPTH: str = "ERR_LIMIT_DEPTH"                          # exceeds max_depth
ERR_NO_PARSER: str = "ERR_NO_PARSER"                              # auto-detection found no form


class CborDiagError(Exception):
    """Base class for all cbordiag parse failures.

    ``code`` is one of the ERR_* strings above and is what tests compare
    against.  ``offset`` is None only when no position applies.
    """

    def __init__(self, code: str, msg: str = "", offset: Optional[int] = None) -> None:
        super().__init__(msg or code)
        self.code = code
        self.offset = offset


class DecodeError(CborDiagError):
    """Malformed binary CBOR."""


class HexError(CborDiagError):
    """Malformed hex text."""


class DiagParseError(CborDiagError):
    """Malformed diagnostic notation."""
