"""Unit tests for hex parsing and annotated hex output."""

from __future__ import annotations

import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from cbordiag import (
    ERR_INVALID_HEX_DIGIT,
    ERR_ODD_LENGTH,
    ERR_UNEXPECTED_EOF,
    DecodeError,
    HexError,
    annotate_hex,
    parse_hex,
)


def _annotate(hex_text: str) -> str:
    return annotate_hex(bytes.fromhex(hex_text))


# ── parse_hex ─────────────────────────────────────────────────

class TestParseHex(unittest.TestCase):
    def test_plain(self):
        self.assertEqual(parse_hex("820102"), b"\x82\x01\x02")

    def test_case_and_whitespace(self):
        self.assertEqual(parse_hex("A0 b1\n\tC2"), b"\xa0\xb1\xc2")

    def test_comments(self):
        self.assertEqual(parse_hex("82  # array(2)\n   01 # one\n02"), b"\x82\x01\x02")
        self.assertEqual(parse_hex("# nothing but a comment"), b"")

    def test_empty(self):
        self.assertEqual(parse_hex(""), b"")

    def test_odd_length(self):
        with self.assertRaises(HexError) as ctx:
            parse_hex("abc")
        self.assertEqual(ctx.exception.code, ERR_ODD_LENGTH)
        self.assertEqual(ctx.exception.offset, 2)

    def test_odd_length_offset_skips_trailing_comment(self):
        with self.assertRaises(HexError) as ctx:
            parse_hex("01 2 # x")
        self.assertEqual(ctx.exception.code, ERR_ODD_LENGTH)
        self.assertEqual(ctx.exception.offset, 3)

    def test_invalid_digit(self):
        with self.assertRaises(HexError) as ctx:
            parse_hex("0g")
        self.assertEqual(ctx.exception.code, ERR_INVALID_HEX_DIGIT)
        self.assertEqual(ctx.exception.offset, 1)

    def test_invalid_digit_after_comment(self):
        with self.assertRaises(HexError) as ctx:
            parse_hex("# ok\nzz")
        self.assertEqual(ctx.exception.offset, 5)


# ── annotate_hex ──────────────────────────────────────────────

class TestAnnotateScalars(unittest.TestCase):
    def test_unsigned(self):
        self.assertEqual(_annotate("01"), "01 # unsigned(1)\n")
        self.assertEqual(_annotate("1818"), "18 18 # unsigned(24)\n")
        self.assertEqual(_annotate("1903e8"), "19 03e8 # unsigned(1000)\n")

    def test_negative_shows_wire_magnitude(self):
        self.assertEqual(_annotate("3863"), "38 63 # negative(99)\n")

    def test_simple(self):
        self.assertEqual(_annotate("f4"), "f4 # false, simple(20)\n")
        self.assertEqual(_annotate("f7"), "f7 # undefined, simple(23)\n")
        self.assertEqual(_annotate("f0"), "f0 # unassigned, simple(16)\n")
        self.assertEqual(_annotate("f8ff"), "f8 ff # unassigned, simple(255)\n")

    def test_float(self):
        self.assertEqual(_annotate("f93c00"), "f9 3c00 # float(1.0)\n")
        self.assertEqual(_annotate("fb3ff199999999999a"),
                         "fb 3ff199999999999a # float(1.1)\n")
        self.assertEqual(_annotate("f97e00"), "f9 7e00 # float(NaN)\n")


class TestAnnotateStrings(unittest.TestCase):
    def test_empty_bytes(self):
        self.assertEqual(_annotate("40"), "40  # bytes(0)\n"
                                          '    # ""\n')

    def test_short_bytes(self):
        self.assertEqual(_annotate("4568656c6c6f"),
                         "45            # bytes(5)\n"
                         '   68656c6c6f # "hello"\n')

    def test_long_bytes_split_in_sixteen(self):
        data = bytes(range(0x61, 0x61 + 20))
        out = annotate_hex(bytes([0x54]) + data)
        lines = out.splitlines()
        self.assertEqual(len(lines), 3)
        self.assertTrue(lines[0].startswith("54 "))
        self.assertIn("# bytes(20)", lines[0])
        self.assertTrue(lines[1].startswith("   6162636465666768696a6b6c6d6e6f70 "))
        self.assertTrue(lines[1].endswith('# "abcdefghijklmnop"'))
        self.assertTrue(lines[2].endswith('# "qrst"'))

    def test_byte_escapes(self):
        out = _annotate("4461002722")
        self.assertIn('# "a\\x00\\\'\\""', out)

    def test_text(self):
        self.assertEqual(_annotate("6449455446"),
                         "64          # text(4)\n"
                         '   49455446 # "IETF"\n')

    def test_text_lines_keep_characters_whole(self):
        text = "ü" * 9  # 18 bytes
        raw = text.encode("utf-8")
        out = annotate_hex(bytes([0x72]) + raw)
        lines = out.splitlines()
        self.assertEqual(len(lines), 3)
        self.assertTrue(lines[1].endswith('"{}"'.format("ü" * 8)))
        self.assertTrue(lines[2].endswith('"ü"'))

    def test_indefinite_bytes(self):
        out = _annotate("5f42010243030405ff")
        lines = out.splitlines()
        self.assertTrue(lines[0].startswith("5f "))
        self.assertTrue(lines[0].endswith("# bytes(*)"))
        self.assertTrue(lines[1].endswith("#   bytes(2)"))
        self.assertTrue(lines[-1].startswith("   ff "))
        self.assertTrue(lines[-1].endswith("#   break"))


class TestAnnotateStructure(unittest.TestCase):
    def test_array(self):
        self.assertEqual(_annotate("8201626869"),
                         "82         # array(2)\n"
                         "   01      #   unsigned(1)\n"
                         "   62      #   text(2)\n"
                         '      6869 #   "hi"\n')

    def test_indefinite_map(self):
        out = _annotate("bf616101ff")
        lines = out.splitlines()
        self.assertTrue(lines[0].endswith("# map(*)"))
        self.assertTrue(lines[-1].endswith("#   break"))

    def test_known_tag_is_named(self):
        self.assertEqual(_annotate("c11a514b67b0"),
                         "c1             # epoch datetime value, tag(1)\n"
                         "   1a 514b67b0 #   unsigned(1363896240)\n")

    def test_unknown_tag(self):
        self.assertEqual(_annotate("d9fffe00"),
                         "d9 fffe # tag(65534)\n"
                         "   00   #   unsigned(0)\n")

    def test_round_trips_through_parse_hex(self):
        for hex_text in ("a26161016162820203", "5f42010243030405ff",
                         "d8255000112233445566778899aabbccddeeff",
                         "7f657374726561646d696e67ff", "40", "60", "9fff"):
            with self.subTest(hex_text=hex_text):
                raw = bytes.fromhex(hex_text)
                self.assertEqual(parse_hex(annotate_hex(raw)), raw)

    def test_decode_errors_propagate(self):
        with self.assertRaises(DecodeError) as ctx:
            annotate_hex(b"\x82\x01")
        self.assertEqual(ctx.exception.code, ERR_UNEXPECTED_EOF)
        self.assertEqual(ctx.exception.offset, 2)


if __name__ == "__main__":
    unittest.main()
