"""Unit tests for the cbordiag public API.

Organized by feature area: input detection, rendering targets, sequences
and the end-to-end conversions a user is most likely to run.
"""

from __future__ import annotations

import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from cbordiag import (
    ERR_LIMIT_DEPTH,
    ERR_NO_PARSER,
    ERR_ODD_LENGTH,
    ERR_UNEXPECTED_EOF,
    Array,
    ByteString,
    CborDiagError,
    DecodeError,
    DiagParseError,
    HexError,
    Map,
    NegativeInteger,
    Tag,
    TextString,
    UnsignedInteger,
    parse,
    render,
    render_sequence,
)
import cbordiag

ONE_TWO = Array((UnsignedInteger(1), UnsignedInteger(2)))


# ── Source detection ──────────────────────────────────────────

class TestParse(unittest.TestCase):
    def test_binary(self):
        self.assertEqual(parse(bytes.fromhex("820102")), ONE_TWO)
        self.assertEqual(parse(bytes.fromhex("820102"), "bytes"), ONE_TWO)

    def test_hex(self):
        self.assertEqual(parse("82 01 02"), ONE_TWO)
        self.assertEqual(parse(b"82 01 02\n"), ONE_TWO)
        self.assertEqual(parse("820102", "hex"), ONE_TWO)

    def test_diag(self):
        self.assertEqual(parse("[1, 2]"), ONE_TWO)
        self.assertEqual(parse(b"[1, 2]"), ONE_TWO)
        self.assertEqual(parse("[1, 2]", "diag"), ONE_TWO)

    def test_hex_is_tried_before_diag(self):
        self.assertEqual(parse("12"), UnsignedInteger(0x12))
        self.assertEqual(parse("12", "diag"), UnsignedInteger(12))

    def test_binary_is_tried_first_for_bytes(self):
        self.assertEqual(parse(b"\x01"), UnsignedInteger(1))

    def test_nothing_parses(self):
        with self.assertRaises(CborDiagError) as ctx:
            parse("zz!")
        self.assertEqual(ctx.exception.code, ERR_NO_PARSER)
        self.assertIsInstance(ctx.exception.__cause__, DiagParseError)

    def test_undecodable_bytes(self):
        with self.assertRaises(CborDiagError) as ctx:
            parse(b"\xff\xfe")
        self.assertEqual(ctx.exception.code, ERR_NO_PARSER)

    def test_explicit_source_reports_its_own_error(self):
        with self.assertRaises(DecodeError) as ctx:
            parse(b"\x82\x01", "bytes")
        self.assertEqual(ctx.exception.code, ERR_UNEXPECTED_EOF)
        self.assertEqual(ctx.exception.offset, 2)
        with self.assertRaises(HexError) as ctx:
            parse("abc", "hex")
        self.assertEqual(ctx.exception.code, ERR_ODD_LENGTH)
        self.assertEqual(ctx.exception.offset, 2)

    def test_max_depth(self):
        with self.assertRaises(DiagParseError) as ctx:
            parse("[[1]]", "diag", max_depth=1)
        self.assertEqual(ctx.exception.code, ERR_LIMIT_DEPTH)
        with self.assertRaises(DecodeError) as ctx:
            parse(bytes.fromhex("818101"), "bytes", max_depth=1)
        self.assertEqual(ctx.exception.code, ERR_LIMIT_DEPTH)

    def test_bad_arguments(self):
        with self.assertRaises(ValueError):
            parse("00", "yaml")
        with self.assertRaises(TypeError):
            parse("00", "bytes")


# ── Rendering ─────────────────────────────────────────────────

class TestRender(unittest.TestCase):
    def test_targets(self):
        v = parse('{_ "a": 1}')
        self.assertEqual(render(v, "bytes"), b"\xbf\x61\x61\x01\xff")
        self.assertEqual(render(v, "hex"), "bf616101ff")
        self.assertEqual(render(v, "compact"), '{_ "a": 1}')
        self.assertEqual(render(v, "diag"), '{_ "a": 1}')
        self.assertEqual(render(v, "annotated"),
                         "bf       # map(*)\n"
                         "   61    #   text(1)\n"
                         '      61 #   "a"\n'
                         "   01    #   unsigned(1)\n"
                         "   ff    #   break\n")

    def test_diag_target_is_pretty(self):
        v = Array(tuple(TextString("x" * 10) for _ in range(6)))
        self.assertIn("\n", render(v, "diag"))
        self.assertNotIn("\n", render(v, "compact"))

    def test_unknown_target(self):
        with self.assertRaises(ValueError):
            render(UnsignedInteger(0), "xml")


# ── Sequences ─────────────────────────────────────────────────

class TestRenderSequence(unittest.TestCase):
    VALS = [UnsignedInteger(1), TextString("a")]

    def test_binary_and_hex_concatenate(self):
        self.assertEqual(render_sequence(self.VALS, "bytes"), b"\x01\x61\x61")
        self.assertEqual(render_sequence(self.VALS, "hex"), "016161")

    def test_text_targets_one_per_line(self):
        self.assertEqual(render_sequence(self.VALS, "compact"), '1\n"a"\n')
        self.assertEqual(render_sequence([], "compact"), "")

    def test_annotated_blocks(self):
        out = render_sequence(self.VALS, "annotated")
        first, second = out.split("\n\n")
        self.assertEqual(first, "01 # unsigned(1)")
        self.assertTrue(second.startswith("61 "))


# ── End-to-end conversions ────────────────────────────────────

class TestScenarios(unittest.TestCase):
    def test_hex_to_diag(self):
        self.assertEqual(render(parse("a26161016162820203"), "compact"),
                         '{"a": 1, "b": [2, 3]}')

    def test_widths_survive_a_diag_round_trip(self):
        hex_text = "1b0000000000000001"
        text = render(parse(hex_text), "compact")
        self.assertEqual(text, "1_3")
        self.assertEqual(render(parse(text), "hex"), hex_text)

    def test_uuid(self):
        v = parse("d8255000112233445566778899aabbccddeeff")
        self.assertEqual(render(v, "compact"), "uuid'00112233-4455-6677-8899-aabbccddeeff'")
        self.assertEqual(v, Tag(37, ByteString(bytes.fromhex("00112233445566778899aabbccddeeff"))))

    def test_integers_beyond_64_bits(self):
        self.assertEqual(render(parse("18446744073709551616"), "hex"), "c249010000000000000000")
        self.assertEqual(render(parse("-18446744073709551616"), "hex"), "3bffffffffffffffff")
        self.assertEqual(parse("-18446744073709551616"), NegativeInteger(2**64 - 1))

    def test_epoch_datetime(self):
        self.assertEqual(render(parse("c11a514b67b0"), "compact"), "DT'2013-03-21T20:04:00Z'")

    def test_decimal_fraction_with_64_bit_exponent(self):
        v = parse(bytes.fromhex("c4821b800000000000000001"))
        text = render(v, "compact")
        self.assertEqual(text, "decimal'1E+9223372036854775808'")
        self.assertEqual(render(parse(text, "diag"), "hex"), "c4821b800000000000000001")

    def test_map_keys_of_any_type(self):
        v = parse("{[1]: h'00', 1.5: null}")
        self.assertIsInstance(v, Map)
        self.assertEqual(render(v, "hex"), "a281014100f93e00f6")


class TestPackage(unittest.TestCase):
    def test_all_is_importable(self):
        for name in cbordiag.__all__:
            self.assertTrue(hasattr(cbordiag, name), name)

    def test_version(self):
        self.assertRegex(cbordiag.__version__, r"^\d+\.\d+\.\d+$")


if __name__ == "__main__":
    unittest.main()
