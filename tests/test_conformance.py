"""cbordiag conformance test suite.

Runs every vector in conformance/diag_vectors.json through the three
conversions a vector pins down:

    hex  -> decode -> print_diag    must equal the vector's diag text
    diag -> parse_diag -> encode    must equal the vector's hex
    hex  -> annotate_hex -> parse_hex must give the same bytes back

Usage:
    python tests/test_conformance.py [--vectors-dir DIR]
    python -m pytest tests/test_conformance.py -v
    CBORDIAG_VECTORS_DIR=conformance python tests/test_conformance.py
"""

from __future__ import annotations

import argparse
import json
import os
import sys
import unittest
from typing import Dict, List, Optional, Tuple

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from cbordiag import (
    CborDiagError,
    annotate_hex,
    decode_binary,
    encode_binary,
    parse_diag,
    parse_hex,
    print_diag,
)

VECTORS_FILE = "diag_vectors.json"

# ── Locate conformance data ───────────────────────────────────

_VECTORS_DIR: Optional[str] = os.environ.get("CBORDIAG_VECTORS_DIR", None)


def _find_vectors_dir() -> str:
    if _VECTORS_DIR:
        return _VECTORS_DIR
    candidates = [
        os.path.join(os.path.dirname(__file__), "..", "conformance"),
        os.path.join(os.path.dirname(__file__), "conformance"),
    ]
    for d in candidates:
        if os.path.isfile(os.path.join(d, VECTORS_FILE)):
            return d
    raise FileNotFoundError(
        "Cannot find conformance vectors. Set CBORDIAG_VECTORS_DIR or --vectors-dir."
    )


def _load_vectors() -> List[dict]:
    with open(os.path.join(_find_vectors_dir(), VECTORS_FILE), "r", encoding="utf-8") as f:
        return json.load(f)["vectors"]


def _run_vector(vec: dict) -> Dict[str, str]:
    """Execute one vector.  Returns what each direction produced, or the error code."""
    raw = bytes.fromhex(vec["hex"])
    got: Dict[str, str] = {}
    try:
        got["diag"] = print_diag(decode_binary(raw))
    except CborDiagError as e:
        got["diag"] = "error " + e.code
    try:
        got["hex"] = encode_binary(parse_diag(vec["diag"])).hex()
    except CborDiagError as e:
        got["hex"] = "error " + e.code
    try:
        got["annotated"] = parse_hex(annotate_hex(raw)).hex()
    except CborDiagError as e:
        got["annotated"] = "error " + e.code
    return got


def _expected(vec: dict) -> Dict[str, str]:
    return {"diag": vec["diag"], "hex": vec["hex"], "annotated": vec["hex"]}


# ── unittest integration ──────────────────────────────────────

class ConformanceTests(unittest.TestCase):
    """Dynamically generated: one test method per vector."""
    pass


def _make_test(vec: dict):
    def test_fn(self: unittest.TestCase) -> None:
        got = _run_vector(vec)
        exp = _expected(vec)
        self.assertEqual(got, exp,
                         "{}: got {} expected {}".format(vec["test_id"], got, exp))
    return test_fn


# Attach test methods at import time.
try:
    for _vec in _load_vectors():
        _tid = _vec["test_id"]
        _fn = _make_test(_vec)
        _fn.__name__ = "test_{}".format(_tid)
        _fn.__qualname__ = "ConformanceTests.test_{}".format(_tid)
        setattr(ConformanceTests, "test_{}".format(_tid), _fn)
except FileNotFoundError:
    pass


# ── Standalone CLI runner ─────────────────────────────────────

def main() -> None:
    global _VECTORS_DIR

    parser = argparse.ArgumentParser(description="cbordiag conformance runner")
    parser.add_argument("--vectors-dir", default=None,
                        help="Directory holding {}".format(VECTORS_FILE))
    args, _remaining = parser.parse_known_args()

    if args.vectors_dir:
        _VECTORS_DIR = args.vectors_dir
        os.environ["CBORDIAG_VECTORS_DIR"] = args.vectors_dir

    passed = 0
    failed = 0
    failures: List[Tuple[str, dict, dict]] = []

    for vec in _load_vectors():
        got = _run_vector(vec)
        exp = _expected(vec)
        if got == exp:
            passed += 1
        else:
            failed += 1
            failures.append((vec["test_id"], got, exp))

    print("CONFORMANCE: {}/{} PASS".format(passed, passed + failed))
    for tid, got, exp in failures:
        print("  FAIL {}: got={} expected={}".format(tid, got, exp))

    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
