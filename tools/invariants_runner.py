#!/usr/bin/env python3
# tools/invariants_runner.py
#
# Round-trip invariants (property tests) over randomly generated CBOR values.
#
# This runner:
# - generates random Values with random argument widths, indefinite lengths,
#   float widths and tags (well-known and unknown) within limits
# - checks the round-trip invariants between binary, diagnostic notation and
#   annotated hex
# - mutates the encoded bytes and checks that decoding either succeeds
#   consistently or fails with a DecodeError
#
# Exit code:
#   0 -> all checks passed
#   1 -> invariant violation

import os, sys, random
from typing import List

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, ROOT)

from cbordiag import (
    Array,
    ByteString,
    DecodeError,
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
    annotate_hex,
    decode_binary,
    encode_binary,
    parse_diag,
    parse_hex,
    print_diag,
)
from cbordiag._constants import CANONICAL_NAN

SEED = int(os.environ.get("CBORDIAG_SEED", "1337"))
TRIALS = int(os.environ.get("CBORDIAG_TRIALS", "2000"))
MUTATIONS = int(os.environ.get("CBORDIAG_MUTATIONS", "4"))
MAX_GEN_DEPTH = int(os.environ.get("CBORDIAG_GEN_MAX_DEPTH", "5"))
MAX_ITEMS = int(os.environ.get("CBORDIAG_GEN_MAX_ITEMS", "5"))
MAX_STR = int(os.environ.get("CBORDIAG_GEN_MAX_STR", "24"))
MAX_BYTES = int(os.environ.get("CBORDIAG_GEN_MAX_BYTES", "32"))

random.seed(SEED)

KNOWN_TAGS = [0, 1, 2, 3, 4, 21, 22, 23, 30, 32, 35, 37, 55799]

def rand_width(n: int):
    # Any argument width that can hold n; None means "pick the minimal one".
    widths = [w for w in (0, 1, 2, 4, 8) if (n < 24 if w == 0 else n < 1 << (8 * w))]
    if random.random() < 0.6:
        return None
    return random.choice(widths)

def rand_uint() -> int:
    bits = random.choice([4, 5, 8, 16, 32, 64])
    return random.getrandbits(bits)

def rand_text() -> str:
    # Scalars excluding the surrogate range; control characters occasionally.
    out = []
    for _ in range(random.randint(0, MAX_STR)):
        r = random.random()
        if r < 0.70:
            out.append(chr(random.randint(0x20, 0x7E)))
        elif r < 0.80:
            out.append(chr(random.randint(0x00, 0x1F)))
        elif r < 0.90:
            out.append(chr(random.randint(0xA0, 0xD7FF)))
        else:
            out.append(chr(random.randint(0x10000, 0x10FFFF)))
    return "".join(out)

def rand_bytes() -> bytes:
    return bytes(random.getrandbits(8) for _ in range(random.randint(0, MAX_BYTES)))

def rand_float() -> Float:
    width = random.choice([2, 4, 8])
    r = random.random()
    if r < 0.3:
        bound = {2: 65504.0, 4: 1e30, 8: 1e300}[width]
        v = Float.from_value(random.uniform(-bound, bound), width)
    elif r < 0.4:
        v = Float.from_value(random.choice([0.0, -0.0, 1.5, float("inf"), float("-inf")]), width)
    else:
        v = Float(random.getrandbits(8 * width), width)
    if v.value != v.value:
        # NaN payloads are not carried by diagnostic notation.
        return Float(CANONICAL_NAN[width], width)
    return v

def rand_simple() -> Simple:
    return Simple(random.choice([random.randint(0, 23), random.randint(32, 255)]))

def gen_scalar() -> Value:
    r = random.random()
    if r < 0.20:
        n = rand_uint()
        return UnsignedInteger(n, rand_width(n))
    if r < 0.35:
        n = rand_uint()
        return NegativeInteger(n, rand_width(n))
    if r < 0.50:
        s = rand_text()
        return TextString(s, rand_width(len(s.encode("utf-8"))))
    if r < 0.65:
        b = rand_bytes()
        return ByteString(b, rand_width(len(b)))
    if r < 0.75:
        chunks = [ByteString(rand_bytes()) for _ in range(random.randint(0, 3))]
        return IndefiniteByteString(tuple(chunks))
    if r < 0.80:
        chunks = [TextString(rand_text()) for _ in range(random.randint(0, 3))]
        return IndefiniteTextString(tuple(chunks))
    if r < 0.92:
        return rand_float()
    return rand_simple()

def gen_tag(depth: int) -> Tag:
    # Well-known numbers with plausible payloads, so the specialized
    # notation gets exercised, or any number with any payload.
    r = random.random()
    if r < 0.15:
        return Tag(37, ByteString(rand_bytes()[:16].ljust(16, b"\x00")))
    if r < 0.30:
        return Tag(random.choice([2, 3]), ByteString(random.getrandbits(72).to_bytes(9, "big")))
    if r < 0.45:
        secs = random.randint(-(2**31), 2**33)
        inner = UnsignedInteger(secs) if secs >= 0 else NegativeInteger(-1 - secs)
        if random.random() < 0.3:
            inner = Float.from_value(secs + random.choice([0.5, 0.25, 0.125]))
        return Tag(1, inner)
    if r < 0.50:
        # Exponents anywhere in the 64-bit argument range.
        e = rand_uint()
        exponent = UnsignedInteger(e) if random.random() < 0.5 else NegativeInteger(e)
        return Tag(4, Array((exponent, UnsignedInteger(rand_uint()))))
    if r < 0.55:
        num = random.randint(-1000, 1000)
        inner_num = UnsignedInteger(num) if num >= 0 else NegativeInteger(-1 - num)
        return Tag(random.choice([4, 30]),
                   Array((inner_num, UnsignedInteger(random.randint(0, 1000)))))
    number = random.choice(KNOWN_TAGS) if r < 0.75 else rand_uint()
    return Tag(number, gen_value(depth + 1), rand_width(number))

def gen_value(depth: int) -> Value:
    if depth >= MAX_GEN_DEPTH:
        return gen_scalar()
    r = random.random()
    if r < 0.20:
        items = [gen_value(depth + 1) for _ in range(random.randint(0, MAX_ITEMS))]
        if random.random() < 0.3:
            return Array(tuple(items), indefinite=True)
        return Array(tuple(items), rand_width(len(items)))
    if r < 0.40:
        pairs = [(gen_value(depth + 1), gen_value(depth + 1))
                 for _ in range(random.randint(0, MAX_ITEMS))]
        if random.random() < 0.3:
            return Map(tuple(pairs), indefinite=True)
        return Map(tuple(pairs), rand_width(len(pairs)))
    if r < 0.50:
        return gen_tag(depth)
    return gen_scalar()

def fail(label: str, v: Value, detail: str = "") -> int:
    print("INVARIANT FAIL:", label)
    print("VALUE:", repr(v)[:2000])
    if detail:
        print("DETAIL:", detail[:2000])
    return 1

def mutate(b: bytes) -> List[bytes]:
    out = []
    for _ in range(MUTATIONS):
        if not b:
            break
        r = random.random()
        if r < 0.4:
            out.append(b[:random.randrange(len(b))])
        elif r < 0.8:
            i = random.randrange(len(b))
            out.append(b[:i] + bytes([random.getrandbits(8)]) + b[i + 1:])
        else:
            i = random.randrange(len(b) + 1)
            out.append(b[:i] + bytes([random.choice([0x1c, 0x1f, 0xff, 0xf8, 0x5f])]) + b[i:])
    return out

def main() -> int:
    # Reserved simple codes 24..31 have no binary form (f8 18..f8 1f is
    # rejected) but still print and parse as simple(N).
    for code in range(24, 32):
        v = Simple(code)
        text = print_diag(v)
        if parse_diag(text) != v:
            return fail("parse_diag(print_diag(simple)) == simple", v, text)

    for t in range(TRIALS):
        v = gen_value(0)

        # (1) binary round trip in both directions
        b = encode_binary(v)
        if decode_binary(b) != v:
            return fail("decode(encode(v)) == v", v, b.hex())
        if encode_binary(decode_binary(b)) != b:
            return fail("encode(decode(b)) == b", v, b.hex())

        # (2) diagnostic notation round trip, compact and pretty
        for pretty in (False, True):
            text = print_diag(v, pretty=pretty)
            try:
                back = parse_diag(text)
            except Exception as e:
                return fail("print_diag output parses (pretty={})".format(pretty), v,
                            "{}: {}".format(e, text))
            if back != v:
                return fail("parse_diag(print_diag(v)) == v (pretty={})".format(pretty), v, text)

        # (3) annotated hex carries the same bytes
        if parse_hex(annotate_hex(b)) != b:
            return fail("parse_hex(annotate_hex(b)) == b", v, annotate_hex(b))

        # (4) mangled input decodes consistently or fails with a code
        for m in mutate(b):
            try:
                got = decode_binary(m)
            except DecodeError:
                continue
            except Exception as e:
                return fail("malformed input raises DecodeError", v,
                            "{}: {!r}".format(m.hex(), e))
            if encode_binary(got) != m:
                return fail("encode(decode(mutated)) == mutated", v, m.hex())

        if (t + 1) % 500 == 0:
            print(f"  {t + 1}/{TRIALS}")

    print(f"OK: invariants passed for TRIALS={TRIALS} seed={SEED}")
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
