"""cbordiag command-line interface.

Usage:
    printf '\\x82\\x01\\x02' | python3 -m cbordiag
    echo '82 01 02' | python3 -m cbordiag --from hex --to diag
    echo '["a", {"b": 1}]' | python3 -m cbordiag --to annotated
    python3 -m cbordiag --seq --from bytes --input items.cborseq
    python3 -m cbordiag --version
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from . import (
    SOURCES,
    TARGETS,
    CborDiagError,
    DecodeError,
    HexError,
    __version__,
    decode_sequence,
    parse,
    parse_hex,
    render,
    render_sequence,
)
from ._errors import ERR_NO_PARSER


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cbordiag",
        description="cbordiag — convert CBOR between bytes, annotated hex and "
                    "diagnostic notation",
    )
    parser.add_argument("--from", dest="source", choices=SOURCES, default="auto",
                        help="Input form (default: detect)")
    parser.add_argument("--to", dest="target", choices=TARGETS, default="diag",
                        help="Output form (default: diag)")
    parser.add_argument("--seq", action="store_true",
                        help="Treat the input as a CBOR sequence (binary or hex input)")
    parser.add_argument("--input", "-i", metavar="FILE",
                        help="Read from FILE instead of stdin")
    parser.add_argument("--version", action="version",
                        version="cbordiag {}".format(__version__))
    return parser


def _read_input(filepath: Optional[str]) -> bytes:
    """Read raw input bytes from a file or stdin."""
    if filepath:
        with open(filepath, "rb") as f:
            return f.read()
    if sys.stdin.isatty():
        print("cbordiag: reading from stdin (Ctrl-D to end)...", file=sys.stderr)
    return sys.stdin.buffer.read()


def _parse_sequence(raw: bytes, source: str):
    if source == "bytes":
        return decode_sequence(raw)
    if source == "hex":
        return decode_sequence(parse_hex(raw.decode("utf-8")))
    # auto: binary first, then hex
    try:
        return decode_sequence(raw)
    except DecodeError:
        pass
    try:
        return decode_sequence(parse_hex(raw.decode("utf-8")))
    except (UnicodeDecodeError, HexError, DecodeError) as e:
        raise CborDiagError(ERR_NO_PARSER, "input is neither a CBOR nor a hex sequence") from e


def _write(out) -> None:
    if isinstance(out, bytes):
        sys.stdout.buffer.write(out)
        sys.stdout.buffer.flush()
    elif out.endswith("\n"):
        sys.stdout.write(out)
    else:
        print(out)


def main(argv: Optional[List[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.seq and args.source == "diag":
        parser.error("--seq needs binary or hex input")

    raw = _read_input(args.input)

    try:
        if args.seq:
            _write(render_sequence(_parse_sequence(raw, args.source), args.target))
        else:
            data = raw
            if args.source in ("hex", "diag"):
                data = raw.decode("utf-8")
            _write(render(parse(data, args.source), args.target))
    except CborDiagError as e:
        where = "" if e.offset is None else " at offset {}".format(e.offset)
        print(f"cbordiag: error [{e.code}]{where}: {e}", file=sys.stderr)
        sys.exit(2)
    except UnicodeDecodeError as e:
        print(f"cbordiag: input is not UTF-8 text: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
