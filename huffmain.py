"""
Command-line front end for the tree-header Huffman compressor.

How to run:
  python huffmain.py compress notes.txt                  -> notes.txt.hf
  python huffmain.py decompress notes.txt.hf --force     -> notes.txt (replaces it)
  python huffmain.py decompress notes.txt.hf -o out.txt --debug 4
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

import hufftree as huff
from huffbits import BitInputStream, BitOutputStream

HUFF_SUFFIX = ".hf"
UNHUFF_SUFFIX = ".unhf"
PART_SUFFIX = ".part"


def default_output(input_path: Path, mode: str) -> Path:
    if mode == "compress":
        return input_path.with_name(input_path.name + HUFF_SUFFIX)
    if input_path.suffix == HUFF_SUFFIX:
        return input_path.with_suffix("")
    return input_path.with_name(input_path.name + UNHUFF_SUFFIX)


def run(mode: str, input_path: Path, output_path: Path, debug: int = 0) -> int:
    """
    Run one compress/decompress over files, report bit counts, return exit code.

    Output goes to a sibling .part file that replaces output_path only once the
    run succeeds, so a failed run leaves any existing output_path untouched.
    """
    action = huff.compress if mode == "compress" else huff.decompress
    part_path = output_path.with_name(output_path.name + PART_SUFFIX)

    try:
        with BitInputStream(input_path) as bit_in, BitOutputStream(part_path) as bit_out:
            action(bit_in, bit_out, debug)
    except huff.HuffException as e:
        part_path.unlink(missing_ok=True)
        print(f"error: {e}", file=sys.stderr)
        return 1
    except OSError:
        part_path.unlink(missing_ok=True)
        raise
    part_path.replace(output_path)

    bits_read = input_path.stat().st_size * 8
    bits_written = bit_out.bits_written
    print(f"{mode}: {input_path} -> {output_path}")
    print(f"bits read: {bits_read}  bits written: {bits_written}")
    if mode == "compress" and bits_read:
        print(f"saved {100.0 * (bits_read - bits_written) / bits_read:.2f}%")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Huffman compressor with the coding tree in the header")
    ap.add_argument("mode", choices=("compress", "decompress"))
    ap.add_argument("input", type=str, help="File to read")
    ap.add_argument("-o", "--output", type=str, default=None,
                    help=f"File to write (default: add {HUFF_SUFFIX}, or strip it when decompressing)")
    ap.add_argument("--debug", type=int, default=0,
                    help=f"Diagnostic level, {huff.DEBUG_LOW}=summary, {huff.DEBUG_HIGH}=every code")
    ap.add_argument("--force", action="store_true", help="Replace the output file if it already exists")
    args = ap.parse_args(argv)

    input_path = Path(args.input)
    output_path = Path(args.output) if args.output else default_output(input_path, args.mode)
    if output_path.resolve() == input_path.resolve():
        ap.error("output file would overwrite the input file")
    if output_path.exists() and not args.force:
        print(f"error: {output_path} already exists, use --force to replace it", file=sys.stderr)
        return 1

    return run(args.mode, input_path, output_path, args.debug)


if __name__ == "__main__":
    raise SystemExit(main())
