"""
The GRIN file format and its command-line driver.

A .grin file is a 32-bit magic number, the serialized Huffman tree, the
Huffman codes of the input bytes and the end-of-stream code, zero-padded
to a whole byte.

How to run:
  grin encode notes.txt notes.grin
  grin decode notes.grin notes.txt
  grin encode --stats notes.txt notes.grin
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

from bitio import BitReader, BitWriter
from huffman import GrinError, GrinFormatError, HuffmanTree

MAGIC_NUMBER = 0x736
MAGIC_BITS = 32


def create_frequency_map(data: bytes) -> Dict[int, int]:
    freqs: Dict[int, int] = {}
    for b in data:
        freqs[b] = freqs.get(b, 0) + 1
    return freqs


def write_grin(data: bytes, writer: BitWriter, frequency_table: Optional[Dict[int, int]] = None) -> None:
    if frequency_table is None:
        frequency_table = create_frequency_map(data)
    tree = HuffmanTree.from_frequencies(frequency_table)

    writer.write_bits(MAGIC_NUMBER, MAGIC_BITS)
    tree.serialize(writer)
    tree.encode(data, writer)


def read_grin(reader: BitReader) -> bytes:
    magic = reader.read_bits(MAGIC_BITS)
    if magic != MAGIC_NUMBER:
        raise GrinFormatError("Not a valid .grin file")
    tree = HuffmanTree.from_stream(reader)
    return tree.decode(reader)


def encode(data: bytes, frequency_table: Optional[Dict[int, int]] = None) -> bytes:
    """
    Compress data into the bytes of a .grin file. The frequency model is
    counted from data unless one is passed in.
    """
    writer = BitWriter()
    write_grin(data, writer, frequency_table)
    return writer.getvalue()


def decode(blob: bytes) -> bytes:
    """
    Expand the bytes of a .grin file.
    Raises GrinFormatError for foreign or corrupt input and
    TruncatedStreamError when the payload stops short.
    """
    return read_grin(BitReader(blob))


def encode_file(infile: str, outfile: str) -> None:
    data = Path(infile).read_bytes()
    with open(outfile, "wb") as f, BitWriter(f) as writer:
        write_grin(data, writer)


def decode_file(infile: str, outfile: str) -> None:
    # decode fully before touching outfile so a bad input leaves nothing behind
    with open(infile, "rb") as f, BitReader(f) as reader:
        data = read_grin(reader)
    Path(outfile).write_bytes(data)


# Main

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="grin", description="Huffman file compressor")
    ap.add_argument("command", choices=("encode", "decode"), help="Compress or expand infile")
    ap.add_argument("infile", type=str, help="File to read")
    ap.add_argument("outfile", type=str, help="File to write")
    ap.add_argument("--stats", action="store_true", help="Print sizes and compression ratio after encoding")
    args = ap.parse_args(argv)

    try:
        if args.command == "encode":
            encode_file(args.infile, args.outfile)
        else:
            decode_file(args.infile, args.outfile)
    except GrinError as e:
        print(f"error: {args.infile}: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"error: {e.filename}: {e.strerror}", file=sys.stderr)
        return 1

    if args.stats and args.command == "encode":
        in_size = os.path.getsize(args.infile)
        out_size = os.path.getsize(args.outfile)
        print(f"{args.infile}: {in_size} bytes")
        print(f"{args.outfile}: {out_size} bytes")
        print(f"Ratio (output / input): {out_size / max(1, in_size):.3f}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
