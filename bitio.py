"""
Bit-granular reading and writing over byte streams.

Bits are packed most-significant-bit first. A writer pads its final
partial byte with zero bits when it is closed.
"""

from __future__ import annotations

import io
from typing import BinaryIO, Optional, Union


class BitWriter:
    def __init__(self, stream: Optional[BinaryIO] = None):
        self.stream = stream if stream is not None else io.BytesIO()
        self.acc = 0 # bits waiting to fill a byte
        self.acc_bits = 0
        self.bits_written = 0
        self.closed = False

    def write_bit(self, bit: int) -> None:
        self.acc = (self.acc << 1) | (1 if bit else 0)
        self.acc_bits += 1
        self.bits_written += 1
        if self.acc_bits == 8:
            self.stream.write(bytes([self.acc]))
            self.acc = 0
            self.acc_bits = 0

    def write_bits(self, value: int, n: int) -> None:
        """Write the n least-significant bits of value, high bit first."""
        for i in range(n - 1, -1, -1):
            self.write_bit((value >> i) & 1)

    def flush(self) -> int:
        """
        Pad the pending partial byte with zeros and write it out.
        Returns the number of pad bits added.
        """
        pad_bits = 0
        if self.acc_bits != 0:
            pad_bits = 8 - self.acc_bits
            self.stream.write(bytes([(self.acc << pad_bits) & 0xFF]))
            self.acc = 0
            self.acc_bits = 0
        self.stream.flush()
        return pad_bits

    def getvalue(self) -> bytes:
        # only meaningful for in-memory buffers
        self.flush()
        return self.stream.getvalue()

    def close(self) -> None:
        if self.closed:
            return
        self.flush()
        self.closed = True

    def __enter__(self) -> "BitWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class BitReader:
    def __init__(self, source: Union[bytes, bytearray, BinaryIO]):
        if isinstance(source, (bytes, bytearray)):
            source = io.BytesIO(bytes(source))
        self.stream = source
        self.current = 0
        self.remaining = 0 # unread bits left in self.current
        self.bits_read = 0

    def read_bit(self) -> Optional[int]:
        """Return the next bit, or None once the source is exhausted."""
        if self.remaining == 0:
            chunk = self.stream.read(1)
            if not chunk:
                return None
            self.current = chunk[0]
            self.remaining = 8
        self.remaining -= 1
        self.bits_read += 1
        return (self.current >> self.remaining) & 1

    def read_bits(self, n: int) -> Optional[int]:
        """
        Read n bits as an unsigned value, high bit first.
        Returns None if the source runs out before n bits are read.
        """
        value = 0
        for _ in range(n):
            bit = self.read_bit()
            if bit is None:
                return None
            value = (value << 1) | bit
        return value

    def close(self) -> None:
        self.stream.close()

    def __enter__(self) -> "BitReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
