from __future__ import annotations

import os
from typing import BinaryIO, Union

END_OF_INPUT = -1 # returned by read_bits when the source runs dry

Source = Union[str, os.PathLike, BinaryIO]


def _open(target: Source, mode: str):
    # Paths are opened (and later closed) by us, file objects belong to the caller
    if isinstance(target, (str, os.PathLike)):
        return open(target, mode), True
    return target, False


class BitInputStream:
    """
    Reads MSB-first bit fields from a byte source.

    The source must be seekable for reset(), compression scans the input twice.
    """

    def __init__(self, source: Source):
        self.stream, self._owned = _open(source, "rb")
        self.buffer = 0 # pending bits, right aligned
        self.buffer_bits = 0
        self.bits_read = 0

    def read_bits(self, width: int) -> int:
        while self.buffer_bits < width:
            chunk = self.stream.read(1)
            if not chunk:
                # short read: drop what is left so the next call also sees the end
                self.buffer = 0
                self.buffer_bits = 0
                return END_OF_INPUT
            self.buffer = (self.buffer << 8) | chunk[0]
            self.buffer_bits += 8

        self.buffer_bits -= width
        value = (self.buffer >> self.buffer_bits) & ((1 << width) - 1)
        self.buffer &= (1 << self.buffer_bits) - 1
        self.bits_read += width
        return value

    def reset(self) -> None:
        """Rewind to the first bit. bits_read counts from here again."""
        self.stream.seek(0)
        self.buffer = 0
        self.buffer_bits = 0
        self.bits_read = 0

    def close(self) -> None:
        if self._owned:
            self.stream.close()

    def __enter__(self) -> "BitInputStream":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class BitOutputStream:
    """
    Packs MSB-first bit fields into bytes. close() pads the last byte with zeros.
    """

    def __init__(self, sink: Source):
        self.stream, self._owned = _open(sink, "wb")
        self.rack = 0
        self.rack_bits = 0
        self.bits_written = 0
        self.closed = False

    def write_bits(self, width: int, value: int) -> None:
        if width < 0:
            raise ValueError(f"bit width must be non-negative, got {width}")
        if value < 0 or value >> width:
            raise ValueError(f"value {value} does not fit in {width} bits")
        if width == 0:
            return

        self.rack = (self.rack << width) | value
        self.rack_bits += width
        self.bits_written += width

        if self.rack_bits >= 8:
            full = self.rack_bits // 8
            self.rack_bits -= full * 8
            self.stream.write((self.rack >> self.rack_bits).to_bytes(full, "big"))
            self.rack &= (1 << self.rack_bits) - 1

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.rack_bits:
            pad = 8 - self.rack_bits
            self.stream.write(bytes([(self.rack << pad) & 0xFF]))
            self.rack = 0
            self.rack_bits = 0
        self.stream.flush()
        if self._owned:
            self.stream.close()

    def __enter__(self) -> "BitOutputStream":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
