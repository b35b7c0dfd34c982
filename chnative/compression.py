"""Reading LZ4-compressed frames of the native protocol."""

from __future__ import annotations

import struct
from enum import IntEnum
from typing import Protocol

import lz4.block


class CompressionMethod(IntEnum):
    """Identifier byte of the compression algorithm in a frame header."""

    NONE = 0x02
    LZ4 = 0x82
    ZSTD = 0x90


# 128-bit CityHash v1.0.2 checksum that precedes each frame.
CHECKSUM_SIZE = 16
# Method byte, compressed size and uncompressed size.
COMPRESS_HEADER_SIZE = 1 + 4 + 4
HEADER_SIZE = CHECKSUM_SIZE + COMPRESS_HEADER_SIZE
BLOCK_MAX_SIZE = 1 << 20

_SIZES = struct.Struct("<BII")


class _Readable(Protocol):
    def read(self, size: int, /) -> bytes: ...


def _read_exact(stream: _Readable, size: int) -> bytes:
    """Read exactly ``size`` bytes, returning fewer only when the stream ends."""
    chunks = bytearray()
    while len(chunks) < size:
        chunk = stream.read(size - len(chunks))
        if not chunk:
            break
        chunks += chunk
    return bytes(chunks)


class CompressReader:
    """A reader that yields the decompressed contents of a stream of frames."""

    def __init__(self, reader: _Readable) -> None:
        self._reader = reader
        self._data = b""
        self._pos = 0

    def read(self, size: int) -> bytes:
        """Return exactly ``size`` decompressed bytes, reading frames as needed."""
        out = bytearray()
        while len(out) < size:
            if self._pos >= len(self._data):
                self._read_frame()
                continue
            take = min(size - len(out), len(self._data) - self._pos)
            out += self._data[self._pos : self._pos + take]
            self._pos += take
        return bytes(out)

    def _read_frame(self) -> None:
        self._data = b""
        self._pos = 0
        header = _read_exact(self._reader, HEADER_SIZE)
        if not header:
            raise EOFError("end of compressed stream")
        if len(header) != HEADER_SIZE:
            raise EOFError("lz4 decompression header EOF")

        method, compressed_size, decompressed_size = _SIZES.unpack_from(
            header, CHECKSUM_SIZE
        )
        compressed_size -= COMPRESS_HEADER_SIZE
        if method != CompressionMethod.LZ4:
            raise ValueError(f"unknown compression method: 0x{method:02x}")
        if compressed_size < 0:
            raise ValueError(f"invalid compressed frame size: {compressed_size}")

        payload = _read_exact(self._reader, compressed_size)
        if len(payload) != compressed_size:
            raise EOFError("decompress read size does not match")

        data = lz4.block.decompress(payload, uncompressed_size=decompressed_size)
        if len(data) != decompressed_size:
            raise ValueError(
                f"decompressed {len(data)} bytes, frame declares {decompressed_size}"
            )
        self._data = data