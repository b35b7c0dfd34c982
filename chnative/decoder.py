"""Decoding of primitive values from the native binary protocol."""

from __future__ import annotations

import struct
from typing import Protocol

from chnative.compression import CompressReader

_MAX_VARINT_LEN64 = 10

_INT8 = struct.Struct("<b")
_INT16 = struct.Struct("<h")
_INT32 = struct.Struct("<i")
_INT64 = struct.Struct("<q")
_UINT16 = struct.Struct("<H")
_UINT32 = struct.Struct("<I")
_UINT64 = struct.Struct("<Q")
_FLOAT32 = struct.Struct("<f")
_FLOAT64 = struct.Struct("<d")


class _Readable(Protocol):
    def read(self, size: int, /) -> bytes: ...


class Decoder:
    """Reads little-endian values, varints and strings from a stream."""

    def __init__(
        self, stream: _Readable, compressed_stream: _Readable | None = None
    ) -> None:
        self._stream = stream
        self._compressed_stream = compressed_stream
        self._compress = False

    @classmethod
    def with_compress(cls, stream: _Readable) -> Decoder:
        """Create a decoder that can switch to reading compressed frames."""
        return cls(stream, CompressReader(stream))

    def select_compress(self, compress: bool) -> None:
        """Switch reading from the compressed stream on or off."""
        self._compress = compress

    @property
    def _source(self) -> _Readable:
        if self._compress and self._compressed_stream is not None:
            return self._compressed_stream
        return self._stream

    def _read(self, size: int) -> bytes:
        source = self._source
        data = bytearray()
        while len(data) < size:
            chunk = source.read(size - len(data))
            if not chunk:
                raise EOFError(f"expected {size} bytes, got {len(data)}")
            data += chunk
        return bytes(data)

    def read_byte(self) -> int:
        return self._read(1)[0]

    def bool(self) -> bool:
        return self.read_byte() == 1

    def uvarint(self) -> int:
        result = 0
        shift = 0
        for index in range(_MAX_VARINT_LEN64):
            byte = self.read_byte()
            if byte < 0x80:
                if index == _MAX_VARINT_LEN64 - 1 and byte > 1:
                    break
                return result | byte << shift
            result |= (byte & 0x7F) << shift
            shift += 7
        raise ValueError("varint overflows a 64-bit integer")

    def int8(self) -> int:
        return _INT8.unpack(self._read(1))[0]

    def int16(self) -> int:
        return _INT16.unpack(self._read(2))[0]

    def int32(self) -> int:
        return _INT32.unpack(self._read(4))[0]

    def int64(self) -> int:
        return _INT64.unpack(self._read(8))[0]

    def uint8(self) -> int:
        return self.read_byte()

    def uint16(self) -> int:
        return _UINT16.unpack(self._read(2))[0]

    def uint32(self) -> int:
        return _UINT32.unpack(self._read(4))[0]

    def uint64(self) -> int:
        return _UINT64.unpack(self._read(8))[0]

    def float32(self) -> float:
        return _FLOAT32.unpack(self._read(4))[0]

    def float64(self) -> float:
        return _FLOAT64.unpack(self._read(8))[0]

    def fixed(self, length: int) -> bytes:
        return self._read(length)

    def string(self) -> str:
        length = self.uvarint()
        return self.fixed(length).decode("utf-8", "surrogateescape")

    def decimal128(self) -> bytes:
        return self._read(16)