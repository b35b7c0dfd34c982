"""Encoding of primitive values for the native binary protocol."""

from __future__ import annotations

import struct
from typing import Protocol

_INT8 = struct.Struct("<b")
_INT16 = struct.Struct("<h")
_INT32 = struct.Struct("<i")
_INT64 = struct.Struct("<q")
_UINT8 = struct.Struct("<B")
_UINT16 = struct.Struct("<H")
_UINT32 = struct.Struct("<I")
_UINT64 = struct.Struct("<Q")
_FLOAT32 = struct.Struct("<f")
_FLOAT64 = struct.Struct("<d")

_MAX_UINT64 = 2**64 - 1


class _Writable(Protocol):
    def write(self, data: bytes, /) -> object: ...


class Encoder:
    """Writes little-endian values, varints and strings to a stream."""

    def __init__(self, stream: _Writable) -> None:
        self._stream = stream

    def _pack(self, fmt: struct.Struct, value: int | float, kind: str) -> None:
        try:
            data = fmt.pack(value)
        except struct.error as exc:
            raise ValueError(f"{value!r} does not fit in {kind}") from exc
        self.write(data)

    def uvarint(self, value: int) -> None:
        if not 0 <= value <= _MAX_UINT64:
            raise ValueError(f"{value!r} does not fit in an unsigned 64-bit varint")
        out = bytearray()
        while value >= 0x80:
            out.append((value & 0x7F) | 0x80)
            value >>= 7
        out.append(value)
        self.write(bytes(out))

    def bool(self, value: bool) -> None:
        self.uint8(1 if value else 0)

    def int8(self, value: int) -> None:
        self._pack(_INT8, value, "Int8")

    def int16(self, value: int) -> None:
        self._pack(_INT16, value, "Int16")

    def int32(self, value: int) -> None:
        self._pack(_INT32, value, "Int32")

    def int64(self, value: int) -> None:
        self._pack(_INT64, value, "Int64")

    def uint8(self, value: int) -> None:
        self._pack(_UINT8, value, "UInt8")

    def uint16(self, value: int) -> None:
        self._pack(_UINT16, value, "UInt16")

    def uint32(self, value: int) -> None:
        self._pack(_UINT32, value, "UInt32")

    def uint64(self, value: int) -> None:
        self._pack(_UINT64, value, "UInt64")

    def float32(self, value: float) -> None:
        self.write(_FLOAT32.pack(value))

    def float64(self, value: float) -> None:
        self.write(_FLOAT64.pack(value))

    def string(self, value: str) -> None:
        self.raw_string(value.encode("utf-8", "surrogateescape"))

    def raw_string(self, value: bytes) -> None:
        self.uvarint(len(value))
        self.write(value)

    def decimal128(self, value: bytes) -> None:
        self.write(value)

    def write(self, data: bytes) -> int:
        """Write raw bytes and return how many were written."""
        self._stream.write(data)
        return len(data)

    def flush(self) -> None:
        """Flush the underlying stream if it can be flushed."""
        flush = getattr(self._stream, "flush", None)
        if callable(flush):
            flush()