import struct

import lz4.block
import pytest

from chnative.decoder import Decoder
from chnative.encoder import Encoder

MAX_UINT64 = 2**64 - 1


class _Pipe:
    def __init__(self, data: bytes = b"") -> None:
        self._buf = bytearray(data)

    def write(self, data: bytes) -> int:
        self._buf += data
        return len(data)

    def read(self, size: int) -> bytes:
        out = bytes(self._buf[:size])
        del self._buf[:size]
        return out


class _Empty:
    def read(self, size: int) -> bytes:
        return b""


@pytest.fixture
def pair():
    pipe = _Pipe()
    return Encoder(pipe), Decoder(pipe)


def test_uvarint(pair):
    encoder, decoder = pair
    i = 1
    while i < 1000000000000000:
        encoder.uvarint(i)
        assert decoder.uvarint() == i
        i *= 42
    encoder.uvarint(MAX_UINT64)
    assert decoder.uvarint() == MAX_UINT64


def test_uvarint_wire_bytes():
    assert Decoder(_Pipe(b"\xac\x02")).uvarint() == 300


def test_uvarint_overflow():
    with pytest.raises(ValueError):
        Decoder(_Pipe(b"\xff" * 9 + b"\x02")).uvarint()


def test_boolean(pair):
    encoder, decoder = pair
    encoder.bool(False)
    assert decoder.bool() is False
    encoder.bool(True)
    assert decoder.bool() is True


def test_int8(pair):
    encoder, decoder = pair
    for i in list(range(-128, 128)) + [-128, 127]:
        encoder.int8(i)
        assert decoder.int8() == i


def test_int16(pair):
    encoder, decoder = pair
    for i in list(range(-32768, 32768, 10)) + [-32768, 32767]:
        encoder.int16(i)
        assert decoder.int16() == i


def test_int32(pair):
    encoder, decoder = pair
    for i in list(range(-2147483648, 2147483648, 100000)) + [-(2**31), 2**31 - 1]:
        encoder.int32(i)
        assert decoder.int32() == i


def test_int64(pair):
    encoder, decoder = pair
    values = list(range(-2147483648, 2147483647 * 2 + 1, 100000))
    for i in values + [-(2**63), 2**63 - 1]:
        encoder.int64(i)
        assert decoder.int64() == i


def test_uint8(pair):
    encoder, decoder = pair
    for i in list(range(256)) + [255]:
        encoder.uint8(i)
        assert decoder.uint8() == i


def test_uint16(pair):
    encoder, decoder = pair
    for i in list(range(0, 65536, 10)) + [65535]:
        encoder.uint16(i)
        assert decoder.uint16() == i


def test_uint32(pair):
    encoder, decoder = pair
    for i in list(range(0, 4294967296, 100000)) + [4294967295]:
        encoder.uint32(i)
        assert decoder.uint32() == i


def test_uint64(pair):
    encoder, decoder = pair
    for i in list(range(0, 4294967295 * 2 + 1, 100000)) + [MAX_UINT64]:
        encoder.uint64(i)
        assert decoder.uint64() == i


def test_float32(pair):
    encoder, decoder = pair
    for i in range(-(2**31), 2**31, 2**20):
        encoder.float32(float(i))
        assert decoder.float32() == float(i)
    encoder.float32(-(2**31))
    assert decoder.float32() == -(2.0**31)
    encoder.float32(2**31 - 1)
    assert decoder.float32() == 2.0**31


def test_float64(pair):
    encoder, decoder = pair
    for i in range(-2147483648, 2147483647 * 2 + 1, 100000):
        encoder.float64(float(i))
        assert decoder.float64() == float(i)
    encoder.float64(float(-(2**63)))
    assert decoder.float64() == float(-(2**63))
    encoder.float64(float(2**31 - 1))
    assert decoder.float64() == float(2**31 - 1)


def test_string(pair):
    encoder, decoder = pair
    encoder.string("str_1700000000")
    assert decoder.string() == "str_1700000000"


def test_raw_string(pair):
    encoder, decoder = pair
    encoder.raw_string(b"str_1700000000")
    assert decoder.string() == "str_1700000000"


def test_fixed_and_decimal128():
    data = bytes(range(20))
    decoder = Decoder(_Pipe(data))
    assert decoder.fixed(4) == data[:4]
    assert decoder.decimal128() == data[4:]


@pytest.mark.parametrize(
    "method",
    [
        "uvarint", "bool", "int8", "int16", "int32", "int64", "uint8",
        "uint16", "uint32", "uint64", "float32", "float64", "string",
        "decimal128", "read_byte",
    ],
)
def test_empty_stream_raises_eof(method):
    with pytest.raises(EOFError):
        getattr(Decoder(_Empty()), method)()


def test_short_read_raises_eof():
    with pytest.raises(EOFError):
        Decoder(_Pipe(b"\x01\x02")).uint32()


def test_compressed_section():
    inner = struct.pack("<i", -7) + b"\x05hello"
    compressed = lz4.block.compress(inner, store_size=False)
    frame = (
        bytes(16)
        + bytes([0x82])
        + struct.pack("<II", len(compressed) + 9, len(inner))
        + compressed
    )
    decoder = Decoder.with_compress(_Pipe(b"\x2a" + frame + b"\x01"))
    assert decoder.uint8() == 42
    decoder.select_compress(True)
    assert decoder.int32() == -7
    assert decoder.string() == "hello"
    decoder.select_compress(False)
    assert decoder.bool() is True